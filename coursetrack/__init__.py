"""CourseTrack: courses, enrollments and student progress API."""
