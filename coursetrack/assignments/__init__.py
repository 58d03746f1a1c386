"""Course assignments: submissions, grading and grade summaries."""
