"""Assignment API endpoints.

Provides routes for:
- Assignments: create and list per course
- Submissions: submit, list per assignment, list my own
- Grading: grade a submission, my grade summary
"""

from uuid import UUID

from fastapi import APIRouter, status

from coursetrack.auth.dependencies import StudentUser, TeacherUser
from coursetrack.courses.dependencies import OwnedCourse

from .dependencies import (
    AssignmentCourse,
    AssignmentServiceDep,
    handle_assignment_error,
)
from .schemas import (
    AssignmentListResponse,
    AssignmentResponse,
    AssignmentSubmissionsResponse,
    CreateAssignmentRequest,
    GradeSubmissionRequest,
    GradeSummaryResponse,
    StudentSubmissionsResponse,
    SubmissionResponse,
    SubmitAssignmentRequest,
)
from .service import AssignmentError


router = APIRouter(prefix="/v1", tags=["assignments"])


# ==============================================================================
# Assignments
# ==============================================================================


@router.post(
    "/courses/{course_id}/assignments",
    response_model=AssignmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create assignment",
)
async def create_assignment(
    data: CreateAssignmentRequest,
    course: OwnedCourse,
    assignment_service: AssignmentServiceDep,
) -> AssignmentResponse:
    assignment = await assignment_service.create_assignment(course.id, data)
    return AssignmentResponse.from_assignment(assignment)


@router.get(
    "/courses/{course_id}/assignments",
    response_model=AssignmentListResponse,
    summary="List course assignments",
)
async def list_course_assignments(
    course: AssignmentCourse,
    assignment_service: AssignmentServiceDep,
) -> AssignmentListResponse:
    """Owner and enrolled students see the assignments, newest first."""
    assignments = await assignment_service.list_course_assignments(course.id)
    items = [AssignmentResponse.from_assignment(a) for a in assignments]
    return AssignmentListResponse(items=items, total=len(items))


# ==============================================================================
# Submissions
# ==============================================================================


@router.post(
    "/assignments/{assignment_id}/submit",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit assignment",
)
async def submit_assignment(
    assignment_id: UUID,
    data: SubmitAssignmentRequest,
    caller: StudentUser,
    assignment_service: AssignmentServiceDep,
) -> SubmissionResponse:
    try:
        submission = await assignment_service.submit(assignment_id, caller.id, data)
    except AssignmentError as e:
        raise handle_assignment_error(e) from e
    return SubmissionResponse.from_submission(submission)


@router.get(
    "/assignments/{assignment_id}/submissions",
    response_model=AssignmentSubmissionsResponse,
    summary="Submissions of an assignment",
)
async def list_assignment_submissions(
    assignment_id: UUID,
    caller: TeacherUser,
    assignment_service: AssignmentServiceDep,
) -> AssignmentSubmissionsResponse:
    try:
        items = await assignment_service.list_assignment_submissions(
            assignment_id, caller
        )
    except AssignmentError as e:
        raise handle_assignment_error(e) from e
    return AssignmentSubmissionsResponse(items=items, total=len(items))


@router.get(
    "/submissions/my",
    response_model=StudentSubmissionsResponse,
    summary="My submissions",
)
async def list_my_submissions(
    caller: StudentUser,
    assignment_service: AssignmentServiceDep,
) -> StudentSubmissionsResponse:
    items = await assignment_service.list_student_submissions(caller.id)
    return StudentSubmissionsResponse(items=items, total=len(items))


# ==============================================================================
# Grading
# ==============================================================================


@router.post(
    "/submissions/{submission_id}/grade",
    response_model=SubmissionResponse,
    summary="Grade submission",
)
async def grade_submission(
    submission_id: UUID,
    data: GradeSubmissionRequest,
    caller: TeacherUser,
    assignment_service: AssignmentServiceDep,
) -> SubmissionResponse:
    try:
        submission = await assignment_service.grade_submission(
            submission_id, caller, data
        )
    except AssignmentError as e:
        raise handle_assignment_error(e) from e
    return SubmissionResponse.from_submission(submission)


@router.get(
    "/grades/my",
    response_model=GradeSummaryResponse,
    summary="My grade summary",
)
async def get_my_grades(
    caller: StudentUser,
    assignment_service: AssignmentServiceDep,
) -> GradeSummaryResponse:
    return await assignment_service.get_student_grades(caller.id)
