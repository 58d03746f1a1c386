"""Tests for assignment endpoints: roles, ownership and error mapping."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest
from conftest import bearer
from fastapi.testclient import TestClient

from coursetrack.assignments.models import Assignment, Submission
from coursetrack.assignments.schemas import GradeSummaryResponse
from coursetrack.assignments.service import (
    AlreadySubmittedError,
    AssignmentAccessError,
    InvalidGradeError,
    SubmissionNotFoundError,
)
from coursetrack.auth.permissions import UserRole
from coursetrack.courses.models import Course
from coursetrack.courses.service import CourseService


@pytest.fixture
def course(teacher_id: UUID) -> Course:
    return Course(title="Graded course", teacher_id=teacher_id, is_published=True)


@pytest.fixture
def assignment(course: Course) -> Assignment:
    return Assignment(course_id=course.id, title="Essay one", max_points=50)


@pytest.fixture
def mock_course_service(course: Course) -> MagicMock:
    service = MagicMock()
    service.is_owner = CourseService.is_owner
    service.get_course = AsyncMock(return_value=course)
    return service


@pytest.fixture
def mock_enrollment_service() -> MagicMock:
    service = MagicMock()
    service.is_enrolled = AsyncMock(return_value=True)
    return service


@pytest.fixture
def mock_assignment_service(assignment: Assignment) -> MagicMock:
    service = MagicMock()

    async def create_assignment(course_id, data):
        return Assignment(
            course_id=course_id,
            title=data.title,
            max_points=data.max_points,
            assignment_type=data.assignment_type.value,
        )

    async def submit(assignment_id, student_id, data):
        return Submission(
            assignment_id, student_id, submission_text=data.submission_text
        )

    async def grade_submission(submission_id, caller, data):
        return Submission(
            assignment.assignment_id,
            uuid4(),
            submission_id=submission_id,
            grade=data.grade,
            feedback=data.feedback,
            graded_by=caller.id,
        )

    service.create_assignment = AsyncMock(side_effect=create_assignment)
    service.list_course_assignments = AsyncMock(return_value=[assignment])
    service.submit = AsyncMock(side_effect=submit)
    service.list_assignment_submissions = AsyncMock(return_value=[])
    service.list_student_submissions = AsyncMock(return_value=[])
    service.grade_submission = AsyncMock(side_effect=grade_submission)
    service.get_student_grades = AsyncMock(
        return_value=GradeSummaryResponse(
            total_assignments=2,
            submitted_assignments=1,
            graded_assignments=1,
            average_grade=30,
            total_possible_points=100,
            total_earned_points=Decimal(30),
            overall_percentage=30,
        )
    )
    return service


@pytest.fixture
def assignment_client(
    mock_course_service, mock_enrollment_service, mock_assignment_service
) -> TestClient:
    from coursetrack.assignments.dependencies import set_assignment_service_getter
    from coursetrack.courses.dependencies import set_course_service_getter
    from coursetrack.main import app
    from coursetrack.progress.dependencies import set_enrollment_service_getter

    set_course_service_getter(lambda: mock_course_service)
    set_enrollment_service_getter(lambda: mock_enrollment_service)
    set_assignment_service_getter(lambda: mock_assignment_service)
    return TestClient(app)


def assignment_body(**kwargs) -> dict:
    body = {"title": "Essay two", "max_points": 20}
    body.update(kwargs)
    return body


class TestCourseAssignments:
    def test_owner_creates(
        self, assignment_client: TestClient, teacher_headers, course
    ) -> None:
        response = assignment_client.post(
            f"/v1/courses/{course.id}/assignments",
            headers=teacher_headers,
            json=assignment_body(assignment_type="exam"),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["course_id"] == str(course.id)
        assert data["assignment_type"] == "exam"
        assert data["max_points"] == 20

    def test_other_teacher_cannot_create(
        self,
        assignment_client: TestClient,
        mock_assignment_service: MagicMock,
        course,
    ) -> None:
        response = assignment_client.post(
            f"/v1/courses/{course.id}/assignments",
            headers=bearer(uuid4(), UserRole.TEACHER),
            json=assignment_body(),
        )

        assert response.status_code == 403
        mock_assignment_service.create_assignment.assert_not_awaited()

    def test_student_cannot_create(
        self, assignment_client: TestClient, student_headers, course
    ) -> None:
        response = assignment_client.post(
            f"/v1/courses/{course.id}/assignments",
            headers=student_headers,
            json=assignment_body(),
        )
        assert response.status_code == 403

    @pytest.mark.parametrize(
        "body", [{"title": "Quiz"}, {"max_points": 0}, {"assignment_type": "poll"}]
    )
    def test_invalid_assignment_is_422(
        self, assignment_client: TestClient, teacher_headers, course, body
    ) -> None:
        response = assignment_client.post(
            f"/v1/courses/{course.id}/assignments",
            headers=teacher_headers,
            json=assignment_body(**body),
        )
        assert response.status_code == 422

    def test_enrolled_student_lists(
        self, assignment_client: TestClient, student_headers, course, assignment
    ) -> None:
        response = assignment_client.get(
            f"/v1/courses/{course.id}/assignments", headers=student_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["id"] == str(assignment.assignment_id)

    def test_not_enrolled_student_is_403(
        self,
        assignment_client: TestClient,
        mock_enrollment_service: MagicMock,
        student_headers,
        course,
    ) -> None:
        mock_enrollment_service.is_enrolled.return_value = False

        response = assignment_client.get(
            f"/v1/courses/{course.id}/assignments", headers=student_headers
        )

        assert response.status_code == 403
        assert response.json()["message"] == (
            "Enroll in this course to access its assignments"
        )


class TestSubmissions:
    def test_student_submits(
        self,
        assignment_client: TestClient,
        student_headers,
        student_id,
        assignment,
    ) -> None:
        response = assignment_client.post(
            f"/v1/assignments/{assignment.assignment_id}/submit",
            headers=student_headers,
            json={"submission_text": "My answer to the essay"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["student_id"] == str(student_id)
        assert data["grade"] is None

    def test_teacher_cannot_submit(
        self, assignment_client: TestClient, teacher_headers, assignment
    ) -> None:
        response = assignment_client.post(
            f"/v1/assignments/{assignment.assignment_id}/submit",
            headers=teacher_headers,
            json={"submission_text": "My answer to the essay"},
        )
        assert response.status_code == 403

    def test_second_submission_is_409(
        self,
        assignment_client: TestClient,
        mock_assignment_service: MagicMock,
        student_headers,
        assignment,
    ) -> None:
        mock_assignment_service.submit.side_effect = AlreadySubmittedError()

        response = assignment_client.post(
            f"/v1/assignments/{assignment.assignment_id}/submit",
            headers=student_headers,
            json={"file_url": "https://files.test/essay.pdf"},
        )

        assert response.status_code == 409
        assert response.json()["message"] == (
            "You have already submitted this assignment"
        )

    def test_not_enrolled_submission_is_403(
        self,
        assignment_client: TestClient,
        mock_assignment_service: MagicMock,
        student_headers,
        assignment,
    ) -> None:
        mock_assignment_service.submit.side_effect = AssignmentAccessError(
            "You must be enrolled in this course to submit assignments"
        )

        response = assignment_client.post(
            f"/v1/assignments/{assignment.assignment_id}/submit",
            headers=student_headers,
            json={},
        )
        assert response.status_code == 403

    def test_short_text_is_422(
        self, assignment_client: TestClient, student_headers, assignment
    ) -> None:
        response = assignment_client.post(
            f"/v1/assignments/{assignment.assignment_id}/submit",
            headers=student_headers,
            json={"submission_text": "short"},
        )
        assert response.status_code == 422

    def test_owner_lists_submissions(
        self,
        assignment_client: TestClient,
        mock_assignment_service: MagicMock,
        teacher_headers,
        teacher_id,
        assignment,
    ) -> None:
        response = assignment_client.get(
            f"/v1/assignments/{assignment.assignment_id}/submissions",
            headers=teacher_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"items": [], "total": 0}
        caller = mock_assignment_service.list_assignment_submissions.await_args.args[1]
        assert caller.id == teacher_id

    def test_other_teacher_listing_is_403(
        self,
        assignment_client: TestClient,
        mock_assignment_service: MagicMock,
        assignment,
    ) -> None:
        mock_assignment_service.list_assignment_submissions.side_effect = (
            AssignmentAccessError(
                "You do not have permission to view submissions for this assignment"
            )
        )

        response = assignment_client.get(
            f"/v1/assignments/{assignment.assignment_id}/submissions",
            headers=bearer(uuid4(), UserRole.TEACHER),
        )
        assert response.status_code == 403

    def test_my_submissions(
        self, assignment_client: TestClient, student_headers
    ) -> None:
        response = assignment_client.get(
            "/v1/submissions/my", headers=student_headers
        )

        assert response.status_code == 200
        assert response.json()["total"] == 0


class TestGrading:
    def test_owner_grades(
        self, assignment_client: TestClient, teacher_headers, teacher_id
    ) -> None:
        submission_id = uuid4()

        response = assignment_client.post(
            f"/v1/submissions/{submission_id}/grade",
            headers=teacher_headers,
            json={"grade": "42.5", "feedback": "Well argued"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == str(submission_id)
        assert Decimal(str(data["grade"])) == Decimal("42.5")
        assert data["graded_by"] == str(teacher_id)

    def test_grade_above_max_is_400(
        self,
        assignment_client: TestClient,
        mock_assignment_service: MagicMock,
        teacher_headers,
    ) -> None:
        mock_assignment_service.grade_submission.side_effect = InvalidGradeError(
            "Grade cannot exceed maximum points (50)"
        )

        response = assignment_client.post(
            f"/v1/submissions/{uuid4()}/grade",
            headers=teacher_headers,
            json={"grade": 51},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Grade cannot exceed maximum points (50)"

    def test_unknown_submission_is_404(
        self,
        assignment_client: TestClient,
        mock_assignment_service: MagicMock,
        teacher_headers,
    ) -> None:
        mock_assignment_service.grade_submission.side_effect = (
            SubmissionNotFoundError()
        )

        response = assignment_client.post(
            f"/v1/submissions/{uuid4()}/grade",
            headers=teacher_headers,
            json={"grade": 1},
        )
        assert response.status_code == 404

    def test_negative_grade_is_422(
        self, assignment_client: TestClient, teacher_headers
    ) -> None:
        response = assignment_client.post(
            f"/v1/submissions/{uuid4()}/grade",
            headers=teacher_headers,
            json={"grade": -1},
        )
        assert response.status_code == 422

    def test_student_cannot_grade(
        self, assignment_client: TestClient, student_headers
    ) -> None:
        response = assignment_client.post(
            f"/v1/submissions/{uuid4()}/grade",
            headers=student_headers,
            json={"grade": 10},
        )
        assert response.status_code == 403

    def test_my_grades(self, assignment_client: TestClient, student_headers) -> None:
        response = assignment_client.get("/v1/grades/my", headers=student_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["overall_percentage"] == 30
        assert data["total_possible_points"] == 100
