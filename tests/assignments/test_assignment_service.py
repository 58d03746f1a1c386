"""Tests for AssignmentService: submissions, grading and grade summaries."""

from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest
from conftest import answering, executed, result, row

from coursetrack.assignments.models import Assignment, Submission
from coursetrack.assignments.schemas import (
    CreateAssignmentRequest,
    GradeSubmissionRequest,
    SubmitAssignmentRequest,
)
from coursetrack.assignments.service import (
    AlreadySubmittedError,
    AssignmentAccessError,
    AssignmentNotFoundError,
    AssignmentService,
    InvalidGradeError,
    SubmissionNotFoundError,
    summarize_grades,
)
from coursetrack.auth.models import User
from coursetrack.auth.permissions import UserRole
from coursetrack.auth.schemas import AuthenticatedCaller
from coursetrack.core.timeutils import utcnow
from coursetrack.courses.models import Course
from coursetrack.courses.service import CourseService
from coursetrack.progress.models import Enrollment


GET_ASSIGNMENT_KEY = "assignments_by_id WHERE"
GET_ASSIGNMENT = "assignments WHERE course_id = ? AND"
GET_SUBMISSION = "submissions WHERE assignment_id = ? AND"
GET_SUBMISSION_KEY = "submissions_by_id WHERE"
INSERT_SUBMISSION = "IF NOT EXISTS"
GRADE = "UPDATE test_keyspace.submissions"


@pytest.fixture
def course(teacher_id: UUID) -> Course:
    return Course(title="Course", teacher_id=teacher_id, is_published=True)


@pytest.fixture
def assignment(course: Course) -> Assignment:
    return Assignment(course_id=course.id, title="Essay one", max_points=50)


@pytest.fixture
def teacher(teacher_id: UUID) -> AuthenticatedCaller:
    return AuthenticatedCaller(
        id=teacher_id, email="teacher@test.com", role=UserRole.TEACHER
    )


@pytest.fixture
def course_service(course: Course) -> Mock:
    service = Mock()
    service.is_owner = CourseService.is_owner
    service.get_course = AsyncMock(return_value=course)
    return service


@pytest.fixture
def enrollment_service() -> Mock:
    service = Mock()
    service.is_enrolled = AsyncMock(return_value=True)
    service.list_student_enrollments = AsyncMock(return_value=[])
    return service


@pytest.fixture
def user_service() -> Mock:
    service = Mock()
    service.get_user = AsyncMock(return_value=None)
    return service


@pytest.fixture
def assignment_service(
    session: Mock, course_service, user_service, enrollment_service
) -> AssignmentService:
    return AssignmentService(
        session=session,
        keyspace="test_keyspace",
        course_service=course_service,
        user_service=user_service,
        enrollment_service=enrollment_service,
    )


def stored_assignment(assignment: Assignment) -> dict[str, Mock]:
    return {
        GET_ASSIGNMENT_KEY: result([SimpleNamespace(course_id=assignment.course_id)]),
        GET_ASSIGNMENT: result([row(assignment)]),
    }


def stored_submission(submission: Submission) -> dict[str, Mock]:
    return {
        GET_SUBMISSION_KEY: result(
            [
                SimpleNamespace(
                    assignment_id=submission.assignment_id,
                    student_id=submission.student_id,
                )
            ]
        ),
        GET_SUBMISSION: result([row(submission)]),
    }


class TestSummarizeGrades:
    def test_nothing_to_grade(self) -> None:
        summary = summarize_grades([])

        assert summary.total_assignments == 0
        assert summary.average_grade == 0
        assert summary.overall_percentage == 0
        assert summary.total_earned_points == 0

    def test_possible_points_include_unsubmitted_work(self) -> None:
        course_id, student_id = uuid4(), uuid4()
        graded = Assignment(course_id=course_id, title="Graded", max_points=100)
        pending = Assignment(course_id=course_id, title="Pending", max_points=50)
        missing = Assignment(course_id=course_id, title="Missing", max_points=50)
        work = [
            (graded, Submission(graded.assignment_id, student_id, grade=Decimal(80))),
            (pending, Submission(pending.assignment_id, student_id)),
            (missing, None),
        ]

        summary = summarize_grades(work)

        assert summary.total_assignments == 3
        assert summary.submitted_assignments == 2
        assert summary.graded_assignments == 1
        assert summary.total_possible_points == 200
        assert summary.total_earned_points == Decimal(80)
        assert summary.average_grade == 80
        assert summary.overall_percentage == 40

    def test_averages_round_half_up(self) -> None:
        course_id, student_id = uuid4(), uuid4()
        work = []
        for grade in (85, 90):
            assignment = Assignment(course_id=course_id, title="Quiz", max_points=100)
            work.append(
                (
                    assignment,
                    Submission(
                        assignment.assignment_id, student_id, grade=Decimal(grade)
                    ),
                )
            )

        summary = summarize_grades(work)

        assert summary.average_grade == 88
        assert summary.overall_percentage == 88

    def test_zero_grade_counts_as_graded(self) -> None:
        assignment = Assignment(course_id=uuid4(), title="Quiz", max_points=10)
        submission = Submission(assignment.assignment_id, uuid4(), grade=Decimal(0))

        summary = summarize_grades([(assignment, submission)])

        assert summary.graded_assignments == 1
        assert summary.overall_percentage == 0


class TestAssignments:
    @pytest.mark.asyncio
    async def test_create_writes_lookup_first(
        self, assignment_service: AssignmentService, session: Mock, course
    ) -> None:
        created = await assignment_service.create_assignment(
            course.id,
            CreateAssignmentRequest(title="  Lab report ", max_points=20,
                                    assignment_type="quiz"),
        )

        assert created.title == "Lab report"
        assert created.assignment_type == "quiz"
        first = session.aexecute.await_args_list[0].args
        assert "assignments_by_id" in first[0]
        assert first[1] == [created.assignment_id, course.id]
        assert len(executed(session, "INSERT INTO test_keyspace.assignments (")) == 1

    @pytest.mark.asyncio
    async def test_unknown_assignment(
        self, assignment_service: AssignmentService
    ) -> None:
        assert await assignment_service.get_assignment(uuid4()) is None
        with pytest.raises(AssignmentNotFoundError):
            await assignment_service.require_assignment(uuid4())

    @pytest.mark.asyncio
    async def test_list_newest_first(
        self, assignment_service: AssignmentService, session: Mock, course
    ) -> None:
        now = utcnow()
        older = Assignment(course_id=course.id, title="Older",
                           created_at=now - timedelta(days=2))
        newer = Assignment(course_id=course.id, title="Newer", created_at=now)
        session.aexecute.return_value = result([row(older), row(newer)])

        listed = await assignment_service.list_course_assignments(course.id)

        assert [a.title for a in listed] == ["Newer", "Older"]

    def test_title_minimum(self) -> None:
        with pytest.raises(ValueError):
            CreateAssignmentRequest(title=" Quiz ", max_points=10)

    def test_max_points_required_positive(self) -> None:
        with pytest.raises(ValueError):
            CreateAssignmentRequest(title="Final exam", max_points=0)


class TestSubmit:
    @pytest.mark.asyncio
    async def test_submission_is_indexed(
        self,
        assignment_service: AssignmentService,
        session: Mock,
        assignment,
        student_id,
    ) -> None:
        session.aexecute.side_effect = answering(stored_assignment(assignment))

        submission = await assignment_service.submit(
            assignment.assignment_id,
            student_id,
            SubmitAssignmentRequest(file_url="https://files.test/essay.pdf"),
        )

        assert submission.submission_text is None
        assert executed(session, "INSERT INTO test_keyspace.submissions_by_id") == [
            [submission.submission_id, assignment.assignment_id, student_id]
        ]
        assert executed(
            session, "INSERT INTO test_keyspace.submissions_by_student"
        ) == [[student_id, assignment.assignment_id, assignment.course_id,
               submission.submission_id]]

    @pytest.mark.asyncio
    async def test_not_enrolled_rejected(
        self,
        assignment_service: AssignmentService,
        enrollment_service: Mock,
        session: Mock,
        assignment,
        student_id,
    ) -> None:
        enrollment_service.is_enrolled.return_value = False
        session.aexecute.side_effect = answering(stored_assignment(assignment))

        with pytest.raises(AssignmentAccessError) as exc_info:
            await assignment_service.submit(
                assignment.assignment_id, student_id, SubmitAssignmentRequest()
            )

        assert exc_info.value.message == (
            "You must be enrolled in this course to submit assignments"
        )
        assert executed(session, INSERT_SUBMISSION) == []

    @pytest.mark.asyncio
    async def test_unknown_assignment_rejected(
        self, assignment_service: AssignmentService, student_id
    ) -> None:
        with pytest.raises(AssignmentNotFoundError):
            await assignment_service.submit(
                uuid4(), student_id, SubmitAssignmentRequest()
            )

    @pytest.mark.asyncio
    async def test_second_submission_rejected_and_reindexed(
        self,
        assignment_service: AssignmentService,
        session: Mock,
        assignment,
        student_id,
    ) -> None:
        existing = Submission(
            assignment.assignment_id, student_id, submission_text="First answer here"
        )
        session.aexecute.side_effect = answering(
            {
                **stored_assignment(assignment),
                INSERT_SUBMISSION: result([], was_applied=False),
                GET_SUBMISSION: result([row(existing)]),
            }
        )

        with pytest.raises(AlreadySubmittedError):
            await assignment_service.submit(
                assignment.assignment_id,
                student_id,
                SubmitAssignmentRequest(submission_text="Second answer here"),
            )

        assert executed(session, "INSERT INTO test_keyspace.submissions_by_id") == [
            [existing.submission_id, assignment.assignment_id, student_id]
        ]

    def test_short_text_rejected(self) -> None:
        with pytest.raises(ValueError):
            SubmitAssignmentRequest(submission_text="  too short ")


class TestGrading:
    @pytest.fixture
    def submission(self, assignment: Assignment, student_id: UUID) -> Submission:
        return Submission(
            assignment.assignment_id, student_id, submission_text="My essay text"
        )

    @pytest.fixture
    def stored(self, session: Mock, assignment, submission) -> None:
        session.aexecute.side_effect = answering(
            {**stored_assignment(assignment), **stored_submission(submission)}
        )

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("stored")
    async def test_owner_grades(
        self,
        assignment_service: AssignmentService,
        session: Mock,
        submission,
        teacher,
    ) -> None:
        graded = await assignment_service.grade_submission(
            submission.submission_id,
            teacher,
            GradeSubmissionRequest(grade=Decimal("42.5"), feedback="Good"),
        )

        assert graded.is_graded
        assert graded.graded_by == teacher.id
        assert executed(session, GRADE) == [
            [Decimal("42.5"), "Good", graded.graded_at, teacher.id,
             submission.assignment_id, submission.student_id]
        ]

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("stored")
    async def test_grade_above_max_points(
        self,
        assignment_service: AssignmentService,
        session: Mock,
        submission,
        teacher,
    ) -> None:
        with pytest.raises(InvalidGradeError) as exc_info:
            await assignment_service.grade_submission(
                submission.submission_id, teacher, GradeSubmissionRequest(grade=51)
            )

        assert exc_info.value.message == "Grade cannot exceed maximum points (50)"
        assert executed(session, GRADE) == []

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("stored")
    async def test_max_points_is_allowed(
        self, assignment_service: AssignmentService, submission, teacher
    ) -> None:
        graded = await assignment_service.grade_submission(
            submission.submission_id, teacher, GradeSubmissionRequest(grade=50)
        )
        assert graded.grade == Decimal(50)

    @pytest.mark.asyncio
    @pytest.mark.usefixtures("stored")
    async def test_other_teacher_cannot_grade(
        self, assignment_service: AssignmentService, session: Mock, submission
    ) -> None:
        stranger = AuthenticatedCaller(
            id=uuid4(), email="other@test.com", role=UserRole.TEACHER
        )

        with pytest.raises(AssignmentAccessError) as exc_info:
            await assignment_service.grade_submission(
                submission.submission_id, stranger, GradeSubmissionRequest(grade=10)
            )

        assert exc_info.value.message == (
            "You do not have permission to grade submissions for this assignment"
        )
        assert executed(session, GRADE) == []

    @pytest.mark.asyncio
    async def test_unknown_submission(
        self, assignment_service: AssignmentService, teacher
    ) -> None:
        with pytest.raises(SubmissionNotFoundError):
            await assignment_service.grade_submission(
                uuid4(), teacher, GradeSubmissionRequest(grade=1)
            )

    def test_negative_grade_rejected(self) -> None:
        with pytest.raises(ValueError):
            GradeSubmissionRequest(grade=-1)


class TestSubmissionLists:
    @pytest.mark.asyncio
    async def test_owner_sees_students_newest_first(
        self,
        assignment_service: AssignmentService,
        user_service: Mock,
        session: Mock,
        assignment,
        teacher,
    ) -> None:
        now = utcnow()
        first = Submission(assignment.assignment_id, uuid4(),
                           submitted_at=now - timedelta(hours=3))
        latest = Submission(assignment.assignment_id, uuid4(), submitted_at=now)
        user_service.get_user.side_effect = lambda user_id: User(
            id=user_id, name=f"Student {user_id == latest.student_id}",
            email="s@test.com",
        )
        session.aexecute.side_effect = answering(
            {
                **stored_assignment(assignment),
                "submissions WHERE assignment_id = ?": result(
                    [row(first), row(latest)]
                ),
            }
        )

        entries = await assignment_service.list_assignment_submissions(
            assignment.assignment_id, teacher
        )

        assert [e.id for e in entries] == [latest.submission_id, first.submission_id]
        assert entries[0].student_name == "Student True"
        assert entries[0].student_email == "s@test.com"

    @pytest.mark.asyncio
    async def test_student_cannot_list(
        self, assignment_service: AssignmentService, session: Mock, assignment
    ) -> None:
        session.aexecute.side_effect = answering(stored_assignment(assignment))
        student = AuthenticatedCaller(
            id=uuid4(), email="s@test.com", role=UserRole.STUDENT
        )

        with pytest.raises(AssignmentAccessError):
            await assignment_service.list_assignment_submissions(
                assignment.assignment_id, student
            )

    @pytest.mark.asyncio
    async def test_my_submissions_with_course_details(
        self,
        assignment_service: AssignmentService,
        session: Mock,
        assignment,
        course,
        student_id,
    ) -> None:
        submission = Submission(assignment.assignment_id, student_id,
                                grade=Decimal(30))
        session.aexecute.side_effect = answering(
            {
                **stored_assignment(assignment),
                **stored_submission(submission),
                "submissions_by_student WHERE": result(
                    [SimpleNamespace(assignment_id=assignment.assignment_id)]
                ),
            }
        )

        entries = await assignment_service.list_student_submissions(student_id)

        assert len(entries) == 1
        assert entries[0].assignment_title == "Essay one"
        assert entries[0].max_points == 50
        assert entries[0].course_title == "Course"
        assert entries[0].grade == Decimal(30)

    @pytest.mark.asyncio
    async def test_my_submissions_skip_deleted_course(
        self,
        assignment_service: AssignmentService,
        course_service: Mock,
        session: Mock,
        assignment,
        student_id,
    ) -> None:
        course_service.get_course.return_value = None
        submission = Submission(assignment.assignment_id, student_id)
        session.aexecute.side_effect = answering(
            {
                **stored_assignment(assignment),
                **stored_submission(submission),
                "submissions_by_student WHERE": result(
                    [SimpleNamespace(assignment_id=assignment.assignment_id)]
                ),
            }
        )

        assert await assignment_service.list_student_submissions(student_id) == []


@pytest.mark.asyncio
async def test_student_grades_cover_enrolled_courses(
    assignment_service: AssignmentService,
    enrollment_service: Mock,
    session: Mock,
    course,
    student_id,
) -> None:
    graded = Assignment(course_id=course.id, title="Graded", max_points=40)
    open_work = Assignment(course_id=course.id, title="Open", max_points=60)
    submissions = {
        graded.assignment_id: Submission(
            graded.assignment_id, student_id, grade=Decimal(30)
        )
    }
    enrollment_service.list_student_enrollments.return_value = [
        Enrollment(course_id=course.id, student_id=student_id)
    ]

    async def aexecute(statement, params=None):
        text = " ".join(statement.split())
        if "assignments WHERE course_id = ?" in text:
            return result([row(graded), row(open_work)])
        if GET_SUBMISSION in text:
            found = submissions.get(params[0])
            return result([row(found)] if found else [])
        return result([])

    session.aexecute.side_effect = aexecute

    summary = await assignment_service.get_student_grades(student_id)

    assert summary.total_assignments == 2
    assert summary.submitted_assignments == 1
    assert summary.total_possible_points == 100
    assert summary.average_grade == 30
    assert summary.overall_percentage == 30
