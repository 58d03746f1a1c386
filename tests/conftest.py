"""Shared fixtures: mocked Cassandra sessions, rows and bearer tokens."""

from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest
from cassandra.cluster import Session
from fastapi.testclient import TestClient

from coursetrack.auth.permissions import UserRole
from coursetrack.auth.security import create_access_token


def make_session() -> Mock:
    """Mock session whose prepared statements are their CQL text.

    Tests can then look up what was executed by matching on the query.
    """
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda cql: cql)
    session.aexecute = AsyncMock(return_value=result([]))
    return session


def result(rows: list[Any], was_applied: bool = True) -> Mock:
    """Result set: iterable over ``rows`` with ``one()`` and ``was_applied``."""
    res = Mock()
    res.__iter__ = Mock(side_effect=lambda: iter(rows))
    res.one = Mock(return_value=rows[0] if rows else None)
    res.was_applied = was_applied
    return res


def row(entity: Any) -> SimpleNamespace:
    """Cassandra-like row built from an entity's columns."""
    return SimpleNamespace(**entity.to_dict())


def answering(responses: dict[str, Mock]):
    """``aexecute`` side effect returning the result of the first matching fragment.

    Statements matching no fragment get an empty result.
    """

    async def aexecute(statement, *args):
        text = " ".join(statement.split())
        for fragment, res in responses.items():
            if fragment in text:
                return res
        return result([])

    return aexecute


def executed(session: Mock, fragment: str) -> list[list[Any]]:
    """Bound values of every executed statement containing ``fragment``."""
    calls = []
    for call in session.aexecute.await_args_list:
        statement = call.args[0]
        if fragment in " ".join(statement.split()):
            calls.append(call.args[1] if len(call.args) > 1 else [])
    return calls


def bearer(caller_id: UUID, role: UserRole) -> dict[str, str]:
    token = create_access_token(
        {"sub": str(caller_id), "email": f"{role.value}@test.com", "role": role.value}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def session() -> Mock:
    return make_session()


@pytest.fixture
def student_id() -> UUID:
    return uuid4()


@pytest.fixture
def teacher_id() -> UUID:
    return uuid4()


@pytest.fixture
def student_headers(student_id: UUID) -> dict[str, str]:
    return bearer(student_id, UserRole.STUDENT)


@pytest.fixture
def teacher_headers(teacher_id: UUID) -> dict[str, str]:
    return bearer(teacher_id, UserRole.TEACHER)


@pytest.fixture
def client() -> TestClient:
    """Client without lifespan, so no database connection is attempted."""
    from coursetrack.main import app

    return TestClient(app)
