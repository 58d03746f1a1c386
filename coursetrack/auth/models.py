"""Database models for users.

Cassandra has no unique constraint, so email uniqueness is claimed through
``users_by_email`` with a lightweight transaction before the user row is
written.
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from coursetrack.auth.permissions import UserRole
from coursetrack.core.timeutils import ensure_utc_aware, utcnow


USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users (
    id UUID PRIMARY KEY,
    name TEXT,
    email TEXT,
    password_hash TEXT,
    role TEXT,
    is_verified BOOLEAN,
    created_at TIMESTAMP
)
"""

USERS_BY_EMAIL_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users_by_email (
    email TEXT PRIMARY KEY,
    user_id UUID
)
"""

AUTH_TABLES_CQL = [
    USER_TABLE_CQL,
    USERS_BY_EMAIL_TABLE_CQL,
]


class User:
    """User entity.

    Attributes:
        id: Unique identifier
        name: Display name
        email: Unique, lowercased email address
        password_hash: Argon2id hash
        role: student or teacher, fixed at creation
        is_verified: Whether the email address was confirmed
        created_at: Account creation timestamp
    """

    def __init__(
        self,
        id: UUID | None = None,
        name: str = "",
        email: str = "",
        password_hash: str = "",
        role: str = UserRole.STUDENT.value,
        is_verified: bool = False,
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.name = name
        self.email = email.lower().strip()
        self.password_hash = password_hash
        self.role = role
        self.is_verified = is_verified
        self.created_at = ensure_utc_aware(created_at) or utcnow()

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create User instance from Cassandra row."""
        return cls(
            id=row.id,
            name=row.name or "",
            email=row.email or "",
            password_hash=row.password_hash or "",
            role=row.role or UserRole.STUDENT.value,
            is_verified=bool(row.is_verified),
            created_at=row.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary without the password hash."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "is_verified": self.is_verified,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
