"""User service layer.

Users are created with a role that never changes afterwards; there is no
operation that rewrites ``role``.
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from coursetrack.auth.models import User
from coursetrack.auth.schemas import CreateUserRequest
from coursetrack.auth.security import hash_password
from coursetrack.core.database import execute


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class UserError(Exception):
    """Base user error."""

    def __init__(self, message: str, code: str = "user_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class UserExistsError(UserError):
    """Email already registered."""

    def __init__(self, message: str = "Email already registered"):
        super().__init__(message, "user_exists")


class UserNotFoundError(UserError):
    """User not found."""

    def __init__(self, message: str = "User not found"):
        super().__init__(message, "user_not_found")


# ==============================================================================
# User Service
# ==============================================================================


class UserService:
    """Service for user storage."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._get_user = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE id = ?"
        )
        self._get_user_id_by_email = self.session.prepare(
            f"SELECT user_id FROM {self.keyspace}.users_by_email WHERE email = ?"
        )
        self._claim_email = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users_by_email (email, user_id)
            VALUES (?, ?)
            IF NOT EXISTS
        """)
        self._insert_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users
            (id, name, email, password_hash, role, is_verified, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._reclaim_email = self.session.prepare(f"""
            UPDATE {self.keyspace}.users_by_email SET user_id = ?
            WHERE email = ?
            IF user_id = ?
        """)

    async def create_user(self, data: CreateUserRequest) -> User:
        """Create a user with a unique email.

        A claim whose user row was never written (the insert after the claim
        failed) is taken over, so the email does not stay blocked.

        Raises:
            UserExistsError: If the email is already claimed by a user
        """
        user = User(
            name=data.name,
            email=data.email,
            password_hash=hash_password(data.password),
            role=data.role.value,
            is_verified=False,
        )

        result = await execute(
            self.session,
            self._claim_email,
            [user.email, user.id],
            operation="claim_email",
        )
        if not result.was_applied and not await self._take_over_orphaned_claim(user):
            raise UserExistsError

        await execute(
            self.session,
            self._insert_user,
            [
                user.id,
                user.name,
                user.email,
                user.password_hash,
                user.role,
                user.is_verified,
                user.created_at,
            ],
            operation="insert_user",
        )

        logger.info("user_created", user_id=str(user.id), role=user.role)
        return user

    async def get_user(self, user_id: UUID) -> User | None:
        result = await execute(
            self.session, self._get_user, [user_id], operation="get_user"
        )
        row = result.one()
        return User.from_row(row) if row else None

    async def get_user_by_email(self, email: str) -> User | None:
        result = await execute(
            self.session,
            self._get_user_id_by_email,
            [email.lower().strip()],
            operation="get_user_by_email",
        )
        row = result.one()
        if not row:
            return None
        return await self.get_user(row.user_id)

    async def _take_over_orphaned_claim(self, user: User) -> bool:
        """Point an email claim with no user row at ``user``.

        The takeover is conditional on the stale ``user_id`` so two
        registrations repairing the same claim cannot both win.
        """
        result = await execute(
            self.session,
            self._get_user_id_by_email,
            [user.email],
            operation="get_email_claim",
        )
        claim = result.one()
        if not claim or await self.get_user(claim.user_id):
            return False

        result = await execute(
            self.session,
            self._reclaim_email,
            [user.id, user.email, claim.user_id],
            operation="reclaim_email",
        )
        if result.was_applied:
            logger.warning(
                "orphaned_email_claim_replaced",
                user_id=str(user.id),
                stale_user_id=str(claim.user_id),
            )
        return result.was_applied
