"""Storage failure boundary.

Every query issued by the services goes through :func:`execute`, which turns
driver failures (timeouts, unavailable replicas, lost connections) into a
single :class:`StorageError` that the HTTP layer maps to 503.
"""

from collections.abc import Sequence
from typing import Any

import structlog
from cassandra import DriverException
from cassandra.cluster import NoHostAvailable


logger = structlog.get_logger(__name__)


class StorageError(Exception):
    """The store could not complete an operation."""

    def __init__(
        self,
        operation: str,
        message: str = "Storage temporarily unavailable",
    ):
        self.operation = operation
        self.message = message
        self.code = "storage_error"
        super().__init__(message)


async def execute(
    session: Any,
    statement: Any,
    params: Sequence[Any] | None = None,
    *,
    operation: str,
) -> Any:
    """Run a statement with ``session.aexecute``.

    Args:
        session: Cassandra session with aexecute()
        statement: Prepared statement or CQL string
        params: Bound values
        operation: Name logged when the statement fails

    Raises:
        StorageError: If the driver raises
    """
    try:
        if params is None:
            return await session.aexecute(statement)
        return await session.aexecute(statement, params)
    except (DriverException, NoHostAvailable) as e:
        logger.error(
            "storage_operation_failed",
            operation=operation,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise StorageError(operation) from e
