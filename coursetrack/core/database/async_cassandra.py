"""Cassandra connection and schema bootstrap.

The session comes from cassandra-asyncio-driver, which adds
``session.aexecute()`` on top of the regular cassandra-driver session.
"""

import structlog
from cassandra.auth import PlainTextAuthProvider
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from coursetrack.assignments.models import ASSIGNMENTS_TABLES_CQL
from coursetrack.auth.models import AUTH_TABLES_CQL
from coursetrack.config.settings import get_settings
from coursetrack.courses.models import COURSES_TABLES_CQL
from coursetrack.forum.models import FORUM_TABLES_CQL
from coursetrack.notifications.models import NOTIFICATIONS_TABLES_CQL
from coursetrack.progress.models import PROGRESS_TABLES_CQL


logger = structlog.get_logger(__name__)

# Ordered so lookups exist before anything reads them
SCHEMA = (
    ("auth", AUTH_TABLES_CQL),
    ("courses", COURSES_TABLES_CQL),
    ("progress", PROGRESS_TABLES_CQL),
    ("assignments", ASSIGNMENTS_TABLES_CQL),
    ("notifications", NOTIFICATIONS_TABLES_CQL),
    ("forum", FORUM_TABLES_CQL),
)


class AsyncCassandraConnection:
    """Process-wide cluster and session holder."""

    _cluster: Cluster | None = None
    _session = None

    @classmethod
    def connect(cls):
        """Connect to the cluster, reusing the open session if any.

        Raises:
            ConnectionError: If no host can be reached
        """
        if cls._session is not None:
            return cls._session

        settings = get_settings()

        auth_provider = None
        if settings.cassandra_username and settings.cassandra_password:
            auth_provider = PlainTextAuthProvider(
                username=settings.cassandra_username,
                password=settings.cassandra_password,
            )

        cls._cluster = Cluster(
            contact_points=settings.cassandra_hosts,
            port=settings.cassandra_port,
            auth_provider=auth_provider,
            protocol_version=settings.cassandra_protocol_version,
            load_balancing_policy=TokenAwarePolicy(DCAwareRoundRobinPolicy()),
            connect_timeout=settings.cassandra_connect_timeout,
        )

        try:
            cls._session = cls._cluster.connect()
        except Exception as e:
            logger.error("cassandra_connection_failed", error=str(e))
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        cls._session.default_timeout = settings.cassandra_request_timeout
        logger.info(
            "cassandra_connected",
            hosts=settings.cassandra_hosts,
            port=settings.cassandra_port,
        )
        return cls._session

    @classmethod
    def get_session(cls):
        if cls._session is None:
            return cls.connect()
        return cls._session

    @classmethod
    def disconnect(cls) -> None:
        if cls._session is not None:
            cls._session.shutdown()
            cls._session = None
        if cls._cluster is not None:
            cls._cluster.shutdown()
            cls._cluster = None
        logger.info("cassandra_disconnected")

    @classmethod
    def is_connected(cls) -> bool:
        return cls._session is not None and not cls._session.is_shutdown


def keyspace_cql(keyspace: str, production: bool, replication_factor: int) -> str:
    """Build the CREATE KEYSPACE statement for the environment."""
    if production:
        replication = (
            f"'class': 'NetworkTopologyStrategy', 'datacenter1': {replication_factor}"
        )
    else:
        replication = "'class': 'SimpleStrategy', 'replication_factor': 1"
    return (
        f"CREATE KEYSPACE IF NOT EXISTS {keyspace} "
        f"WITH replication = {{{replication}}} AND durable_writes = true"
    )


async def init_schema(session, keyspace: str) -> None:
    """Create every table of the application inside ``keyspace``."""
    for name, statements in SCHEMA:
        for cql_template in statements:
            await session.aexecute(cql_template.format(keyspace=keyspace))
        logger.info("tables_created", group=name, keyspace=keyspace)


async def init_async_cassandra():
    """Connect, create keyspace and tables, and return the session."""
    settings = get_settings()
    session = AsyncCassandraConnection.connect()

    await session.aexecute(
        keyspace_cql(
            settings.cassandra_keyspace,
            settings.is_production,
            settings.cassandra_replication_factor,
        )
    )
    session.set_keyspace(settings.cassandra_keyspace)
    await init_schema(session, settings.cassandra_keyspace)

    logger.info("cassandra_initialized", keyspace=settings.cassandra_keyspace)
    return session


async def shutdown_async_cassandra() -> None:
    AsyncCassandraConnection.disconnect()
