"""Async Cassandra connection using cassandra-asyncio-driver.

The driver's ``Cluster`` returns sessions with an ``aexecute()`` coroutine.
Every statement runs under a single default execution profile whose
consistency level comes from ``MODERATION_READ_CONSISTENCY``; the same level
for reads and writes is what makes a completed delete visible to the next
aggregation read.
"""

import structlog
from cassandra import ConsistencyLevel
from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import EXEC_PROFILE_DEFAULT, ExecutionProfile
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from src.config.settings import Settings, get_settings
from src.moderation.models import MODERATION_TABLES_CQL


logger = structlog.get_logger(__name__)


def build_execution_profile(settings: Settings) -> ExecutionProfile:
    """Default profile: token-aware routing at the moderation consistency level."""
    return ExecutionProfile(
        load_balancing_policy=TokenAwarePolicy(
            DCAwareRoundRobinPolicy(local_dc=settings.cassandra_local_dc or "")
        ),
        consistency_level=ConsistencyLevel.name_to_value[
            settings.moderation_read_consistency
        ],
        request_timeout=settings.cassandra_request_timeout,
    )


def replication_options(settings: Settings) -> str:
    """CQL replication map for the keyspace."""
    factor = settings.cassandra_replication_factor
    if settings.cassandra_local_dc:
        return (
            "{'class': 'NetworkTopologyStrategy', "
            f"'{settings.cassandra_local_dc}': {factor}}}"
        )
    return f"{{'class': 'SimpleStrategy', 'replication_factor': {factor}}}"


class AsyncCassandraConnection:
    """Process-wide cluster and session holder."""

    _cluster: Cluster | None = None
    _session = None  # cassandra_asyncio session

    @classmethod
    def connect(cls):
        """Connect to the cluster, reusing an open session.

        Raises:
            ConnectionError: If no contact point could be reached
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
            execution_profiles={EXEC_PROFILE_DEFAULT: build_execution_profile(settings)},
            connect_timeout=settings.cassandra_connect_timeout,
        )

        try:
            cls._session = cls._cluster.connect()
        except Exception as e:
            logger.error("cassandra_connection_failed", error=str(e))
            cls._cluster.shutdown()
            cls._cluster = None
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        logger.info(
            "cassandra_connected",
            hosts=settings.cassandra_hosts,
            local_dc=settings.cassandra_local_dc,
            consistency=settings.moderation_read_consistency,
        )
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


async def init_async_keyspace(session, settings: Settings) -> None:
    """Create the keyspace if it does not exist."""
    await session.aexecute(
        f"CREATE KEYSPACE IF NOT EXISTS {settings.cassandra_keyspace} "
        f"WITH replication = {replication_options(settings)} "
        "AND durable_writes = true"
    )
    logger.info("keyspace_ready", keyspace=settings.cassandra_keyspace)


async def init_async_moderation_tables(session, keyspace: str) -> None:
    """Create the comments and comment_reports tables if missing."""
    for cql_template in MODERATION_TABLES_CQL:
        await session.aexecute(cql_template.format(keyspace=keyspace))
    logger.info("moderation_tables_ready", keyspace=keyspace)


async def init_async_cassandra():
    """Connect and bootstrap the schema.

    Returns:
        Session with aexecute() support, bound to the moderation keyspace
    """
    settings = get_settings()

    session = AsyncCassandraConnection.connect()
    await init_async_keyspace(session, settings)
    session.set_keyspace(settings.cassandra_keyspace)
    await init_async_moderation_tables(session, settings.cassandra_keyspace)
    return session


async def shutdown_async_cassandra() -> None:
    AsyncCassandraConnection.disconnect()
