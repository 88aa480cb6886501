import logging

from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import Cluster, ExecutionProfile, EXEC_PROFILE_DEFAULT
from cassandra.policies import WhiteListRoundRobinPolicy
from cassandra.query import dict_factory

from .client import SchemaClient
from .exceptions import CassandraConnectionError

logger = logging.getLogger(__name__)

DEFAULT_SERVER = 'localhost:9042'
DEFAULT_PORT = 9042
DEFAULT_SEND_TIMEOUT = 15000
DEFAULT_RECV_TIMEOUT = 15000


def parse_server(server):
    """
    Splits a 'host:port' string. The port defaults to 9042.

    IPv6 addresses must be bracketed when a port is given ('[::1]:9042').
    """
    server = (server or DEFAULT_SERVER).strip()
    if server.startswith('['):
        host, _, rest = server[1:].partition(']')
        port = rest.lstrip(':')
    elif server.count(':') == 1:
        host, _, port = server.partition(':')
    else:
        host, port = server, ''

    if not host:
        raise CassandraConnectionError(f"Invalid server address: {server!r}")
    if not port:
        return host, DEFAULT_PORT
    if not port.isdigit():
        raise CassandraConnectionError(f"Invalid port in server address: {server!r}")
    return host, int(port)


class ConnectionWrapper:
    """
    Owns the driver Cluster/Session for one node and the SchemaClient on top.

    Every request is routed to the configured node only, so reads of
    system.local and system.peers always come from the same coordinator.
    The driver's built-in schema agreement wait is switched off; callers
    do their own waiting.

    Timeouts are given in milliseconds: ``send_timeout`` bounds connection
    setup and ``recv_timeout`` bounds each request.
    """

    def __init__(self, keyspace, server=DEFAULT_SERVER, credentials=None,
                 send_timeout=DEFAULT_SEND_TIMEOUT, recv_timeout=DEFAULT_RECV_TIMEOUT):
        self.keyspace = keyspace
        self.server = server
        self.host, self.port = parse_server(server)
        self.credentials = credentials
        self.send_timeout = send_timeout
        self.recv_timeout = recv_timeout
        self.cluster = None
        self.session = None
        self.client = None
        self.connect()

    def connect(self):
        """Opens the connection, authenticating when credentials are set."""
        try:
            auth_provider = None
            if self.credentials:
                auth_provider = PlainTextAuthProvider(
                    username=self.credentials.get('username'),
                    password=self.credentials.get('password')
                )

            execution_profiles = {
                EXEC_PROFILE_DEFAULT: ExecutionProfile(
                    load_balancing_policy=WhiteListRoundRobinPolicy([self.host]),
                    request_timeout=self.recv_timeout / 1000.0,
                    row_factory=dict_factory
                )
            }

            self.cluster = Cluster(
                contact_points=[self.host],
                port=self.port,
                auth_provider=auth_provider,
                execution_profiles=execution_profiles,
                connect_timeout=self.send_timeout / 1000.0,
                control_connection_timeout=self.send_timeout / 1000.0,
                max_schema_agreement_wait=0
            )

            if self.keyspace:
                self.session = self.cluster.connect(self.keyspace)
            else:
                self.session = self.cluster.connect()

        except Exception as e:
            logger.error(f"Failed to connect to Cassandra at {self.host}:{self.port}: {e}")
            self.close()
            raise CassandraConnectionError(f"Could not connect to Cassandra at {self.server}: {e}") from e

        self.client = SchemaClient(self.cluster, self.session, self.host)
        logger.info(f"✅ Connected to Cassandra node {self.host}:{self.port}")

    def close(self):
        """Shuts down the driver cluster. Safe to call more than once."""
        if self.cluster:
            try:
                self.cluster.shutdown()
                logger.info(f"Disconnected from Cassandra node {self.host}:{self.port}")
            except Exception as e:
                logger.warning(f"Error during disconnect: {e}")
            finally:
                self.cluster = None
                self.session = None
                self.client = None
