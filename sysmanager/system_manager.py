import logging
from functools import wraps

from .agreement import DEFAULT_AGREEMENT_TIMEOUT, DEFAULT_POLL_INTERVAL, SchemaAgreementWaiter
from .config import apply_defaults
from .connector import (
    DEFAULT_RECV_TIMEOUT,
    DEFAULT_SEND_TIMEOUT,
    DEFAULT_SERVER,
    ConnectionWrapper,
)
from .definitions import parse_keyspace_attributes, require_identifier
from .exceptions import InvalidStateError
from .utils.keyspace_filter import KeyspaceFilter

logger = logging.getLogger(__name__)


def _requires_open(func):
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        if self.client is None:
            raise InvalidStateError(f"{func.__name__}() called on a closed SystemManager")
        return func(self, *args, **kwargs)
    return wrapper


class SystemManager:
    """
    Makes schema changes and reports on the state and configuration of
    the cluster.

    Every operation that changes a keyspace or column family blocks until
    all nodes report the same schema version (see wait_for_schema_agreement).
    Introspection calls are forwarded to the server as-is.

    Keyspace alterations are read-modify-write with no server-side
    compare-and-swap: a concurrent alteration by another client between
    the read and the write is lost.

    Example:
        with SystemManager('10.0.0.1:9042', agreement_timeout=30) as sm:
            sm.create_keyspace(KeyspaceDefinition('app', replication_factor=3))
            sm.alter_keyspace('app', {'replication_factor': 2})
            sm.drop_keyspace('app')

    Args:
        server: 'host:port' of the node to talk to (default: localhost:9042)
        credentials: {'username': ..., 'password': ...} when auth is enabled
        send_timeout: connect timeout in milliseconds (default: 15000)
        recv_timeout: per-request timeout in milliseconds (default: 15000)
        poll_interval: seconds between schema agreement polls (default: 0.5)
        agreement_timeout: seconds to wait for agreement, None for no limit (default: 60)
        max_agreement_attempts: optional cap on agreement polls
        connection: an already open handle exposing ``client`` and ``close()``;
            when given, no new connection is made
    """

    def __init__(self, server=DEFAULT_SERVER,
                 credentials=None,
                 send_timeout=DEFAULT_SEND_TIMEOUT,
                 recv_timeout=DEFAULT_RECV_TIMEOUT,
                 poll_interval=DEFAULT_POLL_INTERVAL,
                 agreement_timeout=DEFAULT_AGREEMENT_TIMEOUT,
                 max_agreement_attempts=None,
                 connection=None):
        self.waiter = SchemaAgreementWaiter(
            self._describe_versions,
            poll_interval=poll_interval,
            timeout=agreement_timeout,
            max_attempts=max_agreement_attempts
        )
        if connection is None:
            connection = ConnectionWrapper(None, server, credentials, send_timeout, recv_timeout)
        self.conn = connection
        self.client = self.conn.client
        self.settings = {}

    @classmethod
    def from_settings(cls, settings, connection=None):
        """Builds a SystemManager from a settings dict (see sysmanager.config)."""
        settings = apply_defaults(dict(settings))
        agreement = settings['schema_agreement']
        manager = cls(
            server=settings['server'],
            credentials=settings['credentials'],
            send_timeout=settings['send_timeout'],
            recv_timeout=settings['recv_timeout'],
            poll_interval=agreement['poll_interval'],
            agreement_timeout=agreement['timeout'],
            max_agreement_attempts=agreement['max_attempts'],
            connection=connection
        )
        manager.settings = settings
        return manager

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
        return False

    @property
    def closed(self):
        return self.client is None

    def close(self):
        """Closes the underlying connection. Further calls are no-ops."""
        if self.client is None:
            return
        self.client = None
        self.conn.close()

    def _describe_versions(self):
        return self.client.describe_schema_versions()

    @_requires_open
    def wait_for_schema_agreement(self, cancel_event=None):
        """
        Blocks until every node reports the same schema version.

        Args:
            cancel_event: optional threading.Event that aborts the wait

        Raises:
            SchemaAgreementTimeout: the configured deadline or poll cap was hit
            SchemaAgreementCancelled: cancel_event was set
        """
        self.waiter.wait(cancel_event)

    # -- keyspaces ------------------------------------------------------------

    @_requires_open
    def create_keyspace(self, ksdef, cancel_event=None):
        """
        Creates a new keyspace.

        Args:
            ksdef (KeyspaceDefinition): the keyspace to create
        """
        self.client.system_add_keyspace(ksdef)
        self.wait_for_schema_agreement(cancel_event)

    @_requires_open
    def alter_keyspace(self, keyspace, attrs, cancel_event=None):
        """
        Modifies a keyspace's replication settings.

        Example:
            sm.alter_keyspace('Keyspace1', {'replication_factor': 2})

        Args:
            keyspace (str): the keyspace to modify
            attrs (dict): maps attribute names (or KeyspaceAttribute members)
                to values. Valid names are "strategy_class",
                "strategy_options" and "replication_factor".

        Raises:
            InvalidAttributeError: an unknown attribute or a badly typed
                value; raised before anything is sent to the server
        """
        require_identifier(keyspace, "keyspace")
        changes = parse_keyspace_attributes(attrs)

        ksdef = self.client.describe_keyspace(keyspace)
        for attribute, value in changes.items():
            attribute.apply(ksdef, value)

        self.client.system_update_keyspace(ksdef)
        self.wait_for_schema_agreement(cancel_event)

    @_requires_open
    def drop_keyspace(self, keyspace, cancel_event=None):
        """Drops a keyspace and everything in it."""
        require_identifier(keyspace, "keyspace")
        self.client.system_drop_keyspace(keyspace)
        self.wait_for_schema_agreement(cancel_event)

    # -- column families ------------------------------------------------------

    @_requires_open
    def create_column_family(self, cfdef, cancel_event=None):
        """
        Creates a column family in ``cfdef.keyspace``.

        Args:
            cfdef (ColumnFamilyDefinition): the column family to create
        """
        require_identifier(cfdef.keyspace, "keyspace")
        require_identifier(cfdef.name, "column family")
        self.client.set_keyspace(cfdef.keyspace)
        self.client.system_add_column_family(cfdef)
        self.wait_for_schema_agreement(cancel_event)

    @_requires_open
    def alter_column_family(self, cfdef, cancel_event=None):
        """
        Modifies a column family's attributes.

        Build ``cfdef`` by fetching the current definition with
        describe_keyspace() or get_keyspace_column_families() and changing
        it as needed.
        """
        require_identifier(cfdef.keyspace, "keyspace")
        require_identifier(cfdef.name, "column family")
        self.client.set_keyspace(cfdef.keyspace)
        self.client.system_update_column_family(cfdef)
        self.wait_for_schema_agreement(cancel_event)

    @_requires_open
    def drop_column_family(self, keyspace, column_family, cancel_event=None):
        """
        Drops a column family from a keyspace.

        Args:
            keyspace (str): the keyspace the column family is in
            column_family (str): the column family name
        """
        require_identifier(keyspace, "keyspace")
        require_identifier(column_family, "column family")
        self.client.set_keyspace(keyspace)
        self.client.system_drop_column_family(column_family)
        self.wait_for_schema_agreement(cancel_event)

    # -- introspection --------------------------------------------------------

    @_requires_open
    def describe_ring(self, keyspace):
        """Returns the token ranges of the ring and their replicas for ``keyspace``."""
        require_identifier(keyspace, "keyspace")
        return self.client.describe_ring(keyspace)

    @_requires_open
    def describe_cluster_name(self):
        return self.client.describe_cluster_name()

    @_requires_open
    def describe_version(self):
        """
        Gives the CQL API version the node speaks.

        This is not the Cassandra release; see describe_release_version().
        """
        return self.client.describe_version()

    @_requires_open
    def describe_release_version(self):
        return self.client.describe_release_version()

    @_requires_open
    def describe_schema_versions(self):
        """
        Describes what schema version each node currently has.

        Returns:
            dict: schema version -> list of node addresses. More than one
            key means the nodes disagree.
        """
        return self.client.describe_schema_versions()

    @_requires_open
    def describe_partitioner(self):
        return self.client.describe_partitioner()

    @_requires_open
    def describe_snitch(self):
        return self.client.describe_snitch()

    @_requires_open
    def describe_keyspace(self, keyspace):
        """
        Returns the keyspace's settings and its column families.

        Returns:
            KeyspaceDefinition
        """
        require_identifier(keyspace, "keyspace")
        return self.client.describe_keyspace(keyspace)

    @_requires_open
    def describe_keyspaces(self):
        """Like describe_keyspace(), for every keyspace."""
        return self.client.describe_keyspaces()

    @_requires_open
    def list_keyspaces(self, exclude_system=False, exclude=None):
        """
        Returns keyspace names.

        Args:
            exclude_system: hide Cassandra's own keyspaces and the
                settings' custom_excluded_keyspaces
            exclude: extra names to hide
        """
        names = [ksdef.name for ksdef in self.client.describe_keyspaces()]
        if not exclude_system and not exclude:
            return names

        settings = dict(self.settings, exclude_system_keyspaces=exclude_system)
        if not exclude_system:
            settings['custom_excluded_keyspaces'] = []
        return KeyspaceFilter(settings, additional_exclusions=exclude).filter_names(names)

    @_requires_open
    def get_keyspace_column_families(self, keyspace):
        """Returns {column_family_name: ColumnFamilyDefinition} for ``keyspace``."""
        ksdef = self.describe_keyspace(keyspace)
        return {cfdef.name: cfdef for cfdef in ksdef.cf_defs}
