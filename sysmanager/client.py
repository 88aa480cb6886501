import logging
from collections import defaultdict
from functools import wraps
from typing import Dict, List

from cassandra import DriverException, OperationTimedOut
from cassandra.cluster import NoHostAvailable

from .definitions import (
    ColumnFamilyDefinition,
    KeyspaceDefinition,
    TokenRange,
    order_columns,
    require_identifier,
    split_replication_map,
)
from .exceptions import CassandraConnectionError, NotFoundError, RemoteProtocolError
from .utils.qrylib import schema_queries as q

logger = logging.getLogger(__name__)

# Table properties read back from system_schema.tables into ColumnFamilyDefinition.options
_TABLE_OPTION_COLUMNS = (
    'comment', 'gc_grace_seconds', 'default_time_to_live', 'compaction', 'compression', 'caching'
)


def _table_options(row):
    options = {}
    for name in _TABLE_OPTION_COLUMNS:
        value = row.get(name)
        if value is None:
            continue
        # map columns come back as driver-specific mapping types
        options[name] = dict(value) if hasattr(value, 'items') else value
    return options


def translate_driver_errors(func):
    """
    Re-raises driver exceptions as sysmanager errors.

    Transport failures become CassandraConnectionError; anything else the
    server reports becomes RemoteProtocolError. The driver exception is
    kept as ``__cause__``.
    """
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except (NoHostAvailable, OperationTimedOut) as e:
            logger.error(f"{func.__name__} failed, node unreachable: {e}")
            raise CassandraConnectionError(f"{func.__name__} failed: {e}") from e
        except DriverException as e:
            logger.error(f"{func.__name__} rejected by server: {e}")
            raise RemoteProtocolError(f"{func.__name__} failed: {e}") from e

    return wrapper


class SchemaClient:
    """
    Remote procedure interface for schema administration.

    Each method corresponds to one server-side procedure
    (system_add_keyspace, describe_ring, ...) and is implemented with CQL
    statements and driver metadata. All requests go through ``session``,
    which is expected to be pinned to a single node.

    Example:
        client = SchemaClient(cluster, session, '10.0.0.1')
        client.system_add_keyspace(KeyspaceDefinition('app', replication_factor=3))
        client.describe_schema_versions()
        # {'f3a1...': ['10.0.0.1', '10.0.0.2', '10.0.0.3']}
    """

    def __init__(self, cluster, session, host):
        self.cluster = cluster
        self.session = session
        self.host = host

    def _rows(self, query, params=None):
        if params is None:
            return list(self.session.execute(query))
        return list(self.session.execute(query, params))

    # -- keyspace context ---------------------------------------------------

    @translate_driver_errors
    def set_keyspace(self, keyspace):
        require_identifier(keyspace, "keyspace")
        self.session.set_keyspace(keyspace)

    # -- DDL ------------------------------------------------------------------

    @translate_driver_errors
    def system_add_keyspace(self, ksdef):
        require_identifier(ksdef.name, "keyspace name")
        self.session.execute(q.build_create_keyspace(ksdef))
        logger.info(f"Keyspace '{ksdef.name}' submitted")

    @translate_driver_errors
    def system_update_keyspace(self, ksdef):
        require_identifier(ksdef.name, "keyspace name")
        self.session.execute(q.build_alter_keyspace(ksdef))
        logger.info(f"Keyspace '{ksdef.name}' update submitted")

    @translate_driver_errors
    def system_drop_keyspace(self, keyspace):
        require_identifier(keyspace, "keyspace")
        self.session.execute(q.build_drop_keyspace(keyspace))
        logger.info(f"Keyspace '{keyspace}' drop submitted")

    @translate_driver_errors
    def system_add_column_family(self, cfdef):
        require_identifier(cfdef.name, "column family name")
        self.session.execute(q.build_create_table(cfdef))
        logger.info(f"Column family '{cfdef.keyspace}.{cfdef.name}' submitted")

    @translate_driver_errors
    def system_update_column_family(self, cfdef):
        """
        Brings an existing table in line with ``cfdef``.

        Columns in the definition that the server does not have are added,
        then table options are applied. Columns are never dropped or
        retyped here.
        """
        require_identifier(cfdef.name, "column family name")
        current = self._describe_tables(cfdef.keyspace).get(cfdef.name)
        if current is None:
            raise NotFoundError(f"Column family '{cfdef.keyspace}.{cfdef.name}' does not exist")

        for column, cql_type in cfdef.columns.items():
            if column not in current.columns:
                self.session.execute(q.build_alter_table_add_column(cfdef.name, column, cql_type))
                logger.debug(f"Added column {column} {cql_type} to {cfdef.keyspace}.{cfdef.name}")

        if cfdef.options:
            self.session.execute(q.build_alter_table_options(cfdef))
        logger.info(f"Column family '{cfdef.keyspace}.{cfdef.name}' update submitted")

    @translate_driver_errors
    def system_drop_column_family(self, column_family):
        require_identifier(column_family, "column family")
        self.session.execute(q.build_drop_table(column_family))
        logger.info(f"Column family '{column_family}' drop submitted")

    # -- introspection --------------------------------------------------------

    @translate_driver_errors
    def describe_schema_versions(self) -> Dict[str, List[str]]:
        """
        Maps each schema version to the nodes reporting it.

        Both system.local and system.peers are read from the same node.
        Peers the driver has marked down are listed under UNREACHABLE.
        """
        versions = defaultdict(list)

        for row in self._rows(q.get_local_schema_version_query()):
            address = str(row.get('broadcast_address') or self.host)
            versions[str(row['schema_version'])].append(address)

        for row in self._rows(q.get_peers_schema_version_query()):
            address = str(row['peer'])
            host = self.cluster.metadata.get_host(address)
            if (host is not None and host.is_up is False) or row.get('schema_version') is None:
                versions[q.UNREACHABLE].append(address)
            else:
                versions[str(row['schema_version'])].append(address)

        return dict(versions)

    @translate_driver_errors
    def describe_ring(self, keyspace) -> List[TokenRange]:
        """
        Returns the token ranges of the ring and the replicas of each range
        for ``keyspace``.
        """
        require_identifier(keyspace, "keyspace")
        if not self._rows(q.get_keyspace_query(), (keyspace,)):
            raise NotFoundError(f"Keyspace '{keyspace}' does not exist")

        self.cluster.refresh_keyspace_metadata(keyspace)
        token_map = self.cluster.metadata.token_map
        if token_map is None or not token_map.ring:
            raise RemoteProtocolError("Token metadata is not available from the cluster")

        ring = token_map.ring
        ranges = []
        for i, end_token in enumerate(ring):
            start_token = ring[i - 1]
            # get_replicas() resolves a token to the range that follows it
            replicas = token_map.get_replicas(keyspace, start_token)
            ranges.append(TokenRange(
                str(start_token.value),
                str(end_token.value),
                [str(host.address) for host in replicas]
            ))
        return ranges

    def _local_info(self):
        rows = self._rows(q.get_local_info_query())
        if not rows:
            raise RemoteProtocolError("system.local returned no rows")
        return rows[0]

    @translate_driver_errors
    def describe_cluster_name(self):
        return self._local_info()['cluster_name']

    @translate_driver_errors
    def describe_version(self):
        return self._local_info()['cql_version']

    @translate_driver_errors
    def describe_release_version(self):
        return self._local_info()['release_version']

    @translate_driver_errors
    def describe_partitioner(self):
        return self._local_info()['partitioner']

    @translate_driver_errors
    def describe_snitch(self):
        rows = self._rows(q.get_snitch_query())
        if not rows:
            raise RemoteProtocolError("Server did not report an endpoint_snitch setting")
        return rows[0]['value']

    @translate_driver_errors
    def describe_keyspace(self, keyspace) -> KeyspaceDefinition:
        require_identifier(keyspace, "keyspace")
        rows = self._rows(q.get_keyspace_query(), (keyspace,))
        if not rows:
            raise NotFoundError(f"Keyspace '{keyspace}' does not exist")

        ksdef = self._keyspace_from_row(rows[0])
        ksdef.cf_defs = list(self._describe_tables(keyspace).values())
        return ksdef

    @translate_driver_errors
    def describe_keyspaces(self) -> List[KeyspaceDefinition]:
        keyspaces = {}
        for row in self._rows(q.get_keyspaces_query()):
            ksdef = self._keyspace_from_row(row)
            keyspaces[ksdef.name] = ksdef

        tables = self._group_tables(
            self._rows(q.get_tables_query(filtered=False)),
            self._rows(q.get_columns_query(filtered=False))
        )
        for (keyspace, _), cfdef in tables.items():
            if keyspace in keyspaces:
                keyspaces[keyspace].cf_defs.append(cfdef)

        return list(keyspaces.values())

    # -- row translation ------------------------------------------------------

    def _describe_tables(self, keyspace) -> Dict[str, ColumnFamilyDefinition]:
        tables = self._group_tables(
            self._rows(q.get_tables_query(), (keyspace,)),
            self._rows(q.get_columns_query(), (keyspace,))
        )
        return {name: cfdef for (_, name), cfdef in tables.items()}

    @staticmethod
    def _keyspace_from_row(row):
        strategy_class, strategy_options, replication_factor = split_replication_map(row.get('replication'))
        return KeyspaceDefinition(
            row['keyspace_name'],
            strategy_class=strategy_class,
            strategy_options=strategy_options,
            replication_factor=replication_factor,
            durable_writes=row.get('durable_writes', True)
        )

    @staticmethod
    def _group_tables(table_rows, column_rows):
        columns_by_table = defaultdict(list)
        for row in column_rows:
            columns_by_table[(row['keyspace_name'], row['table_name'])].append(row)

        tables = {}
        for row in table_rows:
            key = (row['keyspace_name'], row['table_name'])
            cfdef = ColumnFamilyDefinition(
                row['keyspace_name'],
                row['table_name'],
                options=_table_options(row)
            )
            for column in order_columns(columns_by_table.get(key, [])):
                cfdef.columns[column['column_name']] = column['type']
                if column['kind'] == 'partition_key':
                    cfdef.partition_key.append(column['column_name'])
                elif column['kind'] == 'clustering':
                    cfdef.clustering_key.append(column['column_name'])
            tables[key] = cfdef
        return tables
