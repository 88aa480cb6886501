"""CQL statements used to implement the schema administration calls."""

from cassandra.encoder import Encoder
from cassandra.metadata import protect_name

__all__ = [
    'UNREACHABLE',
    'get_keyspaces_query',
    'get_keyspace_query',
    'get_tables_query',
    'get_columns_query',
    'get_local_schema_version_query',
    'get_peers_schema_version_query',
    'get_local_info_query',
    'get_snitch_query',
    'build_create_keyspace',
    'build_alter_keyspace',
    'build_drop_keyspace',
    'build_create_table',
    'build_alter_table_options',
    'build_alter_table_add_column',
    'build_drop_table',
]

# Version-map key for nodes that are down, as reported by the server's own
# describe_schema_versions.
UNREACHABLE = 'UNREACHABLE'

_encoder = Encoder()


def _encode(value):
    return _encoder.cql_encode_all_types(value)


def _cql_bool(value):
    return 'true' if value else 'false'


def _with_clause(options):
    """Renders ``name = value AND ...`` for a table/keyspace property map."""
    return ' AND '.join(f"{name} = {_encode(value)}" for name, value in sorted(options.items()))


def get_keyspaces_query():
    return "SELECT keyspace_name, durable_writes, replication FROM system_schema.keyspaces"


def get_keyspace_query():
    return ("SELECT keyspace_name, durable_writes, replication FROM system_schema.keyspaces "
            "WHERE keyspace_name = %s")


def get_tables_query(filtered=True):
    query = ("SELECT keyspace_name, table_name, comment, gc_grace_seconds, default_time_to_live, "
             "compaction, compression, caching FROM system_schema.tables")
    if filtered:
        query += " WHERE keyspace_name = %s"
    return query


def get_columns_query(filtered=True):
    query = ("SELECT keyspace_name, table_name, column_name, kind, position, type "
             "FROM system_schema.columns")
    if filtered:
        query += " WHERE keyspace_name = %s"
    return query


def get_local_schema_version_query():
    return "SELECT schema_version, broadcast_address FROM system.local WHERE key = 'local'"


def get_peers_schema_version_query():
    return "SELECT peer, schema_version FROM system.peers"


def get_local_info_query():
    return ("SELECT cluster_name, cql_version, release_version, partitioner "
            "FROM system.local WHERE key = 'local'")


def get_snitch_query():
    # system_views exists on Cassandra 4.0 and later
    return "SELECT value FROM system_views.settings WHERE name = 'endpoint_snitch'"


def build_create_keyspace(ksdef):
    return (f"CREATE KEYSPACE {protect_name(ksdef.name)} "
            f"WITH replication = {_encode(ksdef.replication_map())} "
            f"AND durable_writes = {_cql_bool(ksdef.durable_writes)}")


def build_alter_keyspace(ksdef):
    return (f"ALTER KEYSPACE {protect_name(ksdef.name)} "
            f"WITH replication = {_encode(ksdef.replication_map())} "
            f"AND durable_writes = {_cql_bool(ksdef.durable_writes)}")


def build_drop_keyspace(keyspace):
    return f"DROP KEYSPACE {protect_name(keyspace)}"


def _primary_key(cfdef):
    partition = ', '.join(protect_name(c) for c in cfdef.partition_key)
    if len(cfdef.partition_key) > 1:
        partition = f"({partition})"
    parts = [partition] + [protect_name(c) for c in cfdef.clustering_key]
    return f"PRIMARY KEY ({', '.join(parts)})"


def build_create_table(cfdef):
    """
    CREATE TABLE for the keyspace selected on the session.

    The table name is left unqualified; the caller selects the keyspace
    first.
    """
    columns = [f"{protect_name(name)} {cql_type}" for name, cql_type in cfdef.columns.items()]
    if cfdef.partition_key:
        columns.append(_primary_key(cfdef))
    statement = f"CREATE TABLE {protect_name(cfdef.name)} ({', '.join(columns)})"
    if cfdef.options:
        statement += f" WITH {_with_clause(cfdef.options)}"
    return statement


def build_alter_table_options(cfdef):
    return f"ALTER TABLE {protect_name(cfdef.name)} WITH {_with_clause(cfdef.options)}"


def build_alter_table_add_column(table, column, cql_type):
    return f"ALTER TABLE {protect_name(table)} ADD {protect_name(column)} {cql_type}"


def build_drop_table(table):
    return f"DROP TABLE {protect_name(table)}"
