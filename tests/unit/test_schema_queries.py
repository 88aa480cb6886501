import unittest

from sysmanager.definitions import ColumnFamilyDefinition, KeyspaceDefinition
from sysmanager.utils.qrylib import schema_queries as q


class TestKeyspaceStatements(unittest.TestCase):
    def test_create_keyspace_folds_replication_factor(self):
        ksdef = KeyspaceDefinition('app', strategy_class='SimpleStrategy', replication_factor=3)

        self.assertEqual(
            q.build_create_keyspace(ksdef),
            "CREATE KEYSPACE app WITH replication = "
            "{'class': 'org.apache.cassandra.locator.SimpleStrategy', 'replication_factor': '3'} "
            "AND durable_writes = true"
        )

    def test_alter_keyspace_network_topology(self):
        ksdef = KeyspaceDefinition('app', strategy_class='NetworkTopologyStrategy',
                                   strategy_options={'dc1': 3, 'dc2': '2'}, durable_writes=False)

        self.assertEqual(
            q.build_alter_keyspace(ksdef),
            "ALTER KEYSPACE app WITH replication = "
            "{'class': 'org.apache.cassandra.locator.NetworkTopologyStrategy', 'dc1': '3', 'dc2': '2'} "
            "AND durable_writes = false"
        )

    def test_names_needing_quotes_are_quoted(self):
        self.assertEqual(q.build_drop_keyspace('Keyspace1'), 'DROP KEYSPACE "Keyspace1"')
        self.assertEqual(q.build_drop_table('select'), 'DROP TABLE "select"')
        self.assertEqual(q.build_drop_table('users'), 'DROP TABLE users')


class TestTableStatements(unittest.TestCase):
    def test_create_table_compound_key_and_options(self):
        cfdef = ColumnFamilyDefinition(
            'app', 'events',
            columns={'tenant': 'text', 'day': 'date', 'ts': 'timeuuid', 'payload': 'blob'},
            partition_key=['tenant', 'day'],
            clustering_key=['ts'],
            options={'gc_grace_seconds': 3600, 'comment': "it's events"}
        )

        self.assertEqual(
            q.build_create_table(cfdef),
            "CREATE TABLE events (tenant text, day date, ts timeuuid, payload blob, "
            "PRIMARY KEY ((tenant, day), ts)) "
            "WITH comment = 'it''s events' AND gc_grace_seconds = 3600"
        )

    def test_create_table_single_partition_column(self):
        cfdef = ColumnFamilyDefinition('app', 'users', columns={'id': 'uuid', 'name': 'text'},
                                       partition_key=['id'])

        self.assertEqual(q.build_create_table(cfdef),
                         "CREATE TABLE users (id uuid, name text, PRIMARY KEY (id))")

    def test_alter_table_statements(self):
        cfdef = ColumnFamilyDefinition('app', 'users', options={'compaction': {'class': 'LeveledCompactionStrategy'}})

        self.assertEqual(q.build_alter_table_options(cfdef),
                         "ALTER TABLE users WITH compaction = {'class': 'LeveledCompactionStrategy'}")
        self.assertEqual(q.build_alter_table_add_column('users', 'email', 'text'),
                         "ALTER TABLE users ADD email text")


if __name__ == '__main__':
    unittest.main()
