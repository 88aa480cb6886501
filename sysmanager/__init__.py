"""
Schema and cluster administration for Apache Cassandra.

Provides keyspace/column family DDL that waits for cluster-wide schema
agreement, plus read-only cluster introspection.
"""

from .agreement import SchemaAgreementWaiter
from .config import configure_logging, load_settings
from .connector import ConnectionWrapper
from .client import SchemaClient
from .definitions import (
    NETWORK_TOPOLOGY_STRATEGY,
    SIMPLE_STRATEGY,
    ColumnFamilyDefinition,
    KeyspaceAttribute,
    KeyspaceDefinition,
    TokenRange,
)
from .exceptions import (
    CassandraConnectionError,
    InvalidAttributeError,
    InvalidStateError,
    NotFoundError,
    RemoteProtocolError,
    SchemaAgreementCancelled,
    SchemaAgreementTimeout,
    SystemManagerError,
)
from .system_manager import SystemManager

__version__ = '1.0.0'

__all__ = [
    # Administration
    'SystemManager',
    'SchemaAgreementWaiter',

    # Transport
    'ConnectionWrapper',
    'SchemaClient',

    # Definitions
    'KeyspaceDefinition',
    'ColumnFamilyDefinition',
    'KeyspaceAttribute',
    'TokenRange',
    'SIMPLE_STRATEGY',
    'NETWORK_TOPOLOGY_STRATEGY',

    # Settings
    'load_settings',
    'configure_logging',

    # Errors
    'SystemManagerError',
    'CassandraConnectionError',
    'InvalidStateError',
    'InvalidAttributeError',
    'RemoteProtocolError',
    'NotFoundError',
    'SchemaAgreementTimeout',
    'SchemaAgreementCancelled',
]
