"""
Local shapes for schema objects exchanged with the cluster.

These mirror the keyspace/column family definitions the server works
with. The administrator only forwards them; validation of their content
is left to the server.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Dict, List, Optional

from .exceptions import InvalidAttributeError

LOCATOR_PACKAGE = 'org.apache.cassandra.locator'

SIMPLE_STRATEGY = 'SimpleStrategy'
NETWORK_TOPOLOGY_STRATEGY = 'NetworkTopologyStrategy'


def qualify_strategy_class(strategy_class):
    """Expands a short strategy name to its fully qualified class name."""
    if strategy_class and '.' not in strategy_class:
        return f"{LOCATOR_PACKAGE}.{strategy_class}"
    return strategy_class


def require_identifier(value, what):
    """Rejects empty keyspace/column family names before any remote call."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidAttributeError(f"{what} must be a non-empty string, got {value!r}")
    return value


class ColumnFamilyDefinition:
    """
    A column family (table) inside a keyspace.

    ``columns`` maps column names to CQL types in declaration order.
    ``options`` holds table properties (comment, gc_grace_seconds,
    compaction, ...) and is passed to the server as-is.
    """

    def __init__(self, keyspace, name, columns=None, partition_key=None,
                 clustering_key=None, options=None):
        self.keyspace = keyspace
        self.name = name
        self.columns = dict(columns or {})
        self.partition_key = list(partition_key or [])
        self.clustering_key = list(clustering_key or [])
        self.options = dict(options or {})

    def __eq__(self, other):
        if not isinstance(other, ColumnFamilyDefinition):
            return NotImplemented
        return (self.keyspace, self.name, list(self.columns.items()), self.partition_key,
                self.clustering_key, self.options) == \
               (other.keyspace, other.name, list(other.columns.items()), other.partition_key,
                other.clustering_key, other.options)

    def __repr__(self):
        return (f"ColumnFamilyDefinition(keyspace={self.keyspace!r}, name={self.name!r}, "
                f"columns={self.columns!r}, partition_key={self.partition_key!r}, "
                f"clustering_key={self.clustering_key!r})")


class KeyspaceDefinition:
    """
    A keyspace and its replication settings.

    ``replication_factor`` is kept apart from ``strategy_options``; it is
    folded into the replication map only when the definition is sent to
    the server.
    """

    def __init__(self, name, strategy_class=SIMPLE_STRATEGY, strategy_options=None,
                 replication_factor=None, cf_defs=None, durable_writes=True):
        self.name = name
        self.strategy_class = strategy_class
        self.strategy_options = dict(strategy_options or {})
        self.replication_factor = replication_factor
        self.cf_defs = list(cf_defs or [])
        self.durable_writes = durable_writes

    def replication_map(self) -> Dict[str, str]:
        """Builds the ``replication = {...}`` map submitted with keyspace DDL."""
        replication = {'class': qualify_strategy_class(self.strategy_class)}
        for option, value in self.strategy_options.items():
            replication[option] = str(value)
        if self.replication_factor is not None:
            replication['replication_factor'] = str(self.replication_factor)
        return replication

    def __eq__(self, other):
        if not isinstance(other, KeyspaceDefinition):
            return NotImplemented
        return (self.name, qualify_strategy_class(self.strategy_class), self.strategy_options,
                self.replication_factor, self.cf_defs, self.durable_writes) == \
               (other.name, qualify_strategy_class(other.strategy_class), other.strategy_options,
                other.replication_factor, other.cf_defs, other.durable_writes)

    def __repr__(self):
        return (f"KeyspaceDefinition(name={self.name!r}, strategy_class={self.strategy_class!r}, "
                f"strategy_options={self.strategy_options!r}, "
                f"replication_factor={self.replication_factor!r}, "
                f"cf_defs=[{', '.join(cf.name for cf in self.cf_defs)}])")


class TokenRange:
    """One entry of the ring description: a token range and its replicas."""

    def __init__(self, start_token, end_token, endpoints):
        self.start_token = start_token
        self.end_token = end_token
        self.endpoints = list(endpoints)

    def __eq__(self, other):
        if not isinstance(other, TokenRange):
            return NotImplemented
        return (self.start_token, self.end_token, self.endpoints) == \
               (other.start_token, other.end_token, other.endpoints)

    def __repr__(self):
        return f"TokenRange({self.start_token!r}, {self.end_token!r}, {self.endpoints!r})"


def _coerce_strategy_class(value):
    if not isinstance(value, str) or not value:
        raise InvalidAttributeError(f"strategy_class must be a non-empty string, got {value!r}")
    return value


def _coerce_strategy_options(value):
    if not isinstance(value, Mapping):
        raise InvalidAttributeError(f"strategy_options must be a mapping, got {type(value).__name__}")
    return {str(k): str(v) for k, v in value.items()}


def _coerce_replication_factor(value):
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidAttributeError(f"replication_factor must be a non-negative integer, got {value!r}")
    return value


class KeyspaceAttribute(Enum):
    """The closed set of keyspace fields that alter_keyspace may change."""
    STRATEGY_CLASS = "strategy_class"
    STRATEGY_OPTIONS = "strategy_options"
    REPLICATION_FACTOR = "replication_factor"

    @classmethod
    def parse(cls, key):
        """Maps a string (or member) to a member, rejecting anything else."""
        if isinstance(key, cls):
            return key
        try:
            return cls(key)
        except ValueError:
            raise InvalidAttributeError(f"{key} is not a valid keyspace attribute.") from None

    def coerce(self, value):
        return _COERCERS[self](value)

    def apply(self, ksdef, value):
        setattr(ksdef, self.value, value)


_COERCERS = {
    KeyspaceAttribute.STRATEGY_CLASS: _coerce_strategy_class,
    KeyspaceAttribute.STRATEGY_OPTIONS: _coerce_strategy_options,
    KeyspaceAttribute.REPLICATION_FACTOR: _coerce_replication_factor,
}


def parse_keyspace_attributes(attrs) -> Dict[KeyspaceAttribute, object]:
    """
    Validates an alter_keyspace attribute map without touching remote state.

    Args:
        attrs: mapping of attribute name (or KeyspaceAttribute) to value

    Returns:
        dict: KeyspaceAttribute -> coerced value. If two keys resolve to
        the same attribute, the later one wins.

    Raises:
        InvalidAttributeError: on any unknown name or ill-typed value
    """
    if not hasattr(attrs, 'items'):
        raise InvalidAttributeError(f"attrs must be a mapping, got {type(attrs).__name__}")

    parsed = {}
    for key, value in attrs.items():
        attribute = KeyspaceAttribute.parse(key)
        parsed[attribute] = attribute.coerce(value)
    return parsed


def split_replication_map(replication: Optional[Dict[str, str]]):
    """
    Reverses KeyspaceDefinition.replication_map().

    A replication factor that is not a plain integer (transient
    replication reports e.g. '3/1') stays in the options untouched.

    Returns:
        tuple: (strategy_class, strategy_options, replication_factor)
    """
    options = dict(replication or {})
    strategy_class = options.pop('class', None)
    replication_factor = options.pop('replication_factor', None)
    if replication_factor is not None:
        try:
            replication_factor = int(replication_factor)
        except (TypeError, ValueError):
            options['replication_factor'] = replication_factor
            replication_factor = None
    return strategy_class, options, replication_factor


def order_columns(rows: List[dict]):
    """
    Sorts system_schema.columns rows into declaration order.

    Partition key columns come first by position, then clustering
    columns, then regular and static columns by name.
    """
    kind_rank = {'partition_key': 0, 'clustering': 1, 'static': 2, 'regular': 3}
    return sorted(rows, key=lambda r: (kind_rank.get(r.get('kind'), 4),
                                       r.get('position', -1), r.get('column_name')))
