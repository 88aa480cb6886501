"""
Exception hierarchy for the schema administration client.

Every error raised by this package derives from SystemManagerError.
Several classes also derive from the closest builtin so callers can
catch them without importing this module (e.g. ``except ConnectionError``).
"""


class SystemManagerError(Exception):
    """Base class for all sysmanager errors."""


class CassandraConnectionError(SystemManagerError, ConnectionError):
    """The transport could not be opened or authentication failed."""


class InvalidStateError(SystemManagerError, RuntimeError):
    """An operation was attempted on a closed SystemManager."""


class InvalidAttributeError(SystemManagerError, ValueError):
    """A locally detected bad argument; no remote call was issued."""


class RemoteProtocolError(SystemManagerError):
    """The server rejected a well-formed request."""


class NotFoundError(RemoteProtocolError):
    """The named keyspace or column family does not exist on the server."""


class SchemaAgreementTimeout(SystemManagerError, TimeoutError):
    """
    The cluster did not converge on a single schema version in time.

    Attributes:
        versions (dict): the last schema version map observed
        attempts (int): how many times the version map was polled
    """

    def __init__(self, message, versions=None, attempts=0):
        super().__init__(message)
        self.versions = versions or {}
        self.attempts = attempts


class SchemaAgreementCancelled(SchemaAgreementTimeout):
    """The caller's cancel event was set while waiting for agreement."""
