"""Exception taxonomy for audit lookups.

Absent, malformed and not-found records are reported as statuses on the
parsed records; only conditions that prevent a lookup from producing a
result are raised.
"""


class AuditError(Exception):
    """Base class for all audit failures."""


class TransportError(AuditError):
    """Network failure, non-2xx response or DNS server failure status."""


class QueryTimeout(TransportError):
    """A lookup exceeded its bounded timeout."""


class AuthError(AuditError):
    """Blocklist query rejected because of an invalid credential."""


class InvalidTarget(AuditError, ValueError):
    """Target cannot be turned into a query (e.g. malformed IPv6)."""


class RecordParseError(AuditError):
    """Record text is present but cannot be decoded."""


class LoopDetected(AuditError):
    """A chained lookup revisited a location it already followed."""
