"""DNS-over-HTTPS answer models."""

from dataclasses import dataclass, field
from enum import Enum

from posture_audit.errors import QueryTimeout, TransportError


class QueryOutcome(Enum):
    """Classification of a single DoH query."""

    OK = "OK"  # Status 0, zero or more answers
    NXDOMAIN = "NXDOMAIN"  # Status 3
    ERROR = "ERROR"  # Transport failure, non-2xx or other DNS status
    TIMEOUT = "TIMEOUT"  # Bounded request timeout exceeded


@dataclass(frozen=True)
class RawAnswer:
    """One resource record as returned by the resolver.

    Attributes:
        name: Owner name of the record.
        type: Numeric record type.
        ttl: Time to live in seconds.
        data: Presentation-format record data.
    """

    name: str
    type: int
    ttl: int
    data: str

    @classmethod
    def from_json(cls, answer: dict) -> "RawAnswer":
        return cls(
            name=str(answer.get("name", "")),
            type=int(answer.get("type", 0)),
            ttl=int(answer.get("TTL", 0)),
            data=str(answer.get("data", "")),
        )


@dataclass
class ResolveResult:
    """Normalized result of one DoH query.

    Attributes:
        name: Queried name.
        outcome: Query classification.
        answers: Answer records (empty unless outcome is OK).
        status: DNS response code from the resolver, if one was received.
        error: Error description for ERROR/TIMEOUT outcomes.
    """

    name: str
    outcome: QueryOutcome
    answers: list[RawAnswer] = field(default_factory=list)
    status: int | None = None
    error: str = ""

    @property
    def is_empty(self) -> bool:
        """True for NXDOMAIN and for a successful response without answers."""
        return self.outcome in (QueryOutcome.OK, QueryOutcome.NXDOMAIN) and not self.answers

    def answers_of_type(self, rdtype: int) -> list[RawAnswer]:
        """Filter answers by numeric type, dropping CNAME chain entries."""
        return [a for a in self.answers if a.type == rdtype]

    def raise_for_outcome(self) -> None:
        """Raise if the query failed.

        Raises:
            QueryTimeout: If the outcome is TIMEOUT.
            TransportError: If the outcome is ERROR.
        """
        if self.outcome == QueryOutcome.TIMEOUT:
            raise QueryTimeout(f"Timed out resolving {self.name}: {self.error}")
        if self.outcome == QueryOutcome.ERROR:
            raise TransportError(f"Failed to resolve {self.name}: {self.error}")
