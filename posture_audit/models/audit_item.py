"""Audit item lifecycle state machine.

Each item moves one way through:

    pending -> loading -> {success | not_found | invalid | error | timeout}

with a direct ``pending -> invalid`` edge for targets rejected before any
network call. Terminal states never change again within a batch. The
release-date sub-fetch of a listed reputation item has its own status and
does not touch the primary lifecycle state.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from posture_audit.models.audit_target import AuditTarget


class AuditKind(Enum):
    """Which audit to run for every target of a batch."""

    SPF = "spf"
    DMARC = "dmarc"
    DKIM = "dkim"
    CAA = "caa"
    MX = "mx"
    PTR = "ptr"
    REPUTATION = "reputation"
    BLACKLIST = "blacklist"
    RECORD_MATCH = "record_match"
    RECORD_LOOKUP = "record_lookup"
    TRACE = "trace"
    WHOIS = "whois"
    GEO = "geo"


class LifecycleState(Enum):
    PENDING = "pending"
    LOADING = "loading"
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    INVALID = "invalid"
    ERROR = "error"
    TIMEOUT = "timeout"


TERMINAL_STATES = frozenset(
    {
        LifecycleState.SUCCESS,
        LifecycleState.NOT_FOUND,
        LifecycleState.INVALID,
        LifecycleState.ERROR,
        LifecycleState.TIMEOUT,
    }
)

ALLOWED_TRANSITIONS: dict[LifecycleState, frozenset[LifecycleState]] = {
    LifecycleState.PENDING: frozenset({LifecycleState.LOADING, LifecycleState.INVALID}),
    LifecycleState.LOADING: TERMINAL_STATES,
}


class ReleaseStatus(Enum):
    """State of the background release-date sub-fetch."""

    NOT_APPLICABLE = "not_applicable"
    PENDING = "pending"
    RESOLVED = "resolved"
    FETCH_ERROR = "fetch_error"


@dataclass
class AuditItem:
    """The unit of bulk work.

    Attributes:
        id: 1-based position in the batch.
        target: Normalized target.
        kind: Audit performed on the target.
        generation: Batch generation the item belongs to.
        selector: DKIM selector (DKIM audits only).
        state: Current lifecycle state.
        result: Parsed record, verdict or lookup result once terminal.
        reason: Human-readable summary of the terminal state.
        error_kind: Exception class name for error/timeout/invalid states.
        release_status: Release-date sub-fetch state.
        release_date: Release date text once resolved.
    """

    id: int
    target: AuditTarget
    kind: AuditKind
    generation: int
    selector: str | None = None
    state: LifecycleState = LifecycleState.PENDING
    result: Any = None
    reason: str = ""
    error_kind: str | None = None
    release_status: ReleaseStatus = ReleaseStatus.NOT_APPLICABLE
    release_date: str | None = None
    history: list[LifecycleState] = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, new_state: LifecycleState) -> None:
        """Move the item to a new lifecycle state.

        Args:
            new_state: Target state.

        Raises:
            ValueError: If the transition is not allowed from the current state.
        """
        allowed = ALLOWED_TRANSITIONS.get(self.state, frozenset())
        if new_state not in allowed:
            raise ValueError(
                f"Invalid transition for item {self.id}: "
                f"{self.state.value} -> {new_state.value}"
            )
        self.history.append(self.state)
        self.state = new_state

    def to_json(self) -> dict:
        result_json = None
        if self.result is not None:
            result_json = self.result.to_json()

        return {
            "id": self.id,
            "target": self.target.value,
            "target_kind": self.target.kind.value,
            "kind": self.kind.value,
            "selector": self.selector,
            "state": self.state.value,
            "reason": self.reason,
            "error_kind": self.error_kind,
            "result": result_json,
            "release_status": self.release_status.value,
            "release_date": self.release_date,
        }
