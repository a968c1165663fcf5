"""Batch summary models.

Aggregates the terminal states of one audit batch for the end-of-run
report.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List

from posture_audit.models.audit_item import AuditItem, AuditKind, LifecycleState
from posture_audit.models.reputation_record import ReputationVerdict, RiskTier


# Failed-item share at which the connectivity check is run
NETWORK_CHECK_THRESHOLD = 0.5


@dataclass
class NetworkConnectivityResult:
    """Results of supplemental DoH connectivity checks to public resolvers.

    Attributes:
        check_enabled: Whether supplemental checks were performed.
        cloudflare_reachable: True if Cloudflare DoH answered a query.
        google_reachable: True if Google DoH answered a query.

    Invariants:
        - If check_enabled=False, both reachability fields must be None.
        - If check_enabled=True, both reachability fields must be bool.
    """

    check_enabled: bool
    cloudflare_reachable: bool | None = None
    google_reachable: bool | None = None

    @property
    def network_down(self) -> bool:
        """True only when checks ran and neither resolver answered."""
        if not self.check_enabled:
            return False
        return not (self.cloudflare_reachable or self.google_reachable)

    def to_json(self) -> dict:
        """Serialize to JSON-compatible dict.

        Returns:
            dict: JSON-serializable representation.
        """
        return {
            "check_enabled": self.check_enabled,
            "cloudflare_reachable": self.cloudflare_reachable,
            "google_reachable": self.google_reachable,
        }


@dataclass
class BatchSummary:
    """Aggregated batch results for JSON output.

    Attributes:
        kind: Audit performed.
        generation: Batch generation id.
        timestamp: Summary generation timestamp (UTC).
        execution_duration_ms: Time from batch start to summary (milliseconds).
        items: Audit items in input order.
        network_connectivity: Supplemental DoH check results (optional).

    Invariants:
        - sum(state_counts.values()) == len(items)
        - items keep input order
    """

    kind: AuditKind
    generation: int
    timestamp: datetime
    execution_duration_ms: int
    items: List[AuditItem] = field(default_factory=list)
    network_connectivity: NetworkConnectivityResult | None = None

    @property
    def state_counts(self) -> Dict[str, int]:
        counts = {state.value: 0 for state in LifecycleState}
        for item in self.items:
            counts[item.state.value] += 1
        return counts

    @property
    def failed_items(self) -> int:
        return sum(
            1
            for item in self.items
            if item.state in (LifecycleState.ERROR, LifecycleState.TIMEOUT)
        )

    @property
    def failure_rate(self) -> float:
        """Share of items ending in error or timeout (0.0 when empty)."""
        if not self.items:
            return 0.0
        return self.failed_items / len(self.items)

    @property
    def listed_items(self) -> int:
        return sum(
            1
            for item in self.items
            if isinstance(item.result, ReputationVerdict) and item.result.listed
        )

    @property
    def high_risk_items(self) -> int:
        return sum(
            1
            for item in self.items
            if isinstance(item.result, ReputationVerdict)
            and item.result.risk_tier == RiskTier.HIGH
        )

    @property
    def network_issue_detected(self) -> bool:
        if self.failure_rate < NETWORK_CHECK_THRESHOLD:
            return False
        if self.network_connectivity is None:
            return False
        return self.network_connectivity.network_down

    def to_json(self) -> dict:
        """Serialize to JSON-compatible dict.

        Returns:
            dict: JSON-serializable representation matching audit-report-schema.json.
        """
        return {
            "execution_summary": {
                "kind": self.kind.value,
                "generation": self.generation,
                "timestamp": self.timestamp.isoformat(),
                "execution_duration_ms": self.execution_duration_ms,
                "total_items": len(self.items),
                "state_counts": dict(sorted(self.state_counts.items())),
                "listed_items": self.listed_items,
                "high_risk_items": self.high_risk_items,
                "network_issue_detected": self.network_issue_detected,
            },
            "items": [item.to_json() for item in self.items],
            "network_connectivity": (
                self.network_connectivity.to_json()
                if self.network_connectivity
                else None
            ),
        }
