"""Blocklist reputation models."""

from dataclasses import dataclass, field
from enum import Enum


class RiskTier(Enum):
    """Risk classification of a blocklist result."""

    CLEAN = "clean"
    LOW = "low"
    HIGH = "high"
    ERROR = "error"


# Sub-datasets with a meaningful release timeline
RELEASE_TIMELINE_DATASETS = ("XBL", "CSS", "DBL")


@dataclass
class ReputationRecord:
    """Result of querying one blocklist zone.

    Attributes:
        dataset: Zone name (ZEN, DBL, ZRD, SPAMCOP, BRBL, BARRACUDA_DOMAIN).
        listed: True only if at least one non-error code was returned.
        reason_codes: Every returned A-record address, in answer order.
        reason: Human-readable reason(s) for the listing or error.
        risk_tier: Risk classification for this zone.
        lists: Granular sub-datasets matched (SBL, CSS, XBL, PBL, ...).
        auth_error: True when the zone answered with a credential error
            sentinel and nothing else. Other error-only answers (refused
            queries, responses outside 127.0.0.0/8) set risk_tier to ERROR
            without auth_error.

    Invariants:
        - auth_error implies listed is False and risk_tier is ERROR.
        - listed is False implies risk_tier is CLEAN or ERROR.
    """

    dataset: str
    listed: bool
    reason_codes: list[str] = field(default_factory=list)
    reason: str = ""
    risk_tier: RiskTier = RiskTier.CLEAN
    lists: list[str] = field(default_factory=list)
    auth_error: bool = False

    def to_json(self) -> dict:
        return {
            "dataset": self.dataset,
            "listed": self.listed,
            "reason_codes": list(self.reason_codes),
            "reason": self.reason,
            "risk_tier": self.risk_tier.value,
            "lists": list(self.lists),
            "auth_error": self.auth_error,
        }


@dataclass
class ReputationVerdict:
    """Aggregate of all zones queried for one target.

    ``hostname`` carries the PTR name of an IP target when a multi-list
    check resolved it.
    """

    records: list[ReputationRecord] = field(default_factory=list)
    hostname: str | None = None

    @property
    def listed(self) -> bool:
        return any(r.listed for r in self.records)

    @property
    def auth_error(self) -> bool:
        return any(r.auth_error for r in self.records)

    @property
    def query_error(self) -> bool:
        """True when any zone answered only with error codes."""
        return any(r.risk_tier == RiskTier.ERROR for r in self.records)

    @property
    def lists(self) -> list[str]:
        """Distinct sub-datasets across all listed zones, first-seen order."""
        seen: list[str] = []
        for record in self.records:
            if not record.listed:
                continue
            for name in record.lists:
                if name not in seen:
                    seen.append(name)
        return seen

    @property
    def risk_tier(self) -> RiskTier:
        if any(r.risk_tier == RiskTier.HIGH for r in self.records):
            return RiskTier.HIGH
        if self.listed:
            return RiskTier.LOW
        if self.query_error:
            return RiskTier.ERROR
        return RiskTier.CLEAN

    @property
    def reason(self) -> str:
        if self.listed:
            return "; ".join(r.reason for r in self.records if r.listed)
        errors = [r.reason for r in self.records if r.risk_tier == RiskTier.ERROR]
        if errors:
            return errors[0]
        return "Not listed"

    @property
    def release_eligible(self) -> bool:
        """Only XBL, CSS and DBL listings have a release timeline."""
        if not self.listed:
            return False
        return any(
            marker in name.upper()
            for name in self.lists
            for marker in RELEASE_TIMELINE_DATASETS
        )

    def to_json(self) -> dict:
        data = {
            "listed": self.listed,
            "risk_tier": self.risk_tier.value,
            "reason": self.reason,
            "lists": self.lists,
            "zones": [r.to_json() for r in self.records],
        }
        if self.hostname is not None:
            data["ptr"] = self.hostname
        return data
