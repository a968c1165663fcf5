"""Unit tests for batch summary aggregation."""

from datetime import datetime, timezone

from posture_audit.models.audit_item import AuditItem, AuditKind, LifecycleState
from posture_audit.models.audit_target import AuditTarget
from posture_audit.models.batch_summary import BatchSummary, NetworkConnectivityResult
from posture_audit.models.reputation_record import (
    ReputationRecord,
    ReputationVerdict,
    RiskTier,
)


def finished_item(item_id, target, state, result=None):
    item = AuditItem(
        id=item_id,
        target=AuditTarget.parse(target),
        kind=AuditKind.REPUTATION,
        generation=1,
    )
    if state == LifecycleState.INVALID:
        item.transition(state)
    else:
        item.transition(LifecycleState.LOADING)
        item.transition(state)
    item.result = result
    return item


def make_summary(items, connectivity=None):
    return BatchSummary(
        kind=AuditKind.REPUTATION,
        generation=1,
        timestamp=datetime(2026, 1, 5, 9, 0, 0, tzinfo=timezone.utc),
        execution_duration_ms=1200,
        items=items,
        network_connectivity=connectivity,
    )


HIGH = ReputationVerdict(
    [ReputationRecord("ZEN", True, ["127.0.0.2"], "SBL", RiskTier.HIGH, ["SBL"])]
)
LOW = ReputationVerdict(
    [ReputationRecord("ZEN", True, ["127.0.0.10"], "PBL", RiskTier.LOW, ["PBL"])]
)


class TestBatchSummaryCounts:
    """Test aggregate counters."""

    def test_state_counts_cover_every_item(self):
        """Test that state counts add up to the item count and derived counters agree."""
        items = [
            finished_item(1, "1.2.3.4", LifecycleState.SUCCESS, HIGH),
            finished_item(2, "1.2.3.5", LifecycleState.SUCCESS, LOW),
            finished_item(3, "1.2.3.6", LifecycleState.ERROR),
            finished_item(4, "1.2.3.7", LifecycleState.TIMEOUT),
        ]
        summary = make_summary(items)

        counts = summary.state_counts
        assert sum(counts.values()) == len(items)
        assert counts["success"] == 2
        assert counts["pending"] == 0
        assert summary.listed_items == 2
        assert summary.high_risk_items == 1
        assert summary.failed_items == 2
        assert summary.failure_rate == 0.5

    def test_empty_batch(self):
        """Test that an empty batch has no failures and no network issue."""
        summary = make_summary([])

        assert summary.failure_rate == 0.0
        assert summary.network_issue_detected is False


class TestNetworkIssueDetection:
    """Test network issue correlation with connectivity checks."""

    def test_detected_when_failures_and_both_unreachable(self):
        """Test that a network issue is flagged when failures coincide with both resolvers down."""
        items = [finished_item(1, "1.2.3.4", LifecycleState.TIMEOUT)]
        summary = make_summary(
            items, NetworkConnectivityResult(True, cloudflare_reachable=False, google_reachable=False)
        )

        assert summary.network_issue_detected is True

    def test_not_detected_when_one_provider_reachable(self):
        """Test that one reachable resolver rules out a network issue."""
        items = [finished_item(1, "1.2.3.4", LifecycleState.TIMEOUT)]
        summary = make_summary(
            items, NetworkConnectivityResult(True, cloudflare_reachable=True, google_reachable=False)
        )

        assert summary.network_issue_detected is False

    def test_not_detected_below_threshold(self):
        """Test that a network issue needs at least half the items failed."""
        items = [
            finished_item(1, "1.2.3.4", LifecycleState.TIMEOUT),
            finished_item(2, "1.2.3.5", LifecycleState.SUCCESS, LOW),
            finished_item(3, "1.2.3.6", LifecycleState.INVALID),
        ]
        summary = make_summary(
            items, NetworkConnectivityResult(True, cloudflare_reachable=False, google_reachable=False)
        )

        assert summary.network_issue_detected is False

    def test_disabled_check_never_reports_down(self):
        """Test that a disabled connectivity check never reports the network down."""
        assert NetworkConnectivityResult(check_enabled=False).network_down is False


def test_to_json_structure():
    """Test the serialized execution summary and item results."""
    items = [finished_item(1, "1.2.3.4", LifecycleState.SUCCESS, HIGH)]
    data = make_summary(items).to_json()

    summary = data["execution_summary"]
    assert summary["kind"] == "reputation"
    assert summary["timestamp"] == "2026-01-05T09:00:00+00:00"
    assert summary["total_items"] == 1
    assert list(summary["state_counts"]) == sorted(summary["state_counts"])
    assert data["items"][0]["result"]["risk_tier"] == "high"
    assert data["network_connectivity"] is None
