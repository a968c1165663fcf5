"""Unit tests for DNSBL response-code classification."""

from posture_audit.models.reputation_record import ReputationVerdict, RiskTier
from posture_audit.services.reputation_classifier import (
    AUTH_ERROR_REASON,
    BARRACUDA,
    BARRACUDA_DOMAIN,
    DBL,
    SPAMCOP,
    ZEN,
    ZRD,
    classify,
    describe_code,
    last_octet,
    validate_dnsbl_response,
)


def test_last_octet():
    """Test that the trailing octet is parsed and garbage yields None."""
    assert last_octet("127.0.0.4") == 4
    assert last_octet("garbage") is None


def test_validate_dnsbl_response():
    """Test only 127.0.0.0/8 answers are accepted."""
    assert validate_dnsbl_response("127.0.0.2") is True
    assert validate_dnsbl_response("192.0.2.1") is False


class TestZenClassification:
    """Test ZEN zone codes."""

    def test_not_listed(self):
        """Test that NXDOMAIN from ZEN is a clean result."""
        record = classify(ZEN, [])

        assert record.listed is False
        assert record.risk_tier == RiskTier.CLEAN
        assert record.reason == "Not listed"

    def test_error_sentinel_is_auth_error_not_listing(self):
        """Test 127.0.0.1 never counts as listed or clean."""
        record = classify(ZEN, ["127.0.0.1"])

        assert record.listed is False
        assert record.auth_error is True
        assert record.risk_tier == RiskTier.ERROR
        assert record.reason == AUTH_ERROR_REASON

    def test_xbl_is_high_risk(self):
        """Test that XBL codes are high risk."""
        record = classify(ZEN, ["127.0.0.4"])

        assert record.listed is True
        assert record.risk_tier == RiskTier.HIGH
        assert record.lists == ["XBL"]

    def test_pbl_is_low_risk(self):
        """Test that PBL codes are low risk and collapse to one dataset."""
        record = classify(ZEN, ["127.0.0.10", "127.0.0.11"])

        assert record.listed is True
        assert record.risk_tier == RiskTier.LOW
        assert record.lists == ["PBL"]

    def test_multiple_codes_joined(self):
        """Test that several listing codes keep every dataset and code."""
        record = classify(ZEN, ["127.0.0.2", "127.0.0.10"])

        assert record.lists == ["SBL", "PBL"]
        assert record.reason.count(",") == 1
        assert record.reason_codes == ["127.0.0.2", "127.0.0.10"]

    def test_unknown_code_generic(self):
        """Test that an unmapped ZEN code gets a generic reason."""
        assert describe_code(ZEN, "127.0.0.99") == ("ZEN", "Listed (ZEN)")

    def test_listing_alongside_error_code_is_listed(self):
        """Test that a real listing wins over an error sentinel in the same answer."""
        record = classify(ZEN, ["127.0.0.1", "127.0.0.3"])

        assert record.listed is True
        assert record.auth_error is False
        assert record.lists == ["CSS"]

    def test_refusal_code_is_error(self):
        """Test that a refusal code is an error without being a credential error."""
        record = classify(ZEN, ["127.255.255.254"])

        assert record.listed is False
        assert record.auth_error is False
        assert record.risk_tier == RiskTier.ERROR
        assert "public/open resolver" in record.reason

    def test_answer_outside_loopback_is_error(self):
        """Test that answers outside 127.0.0.0/8 are never listings."""
        record = classify(ZEN, ["192.0.2.1"])

        assert record.listed is False
        assert record.risk_tier == RiskTier.ERROR


class TestDblClassification:
    """Test DBL zone codes."""

    def test_error_sentinel(self):
        """Test that the DBL error sentinel is a credential error."""
        record = classify(DBL, ["127.0.1.255"])

        assert record.listed is False
        assert record.auth_error is True

    def test_phishing_is_high_risk(self):
        """Test that DBL phishing listings are high risk."""
        record = classify(DBL, ["127.0.1.4"])

        assert record.listed is True
        assert record.risk_tier == RiskTier.HIGH
        assert record.reason == "Phishing domain"

    def test_abused_legitimate_ranges(self):
        """Test the DBL reason ranges for abused and low-reputation domains."""
        assert describe_code(DBL, "127.0.1.103")[1] == "Abused legitimate phishing domain"
        assert describe_code(DBL, "127.0.1.150")[1] == "Abused but legitimate domain"
        assert describe_code(DBL, "127.0.1.50")[1] == "Bad / low reputation domain"

    def test_abused_legitimate_is_low_risk(self):
        """Test that abused legitimate domains are low risk."""
        assert classify(DBL, ["127.0.1.102"]).risk_tier == RiskTier.LOW


def test_zrd_codes_describe_age_and_are_low_risk():
    """Test that ZRD codes describe the first-seen age and stay low risk."""
    record = classify(ZRD, ["127.0.2.5"])

    assert record.listed is True
    assert record.risk_tier == RiskTier.LOW
    assert "3-4h" in record.reason



class TestThirdPartyZones:
    """Test the public SpamCop and Barracuda lists."""

    def test_hosts_ignore_dqs_suffix(self):
        """Test public zones are queried at their own host, not under the DQS suffix."""
        assert SPAMCOP.host() == "bl.spamcop.net"
        assert BARRACUDA.host("example.net") == "b.barracudacentral.org"
        assert BARRACUDA_DOMAIN.host() == "dbl.barracudacentral.org"
        assert ZEN.host() == "zen.dq.spamhaus.net"

    def test_spamcop_listing_is_low_risk(self):
        """Test a SpamCop answer is a listing but never high risk."""
        record = classify(SPAMCOP, ["127.0.0.2"])

        assert record.listed is True
        assert record.risk_tier == RiskTier.LOW
        assert record.lists == ["SPAMCOP"]
        assert record.reason == "SpamCop - Listed (spam source)"

    def test_barracuda_listing(self):
        """Test Barracuda listings carry the poor-reputation reason."""
        assert describe_code(BARRACUDA, "127.0.0.2") == (
            "BRBL",
            "Barracuda BRBL - Listed as poor reputation",
        )
        assert classify(BARRACUDA_DOMAIN, ["127.0.0.2"]).lists == ["BARRACUDA_DOMAIN"]

    def test_not_listed(self):
        """Test NXDOMAIN from a public list is clean."""
        record = classify(SPAMCOP, [])

        assert record.listed is False
        assert record.risk_tier == RiskTier.CLEAN

    def test_third_party_listings_not_release_eligible(self):
        """Test only Spamhaus datasets get a release timeline."""
        verdict = ReputationVerdict(
            records=[classify(BARRACUDA, ["127.0.0.2"]), classify(BARRACUDA_DOMAIN, ["127.0.0.2"])]
        )

        assert verdict.listed is True
        assert verdict.release_eligible is False


class TestReputationVerdict:
    """Test aggregation across zones."""

    def test_high_wins(self):
        """Test that any high-risk zone makes the whole verdict high risk."""
        verdict = ReputationVerdict(
            records=[classify(DBL, ["127.0.1.102"]), classify(ZRD, ["127.0.2.3"])]
        )
        assert verdict.risk_tier == RiskTier.LOW

        verdict.records.append(classify(DBL, ["127.0.1.5"]))
        assert verdict.risk_tier == RiskTier.HIGH

    def test_release_eligible_only_for_timeline_datasets(self):
        """Test that only XBL, CSS and DBL listings are release eligible."""
        assert ReputationVerdict(records=[classify(ZEN, ["127.0.0.4"])]).release_eligible is True
        assert ReputationVerdict(records=[classify(ZEN, ["127.0.0.3"])]).release_eligible is True
        assert ReputationVerdict(records=[classify(DBL, ["127.0.1.2"])]).release_eligible is True
        assert ReputationVerdict(records=[classify(ZEN, ["127.0.0.2"])]).release_eligible is False
        assert ReputationVerdict(records=[classify(ZEN, ["127.0.0.10"])]).release_eligible is False
        assert ReputationVerdict(records=[classify(ZEN, [])]).release_eligible is False

    def test_auth_error_verdict(self):
        """Test the aggregate view of a credential error."""
        verdict = ReputationVerdict(records=[classify(ZEN, ["127.0.0.1"])])

        assert verdict.listed is False
        assert verdict.auth_error is True
        assert verdict.risk_tier == RiskTier.ERROR
        assert verdict.reason == AUTH_ERROR_REASON

    def test_clean_verdict_json(self):
        """Test the serialized form of a clean verdict."""
        verdict = ReputationVerdict(records=[classify(ZEN, [])])

        assert verdict.to_json()["risk_tier"] == "clean"
        assert verdict.to_json()["reason"] == "Not listed"

    def test_ptr_hostname_in_json(self):
        """Test a resolved PTR name is reported alongside the zones."""
        verdict = ReputationVerdict(records=[classify(SPAMCOP, [])], hostname="mail.example.com")

        assert verdict.to_json()["ptr"] == "mail.example.com"
        assert "ptr" not in ReputationVerdict(records=[classify(ZEN, [])]).to_json()
