"""Unit tests for per-family DNS lookups."""

import pytest

from posture_audit.errors import InvalidTarget, TransportError
from posture_audit.models.audit_target import AuditTarget
from posture_audit.models.reputation_record import RiskTier
from posture_audit.services import dns_lookups
from posture_audit.services.reputation_classifier import (
    BARRACUDA,
    BARRACUDA_DOMAIN,
    DBL,
    SPAMCOP,
    ZEN,
    ZRD,
)
from posture_audit.services.resolver_client import DohResolver


class TestPolicyLookups:
    """Test TXT-based policy lookups."""

    @pytest.mark.asyncio
    async def test_spf_picks_first_prefixed_answer(self, fake_session):
        """Test that the first v=spf1 answer wins over other TXT records."""
        fake_session.add_dns(
            "example.com",
            "TXT",
            ['"google-site-verification=abc"', '"v=spf1 include:_spf.google.com ~all"', '"v=spf1 -all"'],
        )

        record = await dns_lookups.lookup_spf_record(DohResolver(fake_session), "example.com")

        assert record == "v=spf1 include:_spf.google.com ~all"

    @pytest.mark.asyncio
    async def test_spf_nxdomain_is_missing_not_error(self, fake_session):
        """Test that NXDOMAIN means no SPF record rather than a failure."""
        assert await dns_lookups.lookup_spf_record(DohResolver(fake_session), "example.com") is None

    @pytest.mark.asyncio
    async def test_dmarc_queries_underscore_label(self, fake_session):
        """Test that DMARC is looked up under the _dmarc label."""
        fake_session.add_dns("_dmarc.example.com", "TXT", ['"v=DMARC1; p=reject"'])

        record = await dns_lookups.lookup_dmarc_record(DohResolver(fake_session), "example.com")

        assert record == "v=DMARC1; p=reject"
        assert fake_session.dns_queries() == ["_dmarc.example.com"]

    @pytest.mark.asyncio
    async def test_dmarc_with_leading_whitespace_is_found(self, fake_session):
        """Test a padded DMARC TXT answer is not reported as missing."""
        fake_session.add_dns("_dmarc.example.com", "TXT", ['" v=DMARC1; p=reject"'])

        record = await dns_lookups.lookup_dmarc_record(DohResolver(fake_session), "example.com")

        assert record == "v=DMARC1; p=reject"

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, fake_session):
        """Test that a SERVFAIL answer raises TransportError."""
        fake_session.add_dns("example.com", "TXT", [], status=2)

        with pytest.raises(TransportError):
            await dns_lookups.lookup_spf_record(DohResolver(fake_session), "example.com")

    @pytest.mark.asyncio
    async def test_cname_entries_ignored(self, fake_session):
        """Test CNAME chain answers do not leak into the DKIM key text."""
        name = "s1._domainkey.example.com"
        fake_session.add_dns(name, "TXT", ['"v=DKIM1; p=ABC"'])
        payload = fake_session.dns_routes[(name, "16")].payload
        payload["Answer"].insert(
            0, {"name": f"{name}.", "type": 5, "TTL": 300, "data": "s1.dkim.provider.net."}
        )

        record = await dns_lookups.lookup_dkim_record(DohResolver(fake_session), "example.com", "s1")

        assert record.raw == "v=DKIM1; p=ABC"


class TestPtrLookup:
    @pytest.mark.asyncio
    async def test_ptr_found(self, fake_session):
        """Test that the PTR hostname is returned without the root dot."""
        fake_session.add_dns("4.3.2.1.in-addr.arpa", "PTR", ["host.example.net."])

        record = await dns_lookups.lookup_ptr_record(
            DohResolver(fake_session), AuditTarget.parse("1.2.3.4")
        )

        assert record.hostname == "host.example.net"

    @pytest.mark.asyncio
    async def test_invalid_target_makes_no_request(self, fake_session):
        """Test that a PTR lookup for a domain fails before any request."""
        with pytest.raises(InvalidTarget):
            await dns_lookups.lookup_ptr_record(
                DohResolver(fake_session), AuditTarget.parse("example.com")
            )

        assert fake_session.calls == []


def test_zones_for():
    """Test zone selection by target kind and the ZRD option."""
    assert dns_lookups.zones_for(AuditTarget.parse("1.2.3.4")) == [ZEN]
    assert dns_lookups.zones_for(AuditTarget.parse("::1")) == [ZEN]
    assert dns_lookups.zones_for(AuditTarget.parse("example.com")) == [DBL]
    assert dns_lookups.zones_for(AuditTarget.parse("example.com"), include_zrd=True) == [DBL, ZRD]



def test_blacklist_zones_for():
    """Test SpamCop is only consulted for IP targets."""
    assert dns_lookups.blacklist_zones_for(AuditTarget.parse("1.2.3.4")) == [ZEN, SPAMCOP, BARRACUDA]
    assert dns_lookups.blacklist_zones_for(AuditTarget.parse("example.com")) == [
        DBL,
        BARRACUDA_DOMAIN,
    ]


class TestReputationLookup:
    """Test Spamhaus DQS lookups."""

    @pytest.mark.asyncio
    async def test_listed_ip(self, fake_session):
        """Test that an XBL answer for an IP is a high-risk listing."""
        fake_session.add_dns("45.113.0.203.KEY.zen.dq.spamhaus.net", "A", ["127.0.0.4"])

        verdict = await dns_lookups.lookup_reputation(
            DohResolver(fake_session), AuditTarget.parse("203.0.113.45"), "KEY"
        )

        assert verdict.listed is True
        assert verdict.risk_tier == RiskTier.HIGH
        assert verdict.lists == ["XBL"]

    @pytest.mark.asyncio
    async def test_nxdomain_is_clean(self, fake_session):
        """Test that NXDOMAIN from DBL is a clean result."""
        verdict = await dns_lookups.lookup_reputation(
            DohResolver(fake_session), AuditTarget.parse("example.com"), "KEY"
        )

        assert verdict.listed is False
        assert verdict.risk_tier == RiskTier.CLEAN
        assert fake_session.dns_queries() == ["example.com.KEY.dbl.dq.spamhaus.net"]

    @pytest.mark.asyncio
    async def test_empty_key_rejected(self, fake_session):
        """Test that Spamhaus lookups refuse to run without a key."""
        with pytest.raises(ValueError, match="SPAMHAUS_DQS_KEY"):
            await dns_lookups.lookup_reputation(
                DohResolver(fake_session), AuditTarget.parse("1.2.3.4"), ""
            )

    @pytest.mark.asyncio
    async def test_custom_suffix(self, fake_session):
        """Test that a custom DQS suffix replaces the default zone host."""
        await dns_lookups.lookup_reputation(
            DohResolver(fake_session),
            AuditTarget.parse("1.2.3.4"),
            "KEY",
            dqs_suffix="dq.example.net",
        )

        assert fake_session.dns_queries() == ["4.3.2.1.KEY.zen.dq.example.net"]

    @pytest.mark.asyncio
    async def test_public_zones_need_no_key(self, fake_session):
        """Test SpamCop and Barracuda can be queried without a DQS key."""
        fake_session.add_dns("4.3.2.1.bl.spamcop.net", "A", ["127.0.0.2"])

        verdict = await dns_lookups.lookup_reputation(
            DohResolver(fake_session),
            AuditTarget.parse("1.2.3.4"),
            "",
            zones=[SPAMCOP, BARRACUDA],
        )

        assert fake_session.dns_queries() == [
            "4.3.2.1.bl.spamcop.net",
            "4.3.2.1.b.barracudacentral.org",
        ]
        assert verdict.lists == ["SPAMCOP"]

    @pytest.mark.asyncio
    async def test_key_required_when_any_zone_keyed(self, fake_session):
        """Test mixing Spamhaus into a keyless lookup still demands the key."""
        with pytest.raises(ValueError, match="SPAMHAUS_DQS_KEY"):
            await dns_lookups.lookup_reputation(
                DohResolver(fake_session),
                AuditTarget.parse("1.2.3.4"),
                "",
                zones=[ZEN, SPAMCOP],
            )

        assert fake_session.calls == []


class TestRecordLookup:
    """Test the generic per-type lookup."""

    @pytest.mark.asyncio
    async def test_one_query_per_type(self, fake_session):
        """Test each requested type is resolved and CNAME chain entries dropped."""
        fake_session.add_dns("example.com", "NS", ["ns1.example.net.", "ns2.example.net."])

        record_set = await dns_lookups.lookup_records(
            DohResolver(fake_session), "example.com", ["ns", "SOA"]
        )

        assert list(record_set.records) == ["NS", "SOA"]
        assert [v.value for v in record_set.records["NS"]] == ["ns1.example.net.", "ns2.example.net."]
        assert record_set.records["SOA"] == []
        assert record_set.is_empty is False

    @pytest.mark.asyncio
    async def test_unknown_type_rejected(self, fake_session):
        """Test an unknown record type fails before its query is sent."""
        with pytest.raises(InvalidTarget, match="Unknown record type"):
            await dns_lookups.lookup_records(DohResolver(fake_session), "example.com", ["BOGUS"])

        assert fake_session.calls == []

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, fake_session):
        """Test a failed query aborts the whole lookup."""
        fake_session.add_dns("example.com", "A", [], status=2)

        with pytest.raises(TransportError):
            await dns_lookups.lookup_records(DohResolver(fake_session), "example.com", ["A", "MX"])
