"""Unit tests for target normalization and batch parsing."""

import pytest

from posture_audit.models.audit_target import AuditTarget, TargetKind, parse_targets


class TestAuditTargetParse:
    """Test AuditTarget.parse() normalization."""

    def test_domain_is_lowercased(self):
        """Test that domains are trimmed and lowercased."""
        target = AuditTarget.parse("  Example.COM ")

        assert target.value == "example.com"
        assert target.kind == TargetKind.DOMAIN
        assert target.valid is True

    def test_url_scheme_and_trailing_characters_stripped(self):
        """Test pasted URLs normalize to the bare domain."""
        assert AuditTarget.parse("https://Example.com/").value == "example.com"
        assert AuditTarget.parse("example.com.").value == "example.com"

    def test_ipv4(self):
        """Test that a dotted quad parses as a valid IPv4 target."""
        target = AuditTarget.parse("203.0.113.45")

        assert target.kind == TargetKind.IPV4
        assert target.is_ip is True
        assert target.valid is True

    def test_out_of_range_dotted_quad_is_invalid_ipv4(self):
        """Test that an out-of-range dotted quad is kept as an invalid IPv4 target."""
        target = AuditTarget.parse("300.1.1.1")

        assert target.kind == TargetKind.IPV4
        assert target.valid is False

    def test_ipv6(self):
        """Test that IPv6 literals are lowercased."""
        target = AuditTarget.parse("2001:DB8::1")

        assert target.value == "2001:db8::1"
        assert target.kind == TargetKind.IPV6
        assert target.valid is True

    def test_ipv6_spellings_compress_to_one_form(self):
        """Test expanded and zero-padded IPv6 spellings normalize identically."""
        values = {
            AuditTarget.parse(raw).value
            for raw in ("2001:db8::1", "2001:0db8:0:0::1", "2001:DB8:0000::0001")
        }

        assert values == {"2001:db8::1"}

    def test_malformed_ipv6_is_invalid(self):
        """Test that a malformed IPv6 literal is marked invalid."""
        target = AuditTarget.parse("2001:db8:::zz")

        assert target.kind == TargetKind.IPV6
        assert target.valid is False

    def test_empty_raises(self):
        """Test that a blank line cannot be parsed on its own."""
        with pytest.raises(ValueError, match="cannot be empty"):
            AuditTarget.parse("   ")


class TestParseTargets:
    """Test parse_targets() splitting and deduplication."""

    def test_case_insensitive_dedup(self):
        """Test 'a.com\\na.com\\nA.COM' yields exactly one target."""
        targets = parse_targets("a.com\na.com\nA.COM")

        assert [t.value for t in targets] == ["a.com"]

    def test_order_preserved_and_blanks_skipped(self):
        """Test that first-seen order is kept across newline and comma separators."""
        targets = parse_targets("b.com\n\n  \na.com, c.com,b.com")

        assert [t.value for t in targets] == ["b.com", "a.com", "c.com"]

    def test_mixed_kinds(self):
        """Test that domains, IPv4 and IPv6 targets can share a batch."""
        targets = parse_targets("example.com\n1.2.3.4\n::1")

        assert [t.kind for t in targets] == [
            TargetKind.DOMAIN,
            TargetKind.IPV4,
            TargetKind.IPV6,
        ]

    def test_limit_applied_after_dedup(self):
        """Test that the target limit counts unique targets only."""
        targets = parse_targets("a.com\na.com\nb.com\nc.com", limit=2)

        assert [t.value for t in targets] == ["a.com", "b.com"]

    def test_empty_input(self):
        """Test that empty input yields no targets."""
        assert parse_targets("") == []
