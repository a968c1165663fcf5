"""Query construction for each record family.

Every builder returns a DnsQuery naming the exact owner name and record
type to resolve. Nothing here touches the network.
"""

from dataclasses import dataclass

import dns.rdatatype

from posture_audit.errors import InvalidTarget
from posture_audit.models.audit_target import AuditTarget
from posture_audit.utils.ip_utils import build_dnsbl_query, build_ptr_name


SPF_PREFIX = "v=spf1"
DMARC_PREFIX = "v=DMARC1"

# Types resolved by a record lookup when none are configured
DEFAULT_RECORD_TYPES = ("A", "MX", "TXT")


@dataclass(frozen=True)
class DnsQuery:
    """One DNS question.

    Attributes:
        name: Owner name, without trailing dot.
        rdtype: Record type mnemonic (TXT, MX, CAA, PTR, A, ...).
    """

    name: str
    rdtype: str

    @property
    def type_code(self) -> int:
        """Numeric record type, e.g. 15 for MX or 257 for CAA."""
        return int(dns.rdatatype.from_text(self.rdtype))


def spf_query(domain: str) -> DnsQuery:
    return DnsQuery(domain, "TXT")


def dmarc_query(domain: str) -> DnsQuery:
    return DnsQuery(f"_dmarc.{domain}", "TXT")


def dkim_query(domain: str, selector: str) -> DnsQuery:
    if not selector:
        raise InvalidTarget("DKIM selector cannot be empty")
    return DnsQuery(f"{selector}._domainkey.{domain}", "TXT")


def caa_query(domain: str) -> DnsQuery:
    return DnsQuery(domain, "CAA")


def mx_query(domain: str) -> DnsQuery:
    return DnsQuery(domain, "MX")


def txt_query(domain: str, prefix: str = "") -> DnsQuery:
    """TXT query at ``<prefix>.<domain>``, or the domain itself without prefix."""
    prefix = prefix.strip().strip(".")
    if prefix:
        return DnsQuery(f"{prefix}.{domain}", "TXT")
    return DnsQuery(domain, "TXT")


def normalize_record_type(rdtype: str) -> str:
    """Upper-cased mnemonic of a known record type.

    Raises:
        InvalidTarget: If the record type is unknown.
    """
    rdtype = rdtype.strip().upper()
    try:
        dns.rdatatype.from_text(rdtype)
    except dns.rdatatype.UnknownRdatatype as e:
        raise InvalidTarget(f"Unknown record type: {rdtype}") from e
    return rdtype


def record_query(domain: str, rdtype: str) -> DnsQuery:
    """Generic query for any known record type.

    Raises:
        InvalidTarget: If the record type is unknown.
    """
    return DnsQuery(domain, normalize_record_type(rdtype))


def ptr_query(target: AuditTarget) -> DnsQuery:
    """Build the reverse-zone PTR query for an IP target.

    Raises:
        InvalidTarget: If the target is not a valid IPv4 or IPv6 literal.
    """
    if not target.is_ip or not target.valid:
        raise InvalidTarget(f"Not a valid IP address: {target.value}")
    return DnsQuery(build_ptr_name(target.value), "PTR")


def dnsbl_query(
    target: AuditTarget, zone_host: str, auth_key: str | None = None
) -> DnsQuery:
    """Build the DNSBL query for a target.

    IP targets are reversed; domains are used verbatim as the leftmost
    label. A Spamhaus DQS key sits between the target and the zone;
    public zones are queried without one.

    Args:
        target: Audit target.
        zone_host: Full zone host, e.g. ``zen.dq.spamhaus.net``.
        auth_key: DQS key, or None for public zones.

    Returns:
        DnsQuery: A-record query.

    Raises:
        InvalidTarget: If the target is a malformed IP literal.
    """
    if not target.valid:
        raise InvalidTarget(f"Not a valid IP address: {target.value}")
    name = build_dnsbl_query(target.value, zone_host, auth_key)
    return DnsQuery(name, "A")
