"""DNS lookups for each audit family.

Each function builds its query, resolves it once and hands the answers to
the matching parser. Failed queries raise TransportError/QueryTimeout so
the orchestrator can record them on the item.
"""

import logging
from typing import Sequence

import dns.rdatatype

from posture_audit.models.audit_target import AuditTarget, TargetKind
from posture_audit.models.policy_record import (
    CaaPolicy,
    DkimRecord,
    DnsRecordSet,
    MxSet,
    PtrRecord,
    RecordMatch,
    RecordValue,
)
from posture_audit.models.reputation_record import ReputationRecord, ReputationVerdict
from posture_audit.services import query_builder, record_parsers
from posture_audit.services.reputation_classifier import (
    BARRACUDA,
    BARRACUDA_DOMAIN,
    DBL,
    DEFAULT_DQS_SUFFIX,
    SPAMCOP,
    ZEN,
    ZRD,
    BlocklistZone,
    classify,
)
from posture_audit.services.resolver_client import DohResolver


logger = logging.getLogger(__name__)


async def lookup_txt(resolver: DohResolver, query: query_builder.DnsQuery) -> list[str]:
    """Resolve a TXT query and return the text of every TXT answer in order."""
    result = await resolver.resolve(query)
    result.raise_for_outcome()
    return [
        record_parsers.txt_text(a.data)
        for a in result.answers_of_type(dns.rdatatype.TXT)
    ]


async def lookup_spf_record(resolver: DohResolver, domain: str) -> str | None:
    """First TXT text at the domain starting with ``v=spf1``."""
    texts = await lookup_txt(resolver, query_builder.spf_query(domain))
    return record_parsers.select_policy_text(texts, query_builder.SPF_PREFIX)


async def lookup_dmarc_record(resolver: DohResolver, domain: str) -> str | None:
    """First TXT text at ``_dmarc.<domain>`` starting with ``v=DMARC1``."""
    texts = await lookup_txt(resolver, query_builder.dmarc_query(domain))
    return record_parsers.select_policy_text(texts, query_builder.DMARC_PREFIX)


async def lookup_dkim_record(
    resolver: DohResolver, domain: str, selector: str
) -> DkimRecord | None:
    result = await resolver.resolve(query_builder.dkim_query(domain, selector))
    result.raise_for_outcome()
    return record_parsers.parse_dkim(
        selector, result.answers_of_type(dns.rdatatype.TXT)
    )


async def lookup_caa_records(resolver: DohResolver, domain: str) -> CaaPolicy:
    result = await resolver.resolve(query_builder.caa_query(domain))
    result.raise_for_outcome()
    return record_parsers.parse_caa(result.answers_of_type(dns.rdatatype.CAA))


async def lookup_mx_records(resolver: DohResolver, domain: str) -> MxSet:
    result = await resolver.resolve(query_builder.mx_query(domain))
    result.raise_for_outcome()
    return record_parsers.parse_mx(result.answers_of_type(dns.rdatatype.MX))


async def lookup_ptr_record(resolver: DohResolver, target: AuditTarget) -> PtrRecord | None:
    """Reverse lookup for an IP target.

    Raises:
        InvalidTarget: If the target is not a valid IP literal (no query is sent).
    """
    query = query_builder.ptr_query(target)
    result = await resolver.resolve(query)
    result.raise_for_outcome()
    return record_parsers.parse_ptr(result.answers_of_type(dns.rdatatype.PTR))


async def lookup_record_match(
    resolver: DohResolver, domain: str, prefix: str, expected: str
) -> RecordMatch:
    query = query_builder.txt_query(domain, prefix)
    texts = await lookup_txt(resolver, query)
    return record_parsers.match_record(query.name, texts, expected)


async def lookup_records(
    resolver: DohResolver, domain: str, rdtypes: Sequence[str]
) -> DnsRecordSet:
    """Resolve each record type at a domain, one query per type.

    Raises:
        InvalidTarget: If a record type is unknown (no query is sent for it).
        TransportError: If any query fails.
    """
    record_set = DnsRecordSet(domain=domain)
    for rdtype in rdtypes:
        query = query_builder.record_query(domain, rdtype)
        result = await resolver.resolve(query)
        result.raise_for_outcome()
        record_set.records[query.rdtype] = [
            RecordValue(name=a.name, value=a.data, ttl=a.ttl)
            for a in result.answers_of_type(query.type_code)
        ]
    return record_set


def zones_for(target: AuditTarget, include_zrd: bool = False) -> list[BlocklistZone]:
    """ZEN for IP targets; DBL (and optionally ZRD) for domains."""
    if target.kind != TargetKind.DOMAIN:
        return [ZEN]
    if include_zrd:
        return [DBL, ZRD]
    return [DBL]


def blacklist_zones_for(target: AuditTarget) -> list[BlocklistZone]:
    """Spamhaus plus the public SpamCop and Barracuda lists.

    SpamCop only lists IP addresses, so domains get Spamhaus DBL and the
    Barracuda domain list.
    """
    if target.kind != TargetKind.DOMAIN:
        return [ZEN, SPAMCOP, BARRACUDA]
    return [DBL, BARRACUDA_DOMAIN]


async def lookup_reputation(
    resolver: DohResolver,
    target: AuditTarget,
    dqs_key: str,
    zones: Sequence[BlocklistZone] | None = None,
    dqs_suffix: str = DEFAULT_DQS_SUFFIX,
) -> ReputationVerdict:
    """Query each blocklist zone in turn and classify the answers.

    Args:
        resolver: DoH resolver.
        target: IP or domain target.
        dqs_key: Spamhaus DQS key, used for keyed zones only.
        zones: Zones to query (defaults to ``zones_for(target)``).
        dqs_suffix: Zone host suffix for keyed zones.

    Returns:
        ReputationVerdict: One ReputationRecord per zone queried.

    Raises:
        ValueError: If the DQS key is empty and a keyed zone is requested.
        InvalidTarget: If the target is a malformed IP literal.
        TransportError: If any zone query fails.
    """
    zones = zones or zones_for(target)
    if not dqs_key and any(zone.keyed for zone in zones):
        raise ValueError("SPAMHAUS_DQS_KEY is required for reputation lookups")

    records: list[ReputationRecord] = []
    for zone in zones:
        auth_key = dqs_key if zone.keyed else None
        query = query_builder.dnsbl_query(target, zone.host(dqs_suffix), auth_key)
        result = await resolver.resolve(query)
        result.raise_for_outcome()

        codes = [a.data for a in result.answers_of_type(dns.rdatatype.A)]
        record = classify(zone, codes)
        logger.debug(
            f"{zone.name} lookup for {target.value}: codes={codes} "
            f"risk={record.risk_tier.value}"
        )
        records.append(record)

    return ReputationVerdict(records=records)
