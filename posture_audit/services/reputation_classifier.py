"""DNSBL response-code classification.

Spamhaus encodes the meaning of a listing in the last octet of the
returned 127.0.0.0/8 address. This module maps those codes to datasets,
reasons and risk tiers, and separates credential/refusal error codes from
real listings. Third-party lists (SpamCop, Barracuda) answer with a single
listing address and are reported as low-risk listings.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Sequence

from posture_audit.models.reputation_record import ReputationRecord, RiskTier


DEFAULT_DQS_SUFFIX = "dq.spamhaus.net"

# Listing codes treated as exploit/malware/phishing activity (ZEN and DBL)
HIGH_RISK_CODES = frozenset({2, 3, 4, 5, 6, 7, 9})

# Returned for any zone when the query itself is rejected
REFUSAL_REASONS: Mapping[str, str] = MappingProxyType(
    {
        "127.255.255.252": "Query refused: typing error in DNSBL zone name",
        "127.255.255.254": "Query refused: query routed via a public/open resolver",
        "127.255.255.255": "Query refused: excessive number of queries",
    }
)

AUTH_ERROR_REASON = "Unauthorized: invalid or missing DQS key"


@dataclass(frozen=True)
class BlocklistZone:
    """A DNSBL zone.

    Attributes:
        name: Dataset name (ZEN, DBL, ZRD, SPAMCOP, ...).
        label: Leftmost zone label for DQS zones, or the full zone host
            for public zones.
        error_sentinel: Address returned for an unauthorized query.
        keyed: Whether queries carry the DQS key and suffix.
    """

    name: str
    label: str
    error_sentinel: str = ""
    keyed: bool = True

    def host(self, suffix: str = DEFAULT_DQS_SUFFIX) -> str:
        if not self.keyed:
            return self.label
        return f"{self.label}.{suffix}"


ZEN = BlocklistZone(name="ZEN", label="zen", error_sentinel="127.0.0.1")
DBL = BlocklistZone(name="DBL", label="dbl", error_sentinel="127.0.1.255")
ZRD = BlocklistZone(name="ZRD", label="zrd", error_sentinel="127.0.1.255")

# Public zones queried without a key
SPAMCOP = BlocklistZone(name="SPAMCOP", label="bl.spamcop.net", keyed=False)
BARRACUDA = BlocklistZone(name="BRBL", label="b.barracudacentral.org", keyed=False)
BARRACUDA_DOMAIN = BlocklistZone(
    name="BARRACUDA_DOMAIN", label="dbl.barracudacentral.org", keyed=False
)

SPAMHAUS_ZONES = frozenset({ZEN, DBL, ZRD})

THIRD_PARTY_REASONS: Mapping[BlocklistZone, str] = MappingProxyType(
    {
        SPAMCOP: "SpamCop - Listed (spam source)",
        BARRACUDA: "Barracuda BRBL - Listed as poor reputation",
        BARRACUDA_DOMAIN: "Barracuda DBL - Listed as poor reputation",
    }
)

# code -> (sub-dataset, reason)
ZEN_CODES: Mapping[int, tuple[str, str]] = MappingProxyType(
    {
        2: ("SBL", "SBL - Spamhaus Block List (spam source)"),
        3: ("CSS", "SBL-CSS - Spamhaus CSS (compromised spam source)"),
        4: ("XBL", "XBL - Exploits Block List (botnet/exploit)"),
        5: ("XBL", "XBL - Exploits Block List (botnet/exploit)"),
        6: ("XBL", "XBL - Exploits Block List (botnet/exploit)"),
        7: ("XBL", "XBL - Exploits Block List (botnet/exploit)"),
        9: ("DROP", "SBL-DROP - Spamhaus DROP (hijacked address space)"),
        10: ("PBL", "PBL - Policy Block List (ISP maintained)"),
        11: ("PBL", "PBL - Policy Block List (Spamhaus maintained)"),
        20: ("AuthBL", "AuthBL - Compromised credentials"),
    }
)

DBL_CODES: Mapping[int, str] = MappingProxyType(
    {
        2: "Spam domain",
        4: "Phishing domain",
        5: "Malware domain",
        6: "Botnet C&C domain",
        102: "Abused legitimate spammed domain",
        103: "Abused legitimate phishing domain",
        104: "Abused legitimate malware domain",
        105: "Abused legitimate botnet C&C domain",
        106: "Abused legitimate redirector/proxy domain",
    }
)


def last_octet(code: str) -> int | None:
    """Trailing dot-separated integer of a returned address."""
    tail = code.rsplit(".", 1)[-1]
    try:
        return int(tail)
    except ValueError:
        return None


def validate_dnsbl_response(response: str) -> bool:
    """Validate that DNSBL response is in valid 127.0.0.0/8 range.

    Args:
        response: IP address string from DNSBL response.

    Returns:
        bool: True if response is valid (starts with 127.), False otherwise.
    """
    return response.startswith("127.")


def error_reason(zone: BlocklistZone, code: str) -> str | None:
    """Return why a code is an error answer, or None for a listing code."""
    if not validate_dnsbl_response(code):
        return f"Unexpected response outside 127.0.0.0/8: {code}"
    if zone in SPAMHAUS_ZONES and code in REFUSAL_REASONS:
        return REFUSAL_REASONS[code]
    if code == zone.error_sentinel:
        return AUTH_ERROR_REASON
    octet = last_octet(code)
    if zone == ZEN and octet == 1:
        return AUTH_ERROR_REASON
    if zone in (DBL, ZRD) and octet == 255:
        return AUTH_ERROR_REASON
    return None


def describe_code(zone: BlocklistZone, code: str) -> tuple[str, str]:
    """Map a listing code to ``(sub-dataset, reason)`` for a zone."""
    octet = last_octet(code)

    if zone == ZEN:
        if octet in ZEN_CODES:
            return ZEN_CODES[octet]
        return ("ZEN", "Listed (ZEN)")

    if zone == DBL:
        if octet in DBL_CODES:
            return ("DBL", DBL_CODES[octet])
        if octet is not None and 2 <= octet <= 99:
            return ("DBL", "Bad / low reputation domain")
        if octet is not None and 102 <= octet <= 199:
            return ("DBL", "Abused but legitimate domain")
        return ("DBL", "Listed (DBL)")

    if zone in THIRD_PARTY_REASONS:
        return (zone.name, THIRD_PARTY_REASONS[zone])

    if zone == ZRD and octet is not None and 2 <= octet <= 24:
        hours = octet - 2
        return ("ZRD", f"Zero Reputation Domain (first observed {hours}-{hours + 1}h ago)")

    return (zone.name, f"Listed ({zone.name})")


def classify(zone: BlocklistZone, codes: Sequence[str]) -> ReputationRecord:
    """Classify the A-record answers of one zone query.

    Error sentinels, refusal codes and out-of-range answers never count
    as listings. A zone answering only with error codes yields an ERROR
    record (``auth_error`` set for credential errors).

    Args:
        zone: Zone that was queried.
        codes: Returned addresses in answer order (empty for NXDOMAIN).

    Returns:
        ReputationRecord: Classified zone result.
    """
    listing_codes: list[str] = []
    errors: list[str] = []

    for code in codes:
        reason = error_reason(zone, code)
        if reason is None:
            listing_codes.append(code)
        else:
            errors.append(reason)

    if listing_codes:
        lists: list[str] = []
        reasons: list[str] = []
        high_risk = False
        for code in listing_codes:
            dataset, reason = describe_code(zone, code)
            if dataset not in lists:
                lists.append(dataset)
            if reason not in reasons:
                reasons.append(reason)
            if zone in (ZEN, DBL) and last_octet(code) in HIGH_RISK_CODES:
                high_risk = True

        return ReputationRecord(
            dataset=zone.name,
            listed=True,
            reason_codes=list(codes),
            reason=", ".join(reasons),
            risk_tier=RiskTier.HIGH if high_risk else RiskTier.LOW,
            lists=lists,
        )

    if errors:
        return ReputationRecord(
            dataset=zone.name,
            listed=False,
            reason_codes=list(codes),
            reason=errors[0],
            risk_tier=RiskTier.ERROR,
            auth_error=AUTH_ERROR_REASON in errors,
        )

    return ReputationRecord(dataset=zone.name, listed=False, reason="Not listed")
