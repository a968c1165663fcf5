"""Decoders turning raw record text into structured policy records.

All functions here are pure: they take TXT strings or RawAnswer lists and
return models from ``posture_audit.models.policy_record``.
"""

import re
from typing import Iterable, Sequence

from posture_audit.errors import RecordParseError
from posture_audit.models.dns_answer import RawAnswer
from posture_audit.models.policy_record import (
    CaaPolicy,
    CaaRecord,
    DkimRecord,
    DmarcRecord,
    MatchStatus,
    MxRecord,
    MxSet,
    PtrRecord,
    RecordMatch,
    RecordStatus,
    SpfRecord,
)


# RFC 7208 section 4.6.4
SPF_LOOKUP_LIMIT = 10

# include:, exists:, a:, mx:, ptr and bare a / mx, each optionally qualified
_SPF_LOOKUP_RE = re.compile(
    r"(?:^|(?<=\s))[+\-~?]?"
    r"(?:include:|exists:|a:|mx:|ptr(?=[:/\s]|$)|a(?=[/\s]|$)|mx(?=[/\s]|$))",
    re.IGNORECASE,
)
_SPF_ALL_TOKENS = frozenset({"all", "+all", "-all", "~all", "?all"})
_QUOTED_RE = re.compile(r'"((?:[^"\\]|\\.)*)"')

DEFAULT_PROVIDER = "Custom / Private"

# (hostname substrings, provider label); first match wins
MX_PROVIDER_SIGNATURES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("google.com", "googlemail.com"), "Google Workspace"),
    (("outlook.com", "protection.outlook.com"), "Microsoft 365"),
    (("zoho.com", "zoho.eu"), "Zoho Mail"),
    (("amazonaws.com",), "Amazon SES"),
    (("yahoodns.net", "yahoo.com"), "Yahoo"),
    (("secureserver.net",), "GoDaddy"),
    (("mimecast.com",), "Mimecast"),
    (("pphosted.com",), "Proofpoint"),
    (("icloud.com", "apple.com"), "Apple iCloud"),
    (("protonmail.ch", "proton.me"), "Proton Mail"),
    (("fastmail.com",), "Fastmail"),
    (("mailgun.org",), "Mailgun"),
    (("sendgrid.net",), "SendGrid"),
    (("mandrillapp.com",), "Mandrill"),
)


def txt_text(data: str) -> str:
    """Return the text of a TXT record's presentation data.

    Quoted character-strings are unescaped and concatenated without a
    separator; unquoted data is returned unchanged.

    Examples:
        >>> txt_text('"v=DKIM1; k=rsa; " "p=MIGf"')
        'v=DKIM1; k=rsa; p=MIGf'
    """
    parts = _QUOTED_RE.findall(data)
    if not parts:
        return data.strip()
    return "".join(re.sub(r"\\(.)", r"\1", p) for p in parts)


def select_policy_text(texts: Iterable[str], prefix: str) -> str | None:
    """Pick the first TXT text starting with ``prefix`` (case-insensitive).

    Surrounding whitespace is ignored and stripped from the returned text.

    Any later matching texts are ignored.
    """
    wanted = prefix.lower()
    for text in texts:
        text = text.strip()
        if text.lower().startswith(wanted):
            return text
    return None


def count_spf_lookups(record: str) -> int:
    """Count DNS-lookup-consuming mechanisms in an SPF record."""
    return len(_SPF_LOOKUP_RE.findall(record))


def parse_spf(record: str | None) -> SpfRecord:
    """Parse SPF record text.

    Args:
        record: Selected SPF text, or None when no record was found.

    Returns:
        SpfRecord: MISSING, INVALID, WARNING (more than 10 lookups) or VALID.
    """
    if record is None:
        return SpfRecord(status=RecordStatus.MISSING)

    if not record.strip().lower().startswith("v=spf1"):
        return SpfRecord(status=RecordStatus.INVALID, raw=record)

    lookups = count_spf_lookups(record)
    mechanism = next(
        (tok for tok in record.split() if tok.lower() in _SPF_ALL_TOKENS), ""
    )
    status = RecordStatus.WARNING if lookups > SPF_LOOKUP_LIMIT else RecordStatus.VALID

    return SpfRecord(
        status=status, lookup_count=lookups, mechanism=mechanism, raw=record
    )


def parse_tags(record: str) -> dict[str, str]:
    """Split a ``k=v; k=v`` tag list into a dict with lowercased keys.

    The first occurrence of a key wins; values keep their case.
    """
    tags: dict[str, str] = {}
    for part in record.split(";"):
        key, sep, value = part.partition("=")
        if not sep:
            continue
        key = key.strip().lower()
        if key and key not in tags:
            tags[key] = value.strip()
    return tags


def _uri_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [uri.strip() for uri in value.split(",") if uri.strip()]


def parse_dmarc(record: str | None) -> DmarcRecord:
    """Parse DMARC record text.

    Args:
        record: Selected DMARC text, or None when no record was found.

    Returns:
        DmarcRecord: MISSING, INVALID or VALID with RFC 7489 defaults.
    """
    if record is None:
        return DmarcRecord(status=RecordStatus.MISSING)

    if not record.strip().upper().startswith("V=DMARC1"):
        return DmarcRecord(status=RecordStatus.INVALID, raw=record)

    tags = parse_tags(record)
    policy = tags.get("p", "").lower() or "none"

    try:
        pct = int(tags.get("pct", "100"))
    except ValueError:
        pct = 100

    return DmarcRecord(
        status=RecordStatus.VALID,
        policy=policy,
        adkim=tags.get("adkim", "").lower() or "r",
        aspf=tags.get("aspf", "").lower() or "r",
        subdomain_policy=tags.get("sp", "").lower() or policy,
        pct=pct,
        rua=_uri_list(tags.get("rua")),
        ruf=_uri_list(tags.get("ruf")),
        raw=record,
    )


def parse_dkim(selector: str, answers: Sequence[RawAnswer]) -> DkimRecord | None:
    """Concatenate all TXT strings of a DKIM lookup in answer order.

    Returns:
        DkimRecord | None: None when no TXT text was returned.
    """
    raw = "".join(txt_text(a.data) for a in answers)
    if not raw:
        return None

    tags = parse_tags(raw)
    return DkimRecord(
        selector=selector,
        raw=raw,
        version=tags.get("v", ""),
        key_type=tags.get("k", "rsa" if "p" in tags else ""),
        public_key=re.sub(r"\s+", "", tags.get("p", "")),
    )


def describe_caa(tag: str, value: str) -> str:
    """Human-readable impact of a CAA property."""
    clean_tag = tag.lower()
    clean_value = value.replace('"', "")

    if clean_tag == "issue":
        return f"Only {clean_value} is authorized to issue certificates."
    if clean_tag == "issuewild":
        return f"Only {clean_value} is authorized to issue wildcard certificates."
    if clean_tag == "iodef":
        return f"Unauthorized issuance requests will be reported to {clean_value}."
    if clean_tag == "contactemail":
        return f"CAs can contact the domain owner via {clean_value}."
    if clean_tag == "contactphone":
        return f"CAs can contact the owner at {clean_value}."
    return f"Custom policy defined for property: {tag}."


def parse_caa_record(data: str) -> CaaRecord:
    """Parse ``<flag> <tag> <value>`` CAA presentation data.

    Raises:
        RecordParseError: If the flag is not an integer or the tag is missing.
    """
    parts = data.split()
    if len(parts) < 2:
        raise RecordParseError(f"Malformed CAA record: {data!r}")

    try:
        flag = int(parts[0])
    except ValueError as e:
        raise RecordParseError(f"CAA flag is not numeric: {data!r}") from e

    tag = parts[1]
    value = " ".join(parts[2:]).replace('"', "")
    return CaaRecord(flag=flag, tag=tag, value=value, description=describe_caa(tag, value))


def parse_caa(answers: Sequence[RawAnswer]) -> CaaPolicy:
    """Parse every CAA answer; no answers means the open posture."""
    return CaaPolicy(records=[parse_caa_record(a.data) for a in answers])


def detect_provider(hostname: str) -> str:
    """Label a mail exchanger with its hosting provider."""
    host = hostname.lower()
    for signatures, provider in MX_PROVIDER_SIGNATURES:
        if any(sig in host for sig in signatures):
            return provider
    return DEFAULT_PROVIDER


def parse_mx(answers: Sequence[RawAnswer]) -> MxSet:
    """Parse ``<priority> <exchange>`` answers sorted by ascending priority.

    The sort is stable, so equal priorities keep resolver order.

    Raises:
        RecordParseError: If a priority is not an integer.
    """
    records: list[MxRecord] = []
    for answer in answers:
        parts = answer.data.split()
        try:
            priority = int(parts[0])
        except (IndexError, ValueError) as e:
            raise RecordParseError(f"Malformed MX record: {answer.data!r}") from e
        exchange = parts[1].rstrip(".") if len(parts) > 1 else ""
        records.append(
            MxRecord(priority=priority, exchange=exchange, provider=detect_provider(exchange))
        )

    records.sort(key=lambda r: r.priority)
    return MxSet(records=records)


def parse_ptr(answers: Sequence[RawAnswer]) -> PtrRecord | None:
    """First PTR answer with the root dot stripped, or None when absent."""
    if not answers:
        return None
    return PtrRecord(hostname=answers[0].data.rstrip("."))


def match_record(hostname: str, texts: Sequence[str], expected: str) -> RecordMatch:
    """Compare space-joined TXT texts against an expected substring."""
    found = " ".join(t.replace('"', "") for t in texts)
    if not found:
        status = MatchStatus.MISSING
    elif expected in found:
        status = MatchStatus.MATCH
    else:
        status = MatchStatus.MISMATCH
    return RecordMatch(hostname=hostname, expected=expected, found=found, status=status)
