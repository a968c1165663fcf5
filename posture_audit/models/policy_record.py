"""Parsed DNS policy record models."""

from dataclasses import dataclass, field
from enum import Enum


class RecordStatus(Enum):
    """Semantic status of a parsed policy record."""

    MISSING = "missing"  # No record published
    INVALID = "invalid"  # Record present but malformed per its RFC
    VALID = "valid"
    WARNING = "warning"  # Valid but violates an operational limit
    ERROR = "error"  # Lookup failed


class CaaPosture(Enum):
    """Certificate issuance posture derived from CAA records."""

    OPEN = "open"  # No CAA records, any CA may issue
    RESTRICTED = "restricted"


class MatchStatus(Enum):
    """Outcome of comparing a TXT record against an expected value."""

    MATCH = "match"
    MISMATCH = "mismatch"
    MISSING = "missing"


@dataclass
class SpfRecord:
    """SPF policy (RFC 7208).

    Attributes:
        status: Record status; WARNING when lookups exceed the limit of 10.
        lookup_count: Number of DNS-lookup-consuming mechanisms.
        mechanism: The ``all`` qualifier token (e.g. ``-all``) or "".
        raw: Record text as published.
    """

    status: RecordStatus
    lookup_count: int = 0
    mechanism: str = ""
    raw: str = ""

    @property
    def all_result(self) -> str:
        """Map the ``all`` qualifier to its SPF result name."""
        if not self.mechanism:
            return "none"
        qualifier = self.mechanism[0] if self.mechanism[0] in "+-~?" else "+"
        return {"+": "pass", "-": "fail", "~": "softfail", "?": "neutral"}[qualifier]

    def to_json(self) -> dict:
        return {
            "status": self.status.value,
            "lookup_count": self.lookup_count,
            "mechanism": self.mechanism,
            "all_result": self.all_result,
            "raw": self.raw,
        }


@dataclass
class DmarcRecord:
    """DMARC policy (RFC 7489).

    Tag values are lowercased. ``policy`` defaults to ``none`` and the
    alignment modes to ``r`` when absent; ``subdomain_policy`` inherits
    ``policy``.
    """

    status: RecordStatus
    policy: str = ""
    adkim: str = ""
    aspf: str = ""
    subdomain_policy: str = ""
    pct: int = 100
    rua: list[str] = field(default_factory=list)
    ruf: list[str] = field(default_factory=list)
    raw: str = ""

    def to_json(self) -> dict:
        return {
            "status": self.status.value,
            "policy": self.policy,
            "adkim": self.adkim,
            "aspf": self.aspf,
            "subdomain_policy": self.subdomain_policy,
            "pct": self.pct,
            "rua": list(self.rua),
            "ruf": list(self.ruf),
            "raw": self.raw,
        }


@dataclass
class DkimRecord:
    """DKIM public key record published at ``<selector>._domainkey``."""

    selector: str
    raw: str = ""
    version: str = ""
    key_type: str = ""
    public_key: str = ""

    @property
    def revoked(self) -> bool:
        """An empty ``p=`` tag means the key has been revoked."""
        return bool(self.raw) and not self.public_key

    def to_json(self) -> dict:
        return {
            "selector": self.selector,
            "version": self.version,
            "key_type": self.key_type,
            "revoked": self.revoked,
            "raw": self.raw,
        }


@dataclass
class CaaRecord:
    """Single CAA record (RFC 6844).

    Attributes:
        flag: Numeric flag byte; 128 is the issuer-critical bit.
        tag: Property tag (issue, issuewild, iodef, ...).
        value: Property value with quotes stripped.
        description: Human-readable impact of the record.
    """

    flag: int
    tag: str
    value: str
    description: str

    @property
    def critical(self) -> bool:
        """A CA that cannot process a critical tag must refuse to issue."""
        return bool(self.flag & 128)

    def to_json(self) -> dict:
        return {
            "flag": self.flag,
            "critical": self.critical,
            "tag": self.tag,
            "value": self.value,
            "description": self.description,
        }


@dataclass
class CaaPolicy:
    """All CAA records published for a domain."""

    records: list[CaaRecord] = field(default_factory=list)

    @property
    def posture(self) -> CaaPosture:
        return CaaPosture.RESTRICTED if self.records else CaaPosture.OPEN

    @property
    def has_critical(self) -> bool:
        return any(r.critical for r in self.records)

    def to_json(self) -> dict:
        return {
            "posture": self.posture.value,
            "has_critical": self.has_critical,
            "records": [r.to_json() for r in self.records],
        }


@dataclass
class MxRecord:
    """Mail exchanger with detected hosting provider."""

    priority: int
    exchange: str
    provider: str

    def to_json(self) -> dict:
        return {
            "priority": self.priority,
            "exchange": self.exchange,
            "provider": self.provider,
        }


@dataclass
class MxSet:
    """Priority-ordered MX records; empty means the domain receives no mail."""

    records: list[MxRecord] = field(default_factory=list)

    @property
    def primary_provider(self) -> str:
        return self.records[0].provider if self.records else ""

    def to_json(self) -> dict:
        return {
            "primary_provider": self.primary_provider,
            "records": [r.to_json() for r in self.records],
        }


@dataclass
class PtrRecord:
    hostname: str

    def to_json(self) -> dict:
        return {"hostname": self.hostname}


@dataclass
class RecordMatch:
    """TXT value found at a hostname compared against an expected value."""

    hostname: str
    expected: str
    found: str
    status: MatchStatus

    def to_json(self) -> dict:
        return {
            "hostname": self.hostname,
            "expected": self.expected,
            "found": self.found,
            "status": self.status.value,
        }


@dataclass
class RecordValue:
    name: str
    value: str
    ttl: int

    def to_json(self) -> dict:
        return {"name": self.name, "value": self.value, "ttl": self.ttl}


@dataclass
class DnsRecordSet:
    """Answers for each requested record type at one domain.

    Attributes:
        domain: Queried domain.
        records: Record type (e.g. ``MX``) to its answers, in request order.
            A type with no answers maps to an empty list.
    """

    domain: str
    records: dict[str, list[RecordValue]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not any(self.records.values())

    def summary(self) -> str:
        return ", ".join(f"{rdtype}: {len(values)}" for rdtype, values in self.records.items())

    def to_json(self) -> dict:
        return {
            "domain": self.domain,
            "records": {
                rdtype: [v.to_json() for v in values]
                for rdtype, values in self.records.items()
            },
        }
