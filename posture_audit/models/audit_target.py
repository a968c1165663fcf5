"""Audit target model and input normalization."""

import ipaddress
import re
from dataclasses import dataclass
from enum import Enum

from posture_audit.utils.ip_utils import is_valid_ipv4, is_valid_ipv6


_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_DOTTED_QUAD_RE = re.compile(r"^(\d{1,3}\.){3}\d{1,3}$")
_INPUT_SPLIT_RE = re.compile(r"[\n,]")


class TargetKind(Enum):
    """Which zone/query family a target belongs to."""

    DOMAIN = "domain"
    IPV4 = "ipv4"
    IPV6 = "ipv6"


@dataclass(frozen=True)
class AuditTarget:
    """A normalized domain name or IP literal.

    Attributes:
        value: Normalized input string.
        kind: Derived target kind.
        valid: False when the input looks like an IP literal but does not
            parse (e.g. ``300.1.1.1`` or a malformed IPv6 address).
    """

    value: str
    kind: TargetKind
    valid: bool = True

    @property
    def is_ip(self) -> bool:
        return self.kind in (TargetKind.IPV4, TargetKind.IPV6)

    @classmethod
    def parse(cls, raw: str) -> "AuditTarget":
        """Normalize a single input line into an AuditTarget.

        Domains are lowercased with any URL scheme and trailing slash
        removed. Valid IPv6 literals are reduced to their compressed form.
        Strings containing ``:`` or shaped like a dotted quad are
        treated as IP literals and marked invalid when they do not parse.

        Args:
            raw: Raw input line.

        Returns:
            AuditTarget: Normalized target.

        Raises:
            ValueError: If the input is empty after stripping.
        """
        value = raw.strip()
        if not value:
            raise ValueError("Audit target cannot be empty")

        if is_valid_ipv4(value):
            return cls(value=value, kind=TargetKind.IPV4)
        if _DOTTED_QUAD_RE.match(value):
            return cls(value=value, kind=TargetKind.IPV4, valid=False)

        if ":" in value and not _SCHEME_RE.match(value):
            if not is_valid_ipv6(value):
                return cls(value=value.lower(), kind=TargetKind.IPV6, valid=False)
            return cls(value=ipaddress.IPv6Address(value).compressed, kind=TargetKind.IPV6)

        value = _SCHEME_RE.sub("", value).rstrip("/").rstrip(".").lower()
        if not value:
            raise ValueError(f"Audit target is empty after normalization: {raw!r}")
        return cls(value=value, kind=TargetKind.DOMAIN)


def parse_targets(raw_input: str, limit: int | None = None) -> list[AuditTarget]:
    """Split, normalize and deduplicate a batch of targets.

    Lines (or comma separated entries) are stripped and blanks dropped.
    Deduplication runs on the normalized value, so domains compare
    case-insensitively, and keeps first-seen order.

    Args:
        raw_input: Newline or comma separated targets.
        limit: Optional cap on the number of targets kept after dedup.

    Returns:
        list[AuditTarget]: Unique targets in input order.
    """
    seen: set[str] = set()
    targets: list[AuditTarget] = []

    for line in _INPUT_SPLIT_RE.split(raw_input):
        if not line.strip():
            continue
        target = AuditTarget.parse(line)
        if target.value in seen:
            continue
        seen.add(target.value)
        targets.append(target)

    if limit is not None:
        return targets[:limit]
    return targets
