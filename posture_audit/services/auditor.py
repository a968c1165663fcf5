"""Single-target audit step.

``TargetAuditor.audit`` runs one AuditKind for one target and maps the
parsed record to the terminal lifecycle state the item should take.
Transport failures propagate to the caller, which owns the
exception-to-state mapping.
"""

import logging
from dataclasses import dataclass
from typing import Any, Sequence

from posture_audit.errors import AuthError, InvalidTarget, TransportError
from posture_audit.models.audit_item import AuditKind, LifecycleState
from posture_audit.models.audit_target import AuditTarget, TargetKind
from posture_audit.models.policy_record import RecordStatus
from posture_audit.services import dns_lookups, query_builder, record_parsers
from posture_audit.services.geo_client import GeoClient
from posture_audit.services.rdap_client import RdapClient
from posture_audit.services.reputation_classifier import DEFAULT_DQS_SUFFIX
from posture_audit.models.reputation_record import ReputationVerdict
from posture_audit.services.resolver_client import DohResolver
from posture_audit.services.url_tracer import RedirectChain, UrlTracer


logger = logging.getLogger(__name__)

DOMAIN_KINDS = frozenset(
    {
        AuditKind.SPF,
        AuditKind.DMARC,
        AuditKind.DKIM,
        AuditKind.CAA,
        AuditKind.MX,
        AuditKind.RECORD_MATCH,
        AuditKind.RECORD_LOOKUP,
        AuditKind.WHOIS,
    }
)
IP_KINDS = frozenset({AuditKind.PTR, AuditKind.GEO})

_POLICY_STATES = {
    RecordStatus.MISSING: LifecycleState.NOT_FOUND,
    RecordStatus.INVALID: LifecycleState.INVALID,
    RecordStatus.VALID: LifecycleState.SUCCESS,
    RecordStatus.WARNING: LifecycleState.SUCCESS,
    RecordStatus.ERROR: LifecycleState.ERROR,
}


@dataclass
class AuditOutcome:
    """Terminal state and payload produced by one audit step."""

    state: LifecycleState
    result: Any = None
    reason: str = ""
    error_kind: str | None = None


def validate_target(kind: AuditKind, target: AuditTarget) -> None:
    """Reject targets that cannot be audited before any network call.

    Raises:
        InvalidTarget: If the target is a malformed IP literal, or its kind
            does not fit the audit (e.g. PTR for a domain).
    """
    if not target.valid:
        raise InvalidTarget(f"Malformed IP address: {target.value}")
    if kind in DOMAIN_KINDS and target.kind != TargetKind.DOMAIN:
        raise InvalidTarget(f"{kind.value} audit requires a domain, got {target.value}")
    if kind in IP_KINDS and not target.is_ip:
        raise InvalidTarget(f"{kind.value} audit requires an IP address, got {target.value}")


def _reputation_outcome(verdict: ReputationVerdict, reason: str) -> AuditOutcome:
    # A listing in one zone outweighs an error answer from another
    if verdict.query_error and not verdict.listed:
        return AuditOutcome(
            LifecycleState.ERROR,
            verdict,
            reason,
            (AuthError if verdict.auth_error else TransportError).__name__,
        )
    return AuditOutcome(LifecycleState.SUCCESS, verdict, reason)


class TargetAuditor:
    """Runs one audit kind against one target.

    Args:
        resolver: DoH resolver used for every DNS lookup.
        dqs_key: Spamhaus DQS key (reputation audits).
        dqs_suffix: Spamhaus zone host suffix.
        include_zrd: Also query the Zero Reputation Domain zone for domains.
        rdap: RDAP client (WHOIS audits).
        geo: Geolocation client (GEO audits).
        match_prefix: Label prefixed to the domain for record-match audits.
        match_expected: Expected substring for record-match audits.
        record_types: Record types resolved by record-lookup audits.
        tracer: Redirect tracer (TRACE audits).
    """

    def __init__(
        self,
        resolver: DohResolver,
        dqs_key: str = "",
        dqs_suffix: str = DEFAULT_DQS_SUFFIX,
        include_zrd: bool = False,
        rdap: RdapClient | None = None,
        geo: GeoClient | None = None,
        match_prefix: str = "_dmarc",
        match_expected: str = "",
        record_types: Sequence[str] = query_builder.DEFAULT_RECORD_TYPES,
        tracer: UrlTracer | None = None,
    ):
        self.resolver = resolver
        self.dqs_key = dqs_key
        self.dqs_suffix = dqs_suffix
        self.include_zrd = include_zrd
        self.rdap = rdap
        self.geo = geo
        self.match_prefix = match_prefix
        self.match_expected = match_expected
        self.record_types = tuple(record_types)
        self.tracer = tracer

        self._handlers = {
            AuditKind.SPF: self._audit_spf,
            AuditKind.DMARC: self._audit_dmarc,
            AuditKind.CAA: self._audit_caa,
            AuditKind.MX: self._audit_mx,
            AuditKind.PTR: self._audit_ptr,
            AuditKind.REPUTATION: self._audit_reputation,
            AuditKind.BLACKLIST: self._audit_blacklist,
            AuditKind.RECORD_MATCH: self._audit_record_match,
            AuditKind.RECORD_LOOKUP: self._audit_record_lookup,
            AuditKind.TRACE: self._audit_trace,
            AuditKind.WHOIS: self._audit_whois,
            AuditKind.GEO: self._audit_geo,
        }

    async def audit(
        self, kind: AuditKind, target: AuditTarget, selector: str | None = None
    ) -> AuditOutcome:
        """Run one audit step.

        Args:
            kind: Audit to run.
            target: Normalized target.
            selector: DKIM selector (DKIM audits only).

        Returns:
            AuditOutcome: Terminal state, parsed result and reason.

        Raises:
            InvalidTarget: If the target cannot be audited for this kind.
            TransportError: If a lookup fails.
            QueryTimeout: If a lookup times out.
        """
        validate_target(kind, target)
        if kind == AuditKind.DKIM:
            return await self._audit_dkim(target, selector or "")
        return await self._handlers[kind](target)

    async def _audit_spf(self, target: AuditTarget) -> AuditOutcome:
        text = await dns_lookups.lookup_spf_record(self.resolver, target.value)
        record = record_parsers.parse_spf(text)
        reason = f"SPF {record.status.value}"
        if record.status == RecordStatus.WARNING:
            reason = (
                f"{record.lookup_count} DNS lookups exceed the "
                f"{record_parsers.SPF_LOOKUP_LIMIT} lookup limit"
            )
        return AuditOutcome(_POLICY_STATES[record.status], record, reason)

    async def _audit_dmarc(self, target: AuditTarget) -> AuditOutcome:
        text = await dns_lookups.lookup_dmarc_record(self.resolver, target.value)
        record = record_parsers.parse_dmarc(text)
        reason = f"DMARC {record.status.value}"
        if record.status == RecordStatus.VALID:
            reason = f"Policy {record.policy}"
        return AuditOutcome(_POLICY_STATES[record.status], record, reason)

    async def _audit_dkim(self, target: AuditTarget, selector: str) -> AuditOutcome:
        record = await dns_lookups.lookup_dkim_record(self.resolver, target.value, selector)
        if record is None:
            return AuditOutcome(
                LifecycleState.NOT_FOUND, None, f"No DKIM key for selector {selector}"
            )
        reason = "Key revoked (empty p=)" if record.revoked else "Key published"
        return AuditOutcome(LifecycleState.SUCCESS, record, reason)

    async def _audit_caa(self, target: AuditTarget) -> AuditOutcome:
        policy = await dns_lookups.lookup_caa_records(self.resolver, target.value)
        if not policy.records:
            reason = "No CAA records: any CA may issue"
        else:
            reason = f"{len(policy.records)} CAA record(s)"
            if policy.has_critical:
                reason += ", critical flag set"
        return AuditOutcome(LifecycleState.SUCCESS, policy, reason)

    async def _audit_mx(self, target: AuditTarget) -> AuditOutcome:
        mx_set = await dns_lookups.lookup_mx_records(self.resolver, target.value)
        if not mx_set.records:
            return AuditOutcome(
                LifecycleState.NOT_FOUND, mx_set, "No MX records: domain does not receive mail"
            )
        return AuditOutcome(LifecycleState.SUCCESS, mx_set, mx_set.primary_provider)

    async def _audit_ptr(self, target: AuditTarget) -> AuditOutcome:
        record = await dns_lookups.lookup_ptr_record(self.resolver, target)
        if record is None:
            return AuditOutcome(LifecycleState.NOT_FOUND, None, "No PTR record")
        return AuditOutcome(LifecycleState.SUCCESS, record, record.hostname)

    async def _audit_reputation(self, target: AuditTarget) -> AuditOutcome:
        verdict = await dns_lookups.lookup_reputation(
            self.resolver,
            target,
            self.dqs_key,
            zones=dns_lookups.zones_for(target, self.include_zrd),
            dqs_suffix=self.dqs_suffix,
        )
        return _reputation_outcome(verdict, verdict.reason)

    async def _audit_blacklist(self, target: AuditTarget) -> AuditOutcome:
        verdict = await dns_lookups.lookup_reputation(
            self.resolver,
            target,
            self.dqs_key,
            zones=dns_lookups.blacklist_zones_for(target),
            dqs_suffix=self.dqs_suffix,
        )
        reason = verdict.reason
        if target.is_ip:
            ptr = await dns_lookups.lookup_ptr_record(self.resolver, target)
            if ptr is None:
                reason = f"{reason} (no PTR record)"
            else:
                verdict.hostname = ptr.hostname
                reason = f"{reason} (PTR {ptr.hostname})"
        return _reputation_outcome(verdict, reason)

    async def _audit_record_match(self, target: AuditTarget) -> AuditOutcome:
        match = await dns_lookups.lookup_record_match(
            self.resolver, target.value, self.match_prefix, self.match_expected
        )
        return AuditOutcome(LifecycleState.SUCCESS, match, match.status.value)

    async def _audit_record_lookup(self, target: AuditTarget) -> AuditOutcome:
        record_set = await dns_lookups.lookup_records(
            self.resolver, target.value, self.record_types
        )
        if record_set.is_empty:
            return AuditOutcome(
                LifecycleState.NOT_FOUND,
                record_set,
                f"No {', '.join(self.record_types)} records",
            )
        return AuditOutcome(LifecycleState.SUCCESS, record_set, record_set.summary())

    async def _audit_trace(self, target: AuditTarget) -> AuditOutcome:
        if self.tracer is None:
            raise ValueError("Redirect tracer is not configured")
        url = f"https://[{target.value}]" if target.kind == TargetKind.IPV6 else target.value
        chain = RedirectChain(url, await self.tracer.trace(url))
        final = chain.final
        reason = f"{len(chain.hops)} hop(s), final {final.status} {final.reason} at {final.url}"
        if chain.truncated:
            reason += f" (stopped after {self.tracer.max_hops} hops)"
        return AuditOutcome(LifecycleState.SUCCESS, chain, reason)

    async def _audit_whois(self, target: AuditTarget) -> AuditOutcome:
        if self.rdap is None:
            raise ValueError("RDAP client is not configured")
        record = await self.rdap.lookup(target.value)
        if record is None:
            return AuditOutcome(LifecycleState.NOT_FOUND, None, "No registration record")
        return AuditOutcome(
            LifecycleState.SUCCESS,
            record,
            f"{record.registrar}, {record.days_remaining} days remaining",
        )

    async def _audit_geo(self, target: AuditTarget) -> AuditOutcome:
        if self.geo is None:
            raise ValueError("Geolocation client is not configured")
        record = await self.geo.lookup(target.value)
        location = ", ".join(p for p in (record.city, record.country) if p)
        return AuditOutcome(LifecycleState.SUCCESS, record, location or "Location unknown")
