"""RDAP domain registration lookup."""

import logging
import math
from datetime import datetime, timezone

import aiohttp

from posture_audit.models.registration import WhoisRecord
from posture_audit.utils.retry import exponential_backoff_retry


logger = logging.getLogger(__name__)

DEFAULT_RDAP_ENDPOINT = "https://rdap.org"
UNKNOWN_REGISTRAR = "Unknown"


def _parse_date(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _event_date(events: list, action: str) -> str:
    for event in events:
        if isinstance(event, dict) and event.get("eventAction") == action:
            return str(event.get("eventDate", ""))
    return ""


def _registrar_name(entities: list) -> str:
    """vCard ``fn`` of the first entity carrying the ``registrar`` role."""
    for entity in entities:
        if not isinstance(entity, dict) or "registrar" not in entity.get("roles", []):
            continue
        vcard = entity.get("vcardArray") or []
        properties = vcard[1] if len(vcard) > 1 else []
        for prop in properties:
            if len(prop) >= 4 and prop[0] == "fn" and prop[3]:
                return str(prop[3])
    return UNKNOWN_REGISTRAR


def parse_rdap(domain: str, payload: dict, now: datetime | None = None) -> WhoisRecord:
    """Convert an RDAP domain object into a WhoisRecord.

    Args:
        domain: Queried domain.
        payload: Decoded RDAP JSON.
        now: Reference time for ``days_remaining`` (defaults to current UTC).

    Returns:
        WhoisRecord: Registration data; ``days_remaining`` is rounded up and
        is negative for an already expired registration.
    """
    now = now or datetime.now(timezone.utc)
    events = payload.get("events") or []
    created = _event_date(events, "registration")
    expiry = _event_date(events, "expiration")

    days_remaining = 0
    expiry_at = _parse_date(expiry) if expiry else None
    if expiry_at is not None:
        days_remaining = math.ceil((expiry_at - now).total_seconds() / 86400)

    return WhoisRecord(
        domain=domain,
        registrar=_registrar_name(payload.get("entities") or []),
        created_date=created,
        expiry_date=expiry,
        days_remaining=days_remaining,
        status=[str(s) for s in payload.get("status") or []],
    )


class RdapClient:
    """Looks up domain registration data through an RDAP bootstrap service."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        endpoint: str = DEFAULT_RDAP_ENDPOINT,
        timeout: float | None = None,
    ):
        self._session = session
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout

    @exponential_backoff_retry()
    async def lookup(self, domain: str) -> WhoisRecord | None:
        """Fetch registration data for a domain.

        Returns:
            WhoisRecord | None: None when the registry has no record (HTTP 404).

        Raises:
            aiohttp.ClientError: On transport failure or other non-2xx status.
        """
        request_kwargs = {}
        if self.timeout:
            request_kwargs["timeout"] = aiohttp.ClientTimeout(total=self.timeout)

        async with self._session.get(
            f"{self.endpoint}/domain/{domain}",
            headers={"Accept": "application/rdap+json"},
            **request_kwargs,
        ) as resp:
            if resp.status == 404:
                logger.info(f"No RDAP record for {domain}")
                return None
            resp.raise_for_status()
            payload = await resp.json(content_type=None)

        return parse_rdap(domain, payload if isinstance(payload, dict) else {})
