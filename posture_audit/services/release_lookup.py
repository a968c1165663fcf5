"""Spamhaus release-date ("valid until") client.

Only XBL, CSS and DBL listings have a release timeline; callers gate on
``ReputationVerdict.release_eligible`` before calling this client.
"""

import logging
from datetime import datetime, timezone

import aiohttp

from posture_audit.models.audit_target import AuditTarget, TargetKind
from posture_audit.utils.retry import exponential_backoff_retry


logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.spamhaus.org"
NO_EXPIRY = "No expiry reported"

_EXPIRY_KEYS = ("valid_until", "listed_until", "listed-until", "expires")


def extract_valid_until(payload: object) -> int | None:
    """Find the latest expiry epoch anywhere in an API payload.

    Args:
        payload: Decoded JSON (dict, list or scalar).

    Returns:
        int | None: Latest epoch seconds, or None if no expiry is present.
    """
    found: list[int] = []

    def walk(node: object) -> None:
        if isinstance(node, dict):
            for key, value in node.items():
                if key in _EXPIRY_KEYS and isinstance(value, (int, float)) and value > 0:
                    found.append(int(value))
                else:
                    walk(value)
        elif isinstance(node, list):
            for entry in node:
                walk(entry)

    walk(payload)
    return max(found) if found else None


def format_release_date(epoch: int | None) -> str:
    if epoch is None:
        return NO_EXPIRY
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class ReleaseDateClient:
    """Fetches listing expiry for IPs and domains from the Spamhaus Intel API."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float | None = None,
    ):
        self._session = session
        self._token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    def _url_for(self, target: AuditTarget) -> str:
        if target.kind == TargetKind.DOMAIN:
            return f"{self.api_url}/api/intel/v2/byobject/domain/{target.value}"
        return f"{self.api_url}/api/intel/v1/byobject/cidr/ALL/listed/live/{target.value}"

    @exponential_backoff_retry()
    async def fetch_release_date(self, target: AuditTarget) -> str:
        """Return the release date text for a listed target.

        Args:
            target: Listed IP or domain.

        Returns:
            str: UTC ISO-8601 date, or NO_EXPIRY when none is published or
            the target is not in the live listing (HTTP 404).

        Raises:
            aiohttp.ClientError: On transport failure or non-404 HTTP error.
        """
        request_kwargs = {}
        if self.timeout:
            request_kwargs["timeout"] = aiohttp.ClientTimeout(total=self.timeout)

        async with self._session.get(
            self._url_for(target),
            headers={"Authorization": f"Bearer {self._token}"},
            **request_kwargs,
        ) as resp:
            if resp.status == 404:
                return NO_EXPIRY
            resp.raise_for_status()
            payload = await resp.json(content_type=None)

        release = format_release_date(extract_valid_until(payload))
        logger.debug(f"Release date for {target.value}: {release}")
        return release
