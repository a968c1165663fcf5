"""IP geolocation lookup (ipapi.co response shape)."""

import logging

import aiohttp

from posture_audit.errors import TransportError
from posture_audit.models.registration import GeoRecord


logger = logging.getLogger(__name__)

DEFAULT_GEO_ENDPOINT = "https://ipapi.co"


def parse_geo(ip: str, payload: dict) -> GeoRecord:
    """Map a flat geolocation body to a GeoRecord.

    Raises:
        TransportError: If the provider flagged the request as an error.
    """
    if payload.get("error"):
        reason = payload.get("reason") or payload.get("message") or "unknown error"
        raise TransportError(f"Geolocation lookup failed for {ip}: {reason}")

    return GeoRecord(
        ip=payload.get("ip", ip),
        city=payload.get("city"),
        region=payload.get("region"),
        country=payload.get("country_name") or payload.get("country"),
        latitude=payload.get("latitude"),
        longitude=payload.get("longitude"),
        isp=payload.get("org"),
        timezone=payload.get("timezone"),
    )


class GeoClient:
    def __init__(
        self,
        session: aiohttp.ClientSession,
        endpoint: str = DEFAULT_GEO_ENDPOINT,
        timeout: float | None = None,
    ):
        self._session = session
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout

    async def lookup(self, ip: str) -> GeoRecord:
        """Fetch location fields for an IP address.

        Raises:
            TransportError: On a non-2xx status or an error body.
            aiohttp.ClientError: On transport failure.
        """
        request_kwargs = {}
        if self.timeout:
            request_kwargs["timeout"] = aiohttp.ClientTimeout(total=self.timeout)

        async with self._session.get(f"{self.endpoint}/{ip}/json/", **request_kwargs) as resp:
            if resp.status < 200 or resp.status >= 300:
                raise TransportError(f"Geolocation lookup for {ip} returned HTTP {resp.status}")
            payload = await resp.json(content_type=None)

        if not isinstance(payload, dict):
            raise TransportError(f"Geolocation lookup for {ip} returned a non-object body")
        return parse_geo(ip, payload)
