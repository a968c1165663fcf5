"""Registration (RDAP) and IP geolocation models."""

from dataclasses import dataclass, field


@dataclass
class WhoisRecord:
    """Domain registration data from RDAP.

    Attributes:
        domain: Queried domain.
        registrar: Registrar name, "Unknown" when not published.
        created_date: Registration event date (ISO-8601) or "".
        expiry_date: Expiration event date (ISO-8601) or "".
        days_remaining: Days until expiry (ceil), 0 when unknown.
        status: EPP status values.
    """

    domain: str
    registrar: str
    created_date: str = ""
    expiry_date: str = ""
    days_remaining: int = 0
    status: list[str] = field(default_factory=list)

    def to_json(self) -> dict:
        return {
            "domain": self.domain,
            "registrar": self.registrar,
            "created_date": self.created_date,
            "expiry_date": self.expiry_date,
            "days_remaining": self.days_remaining,
            "status": list(self.status),
        }


@dataclass
class GeoRecord:
    """Flat geolocation fields for an IP address."""

    ip: str
    city: str | None = None
    region: str | None = None
    country: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    isp: str | None = None
    timezone: str | None = None

    def to_json(self) -> dict:
        return {
            "ip": self.ip,
            "city": self.city,
            "region": self.region,
            "country": self.country,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "isp": self.isp,
            "timezone": self.timezone,
        }
