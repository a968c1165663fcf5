"""HTTP redirect-chain tracer."""

import logging
from dataclasses import dataclass, field
from http import HTTPStatus
from urllib.parse import urljoin

import aiohttp

from posture_audit.errors import LoopDetected


logger = logging.getLogger(__name__)

MAX_HOPS = 20


def status_class(status: int) -> str:
    """``1xx`` .. ``5xx`` bucket for an HTTP status code."""
    return f"{status // 100}xx"


def reason_phrase(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Unknown"


@dataclass
class RedirectHop:
    """One request in a redirect chain.

    Attributes:
        url: Requested URL.
        status: HTTP status code.
        reason: Standard reason phrase.
        status_class: Status bucket (``3xx`` etc.).
        location: Absolute redirect target, None for the final hop.
    """

    url: str
    status: int
    reason: str
    status_class: str
    location: str | None = None

    def to_json(self) -> dict:
        return {
            "url": self.url,
            "status": self.status,
            "reason": self.reason,
            "status_class": self.status_class,
            "location": self.location,
        }


@dataclass
class RedirectChain:
    """Every hop traced from one starting URL."""

    url: str
    hops: list[RedirectHop] = field(default_factory=list)

    @property
    def final(self) -> RedirectHop | None:
        return self.hops[-1] if self.hops else None

    @property
    def truncated(self) -> bool:
        """True when the hop limit stopped the trace before a final response."""
        return self.final is not None and self.final.location is not None

    def to_json(self) -> dict:
        final = self.final
        return {
            "url": self.url,
            "hop_count": len(self.hops),
            "final_url": final.url if final else None,
            "final_status": final.status if final else None,
            "truncated": self.truncated,
            "hops": [h.to_json() for h in self.hops],
        }


class UrlTracer:
    """Follows a URL's redirects one HEAD request at a time."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        max_hops: int = MAX_HOPS,
        timeout: float | None = None,
    ):
        self._session = session
        self.max_hops = max_hops
        self.timeout = timeout

    async def trace(self, url: str) -> list[RedirectHop]:
        """Trace the redirect chain starting at ``url``.

        Args:
            url: Starting URL; ``https://`` is assumed when no scheme is given.

        Returns:
            list[RedirectHop]: Hops in request order. The chain stops at the
            first non-redirect response or after ``max_hops`` requests.

        Raises:
            LoopDetected: If a redirect points back to an already visited URL.
            aiohttp.ClientError: On transport failure.
        """
        if "://" not in url:
            url = f"https://{url}"

        request_kwargs = {}
        if self.timeout:
            request_kwargs["timeout"] = aiohttp.ClientTimeout(total=self.timeout)

        hops: list[RedirectHop] = []
        visited: set[str] = set()
        current: str | None = url

        while current is not None and len(hops) < self.max_hops:
            if current in visited:
                raise LoopDetected(f"Redirect loop detected at {current}")
            visited.add(current)

            async with self._session.head(
                current, allow_redirects=False, **request_kwargs
            ) as resp:
                status = resp.status
                location = resp.headers.get("Location")

            next_url = None
            if 300 <= status < 400 and location:
                next_url = urljoin(current, location)

            hops.append(
                RedirectHop(
                    url=current,
                    status=status,
                    reason=reason_phrase(status),
                    status_class=status_class(status),
                    location=next_url,
                )
            )
            current = next_url

        if current is not None:
            logger.warning(f"Stopped tracing {url} after {self.max_hops} hops")
        return hops
