"""DNS-over-HTTPS resolver client.

Performs exactly one JSON DoH GET per query and normalizes the response.
No retries happen at this layer.
"""

import asyncio
import logging

import aiohttp
import dns.rcode

from posture_audit.models.dns_answer import QueryOutcome, RawAnswer, ResolveResult
from posture_audit.services.query_builder import DnsQuery


logger = logging.getLogger(__name__)

DEFAULT_DOH_ENDPOINT = "https://dns.google/resolve"


class DohResolver:
    """JSON DoH client (Google ``/resolve`` shape).

    Attributes:
        endpoint: Resolver URL.
        timeout: Total per-request timeout in seconds, or None for the
            HTTP client's default.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        endpoint: str = DEFAULT_DOH_ENDPOINT,
        timeout: float | None = None,
    ):
        self._session = session
        self.endpoint = endpoint
        self.timeout = timeout

    async def resolve(self, query: DnsQuery) -> ResolveResult:
        """Resolve a single query.

        ``Status == 0`` yields OK with the answers (possibly none),
        ``Status == 3`` yields NXDOMAIN, any other status, non-2xx HTTP
        response, undecodable body or client error yields ERROR, and an
        expired timeout yields TIMEOUT.

        Args:
            query: Question to resolve.

        Returns:
            ResolveResult: Normalized outcome.
        """
        params = {"name": query.name, "type": str(query.type_code)}
        request_kwargs = {}
        if self.timeout:
            request_kwargs["timeout"] = aiohttp.ClientTimeout(total=self.timeout)

        try:
            async with self._session.get(
                self.endpoint,
                params=params,
                headers={"Accept": "application/dns-json"},
                **request_kwargs,
            ) as resp:
                if not 200 <= resp.status < 300:
                    logger.warning(
                        f"DoH HTTP {resp.status} for {query.name} ({query.rdtype})"
                    )
                    return ResolveResult(
                        name=query.name,
                        outcome=QueryOutcome.ERROR,
                        error=f"HTTP {resp.status}",
                    )
                payload = await resp.json(content_type=None)

        except asyncio.TimeoutError:
            logger.warning(f"DoH timeout for {query.name} ({query.rdtype})")
            return ResolveResult(
                name=query.name, outcome=QueryOutcome.TIMEOUT, error="timeout"
            )
        except aiohttp.ClientError as e:
            logger.warning(f"DoH transport failure for {query.name}: {e}")
            return ResolveResult(
                name=query.name,
                outcome=QueryOutcome.ERROR,
                error=f"{type(e).__name__}: {e}",
            )
        except ValueError as e:
            # Body was not JSON
            return ResolveResult(
                name=query.name,
                outcome=QueryOutcome.ERROR,
                error=f"Invalid DoH response: {e}",
            )

        return self._normalize(query, payload)

    @staticmethod
    def _normalize(query: DnsQuery, payload: object) -> ResolveResult:
        if not isinstance(payload, dict) or "Status" not in payload:
            return ResolveResult(
                name=query.name,
                outcome=QueryOutcome.ERROR,
                error="DoH response missing Status",
            )

        status = int(payload["Status"])
        if status == dns.rcode.NXDOMAIN:
            return ResolveResult(
                name=query.name, outcome=QueryOutcome.NXDOMAIN, status=status
            )
        if status != dns.rcode.NOERROR:
            return ResolveResult(
                name=query.name,
                outcome=QueryOutcome.ERROR,
                status=status,
                error=dns.rcode.to_text(status),
            )

        answers = [RawAnswer.from_json(a) for a in payload.get("Answer") or []]
        return ResolveResult(
            name=query.name, outcome=QueryOutcome.OK, answers=answers, status=status
        )
