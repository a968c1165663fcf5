"""Network connectivity verification utility.

Performs supplemental DoH checks to public resolvers to tell a network-wide
outage apart from failures specific to the audited targets.
"""

import aiohttp

from posture_audit.models.batch_summary import NetworkConnectivityResult
from posture_audit.models.dns_answer import QueryOutcome
from posture_audit.services.query_builder import DnsQuery
from posture_audit.services.resolver_client import DohResolver


GOOGLE_DOH_ENDPOINT = "https://dns.google/resolve"
CLOUDFLARE_DOH_ENDPOINT = "https://cloudflare-dns.com/dns-query"

CONNECTIVITY_QUERY = DnsQuery(name="google.com", rdtype="A")


class NetworkChecker:
    """Performs supplemental DoH connectivity checks.

    Uses the Cloudflare and Google DoH JSON endpoints to determine if
    failures are network-wide or specific to the audited targets.
    """

    @staticmethod
    async def check_connectivity(
        session: aiohttp.ClientSession, timeout: float = 5
    ) -> NetworkConnectivityResult:
        """Check DoH connectivity to Cloudflare and Google.

        Performs an A record lookup for 'google.com' against each endpoint.

        Args:
            session: HTTP session used for both checks.
            timeout: Per-check timeout in seconds (default: 5).

        Returns:
            NetworkConnectivityResult: Reachability status for both providers.

        Example:
            >>> result = await NetworkChecker.check_connectivity(session)
            >>> if result.network_down:
            ...     print("Network unreachable")
        """

        async def check_endpoint(endpoint: str) -> bool:
            resolver = DohResolver(session, endpoint=endpoint, timeout=timeout)
            result = await resolver.resolve(CONNECTIVITY_QUERY)
            return result.outcome == QueryOutcome.OK and bool(result.answers)

        return NetworkConnectivityResult(
            check_enabled=True,
            cloudflare_reachable=await check_endpoint(CLOUDFLARE_DOH_ENDPOINT),
            google_reachable=await check_endpoint(GOOGLE_DOH_ENDPOINT),
        )
