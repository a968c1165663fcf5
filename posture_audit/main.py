"""Main entry point for the DNS posture audit job."""

import asyncio
import logging
import sys
import time

import aiohttp

from posture_audit.config import Config
from posture_audit.models.batch_summary import (
    NETWORK_CHECK_THRESHOLD,
    BatchSummary,
    NetworkConnectivityResult,
)
from posture_audit.services.audit_reporter import AuditReporter
from posture_audit.services.auditor import TargetAuditor
from posture_audit.services.geo_client import GeoClient
from posture_audit.services.logger import log_network_issue, setup_logging
from posture_audit.services.orchestrator import BulkAuditOrchestrator
from posture_audit.services.rdap_client import RdapClient
from posture_audit.services.release_lookup import ReleaseDateClient
from posture_audit.services.resolver_client import DohResolver
from posture_audit.services.url_tracer import UrlTracer
from posture_audit.utils.network_check import NetworkChecker


logger = logging.getLogger(__name__)


def read_targets(config: Config) -> str:
    """Read raw batch input from the targets file, or stdin when unset."""
    if config.targets_file:
        with open(config.targets_file, encoding="utf-8") as f:
            return f.read()
    return sys.stdin.read()


def write_report(config: Config, report: str) -> None:
    """Write the rendered report to the report file, or stdout when unset."""
    if config.report_file:
        with open(config.report_file, "w", encoding="utf-8") as f:
            f.write(report)
            if not report.endswith("\n"):
                f.write("\n")
        logger.info(f"Report written to {config.report_file}")
    else:
        sys.stdout.write(report if report.endswith("\n") else report + "\n")


def build_orchestrator(
    config: Config, session: aiohttp.ClientSession
) -> BulkAuditOrchestrator:
    """Wire resolver, side-call clients and auditor from configuration."""
    resolver = DohResolver(session, endpoint=config.doh_endpoint, timeout=config.http_timeout)
    auditor = TargetAuditor(
        resolver,
        dqs_key=config.spamhaus_dqs_key,
        dqs_suffix=config.spamhaus_dqs_suffix,
        include_zrd=config.spamhaus_include_zrd,
        rdap=RdapClient(session, endpoint=config.rdap_endpoint, timeout=config.http_timeout),
        geo=GeoClient(session, endpoint=config.geo_endpoint, timeout=config.http_timeout),
        match_prefix=config.record_match_prefix,
        match_expected=config.record_match_expected,
        record_types=config.record_lookup_types,
        tracer=UrlTracer(session, max_hops=config.trace_max_hops, timeout=config.http_timeout),
    )

    release_client = None
    if config.release_lookup_enabled:
        release_client = ReleaseDateClient(
            session,
            token=config.spamhaus_api_token,
            api_url=config.spamhaus_api_url,
            timeout=config.http_timeout,
        )
    else:
        logger.info("SPAMHAUS_API_TOKEN not set - release date lookups disabled")

    return BulkAuditOrchestrator(
        auditor,
        release_client=release_client,
        item_timeout=config.item_timeout,
        max_targets=config.max_targets,
    )


async def run_batch(
    config: Config, raw_input: str, session: aiohttp.ClientSession
) -> BatchSummary:
    """Audit one batch end to end.

    Args:
        config: Application configuration.
        raw_input: Newline or comma separated targets.
        session: HTTP session shared by every client.

    Returns:
        BatchSummary: Completed batch, release fetches drained and the
        connectivity check applied when enough items failed.
    """
    orchestrator = build_orchestrator(config, session)
    orchestrator.submit(raw_input, config.audit_kind, config.dkim_selectors)

    summary = await orchestrator.run()
    await orchestrator.drain()

    if not config.enable_network_connectivity_check:
        summary.network_connectivity = NetworkConnectivityResult(check_enabled=False)
    elif summary.items and summary.failure_rate >= NETWORK_CHECK_THRESHOLD:
        logger.warning(
            f"{summary.failed_items}/{len(summary.items)} items failed - probing DoH connectivity"
        )
        summary.network_connectivity = await NetworkChecker.check_connectivity(
            session, timeout=config.http_timeout
        )
        if summary.network_issue_detected:
            log_network_issue(summary.failure_rate, summary.failed_items)

    return summary


async def _run(config: Config) -> BatchSummary:
    raw_input = read_targets(config)
    async with aiohttp.ClientSession() as session:
        return await run_batch(config, raw_input, session)


def main() -> int:
    """Main execution function.

    Returns:
        int: Exit code (0 for success, 1 for fatal error).
    """
    start_time = time.time()

    try:
        # Load configuration
        config = Config.from_env()
        setup_logging(config.verbose)
        logger.info(f"Starting DNS posture audit: kind={config.audit_kind.value}")

        summary = asyncio.run(_run(config))
        write_report(config, AuditReporter.render(summary, config.report_format))

        duration_sec = time.time() - start_time
        logger.info(f"Audit completed successfully in {duration_sec:.2f} seconds")
        return 0

    except Exception as e:
        # Logging may not be configured yet if the config failed to load
        if not logging.getLogger().handlers:
            setup_logging()
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
