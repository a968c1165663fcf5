"""Configuration module for the DNS posture audit job.

Loads and validates environment variables.
"""

import os
from dataclasses import dataclass
from typing import List

from posture_audit.errors import InvalidTarget
from posture_audit.models.audit_item import AuditKind
from posture_audit.services import query_builder
from posture_audit.services.audit_reporter import REPORT_FORMATS
from posture_audit.services.geo_client import DEFAULT_GEO_ENDPOINT
from posture_audit.services.rdap_client import DEFAULT_RDAP_ENDPOINT
from posture_audit.services.release_lookup import DEFAULT_API_URL
from posture_audit.services.reputation_classifier import DEFAULT_DQS_SUFFIX
from posture_audit.services.resolver_client import DEFAULT_DOH_ENDPOINT
from posture_audit.services.url_tracer import MAX_HOPS


_TRUE_VALUES = ("true", "1", "yes")

# Audit kinds that query the keyed Spamhaus zones
_DQS_KINDS = (AuditKind.REPUTATION, AuditKind.BLACKLIST)


@dataclass
class Config:
    """Application configuration loaded from environment variables."""

    # Batch Configuration
    audit_kind: AuditKind
    targets_file: str | None
    report_file: str | None
    report_format: str
    max_targets: int

    # Audit Parameters
    dkim_selectors: List[str]
    record_match_prefix: str
    record_match_expected: str
    record_lookup_types: List[str]
    trace_max_hops: int

    # Resolver Configuration
    doh_endpoint: str
    http_timeout: int
    item_timeout: int

    # Spamhaus Configuration
    spamhaus_dqs_key: str
    spamhaus_dqs_suffix: str
    spamhaus_include_zrd: bool
    spamhaus_api_url: str
    spamhaus_api_token: str | None

    # Side-call Endpoints
    rdap_endpoint: str
    geo_endpoint: str

    # Operational Configuration
    enable_network_connectivity_check: bool
    verbose: bool

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables.

        Raises:
            ValueError: If required variables are missing or invalid.

        Returns:
            Config: Validated configuration instance.
        """
        # Batch Configuration
        audit_kind_str = os.getenv("AUDIT_KIND", "spf").strip().lower()
        try:
            audit_kind = AuditKind(audit_kind_str)
        except ValueError:
            valid = ", ".join(k.value for k in AuditKind)
            raise ValueError(f"AUDIT_KIND must be one of: {valid}") from None

        targets_file = os.getenv("AUDIT_TARGETS_FILE") or None
        report_file = os.getenv("AUDIT_REPORT_FILE") or None

        report_format = os.getenv("AUDIT_REPORT_FORMAT", "json").strip().lower()
        if report_format not in REPORT_FORMATS:
            raise ValueError(f"AUDIT_REPORT_FORMAT must be one of: {', '.join(REPORT_FORMATS)}")

        max_targets = cls._get_int_env("MAX_TARGETS", 1000, 1, 10000)

        # Audit Parameters
        dkim_selectors_str = os.getenv("DKIM_SELECTORS", "default")
        dkim_selectors = [
            selector.strip()
            for selector in dkim_selectors_str.split(",")
            if selector.strip()
        ]
        if audit_kind == AuditKind.DKIM and not dkim_selectors:
            raise ValueError("DKIM_SELECTORS must contain at least one selector")

        record_match_prefix = os.getenv("RECORD_MATCH_PREFIX", "_dmarc").strip()
        record_match_expected = os.getenv("RECORD_MATCH_EXPECTED", "")
        if audit_kind == AuditKind.RECORD_MATCH and not record_match_expected:
            raise ValueError("Required environment variable RECORD_MATCH_EXPECTED is not set")

        record_lookup_types_str = os.getenv(
            "RECORD_LOOKUP_TYPES", ",".join(query_builder.DEFAULT_RECORD_TYPES)
        )
        try:
            record_lookup_types = [
                query_builder.normalize_record_type(rdtype)
                for rdtype in record_lookup_types_str.split(",")
                if rdtype.strip()
            ]
        except InvalidTarget as e:
            raise ValueError(f"RECORD_LOOKUP_TYPES: {e}") from None
        if audit_kind == AuditKind.RECORD_LOOKUP and not record_lookup_types:
            raise ValueError("RECORD_LOOKUP_TYPES must contain at least one record type")

        trace_max_hops = cls._get_int_env("TRACE_MAX_HOPS", MAX_HOPS, 1, 50)

        # Resolver Configuration
        doh_endpoint = os.getenv("DOH_ENDPOINT", DEFAULT_DOH_ENDPOINT)
        if not doh_endpoint.startswith("https://"):
            raise ValueError("DOH_ENDPOINT must be an HTTPS URL")

        http_timeout = cls._get_int_env("HTTP_TIMEOUT", 10, 1, 120)
        item_timeout = cls._get_int_env("ITEM_TIMEOUT", 30, 1, 600)

        # Spamhaus Configuration
        if audit_kind in _DQS_KINDS:
            spamhaus_dqs_key = cls._get_required_env("SPAMHAUS_DQS_KEY")
        else:
            spamhaus_dqs_key = os.getenv("SPAMHAUS_DQS_KEY", "")

        spamhaus_dqs_suffix = os.getenv("SPAMHAUS_DQS_SUFFIX", DEFAULT_DQS_SUFFIX)
        spamhaus_include_zrd = cls._get_bool_env("SPAMHAUS_INCLUDE_ZRD", "false")
        spamhaus_api_url = os.getenv("SPAMHAUS_API_URL", DEFAULT_API_URL)
        spamhaus_api_token = os.getenv("SPAMHAUS_API_TOKEN") or None

        # Side-call Endpoints
        rdap_endpoint = os.getenv("RDAP_ENDPOINT", DEFAULT_RDAP_ENDPOINT)
        geo_endpoint = os.getenv("GEO_ENDPOINT", DEFAULT_GEO_ENDPOINT)

        # Operational Configuration
        enable_network_connectivity_check = cls._get_bool_env(
            "ENABLE_NETWORK_CONNECTIVITY_CHECK", "true"
        )
        verbose = cls._get_bool_env("VERBOSE", "false")

        return cls(
            audit_kind=audit_kind,
            targets_file=targets_file,
            report_file=report_file,
            report_format=report_format,
            max_targets=max_targets,
            dkim_selectors=dkim_selectors,
            record_match_prefix=record_match_prefix,
            record_match_expected=record_match_expected,
            record_lookup_types=record_lookup_types,
            trace_max_hops=trace_max_hops,
            doh_endpoint=doh_endpoint,
            http_timeout=http_timeout,
            item_timeout=item_timeout,
            spamhaus_dqs_key=spamhaus_dqs_key,
            spamhaus_dqs_suffix=spamhaus_dqs_suffix,
            spamhaus_include_zrd=spamhaus_include_zrd,
            spamhaus_api_url=spamhaus_api_url,
            spamhaus_api_token=spamhaus_api_token,
            rdap_endpoint=rdap_endpoint,
            geo_endpoint=geo_endpoint,
            enable_network_connectivity_check=enable_network_connectivity_check,
            verbose=verbose,
        )

    @staticmethod
    def _get_required_env(key: str) -> str:
        """Get required environment variable or raise ValueError.

        Args:
            key: Environment variable name.

        Returns:
            str: Environment variable value.

        Raises:
            ValueError: If environment variable is not set or empty.
        """
        value = os.getenv(key)
        if not value:
            raise ValueError(f"Required environment variable {key} is not set")
        return value

    @staticmethod
    def _get_int_env(key: str, default: int, minimum: int, maximum: int) -> int:
        """Get a bounded integer environment variable.

        Raises:
            ValueError: If the value is not an integer or is out of range.
        """
        raw = os.getenv(key, str(default))
        try:
            value = int(raw)
        except ValueError:
            raise ValueError(f"{key} must be an integer, got {raw!r}") from None
        if not minimum <= value <= maximum:
            raise ValueError(f"{key} must be between {minimum} and {maximum}")
        return value

    @staticmethod
    def _get_bool_env(key: str, default: str) -> bool:
        return os.getenv(key, default).strip().lower() in _TRUE_VALUES

    @property
    def release_lookup_enabled(self) -> bool:
        return bool(self.spamhaus_api_token)


MIME_ACTIONS = (
    "encode_base64",
    "decode_base64",
    "encode_qp",
    "decode_qp",
    "encode_subject",
    "decode_header",
    "auto",
)


@dataclass
class MimeConfig:
    """Configuration for the stdin/stdout MIME codec job."""

    action: str
    encoding: str
    charset: str
    verbose: bool

    @classmethod
    def from_env(cls) -> "MimeConfig":
        """Load MIME codec settings from environment variables.

        Raises:
            ValueError: If the action or encoded-word encoding is unknown.
        """
        action = os.getenv("MIME_ACTION", "auto").strip().lower()
        if action not in MIME_ACTIONS:
            raise ValueError(f"MIME_ACTION must be one of: {', '.join(MIME_ACTIONS)}")

        encoding = os.getenv("MIME_ENCODING", "B").strip().upper()
        if encoding not in ("B", "Q"):
            raise ValueError("MIME_ENCODING must be B or Q")

        return cls(
            action=action,
            encoding=encoding,
            charset=os.getenv("MIME_CHARSET", "utf-8").strip() or "utf-8",
            verbose=Config._get_bool_env("VERBOSE", "false"),
        )
