"""Audit report rendering.

Converts a BatchSummary into JSON, YAML or CSV for administrators and
downstream tooling.
"""

import csv
import io
import json

import yaml

from posture_audit.models.batch_summary import BatchSummary


REPORT_FORMATS = ("json", "yaml", "csv")

CSV_COLUMNS = [
    "S.No",
    "Target",
    "Kind",
    "Selector",
    "Status",
    "Reason",
    "Error",
    "Release Status",
    "Release Date",
]


class AuditReporter:
    """Generates formatted audit reports from a batch summary."""

    @staticmethod
    def generate_json_report(summary: BatchSummary) -> str:
        """Generate JSON-formatted audit report.

        Args:
            summary: BatchSummary for a completed batch.

        Returns:
            str: Pretty-printed JSON string with sorted keys for determinism.

        Example:
            >>> report = AuditReporter.generate_json_report(summary)
            >>> print(report)
            {
              "execution_summary": {...},
              "items": [...],
              "network_connectivity": null
            }
        """
        return json.dumps(summary.to_json(), indent=2, sort_keys=True)

    @staticmethod
    def generate_yaml_report(summary: BatchSummary) -> str:
        """Same content as the JSON report, as block-style YAML."""
        return yaml.safe_dump(summary.to_json(), sort_keys=True, default_flow_style=False)

    @staticmethod
    def generate_csv_report(summary: BatchSummary) -> str:
        """Generate a flat one-row-per-item CSV export.

        Args:
            summary: BatchSummary for a completed batch.

        Returns:
            str: CSV text with a header row, items in input order.
        """
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(CSV_COLUMNS)
        for item in summary.items:
            writer.writerow(
                [
                    item.id,
                    item.target.value,
                    item.kind.value,
                    item.selector or "",
                    item.state.value,
                    item.reason,
                    item.error_kind or "",
                    item.release_status.value,
                    item.release_date or "",
                ]
            )
        return buffer.getvalue()

    @classmethod
    def render(cls, summary: BatchSummary, report_format: str = "json") -> str:
        """Render a report in the requested format.

        Raises:
            ValueError: If the format is not one of REPORT_FORMATS.
        """
        if report_format == "json":
            return cls.generate_json_report(summary)
        if report_format == "yaml":
            return cls.generate_yaml_report(summary)
        if report_format == "csv":
            return cls.generate_csv_report(summary)
        raise ValueError(f"Unsupported report format: {report_format}")
