"""
Report rendering for performance test records.

Turns an ordered record list plus its :class:`~observer_app.analysis.SummaryStats`
into a downloadable document:

- CSV: one header row and one row per record.  A field containing a comma
  or a double quote is wrapped in double quotes with internal quotes
  doubled; every other field is written verbatim.
- Excel: an openpyxl workbook with a "Summary" sheet and a "Test Records"
  sheet.
- PDF: the ``report.html`` template rendered with Jinja and converted by
  WeasyPrint.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from io import BytesIO
from typing import Any

from flask import render_template
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from .analysis import SummaryStats
from .models import BROWSER_METRIC_FIELDS, ensure_utc, to_utc_iso

logger = logging.getLogger(__name__)

CSV_HEADERS = (
    "Test Name",
    "Device",
    "Browser/OS",
    "Response Time (ms)",
    "CPU Usage (%)",
    "Memory Usage (MB)",
    "Status",
    "Date",
    "Notes",
)

BROWSER_METRIC_HEADERS = (
    "Page Load (ms)",
    "DOM Content Loaded (ms)",
    "TTFB (ms)",
    "FCP (ms)",
    "LCP (ms)",
    "CLS",
    "FID (ms)",
)


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def csv_field(value: Any) -> str:
    """Render one CSV field, quoting it only when it holds a comma or a double quote."""
    text = _format_value(value)
    if "," in text or '"' in text:
        return '"' + text.replace('"', '""') + '"'
    return text


def _record_row(record: Any) -> list[Any]:
    return [
        record.name,
        record.device,
        record.platform,
        record.response_time_ms,
        record.cpu_usage_percent,
        record.memory_usage_mb,
        record.status,
        to_utc_iso(record.created_at),
        record.notes or "",
    ]


def build_csv(records: Sequence[Any]) -> str:
    """Render records as CSV text (``\\n`` separated, no trailing newline)."""
    lines = [",".join(csv_field(label) for label in CSV_HEADERS)]
    for record in records:
        lines.append(",".join(csv_field(value) for value in _record_row(record)))
    return "\n".join(lines)


def _summary_rows(stats: SummaryStats) -> list[tuple[str, Any]]:
    return [
        ("Total Tests", stats.total_count),
        ("Average Response Time (ms)", round(stats.mean_response_time_ms, 2)),
        ("Average CPU Usage (%)", round(stats.mean_cpu_usage_percent, 2)),
        ("Average Memory Usage (MB)", round(stats.mean_memory_usage_mb, 2)),
        ("Stable Tests", stats.stable_count),
        ("Lag Tests", stats.lag_count),
        ("Crash Tests", stats.crash_count),
    ]


def build_workbook(
    records: Sequence[Any],
    stats: SummaryStats,
    generated_at: datetime | None = None,
) -> bytes:
    """Render records and their summary as an ``.xlsx`` document."""
    generated_at = generated_at or datetime.now(timezone.utc)

    wb = Workbook()
    header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
    header_font = Font(color="FFFFFF", bold=True)
    border = Border(
        left=Side(style="thin"),
        right=Side(style="thin"),
        top=Side(style="thin"),
        bottom=Side(style="thin"),
    )

    ws_summary = wb.active
    ws_summary.title = "Summary"
    ws_summary["A1"] = "Performance Test Report"
    ws_summary["A1"].font = Font(size=16, bold=True, color="366092")
    ws_summary["A2"] = f"Generated on: {ensure_utc(generated_at).strftime('%Y-%m-%d %H:%M:%S')} UTC"

    for row_index, (label, value) in enumerate(_summary_rows(stats), start=4):
        ws_summary.cell(row=row_index, column=1, value=label).font = Font(bold=True)
        ws_summary.cell(row=row_index, column=2, value=value)
    ws_summary.column_dimensions["A"].width = 30
    ws_summary.column_dimensions["B"].width = 16

    ws_records = wb.create_sheet(title="Test Records")
    headers = list(CSV_HEADERS) + list(BROWSER_METRIC_HEADERS)
    for column, label in enumerate(headers, start=1):
        cell = ws_records.cell(row=1, column=column, value=label)
        cell.fill = header_fill
        cell.font = header_font
        cell.border = border
        cell.alignment = Alignment(horizontal="center", vertical="center")
        ws_records.column_dimensions[get_column_letter(column)].width = max(12, len(label) + 2)

    for row_index, record in enumerate(records, start=2):
        row = _record_row(record)
        # openpyxl rejects timezone-aware datetimes.
        row[7] = ensure_utc(record.created_at).replace(tzinfo=None)
        metrics = record.browser_metrics
        row.extend(getattr(metrics, name) if metrics else None for name in BROWSER_METRIC_FIELDS)
        for column, value in enumerate(row, start=1):
            cell = ws_records.cell(row=row_index, column=column, value=value)
            cell.border = border
        ws_records.cell(row=row_index, column=8).number_format = "yyyy-mm-dd hh:mm:ss"

    ws_records.freeze_panes = "A2"

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def render_report_html(
    records: Sequence[Any],
    stats: SummaryStats,
    max_rows: int,
    generated_at: datetime | None = None,
) -> str:
    """Render the printable HTML report; must run inside an app context."""
    generated_at = generated_at or datetime.now(timezone.utc)
    return render_template(
        "report.html",
        records=list(records[:max_rows]),
        remaining=max(len(records) - max_rows, 0),
        summary=_summary_rows(stats),
        generated_at=ensure_utc(generated_at).strftime("%Y-%m-%d %H:%M:%S UTC"),
    )


def build_pdf(
    records: Sequence[Any],
    stats: SummaryStats,
    max_rows: int,
    generated_at: datetime | None = None,
) -> bytes:
    """Render the HTML report and convert it to PDF with WeasyPrint."""
    # WeasyPrint loads Pango through cffi on import; keep that off the
    # app start-up path.
    import weasyprint

    html = render_report_html(records, stats, max_rows, generated_at)
    logger.info("Rendering PDF report for %d records", len(records))
    return weasyprint.HTML(string=html).write_pdf()
