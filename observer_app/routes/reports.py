"""
Downloadable reports of the visible performance test records.

All three formats accept the same ``status``, ``device``, ``search``,
``sort`` and ``order`` query parameters as ``GET /api/tests``.

Endpoints:
    GET /api/reports/csv    - text/csv
    GET /api/reports/excel  - .xlsx workbook
    GET /api/reports/pdf    - PDF document
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from flask import Blueprint, Response, current_app

from ..analysis import aggregate
from ..auth import optional_auth
from ..reports import build_csv, build_pdf, build_workbook
from .performance import visible_records

logger = logging.getLogger(__name__)

reports_bp = Blueprint("reports", __name__)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _attachment(body: bytes | str, mimetype: str, extension: str) -> Response:
    filename = f"performance-report-{datetime.now(timezone.utc):%Y%m%d-%H%M%S}.{extension}"
    response = Response(body, mimetype=mimetype)
    response.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


@reports_bp.route("/csv", methods=["GET"])
@optional_auth
def export_csv() -> Response:
    records = visible_records()
    logger.info("GET /api/reports/csv - Exporting %d tests", len(records))
    return _attachment(build_csv(records), "text/csv", "csv")


@reports_bp.route("/excel", methods=["GET"])
@optional_auth
def export_excel() -> Response:
    records = visible_records()
    logger.info("GET /api/reports/excel - Exporting %d tests", len(records))
    return _attachment(build_workbook(records, aggregate(records)), XLSX_MIMETYPE, "xlsx")


@reports_bp.route("/pdf", methods=["GET"])
@optional_auth
def export_pdf() -> Response:
    """Summary plus the first ``REPORT_PDF_MAX_ROWS`` records as a PDF."""
    records = visible_records()
    logger.info("GET /api/reports/pdf - Exporting %d tests", len(records))
    pdf = build_pdf(records, aggregate(records), current_app.config["REPORT_PDF_MAX_ROWS"])
    return _attachment(pdf, "application/pdf", "pdf")
