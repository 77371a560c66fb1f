"""
REST API endpoints for performance test records.

Records are created and deleted but never updated.  Every read goes through
the storage layer with the caller's owner filter, then through the pure
dashboard functions in :mod:`observer_app.analysis`.

Endpoints:
    GET    /api/tests               - Filtered, sorted record list
    GET    /api/tests/statistics    - Summary statistics of the visible records
    GET    /api/tests/trends        - Per-day trend of one metric
    GET    /api/tests/compare       - Side-by-side selection (?ids=1,2,...)
    GET    /api/tests/<id>          - Single record with browser metrics
    POST   /api/tests               - Log a new record
    DELETE /api/tests/<id>          - Delete a record
"""

from __future__ import annotations

import logging
import math
from typing import Any

from flask import Blueprint, Response, current_app, jsonify, request

from .. import storage
from ..analysis import (
    FilterSpec,
    SortSpec,
    aggregate,
    compare,
    filter_and_sort,
    trend,
)
from ..auth import current_owner_id, optional_auth
from ..exceptions import NotFoundError, ValidationError
from ..models import BROWSER_METRIC_FIELDS, BrowserMetrics, PerformanceTest, TestStatus

logger = logging.getLogger(__name__)

performance_bp = Blueprint("performance", __name__)

TEXT_FIELD_LIMITS = {"name": 200, "device": 100, "platform": 100}

# Largest value a signed 64-bit INTEGER column holds.
MAX_STORED_INTEGER = 2**63 - 1


# -----------------------------------------------------------------------------
# Helper Functions
# -----------------------------------------------------------------------------


def _is_number(value: Any) -> bool:
    """True for finite JSON numbers that fit the database column types."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return abs(value) <= MAX_STORED_INTEGER
    return isinstance(value, float) and math.isfinite(value)


def validate_test_data(data: dict) -> tuple[bool, str | None]:
    """
    Validate a record submission.

    Checks required text fields and their lengths, status membership, the
    numeric ranges of the three measurements and the optional browser
    metrics object.

    Returns:
        ``(is_valid, error_message)``; ``error_message`` is ``None`` when
        valid.
    """
    for field in ("name", "device", "platform", "status"):
        value = data.get(field)
        if not isinstance(value, str) or not value.strip():
            return False, f"'{field}' is required"

    for field in ("response_time_ms", "cpu_usage_percent", "memory_usage_mb"):
        if data.get(field) is None:
            return False, f"'{field}' is required"

    for field, limit in TEXT_FIELD_LIMITS.items():
        if len(data[field]) > limit:
            return False, f"{field} must be {limit} characters or less"

    valid_statuses = [s.value for s in TestStatus]
    if data["status"] not in valid_statuses:
        return False, f"Invalid status. Must be one of: {valid_statuses}"

    response_time = data["response_time_ms"]
    if isinstance(response_time, bool) or not isinstance(response_time, int) or response_time < 0:
        return False, "response_time_ms must be a non-negative integer"
    if response_time > MAX_STORED_INTEGER:
        return False, f"response_time_ms must be at most {MAX_STORED_INTEGER}"

    cpu = data["cpu_usage_percent"]
    if not _is_number(cpu) or not 0 <= cpu <= 100:
        return False, "cpu_usage_percent must be a number between 0 and 100"

    memory = data["memory_usage_mb"]
    if not _is_number(memory) or memory < 0:
        return False, "memory_usage_mb must be a non-negative number"

    notes = data.get("notes")
    if notes is not None and not isinstance(notes, str):
        return False, "notes must be a string"

    browser_metrics = data.get("browser_metrics")
    if browser_metrics is not None:
        if not isinstance(browser_metrics, dict):
            return False, "browser_metrics must be an object"
        for field in BROWSER_METRIC_FIELDS:
            value = browser_metrics.get(field)
            if value is not None and (not _is_number(value) or value < 0):
                return False, f"browser_metrics.{field} must be a non-negative number"

    return True, None


def filter_spec_from_args() -> FilterSpec:
    """Build the dashboard filter from ``status``, ``device`` and ``search`` query parameters."""
    status = request.args.get("status") or None
    if status is not None:
        try:
            status = TestStatus(status)
        except ValueError:
            valid_statuses = [s.value for s in TestStatus]
            raise ValidationError(
                f"Invalid status. Must be one of: {valid_statuses}"
            ) from None

    return FilterSpec(
        status=status,
        device=request.args.get("device") or None,
        search=request.args.get("search") or None,
    )


def sort_spec_from_args() -> SortSpec:
    """Build the sort from ``sort`` and ``order``; newest first by default."""
    return SortSpec(
        key=request.args.get("sort", "created_at"),
        direction=request.args.get("order", "desc"),
    )


def visible_records() -> list[PerformanceTest]:
    """Fetch the caller's records and apply the request's filter and sort."""
    records = storage.fetch_all(current_owner_id())
    return filter_and_sort(records, filter_spec_from_args(), sort_spec_from_args())


def _parse_ids(raw: str) -> list[int]:
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise ValidationError("ids must be a comma-separated list of integers") from None


def _build_record(data: dict) -> PerformanceTest:
    """Map a validated payload onto a new record; server-owned fields are never read from it."""
    record = PerformanceTest(
        owner_id=current_owner_id(),
        name=data["name"].strip(),
        device=data["device"].strip(),
        platform=data["platform"].strip(),
        response_time_ms=data["response_time_ms"],
        cpu_usage_percent=float(data["cpu_usage_percent"]),
        memory_usage_mb=float(data["memory_usage_mb"]),
        status=data["status"],
        notes=data.get("notes"),
    )
    metrics = data.get("browser_metrics")
    if metrics:
        record.browser_metrics = BrowserMetrics(
            **{field: metrics.get(field) for field in BROWSER_METRIC_FIELDS}
        )
    return record


# -----------------------------------------------------------------------------
# API Endpoints
# -----------------------------------------------------------------------------


@performance_bp.route("/tests", methods=["GET"])
@optional_auth
def get_tests() -> tuple[Response, int]:
    """
    List the visible records.

    Query Parameters:
        status: Exact status (Stable, Lag, Crash)
        device: Case-insensitive device substring
        search: Case-insensitive substring of name or notes
        sort: name, created_at, response_time_ms, cpu_usage_percent, memory_usage_mb
        order: asc or desc

    Returns:
        JSON object with a ``tests`` array and a ``count``.
    """
    logger.info("GET /api/tests - Fetching tests")
    tests = visible_records()
    logger.info("Found %d tests", len(tests))
    return jsonify({"tests": [test.to_dict() for test in tests], "count": len(tests)}), 200


@performance_bp.route("/tests/statistics", methods=["GET"])
@optional_auth
def get_statistics() -> tuple[Response, int]:
    """Summary statistics over the records the dashboard filter leaves visible."""
    logger.info("GET /api/tests/statistics - Aggregating tests")
    stats = aggregate(visible_records())
    return jsonify(stats.to_dict()), 200


@performance_bp.route("/tests/trends", methods=["GET"])
@optional_auth
def get_trends() -> tuple[Response, int]:
    """
    Per-day trend of one metric.

    Query Parameters:
        days: Trailing window in days (default ``TREND_DEFAULT_DAYS``)
        metric: response_time_ms, cpu_usage_percent or memory_usage_mb
    """
    raw_days = request.args.get("days", str(current_app.config["TREND_DEFAULT_DAYS"]))
    metric = request.args.get("metric", "response_time_ms")
    try:
        days = int(raw_days)
    except ValueError:
        raise ValidationError("days must be a positive integer") from None

    logger.info("GET /api/tests/trends - metric=%s days=%s", metric, days)
    buckets = trend(storage.fetch_all(current_owner_id()), days, metric)
    return jsonify({
        "metric": metric,
        "days": days,
        "trends": [bucket.to_dict() for bucket in buckets],
    }), 200


@performance_bp.route("/tests/compare", methods=["GET"])
@optional_auth
def compare_tests() -> tuple[Response, int]:
    """
    Compare records side by side, in the order the ids were given.

    Unknown ids are skipped as long as at least one id resolves.
    """
    ids = _parse_ids(request.args.get("ids", ""))
    logger.info("GET /api/tests/compare - ids=%s", ids)

    matched = compare(storage.fetch_all(current_owner_id()), ids)
    if len(matched) < len(set(ids)):
        logger.warning("Comparison resolved %d of %d requested tests", len(matched), len(set(ids)))
    return jsonify({"tests": [test.to_dict() for test in matched], "count": len(matched)}), 200


@performance_bp.route("/tests/<int:test_id>", methods=["GET"])
@optional_auth
def get_test(test_id: int) -> tuple[Response, int]:
    """Return one record, including its browser metrics."""
    logger.info("GET /api/tests/%s - Fetching test", test_id)
    test = storage.fetch_one(test_id, current_owner_id())
    return jsonify(test.to_dict()), 200


@performance_bp.route("/tests", methods=["POST"])
@optional_auth
def create_test() -> tuple[Response, int]:
    """
    Log a new performance test.

    Request Body (JSON):
        name, device, platform, status: required text
        response_time_ms: required non-negative integer
        cpu_usage_percent: required number in [0, 100]
        memory_usage_mb: required non-negative number
        notes: optional text
        browser_metrics: optional object of nullable timing fields

    Returns:
        The created record with 201, or an error with 400.
    """
    logger.info("POST /api/tests - Creating test")

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be JSON"}), 400

    is_valid, error = validate_test_data(data)
    if not is_valid:
        logger.warning("Validation failed: %s", error)
        return jsonify({"error": error}), 400

    record = _build_record(data)
    storage.insert(record)
    return jsonify(record.to_dict()), 201


@performance_bp.route("/tests/<int:test_id>", methods=["DELETE"])
@optional_auth
def delete_test(test_id: int) -> tuple[Response, int]:
    """Delete a record owned by the caller (any record when anonymous)."""
    logger.info("DELETE /api/tests/%s - Deleting test", test_id)

    if not storage.delete(test_id, current_owner_id()):
        raise NotFoundError("Test not found")

    logger.info("Deleted test %s", test_id)
    return jsonify({"message": "Test deleted successfully"}), 200
