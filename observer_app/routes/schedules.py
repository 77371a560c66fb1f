"""
REST API endpoints for cron-scheduled test definitions.

Every endpoint requires a valid Bearer token and only ever touches the
caller's own schedules.  The service stores schedules and computes their
``next_run``; it does not execute them.

Endpoints:
    GET    /api/scheduled-tests         - List the caller's schedules
    POST   /api/scheduled-tests         - Create a schedule
    GET    /api/scheduled-tests/<id>    - One schedule
    PUT    /api/scheduled-tests/<id>    - Partial update
    DELETE /api/scheduled-tests/<id>    - Delete a schedule
"""

from __future__ import annotations

import logging
from typing import Any

from flask import Blueprint, Response, g, jsonify, request
from sqlalchemy import select

from .. import db
from ..auth import require_auth
from ..exceptions import NotFoundError
from ..models import ScheduledTest
from ..scheduling import is_valid_cron, next_run_time
from ..storage import storage_errors

logger = logging.getLogger(__name__)

schedules_bp = Blueprint("schedules", __name__)

TEXT_FIELD_LIMITS = {"name": 200, "device": 100, "platform": 100, "schedule_cron": 100}
UPDATABLE_FIELDS = ("name", "device", "platform", "schedule_cron", "is_active")


def validate_schedule_data(data: dict[str, Any], *, partial: bool = False) -> str | None:
    """
    Validate a schedule payload.

    With ``partial`` only the fields present are checked, which is how
    updates are validated.

    Returns:
        An error message, or ``None`` when the payload is valid.
    """
    for field, limit in TEXT_FIELD_LIMITS.items():
        if partial and field not in data:
            continue
        value = data.get(field)
        if not isinstance(value, str) or not value.strip():
            return f"'{field}' is required"
        if len(value) > limit:
            return f"{field} must be {limit} characters or less"

    if "schedule_cron" in data and not is_valid_cron(data["schedule_cron"]):
        return "Invalid cron expression"

    if "is_active" in data and not isinstance(data["is_active"], bool):
        return "is_active must be a boolean"

    return None


def _owned_schedule(schedule_id: int) -> ScheduledTest:
    stmt = select(ScheduledTest).where(
        ScheduledTest.id == schedule_id,
        ScheduledTest.owner_id == g.principal.user_id,
    )
    with storage_errors("fetch_schedule"):
        schedule = db.session.scalar(stmt)
    if schedule is None:
        raise NotFoundError("Scheduled test not found")
    return schedule


@schedules_bp.route("/scheduled-tests", methods=["GET"])
@require_auth
def get_schedules() -> tuple[Response, int]:
    logger.info("GET /api/scheduled-tests - user=%s", g.principal.user_id)
    stmt = (
        select(ScheduledTest)
        .where(ScheduledTest.owner_id == g.principal.user_id)
        .order_by(ScheduledTest.created_at.desc(), ScheduledTest.id.desc())
    )
    with storage_errors("list_schedules"):
        schedules = db.session.scalars(stmt).all()
    return jsonify(
        {"scheduled_tests": [s.to_dict() for s in schedules], "count": len(schedules)}
    ), 200


@schedules_bp.route("/scheduled-tests/<int:schedule_id>", methods=["GET"])
@require_auth
def get_schedule(schedule_id: int) -> tuple[Response, int]:
    return jsonify(_owned_schedule(schedule_id).to_dict()), 200


@schedules_bp.route("/scheduled-tests", methods=["POST"])
@require_auth
def create_schedule() -> tuple[Response, int]:
    """
    Create a schedule.

    Request Body (JSON):
        name, device, platform: required text
        schedule_cron: required cron expression, e.g. ``"0 */6 * * *"``
        is_active: optional boolean, defaults to true

    Returns:
        The created schedule with its computed ``next_run`` (201), or 400.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be JSON"}), 400

    error = validate_schedule_data(data)
    if error:
        logger.warning("Validation failed: %s", error)
        return jsonify({"error": error}), 400

    cron = data["schedule_cron"].strip()
    schedule = ScheduledTest(
        owner_id=g.principal.user_id,
        name=data["name"].strip(),
        device=data["device"].strip(),
        platform=data["platform"].strip(),
        schedule_cron=cron,
        is_active=data.get("is_active", True),
        next_run=next_run_time(cron),
    )
    with storage_errors("create_schedule"):
        db.session.add(schedule)
        db.session.commit()

    logger.info("Created scheduled test %s (%s)", schedule.id, cron)
    return jsonify(schedule.to_dict()), 201


@schedules_bp.route("/scheduled-tests/<int:schedule_id>", methods=["PUT"])
@require_auth
def update_schedule(schedule_id: int) -> tuple[Response, int]:
    """
    Update any of ``name``, ``device``, ``platform``, ``schedule_cron`` and
    ``is_active``.  Other fields in the body are ignored.

    ``next_run`` is recomputed when the cron expression changes or the
    schedule is switched back on.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be JSON"}), 400

    updates = {field: data[field] for field in UPDATABLE_FIELDS if field in data}
    if not updates:
        return jsonify({"error": "No updatable fields provided"}), 400

    error = validate_schedule_data(updates, partial=True)
    if error:
        logger.warning("Validation failed: %s", error)
        return jsonify({"error": error}), 400

    schedule = _owned_schedule(schedule_id)
    reschedule = False

    for field in ("name", "device", "platform"):
        if field in updates:
            setattr(schedule, field, updates[field].strip())

    if "schedule_cron" in updates:
        cron = updates["schedule_cron"].strip()
        reschedule = cron != schedule.schedule_cron
        schedule.schedule_cron = cron

    if "is_active" in updates:
        if updates["is_active"] and not schedule.is_active:
            reschedule = True
        schedule.is_active = updates["is_active"]

    if reschedule:
        schedule.next_run = next_run_time(schedule.schedule_cron)

    with storage_errors("update_schedule"):
        db.session.commit()

    return jsonify(schedule.to_dict()), 200


@schedules_bp.route("/scheduled-tests/<int:schedule_id>", methods=["DELETE"])
@require_auth
def delete_schedule(schedule_id: int) -> tuple[Response, int]:
    schedule = _owned_schedule(schedule_id)
    with storage_errors("delete_schedule"):
        db.session.delete(schedule)
        db.session.commit()

    logger.info("Deleted scheduled test %s", schedule_id)
    return jsonify({"message": "Scheduled test deleted successfully"}), 200
