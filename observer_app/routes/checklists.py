"""
REST API endpoints for test checklists.

A checklist is a named, ordered list of manual steps.  Ownership follows the
same rule as performance records: a signed-in caller only sees and deletes
their own checklists, an anonymous caller sees all of them.

Endpoints:
    GET    /api/checklists              - List checklists (newest first)
    POST   /api/checklists              - Create a checklist with its items
    GET    /api/checklists/<id>         - One checklist with items
    DELETE /api/checklists/<id>         - Delete a checklist and its items
    PUT    /api/checklists/items/<id>   - Tick or untick one item
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response, jsonify, request
from sqlalchemy import select

from .. import db
from ..auth import current_owner_id, optional_auth
from ..exceptions import NotFoundError, ValidationError
from ..models import Checklist, ChecklistItem
from ..storage import storage_errors

logger = logging.getLogger(__name__)

checklists_bp = Blueprint("checklists", __name__)


def _visible_checklist(checklist_id: int) -> Checklist:
    stmt = select(Checklist).where(Checklist.id == checklist_id)
    owner_id = current_owner_id()
    if owner_id is not None:
        stmt = stmt.where(Checklist.owner_id == owner_id)
    with storage_errors("fetch_checklist"):
        checklist = db.session.scalar(stmt)
    if checklist is None:
        raise NotFoundError("Checklist not found")
    return checklist


def _item_texts(raw_items: object) -> list[str]:
    """Accept items as plain strings or ``{"text": ...}`` objects."""
    if raw_items is None:
        return []
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")

    texts = []
    for raw in raw_items:
        text = raw.get("text") if isinstance(raw, dict) else raw
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Each checklist item needs non-empty text")
        if len(text) > 500:
            raise ValidationError("Checklist item text must be 500 characters or less")
        texts.append(text.strip())
    return texts


@checklists_bp.route("/checklists", methods=["GET"])
@optional_auth
def get_checklists() -> tuple[Response, int]:
    logger.info("GET /api/checklists - Fetching checklists")
    stmt = select(Checklist).order_by(Checklist.created_at.desc(), Checklist.id.desc())
    owner_id = current_owner_id()
    if owner_id is not None:
        stmt = stmt.where(Checklist.owner_id == owner_id)

    with storage_errors("list_checklists"):
        checklists = db.session.scalars(stmt).all()
        payload = [checklist.to_dict(include_items=True) for checklist in checklists]
    return jsonify({"checklists": payload, "count": len(payload)}), 200


@checklists_bp.route("/checklists/<int:checklist_id>", methods=["GET"])
@optional_auth
def get_checklist(checklist_id: int) -> tuple[Response, int]:
    checklist = _visible_checklist(checklist_id)
    return jsonify(checklist.to_dict(include_items=True)), 200


@checklists_bp.route("/checklists", methods=["POST"])
@optional_auth
def create_checklist() -> tuple[Response, int]:
    """
    Create a checklist.

    Request Body (JSON):
        name: required, 200 characters or less
        description: optional text
        items: optional list of strings or ``{"text": ...}`` objects, kept in order
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be JSON"}), 400

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        return jsonify({"error": "'name' is required"}), 400
    if len(name) > 200:
        return jsonify({"error": "name must be 200 characters or less"}), 400

    description = data.get("description")
    if description is not None and not isinstance(description, str):
        return jsonify({"error": "description must be a string"}), 400

    checklist = Checklist(
        owner_id=current_owner_id(),
        name=name.strip(),
        description=description,
    )
    checklist.items = [
        ChecklistItem(text=text, order_index=index)
        for index, text in enumerate(_item_texts(data.get("items")))
    ]

    with storage_errors("create_checklist"):
        db.session.add(checklist)
        db.session.commit()

    logger.info("Created checklist %s with %d items", checklist.id, len(checklist.items))
    return jsonify(checklist.to_dict(include_items=True)), 201


@checklists_bp.route("/checklists/items/<int:item_id>", methods=["PUT"])
@optional_auth
def update_item(item_id: int) -> tuple[Response, int]:
    """Set ``is_completed`` on one item of a visible checklist."""
    data = request.get_json(silent=True) or {}
    completed = data.get("is_completed")
    if not isinstance(completed, bool):
        return jsonify({"error": "is_completed must be a boolean"}), 400

    stmt = select(ChecklistItem).join(Checklist).where(ChecklistItem.id == item_id)
    owner_id = current_owner_id()
    if owner_id is not None:
        stmt = stmt.where(Checklist.owner_id == owner_id)

    with storage_errors("update_checklist_item"):
        item = db.session.scalar(stmt)
        if item is None:
            raise NotFoundError("Checklist item not found")
        item.set_completed(completed)
        db.session.commit()

    return jsonify(item.to_dict()), 200


@checklists_bp.route("/checklists/<int:checklist_id>", methods=["DELETE"])
@optional_auth
def delete_checklist(checklist_id: int) -> tuple[Response, int]:
    checklist = _visible_checklist(checklist_id)
    with storage_errors("delete_checklist"):
        db.session.delete(checklist)
        db.session.commit()

    logger.info("Deleted checklist %s", checklist_id)
    return jsonify({"message": "Checklist deleted successfully"}), 200
