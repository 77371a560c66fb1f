"""
Record storage for performance tests.

Thin layer between the routes and SQLAlchemy: every read honours an optional
owner filter, and any SQLAlchemy failure is rolled back and re-raised as an
opaque :class:`~observer_app.exceptions.StorageError` so driver details never
reach API callers.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from . import db
from .exceptions import NotFoundError, StorageError
from .models import PerformanceTest

logger = logging.getLogger(__name__)


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Translate SQLAlchemy failures raised inside the block into ``StorageError``."""
    try:
        yield
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Storage failure during %s", operation)
        raise StorageError() from exc


def _scoped_query(owner_id: int | None):
    stmt = select(PerformanceTest)
    if owner_id is not None:
        stmt = stmt.where(PerformanceTest.owner_id == owner_id)
    return stmt


def fetch_all(owner_id: int | None = None) -> list[PerformanceTest]:
    """
    Return every visible record in insertion order.

    Args:
        owner_id: When given, only that user's records are returned.
    """
    with storage_errors("fetch_all"):
        stmt = _scoped_query(owner_id).order_by(PerformanceTest.id.asc())
        return list(db.session.scalars(stmt).unique().all())


def fetch_one(test_id: int, owner_id: int | None = None) -> PerformanceTest:
    """
    Return a single record.

    Raises:
        NotFoundError: If the id does not exist or belongs to another owner.
    """
    with storage_errors("fetch_one"):
        record = db.session.scalar(
            _scoped_query(owner_id).where(PerformanceTest.id == test_id)
        )
    if record is None:
        raise NotFoundError("Test not found")
    return record


def insert(record: PerformanceTest) -> int:
    """Persist a new record (and its browser metrics) and return its id."""
    with storage_errors("insert"):
        db.session.add(record)
        db.session.commit()
    logger.info("Stored performance test %s", record.id)
    return record.id


def delete(test_id: int, owner_id: int | None = None) -> bool:
    """
    Delete a record.

    Returns:
        ``True`` if a visible record was found and deleted, ``False``
        otherwise.
    """
    with storage_errors("delete"):
        record = db.session.scalar(
            _scoped_query(owner_id).where(PerformanceTest.id == test_id)
        )
        if record is None:
            return False
        db.session.delete(record)
        db.session.commit()
    return True
