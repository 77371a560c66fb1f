"""
Database models for the Performance Observer service.

Defines the SQLAlchemy ORM models backing the service: performance test
records with their optional browser timing metrics, user accounts,
checklists with their items, and cron-scheduled test definitions.

Performance test records are write-once: they are created and deleted but
never updated in place.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from werkzeug.security import check_password_hash, generate_password_hash

from . import db


def ensure_utc(value: datetime) -> datetime:
    """
    Normalise a datetime to timezone-aware UTC.

    SQLite does not store timezone information, so values read back from
    the database are naive even though they were written in UTC.  Naive
    values are therefore assumed to already be UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_utc_iso(value: datetime | None) -> str | None:
    """Serialise an optional datetime as an ISO-8601 UTC string."""
    if value is None:
        return None
    return ensure_utc(value).isoformat()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TestStatus(str, Enum):
    """
    Outcome classification chosen when a test is logged.

    Inherits from ``str`` so members serialise directly to JSON and compare
    equal to the raw strings stored in the database column.  The status is
    terminal: nothing transitions a record from one value to another.
    """

    # Keep pytest from trying to collect this as a test class.
    __test__ = False

    STABLE = "Stable"
    LAG = "Lag"
    CRASH = "Crash"


BROWSER_METRIC_FIELDS = (
    "page_load_time_ms",
    "dom_content_loaded_ms",
    "time_to_first_byte_ms",
    "first_contentful_paint_ms",
    "largest_contentful_paint_ms",
    "cumulative_layout_shift",
    "first_input_delay_ms",
)


class User(db.Model):
    """
    Registered account that can own records, checklists and schedules.

    Passwords are stored as Werkzeug hashes only; ``to_dict`` omits the hash
    so it can be returned in API responses.
    """

    __tablename__ = "users"

    id: int = db.Column(db.Integer, primary_key=True)
    username: str = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email: str = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash: str = db.Column(db.String(256), nullable=False)
    created_at: datetime = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow
    )

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "created_at": to_utc_iso(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.username}>"


class PerformanceTest(db.Model):
    """
    A single logged performance observation.

    Attributes:
        id: Auto-incrementing primary key; ``sqlite_autoincrement`` keeps
            SQLite from handing out the id of a deleted row again.
        owner_id: Owning user, or ``None`` for anonymous submissions.
        name: Label of the test run.
        device: Device the test ran on.
        platform: Browser / operating system descriptor.
        response_time_ms: Observed response time in milliseconds.
        cpu_usage_percent: CPU usage in percent, within [0, 100].
        memory_usage_mb: Memory usage in megabytes.
        status: Outcome (see ``TestStatus``).
        notes: Optional free text.
        created_at: Insertion timestamp (UTC), never modified.
        browser_metrics: Optional browser timing sub-record.
    """

    __tablename__ = "performance_tests"
    __table_args__ = {"sqlite_autoincrement": True}

    id: int = db.Column(db.Integer, primary_key=True)
    owner_id: int | None = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=True, index=True
    )
    name: str = db.Column(db.String(200), nullable=False)
    device: str = db.Column(db.String(100), nullable=False)
    platform: str = db.Column(db.String(100), nullable=False)
    response_time_ms: int = db.Column(db.Integer, nullable=False)
    cpu_usage_percent: float = db.Column(db.Float, nullable=False)
    memory_usage_mb: float = db.Column(db.Float, nullable=False)
    status: str = db.Column(db.String(20), nullable=False)
    notes: str | None = db.Column(db.Text, nullable=True)
    created_at: datetime = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, index=True
    )

    browser_metrics = db.relationship(
        "BrowserMetrics",
        uselist=False,
        back_populates="test",
        cascade="all, delete-orphan",
        lazy="joined",
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialise the record, including browser metrics when attached."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "device": self.device,
            "platform": self.platform,
            "response_time_ms": self.response_time_ms,
            "cpu_usage_percent": self.cpu_usage_percent,
            "memory_usage_mb": self.memory_usage_mb,
            "status": self.status,
            "notes": self.notes,
            "created_at": to_utc_iso(self.created_at),
            "browser_metrics": (
                self.browser_metrics.to_dict() if self.browser_metrics else None
            ),
        }

    def __repr__(self) -> str:
        return f"<PerformanceTest {self.id}: {self.name}>"


class BrowserMetrics(db.Model):
    """Browser timing metrics attached to one performance test; every field is nullable."""

    __tablename__ = "browser_performance_metrics"

    id: int = db.Column(db.Integer, primary_key=True)
    test_id: int = db.Column(
        db.Integer,
        db.ForeignKey("performance_tests.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    page_load_time_ms: float | None = db.Column(db.Float, nullable=True)
    dom_content_loaded_ms: float | None = db.Column(db.Float, nullable=True)
    time_to_first_byte_ms: float | None = db.Column(db.Float, nullable=True)
    first_contentful_paint_ms: float | None = db.Column(db.Float, nullable=True)
    largest_contentful_paint_ms: float | None = db.Column(db.Float, nullable=True)
    cumulative_layout_shift: float | None = db.Column(db.Float, nullable=True)
    first_input_delay_ms: float | None = db.Column(db.Float, nullable=True)

    test = db.relationship("PerformanceTest", back_populates="browser_metrics")

    def to_dict(self) -> dict[str, Any]:
        return {field: getattr(self, field) for field in BROWSER_METRIC_FIELDS}


class Checklist(db.Model):
    """Named list of manual test steps, optionally owned by a user."""

    __tablename__ = "test_checklists"

    id: int = db.Column(db.Integer, primary_key=True)
    owner_id: int | None = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=True, index=True
    )
    name: str = db.Column(db.String(200), nullable=False)
    description: str | None = db.Column(db.Text, nullable=True)
    created_at: datetime = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow
    )

    items = db.relationship(
        "ChecklistItem",
        back_populates="checklist",
        cascade="all, delete-orphan",
        order_by="ChecklistItem.order_index",
    )

    def to_dict(self, *, include_items: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "description": self.description,
            "created_at": to_utc_iso(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data

    def __repr__(self) -> str:
        return f"<Checklist {self.id}: {self.name}>"


class ChecklistItem(db.Model):
    """One step of a checklist."""

    __tablename__ = "checklist_items"

    id: int = db.Column(db.Integer, primary_key=True)
    checklist_id: int = db.Column(
        db.Integer,
        db.ForeignKey("test_checklists.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    text: str = db.Column(db.String(500), nullable=False)
    order_index: int = db.Column(db.Integer, nullable=False, default=0)
    is_completed: bool = db.Column(db.Boolean, nullable=False, default=False)
    completed_at: datetime | None = db.Column(db.DateTime(timezone=True), nullable=True)

    checklist = db.relationship("Checklist", back_populates="items")

    def set_completed(self, completed: bool, *, now: datetime | None = None) -> None:
        """
        Update the completion flag.

        ``completed_at`` is stamped only on the false -> true transition, so
        re-asserting completion keeps the original timestamp.  Clearing the
        flag clears the timestamp.
        """
        if completed and not self.is_completed:
            self.completed_at = now or _utcnow()
        elif not completed:
            self.completed_at = None
        self.is_completed = completed

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "checklist_id": self.checklist_id,
            "text": self.text,
            "order_index": self.order_index,
            "is_completed": self.is_completed,
            "completed_at": to_utc_iso(self.completed_at),
        }


class ScheduledTest(db.Model):
    """
    Recurring test definition driven by a cron expression.

    Only ``next_run`` is computed from the expression; nothing in the
    service executes the schedule.
    """

    __tablename__ = "scheduled_tests"

    id: int = db.Column(db.Integer, primary_key=True)
    owner_id: int = db.Column(
        db.Integer, db.ForeignKey("users.id"), nullable=False, index=True
    )
    name: str = db.Column(db.String(200), nullable=False)
    device: str = db.Column(db.String(100), nullable=False)
    platform: str = db.Column(db.String(100), nullable=False)
    schedule_cron: str = db.Column(db.String(100), nullable=False)
    is_active: bool = db.Column(db.Boolean, nullable=False, default=True)
    next_run: datetime | None = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at: datetime = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "device": self.device,
            "platform": self.platform,
            "schedule_cron": self.schedule_cron,
            "is_active": self.is_active,
            "next_run": to_utc_iso(self.next_run),
            "created_at": to_utc_iso(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<ScheduledTest {self.id}: {self.name} ({self.schedule_cron})>"
