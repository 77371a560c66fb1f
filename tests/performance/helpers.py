"""
Helper utilities for Locust performance scenarios.

Credential generation, the register/login workflow and randomised record
payloads shared by every scenario.
"""

from __future__ import annotations

import random
import string
import time
from typing import Any

from locust.clients import HttpSession

DEVICES = ["Desktop", "iPhone 15", "Pixel 8", "Galaxy Tab S9", "MacBook Air"]
PLATFORMS = ["Chrome 120 / Windows 11", "Safari 17 / iOS 17", "Firefox 121 / Ubuntu"]
STATUSES = ["Stable", "Lag", "Crash"]
TREND_METRICS = ["response_time_ms", "cpu_usage_percent", "memory_usage_mb"]
SORT_KEYS = ["name", "created_at", "response_time_ms", "cpu_usage_percent", "memory_usage_mb"]


def safe_json(response: Any) -> dict[str, Any]:
    """Return response JSON as a dict, or ``{}`` for non-JSON or non-object bodies."""
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def register_user(client: HttpSession, *, username: str, email: str, password: str) -> bool:
    """Register a user through ``/api/auth/register``; ``True`` on 201."""
    with client.post(
        "/api/auth/register",
        json={"username": username, "email": email, "password": password},
        name="/api/auth/register [POST]",
        catch_response=True,
    ) as response:
        if response.status_code != 201:
            response.failure(f"Expected 201, got {response.status_code}")
            return False
        if not isinstance(safe_json(response).get("user"), dict):
            response.failure("Registration response missing user payload")
            return False
        response.success()
        return True


def login_user(client: HttpSession, *, username: str, password: str) -> str | None:
    """Log in and return the bearer token, or ``None`` on failure."""
    with client.post(
        "/api/auth/login",
        json={"username": username, "password": password},
        name="/api/auth/login [POST]",
        catch_response=True,
    ) as response:
        if response.status_code != 200:
            response.failure(f"Expected 200, got {response.status_code}")
            return None
        token = safe_json(response).get("token")
        if not isinstance(token, str) or not token:
            response.failure("Login response missing token")
            return None
        response.success()
        return token


def auth_header(token: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }


def unique_user_identity() -> tuple[str, str, str]:
    """Millisecond timestamp plus random suffix, so parallel workers never collide."""
    ts = int(time.time() * 1000)
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    username = f"perf_{ts}_{suffix}"
    return username, f"{username}@example.com", "PerfPass123!"


def random_record_payload() -> dict[str, Any]:
    """A valid ``POST /api/tests`` body with randomised measurements."""
    status = random.choices(STATUSES, weights=[7, 2, 1])[0]
    payload: dict[str, Any] = {
        "name": f"Perf run {''.join(random.choices(string.ascii_lowercase, k=5))}",
        "device": random.choice(DEVICES),
        "platform": random.choice(PLATFORMS),
        "response_time_ms": random.randint(80, 3000),
        "cpu_usage_percent": round(random.uniform(1, 100), 1),
        "memory_usage_mb": round(random.uniform(64, 4096), 1),
        "status": status,
        "notes": "Logged by Locust",
    }
    if random.random() < 0.5:
        payload["browser_metrics"] = {
            "page_load_time_ms": random.randint(300, 6000),
            "time_to_first_byte_ms": random.randint(20, 800),
            "cumulative_layout_shift": round(random.uniform(0, 0.5), 3),
        }
    return payload


def random_dashboard_query() -> dict[str, str]:
    """A random filter/sort combination as the dashboard would send it."""
    query = {
        "sort": random.choice(SORT_KEYS),
        "order": random.choice(["asc", "desc"]),
    }
    if random.random() < 0.4:
        query["status"] = random.choice(STATUSES)
    if random.random() < 0.3:
        query["device"] = random.choice(DEVICES).split()[0]
    return query
