"""
Service-level endpoints: API banner, health probe and host metrics.
"""

from __future__ import annotations

import logging
import os
import time

import psutil
from flask import Blueprint, Response, jsonify

from .. import limiter

logger = logging.getLogger(__name__)

system_bp = Blueprint("system", __name__)

BYTES_PER_MB = 1024 * 1024


@system_bp.route("/", methods=["GET"])
def index() -> tuple[Response, int]:
    """Describe the API and list its entry points."""
    return jsonify(
        {
            "message": "System Performance Observer API",
            "version": "1.0.0",
            "endpoints": {
                "health": "/health",
                "auth": "/api/auth",
                "tests": "/api/tests",
                "statistics": "/api/tests/statistics",
                "trends": "/api/tests/trends",
                "compare": "/api/tests/compare",
                "reports": "/api/reports",
                "checklists": "/api/checklists",
                "scheduled_tests": "/api/scheduled-tests",
                "metrics": "/api/metrics",
            },
        }
    ), 200


@system_bp.route("/health", methods=["GET"])
@limiter.exempt
def health_check() -> tuple[Response, int]:
    """
    Liveness probe for orchestration tools.

    Exempt from rate limiting so probes never see a 429.
    """
    return jsonify(
        {
            "status": "healthy",
            "service": "performance-observer",
            "environment": os.getenv("ENVIRONMENT", "unknown"),
        }
    ), 200


@system_bp.route("/api/metrics", methods=["GET"])
def host_metrics() -> tuple[Response, int]:
    """Current CPU, memory and uptime of the host running the service."""
    memory = psutil.virtual_memory()
    metrics = {
        "cpu_percent": psutil.cpu_percent(interval=None),
        "memory": {
            "used_mb": round(memory.used / BYTES_PER_MB, 2),
            "total_mb": round(memory.total / BYTES_PER_MB, 2),
            "percent": memory.percent,
        },
        "uptime_seconds": round(time.time() - psutil.boot_time(), 0),
    }
    logger.debug("Host metrics: %s", metrics)
    return jsonify(metrics), 200
