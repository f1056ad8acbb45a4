"""Web interface for Project Tracker.

This module provides the FastAPI application exposing projects, developers,
tasks, the audit log, and statistics over a JSON API.
"""

from __future__ import annotations

from projecttracker.web.app import create_app
from projecttracker.web.middleware import RequestLoggingMiddleware

__all__ = [
    "create_app",
    "RequestLoggingMiddleware",
]
