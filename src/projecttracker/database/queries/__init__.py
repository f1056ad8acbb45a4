"""Query functions for Project Tracker.

Each module groups the async statements for one table. Query functions add,
flush and execute on the session they are given; transaction boundaries are
owned by the calling service.
"""

from projecttracker.database.queries import audit, developer, project, task
from projecttracker.database.queries.paging import (
    MAX_PAGE_SIZE,
    Page,
    PageRequest,
    SortDirection,
    fetch_page,
)

__all__ = [
    "audit",
    "developer",
    "project",
    "task",
    "MAX_PAGE_SIZE",
    "Page",
    "PageRequest",
    "SortDirection",
    "fetch_page",
]
