"""Project Tracker - audited project, developer, and task management.

This package provides a transactional store for projects, developers, and
tasks, an independent append-only audit log, an invalidate-on-write read
cache, and bulk task mutations with well-defined partial-success semantics.
"""

__version__ = "0.1.0"
