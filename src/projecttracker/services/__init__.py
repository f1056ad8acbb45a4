"""Business services for Project Tracker.

Every mutation follows the same order: commit to the primary store, evict
affected cache keys, record one audit entry, return.
"""

from projecttracker.services.bulk import BatchResult, BulkCoordinator
from projecttracker.services.container import ServiceContainer, build_container
from projecttracker.services.developer import DeveloperService
from projecttracker.services.project import ProjectService
from projecttracker.services.statistics import StatisticsAggregator
from projecttracker.services.task import TaskService

__all__ = [
    "BatchResult",
    "BulkCoordinator",
    "DeveloperService",
    "ProjectService",
    "ServiceContainer",
    "StatisticsAggregator",
    "TaskService",
    "build_container",
]
