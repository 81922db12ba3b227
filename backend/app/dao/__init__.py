"""
Data Access Object (DAO) package.

WHY: DAOs provide a clean separation between database operations and business logic,
making the codebase more testable and maintainable.
"""

from app.dao.base import BaseDAO
from app.dao.subscription import SubscriptionDAO
from app.dao.task import TaskDAO
from app.dao.time_entry import TimeEntryDAO
from app.dao.timesheet import TimesheetDAO, TimesheetEntryDAO

__all__ = [
    "BaseDAO",
    "SubscriptionDAO",
    "TaskDAO",
    "TimeEntryDAO",
    "TimesheetDAO",
    "TimesheetEntryDAO",
]
