"""
Database models package.

WHY: Centralizing model imports ensures Alembic can discover all models
for migration generation and makes it easier to import models elsewhere.
"""

from app.models.base import Base, TimestampMixin, PrimaryKeyMixin
from app.models.organization import Organization
from app.models.subscription import Subscription, SubscriptionPlan, monthly_entry_limit
from app.models.project import Project
from app.models.task import Task
from app.models.time_entry import TimeEntry, TimerType
from app.models.timesheet import Timesheet, TimesheetEntry, TimesheetStatus

__all__ = [
    "Base",
    "TimestampMixin",
    "PrimaryKeyMixin",
    "Organization",
    "Subscription",
    "SubscriptionPlan",
    "monthly_entry_limit",
    "Project",
    "Task",
    "TimeEntry",
    "TimerType",
    "Timesheet",
    "TimesheetEntry",
    "TimesheetStatus",
]
