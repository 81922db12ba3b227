"""
Task Data Access Object (DAO).

WHAT: Catalog lookups and the logged-hours recomputation for tasks.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.dao.base import BaseDAO
from app.dao.time_entry import TimeEntryDAO
from app.core.clock import seconds_to_hours
from app.models.task import Task


class TaskDAO(BaseDAO[Task]):
    """
    Data Access Object for Task model.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(Task, session)

    async def recompute_actual_hours(self, task_id: int) -> Optional[Decimal]:
        """
        Refresh a task's logged hours from its time entries.

        Args:
            task_id: Task ID

        Returns:
            New actual_hours, or None if the task doesn't exist
        """
        task = await self.get_by_id(task_id)
        if not task:
            return None

        seconds = await TimeEntryDAO(self.session).sum_task_seconds(task_id)
        task.actual_hours = seconds_to_hours(seconds)
        await self.session.flush()
        return task.actual_hours
