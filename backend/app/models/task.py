"""
Task model.

WHAT: Unit of work time is logged against.

WHY: Time entries reference tasks by id, and the timesheet view shows the
task code and title next to each entry. ``actual_hours`` is a denormalized
sum of the task's logged time, recomputed by the store after each entry
is saved.
"""

from decimal import Decimal

from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Index

from app.models.base import Base, TimestampMixin, PrimaryKeyMixin


class Task(Base, PrimaryKeyMixin, TimestampMixin):
    """Task within a project."""

    __tablename__ = "tasks"

    org_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=True)
    code = Column(String(20), nullable=False)
    title = Column(String(255), nullable=False)
    actual_hours = Column(
        Numeric(10, 2), nullable=False, default=Decimal("0"), server_default="0"
    )

    __table_args__ = (
        Index("ix_tasks_org_id", "org_id"),
        Index("ix_tasks_project_id", "project_id"),
    )

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, code={self.code})>"
