"""
Organization model.

WHY: Every time entry and timesheet is owned by a user inside an
organization. The organization row anchors foreign keys and carries the
subscription that decides the monthly entry quota.
"""

from sqlalchemy import Column, String, Boolean

from app.models.base import Base, TimestampMixin, PrimaryKeyMixin


class Organization(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Organization (tenant) owning time entries and timesheets.

    Users themselves live in the identity service; only their integer id
    is stored on owned rows.
    """

    __tablename__ = "organizations"

    name = Column(String(255), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name})>"
