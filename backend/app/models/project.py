"""
Project model.

WHAT: Catalog entry time can be logged against directly or through one of
its tasks.

WHY: Project CRUD lives in the catalog service; this service only needs
the row to exist so entries and tasks can reference it.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, Index

from app.models.base import Base, TimestampMixin, PrimaryKeyMixin


class Project(Base, PrimaryKeyMixin, TimestampMixin):
    """Project within an organization."""

    __tablename__ = "projects"

    org_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    code = Column(String(20), nullable=False)
    name = Column(String(255), nullable=False)

    __table_args__ = (
        Index("ix_projects_org_id", "org_id"),
    )

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, code={self.code})>"
