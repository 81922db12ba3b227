"""
Subscription model.

WHY: The plan an organization is on decides how many time entries each
member may log per calendar month. Billing itself (checkout, webhooks,
plan changes) is handled elsewhere; this table is only read.
"""

import enum
from typing import Optional

from sqlalchemy import Column, Integer, Enum, ForeignKey

from app.core.config import settings
from app.models.base import Base, TimestampMixin, PrimaryKeyMixin


class SubscriptionPlan(str, enum.Enum):
    """
    Available subscription plans.

    Plans:
    - FREE: capped number of time entries per user per month
    - PRO: unlimited
    - ENTERPRISE: unlimited
    """

    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


def monthly_entry_limit(plan: SubscriptionPlan) -> Optional[int]:
    """
    Monthly time entry cap for a plan.

    Returns:
        Entry cap, or None for unlimited
    """
    if plan == SubscriptionPlan.FREE:
        return settings.FREE_PLAN_MONTHLY_ENTRY_LIMIT
    return None


class Subscription(Base, PrimaryKeyMixin, TimestampMixin):
    """
    One subscription per organization (1:1).

    An organization with no row is treated as FREE.
    """

    __tablename__ = "subscriptions"

    org_id = Column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    plan = Column(
        Enum(SubscriptionPlan),
        nullable=False,
        default=SubscriptionPlan.FREE,
        doc="Current subscription plan",
    )

    def __repr__(self) -> str:
        return f"<Subscription(org_id={self.org_id}, plan={self.plan})>"
