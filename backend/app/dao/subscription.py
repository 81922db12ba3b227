"""
Subscription Data Access Object (DAO).

WHAT: Read access to an organization's plan.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.dao.base import BaseDAO
from app.models.subscription import Subscription, SubscriptionPlan


class SubscriptionDAO(BaseDAO[Subscription]):
    """
    Data Access Object for Subscription model.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(Subscription, session)

    async def get_plan(self, org_id: int) -> SubscriptionPlan:
        """
        Current plan of an organization.

        WHY: Organizations that never subscribed have no row and are on
        the free plan.

        Args:
            org_id: Organization ID

        Returns:
            SubscriptionPlan
        """
        result = await self.session.execute(
            select(Subscription.plan).where(Subscription.org_id == org_id)
        )
        plan = result.scalar_one_or_none()
        return SubscriptionPlan(plan) if plan is not None else SubscriptionPlan.FREE
