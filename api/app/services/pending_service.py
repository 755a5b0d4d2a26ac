"""Pending balance estimate.

The pending balance is an informational guess at what today's points will be
worth. Accrual only marks it stale; it is recomputed when someone reads the
balance, and zeroed by settlement once the real credit has landed.
"""
from datetime import date
from decimal import Decimal
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.db.database import utc_today
from app.models.points import PointsDay
from app.models.ledger import UserBalance
from app.money import ZERO, quantize_money


class PendingEstimateService:
    """Maintains UserBalance.pending_balance as a separately invalidated cache."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def invalidate(self, user_id: int) -> None:
        await self.db.execute(
            update(UserBalance)
            .where(UserBalance.user_id == user_id)
            .values(pending_stale=True)
        )

    async def refresh(self, user_id: int, day: date | None = None) -> Decimal:
        """Recompute the estimate from the day's points (today by default)."""
        day = day or utc_today()
        total = await self.db.scalar(
            select(PointsDay.total_points).where(
                PointsDay.user_id == user_id,
                PointsDay.date == day,
            )
        )
        estimate = quantize_money((total or ZERO) * settings.pending_value_per_point)

        await self.db.execute(
            update(UserBalance)
            .where(UserBalance.user_id == user_id)
            .values(pending_balance=estimate, pending_stale=False)
        )
        return estimate

    async def reset(self, user_id: int) -> None:
        """Drop the estimate after settlement credited the real amount.

        Left stale so points earned since midnight are estimated on next read.
        """
        await self.db.execute(
            update(UserBalance)
            .where(UserBalance.user_id == user_id)
            .values(pending_balance=ZERO, pending_stale=True)
        )
