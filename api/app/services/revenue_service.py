"""Daily ad revenue estimate.

Revenue is estimated from in-feed ad impressions at a flat CPM. It is not a
reconciled payment from the ad network.
"""
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.revenue import AdImpression, AdType
from app.money import quantize_money, to_decimal
from app.services.errors import ValidationError

IMPRESSIONS_PER_CPM = 1000


def estimate_revenue(impressions: int, cpm: Decimal | None = None) -> Decimal:
    """Gross revenue for a number of impressions: impressions / 1000 × CPM."""
    cpm = settings.ad_cpm_usd if cpm is None else cpm
    return Decimal(impressions) / IMPRESSIONS_PER_CPM * cpm


class RevenuePoolCalculator:
    """Counts ad impressions and turns them into an estimated revenue."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record_impression(
        self,
        user_id: int | None,
        ad_type: str | AdType,
        reward_amount: Decimal | None = None,
    ) -> AdImpression:
        try:
            ad_type = AdType(ad_type)
        except ValueError:
            raise ValidationError(f'Invalid ad type: {ad_type}') from None

        impression = AdImpression(
            user_id=user_id,
            ad_type=ad_type.value,
            reward_amount=quantize_money(to_decimal(reward_amount)) if reward_amount is not None else None,
        )
        self.db.add(impression)
        await self.db.flush()
        return impression

    async def count_in_feed_impressions(self, day: date) -> int:
        """In-feed impressions within [day 00:00 UTC, day + 24h)."""
        start = datetime.combine(day, time.min)
        end = start + timedelta(days=1)
        count = await self.db.scalar(
            select(func.count(AdImpression.id)).where(
                AdImpression.ad_type == settings.in_feed_ad_type,
                AdImpression.created_at >= start,
                AdImpression.created_at < end,
            )
        )
        return count or 0

    async def compute_daily_pool(self, day: date) -> Decimal:
        """Estimated gross ad revenue for the day (before the creator share)."""
        impressions = await self.count_in_feed_impressions(day)
        return estimate_revenue(impressions)
