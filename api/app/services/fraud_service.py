"""Anti-fraud heuristics over a user's day of points.

Advisory only: flags feed manual review and never block accrual.
"""
from datetime import date
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.points import PointCategory, PointsDay
from app.services.points_service import CATEGORY_RULES, PointsService

# Flag a category once it passes this share of its daily cap
CAP_WARNING_RATIO = Decimal('0.9')

# Lots of likes with almost no viewing looks scripted
RATIO_MIN_LIKES = Decimal('100')
RATIO_MAX_VIEWS = Decimal('10')


def evaluate(points_day: PointsDay) -> list[str]:
    """Return flag labels for a day's points. Empty list = nothing suspicious."""
    flags = []

    for category, rule in CATEGORY_RULES.items():
        cap = rule.daily_cap
        if cap is None:
            continue
        if points_day.category_value(category) > cap * CAP_WARNING_RATIO:
            flags.append(f'high_{category.value}_count')

    likes = points_day.category_value(PointCategory.LIKE)
    views = points_day.category_value(PointCategory.VIEW)
    if likes > RATIO_MIN_LIKES and views < RATIO_MAX_VIEWS:
        flags.append('abnormal_like_view_ratio')

    return flags


class FraudService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def detect_suspicious_activity(self, user_id: int, day: date | None = None) -> dict:
        points_day = await PointsService(self.db).get_daily_stats(user_id, day)
        flags = evaluate(points_day)
        return {
            'user_id': user_id,
            'date': points_day.date,
            'suspicious': bool(flags),
            'flags': flags,
        }
