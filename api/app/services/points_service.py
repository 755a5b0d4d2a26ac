"""Points ("Sets") accrual.

Points are never shown to users. They only decide a user's share of the daily
revenue pool. Capped categories stop accruing once the day's running total
reaches max_events × per-event value.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from sqlalchemy import select, desc, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import as_naive_utc, utc_today
from app.models.user import User
from app.models.points import PointCategory, PointsDay, ActivityLog
from app.money import ZERO, quantize_points, to_decimal
from app.services.balance_service import BalanceService
from app.services.errors import NotFound, ValidationError
from app.services.pending_service import PendingEstimateService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryRule:
    per_event: Decimal
    # None = accrues without a daily cap (points earned from others' actions)
    max_events: int | None = None

    @property
    def daily_cap(self) -> Decimal | None:
        if self.max_events is None:
            return None
        return self.per_event * self.max_events


# ── Points table ─────────────────────────────────────────────────────────────
# Minute-based categories count one event per minute.

CATEGORY_RULES: dict[PointCategory, CategoryRule] = {
    PointCategory.LIKE: CategoryRule(Decimal('1'), 500),
    PointCategory.COMMENT: CategoryRule(Decimal('2'), 100),
    PointCategory.SHARE: CategoryRule(Decimal('1'), 50),
    PointCategory.VIDEO_UPLOAD: CategoryRule(Decimal('2'), 10),
    PointCategory.ACTIVE_TIME: CategoryRule(Decimal('0.5'), 480),    # 8 hours
    PointCategory.LIVE_STREAM: CategoryRule(Decimal('2'), 240),      # 4 hours
    PointCategory.VIEW: CategoryRule(Decimal('0.5')),                # views > 30s
    PointCategory.RECEIVE_LIKE: CategoryRule(Decimal('0.3')),
    PointCategory.RECEIVE_COMMENT: CategoryRule(Decimal('0.5')),
    PointCategory.FOLLOWER: CategoryRule(Decimal('1')),
    PointCategory.GIFT: CategoryRule(Decimal('1')),
    PointCategory.WATCH_LIVE: CategoryRule(Decimal('0.3')),
}

DAILY_LIMIT_REACHED = 'Daily limit reached'

# Dialects with INSERT ... ON CONFLICT DO NOTHING
UPSERT_DIALECTS = {
    'postgresql': postgresql.insert,
    'sqlite': sqlite.insert,
}


def parse_category(category: str | PointCategory) -> PointCategory:
    try:
        return PointCategory(category)
    except ValueError:
        raise ValidationError(f'Invalid category: {category}') from None


def points_for(category: str | PointCategory, units: int | Decimal = 1) -> Decimal:
    """Points earned for `units` events (or minutes) of a category."""
    rule = CATEGORY_RULES[parse_category(category)]
    return rule.per_event * to_decimal(units)


def empty_day(user_id: int, day: date) -> PointsDay:
    return PointsDay(
        user_id=user_id,
        date=day,
        total_points=ZERO,
        **{c.value: ZERO for c in PointCategory},
    )


class PointsService:
    """Per-user, per-day points accumulator."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.pending = PendingEstimateService(db)

    async def add_points(
        self,
        user_id: int,
        category: str | PointCategory,
        amount: Decimal,
        source_ref: str | None = None,
    ) -> dict:
        """Credit points to today's row for the user.

        Returns {'accepted': False, 'reason': ...} when the category's daily
        cap is already reached; nothing is written in that case.
        """
        category = parse_category(category)
        amount = quantize_points(to_decimal(amount))
        if amount <= 0:
            raise ValidationError('Points amount must be positive')

        if not await self.db.get(User, user_id):
            raise NotFound(f'User {user_id} not found')

        # Lock order is balance row, then points row, the same order gifting uses
        await BalanceService(self.db).get_or_create(user_id, for_update=True)
        points_day = await self._get_or_create_day(user_id, utc_today())

        current = points_day.category_value(category)
        cap = CATEGORY_RULES[category].daily_cap
        if cap is not None and current >= cap:
            logger.info(f'Daily limit reached for {category.value} - user {user_id}')
            return {'accepted': False, 'reason': DAILY_LIMIT_REACHED}

        # Category counter and total move together in one flush
        setattr(points_day, category.value, current + amount)
        points_day.total_points = points_day.total_points + amount

        self.db.add(ActivityLog(
            user_id=user_id,
            category=category.value,
            amount=amount,
            source_ref=source_ref,
        ))
        await self.db.flush()
        await self.pending.invalidate(user_id)

        return {
            'accepted': True,
            'points_added': amount,
            'category_total': points_day.category_value(category),
            'total_points': points_day.total_points,
        }

    async def get_day(self, user_id: int, day: date) -> PointsDay | None:
        result = await self.db.execute(
            select(PointsDay).where(
                PointsDay.user_id == user_id,
                PointsDay.date == day,
            )
        )
        return result.scalar_one_or_none()

    async def get_daily_stats(self, user_id: int, day: date | None = None) -> PointsDay:
        """The user's row for the day, or an unsaved all-zero row."""
        day = day or utc_today()
        points_day = await self.get_day(user_id, day)
        return points_day or empty_day(user_id, day)

    async def get_user_points_history(self, user_id: int, days: int = 30) -> list[PointsDay]:
        """Rows for the last `days` days, newest first."""
        start = utc_today() - timedelta(days=days)
        result = await self.db.execute(
            select(PointsDay)
            .where(PointsDay.user_id == user_id, PointsDay.date >= start)
            .order_by(desc(PointsDay.date))
        )
        return list(result.scalars().all())

    async def get_top_users(self, day: date, limit: int = 100) -> list[PointsDay]:
        result = await self.db.execute(
            select(PointsDay)
            .where(PointsDay.date == day)
            .order_by(desc(PointsDay.total_points), PointsDay.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_global_day_stats(self, day: date) -> dict:
        """Totals across all users for one day."""
        columns = [func.sum(getattr(PointsDay, c.value)) for c in PointCategory]
        row = (await self.db.execute(
            select(
                func.count(PointsDay.id),
                func.sum(PointsDay.total_points),
                *columns,
            ).where(PointsDay.date == day)
        )).one()

        user_count, total, *sums = row
        return {
            'date': day,
            'total_points': total or ZERO,
            'total_users': user_count,
            'breakdown': {
                c.value: value or ZERO for c, value in zip(PointCategory, sums)
            },
        }

    async def get_recent_activity(
        self,
        user_id: int,
        category: str | None = None,
        since: datetime | None = None,
        limit: int = 100,
    ) -> list[ActivityLog]:
        """Accrual log for a user, newest first.

        Feed ranking uses this to skip content the user recently acted on.
        """
        query = (
            select(ActivityLog)
            .where(ActivityLog.user_id == user_id)
            .order_by(desc(ActivityLog.created_at), desc(ActivityLog.id))
        )
        if category:
            query = query.where(ActivityLog.category == parse_category(category).value)
        if since:
            query = query.where(ActivityLog.created_at >= as_naive_utc(since))
        result = await self.db.execute(query.limit(limit))
        return list(result.scalars().all())

    async def _get_or_create_day(self, user_id: int, day: date) -> PointsDay:
        """Today's row, locked for the rest of the transaction.

        The lock serializes concurrent accruals for the same user and day so
        the cap check and both increments see a consistent row.
        """
        upsert = UPSERT_DIALECTS.get(self.db.get_bind().dialect.name)
        if upsert is not None:
            # Two first accruals racing for the row both end up selecting it
            await self.db.execute(
                upsert(PointsDay)
                .values(
                    user_id=user_id,
                    date=day,
                    total_points=ZERO,
                    **{c.value: ZERO for c in PointCategory},
                )
                .on_conflict_do_nothing(index_elements=['user_id', 'date'])
            )

        result = await self.db.execute(
            select(PointsDay)
            .where(PointsDay.user_id == user_id, PointsDay.date == day)
            .with_for_update()
        )
        points_day = result.scalar_one_or_none()
        if points_day:
            return points_day

        points_day = empty_day(user_id, day)
        self.db.add(points_day)
        await self.db.flush()
        return points_day
