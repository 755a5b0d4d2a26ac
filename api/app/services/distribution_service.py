"""Daily revenue distribution.

Once a day the previous day's estimated ad revenue is split pro-rata across
everyone who earned points that day:

  distributable_pool = ad_revenue_estimate × DISTRIBUTION_SHARE
  value_per_point    = distributable_pool / total_points_awarded
  amount_credited    = user_points × value_per_point

A day moves unsettled → settled exactly once. Credits and the is_settled flip
are committed together, so a failed run leaves nothing behind and is simply
retried on the next trigger.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import date, timedelta
from decimal import Decimal
from sqlalchemy import select, desc, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.db.database import utc_today, utcnow
from app.models.points import PointsDay
from app.models.ledger import ActionType, RefType
from app.models.revenue import DailyRevenuePool, PointDistribution, DistributionStatus
from app.money import ZERO, display, quantize_money, quantize_rate
from app.services.balance_service import BalanceService
from app.services.errors import ValidationError
from app.services.notification_service import NotificationService, NotificationType
from app.services.pending_service import PendingEstimateService
from app.services.revenue_service import RevenuePoolCalculator

logger = logging.getLogger(__name__)

ALREADY_DISTRIBUTED = 'Already distributed'
NO_POINTS = 'No points to distribute'
IN_PROGRESS = 'Settlement already in progress'

# First key of the two-int PostgreSQL advisory lock; the second is the date ordinal
ADVISORY_LOCK_NAMESPACE = 0x5E75


def default_settlement_date() -> date:
    """Yesterday (UTC). The scheduler fires after the UTC day has closed."""
    return utc_today() - timedelta(days=1)


class SettlementGuard:
    """Date-keyed mutual exclusion for settlement runs.

    A single instance is shared by the scheduler and the manual trigger so two
    runs for the same date never overlap within the process. A date's lock is
    dropped once its last holder or waiter leaves.
    """

    def __init__(self):
        self._locks: dict[date, asyncio.Lock] = {}
        self._users: dict[date, int] = {}

    @asynccontextmanager
    async def hold(self, day: date):
        lock = self._locks.setdefault(day, asyncio.Lock())
        self._users[day] = self._users.get(day, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[day] -= 1
            if not self._users[day]:
                del self._users[day]
                del self._locks[day]

    def is_running(self, day: date) -> bool:
        lock = self._locks.get(day)
        return bool(lock and lock.locked())


class DistributionService:
    """Runs daily settlement and serves distribution history."""

    def __init__(
        self,
        db: AsyncSession,
        guard: SettlementGuard | None = None,
        calculator: RevenuePoolCalculator | None = None,
    ):
        self.db = db
        self.guard = guard or SettlementGuard()
        self.calculator = calculator or RevenuePoolCalculator(db)
        self.balances = BalanceService(db)
        self.pending = PendingEstimateService(db)
        self.notifications = NotificationService(db)

    async def settle(self, settle_date: date | None = None) -> dict:
        """Distribute the pool for a date. Safe to call repeatedly.

        Commits its own transaction while holding the date lock, so a second
        caller waiting on the lock sees the committed result.
        """
        settle_date = settle_date or default_settlement_date()
        if settle_date >= utc_today():
            raise ValidationError(f'Cannot settle {settle_date} before the day has ended')

        async with self.guard.hold(settle_date):
            try:
                if await self._try_db_lock(settle_date):
                    result = await self._settle(settle_date)
                else:
                    logger.warning(f'Settlement for {settle_date} is running elsewhere')
                    result = {'success': False, 'reason': IN_PROGRESS}
                await self.db.commit()
            except Exception as e:
                await self.db.rollback()
                logger.error(f'Distribution for {settle_date} failed: {e}', exc_info=True)
                raise

            if result['success']:
                await self._notify_top_earners(settle_date)

        return result

    async def _settle(self, settle_date: date) -> dict:
        pool = await self._get_pool(settle_date, for_update=True)
        if pool and pool.is_settled:
            logger.warning(f'Revenue already distributed for {settle_date}')
            return {'success': False, 'reason': ALREADY_DISTRIBUTED}

        # 1. Estimated revenue and the creators' share of it
        ad_revenue = await self.calculator.compute_daily_pool(settle_date)
        distributable = ad_revenue * settings.distribution_share
        logger.info(
            f'In-feed ad revenue for {settle_date}: ${display(ad_revenue)}, '
            f'distribution pool: ${display(distributable)}'
        )

        # 2. Points earned that day; guard the division before it happens
        total_points = await self.db.scalar(
            select(func.sum(PointsDay.total_points)).where(PointsDay.date == settle_date)
        ) or ZERO
        if total_points <= 0:
            logger.warning(f'No points earned on {settle_date}, skipping distribution')
            return {'success': False, 'reason': NO_POINTS}

        # 3. Full precision here; rounding happens per credit
        value_per_point = distributable / total_points
        logger.info(f'Value per point: ${value_per_point:.8f} ({total_points} points)')

        if not pool:
            pool = DailyRevenuePool(date=settle_date, is_settled=False)
            self.db.add(pool)
        pool.ad_revenue_estimate = quantize_money(ad_revenue)
        pool.distributable_pool = quantize_money(distributable)
        pool.total_points_awarded = total_points
        pool.value_per_point = quantize_rate(value_per_point)
        await self.db.flush()

        # 4. Credit every point-holder
        result = await self.db.execute(
            select(PointsDay)
            .where(PointsDay.date == settle_date, PointsDay.total_points > 0)
            .order_by(PointsDay.id)
        )
        users_credited = 0
        total_distributed = ZERO

        for points_day in result.scalars().all():
            amount = quantize_money(points_day.total_points * value_per_point)

            self.db.add(PointDistribution(
                user_id=points_day.user_id,
                pool_id=pool.id,
                date=settle_date,
                points_redeemed=points_day.total_points,
                amount_credited=amount,
                status=DistributionStatus.CREDITED.value,
                credited_at=utcnow(),
            ))
            if amount > 0:
                await self.balances.credit_earnings(
                    points_day.user_id, amount, ActionType.DISTRIBUTION,
                    ref_type=RefType.POOL, ref_id=pool.id,
                    note=f'{points_day.total_points} points on {settle_date}',
                )
            else:
                await self.db.flush()
            await self.pending.reset(points_day.user_id)

            users_credited += 1
            total_distributed += amount

        # 5. Commit point
        pool.users_credited = users_credited
        pool.total_distributed = total_distributed
        pool.is_settled = True
        pool.settled_at = utcnow()
        await self.db.flush()

        average = total_distributed / users_credited
        logger.info(
            f'Distribution for {settle_date} completed: {users_credited} users, '
            f'${display(total_distributed)} total, ${average:.4f} average'
        )

        return {
            'success': True,
            'stats': {
                'date': settle_date,
                'users_credited': users_credited,
                'total_distributed': total_distributed,
                'average_per_user': quantize_money(average),
                'value_per_point': pool.value_per_point,
            },
        }

    async def _try_db_lock(self, settle_date: date) -> bool:
        """Cross-process guard. Transaction-scoped, released on commit/rollback."""
        if self.db.get_bind().dialect.name != 'postgresql':
            return True
        acquired = await self.db.scalar(
            select(func.pg_try_advisory_xact_lock(
                ADVISORY_LOCK_NAMESPACE, settle_date.toordinal(),
            ))
        )
        return bool(acquired)

    async def _notify_top_earners(self, settle_date: date) -> None:
        """Earnings notification for the day's top earners.

        Runs after the settlement commit; a failure here is logged and leaves
        the settlement in place.
        """
        try:
            top = await self.get_top_earners(settle_date, settings.top_earners_notify_limit)
            for distribution in top:
                if distribution.amount_credited <= 0:
                    continue
                await self.notifications.notify(
                    distribution.user_id,
                    NotificationType.EARNINGS,
                    'You earned money!',
                    f'You earned ${display(distribution.amount_credited)} today!',
                    data={
                        'amount': str(distribution.amount_credited),
                        'points': str(distribution.points_redeemed),
                        'date': settle_date.isoformat(),
                    },
                )
            await self.db.commit()
            logger.info(f'Notifications sent to top {len(top)} earners')
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f'Error sending earnings notifications: {e}', exc_info=True)

    async def _get_pool(self, day: date, for_update: bool = False) -> DailyRevenuePool | None:
        query = select(DailyRevenuePool).where(DailyRevenuePool.date == day)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_settlement_status(self, day: date) -> dict:
        pool = await self._get_pool(day)
        status = {
            'date': day,
            'is_settled': bool(pool and pool.is_settled),
            'in_progress': self.guard.is_running(day),
            'ad_revenue_estimate': None,
            'distributable_pool': None,
            'total_points_awarded': None,
            'value_per_point': None,
            'users_credited': 0,
            'total_distributed': ZERO,
            'settled_at': None,
        }
        if pool:
            status.update(
                ad_revenue_estimate=pool.ad_revenue_estimate,
                distributable_pool=pool.distributable_pool,
                total_points_awarded=pool.total_points_awarded,
                value_per_point=pool.value_per_point,
                users_credited=pool.users_credited,
                total_distributed=pool.total_distributed,
                settled_at=pool.settled_at,
            )
        return status

    async def get_top_earners(self, day: date, limit: int = 100) -> list[PointDistribution]:
        """Biggest credits of the day; ties go to the earliest distribution."""
        result = await self.db.execute(
            select(PointDistribution)
            .where(
                PointDistribution.date == day,
                PointDistribution.status == DistributionStatus.CREDITED.value,
            )
            .order_by(desc(PointDistribution.amount_credited), PointDistribution.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_user_distribution_history(
        self, user_id: int, limit: int = 30,
    ) -> list[PointDistribution]:
        result = await self.db.execute(
            select(PointDistribution)
            .where(
                PointDistribution.user_id == user_id,
                PointDistribution.status == DistributionStatus.CREDITED.value,
            )
            .order_by(desc(PointDistribution.date))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_global_distribution_stats(self, days: int = 30) -> dict:
        """Aggregates over settled pools of the last `days` days."""
        start = utc_today() - timedelta(days=days)
        result = await self.db.execute(
            select(DailyRevenuePool)
            .where(DailyRevenuePool.date >= start, DailyRevenuePool.is_settled.is_(True))
            .order_by(desc(DailyRevenuePool.date))
        )
        pools = list(result.scalars().all())

        distributions_count = await self.db.scalar(
            select(func.count(PointDistribution.id)).where(PointDistribution.date >= start)
        ) or 0

        total_revenue = sum((p.ad_revenue_estimate for p in pools), ZERO)
        total_pool = sum((p.distributable_pool for p in pools), ZERO)
        total_distributed = sum((p.total_distributed for p in pools), ZERO)
        total_points = sum((p.total_points_awarded for p in pools), ZERO)
        pool_days = len(pools)

        return {
            'days': days,
            'from': start,
            'to': utc_today(),
            'settled_days': pool_days,
            'revenue': {
                'total': total_revenue,
                'distributable': total_pool,
                'distributed': total_distributed,
            },
            'points': {
                'total': total_points,
                'average_per_day': total_points / pool_days if pool_days else ZERO,
            },
            'distributions': {
                'count': distributions_count,
                'average_per_day': (
                    quantize_money(Decimal(distributions_count) / pool_days)
                    if pool_days else ZERO
                ),
            },
        }
