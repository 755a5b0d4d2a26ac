from datetime import datetime, date as calendar_date
from decimal import Decimal
from enum import Enum
from sqlalchemy import (
    String, Integer, Numeric, Boolean, ForeignKey, DateTime, Date, Index,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.database import Base, utcnow

MONEY = Numeric(20, 8)


class AdType(str, Enum):
    IN_FEED = 'in_feed'
    REWARDED = 'rewarded'


class AdImpression(Base):
    """Raw ad view events. In-feed views feed the daily revenue estimate."""

    __tablename__ = 'ad_impressions'

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int | None] = mapped_column(
        ForeignKey('users.id', ondelete='SET NULL'), default=None,
    )
    ad_type: Mapped[str] = mapped_column(String(20))
    reward_amount: Mapped[Decimal | None] = mapped_column(MONEY, default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (
        Index('ix_ad_impression_type_created', 'ad_type', 'created_at'),
    )


class DailyRevenuePool(Base):
    """Settlement record for one day. is_settled flips once, never back."""

    __tablename__ = 'daily_revenue_pools'

    id: Mapped[int] = mapped_column(primary_key=True)
    date: Mapped[calendar_date] = mapped_column(Date, unique=True, index=True)

    ad_revenue_estimate: Mapped[Decimal] = mapped_column(MONEY, default=Decimal('0'))
    distributable_pool: Mapped[Decimal] = mapped_column(MONEY, default=Decimal('0'))
    total_points_awarded: Mapped[Decimal] = mapped_column(
        Numeric(18, 4), default=Decimal('0'),
    )
    value_per_point: Mapped[Decimal] = mapped_column(
        Numeric(30, 12), default=Decimal('0'),
    )

    users_credited: Mapped[int] = mapped_column(Integer, default=0)
    total_distributed: Mapped[Decimal] = mapped_column(MONEY, default=Decimal('0'))

    is_settled: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    settled_at: Mapped[datetime | None] = mapped_column(DateTime, default=None)


class DistributionStatus(str, Enum):
    CREDITED = 'credited'


class PointDistribution(Base):
    """Per-user credit from a settled pool. Append-only audit trail."""

    __tablename__ = 'point_distributions'

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey('users.id', ondelete='CASCADE'),
    )
    pool_id: Mapped[int] = mapped_column(
        ForeignKey('daily_revenue_pools.id', ondelete='CASCADE'),
    )
    date: Mapped[calendar_date] = mapped_column(Date)

    points_redeemed: Mapped[Decimal] = mapped_column(Numeric(18, 4))
    amount_credited: Mapped[Decimal] = mapped_column(MONEY)

    status: Mapped[str] = mapped_column(
        String(10), default=DistributionStatus.CREDITED.value,
    )
    credited_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint('user_id', 'pool_id', name='unique_user_pool_distribution'),
        Index('ix_distribution_date_amount', 'date', 'amount_credited'),
        Index('ix_distribution_user_date', 'user_id', 'date'),
    )
