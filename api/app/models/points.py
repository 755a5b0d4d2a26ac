from datetime import datetime, date as calendar_date
from decimal import Decimal
from enum import Enum
from sqlalchemy import (
    String, Numeric, ForeignKey, DateTime, Date, Index, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.database import Base, utcnow

POINTS = Numeric(18, 4)


class PointCategory(str, Enum):
    """Actions that earn points. Values double as PointsDay column names."""
    LIKE = 'like'
    COMMENT = 'comment'
    SHARE = 'share'
    VIDEO_UPLOAD = 'video_upload'
    ACTIVE_TIME = 'active_time'
    VIEW = 'view'
    RECEIVE_LIKE = 'receive_like'
    RECEIVE_COMMENT = 'receive_comment'
    FOLLOWER = 'follower'
    GIFT = 'gift'
    LIVE_STREAM = 'live_stream'
    WATCH_LIVE = 'watch_live'


class PointsDay(Base):
    """Points earned by one user on one UTC day, per category.

    total_points is kept equal to the sum of the category columns.
    """

    __tablename__ = 'points_days'

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey('users.id', ondelete='CASCADE'),
    )
    date: Mapped[calendar_date] = mapped_column(Date)

    like: Mapped[Decimal] = mapped_column(POINTS, default=Decimal('0'))
    comment: Mapped[Decimal] = mapped_column(POINTS, default=Decimal('0'))
    share: Mapped[Decimal] = mapped_column(POINTS, default=Decimal('0'))
    video_upload: Mapped[Decimal] = mapped_column(POINTS, default=Decimal('0'))
    active_time: Mapped[Decimal] = mapped_column(POINTS, default=Decimal('0'))
    view: Mapped[Decimal] = mapped_column(POINTS, default=Decimal('0'))
    receive_like: Mapped[Decimal] = mapped_column(POINTS, default=Decimal('0'))
    receive_comment: Mapped[Decimal] = mapped_column(POINTS, default=Decimal('0'))
    follower: Mapped[Decimal] = mapped_column(POINTS, default=Decimal('0'))
    gift: Mapped[Decimal] = mapped_column(POINTS, default=Decimal('0'))
    live_stream: Mapped[Decimal] = mapped_column(POINTS, default=Decimal('0'))
    watch_live: Mapped[Decimal] = mapped_column(POINTS, default=Decimal('0'))

    total_points: Mapped[Decimal] = mapped_column(POINTS, default=Decimal('0'))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow,
    )

    __table_args__ = (
        UniqueConstraint('user_id', 'date', name='unique_user_points_day'),
        Index('ix_points_day_date_total', 'date', 'total_points'),
    )

    def category_value(self, category: PointCategory) -> Decimal:
        return getattr(self, category.value) or Decimal('0')

    def categories(self) -> dict[str, Decimal]:
        return {c.value: self.category_value(c) for c in PointCategory}


class ActivityLog(Base):
    """Every accepted accrual. Used for fraud review and feed exclusion."""

    __tablename__ = 'activity_logs'

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey('users.id', ondelete='CASCADE'),
    )
    category: Mapped[str] = mapped_column(String(20))
    amount: Mapped[Decimal] = mapped_column(POINTS)
    source_ref: Mapped[str | None] = mapped_column(String(64), default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (
        Index('ix_activity_user_created', 'user_id', 'created_at'),
        Index('ix_activity_category_created', 'category', 'created_at'),
    )
