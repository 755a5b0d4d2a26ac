from datetime import datetime
from decimal import Decimal
from sqlalchemy import String, Numeric, Boolean, ForeignKey, DateTime, Index, JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.db.database import Base, utcnow


class Gift(Base):
    """A gift sent from one user to a creator."""

    __tablename__ = 'gifts'

    id: Mapped[int] = mapped_column(primary_key=True)
    sender_id: Mapped[int] = mapped_column(
        ForeignKey('users.id', ondelete='CASCADE'),
    )
    receiver_id: Mapped[int] = mapped_column(
        ForeignKey('users.id', ondelete='CASCADE'),
    )
    gift_type: Mapped[str] = mapped_column(String(20))
    value: Mapped[Decimal] = mapped_column(Numeric(20, 8))
    # Creator's share after platform commission
    creator_amount: Mapped[Decimal] = mapped_column(Numeric(20, 8))
    is_free: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (
        Index('ix_gift_receiver_created', 'receiver_id', 'created_at'),
        Index('ix_gift_sender_created', 'sender_id', 'created_at'),
    )


class Notification(Base):
    """Outbox row picked up by the notification deliverer."""

    __tablename__ = 'notifications'

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey('users.id', ondelete='CASCADE'), index=True,
    )
    type: Mapped[str] = mapped_column(String(30))
    title: Mapped[str] = mapped_column(String(100))
    message: Mapped[str] = mapped_column(String(500))
    data: Mapped[dict | None] = mapped_column(JSON, default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
