from datetime import datetime
from decimal import Decimal
from enum import Enum
from sqlalchemy import (
    String, Integer, Numeric, Boolean, ForeignKey, DateTime, Index, CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.database import Base, utcnow

MONEY = Numeric(20, 8)


class Account(str, Enum):
    """Which balance a ledger entry moved."""
    AVAILABLE = 'available'
    GIFT = 'gift'


class ActionType(str, Enum):
    """All possible balance movements."""
    # Income
    DISTRIBUTION = 'distribution'
    GIFT_RECEIVED = 'gift_received'
    REWARDED_AD = 'rewarded_ad'
    WITHDRAWAL_RELEASE = 'withdrawal_release'

    # Spending
    GIFT_SENT = 'gift_sent'
    WITHDRAWAL_FREEZE = 'withdrawal_freeze'


class RefType(str, Enum):
    """What entity a ledger entry references."""
    NONE = 'none'
    POOL = 'pool'
    GIFT = 'gift'
    WITHDRAWAL = 'withdrawal'
    AD = 'ad'


class UserBalance(Base):
    """Money held for one user. available_balance never goes below zero."""

    __tablename__ = 'user_balances'

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey('users.id', ondelete='CASCADE'), unique=True, index=True,
    )

    # Withdrawable
    available_balance: Mapped[Decimal] = mapped_column(MONEY, default=Decimal('0'))
    # Estimate of today's points, replaced by the real credit at settlement
    pending_balance: Mapped[Decimal] = mapped_column(MONEY, default=Decimal('0'))
    pending_stale: Mapped[bool] = mapped_column(Boolean, default=True)
    # Ad-funded, spendable on gifts only
    gift_balance: Mapped[Decimal] = mapped_column(MONEY, default=Decimal('0'))

    # Monotonic
    lifetime_earnings: Mapped[Decimal] = mapped_column(MONEY, default=Decimal('0'))
    total_withdrawn: Mapped[Decimal] = mapped_column(MONEY, default=Decimal('0'))

    last_withdrawal_at: Mapped[datetime | None] = mapped_column(DateTime, default=None)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow,
    )

    user: Mapped['User'] = relationship('User', back_populates='balance')

    __table_args__ = (
        CheckConstraint('available_balance >= 0', name='ck_available_balance_non_negative'),
    )


class BalanceEntry(Base):
    """Transaction log. Every balance movement is recorded here."""

    __tablename__ = 'balance_entries'

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey('users.id', ondelete='CASCADE'), index=True
    )

    account: Mapped[str] = mapped_column(String(10), default=Account.AVAILABLE.value)
    # +amount = earn, -amount = spend
    amount: Mapped[Decimal] = mapped_column(MONEY)
    balance_after: Mapped[Decimal] = mapped_column(MONEY)

    action_type: Mapped[str] = mapped_column(String(30))
    ref_type: Mapped[str] = mapped_column(String(20), default=RefType.NONE.value)
    ref_id: Mapped[int | None] = mapped_column(Integer, default=None)

    note: Mapped[str | None] = mapped_column(String(200), default=None)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (
        Index('ix_balance_entry_user_created', 'user_id', 'created_at'),
    )
