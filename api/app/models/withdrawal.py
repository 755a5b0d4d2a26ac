from datetime import datetime
from decimal import Decimal
from enum import Enum
from sqlalchemy import String, Numeric, ForeignKey, DateTime, Index, JSON
from sqlalchemy.orm import Mapped, mapped_column

from app.db.database import Base, utcnow

MONEY = Numeric(20, 8)


class WithdrawalMethod(str, Enum):
    PAYPAL = 'paypal'
    MOBILE = 'mobile'
    BANK = 'bank'
    WESTERN_UNION = 'western_union'


class WithdrawalStatus(str, Enum):
    PENDING = 'pending'
    PROCESSING = 'processing'
    COMPLETED = 'completed'
    REJECTED = 'rejected'


class WithdrawalRequest(Base):
    """Cash-out request. Funds (amount + fee) are frozen at creation."""

    __tablename__ = 'withdrawal_requests'

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey('users.id', ondelete='CASCADE'),
    )

    amount: Mapped[Decimal] = mapped_column(MONEY)
    method: Mapped[str] = mapped_column(String(20))
    fee: Mapped[Decimal] = mapped_column(MONEY)
    net_amount: Mapped[Decimal] = mapped_column(MONEY)

    # Payment details, one group per method
    paypal_email: Mapped[str | None] = mapped_column(String(255), default=None)
    phone_number: Mapped[str | None] = mapped_column(String(20), default=None)
    bank_details: Mapped[dict | None] = mapped_column(JSON, default=None)
    western_union_details: Mapped[dict | None] = mapped_column(JSON, default=None)

    status: Mapped[str] = mapped_column(
        String(12), default=WithdrawalStatus.PENDING.value,
    )
    transaction_id: Mapped[str | None] = mapped_column(String(64), default=None)
    rejection_reason: Mapped[str | None] = mapped_column(String(300), default=None)

    requested_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime, default=None)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, default=None)

    __table_args__ = (
        Index('ix_withdrawal_user_requested', 'user_id', 'requested_at'),
        Index('ix_withdrawal_status', 'status'),
    )
