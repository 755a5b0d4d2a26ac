from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel


class BalanceEntryResponse(BaseModel):
    """Single balance movement."""
    id: int
    user_id: int
    account: str
    amount: Decimal
    balance_after: Decimal
    action_type: str
    ref_type: str
    ref_id: int | None
    note: str | None
    created_at: datetime

    class Config:
        from_attributes = True


class BalanceResponse(BaseModel):
    """User balance summary."""
    user_id: int
    available: Decimal
    pending: Decimal
    gifts: Decimal
    lifetime_earnings: Decimal
    total_withdrawn: Decimal
    last_withdrawal_at: datetime | None = None
