from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel


class GiftSend(BaseModel):
    sender_id: int
    receiver_id: int
    gift_type: str
    use_free_balance: bool = False


class GiftResponse(BaseModel):
    id: int
    sender_id: int
    receiver_id: int
    gift_type: str
    value: Decimal
    creator_amount: Decimal
    is_free: bool
    created_at: datetime

    class Config:
        from_attributes = True


class AdImpressionCreate(BaseModel):
    user_id: int | None = None
    ad_type: str = 'in_feed'
