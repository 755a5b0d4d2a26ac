from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel, Field


class AccrueRequest(BaseModel):
    category: str
    amount: Decimal = Field(..., gt=0)
    source_ref: str | None = Field(None, max_length=64)


class AccrueResponse(BaseModel):
    accepted: bool
    reason: str | None = None
    points_added: Decimal | None = None
    category_total: Decimal | None = None
    total_points: Decimal | None = None


class PointsDayResponse(BaseModel):
    user_id: int
    date: date
    like: Decimal
    comment: Decimal
    share: Decimal
    video_upload: Decimal
    active_time: Decimal
    view: Decimal
    receive_like: Decimal
    receive_comment: Decimal
    follower: Decimal
    gift: Decimal
    live_stream: Decimal
    watch_live: Decimal
    total_points: Decimal

    class Config:
        from_attributes = True


class ActivityResponse(BaseModel):
    id: int
    category: str
    amount: Decimal
    source_ref: str | None
    created_at: datetime

    class Config:
        from_attributes = True


class FraudReport(BaseModel):
    user_id: int
    date: date
    suspicious: bool
    flags: list[str]
