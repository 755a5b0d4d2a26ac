from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel


class SettlementStats(BaseModel):
    date: date
    users_credited: int
    total_distributed: Decimal
    average_per_user: Decimal
    value_per_point: Decimal


class SettlementResult(BaseModel):
    success: bool
    reason: str | None = None
    stats: SettlementStats | None = None


class SettlementStatus(BaseModel):
    date: date
    is_settled: bool
    in_progress: bool
    ad_revenue_estimate: Decimal | None
    distributable_pool: Decimal | None
    total_points_awarded: Decimal | None
    value_per_point: Decimal | None
    users_credited: int
    total_distributed: Decimal
    settled_at: datetime | None


class DistributionResponse(BaseModel):
    id: int
    user_id: int
    pool_id: int
    date: date
    points_redeemed: Decimal
    amount_credited: Decimal
    status: str
    credited_at: datetime

    class Config:
        from_attributes = True


class SchedulerStatus(BaseModel):
    is_running: bool
    next_run: datetime | None
    timezone: str
    schedule: str
