from app.models.user import User
from app.models.points import PointCategory, PointsDay, ActivityLog
from app.models.revenue import (
    AdType, AdImpression, DailyRevenuePool, PointDistribution,
)
from app.models.ledger import UserBalance, BalanceEntry
from app.models.withdrawal import WithdrawalRequest
from app.models.gift import Gift, Notification

__all__ = [
    'User',
    'PointCategory',
    'PointsDay',
    'ActivityLog',
    'AdType',
    'AdImpression',
    'DailyRevenuePool',
    'PointDistribution',
    'UserBalance',
    'BalanceEntry',
    'WithdrawalRequest',
    'Gift',
    'Notification',
]
