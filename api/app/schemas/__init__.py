from app.schemas.user import UserCreate, UserResponse
from app.schemas.ledger import BalanceEntryResponse, BalanceResponse
from app.schemas.points import (
    AccrueRequest, AccrueResponse, PointsDayResponse, ActivityResponse, FraudReport,
)
from app.schemas.distribution import (
    SettlementResult, SettlementStatus, DistributionResponse, SchedulerStatus,
)
from app.schemas.withdrawal import (
    WithdrawalCreate, WithdrawalReject, WithdrawalResponse, WithdrawalCreated,
)
from app.schemas.gift import GiftSend, GiftResponse, AdImpressionCreate

__all__ = [
    'UserCreate',
    'UserResponse',
    'BalanceEntryResponse',
    'BalanceResponse',
    'AccrueRequest',
    'AccrueResponse',
    'PointsDayResponse',
    'ActivityResponse',
    'FraudReport',
    'SettlementResult',
    'SettlementStatus',
    'DistributionResponse',
    'SchedulerStatus',
    'WithdrawalCreate',
    'WithdrawalReject',
    'WithdrawalResponse',
    'WithdrawalCreated',
    'GiftSend',
    'GiftResponse',
    'AdImpressionCreate',
]
