from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field


class BankDetails(BaseModel):
    iban: str | None = None
    swift: str | None = None
    account_name: str | None = None
    bank_name: str | None = None


class WesternUnionDetails(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    country: str | None = None
    city: str | None = None


class PaymentDetails(BaseModel):
    paypal_email: str | None = None
    phone_number: str | None = None
    bank_details: BankDetails | None = None
    western_union_details: WesternUnionDetails | None = None


class WithdrawalCreate(BaseModel):
    user_id: int
    amount: Decimal = Field(..., gt=0)
    method: str
    payment_details: PaymentDetails = Field(default_factory=PaymentDetails)


class WithdrawalReject(BaseModel):
    reason: str = Field(..., min_length=1, max_length=300)


class WithdrawalResponse(BaseModel):
    id: int
    user_id: int
    amount: Decimal
    method: str
    fee: Decimal
    net_amount: Decimal
    status: str
    transaction_id: str | None
    rejection_reason: str | None
    requested_at: datetime
    processed_at: datetime | None
    completed_at: datetime | None

    class Config:
        from_attributes = True


class WithdrawalCreated(BaseModel):
    withdrawal: WithdrawalResponse
    estimated_processing_time: str
