"""Withdrawal endpoints. Approve/reject/pending/stats are admin-scoped."""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.schemas.withdrawal import (
    WithdrawalCreate, WithdrawalReject, WithdrawalResponse, WithdrawalCreated,
)
from app.services.withdrawal_service import WithdrawalService

router = APIRouter()


@router.post('', response_model=WithdrawalCreated, status_code=status.HTTP_201_CREATED)
async def create_withdrawal(body: WithdrawalCreate, db: AsyncSession = Depends(get_db)):
    return await WithdrawalService(db).create_withdrawal(
        body.user_id,
        body.amount,
        body.method,
        body.payment_details.model_dump(exclude_none=True),
    )


@router.get('/users/{user_id}', response_model=list[WithdrawalResponse])
async def list_user_withdrawals(
    user_id: int,
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    return await WithdrawalService(db).get_user_withdrawals(user_id, limit)


@router.get('/pending', response_model=list[WithdrawalResponse])
async def list_pending(
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    return await WithdrawalService(db).get_pending_withdrawals(limit)


@router.get('/stats')
async def withdrawal_stats(
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
):
    return await WithdrawalService(db).get_withdrawal_stats(days)


@router.get('/{withdrawal_id}', response_model=WithdrawalResponse)
async def get_withdrawal(
    withdrawal_id: int,
    user_id: int | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await WithdrawalService(db).get_withdrawal(withdrawal_id, user_id)


@router.post('/{withdrawal_id}/approve', response_model=WithdrawalResponse)
async def approve_withdrawal(withdrawal_id: int, db: AsyncSession = Depends(get_db)):
    return await WithdrawalService(db).approve_withdrawal(withdrawal_id)


@router.post('/{withdrawal_id}/reject', response_model=WithdrawalResponse)
async def reject_withdrawal(
    withdrawal_id: int,
    body: WithdrawalReject,
    db: AsyncSession = Depends(get_db),
):
    return await WithdrawalService(db).reject_withdrawal(withdrawal_id, body.reason)
