from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.schemas.distribution import DistributionResponse
from app.schemas.ledger import BalanceEntryResponse, BalanceResponse
from app.services.balance_service import BalanceService
from app.services.distribution_service import DistributionService

router = APIRouter()


@router.get('/{user_id}', response_model=BalanceResponse)
async def get_balance(user_id: int, db: AsyncSession = Depends(get_db)):
    return await BalanceService(db).get_balance(user_id)


@router.get('/{user_id}/entries', response_model=list[BalanceEntryResponse])
async def get_entries(
    user_id: int,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    action_type: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Balance movements, newest first."""
    return await BalanceService(db).get_history(user_id, limit, offset, action_type)


@router.get('/{user_id}/distributions', response_model=list[DistributionResponse])
async def get_distributions(
    user_id: int,
    limit: int = Query(30, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    return await DistributionService(db).get_user_distribution_history(user_id, limit)
