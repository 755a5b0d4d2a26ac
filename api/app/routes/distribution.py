"""Daily distribution endpoints.

The scheduler settles yesterday automatically; /settle is the manual
recovery path and shares the same per-date guard.
"""
from datetime import date
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.schemas.distribution import (
    SettlementResult, SettlementStatus, DistributionResponse, SchedulerStatus,
)
from app.services.distribution_service import DistributionService, SettlementGuard

router = APIRouter()


def get_settlement_guard(request: Request) -> SettlementGuard:
    return request.app.state.settlement_guard


@router.post('/settle', response_model=SettlementResult)
async def run_settlement(
    day: date | None = Query(None, description='Defaults to yesterday (UTC)'),
    db: AsyncSession = Depends(get_db),
    guard: SettlementGuard = Depends(get_settlement_guard),
):
    """Trigger settlement for a date. Re-running a settled date is a no-op."""
    return await DistributionService(db, guard=guard).settle(day)


@router.get('/status/{day}', response_model=SettlementStatus)
async def get_settlement_status(
    day: date,
    db: AsyncSession = Depends(get_db),
    guard: SettlementGuard = Depends(get_settlement_guard),
):
    return await DistributionService(db, guard=guard).get_settlement_status(day)


@router.get('/top-earners', response_model=list[DistributionResponse])
async def get_top_earners(
    day: date = Query(...),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    return await DistributionService(db).get_top_earners(day, limit)


@router.get('/stats')
async def get_distribution_stats(
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
):
    return await DistributionService(db).get_global_distribution_stats(days)


@router.get('/scheduler', response_model=SchedulerStatus)
async def get_scheduler_status(request: Request):
    return request.app.state.scheduler.status()
