"""Points accrual and read endpoints."""
from datetime import date, datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.schemas.points import (
    AccrueRequest, AccrueResponse, PointsDayResponse, ActivityResponse, FraudReport,
)
from app.services.fraud_service import FraudService
from app.services.points_service import PointsService

router = APIRouter()


@router.post('/users/{user_id}/accrue', response_model=AccrueResponse)
async def accrue_points(
    user_id: int,
    body: AccrueRequest,
    db: AsyncSession = Depends(get_db),
):
    """Credit points for an action. A reached daily cap is a normal 200 with accepted=false."""
    return await PointsService(db).add_points(
        user_id, body.category, body.amount, source_ref=body.source_ref,
    )


@router.get('/users/{user_id}/today', response_model=PointsDayResponse)
async def get_today(
    user_id: int,
    day: date | None = Query(None, description='Defaults to today (UTC)'),
    db: AsyncSession = Depends(get_db),
):
    return await PointsService(db).get_daily_stats(user_id, day)


@router.get('/users/{user_id}/history', response_model=list[PointsDayResponse])
async def get_history(
    user_id: int,
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
):
    return await PointsService(db).get_user_points_history(user_id, days)


@router.get('/users/{user_id}/activity', response_model=list[ActivityResponse])
async def get_activity(
    user_id: int,
    category: str | None = Query(None),
    since: datetime | None = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    return await PointsService(db).get_recent_activity(user_id, category, since, limit)


@router.get('/users/{user_id}/fraud-flags', response_model=FraudReport)
async def get_fraud_flags(
    user_id: int,
    day: date | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await FraudService(db).detect_suspicious_activity(user_id, day)


@router.get('/top', response_model=list[PointsDayResponse])
async def get_top_users(
    day: date = Query(...),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    return await PointsService(db).get_top_users(day, limit)


@router.get('/stats')
async def get_day_stats(
    day: date = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Global totals for one day."""
    return await PointsService(db).get_global_day_stats(day)
