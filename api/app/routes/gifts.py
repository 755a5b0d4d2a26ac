from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.schemas.gift import GiftSend, GiftResponse, AdImpressionCreate
from app.services.gift_service import GiftService, available_gifts
from app.services.revenue_service import RevenuePoolCalculator

router = APIRouter()
ads_router = APIRouter()


@router.get('/catalog')
async def gift_catalog():
    return available_gifts()


@router.post('/send', response_model=GiftResponse, status_code=status.HTTP_201_CREATED)
async def send_gift(body: GiftSend, db: AsyncSession = Depends(get_db)):
    return await GiftService(db).send_gift(
        body.sender_id, body.receiver_id, body.gift_type, body.use_free_balance,
    )


@router.post('/users/{user_id}/rewarded-ad')
async def rewarded_ad(user_id: int, db: AsyncSession = Depends(get_db)):
    """Credit free gift balance after a completed rewarded ad."""
    return await GiftService(db).credit_free_gifts(user_id)


@router.get('/users/{user_id}/sent', response_model=list[GiftResponse])
async def sent_gifts(
    user_id: int,
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    return await GiftService(db).get_sent_gifts(user_id, limit)


@router.get('/users/{user_id}/received', response_model=list[GiftResponse])
async def received_gifts(
    user_id: int,
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    return await GiftService(db).get_received_gifts(user_id, limit)


@router.get('/users/{user_id}/stats')
async def gift_stats(user_id: int, db: AsyncSession = Depends(get_db)):
    return await GiftService(db).get_gift_stats(user_id)


@ads_router.post('/impressions', status_code=status.HTTP_201_CREATED)
async def record_impression(body: AdImpressionCreate, db: AsyncSession = Depends(get_db)):
    """Ad SDK callback. In-feed impressions drive the daily revenue estimate."""
    impression = await RevenuePoolCalculator(db).record_impression(body.user_id, body.ad_type)
    return {'id': impression.id, 'ad_type': impression.ad_type}
