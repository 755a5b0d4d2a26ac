from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.database import get_db
from app.models.user import User
from app.schemas.user import UserCreate, UserResponse
from app.services.balance_service import BalanceService

router = APIRouter()


@router.post('', response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Register a point-holder with an empty balance."""
    existing = await db.execute(select(User).where(User.handle == user_data.handle))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail='Handle already taken')

    user = User(name=user_data.name, handle=user_data.handle)
    db.add(user)
    await db.flush()
    await BalanceService(db).get_or_create(user.id)
    await db.refresh(user)
    return user


@router.get('/{user_id}', response_model=UserResponse)
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail='User not found')
    return user
