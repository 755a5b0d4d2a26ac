from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.gift import Notification


class NotificationType:
    EARNINGS = 'earnings'
    GIFT_RECEIVED = 'gift_received'
    WITHDRAWAL_REQUESTED = 'withdrawal_requested'
    WITHDRAWAL_COMPLETED = 'withdrawal_completed'
    WITHDRAWAL_REJECTED = 'withdrawal_rejected'


class NotificationService:
    """Writes notification rows. Push delivery is handled elsewhere."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def notify(
        self,
        user_id: int,
        type: str,
        title: str,
        message: str,
        data: dict | None = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            data=data,
        )
        self.db.add(notification)
        await self.db.flush()
        return notification

    async def list_for_user(self, user_id: int, limit: int = 50) -> list[Notification]:
        result = await self.db.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(desc(Notification.created_at), desc(Notification.id))
            .limit(limit)
        )
        return list(result.scalars().all())
