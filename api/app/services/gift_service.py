"""Gifts: ad-funded free credit and creator gifting.

Free gift credit comes from watching rewarded ads and can only be spent on
gifts. Creators receive the gift value minus the platform commission as
withdrawable earnings.
"""
import logging
from decimal import Decimal
from sqlalchemy import select, desc, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.gift import Gift
from app.models.ledger import ActionType, RefType
from app.models.points import PointCategory
from app.models.revenue import AdType
from app.models.user import User
from app.money import ZERO, display, quantize_money
from app.services.balance_service import BalanceService
from app.services.errors import NotFound, ValidationError
from app.services.notification_service import NotificationService, NotificationType
from app.services.points_service import PointsService, points_for
from app.services.revenue_service import RevenuePoolCalculator

logger = logging.getLogger(__name__)

GIFT_CATALOG: dict[str, dict] = {
    'rose': {'name': 'Rose', 'price': Decimal('0.99'), 'emoji': '🌹'},
    'heart': {'name': 'Heart', 'price': Decimal('1.99'), 'emoji': '❤️'},
    'diamond': {'name': 'Diamond', 'price': Decimal('4.99'), 'emoji': '💎'},
    'crown': {'name': 'Crown', 'price': Decimal('9.99'), 'emoji': '👑'},
    'rocket': {'name': 'Rocket', 'price': Decimal('19.99'), 'emoji': '🚀'},
}


def available_gifts() -> list[dict]:
    return [{'id': gift_id, **info} for gift_id, info in GIFT_CATALOG.items()]


class GiftService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.balances = BalanceService(db)
        self.notifications = NotificationService(db)

    async def credit_free_gifts(self, user_id: int) -> dict:
        """Reward a completed rewarded ad with gift credit."""
        amount = settings.rewarded_ad_gift_amount
        impression = await RevenuePoolCalculator(self.db).record_impression(
            user_id, AdType.REWARDED, reward_amount=amount,
        )
        await self.balances.credit_gift(
            user_id, amount, ActionType.REWARDED_AD,
            ref_type=RefType.AD, ref_id=impression.id,
        )
        balance = await self.balances.get_or_create(user_id)
        return {'amount': amount, 'gift_balance': balance.gift_balance}

    async def send_gift(
        self,
        sender_id: int,
        receiver_id: int,
        gift_type: str,
        use_free_balance: bool = False,
    ) -> Gift:
        """Debit the sender, credit the creator's share, award the sender a point."""
        gift_info = GIFT_CATALOG.get(gift_type)
        if not gift_info:
            raise ValidationError('Invalid gift type')
        if sender_id == receiver_id:
            raise ValidationError('Cannot send a gift to yourself')

        sender = await self.db.get(User, sender_id)
        if not sender:
            raise NotFound(f'User {sender_id} not found')
        if not await self.db.get(User, receiver_id):
            raise NotFound(f'User {receiver_id} not found')

        value = gift_info['price']
        creator_amount = quantize_money(value * settings.gift_commission_rate)

        gift = Gift(
            sender_id=sender_id,
            receiver_id=receiver_id,
            gift_type=gift_type,
            value=value,
            creator_amount=creator_amount,
            is_free=use_free_balance,
        )
        self.db.add(gift)
        await self.db.flush()

        # Both balance rows in ascending user_id order, before any points row
        for user_id in sorted((sender_id, receiver_id)):
            await self.balances.get_or_create(user_id, for_update=True)

        if use_free_balance:
            await self.balances.debit_gift(
                sender_id, value, ActionType.GIFT_SENT,
                ref_type=RefType.GIFT, ref_id=gift.id,
            )
        else:
            await self.balances.debit_available(
                sender_id, value, ActionType.GIFT_SENT,
                ref_type=RefType.GIFT, ref_id=gift.id,
            )

        await self.balances.credit_earnings(
            receiver_id, creator_amount, ActionType.GIFT_RECEIVED,
            ref_type=RefType.GIFT, ref_id=gift.id,
            note=f'{gift_type} from user {sender_id}',
        )

        await PointsService(self.db).add_points(
            sender_id, PointCategory.GIFT, points_for(PointCategory.GIFT), source_ref=f'gift:{gift.id}',
        )

        await self.notifications.notify(
            receiver_id,
            NotificationType.GIFT_RECEIVED,
            'Gift received!',
            f'{sender.name} sent you a {gift_type} (${display(value)})!',
        )
        logger.info(f'Gift {gift.id}: {gift_type} from {sender_id} to {receiver_id}')
        return gift

    async def get_sent_gifts(self, user_id: int, limit: int = 50) -> list[Gift]:
        result = await self.db.execute(
            select(Gift)
            .where(Gift.sender_id == user_id)
            .order_by(desc(Gift.created_at), desc(Gift.id))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_received_gifts(self, user_id: int, limit: int = 50) -> list[Gift]:
        result = await self.db.execute(
            select(Gift)
            .where(Gift.receiver_id == user_id)
            .order_by(desc(Gift.created_at), desc(Gift.id))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_gift_stats(self, user_id: int) -> dict:
        sent_count, sent_total = (await self.db.execute(
            select(func.count(Gift.id), func.sum(Gift.value)).where(Gift.sender_id == user_id)
        )).one()
        received_count, received_total, earned = (await self.db.execute(
            select(func.count(Gift.id), func.sum(Gift.value), func.sum(Gift.creator_amount))
            .where(Gift.receiver_id == user_id)
        )).one()
        return {
            'sent': {'count': sent_count, 'total': sent_total or ZERO},
            'received': {
                'count': received_count,
                'total': received_total or ZERO,
                'earned': earned or ZERO,
            },
        }
