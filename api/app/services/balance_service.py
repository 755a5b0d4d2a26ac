from datetime import datetime
from decimal import Decimal
from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.models.ledger import UserBalance, BalanceEntry, Account, ActionType, RefType
from app.money import ZERO, display, quantize_money, to_decimal
from app.services.errors import NotFound, PolicyViolation, ValidationError
from app.services.pending_service import PendingEstimateService


class InsufficientBalance(PolicyViolation):
    """Raised when a debit would take available_balance below zero."""
    pass


class InsufficientGiftBalance(PolicyViolation):
    """Raised when the ad-funded gift balance can't cover a gift."""
    pass


class BalanceService:
    """Handles all balance operations. Every movement goes through here."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_or_create(self, user_id: int, for_update: bool = False) -> UserBalance:
        """Load the user's balance row, creating an empty one on first use.

        With for_update the row stays locked until the transaction ends, which
        serializes concurrent check-then-debit sequences for the same user.
        """
        query = select(UserBalance).where(UserBalance.user_id == user_id)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        balance = result.scalar_one_or_none()
        if balance:
            return balance

        user = await self.db.get(User, user_id)
        if not user:
            raise NotFound(f'User {user_id} not found')

        balance = UserBalance(
            user_id=user_id,
            available_balance=ZERO,
            pending_balance=ZERO,
            pending_stale=True,
            gift_balance=ZERO,
            lifetime_earnings=ZERO,
            total_withdrawn=ZERO,
        )
        self.db.add(balance)
        await self.db.flush()
        return balance

    async def get_balance(self, user_id: int) -> dict:
        """Balance summary. Refreshes the pending estimate if it went stale."""
        balance = await self.get_or_create(user_id)
        if balance.pending_stale:
            await PendingEstimateService(self.db).refresh(user_id)

        return {
            'user_id': user_id,
            'available': balance.available_balance,
            'pending': balance.pending_balance,
            'gifts': balance.gift_balance,
            'lifetime_earnings': balance.lifetime_earnings,
            'total_withdrawn': balance.total_withdrawn,
            'last_withdrawal_at': balance.last_withdrawal_at,
        }

    async def credit_earnings(
        self,
        user_id: int,
        amount: Decimal,
        action_type: ActionType,
        ref_type: RefType = RefType.NONE,
        ref_id: int | None = None,
        note: str | None = None,
    ) -> BalanceEntry:
        """Add earned money. Grows available balance and lifetime earnings."""
        amount = self._positive(amount)
        balance = await self.get_or_create(user_id, for_update=True)

        balance.available_balance += amount
        balance.lifetime_earnings += amount

        return await self._record(
            user_id, Account.AVAILABLE, amount, balance.available_balance,
            action_type, ref_type, ref_id, note,
        )

    async def credit_available(
        self,
        user_id: int,
        amount: Decimal,
        action_type: ActionType,
        ref_type: RefType = RefType.NONE,
        ref_id: int | None = None,
        note: str | None = None,
    ) -> BalanceEntry:
        """Return money to available balance without counting it as earnings."""
        amount = self._positive(amount)
        balance = await self.get_or_create(user_id, for_update=True)

        balance.available_balance += amount

        return await self._record(
            user_id, Account.AVAILABLE, amount, balance.available_balance,
            action_type, ref_type, ref_id, note,
        )

    async def debit_available(
        self,
        user_id: int,
        amount: Decimal,
        action_type: ActionType,
        ref_type: RefType = RefType.NONE,
        ref_id: int | None = None,
        note: str | None = None,
    ) -> BalanceEntry:
        """Deduct from available balance. Raises InsufficientBalance if not enough."""
        amount = self._positive(amount)
        balance = await self.get_or_create(user_id, for_update=True)

        if balance.available_balance < amount:
            raise InsufficientBalance(
                f'Insufficient balance. Required: ${display(amount)}, '
                f'Available: ${display(balance.available_balance)}'
            )

        balance.available_balance -= amount

        return await self._record(
            user_id, Account.AVAILABLE, -amount, balance.available_balance,
            action_type, ref_type, ref_id, note,
        )

    async def credit_gift(
        self,
        user_id: int,
        amount: Decimal,
        action_type: ActionType,
        ref_type: RefType = RefType.NONE,
        ref_id: int | None = None,
        note: str | None = None,
    ) -> BalanceEntry:
        """Add to the non-withdrawable gift balance."""
        amount = self._positive(amount)
        balance = await self.get_or_create(user_id, for_update=True)

        balance.gift_balance += amount

        return await self._record(
            user_id, Account.GIFT, amount, balance.gift_balance,
            action_type, ref_type, ref_id, note,
        )

    async def debit_gift(
        self,
        user_id: int,
        amount: Decimal,
        action_type: ActionType,
        ref_type: RefType = RefType.NONE,
        ref_id: int | None = None,
        note: str | None = None,
    ) -> BalanceEntry:
        """Spend gift balance. Raises InsufficientGiftBalance if not enough."""
        amount = self._positive(amount)
        balance = await self.get_or_create(user_id, for_update=True)

        if balance.gift_balance < amount:
            raise InsufficientGiftBalance(
                f'Insufficient gift balance. Required: ${display(amount)}, '
                f'Available: ${display(balance.gift_balance)}'
            )

        balance.gift_balance -= amount

        return await self._record(
            user_id, Account.GIFT, -amount, balance.gift_balance,
            action_type, ref_type, ref_id, note,
        )

    async def record_withdrawal(
        self, user_id: int, amount: Decimal, completed_at: datetime,
    ) -> UserBalance:
        """Book a completed payout. Available balance was already debited at request time."""
        amount = self._positive(amount)
        balance = await self.get_or_create(user_id, for_update=True)

        balance.total_withdrawn += amount
        balance.last_withdrawal_at = completed_at
        await self.db.flush()
        return balance

    async def get_history(
        self,
        user_id: int,
        limit: int = 50,
        offset: int = 0,
        action_type: str | None = None,
    ) -> list[BalanceEntry]:
        """Get balance entries for a user, newest first."""
        query = (
            select(BalanceEntry)
            .where(BalanceEntry.user_id == user_id)
            .order_by(desc(BalanceEntry.created_at), desc(BalanceEntry.id))
        )
        if action_type:
            query = query.where(BalanceEntry.action_type == action_type)
        query = query.limit(limit).offset(offset)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    def _positive(self, amount: Decimal) -> Decimal:
        amount = quantize_money(to_decimal(amount))
        if amount <= 0:
            raise ValidationError('Amount must be positive')
        return amount

    async def _record(
        self,
        user_id: int,
        account: Account,
        amount: Decimal,
        balance_after: Decimal,
        action_type: ActionType,
        ref_type: RefType,
        ref_id: int | None,
        note: str | None,
    ) -> BalanceEntry:
        entry = BalanceEntry(
            user_id=user_id,
            account=account.value,
            amount=amount,
            balance_after=balance_after,
            action_type=action_type.value,
            ref_type=ref_type.value,
            ref_id=ref_id,
            note=note,
        )
        self.db.add(entry)
        await self.db.flush()
        return entry
