"""Withdrawal lifecycle: pending → processing → completed, or pending → rejected.

Funds (amount + fee) are frozen when the request is created, not when it is
approved, so two requests can never spend the same money.
"""
import logging
import re
import time
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from sqlalchemy import select, desc, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.db.database import utcnow
from app.models.ledger import ActionType, RefType
from app.models.withdrawal import WithdrawalRequest, WithdrawalMethod, WithdrawalStatus
from app.money import ZERO, display, quantize_money, to_decimal
from app.services.balance_service import BalanceService, InsufficientBalance
from app.services.errors import NotFound, PolicyViolation, ValidationError
from app.services.notification_service import NotificationService, NotificationType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MethodRule:
    min_amount: Decimal
    fee: Decimal
    processing_time: str


WITHDRAWAL_METHODS: dict[WithdrawalMethod, MethodRule] = {
    WithdrawalMethod.PAYPAL: MethodRule(Decimal('3'), Decimal('0.30'), '2-5 days'),
    WithdrawalMethod.MOBILE: MethodRule(Decimal('5'), Decimal('0.50'), 'Instant'),
    WithdrawalMethod.BANK: MethodRule(Decimal('100'), Decimal('2'), '5-10 days'),
    WithdrawalMethod.WESTERN_UNION: MethodRule(Decimal('50'), Decimal('5'), '1-3 days'),
}

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
PHONE_RE = re.compile(r'^\+?[1-9]\d{1,14}$')


class WithdrawalPolicyError(PolicyViolation):
    """Monthly limit hit, or the request is no longer pending."""
    pass


class WithdrawalNotFound(NotFound):
    pass


class ManualPaymentConfirmer:
    """Payouts are sent by an operator; approval just records a reference."""

    async def confirm(self, withdrawal: WithdrawalRequest) -> str:
        return f'TXN_{int(time.time() * 1000)}_{withdrawal.id}'


def parse_method(method: str | WithdrawalMethod) -> WithdrawalMethod:
    try:
        return WithdrawalMethod(method)
    except ValueError:
        raise ValidationError('Invalid withdrawal method') from None


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def is_valid_phone(phone: str) -> bool:
    return bool(PHONE_RE.match(re.sub(r'\s', '', phone)))


def validate_payment_details(method: WithdrawalMethod, details: dict | None) -> dict:
    """Check the details a method needs and return the columns to store."""
    details = details or {}

    if method == WithdrawalMethod.PAYPAL:
        email = details.get('paypal_email')
        if not email or not is_valid_email(email):
            raise ValidationError('Valid PayPal email is required')
        return {'paypal_email': email}

    if method == WithdrawalMethod.MOBILE:
        phone = details.get('phone_number')
        if not phone or not is_valid_phone(phone):
            raise ValidationError('Valid phone number is required')
        return {'phone_number': re.sub(r'\s', '', phone)}

    if method == WithdrawalMethod.BANK:
        bank = details.get('bank_details') or {}
        if not bank.get('iban') or not bank.get('account_name'):
            raise ValidationError('IBAN and account name are required')
        return {'bank_details': dict(bank)}

    western_union = details.get('western_union_details') or {}
    if not western_union.get('first_name') or not western_union.get('last_name'):
        raise ValidationError('First name and last name are required')
    return {'western_union_details': dict(western_union)}


class WithdrawalService:
    """Creates, approves and rejects withdrawal requests."""

    def __init__(self, db: AsyncSession, confirmer: ManualPaymentConfirmer | None = None):
        self.db = db
        self.confirmer = confirmer or ManualPaymentConfirmer()
        self.balances = BalanceService(db)
        self.notifications = NotificationService(db)

    async def create_withdrawal(
        self,
        user_id: int,
        amount: Decimal,
        method: str | WithdrawalMethod,
        payment_details: dict | None,
    ) -> dict:
        """Validate, freeze amount + fee, and open a pending request."""
        method = parse_method(method)
        rule = WITHDRAWAL_METHODS[method]

        amount = quantize_money(to_decimal(amount))
        if amount < rule.min_amount:
            raise ValidationError(f'Minimum amount for {method.value} is ${display(rule.min_amount)}')

        stored_details = validate_payment_details(method, payment_details)

        # Lock the balance row: checks and the debit below must not interleave
        balance = await self.balances.get_or_create(user_id, for_update=True)
        now = utcnow()
        cooldown = timedelta(days=settings.withdrawal_cooldown_days)

        if balance.last_withdrawal_at and now - balance.last_withdrawal_at < cooldown:
            days_remaining = (cooldown - (now - balance.last_withdrawal_at)).days + 1
            raise WithdrawalPolicyError(
                f'You can only withdraw once per month. Wait {days_remaining} more days.'
            )

        open_requests = await self.db.scalar(
            select(func.count(WithdrawalRequest.id)).where(
                WithdrawalRequest.user_id == user_id,
                WithdrawalRequest.status != WithdrawalStatus.REJECTED.value,
                WithdrawalRequest.requested_at >= now - cooldown,
            )
        )
        if open_requests:
            raise WithdrawalPolicyError('Only one withdrawal request is allowed per month')

        total_required = amount + rule.fee
        if balance.available_balance < total_required:
            raise InsufficientBalance(
                f'Insufficient balance. Required: ${display(total_required)}, '
                f'Available: ${display(balance.available_balance)}'
            )

        withdrawal = WithdrawalRequest(
            user_id=user_id,
            amount=amount,
            method=method.value,
            fee=rule.fee,
            net_amount=amount - rule.fee,
            status=WithdrawalStatus.PENDING.value,
            requested_at=now,
            **stored_details,
        )
        self.db.add(withdrawal)
        await self.db.flush()

        # Freeze
        await self.balances.debit_available(
            user_id, total_required, ActionType.WITHDRAWAL_FREEZE,
            ref_type=RefType.WITHDRAWAL, ref_id=withdrawal.id,
            note=f'{method.value} withdrawal (fee ${display(rule.fee)})',
        )

        await self.notifications.notify(
            user_id,
            NotificationType.WITHDRAWAL_REQUESTED,
            'Withdrawal requested',
            f'Your withdrawal of ${display(amount)} is being processed.',
        )
        logger.info(f'Withdrawal {withdrawal.id} requested: user {user_id}, ${amount} via {method.value}')

        return {
            'withdrawal': withdrawal,
            'estimated_processing_time': rule.processing_time,
        }

    async def approve_withdrawal(self, withdrawal_id: int) -> WithdrawalRequest:
        """Admin approval: pay out and complete. Balance was debited at request time."""
        withdrawal = await self._get_pending(withdrawal_id)

        withdrawal.status = WithdrawalStatus.PROCESSING.value
        withdrawal.processed_at = utcnow()
        await self.db.flush()

        withdrawal.transaction_id = await self.confirmer.confirm(withdrawal)
        withdrawal.status = WithdrawalStatus.COMPLETED.value
        withdrawal.completed_at = utcnow()

        await self.balances.record_withdrawal(
            withdrawal.user_id, withdrawal.amount, withdrawal.completed_at,
        )

        await self.notifications.notify(
            withdrawal.user_id,
            NotificationType.WITHDRAWAL_COMPLETED,
            'Withdrawal completed',
            f'Your withdrawal of ${display(withdrawal.amount)} was sent successfully!',
        )
        logger.info(f'Withdrawal {withdrawal.id} completed ({withdrawal.transaction_id})')
        return withdrawal

    async def reject_withdrawal(self, withdrawal_id: int, reason: str) -> WithdrawalRequest:
        """Admin rejection: release the frozen amount + fee."""
        if not reason or not reason.strip():
            raise ValidationError('A rejection reason is required')

        withdrawal = await self._get_pending(withdrawal_id)

        withdrawal.status = WithdrawalStatus.REJECTED.value
        withdrawal.rejection_reason = reason.strip()
        withdrawal.processed_at = utcnow()

        await self.balances.credit_available(
            withdrawal.user_id, withdrawal.amount + withdrawal.fee,
            ActionType.WITHDRAWAL_RELEASE,
            ref_type=RefType.WITHDRAWAL, ref_id=withdrawal.id,
            note='Withdrawal rejected',
        )

        await self.notifications.notify(
            withdrawal.user_id,
            NotificationType.WITHDRAWAL_REJECTED,
            'Withdrawal rejected',
            f'Your withdrawal request was rejected. Reason: {withdrawal.rejection_reason}',
        )
        logger.info(f'Withdrawal {withdrawal.id} rejected: {withdrawal.rejection_reason}')
        return withdrawal

    async def _get_pending(self, withdrawal_id: int) -> WithdrawalRequest:
        result = await self.db.execute(
            select(WithdrawalRequest)
            .where(WithdrawalRequest.id == withdrawal_id)
            .with_for_update()
        )
        withdrawal = result.scalar_one_or_none()
        if not withdrawal:
            raise WithdrawalNotFound('Withdrawal not found')
        if withdrawal.status != WithdrawalStatus.PENDING.value:
            raise WithdrawalPolicyError('Withdrawal already processed')
        return withdrawal

    async def get_withdrawal(self, withdrawal_id: int, user_id: int | None = None) -> WithdrawalRequest:
        """Load a request. With user_id, other users' requests look missing."""
        withdrawal = await self.db.get(WithdrawalRequest, withdrawal_id)
        if not withdrawal or (user_id is not None and withdrawal.user_id != user_id):
            raise WithdrawalNotFound('Withdrawal not found')
        return withdrawal

    async def get_user_withdrawals(self, user_id: int, limit: int = 50) -> list[WithdrawalRequest]:
        result = await self.db.execute(
            select(WithdrawalRequest)
            .where(WithdrawalRequest.user_id == user_id)
            .order_by(desc(WithdrawalRequest.requested_at), desc(WithdrawalRequest.id))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_pending_withdrawals(self, limit: int = 100) -> list[WithdrawalRequest]:
        """Oldest first, the order an operator should work through them."""
        result = await self.db.execute(
            select(WithdrawalRequest)
            .where(WithdrawalRequest.status == WithdrawalStatus.PENDING.value)
            .order_by(WithdrawalRequest.requested_at, WithdrawalRequest.id)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_withdrawal_stats(self, days: int = 30) -> dict:
        start = utcnow() - timedelta(days=days)
        rows = (await self.db.execute(
            select(
                WithdrawalRequest.status,
                func.count(WithdrawalRequest.id),
                func.sum(WithdrawalRequest.amount),
                func.sum(WithdrawalRequest.fee),
            )
            .where(WithdrawalRequest.requested_at >= start)
            .group_by(WithdrawalRequest.status)
        )).all()

        by_status = [
            {
                'status': status,
                'count': count,
                'amount': amount or ZERO,
                'fee': fee or ZERO,
            }
            for status, count, amount, fee in rows
        ]
        return {
            'days': days,
            'from': start,
            'total': {
                'count': sum(s['count'] for s in by_status),
                'amount': sum((s['amount'] for s in by_status), ZERO),
                'fees': sum((s['fee'] for s in by_status), ZERO),
            },
            'by_status': by_status,
        }
