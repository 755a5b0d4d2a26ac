"""Withdrawal lifecycle: freeze at request, then approve or reject."""
from datetime import timedelta
from decimal import Decimal

import pytest

from app.db.database import utcnow
from app.models.withdrawal import WithdrawalMethod, WithdrawalRequest
from app.services.balance_service import BalanceService, InsufficientBalance
from app.services.errors import ValidationError
from app.services.notification_service import NotificationService, NotificationType
from app.services.withdrawal_service import (
    WithdrawalNotFound, WithdrawalPolicyError, WithdrawalService,
    is_valid_email, is_valid_phone, validate_payment_details,
)

PAYPAL = {'paypal_email': 'creator@example.com'}


class FixedConfirmer:
    async def confirm(self, withdrawal):
        return f'TXN_TEST_{withdrawal.id}'


def test_email_and_phone_formats():
    assert is_valid_email('a@b.co')
    assert not is_valid_email('not-an-email')
    assert not is_valid_email('a b@c.d')
    assert is_valid_phone('+14155552671')
    assert is_valid_phone('+44 20 7946 0958')
    assert not is_valid_phone('0123')
    assert not is_valid_phone('phone')


def test_payment_details_per_method():
    assert validate_payment_details(WithdrawalMethod.MOBILE, {'phone_number': '+1 415 555 2671'}) == {
        'phone_number': '+14155552671',
    }
    bank = {'iban': 'DE89370400440532013000', 'account_name': 'Jane Doe'}
    assert validate_payment_details(WithdrawalMethod.BANK, {'bank_details': bank}) == {'bank_details': bank}

    with pytest.raises(ValidationError):
        validate_payment_details(WithdrawalMethod.PAYPAL, {})
    with pytest.raises(ValidationError):
        validate_payment_details(WithdrawalMethod.BANK, {'bank_details': {'iban': 'DE89'}})
    with pytest.raises(ValidationError):
        validate_payment_details(
            WithdrawalMethod.WESTERN_UNION, {'western_union_details': {'first_name': 'Jane'}},
        )


async def test_paypal_request_freezes_amount_and_fee(db_session, make_user):
    user = await make_user(available='3.30')

    result = await WithdrawalService(db_session).create_withdrawal(
        user.id, Decimal('3.00'), 'paypal', PAYPAL,
    )

    withdrawal = result['withdrawal']
    assert result['estimated_processing_time'] == '2-5 days'
    assert withdrawal.status == 'pending'
    assert withdrawal.fee == Decimal('0.30')
    assert withdrawal.net_amount == Decimal('2.70')
    assert withdrawal.paypal_email == 'creator@example.com'

    balance = await BalanceService(db_session).get_or_create(user.id)
    assert balance.available_balance == Decimal('0')

    entries = await BalanceService(db_session).get_history(user.id)
    assert entries[0].action_type == 'withdrawal_freeze'
    assert entries[0].amount == Decimal('-3.30')
    assert entries[0].ref_id == withdrawal.id


async def test_fee_must_be_covered(db_session, make_user):
    user = await make_user(available='3.29')

    with pytest.raises(InsufficientBalance):
        await WithdrawalService(db_session).create_withdrawal(
            user.id, Decimal('3.00'), 'paypal', PAYPAL,
        )


async def test_minimums_and_method(db_session, make_user):
    user = await make_user(available='500')
    service = WithdrawalService(db_session)

    with pytest.raises(ValidationError):
        await service.create_withdrawal(user.id, Decimal('2.99'), 'paypal', PAYPAL)
    with pytest.raises(ValidationError):
        await service.create_withdrawal(
            user.id, Decimal('99'), 'bank',
            {'bank_details': {'iban': 'DE89370400440532013000', 'account_name': 'Jane'}},
        )
    with pytest.raises(ValidationError):
        await service.create_withdrawal(user.id, Decimal('10'), 'crypto', {})
    with pytest.raises(ValidationError):
        await service.create_withdrawal(user.id, Decimal('10'), 'paypal', {'paypal_email': 'nope'})


async def test_one_request_per_month(db_session, make_user):
    user = await make_user(available='20')
    service = WithdrawalService(db_session)

    await service.create_withdrawal(user.id, Decimal('5'), 'paypal', PAYPAL)

    with pytest.raises(WithdrawalPolicyError):
        await service.create_withdrawal(user.id, Decimal('5'), 'paypal', PAYPAL)


async def test_cooldown_after_completed_withdrawal(db_session, make_user):
    user = await make_user(available='20')
    balance = await BalanceService(db_session).get_or_create(user.id)
    balance.last_withdrawal_at = utcnow() - timedelta(days=10)
    await db_session.flush()

    with pytest.raises(WithdrawalPolicyError, match='once per month'):
        await WithdrawalService(db_session).create_withdrawal(
            user.id, Decimal('5'), 'paypal', PAYPAL,
        )

    balance.last_withdrawal_at = utcnow() - timedelta(days=31)
    await db_session.flush()
    result = await WithdrawalService(db_session).create_withdrawal(
        user.id, Decimal('5'), 'paypal', PAYPAL,
    )
    assert result['withdrawal'].status == 'pending'


async def test_old_requests_do_not_count(db_session, make_user):
    user = await make_user(available='20')
    db_session.add(WithdrawalRequest(
        user_id=user.id,
        amount=Decimal('5'),
        method='paypal',
        fee=Decimal('0.30'),
        net_amount=Decimal('4.70'),
        status='completed',
        requested_at=utcnow() - timedelta(days=40),
    ))
    await db_session.flush()

    result = await WithdrawalService(db_session).create_withdrawal(
        user.id, Decimal('5'), 'paypal', PAYPAL,
    )
    assert result['withdrawal'].status == 'pending'


async def test_approve_completes(db_session, make_user):
    user = await make_user(available='3.30')
    service = WithdrawalService(db_session, confirmer=FixedConfirmer())
    created = await service.create_withdrawal(user.id, Decimal('3.00'), 'paypal', PAYPAL)
    withdrawal_id = created['withdrawal'].id

    withdrawal = await service.approve_withdrawal(withdrawal_id)

    assert withdrawal.status == 'completed'
    assert withdrawal.transaction_id == f'TXN_TEST_{withdrawal_id}'
    assert withdrawal.processed_at is not None
    assert withdrawal.completed_at is not None

    balance = await BalanceService(db_session).get_or_create(user.id)
    assert balance.available_balance == Decimal('0')
    assert balance.total_withdrawn == Decimal('3')
    assert balance.last_withdrawal_at == withdrawal.completed_at

    notifications = await NotificationService(db_session).list_for_user(user.id)
    assert {n.type for n in notifications} == {
        NotificationType.WITHDRAWAL_REQUESTED, NotificationType.WITHDRAWAL_COMPLETED,
    }


async def test_reject_releases_frozen_funds(db_session, make_user):
    user = await make_user(available='3.30')
    service = WithdrawalService(db_session)
    created = await service.create_withdrawal(user.id, Decimal('3.00'), 'paypal', PAYPAL)

    withdrawal = await service.reject_withdrawal(created['withdrawal'].id, '  Email bounced ')

    assert withdrawal.status == 'rejected'
    assert withdrawal.rejection_reason == 'Email bounced'

    balance = await BalanceService(db_session).get_or_create(user.id)
    assert balance.available_balance == Decimal('3.30')
    assert balance.lifetime_earnings == Decimal('3.30')
    assert balance.total_withdrawn == Decimal('0')

    # A rejected request does not use up the month
    again = await service.create_withdrawal(user.id, Decimal('3.00'), 'paypal', PAYPAL)
    assert again['withdrawal'].status == 'pending'


async def test_only_pending_can_be_processed(db_session, make_user):
    user = await make_user(available='10')
    service = WithdrawalService(db_session)
    created = await service.create_withdrawal(user.id, Decimal('5'), 'paypal', PAYPAL)
    withdrawal_id = created['withdrawal'].id

    await service.approve_withdrawal(withdrawal_id)

    with pytest.raises(WithdrawalPolicyError):
        await service.approve_withdrawal(withdrawal_id)
    with pytest.raises(WithdrawalPolicyError):
        await service.reject_withdrawal(withdrawal_id, 'late')
    with pytest.raises(WithdrawalNotFound):
        await service.approve_withdrawal(9999)
    with pytest.raises(ValidationError):
        await service.reject_withdrawal(withdrawal_id, '   ')


async def test_lookup_is_scoped_to_owner(db_session, make_user):
    owner = await make_user(available='10')
    other = await make_user()
    service = WithdrawalService(db_session)
    created = await service.create_withdrawal(owner.id, Decimal('5'), 'paypal', PAYPAL)
    withdrawal_id = created['withdrawal'].id

    assert (await service.get_withdrawal(withdrawal_id, owner.id)).id == withdrawal_id
    with pytest.raises(WithdrawalNotFound):
        await service.get_withdrawal(withdrawal_id, other.id)


async def test_pending_queue_and_stats(db_session, make_user):
    first = await make_user(available='10')
    second = await make_user(available='10')
    service = WithdrawalService(db_session)
    a = (await service.create_withdrawal(first.id, Decimal('5'), 'paypal', PAYPAL))['withdrawal']
    b = (await service.create_withdrawal(
        second.id, Decimal('5'), 'mobile', {'phone_number': '+14155552671'},
    ))['withdrawal']

    pending = await service.get_pending_withdrawals()
    assert [w.id for w in pending] == [a.id, b.id]

    await service.reject_withdrawal(a.id, 'duplicate account')

    stats = await service.get_withdrawal_stats()
    assert stats['total']['count'] == 2
    assert stats['total']['amount'] == Decimal('10')
    assert stats['total']['fees'] == Decimal('0.80')
    by_status = {s['status']: s['count'] for s in stats['by_status']}
    assert by_status == {'pending': 1, 'rejected': 1}
