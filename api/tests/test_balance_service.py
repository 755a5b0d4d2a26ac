from decimal import Decimal

import pytest

from app.models.ledger import ActionType, RefType
from app.services.balance_service import (
    BalanceService, InsufficientBalance, InsufficientGiftBalance,
)
from app.services.errors import NotFound, ValidationError
from app.services.points_service import PointsService


async def test_new_balance_is_empty(db_session, make_user):
    user = await make_user()

    summary = await BalanceService(db_session).get_balance(user.id)

    assert summary['available'] == Decimal('0')
    assert summary['pending'] == Decimal('0')
    assert summary['gifts'] == Decimal('0')
    assert summary['lifetime_earnings'] == Decimal('0')
    assert summary['last_withdrawal_at'] is None


async def test_unknown_user(db_session):
    with pytest.raises(NotFound):
        await BalanceService(db_session).get_balance(4242)


async def test_credit_earnings_grows_lifetime(db_session, make_user):
    user = await make_user()
    service = BalanceService(db_session)

    entry = await service.credit_earnings(
        user.id, Decimal('1.25'), ActionType.DISTRIBUTION, RefType.POOL, ref_id=7,
    )

    assert entry.amount == Decimal('1.25')
    assert entry.balance_after == Decimal('1.25')
    assert entry.account == 'available'
    assert entry.ref_id == 7

    balance = await service.get_or_create(user.id)
    assert balance.available_balance == Decimal('1.25')
    assert balance.lifetime_earnings == Decimal('1.25')


async def test_credit_available_is_not_earnings(db_session, make_user):
    user = await make_user()
    service = BalanceService(db_session)

    await service.credit_available(user.id, Decimal('3.30'), ActionType.WITHDRAWAL_RELEASE)

    balance = await service.get_or_create(user.id)
    assert balance.available_balance == Decimal('3.30')
    assert balance.lifetime_earnings == Decimal('0')


async def test_debit_available(db_session, make_user):
    user = await make_user(available='5')
    service = BalanceService(db_session)

    entry = await service.debit_available(user.id, Decimal('2'), ActionType.GIFT_SENT)
    assert entry.amount == Decimal('-2')
    assert entry.balance_after == Decimal('3')

    with pytest.raises(InsufficientBalance):
        await service.debit_available(user.id, Decimal('3.01'), ActionType.GIFT_SENT)

    balance = await service.get_or_create(user.id)
    assert balance.available_balance == Decimal('3')


async def test_gift_balance_is_separate(db_session, make_user):
    user = await make_user(available='10')
    service = BalanceService(db_session)

    await service.credit_gift(user.id, Decimal('0.01'), ActionType.REWARDED_AD, RefType.AD)
    entry = await service.debit_gift(user.id, Decimal('0.01'), ActionType.GIFT_SENT)

    assert entry.account == 'gift'
    assert entry.balance_after == Decimal('0')
    with pytest.raises(InsufficientGiftBalance):
        await service.debit_gift(user.id, Decimal('0.99'), ActionType.GIFT_SENT)

    balance = await service.get_or_create(user.id)
    assert balance.available_balance == Decimal('10')


async def test_amounts_must_be_positive(db_session, make_user):
    user = await make_user(available='1')
    service = BalanceService(db_session)

    with pytest.raises(ValidationError):
        await service.credit_earnings(user.id, Decimal('0'), ActionType.DISTRIBUTION)
    with pytest.raises(ValidationError):
        await service.debit_available(user.id, Decimal('-1'), ActionType.GIFT_SENT)
    with pytest.raises(TypeError):
        await service.credit_gift(user.id, 0.01, ActionType.REWARDED_AD)


async def test_amounts_round_half_even(db_session, make_user):
    user = await make_user()
    service = BalanceService(db_session)

    entry = await service.credit_earnings(user.id, Decimal('0.000000025'), ActionType.DISTRIBUTION)

    assert entry.amount == Decimal('0.00000002')


async def test_history_newest_first_and_filtered(db_session, make_user):
    user = await make_user()
    service = BalanceService(db_session)

    await service.credit_earnings(user.id, Decimal('1'), ActionType.DISTRIBUTION)
    await service.credit_earnings(user.id, Decimal('2'), ActionType.GIFT_RECEIVED)
    await service.credit_earnings(user.id, Decimal('3'), ActionType.DISTRIBUTION)

    history = await service.get_history(user.id)
    assert [e.amount for e in history] == [Decimal('3'), Decimal('2'), Decimal('1')]

    gifts = await service.get_history(user.id, action_type='gift_received')
    assert [e.amount for e in gifts] == [Decimal('2')]

    page = await service.get_history(user.id, limit=1, offset=1)
    assert [e.amount for e in page] == [Decimal('2')]


async def test_pending_estimate_refreshes_when_stale(db_session, make_user):
    user = await make_user()
    await PointsService(db_session).add_points(user.id, 'comment', Decimal('2'))
    await PointsService(db_session).add_points(user.id, 'receive_like', Decimal('0.3'))

    summary = await BalanceService(db_session).get_balance(user.id)

    # 2.3 points at the default $0.01 estimate
    assert summary['pending'] == Decimal('0.023')
