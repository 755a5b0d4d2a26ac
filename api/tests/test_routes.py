"""HTTP surface: status codes and payload shapes."""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from app.db.database import utc_today


async def test_health(client):
    response = await client.get('/health')
    assert response.status_code == 200
    assert response.json() == {'status': 'ok', 'service': 'sets-api'}


async def test_create_and_get_user(client):
    response = await client.post('/api/users', json={'name': 'Jane', 'handle': 'jane'})
    assert response.status_code == 201
    user = response.json()
    assert user['handle'] == 'jane'

    response = await client.get(f'/api/users/{user["id"]}')
    assert response.status_code == 200
    assert response.json()['name'] == 'Jane'

    duplicate = await client.post('/api/users', json={'name': 'Other', 'handle': 'jane'})
    assert duplicate.status_code == 400

    missing = await client.get('/api/users/9999')
    assert missing.status_code == 404


async def test_accrue_and_read_points(client, make_user):
    user = await make_user()

    response = await client.post(
        f'/api/points/users/{user.id}/accrue', json={'category': 'like', 'amount': '1'},
    )
    assert response.status_code == 200
    body = response.json()
    assert body['accepted'] is True
    assert Decimal(body['total_points']) == Decimal('1')

    today = await client.get(f'/api/points/users/{user.id}/today')
    assert today.status_code == 200
    assert Decimal(today.json()['like']) == Decimal('1')
    assert today.json()['date'] == utc_today().isoformat()

    activity = await client.get(f'/api/points/users/{user.id}/activity')
    assert [a['category'] for a in activity.json()] == ['like']


async def test_accrue_cap_is_not_an_error(client, make_user):
    user = await make_user()
    url = f'/api/points/users/{user.id}/accrue'

    await client.post(url, json={'category': 'share', 'amount': '50'})
    response = await client.post(url, json={'category': 'share', 'amount': '1'})

    assert response.status_code == 200
    assert response.json()['accepted'] is False
    assert response.json()['reason'] == 'Daily limit reached'


async def test_accrue_errors(client, make_user):
    user = await make_user()

    bad_category = await client.post(
        f'/api/points/users/{user.id}/accrue', json={'category': 'teleport', 'amount': '1'},
    )
    assert bad_category.status_code == 422

    negative = await client.post(
        f'/api/points/users/{user.id}/accrue', json={'category': 'like', 'amount': '-1'},
    )
    assert negative.status_code == 422

    unknown_user = await client.post(
        '/api/points/users/9999/accrue', json={'category': 'like', 'amount': '1'},
    )
    assert unknown_user.status_code == 404


async def test_fraud_flags(client, make_user, seed_points, past_day):
    user = await make_user()
    await seed_points(user.id, past_day, like='200')

    response = await client.get(
        f'/api/points/users/{user.id}/fraud-flags', params={'day': past_day.isoformat()},
    )

    assert response.status_code == 200
    assert response.json()['flags'] == ['abnormal_like_view_ratio']


async def test_settlement_flow(client, make_user, seed_points, seed_impressions, past_day):
    alice = await make_user('alice')
    bob = await make_user('bob')
    await seed_impressions(past_day, 5000)
    await seed_points(alice.id, past_day, like='10')
    await seed_points(bob.id, past_day, like='90')
    day = past_day.isoformat()

    response = await client.post('/api/distribution/settle', params={'day': day})
    assert response.status_code == 200
    result = response.json()
    assert result['success'] is True
    assert Decimal(result['stats']['value_per_point']) == Decimal('0.18')

    again = await client.post('/api/distribution/settle', params={'day': day})
    assert again.json() == {'success': False, 'reason': 'Already distributed', 'stats': None}

    status = await client.get(f'/api/distribution/status/{day}')
    assert status.json()['is_settled'] is True
    assert status.json()['in_progress'] is False

    balance = await client.get(f'/api/balance/{alice.id}')
    assert Decimal(balance.json()['available']) == Decimal('1.8')

    distributions = await client.get(f'/api/balance/{alice.id}/distributions')
    assert len(distributions.json()) == 1

    top = await client.get('/api/distribution/top-earners', params={'day': day, 'limit': 1})
    assert [d['user_id'] for d in top.json()] == [bob.id]

    stats = await client.get('/api/distribution/stats', params={'days': 7})
    assert stats.json()['settled_days'] == 1


async def test_settle_open_day_rejected(client):
    response = await client.post(
        '/api/distribution/settle', params={'day': utc_today().isoformat()},
    )
    assert response.status_code == 422


async def test_scheduler_status(client):
    response = await client.get('/api/distribution/scheduler')
    assert response.status_code == 200
    assert response.json()['is_running'] is False
    assert response.json()['timezone'] == 'America/New_York'


async def test_withdrawal_flow(client, make_user):
    user = await make_user(available='3.30')

    response = await client.post('/api/withdrawals', json={
        'user_id': user.id,
        'amount': '3.00',
        'method': 'paypal',
        'payment_details': {'paypal_email': 'jane@example.com'},
    })
    assert response.status_code == 201
    created = response.json()
    withdrawal_id = created['withdrawal']['id']
    assert created['withdrawal']['status'] == 'pending'
    assert Decimal(created['withdrawal']['net_amount']) == Decimal('2.70')

    pending = await client.get('/api/withdrawals/pending')
    assert [w['id'] for w in pending.json()] == [withdrawal_id]

    approved = await client.post(f'/api/withdrawals/{withdrawal_id}/approve')
    assert approved.status_code == 200
    assert approved.json()['status'] == 'completed'
    assert approved.json()['transaction_id'].startswith('TXN_')

    again = await client.post(f'/api/withdrawals/{withdrawal_id}/approve')
    assert again.status_code == 400

    missing = await client.post('/api/withdrawals/9999/approve')
    assert missing.status_code == 404

    balance = await client.get(f'/api/balance/{user.id}')
    assert Decimal(balance.json()['available']) == Decimal('0')
    assert Decimal(balance.json()['total_withdrawn']) == Decimal('3')

    entries = await client.get(f'/api/balance/{user.id}/entries')
    assert [e['action_type'] for e in entries.json()] == ['withdrawal_freeze']


async def test_withdrawal_rejections(client, make_user):
    user = await make_user(available='2')

    insufficient = await client.post('/api/withdrawals', json={
        'user_id': user.id,
        'amount': '3.00',
        'method': 'paypal',
        'payment_details': {'paypal_email': 'jane@example.com'},
    })
    assert insufficient.status_code == 400

    bad_method = await client.post('/api/withdrawals', json={
        'user_id': user.id, 'amount': '3.00', 'method': 'crypto',
    })
    assert bad_method.status_code == 422


async def test_reject_withdrawal_route(client, make_user):
    user = await make_user(available='10')
    created = await client.post('/api/withdrawals', json={
        'user_id': user.id,
        'amount': '5',
        'method': 'mobile',
        'payment_details': {'phone_number': '+14155552671'},
    })
    withdrawal_id = created.json()['withdrawal']['id']

    response = await client.post(
        f'/api/withdrawals/{withdrawal_id}/reject', json={'reason': 'Number unreachable'},
    )
    assert response.status_code == 200
    assert response.json()['status'] == 'rejected'

    balance = await client.get(f'/api/balance/{user.id}')
    assert Decimal(balance.json()['available']) == Decimal('10')

    other = await make_user()
    hidden = await client.get(f'/api/withdrawals/{withdrawal_id}', params={'user_id': other.id})
    assert hidden.status_code == 404


async def test_gifts(client, make_user):
    fan = await make_user('fan', available='5')
    creator = await make_user('creator')

    catalog = await client.get('/api/gifts/catalog')
    assert len(catalog.json()) == 5

    ad = await client.post(f'/api/gifts/users/{fan.id}/rewarded-ad')
    assert ad.status_code == 200

    sent = await client.post('/api/gifts/send', json={
        'sender_id': fan.id, 'receiver_id': creator.id, 'gift_type': 'diamond',
    })
    assert sent.status_code == 201
    assert Decimal(sent.json()['creator_amount']) == Decimal('3.493')

    received = await client.get(f'/api/gifts/users/{creator.id}/received')
    assert [g['gift_type'] for g in received.json()] == ['diamond']

    balance = await client.get(f'/api/balance/{fan.id}')
    assert Decimal(balance.json()['gifts']) == Decimal('0.01')
    assert Decimal(balance.json()['available']) == Decimal('0.01')

    too_expensive = await client.post('/api/gifts/send', json={
        'sender_id': fan.id, 'receiver_id': creator.id, 'gift_type': 'rocket',
    })
    assert too_expensive.status_code == 400


async def test_record_ad_impression(client):
    response = await client.post('/api/ads/impressions', json={'ad_type': 'in_feed'})
    assert response.status_code == 201
    assert response.json()['ad_type'] == 'in_feed'

    invalid = await client.post('/api/ads/impressions', json={'ad_type': 'popup'})
    assert invalid.status_code == 422


async def test_activity_since_with_utc_offset(client, make_user):
    user = await make_user()
    await client.post(
        f'/api/points/users/{user.id}/accrue', json={'category': 'like', 'amount': '1'},
    )
    plus_five = timezone(timedelta(hours=5))
    url = f'/api/points/users/{user.id}/activity'

    earlier = (datetime.now(plus_five) - timedelta(minutes=1)).isoformat()
    response = await client.get(url, params={'since': earlier})
    assert response.status_code == 200
    assert [a['category'] for a in response.json()] == ['like']

    later = (datetime.now(plus_five) + timedelta(minutes=1)).isoformat()
    response = await client.get(url, params={'since': later})
    assert response.json() == []
