import csv
import io
from io import BytesIO


def _tracking(assistance_type='Monetary', validated=False):
    return {
        'success': True,
        'data': {
            'beneficiary': {'id': 9, 'receipt_number_validated': validated, 'is_paid': validated},
            'program': {'id': 2, 'assistance_type': assistance_type},
            'submission': {},
            'tracking': {
                'current_stage': 3,
                'payout_date': '2025-01-20T09:00:00Z',
                'stages': [
                    {'stage': 1, 'completed': True, 'active': False},
                    {'stage': 2, 'completed': True, 'active': False},
                    {'stage': 3, 'completed': validated, 'active': not validated},
                    {'stage': 4, 'completed': False, 'active': False},
                ],
            },
        },
    }


def test_track_returns_view(client, fake_session):
    fake_session.add('GET', '/my-benefits/9/track', _tracking())
    resp = client.get('/api/my-benefits/9/track')
    assert resp.status_code == 200
    data = resp.get_json()['data']
    assert [s['state'] for s in data['stages']] == ['completed', 'completed', 'active', 'upcoming']
    assert data['payout_due'] is False


def test_track_reads_naive_payout_date_in_app_timezone(app, client, fake_session):
    payload = _tracking()
    payload['data']['tracking']['payout_date'] = '2025-01-20 09:00:00'
    fake_session.add('GET', '/my-benefits/9/track', payload)
    app.config['APP_TIMEZONE'] = 'Asia/Manila'

    data = client.get('/api/my-benefits/9/track').get_json()['data']
    assert data['payout_date'] == '2025-01-20T01:00:00'


def test_validate_receipt_refreshes_tracking(client, fake_session):
    fake_session.add('GET', '/my-benefits/9/track', response=[
        fake_session.respond(_tracking()),
        fake_session.respond(_tracking(validated=True)),
    ])
    fake_session.add('POST', '/my-benefits/9/validate-receipt', {'success': True})

    resp = client.post(
        '/api/my-benefits/9/validate-receipt',
        data={'receipt_number': ' RCPT-77 ', 'proof_file': (BytesIO(b'\x89PNG...'), 'proof.png', 'image/png')},
        content_type='multipart/form-data',
    )
    assert resp.status_code == 200
    assert resp.get_json()['data']['beneficiary']['receipt_number_validated'] is True

    post = fake_session.calls_to('POST', '/my-benefits/9/validate-receipt')[0]
    assert post['data'] == {'receipt_number': 'RCPT-77'}
    assert post['files']['proof_file'][0] == 'proof.png'


def test_non_monetary_submission_drops_receipt_number(client, fake_session):
    fake_session.add('GET', '/my-benefits/9/track', _tracking(assistance_type='Non-monetary Assistance'))
    fake_session.add('POST', '/my-benefits/9/validate-receipt', {'success': True})

    resp = client.post('/api/my-benefits/9/validate-receipt', data={'receipt_number': 'STALE', 'comment': 'Received'})
    assert resp.status_code == 200
    assert fake_session.calls_to('POST', '/my-benefits/9/validate-receipt')[0]['data'] == {'comment': 'Received'}


def test_invalid_receipt_is_field_error(client, fake_session):
    fake_session.add('GET', '/my-benefits/9/track', _tracking())
    fake_session.add('POST', '/my-benefits/9/validate-receipt',
                     {'message': 'Invalid receipt number', 'code': 'INVALID_RECEIPT'}, status=422)

    resp = client.post('/api/my-benefits/9/validate-receipt', data={'receipt_number': 'NOPE'})
    assert resp.status_code == 422
    assert resp.get_json() == {
        'error': 'Invalid Receipt Number. Please check the receipt sent to your email.',
        'field': 'receipt_number',
    }


def test_missing_receipt_number_rejected_locally(client, fake_session):
    fake_session.add('GET', '/my-benefits/9/track', _tracking())
    resp = client.post('/api/my-benefits/9/validate-receipt', data={})
    assert resp.status_code == 422
    assert resp.get_json()['field'] == 'receipt_number'
    assert fake_session.calls_to('POST', '/my-benefits/9/validate-receipt') == []


def test_notifications(client, fake_session):
    fake_session.add('GET', '/notifications', {'success': True, 'data': {'notifications': [{'id': 4}], 'unread_count': 1}})
    fake_session.add('POST', '/notifications/4/read', {'success': True})
    fake_session.add('POST', '/notifications/read-all', {'success': True})

    assert client.get('/api/notifications').get_json() == {'notifications': [{'id': 4}], 'unread_count': 1}
    assert client.post('/api/notifications/4/read').status_code == 200
    assert client.post('/api/notifications/read-all').status_code == 200


def test_program_routes(client, fake_session):
    fake_session.add('GET', '/programs/2', {'id': 2, 'name': 'Senior Aid'})
    fake_session.add('GET', '/program-announcements/residents/dashboard', {'data': []})
    fake_session.add('GET', '/program-application-forms/published', {'data': [{'id': 7}]})
    fake_session.add('POST', '/program-application-forms/7/submit', {'success': True})

    assert client.get('/api/programs/2').get_json()['name'] == 'Senior Aid'
    assert client.get('/api/program-announcements?dashboard=1').status_code == 200
    assert client.get('/api/program-application-forms').get_json() == {'data': [{'id': 7}]}

    resp = client.post('/api/program-application-forms/7/submit', data={'full_name': 'Juan'})
    assert resp.status_code == 201
    assert fake_session.calls_to('POST', '/program-application-forms/7/submit')[0]['data'] == {'full_name': 'Juan'}


def test_activity_logs_routes(client, fake_session):
    fake_session.add('GET', '/admin/activity-logs', {
        'logs': {'data': [{'id': 1, 'user': {'role': 'admin', 'name': 'A'}, 'action': 'login',
                           'created_at': '2025-01-14T00:00:00Z'}], 'last_page': 1, 'total': 1},
    })
    fake_session.add('GET', '/admin/activity-logs/flagged-residents-count', {'flagged_count': 3})
    fake_session.add('GET', '/admin/activity-logs/inactive-residents', {'data': [{'id': 8}], 'meta': {'total': 1}})
    fake_session.add('POST', '/admin/activity-logs/export', {
        'logs': {'data': [{'id': 1, 'user': {'role': 'admin'}, 'action': 'login'}]},
    })

    resp = client.get('/api/activity-logs?user_type=all&action=login&page=1')
    assert resp.get_json()['counts']['admin'] == 1
    assert fake_session.calls[0]['params'] == {
        'action': 'login', 'sort_by': 'created_at', 'sort_order': 'desc', 'per_page': 20,
    }

    assert client.get('/api/activity-logs/flagged-count').get_json() == {'flagged_count': 3}
    assert client.get('/api/activity-logs/inactive-residents').get_json()['total'] == 1

    export = client.post('/api/activity-logs/export', json={'format': 'csv'})
    assert export.status_code == 200
    assert export.mimetype == 'text/csv'


def _log(n):
    return {'id': n, 'user': {'role': 'staff', 'name': f'Staff {n}'}, 'action': 'update',
            'description': f'Updated record {n}', 'created_at': '2025-01-14T08:00:00Z'}


def test_activity_log_csv_contains_every_exported_log(client, fake_session):
    fake_session.add('GET', '/admin/activity-logs', {
        'logs': {'data': [_log(n) for n in range(20)], 'last_page': 3, 'total': 45},
    })
    fake_session.add('POST', '/admin/activity-logs/export', {
        'logs': {'data': [_log(n) for n in range(45)], 'total': 45},
    })

    resp = client.post('/api/activity-logs/export', json={'format': 'csv', 'action': 'update', 'page': 2})

    assert resp.status_code == 200
    rows = list(csv.reader(io.StringIO(resp.data.decode('utf-8'), newline='')))
    assert len(rows) - 1 == 45
    assert fake_session.calls_to('GET', '/admin/activity-logs') == []
    sent = fake_session.calls_to('POST', '/admin/activity-logs/export')[0]['json']
    assert sent['action'] == 'update'
    assert 'page' not in sent and 'per_page' not in sent


def test_health(client):
    resp = client.get('/health')
    assert resp.status_code == 200
    assert resp.get_json()['status'] == 'ok'


def test_unknown_route_is_json(client):
    resp = client.get('/api/nope')
    assert resp.status_code == 404
    assert resp.is_json


def test_notifications_tolerate_malformed_unread_count(client, fake_session):
    fake_session.add('GET', '/notifications', {'data': {
        'notifications': [{'id': 4, 'is_read': False}], 'unread_count': 'n/a',
    }})
    resp = client.get('/api/notifications')
    assert resp.status_code == 200
    assert resp.get_json()['unread_count'] == 1
