import pytest
import requests

from apps.console.utils.errors import RequestCancelled, UpstreamError
from apps.console.utils.residents import ResidentDirectory
from apps.console.utils.upstream import (
    CONCERN_RESIDENTS,
    LatestRequestGuard,
    RecordsClient,
    create_session,
    get_records_client,
)


BASE_URL = 'http://records.test/api'


def test_guard_cancels_previous_token_for_same_concern():
    guard = LatestRequestGuard()
    first = guard.begin('residents')
    other = guard.begin('activity_logs')
    second = guard.begin('residents')

    assert first.cancelled
    assert not second.cancelled
    assert not other.cancelled

    with pytest.raises(RequestCancelled):
        first.raise_if_cancelled()


def test_guard_finish_only_clears_current_token():
    guard = LatestRequestGuard()
    stale = guard.begin('residents')
    current = guard.begin('residents')
    guard.finish('residents', stale)
    guard.cancel_all()
    assert current.cancelled


def test_response_for_superseded_request_is_discarded(fake_session):
    client = RecordsClient(BASE_URL, session=fake_session)
    newer = {}

    def superseded(call):
        # A newer residents fetch starts while this one is in flight
        newer['token'] = client.guard.begin(CONCERN_RESIDENTS)
        return fake_session.respond({'residents': [{'id': 1}]})

    fake_session.add('GET', '/admin/residents-list', response=superseded)

    with pytest.raises(RequestCancelled):
        client.list_residents()
    assert not newer['token'].cancelled


def test_authorization_header_forwarded(fake_session):
    fake_session.add('GET', '/my-benefits', {'data': []})
    client = RecordsClient(BASE_URL, session=fake_session, auth_header='Bearer abc', timeout=3)
    client.my_benefits()

    call = fake_session.calls[0]
    assert call['headers']['Authorization'] == 'Bearer abc'
    assert call['headers']['Accept'] == 'application/json'
    assert call['timeout'] == 3


def test_error_uses_server_message_and_status(fake_session):
    fake_session.add('POST', '/admin/residents/5/restore', {'message': 'Resident not found'}, status=404)
    client = RecordsClient(BASE_URL, session=fake_session)

    with pytest.raises(UpstreamError) as exc:
        client.restore_resident(5)
    assert exc.value.status_code == 404
    assert exc.value.message == 'Resident not found'


def test_transport_failure_becomes_upstream_error(fake_session):
    fake_session.add('GET', '/notifications', response=requests.exceptions.ConnectionError('refused'))
    client = RecordsClient(BASE_URL, session=fake_session)

    with pytest.raises(UpstreamError) as exc:
        client.notifications()
    assert exc.value.status_code == 502
    assert exc.value.message == 'Failed to load notifications'


def test_endpoint_paths_and_bodies(fake_session):
    client = RecordsClient(BASE_URL, session=fake_session)
    for method, path in [
        ('POST', '/admin/residents/3/delete'),
        ('POST', '/admin/residents/3/deny-verification'),
        ('GET', '/admin/activity-logs/inactive-residents'),
        ('GET', '/staff/residents-list'),
        ('GET', '/program-announcements/residents/dashboard'),
    ]:
        fake_session.add(method, path, {'success': True})

    client.disable_resident(3, 'deceased')
    client.deny_verification(3, 'Proof is blurry')
    client.list_inactive_residents(page=2)
    client.list_residents(role='staff')
    client.program_announcements(dashboard=True)

    assert fake_session.calls[0]['json'] == {'reason': 'deceased'}
    assert fake_session.calls[1]['json'] == {'comment': 'Proof is blurry'}
    assert fake_session.calls[2]['params'] == {'page': 2, 'per_page': 20}
    assert [c['path'] for c in fake_session.calls][3:] == [
        '/staff/residents-list', '/program-announcements/residents/dashboard',
    ]


def test_session_is_mounted_without_retries():
    session = create_session()
    adapter = session.get_adapter('https://records.example.com')
    assert adapter.max_retries.total == 0


def test_directory_keeps_latest_list(fake_session):
    fake_session.add('GET', '/admin/residents-list', {'residents': [
        {'id': 1, 'last_modified': None},
        {'first_name': 'No id'},
    ]})
    client = RecordsClient(BASE_URL, session=fake_session)
    directory = ResidentDirectory(client)

    residents = directory.refresh()
    assert [r['id'] for r in residents] == [1]
    assert residents[0]['update_status'] == 'Needs Verification'
    assert directory.residents == residents


def test_directory_ignores_cancelled_refresh(fake_session):
    client = RecordsClient(BASE_URL, session=fake_session)
    directory = ResidentDirectory(client)
    directory.residents = [{'id': 'existing'}]

    def superseded(call):
        client.guard.begin(CONCERN_RESIDENTS)
        return fake_session.respond({'residents': [{'id': 2}]})

    fake_session.add('GET', '/admin/residents-list', response=superseded)
    assert directory.refresh() == [{'id': 'existing'}]
    assert directory.residents == [{'id': 'existing'}]


def test_each_request_gets_its_own_client_and_guard(app, fake_session):
    with app.test_request_context('/api/residents'):
        first = get_records_client()
        assert get_records_client() is first
    assert fake_session.closed

    with app.test_request_context('/api/residents'):
        second = get_records_client()
        assert second is not first
        assert second.guard is not first.guard
