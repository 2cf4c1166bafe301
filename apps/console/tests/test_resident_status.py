from datetime import datetime

import pytest

from apps.console.utils.resident_status import (
    STATUS_ACTIVE,
    STATUS_NEEDS_VERIFICATION,
    STATUS_OUTDATED,
    classify,
    details_visible,
    format_resident_name,
    resident_code,
    resolve_update_status,
    status_key,
    verification_status,
    with_update_status,
)


NOW = datetime(2025, 1, 15, 9, 30)


@pytest.mark.parametrize('resident', [
    None,
    {},
    {'last_modified': None},
    {'last_modified': ''},
    {'last_modified': 'not-a-date'},
    {'last_modified': '2024-13-45'},
    {'updated_at': 12345},
    object(),
])
def test_classify_malformed_input_needs_verification(resident):
    assert classify(resident, now=NOW) == STATUS_NEEDS_VERIFICATION


@pytest.mark.parametrize('last_modified, expected', [
    ('2025-01-15', STATUS_ACTIVE),
    ('2024-07-15', STATUS_ACTIVE),       # 6 months
    ('2024-06-15', STATUS_OUTDATED),     # 7 months
    ('2024-01-15', STATUS_OUTDATED),     # 12 months
    ('2023-12-15', STATUS_NEEDS_VERIFICATION),  # 13 months
    ('2020-01-01', STATUS_NEEDS_VERIFICATION),
])
def test_classify_calendar_month_boundaries(last_modified, expected):
    assert classify({'last_modified': last_modified}, now=NOW) == expected


def test_classify_ignores_day_of_month():
    # Same calendar month count regardless of the day
    assert classify({'last_modified': '2024-07-31T23:59:59Z'}, now=datetime(2025, 1, 1)) == STATUS_ACTIVE
    assert classify({'last_modified': '2024-06-01'}, now=datetime(2025, 1, 31)) == STATUS_OUTDATED


def test_classify_falls_back_to_updated_at():
    resident = {'last_modified': None, 'updated_at': '2024-12-01T08:00:00.000000Z'}
    assert classify(resident, now=NOW) == STATUS_ACTIVE


def test_classify_prefers_last_modified_over_updated_at():
    resident = {'last_modified': '2020-05-01', 'updated_at': '2025-01-01'}
    assert classify(resident, now=NOW) == STATUS_NEEDS_VERIFICATION


def test_classify_accepts_attribute_records():
    class Record:
        last_modified = datetime(2024, 11, 2)

    assert classify(Record(), now=NOW) == STATUS_ACTIVE


def test_server_update_status_wins_when_valid():
    resident = {'last_modified': '2020-01-01', 'update_status': STATUS_ACTIVE}
    assert resolve_update_status(resident, now=NOW) == STATUS_ACTIVE


def test_unknown_server_update_status_falls_back_to_classification():
    resident = {'last_modified': '2020-01-01', 'update_status': 'Stale'}
    assert resolve_update_status(resident, now=NOW) == STATUS_NEEDS_VERIFICATION


def test_with_update_status_does_not_mutate_source():
    source = {'id': 1, 'last_modified': '2024-12-01'}
    annotated = with_update_status(source, now=NOW)
    assert annotated['update_status'] == STATUS_ACTIVE
    assert 'update_status' not in source


def test_status_key():
    assert status_key(STATUS_NEEDS_VERIFICATION) == 'needs_verification'
    assert status_key(STATUS_ACTIVE) == 'active'
    assert status_key('') == ''


@pytest.mark.parametrize('resident, expected', [
    ({'first_name': 'Juan', 'middle_name': 'Santos', 'last_name': 'Dela Cruz', 'name_suffix': 'Jr.'},
     'Juan Santos Dela Cruz Jr.'),
    ({'first_name': 'Maria', 'last_name': 'Reyes', 'name_suffix': 'none'}, 'Maria Reyes'),
    ({'first_name': 'Maria', 'middle_name': '', 'last_name': 'Reyes', 'name_suffix': 'None'}, 'Maria Reyes'),
    ({'first_name': ' Ana ', 'last_name': 'Lim'}, 'Ana Lim'),
    ({}, ''),
])
def test_format_resident_name(resident, expected):
    assert format_resident_name(resident) == expected


def test_resident_code_falls_back_to_numeric_id():
    assert resident_code({'resident_id': 'R-0001', 'id': 4}) == 'R-0001'
    assert resident_code({'resident_id': '', 'id': 4}) == '4'
    assert resident_code({}) == ''


def test_verification_status_and_visibility():
    assert verification_status({}) == 'pending'
    assert verification_status({'verification_status': 'APPROVED'}) == 'approved'
    assert verification_status({'verification_status': 'weird'}) == 'pending'
    assert details_visible({'verification_status': 'approved'}) is True
    assert details_visible({'verification_status': 'denied'}) is False
