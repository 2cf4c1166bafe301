import math
from datetime import datetime

import pytest

from apps.console.utils.errors import ValidationError
from apps.console.utils.filtering import (
    ResidentListState,
    clamp_page,
    filter_residents,
    paginate,
)


NOW = datetime(2025, 1, 15)


def _residents():
    return [
        {'id': 1, 'resident_id': 'R-001', 'first_name': 'Juan', 'last_name': 'Dela Cruz',
         'email': 'juan@example.com', 'last_modified': '2024-12-01', 'for_review': False},
        {'id': 2, 'resident_id': 'R-002', 'first_name': 'Maria', 'last_name': 'Reyes',
         'email': 'maria@example.com', 'last_modified': '2024-05-10', 'for_review': True},
        {'id': 3, 'resident_id': 'R-003', 'first_name': 'Pedro', 'last_name': 'Santos',
         'email': 'pedro@example.com', 'last_modified': None, 'for_review': False},
        {'id': 4, 'resident_id': 'R-004', 'first_name': 'Ana', 'last_name': 'Lim',
         'email': 'ana@example.com', 'last_modified': '2019-03-03', 'update_status': 'Active'},
    ]


def test_needs_verification_scenario():
    today = NOW.date().isoformat()
    residents = [{'last_modified': None}, {'last_modified': '2020-01-01'}, {'last_modified': today}]
    result = filter_residents(residents, status_filter='needs_verification', now=NOW)
    assert result == residents[:2]


@pytest.mark.parametrize('status', ['', 'active', 'outdated', 'needs_verification', 'for_review'])
def test_status_filter_is_idempotent(status):
    once = filter_residents(_residents(), status_filter=status, now=NOW)
    twice = filter_residents(once, status_filter=status, now=NOW)
    assert once == twice


def test_server_status_is_used_for_filtering():
    # R-004 is stale by date but the server says Active
    ids = [r['id'] for r in filter_residents(_residents(), status_filter='active', now=NOW)]
    assert ids == [1, 4]


def test_for_review_filter():
    assert [r['id'] for r in filter_residents(_residents(), status_filter='for_review', now=NOW)] == [2]


def test_search_matches_name_email_and_code_case_insensitively():
    assert [r['id'] for r in filter_residents(_residents(), search='DELA', now=NOW)] == [1]
    assert [r['id'] for r in filter_residents(_residents(), search='maria@', now=NOW)] == [2]
    assert [r['id'] for r in filter_residents(_residents(), search='r-003', now=NOW)] == [3]
    assert filter_residents(_residents(), search='nobody', now=NOW) == []


def test_unknown_status_filter_rejected():
    with pytest.raises(ValidationError) as exc:
        filter_residents(_residents(), status_filter='archived')
    assert exc.value.field == 'status'


@pytest.mark.parametrize('total', [0, 1, 9, 10, 11, 25, 100])
@pytest.mark.parametrize('per_page', [10, 20, 50])
def test_pagination_invariant(total, per_page):
    items = list(range(total))
    for requested in (-3, 0, 1, 2, 5, 999):
        page = paginate(items, requested, per_page)
        assert page.total_pages == math.ceil(total / per_page)
        assert 1 <= page.page <= max(page.total_pages, 1)
        assert len(page.items) <= per_page


def test_paginate_slices_and_clamps():
    items = list(range(25))
    page = paginate(items, 3, 10)
    assert page.items == [20, 21, 22, 23, 24]
    assert page.has_prev and not page.has_next

    clamped = paginate(items, 99, 10)
    assert clamped.page == 3

    data = paginate(items, 1, 10).to_dict('residents')
    assert data['pagination'] == {
        'page': 1, 'per_page': 10, 'total': 25, 'pages': 3, 'has_next': True, 'has_prev': False,
    }


def test_empty_list_has_one_navigable_page():
    page = paginate([], 4, 10)
    assert page.page == 1
    assert page.total_pages == 0
    assert page.items == []


def test_paginate_rejects_unsupported_page_size():
    with pytest.raises(ValidationError):
        paginate([1, 2, 3], 1, 15)


def test_clamp_page_handles_junk():
    assert clamp_page('abc', 4) == 1
    assert clamp_page('3', 4) == 3


def test_list_state_resets_page_on_changes():
    state = ResidentListState(page=3)
    state.set_search('juan')
    assert state.page == 1

    state.page = 2
    state.set_status_filter('Outdated')
    assert state.page == 1
    assert state.status_filter == 'outdated'

    state.page = 2
    state.set_per_page(20)
    assert state.page == 1 and state.per_page == 20


def test_list_state_clamps_stored_page():
    state = ResidentListState(per_page=10)
    residents = [{'id': i, 'last_modified': '2024-12-01'} for i in range(12)]
    result = state.go_to(5, residents, now=NOW)
    assert result.page == 2
    assert state.page == 2
    assert len(result.items) == 2
