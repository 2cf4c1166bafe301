"""Activity log query building and role bucketing."""
from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping

from apps.console.utils.resident_status import record_field


ROLES = ('admin', 'resident', 'staff', 'system')

DEFAULT_LOG_FILTERS: Dict[str, Any] = {
    'action': '',
    'model_type': '',
    'search': '',
    'date_from': '',
    'date_to': '',
    'time_from': '',
    'time_to': '',
    'user_type': 'all',
    'ip_address': '',
    'model_id': '',
    'description_search': '',
    'status': '',
    'sort_by': 'created_at',
    'sort_order': 'desc',
    'page': 1,
    'per_page': 20,
}

_ROLE_ALIASES = {
    'resident': 'resident',
    'residents': 'resident',
    'admin': 'admin',
    'admins': 'admin',
    'administrator': 'admin',
    'administrators': 'admin',
    'staff': 'staff',
    'staffs': 'staff',
    'system': 'system',
}


def build_log_query(filters: Mapping[str, Any] | None = None) -> Dict[str, Any]:
    """Query params for the activity log list.

    Blank values and ``all`` are dropped; ``page`` is only sent past page 1.
    """
    merged = dict(DEFAULT_LOG_FILTERS)
    for key, value in (filters or {}).items():
        if key in merged:
            merged[key] = value

    params: Dict[str, Any] = {}
    for key, value in merged.items():
        if key == 'page':
            try:
                page = int(value)
            except (TypeError, ValueError):
                page = 1
            if page > 1:
                params['page'] = page
            continue
        if value is None:
            continue
        text = str(value).strip()
        if not text or text.lower() == 'all':
            continue
        params[key] = value
    return params


def normalize_role(value) -> str | None:
    if value is None:
        return None
    return _ROLE_ALIASES.get(str(value).strip().lower())


def log_user_role(log: Any) -> str:
    user = record_field(log, 'user') or {}
    candidates = (
        record_field(user, 'role'),
        record_field(user, 'user_type'),
        record_field(log, 'user_type'),
        record_field(log, 'role'),
    )
    for candidate in candidates:
        role = normalize_role(candidate)
        if role:
            return role
    return 'system'


def count_by_role(logs: Iterable[Any]) -> Dict[str, int]:
    counts = {role: 0 for role in ROLES}
    total = 0
    for log in logs or []:
        counts[log_user_role(log)] += 1
        total += 1
    counts['total'] = total
    return counts


def summarize_logs_response(body: Mapping[str, Any] | None) -> Dict[str, Any]:
    """Flatten the paginated log response and attach per-role counts.

    Server-side counts win; otherwise the current page is counted.
    """
    body = body or {}
    logs = body.get('logs') or {}
    if isinstance(logs, list):
        items, last_page, total = logs, 1, len(logs)
    else:
        items = logs.get('data') or []
        last_page = logs.get('last_page') or 1
        total = logs.get('total', len(items))

    server_counts = body.get('counts')
    if isinstance(server_counts, Mapping) and server_counts:
        counts = {role: int(server_counts.get(role) or 0) for role in ROLES}
        counts['total'] = int(server_counts.get('total') or total)
    else:
        counts = count_by_role(items)

    return {
        'logs': [dict(log, user_role=log_user_role(log)) if isinstance(log, Mapping) else log for log in items],
        'last_page': last_page,
        'total': total,
        'counts': counts,
    }
