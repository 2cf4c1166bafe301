"""Resident update-status classification and name formatting.

Single home for the freshness rule used by lists, filters, exports and the CLI:
- Active: last activity within 6 calendar months
- Outdated: 7-12 calendar months
- Needs Verification: older than 12 months, or no usable date

Months are counted by calendar (year*12 + month), ignoring the day of month.
"""
from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Mapping

from apps.console.utils.time import parse_timestamp, utc_now


STATUS_ACTIVE = 'Active'
STATUS_OUTDATED = 'Outdated'
STATUS_NEEDS_VERIFICATION = 'Needs Verification'
UPDATE_STATUSES = (STATUS_ACTIVE, STATUS_OUTDATED, STATUS_NEEDS_VERIFICATION)

ACTIVE_MAX_MONTHS = 6
OUTDATED_MAX_MONTHS = 12

VERIFICATION_STATUSES = ('pending', 'approved', 'denied')

_WHITESPACE = re.compile(r'\s+')


def record_field(record: Any, name: str, default: Any = None) -> Any:
    """Read a field from a mapping or attribute-style record."""
    if record is None:
        return default
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


def last_activity(resident: Any) -> datetime | None:
    """Most recent activity timestamp (last_modified preferred over updated_at)."""
    raw = record_field(resident, 'last_modified') or record_field(resident, 'updated_at')
    return parse_timestamp(raw)


def months_since(then: datetime, now: datetime) -> int:
    return (now.year - then.year) * 12 + (now.month - then.month)


def classify(resident: Any, now: datetime | None = None) -> str:
    """Return the update status label for a resident record. Never raises."""
    try:
        updated = last_activity(resident)
    except Exception:
        updated = None
    if updated is None:
        return STATUS_NEEDS_VERIFICATION

    diff = months_since(updated, now or utc_now())
    if diff <= ACTIVE_MAX_MONTHS:
        return STATUS_ACTIVE
    if diff <= OUTDATED_MAX_MONTHS:
        return STATUS_OUTDATED
    return STATUS_NEEDS_VERIFICATION


def resolve_update_status(resident: Any, now: datetime | None = None) -> str:
    """Server-supplied update_status wins when valid; local classification is the fallback."""
    server_value = record_field(resident, 'update_status')
    if isinstance(server_value, str) and server_value in UPDATE_STATUSES:
        return server_value
    return classify(resident, now=now)


def status_key(label: str) -> str:
    """'Needs Verification' -> 'needs_verification'."""
    return _WHITESPACE.sub('_', (label or '').strip().lower())


STATUS_FILTER_KEYS = tuple(status_key(s) for s in UPDATE_STATUSES)


def format_resident_name(resident: Any) -> str:
    """first [middle] [last] [suffix], skipping a suffix of 'none'."""
    parts = [
        record_field(resident, 'first_name') or '',
        record_field(resident, 'middle_name') or '',
        record_field(resident, 'last_name') or '',
    ]
    suffix = record_field(resident, 'name_suffix') or ''
    if str(suffix).strip().lower() not in ('', 'none'):
        parts.append(suffix)
    return ' '.join(str(p).strip() for p in parts if str(p).strip())


def resident_code(resident: Any) -> str:
    """Human-facing identifier (resident_id, falling back to the numeric id)."""
    value = record_field(resident, 'resident_id')
    if value in (None, ''):
        value = record_field(resident, 'id')
    return '' if value is None else str(value)


def verification_status(resident: Any) -> str:
    value = str(record_field(resident, 'verification_status') or '').strip().lower()
    return value if value in VERIFICATION_STATUSES else 'pending'


def details_visible(resident: Any) -> bool:
    """Denied residency verification hides resident details and editing."""
    return verification_status(resident) != 'denied'


def with_update_status(resident: Mapping, now: datetime | None = None) -> dict:
    """Copy of a resident dict with a resolved update_status attached."""
    record = dict(resident)
    record['update_status'] = resolve_update_status(resident, now=now)
    return record
