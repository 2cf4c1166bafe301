"""Resident list loading and admin-side resident actions."""
from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Iterable, List, Mapping

from apps.console.utils.errors import RequestCancelled, ValidationError
from apps.console.utils.resident_status import with_update_status


logger = logging.getLogger(__name__)

DISABLE_REASONS = ('relocated', 'deceased', 'pending_issue')
DENIAL_COMMENT_REQUIRED = 'Please provide a reason for denial.'


def extract_residents(body: Mapping[str, Any] | None) -> List[dict]:
    """Pull the resident list out of a list response.

    Records without an ``id`` or ``resident_id`` are dropped.
    """
    body = body or {}
    items = body.get('residents')
    if items is None:
        items = body.get('data')
    if not isinstance(items, list):
        return []
    return [
        r for r in items
        if isinstance(r, Mapping) and (r.get('id') is not None or r.get('resident_id'))
    ]


def annotate_residents(residents: Iterable[Mapping], now: datetime | None = None) -> List[dict]:
    return [with_update_status(r, now=now) for r in residents]


def validate_disable_reason(reason) -> str | None:
    value = (reason or '').strip().lower() if isinstance(reason, str) else reason
    if not value:
        return None
    if value not in DISABLE_REASONS:
        raise ValidationError(
            f"Invalid reason. Must be one of: {', '.join(DISABLE_REASONS)}", field='reason'
        )
    return value


def validate_denial_comment(comment) -> str:
    text = (comment or '').strip() if isinstance(comment, str) else ''
    if not text:
        raise ValidationError(DENIAL_COMMENT_REQUIRED, field='comment')
    return text


class ResidentDirectory:
    """Last known resident list for a long-lived session.

    Overlapping refreshes resolve to the most recently started one; a
    superseded refresh leaves the stored list untouched.
    """

    def __init__(self, client, role: str = 'admin'):
        self.client = client
        self.role = role
        self.residents: List[dict] = []
        self.loaded_at: datetime | None = None
        self._lock = threading.Lock()
        self._generation = 0

    def refresh(self, now: datetime | None = None) -> List[dict]:
        with self._lock:
            self._generation += 1
            generation = self._generation

        try:
            body = self.client.list_residents(self.role)
        except RequestCancelled:
            logger.debug("Resident refresh superseded")
            return self.residents

        residents = annotate_residents(extract_residents(body), now=now)
        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding stale resident list")
                return self.residents
            self.residents = residents
            self.loaded_at = now
        logger.info("Loaded %d residents", len(residents))
        return residents
