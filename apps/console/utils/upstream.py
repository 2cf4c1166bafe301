"""
Records API client.

Wraps the barangay records REST API (residents, activity logs, benefits,
programs, notifications). Request shapes follow the API contract exactly;
this module adds no business rules of its own.

List fetches that can be superseded (residents, activity logs, inactive
residents) go through a LatestRequestGuard: starting a new fetch for the same
concern cancels the previous one, and a late response for a cancelled
request is dropped with RequestCancelled instead of overwriting newer data.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Optional

import requests
from flask import current_app, g, request
from requests.adapters import HTTPAdapter

from apps.console.utils.errors import RequestCancelled, UpstreamError


logger = logging.getLogger(__name__)

CONCERN_RESIDENTS = 'residents'
CONCERN_ACTIVITY_LOGS = 'activity_logs'
CONCERN_INACTIVE_RESIDENTS = 'inactive_residents'


class CancelToken:
    """Cancellation flag shared between a request and whoever supersedes it."""

    def __init__(self, concern: str | None = None):
        self.concern = concern
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise RequestCancelled(self.concern)


class LatestRequestGuard:
    """Keeps at most one live request per concern."""

    def __init__(self):
        self._lock = threading.Lock()
        self._tokens: Dict[str, CancelToken] = {}

    def begin(self, concern: str) -> CancelToken:
        token = CancelToken(concern)
        with self._lock:
            previous = self._tokens.get(concern)
            self._tokens[concern] = token
        if previous is not None:
            previous.cancel()
            logger.debug("Cancelled in-flight %s request", concern)
        return token

    def finish(self, concern: str, token: CancelToken) -> None:
        with self._lock:
            if self._tokens.get(concern) is token:
                del self._tokens[concern]

    def cancel_all(self) -> None:
        with self._lock:
            tokens = list(self._tokens.values())
            self._tokens.clear()
        for token in tokens:
            token.cancel()


def create_session() -> requests.Session:
    """Session with pooled connections and no automatic retries."""
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=0, pool_connections=10, pool_maxsize=20)
    session.mount('https://', adapter)
    session.mount('http://', adapter)
    return session


class RecordsClient:
    """Thin client over the records REST API."""

    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = 15,
        auth_header: str | None = None,
        guard: LatestRequestGuard | None = None,
    ):
        self.base_url = (base_url or '').rstrip('/')
        self.session = session if session is not None else create_session()
        self.timeout = timeout
        self.auth_header = auth_header
        self.guard = guard or LatestRequestGuard()

    # -- transport ---------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self) -> Dict[str, str]:
        headers = {'Accept': 'application/json'}
        if self.auth_header:
            headers['Authorization'] = self.auth_header
        return headers

    def request(
        self,
        method: str,
        path: str,
        token: CancelToken | None = None,
        fallback_error: str = 'Request to records API failed',
        **kwargs,
    ) -> Dict[str, Any]:
        """Perform a request and return the decoded JSON body.

        Raises RequestCancelled if the token was cancelled before the response
        could be used, UpstreamError for transport failures and non-2xx replies.
        """
        if token is not None:
            token.raise_if_cancelled()

        kwargs.setdefault('timeout', self.timeout)
        headers = self._headers()
        headers.update(kwargs.pop('headers', None) or {})

        try:
            response = self.session.request(method, self._url(path), headers=headers, **kwargs)
        except requests.exceptions.RequestException as exc:
            if token is not None and token.cancelled:
                raise RequestCancelled(token.concern) from exc
            logger.error("[records-api] %s %s failed: %s", method, path, exc)
            raise UpstreamError(fallback_error, status_code=502) from exc

        if token is not None and token.cancelled:
            response.close()
            raise RequestCancelled(token.concern)

        if response.status_code >= 400:
            error = UpstreamError.from_response(response, fallback=fallback_error)
            logger.warning(
                "[records-api] %s %s -> %s: %s", method, path, response.status_code, error.message
            )
            raise error

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamError('Records API returned an invalid response', status_code=502) from exc
        return data if isinstance(data, dict) else {'data': data}

    def latest(self, concern: str, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Request that supersedes any in-flight request for the same concern."""
        token = self.guard.begin(concern)
        try:
            return self.request(method, path, token=token, **kwargs)
        finally:
            self.guard.finish(concern, token)

    def close(self) -> None:
        self.guard.cancel_all()
        self.session.close()

    # -- residents -----------------------------------------------------------

    def list_residents(self, role: str = 'admin') -> Dict[str, Any]:
        path = '/staff/residents-list' if role == 'staff' else '/admin/residents-list'
        return self.latest(CONCERN_RESIDENTS, 'GET', path, fallback_error='Failed to load residents')

    def get_resident(self, resident_id) -> Dict[str, Any]:
        return self.request('GET', f'/admin/residents/{resident_id}', fallback_error='Failed to load resident')

    def update_resident(self, resident_id, data: Dict[str, Any]) -> Dict[str, Any]:
        return self.request('PUT', f'/admin/residents/{resident_id}', json=data,
                            fallback_error='Failed to update resident')

    def approve_verification(self, resident_id) -> Dict[str, Any]:
        return self.request('POST', f'/admin/residents/{resident_id}/approve-verification',
                            fallback_error='Failed to approve residency verification')

    def deny_verification(self, resident_id, comment: str) -> Dict[str, Any]:
        return self.request('POST', f'/admin/residents/{resident_id}/deny-verification',
                            json={'comment': comment},
                            fallback_error='Failed to deny residency verification')

    def disable_resident(self, resident_id, reason: str | None = None) -> Dict[str, Any]:
        body = {'reason': reason} if reason else {}
        return self.request('POST', f'/admin/residents/{resident_id}/delete', json=body,
                            fallback_error='Failed to disable resident')

    def list_disabled_residents(self) -> Dict[str, Any]:
        return self.request('GET', '/admin/residents-deleted', fallback_error='Failed to load disabled residents')

    def restore_resident(self, resident_id) -> Dict[str, Any]:
        return self.request('POST', f'/admin/residents/{resident_id}/restore',
                            fallback_error='Failed to restore resident')

    # -- activity logs -------------------------------------------------------

    def list_activity_logs(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return self.latest(CONCERN_ACTIVITY_LOGS, 'GET', '/admin/activity-logs', params=params,
                           fallback_error='Failed to fetch activity logs')

    def activity_log_filter_options(self) -> Dict[str, Any]:
        return self.request('GET', '/admin/activity-logs/filters/options')

    def activity_log_statistics(self) -> Dict[str, Any]:
        return self.request('GET', '/admin/activity-logs/statistics/summary')

    def security_alerts(self) -> Dict[str, Any]:
        return self.request('GET', '/admin/activity-logs/security/alerts')

    def audit_summary(self) -> Dict[str, Any]:
        return self.request('GET', '/admin/activity-logs/audit/summary')

    def list_inactive_residents(self, page: int = 1, per_page: int = 20) -> Dict[str, Any]:
        return self.latest(CONCERN_INACTIVE_RESIDENTS, 'GET', '/admin/activity-logs/inactive-residents',
                           params={'page': page, 'per_page': per_page},
                           fallback_error='Failed to fetch inactive residents')

    def flagged_residents_count(self) -> Dict[str, Any]:
        return self.request('GET', '/admin/activity-logs/flagged-residents-count')

    def flag_inactive_residents(self) -> Dict[str, Any]:
        return self.request('POST', '/admin/activity-logs/flag-inactive-residents',
                            fallback_error='Failed to flag inactive residents')

    def export_activity_logs(self, filters: Dict[str, Any]) -> Dict[str, Any]:
        return self.request('POST', '/admin/activity-logs/export', json=filters,
                            fallback_error='Failed to export activity logs')

    def cleanup_activity_logs(self) -> Dict[str, Any]:
        return self.request('DELETE', '/admin/activity-logs/cleanup',
                            fallback_error='Failed to clean up activity logs')

    # -- benefits --------------------------------------------------------------

    def my_benefits(self) -> Dict[str, Any]:
        return self.request('GET', '/my-benefits', fallback_error='Failed to load enrolled programs')

    def track_benefit(self, beneficiary_id) -> Dict[str, Any]:
        return self.request('GET', f'/my-benefits/{beneficiary_id}/track',
                            fallback_error='Failed to load tracking information')

    def validate_receipt(self, beneficiary_id, data: Dict[str, Any], files: Dict[str, Any] | None = None) -> Dict[str, Any]:
        return self.request('POST', f'/my-benefits/{beneficiary_id}/validate-receipt',
                            data=data, files=files or None,
                            fallback_error='Failed to validate receipt number')

    # -- programs ----------------------------------------------------------------

    def get_program(self, program_id) -> Dict[str, Any]:
        return self.request('GET', f'/programs/{program_id}', fallback_error='Failed to load program')

    def program_announcements(self, dashboard: bool = False) -> Dict[str, Any]:
        path = '/program-announcements/residents/dashboard' if dashboard else '/program-announcements'
        return self.request('GET', path, fallback_error='Failed to load program announcements')

    def published_application_forms(self) -> Dict[str, Any]:
        return self.request('GET', '/program-application-forms/published',
                            fallback_error='Failed to load application forms')

    def submit_application_form(self, form_id, data: Dict[str, Any], files: Dict[str, Any] | None = None) -> Dict[str, Any]:
        return self.request('POST', f'/program-application-forms/{form_id}/submit',
                            data=data, files=files or None,
                            fallback_error='Failed to submit application')

    # -- notifications -------------------------------------------------------------

    def notifications(self) -> Dict[str, Any]:
        return self.request('GET', '/notifications', fallback_error='Failed to load notifications')

    def mark_notification_read(self, notification_id) -> Dict[str, Any]:
        return self.request('POST', f'/notifications/{notification_id}/read')

    def mark_all_notifications_read(self) -> Dict[str, Any]:
        return self.request('POST', '/notifications/read-all')


SessionFactory = Callable[[], requests.Session]


def get_records_client() -> RecordsClient:
    """Per-request client that forwards the caller's Authorization header."""
    client = g.get('records_client')
    if client is None:
        factory: SessionFactory = current_app.extensions.get('records_session_factory') or create_session
        client = RecordsClient(
            current_app.config['RECORDS_API_URL'],
            session=factory(),
            timeout=current_app.config.get('RECORDS_API_TIMEOUT', 15),
            auth_header=request.headers.get('Authorization'),
        )
        g.records_client = client
    return client


def close_records_client(exc=None) -> None:
    client = g.pop('records_client', None)
    if client is not None:
        client.close()
