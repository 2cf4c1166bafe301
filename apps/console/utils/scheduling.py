"""
Background helpers for long-lived console sessions.

- NotificationPoller: fetch notifications now and then on a fixed interval.
- PayoutRefreshScheduler: refetch a tracking object once its payout time has
  arrived while it is still at the payout stage.

Both run on daemon threads and log failures instead of raising them.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from apps.console.utils.errors import ConsoleError
from apps.console.utils.time import utc_now
from apps.console.utils.tracking import STAGE_PAYOUT_SCHEDULED, TrackingView


logger = logging.getLogger(__name__)

NOTIFICATION_POLL_SECONDS = 30
PAYOUT_RECHECK_SECONDS = 60


def notification_feed(body: Dict[str, Any] | None) -> Dict[str, Any]:
    """Normalise a notifications response to ``notifications`` + ``unread_count``."""
    body = body if isinstance(body, dict) else {}
    data = body.get('data') if isinstance(body.get('data'), dict) else body
    notifications = data.get('notifications')
    notifications = list(notifications) if isinstance(notifications, list) else []
    raw = data.get('unread_count')
    try:
        unread = int(raw or 0)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric unread_count %r", raw)
        unread = sum(1 for n in notifications if isinstance(n, dict) and not n.get('is_read'))
    return dict(data, notifications=notifications, unread_count=unread)


class NotificationPoller:
    """Polls the notification feed every ``interval`` seconds."""

    def __init__(
        self,
        fetch: Callable[[], Dict[str, Any]],
        on_update: Optional[Callable[[Dict[str, Any]], None]] = None,
        interval: float = NOTIFICATION_POLL_SECONDS,
    ):
        self.fetch = fetch
        self.on_update = on_update
        self.interval = interval
        self.notifications: list = []
        self.unread_count = 0
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def poll_once(self) -> bool:
        try:
            feed = notification_feed(self.fetch())
            self.notifications = feed['notifications']
            self.unread_count = feed['unread_count']
            if self.on_update is not None:
                self.on_update(feed)
        except ConsoleError as exc:
            logger.warning("Notification poll failed: %s", exc)
            return False
        except Exception:
            logger.exception("Unexpected error while polling notifications")
            return False
        return True

    def _run(self) -> None:
        self.poll_once()
        while not self._stop.wait(self.interval):
            self.poll_once()

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name='notification-poller')
        self._thread.start()
        logger.info("Notification poller started (every %ss)", self.interval)

    def stop(self, timeout: float = 5) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()


class PayoutRefreshScheduler:
    """Refetches a tracking view exactly once when its payout becomes due.

    A one-shot timer fires at the payout time; a periodic re-check covers
    clock drift and missed timers. Whichever sees the due payout first
    performs the refetch.
    """

    def __init__(
        self,
        view: TrackingView,
        fetch: Callable[[], TrackingView],
        on_refresh: Optional[Callable[[TrackingView], None]] = None,
        recheck_seconds: float = PAYOUT_RECHECK_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.view = view
        self.fetch = fetch
        self.on_refresh = on_refresh
        self.recheck_seconds = recheck_seconds
        self.clock = clock
        self.fired = False
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._timer: Optional[threading.Timer] = None
        self._thread: Optional[threading.Thread] = None

    def _claim(self) -> bool:
        with self._lock:
            if self.fired or not self.view.payout_due(self.clock()):
                return False
            self.fired = True
            return True

    def check(self) -> bool:
        """Refetch if the payout is due and no refetch happened yet."""
        if not self._claim():
            return False

        logger.info("Payout time reached; refreshing tracking information")
        self._stop.set()
        if self._timer is not None:
            self._timer.cancel()
        try:
            refreshed = self.fetch()
        except ConsoleError as exc:
            logger.warning("Tracking refresh after payout failed: %s", exc)
            return True

        self.view = refreshed
        if self.on_refresh is not None:
            self.on_refresh(refreshed)
        return True

    def _recheck_loop(self) -> None:
        while not self._stop.wait(self.recheck_seconds):
            self.check()

    def start(self) -> None:
        view = self.view
        if view.payout_date is None or view.current_stage != STAGE_PAYOUT_SCHEDULED:
            logger.debug("No pending payout to watch")
            return

        delay = (view.payout_date - self.clock()).total_seconds()
        if delay <= 0:
            self.check()
            return

        self._stop.clear()
        self._timer = threading.Timer(delay, self.check)
        self._timer.daemon = True
        self._timer.start()
        self._thread = threading.Thread(target=self._recheck_loop, daemon=True, name='payout-recheck')
        self._thread.start()
        logger.info("Watching payout due in %.0fs", delay)

    def stop(self, timeout: float = 5) -> None:
        self._stop.set()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
        self._thread = None
