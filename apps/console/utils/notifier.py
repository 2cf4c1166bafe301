"""User-facing notices for module-level helpers (exports, background jobs).

Helpers receive a notifier explicitly instead of reaching for a global.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List


logger = logging.getLogger(__name__)


@dataclass
class Notice:
    level: str
    title: str
    message: str

    def to_dict(self) -> dict:
        return {'level': self.level, 'title': self.title, 'message': self.message}


class Notifier:
    """Base notifier; subclasses implement notify()."""

    def notify(self, level: str, message: str, title: str) -> None:
        raise NotImplementedError

    def info(self, message: str, title: str = 'Info') -> None:
        self.notify('info', message, title)

    def success(self, message: str, title: str = 'Success') -> None:
        self.notify('success', message, title)

    def error(self, message: str, title: str = 'Error') -> None:
        self.notify('error', message, title)


class CollectingNotifier(Notifier):
    """Keeps notices in memory so a route can return them as JSON."""

    def __init__(self):
        self.notices: List[Notice] = []

    def notify(self, level: str, message: str, title: str) -> None:
        self.notices.append(Notice(level=level, title=title, message=message))

    @property
    def errors(self) -> List[Notice]:
        return [n for n in self.notices if n.level == 'error']

    def to_list(self) -> List[dict]:
        return [n.to_dict() for n in self.notices]


class LoggingNotifier(Notifier):
    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logger

    def notify(self, level: str, message: str, title: str) -> None:
        log_level = logging.ERROR if level == 'error' else logging.INFO
        self.log.log(log_level, "[%s] %s", title, message)
