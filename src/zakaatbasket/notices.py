"""Dismissable notices shown to the user."""

import itertools
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

LEVELS = ("info", "success", "warning", "error")


@dataclass
class Notice:
    id: int
    level: str
    message: str


class NoticeBoard:
    """Collects notices until the user dismisses them."""

    def __init__(self):
        self._notices: list[Notice] = []
        self._ids = itertools.count(1)

    def add(self, level: str, message: str) -> Notice:
        if level not in LEVELS:
            raise ValueError(f"Unknown notice level: {level}")
        notice = Notice(id=next(self._ids), level=level, message=message)
        self._notices.append(notice)
        log_level = logging.WARNING if level in ("warning", "error") else logging.INFO
        logger.log(log_level, message)
        return notice

    def error(self, message: str) -> Notice:
        return self.add("error", message)

    def success(self, message: str) -> Notice:
        return self.add("success", message)

    def dismiss(self, notice_id: int) -> None:
        self._notices = [n for n in self._notices if n.id != notice_id]

    def clear(self) -> None:
        self._notices = []

    @property
    def notices(self) -> list[Notice]:
        return list(self._notices)

    @property
    def latest(self) -> Optional[Notice]:
        return self._notices[-1] if self._notices else None
