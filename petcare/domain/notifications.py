"""
Notifications destinées à l'utilisateur final.

Les opérations de session ne lèvent pas d'exception vers l'interface: elles renvoient un booléen et
publient une notification (succès ou erreur) que la couche de présentation consomme.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal

import structlog

from petcare.domain.errors import DomainError

Level = Literal["success", "info", "warning", "error"]

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Notification:
    """Message présenté à l'utilisateur."""

    level: Level
    code: str
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class Notifier:
    """File bornée de notifications pour une session.

    Conserve aussi la dernière erreur métier afin que l'API puisse la traduire en réponse HTTP
    lorsqu'une opération renvoie False.
    """

    def __init__(self, max_items: int = 50, clock: Callable[[], datetime] | None = None):
        self._items: deque[Notification] = deque(maxlen=max_items)
        self._clock = clock or (lambda: datetime.now(UTC))
        self.last_failure: DomainError | None = None

    def _push(self, level: Level, code: str, message: str) -> Notification:
        note = Notification(level=level, code=code, message=message, created_at=self._clock())
        self._items.append(note)
        return note

    def success(self, code: str, message: str) -> Notification:
        return self._push("success", code, message)

    def warning(self, code: str, message: str) -> Notification:
        return self._push("warning", code, message)

    def fail(self, err: DomainError) -> Notification:
        """Publie une erreur métier et la retient comme dernier échec."""
        self.last_failure = err
        log.info("notify_failure", code=err.code)
        return self._push("error", err.code, err.message)

    @property
    def pending(self) -> list[Notification]:
        return list(self._items)

    def drain(self) -> list[Notification]:
        """Retourne puis vide les notifications en attente."""
        items = list(self._items)
        self._items.clear()
        return items
