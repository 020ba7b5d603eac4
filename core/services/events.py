"""Change-notification channel between the services and their consumers.

Consumers register a callback and receive `ChangeEvent`s after a change has
been committed. They never mutate service state directly.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
import threading

from loguru import logger


class ChangeKind(str, Enum):
    UNASSIGNED_CHANGED = "unassigned_changed"
    ASSIGNMENTS_CHANGED = "assignments_changed"
    FOLDER_CREATED = "folder_created"
    FOLDER_RENAMED = "folder_renamed"
    FOLDER_DELETED = "folder_deleted"


FOLDER_KINDS = frozenset(
    {ChangeKind.FOLDER_CREATED, ChangeKind.FOLDER_RENAMED, ChangeKind.FOLDER_DELETED}
)


@dataclass(frozen=True)
class ChangeEvent:
    kind: ChangeKind
    folder_id: str | None = None
    asset_refs: tuple[str, ...] = ()


Listener = Callable[[ChangeEvent], None]


class ChangeNotifier:
    """Synchronous observer registry.

    A listener that raises is logged and skipped so one broken consumer does
    not block delivery to the others.
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener`. Returns a callable that unregisters it."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def publish(self, event: ChangeEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception as ex:  # pylint: disable=broad-exception-caught
                logger.exception("Change listener failed for {}: {}", event.kind.value, ex)
