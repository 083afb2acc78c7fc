from __future__ import annotations

import logging
from typing import Callable

_LOGGER = logging.getLogger(__name__)

Listener = Callable[[], None]


class Emitter:
    """Payload-less change notification that listeners subscribe to."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener` and return a callable that removes it again."""

        self._listeners.append(listener)

        def dispose() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return dispose

    def fire(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:  # noqa: BLE001
                _LOGGER.exception("Change listener %r failed", listener)

    def __len__(self) -> int:
        return len(self._listeners)
