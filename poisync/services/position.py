import threading
from typing import Optional, Protocol

from poisync.models.dto import Position


class PositionProvider(Protocol):
    def get_position(self) -> Optional[Position]: ...


class InMemoryPositionProvider:
    """Latest vessel position, pushed in by the host through the API."""

    def __init__(self, position: Optional[Position] = None):
        self._position = position
        self._lock = threading.Lock()

    def update(self, position: Position):
        with self._lock:
            self._position = position

    def get_position(self) -> Optional[Position]:
        with self._lock:
            return self._position
