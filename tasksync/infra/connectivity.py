from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.engine import Engine

from .db import ping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectivityState:
    is_connected: Optional[bool] = None


Listener = Callable[[ConnectivityState], None]


class ConnectivityObserver:
    """Holds the last known connectivity and fans changes out to listeners."""

    def __init__(self, is_connected: Optional[bool] = None) -> None:
        self._state = ConnectivityState(is_connected)
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    def fetch(self) -> ConnectivityState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)
            first = len(self._listeners) == 1
        if first:
            self._on_first_subscriber()

        def unsubscribe() -> None:
            with self._lock:
                if listener not in self._listeners:
                    return
                self._listeners.remove(listener)
                last = not self._listeners
            if last:
                self._on_last_unsubscribe()

        return unsubscribe

    def publish(self, is_connected: Optional[bool]) -> None:
        state = ConnectivityState(is_connected)
        with self._lock:
            self._state = state
            listeners = list(self._listeners)
        for listener in listeners:
            listener(state)

    def _on_first_subscriber(self) -> None:
        pass

    def _on_last_unsubscribe(self) -> None:
        pass


class DatabaseProbeObserver(ConnectivityObserver):
    """Treats the remote database answering ``SELECT 1`` as being online."""

    def __init__(self, engine: Engine | None, interval: float = 5.0) -> None:
        super().__init__()
        self._engine = engine
        self._interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def probe(self) -> bool:
        return self._engine is not None and ping(self._engine)

    def fetch(self) -> ConnectivityState:
        connected = self.probe()
        self._state = ConnectivityState(connected)
        return self._state

    def _on_first_subscriber(self) -> None:
        self._stop.clear()
        self._thread = threading.Thread(target=self._poll, name="connectivity-probe", daemon=True)
        self._thread.start()

    def _on_last_unsubscribe(self) -> None:
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=self._interval + 1)
        self._thread = None

    def _poll(self) -> None:
        while not self._stop.wait(self._interval):
            connected = self.probe()
            if connected != self._state.is_connected:
                logger.info("Connectivity probe: %s", "online" if connected else "offline")
                self.publish(connected)
            elif connected:
                # steady online ticks let listeners retry pending work
                self.publish(connected)
