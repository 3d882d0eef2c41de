"""
Process-wide loader for the map provider client.

The first caller triggers the load; every caller waits on the same readiness
future. Holders are reference counted so shutdown only closes the client once
nobody is using it.
"""
from concurrent.futures import Future
from contextlib import contextmanager
from typing import Callable, Optional
import logging
import threading

import requests

from formbuilder.config import settings

logger = logging.getLogger(__name__)


def build_http_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({
        "User-Agent": settings.GEOCODER_USER_AGENT,
        "Accept": "application/json",
    })
    return session


class MapProviderLoader:
    def __init__(self, factory: Callable[[], requests.Session] = build_http_session):
        self._factory = factory
        self._lock = threading.Lock()
        self._ready: Optional[Future] = None
        self._refs = 0
        self._close_requested = False

    @property
    def references(self) -> int:
        return self._refs

    def acquire(self) -> Future:
        load_now = False
        with self._lock:
            self._refs += 1
            if self._ready is None:
                self._ready = Future()
                load_now = True
            ready = self._ready

        if load_now:
            try:
                ready.set_result(self._factory())
                logger.info("Map provider client ready")
            except Exception as e:
                logger.error(f"Map provider client failed to load: {e.__class__.__name__}")
                ready.set_exception(e)
                with self._lock:
                    # let the next caller retry
                    if self._ready is ready:
                        self._ready = None
        return ready

    def release(self) -> None:
        with self._lock:
            self._refs = max(self._refs - 1, 0)
            close_now = self._close_requested and self._refs == 0
        if close_now:
            self.close()

    @contextmanager
    def client(self, timeout: Optional[float] = None):
        ready = self.acquire()
        try:
            yield ready.result(timeout=timeout)
        finally:
            self.release()

    def close(self) -> None:
        with self._lock:
            if self._refs > 0:
                self._close_requested = True
                return
            ready, self._ready = self._ready, None
            self._close_requested = False
        if ready is not None and ready.done() and ready.exception() is None:
            ready.result().close()


map_loader = MapProviderLoader()
