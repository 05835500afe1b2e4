from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional, Protocol

from .models import DriverInfo, DriverState, MediaFormat

logger = logging.getLogger(__name__)

ACTIVE_STATES = (DriverState.OPEN, DriverState.RUNNING)


class DriverError(Exception):
    """Base class for per-device driver faults."""


class DriverOpenError(DriverError):
    pass


class DriverCloseError(DriverError):
    pass


class DriverStateError(DriverError):
    pass


class DriverPropertiesError(DriverError):
    pass


class Driver:
    """
    Handle for one OS-recognized capture device.

    Subclasses implement _open/_close/_properties against a real backend; the
    state machine lives here so every backend moves between states the same way.
    """

    def __init__(self, driver_id: str, info: DriverInfo):
        self.id = driver_id
        self._info = info
        self._state = DriverState.CLOSED
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, state={self._state.value})"

    def info(self) -> DriverInfo:
        return self._info

    def status(self) -> DriverState:
        return self._state

    def open(self) -> None:
        with self._lock:
            if self._state not in (DriverState.CLOSED, DriverState.ERROR):
                raise DriverStateError(f"{self.id}: cannot open from state {self._state.value}")
            try:
                self._open()
            except DriverError:
                raise
            except Exception as exc:
                raise DriverOpenError(f"{self.id}: {exc}") from exc
            self._state = DriverState.OPEN

    def close(self) -> None:
        with self._lock:
            if self._state == DriverState.CLOSED:
                return
            if self._state == DriverState.RUNNING:
                self.stop()
            try:
                self._close()
            except Exception as exc:
                self._state = DriverState.ERROR
                if isinstance(exc, DriverError):
                    raise
                raise DriverCloseError(f"{self.id}: {exc}") from exc
            self._state = DriverState.CLOSED

    def start(self) -> None:
        with self._lock:
            if self._state != DriverState.OPEN:
                raise DriverStateError(f"{self.id}: cannot start from state {self._state.value}")
            self._state = DriverState.RUNNING

    def stop(self) -> None:
        with self._lock:
            if self._state != DriverState.RUNNING:
                raise DriverStateError(f"{self.id}: cannot stop from state {self._state.value}")
            self._state = DriverState.OPEN

    def properties(self) -> List[MediaFormat]:
        with self._lock:
            try:
                return list(self._properties())
            except DriverError:
                raise
            except Exception as exc:
                raise DriverPropertiesError(f"{self.id}: {exc}") from exc

    def _open(self) -> None:
        raise NotImplementedError

    def _close(self) -> None:
        raise NotImplementedError

    def _properties(self) -> Iterable[MediaFormat]:
        raise NotImplementedError


class DriverBackend(Protocol):
    name: str

    def enumerate(self) -> List[Driver]:
        ...


DriverFilter = Callable[[Driver], bool]


def filter_video_recorder(driver: Driver) -> bool:
    return driver.info().device_type == "camera"


class DriverManager:
    """
    Registry of driver handles, refreshed from a set of backends.

    Open and running handles are kept across refreshes so their state
    survives; every other handle is replaced by the freshly enumerated one.
    """

    def __init__(self, backends: Optional[Iterable[DriverBackend]] = None):
        self.backends: List[DriverBackend] = list(backends or [])
        self._drivers: Dict[str, Driver] = {}
        self._lock = threading.Lock()

    def register(self, driver: Driver) -> None:
        with self._lock:
            self._drivers.setdefault(driver.id, driver)

    def unregister(self, driver_id: str) -> Optional[Driver]:
        with self._lock:
            return self._drivers.pop(driver_id, None)

    def initialize(self) -> None:
        found: List[Driver] = []
        for backend in self.backends:
            try:
                found.extend(backend.enumerate())
            except Exception as exc:
                logger.warning("driver backend %s failed to enumerate: %s", backend.name, exc)

        with self._lock:
            refreshed: Dict[str, Driver] = {}
            for driver in found:
                previous = self._drivers.get(driver.id)
                if previous is not None and previous.status() in ACTIVE_STATES:
                    driver = previous
                refreshed.setdefault(driver.id, driver)
            for driver_id, driver in self._drivers.items():
                if driver_id not in refreshed and driver.status() in ACTIVE_STATES:
                    refreshed[driver_id] = driver
            self._drivers = refreshed

    def query(self, *filters: DriverFilter) -> List[Driver]:
        with self._lock:
            drivers = list(self._drivers.values())
        return [d for d in drivers if all(f(d) for f in filters)]
