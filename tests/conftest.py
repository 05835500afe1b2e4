from __future__ import annotations

import logging
from typing import List, Optional

import pytest

from webcam_discovery.drivers import Driver, DriverManager
from webcam_discovery.models import DriverInfo, DriverState, MediaFormat


class FakeDriver(Driver):
    def __init__(
        self,
        driver_id: str,
        label: str,
        name: str,
        formats: Optional[List[MediaFormat]] = None,
        state: DriverState = DriverState.CLOSED,
        open_error: Optional[Exception] = None,
        close_error: Optional[Exception] = None,
        read_error: Optional[Exception] = None,
        device_type: str = "camera",
    ):
        super().__init__(driver_id, DriverInfo(label=label, name=name, device_type=device_type))
        self.formats = list(formats or [])
        self.open_error = open_error
        self.close_error = close_error
        self.read_error = read_error
        self.calls: List[str] = []
        self._state = state

    def _open(self) -> None:
        self.calls.append("open")
        if self.open_error:
            raise self.open_error

    def _close(self) -> None:
        self.calls.append("close")
        if self.close_error:
            raise self.close_error

    def _properties(self):
        self.calls.append("properties")
        if self.read_error:
            raise self.read_error
        return self.formats


class FakeBackend:
    name = "fake"

    def __init__(self, drivers: Optional[List[Driver]] = None):
        self.drivers = list(drivers or [])
        self.calls = 0

    def enumerate(self) -> List[Driver]:
        self.calls += 1
        return list(self.drivers)


def vga30() -> MediaFormat:
    return MediaFormat(frame_format="YUYV", width=640, height=480, frame_rate=30)


def hd15() -> MediaFormat:
    return MediaFormat(frame_format="MJPG", width=1280, height=720, frame_rate=15)


@pytest.fixture
def quiet_logger() -> logging.Logger:
    return logging.getLogger("tests.discovery")


@pytest.fixture
def make_manager():
    def _make(*drivers: Driver) -> DriverManager:
        return DriverManager([FakeBackend(list(drivers))])

    return _make
