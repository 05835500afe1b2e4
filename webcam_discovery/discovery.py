from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .drivers import Driver, DriverError, DriverManager, filter_video_recorder
from .models import (
    CAMERA_API,
    DISCOVERY_MODEL,
    LABEL_SEPARATOR,
    WEBCAM_MODEL,
    DiscoveryConfig,
    DriverState,
    MediaFormat,
    WebcamAttributes,
)


class DiscoveryCancelled(Exception):
    pass


@dataclass(frozen=True)
class Identity:
    label: str
    display_name: str
    id: str


def parse_identity(label: str, name: str) -> Identity:
    """
    Derive stable identifiers from a driver's label and name.

    The short label is the first label segment. The name decides the rest:

        name segments   display_name     id
        >= 2            first segment    second segment
        1               name             short label

    Segments past the second are ignored.
    """
    short_label = label.split(LABEL_SEPARATOR)[0]
    name_parts = name.split(LABEL_SEPARATOR)
    if len(name_parts) > 1:
        return Identity(label=short_label, display_name=name_parts[0], id=name_parts[1])
    return Identity(label=short_label, display_name=name_parts[0], id=short_label)


def get_properties(driver: Driver) -> List[MediaFormat]:
    """
    Read the media formats of a driver, opening it first if it is closed or
    left in error by an earlier failed close.

    A driver opened here is closed again on every exit path. If that close
    fails, the close error is what the caller sees, even when the read itself
    succeeded; a read error it replaces stays in its __context__ chain.
    """
    if driver.status() not in (DriverState.CLOSED, DriverState.ERROR):
        return driver.properties()

    driver.open()
    try:
        return driver.properties()
    finally:
        driver.close()


def find_cameras(
    get_drivers: Callable[[], List[Driver]],
    logger: logging.Logger,
    initialize: Optional[Callable[[], None]] = None,
    cancel: Optional[threading.Event] = None,
) -> List[DiscoveryConfig]:
    if initialize is not None:
        initialize()

    webcams: List[DiscoveryConfig] = []
    for driver in get_drivers():
        if cancel is not None and cancel.is_set():
            raise DiscoveryCancelled(f"discovery cancelled after {len(webcams)} configs")

        info = driver.info()
        try:
            props = get_properties(driver)
        except DriverError as exc:
            logger.debug("cannot access driver properties, skipping discovery... driver=%s error=%s", info.label, exc)
            continue
        if not props:
            logger.debug("no properties detected for driver, skipping discovery... driver=%s", info.label)
            continue

        if driver.status() == DriverState.RUNNING:
            logger.debug("driver is in use, skipping discovery... driver=%s", info.label)
            continue

        identity = parse_identity(info.label, info.name)
        for prop in props:
            attributes = WebcamAttributes(
                path=identity.id,
                format=prop.frame_format,
                width=prop.width,
                height=prop.height,
                frame_rate=prop.frame_rate,
            )
            webcams.append(
                DiscoveryConfig(
                    name=identity.id,
                    api=CAMERA_API,
                    model=WEBCAM_MODEL,
                    attributes=attributes.to_attributes(),
                    converted_attributes=attributes,
                )
            )
    return webcams


class WebcamDiscovery:
    """Discovery service returning one webcam config per usable device format."""

    model = DISCOVERY_MODEL

    def __init__(self, manager: DriverManager, logger: Optional[logging.Logger] = None):
        self.manager = manager
        self.logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()

    def get_video_drivers(self) -> List[Driver]:
        return self.manager.query(filter_video_recorder)

    def discover_resources(
        self, extra: Optional[Dict[str, Any]] = None, cancel: Optional[threading.Event] = None
    ) -> List[DiscoveryConfig]:
        with self._lock:
            return find_cameras(
                self.get_video_drivers,
                self.logger,
                initialize=self.manager.initialize,
                cancel=cancel,
            )

    def list_drivers(self) -> List[Driver]:
        with self._lock:
            self.manager.initialize()
            return self.get_video_drivers()
