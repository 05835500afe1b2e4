from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import List

from .camera_drivers import build_backends
from .drivers import DriverManager

DEFAULT_BACKENDS = "opencv,realsense"


def _default_capture_api() -> str:
    if sys.platform.startswith("win"):
        return "MSMF"
    if sys.platform == "darwin":
        return "AVFOUNDATION"
    if sys.platform.startswith("linux"):
        return "V4L2"
    return "ANY"


def _split(value: str) -> List[str]:
    return [part.strip().lower() for part in value.split(",") if part.strip()]


@dataclass
class Settings:
    backends: List[str] = field(default_factory=lambda: _split(DEFAULT_BACKENDS))
    capture_api: str = field(default_factory=_default_capture_api)
    max_indices: int = 8
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        env = os.environ
        try:
            max_indices = int(env.get("WEBCAM_DISCOVERY_MAX_INDICES", "8"))
        except ValueError:
            max_indices = 8
        return cls(
            backends=_split(env.get("WEBCAM_DISCOVERY_BACKENDS", DEFAULT_BACKENDS)),
            capture_api=env.get("WEBCAM_DISCOVERY_CAPTURE_API") or _default_capture_api(),
            max_indices=max(max_indices, 0),
            log_level=env.get("WEBCAM_DISCOVERY_LOG_LEVEL", "INFO").upper(),
        )

    def build_manager(self) -> DriverManager:
        return DriverManager(build_backends(self.backends, api_name=self.capture_api, max_indices=self.max_indices))
