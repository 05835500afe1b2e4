from __future__ import annotations

import logging
import re
import time
from typing import List, Optional, Sequence

from .drivers import Driver, DriverOpenError
from .models import LABEL_SEPARATOR, DriverInfo, MediaFormat

logger = logging.getLogger(__name__)

# Keep probing snappy: fewer frames for FPS estimate and a short list of common modes.
MAX_FPS_MEASURE_FRAMES = 8
COMMON_MODES = [
    (1920, 1080),
    (1600, 1200),
    (1280, 720),
    (1024, 768),
    (640, 480),
]
PROBE_FOURCCS = ["MJPG", "YUYV"]


def _import_cv2():
    try:
        import cv2  # type: ignore

        return cv2
    except Exception:
        return None


def _import_realsense():
    try:
        import pyrealsense2 as rs  # type: ignore

        return rs
    except Exception:
        return None


def _slugify(value: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "-", value.strip())
    return cleaned or "cam"


def _clean_segment(value: str) -> str:
    # A separator inside a device name would split it into bogus segments.
    return " ".join(value.replace(LABEL_SEPARATOR, " ").split())


def fourcc_to_str(code) -> str:
    code = int(code or 0)
    if code <= 0:
        return ""
    text = "".join(chr((code >> 8 * i) & 0xFF) for i in range(4))
    return text.strip("\x00 ")


def capture_api(cv2, name: str) -> int:
    if not name or name.upper() == "ANY":
        return getattr(cv2, "CAP_ANY", 0)
    return getattr(cv2, f"CAP_{name.upper()}", getattr(cv2, "CAP_ANY", 0))


class OpenCVDriver(Driver):
    def __init__(self, index: int, display_name: str, path: Optional[str] = None, api: int = 0):
        display = _clean_segment(display_name) or f"Camera {index}"
        name = f"{display}{LABEL_SEPARATOR}{path}" if path else display
        super().__init__(
            f"opencv:{_slugify(path or str(index))}",
            DriverInfo(label=f"{index}{LABEL_SEPARATOR}{display}", name=name),
        )
        self.index = index
        self.path = path
        self.api = api
        self._cap = None

    def _open(self) -> None:
        cv2 = _import_cv2()
        if cv2 is None:
            raise DriverOpenError(f"{self.id}: OpenCV is not installed")
        cap = cv2.VideoCapture(self.index, self.api)
        if not cap.isOpened():
            cap.release()
            raise DriverOpenError(f"{self.id}: could not open capture index {self.index}")
        self._cap = cap

    def _close(self) -> None:
        cap, self._cap = self._cap, None
        if cap is not None:
            cap.release()

    def _properties(self) -> List[MediaFormat]:
        cv2 = _import_cv2()
        cap = self._cap
        if cv2 is None or cap is None:
            return []

        accepted: List[MediaFormat] = []
        seen = set()
        for fourcc in PROBE_FOURCCS:
            cap.set(cv2.CAP_PROP_FOURCC, cv2.VideoWriter_fourcc(*fourcc))
            actual_fourcc = fourcc_to_str(cap.get(cv2.CAP_PROP_FOURCC))
            if actual_fourcc != fourcc:
                continue
            for w, h in COMMON_MODES:
                cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
                cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
                time.sleep(0.02)
                aw = int(round(cap.get(cv2.CAP_PROP_FRAME_WIDTH)))
                ah = int(round(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)))
                if (aw, ah) != (w, h):
                    continue
                key = (actual_fourcc, aw, ah)
                if key in seen:
                    continue
                seen.add(key)
                accepted.append(
                    MediaFormat(frame_format=actual_fourcc, width=aw, height=ah, frame_rate=self._read_fps(cv2, cap))
                )

        if not accepted:
            current = self._current_mode(cv2, cap)
            if current:
                accepted.append(current)
        return accepted

    def _current_mode(self, cv2, cap) -> Optional[MediaFormat]:
        width = int(round(cap.get(cv2.CAP_PROP_FRAME_WIDTH)))
        height = int(round(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)))
        if width <= 0 or height <= 0:
            return None
        return MediaFormat(
            frame_format=fourcc_to_str(cap.get(cv2.CAP_PROP_FOURCC)),
            width=width,
            height=height,
            frame_rate=self._read_fps(cv2, cap),
        )

    def _read_fps(self, cv2, cap) -> float:
        fps = float(cap.get(cv2.CAP_PROP_FPS) or 0.0)
        if fps <= 0.1:
            fps = _measure_fps(cap)
        return round(fps, 2)


class OpenCVBackend:
    name = "opencv"

    def __init__(self, api_name: str = "ANY", max_indices: int = 8):
        self.api_name = api_name
        self.max_indices = max_indices

    def enumerate(self) -> List[Driver]:
        cv2 = _import_cv2()
        if cv2 is None:
            return []
        api = capture_api(cv2, self.api_name)

        drivers = self._enumerate_hardware(api)
        if drivers:
            return drivers
        return self._enumerate_indices(cv2, api)

    def _enumerate_hardware(self, api: int) -> List[Driver]:
        try:
            from cv2_enumerate_cameras import enumerate_cameras  # type: ignore
        except Exception:
            return []

        try:
            cameras = list(enumerate_cameras(api))
        except Exception as exc:
            # fall back to index probing
            logger.debug("camera enumeration failed for api %s: %s", api, exc)
            return []

        drivers: List[Driver] = []
        seen = set()
        for cam in cameras:
            if "realsense" in (cam.name or "").lower():
                continue
            driver = OpenCVDriver(cam.index, cam.name or "", path=cam.path or None, api=api)
            if driver.id in seen:
                continue
            seen.add(driver.id)
            drivers.append(driver)
        return drivers

    def _enumerate_indices(self, cv2, api: int) -> List[Driver]:
        # Fallback: try opening a handful of indices
        drivers: List[Driver] = []
        for idx in range(self.max_indices):
            cap = cv2.VideoCapture(idx, api)
            opened = cap.isOpened()
            cap.release()
            if opened:
                drivers.append(OpenCVDriver(idx, f"Camera {idx}", api=api))
        return drivers


class RealSenseDriver(Driver):
    def __init__(self, serial: str, display_name: str):
        display = _clean_segment(display_name) or "Intel RealSense"
        super().__init__(
            f"realsense:{_slugify(serial)}",
            DriverInfo(
                label=f"{serial}{LABEL_SEPARATOR}{display}",
                name=f"{display}{LABEL_SEPARATOR}{serial}",
            ),
        )
        self.serial = serial
        self._device = None

    def _open(self) -> None:
        rs = _import_realsense()
        if rs is None:
            raise DriverOpenError(f"{self.id}: pyrealsense2 is not installed")
        for dev in rs.context().query_devices():
            if _device_info(rs, dev, "serial_number") == self.serial:
                self._device = dev
                return
        raise DriverOpenError(f"{self.id}: device {self.serial} is no longer attached")

    def _close(self) -> None:
        self._device = None

    def _properties(self) -> List[MediaFormat]:
        rs = _import_realsense()
        if rs is None or self._device is None:
            return []
        formats: List[MediaFormat] = []
        for sensor in self._device.sensors:
            for profile in sensor.profiles:
                if not profile.is_video_stream_profile() or profile.stream_type() != rs.stream.color:
                    continue
                vprof = profile.as_video_stream_profile()
                formats.append(
                    MediaFormat(
                        frame_format=str(profile.format()).split(".")[-1],
                        width=vprof.width(),
                        height=vprof.height(),
                        frame_rate=float(profile.fps()),
                    )
                )
        return formats


class RealSenseBackend:
    name = "realsense"

    def enumerate(self) -> List[Driver]:
        rs = _import_realsense()
        if rs is None:
            return []
        drivers: List[Driver] = []
        for dev in rs.context().query_devices():
            serial = _device_info(rs, dev, "serial_number")
            if not serial:
                continue
            name = _device_info(rs, dev, "name") or "Intel RealSense"
            drivers.append(RealSenseDriver(serial, name))
        return drivers


def _device_info(rs, dev, field: str) -> Optional[str]:
    try:
        return dev.get_info(getattr(rs.camera_info, field))
    except Exception:
        return None


def _measure_fps(cap) -> float:
    start = time.perf_counter()
    frames = 0
    for _ in range(MAX_FPS_MEASURE_FRAMES):
        ok, _ = cap.read()
        if not ok:
            break
        frames += 1
    elapsed = time.perf_counter() - start
    if elapsed <= 0:
        return 0.0
    return frames / elapsed


def build_backends(names: Sequence[str], api_name: str = "ANY", max_indices: int = 8) -> List[object]:
    backends: List[object] = []
    for name in names:
        if name == OpenCVBackend.name:
            backends.append(OpenCVBackend(api_name=api_name, max_indices=max_indices))
        elif name == RealSenseBackend.name:
            backends.append(RealSenseBackend())
        else:
            logger.warning("unknown driver backend %r, ignoring", name)
    return backends
