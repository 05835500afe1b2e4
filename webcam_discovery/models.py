from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

LABEL_SEPARATOR = ":"

CAMERA_API = "rdk:component:camera"
WEBCAM_MODEL = "rdk:builtin:webcam"
DISCOVERY_MODEL = "rand:find-webcams:webcam-discovery"


class DriverState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    RUNNING = "running"
    ERROR = "error"


class DriverInfo(BaseModel):
    label: str
    name: str = ""
    device_type: str = Field(default="camera", description="camera, microphone, ...")


class MediaFormat(BaseModel):
    frame_format: str = Field(default="", description="FOURCC or pixel encoding, e.g. MJPG")
    width: int = Field(..., ge=0)
    height: int = Field(..., ge=0)
    frame_rate: float = Field(default=0.0, ge=0)


class WebcamAttributes(BaseModel):
    """
    Attributes of a single webcam stream, serialized with the keys the camera
    component expects. Empty values other than the path are dropped on dump.
    """

    model_config = ConfigDict(populate_by_name=True)

    path: str = Field(..., alias="video_path")
    format: str = ""
    width: int = Field(default=0, ge=0, alias="width_px")
    height: int = Field(default=0, ge=0, alias="height_px")
    frame_rate: float = Field(default=0.0, ge=0)

    def to_attributes(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json", by_alias=True, exclude_defaults=True)
        data["video_path"] = self.path
        return data


class DiscoveryConfig(BaseModel):
    name: str
    api: str = CAMERA_API
    model: str = WEBCAM_MODEL
    attributes: Dict[str, Any] = Field(default_factory=dict)
    converted_attributes: Optional[WebcamAttributes] = None


class DriverSummary(BaseModel):
    id: str
    label: str
    name: str
    status: DriverState


class DiscoverRequest(BaseModel):
    extra: Dict[str, Any] = Field(default_factory=dict)
