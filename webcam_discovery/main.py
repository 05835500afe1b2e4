from __future__ import annotations

import logging
from typing import List

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from .discovery import WebcamDiscovery
from .models import DiscoverRequest, DiscoveryConfig, DriverSummary
from .settings import Settings

logger = logging.getLogger(__name__)

app = FastAPI(title="Webcam discovery service")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

settings = Settings.from_env()
service = WebcamDiscovery(settings.build_manager(), logger=logging.getLogger("webcam_discovery.discovery"))


def _discover(extra: dict) -> List[DiscoveryConfig]:
    try:
        return service.discover_resources(extra)
    except ValidationError as exc:
        logger.error("failed to build webcam config: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to build webcam configuration.")


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/drivers", response_model=List[DriverSummary])
def list_drivers() -> List[DriverSummary]:
    return [
        DriverSummary(id=d.id, label=d.info().label, name=d.info().name, status=d.status())
        for d in service.list_drivers()
    ]


@app.get("/discover", response_model=List[DiscoveryConfig])
def discover() -> List[DiscoveryConfig]:
    return _discover({})


@app.post("/discover", response_model=List[DiscoveryConfig])
def discover_with_extra(payload: DiscoverRequest) -> List[DiscoveryConfig]:
    return _discover(payload.extra)
