from __future__ import annotations

import argparse
import json
import logging

from .discovery import WebcamDiscovery
from .settings import Settings


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="webcam_discovery", description="List webcam configs for attached cameras.")
    parser.add_argument("--serve", action="store_true", help="run the HTTP API instead of printing once")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--log-level", default=None, help="overrides WEBCAM_DISCOVERY_LOG_LEVEL")
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    level = (args.log_level or settings.log_level).upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.serve:
        import uvicorn

        uvicorn.run("webcam_discovery.main:app", host=args.host, port=args.port, log_level=level.lower())
        return 0

    service = WebcamDiscovery(settings.build_manager())
    configs = service.discover_resources()
    print(json.dumps([c.model_dump(mode="json", by_alias=True) for c in configs], indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
