"""
Server entrypoint: picks a free port and runs the FastAPI app under uvicorn.

Run from backend dir: python serve.py [--host 127.0.0.1] [--port 8000]
Without --port the first free port in 8000..8010 is used.
"""

from __future__ import annotations

import argparse
import logging
import socket
import sys
from pathlib import Path
from typing import Optional

# Ensure backend dir is on path so "from main import app" works
_backend_dir = Path(__file__).resolve().parent
if str(_backend_dir) not in sys.path:
    sys.path.insert(0, str(_backend_dir))

DEFAULT_HOST = "127.0.0.1"
PORT_RANGE = range(8000, 8011)


def pick_port(host: str = DEFAULT_HOST) -> int:
    """Return the first free port in PORT_RANGE. Bind test then close."""
    for port in PORT_RANGE:
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                s.bind((host, port))
                return port
        except OSError:
            continue
    return PORT_RANGE.start  # fallback (uvicorn reports the bind error)


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Run the matching lifecycle API")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=None)
    args = parser.parse_args(argv)

    from main import app, settings
    import uvicorn

    port = args.port or pick_port(args.host)
    logging.getLogger(__name__).info("Serving %s on %s:%s", settings.app_name, args.host, port)
    uvicorn.run(app, host=args.host, port=port, log_level=settings.log_level.lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())
