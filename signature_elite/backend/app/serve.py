# backend/app/serve.py
"""
Run the API with uvicorn: `signature-elite-api` or `python -m app.serve`.
"""
from __future__ import annotations

import argparse
import logging

import uvicorn

from app.config import settings

log = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    p = argparse.ArgumentParser(prog="signature-elite-api", description="Serve the marketplace API.")
    p.add_argument("--host", default=settings.api_host)
    p.add_argument("--port", type=int, default=settings.api_port)
    p.add_argument("--reload", action="store_true")
    args = p.parse_args(argv)

    log.info("starting api on http://%s:%s", args.host, args.port, extra={"event": "serve"})
    uvicorn.run("app.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
