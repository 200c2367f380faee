from __future__ import annotations

import argparse
import os
from typing import List, Optional

import uvicorn

from chesstutor.config import Settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the chess tutor HTTP server")
    parser.add_argument("--config", type=str, default=None, help="TOML settings file")
    parser.add_argument("--host", type=str, default=None, help="Bind address (overrides config)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (overrides config)")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    settings = Settings.load(args.config)
    if args.config:
        # The factory re-reads settings, so point it at the same file
        os.environ["CHESSTUTOR_CONFIG"] = args.config
    uvicorn.run(
        "chesstutor.protocol.http.app:create_app",
        factory=True,
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level=settings.log_level.lower(),
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
