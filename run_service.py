#!/usr/bin/env python3
"""
TokenLock service runner: builds the token ledger, staking engine and
optional vesting schedule from config and serves the REST API.

Usage:
    python run_service.py --config tokenlock.toml --port 8080
    python run_service.py --status          # print state as JSON and exit

Environment variables (alternative to flags):
    TOKENLOCK_API_HOST, TOKENLOCK_API_PORT, TOKENLOCK_LOG_LEVEL, TOKENLOCK_LOG_FMT
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import os
import sys

# ---------------------------------------------------------------------------
# Ensure the project root is in sys.path so imports work before pip install
# ---------------------------------------------------------------------------
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from tokenlock_core.api import APIServer  # noqa: E402
from tokenlock_core.config import load_config  # noqa: E402
from tokenlock_core.logging_config import setup_logging  # noqa: E402
from tokenlock_core.service import TokenLockService  # noqa: E402

logger = logging.getLogger("tokenlock.runner")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="TokenLock staking & vesting service")
    p.add_argument("--config", default=None, help="Path to tokenlock.toml config file")
    p.add_argument("--host", default=None, help="API listen host (overrides config)")
    p.add_argument("--port", type=int, default=None, help="API listen port (overrides config)")
    p.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")
    p.add_argument("--status", action="store_true",
                   help="Print service status as JSON and exit")
    return p.parse_args(argv)


async def serve(service: TokenLockService, host: str, port: int, api_config) -> None:
    api = APIServer(service, host=host, port=port, api_config=api_config)
    await api.start()
    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        await api.stop()
        logger.info("API stopped")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    # Config (TOML + env overrides), then CLI flags on top
    cfg = load_config(args.config)
    if args.host:
        cfg.api.host = args.host
    if args.port is not None:
        cfg.api.port = args.port
        cfg.api.enabled = True
    if args.log_level:
        cfg.logging.level = args.log_level.upper()

    setup_logging(cfg.logging.level, cfg.logging.format, cfg.logging.file)
    service = TokenLockService(cfg)

    if args.status:
        print(json.dumps(service.status(), indent=2, default=str))
        return 0

    if not cfg.api.enabled:
        logger.warning("API disabled; set [api] enabled = true or pass --port")
        return 1

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(serve(service, cfg.api.host, cfg.api.port, cfg.api))
    return 0


def main_sync() -> None:
    """Synchronous entry point for console_scripts."""
    raise SystemExit(main())


if __name__ == "__main__":
    main_sync()
