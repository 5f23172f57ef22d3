"""Entry point: python -m session_think [serve|cleanup]

- No args / "serve": MCP server on stdio (with scheduled cleanup if configured)
- "cleanup [days]":  Delete sessions older than the given age once and exit
"""

from __future__ import annotations

import asyncio
import logging
import sys

from session_think.config import ThinkConfig, load_config

logger = logging.getLogger("session_think")


def _setup_logging(level: str) -> None:
    # stdout carries the protocol; logs must stay on stderr
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        stream=sys.stderr,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


async def _serve(config: ThinkConfig) -> None:
    from session_think.core import SessionThink
    from session_think.scheduler.jobs import CleanupScheduler
    from session_think.server import serve
    from session_think.tools.think_tools import get_think_tools

    app = SessionThink(config)
    shutdown = asyncio.Event()
    scheduler = asyncio.create_task(CleanupScheduler(app, config).start(shutdown))

    logger.info("Session Think MCP Server started")
    logger.info("Session storage: %s", config.session_dir)
    logger.info("Max return: %d", config.max_return)
    try:
        await serve(get_think_tools(app))
    finally:
        shutdown.set()
        await scheduler


def _run_serve() -> None:
    config = load_config()
    _setup_logging(config.log_level)
    try:
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        pass
    except Exception:
        logger.exception("Fatal error, shutting down")
        sys.exit(1)


def _run_cleanup(args: list[str]) -> None:
    config = load_config()
    _setup_logging(config.log_level)

    from session_think.core import SessionThink
    from session_think.tools.think_tools import get_think_tools

    try:
        max_age = float(args[0]) if args else 90
    except ValueError:
        print(f"cleanup: days must be a number, got {args[0]!r}", file=sys.stderr)
        sys.exit(1)
    tools = get_think_tools(SessionThink(config))
    print(asyncio.run(tools["cleanup_sessions"](maxAgeDays=max_age)))


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "serve"

    if cmd == "serve":
        _run_serve()
    elif cmd == "cleanup":
        _run_cleanup(sys.argv[2:])
    else:
        print("Usage: python -m session_think [serve|cleanup [days]]", file=sys.stderr)
        print("  serve    — MCP server on stdio (default)", file=sys.stderr)
        print("  cleanup  — Delete sessions older than N days (default 90)", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
