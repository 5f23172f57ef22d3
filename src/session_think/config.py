"""Configuration loading from environment variables and session-think.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

from session_think.sessions.naming import DEFAULT_NAME_PATTERN

_DEFAULT_SESSION_DIRNAME = ".session-think-sessions"
_CONFIG_FILENAME = "session-think.toml"
_DEFAULT_MAX_RETURN = 50
_DEFAULT_CLEANUP_INTERVAL = 86400


@dataclass(frozen=True)
class CleanupConfig:
    """Periodic cleanup of stale sessions. ``max_age_days == 0`` disables it."""

    max_age_days: int = 0
    interval: int = _DEFAULT_CLEANUP_INTERVAL


@dataclass(frozen=True)
class ThinkConfig:
    """Top-level configuration, built once at startup."""

    session_dir: Path = field(default_factory=lambda: Path.cwd() / _DEFAULT_SESSION_DIRNAME)
    max_return: int = _DEFAULT_MAX_RETURN
    name_pattern: str = DEFAULT_NAME_PATTERN
    log_level: str = "INFO"
    cleanup: CleanupConfig = field(default_factory=CleanupConfig)


def _int(value: object, default: int) -> int:
    """Parse a positive-or-zero int; anything else falls back to ``default``."""
    try:
        parsed = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 0 else default


def load_config(config_path: Path | None = None) -> ThinkConfig:
    """Load configuration from environment variables and optional session-think.toml.

    Priority: environment variables > session-think.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.session-think/
        for candidate in [
            Path.cwd() / _CONFIG_FILENAME,
            Path.home() / ".session-think" / _CONFIG_FILENAME,
        ]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    cleanup_data = file_data.get("cleanup", {})
    session_dir = os.getenv("SESSION_DIR", file_data.get("session_dir"))

    max_return = _int(
        os.getenv("SESSION_MAX_RETURN", file_data.get("max_return")), _DEFAULT_MAX_RETURN
    )

    return ThinkConfig(
        session_dir=(
            Path(session_dir).expanduser()
            if session_dir
            else Path.cwd() / _DEFAULT_SESSION_DIRNAME
        ),
        max_return=max_return or _DEFAULT_MAX_RETURN,
        name_pattern=os.getenv(
            "SESSION_NAME_PATTERN", file_data.get("name_pattern", DEFAULT_NAME_PATTERN)
        ),
        log_level=os.getenv("SESSION_LOG_LEVEL", file_data.get("log_level", "INFO")),
        cleanup=CleanupConfig(
            max_age_days=_int(
                os.getenv("SESSION_CLEANUP_DAYS", cleanup_data.get("max_age_days")), 0
            ),
            interval=_int(
                os.getenv("SESSION_CLEANUP_INTERVAL", cleanup_data.get("interval")),
                _DEFAULT_CLEANUP_INTERVAL,
            )
            or _DEFAULT_CLEANUP_INTERVAL,
        ),
    )
