"""Shared fixtures: an isolated config, a facade with a controllable clock."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from session_think.config import ThinkConfig
from session_think.core import SessionThink
from session_think.sessions.models import Thought, format_timestamp

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


class FakeClock:
    """Advances one second per call unless moved explicitly."""

    def __init__(self, start: datetime = BASE_TIME) -> None:
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


def make_thought(
    thought_id: str,
    seconds: int,
    content: str = "",
    relates_to: str | None = None,
    relationship_type: str | None = None,
    **kwargs,
) -> Thought:
    return Thought(
        id=thought_id,
        content=content or f"content of {thought_id}",
        timestamp=format_timestamp(BASE_TIME + timedelta(seconds=seconds)),
        relates_to=relates_to,
        relationship_type=relationship_type,
        **kwargs,
    )


@pytest.fixture
def config(tmp_path: Path) -> ThinkConfig:
    return ThinkConfig(session_dir=tmp_path / "sessions", max_return=5)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def app(config: ThinkConfig, clock: FakeClock) -> SessionThink:
    return SessionThink(config, clock=clock)
