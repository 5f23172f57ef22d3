"""Tests for the periodic cleanup scheduler."""

from __future__ import annotations

import asyncio
import os
import time
from dataclasses import replace

import pytest

from session_think.config import CleanupConfig, ThinkConfig
from session_think.core import SessionThink
from session_think.scheduler.jobs import CleanupScheduler


class TestCleanupScheduler:
    @pytest.mark.asyncio
    async def test_disabled_returns_immediately(self, config: ThinkConfig):
        scheduler = CleanupScheduler(SessionThink(config), config)
        assert scheduler.enabled is False
        await asyncio.wait_for(scheduler.start(asyncio.Event()), timeout=1)

    @pytest.mark.asyncio
    async def test_runs_cleanup_until_shutdown(self, config: ThinkConfig):
        config = replace(config, cleanup=CleanupConfig(max_age_days=30, interval=3600))
        app = SessionThink(config)
        await app.append_thought("stale", session_name="old:session:one")
        await app.append_thought("fresh", session_name="new:session:two")
        stamp = time.time() - 40 * 86400
        os.utime(app.store.path_for("old:session:one"), (stamp, stamp))

        shutdown = asyncio.Event()
        task = asyncio.create_task(CleanupScheduler(app, config).start(shutdown))
        await asyncio.sleep(0.2)
        shutdown.set()
        await asyncio.wait_for(task, timeout=1)

        names = [s["sessionName"] for s in (await app.list_sessions())["sessions"]]
        assert names == ["new:session:two"]
