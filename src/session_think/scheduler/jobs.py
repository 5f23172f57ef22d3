"""Scheduler for periodic session cleanup using pure asyncio.

Jobs:
- Cleanup: delete sessions not modified for ``cleanup.max_age_days`` days
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from session_think.config import ThinkConfig
    from session_think.core import SessionThink

logger = logging.getLogger(__name__)


class CleanupScheduler:
    """Simple asyncio-based scheduler for the cleanup job."""

    def __init__(self, app: SessionThink, config: ThinkConfig) -> None:
        self._app = app
        self._max_age_days = config.cleanup.max_age_days
        self._interval = config.cleanup.interval

    @property
    def enabled(self) -> bool:
        return self._max_age_days > 0

    async def start(self, shutdown_event: asyncio.Event) -> None:
        """Run cleanup every interval until shutdown_event is set."""
        if not self.enabled:
            logger.info("Scheduled cleanup disabled")
            return
        logger.info(
            "Scheduler started (cleanup every %ds, max age %d days)",
            self._interval,
            self._max_age_days,
        )

        while not shutdown_event.is_set():
            await self._cleanup()
            try:
                await asyncio.wait_for(shutdown_event.wait(), timeout=self._interval)
                break  # shutdown requested
            except asyncio.TimeoutError:
                pass  # interval elapsed, run again

        logger.info("Scheduler stopped.")

    async def _cleanup(self) -> None:
        try:
            result = await self._app.cleanup_sessions(self._max_age_days)
            if result["deletedCount"]:
                logger.info("Scheduled cleanup removed %d sessions", result["deletedCount"])
        except Exception as e:
            logger.error("Scheduled cleanup error: %s", e)
