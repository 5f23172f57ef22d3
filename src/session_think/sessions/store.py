"""Durable storage: one pretty-printed JSON file per session.

Reads and writes always cover the whole file. A save goes to a temporary
sibling first and is moved over the target with ``os.replace``, so readers
see either the old list or the new one.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from session_think.errors import CorruptSession, NotFound, StorageFailure
from session_think.sessions.models import SessionStats, Thought
from session_think.sessions.naming import FILE_SUFFIX, SessionNamer

logger = logging.getLogger(__name__)


class SessionStore:
    """Read/write access to the session directory."""

    def __init__(self, root: Path, namer: SessionNamer) -> None:
        self.root = root
        self.namer = namer

    # ── Paths ─────────────────────────────────────────────────

    def _ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, name: str) -> Path:
        return self.root / self.namer.filename(name)

    def _key_path(self, key: str) -> Path:
        return self.root / f"{key}{FILE_SUFFIX}"

    # ── Blocking helpers (run in a worker thread) ─────────────

    def _read(self, path: Path) -> list[Thought]:
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StorageFailure(f"Failed to read {path.name}: {e}") from e
        try:
            records = json.loads(raw)
            if not isinstance(records, list):
                raise TypeError("top-level value is not a list")
            return [Thought.from_dict(r) for r in records]
        except (ValueError, TypeError, KeyError) as e:
            raise CorruptSession(f"Session file {path.name} is unreadable: {e}") from e

    def _write(self, path: Path, thoughts: list[Thought]) -> None:
        payload = json.dumps([t.to_dict() for t in thoughts], indent=2, ensure_ascii=False)
        tmp = path.with_name(path.name + ".tmp")
        try:
            self._ensure_root()
            tmp.write_text(payload, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise StorageFailure(f"Failed to save {path.name}: {e}") from e

    def _unlink(self, path: Path, name: str) -> None:
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise NotFound(f"Session {name} does not exist", sessionName=name) from e
        except OSError as e:
            raise StorageFailure(f"Failed to delete {path.name}: {e}") from e

    def _listdir(self) -> list[str]:
        try:
            self._ensure_root()
            return sorted(
                p.name.removesuffix(FILE_SUFFIX)
                for p in self.root.iterdir()
                if p.is_file() and p.name.endswith(FILE_SUFFIX)
            )
        except OSError as e:
            raise StorageFailure(f"Failed to list {self.root}: {e}") from e

    def _stat(self, path: Path) -> SessionStats:
        try:
            st = path.stat()
        except FileNotFoundError:
            return SessionStats(exists=False)
        except OSError as e:
            raise StorageFailure(f"Failed to stat {path.name}: {e}") from e
        created = getattr(st, "st_birthtime", st.st_ctime)
        return SessionStats(
            exists=True,
            created_at=datetime.fromtimestamp(created, tz=timezone.utc),
            last_modified_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        )

    def _move(self, old: Path, new: Path) -> None:
        try:
            os.replace(old, new)
        except OSError as e:
            raise StorageFailure(f"Failed to move {old.name} to {new.name}: {e}") from e

    # ── Public API ────────────────────────────────────────────

    async def load(self, name: str) -> list[Thought]:
        """Thoughts in append order; empty when the session has no file yet."""
        return await asyncio.to_thread(self._read, self.path_for(name))

    async def save(self, name: str, thoughts: list[Thought]) -> None:
        await asyncio.to_thread(self._write, self.path_for(name), thoughts)
        logger.debug("Saved session %s (%d thoughts)", name, len(thoughts))

    async def list_keys(self) -> list[str]:
        """Storage keys of every persisted session, sorted."""
        return await asyncio.to_thread(self._listdir)

    async def remove(self, name: str) -> None:
        await asyncio.to_thread(self._unlink, self.path_for(name), name)
        logger.info("Deleted session %s", name)

    async def remove_key(self, key: str) -> None:
        await asyncio.to_thread(self._unlink, self._key_path(key), self.namer.decode(key))

    async def rename(self, old: str, new: str) -> list[Thought]:
        """Move ``old`` to ``new``; returns the moved thoughts."""
        thoughts = await self.load(old)
        if not thoughts:
            raise NotFound(f"Session {old} does not exist or is empty", sessionName=old)
        old_path, new_path = self.path_for(old), self.path_for(new)
        if old_path == new_path:
            return thoughts
        if (await asyncio.to_thread(self._stat, new_path)).exists:
            logger.warning("Rename target %s already exists, overwriting", new)
        await asyncio.to_thread(self._move, old_path, new_path)
        logger.info("Renamed session %s -> %s", old, new)
        return thoughts

    async def statistics(self, name: str) -> SessionStats:
        return await asyncio.to_thread(self._stat, self.path_for(name))

    async def stats_for_key(self, key: str) -> SessionStats:
        return await asyncio.to_thread(self._stat, self._key_path(key))

    async def load_key(self, key: str) -> list[Thought]:
        return await asyncio.to_thread(self._read, self._key_path(key))
