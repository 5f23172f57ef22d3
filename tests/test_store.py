"""Tests for the JSON session store."""

from __future__ import annotations

import json
import os
import time
from pathlib import Path

import pytest

from conftest import make_thought
from session_think.errors import CorruptSession, NotFound, StorageFailure
from session_think.sessions.models import Relationship
from session_think.sessions.naming import SessionNamer
from session_think.sessions.store import SessionStore

NAME = "thesis:NVDA:ai_dominance"


@pytest.fixture
def store(tmp_path: Path) -> SessionStore:
    return SessionStore(tmp_path / "sessions", SessionNamer())


class TestLoadSave:
    @pytest.mark.asyncio
    async def test_missing_session_is_empty(self, store: SessionStore):
        assert await store.load(NAME) == []

    @pytest.mark.asyncio
    async def test_round_trip(self, store: SessionStore):
        first = make_thought("t1", 1, content="Über  spacing\n\tkept", tags=["b", "a", "b"])
        second = make_thought("t2", 2, relates_to="t1", relationship_type="builds_on")
        second.relationships_out.append(Relationship("t1", "builds_on"))
        first.relationships_in.append(Relationship("t2", "builds_on"))

        await store.save(NAME, [first, second])
        loaded = await store.load(NAME)

        assert loaded == [first, second]
        assert loaded[0].content == "Über  spacing\n\tkept"
        assert loaded[0].tags == ["b", "a", "b"]

    @pytest.mark.asyncio
    async def test_file_layout(self, store: SessionStore):
        await store.save(NAME, [make_thought("t1", 1)])
        path = store.root / "thesis___NVDA___ai_dominance.json"
        records = json.loads(path.read_text(encoding="utf-8"))
        assert records[0]["id"] == "t1"
        assert records[0]["relationships_in"] == []
        assert not list(store.root.glob("*.tmp"))

    @pytest.mark.asyncio
    async def test_unknown_fields_preserved(self, store: SessionStore):
        store.root.mkdir(parents=True)
        record = make_thought("t1", 1).to_dict()
        record["confidence"] = 0.8
        store.path_for(NAME).write_text(json.dumps([record]), encoding="utf-8")

        thoughts = await store.load(NAME)
        await store.save(NAME, thoughts)
        saved = json.loads(store.path_for(NAME).read_text(encoding="utf-8"))
        assert saved[0]["confidence"] == 0.8

    @pytest.mark.asyncio
    async def test_corrupt_file(self, store: SessionStore):
        store.root.mkdir(parents=True)
        store.path_for(NAME).write_text("{not json", encoding="utf-8")
        with pytest.raises(CorruptSession):
            await store.load(NAME)

    @pytest.mark.asyncio
    async def test_corrupt_is_storage_failure(self, store: SessionStore):
        store.root.mkdir(parents=True)
        store.path_for(NAME).write_text('{"id": "x"}', encoding="utf-8")
        with pytest.raises(StorageFailure):
            await store.load(NAME)

    @pytest.mark.asyncio
    async def test_save_failure_propagates(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")
        store = SessionStore(blocker / "sessions", SessionNamer())
        with pytest.raises(StorageFailure):
            await store.save(NAME, [make_thought("t1", 1)])


class TestListRemove:
    @pytest.mark.asyncio
    async def test_list_keys(self, store: SessionStore):
        assert await store.list_keys() == []
        await store.save("b:b:b", [make_thought("t1", 1)])
        await store.save("a:a:a", [make_thought("t2", 2)])
        (store.root / "notes.txt").write_text("ignored")
        assert await store.list_keys() == ["a___a___a", "b___b___b"]

    @pytest.mark.asyncio
    async def test_remove(self, store: SessionStore):
        await store.save(NAME, [make_thought("t1", 1)])
        await store.remove(NAME)
        assert await store.load(NAME) == []

    @pytest.mark.asyncio
    async def test_remove_missing(self, store: SessionStore):
        with pytest.raises(NotFound):
            await store.remove(NAME)


class TestRename:
    @pytest.mark.asyncio
    async def test_rename(self, store: SessionStore):
        thoughts = [make_thought(f"t{i}", i) for i in range(5)]
        await store.save("TEMP:1:abc", thoughts)

        moved = await store.rename("TEMP:1:abc", NAME)

        assert len(moved) == 5
        assert await store.load(NAME) == thoughts
        assert await store.load("TEMP:1:abc") == []
        with pytest.raises(NotFound):
            await store.remove("TEMP:1:abc")

    @pytest.mark.asyncio
    async def test_rename_missing(self, store: SessionStore):
        with pytest.raises(NotFound):
            await store.rename("TEMP:1:abc", NAME)

    @pytest.mark.asyncio
    async def test_rename_to_same_key_keeps_data(self, store: SessionStore):
        await store.save(NAME, [make_thought("t1", 1)])
        moved = await store.rename(NAME, NAME)
        assert len(moved) == 1
        assert len(await store.load(NAME)) == 1


class TestStatistics:
    @pytest.mark.asyncio
    async def test_missing(self, store: SessionStore):
        stats = await store.statistics(NAME)
        assert stats.exists is False
        assert stats.last_modified_at is None

    @pytest.mark.asyncio
    async def test_existing(self, store: SessionStore):
        await store.save(NAME, [make_thought("t1", 1)])
        mtime = time.time() - 3600
        os.utime(store.path_for(NAME), (mtime, mtime))

        stats = await store.statistics(NAME)
        assert stats.exists is True
        assert stats.created_at is not None
        assert abs(stats.last_modified_at.timestamp() - mtime) < 1
