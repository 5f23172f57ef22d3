"""SessionThink orchestrator — composes naming, storage, graph and search.

Responsibilities:
1. Validate session names before any storage access
2. Lane locks: serialize mutations per session inside this process
3. Append thoughts, applying and validating relationships
4. Derive session metadata (never stored separately)
5. Listing, search, rename, delete and age-based cleanup
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import datetime, timezone

from session_think.config import ThinkConfig
from session_think.errors import CorruptSession, InvalidArgument, NotFound
from session_think.sessions import graph, search
from session_think.sessions.models import (
    BUILDS_ON,
    DEFAULT_MODE,
    MODES,
    RELATIONSHIP_TYPES,
    Thought,
    format_timestamp,
    new_thought_id,
    preview,
)
from session_think.sessions.naming import SessionNamer
from session_think.sessions.store import SessionStore

logger = logging.getLogger(__name__)

RELATED_PREVIEW_CHARS = 200
CONTEXT_PREVIEW_CHARS = 80
CHAIN_PREVIEW_ENTRIES = 5
CONTEXT_LIMIT = 3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(moment: datetime | None) -> str | None:
    return format_timestamp(moment) if moment else None


def _check_page(limit: int, offset: int) -> None:
    if limit < 1:
        raise InvalidArgument(f"limit must be at least 1, got {limit}")
    if offset < 0:
        raise InvalidArgument(f"offset must not be negative, got {offset}")


def _unique(values) -> list:
    return list(dict.fromkeys(values))


class SessionThink:
    """Core facade; every boundary operation goes through here."""

    def __init__(
        self,
        config: ThinkConfig,
        *,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[datetime], str] = new_thought_id,
    ) -> None:
        self.config = config
        self.namer = SessionNamer(config.name_pattern)
        self.store = SessionStore(config.session_dir, self.namer)
        self._clock = clock
        self._id_factory = id_factory
        self._lane_locks: dict[str, asyncio.Lock] = {}  # storage key → lock

    # ── Lane locks (per-session serialization) ───────────────

    def _get_lane_lock(self, session_name: str) -> asyncio.Lock:
        return self._get_key_lock(self.namer.encode(session_name))

    def _get_key_lock(self, key: str) -> asyncio.Lock:
        if key not in self._lane_locks:
            self._lane_locks[key] = asyncio.Lock()
        return self._lane_locks[key]

    # ── Append ───────────────────────────────────────────────

    async def append_thought(
        self,
        reasoning: str,
        session_name: str | None = None,
        mode: str | None = None,
        tags: list[str] | None = None,
        relates_to: str | None = None,
        relationship_type: str | None = None,
    ) -> dict:
        """Append one thought, creating the session on first use."""
        if not isinstance(reasoning, str) or not reasoning:
            raise InvalidArgument("reasoning must be a non-empty string")
        mode = mode or DEFAULT_MODE
        if mode not in MODES:
            raise InvalidArgument(f"Unknown mode {mode!r}; expected one of {list(MODES)}")
        if relationship_type is not None and relationship_type not in RELATIONSHIP_TYPES:
            raise InvalidArgument(
                f"Unknown relationship_type {relationship_type!r}; "
                f"expected one of {list(RELATIONSHIP_TYPES)}"
            )
        if bool(relates_to) != bool(relationship_type):
            logger.warning(
                "relates_to and relationship_type must be given together; no link recorded"
            )

        session = self.namer.validate(session_name) if session_name else None
        if session is None:
            session = self.namer.generate_ephemeral()

        async with self._get_lane_lock(session):
            thoughts = await self.store.load(session)
            is_new = not thoughts

            now = self._clock()
            if thoughts and thoughts[-1].created > now:
                now = thoughts[-1].created
            thought = Thought(
                id=self._id_factory(now),
                content=reasoning,
                timestamp=format_timestamp(now),
                mode=mode,
                tags=list(tags or []),
            )

            linked = bool(relates_to and relationship_type)
            if linked:
                graph.validate_link(thoughts, thought.id, relates_to, thought.timestamp)
                graph.apply_link(thoughts, thought, relates_to, relationship_type)

            thoughts.append(thought)
            await self.store.save(session, thoughts)

        logger.info("Appended %s to %s (%d thoughts)", thought.id, session, len(thoughts))

        related_context = None
        reasoning_chain = None
        if linked:
            related_context, reasoning_chain = self._related_context(
                thoughts, relates_to, relationship_type
            )

        return {
            "thinking": reasoning,
            "thoughtId": thought.id,
            "sessionName": session,
            "mode": mode,
            "tags": thought.tags,
            "timestamp": thought.timestamp,
            "thoughtCount": len(thoughts),
            "preserved": True,
            "isNewSession": is_new,
            "related_context": related_context,
            "reasoning_chain": reasoning_chain,
        }

    def _related_context(
        self, thoughts: list[Thought], target_id: str, relationship_type: str
    ) -> tuple[dict, dict | None]:
        target = graph.find_thought(thoughts, target_id)
        if relationship_type != BUILDS_ON:
            return (
                {
                    "relationship": relationship_type,
                    "related_thought_id": target_id,
                    "related_content": preview(target.content, RELATED_PREVIEW_CHARS),
                    "related_mode": target.mode,
                },
                None,
            )

        chain = graph.reconstruct_chain(target_id, thoughts)
        conflicts, supports = graph.find_conflicts_and_supports(
            target_id, thoughts, CONTEXT_LIMIT
        )
        context = {
            "type": "builds_on_enhanced",
            "chain_preview": [e.content_preview for e in chain.chain[:CHAIN_PREVIEW_ENTRIES]],
            "conflicts": [preview(t.content, CONTEXT_PREVIEW_CHARS) for t in conflicts],
            "supports": [preview(t.content, CONTEXT_PREVIEW_CHARS) for t in supports],
        }
        return context, chain.to_dict()

    # ── Listing & viewing ────────────────────────────────────

    async def list_sessions(self, limit: int = 50, offset: int = 0) -> dict:
        _check_page(limit, offset)
        keys = await self.store.list_keys()
        sessions = [await self._summarize(key) for key in keys[offset : offset + limit]]
        return {
            "sessions": sessions,
            "count": len(sessions),
            "total": len(keys),
            "limit": limit,
            "offset": offset,
        }

    async def _summarize(self, key: str) -> dict:
        name = self.namer.decode(key)
        stats = await self.store.stats_for_key(key)
        try:
            thoughts = await self.store.load_key(key)
        except CorruptSession as e:
            logger.warning("Skipping unreadable session %s: %s", name, e)
            return {
                "sessionName": name,
                "error": "Could not read session data",
                "lastModified": _iso(stats.last_modified_at),
            }
        return {
            "sessionName": name,
            "thoughtCount": len(thoughts),
            "firstThought": thoughts[0].timestamp if thoughts else None,
            "lastThought": thoughts[-1].timestamp if thoughts else None,
            "lastModified": _iso(stats.last_modified_at),
        }

    async def view_session(
        self, session_name: str, limit: int | None = None, offset: int = 0
    ) -> dict:
        self.namer.validate(session_name)
        if limit is None:
            limit = self.config.max_return
        _check_page(limit, offset)
        thoughts = await self.store.load(session_name)
        page = thoughts[offset : offset + limit]
        return {
            "sessionName": session_name,
            "thoughts": [t.to_dict() for t in page],
            "count": len(page),
            "totalThoughts": len(thoughts),
            "limit": limit,
            "offset": offset,
            "hasMore": offset + limit < len(thoughts),
        }

    async def get_session_info(self, session_name: str) -> dict:
        """Metadata derived from content and the storage medium."""
        self.namer.validate(session_name)
        stats = await self.store.statistics(session_name)
        thoughts = await self.store.load(session_name)
        return {
            "sessionName": session_name,
            "exists": bool(thoughts) or stats.exists,
            "thoughtCount": len(thoughts),
            "firstThought": thoughts[0].timestamp if thoughts else None,
            "lastThought": thoughts[-1].timestamp if thoughts else None,
            "created": _iso(stats.created_at),
            "lastModified": _iso(stats.last_modified_at),
            "modes": _unique(t.mode for t in thoughts),
            "tags": _unique(tag for t in thoughts for tag in t.tags),
        }

    # ── Search ───────────────────────────────────────────────

    async def _load_existing(self, session_name: str) -> list[Thought]:
        thoughts = await self.store.load(session_name)
        if not thoughts:
            raise NotFound("Session not found or empty", sessionName=session_name)
        return thoughts

    async def search_in_session(
        self, session_name: str, query: str, limit: int = 10, offset: int = 0
    ) -> dict:
        self.namer.validate(session_name)
        _check_page(limit, offset)
        thoughts = await self._load_existing(session_name)
        page = search.search_in_session(thoughts, query, limit, offset)
        return {
            "sessionName": session_name,
            "query": query,
            "results": page.results,
            "count": len(page.results),
            "totalMatches": page.total_matches,
            "limit": limit,
            "offset": offset,
        }

    async def search_all_sessions(self, query: str, limit: int = 20, offset: int = 0) -> dict:
        """Session-level hit counts across the corpus; no thought content returned."""
        _check_page(limit, offset)
        matching: list[dict] = []
        for key in await self.store.list_keys():
            try:
                thoughts = await self.store.load_key(key)
            except CorruptSession as e:
                logger.warning("Skipping unreadable session %s: %s", key, e)
                continue
            hits = search.count_matches(thoughts, query)
            if not hits:
                continue
            stats = await self.store.stats_for_key(key)
            matching.append(
                {
                    "sessionName": self.namer.decode(key),
                    "matchingThoughts": hits,
                    "totalThoughts": len(thoughts),
                    "lastModified": _iso(stats.last_modified_at),
                    "relevanceScore": hits,
                }
            )

        matching.sort(key=lambda s: s["relevanceScore"], reverse=True)
        page = matching[offset : offset + limit]
        return {
            "query": query,
            "sessions": page,
            "count": len(page),
            "totalMatching": len(matching),
            "limit": limit,
            "offset": offset,
        }

    async def find_thought_relationships(
        self,
        session_name: str,
        query: str,
        relationship_types: list[str] | None = None,
        exclude_thought_id: str | None = None,
        limit: int = 10,
    ) -> dict:
        self.namer.validate(session_name)
        _check_page(limit, 0)
        unknown = [t for t in relationship_types or [] if t not in RELATIONSHIP_TYPES]
        if unknown:
            raise InvalidArgument(f"Unknown relationship types: {unknown}")
        thoughts = await self._load_existing(session_name)
        results = search.find_related(
            thoughts, query, relationship_types, exclude_thought_id, limit
        )
        return {
            "sessionName": session_name,
            "query": query,
            "results": results,
            "count": len(results),
        }

    # ── Lifecycle ────────────────────────────────────────────

    async def rename_session(self, old_name: str, new_name: str) -> dict:
        self.namer.validate(old_name)
        self.namer.validate(new_name)
        # Fixed acquisition order; a single lock when both names share a key.
        keyed = {self.namer.encode(n): n for n in (old_name, new_name)}
        async with contextlib.AsyncExitStack() as stack:
            for key in sorted(keyed):
                await stack.enter_async_context(self._get_lane_lock(keyed[key]))
            thoughts = await self.store.rename(old_name, new_name)
        return {"oldName": old_name, "newName": new_name, "thoughtCount": len(thoughts)}

    async def delete_session(self, session_name: str) -> dict:
        self.namer.validate(session_name)
        async with self._get_lane_lock(session_name):
            await self.store.remove(session_name)
        return {"sessionName": session_name, "deleted": True}

    async def cleanup_sessions(self, max_age_days: float = 90) -> dict:
        """Delete every session whose file was last modified over ``max_age_days`` ago."""
        if max_age_days < 1:
            raise InvalidArgument(f"maxAgeDays must be at least 1, got {max_age_days}")
        now = self._clock()
        deleted = 0
        for key in await self.store.list_keys():
            # Age is read under the lane lock so a concurrent append keeps its session.
            async with self._get_key_lock(key):
                stats = await self.store.stats_for_key(key)
                if not stats.exists:
                    continue
                age_days = (now - stats.last_modified_at).total_seconds() / 86400
                if age_days <= max_age_days:
                    continue
                try:
                    await self.store.remove_key(key)
                except NotFound:
                    continue
            deleted += 1
            logger.info("Cleaned up session %s (%.1f days old)", key, age_days)
        return {"deletedCount": deleted, "maxAgeDays": max_age_days}
