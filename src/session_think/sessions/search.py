"""Keyword matching and relevance ranking over thoughts.

A linear scan: every thought is tested with a case-insensitive substring
predicate, then ranked by an additive score. Sorting is stable, so equal
scores keep append order.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from session_think.sessions.models import Thought, preview

SEARCH_PREVIEW_CHARS = 150


@dataclass
class SearchPage:
    results: list[dict]
    total_matches: int


def matches(thought: Thought, query_lower: str) -> bool:
    """True if the content, a tag, or the mode contains the query."""
    if query_lower in thought.content.lower():
        return True
    if any(query_lower in tag.lower() for tag in thought.tags):
        return True
    return bool(thought.mode) and query_lower in thought.mode.lower()


def score(thought: Thought, query_lower: str) -> int:
    content = thought.content.lower()
    total = 0
    if query_lower in content:
        total += 10
    for word in query_lower.split():
        if word in content:
            total += 2
    for tag in thought.tags:
        if query_lower in tag.lower():
            total += 5
    if thought.mode and query_lower in thought.mode.lower():
        total += 3
    if thought.has_relationship:
        total += 1
    return total


def _result(thought: Thought, relevance: int) -> dict:
    return {
        "id": thought.id,
        "content_preview": preview(thought.content, SEARCH_PREVIEW_CHARS),
        "mode": thought.mode,
        "tags": list(thought.tags),
        "timestamp": thought.timestamp,
        "relates_to": thought.relates_to,
        "relationship_type": thought.relationship_type,
        "relevance_score": relevance,
    }


def _ranked(thoughts: Iterable[Thought], query_lower: str) -> list[dict]:
    hits = [_result(t, score(t, query_lower)) for t in thoughts if matches(t, query_lower)]
    hits.sort(key=lambda r: r["relevance_score"], reverse=True)
    return hits


def search_in_session(
    thoughts: list[Thought], query: str, limit: int = 10, offset: int = 0
) -> SearchPage:
    ranked = _ranked(thoughts, query.lower())
    return SearchPage(results=ranked[offset : offset + limit], total_matches=len(ranked))


def count_matches(thoughts: list[Thought], query: str) -> int:
    query_lower = query.lower()
    return sum(1 for t in thoughts if matches(t, query_lower))


def find_related(
    thoughts: list[Thought],
    query: str,
    relationship_types: list[str] | None = None,
    exclude_id: str | None = None,
    limit: int = 10,
) -> list[dict]:
    """Candidates for a new link: ranked matches, optionally filtered by link type."""
    candidates = [
        t
        for t in thoughts
        if t.id != exclude_id
        and (not relationship_types or t.relationship_type in relationship_types)
    ]
    return _ranked(candidates, query.lower())[:limit]
