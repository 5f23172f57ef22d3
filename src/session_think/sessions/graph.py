"""Directed links between thoughts of one session.

Links always point backwards in time. ``apply_link`` is the only place a
stored thought is revised: the target gains an inbound entry.
"""

from __future__ import annotations

from session_think.errors import FutureReference, SelfReference, TargetNotFound
from session_think.sessions.models import (
    BUILDS_ON,
    ChainEntry,
    ReasoningChain,
    Relationship,
    Thought,
    parse_timestamp,
    preview,
)

MAX_CHAIN_DEPTH = 20
MAX_CHAIN_DISPLAY = 7
CHAIN_PREVIEW_CHARS = 120


def find_thought(thoughts: list[Thought], thought_id: str) -> Thought | None:
    for thought in thoughts:
        if thought.id == thought_id:
            return thought
    return None


def validate_link(
    thoughts: list[Thought],
    candidate_id: str,
    target_id: str,
    candidate_timestamp: str,
) -> Thought:
    """Return the link target, or raise if the link is not allowed."""
    if candidate_id == target_id:
        raise SelfReference("Cannot reference self", thought_id=target_id)
    target = find_thought(thoughts, target_id)
    if target is None:
        raise TargetNotFound("Referenced thought not found", thought_id=target_id)
    if target.created > parse_timestamp(candidate_timestamp):
        raise FutureReference("Cannot reference future thoughts", thought_id=target_id)
    return target


def apply_link(
    thoughts: list[Thought],
    source: Thought,
    target_id: str,
    relationship_type: str,
) -> None:
    target = find_thought(thoughts, target_id)
    if target is None:
        raise TargetNotFound("Referenced thought not found", thought_id=target_id)
    target.relationships_in.append(Relationship(source.id, relationship_type))
    source.relationships_out.append(Relationship(target_id, relationship_type))
    source.relates_to = target_id
    source.relationship_type = relationship_type


def reconstruct_chain(start_id: str, thoughts: list[Thought]) -> ReasoningChain:
    """Walk ``builds_on`` links back from ``start_id``; oldest entry first."""
    by_id = {t.id: t for t in thoughts}
    chain: list[ChainEntry] = []
    visited: set[str] = set()
    current_id: str | None = start_id

    while current_id and current_id not in visited and len(chain) < MAX_CHAIN_DEPTH:
        visited.add(current_id)
        thought = by_id.get(current_id)
        if thought is None:
            break
        chain.insert(
            0,
            ChainEntry(
                id=thought.id,
                content_preview=preview(thought.content, CHAIN_PREVIEW_CHARS),
                mode=thought.mode,
                timestamp=thought.timestamp,
                relationship_type=thought.relationship_type,
            ),
        )
        if thought.relationship_type == BUILDS_ON and thought.relates_to:
            current_id = thought.relates_to
        else:
            current_id = None

    total = len(chain)
    if total <= MAX_CHAIN_DISPLAY:
        return ReasoningChain(chain=chain, total_length=total, truncated=False)

    kept = chain[-MAX_CHAIN_DISPLAY:]
    kept[0].truncated = True
    kept[0].note = f"... ({total - MAX_CHAIN_DISPLAY} earlier thoughts in chain)"
    return ReasoningChain(chain=kept, total_length=total, truncated=True)


def _linked_to(thoughts: list[Thought], target_id: str, relationship_type: str) -> list[Thought]:
    return [
        t
        for t in thoughts
        if any(
            rel.thought_id == target_id and rel.relationship_type == relationship_type
            for rel in t.relationships_out
        )
    ]


def find_conflicts_and_supports(
    target_id: str, thoughts: list[Thought], limit: int = 3
) -> tuple[list[Thought], list[Thought]]:
    """Thoughts that contradict / support ``target_id``, up to ``limit`` each."""
    return (
        _linked_to(thoughts, target_id, "contradicts")[:limit],
        _linked_to(thoughts, target_id, "supports")[:limit],
    )
