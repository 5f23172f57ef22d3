"""Tests for relationship validation and reasoning chains."""

from __future__ import annotations

import pytest

from conftest import make_thought
from session_think.errors import FutureReference, SelfReference, TargetNotFound
from session_think.sessions import graph
from session_think.sessions.models import Relationship, Thought


def _builds_on_chain(length: int) -> list[Thought]:
    thoughts = [make_thought("t0", 0)]
    for i in range(1, length):
        thoughts.append(make_thought(f"t{i}", i, relates_to=f"t{i-1}", relationship_type="builds_on"))
    return thoughts


class TestValidateLink:
    def test_self_reference(self):
        thoughts = [make_thought("t1", 1)]
        with pytest.raises(SelfReference):
            graph.validate_link(thoughts, "t1", "t1", thoughts[0].timestamp)

    def test_self_reference_checked_before_lookup(self):
        with pytest.raises(SelfReference):
            graph.validate_link([], "t9", "t9", make_thought("x", 1).timestamp)

    def test_target_not_found(self):
        thoughts = [make_thought("t1", 1)]
        with pytest.raises(TargetNotFound):
            graph.validate_link(thoughts, "t2", "missing", make_thought("x", 2).timestamp)

    def test_future_reference(self):
        thoughts = [make_thought("t1", 100)]
        with pytest.raises(FutureReference):
            graph.validate_link(thoughts, "t2", "t1", make_thought("x", 50).timestamp)

    def test_same_timestamp_allowed(self):
        thoughts = [make_thought("t1", 100)]
        target = graph.validate_link(thoughts, "t2", "t1", thoughts[0].timestamp)
        assert target is thoughts[0]


class TestApplyLink:
    def test_both_directions_recorded(self):
        target = make_thought("t1", 1)
        source = make_thought("t2", 2)
        graph.apply_link([target], source, "t1", "supports")

        assert target.relationships_in == [Relationship("t2", "supports")]
        assert source.relationships_out == [Relationship("t1", "supports")]
        assert source.relates_to == "t1"
        assert source.relationship_type == "supports"

    def test_missing_target(self):
        with pytest.raises(TargetNotFound):
            graph.apply_link([], make_thought("t2", 2), "t1", "supports")


class TestReconstructChain:
    def test_two_links(self):
        t1 = make_thought("T1", 100)
        t2 = make_thought("T2", 200, relates_to="T1", relationship_type="builds_on")
        chain = graph.reconstruct_chain("T2", [t1, t2])

        assert [e.id for e in chain.chain] == ["T1", "T2"]
        assert chain.total_length == 2
        assert chain.truncated is False

    def test_truncated_to_seven(self):
        thoughts = _builds_on_chain(9)
        chain = graph.reconstruct_chain("t8", thoughts)

        assert len(chain.chain) == 7
        assert chain.total_length == 9
        assert chain.truncated is True
        assert [e.id for e in chain.chain] == [f"t{i}" for i in range(2, 9)]
        assert chain.chain[0].truncated is True
        assert chain.chain[0].note == "... (2 earlier thoughts in chain)"
        assert not any(e.truncated for e in chain.chain[1:])

    def test_depth_limit(self):
        chain = graph.reconstruct_chain("t29", _builds_on_chain(30))
        assert chain.total_length == 20
        assert chain.chain[-1].id == "t29"

    def test_stops_at_other_relationship(self):
        thoughts = [
            make_thought("t1", 1),
            make_thought("t2", 2, relates_to="t1", relationship_type="supports"),
            make_thought("t3", 3, relates_to="t2", relationship_type="builds_on"),
        ]
        chain = graph.reconstruct_chain("t3", thoughts)
        assert [e.id for e in chain.chain] == ["t2", "t3"]

    def test_cycle_guard(self):
        thoughts = [
            make_thought("a", 1, relates_to="b", relationship_type="builds_on"),
            make_thought("b", 2, relates_to="a", relationship_type="builds_on"),
        ]
        chain = graph.reconstruct_chain("b", thoughts)
        assert [e.id for e in chain.chain] == ["a", "b"]

    def test_unknown_start(self):
        chain = graph.reconstruct_chain("nope", [make_thought("t1", 1)])
        assert chain.chain == []
        assert chain.total_length == 0

    def test_preview_truncated(self):
        chain = graph.reconstruct_chain("t1", [make_thought("t1", 1, content="x" * 200)])
        assert chain.chain[0].content_preview == "x" * 120 + "..."

    def test_to_dict(self):
        data = graph.reconstruct_chain("t8", _builds_on_chain(9)).to_dict()
        assert data["total_length"] == 9
        assert data["chain"][0]["truncated"] is True
        assert "truncated" not in data["chain"][1]


class TestConflictsAndSupports:
    def test_split_by_type(self):
        target = make_thought("t0", 0)
        thoughts = [target]
        for i, kind in enumerate(["contradicts", "supports", "contradicts", "refines"], start=1):
            t = make_thought(f"t{i}", i)
            graph.apply_link(thoughts, t, "t0", kind)
            thoughts.append(t)

        conflicts, supports = graph.find_conflicts_and_supports("t0", thoughts)
        assert [t.id for t in conflicts] == ["t1", "t3"]
        assert [t.id for t in supports] == ["t2"]

    def test_limit(self):
        thoughts = [make_thought("t0", 0)]
        for i in range(1, 6):
            t = make_thought(f"t{i}", i)
            graph.apply_link(thoughts, t, "t0", "supports")
            thoughts.append(t)

        _, supports = graph.find_conflicts_and_supports("t0", thoughts, limit=3)
        assert len(supports) == 3
