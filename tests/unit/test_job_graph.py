"""Tests for the JobGraph: DAG ordering, needs, cascades."""

from __future__ import annotations

import pytest

from deckhand.core.job_graph import CyclicDependencyError, JobGraph
from deckhand.models.jobs import JobDefinition, JobState


def _defs(*specs: tuple[str, list[str]]) -> list[JobDefinition]:
    return [
        JobDefinition(job_id=jid, display_name=jid.title(), ordinal=i, needs=needs)
        for i, (jid, needs) in enumerate(specs)
    ]


class TestJobGraph:
    def test_default_order(self, graph: JobGraph):
        assert graph.job_ids == ["build", "deploy"]

    def test_needs_and_dependents(self, graph: JobGraph):
        assert graph.get_needs("deploy") == ["build"]
        assert graph.get_needs("build") == []
        assert graph.get_dependents("build") == ["deploy"]
        assert graph.get_dependents("deploy") == []

    def test_topological_order_ignores_declaration_order(self):
        g = JobGraph([
            JobDefinition(job_id="deploy", display_name="Deploy", ordinal=1, needs=["build"]),
            JobDefinition(job_id="build", display_name="Build", ordinal=0),
        ])
        assert g.job_ids == ["build", "deploy"]

    def test_transitive_dependents(self):
        g = JobGraph(_defs(("a", []), ("b", ["a"]), ("c", ["b"])))
        assert g.get_dependents("a") == ["b", "c"]

    def test_cycle_rejected(self):
        with pytest.raises(CyclicDependencyError):
            JobGraph(_defs(("a", ["b"]), ("b", ["a"])))

    def test_unknown_need_rejected(self):
        with pytest.raises(ValueError, match="unknown"):
            JobGraph(_defs(("a", ["ghost"])))

    def test_needs_met_only_when_passed(self, graph: JobGraph):
        for state in (JobState.NOT_STARTED, JobState.RUNNING, JobState.FAILED, JobState.SKIPPED):
            assert graph.are_needs_met("deploy", {"build": state}) is False
        assert graph.are_needs_met("deploy", {"build": JobState.PASSED}) is True

    def test_blocking_reasons(self, graph: JobGraph):
        reasons = graph.get_blocking_reasons("deploy", {"build": JobState.FAILED})
        assert reasons == ["Build (build) is failed"]

    def test_cascade_only_touches_not_started(self):
        g = JobGraph(_defs(("a", []), ("b", ["a"]), ("c", ["a"])))
        states = {"a": JobState.FAILED, "b": JobState.NOT_STARTED, "c": JobState.PASSED}
        changed = g.cascade("a", states, JobState.BLOCKED)
        assert changed == ["b"]
        assert states["b"] == JobState.BLOCKED
        assert states["c"] == JobState.PASSED
