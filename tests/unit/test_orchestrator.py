"""Tests for the Pipeline orchestrator: registry, guard, state bookkeeping."""

from __future__ import annotations

import pytest

from deckhand.core.orchestrator import Pipeline
from deckhand.jobs.base import Job, Step
from deckhand.models.events import PushEvent
from deckhand.models.jobs import JobDefinition, JobState


class TestPipelineRegistry:
    def test_default_jobs_registered(self, make_pipeline):
        pipeline = make_pipeline()
        assert pipeline.graph.job_ids == ["build", "deploy"]
        assert pipeline.get_job("build").steps
        assert pipeline.get_job("deploy").steps

    def test_register_unknown_job_rejected(self, make_pipeline):
        with pytest.raises(KeyError):
            make_pipeline().register_job(Job("lint", []))

    def test_new_run_id_format(self):
        run_id = Pipeline.new_run_id()
        assert run_id.startswith("dh-")
        assert run_id != Pipeline.new_run_id()


class TestPipelineRun:
    def test_custom_jobs(self, make_pipeline, main_push: PushEvent):
        seen: list[str] = []
        pipeline = make_pipeline()
        pipeline.register_job(Job("build", [Step("noop", lambda ctx: seen.append("build"))]))
        pipeline.register_job(Job("deploy", [Step("noop", lambda ctx: seen.append("deploy"))]))
        result = pipeline.run(main_push, run_id="dh-custom")
        assert seen == ["build", "deploy"]
        assert result.succeeded
        assert pipeline.get_states("dh-custom") == {
            "build": JobState.PASSED,
            "deploy": JobState.PASSED,
        }

    def test_guard_skips_deploy(self, make_pipeline, feature_push: PushEvent):
        pipeline = make_pipeline()
        pipeline.register_job(Job("build", []))
        result = pipeline.run(feature_push)
        assert result.state_of("deploy") == JobState.SKIPPED
        assert "refs/heads/feature/x" in result.job("deploy").detail
        assert result.succeeded

    def test_failure_records_step(self, make_pipeline, main_push: PushEvent):
        def boom(ctx):
            raise RuntimeError("toolchain missing")

        pipeline = make_pipeline()
        pipeline.register_job(Job("build", [Step("Install toolchain", boom)]))
        result = pipeline.run(main_push)
        build = result.job("build")
        assert build.state == JobState.FAILED
        assert build.failed_step == "Install toolchain"
        assert "toolchain missing" in build.error
        assert result.state_of("deploy") == JobState.BLOCKED
        assert not result.succeeded

    def test_unguarded_graph(self, make_pipeline, feature_push: PushEvent):
        defs = [
            JobDefinition(job_id="build", display_name="Build", ordinal=0),
            JobDefinition(job_id="deploy", display_name="Deploy", ordinal=1, needs=["build"]),
        ]
        pipeline = make_pipeline(job_definitions=defs)
        pipeline.register_job(Job("build", []))
        pipeline.register_job(Job("deploy", []))
        result = pipeline.run(feature_push)
        assert result.state_of("deploy") == JobState.PASSED

    def test_run_chain_verifies(self, make_pipeline, main_push: PushEvent):
        pipeline = make_pipeline()
        pipeline.register_job(Job("build", []))
        result = pipeline.run(main_push)
        assert pipeline.verify_chain(result.run_id) is True

    def test_workspace_is_temporary(self, make_pipeline, main_push: PushEvent):
        seen = []

        def scratch(ctx):
            seen.append(ctx.workspace)
            (ctx.workspace / "scratch").write_text("x", encoding="utf-8")
            raise RuntimeError("x")

        pipeline = make_pipeline()
        pipeline.register_job(Job("build", [Step("Scratch", scratch)]))
        result = pipeline.run(main_push)

        assert result.job("build").failed_step == "Scratch"
        [workspace] = seen
        assert workspace.parent == pipeline.config.workspace_dir
        assert workspace.name.startswith(f"{result.run_id}-build-")
        assert not workspace.exists()
