"""Unit tests for the CLI: command registration and behavior via CliRunner."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from deckhand.cli.commands import run as run_module
from deckhand.cli.app import app
from deckhand.core.orchestrator import Pipeline
from deckhand.core.run_ledger import RunLedger
from deckhand.models.events import PushEvent
from deckhand.models.jobs import JobState

runner = CliRunner()


@pytest.fixture
def state_env(tmp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point every DECKHAND_* storage path into the temp directory."""
    state = tmp_dir / "cli-state"
    monkeypatch.chdir(tmp_dir)
    monkeypatch.setenv("DECKHAND_LEDGER_PATH", str(state / "ledger.db"))
    monkeypatch.setenv("DECKHAND_ARTIFACT_STORE_PATH", str(state / "artifacts"))
    monkeypatch.setenv("DECKHAND_CACHE_DIR", str(state / "cache"))
    monkeypatch.setenv("DECKHAND_WORKSPACE_DIR", str(state / "workspaces"))
    return state


@pytest.fixture
def patched_pipeline(monkeypatch: pytest.MonkeyPatch, fake_runner, deploy_secrets):
    def _pipeline(config):
        return Pipeline(config, runner=fake_runner, secrets=deploy_secrets)

    monkeypatch.setattr(run_module, "Pipeline", _pipeline)
    return fake_runner


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class TestCliApp:
    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        # Typer's no_args_is_help may exit with 0 or 2 depending on version
        assert result.exit_code in (0, 2)
        assert "usage" in result.output.lower()

    @pytest.mark.parametrize("command", ["run", "guard", "monitor", "runs", "image"])
    def test_command_registered(self, command: str):
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0


# ---------------------------------------------------------------------------
# guard
# ---------------------------------------------------------------------------


class TestGuardCommand:
    def test_main_allowed(self):
        result = runner.invoke(app, ["guard", "refs/heads/main"])
        assert result.exit_code == 0
        assert "allowed" in result.output

    @pytest.mark.parametrize("ref", ["refs/heads/main2", "refs/heads/feature/main"])
    def test_near_match_rejected(self, ref: str):
        result = runner.invoke(app, ["guard", ref])
        assert result.exit_code == 1
        assert "skipped" in result.output


# ---------------------------------------------------------------------------
# image
# ---------------------------------------------------------------------------


class TestImageCommands:
    def test_list(self):
        result = runner.invoke(app, ["image", "list"])
        assert result.exit_code == 0
        for name in ("apwm", "apwm-compiled", "rust-builder"):
            assert name in result.output

    def test_render_to_stdout(self):
        result = runner.invoke(app, ["image", "render", "apwm-compiled"])
        assert result.exit_code == 0
        assert result.output.startswith("FROM rust:1.79-bookworm AS build")

    def test_render_to_file(self, tmp_dir: Path):
        out = tmp_dir / "Dockerfile"
        result = runner.invoke(app, ["image", "render", "apwm", "-o", str(out)])
        assert result.exit_code == 0
        assert out.read_text(encoding="utf-8").startswith("FROM debian:12-slim")

    def test_render_unknown(self):
        result = runner.invoke(app, ["image", "render", "nope"])
        assert result.exit_code == 1

    def test_build_empty_context(self, tmp_dir: Path, state_env: Path):
        empty = tmp_dir / "empty"
        empty.mkdir()
        result = runner.invoke(app, ["image", "build", "apwm", "--context", str(empty)])
        assert result.exit_code == 1
        assert "Invalid build context" in result.output


# ---------------------------------------------------------------------------
# run / monitor / runs
# ---------------------------------------------------------------------------


class TestRunCommand:
    def test_feature_push_succeeds_without_deploy(
        self, state_env: Path, patched_pipeline, source_repo: Path
    ):
        result = runner.invoke(
            app,
            ["run", "--ref", "refs/heads/feature/x", "--source", str(source_repo),
             "--run-id", "dh-cli-1"],
        )
        assert result.exit_code == 0, result.output
        assert "dh-cli-1" in result.output
        assert patched_pipeline.commands("scp") == []

        ledger = RunLedger(state_env / "ledger.db")
        [deploy_entry] = [e for e in ledger.entries("dh-cli-1") if e.job_id == "deploy"]
        assert deploy_entry.state_transition == f"not_started->{JobState.SKIPPED.value}"

    def test_reused_run_id_exits_nonzero(
        self, state_env: Path, patched_pipeline, source_repo: Path
    ):
        args = ["run", "--ref", "refs/heads/feature/x", "--source", str(source_repo),
                "--run-id", "dh-cli-dup"]
        assert runner.invoke(app, args).exit_code == 0
        calls = len(patched_pipeline.calls)

        result = runner.invoke(app, args)
        assert result.exit_code == 1
        assert "already recorded" in result.output
        assert len(patched_pipeline.calls) == calls

    def test_compile_failure_exits_nonzero(
        self, state_env: Path, monkeypatch: pytest.MonkeyPatch, make_runner,
        deploy_secrets, source_repo: Path,
    ):
        failing = make_runner(fail_on=["cargo"])
        monkeypatch.setattr(
            run_module, "Pipeline",
            lambda config: Pipeline(config, runner=failing, secrets=deploy_secrets),
        )
        result = runner.invoke(
            app, ["run", "--ref", "refs/heads/main", "--source", str(source_repo)]
        )
        assert result.exit_code == 1
        assert "Compile" in result.output

    def test_missing_config_file(self, state_env: Path, tmp_dir: Path):
        result = runner.invoke(
            app, ["run", "--ref", "refs/heads/main", "--config", str(tmp_dir / "none.toml")]
        )
        assert result.exit_code == 1
        assert "Config error" in result.output

    @pytest.mark.parametrize(
        "content",
        [
            'source = "unterminated\n',
            "toolchain_channel = 179\n",
        ],
        ids=["toml-syntax", "invalid-value"],
    )
    def test_malformed_config_file(self, state_env: Path, tmp_dir: Path, content: str):
        config = tmp_dir / "deckhand.toml"
        config.write_text(content, encoding="utf-8")
        result = runner.invoke(app, ["run", "--ref", "refs/heads/main", "--config", str(config)])
        assert result.exit_code == 1
        assert "Config error" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)


class TestMonitorCommands:
    def test_monitor_missing_ledger(self, tmp_dir: Path):
        result = runner.invoke(app, ["monitor", "x", "--ledger", str(tmp_dir / "none.db")])
        assert result.exit_code == 1
        assert "Ledger not found" in result.output

    def test_monitor_and_runs(self, make_pipeline, pipeline_config, main_push: PushEvent):
        make_pipeline().run(main_push, run_id="dh-mon-1")
        db = str(pipeline_config.ledger_db_path)

        result = runner.invoke(app, ["monitor", "dh-mon-1", "--ledger", db, "--verify-chain"])
        assert result.exit_code == 0, result.output
        assert "is valid" in result.output
        assert "PASSED" in result.output

        result = runner.invoke(app, ["runs", "--ledger", db])
        assert result.exit_code == 0
        assert "dh-mon-1" in result.output

    def test_monitor_unknown_run(self, make_pipeline, pipeline_config, main_push: PushEvent):
        make_pipeline().run(main_push, run_id="dh-mon-2")
        result = runner.invoke(
            app, ["monitor", "nope", "--ledger", str(pipeline_config.ledger_db_path)]
        )
        assert result.exit_code == 1
        assert "dh-mon-2" in result.output
