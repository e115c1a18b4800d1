"""Pipeline and run configuration models."""

from __future__ import annotations

import tomllib
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from deckhand.models.events import PushEvent
from deckhand.models.jobs import DEFAULT_JOB_DEFINITIONS, JobDefinition


class PipelineConfig(BaseModel):
    """Project-level configuration for the build-and-deploy pipeline.

    Loaded from deckhand.toml or pyproject.toml [tool.deckhand].
    """

    model_config = ConfigDict(frozen=True)

    project_name: str = "apwm"

    # Build job
    source: str = "."
    toolchain: str = "cargo"
    toolchain_channel: str = "stable"
    binary: str = "apwm"
    features: list[str] = ["cli"]
    manifest: str = "Cargo.toml"
    lockfile: str = "Cargo.lock"
    artifact_name: str = "apwm"

    # Deploy job
    release_ref: str = "refs/heads/main"
    key_filename: str = "id_ed25519"
    strict_host_key_checking: bool = False

    # Storage
    artifact_store_path: Path = Path(".deckhand/artifacts")
    ledger_db_path: Path = Path(".deckhand/ledger.db")
    cache_dir: Path = Path(".deckhand/cache")
    workspace_dir: Path = Path(".deckhand/workspaces")

    @property
    def output_path(self) -> str:
        """Relative path of the compiled release binary."""
        return f"target/release/{self.binary}"

    @property
    def compile_argv(self) -> list[str]:
        argv = [self.toolchain, "build", "--bin", self.binary]
        if self.features:
            argv += ["--features", ",".join(self.features)]
        argv.append("--release")
        return argv


class RunConfig(BaseModel):
    """Per-run configuration, created when a push event starts a run."""

    model_config = ConfigDict(frozen=True)

    run_id: str = Field(default_factory=lambda: f"dh-{uuid.uuid4().hex[:12]}")
    event: PushEvent
    pipeline_config: PipelineConfig = PipelineConfig()
    job_plan: list[JobDefinition] = Field(
        default_factory=lambda: list(DEFAULT_JOB_DEFINITIONS)
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


def load_pipeline_config(path: Path | None = None, **overrides: Any) -> PipelineConfig:
    """Load a PipelineConfig from a TOML file.

    ``deckhand.toml`` is read as a flat table; ``pyproject.toml`` is read
    from ``[tool.deckhand]``. With no *path*, ``deckhand.toml`` then
    ``pyproject.toml`` in the working directory are tried, falling back to
    defaults. Keyword *overrides* win over file values.
    """
    if path is not None and not Path(path).is_file():
        raise FileNotFoundError(f"Pipeline config not found: {path}")

    candidates = [Path(path)] if path is not None else [
        Path("deckhand.toml"),
        Path("pyproject.toml"),
    ]
    data: dict[str, Any] = {}
    for candidate in candidates:
        if not candidate.is_file():
            continue
        with candidate.open("rb") as fh:
            raw = tomllib.load(fh)
        if candidate.name == "pyproject.toml":
            raw = raw.get("tool", {}).get("deckhand", {})
        data = dict(raw)
        break

    data.update({k: v for k, v in overrides.items() if v is not None})
    return PipelineConfig(**data)
