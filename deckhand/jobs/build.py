"""Build job: compile the binary and publish it as a named artifact.

Steps, in order:
    checkout -> install toolchain -> restore cache (best-effort)
        -> compile -> save cache (best-effort) -> publish artifact

An empty or missing source fails checkout; a checkout without the
manifest fails compile before the toolchain is invoked; a compile that
leaves no (or an empty) binary fails compile after it.

The toolchain channel applies to the compile command only, through
``RUSTUP_TOOLCHAIN``; the host's default toolchain is left alone.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from deckhand.core.build_cache import BuildCache
from deckhand.core.build_context import BuildContextError, ensure_context
from deckhand.jobs.base import Job, JobContext, Step
from deckhand.models.jobs import BUILD_JOB

logger = logging.getLogger(__name__)


class CompileError(RuntimeError):
    """Raised when compilation produced no usable binary."""


def _is_local_source(source: str) -> bool:
    return "://" not in source and not source.startswith("git@")


def checkout(ctx: JobContext) -> None:
    source = ctx.config.source
    if _is_local_source(source):
        source = str(ensure_context(Path(source)))

    dest = ctx.workspace / "src"
    if dest.exists():
        shutil.rmtree(dest)
    ctx.runner.run(["git", "clone", "--quiet", source, str(dest)])
    if ctx.event.sha:
        ctx.runner.run(
            ["git", "-C", str(dest), "checkout", "--quiet", "--detach", ctx.event.sha]
        )
    ctx.values["source_dir"] = dest


def install_toolchain(ctx: JobContext) -> None:
    channel = ctx.config.toolchain_channel
    ctx.runner.run(["rustup", "toolchain", "install", channel, "--profile", "minimal"])


def compile_binary(ctx: JobContext) -> None:
    source_dir: Path = ctx.values["source_dir"]
    ensure_context(source_dir, required=[ctx.config.manifest])

    env = {**os.environ, "RUSTUP_TOOLCHAIN": ctx.config.toolchain_channel}
    ctx.runner.run(ctx.config.compile_argv, cwd=source_dir, env=env)

    output = source_dir / ctx.config.output_path
    if not output.is_file():
        raise CompileError(f"Compiler produced no binary at {ctx.config.output_path}")
    if output.stat().st_size == 0:
        raise CompileError(f"Compiler produced an empty binary at {ctx.config.output_path}")
    ctx.values["binary_path"] = output


def publish_artifact(ctx: JobContext) -> None:
    artifact = ctx.artifact_store.publish(
        ctx.run_id,
        ctx.config.artifact_name,
        ctx.values["binary_path"],
        producing_job=ctx.job_id,
        relative_path=ctx.config.output_path,
    )
    ctx.artifacts.append(artifact)


def build_job(cache: BuildCache) -> Job:
    """Assemble the build job around a build cache."""

    def restore_cache(ctx: JobContext) -> None:
        source_dir: Path = ctx.values["source_dir"]
        key = cache.key_for(
            source_dir,
            lockfile=ctx.config.lockfile,
            toolchain=f"{ctx.config.toolchain}-{ctx.config.toolchain_channel}",
        )
        ctx.values["cache_key"] = key
        cache.restore(key, source_dir / "target")

    def save_cache(ctx: JobContext) -> None:
        key = ctx.values.get("cache_key")
        if key is None:
            return
        cache.save(key, ctx.values["source_dir"] / "target")

    return Job(
        BUILD_JOB,
        [
            Step("Checkout", checkout),
            Step("Install toolchain", install_toolchain),
            Step("Restore build cache", restore_cache, best_effort=True),
            Step("Compile", compile_binary),
            Step("Save build cache", save_cache, best_effort=True),
            Step("Upload artifact", publish_artifact),
        ],
    )
