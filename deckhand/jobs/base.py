"""Job and step primitives with an enforced lifecycle.

A job is an ordered list of steps run against one ``JobContext``. The
lifecycle in ``Job.run()`` is fixed:

    open resource scope -> run each step in order -> close resource scope

A step failure aborts the job immediately and surfaces as
``StepFailedError``; steps flagged ``best_effort`` log the error and let
the job continue. Resources entered on ``ctx.resources`` (deploy
credentials) are released when the job ends, pass or fail.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextlib import ExitStack
from pathlib import Path
from typing import Any, final

from deckhand.core.artifact_store import ArtifactStore
from deckhand.core.runner import CommandRunner
from deckhand.models.artifacts import BuildArtifact
from deckhand.models.config import PipelineConfig
from deckhand.models.events import PushEvent

logger = logging.getLogger(__name__)


class StepFailedError(RuntimeError):
    """Raised when a required step of a job fails."""

    def __init__(self, job_id: str, step_name: str, cause: BaseException) -> None:
        super().__init__(f"{job_id}: step '{step_name}' failed: {cause}")
        self.job_id = job_id
        self.step_name = step_name


class JobContext:
    """Run-wide inputs and per-job scratch state handed to every step.

    Parameters
    ----------
    run_id, job_id:
        Identify the run and the job being executed.
    event:
        The push event that triggered the run.
    config:
        Pipeline configuration.
    workspace:
        Private working directory of this job.
    runner:
        Backend for external commands.
    artifact_store:
        Where named artifacts are published and fetched.
    """

    def __init__(
        self,
        *,
        run_id: str,
        job_id: str,
        event: PushEvent,
        config: PipelineConfig,
        workspace: Path,
        runner: CommandRunner,
        artifact_store: ArtifactStore,
    ) -> None:
        self.run_id = run_id
        self.job_id = job_id
        self.event = event
        self.config = config
        self.workspace = Path(workspace)
        self.runner = runner
        self.artifact_store = artifact_store
        self.values: dict[str, Any] = {}
        self.artifacts: list[BuildArtifact] = []
        self.resources = ExitStack()


class Step:
    """A named unit of work inside a job."""

    def __init__(
        self,
        name: str,
        action: Callable[[JobContext], None],
        *,
        best_effort: bool = False,
    ) -> None:
        self.name = name
        self.action = action
        self.best_effort = best_effort

    def __repr__(self) -> str:
        flag = " [best-effort]" if self.best_effort else ""
        return f"<Step {self.name!r}{flag}>"


class Job:
    """An ordered list of steps bound to a job id."""

    def __init__(self, job_id: str, steps: list[Step]) -> None:
        self.job_id = job_id
        self.steps = list(steps)

    @final
    def run(self, ctx: JobContext) -> None:
        """Execute every step in order.  **Do not override.**"""
        ctx.workspace.mkdir(parents=True, exist_ok=True)
        with ctx.resources:
            for step in self.steps:
                logger.info("[%s] %s", self.job_id, step.name)
                try:
                    step.action(ctx)
                except Exception as exc:
                    if step.best_effort:
                        logger.warning(
                            "[%s] %s failed, continuing: %s",
                            self.job_id, step.name, exc,
                        )
                        continue
                    logger.error("[%s] %s failed: %s", self.job_id, step.name, exc)
                    raise StepFailedError(self.job_id, step.name, exc) from exc

    def __repr__(self) -> str:
        return f"<Job {self.job_id!r} steps={[s.name for s in self.steps]}>"
