"""Pipeline orchestrator: runs one push event through the job graph.

The Pipeline wires together the RunLedger, JobGraph, JobMachine,
ArtifactStore, BuildCache and BranchGuard. For each push it walks the
jobs in dependency order:

- a job whose needs failed is already BLOCKED and never starts,
- a guarded job on a non-release ref is SKIPPED (not an error),
- otherwise the job goes RUNNING and ends PASSED or FAILED.

No job is retried and nothing is rolled back.
"""

from __future__ import annotations

import logging
import tempfile
import uuid
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from deckhand.config import DeploySecrets
from deckhand.core.artifact_store import ArtifactStore
from deckhand.core.branch_guard import BranchGuard
from deckhand.core.build_cache import BuildCache
from deckhand.core.job_graph import JobGraph
from deckhand.core.job_machine import JobMachine
from deckhand.core.run_ledger import RunLedger
from deckhand.core.runner import CommandRunner, SubprocessRunner
from deckhand.jobs.base import Job, JobContext, StepFailedError
from deckhand.jobs.build import build_job
from deckhand.jobs.deploy import deploy_job
from deckhand.models.artifacts import BuildArtifact
from deckhand.models.config import PipelineConfig, RunConfig
from deckhand.models.events import PushEvent
from deckhand.models.jobs import (
    BUILD_JOB,
    DEFAULT_JOB_DEFINITIONS,
    DEPLOY_JOB,
    JobDefinition,
    JobState,
)

logger = logging.getLogger(__name__)


class JobResult(BaseModel):
    """Outcome of one job within a run."""

    model_config = ConfigDict(frozen=True)

    job_id: str
    state: JobState
    failed_step: str | None = None
    error: str | None = None
    detail: str = ""
    artifacts: list[BuildArtifact] = []


class PipelineResult(BaseModel):
    """Outcome of a whole run."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    event: PushEvent
    jobs: list[JobResult]

    @property
    def succeeded(self) -> bool:
        """A run succeeds when no job failed; skipped jobs do not count."""
        return not any(j.state == JobState.FAILED for j in self.jobs)

    def job(self, job_id: str) -> JobResult:
        for result in self.jobs:
            if result.job_id == job_id:
                return result
        raise KeyError(job_id)

    def state_of(self, job_id: str) -> JobState:
        return self.job(job_id).state


class Pipeline:
    """Central pipeline orchestrator.

    Parameters
    ----------
    config:
        Pipeline configuration. Uses defaults if not provided.
    runner:
        Backend for external commands. ``SubprocessRunner`` by default.
    secrets:
        Deploy secrets. Read from ``DEPLOY_*`` environment variables by default.
    job_definitions:
        The job graph. Defaults to build -> deploy.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        *,
        runner: CommandRunner | None = None,
        secrets: DeploySecrets | None = None,
        job_definitions: list[JobDefinition] | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self.runner = runner or SubprocessRunner()
        self.secrets = secrets if secrets is not None else DeploySecrets()

        # Core subsystems
        self.ledger = RunLedger(self.config.ledger_db_path)
        self.artifact_store = ArtifactStore(self.config.artifact_store_path)
        self.build_cache = BuildCache(self.config.cache_dir)
        self.job_definitions = list(job_definitions or DEFAULT_JOB_DEFINITIONS)
        self.graph = JobGraph(self.job_definitions)
        self.job_machine = JobMachine(self.ledger, self.graph)
        self.guard = BranchGuard(release_ref=self.config.release_ref)

        # Job registry
        self._jobs: dict[str, Job] = {}
        if BUILD_JOB in self.graph.job_ids:
            self.register_job(build_job(self.build_cache))
        if DEPLOY_JOB in self.graph.job_ids:
            self.register_job(deploy_job(self.secrets))

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register_job(self, job: Job) -> None:
        """Register (or replace) the steps run for ``job.job_id``."""
        if job.job_id not in self.graph.job_ids:
            raise KeyError(f"Job {job.job_id!r} is not part of the job graph")
        self._jobs[job.job_id] = job

    def get_job(self, job_id: str) -> Job:
        return self._jobs.get(job_id) or Job(job_id, [])

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    @staticmethod
    def new_run_id() -> str:
        ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        return f"dh-{ts}-{uuid.uuid4().hex[:6]}"

    def run(self, event: PushEvent, *, run_id: str | None = None) -> PipelineResult:
        """Run every job for *event* and return the outcome.

        Each job works in a temporary directory under ``workspace_dir`` that
        is removed when the job ends. Raises ``RunExistsError`` when *run_id*
        is already recorded in the ledger; nothing is run in that case.
        """
        run_config = RunConfig(
            run_id=run_id or self.new_run_id(),
            event=event,
            pipeline_config=self.config,
            job_plan=self.job_definitions,
        )
        rid = run_config.run_id
        self.job_machine.initialize_run(rid, event)
        logger.info("Run %s started for %s %s", rid, event.ref, event.sha[:12])

        results: dict[str, JobResult] = {}
        for job_id in self.graph.job_ids:
            results[job_id] = self._run_job(run_config, job_id)

        # Cascaded states are decided by the machine, not by _run_job
        states = self.job_machine.get_all_states(rid)
        ordered = [
            results[jid].model_copy(update={"state": states[jid]})
            for jid in self.graph.job_ids
        ]
        result = PipelineResult(run_id=rid, event=event, jobs=ordered)
        logger.info(
            "Run %s finished: %s",
            rid,
            "success" if result.succeeded else "failure",
        )
        return result

    def _run_job(self, run_config: RunConfig, job_id: str) -> JobResult:
        rid = run_config.run_id
        event = run_config.event
        definition = self.graph.get_definition(job_id)

        current = self.job_machine.get_current_state(rid, job_id)
        if current != JobState.NOT_STARTED:
            logger.info("[%s] not started: %s", job_id, current.value)
            return JobResult(job_id=job_id, state=current)

        if definition.guarded:
            decision = self.guard.evaluate(event)
            if not decision.allowed:
                self.job_machine.transition(
                    rid, job_id, JobState.SKIPPED, detail=decision.reason
                )
                logger.info("[%s] skipped: %s", job_id, decision.reason)
                return JobResult(
                    job_id=job_id, state=JobState.SKIPPED, detail=decision.reason
                )

        self.config.workspace_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(
            prefix=f"{rid}-{job_id}-", dir=self.config.workspace_dir
        ) as workspace:
            ctx = JobContext(
                run_id=rid,
                job_id=job_id,
                event=event,
                config=self.config,
                workspace=Path(workspace),
                runner=self.runner,
                artifact_store=self.artifact_store,
            )
            self.job_machine.transition(rid, job_id, JobState.RUNNING)
            try:
                self.get_job(job_id).run(ctx)
            except StepFailedError as exc:
                self.job_machine.transition(
                    rid, job_id, JobState.FAILED, step=exc.step_name, detail=str(exc)
                )
                return JobResult(
                    job_id=job_id,
                    state=JobState.FAILED,
                    failed_step=exc.step_name,
                    error=str(exc),
                )

        self.job_machine.transition(
            rid,
            job_id,
            JobState.PASSED,
            artifact_references=[a.content_address for a in ctx.artifacts],
        )
        return JobResult(
            job_id=job_id, state=JobState.PASSED, artifacts=list(ctx.artifacts)
        )

    # ------------------------------------------------------------------
    # Query methods
    # ------------------------------------------------------------------

    def get_states(self, run_id: str) -> dict[str, JobState]:
        return self.job_machine.get_all_states(run_id)

    def verify_chain(self, run_id: str) -> bool:
        return self.ledger.verify_chain(run_id)
