"""Read-only view of one recorded run, rebuilt from the RunLedger.

Every call re-reads the ledger; the projection keeps no state of its own.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from deckhand.core.run_ledger import LedgerIntegrityError, RunLedger
from deckhand.models.jobs import DEFAULT_JOB_DEFINITIONS, JobDefinition, JobState


class JobStatus(BaseModel):
    """Point-in-time status of a single job, derived from ledger entries."""

    model_config = ConfigDict(frozen=True)

    job_id: str
    display_name: str
    state: JobState = JobState.NOT_STARTED
    entered_at: datetime | None = None
    failed_step: str = ""
    detail: str = ""
    artifact_refs: list[str] = []


class RunSnapshot(BaseModel):
    """A frozen, point-in-time snapshot of a pipeline run."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    ref: str = ""
    sha: str = ""
    jobs: list[JobStatus] = []
    chain_valid: bool = True
    last_updated: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def artifact_count(self) -> int:
        return sum(len(j.artifact_refs) for j in self.jobs)

    @property
    def failed(self) -> bool:
        return any(j.state == JobState.FAILED for j in self.jobs)

    @property
    def finished(self) -> bool:
        return all(
            j.state not in (JobState.NOT_STARTED, JobState.RUNNING)
            for j in self.jobs
        )


class RunProjection:
    """Projects ledger entries of a run into a ``RunSnapshot``.

    Parameters
    ----------
    ledger:
        The RunLedger to project from.
    job_definitions:
        Job definitions for display names and ordering.
    """

    def __init__(
        self,
        ledger: RunLedger,
        job_definitions: list[JobDefinition] | None = None,
    ) -> None:
        self._ledger = ledger
        self._job_defs = sorted(
            job_definitions or DEFAULT_JOB_DEFINITIONS, key=lambda jd: jd.ordinal
        )

    def snapshot(self, run_id: str) -> RunSnapshot:
        record = self._ledger.get_run(run_id)

        statuses: dict[str, JobStatus] = {
            jd.job_id: JobStatus(job_id=jd.job_id, display_name=jd.display_name)
            for jd in self._job_defs
        }
        for entry in self._ledger.entries(run_id):
            current = statuses.get(entry.job_id) or JobStatus(
                job_id=entry.job_id, display_name=entry.job_id
            )
            statuses[entry.job_id] = current.model_copy(
                update={
                    "state": entry.to_state,
                    "entered_at": entry.recorded_at,
                    "failed_step": entry.step,
                    "detail": entry.detail,
                    "artifact_refs": current.artifact_refs + entry.artifact_references,
                }
            )

        try:
            chain_valid = self._ledger.verify_chain(run_id)
        except LedgerIntegrityError:
            chain_valid = False

        return RunSnapshot(
            run_id=run_id,
            ref=record.ref if record else "",
            sha=record.sha if record else "",
            jobs=list(statuses.values()),
            chain_valid=chain_valid,
        )
