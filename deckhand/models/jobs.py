"""Job state machine models: CI jobs and their allowed transitions."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class JobState(str, Enum):
    """Strict state model for each pipeline job."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    BLOCKED = "blocked"


TERMINAL_STATES: frozenset[JobState] = frozenset(
    {JobState.PASSED, JobState.FAILED, JobState.SKIPPED, JobState.BLOCKED}
)

# Valid state transitions, enforced by JobMachine.
# There is no retry: every state reached after RUNNING is terminal.
VALID_TRANSITIONS: dict[JobState, set[JobState]] = {
    JobState.NOT_STARTED: {JobState.RUNNING, JobState.SKIPPED, JobState.BLOCKED},
    JobState.RUNNING: {JobState.PASSED, JobState.FAILED},
    JobState.PASSED: set(),
    JobState.FAILED: set(),
    JobState.SKIPPED: set(),
    JobState.BLOCKED: set(),
}


class JobDefinition(BaseModel):
    """Defines a pipeline job and the jobs it needs.

    ``needs`` encodes the DAG: a job cannot enter RUNNING unless every job
    it needs has PASSED. ``guarded`` jobs additionally run only when the
    branch guard accepts the triggering ref.
    """

    model_config = ConfigDict(frozen=True)

    job_id: str
    display_name: str
    ordinal: int
    needs: list[str] = []
    guarded: bool = False


BUILD_JOB = "build"
DEPLOY_JOB = "deploy"

DEFAULT_JOB_DEFINITIONS: list[JobDefinition] = [
    JobDefinition(
        job_id=BUILD_JOB,
        display_name="Build",
        ordinal=0,
    ),
    JobDefinition(
        job_id=DEPLOY_JOB,
        display_name="Deploy",
        ordinal=1,
        needs=[BUILD_JOB],
        guarded=True,
    ),
]
