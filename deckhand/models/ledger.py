"""Run ledger records: one header per run, one entry per job transition.

The header pins what the run was started for (ref and sha). Entries hold
job outcomes, including the step that failed, and are chained: the first
entry links to the header hash, every later entry to the entry before it.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from deckhand.models.jobs import JobState


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunRecord(BaseModel):
    """Header of a recorded run."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    ref: str
    sha: str = ""
    opened_at: datetime = Field(default_factory=_utcnow)
    header_hash: str = ""


class LedgerEntry(BaseModel):
    """A job moving from one state to another within a run."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    job_id: str
    from_state: JobState
    to_state: JobState
    step: str = ""  # failing step, for running->failed
    detail: str = ""
    artifact_references: list[str] = []  # content addresses
    recorded_at: datetime = Field(default_factory=_utcnow)
    previous_hash: str = ""
    entry_hash: str = ""

    @property
    def state_transition(self) -> str:
        return f"{self.from_state.value}->{self.to_state.value}"
