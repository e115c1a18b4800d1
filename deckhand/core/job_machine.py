"""Deterministic job state machine.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table)
- Needs checked before RUNNING
- Cascade blocking on failure, cascade skipping on skip
- Every transition recorded in the Run Ledger
"""

from __future__ import annotations

from deckhand.core.job_graph import JobGraph, NeedsNotMetError
from deckhand.core.run_ledger import RunLedger
from deckhand.models.events import PushEvent
from deckhand.models.jobs import VALID_TRANSITIONS, JobState
from deckhand.models.ledger import LedgerEntry


class InvalidTransitionError(RuntimeError):
    """Raised when a requested state transition is not valid."""


class JobMachine:
    """Enforces the job state machine with needs checking.

    Parameters
    ----------
    ledger:
        The Run Ledger to record transitions into.
    graph:
        The job graph for dependency checking.
    """

    def __init__(self, ledger: RunLedger, graph: JobGraph) -> None:
        self._ledger = ledger
        self._graph = graph
        # In-memory state cache: run_id -> {job_id -> JobState}
        self._states: dict[str, dict[str, JobState]] = {}

    # ------------------------------------------------------------------
    # State management
    # ------------------------------------------------------------------

    def initialize_run(self, run_id: str, event: PushEvent) -> dict[str, JobState]:
        """Open *run_id* in the ledger with every job NOT_STARTED.

        Raises ``RunExistsError`` when the ledger already holds the run.
        """
        self._ledger.open_run(run_id, ref=event.ref, sha=event.sha)
        states = {jid: JobState.NOT_STARTED for jid in self._graph.job_ids}
        self._states[run_id] = states
        return dict(states)

    def get_current_state(self, run_id: str, job_id: str) -> JobState:
        return self._states_for(run_id).get(job_id, JobState.NOT_STARTED)

    def get_all_states(self, run_id: str) -> dict[str, JobState]:
        """Return a snapshot of all job states for a run."""
        return dict(self._states_for(run_id))

    def _states_for(self, run_id: str) -> dict[str, JobState]:
        if run_id not in self._states:
            states = {jid: JobState.NOT_STARTED for jid in self._graph.job_ids}
            for entry in self._ledger.entries(run_id):
                if entry.job_id in states:
                    states[entry.job_id] = entry.to_state
            self._states[run_id] = states
        return self._states[run_id]

    # ------------------------------------------------------------------
    # Transition logic
    # ------------------------------------------------------------------

    def transition(
        self,
        run_id: str,
        job_id: str,
        target_state: JobState,
        *,
        step: str = "",
        detail: str = "",
        artifact_references: list[str] | None = None,
    ) -> LedgerEntry:
        """Transition a job to a new state, recording it in the ledger.

        Validates:
        1. The transition is allowed by VALID_TRANSITIONS.
        2. If target is RUNNING, every needed job has passed.
        3. FAILED blocks dependents, SKIPPED skips them.

        Returns the sealed LedgerEntry.
        """
        states = self._states_for(run_id)
        current = states.get(job_id, JobState.NOT_STARTED)

        allowed = VALID_TRANSITIONS.get(current, set())
        if target_state not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition {job_id} from {current.value} to {target_state.value}. "
                f"Allowed: {sorted(s.value for s in allowed)}"
            )

        if target_state == JobState.RUNNING and not self._graph.are_needs_met(
            job_id, states
        ):
            reasons = self._graph.get_blocking_reasons(job_id, states)
            raise NeedsNotMetError(
                f"Cannot start {job_id}: needs not met. "
                f"Blocked by: {'; '.join(reasons)}"
            )

        sealed = self._ledger.append(
            LedgerEntry(
                run_id=run_id,
                job_id=job_id,
                from_state=current,
                to_state=target_state,
                step=step,
                detail=detail,
                artifact_references=artifact_references or [],
            )
        )
        states[job_id] = target_state

        cascade_target = {
            JobState.FAILED: JobState.BLOCKED,
            JobState.SKIPPED: JobState.SKIPPED,
        }.get(target_state)
        if cascade_target is not None:
            for dependent in self._graph.cascade(job_id, states, cascade_target):
                self._ledger.append(
                    LedgerEntry(
                        run_id=run_id,
                        job_id=dependent,
                        from_state=JobState.NOT_STARTED,
                        to_state=cascade_target,
                        detail=f"{job_id} {target_state.value}",
                    )
                )

        return sealed
