"""Job dependency DAG with cascade blocking and skipping.

The graph enforces:
- No job runs unless every job it needs has PASSED.
- When a job fails, all transitive dependents are BLOCKED.
- When a job is skipped, all transitive dependents are SKIPPED.
"""

from __future__ import annotations

from collections import deque

from deckhand.models.jobs import JobDefinition, JobState


class NeedsNotMetError(RuntimeError):
    """Raised when a job cannot run because a needed job has not passed."""


class CyclicDependencyError(ValueError):
    """Raised when the job graph contains a cycle."""


class JobGraph:
    """Directed acyclic graph of job dependencies.

    Built from JobDefinition.needs when the pipeline is constructed.
    """

    def __init__(self, job_definitions: list[JobDefinition]) -> None:
        self._jobs: dict[str, JobDefinition] = {
            jd.job_id: jd for jd in job_definitions
        }
        self._needs: dict[str, list[str]] = {
            jd.job_id: list(jd.needs) for jd in job_definitions
        }
        for jd in job_definitions:
            unknown = [n for n in jd.needs if n not in self._jobs]
            if unknown:
                raise ValueError(
                    f"Job {jd.job_id} needs unknown job(s): {', '.join(unknown)}"
                )
        # Reverse edges: job_id -> jobs that need it
        self._dependents: dict[str, list[str]] = {
            jd.job_id: [] for jd in job_definitions
        }
        for jd in job_definitions:
            for need in jd.needs:
                self._dependents[need].append(jd.job_id)

        self._order = self._topological_order()

    def _topological_order(self) -> list[str]:
        """Kahn's algorithm, ties broken by ordinal."""
        in_degree = {jid: len(needs) for jid, needs in self._needs.items()}
        queue = deque(
            sorted(
                (jid for jid, deg in in_degree.items() if deg == 0),
                key=lambda j: self._jobs[j].ordinal,
            )
        )
        order: list[str] = []
        while queue:
            node = queue.popleft()
            order.append(node)
            for dep in sorted(
                self._dependents.get(node, []),
                key=lambda j: self._jobs[j].ordinal,
            ):
                in_degree[dep] -= 1
                if in_degree[dep] == 0:
                    queue.append(dep)

        if len(order) != len(self._jobs):
            raise CyclicDependencyError(
                f"Job graph has a cycle. "
                f"Ordered {len(order)}/{len(self._jobs)} jobs."
            )
        return order

    # ------------------------------------------------------------------
    # Query methods
    # ------------------------------------------------------------------

    @property
    def job_ids(self) -> list[str]:
        """Return all job_ids in topological order."""
        return list(self._order)

    def get_definition(self, job_id: str) -> JobDefinition:
        return self._jobs[job_id]

    def get_needs(self, job_id: str) -> list[str]:
        return list(self._needs.get(job_id, []))

    def get_dependents(self, job_id: str) -> list[str]:
        """Return all transitive dependent job_ids (BFS)."""
        result: list[str] = []
        queue = deque(self._dependents.get(job_id, []))
        visited: set[str] = set()
        while queue:
            node = queue.popleft()
            if node in visited:
                continue
            visited.add(node)
            result.append(node)
            queue.extend(self._dependents.get(node, []))
        return result

    # ------------------------------------------------------------------
    # Needs checking
    # ------------------------------------------------------------------

    def are_needs_met(self, job_id: str, states: dict[str, JobState]) -> bool:
        return all(
            states.get(need) == JobState.PASSED
            for need in self._needs.get(job_id, [])
        )

    def get_blocking_reasons(
        self, job_id: str, states: dict[str, JobState]
    ) -> list[str]:
        """Return human-readable reasons why a job cannot start."""
        reasons = []
        for need in self._needs.get(job_id, []):
            state = states.get(need, JobState.NOT_STARTED)
            if state != JobState.PASSED:
                name = self._jobs[need].display_name
                reasons.append(f"{name} ({need}) is {state.value}")
        return reasons

    # ------------------------------------------------------------------
    # Cascades
    # ------------------------------------------------------------------

    def cascade(
        self, job_id: str, states: dict[str, JobState], target: JobState
    ) -> list[str]:
        """Move every not-yet-started transitive dependent to *target*.

        Used with BLOCKED after a failure and SKIPPED after a skip.
        Returns the job_ids that changed state.
        """
        changed: list[str] = []
        for dependent in self.get_dependents(job_id):
            if states.get(dependent, JobState.NOT_STARTED) == JobState.NOT_STARTED:
                states[dependent] = target
                changed.append(dependent)
        return changed
