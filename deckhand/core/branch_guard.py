"""Branch guard: decides whether a run may enter guarded jobs.

A pure predicate over the triggering ref: exact string equality with the
one designated release ref. ``refs/heads/main2`` and
``refs/heads/feature/main`` do not match ``refs/heads/main``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from deckhand.models.events import PushEvent


class GuardDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: str


class BranchGuard(BaseModel):
    """Gate for jobs that only run on the release ref."""

    model_config = ConfigDict(frozen=True)

    release_ref: str = "refs/heads/main"

    def allows(self, ref: str) -> bool:
        return ref == self.release_ref

    def evaluate(self, event: PushEvent) -> GuardDecision:
        if self.allows(event.ref):
            return GuardDecision(
                allowed=True, reason=f"{event.ref} is the release ref"
            )
        return GuardDecision(
            allowed=False,
            reason=f"{event.ref} is not {self.release_ref}",
        )
