"""Build artifact models: named files handed from one job to another."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class BuildArtifact(BaseModel):
    """A single named file produced by a job and persisted by the store.

    The content_address is the SHA-256 hex digest of the file bytes and
    doubles as the integrity check when the artifact is fetched.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    path: str  # relative output path inside the producing job's workspace
    producing_job: str
    run_id: str
    content_address: str  # "sha256:<hex>"
    size_bytes: int
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
