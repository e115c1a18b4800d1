"""Trigger events that start a pipeline run."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class PushEvent(BaseModel):
    """A push of *sha* to *ref* (fully qualified, e.g. ``refs/heads/main``)."""

    model_config = ConfigDict(frozen=True)

    ref: str
    sha: str = ""
