"""Run monitor: read-only ledger projection and rich rendering."""

from deckhand.monitor.projection import JobStatus, RunProjection, RunSnapshot
from deckhand.monitor.renderer import RunRenderer

__all__ = ["JobStatus", "RunProjection", "RunSnapshot", "RunRenderer"]
