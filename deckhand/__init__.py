"""Deckhand: build-and-deploy pipeline for the apwm binary.

  - Container images for the apwm family (compile-then-package or
    copy-prebuilt, shared worker layout)
  - Build job on every push, deploy job on refs/heads/main only
  - Scoped deploy credential, discarded when the job ends
  - Content-addressed artifacts and a hash-chained run ledger
"""

__version__ = "0.1.0"
__description__ = "Build-and-deploy pipeline for the apwm binary"

from deckhand.core.branch_guard import BranchGuard
from deckhand.core.orchestrator import Pipeline, PipelineResult
from deckhand.image.builder import ImageBuilder
from deckhand.cli.app import app as cli

__all__ = [
    "Pipeline",
    "PipelineResult",
    "BranchGuard",
    "ImageBuilder",
    "cli",
    "__version__",
]
