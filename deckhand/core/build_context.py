"""Build context validation shared by the build job and the image builder.

A build context must be an existing, non-empty directory holding every
path the build is going to read. Validation happens before any external
tool runs, so a bad context fails the same way every time.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path


class BuildContextError(RuntimeError):
    """Raised when a build context is missing, empty or incomplete."""


def ensure_context(context: Path, required: Iterable[str] = ()) -> Path:
    """Validate *context* and return it resolved.

    Parameters
    ----------
    context:
        Directory to validate.
    required:
        Paths, relative to *context*, that must exist.
    """
    context = Path(context)
    if not context.is_dir():
        raise BuildContextError(f"Build context does not exist: {context}")
    if not any(context.iterdir()):
        raise BuildContextError(f"Build context is empty: {context}")

    missing = [rel for rel in required if not (context / rel).exists()]
    if missing:
        raise BuildContextError(
            f"Build context {context} is missing: {', '.join(missing)}"
        )
    return context.resolve()
