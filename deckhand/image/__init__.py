"""Container image assembly: Dockerfile rendering, presets, docker builds."""

from deckhand.image.builder import ImageBuilder, ImageBuildError, ImageBuildResult
from deckhand.image.dockerfile import render_dockerfile
from deckhand.image.presets import PRESETS, get_preset

__all__ = [
    "ImageBuilder",
    "ImageBuildError",
    "ImageBuildResult",
    "render_dockerfile",
    "PRESETS",
    "get_preset",
]
