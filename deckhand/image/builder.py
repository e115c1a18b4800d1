"""Image builder: turns an ``ImageSpec`` plus a build context into an image.

The builder validates the context, renders the Dockerfile into a private
temporary directory and drives ``docker build``. Any failing layer fails
the whole build; there is no partial result and no retry.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from deckhand.core.build_context import ensure_context
from deckhand.core.hasher import sha256_hex
from deckhand.core.runner import CommandFailedError, CommandRunner
from deckhand.image.dockerfile import render_dockerfile
from deckhand.models.image import CompileThenPackage, CopyPrebuilt, ImageSpec

logger = logging.getLogger(__name__)


class ImageBuildError(RuntimeError):
    """Raised when the container build itself fails."""


class ImageBuildResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    reference: str
    image_id: str
    dockerfile_hash: str
    strategy: str


def required_context_paths(spec: ImageSpec) -> list[str]:
    """Paths the build reads from its context."""
    strategy = spec.strategy
    if isinstance(strategy, CompileThenPackage):
        return [strategy.manifest]
    if isinstance(strategy, CopyPrebuilt):
        return [f.src for f in strategy.files if f.from_stage is None]
    return []


class ImageBuilder:
    """Builds container images with the docker CLI.

    Parameters
    ----------
    runner:
        Backend used to invoke docker.
    docker:
        Name or path of the docker-compatible CLI.
    """

    def __init__(self, runner: CommandRunner, *, docker: str = "docker") -> None:
        self._runner = runner
        self._docker = docker

    def dockerfile_for(self, spec: ImageSpec) -> str:
        return render_dockerfile(spec)

    def build(self, spec: ImageSpec, context: Path) -> ImageBuildResult:
        """Build *spec* from *context* and return the resulting image id."""
        context = ensure_context(Path(context), required_context_paths(spec))
        dockerfile = self.dockerfile_for(spec)
        dockerfile_hash = sha256_hex(dockerfile.encode("utf-8"))
        logger.info(
            "Building %s (%s strategy) from %s",
            spec.reference, spec.strategy.kind, context,
        )

        with tempfile.TemporaryDirectory(prefix="deckhand-image-") as tmp:
            dockerfile_path = Path(tmp) / "Dockerfile"
            dockerfile_path.write_text(dockerfile, encoding="utf-8")
            iidfile = Path(tmp) / "image.id"
            argv = [
                self._docker, "build",
                "-f", str(dockerfile_path),
                "-t", spec.reference,
                "--iidfile", str(iidfile),
                str(context),
            ]
            env = {**os.environ, "DOCKER_BUILDKIT": "1"}
            try:
                self._runner.run(argv, env=env)
            except CommandFailedError as exc:
                raise ImageBuildError(f"Image build for {spec.reference} failed: {exc}") from exc

            image_id = iidfile.read_text(encoding="utf-8").strip() if iidfile.exists() else ""

        if not image_id:
            raise ImageBuildError(f"Image build for {spec.reference} reported no image id")

        logger.info("Built %s -> %s", spec.reference, image_id)
        return ImageBuildResult(
            reference=spec.reference,
            image_id=image_id,
            dockerfile_hash=dockerfile_hash,
            strategy=spec.strategy.kind,
        )
