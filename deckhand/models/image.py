"""Container image spec models.

An ``ImageSpec`` is a base image, a package list, a worker layout and a
build strategy. The strategy is a tagged variant: ``CompileThenPackage``
compiles the binary in a throwaway builder stage, ``CopyPrebuilt`` copies
externally supplied files. Both are rendered to a list of ``LayerOp``s by
``deckhand.image.dockerfile``.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Layer operations
# ---------------------------------------------------------------------------


class CopyOp(BaseModel):
    """Copy a path from the build context (or an earlier stage)."""

    model_config = ConfigDict(frozen=True)

    op: Literal["copy"] = "copy"
    src: str
    dest: str
    chmod: int | None = None
    from_stage: str | None = None


class RunOp(BaseModel):
    model_config = ConfigDict(frozen=True)

    op: Literal["run"] = "run"
    command: str


class EnvOp(BaseModel):
    model_config = ConfigDict(frozen=True)

    op: Literal["env"] = "env"
    values: dict[str, str]


class VolumeOp(BaseModel):
    model_config = ConfigDict(frozen=True)

    op: Literal["volume"] = "volume"
    path: str


class WorkdirOp(BaseModel):
    model_config = ConfigDict(frozen=True)

    op: Literal["workdir"] = "workdir"
    path: str


class UserOp(BaseModel):
    model_config = ConfigDict(frozen=True)

    op: Literal["user"] = "user"
    name: str


LayerOp = Annotated[
    Union[CopyOp, RunOp, EnvOp, VolumeOp, WorkdirOp, UserOp],
    Field(discriminator="op"),
]


# ---------------------------------------------------------------------------
# Worker layout
# ---------------------------------------------------------------------------


class WorkerLayout(BaseModel):
    """The non-root worker convention shared by every image in the family."""

    model_config = ConfigDict(frozen=True)

    user: str = "worker"
    home: str = "/builds/worker"
    shell: str = "/bin/bash"
    artifacts_subdir: str = "artifacts"
    volumes: list[str] = ["checkouts", ".cache"]

    @property
    def builds_root(self) -> str:
        return self.home.rsplit("/", 1)[0] or "/"

    @property
    def artifacts_dir(self) -> str:
        return f"{self.home}/{self.artifacts_subdir}"

    @property
    def volume_paths(self) -> list[str]:
        return [f"{self.home}/{v}" for v in self.volumes]


# ---------------------------------------------------------------------------
# Build strategies
# ---------------------------------------------------------------------------


class CompileThenPackage(BaseModel):
    """Compile in a builder stage, ship only the binary."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["compile"] = "compile"
    builder_image: str = "rust:1.79-bookworm"
    builder_stage: str = "build"
    toolchain: str = "cargo"
    binary: str = "apwm"
    features: list[str] = ["cli"]
    source_dir: str = "/src"
    install_path: str = "/usr/local/bin/apwm"
    manifest: str = "Cargo.toml"

    @property
    def output_path(self) -> str:
        """Path of the release binary relative to the source root."""
        return f"target/release/{self.binary}"

    @property
    def build_argv(self) -> list[str]:
        argv = [self.toolchain, "build", "--bin", self.binary]
        if self.features:
            argv += ["--features", ",".join(self.features)]
        argv.append("--release")
        return argv


class CopyPrebuilt(BaseModel):
    """Assemble the image from supplied files, no compilation."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["prebuilt"] = "prebuilt"
    files: list[CopyOp] = []


BuildStrategy = Annotated[
    Union[CompileThenPackage, CopyPrebuilt],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Image spec
# ---------------------------------------------------------------------------


class ImageSpec(BaseModel):
    """Declarative description of a container image."""

    model_config = ConfigDict(frozen=True)

    name: str
    tag: str = "latest"
    base_image: str
    packages: list[str] = []
    setup_commands: list[str] = []
    env: dict[str, str] = {}
    strategy: BuildStrategy = Field(default_factory=CopyPrebuilt)
    worker: WorkerLayout = WorkerLayout()
    initial_workdir: str | None = None
    user: str | None = None
    workdir: str | None = None

    @property
    def reference(self) -> str:
        return f"{self.name}:{self.tag}"
