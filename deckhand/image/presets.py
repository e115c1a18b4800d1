"""Image specs for the apwm image family."""

from __future__ import annotations

from collections.abc import Callable

from deckhand.models.image import (
    CompileThenPackage,
    CopyOp,
    CopyPrebuilt,
    ImageSpec,
)

RUNTIME_BASE = "debian:12-slim"
RUST_BASE = "rust:1.79-bookworm"

RUNTIME_PACKAGES = ["python3", "bash", "git", "openssh-client", "openssl", "curl"]

# run-task helpers and Mercurial config shipped in every worker image
RUN_TASK_FILES = [
    CopyOp(src="run-task/run-task", dest="/usr/local/bin/run-task"),
    CopyOp(src="run-task/fetch-content", dest="/usr/local/bin/fetch-content"),
    CopyOp(src="run-task/robustcheckout.py", dest="/usr/local/mercurial/robustcheckout.py"),
    CopyOp(src="run-task/hgrc", dest="/etc/mercurial/hgrc.d/mozilla.rc"),
]


def apwm_image() -> ImageSpec:
    """Runtime image assembled from a pre-built ``build-result`` binary."""
    return ImageSpec(
        name="apwm",
        base_image=RUNTIME_BASE,
        initial_workdir="/usr/local/bin",
        packages=RUNTIME_PACKAGES,
        strategy=CopyPrebuilt(
            files=[
                *RUN_TASK_FILES,
                CopyOp(src="build-result", dest="/usr/local/bin/apwm", chmod=0o755),
            ]
        ),
    )


def apwm_compiled_image() -> ImageSpec:
    """Runtime image whose binary is compiled in a throwaway builder stage."""
    return ImageSpec(
        name="apwm",
        tag="compiled",
        base_image=RUNTIME_BASE,
        initial_workdir="/usr/local/bin",
        packages=RUNTIME_PACKAGES,
        strategy=CompileThenPackage(builder_image=RUST_BASE),
    )


def rust_builder_image() -> ImageSpec:
    """Toolchain image used by CI workers to compile and lint.

    Carries the run-task helpers like the runtime images, so the build
    context must provide the ``run-task/`` files.
    """
    return ImageSpec(
        name="rust-builder",
        base_image=RUST_BASE,
        setup_commands=["rustup component add clippy rustfmt"],
        strategy=CopyPrebuilt(files=list(RUN_TASK_FILES)),
        workdir="/builds/worker",
    )


PRESETS: dict[str, Callable[[], ImageSpec]] = {
    "apwm": apwm_image,
    "apwm-compiled": apwm_compiled_image,
    "rust-builder": rust_builder_image,
}


def get_preset(name: str) -> ImageSpec:
    try:
        factory = PRESETS[name]
    except KeyError:
        raise KeyError(
            f"Unknown image {name!r}. Available: {', '.join(sorted(PRESETS))}"
        ) from None
    return factory()
