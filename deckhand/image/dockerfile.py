"""Render an ``ImageSpec`` into Dockerfile text.

Rendering is a pure function of the ``ImageSpec``: the same input always produces
the same bytes. Both build strategies go through the same runtime-stage
routine; they differ only in the stage that precedes it (compile) and in
the copy layers they contribute.
"""

from __future__ import annotations

import json
import shlex

from deckhand.models.image import (
    CompileThenPackage,
    CopyOp,
    CopyPrebuilt,
    EnvOp,
    ImageSpec,
    LayerOp,
    RunOp,
    UserOp,
    VolumeOp,
    WorkdirOp,
    WorkerLayout,
)

APT_INSTALL = (
    "apt-get update && apt-get install -y "
    "--option=Dpkg::Options::=--force-confdef {packages}"
)


# ---------------------------------------------------------------------------
# Shared worker layout
# ---------------------------------------------------------------------------


def worker_setup_ops(worker: WorkerLayout) -> list[LayerOp]:
    """Create the non-root worker with its home and artifacts directory."""
    user = worker.user
    return [
        RunOp(
            command=(
                f"mkdir -p {worker.builds_root} && "
                f"useradd -d {worker.home} -s {worker.shell} -m {user} && "
                f"mkdir -p {worker.artifacts_dir} && "
                f"chown {user}:{user} {worker.artifacts_dir} {worker.home}"
            )
        ),
        EnvOp(values={"SHELL": worker.shell, "HOME": worker.home, "USER": user}),
    ]


def worker_volume_ops(worker: WorkerLayout) -> list[LayerOp]:
    return [VolumeOp(path=p) for p in worker.volume_paths]


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------


def builder_stage_ops(strategy: CompileThenPackage) -> list[LayerOp]:
    return [
        WorkdirOp(path=strategy.source_dir),
        CopyOp(src=".", dest=strategy.source_dir),
        RunOp(command=shlex.join(strategy.build_argv)),
    ]


def strategy_ops(spec: ImageSpec) -> list[LayerOp]:
    """Copy layers contributed by the build strategy to the runtime stage."""
    strategy = spec.strategy
    if isinstance(strategy, CompileThenPackage):
        return [
            CopyOp(
                src=f"{strategy.source_dir}/{strategy.output_path}",
                dest=strategy.install_path,
                chmod=0o755,
                from_stage=strategy.builder_stage,
            )
        ]
    if isinstance(strategy, CopyPrebuilt):
        return list(strategy.files)
    raise TypeError(f"Unknown build strategy: {type(strategy).__name__}")


def runtime_ops(spec: ImageSpec) -> list[LayerOp]:
    """Ordered layers of the final image."""
    ops: list[LayerOp] = []
    if spec.initial_workdir:
        ops.append(WorkdirOp(path=spec.initial_workdir))
    if spec.packages:
        ops.append(EnvOp(values={"DEBIAN_FRONTEND": "noninteractive"}))
        ops.append(RunOp(command=APT_INSTALL.format(packages=" ".join(spec.packages))))
    ops.extend(RunOp(command=c) for c in spec.setup_commands)
    ops.extend(worker_setup_ops(spec.worker))
    if spec.env:
        ops.append(EnvOp(values=dict(spec.env)))
    ops.extend(strategy_ops(spec))
    ops.extend(worker_volume_ops(spec.worker))
    if spec.user:
        ops.append(UserOp(name=spec.user))
    if spec.workdir:
        ops.append(WorkdirOp(path=spec.workdir))
    return ops


def stages(spec: ImageSpec) -> list[tuple[str, list[LayerOp]]]:
    """Return ``(FROM line, ops)`` pairs, builder stage first if any."""
    result: list[tuple[str, list[LayerOp]]] = []
    if isinstance(spec.strategy, CompileThenPackage):
        strategy = spec.strategy
        result.append(
            (
                f"FROM {strategy.builder_image} AS {strategy.builder_stage}",
                builder_stage_ops(strategy),
            )
        )
    result.append((f"FROM {spec.base_image}", runtime_ops(spec)))
    return result


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _env_value(value: str) -> str:
    if not value or any(c.isspace() or c in "\"'\\$" for c in value):
        return json.dumps(value)
    return value


def render_op(op: LayerOp) -> str:
    if isinstance(op, CopyOp):
        flags = ""
        if op.from_stage:
            flags += f" --from={op.from_stage}"
        if op.chmod is not None:
            flags += f" --chmod={op.chmod:o}"
        return f"COPY{flags} {op.src} {op.dest}"
    if isinstance(op, RunOp):
        return f"RUN {op.command}"
    if isinstance(op, EnvOp):
        pairs = [f"{k}={_env_value(v)}" for k, v in op.values.items()]
        return "ENV " + " \\\n    ".join(pairs)
    if isinstance(op, VolumeOp):
        return f"VOLUME {op.path}"
    if isinstance(op, WorkdirOp):
        return f"WORKDIR {op.path}"
    if isinstance(op, UserOp):
        return f"USER {op.name}"
    raise TypeError(f"Unknown layer op: {type(op).__name__}")


def render_dockerfile(spec: ImageSpec) -> str:
    """Render the full Dockerfile for *spec*."""
    blocks: list[str] = []
    for header, ops in stages(spec):
        lines = [header, ""]
        lines.extend(render_op(op) for op in ops)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) + "\n"
