"""Deckhand data models: all Pydantic v2, all frozen (immutable)."""

from deckhand.models.artifacts import BuildArtifact
from deckhand.models.config import PipelineConfig, RunConfig, load_pipeline_config
from deckhand.models.deploy import DeployCredential, DeployTarget
from deckhand.models.events import PushEvent
from deckhand.models.image import (
    BuildStrategy,
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
from deckhand.models.jobs import (
    BUILD_JOB,
    DEFAULT_JOB_DEFINITIONS,
    DEPLOY_JOB,
    VALID_TRANSITIONS,
    JobDefinition,
    JobState,
)
from deckhand.models.ledger import LedgerEntry, RunRecord

__all__ = [
    # jobs
    "JobState",
    "JobDefinition",
    "VALID_TRANSITIONS",
    "DEFAULT_JOB_DEFINITIONS",
    "BUILD_JOB",
    "DEPLOY_JOB",
    # events
    "PushEvent",
    # artifacts
    "BuildArtifact",
    # deploy
    "DeployTarget",
    "DeployCredential",
    # image
    "ImageSpec",
    "WorkerLayout",
    "BuildStrategy",
    "CompileThenPackage",
    "CopyPrebuilt",
    "LayerOp",
    "CopyOp",
    "RunOp",
    "EnvOp",
    "VolumeOp",
    "WorkdirOp",
    "UserOp",
    # ledger
    "LedgerEntry",
    "RunRecord",
    # config
    "PipelineConfig",
    "RunConfig",
    "load_pipeline_config",
]
