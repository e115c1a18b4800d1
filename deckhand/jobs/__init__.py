"""Pipeline jobs: build (compile + publish) and deploy (fetch + scp)."""

from deckhand.jobs.base import Job, JobContext, Step, StepFailedError
from deckhand.jobs.build import BuildContextError, CompileError, build_job
from deckhand.jobs.deploy import deploy_job

__all__ = [
    "Job",
    "JobContext",
    "Step",
    "StepFailedError",
    "BuildContextError",
    "CompileError",
    "build_job",
    "deploy_job",
]
