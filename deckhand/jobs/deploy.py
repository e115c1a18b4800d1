"""Deploy job: ship the build artifact to the remote host.

Steps, in order:
    check secrets -> fetch artifact -> setup ssh -> copy

The credential from "Setup ssh" is entered on the job's resource stack,
so it is removed when the job ends, including when "Copy" fails.
"""

from __future__ import annotations

import logging

from deckhand.config import DeploySecrets
from deckhand.core.credentials import deploy_credential
from deckhand.jobs.base import Job, JobContext, Step
from deckhand.models.jobs import DEPLOY_JOB

logger = logging.getLogger(__name__)


def fetch_artifact(ctx: JobContext) -> None:
    name = ctx.config.artifact_name
    ctx.values["artifact_path"] = ctx.artifact_store.fetch(
        ctx.run_id, name, ctx.workspace / name
    )


def scp_argv(ctx: JobContext) -> list[str]:
    checking = "yes" if ctx.config.strict_host_key_checking else "no"
    return [
        "scp",
        "-o", f"StrictHostKeyChecking={checking}",
        "-i", str(ctx.values["credential"].path),
        str(ctx.values["artifact_path"]),
        ctx.values["target"].destination,
    ]


def deploy_job(secrets: DeploySecrets) -> Job:
    """Assemble the deploy job around the injected secrets."""

    def check_secrets(ctx: JobContext) -> None:
        ctx.values["target"] = secrets.require_target()

    def setup_ssh(ctx: JobContext) -> None:
        ctx.values["credential"] = ctx.resources.enter_context(
            deploy_credential(
                secrets.key,
                ctx.workspace / ".ssh",
                ctx.config.key_filename,
            )
        )

    def copy(ctx: JobContext) -> None:
        target = ctx.values["target"]
        ctx.runner.run(scp_argv(ctx), secrets=target.secret_values)
        logger.info("Copied %s to deploy target", ctx.config.artifact_name)

    return Job(
        DEPLOY_JOB,
        [
            Step("Check deploy secrets", check_secrets),
            Step("Download artifact", fetch_artifact),
            Step("Setup ssh", setup_ssh),
            Step("Copy", copy),
        ],
    )
