"""Runtime configuration: env-driven settings and deploy secrets.

Centralized config using pydantic-settings. ``Settings`` reads
``DECKHAND_*`` variables (and a ``.env`` file); ``DeploySecrets`` reads the
four ``DEPLOY_*`` variables the CI platform injects for the deploy job.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from deckhand.models.deploy import DeployTarget


class MissingSecretError(RuntimeError):
    """Raised when a deploy secret required by the deploy job is unset."""


class Settings(BaseSettings):
    """Process-level settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export DECKHAND_LOG_LEVEL=DEBUG
        export DECKHAND_LEDGER_PATH=/var/lib/deckhand/ledger.db

    Or via .env file::

        DECKHAND_DOCKER_BINARY=podman
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="DECKHAND_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"

    # Storage paths
    ledger_path: Path = Path(".deckhand/ledger.db")
    artifact_store_path: Path = Path(".deckhand/artifacts")
    cache_dir: Path = Path(".deckhand/cache")
    workspace_dir: Path = Path(".deckhand/workspaces")

    # External tools
    docker_binary: str = "docker"


class DeploySecrets(BaseSettings):
    """Secret-sourced deploy inputs: key material and the remote target.

    Populated from ``DEPLOY_KEY``, ``DEPLOY_USER``, ``DEPLOY_HOSTNAME`` and
    ``DEPLOY_PATH``. None of these values are ever logged.
    """

    model_config = SettingsConfigDict(
        env_prefix="DEPLOY_",
        extra="ignore",
    )

    key: SecretStr | None = None
    user: str = Field(default="", repr=False)
    hostname: str = Field(default="", repr=False)
    path: str = Field(default="", repr=False)

    def missing(self) -> list[str]:
        """Return the environment variable names that are unset or empty."""
        missing: list[str] = []
        if self.key is None or not self.key.get_secret_value().strip():
            missing.append("DEPLOY_KEY")
        for name in ("user", "hostname", "path"):
            if not getattr(self, name):
                missing.append(f"DEPLOY_{name.upper()}")
        return missing

    def require_target(self) -> DeployTarget:
        """Return the deploy target, raising if any secret is missing."""
        missing = self.missing()
        if missing:
            raise MissingSecretError(
                f"Deploy secrets not configured: {', '.join(missing)}"
            )
        return DeployTarget(user=self.user, hostname=self.hostname, path=self.path)

