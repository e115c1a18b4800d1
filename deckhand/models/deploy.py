"""Deploy target and credential models.

Both are derived from secrets. Secret-bearing fields are excluded from
``repr`` so a stray log of the model never carries them.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

CREDENTIAL_MODE = 0o600
CREDENTIAL_DIR_MODE = 0o700


class DeployTarget(BaseModel):
    """Where the artifact goes: ``user@hostname:path``."""

    model_config = ConfigDict(frozen=True)

    user: str = Field(repr=False)
    hostname: str = Field(repr=False)
    path: str = Field(repr=False)

    @property
    def destination(self) -> str:
        return f"{self.user}@{self.hostname}:{self.path}"

    @property
    def secret_values(self) -> list[str]:
        """Every form of the target that a transfer tool may echo back."""
        return [self.destination, self.hostname, self.path, self.user]


class DeployCredential(BaseModel):
    """An on-disk private key, valid only inside its acquisition scope."""

    model_config = ConfigDict(frozen=True)

    path: Path
    mode: int = CREDENTIAL_MODE
