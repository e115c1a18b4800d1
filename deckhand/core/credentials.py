"""Scoped deploy credential material.

The deploy key exists on disk only inside ``deploy_credential()``. The key
directory is created ``0700`` and the key file is opened ``0600`` before a
single byte is written. On exit the file is removed, whatever happened
inside the scope. Nothing about the key (size, line count, checksum) is
logged.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from pydantic import SecretStr

from deckhand.models.deploy import (
    CREDENTIAL_DIR_MODE,
    CREDENTIAL_MODE,
    DeployCredential,
)

logger = logging.getLogger(__name__)


@contextmanager
def deploy_credential(
    key: SecretStr,
    directory: Path,
    filename: str = "id_ed25519",
) -> Iterator[DeployCredential]:
    """Write *key* to ``directory/filename`` for the duration of the block."""
    directory = Path(directory)
    created_dir = not directory.exists()
    directory.mkdir(mode=CREDENTIAL_DIR_MODE, parents=True, exist_ok=True)
    os.chmod(directory, CREDENTIAL_DIR_MODE)

    path = directory / filename
    material = key.get_secret_value()
    if not material.endswith("\n"):
        # OpenSSH private keys must end with a newline
        material += "\n"

    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, CREDENTIAL_MODE)
    try:
        os.chmod(path, CREDENTIAL_MODE)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fd = -1
            fh.write(material)
    except BaseException:
        if fd >= 0:
            os.close(fd)
        path.unlink(missing_ok=True)
        raise

    logger.info("Deploy credential materialized in %s", directory)
    try:
        yield DeployCredential(path=path, mode=CREDENTIAL_MODE)
    finally:
        path.unlink(missing_ok=True)
        if created_dir:
            try:
                directory.rmdir()
            except OSError:
                logger.debug("Credential directory %s not empty, left in place", directory)
        logger.info("Deploy credential discarded")
