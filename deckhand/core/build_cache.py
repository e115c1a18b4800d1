"""Best-effort build cache for compiled dependencies.

Keyed on the lockfile contents plus the toolchain identity, the cache
holds a copy of the ``target/`` directory between runs. A miss only costs
compile time, so callers treat every error here as non-fatal.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from deckhand.core.hasher import canonical_json_bytes, sha256_file, sha256_hex

logger = logging.getLogger(__name__)


class BuildCache:
    """Directory-per-key cache of build output trees.

    Parameters
    ----------
    root:
        Directory holding one subdirectory per cache key.
    """

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    def key_for(self, source_dir: Path, *, lockfile: str, toolchain: str) -> str:
        """Derive the cache key for a checked-out source tree."""
        lock = Path(source_dir) / lockfile
        lock_hash = sha256_file(lock) if lock.is_file() else ""
        return sha256_hex(
            canonical_json_bytes({"lockfile": lock_hash, "toolchain": toolchain})
        )[:24]

    def entry_path(self, key: str) -> Path:
        return self._root / key

    def restore(self, key: str, dest: Path) -> bool:
        """Copy the cached tree for *key* into *dest*. Returns hit/miss."""
        entry = self.entry_path(key)
        if not entry.is_dir():
            logger.info("Build cache miss (%s)", key)
            return False
        shutil.copytree(entry, dest, dirs_exist_ok=True)
        logger.info("Build cache hit (%s)", key)
        return True

    def save(self, key: str, src: Path) -> bool:
        """Store *src* under *key*, replacing any previous entry."""
        src = Path(src)
        if not src.is_dir():
            logger.info("Nothing to cache at %s", src)
            return False
        entry = self.entry_path(key)
        staging = entry.with_name(f"{entry.name}.partial")
        if staging.exists():
            shutil.rmtree(staging)
        self._root.mkdir(parents=True, exist_ok=True)
        shutil.copytree(src, staging)
        if entry.exists():
            shutil.rmtree(entry)
        staging.rename(entry)
        logger.info("Build cache saved (%s)", key)
        return True
