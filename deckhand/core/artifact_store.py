"""Content-addressed artifact store with per-run name index.

Plays the role of the CI platform's artifact storage: a job publishes a
named file, a later job of the same run fetches it by name.

Storage layout:
    {base}/blobs/{sha256[0:2]}/{sha256[2:4]}/{sha256}.dat
    {base}/runs/{run_id}/{name}.json        (BuildArtifact metadata)

Blobs are immutable; publishing identical bytes twice stores them once.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from deckhand.core.hasher import sha256_file
from deckhand.models.artifacts import BuildArtifact

logger = logging.getLogger(__name__)


class ArtifactIntegrityError(RuntimeError):
    """Raised when a stored artifact's hash does not match its address."""


class ArtifactNotFoundError(FileNotFoundError):
    """Raised when a run has no artifact under the requested name."""


class EmptyArtifactError(ValueError):
    """Raised when asked to publish a missing or zero-byte file."""


class ArtifactStore:
    """SHA-256 keyed, immutable artifact store.

    Parameters
    ----------
    base_path:
        Root directory for artifact storage.
    """

    def __init__(self, base_path: Path) -> None:
        self._base = Path(base_path)
        (self._base / "blobs").mkdir(parents=True, exist_ok=True)
        (self._base / "runs").mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _extract_digest(content_address: str) -> str:
        return content_address.removeprefix("sha256:")

    def _blob_path(self, digest: str) -> Path:
        return self._base / "blobs" / digest[:2] / digest[2:4] / f"{digest}.dat"

    def _index_path(self, run_id: str, name: str) -> Path:
        return self._base / "runs" / run_id / f"{name}.json"

    # ------------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------------

    def publish(
        self,
        run_id: str,
        name: str,
        source: Path,
        *,
        producing_job: str,
        relative_path: str = "",
    ) -> BuildArtifact:
        """Store *source* under *name* for *run_id* and return its metadata.

        Re-publishing the same name within a run replaces the index entry;
        the old blob stays in place.
        """
        source = Path(source)
        if not source.is_file():
            raise EmptyArtifactError(f"Artifact source is not a file: {source}")
        size = source.stat().st_size
        if size == 0:
            raise EmptyArtifactError(f"Refusing to publish empty artifact: {source}")

        digest = sha256_file(source)
        blob = self._blob_path(digest)
        if blob.exists():
            if not self.verify(digest):
                raise ArtifactIntegrityError(
                    f"Existing artifact at {digest} failed integrity check"
                )
        else:
            blob.parent.mkdir(parents=True, exist_ok=True)
            tmp = blob.with_suffix(".tmp")
            shutil.copyfile(source, tmp)
            tmp.replace(blob)

        artifact = BuildArtifact(
            name=name,
            path=relative_path or source.name,
            producing_job=producing_job,
            run_id=run_id,
            content_address=f"sha256:{digest}",
            size_bytes=size,
        )
        index = self._index_path(run_id, name)
        index.parent.mkdir(parents=True, exist_ok=True)
        index.write_text(artifact.model_dump_json(), encoding="utf-8")

        logger.info(
            "Published artifact %s for run %s (%d bytes, %s)",
            name, run_id, size, artifact.content_address[:19],
        )
        return artifact

    # ------------------------------------------------------------------
    # Lookup and fetch
    # ------------------------------------------------------------------

    def get(self, run_id: str, name: str) -> BuildArtifact:
        """Return the metadata of a published artifact."""
        index = self._index_path(run_id, name)
        if not index.exists():
            raise ArtifactNotFoundError(
                f"No artifact named {name!r} in run {run_id}"
            )
        return BuildArtifact.model_validate_json(index.read_text(encoding="utf-8"))

    def exists(self, run_id: str, name: str) -> bool:
        return self._index_path(run_id, name).exists()

    def list_artifacts(self, run_id: str) -> list[BuildArtifact]:
        """Return every artifact published in a run, sorted by name."""
        run_dir = self._base / "runs" / run_id
        if not run_dir.is_dir():
            return []
        return [
            BuildArtifact.model_validate_json(p.read_text(encoding="utf-8"))
            for p in sorted(run_dir.glob("*.json"))
        ]

    def fetch(self, run_id: str, name: str, dest_dir: Path) -> Path:
        """Copy a published artifact into *dest_dir* as ``dest_dir/name``.

        The blob is re-hashed first; a mismatch raises
        ``ArtifactIntegrityError`` and nothing is written.
        """
        artifact = self.get(run_id, name)
        digest = self._extract_digest(artifact.content_address)
        if not self.verify(digest):
            raise ArtifactIntegrityError(
                f"Artifact {name!r} of run {run_id} failed integrity check"
            )

        dest_dir = Path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)
        dest = dest_dir / name
        shutil.copyfile(self._blob_path(digest), dest)
        logger.info("Fetched artifact %s for run %s into %s", name, run_id, dest_dir)
        return dest

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    def verify(self, content_address: str) -> bool:
        """Re-hash stored data and compare against the content address."""
        digest = self._extract_digest(content_address)
        path = self._blob_path(digest)
        if not path.exists():
            return False
        return sha256_file(path) == digest
