"""SQLite record of pipeline runs and their job outcomes.

A run is opened once with the ref and sha it builds; opening the same
run id twice is refused, so a run's history is never mixed with another
push. Job transitions are then appended to the run and sealed into a
hash chain rooted at the run header, which ``verify_chain`` re-checks.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path

from deckhand.core.hasher import canonical_json_bytes, sha256_hex
from deckhand.models.jobs import JobState
from deckhand.models.ledger import LedgerEntry, RunRecord

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS runs (
    seq          INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id       TEXT NOT NULL UNIQUE,
    ref          TEXT NOT NULL,
    sha          TEXT NOT NULL,
    opened_at    TEXT NOT NULL,
    header_hash  TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS transitions (
    seq            INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id         TEXT NOT NULL REFERENCES runs(run_id),
    job_id         TEXT NOT NULL,
    from_state     TEXT NOT NULL,
    to_state       TEXT NOT NULL,
    step           TEXT NOT NULL,
    detail         TEXT NOT NULL,
    artifacts      TEXT NOT NULL,
    recorded_at    TEXT NOT NULL,
    previous_hash  TEXT NOT NULL,
    entry_hash     TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS transitions_by_run ON transitions(run_id, seq);
"""


class LedgerIntegrityError(RuntimeError):
    """Raised when a run's recorded history no longer matches its hashes."""


class RunExistsError(RuntimeError):
    """Raised when a run id is opened a second time."""


class UnknownRunError(KeyError):
    """Raised when appending to a run that was never opened."""


def _seal(record: RunRecord | LedgerEntry, exclude: str) -> str:
    return sha256_hex(canonical_json_bytes(record.model_dump(mode="json", exclude={exclude})))


class RunLedger:
    """Runs and their job transitions in one SQLite file.

    Parameters
    ----------
    db_path:
        SQLite database file. Created, with its parent directory, if missing.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(_SCHEMA)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path))
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def open_run(self, run_id: str, *, ref: str, sha: str = "") -> RunRecord:
        """Record the header of a new run.

        Raises
        ------
        RunExistsError
            If *run_id* is already recorded.
        """
        record = RunRecord(run_id=run_id, ref=ref, sha=sha)
        record = record.model_copy(update={"header_hash": _seal(record, "header_hash")})
        try:
            with self._connect() as conn:
                conn.execute(
                    "INSERT INTO runs (run_id, ref, sha, opened_at, header_hash) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (
                        record.run_id,
                        record.ref,
                        record.sha,
                        record.model_dump(mode="json")["opened_at"],
                        record.header_hash,
                    ),
                )
        except sqlite3.IntegrityError:
            raise RunExistsError(f"Run {run_id!r} is already recorded") from None
        logger.debug("Opened run %s for %s", run_id, ref)
        return record

    def append(self, entry: LedgerEntry) -> LedgerEntry:
        """Seal *entry* onto the end of its run's chain and store it."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT entry_hash FROM transitions WHERE run_id = ? "
                "ORDER BY seq DESC LIMIT 1",
                (entry.run_id,),
            ).fetchone()
            if row is None:
                header = conn.execute(
                    "SELECT header_hash FROM runs WHERE run_id = ?", (entry.run_id,)
                ).fetchone()
                if header is None:
                    raise UnknownRunError(entry.run_id)
                row = header

            sealed = entry.model_copy(update={"previous_hash": row[0]})
            sealed = sealed.model_copy(update={"entry_hash": _seal(sealed, "entry_hash")})
            data = sealed.model_dump(mode="json")
            conn.execute(
                "INSERT INTO transitions (run_id, job_id, from_state, to_state, step, "
                "detail, artifacts, recorded_at, previous_hash, entry_hash) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    data["run_id"],
                    data["job_id"],
                    data["from_state"],
                    data["to_state"],
                    data["step"],
                    data["detail"],
                    json.dumps(data["artifact_references"]),
                    data["recorded_at"],
                    data["previous_hash"],
                    data["entry_hash"],
                ),
            )
        return sealed

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_run(self, run_id: str) -> RunRecord | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT run_id, ref, sha, opened_at, header_hash FROM runs WHERE run_id = ?",
                (run_id,),
            ).fetchone()
        if row is None:
            return None
        run_id, ref, sha, opened_at, header_hash = row
        return RunRecord(
            run_id=run_id, ref=ref, sha=sha, opened_at=opened_at, header_hash=header_hash
        )

    def entries(self, run_id: str) -> list[LedgerEntry]:
        """Transitions of *run_id* in the order they were recorded."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT job_id, from_state, to_state, step, detail, artifacts, "
                "recorded_at, previous_hash, entry_hash "
                "FROM transitions WHERE run_id = ? ORDER BY seq",
                (run_id,),
            ).fetchall()
        return [
            LedgerEntry(
                run_id=run_id,
                job_id=job_id,
                from_state=JobState(from_state),
                to_state=JobState(to_state),
                step=step,
                detail=detail,
                artifact_references=json.loads(artifacts),
                recorded_at=recorded_at,
                previous_hash=previous_hash,
                entry_hash=entry_hash,
            )
            for (job_id, from_state, to_state, step, detail, artifacts,
                 recorded_at, previous_hash, entry_hash) in rows
        ]

    def run_ids(self) -> list[str]:
        """Recorded run ids, most recently opened first."""
        with self._connect() as conn:
            rows = conn.execute("SELECT run_id FROM runs ORDER BY seq DESC").fetchall()
        return [row[0] for row in rows]

    def verify_chain(self, run_id: str) -> bool:
        """Re-derive every hash of *run_id*.

        Returns True for an intact (or unrecorded) run, raises
        ``LedgerIntegrityError`` otherwise.
        """
        record = self.get_run(run_id)
        if record is None:
            if self.entries(run_id):
                raise LedgerIntegrityError(f"Run {run_id} has entries but no header")
            return True

        if _seal(record, "header_hash") != record.header_hash:
            raise LedgerIntegrityError(f"Tampered header of run {run_id}")

        expected_previous = record.header_hash
        for position, entry in enumerate(self.entries(run_id)):
            if entry.previous_hash != expected_previous:
                raise LedgerIntegrityError(
                    f"Chain broken at entry {position} of run {run_id} ({entry.job_id})"
                )
            if _seal(entry, "entry_hash") != entry.entry_hash:
                raise LedgerIntegrityError(
                    f"Tampered entry {position} of run {run_id} ({entry.job_id})"
                )
            expected_previous = entry.entry_hash
        return True
