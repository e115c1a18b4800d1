"""Tests for the best-effort BuildCache."""

from __future__ import annotations

from pathlib import Path

from deckhand.core.build_cache import BuildCache


class TestBuildCache:
    def test_key_is_stable(self, tmp_dir: Path, source_repo: Path):
        cache = BuildCache(tmp_dir / "cache")
        a = cache.key_for(source_repo, lockfile="Cargo.lock", toolchain="cargo-stable")
        b = cache.key_for(source_repo, lockfile="Cargo.lock", toolchain="cargo-stable")
        assert a == b
        assert len(a) == 24

    def test_key_follows_lockfile_and_toolchain(self, tmp_dir: Path, source_repo: Path):
        cache = BuildCache(tmp_dir / "cache")
        base = cache.key_for(source_repo, lockfile="Cargo.lock", toolchain="cargo-stable")
        assert cache.key_for(source_repo, lockfile="Cargo.lock", toolchain="cargo-nightly") != base
        (source_repo / "Cargo.lock").write_text("version = 4\n", encoding="utf-8")
        assert cache.key_for(source_repo, lockfile="Cargo.lock", toolchain="cargo-stable") != base

    def test_restore_miss(self, tmp_dir: Path):
        cache = BuildCache(tmp_dir / "cache")
        assert cache.restore("nokey", tmp_dir / "target") is False
        assert not (tmp_dir / "target").exists()

    def test_save_then_restore(self, tmp_dir: Path):
        cache = BuildCache(tmp_dir / "cache")
        target = tmp_dir / "a" / "target"
        (target / "release" / "deps").mkdir(parents=True)
        (target / "release" / "deps" / "libfoo.rlib").write_bytes(b"rlib")
        assert cache.save("k1", target) is True

        restored = tmp_dir / "b" / "target"
        assert cache.restore("k1", restored) is True
        assert (restored / "release" / "deps" / "libfoo.rlib").read_bytes() == b"rlib"

    def test_save_replaces_entry(self, tmp_dir: Path):
        cache = BuildCache(tmp_dir / "cache")
        src = tmp_dir / "target"
        src.mkdir()
        (src / "old").write_text("1", encoding="utf-8")
        cache.save("k1", src)
        (src / "old").unlink()
        (src / "new").write_text("2", encoding="utf-8")
        cache.save("k1", src)
        entry = cache.entry_path("k1")
        assert sorted(p.name for p in entry.iterdir()) == ["new"]

    def test_save_without_source(self, tmp_dir: Path):
        assert BuildCache(tmp_dir / "cache").save("k1", tmp_dir / "missing") is False
