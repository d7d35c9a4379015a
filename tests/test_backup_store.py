"""
Unit tests for the backup store.

Tests cover:
- Snapshot naming and metadata sidecars
- Listing newest-first, matched by recorded path then basename
- Restore (latest, explicit, missing)
- Recent-backup check and .gitignore registration
"""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from fullcontext_mcp.backup_store import BackupStore
from fullcontext_mcp.errors import ErrorKind, FileToolError


class WallClock:
    """UTC clock advanced by hand."""

    def __init__(self):
        self.now = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def wall_clock() -> WallClock:
    return WallClock()


@pytest.fixture
def store(temp_dir: Path, wall_clock: WallClock) -> BackupStore:
    return BackupStore(temp_dir / "fullcontextmcp_backup", clock=wall_clock)


@pytest.fixture
def source(temp_dir: Path) -> Path:
    path = temp_dir / "app.js"
    path.write_text("const a = 1;\nconst b = 2;\n", newline="")
    return path


class TestSnapshot:
    """Tests for BackupStore.snapshot()."""

    def test_snapshot_copies_file_and_writes_metadata(self, store: BackupStore, source: Path):
        record = store.snapshot(source, "before edit")

        backup = Path(record.backup_path)
        assert backup.read_bytes() == source.read_bytes()
        assert backup.name == "app.js.2024-05-01T12-00-00-000000Z.backup"

        meta = json.loads(Path(record.backup_path + ".meta").read_text())
        assert meta["original_path"] == str(source)
        assert meta["reason"] == "before edit"
        assert meta["original_size"] == 26
        assert meta["original_line_count"] == 3

    def test_snapshots_in_same_instant_get_distinct_names(self, store: BackupStore, source: Path):
        """The clock does not move, yet each backup gets its own later name."""
        first = store.snapshot(source)
        second = store.snapshot(source)

        assert first.backup_path != second.backup_path
        assert second.name > first.name

    def test_missing_source_is_source_not_found(self, store: BackupStore, temp_dir: Path):
        with pytest.raises(FileToolError) as exc_info:
            store.snapshot(temp_dir / "missing.js")

        assert exc_info.value.kind is ErrorKind.SOURCE_NOT_FOUND
        assert not store.backup_dir.exists()

    def test_backup_dir_registered_in_gitignore(self, store: BackupStore, source: Path, temp_dir: Path):
        (temp_dir / ".gitignore").write_text("node_modules/\n")

        store.snapshot(source)
        store.snapshot(source)

        lines = (temp_dir / ".gitignore").read_text().splitlines()
        assert lines == ["node_modules/", "fullcontextmcp_backup/"]

    def test_gitignore_registration_can_be_disabled(self, temp_dir: Path, source: Path):
        store = BackupStore(temp_dir / "fullcontextmcp_backup", register_gitignore=False)

        store.snapshot(source)

        assert not (temp_dir / ".gitignore").exists()


class TestListBackups:
    """Tests for listing and finding backups."""

    def test_newest_first(self, store: BackupStore, source: Path, wall_clock: WallClock):
        store.snapshot(source, "first")
        wall_clock.now += timedelta(minutes=5)
        store.snapshot(source, "second")

        records = store.list_backups(source)

        assert [r.reason for r in records] == ["second", "first"]
        assert store.latest_backup(source) == Path(records[0].backup_path)

    def test_matches_exact_basename_only(self, store: BackupStore, source: Path, temp_dir: Path):
        """Backups of app.jsx are not backups of app.js."""
        other = temp_dir / "app.jsx"
        other.write_text("<App />")
        store.snapshot(other)

        assert store.list_backups(source) == []
        assert len(store.list_backups(other)) == 1

    def test_same_basename_in_other_directory_not_matched(self, store: BackupStore, temp_dir: Path):
        """Backups of a/index.js are never offered for b/index.js."""
        first = temp_dir / "a" / "index.js"
        second = temp_dir / "b" / "index.js"
        for path in (first, second):
            path.parent.mkdir()
            path.write_text(f"// {path.parent.name}\n")
        store.snapshot(first)

        assert store.list_backups(second) == []
        assert store.latest_backup(second) is None
        with pytest.raises(FileToolError) as exc_info:
            store.restore(second)
        assert exc_info.value.kind is ErrorKind.NO_BACKUP_FOUND
        assert second.read_text() == "// b\n"

    def test_recorded_owner_preferred_over_newer_namesake(
        self, store: BackupStore, temp_dir: Path, wall_clock: WallClock
    ):
        first = temp_dir / "a" / "index.js"
        second = temp_dir / "b" / "index.js"
        for path in (first, second):
            path.parent.mkdir()
            path.write_text(f"// {path.parent.name}\n")
        store.snapshot(second)
        wall_clock.now += timedelta(minutes=1)
        store.snapshot(first)
        second.write_text("garbage")

        store.restore(second)

        assert second.read_text() == "// b\n"

    def test_backup_without_sidecar_still_found(self, store: BackupStore, source: Path):
        record = store.snapshot(source)
        Path(record.backup_path + ".meta").unlink()

        records = store.list_backups(source)

        assert [r.backup_path for r in records] == [record.backup_path]
        assert records[0].original_path == str(source)

    def test_no_backup_dir_means_no_backups(self, store: BackupStore, source: Path):
        assert store.list_backups(source) == []
        assert store.latest_backup(source) is None

    def test_has_recent_backup(self, store: BackupStore, source: Path, wall_clock: WallClock):
        assert not store.has_recent_backup(source)

        store.snapshot(source)
        wall_clock.now += timedelta(minutes=59)
        assert store.has_recent_backup(source)

        wall_clock.now += timedelta(minutes=2)
        assert not store.has_recent_backup(source)


class TestRestore:
    """Tests for BackupStore.restore()."""

    def test_restore_latest(self, store: BackupStore, source: Path):
        store.snapshot(source)
        source.write_text("garbage")

        result = store.restore(source)

        assert source.read_text() == "const a = 1;\nconst b = 2;\n"
        assert result.restored_line_count == 3
        assert result.pre_restore_backup is not None
        assert Path(result.pre_restore_backup).read_text() == "garbage"

    def test_restore_specific_backup(self, store: BackupStore, source: Path, wall_clock: WallClock):
        first = store.snapshot(source)
        source.write_text("version two")
        wall_clock.now += timedelta(seconds=1)
        store.snapshot(source)

        store.restore(source, first.backup_path)

        assert source.read_text() == "const a = 1;\nconst b = 2;\n"

    def test_restore_without_backups_changes_nothing(self, store: BackupStore, source: Path):
        before = source.read_bytes()

        with pytest.raises(FileToolError) as exc_info:
            store.restore(source)

        assert exc_info.value.kind is ErrorKind.NO_BACKUP_FOUND
        assert source.read_bytes() == before
        assert not store.backup_dir.exists()

    def test_restore_unknown_backup_path(self, store: BackupStore, source: Path, temp_dir: Path):
        with pytest.raises(FileToolError) as exc_info:
            store.restore(source, temp_dir / "nope.backup")

        assert exc_info.value.kind is ErrorKind.NO_BACKUP_FOUND

    def test_restore_recreates_deleted_file(self, store: BackupStore, source: Path):
        store.snapshot(source)
        source.unlink()

        result = store.restore(source)

        assert source.exists()
        assert result.pre_restore_backup is None
