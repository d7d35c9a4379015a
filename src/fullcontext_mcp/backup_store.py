"""
Backup store for safety snapshots.

Every mutating write is preceded by a snapshot:

    <backup_dir>/<basename>.<YYYY-MM-DDTHH-MM-SS-ffffffZ>.backup
    <backup_dir>/<basename>.<YYYY-MM-DDTHH-MM-SS-ffffffZ>.backup.meta   (JSON)

Timestamps are UTC with microseconds, so names sort chronologically and the
lexicographically greatest name for a file is its newest backup. Backups are
never overwritten and never deleted by this module.
"""

import json
import logging
import re
import shutil
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

from .errors import ErrorKind, FileToolError, io_error

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H-%M-%S-%fZ"
TIMESTAMP_PATTERN = r"\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{6}Z"
BACKUP_SUFFIX = ".backup"
META_SUFFIX = ".meta"

DEFAULT_REASON = "Safety backup before modification"
PRE_RESTORE_REASON = "State before restore"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BackupRecord:
    """Immutable description of one snapshot."""

    original_path: str
    backup_path: str
    created_at: str
    reason: str
    original_size: int
    original_line_count: int

    @property
    def name(self) -> str:
        return Path(self.backup_path).name

    def to_dict(self) -> dict[str, Any]:
        return {
            "original_path": self.original_path,
            "backup_path": self.backup_path,
            "created_at": self.created_at,
            "reason": self.reason,
            "original_size": self.original_size,
            "original_line_count": self.original_line_count,
        }

    @classmethod
    def from_meta(cls, data: dict[str, Any]) -> "BackupRecord":
        return cls(
            original_path=data["original_path"],
            backup_path=data["backup_path"],
            created_at=data["created_at"],
            reason=data.get("reason", ""),
            original_size=int(data.get("original_size", 0)),
            original_line_count=int(data.get("original_line_count", 0)),
        )


@dataclass
class RestoreResult:
    restored_from: str
    pre_restore_backup: str | None
    metadata: dict[str, Any]
    restored_size: int
    restored_line_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "restored_from": self.restored_from,
            "pre_restore_backup": self.pre_restore_backup,
            "metadata": self.metadata,
            "restored_size": self.restored_size,
            "restored_line_count": self.restored_line_count,
        }


def _count_lines(data: bytes) -> int:
    return len(data.decode("utf-8", errors="replace").split("\n"))


class BackupStore:
    """Creates, lists and restores timestamped snapshots of files."""

    def __init__(
        self,
        backup_dir: str | Path,
        register_gitignore: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.backup_dir = Path(backup_dir).expanduser().resolve()
        self.register_gitignore = register_gitignore
        self._clock = clock
        self._last_stamp: datetime | None = None

    # -------------------------------------------------------------------------
    # Directory management
    # -------------------------------------------------------------------------

    def _ensure_dir(self) -> None:
        if self.backup_dir.is_dir():
            return
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise io_error(str(self.backup_dir), e, "create backup directory") from e
        logger.info("Created backup directory %s", self.backup_dir)
        if self.register_gitignore:
            self._ensure_gitignore()

    def _ensure_gitignore(self) -> None:
        """Add the backup directory to the adjacent .gitignore if missing."""
        gitignore = self.backup_dir.parent / ".gitignore"
        entry = f"{self.backup_dir.name}/"
        try:
            existing = gitignore.read_text(encoding="utf-8") if gitignore.exists() else ""
            if any(line.strip() in (entry, entry.rstrip("/")) for line in existing.split("\n")):
                return
            stripped = existing.strip()
            gitignore.write_text(
                stripped + ("\n" if stripped else "") + entry + "\n",
                encoding="utf-8",
            )
            logger.info("Registered %s in %s", entry, gitignore)
        except OSError as e:
            # Backups work without the .gitignore entry
            logger.warning("Could not update %s: %s", gitignore, e)

    # -------------------------------------------------------------------------
    # Naming
    # -------------------------------------------------------------------------

    def _next_stamp(self) -> datetime:
        now = self._clock()
        if self._last_stamp is not None and now <= self._last_stamp:
            now = self._last_stamp + timedelta(microseconds=1)
        self._last_stamp = now
        return now

    def _backup_pattern(self, path: str | Path) -> re.Pattern:
        basename = re.escape(Path(path).name)
        return re.compile(
            rf"^{basename}\.({TIMESTAMP_PATTERN}){re.escape(BACKUP_SUFFIX)}$"
        )

    def _new_backup_path(self, source: Path) -> tuple[Path, datetime]:
        while True:
            stamp = self._next_stamp()
            candidate = self.backup_dir / (
                f"{source.name}.{stamp.strftime(TIMESTAMP_FORMAT)}{BACKUP_SUFFIX}"
            )
            if not candidate.exists():
                return candidate, stamp

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def snapshot(self, path: str | Path, reason: str = DEFAULT_REASON) -> BackupRecord:
        """
        Copy ``path`` into the backup directory and write its sidecar.

        Raises:
            FileToolError: SOURCE_NOT_FOUND if the file does not exist,
                IO_ERROR if the copy or sidecar write fails
        """
        source = Path(path).expanduser().resolve()
        if not source.is_file():
            raise FileToolError(
                ErrorKind.SOURCE_NOT_FOUND,
                f"File not found: {source}",
                path=str(source),
            )

        self._ensure_dir()
        backup_path, stamp = self._new_backup_path(source)

        try:
            shutil.copy2(source, backup_path)
            data = backup_path.read_bytes()
        except OSError as e:
            raise io_error(str(source), e, "back up") from e

        record = BackupRecord(
            original_path=str(source),
            backup_path=str(backup_path),
            created_at=stamp.isoformat(),
            reason=reason,
            original_size=len(data),
            original_line_count=_count_lines(data),
        )

        meta_path = Path(str(backup_path) + META_SUFFIX)
        try:
            meta_path.write_text(json.dumps(record.to_dict(), indent=2), encoding="utf-8")
        except OSError as e:
            raise io_error(str(meta_path), e, "write backup metadata for") from e

        logger.info("Backed up %s -> %s (%s)", source, backup_path.name, reason)
        return record

    def _read_record(self, backup_path: Path, original: Path) -> BackupRecord:
        meta_path = Path(str(backup_path) + META_SUFFIX)
        if meta_path.exists():
            try:
                return BackupRecord.from_meta(json.loads(meta_path.read_text(encoding="utf-8")))
            except (OSError, ValueError, KeyError) as e:
                logger.warning("Ignoring unreadable backup metadata %s: %s", meta_path, e)

        # No usable sidecar, rebuild what we can from the file itself
        match = self._backup_pattern(original).match(backup_path.name)
        created_at = ""
        if match:
            stamp = datetime.strptime(match.group(1), TIMESTAMP_FORMAT)
            created_at = stamp.replace(tzinfo=timezone.utc).isoformat()
        data = backup_path.read_bytes()
        return BackupRecord(
            original_path=str(original),
            backup_path=str(backup_path),
            created_at=created_at,
            reason="",
            original_size=len(data),
            original_line_count=_count_lines(data),
        )

    def _recorded_owner(self, backup_path: Path) -> str | None:
        meta_path = Path(str(backup_path) + META_SUFFIX)
        try:
            return json.loads(meta_path.read_text(encoding="utf-8"))["original_path"]
        except (OSError, ValueError, KeyError, TypeError):
            return None

    def _backup_names(self, original: Path) -> list[str]:
        """
        Backup file names for ``original``, newest first.

        Backups whose sidecar records this exact path win. Only when there are
        none do backups without a readable sidecar (owner unknown) count.
        Backups recorded for another file with the same basename never match.
        """
        if not self.backup_dir.is_dir():
            return []

        pattern = self._backup_pattern(original)
        names = sorted(
            (entry.name for entry in self.backup_dir.iterdir() if pattern.match(entry.name)),
            reverse=True,
        )
        owned, unknown = [], []
        for name in names:
            owner = self._recorded_owner(self.backup_dir / name)
            if owner == str(original):
                owned.append(name)
            elif owner is None:
                unknown.append(name)
        return owned or unknown

    def list_backups(self, path: str | Path) -> list[BackupRecord]:
        """All backups of ``path``, newest first."""
        original = Path(path).expanduser().resolve()
        return [
            self._read_record(self.backup_dir / name, original)
            for name in self._backup_names(original)
        ]

    def latest_backup(self, path: str | Path) -> Path | None:
        names = self._backup_names(Path(path).expanduser().resolve())
        if not names:
            return None
        return self.backup_dir / names[0]

    def has_recent_backup(self, path: str | Path, hours: float = 1) -> bool:
        """True when the newest backup of ``path`` is at most ``hours`` old."""
        latest = self.latest_backup(path)
        if latest is None:
            return False
        match = self._backup_pattern(path).match(latest.name)
        stamp = datetime.strptime(match.group(1), TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
        return self._clock() - stamp <= timedelta(hours=hours)

    def restore(self, path: str | Path, backup_path: str | Path | None = None) -> RestoreResult:
        """
        Overwrite ``path`` with a backup.

        Args:
            path: File to restore
            backup_path: Specific backup to use; defaults to the newest one

        Returns:
            RestoreResult naming the backup used and the pre-restore snapshot

        Raises:
            FileToolError: NO_BACKUP_FOUND when there is nothing to restore
                from (nothing is written in that case), IO_ERROR on write failure
        """
        target = Path(path).expanduser().resolve()

        if backup_path is None:
            source = self.latest_backup(target)
            if source is None:
                raise FileToolError(
                    ErrorKind.NO_BACKUP_FOUND,
                    f"No backup found for {target.name} in {self.backup_dir}",
                    path=str(target),
                )
        else:
            source = Path(backup_path).expanduser().resolve()
            if not source.is_file():
                raise FileToolError(
                    ErrorKind.NO_BACKUP_FOUND,
                    f"Backup file not found: {source}",
                    path=str(target),
                    details={"available": [r.backup_path for r in self.list_backups(target)]},
                )

        record = self._read_record(source, target)

        pre_restore = None
        if target.is_file():
            pre_restore = self.snapshot(target, PRE_RESTORE_REASON).backup_path

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
            data = target.read_bytes()
        except OSError as e:
            raise io_error(str(target), e, "restore") from e

        logger.info("Restored %s from %s", target, source.name)
        return RestoreResult(
            restored_from=str(source),
            pre_restore_backup=pre_restore,
            metadata=record.to_dict(),
            restored_size=len(data),
            restored_line_count=_count_lines(data),
        )
