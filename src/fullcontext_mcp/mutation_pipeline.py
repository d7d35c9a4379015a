"""
Safety-gated mutation pipeline.

Every write follows the same sequence:

    validate -> back up -> write -> invalidate cache

Validation and parameter errors are raised before anything touches the
filesystem, so a rejected edit leaves neither a backup nor a partial write.
A write that fails after its backup was taken reports the backup as the
recovery path. Mutations of the same file are serialized with a per-path lock.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path

import aiofiles

from .backup_store import BackupRecord, RestoreResult
from .errors import ErrorKind, FileToolError
from .file_reader import read_text_with_encoding
from .read_strategy import split_lines
from .resources import SharedResources
from .risk_analyzer import RiskSignal, assess
from .safety_advisor import Operation, guidelines
from .structural_validator import ValidationResult, line_range_errors

logger = logging.getLogger(__name__)

PREVIEW_LINES = 10
PREVIEW_CHARS = 500


def _preview(content: str) -> str:
    if len(content) <= PREVIEW_CHARS:
        return content
    return content[:PREVIEW_CHARS] + f"\n... ({len(split_lines(content))} lines total)"


def _validation_block(validation: ValidationResult | None) -> str:
    if validation is None:
        return ""
    report = validation.report()
    return f"\n{report}\n" if report else ""


def _risk_block(risks: list[RiskSignal]) -> str:
    if not risks:
        return ""
    return "\nRisk signals:\n" + "\n".join(f"  {r}" for r in risks) + "\n"


def _backup_line(backup: BackupRecord | None) -> str:
    return f"Backup: {backup.backup_path}" if backup else "Backup: none"


@dataclass
class CompleteReplaceResult:
    path: str
    created: bool
    before_size: int
    before_lines: int
    after_size: int
    after_lines: int
    content: str
    backup: BackupRecord | None
    validation: ValidationResult
    risks: list[RiskSignal] = field(default_factory=list)

    def render(self) -> str:
        head = "\n".join(split_lines(self.content)[:PREVIEW_LINES])
        more = f"\n... ({self.after_lines} lines total)" if self.after_lines > PREVIEW_LINES else ""
        state = "New file created" if self.created else "Existing file replaced"
        return (
            f"File written: {self.path}\n"
            f"{_validation_block(self.validation)}{_risk_block(self.risks)}\n"
            f"{state}\n"
            f"Lines: {self.before_lines} -> {self.after_lines}\n"
            f"Size: {self.before_size:,} -> {self.after_size:,} bytes\n"
            f"{_backup_line(self.backup)}\n"
            f"Validation: {'passed' if not self.validation.warnings else 'passed with warnings'}\n\n"
            f"=== FIRST {PREVIEW_LINES} LINES ===\n{head}{more}\n=== END OF PREVIEW ==="
        )

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "created": self.created,
            "before": {"size": self.before_size, "lines": self.before_lines},
            "after": {"size": self.after_size, "lines": self.after_lines},
            "backup": self.backup.to_dict() if self.backup else None,
            "validation": self.validation.to_dict(),
            "risks": [r.to_dict() for r in self.risks],
        }


@dataclass
class RangeReplaceResult:
    path: str
    start_line: int
    end_line: int
    new_range_lines: int
    total_lines_before: int
    total_lines_after: int
    before_size: int
    after_size: int
    new_content: str
    backup: BackupRecord | None
    validation: ValidationResult
    risks: list[RiskSignal] = field(default_factory=list)

    @property
    def replaced_lines(self) -> int:
        return self.end_line - self.start_line + 1

    @property
    def line_delta(self) -> int:
        return self.new_range_lines - self.replaced_lines

    def render(self) -> str:
        return (
            f"Range edit applied: {self.path}\n"
            f"{_validation_block(self.validation)}{_risk_block(self.risks)}\n"
            f"Range: lines {self.start_line}-{self.end_line} "
            f"({self.replaced_lines} lines -> {self.new_range_lines} lines, {self.line_delta:+d})\n"
            f"Total lines: {self.total_lines_before} -> {self.total_lines_after}\n"
            f"Size: {self.before_size:,} -> {self.after_size:,} bytes\n"
            f"{_backup_line(self.backup)}\n\n"
            f"=== NEW CONTENT ({self.new_range_lines} lines) ===\n"
            f"{_preview(self.new_content)}\n=== END OF PREVIEW ==="
        )

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "range": [self.start_line, self.end_line],
            "replaced_lines": self.replaced_lines,
            "new_range_lines": self.new_range_lines,
            "line_delta": self.line_delta,
            "total_lines": {"before": self.total_lines_before, "after": self.total_lines_after},
            "size": {"before": self.before_size, "after": self.after_size},
            "backup": self.backup.to_dict() if self.backup else None,
            "validation": self.validation.to_dict(),
            "risks": [r.to_dict() for r in self.risks],
        }


@dataclass
class AppendResult:
    path: str
    created: bool
    added_lines: int
    total_lines: int
    before_size: int
    after_size: int
    content: str
    backup: BackupRecord | None
    validation: ValidationResult | None = None

    def render(self) -> str:
        mode = "File did not exist and was created" if self.created else "Content appended"
        return (
            f"{mode}: {self.path}\n"
            f"{_validation_block(self.validation)}\n"
            f"Added lines: {self.added_lines}\n"
            f"Total lines: {self.total_lines}\n"
            f"Size: {self.before_size:,} -> {self.after_size:,} bytes\n"
            f"{_backup_line(self.backup)}\n\n"
            f"=== APPENDED CONTENT ===\n{_preview(self.content)}\n=== END OF PREVIEW ==="
        )

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "created": self.created,
            "added_lines": self.added_lines,
            "total_lines": self.total_lines,
            "size": {"before": self.before_size, "after": self.after_size},
            "backup": self.backup.to_dict() if self.backup else None,
        }


@dataclass
class DeleteLinesResult:
    path: str
    start_line: int
    end_line: int
    total_lines_before: int
    total_lines_after: int
    before_size: int
    after_size: int
    backup: BackupRecord

    @property
    def deleted_lines(self) -> int:
        return self.end_line - self.start_line + 1

    def render(self) -> str:
        return (
            f"Lines deleted: {self.path}\n\n"
            f"Range: lines {self.start_line}-{self.end_line} ({self.deleted_lines} lines)\n"
            f"Total lines: {self.total_lines_before} -> {self.total_lines_after}\n"
            f"Size: {self.before_size:,} -> {self.after_size:,} bytes\n"
            f"{_backup_line(self.backup)}"
        )

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "range": [self.start_line, self.end_line],
            "deleted_lines": self.deleted_lines,
            "total_lines": {"before": self.total_lines_before, "after": self.total_lines_after},
            "size": {"before": self.before_size, "after": self.after_size},
            "backup": self.backup.to_dict(),
        }


class MutationPipeline:
    """Validated, backed-up writes against the workspace."""

    def __init__(self, resources: SharedResources):
        self.resources = resources
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def _locked(self, path: Path):
        """Hold the per-path lock; the entry is dropped once nobody holds or awaits it."""
        key = str(path)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    @staticmethod
    def _resolve(path: str) -> Path:
        if not path:
            raise FileToolError(ErrorKind.INVALID_PARAMETER, "path must not be empty")
        return Path(path).expanduser().resolve()

    @staticmethod
    def _require_file(path: Path) -> None:
        if not path.is_file():
            raise FileToolError(
                ErrorKind.SOURCE_NOT_FOUND,
                f"File not found: {path}",
                path=str(path),
            )

    @staticmethod
    def _require_encodable(path: Path, content: str, encoding: str) -> None:
        try:
            content.encode(encoding)
        except UnicodeEncodeError as e:
            raise FileToolError(
                ErrorKind.INVALID_PARAMETER,
                f"{path} is {encoding}-encoded and cannot hold {e.object[e.start:e.end]!r}",
                path=str(path),
            ) from e

    @staticmethod
    def _size(path: Path) -> int:
        try:
            return path.stat().st_size
        except OSError:
            return 0

    async def _write(
        self,
        path: Path,
        content: str,
        backup: BackupRecord | None,
        mode: str = "w",
        encoding: str = "utf-8",
    ) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, mode=mode, encoding=encoding, newline="") as f:
                await f.write(content)
        except OSError as e:
            message = f"Failed to write {path}: {e.strerror or e}"
            details = {}
            if backup is not None:
                message += f". The previous content is preserved in {backup.backup_path}"
                details["recovery_backup"] = backup.backup_path
            logger.error(message)
            raise FileToolError(ErrorKind.IO_ERROR, message, path=str(path), details=details) from e
        finally:
            # A failed write may still have truncated the file
            self.resources.cache.invalidate(path)

    def _reject(self, kind: ErrorKind, path: Path, validation: ValidationResult, op: Operation):
        logger.warning("Rejected edit of %s: %s", path, "; ".join(validation.errors))
        errors = "\n".join(f"- {e}" for e in validation.errors)
        return FileToolError(
            kind,
            f"Validation failed for {path}:\n{errors}\n\n{guidelines(op).render()}",
            path=str(path),
            details=validation.to_dict(),
        )

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def complete_replace(self, path: str, new_content: str) -> CompleteReplaceResult:
        """
        Replace a file's whole content, creating the file if needed.

        Raises:
            FileToolError: VALIDATION_FAILED when the new content fails a hard
                check (nothing is written), IO_ERROR when the write fails
        """
        resolved = self._resolve(path)
        async with self._locked(resolved):
            if resolved.exists() and not resolved.is_file():
                raise FileToolError(
                    ErrorKind.INVALID_PARAMETER,
                    f"Not a regular file: {resolved}",
                    path=str(resolved),
                )

            original, encoding = None, "utf-8"
            if resolved.is_file():
                original, encoding = await read_text_with_encoding(resolved)

            validation = self.resources.validator.validate_complete_replace(
                new_content, original, str(resolved)
            )
            if not validation.is_valid:
                raise self._reject(ErrorKind.VALIDATION_FAILED, resolved, validation, Operation.COMPLETE)
            self._require_encodable(resolved, new_content, encoding)

            risks = assess(original, new_content) if original is not None else []
            before_size = self._size(resolved)

            backup = None
            if original is not None:
                backup = self.resources.backups.snapshot(resolved, "Before complete replace")

            await self._write(resolved, new_content, backup, encoding=encoding)
            logger.info("Wrote %s (%d bytes)", resolved, self._size(resolved))

            return CompleteReplaceResult(
                path=str(resolved),
                created=original is None,
                before_size=before_size,
                before_lines=len(split_lines(original)) if original is not None else 0,
                after_size=self._size(resolved),
                after_lines=len(split_lines(new_content)),
                content=new_content,
                backup=backup,
                validation=validation,
                risks=risks,
            )

    async def range_replace(
        self,
        path: str,
        start_line: int,
        end_line: int,
        new_content: str,
        backup: bool = True,
    ) -> RangeReplaceResult:
        """
        Replace lines ``start_line``..``end_line`` (1-based, inclusive).

        Raises:
            FileToolError: SOURCE_NOT_FOUND if the file is missing,
                INVALID_PARAMETER for an out-of-range line span,
                IO_ERROR when the write fails
        """
        resolved = self._resolve(path)
        async with self._locked(resolved):
            self._require_file(resolved)
            original, encoding = await read_text_with_encoding(resolved)

            validation = self.resources.validator.validate_range(
                original, start_line, end_line, new_content
            )
            if not validation.is_valid:
                raise self._reject(ErrorKind.INVALID_PARAMETER, resolved, validation, Operation.DIFF)
            self._require_encodable(resolved, new_content, encoding)

            before_size = self._size(resolved)
            record = None
            if backup:
                record = self.resources.backups.snapshot(resolved, "Before line-range edit")

            lines = split_lines(original)
            new_lines = split_lines(new_content)
            updated_lines = lines[:start_line - 1] + new_lines + lines[end_line:]
            updated = "\n".join(updated_lines)

            await self._write(resolved, updated, record, encoding=encoding)
            logger.info("Replaced lines %d-%d of %s", start_line, end_line, resolved)

            return RangeReplaceResult(
                path=str(resolved),
                start_line=start_line,
                end_line=end_line,
                new_range_lines=len(new_lines),
                total_lines_before=len(lines),
                total_lines_after=len(updated_lines),
                before_size=before_size,
                after_size=self._size(resolved),
                new_content=new_content,
                backup=record,
                validation=validation,
                risks=assess(original, updated),
            )

    async def append(self, path: str, content: str) -> AppendResult:
        """Append ``"\\n" + content``; a missing file is created whole instead."""
        resolved = self._resolve(path)

        if not resolved.exists():
            written = await self.complete_replace(path, content)
            return AppendResult(
                path=written.path,
                created=True,
                added_lines=written.after_lines,
                total_lines=written.after_lines,
                before_size=0,
                after_size=written.after_size,
                content=content,
                backup=None,
                validation=written.validation,
            )

        async with self._locked(resolved):
            self._require_file(resolved)
            original, encoding = await read_text_with_encoding(resolved)
            self._require_encodable(resolved, content, encoding)
            before_size = self._size(resolved)

            record = self.resources.backups.snapshot(resolved, "Before append")
            await self._write(resolved, "\n" + content, record, mode="a", encoding=encoding)
            logger.info("Appended %d line(s) to %s", len(split_lines(content)), resolved)

            return AppendResult(
                path=str(resolved),
                created=False,
                added_lines=len(split_lines(content)),
                total_lines=len(split_lines(original)) + len(split_lines(content)),
                before_size=before_size,
                after_size=self._size(resolved),
                content=content,
                backup=record,
            )

    async def delete_lines(self, path: str, start_line: int, end_line: int) -> DeleteLinesResult:
        """Remove lines ``start_line``..``end_line``; always backs up first."""
        resolved = self._resolve(path)
        async with self._locked(resolved):
            self._require_file(resolved)
            original, encoding = await read_text_with_encoding(resolved)
            lines = split_lines(original)

            errors = line_range_errors(len(lines), start_line, end_line)
            if errors:
                raise self._reject(
                    ErrorKind.INVALID_PARAMETER, resolved, ValidationResult(errors=errors), Operation.DIFF
                )

            before_size = self._size(resolved)
            record = self.resources.backups.snapshot(resolved, "Before line deletion")

            remaining = lines[:start_line - 1] + lines[end_line:]
            await self._write(resolved, "\n".join(remaining), record, encoding=encoding)
            logger.info("Deleted lines %d-%d of %s", start_line, end_line, resolved)

            return DeleteLinesResult(
                path=str(resolved),
                start_line=start_line,
                end_line=end_line,
                total_lines_before=len(lines),
                total_lines_after=len(remaining),
                before_size=before_size,
                after_size=self._size(resolved),
                backup=record,
            )

    async def restore(self, path: str, backup_path: str | None = None) -> RestoreResult:
        """Restore from a backup (newest by default) and drop the cached read."""
        resolved = self._resolve(path)
        async with self._locked(resolved):
            result = self.resources.backups.restore(resolved, backup_path)
            self.resources.cache.invalidate(resolved)
            return result
