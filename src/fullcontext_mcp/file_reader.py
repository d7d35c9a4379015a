"""
File reader: the filesystem side of the read tools.

Features:
- Async file I/O with aiofiles (non-blocking)
- Content kept byte-exact (no newline translation) so chunks re-join to the file
- Whole-file reads cached per path with a TTL
- Line-range reads and file metadata with a recommended read tool
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import aiofiles

from .errors import ErrorKind, FileToolError, io_error
from .read_strategy import (
    FileHandle,
    ReadMode,
    ReadPlan,
    ReadResult,
    materialize,
    plan_chunk,
    plan_content_read,
    plan_smart_read,
    split_lines,
)
from .resources import SharedResources

logger = logging.getLogger(__name__)

# Encodings tried in order; latin-1 never fails so it terminates the chain
ENCODINGS = ["utf-8", "latin-1"]
BINARY_SNIFF_BYTES = 8192

LARGE_FILE_LINES = 300
MEDIUM_FILE_LINES = 100


async def read_text_with_encoding(path: Path) -> tuple[str, str]:
    """
    Read a file as text, byte-exact apart from decoding.

    Returns the text and the encoding that decoded it; writers use the same
    encoding so a latin-1 file stays latin-1.
    """
    for encoding in ENCODINGS:
        try:
            async with aiofiles.open(path, mode="r", encoding=encoding, newline="") as f:
                return await f.read(), encoding
        except UnicodeDecodeError:
            continue  # Expected - try next encoding
        except OSError as e:
            raise io_error(str(path), e, "read") from e
    raise FileToolError(ErrorKind.IO_ERROR, f"Could not decode {path}", path=str(path))


async def read_text(path: Path) -> str:
    text, _ = await read_text_with_encoding(path)
    return text


@dataclass
class LineRangeResult:
    """A 1-based inclusive slice of a file's lines."""
    handle: FileHandle
    start_line: int
    end_line: int
    payload: str
    max_lines: int

    @property
    def total_lines(self) -> int:
        return self.handle.line_count

    @property
    def has_more(self) -> bool:
        return self.end_line < self.total_lines

    @property
    def next_range(self) -> tuple[int, int] | None:
        if not self.has_more:
            return None
        start = self.end_line + 1
        return (start, min(start + self.max_lines - 1, self.total_lines))

    def render(self) -> str:
        path = self.handle.path
        shown = self.end_line - self.start_line + 1
        text = (
            f"{self.handle.header()}\n"
            f"Showing lines {self.start_line}-{self.end_line} ({shown} lines)\n\n"
            f"=== LINES {self.start_line}-{self.end_line} ===\n"
            f"{self.payload}\n"
            f"=== END OF RANGE ===\n\n"
        )
        if self.next_range:
            start, end = self.next_range
            text += f'Next: read_file_lines("{path}", start_line={start}, end_line={end})'
        else:
            text += "All lines up to the end of the file have been read."
        return text

    def to_dict(self) -> dict:
        return {
            "path": self.handle.path,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "total_lines": self.total_lines,
            "next_range": list(self.next_range) if self.next_range else None,
        }


@dataclass
class FileInfo:
    handle: FileHandle
    is_binary: bool
    permissions: str

    @property
    def recommendation(self) -> str:
        path = self.handle.path
        lines = self.handle.line_count
        if self.is_binary:
            return "Binary file: not readable as text"
        if lines > LARGE_FILE_LINES:
            return (
                f"Large file ({lines} lines):\n"
                f'- read_file_chunk("{path}") reads 200 lines per chunk\n'
                f'- read_file_lines("{path}", start_line=1, end_line=100) reads a specific range'
            )
        if lines > MEDIUM_FILE_LINES:
            return (
                f"Medium file ({lines} lines):\n"
                f'- read_file_content("{path}") returns a preview\n'
                f'- read_file_lines("{path}") reads a specific range'
            )
        return (
            f"Small file ({lines} lines):\n"
            f'- read_file_content("{path}") returns the whole file'
        )

    @property
    def recommended_tool(self) -> str | None:
        if self.is_binary:
            return None
        if self.handle.line_count > LARGE_FILE_LINES:
            return "read_file_chunk"
        if self.handle.line_count > MEDIUM_FILE_LINES:
            return "read_file_lines"
        return "read_file_content"

    def render(self) -> str:
        return (
            f"{self.handle.header()}\n"
            f"Extension: {self.handle.extension or '(none)'}\n"
            f"Permissions: {self.permissions}\n"
            f"Type: {'binary' if self.is_binary else 'text'}\n\n"
            f"{self.recommendation}"
        )

    def to_dict(self) -> dict:
        return {
            "path": self.handle.path,
            "size_bytes": self.handle.size_bytes,
            "line_count": self.handle.line_count,
            "modified_at": self.handle.modified_at,
            "extension": self.handle.extension,
            "is_binary": self.is_binary,
            "recommended_tool": self.recommended_tool,
        }


class FileReader:
    """Applies the read strategy and the content cache to real files."""

    def __init__(self, resources: SharedResources):
        self.resources = resources
        self.config = resources.config

    # -------------------------------------------------------------------------
    # Filesystem access
    # -------------------------------------------------------------------------

    @staticmethod
    def resolve(path: str) -> Path:
        if not path:
            raise FileToolError(ErrorKind.INVALID_PARAMETER, "path must not be empty")
        return Path(path).expanduser().resolve()

    @staticmethod
    def _stat(path: Path):
        try:
            stat = path.stat()
        except OSError as e:
            raise io_error(str(path), e, "stat") from e
        if not path.is_file():
            raise FileToolError(
                ErrorKind.SOURCE_NOT_FOUND,
                f"Not a regular file: {path}",
                path=str(path),
            )
        return stat

    async def _load(self, path: str) -> tuple[FileHandle, list[str]]:
        resolved = self.resolve(path)
        stat = self._stat(resolved)
        text = await read_text(resolved)
        lines = split_lines(text)
        handle = FileHandle(
            path=str(resolved),
            size_bytes=stat.st_size,
            line_count=len(lines),
            modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
            extension=resolved.suffix.lower(),
        )
        return handle, lines

    async def _with_tokens(self, result: ReadResult) -> ReadResult:
        counter = self.resources.token_counter
        if counter is not None:
            result.token_count = await counter.count_async(result.payload)
        return result

    # -------------------------------------------------------------------------
    # Read operations
    # -------------------------------------------------------------------------

    async def read_content(self, path: str) -> ReadResult:
        """
        Read a file, escalating from FULL to PREVIEW to the first CHUNK by size.

        Results for files under the cache size limit are cached per path; a
        fresh cached result is returned without touching the filesystem.
        """
        cache = self.resources.cache
        resolved = self.resolve(path)

        cached = cache.get(resolved)
        if cached is not None:
            return cached

        handle, lines = await self._load(path)
        plan = plan_content_read(
            handle.size_bytes,
            handle.line_count,
            full_max_lines=self.config.full_max_lines,
            preview_lines=self.config.preview_lines,
            preview_max_bytes=self.config.preview_max_bytes,
            lines_per_chunk=self.config.lines_per_chunk,
        )
        result = await self._with_tokens(
            materialize(plan, handle, lines, lines_per_chunk=self.config.lines_per_chunk)
        )

        if handle.size_bytes <= self.config.cache_max_file_bytes:
            cache.set(resolved, result)
        logger.debug("read_content %s: %s", handle.path, result.mode.value)
        return result

    async def read_smart(
        self,
        path: str,
        chunk_index: int = 0,
        lines_per_chunk: int | None = None,
    ) -> ReadResult:
        """Whole file when it is short, otherwise the requested chunk."""
        if lines_per_chunk is None:
            lines_per_chunk = self.config.lines_per_chunk
        handle, lines = await self._load(path)
        plan = plan_smart_read(
            handle.line_count,
            chunk_index=chunk_index,
            lines_per_chunk=lines_per_chunk,
            full_max_lines=self.config.full_max_lines,
        )
        return await self._with_tokens(
            materialize(plan, handle, lines, lines_per_chunk, next_tool="read_file_smart")
        )

    async def read_chunk(
        self,
        path: str,
        chunk_index: int = 0,
        lines_per_chunk: int | None = None,
    ) -> ReadResult:
        """One chunk, regardless of file size."""
        if lines_per_chunk is None:
            lines_per_chunk = self.config.lines_per_chunk
        handle, lines = await self._load(path)
        plan = ReadPlan(
            mode=ReadMode.CHUNK,
            chunk=plan_chunk(handle.line_count, chunk_index, lines_per_chunk),
        )
        return await self._with_tokens(materialize(plan, handle, lines, lines_per_chunk))

    async def read_lines(
        self,
        path: str,
        start_line: int = 1,
        end_line: int | None = None,
        max_lines: int | None = None,
    ) -> LineRangeResult:
        """
        Read a 1-based inclusive line range.

        Args:
            path: File to read
            start_line: First line; values below 1 are clamped to 1
            end_line: Last line; defaults to start_line + max_lines - 1
            max_lines: Cap on the number of lines returned

        Raises:
            FileToolError: INVALID_PARAMETER if start_line is past the end of
                the file or end_line precedes start_line
        """
        if max_lines is None:
            max_lines = self.config.max_range_lines
        if max_lines <= 0:
            raise FileToolError(
                ErrorKind.INVALID_PARAMETER, f"max_lines must be positive, got {max_lines}"
            )

        handle, lines = await self._load(path)
        total = handle.line_count

        start_line = max(start_line, 1)
        if start_line > total:
            raise FileToolError(
                ErrorKind.INVALID_PARAMETER,
                f"start_line {start_line} is past the end of the file ({total} lines)",
                path=handle.path,
            )

        end = end_line if end_line is not None else start_line + max_lines - 1
        if end < start_line:
            raise FileToolError(
                ErrorKind.INVALID_PARAMETER,
                f"end_line {end} is before start_line {start_line}",
                path=handle.path,
            )
        end = min(end, total, start_line + max_lines - 1)

        return LineRangeResult(
            handle=handle,
            start_line=start_line,
            end_line=end,
            payload="\n".join(lines[start_line - 1:end]),
            max_lines=max_lines,
        )

    async def file_info(self, path: str) -> FileInfo:
        """Metadata, binary detection and a recommended read tool."""
        resolved = self.resolve(path)
        stat = self._stat(resolved)

        try:
            async with aiofiles.open(resolved, mode="rb") as f:
                head = await f.read(BINARY_SNIFF_BYTES)
        except OSError as e:
            raise io_error(str(resolved), e, "read") from e
        is_binary = b"\x00" in head

        line_count = 0
        if not is_binary:
            line_count = len(split_lines(await read_text(resolved)))

        handle = FileHandle(
            path=str(resolved),
            size_bytes=stat.st_size,
            line_count=line_count,
            modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
            extension=resolved.suffix.lower(),
        )
        return FileInfo(handle=handle, is_binary=is_binary, permissions=oct(stat.st_mode & 0o777))
