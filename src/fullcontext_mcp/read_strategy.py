"""
Read strategy: decide how much of a file an agent gets per call.

The planner is pure. It maps (size, line count, requested chunk) to one of
three response modes:

- FULL:    the whole file, terminated by COMPLETE_MARKER
- PREVIEW: the first K lines, the remaining-line count, and the calls that
           continue reading
- CHUNK:   one line-bounded slice of the file

Lines are split on "\\n" exactly, so a trailing newline yields a final empty
line and an empty file is one empty line. Joining the payloads of chunks
0..total-1 with "\\n" reproduces the file byte-for-byte.
"""

import math
from dataclasses import dataclass
from enum import Enum

from .errors import ErrorKind, FileToolError


# Consumers test for this string to know no further chunks exist.
COMPLETE_MARKER = "=== END OF FILE: complete, no more chunks ==="
ALL_CHUNKS_READ_MARKER = "=== ALL CHUNKS READ: end of file reached ==="

DEFAULT_FULL_MAX_LINES = 200
DEFAULT_LINES_PER_CHUNK = 200
DEFAULT_PREVIEW_LINES = 100
DEFAULT_PREVIEW_MAX_BYTES = 20 * 1024


class ReadMode(Enum):
    FULL = "full"
    PREVIEW = "preview"
    CHUNK = "chunk"


@dataclass(frozen=True)
class FileHandle:
    """Filesystem facts about a file, derived fresh on every call."""

    path: str
    size_bytes: int
    line_count: int
    modified_at: str
    extension: str

    @property
    def size_kb(self) -> float:
        return round(self.size_bytes / 1024, 2)

    def header(self) -> str:
        return (
            f"File: {self.path}\n"
            f"Size: {self.size_bytes:,} bytes ({self.size_kb}KB)\n"
            f"Lines: {self.line_count}\n"
            f"Modified: {self.modified_at}"
        )


@dataclass(frozen=True)
class ChunkPlan:
    """A chunk's position, with 0-based inclusive line bounds."""

    chunk_index: int
    total_chunks: int
    start: int
    end: int

    @property
    def line_range(self) -> tuple[int, int]:
        """The chunk's lines, 1-based inclusive."""
        return (self.start + 1, self.end + 1)

    @property
    def has_more(self) -> bool:
        return self.chunk_index + 1 < self.total_chunks


@dataclass(frozen=True)
class ReadPlan:
    """How a read request will be served."""

    mode: ReadMode
    chunk: ChunkPlan | None = None
    preview_lines: int = 0


@dataclass
class ReadResult:
    """Result of a read operation."""

    mode: ReadMode
    handle: FileHandle
    payload: str
    lines_per_chunk: int = DEFAULT_LINES_PER_CHUNK
    chunk_index: int | None = None
    total_chunks: int | None = None
    line_range: tuple[int, int] | None = None
    remaining_lines: int = 0
    token_count: int | None = None
    next_tool: str = "read_file_chunk"

    @property
    def is_complete(self) -> bool:
        """True when the payload is the entire file."""
        return self.mode is ReadMode.FULL

    def render(self) -> str:
        """Agent-facing text for this result."""
        parts = [self.handle.header()]
        if self.token_count is not None:
            parts[0] += f"\nPayload tokens: ~{self.token_count:,}"

        if self.mode is ReadMode.FULL:
            parts.append(
                f"Full content ({self.handle.line_count} lines, nothing omitted)\n\n"
                f"=== FULL CONTENT ===\n{self.payload}\n{COMPLETE_MARKER}"
            )
        elif self.mode is ReadMode.PREVIEW:
            shown = self.handle.line_count - self.remaining_lines
            total_chunks = math.ceil(self.handle.line_count / self.lines_per_chunk)
            parts.append(
                f"Preview mode: showing lines 1-{shown} of {self.handle.line_count} "
                f"({self.remaining_lines} more lines exist)\n\n"
                f"=== LINES 1-{shown} ===\n{self.payload}\n"
                f"=== PREVIEW END: {self.remaining_lines} lines not shown ===\n\n"
                f"To continue reading:\n"
                f'- read_file_lines("{self.handle.path}", start_line={shown + 1})\n'
                f'- read_file_chunk("{self.handle.path}", chunk_index=0) '
                f"// {self.lines_per_chunk} lines per chunk, {total_chunks} chunks"
            )
        else:
            start, end = self.line_range or (0, 0)
            number = (self.chunk_index or 0) + 1
            total = self.total_chunks or 0
            body = (
                f"Chunk {number}/{total} (lines {start}-{end}, "
                f"{self.lines_per_chunk} lines per chunk)\n\n"
                f"=== CHUNK {number}/{total} START ===\n{self.payload}\n"
                f"=== CHUNK {number}/{total} END ===\n\n"
            )
            if number < total:
                body += (
                    f"{total - number} more chunk(s) remain. Next: "
                    f'{self.next_tool}("{self.handle.path}", chunk_index={number}, '
                    f"lines_per_chunk={self.lines_per_chunk})"
                )
            else:
                body += ALL_CHUNKS_READ_MARKER
            parts.append(body)

        return "\n\n".join(parts)

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "path": self.handle.path,
            "size_bytes": self.handle.size_bytes,
            "line_count": self.handle.line_count,
            "chunk_index": self.chunk_index,
            "total_chunks": self.total_chunks,
            "line_range": list(self.line_range) if self.line_range else None,
            "remaining_lines": self.remaining_lines,
            "is_complete": self.is_complete,
        }


def split_lines(text: str) -> list[str]:
    """Split text into lines the way every read and write in this package does."""
    return text.split("\n")


def validate_chunk_params(chunk_index: int, lines_per_chunk: int) -> None:
    if lines_per_chunk <= 0:
        raise FileToolError(
            ErrorKind.INVALID_PARAMETER,
            f"lines_per_chunk must be positive, got {lines_per_chunk}",
        )
    if chunk_index < 0:
        raise FileToolError(
            ErrorKind.INVALID_PARAMETER,
            f"chunk_index must not be negative, got {chunk_index}",
        )


def plan_chunk(line_count: int, chunk_index: int, lines_per_chunk: int) -> ChunkPlan:
    """
    Compute the line bounds of one chunk.

    Raises:
        FileToolError: INVALID_PARAMETER for a non-positive chunk size,
            CHUNK_OUT_OF_RANGE when the index is past the last chunk
    """
    validate_chunk_params(chunk_index, lines_per_chunk)

    total_chunks = math.ceil(line_count / lines_per_chunk)
    if chunk_index >= total_chunks:
        raise FileToolError(
            ErrorKind.CHUNK_OUT_OF_RANGE,
            f"Chunk index out of range: requested {chunk_index}, "
            f"file has {total_chunks} chunk(s) (0-{max(total_chunks - 1, 0)})",
            details={"total_chunks": total_chunks, "requested": chunk_index},
        )

    start = chunk_index * lines_per_chunk
    end = min(start + lines_per_chunk - 1, line_count - 1)
    return ChunkPlan(chunk_index=chunk_index, total_chunks=total_chunks, start=start, end=end)


def plan_smart_read(
    line_count: int,
    chunk_index: int = 0,
    lines_per_chunk: int = DEFAULT_LINES_PER_CHUNK,
    full_max_lines: int = DEFAULT_FULL_MAX_LINES,
) -> ReadPlan:
    """Line-count driven plan: whole file when small, otherwise one chunk."""
    validate_chunk_params(chunk_index, lines_per_chunk)

    if line_count <= full_max_lines:
        return ReadPlan(mode=ReadMode.FULL)

    return ReadPlan(
        mode=ReadMode.CHUNK,
        chunk=plan_chunk(line_count, chunk_index, lines_per_chunk),
    )


def plan_content_read(
    size_bytes: int,
    line_count: int,
    full_max_lines: int = DEFAULT_FULL_MAX_LINES,
    preview_lines: int = DEFAULT_PREVIEW_LINES,
    preview_max_bytes: int = DEFAULT_PREVIEW_MAX_BYTES,
    lines_per_chunk: int = DEFAULT_LINES_PER_CHUNK,
) -> ReadPlan:
    """
    Size-escalating plan for the "read the whole file" tool.

    The line count alone decides whether the file is served whole, so this
    entry point agrees with plan_smart_read on what counts as FULL. Beyond
    that, moderately sized files get a PREVIEW and large ones start at chunk 0.
    """
    if line_count <= full_max_lines:
        return ReadPlan(mode=ReadMode.FULL)

    if size_bytes <= preview_max_bytes:
        return ReadPlan(mode=ReadMode.PREVIEW, preview_lines=min(preview_lines, line_count))

    return ReadPlan(
        mode=ReadMode.CHUNK,
        chunk=plan_chunk(line_count, 0, lines_per_chunk),
    )


def materialize(
    plan: ReadPlan,
    handle: FileHandle,
    lines: list[str],
    lines_per_chunk: int = DEFAULT_LINES_PER_CHUNK,
    next_tool: str = "read_file_chunk",
) -> ReadResult:
    """Cut the planned slice out of ``lines`` and wrap it in a ReadResult."""
    if plan.mode is ReadMode.FULL:
        return ReadResult(
            mode=ReadMode.FULL,
            handle=handle,
            payload="\n".join(lines),
            lines_per_chunk=lines_per_chunk,
            line_range=(1, len(lines)),
            next_tool=next_tool,
        )

    if plan.mode is ReadMode.PREVIEW:
        shown = lines[:plan.preview_lines]
        return ReadResult(
            mode=ReadMode.PREVIEW,
            handle=handle,
            payload="\n".join(shown),
            lines_per_chunk=lines_per_chunk,
            line_range=(1, len(shown)),
            remaining_lines=len(lines) - len(shown),
            next_tool=next_tool,
        )

    chunk = plan.chunk
    if chunk is None:
        raise ValueError("chunk plan required for CHUNK mode")
    return ReadResult(
        mode=ReadMode.CHUNK,
        handle=handle,
        payload="\n".join(lines[chunk.start:chunk.end + 1]),
        lines_per_chunk=lines_per_chunk,
        chunk_index=chunk.chunk_index,
        total_chunks=chunk.total_chunks,
        line_range=chunk.line_range,
        remaining_lines=len(lines) - (chunk.end + 1),
        next_tool=next_tool,
    )
