"""
Unit tests for the read strategy planner.

Tests cover:
- FULL / PREVIEW / CHUNK mode selection
- Chunk bounds and out-of-range indices
- Re-joining chunks reproduces the file
- Rendered completion and continuation markers
"""

import pytest

from fullcontext_mcp.errors import ErrorKind, FileToolError
from fullcontext_mcp.read_strategy import (
    ALL_CHUNKS_READ_MARKER,
    COMPLETE_MARKER,
    FileHandle,
    ReadMode,
    materialize,
    plan_chunk,
    plan_content_read,
    plan_smart_read,
    split_lines,
)


def make_handle(text: str, path: str = "/work/file.js") -> FileHandle:
    return FileHandle(
        path=path,
        size_bytes=len(text.encode("utf-8")),
        line_count=len(split_lines(text)),
        modified_at="2024-01-01T00:00:00+00:00",
        extension=".js",
    )


class TestSplitLines:
    """Tests for the line model."""

    def test_trailing_newline_yields_empty_last_line(self):
        """A trailing newline counts as a final empty line."""
        assert split_lines("a\nb\n") == ["a", "b", ""]

    def test_empty_text_is_one_line(self):
        """An empty file is one empty line."""
        assert split_lines("") == [""]


class TestPlanChunk:
    """Tests for chunk bound arithmetic."""

    def test_middle_chunk_bounds(self):
        """Chunk 1 of 450 lines at 200 per chunk covers lines 201-400."""
        chunk = plan_chunk(450, 1, 200)

        assert chunk.total_chunks == 3
        assert chunk.line_range == (201, 400)
        assert chunk.has_more

    def test_last_chunk_is_short(self):
        """The last chunk stops at the final line."""
        chunk = plan_chunk(450, 2, 200)

        assert chunk.line_range == (401, 450)
        assert not chunk.has_more

    def test_index_past_end_raises(self):
        """Requesting chunk 5 of a 3-chunk file is ChunkOutOfRange."""
        with pytest.raises(FileToolError) as exc_info:
            plan_chunk(450, 5, 200)

        assert exc_info.value.kind is ErrorKind.CHUNK_OUT_OF_RANGE
        assert exc_info.value.details["total_chunks"] == 3

    def test_non_positive_chunk_size_is_invalid(self):
        """Zero lines per chunk is an invalid parameter, not a division error."""
        with pytest.raises(FileToolError) as exc_info:
            plan_chunk(10, 0, 0)

        assert exc_info.value.kind is ErrorKind.INVALID_PARAMETER

    def test_negative_index_is_invalid(self):
        with pytest.raises(FileToolError) as exc_info:
            plan_chunk(10, -1, 5)

        assert exc_info.value.kind is ErrorKind.INVALID_PARAMETER


class TestModeSelection:
    """Tests for choosing between FULL, PREVIEW and CHUNK."""

    def test_short_file_is_full(self):
        assert plan_smart_read(200).mode is ReadMode.FULL
        assert plan_content_read(1_000_000, 200).mode is ReadMode.FULL

    def test_smart_read_chunks_long_file(self):
        """201 lines is one past the threshold."""
        plan = plan_smart_read(201, chunk_index=1)

        assert plan.mode is ReadMode.CHUNK
        assert plan.chunk.line_range == (201, 201)

    def test_moderate_file_gets_preview(self):
        plan = plan_content_read(size_bytes=10_000, line_count=450)

        assert plan.mode is ReadMode.PREVIEW
        assert plan.preview_lines == 100

    def test_large_file_starts_at_first_chunk(self):
        plan = plan_content_read(size_bytes=40_000, line_count=500)

        assert plan.mode is ReadMode.CHUNK
        assert plan.chunk.chunk_index == 0


class TestMaterialize:
    """Tests for cutting payloads and rendering results."""

    def test_full_result_ends_with_complete_marker(self):
        """A FULL render carries the whole file and the completion marker."""
        text = "const a = 1;\nconst b = 2;\n"
        handle = make_handle(text)

        result = materialize(plan_smart_read(handle.line_count), handle, split_lines(text))
        rendered = result.render()

        assert result.is_complete
        assert result.payload == text
        assert rendered.rstrip().endswith(COMPLETE_MARKER)

    def test_chunks_rejoin_to_original(self):
        """Joining every chunk payload with newlines reproduces the file exactly."""
        text = "\n".join(f"line {i}" for i in range(1, 451)) + "\n"
        handle = make_handle(text)
        lines = split_lines(text)

        payloads = []
        total = plan_chunk(len(lines), 0, 200).total_chunks
        for index in range(total):
            plan = plan_smart_read(len(lines), chunk_index=index, lines_per_chunk=200, full_max_lines=200)
            payloads.append(materialize(plan, handle, lines, 200).payload)

        assert "\n".join(payloads) == text

    def test_chunk_render_names_next_call(self):
        text = "\n".join(f"line {i}" for i in range(1, 451))
        handle = make_handle(text)
        plan = plan_smart_read(handle.line_count, chunk_index=0)

        rendered = materialize(plan, handle, split_lines(text), next_tool="read_file_smart").render()

        assert "Chunk 1/3 (lines 1-200" in rendered
        assert 'read_file_smart("/work/file.js", chunk_index=1' in rendered
        assert COMPLETE_MARKER not in rendered

    def test_last_chunk_render_says_all_read(self):
        text = "\n".join(f"line {i}" for i in range(1, 451))
        handle = make_handle(text)
        plan = plan_smart_read(handle.line_count, chunk_index=2)

        result = materialize(plan, handle, split_lines(text))

        assert result.remaining_lines == 0
        assert ALL_CHUNKS_READ_MARKER in result.render()

    def test_preview_reports_remaining_lines(self):
        text = "\n".join(f"line {i}" for i in range(1, 451))
        handle = make_handle(text)
        plan = plan_content_read(handle.size_bytes, handle.line_count)

        result = materialize(plan, handle, split_lines(text))
        rendered = result.render()

        assert result.mode is ReadMode.PREVIEW
        assert result.remaining_lines == 350
        assert result.payload.split("\n")[-1] == "line 100"
        assert "start_line=101" in rendered
        assert COMPLETE_MARKER not in rendered
