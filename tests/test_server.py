"""
Integration tests for tool dispatch.

Tests cover:
- Tool registry completeness
- Read, write and safety tools through dispatch()
- Error rendering as "Error [<kind>]: ..."
- Rate gate and server status wiring
"""

import json
from pathlib import Path

import pytest
from mcp.server import Server

from fullcontext_mcp import server
from fullcontext_mcp.errors import ToolCallError
from fullcontext_mcp.read_strategy import COMPLETE_MARKER
from fullcontext_mcp.resources import SharedResources

EXPECTED_TOOLS = {
    "read_file_content",
    "read_file_smart",
    "read_file_chunk",
    "read_file_lines",
    "get_file_info",
    "write_file_complete",
    "write_file_diff",
    "append_to_file",
    "delete_lines",
    "create_safety_backup",
    "restore_from_backup",
    "list_backups",
    "analyze_code_changes",
    "validate_code_integrity",
    "suggest_safe_edit_strategy",
    "get_ai_safety_guidelines",
    "check_prerequisites",
    "server_status",
}


@pytest.fixture
def installed(resources: SharedResources):
    """Install test resources as the server's singletons."""
    server.set_resources(resources)
    yield resources
    server.reset_instances()


async def call(name: str, **arguments) -> str:
    result = await server.dispatch(name, arguments)
    assert len(result) == 1
    return result[0].text


class TestToolRegistry:
    """Tests for the declared tool list."""

    def test_all_tools_declared(self):
        names = [tool.name for tool in server.TOOLS]

        assert len(names) == len(set(names))
        assert set(names) == EXPECTED_TOOLS

    def test_every_tool_has_a_handler(self):
        assert set(server.TOOL_HANDLERS) | {"server_status"} == EXPECTED_TOOLS

    def test_required_arguments_declared(self):
        schemas = {tool.name: tool.inputSchema for tool in server.TOOLS}

        assert schemas["write_file_diff"]["required"] == [
            "file_path", "start_line", "end_line", "new_content",
        ]

    def test_create_server(self, installed):
        assert isinstance(server.create_server(), Server)


class TestReadTools:
    """Read tools through dispatch()."""

    @pytest.mark.asyncio
    async def test_read_file_content(self, installed, sample_files: dict):
        text = await call("read_file_content", file_path=str(sample_files["calc"]))

        assert text.rstrip().endswith(COMPLETE_MARKER)
        assert "function mul(a, b)" in text

    @pytest.mark.asyncio
    async def test_chunk_number_alias(self, installed, sample_files: dict):
        text = await call("read_file_chunk", file_path=str(sample_files["large"]), chunk_number=1)

        assert "Chunk 2/3 (lines 201-400" in text

    @pytest.mark.asyncio
    async def test_chunk_out_of_range_error(self, installed, sample_files: dict):
        with pytest.raises(ToolCallError) as exc_info:
            await call("read_file_smart", file_path=str(sample_files["large"]), chunk_index=5)

        assert str(exc_info.value).startswith("Error [ChunkOutOfRange]:")

    @pytest.mark.asyncio
    async def test_read_file_lines(self, installed, sample_files: dict):
        text = await call("read_file_lines", file_path=str(sample_files["calc"]), start_line=4, end_line=6)

        assert "=== LINES 4-6 ===\nfunction sub(a, b) {" in text

    @pytest.mark.asyncio
    async def test_missing_file(self, installed, temp_dir: Path):
        with pytest.raises(ToolCallError) as exc_info:
            await call("get_file_info", file_path=str(temp_dir / "missing.py"))

        assert str(exc_info.value).startswith("Error [SourceNotFound]:")

    @pytest.mark.asyncio
    async def test_missing_argument(self, installed):
        with pytest.raises(ToolCallError) as exc_info:
            await call("read_file_content")

        assert str(exc_info.value) == "Error [InvalidParameter]: file_path is required"

    @pytest.mark.asyncio
    async def test_wrong_argument_type(self, installed, sample_files: dict):
        with pytest.raises(ToolCallError) as exc_info:
            await call("read_file_chunk", file_path=str(sample_files["large"]), chunk_index="two")

        assert "Error [InvalidParameter]" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_unknown_tool(self, installed):
        with pytest.raises(ToolCallError) as exc_info:
            await call("format_disk")

        assert str(exc_info.value) == "Error [InvalidParameter]: Unknown tool: format_disk"


class TestWriteAndSafetyTools:
    """Write and safety tools through dispatch()."""

    @pytest.mark.asyncio
    async def test_diff_then_list_then_restore(self, installed, sample_files: dict):
        path = sample_files["calc"]
        original = path.read_text()

        text = await call(
            "write_file_diff",
            file_path=str(path),
            start_line=2,
            end_line=2,
            new_content="  return b + a;",
        )
        assert "Range edit applied" in text
        assert "Total lines: 9 -> 9" in text

        listing = await call("list_backups", file_path=str(path))
        assert "(1, newest first)" in listing

        restored = await call("restore_from_backup", file_path=str(path))
        assert "Restored calc.js from backup" in restored
        assert path.read_text() == original

    @pytest.mark.asyncio
    async def test_write_complete_validation_error(self, installed, sample_files: dict):
        with pytest.raises(ToolCallError) as exc_info:
            await call("write_file_complete", file_path=str(sample_files["calc"]), content="function a() {")

        assert str(exc_info.value).startswith("Error [ValidationFailed]:")

    @pytest.mark.asyncio
    async def test_restore_without_backup(self, installed, sample_files: dict):
        with pytest.raises(ToolCallError) as exc_info:
            await call("restore_from_backup", file_path=str(sample_files["calc"]))

        assert str(exc_info.value).startswith("Error [NoBackupFound]:")

    @pytest.mark.asyncio
    async def test_create_safety_backup(self, installed, sample_files: dict):
        text = await call("create_safety_backup", file_path=str(sample_files["calc"]), reason="manual")

        assert "Safety backup created: calc.js" in text
        assert "Reason: manual" in text

    @pytest.mark.asyncio
    async def test_analyze_code_changes(self, installed):
        text = await call(
            "analyze_code_changes",
            original_content="function a() {}\nfunction b() {}",
            new_content="function a() {\n// ... rest of code",
        )

        assert "Risk signals:" in text
        assert "[CRITICAL]" in text

    @pytest.mark.asyncio
    async def test_validate_code_integrity_against_disk(self, installed, sample_files: dict):
        text = await call(
            "validate_code_integrity",
            code_content="function add(a, b) {\n  return a + b;\n}",
            file_path=str(sample_files["calc"]),
        )

        assert text.startswith("Code integrity: valid")
        assert "Functions possibly lost: sub, mul" in text

    @pytest.mark.asyncio
    async def test_validate_code_integrity_problems(self, installed):
        text = await call("validate_code_integrity", code_content="if (x) {")

        assert text.startswith("Code integrity: problems found")

    @pytest.mark.asyncio
    async def test_suggest_safe_edit_strategy(self, installed, sample_files: dict):
        text = await call(
            "suggest_safe_edit_strategy",
            file_path=str(sample_files["calc"]),
            edit_intention="rename add",
        )

        assert "Recommended edit strategy: complete_rewrite" in text

    @pytest.mark.asyncio
    async def test_check_prerequisites_sees_backup(self, installed, sample_files: dict):
        path = str(sample_files["calc"])
        await call("create_safety_backup", file_path=path)

        text = await call(
            "check_prerequisites",
            file_path=path,
            understanding_summary="adds numbers",
            proposed_changes="rename",
        )

        assert "Recent backup: ok" in text
        assert "File exists: ok" in text

    @pytest.mark.asyncio
    async def test_guidelines(self, installed):
        text = await call("get_ai_safety_guidelines", operation_type="complete", complexity_level="high")

        assert "Safety guidelines (complete, complexity: high)" in text


class TestServerStatus:
    """Tests for server_status and rate gate wiring."""

    @pytest.mark.asyncio
    async def test_every_call_passes_rate_gate(self, installed, sample_files: dict):
        await call("read_file_content", file_path=str(sample_files["calc"]))
        with pytest.raises(ToolCallError):
            await call("read_file_content")

        assert installed.rate_gate.total_requests == 2

    @pytest.mark.asyncio
    async def test_status_reports_configuration(self, installed, sample_files: dict):
        await call("read_file_content", file_path=str(sample_files["calc"]))

        status = json.loads(await call("server_status"))

        assert status["server"]["name"] == "fullcontextinput_mcp"
        assert status["configuration"]["full_max_lines"] == 200
        assert status["configuration"]["token_counting"] is False
        assert status["performance"]["content_cache"]["size"] == 1
        assert status["performance"]["metrics"]["read_file_content"]["call_count"] >= 1
        assert "errors" not in status
