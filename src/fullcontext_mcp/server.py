#!/usr/bin/env python3
"""
FullContext MCP Server

An MCP server that lets an AI agent read and edit workspace files without
overflowing its context window or silently corrupting what it edits.

KEY IDEAS:
- Reads are sized to the agent: whole file, preview, or line-bounded chunks
- Every write is validated, then backed up, then applied
- Heuristic risk signals ride along with write results, never blocking them

Tools provided:
- read_file_content, read_file_smart, read_file_chunk, read_file_lines, get_file_info
- write_file_complete, write_file_diff, append_to_file, delete_lines
- create_safety_backup, restore_from_backup, list_backups
- analyze_code_changes, validate_code_integrity
- suggest_safe_edit_strategy, get_ai_safety_guidelines, check_prerequisites
- server_status
"""

import asyncio
import logging
import signal
import sys
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    Tool,
    TextContent,
)

from .config import ServerConfig, get_config
from .errors import FileToolError, ToolCallError, format_tool_error
from .file_reader import FileReader
from .handlers import (
    handle_analyze_code_changes,
    handle_append_to_file,
    handle_check_prerequisites,
    handle_create_safety_backup,
    handle_delete_lines,
    handle_get_ai_safety_guidelines,
    handle_get_file_info,
    handle_list_backups,
    handle_read_file_chunk,
    handle_read_file_content,
    handle_read_file_lines,
    handle_read_file_smart,
    handle_restore_from_backup,
    handle_server_status,
    handle_suggest_safe_edit_strategy,
    handle_validate_code_integrity,
    handle_write_file_complete,
    handle_write_file_diff,
)
from .mutation_pipeline import MutationPipeline
from .resources import SharedResources
from .utils import configure_logging, get_metrics_collector

logger = logging.getLogger(__name__)


# Global instances
_server_config: ServerConfig | None = None
_resources: SharedResources | None = None
_reader: FileReader | None = None
_pipeline: MutationPipeline | None = None

# Shutdown flag for graceful termination
_shutdown_event: asyncio.Event | None = None


def get_instances() -> tuple[ServerConfig, SharedResources, FileReader, MutationPipeline]:
    """Get or create singleton instances."""
    global _server_config, _resources, _reader, _pipeline

    if _resources is None:
        engine_config, _server_config = get_config()
        _resources = SharedResources.create(engine_config)
        _reader = FileReader(_resources)
        _pipeline = MutationPipeline(_resources)

    return _server_config, _resources, _reader, _pipeline


def set_resources(resources: SharedResources, server_config: ServerConfig | None = None) -> None:
    """Install a prepared resource bundle (used by tests and embedders)."""
    global _server_config, _resources, _reader, _pipeline

    _server_config = server_config or ServerConfig()
    _resources = resources
    _reader = FileReader(resources)
    _pipeline = MutationPipeline(resources)


def reset_instances() -> None:
    global _server_config, _resources, _reader, _pipeline
    _server_config = _resources = _reader = _pipeline = None


def _path_property(description: str = "Absolute or relative path to the file") -> dict:
    return {"type": "string", "description": description}


def _chunk_properties() -> dict:
    return {
        "file_path": _path_property(),
        "chunk_index": {
            "type": "integer",
            "description": "0-based chunk index. Default: 0",
        },
        "chunk_number": {
            "type": "integer",
            "description": "Alias for chunk_index",
        },
        "lines_per_chunk": {
            "type": "integer",
            "description": "Lines per chunk. Default: 200",
        },
    }


TOOLS = [
    # ===== READ TOOLS =====
    Tool(
        name="read_file_content",
        description=(
            "Read a file sized to the context window. Files of at most 200 lines are "
            "returned whole and end with '=== END OF FILE: complete, no more chunks ==='. "
            "Longer files up to 20KB return a 100-line preview; larger ones return the "
            "first chunk. Follow-up calls are named in the response."
        ),
        inputSchema={
            "type": "object",
            "properties": {"file_path": _path_property()},
            "required": ["file_path"],
        },
    ),
    Tool(
        name="read_file_smart",
        description=(
            "Read a file whole when it has at most 200 lines, otherwise return the "
            "requested chunk."
        ),
        inputSchema={
            "type": "object",
            "properties": _chunk_properties(),
            "required": ["file_path"],
        },
    ),
    Tool(
        name="read_file_chunk",
        description=(
            "Read one line-bounded chunk of a file regardless of its size. "
            "Joining every chunk with newlines reproduces the file exactly."
        ),
        inputSchema={
            "type": "object",
            "properties": _chunk_properties(),
            "required": ["file_path"],
        },
    ),
    Tool(
        name="read_file_lines",
        description="Read a 1-based inclusive line range (at most max_lines lines).",
        inputSchema={
            "type": "object",
            "properties": {
                "file_path": _path_property(),
                "start_line": {"type": "integer", "description": "First line (1-based). Default: 1"},
                "end_line": {"type": "integer", "description": "Last line (inclusive)"},
                "max_lines": {"type": "integer", "description": "Maximum lines to return. Default: 100"},
            },
            "required": ["file_path"],
        },
    ),
    Tool(
        name="get_file_info",
        description="File size, line count, modification time, and the recommended read tool.",
        inputSchema={
            "type": "object",
            "properties": {"file_path": _path_property()},
            "required": ["file_path"],
        },
    ),
    # ===== WRITE TOOLS =====
    Tool(
        name="write_file_complete",
        description=(
            "Replace a whole file (or create it). The content is validated first and "
            "rejected on unbalanced delimiters; an existing file is backed up before writing. "
            "Best for short files."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "file_path": _path_property(),
                "content": {"type": "string", "description": "Complete new file content"},
            },
            "required": ["file_path", "content"],
        },
    ),
    Tool(
        name="write_file_diff",
        description=(
            "Replace lines start_line..end_line (1-based, inclusive) with new_content. "
            "Best for editing part of a long file."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "file_path": _path_property(),
                "start_line": {"type": "integer", "description": "First line to replace (1-based)"},
                "end_line": {"type": "integer", "description": "Last line to replace (inclusive)"},
                "new_content": {"type": "string", "description": "Replacement lines"},
                "backup": {"type": "boolean", "description": "Back up before writing. Default: true"},
            },
            "required": ["file_path", "start_line", "end_line", "new_content"],
        },
    ),
    Tool(
        name="append_to_file",
        description="Append content on a new line at the end of a file, creating it if missing.",
        inputSchema={
            "type": "object",
            "properties": {
                "file_path": _path_property(),
                "content": {"type": "string", "description": "Content to append"},
            },
            "required": ["file_path", "content"],
        },
    ),
    Tool(
        name="delete_lines",
        description="Delete lines start_line..end_line (1-based, inclusive). Always backs up first.",
        inputSchema={
            "type": "object",
            "properties": {
                "file_path": _path_property(),
                "start_line": {"type": "integer", "description": "First line to delete"},
                "end_line": {"type": "integer", "description": "Last line to delete (inclusive)"},
            },
            "required": ["file_path", "start_line", "end_line"],
        },
    ),
    # ===== SAFETY TOOLS =====
    Tool(
        name="create_safety_backup",
        description="Create a timestamped backup of a file before modifying it.",
        inputSchema={
            "type": "object",
            "properties": {
                "file_path": _path_property(),
                "reason": {"type": "string", "description": "Why the backup is taken"},
            },
            "required": ["file_path"],
        },
    ),
    Tool(
        name="restore_from_backup",
        description=(
            "Restore a file from a backup (the newest one unless backup_path is given). "
            "The current content is backed up first."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "file_path": _path_property(),
                "backup_path": _path_property("Specific backup file to restore from"),
            },
            "required": ["file_path"],
        },
    ),
    Tool(
        name="list_backups",
        description="List the backups of a file, newest first.",
        inputSchema={
            "type": "object",
            "properties": {"file_path": _path_property()},
            "required": ["file_path"],
        },
    ),
    Tool(
        name="analyze_code_changes",
        description=(
            "Compare original and new content: size and line deltas, functions and classes "
            "added or removed, and graded risk signals (truncation, bracket imbalance, lost code)."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "original_content": {"type": "string", "description": "Content before the change"},
                "new_content": {"type": "string", "description": "Proposed content"},
                "file_path": _path_property("File the content belongs to (informational)"),
            },
            "required": ["original_content", "new_content"],
        },
    ),
    Tool(
        name="validate_code_integrity",
        description=(
            "Check code for balanced delimiters, truncation and unfinished structures. "
            "With check_completeness, also compare it against the existing file."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "code_content": {"type": "string", "description": "Code to validate"},
                "file_path": _path_property("Target file; delimiter checks run for brace-language files only"),
                "check_completeness": {
                    "type": "boolean",
                    "description": "Compare against the file on disk. Default: true",
                },
            },
            "required": ["code_content"],
        },
    ),
    Tool(
        name="suggest_safe_edit_strategy",
        description="Recommend complete rewrite, line-range edit, or a chunked approach for a file.",
        inputSchema={
            "type": "object",
            "properties": {
                "file_path": _path_property(),
                "edit_intention": {"type": "string", "description": "What the edit should achieve"},
                "target_lines": {"type": "string", "description": "Lines to change, e.g. '120-140'"},
            },
            "required": ["file_path", "edit_intention"],
        },
    ),
    Tool(
        name="get_ai_safety_guidelines",
        description="Checklist and guidelines for an edit operation.",
        inputSchema={
            "type": "object",
            "properties": {
                "operation_type": {
                    "type": "string",
                    "description": "'complete', 'diff', or 'general'",
                },
                "file_path": _path_property("File being edited (informational)"),
                "complexity_level": {
                    "type": "string",
                    "enum": ["low", "medium", "high"],
                    "description": "Complexity of the code. Default: medium",
                },
            },
            "required": ["operation_type"],
        },
    ),
    Tool(
        name="check_prerequisites",
        description=(
            "Check readiness to edit: file exists, recent backup, and whether the stated "
            "understanding and proposed changes are specific enough."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "file_path": _path_property(),
                "understanding_summary": {
                    "type": "string",
                    "description": "What the agent understands about the code",
                },
                "proposed_changes": {"type": "string", "description": "The intended changes"},
            },
            "required": ["file_path", "understanding_summary", "proposed_changes"],
        },
    ),
    Tool(
        name="server_status",
        description="Server configuration, cache and rate-gate statistics, and tool timings.",
        inputSchema={
            "type": "object",
            "properties": {},
        },
    ),
]


TOOL_HANDLERS = {
    "read_file_content": handle_read_file_content,
    "read_file_smart": handle_read_file_smart,
    "read_file_chunk": handle_read_file_chunk,
    "read_file_lines": handle_read_file_lines,
    "get_file_info": handle_get_file_info,
    "write_file_complete": handle_write_file_complete,
    "write_file_diff": handle_write_file_diff,
    "append_to_file": handle_append_to_file,
    "delete_lines": handle_delete_lines,
    "create_safety_backup": handle_create_safety_backup,
    "restore_from_backup": handle_restore_from_backup,
    "list_backups": handle_list_backups,
    "analyze_code_changes": handle_analyze_code_changes,
    "validate_code_integrity": handle_validate_code_integrity,
    "suggest_safe_edit_strategy": handle_suggest_safe_edit_strategy,
    "get_ai_safety_guidelines": handle_get_ai_safety_guidelines,
    "check_prerequisites": handle_check_prerequisites,
}


async def dispatch(name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
    """
    Run one tool call through the rate gate and its handler.

    Raises:
        ToolCallError: carrying the ``Error [<kind>]: ...`` text on failure
    """
    _, resources, _, _ = get_instances()
    arguments = arguments or {}

    await resources.rate_gate.wait()

    try:
        if name == "server_status":
            return await handle_server_status(arguments, get_instances, get_metrics_collector())

        handler = TOOL_HANDLERS.get(name)
        if handler is None:
            raise ToolCallError(f"Error [InvalidParameter]: Unknown tool: {name}")
        return await handler(arguments, get_instances)

    except FileToolError as e:
        logger.info("Tool %s failed: %s", name, e)
        raise ToolCallError(format_tool_error(e)) from e


def create_server() -> Server:
    """Create and configure the MCP server."""
    server_config, _, _, _ = get_instances()
    server = Server(server_config.name)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List available tools."""
        return TOOLS

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        """Handle tool calls."""
        try:
            return await dispatch(name, arguments)
        except ToolCallError:
            raise
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            raise ToolCallError(f"Error: {e}") from e

    return server


async def run_server():
    """Run the MCP server with graceful shutdown."""
    global _shutdown_event
    _shutdown_event = asyncio.Event()

    server = create_server()

    # Setup signal handlers for graceful shutdown
    loop = asyncio.get_running_loop()

    def handle_shutdown(sig):
        logger.warning("Received %s, shutting down gracefully...", sig.name)
        _shutdown_event.set()

    # Register signal handlers (Unix only)
    if sys.platform != "win32":
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, lambda s=sig: handle_shutdown(s))

    async with stdio_server() as (read_stream, write_stream):
        # Run server until shutdown signal
        server_task = asyncio.create_task(
            server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(),
            )
        )

        # Wait for either server completion or shutdown signal
        done, pending = await asyncio.wait(
            [server_task, asyncio.create_task(_shutdown_event.wait())],
            return_when=asyncio.FIRST_COMPLETED,
        )

        # Cancel pending tasks
        for task in pending:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        # Surface a crashed server loop instead of exiting quietly
        for task in done:
            if task is server_task and not task.cancelled() and task.exception():
                raise task.exception()


def main():
    """Main entry point."""
    _, server_config = get_config()
    configure_logging(server_config.log_level)

    try:
        asyncio.run(run_server())
    except KeyboardInterrupt:
        pass
    except Exception as e:
        logger.error("Server error: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
