"""
Write Handlers for the FullContext MCP Server.

Every handler here goes through the MutationPipeline, so each write is
validated and backed up before the file changes:
- write_file_complete: Replace or create a whole file
- write_file_diff: Replace a line range
- append_to_file: Append to the end of a file
- delete_lines: Remove a line range
"""

from typing import Any, Callable

from mcp.types import TextContent

from ..config import RangeReplaceOptions
from ..utils import performance_metrics
from .arguments import get_bool, get_int, get_path, get_str


@performance_metrics(name="write_file_complete")
async def handle_write_file_complete(arguments: dict[str, Any], get_instances: Callable) -> list[TextContent]:
    """Handle write_file_complete tool call."""
    _, _, _, pipeline = get_instances()
    path = get_path(arguments)
    content = get_str(arguments, "content", required=True)

    result = await pipeline.complete_replace(path, content)
    return [TextContent(type="text", text=result.render())]


@performance_metrics(name="write_file_diff")
async def handle_write_file_diff(arguments: dict[str, Any], get_instances: Callable) -> list[TextContent]:
    """Handle write_file_diff tool call."""
    _, _, _, pipeline = get_instances()
    path = get_path(arguments)
    options = RangeReplaceOptions(
        start_line=get_int(arguments, "start_line", required=True),
        end_line=get_int(arguments, "end_line", required=True),
        new_content=get_str(arguments, "new_content", required=True),
        backup=get_bool(arguments, "backup", True),
    )

    result = await pipeline.range_replace(
        path,
        options.start_line,
        options.end_line,
        options.new_content,
        backup=options.backup,
    )
    return [TextContent(type="text", text=result.render())]


@performance_metrics(name="append_to_file")
async def handle_append_to_file(arguments: dict[str, Any], get_instances: Callable) -> list[TextContent]:
    """Handle append_to_file tool call."""
    _, _, _, pipeline = get_instances()
    path = get_path(arguments)
    content = get_str(arguments, "content", required=True)

    result = await pipeline.append(path, content)
    return [TextContent(type="text", text=result.render())]


@performance_metrics(name="delete_lines")
async def handle_delete_lines(arguments: dict[str, Any], get_instances: Callable) -> list[TextContent]:
    """Handle delete_lines tool call."""
    _, _, _, pipeline = get_instances()
    path = get_path(arguments)
    start_line = get_int(arguments, "start_line", required=True)
    end_line = get_int(arguments, "end_line", required=True)

    result = await pipeline.delete_lines(path, start_line, end_line)
    return [TextContent(type="text", text=result.render())]
