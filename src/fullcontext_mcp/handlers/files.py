"""
File Read Handlers for the FullContext MCP Server.

Provides handlers for read operations:
- read_file_content: Whole file, preview, or first chunk depending on size
- read_file_smart: Whole file when short, otherwise the requested chunk
- read_file_chunk: One line-bounded chunk
- read_file_lines: A specific line range
- get_file_info: Metadata and the recommended read tool
"""

from typing import Any, Callable

from mcp.types import TextContent

from ..config import ChunkReadOptions, LineRangeOptions
from ..utils import performance_metrics
from .arguments import get_int, get_path


def _chunk_options(arguments: dict[str, Any], default_lines: int) -> ChunkReadOptions:
    # chunk_number is accepted as an alias for older clients
    chunk_index = get_int(arguments, "chunk_index")
    if chunk_index is None:
        chunk_index = get_int(arguments, "chunk_number", 0)
    options = ChunkReadOptions(
        chunk_index=chunk_index,
        lines_per_chunk=get_int(arguments, "lines_per_chunk", default_lines),
    )
    options.validate()
    return options


@performance_metrics(name="read_file_content")
async def handle_read_file_content(arguments: dict[str, Any], get_instances: Callable) -> list[TextContent]:
    """Handle read_file_content tool call."""
    _, _, reader, _ = get_instances()
    result = await reader.read_content(get_path(arguments))
    return [TextContent(type="text", text=result.render())]


@performance_metrics(name="read_file_smart")
async def handle_read_file_smart(arguments: dict[str, Any], get_instances: Callable) -> list[TextContent]:
    """Handle read_file_smart tool call."""
    _, resources, reader, _ = get_instances()
    path = get_path(arguments)
    options = _chunk_options(arguments, resources.config.lines_per_chunk)
    result = await reader.read_smart(path, options.chunk_index, options.lines_per_chunk)
    return [TextContent(type="text", text=result.render())]


@performance_metrics(name="read_file_chunk")
async def handle_read_file_chunk(arguments: dict[str, Any], get_instances: Callable) -> list[TextContent]:
    """Handle read_file_chunk tool call."""
    _, resources, reader, _ = get_instances()
    path = get_path(arguments)
    options = _chunk_options(arguments, resources.config.lines_per_chunk)
    result = await reader.read_chunk(path, options.chunk_index, options.lines_per_chunk)
    return [TextContent(type="text", text=result.render())]


@performance_metrics(name="read_file_lines")
async def handle_read_file_lines(arguments: dict[str, Any], get_instances: Callable) -> list[TextContent]:
    """Handle read_file_lines tool call."""
    _, resources, reader, _ = get_instances()
    path = get_path(arguments)
    options = LineRangeOptions(
        start_line=get_int(arguments, "start_line", 1),
        end_line=get_int(arguments, "end_line"),
        max_lines=get_int(arguments, "max_lines", resources.config.max_range_lines),
    )
    options.validate()

    result = await reader.read_lines(path, options.start_line, options.end_line, options.max_lines)
    return [TextContent(type="text", text=result.render())]


@performance_metrics(name="get_file_info")
async def handle_get_file_info(arguments: dict[str, Any], get_instances: Callable) -> list[TextContent]:
    """Handle get_file_info tool call."""
    _, _, reader, _ = get_instances()
    info = await reader.file_info(get_path(arguments))
    return [TextContent(type="text", text=info.render())]
