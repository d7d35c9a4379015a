"""
Request Handlers for the FullContext MCP Server.

This package contains the tool handlers dispatched from server.py:
- files: Read handlers (content, smart, chunk, lines, info)
- write: Mutation handlers (complete, diff, append, delete)
- safety: Backup, analysis, advice and status handlers
"""

from .files import (
    handle_get_file_info,
    handle_read_file_chunk,
    handle_read_file_content,
    handle_read_file_lines,
    handle_read_file_smart,
)
from .safety import (
    handle_analyze_code_changes,
    handle_check_prerequisites,
    handle_create_safety_backup,
    handle_get_ai_safety_guidelines,
    handle_list_backups,
    handle_restore_from_backup,
    handle_server_status,
    handle_suggest_safe_edit_strategy,
    handle_validate_code_integrity,
)
from .write import (
    handle_append_to_file,
    handle_delete_lines,
    handle_write_file_complete,
    handle_write_file_diff,
)

__all__ = [
    # Read handlers
    "handle_read_file_content",
    "handle_read_file_smart",
    "handle_read_file_chunk",
    "handle_read_file_lines",
    "handle_get_file_info",
    # Write handlers
    "handle_write_file_complete",
    "handle_write_file_diff",
    "handle_append_to_file",
    "handle_delete_lines",
    # Safety handlers
    "handle_create_safety_backup",
    "handle_restore_from_backup",
    "handle_list_backups",
    "handle_analyze_code_changes",
    "handle_validate_code_integrity",
    "handle_suggest_safe_edit_strategy",
    "handle_get_ai_safety_guidelines",
    "handle_check_prerequisites",
    "handle_server_status",
]
