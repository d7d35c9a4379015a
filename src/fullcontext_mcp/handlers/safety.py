"""
Safety Handlers for the FullContext MCP Server.

Provides handlers for backups, analysis and editing advice:
- create_safety_backup / restore_from_backup / list_backups
- analyze_code_changes: Risk signals for an (original, candidate) pair
- validate_code_integrity: Structural validation of a code blob
- suggest_safe_edit_strategy / get_ai_safety_guidelines / check_prerequisites
"""

import json
from pathlib import Path
from typing import Any, Callable

from mcp.types import TextContent

from .. import safety_advisor
from ..file_reader import read_text
from ..risk_analyzer import analyze_changes
from ..utils import performance_metrics
from .arguments import get_bool, get_path, get_str

DEFAULT_BACKUP_REASON = "Safety backup before AI edit"


@performance_metrics(name="create_safety_backup")
async def handle_create_safety_backup(arguments: dict[str, Any], get_instances: Callable) -> list[TextContent]:
    """Handle create_safety_backup tool call."""
    _, resources, _, _ = get_instances()
    path = get_path(arguments)
    reason = get_str(arguments, "reason", DEFAULT_BACKUP_REASON)

    record = resources.backups.snapshot(path, reason)
    output = (
        f"Safety backup created: {Path(record.original_path).name}\n\n"
        f"Backup: {record.backup_path}\n"
        f"Created: {record.created_at}\n"
        f"Reason: {record.reason}\n"
        f"Original size: {record.original_size:,} bytes\n"
        f"Original lines: {record.original_line_count}"
    )
    return [TextContent(type="text", text=output)]


@performance_metrics(name="restore_from_backup")
async def handle_restore_from_backup(arguments: dict[str, Any], get_instances: Callable) -> list[TextContent]:
    """Handle restore_from_backup tool call."""
    _, _, _, pipeline = get_instances()
    path = get_path(arguments)
    backup_path = get_path(arguments, "backup_path", required=False)

    result = await pipeline.restore(path, backup_path)
    output = (
        f"Restored {Path(path).name} from backup\n\n"
        f"Restored from: {result.restored_from}\n"
        f"Backup taken: {result.metadata.get('created_at') or 'unknown'}\n"
        f"Restored size: {result.restored_size:,} bytes\n"
        f"Restored lines: {result.restored_line_count}\n"
        f"Pre-restore backup: {result.pre_restore_backup or 'none (file did not exist)'}"
    )
    return [TextContent(type="text", text=output)]


@performance_metrics(name="list_backups")
async def handle_list_backups(arguments: dict[str, Any], get_instances: Callable) -> list[TextContent]:
    """Handle list_backups tool call."""
    _, resources, _, _ = get_instances()
    path = get_path(arguments)

    records = resources.backups.list_backups(path)
    if not records:
        return [TextContent(type="text", text=f"No backups found for {Path(path).name}")]

    lines = [f"Backups of {Path(path).name} ({len(records)}, newest first):", ""]
    for record in records:
        lines.append(
            f"- {record.backup_path}\n"
            f"  created {record.created_at}, {record.original_line_count} lines, "
            f"{record.original_size:,} bytes"
            + (f", reason: {record.reason}" if record.reason else "")
        )
    return [TextContent(type="text", text="\n".join(lines))]


@performance_metrics(name="analyze_code_changes")
async def handle_analyze_code_changes(arguments: dict[str, Any], get_instances: Callable) -> list[TextContent]:
    """Handle analyze_code_changes tool call."""
    original = get_str(arguments, "original_content", required=True)
    candidate = get_str(arguments, "new_content", required=True)
    path = get_path(arguments, required=False)

    analysis = analyze_changes(original, candidate)
    output = analysis.report()
    if path:
        output = f"File: {path}\n\n{output}"
    return [TextContent(type="text", text=output)]


@performance_metrics(name="validate_code_integrity")
async def handle_validate_code_integrity(arguments: dict[str, Any], get_instances: Callable) -> list[TextContent]:
    """
    Handle validate_code_integrity tool call.

    With check_completeness (the default) and an existing file_path, the code
    is also compared against the file on disk for structural drift.
    """
    _, resources, _, _ = get_instances()
    code = get_str(arguments, "code_content", required=True)
    path = get_path(arguments, required=False)
    check_completeness = get_bool(arguments, "check_completeness", True)

    validation = resources.validator.validate(code, path)
    if check_completeness and path and Path(path).is_file():
        original = await read_text(Path(path).expanduser().resolve())
        comparison = resources.validator.validate_against_original(original, code)
        validation.warnings.extend(comparison.warnings)
        validation.suggestions.extend(comparison.suggestions)

    header = "Code integrity: valid" if validation.is_valid else "Code integrity: problems found"
    report = validation.report()
    output = f"{header}\n\n{report}" if report else header
    return [TextContent(type="text", text=output)]


@performance_metrics(name="suggest_safe_edit_strategy")
async def handle_suggest_safe_edit_strategy(arguments: dict[str, Any], get_instances: Callable) -> list[TextContent]:
    """Handle suggest_safe_edit_strategy tool call."""
    _, _, reader, _ = get_instances()
    path = get_path(arguments)
    intention = get_str(arguments, "edit_intention", "")
    target_lines = get_str(arguments, "target_lines", "")

    info = await reader.file_info(path)
    strategy = safety_advisor.suggest_edit_strategy(
        info.handle.size_bytes,
        info.handle.line_count,
        intention,
        target_lines,
    )
    return [TextContent(type="text", text=f"File: {info.handle.path}\n\n{strategy.render()}")]


@performance_metrics(name="get_ai_safety_guidelines")
async def handle_get_ai_safety_guidelines(arguments: dict[str, Any], get_instances: Callable) -> list[TextContent]:
    """Handle get_ai_safety_guidelines tool call."""
    operation = get_str(arguments, "operation_type", "general")
    complexity = get_str(arguments, "complexity_level", "medium")

    result = safety_advisor.guidelines(operation, complexity)
    return [TextContent(type="text", text=result.render())]


@performance_metrics(name="check_prerequisites")
async def handle_check_prerequisites(arguments: dict[str, Any], get_instances: Callable) -> list[TextContent]:
    """Handle check_prerequisites tool call."""
    _, resources, _, _ = get_instances()
    path = get_path(arguments)
    understanding = get_str(arguments, "understanding_summary", required=True)
    proposed = get_str(arguments, "proposed_changes", required=True)

    report = safety_advisor.check_prerequisites(
        file_exists=Path(path).expanduser().is_file(),
        has_recent_backup=resources.backups.has_recent_backup(path),
        understanding=understanding,
        proposed_changes=proposed,
    )
    return [TextContent(type="text", text=report.render())]


async def handle_server_status(
    arguments: dict[str, Any],
    get_instances: Callable,
    metrics_collector: Any,
) -> list[TextContent]:
    """Handle server_status tool call."""
    server_config, resources, _, _ = get_instances()
    config = resources.config

    status = {
        "server": {
            "name": server_config.name,
            "version": server_config.version,
        },
        "configuration": {
            "full_max_lines": config.full_max_lines,
            "lines_per_chunk": config.lines_per_chunk,
            "preview_lines": config.preview_lines,
            "preview_max_bytes": config.preview_max_bytes,
            "cache_ttl_seconds": config.cache_ttl_seconds,
            "rate_min_delay_seconds": config.rate_min_delay_seconds,
            "backup_dir": str(resources.backups.backup_dir),
            "token_counting": resources.token_counter is not None,
        },
        "performance": {
            "content_cache": resources.cache.get_stats(),
            "rate_gate": resources.rate_gate.get_stats(),
            "metrics": metrics_collector.get_stats(),
        },
    }

    errors = config.validate()
    if errors:
        status["errors"] = errors

    return [TextContent(type="text", text=json.dumps(status, indent=2))]
