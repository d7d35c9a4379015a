"""
Configuration for the FullContext MCP Server

Environment Variables:
- FCM_FULL_MAX_LINES: Files at or below this line count are returned whole (default: 200)
- FCM_LINES_PER_CHUNK: Default chunk size for chunked reads (default: 200)
- FCM_PREVIEW_LINES: Lines shown in preview mode (default: 100)
- FCM_PREVIEW_MAX_BYTES: Largest file served as a preview, above this it is chunked (default: 20480)
- FCM_COUNT_TOKENS: Attach tiktoken estimates to read results (default: true)
- FCM_CACHE_TTL: Seconds a cached read result stays fresh (default: 30)
- FCM_RATE_MIN_DELAY: Minimum seconds between tool calls (default: 1.0)
- FCM_BACKUP_DIR: Directory that receives safety backups (default: ./fullcontextmcp_backup)
- FCM_REGISTER_GITIGNORE: Add the backup directory to the adjacent .gitignore (default: true)
- FCM_LOG_LEVEL: Logging level for the server process (default: WARNING)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Set

from dotenv import load_dotenv

from .errors import ErrorKind, FileToolError

load_dotenv()


DEFAULT_BACKUP_DIRNAME = "fullcontextmcp_backup"


@dataclass
class EngineConfig:
    """Configuration for the read strategy, cache, rate gate and backups."""

    # Read strategy thresholds
    full_max_lines: int = field(
        default_factory=lambda: int(os.getenv("FCM_FULL_MAX_LINES", "200"))
    )
    lines_per_chunk: int = field(
        default_factory=lambda: int(os.getenv("FCM_LINES_PER_CHUNK", "200"))
    )
    preview_lines: int = field(
        default_factory=lambda: int(os.getenv("FCM_PREVIEW_LINES", "100"))
    )
    preview_max_bytes: int = field(
        default_factory=lambda: int(os.getenv("FCM_PREVIEW_MAX_BYTES", "20480"))
    )
    max_range_lines: int = 100
    count_tokens: bool = field(
        default_factory=lambda: os.getenv("FCM_COUNT_TOKENS", "true").lower() == "true"
    )

    # Content cache
    cache_max_entries: int = 100
    cache_ttl_seconds: float = field(
        default_factory=lambda: float(os.getenv("FCM_CACHE_TTL", "30"))
    )
    cache_max_file_bytes: int = 51_200  # larger files are never cached

    # Rate gate
    rate_min_delay_seconds: float = field(
        default_factory=lambda: float(os.getenv("FCM_RATE_MIN_DELAY", "1.0"))
    )
    rate_window_seconds: float = 60.0
    rate_busy_threshold: int = 5
    rate_busy_delay_seconds: float = 1.5
    rate_burst_threshold: int = 10
    rate_burst_delay_seconds: float = 2.0

    # Backups
    backup_dir: Path = field(
        default_factory=lambda: Path(
            os.getenv("FCM_BACKUP_DIR", str(Path.cwd() / DEFAULT_BACKUP_DIRNAME))
        )
    )
    register_gitignore: bool = field(
        default_factory=lambda: os.getenv("FCM_REGISTER_GITIGNORE", "true").lower() == "true"
    )

    # Delimiter checks run only for these brace-language extensions.
    # .js, .ts, .jsx and .tsx are always included by the validator.
    delimiter_extensions: Set[str] = field(default_factory=lambda: {
        ext.strip() for ext in os.getenv(
            "FCM_DELIMITER_EXTENSIONS",
            ".js,.ts,.jsx,.tsx,.mjs,.cjs,.mts,.cts,.java,.kt,.c,.h,.cc,.cpp,.hpp,.cs,.go,.rs,.swift,.php,.json",
        ).split(",") if ext.strip()
    })

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = []

        if self.full_max_lines < 1:
            errors.append("full_max_lines must be at least 1")

        if self.lines_per_chunk < 1:
            errors.append("lines_per_chunk must be at least 1")

        if self.preview_lines < 1:
            errors.append("preview_lines must be at least 1")

        if self.cache_max_entries < 1:
            errors.append("cache_max_entries must be at least 1")

        if self.rate_min_delay_seconds < 0:
            errors.append("rate_min_delay_seconds must not be negative")

        if self.rate_window_seconds <= 0:
            errors.append("rate_window_seconds must be positive")

        return errors


@dataclass
class ServerConfig:
    """Configuration for the MCP server."""

    name: str = "fullcontextinput_mcp"
    version: str = "1.2.0"
    description: str = (
        "MCP server that serves workspace files in context-window sized "
        "pieces and gates every write behind validation and backups"
    )
    log_level: str = field(
        default_factory=lambda: os.getenv("FCM_LOG_LEVEL", "WARNING").upper()
    )


def get_config() -> tuple[EngineConfig, ServerConfig]:
    """Get configuration instances."""
    return EngineConfig(), ServerConfig()


# =============================================================================
# PER-OPERATION OPTIONS
# =============================================================================
# Each tool's optional arguments live in one value type with documented
# defaults, validated once where the tool call enters the core.


@dataclass
class ChunkReadOptions:
    """Options for chunked and smart reads."""

    chunk_index: int = 0
    lines_per_chunk: int = 200

    def validate(self) -> None:
        if self.lines_per_chunk <= 0:
            raise FileToolError(
                ErrorKind.INVALID_PARAMETER,
                f"lines_per_chunk must be positive, got {self.lines_per_chunk}",
            )
        if self.chunk_index < 0:
            raise FileToolError(
                ErrorKind.INVALID_PARAMETER,
                f"chunk_index must not be negative, got {self.chunk_index}",
            )


@dataclass
class LineRangeOptions:
    """Options for line-range reads (1-based, inclusive)."""

    start_line: int = 1
    end_line: int | None = None
    max_lines: int = 100

    def validate(self) -> None:
        if self.max_lines <= 0:
            raise FileToolError(
                ErrorKind.INVALID_PARAMETER,
                f"max_lines must be positive, got {self.max_lines}",
            )
        if self.end_line is not None and self.end_line < 1:
            raise FileToolError(
                ErrorKind.INVALID_PARAMETER,
                f"end_line must be at least 1, got {self.end_line}",
            )


@dataclass
class RangeReplaceOptions:
    """Options for replacing a 1-based inclusive line range."""

    start_line: int
    end_line: int
    new_content: str
    backup: bool = True
