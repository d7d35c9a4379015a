"""
Error taxonomy for the FullContext MCP Server.

Every failure the core reports carries one ErrorKind so the transport can
render it without inspecting message text. Warnings and risk signals are never
raised; they travel inside successful results.
"""

from enum import Enum
from typing import Any


class ErrorKind(Enum):
    SOURCE_NOT_FOUND = "SourceNotFound"
    INVALID_PARAMETER = "InvalidParameter"
    CHUNK_OUT_OF_RANGE = "ChunkOutOfRange"
    VALIDATION_FAILED = "ValidationFailed"
    NO_BACKUP_FOUND = "NoBackupFound"
    IO_ERROR = "IOError"


class FileToolError(Exception):
    """A core operation failed with a known error kind."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        path: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.path = path
        self.details = details or {}

    def __str__(self) -> str:
        if self.path and self.path not in self.message:
            return f"{self.message} ({self.path})"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "path": self.path,
            "details": self.details,
        }


def io_error(path: str, exc: OSError, action: str = "access") -> FileToolError:
    """Wrap an OS-level failure, keeping the original message."""
    if isinstance(exc, FileNotFoundError):
        return FileToolError(
            ErrorKind.SOURCE_NOT_FOUND,
            f"File not found: {path}",
            path=path,
        )
    return FileToolError(
        ErrorKind.IO_ERROR,
        f"Failed to {action} {path}: {exc.strerror or exc}",
        path=path,
    )


def format_tool_error(exc: FileToolError) -> str:
    """Agent-facing error text: ``Error [<kind>]: <message>``."""
    return f"Error [{exc.kind.value}]: {exc}"


class ToolCallError(Exception):
    """Raised out of the MCP call_tool handler so the result is flagged isError."""
