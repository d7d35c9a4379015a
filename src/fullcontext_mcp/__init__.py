"""
FullContext MCP Server

An MCP server that gives AI agents context-window sized access to workspace
files and gates every edit behind validation and backups.

THE TWO GUARANTEES:
- An agent is never handed more of a file than it can absorb; a short file
  arrives whole with an explicit completion marker, a long one arrives in
  line-bounded chunks that re-join to the exact original
- An agent never silently corrupts a file; each write is validated, the
  previous content is snapshotted, and a restore is always one call away
"""

__version__ = "1.2.0"

from .backup_store import BackupRecord, BackupStore
from .config import EngineConfig, ServerConfig
from .content_cache import ContentCache
from .errors import ErrorKind, FileToolError
from .file_reader import FileReader
from .mutation_pipeline import MutationPipeline
from .rate_gate import RateGate
from .read_strategy import COMPLETE_MARKER, ReadMode, ReadResult
from .resources import SharedResources
from .risk_analyzer import RiskLevel, RiskSignal, analyze_changes, assess
from .server import create_server, main
from .structural_validator import StructuralValidator, ValidationResult

__all__ = [
    "main",
    "create_server",
    "EngineConfig",
    "ServerConfig",
    "SharedResources",
    "FileReader",
    "MutationPipeline",
    "BackupStore",
    "BackupRecord",
    "ContentCache",
    "RateGate",
    "StructuralValidator",
    "ValidationResult",
    "RiskLevel",
    "RiskSignal",
    "assess",
    "analyze_changes",
    "ReadMode",
    "ReadResult",
    "COMPLETE_MARKER",
    "ErrorKind",
    "FileToolError",
]
