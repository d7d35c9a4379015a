"""
Pytest configuration and fixtures for FullContext MCP tests.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from fullcontext_mcp.config import EngineConfig
from fullcontext_mcp.file_reader import FileReader
from fullcontext_mcp.mutation_pipeline import MutationPipeline
from fullcontext_mcp.resources import SharedResources


CALC_JS = """function add(a, b) {
  return a + b;
}
function sub(a, b) {
  return a - b;
}
function mul(a, b) {
  return a * b;
}"""


class FakeClock:
    """Monotonic clock that only moves when told to (or when slept on)."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def engine_config(temp_dir: Path) -> EngineConfig:
    """Engine configuration isolated to the temp dir, without throttling or tiktoken."""
    return EngineConfig(
        full_max_lines=200,
        lines_per_chunk=200,
        preview_lines=100,
        preview_max_bytes=20480,
        count_tokens=False,
        cache_ttl_seconds=30,
        rate_min_delay_seconds=0.0,
        backup_dir=temp_dir / "fullcontextmcp_backup",
        register_gitignore=True,
    )


@pytest.fixture
def resources(engine_config: EngineConfig, clock: FakeClock) -> SharedResources:
    return SharedResources.create(engine_config, clock=clock, sleep=clock.sleep)


@pytest.fixture
def reader(resources: SharedResources) -> FileReader:
    return FileReader(resources)


@pytest.fixture
def pipeline(resources: SharedResources) -> MutationPipeline:
    return MutationPipeline(resources)


@pytest.fixture
def sample_files(temp_dir: Path) -> dict[str, Path]:
    """Create sample files for testing."""
    files = {}

    # 9-line JavaScript module with three functions
    calc = temp_dir / "calc.js"
    calc.write_text(CALC_JS, newline="")
    files["calc"] = calc

    # Short Python file with a trailing newline
    py_file = temp_dir / "sample.py"
    py_file.write_text(
        'import os\n'
        '\n'
        'def hello_world():\n'
        '    """Say hello."""\n'
        '    print("Hello, World!")\n',
        newline="",
    )
    files["python"] = py_file

    # 450 numbered lines, small enough for a preview (< 20KB)
    medium = temp_dir / "medium.txt"
    medium.write_text("\n".join(f"line {i}" for i in range(1, 451)), newline="")
    files["medium"] = medium

    # 500 long lines, well over the preview size limit
    large = temp_dir / "large.py"
    large.write_text(
        "\n".join(f"value_{i} = '{'x' * 60}'  # entry {i}" for i in range(1, 501)),
        newline="",
    )
    files["large"] = large

    # Markdown with deliberately unbalanced brackets
    notes = temp_dir / "notes.md"
    notes.write_text("# Notes\n\n- see item (1\n- closing ] without opener\n", newline="")
    files["markdown"] = notes

    return files
