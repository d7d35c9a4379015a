"""
Safety advisor: guidance for agents about to edit a file.

Provides:
- Operation guidelines and checklists (also embedded in validation failures)
- Edit strategy suggestion from file size and stated intention
- A prerequisite check scoring the agent's stated understanding
"""

from dataclasses import dataclass, field
from enum import Enum


class Operation(Enum):
    COMPLETE = "complete"
    DIFF = "diff"
    GENERAL = "general"

    @classmethod
    def parse(cls, value: str | None) -> "Operation":
        aliases = {
            "complete": cls.COMPLETE,
            "complete_rewrite": cls.COMPLETE,
            "rewrite": cls.COMPLETE,
            "diff": cls.DIFF,
            "diff_edit": cls.DIFF,
            "range": cls.DIFF,
        }
        return aliases.get((value or "").strip().lower(), cls.GENERAL)


GUIDELINES: dict[Operation, list[str]] = {
    Operation.COMPLETE: [
        "Read the whole original file before rewriting it",
        "Make sure every existing function is present in the new content",
        "Keep every import and export statement",
    ],
    Operation.DIFF: [
        "Confirm the exact line range before editing",
        "Account for the code surrounding the range",
        "Match the indentation of the neighbouring lines",
    ],
    Operation.GENERAL: [
        "Create a safety backup before modifying the file",
        "Prefer small, verifiable edits over large rewrites",
        "Validate the result with validate_code_integrity",
    ],
}

CHECKLISTS: dict[Operation, list[str]] = {
    Operation.COMPLETE: [
        "Are all functions included?",
        "Are all variables and constants included?",
        "Are the import statements complete?",
        "Is the code free of truncation (no '...' placeholders)?",
    ],
    Operation.DIFF: [
        "Are the line numbers correct?",
        "Does the indentation match?",
        "Does the edit stay within one function's boundaries?",
        "Is the edit compatible with the surrounding code?",
    ],
    Operation.GENERAL: [
        "Has a backup been created?",
        "Is the original code fully understood?",
        "Are the intended changes clear?",
        "Is there a plan to test the change?",
    ],
}

RECOMMENDED_TOOLS: dict[Operation, list[str]] = {
    Operation.COMPLETE: ["create_safety_backup", "validate_code_integrity", "write_file_complete"],
    Operation.DIFF: ["analyze_code_changes", "validate_code_integrity", "write_file_diff"],
    Operation.GENERAL: ["create_safety_backup", "suggest_safe_edit_strategy"],
}

UNDERSTANDING_KEYWORDS = ["function", "class", "method", "variable"]
CHANGE_KEYWORDS = ["add", "remove", "modify", "fix", "update"]

COMPLETE_REWRITE_MAX_LINES = 100
PREREQUISITES_REQUIRED = 3


@dataclass
class Guidelines:
    operation: Operation
    complexity: str
    guidelines: list[str]
    checklist: list[str]
    warnings: list[str]
    tools: list[str]

    def render(self) -> str:
        lines = [f"Safety guidelines ({self.operation.value}, complexity: {self.complexity})", ""]
        lines.extend(f"- {g}" for g in self.guidelines)
        lines.append("")
        lines.append("Checklist:")
        lines.extend(f"[ ] {item}" for item in self.checklist)
        if self.warnings:
            lines.append("")
            lines.append("Warnings:")
            lines.extend(f"- {w}" for w in self.warnings)
        if self.tools:
            lines.append("")
            lines.append(f"Recommended tools: {', '.join(self.tools)}")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "operation": self.operation.value,
            "complexity": self.complexity,
            "guidelines": self.guidelines,
            "checklist": self.checklist,
            "warnings": self.warnings,
            "tools": self.tools,
        }


@dataclass
class EditStrategy:
    recommended: str
    reasoning: str
    steps: list[str]
    checklist: list[str] = field(default_factory=list)

    def render(self) -> str:
        lines = [
            f"Recommended edit strategy: {self.recommended}",
            "",
            f"Reason: {self.reasoning}",
            "",
            "Steps:",
        ]
        lines.extend(f"{i}. {step}" for i, step in enumerate(self.steps, 1))
        lines.append("")
        lines.append("Checklist:")
        lines.extend(f"[ ] {item}" for item in self.checklist)
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "recommended": self.recommended,
            "reasoning": self.reasoning,
            "steps": self.steps,
            "checklist": self.checklist,
        }


@dataclass
class Assessment:
    level: str
    passed: bool


@dataclass
class PrerequisiteReport:
    file_exists: bool
    has_recent_backup: bool
    understanding: Assessment
    change_clarity: Assessment
    recommendations: list[str] = field(default_factory=list)

    @property
    def passed_checks(self) -> int:
        return sum([
            self.file_exists,
            self.has_recent_backup,
            self.understanding.passed,
            self.change_clarity.passed,
        ])

    @property
    def passed(self) -> bool:
        return self.passed_checks >= PREREQUISITES_REQUIRED

    def render(self) -> str:
        def mark(ok: bool) -> str:
            return "ok" if ok else "missing"

        lines = [
            "Prerequisite check:",
            "",
            f"File exists: {mark(self.file_exists)}",
            f"Recent backup: {mark(self.has_recent_backup)}",
            f"Understanding: {self.understanding.level}",
            f"Change clarity: {self.change_clarity.level}",
            f"Overall: {'passed' if self.passed else 'failed'} "
            f"({self.passed_checks}/4 checks)",
        ]
        if self.recommendations:
            lines.append("")
            lines.append("Recommendations:")
            lines.extend(f"- {r}" for r in self.recommendations)
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "file_exists": self.file_exists,
            "has_recent_backup": self.has_recent_backup,
            "understanding": {"level": self.understanding.level, "passed": self.understanding.passed},
            "change_clarity": {"level": self.change_clarity.level, "passed": self.change_clarity.passed},
            "overall": "passed" if self.passed else "failed",
            "recommendations": self.recommendations,
        }


def guidelines(operation: str | Operation | None = None, complexity: str = "medium") -> Guidelines:
    """Checklist and advice for an operation type."""
    op = operation if isinstance(operation, Operation) else Operation.parse(operation)
    warnings = []
    if complexity == "high":
        warnings.append("High-complexity code: approach it more carefully than usual")
        warnings.append("Split the change into the smallest units possible")
    return Guidelines(
        operation=op,
        complexity=complexity,
        guidelines=list(GUIDELINES[op]),
        checklist=list(CHECKLISTS[op]),
        warnings=warnings,
        tools=list(RECOMMENDED_TOOLS[op]),
    )


def suggest_edit_strategy(
    size_bytes: int,
    line_count: int,
    intention: str = "",
    target_lines: str = "",
) -> EditStrategy:
    """
    Pick an edit approach for a file.

    Small files are rewritten whole; a specific target range gets a range
    edit; anything else is approached chunk by chunk.
    """
    if line_count < COMPLETE_REWRITE_MAX_LINES:
        strategy = EditStrategy(
            recommended="complete_rewrite",
            reasoning=f"The file is small ({line_count} lines, {size_bytes:,} bytes); "
                      f"replacing it whole is safe",
            steps=[
                "Read the whole original file",
                "Understand every function, then write the new content",
                "Use write_file_complete",
            ],
        )
        op = Operation.COMPLETE
    elif target_lines.strip() or "specific" in intention.lower():
        strategy = EditStrategy(
            recommended="diff_edit",
            reasoning="Only part of the file changes, so a line-range edit fits",
            steps=[
                "Confirm the exact line range with read_file_lines",
                "Check compatibility with the surrounding code",
                "Use write_file_diff",
            ],
        )
        op = Operation.DIFF
    else:
        strategy = EditStrategy(
            recommended="chunked_approach",
            reasoning=f"The file is large ({line_count} lines); edit it in stages",
            steps=[
                "Split the file into logical blocks with read_file_chunk",
                "Modify each block with its own write_file_diff call",
                "Validate after every step",
            ],
        )
        op = Operation.DIFF

    strategy.checklist = list(CHECKLISTS[Operation.GENERAL]) + list(CHECKLISTS[op])
    return strategy


def _assess(text: str, keywords: list[str], high_words: int, medium_words: int) -> Assessment:
    words = len(text.split())
    has_keyword = any(k in text.lower() for k in keywords)
    if words > high_words and has_keyword:
        return Assessment("high", True)
    if words > medium_words:
        return Assessment("medium", True)
    return Assessment("low", False)


def assess_understanding(summary: str) -> Assessment:
    return _assess(summary, UNDERSTANDING_KEYWORDS, high_words=50, medium_words=20)


def assess_change_clarity(changes: str) -> Assessment:
    return _assess(changes, CHANGE_KEYWORDS, high_words=20, medium_words=10)


def check_prerequisites(
    file_exists: bool,
    has_recent_backup: bool,
    understanding: str,
    proposed_changes: str,
) -> PrerequisiteReport:
    """Score readiness to edit; passes when at least three checks pass."""
    report = PrerequisiteReport(
        file_exists=file_exists,
        has_recent_backup=has_recent_backup,
        understanding=assess_understanding(understanding),
        change_clarity=assess_change_clarity(proposed_changes),
    )

    if not report.file_exists:
        report.recommendations.append("Check the file path")
    if not report.has_recent_backup:
        report.recommendations.append("Run create_safety_backup first")
    if not report.understanding.passed:
        report.recommendations.append("Study the original code in more detail")
    if not report.change_clarity.passed:
        report.recommendations.append("Describe the intended changes more specifically")

    return report
