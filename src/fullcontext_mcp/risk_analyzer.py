"""
Risk Analyzer for proposed rewrites

Provides utilities to:
1. Assess an (original, candidate) pair and emit graded risk signals
2. Summarize structural changes (functions, classes, imports)
3. Turn signals into short recommendations

Signals are advisory. Nothing here raises or blocks a write; callers attach
the signals to their response and let the agent decide.
"""

from dataclasses import dataclass, field
from enum import Enum

from . import code_patterns as patterns


class RiskLevel(Enum):
    """Severity of a risk signal."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RiskKind(Enum):
    MISSING_INPUT = "missing_input"
    LARGE_CHANGE = "large_change"
    TRUNCATED_CODE = "truncated_code"
    BRACKET_IMBALANCE = "bracket_imbalance"
    FUNCTION_LOSS = "function_loss"
    IMPORT_LOSS = "import_loss"


LEVEL_ICONS = {
    RiskLevel.CRITICAL: "[CRITICAL]",
    RiskLevel.HIGH: "[HIGH]",
    RiskLevel.MEDIUM: "[MEDIUM]",
    RiskLevel.LOW: "[LOW]",
}

CHANGE_RATIO_THRESHOLD = 0.5
RETAINED_RATIO_THRESHOLD = 0.8


@dataclass(frozen=True)
class RiskSignal:
    """A single advisory finding about a candidate rewrite."""
    level: RiskLevel
    kind: RiskKind
    message: str

    def to_dict(self) -> dict:
        return {"level": self.level.value, "kind": self.kind.value, "message": self.message}

    def __str__(self) -> str:
        return f"{LEVEL_ICONS[self.level]} {self.message}"


@dataclass
class ChangeSummary:
    original_lines: int
    new_lines: int
    original_size: int
    new_size: int

    @property
    def line_diff(self) -> int:
        return self.new_lines - self.original_lines

    @property
    def size_diff(self) -> int:
        return self.new_size - self.original_size

    @property
    def change_ratio(self) -> float:
        if self.original_size == 0:
            return 0.0 if self.new_size == 0 else 1.0
        return abs(self.size_diff) / self.original_size


@dataclass
class NameDelta:
    """Added/removed names for one kind of definition."""
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    original_total: int = 0
    new_total: int = 0


@dataclass
class ChangeAnalysis:
    summary: ChangeSummary
    functions: NameDelta
    classes: NameDelta
    imports_original: int
    imports_new: int
    risks: list[RiskSignal] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    @property
    def highest_level(self) -> RiskLevel | None:
        order = list(RiskLevel)
        if not self.risks:
            return None
        return max((r.level for r in self.risks), key=order.index)

    def report(self) -> str:
        s = self.summary
        lines = [
            "Code change analysis:",
            "",
            f"Lines: {s.original_lines} -> {s.new_lines} ({s.line_diff:+d})",
            f"Size: {s.original_size:,} -> {s.new_size:,} bytes "
            f"({s.size_diff:+,d}, {round(s.change_ratio * 100)}% change)",
            f"Functions: {self.functions.original_total} -> {self.functions.new_total}",
        ]
        if self.functions.removed:
            lines.append(f"Removed functions: {', '.join(self.functions.removed)}")
        if self.functions.added:
            lines.append(f"Added functions: {', '.join(self.functions.added)}")
        if self.classes.removed:
            lines.append(f"Removed classes: {', '.join(self.classes.removed)}")
        if self.classes.added:
            lines.append(f"Added classes: {', '.join(self.classes.added)}")
        lines.append(f"Imports/exports: {self.imports_original} -> {self.imports_new}")

        if self.risks:
            lines.append("")
            lines.append("Risk signals:")
            lines.extend(f"  {risk}" for risk in self.risks)
        else:
            lines.append("")
            lines.append("No risk signals detected.")

        if self.recommendations:
            lines.append("")
            lines.append("Recommendations:")
            lines.extend(f"  - {r}" for r in self.recommendations)

        return "\n".join(lines)

    def to_dict(self) -> dict:
        s = self.summary
        return {
            "summary": {
                "original_lines": s.original_lines,
                "new_lines": s.new_lines,
                "line_diff": s.line_diff,
                "original_size": s.original_size,
                "new_size": s.new_size,
                "size_diff": s.size_diff,
                "change_ratio": round(s.change_ratio, 4),
            },
            "functions": {
                "added": self.functions.added,
                "removed": self.functions.removed,
                "total": {"original": self.functions.original_total, "new": self.functions.new_total},
            },
            "classes": {
                "added": self.classes.added,
                "removed": self.classes.removed,
                "total": {"original": self.classes.original_total, "new": self.classes.new_total},
            },
            "imports": {"original": self.imports_original, "new": self.imports_new},
            "risks": [r.to_dict() for r in self.risks],
            "recommendations": self.recommendations,
        }


def _ratio_of_change(original: int, new: int) -> float:
    if original == 0:
        return 0.0
    return abs(new - original) / original


def assess(original: str | None, candidate: str | None) -> list[RiskSignal]:
    """
    Grade a candidate rewrite against the original.

    Checks run in a fixed order and are additive:
    1. missing input (stops the analysis)
    2. size or line-count change above 50%
    3. truncation markers in the candidate
    4. bracket count imbalance in the candidate
    5. fewer than 80% of the original function definitions
    6. fewer than 80% of the original import/export statements

    Returns:
        Signals in check order; empty when nothing looks wrong
    """
    if original is None or candidate is None:
        return [RiskSignal(
            RiskLevel.HIGH,
            RiskKind.MISSING_INPUT,
            "Original or candidate content is missing; cannot compare",
        )]

    signals: list[RiskSignal] = []

    size_ratio = _ratio_of_change(len(original), len(candidate))
    line_ratio = _ratio_of_change(len(original.split("\n")), len(candidate.split("\n")))
    if original and max(size_ratio, line_ratio) > CHANGE_RATIO_THRESHOLD:
        signals.append(RiskSignal(
            RiskLevel.HIGH,
            RiskKind.LARGE_CHANGE,
            f"Large change: size {round(size_ratio * 100)}%, "
            f"line count {round(line_ratio * 100)}%",
        ))

    markers = patterns.find_truncation_markers(candidate)
    if markers or patterns.ends_with_truncation_marker(candidate):
        shown = ", ".join(repr(m) for m in markers[:3]) or repr(patterns.last_nonblank_line(candidate))
        signals.append(RiskSignal(
            RiskLevel.CRITICAL,
            RiskKind.TRUNCATED_CODE,
            f"Candidate looks truncated or elided: {shown}",
        ))

    if not patterns.delimiters_balanced_by_count(candidate):
        counts = patterns.count_delimiters(candidate)
        detail = ", ".join(
            f"{o}{counts[o]}/{c}{counts[c]}"
            for o, c in patterns.DELIMITER_PAIRS.items()
            if counts[o] != counts[c]
        )
        signals.append(RiskSignal(
            RiskLevel.HIGH,
            RiskKind.BRACKET_IMBALANCE,
            f"Bracket counts do not match: {detail}",
        ))

    original_functions = patterns.count_function_definitions(original)
    new_functions = patterns.count_function_definitions(candidate)
    if original_functions and new_functions < original_functions * RETAINED_RATIO_THRESHOLD:
        signals.append(RiskSignal(
            RiskLevel.HIGH,
            RiskKind.FUNCTION_LOSS,
            f"Function definitions dropped: {original_functions} -> {new_functions}",
        ))

    original_imports = patterns.count_import_exports(original)
    new_imports = patterns.count_import_exports(candidate)
    if original_imports and new_imports < original_imports * RETAINED_RATIO_THRESHOLD:
        signals.append(RiskSignal(
            RiskLevel.MEDIUM,
            RiskKind.IMPORT_LOSS,
            f"Import/export statements dropped: {original_imports} -> {new_imports}",
        ))

    return signals


def _name_delta(original: list[str], new: list[str]) -> NameDelta:
    return NameDelta(
        added=[n for n in new if n not in original],
        removed=[n for n in original if n not in new],
        original_total=len(original),
        new_total=len(new),
    )


def recommend(analysis: ChangeAnalysis) -> list[str]:
    """Short actionable advice derived from an analysis."""
    recommendations = []
    levels = {r.level for r in analysis.risks}

    if RiskLevel.CRITICAL in levels:
        recommendations.append("Stop: resolve the critical findings before writing this content")
    if analysis.summary.change_ratio > CHANGE_RATIO_THRESHOLD:
        recommendations.append("The change is large; split it into line-range edits")
    if analysis.functions.removed:
        recommendations.append("Functions were removed; confirm the removal is intended")
    if any(r.kind is RiskKind.BRACKET_IMBALANCE for r in analysis.risks):
        recommendations.append("Run validate_code_integrity on the candidate before writing")
    if any(r.kind is RiskKind.IMPORT_LOSS for r in analysis.risks):
        recommendations.append("Check that every import the remaining code uses is still present")

    return recommendations


def analyze_changes(original: str, candidate: str) -> ChangeAnalysis:
    """Full comparison: summary, structural changes, risks and recommendations."""
    analysis = ChangeAnalysis(
        summary=ChangeSummary(
            original_lines=len(original.split("\n")),
            new_lines=len(candidate.split("\n")),
            original_size=len(original),
            new_size=len(candidate),
        ),
        functions=_name_delta(
            patterns.extract_function_names(original),
            patterns.extract_function_names(candidate),
        ),
        classes=_name_delta(
            patterns.extract_class_names(original),
            patterns.extract_class_names(candidate),
        ),
        imports_original=patterns.count_import_exports(original),
        imports_new=patterns.count_import_exports(candidate),
        risks=assess(original, candidate),
    )
    analysis.recommendations = recommend(analysis)
    return analysis
