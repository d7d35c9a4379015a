"""
Structural validator for proposed rewrites.

Checks a code blob for:
- Balanced ( [ { delimiters in brace-language files (the only hard error
  besides bad line ranges)
- Apparent truncation and unfinished function/class bodies
- Structural drift against the original (lost functions, keyword drops,
  large line-count shifts)
- Range-edit sanity (line bounds, similarity, indentation, mass deletion)

Everything except delimiter mismatches and out-of-range line numbers is a
warning or suggestion. Heuristics over arbitrary languages can raise suspicion
but cannot prove a rewrite wrong, so they annotate the write instead of
blocking it.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from . import code_patterns as patterns

# Always delimiter-checked, whatever the configured set says.
SCRIPT_EXTENSIONS = frozenset({".js", ".ts", ".jsx", ".tsx"})

DEFAULT_DELIMITER_EXTENSIONS = SCRIPT_EXTENSIONS | {
    ".mjs", ".cjs", ".mts", ".cts", ".java", ".kt", ".c", ".h", ".cc", ".cpp",
    ".hpp", ".cs", ".go", ".rs", ".swift", ".php", ".json",
}

MAJOR_LINE_CHANGE_RATIO = 0.3
KEYWORD_DROP_RATIO = 0.7
SIZE_CHANGE_WARNING_RATIO = 0.5
LOW_SIMILARITY = 0.3
INDENT_TOLERANCE = 4
MASS_DELETION_MIN_LINES = 50
MASS_DELETION_KEEP_RATIO = 0.3


@dataclass
class ValidationResult:
    """Outcome of a validation pass. Only ``errors`` block a write."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        self.suggestions.extend(other.suggestions)
        return self

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "suggestions": list(self.suggestions),
        }

    def report(self) -> str:
        """Human-readable block listing warnings and suggestions."""
        lines = []
        if self.errors:
            lines.append("Validation errors:")
            lines.extend(f"  - {e}" for e in self.errors)
        if self.warnings:
            lines.append("Validation warnings:")
            lines.extend(f"  - {w}" for w in self.warnings)
        if self.suggestions:
            lines.append("Suggestions:")
            lines.extend(f"  - {s}" for s in self.suggestions)
        return "\n".join(lines)


@dataclass
class DelimiterCheck:
    is_valid: bool
    error: str | None = None
    position: int | None = None


@dataclass
class ComparisonResult:
    warnings: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    major_changes: bool = False
    lost_functions: list[str] = field(default_factory=list)


def check_delimiters(content: str) -> DelimiterCheck:
    """
    Single left-to-right scan with a stack of open delimiters.

    Each closer must match the top of the stack; the scan accepts only if the
    stack is empty at the end. Stops at the first mismatch.
    """
    stack: list[tuple[str, int]] = []

    for pos, char in enumerate(content):
        if char in patterns.DELIMITER_PAIRS:
            stack.append((char, pos))
        elif char in patterns.CLOSING_DELIMITERS:
            if not stack:
                return DelimiterCheck(
                    is_valid=False,
                    error=f"closing '{char}' at position {pos} has no matching opener",
                    position=pos,
                )
            opener, opened_at = stack.pop()
            if patterns.DELIMITER_PAIRS[opener] != char:
                return DelimiterCheck(
                    is_valid=False,
                    error=(
                        f"mismatched delimiter at position {pos}: '{opener}' "
                        f"(opened at {opened_at}) closed by '{char}'"
                    ),
                    position=pos,
                )

    if stack:
        opener, opened_at = stack[-1]
        return DelimiterCheck(
            is_valid=False,
            error=(
                f"{len(stack)} unclosed delimiter(s), innermost '{opener}' "
                f"opened at position {opened_at}"
            ),
            position=opened_at,
        )

    return DelimiterCheck(is_valid=True)


def jaccard_similarity(text1: str, text2: str) -> float:
    """Jaccard index over lower-cased whitespace-separated word sets."""
    set1 = set(text1.lower().split())
    set2 = set(text2.lower().split())
    union = set1 | set2
    if not union:
        return 1.0
    return len(set1 & set2) / len(union)


def line_range_errors(total_lines: int, start_line: int, end_line: int) -> list[str]:
    """Bounds check for a 1-based inclusive range over ``total_lines`` lines."""
    errors = []
    if start_line < 1 or start_line > total_lines:
        errors.append(f"start_line {start_line} is out of range (valid: 1-{total_lines})")
    if end_line < start_line or end_line > total_lines:
        errors.append(
            f"end_line {end_line} is out of range (valid: {max(start_line, 1)}-{total_lines})"
        )
    return errors


def _leading_whitespace(line: str) -> int:
    return len(line) - len(line.lstrip())


class StructuralValidator:
    """Heuristic validator for whole-file and line-range rewrites."""

    def __init__(self, delimiter_extensions: Iterable[str] | None = None):
        if delimiter_extensions is None:
            delimiter_extensions = DEFAULT_DELIMITER_EXTENSIONS
        self.delimiter_extensions = SCRIPT_EXTENSIONS | {
            ext.lower() for ext in delimiter_extensions
        }

    def _checks_delimiters(self, path: str | None) -> bool:
        """Brace languages only; a bare blob with no path is always checked."""
        if not path:
            return True
        return Path(path).suffix.lower() in self.delimiter_extensions

    def validate(self, content: str, path: str | None = None) -> ValidationResult:
        """Validate a code blob on its own."""
        result = ValidationResult()

        if self._checks_delimiters(path):
            delimiters = check_delimiters(content)
            if not delimiters.is_valid:
                result.errors.append(f"Delimiter mismatch: {delimiters.error}")

        result.warnings.extend(self.find_incomplete_structures(content))

        if patterns.ends_with_truncation_marker(content):
            result.warnings.append(
                "Code appears to be cut off: the last line ends with a truncation marker"
            )

        empty = self.find_empty_structures(content)
        if empty:
            result.suggestions.append(
                f"{empty} function(s) have an empty body; fill them in or remove them"
            )

        return result

    def find_incomplete_structures(self, content: str) -> list[str]:
        openings = sum(
            len(re.findall(p, content)) for p in patterns.BRACED_OPENING_PATTERNS
        )
        counts = patterns.count_delimiters(content)
        if openings > 0 and counts["{"] > counts["}"]:
            return [
                f"Possibly incomplete structures: {openings} function/class opening(s) "
                f"but {counts['{'] - counts['}']} more '{{' than '}}'"
            ]
        return []

    def find_empty_structures(self, content: str) -> int:
        return sum(
            len(re.findall(p, content, re.MULTILINE)) for p in patterns.EMPTY_BODY_PATTERNS
        )

    def validate_against_original(self, original: str, updated: str) -> ComparisonResult:
        """Estimate structural drift of ``updated`` relative to ``original``."""
        result = ComparisonResult()

        original_lines = len(original.split("\n"))
        new_lines = len(updated.split("\n"))
        line_diff = new_lines - original_lines
        if abs(line_diff) > original_lines * MAJOR_LINE_CHANGE_RATIO:
            result.major_changes = True
            result.warnings.append(
                f"Line count changed sharply: {original_lines} -> {new_lines} ({line_diff:+d})"
            )

        new_functions = set(patterns.extract_function_names(updated))
        lost = [
            name for name in patterns.extract_function_names(original)
            if name not in new_functions
        ]
        if lost:
            result.lost_functions = lost
            result.warnings.append(f"Functions possibly lost: {', '.join(lost)}")
            result.suggestions.append(
                "If only part of the file needs to change, use a line-range edit "
                "so untouched functions cannot be dropped"
            )

        for keyword in patterns.TRACKED_KEYWORDS:
            original_count = patterns.count_keyword(original, keyword)
            new_count = patterns.count_keyword(updated, keyword)
            if new_count < original_count * KEYWORD_DROP_RATIO:
                result.warnings.append(
                    f"'{keyword}' occurrences dropped: {original_count} -> {new_count}"
                )

        return result

    def validate_complete_replace(
        self,
        new_content: str,
        original: str | None = None,
        path: str | None = None,
    ) -> ValidationResult:
        """Validation used before replacing a whole file."""
        result = self.validate(new_content, path)

        if original:
            comparison = self.validate_against_original(original, new_content)
            result.warnings.extend(comparison.warnings)
            result.suggestions.extend(comparison.suggestions)
            if comparison.major_changes:
                result.warnings.append("Large-scale change detected; review the rewrite carefully")

            size_diff = abs(len(new_content) - len(original)) / len(original)
            if size_diff > SIZE_CHANGE_WARNING_RATIO:
                result.warnings.append(f"File size changed by {round(size_diff * 100)}%")

        return result

    def validate_range(
        self,
        original_content: str,
        start_line: int,
        end_line: int,
        new_content: str,
    ) -> ValidationResult:
        """
        Validate replacing lines ``start_line``..``end_line`` (1-based, inclusive).

        Out-of-range bounds are errors and stop the check before any
        similarity or splice analysis runs.
        """
        original_lines = original_content.split("\n")
        result = ValidationResult(errors=line_range_errors(len(original_lines), start_line, end_line))
        if not result.is_valid:
            return result

        replaced = "\n".join(original_lines[start_line - 1:end_line])
        if jaccard_similarity(replaced, new_content) < LOW_SIMILARITY:
            result.warnings.append(
                "New content is very different from the lines it replaces; "
                "confirm the edit targets the intended range"
            )

        new_lines = new_content.split("\n")
        if start_line > 1:
            previous = original_lines[start_line - 2]
            if abs(_leading_whitespace(previous) - _leading_whitespace(new_lines[0])) > INDENT_TOLERANCE:
                result.warnings.append(
                    "Indentation of the new content does not match the surrounding code"
                )

        replaced_count = end_line - start_line + 1
        if (
            replaced_count > MASS_DELETION_MIN_LINES
            and len(new_lines) < replaced_count * MASS_DELETION_KEEP_RATIO
        ):
            result.warnings.append(
                f"Mass deletion: {replaced_count} lines -> {len(new_lines)} lines"
            )

        if check_delimiters(original_content).is_valid:
            spliced = original_lines[:start_line - 1] + new_lines + original_lines[end_line:]
            if not check_delimiters("\n".join(spliced)).is_valid:
                result.warnings.append(
                    "The edit leaves the file's delimiters unbalanced "
                    "(they were balanced before)"
                )

        return result
