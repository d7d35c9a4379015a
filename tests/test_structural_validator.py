"""
Unit tests for the structural validator.

Tests cover:
- Delimiter balance (the only hard error for whole-file content)
- Delimiter checks limited to brace-language files
- Truncation, incomplete and empty structure heuristics
- Drift against the original
- Line-range validation
"""

from fullcontext_mcp.structural_validator import (
    StructuralValidator,
    check_delimiters,
    jaccard_similarity,
    line_range_errors,
)

CALC_JS = """function add(a, b) {
  return a + b;
}
function sub(a, b) {
  return a - b;
}
function mul(a, b) {
  return a * b;
}"""


class TestCheckDelimiters:
    """Tests for the delimiter stack scan."""

    def test_balanced(self):
        assert check_delimiters("function a() { return [1, (2)]; }").is_valid

    def test_unclosed_opener(self):
        result = check_delimiters("function a() { return 1;")

        assert not result.is_valid
        assert "unclosed" in result.error

    def test_mismatched_pair(self):
        """A closer that does not match the top of the stack fails at once."""
        result = check_delimiters("call(a]")

        assert not result.is_valid
        assert result.position == 6
        assert "'(' " in result.error

    def test_stray_closer(self):
        result = check_delimiters("x)")

        assert not result.is_valid
        assert "no matching opener" in result.error


class TestValidate:
    """Tests for StructuralValidator.validate()."""

    def test_valid_code_has_no_findings(self):
        result = StructuralValidator().validate(CALC_JS, "calc.js")

        assert result.is_valid
        assert result.warnings == []

    def test_unbalanced_code_is_an_error(self):
        result = StructuralValidator().validate("function a() {\n  return 1;\n", "a.js")

        assert not result.is_valid
        assert result.errors[0].startswith("Delimiter mismatch")

    def test_prose_skips_delimiter_check(self):
        """Markdown with unbalanced brackets is still valid."""
        result = StructuralValidator().validate("- item (1\n- stray ]", "notes.md")

        assert result.is_valid

    def test_python_regex_literal_not_checked(self):
        """A raw-string paren in Python source is not a delimiter error."""
        content = 'import re\nOPEN = re.compile(r"\\(")\n'

        result = StructuralValidator().validate(content, "pat.py")

        assert result.is_valid

    def test_script_extensions_always_checked(self):
        validator = StructuralValidator(delimiter_extensions={".go"})

        assert not validator.validate("if (x) {", "a.tsx").is_valid
        assert not validator.validate("if (x) {", "a.go").is_valid
        assert validator.validate("if (x) {", "a.java").is_valid

    def test_no_path_is_checked(self):
        assert not StructuralValidator().validate("if (x) {").is_valid

    def test_trailing_ellipsis_warns(self):
        result = StructuralValidator().validate("const a = 1;\nconst b = ...", "a.js")

        assert result.is_valid
        assert any("cut off" in w for w in result.warnings)

    def test_incomplete_structure_warns(self):
        result = StructuralValidator().validate("class A {\n  method() {\n", "a.js")

        assert any("incomplete structures" in w for w in result.warnings)

    def test_empty_function_suggestion(self):
        result = StructuralValidator().validate("function noop() {}", "a.js")

        assert result.is_valid
        assert result.suggestions


class TestCompareToOriginal:
    """Tests for drift detection against the original content."""

    def test_lost_functions_reported(self):
        updated = "function add(a, b) {\n  return a + b;\n}"

        comparison = StructuralValidator().validate_against_original(CALC_JS, updated)

        assert comparison.lost_functions == ["sub", "mul"]
        assert comparison.major_changes

    def test_tracked_keyword_drop_warns(self):
        """Ten imports down to six and four async down to two both drop past 30%."""
        original = "\n".join(
            [f"import mod{i}" for i in range(10)]
            + [f"async def task{i}(): pass" for i in range(4)]
        )
        updated = "\n".join(
            [f"import mod{i}" for i in range(6)]
            + [f"async def task{i}(): pass" for i in range(2)]
            + ["x = 1"] * 6
        )

        comparison = StructuralValidator().validate_against_original(original, updated)

        assert "'import' occurrences dropped: 10 -> 6" in comparison.warnings
        assert "'async' occurrences dropped: 4 -> 2" in comparison.warnings

    def test_keyword_drop_of_thirty_percent_is_quiet(self):
        original = "\n".join(f"import mod{i}" for i in range(10))
        updated = "\n".join([f"import mod{i}" for i in range(7)] + ["x = 1"] * 3)

        comparison = StructuralValidator().validate_against_original(original, updated)

        assert not any("occurrences dropped" in w for w in comparison.warnings)

    def test_size_change_warning_on_complete_replace(self):
        result = StructuralValidator().validate_complete_replace("x = 1", CALC_JS, "calc.js")

        assert result.is_valid
        assert any("File size changed" in w for w in result.warnings)

    def test_new_file_has_no_comparison(self):
        result = StructuralValidator().validate_complete_replace(CALC_JS, None, "calc.js")

        assert result.warnings == []


class TestValidateRange:
    """Tests for line-range edit validation."""

    def test_inverted_range_is_error(self):
        """start_line=5, end_line=3 is rejected."""
        result = StructuralValidator().validate_range(CALC_JS, 5, 3, "x")

        assert not result.is_valid
        assert any("end_line 3" in e for e in result.errors)

    def test_range_past_end_is_error(self):
        errors = line_range_errors(9, 8, 12)

        assert errors == ["end_line 12 is out of range (valid: 8-9)"]

    def test_similar_replacement_passes_quietly(self):
        result = StructuralValidator().validate_range(
            CALC_JS, 4, 6, "function sub(a, b) {\n  return b - a;\n}"
        )

        assert result.is_valid
        assert result.warnings == []

    def test_dissimilar_replacement_warns(self):
        result = StructuralValidator().validate_range(
            CALC_JS, 5, 5, "  throw new Error('unsupported operation here');"
        )

        assert result.is_valid
        assert any("very different" in w for w in result.warnings)

    def test_indentation_mismatch_warns(self):
        result = StructuralValidator().validate_range(
            CALC_JS, 2, 2, "              return a + b;"
        )

        assert any("Indentation" in w for w in result.warnings)

    def test_mass_deletion_warns(self):
        original = "\n".join(f"line {i}" for i in range(100))

        result = StructuralValidator().validate_range(original, 1, 60, "line 0")

        assert any("Mass deletion" in w for w in result.warnings)

    def test_unbalancing_splice_warns(self):
        """Dropping a closing brace from balanced code is flagged, not rejected."""
        result = StructuralValidator().validate_range(CALC_JS, 3, 3, "")

        assert result.is_valid
        assert any("unbalanced" in w for w in result.warnings)


class TestJaccardSimilarity:
    def test_identical(self):
        assert jaccard_similarity("a b c", "c b a") == 1.0

    def test_disjoint(self):
        assert jaccard_similarity("a b", "c d") == 0.0

    def test_both_empty(self):
        assert jaccard_similarity("", "") == 1.0
