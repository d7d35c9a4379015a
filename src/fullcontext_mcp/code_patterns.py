"""
Pattern constants for structural heuristics.

Contains:
- Delimiter pairs
- Function / class / import pattern sets (JS/TS and Python)
- Truncation marker patterns
- Small counting helpers shared by the validator and the risk analyzer

These are lightweight regex heuristics, not a parser. They estimate structure
well enough to raise suspicion about a rewrite; they cannot prove anything.
"""

import re
from typing import Dict, List

DELIMITER_PAIRS: Dict[str, str] = {"(": ")", "[": "]", "{": "}"}
CLOSING_DELIMITERS = {v: k for k, v in DELIMITER_PAIRS.items()}

# Named function definitions; group 1 is the name
FUNCTION_NAME_PATTERNS: List[str] = [
    r'\b(?:async\s+)?function\s*\*?\s*([A-Za-z_$][\w$]*)\s*\(',      # function foo(
    r'\b(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*=\s*(?:async\s*)?\([^)]*\)\s*=>',  # const foo = () =>
    r'\b(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*=\s*(?:async\s+)?function\b',      # const foo = function
    r'^\s*(?:async\s+)?def\s+([A-Za-z_]\w*)\s*\(',                    # def foo(
    r'^\s*(?:pub\s+)?(?:async\s+)?fn\s+([A-Za-z_]\w*)',                # fn foo
    r'^\s*func\s+(?:\([^)]*\)\s*)?([A-Za-z_]\w*)',                     # func foo / func (r T) foo
]

CLASS_NAME_PATTERN = r'\bclass\s+([A-Za-z_$][\w$]*)'

# Openings that imply a brace-delimited body follows
BRACED_OPENING_PATTERNS: List[str] = [
    r'\bfunction\s*\*?\s*[A-Za-z_$]?[\w$]*\s*\([^)]*\)\s*\{',
    r'\w+\s*=\s*(?:async\s*)?\([^)]*\)\s*=>\s*\{',
    r'\bclass\s+[A-Za-z_$][\w$]*[^{\n]*\{',
]

EMPTY_BODY_PATTERNS: List[str] = [
    r'\bfunction\s+[A-Za-z_$][\w$]*\s*\([^)]*\)\s*\{\s*\}',
    r'^\s*(?:async\s+)?def\s+\w+\s*\([^)]*\)\s*(?:->\s*[^:]+)?:\s*\n\s*pass\s*$',
]

IMPORT_EXPORT_PATTERNS: List[str] = [
    r'^\s*import\b',
    r'^\s*from\s+\S+\s+import\b',
    r'^\s*export\b',
    r'\brequire\s*\(',
    r'\bmodule\.exports\b',
]

# Tokens whose counts are tracked for structural drift
TRACKED_KEYWORDS: List[str] = ["import", "export", "class", "function", "def", "async", "await"]

# A trailing marker on the final non-blank line
TRAILING_TRUNCATION_PATTERNS: List[str] = [
    r'\.\.\.\s*$',
    r'<truncated',
    r'\[truncated\]',
]

# Markers anywhere in a candidate that suggest elided code
TRUNCATION_MARKER_PATTERNS: List[str] = [
    r'\[truncated\]',
    r'<truncated',
    r'^\s*(?://|#|/\*|\*)?\s*\.\.\.\s*(?:\*/)?\s*$',                      # a line that is only "..."
    r'(?://|#|/\*)\s*\.\.\.\s*(?:rest|remaining|existing|more|other)\b',  # // ... rest of code
    r'(?://|#|/\*)\s*(?:rest|remainder) of (?:the )?(?:code|file|implementation)',
    r'(?://|#|/\*)\s*(?:existing|previous) code (?:here|unchanged|remains)',
]


def extract_function_names(content: str) -> list[str]:
    """Heuristic function-name extraction, order-preserving and de-duplicated."""
    names: list[str] = []
    seen: set[str] = set()
    for pattern in FUNCTION_NAME_PATTERNS:
        for match in re.finditer(pattern, content, re.MULTILINE):
            name = match.group(1)
            if name and name not in seen:
                seen.add(name)
                names.append(name)
    return names


def count_function_definitions(content: str) -> int:
    """Count function definitions (not unique names)."""
    return sum(
        len(re.findall(pattern, content, re.MULTILINE))
        for pattern in FUNCTION_NAME_PATTERNS
    )


def extract_class_names(content: str) -> list[str]:
    return list(dict.fromkeys(re.findall(CLASS_NAME_PATTERN, content)))


def count_import_exports(content: str) -> int:
    return sum(
        len(re.findall(pattern, content, re.MULTILINE))
        for pattern in IMPORT_EXPORT_PATTERNS
    )


def count_keyword(content: str, keyword: str) -> int:
    return len(re.findall(rf'\b{re.escape(keyword)}\b', content))


def count_delimiters(content: str) -> dict[str, int]:
    counts = {ch: 0 for pair in DELIMITER_PAIRS.items() for ch in pair}
    for char in content:
        if char in counts:
            counts[char] += 1
    return counts


def delimiters_balanced_by_count(content: str) -> bool:
    counts = count_delimiters(content)
    return all(counts[o] == counts[c] for o, c in DELIMITER_PAIRS.items())


def last_nonblank_line(content: str) -> str:
    for line in reversed(content.split("\n")):
        if line.strip():
            return line.strip()
    return ""


def ends_with_truncation_marker(content: str) -> bool:
    last = last_nonblank_line(content)
    return any(re.search(p, last) for p in TRAILING_TRUNCATION_PATTERNS)


def find_truncation_markers(content: str) -> list[str]:
    """Return the lines that look like elided-code markers."""
    found: list[str] = []
    for pattern in TRUNCATION_MARKER_PATTERNS:
        for match in re.finditer(pattern, content, re.MULTILINE | re.IGNORECASE):
            line_start = content.rfind("\n", 0, match.start()) + 1
            line_end = content.find("\n", match.end())
            line = content[line_start:line_end if line_end != -1 else len(content)].strip()
            if line not in found:
                found.append(line)
    return found
