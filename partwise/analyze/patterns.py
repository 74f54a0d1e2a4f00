"""
Placeholder pattern matching for mapping rules.

Patterns are written the way system names appear in the model, with
placeholders for the variable part:

    xxx  -> two or three digits
    xx   -> one to three digits
    x    -> one digit
    *    -> anything

A candidate matches when it equals the pattern, when the compiled regex
finds it, or when it contains the pattern's literal part (the pattern with
all x-placeholders removed). The last step is deliberately broad: "HWS-xxx"
matches "HWS-Anything".
"""

import re
from functools import lru_cache
from typing import Callable, Optional, Pattern

from partwise.schemas import PLACEHOLDER_TOKENS

PLACEHOLDER_REGEX = (
    ("xxx", r"\d{2,3}"),
    ("xx", r"\d{1,3}"),
    ("x", r"\d"),
)


def is_blank_pattern(pattern: Optional[str]) -> bool:
    """Empty and "-" patterns are routed to category matching, never here."""
    stripped = (pattern or "").strip()
    return not stripped or stripped == "-"


def simplify_pattern(pattern: str) -> str:
    """Remove x-placeholders to get the bare literal."""
    simplified = pattern or ""
    for token in PLACEHOLDER_TOKENS:
        simplified = simplified.replace(token, "")
    return simplified.strip()


def pattern_to_regex(pattern: str) -> str:
    regex = re.escape(pattern)
    for token, replacement in PLACEHOLDER_REGEX:
        regex = regex.replace(token, replacement)
    return regex.replace(r"\*", ".*")


@lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> Pattern:
    return re.compile(pattern_to_regex(pattern), re.IGNORECASE)


def matches_pattern(
        candidate: Optional[str],
        pattern: Optional[str],
        log: Optional[Callable[[str], None]] = None,
) -> bool:
    if not candidate or is_blank_pattern(pattern):
        return False

    if candidate.lower() == pattern.lower():
        return True

    try:
        if compile_pattern(pattern).search(candidate):
            return True
    except re.error as e:
        if log:
            log(f"Regex error for pattern '{pattern}': {e}")

    literal = simplify_pattern(pattern)
    return bool(literal) and literal.lower() in candidate.lower()
