"""
Literal matching helpers shared by the record normalizer and the query compiler.

Stored string fields come from several schema eras with inconsistent casing and
padding, so equality lookups are done with anchored, case-insensitive patterns
built from escaped literals rather than with raw equality.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Pattern


def literal_to_anchored_pattern(literal: str) -> Pattern[str]:
    """Compile ``^\\s*<escaped literal>\\s*$`` with IGNORECASE.

    The literal is trimmed before escaping, so ``" Drill "`` and ``"Drill"``
    produce the same pattern. Metacharacters in the input never act as
    wildcards: ``'3.5" Drill'`` does not match ``'3x5" Drill'``.
    """
    escaped = re.escape(literal.strip())
    return re.compile(rf"^\s*{escaped}\s*$", re.IGNORECASE)


def anchored_patterns(literals: Iterable[str]) -> List[Pattern[str]]:
    """Anchored patterns for every non-blank literal, in input order."""
    return [literal_to_anchored_pattern(s) for s in literals if s and s.strip()]


def split_multi_value(text: str) -> List[str]:
    """Split comma-separated filters into individual trimmed values."""
    if not text:
        return []
    return [part.strip() for part in text.split(",") if part.strip()]


def clean_strings(values) -> List[str]:
    """Trimmed non-empty strings from a value that should be a list of strings.

    Anything that is not a list (``None``, a bare string, a dict) counts as an
    empty list; non-string entries are dropped.
    """
    if not isinstance(values, (list, tuple)):
        return []
    return [v.strip() for v in values if isinstance(v, str) and v.strip()]
