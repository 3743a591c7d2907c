"""Glob matching of root-relative paths.

Patterns are matched against the whole forward-slash path, doublestar style:

- `*` matches inside a single path segment and never crosses `/`;
- `**` as a full segment matches zero or more segments;
- a trailing `/**` also matches the directory itself, so `build/**` prunes `build`;
- leading dots are not special, `*` matches `.env`.
"""

from __future__ import annotations

import glob
import re
from functools import lru_cache
from typing import TYPE_CHECKING

from tree_prompt.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


def is_malformed_glob(pattern: str) -> bool:
    """Tell whether a pattern has a character class that is never closed.

    Classes cannot span a `/`, so `a[b` and `[a/b]` are both rejected rather than
    read as a literal `[`. Backslashes never reach this point: `normalize_glob`
    turns them into separators.
    """
    for segment in pattern.split("/"):
        i = 0
        while i < len(segment):
            if segment[i] == "[":
                j = i + 1
                if j < len(segment) and segment[j] in "!^":
                    j += 1
                if j < len(segment) and segment[j] == "]":
                    j += 1
                end = segment.find("]", j)
                if end == -1:
                    return True
                i = end
            i += 1
    return False


@lru_cache(maxsize=512)
def compile_glob(pattern: str) -> re.Pattern[str] | None:
    """Compile a glob pattern into a regular expression.

    Args:
        pattern (str): a normalized glob pattern (forward slashes, no surrounding whitespace)

    Returns:
        re.Pattern[str] | None: the compiled expression, or None when `is_malformed_glob` rejects
            the pattern
    """
    if is_malformed_glob(pattern):
        logger.debug("malformed_pattern", pattern=pattern)
        return None
    sources = [glob.translate(pattern, recursive=True, include_hidden=True, seps="/")]
    if pattern == "**" or pattern.endswith("/**"):
        base = pattern.removesuffix("**").removesuffix("/")
        if base:
            sources.append(glob.translate(base, recursive=True, include_hidden=True, seps="/"))
    return re.compile("|".join(f"(?:{src})" for src in sources))


def match_glob(rel: str, pattern: str) -> bool:
    """Check whether a relative path matches one glob pattern.

    Args:
        rel (str): the root-relative path, with POSIX separators
        pattern (str): the glob pattern

    Returns:
        bool: True on a match; False for no match, a blank pattern or a malformed one
    """
    pattern = normalize_glob(pattern)
    if not pattern:
        return False
    rx = compile_glob(pattern)
    return rx is not None and rx.match(rel) is not None


def match_any_glob(rel: str, globs: Iterable[str]) -> bool:
    """Check if a relative path matches any of the provided glob patterns.

    Args:
        rel (str): the relative path to check
        globs (Iterable[str]): the glob patterns to match against

    Returns:
        bool: True if `rel` matches any pattern in `globs`, False otherwise
            (always False for an empty pattern set)
    """
    return any(match_glob(rel, g) for g in globs)


def normalize_glob(glob_: str) -> str:
    """Strip a pattern and turn backslashes into forward slashes."""
    return (glob_ or "").strip().replace("\\", "/")


def normalize_globs(globs: Sequence[str]) -> list[str]:
    """Normalize a sequence of path glob patterns.

    Args:
        globs (Sequence[str]): the glob patterns to normalize

    Returns:
        list[str]: the normalized glob patterns, blank entries dropped
    """
    out: list[str] = []
    for g in globs:
        g2 = normalize_glob(g)
        if g2:
            out.append(g2)
    return out


def split_patterns(value: str | Sequence[str] | None) -> list[str]:
    """Split comma-separated pattern lists into individual patterns.

    Accepts a single string (`"venv/**,*.log"`) or several of them, as produced
    by a repeatable command line option.

    Args:
        value (str | Sequence[str] | None): the raw pattern list(s)

    Returns:
        list[str]: the normalized patterns, in order
    """
    if not value:
        return []
    chunks = [value] if isinstance(value, str) else list(value)
    out: list[str] = []
    for chunk in chunks:
        out.extend(normalize_globs(chunk.split(",")))
    return out
