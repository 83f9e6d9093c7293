"""Exclusion patterns for deployed files.

Patterns are matched against a file's basename only. ``*`` matches any run
of characters (including none); every other character is literal. There is
no negation, so an exclusion can never re-include a file.

Examples:
    >>> is_excluded("debug.log", ["*.log"])
    True
    >>> is_excluded(".#index.html", [".#*"])
    True
    >>> is_excluded("lockfile.#", [".#*"])
    False
"""

import functools
import logging
import os
import re
from typing import Callable, Iterable

logger = logging.getLogger(__name__)

Matcher = Callable[[str], bool]


@functools.lru_cache(maxsize=512)
def exclusion_to_regex(pattern: str) -> "re.Pattern[str]":
    """Translate an exclusion pattern into an anchored regular expression."""
    body = ".*".join(re.escape(part) for part in pattern.split("*"))
    return re.compile(rf"\A{body}\Z", re.DOTALL)


def compile_exclusion(pattern: str) -> Matcher:
    """Compile a single exclusion pattern into a match predicate.

    Args:
        pattern: Glob-style pattern where ``*`` is the only wildcard

    Returns:
        Function returning True when a name matches the whole pattern
    """
    regex = exclusion_to_regex(pattern)
    return lambda name: regex.match(name) is not None


def is_excluded(filename: str, patterns: Iterable[str]) -> bool:
    """Check whether a file name matches any exclusion pattern.

    Args:
        filename: File name or path; only its basename is matched
        patterns: Exclusion patterns

    Returns:
        True on the first matching pattern
    """
    name = os.path.basename(filename)
    return any(compile_exclusion(p)(name) for p in patterns)


class ExclusionMatcher:
    """A fixed set of exclusion patterns compiled once."""

    def __init__(self, patterns: Iterable[str] = ()):
        self.patterns = tuple(patterns)
        self._matchers = [(p, compile_exclusion(p)) for p in self.patterns]

    def __bool__(self) -> bool:
        return bool(self._matchers)

    def matches(self, filename: str) -> bool:
        """Return True if the basename of ``filename`` is excluded."""
        name = os.path.basename(filename)
        for pattern, matcher in self._matchers:
            if matcher(name):
                logger.debug("Excluding %s (matches %r)", filename, pattern)
                return True
        return False
