"""Glob pattern sets for path selection.

Paths and patterns are matched segment by segment:

* ``*``, ``?`` and ``[...]`` match within one path segment only, so
  ``*.txt`` matches ``a.txt`` but not ``sub/a.txt``;
* a ``**`` segment matches zero or more whole segments
  (``**/*.txt`` matches at any depth);
* ``*``, ``?`` and ``**`` do not match a segment starting with ``.``
  unless the pattern segment itself starts with ``.``;
* ``{a,b}`` expands to both alternatives;
* ``!pattern`` excludes.  A path matches a set when it matches one of its
  positive patterns (or the set has none) and none of its negations.
"""

from __future__ import annotations

from fnmatch import fnmatchcase
from typing import Iterable

from braceexpand import braceexpand

from .exceptions import ConfigurationError


def _to_list(patterns: str | Iterable[str] | None, name: str = "pattern") -> list[str]:
    if patterns is None:
        return []
    if isinstance(patterns, str):
        return [patterns]
    try:
        result = list(patterns)
    except TypeError:
        raise ConfigurationError(
            f"'{name}' expects a string or a list of strings, got {type(patterns).__name__}"
        )
    for p in result:
        if not isinstance(p, str):
            raise ConfigurationError(
                f"'{name}' expects a string or a list of strings, got item {p!r}"
            )
    return result


def expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives; patterns without braces pass through."""
    if "{" not in pattern:
        return [pattern]
    try:
        return list(braceexpand(pattern, escape=False))
    except ValueError as exc:
        raise ConfigurationError(f"Invalid brace pattern {pattern!r}: {exc}")


def _split(pattern: str) -> list[str]:
    while pattern.startswith("./"):
        pattern = pattern[2:]
    return pattern.strip("/").split("/")


def _glob_match(pattern: str, name: str) -> bool:
    """Match one path segment; wildcards skip a leading ``.``."""
    if name.startswith(".") and not pattern.startswith("."):
        return False
    return fnmatchcase(name, pattern)


def match_segments(pattern: list[str], path: list[str]) -> bool:
    """Match split *pattern* segments against split *path* segments."""
    if not pattern:
        return not path
    seg, rest = pattern[0], pattern[1:]
    if seg == "**":
        # zero or more non-dot segments
        for i in range(len(path) + 1):
            if match_segments(rest, path[i:]):
                return True
            if i < len(path) and path[i].startswith("."):
                return False
        return False
    if not path or not _glob_match(seg, path[0]):
        return False
    return match_segments(rest, path[1:])


class PatternSet:
    """A compiled list of glob patterns, some possibly negated with ``!``."""

    def __init__(self, patterns: str | Iterable[str] | None = None, *, name: str = "pattern"):
        expanded: list[str] = []
        for p in _to_list(patterns, name):
            for alt in expand_braces(p):
                if alt and alt != "!":
                    expanded.append(alt)
        self._patterns = expanded
        self._include: list[list[str]] = []
        self._exclude: list[list[str]] = []
        for p in expanded:
            if p.startswith("!"):
                self._exclude.append(_split(p[1:]))
            else:
                self._include.append(_split(p))

    def __repr__(self) -> str:
        return f"PatternSet({self._patterns!r})"

    def __bool__(self) -> bool:
        return bool(self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    @property
    def patterns(self) -> list[str]:
        """The patterns after brace expansion, in order."""
        return list(self._patterns)

    def match(self, path: str) -> bool:
        """Return True if *path* (slash-separated, relative) matches."""
        if not self._patterns:
            return False
        segments = path.strip("/").split("/")
        if self._include and not any(match_segments(p, segments) for p in self._include):
            return False
        return not any(match_segments(p, segments) for p in self._exclude)


def match_any(path: str, patterns: str | Iterable[str] | None) -> bool:
    """One-off convenience: does *path* match *patterns*?"""
    return PatternSet(patterns).match(path)
