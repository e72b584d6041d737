"""Regex allow-lists for process names, environment keys and network metrics."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from procsampler.providers.base import ConfigError

if TYPE_CHECKING:
    from collections.abc import Iterable


def compile_patterns(patterns: Iterable[str]) -> tuple[re.Pattern[str], ...]:
    """Compile *patterns*, raising ConfigError on the first invalid one."""
    compiled: list[re.Pattern[str]] = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            raise ConfigError(f"Invalid pattern {pattern!r}: {exc}") from exc
    return tuple(compiled)


class PatternMatcher:
    """True iff any configured pattern matches a candidate string.

    Each pattern must match the whole candidate (``re.fullmatch``); patterns
    are independent of each other.
    An empty matcher matches nothing; callers that want "no patterns means
    everything" check :attr:`configured` first.
    """

    __slots__ = ("_patterns",)

    def __init__(self, patterns: Iterable[str] = ()) -> None:
        self._patterns = compile_patterns(patterns)

    @property
    def configured(self) -> bool:
        return bool(self._patterns)

    @property
    def patterns(self) -> tuple[str, ...]:
        return tuple(p.pattern for p in self._patterns)

    def matches(self, candidate: str) -> bool:
        return any(p.fullmatch(candidate) for p in self._patterns)

    def __bool__(self) -> bool:
        return self.configured

    def __repr__(self) -> str:
        return f"PatternMatcher({list(self.patterns)!r})"
