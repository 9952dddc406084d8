"""Local word-boundary content filter.

Patterns are compiled once by :func:`build_local_filter` and held in an
immutable :class:`LocalFilter`; concurrent requests only read them.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from backend.app.models.moderation import LocalFlagged
from backend.app.services.profanity_lists import PROFANITY_LISTS


@dataclass(frozen=True)
class LocalFilter:
    """Precompiled, case-insensitive ``\\bword\\b`` matchers."""

    patterns: tuple[re.Pattern[str], ...]

    def matches(self, text: str) -> bool:
        return any(p.search(text) for p in self.patterns)

    def check(self, name: str, description: str) -> LocalFlagged | None:
        """Return a flag if name or description contains a blocked term.

        The flagged field is ``name`` when the name itself matches, otherwise
        ``description``. Never performs I/O and never raises.
        """
        combined = f"{name} {description}"
        for pattern in self.patterns:
            if pattern.search(combined):
                field = "name" if pattern.search(name) else "description"
                return LocalFlagged(flagged_field=field)
        return None


def build_local_filter(
    word_lists: Mapping[str, Sequence[str]] = PROFANITY_LISTS,
) -> LocalFilter:
    """Compile every word of every locale into one :class:`LocalFilter`."""
    seen: set[str] = set()
    patterns: list[re.Pattern[str]] = []
    for words in word_lists.values():
        for word in words:
            key = word.strip().lower()
            if not key or key in seen:
                continue
            seen.add(key)
            patterns.append(re.compile(rf"\b{re.escape(key)}\b", re.IGNORECASE))
    return LocalFilter(patterns=tuple(patterns))
