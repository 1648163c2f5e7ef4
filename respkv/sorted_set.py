"""A set of members ordered by score, ties broken by member."""

from __future__ import annotations

from bisect import bisect_left, insort


class SortedSet:
    """Members with float scores, kept ordered by ``(score, member)``."""

    def __init__(self) -> None:
        self._scores: dict[str, float] = {}
        self._ordered: list[tuple[float, str]] = []
        self.is_geo = False

    def insert(self, member: str, score: float) -> bool:
        """Add or update ``member``; return True if it was already present."""
        existed = self._discard(member)
        score = float(score)
        self._scores[member] = score
        insort(self._ordered, (score, member))
        return existed

    def remove(self, member: str) -> bool:
        """Remove ``member``; return True if it was present."""
        return self._discard(member)

    def _discard(self, member: str) -> bool:
        old = self._scores.pop(member, None)
        if old is None:
            return False
        del self._ordered[bisect_left(self._ordered, (old, member))]
        return True

    def rank(self, member: str) -> int | None:
        """Return the zero-based position of ``member``, or None if absent."""
        score = self._scores.get(member)
        if score is None:
            return None
        return bisect_left(self._ordered, (score, member))

    def score(self, member: str) -> float | None:
        """Return the score of ``member``, or None if absent."""
        return self._scores.get(member)

    def range(self, start: int, stop: int) -> list[str]:
        """Return members from ``start`` to ``stop`` inclusive; negative indices count from the end."""
        size = len(self._ordered)
        if size == 0:
            return []
        if start < 0:
            start += size
        if stop < 0:
            stop += size
        start = max(start, 0)
        stop = min(stop, size - 1)
        if start > stop:
            return []
        return [member for _, member in self._ordered[start:stop + 1]]

    def items_with_scores(self) -> list[tuple[str, float]]:
        """Return every ``(member, score)`` pair."""
        return list(self._scores.items())

    def __len__(self) -> int:
        return len(self._scores)