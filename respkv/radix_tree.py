"""A compressed prefix tree mapping string or byte keys to values."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

_MISSING: Any = object()


@dataclass
class _Node:
    value: Any = _MISSING
    children: dict = field(default_factory=dict)

    @property
    def has_value(self) -> bool:
        return self.value is not _MISSING


def _common_prefix_length(left, right) -> int:
    length = 0
    for a, b in zip(left, right):
        if a != b:
            break
        length += 1
    return length


class RadixTree:
    """Radix tree whose edges are labelled with key fragments.

    Keys must all be of one type, either ``str`` or ``bytes``.
    """

    def __init__(self) -> None:
        self._root: _Node | None = None

    def insert(self, key, value) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        if self._root is None:
            self._root = _Node()
        node = self._root
        while key:
            best_length = 0
            best_edge = None
            for edge in sorted(node.children):
                length = _common_prefix_length(key, edge)
                if length > best_length:
                    best_length, best_edge = length, edge
                    if length == len(key):
                        break

            if best_edge is None:
                node.children[key] = _Node(value)
                return

            if best_length == len(best_edge):
                node = node.children[best_edge]
                key = key[best_length:]
                continue

            # The new key diverges inside an existing edge: split that edge.
            old_child = node.children.pop(best_edge)
            split = _Node(children={best_edge[best_length:]: old_child})
            if best_length == len(key):
                split.value = value
            else:
                split.children[key[best_length:]] = _Node(value)
            node.children[key[:best_length]] = split
            return
        node.value = value

    def search(self, key):
        """Return the value stored under ``key``, or ``None`` if absent."""
        if self._root is None:
            return None
        node = self._root
        while key:
            for edge, child in node.children.items():
                if key.startswith(edge):
                    node = child
                    key = key[len(edge):]
                    break
            else:
                return None
        return node.value if node.has_value else None

    def range_search(self, start_key, end_key, exclusive=False) -> list[tuple[Any, Any]]:
        """Return ``(key, value)`` pairs with ``start_key <= key <= end_key`` in key order.

        With ``exclusive`` set, an entry equal to ``start_key`` is left out.
        """
        if self._root is None:
            return []
        return list(self._walk(self._root, start_key[:0], start_key, end_key, exclusive))

    def _walk(self, node: _Node, prefix, start, end, exclusive) -> Iterator[tuple[Any, Any]]:
        if node.has_value and start <= prefix <= end and not (exclusive and prefix == start):
            yield prefix, node.value
        for edge in sorted(node.children):
            key = prefix + edge
            if key > end:
                return
            if key <= start and not start.startswith(key):
                continue
            yield from self._walk(node.children[edge], key, start, end, exclusive)