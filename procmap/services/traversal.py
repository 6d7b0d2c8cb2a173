"""
procmap/services/traversal.py
-----------------------------
Path guard threaded through recursive saves and relationship loads.
"""

from contextlib import contextmanager
from typing import Generator, Hashable

from procmap.config import MAX_DEPTH
from procmap.exceptions import CycleError


class Traversal:
    """
    Tracks the nodes on the current recursion path.

    Entering a node already on the path, or going deeper than
    ``max_depth``, raises CycleError. Siblings may share nodes.
    """

    def __init__(self, max_depth: int = MAX_DEPTH):
        self.max_depth = max_depth
        self._keys: set[Hashable] = set()
        self._labels: list[str] = []

    @property
    def depth(self) -> int:
        return len(self._labels)

    @contextmanager
    def visit(self, key: Hashable, label: str) -> Generator[None, None, None]:
        if key in self._keys:
            path = " -> ".join(self._labels + [label])
            raise CycleError(f"Relationship cycle detected: {path}")
        if self.depth >= self.max_depth:
            raise CycleError(f"Maximum traversal depth {self.max_depth} exceeded at {label}")
        self._keys.add(key)
        self._labels.append(label)
        try:
            yield
        finally:
            self._labels.pop()
            self._keys.discard(key)
