"""A singly linked list of integers, used as the backing store of a stack."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional


@dataclass
class _Node:
    item: int
    next: Optional["_Node"] = None


class IntList:
    """Singly linked list of integers with insertion and removal at the front."""

    def __init__(self) -> None:
        self._first: Optional[_Node] = None
        self._length = 0

    def prepend(self, value: int) -> None:
        """Put ``value`` at the front of the list."""
        self._first = _Node(value, self._first)
        self._length += 1

    def remove(self) -> int:
        """Take the first item off the list and return it."""
        if self._first is None:
            raise IndexError("remove from empty list")
        node = self._first
        self._first = node.next
        self._length -= 1
        return node.item

    def is_empty(self) -> bool:
        """Return True if the list holds no items."""
        return self._first is None

    def __len__(self) -> int:
        return self._length

    def __bool__(self) -> bool:
        return self._first is not None

    def __iter__(self) -> Iterator[int]:
        node = self._first
        while node is not None:
            yield node.item
            node = node.next

    def __repr__(self) -> str:
        return f"IntList({list(self)!r})"