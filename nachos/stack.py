"""Last-in, first-out stacks: a bounded array stack and an unbounded list stack."""

from __future__ import annotations

import argparse
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from nachos.linkedlist import IntList


class StackError(IndexError):
    """Raised on pushing onto a full stack or popping an empty one."""


def _successor(value: Any) -> Any:
    if isinstance(value, str):
        return chr(ord(value) + 1)
    return value + 1


class Stack(ABC):
    """Common interface of every stack, with a shared self test."""

    @abstractmethod
    def push(self, value: Any) -> None:
        """Put ``value`` on top of the stack."""

    @abstractmethod
    def pop(self) -> Any:
        """Remove the top value and return it."""

    @abstractmethod
    def is_full(self) -> bool:
        """Return True if no more values fit."""

    @abstractmethod
    def is_empty(self) -> bool:
        """Return True if the stack holds nothing."""

    def self_test(self, num_to_push: Optional[int] = None, start: Any = 17) -> list[str]:
        """Push successive values from ``start``, then pop them all.

        Pushes ``num_to_push`` values, or until the stack is full when it is
        None.  Returns the lines describing each push and pop.
        """
        if num_to_push is None and not self._bounded():
            raise ValueError("an unbounded stack needs a number of values to push")
        lines = []
        count = start
        pushed = 0
        while (not self.is_full()) if num_to_push is None else pushed < num_to_push:
            if self.is_full():
                raise StackError("stack overflow")
            lines.append(f"pushing {count}")
            self.push(count)
            count = _successor(count)
            pushed += 1
        while not self.is_empty():
            lines.append(f"popping {self.pop()}")
        return lines

    def _bounded(self) -> bool:
        return True


class ArrayStack(Stack):
    """A stack of fixed capacity."""

    def __init__(self, size: int) -> None:
        if size < 1:
            raise ValueError("stack size must be at least 1")
        self.size = size
        self._items: list[Any] = []

    def push(self, value: Any) -> None:
        if self.is_full():
            raise StackError("push onto a full stack")
        self._items.append(value)

    def pop(self) -> Any:
        if self.is_empty():
            raise StackError("pop from an empty stack")
        return self._items.pop()

    def is_full(self) -> bool:
        return len(self._items) == self.size

    def is_empty(self) -> bool:
        return not self._items

    def __len__(self) -> int:
        return len(self._items)


class ListStack(Stack):
    """A stack kept in a linked list; it never fills up."""

    def __init__(self) -> None:
        self._items = IntList()

    def push(self, value: Any) -> None:
        self._items.prepend(value)

    def pop(self) -> Any:
        if self.is_empty():
            raise StackError("pop from an empty stack")
        return self._items.remove()

    def is_full(self) -> bool:
        return False

    def is_empty(self) -> bool:
        return self._items.is_empty()

    def __len__(self) -> int:
        return len(self._items)

    def _bounded(self) -> bool:
        return False


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the self test on each kind of stack."""
    parser = argparse.ArgumentParser(description="Exercise the stack implementations.")
    parser.add_argument("--size", type=int, default=10, help="values to push on each stack")
    args = parser.parse_args(argv)
    if args.size < 1:
        parser.error("--size must be at least 1")

    runs = [
        ("Testing ArrayStack", ArrayStack(args.size), args.size, 17),
        ("Testing ListStack", ListStack(), args.size, 17),
        ("Testing character ArrayStack", ArrayStack(args.size), None, "a"),
    ]
    for title, stack, count, start in runs:
        print(title)
        for line in stack.self_test(count, start):
            print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())