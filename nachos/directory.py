"""A fixed-size directory table mapping file names to header sectors."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Iterator, Optional

FILE_NAME_MAX_LEN = 9

# in_use flag padded to a word, the sector number, then the name with its
# terminating NUL, padded to a word boundary.
_ENTRY = struct.Struct(f"<?3xi{FILE_NAME_MAX_LEN + 1}s2x")
ENTRY_SIZE = _ENTRY.size


def _key(name: str) -> str:
    """The part of ``name`` that is stored and compared."""
    raw = name.encode("latin-1").split(b"\0", 1)[0]
    return raw[:FILE_NAME_MAX_LEN].decode("latin-1")


@dataclass
class DirectoryEntry:
    """One slot of the directory: a file name and where its header lives."""

    in_use: bool = False
    sector: int = 0
    name: str = ""

    def pack(self) -> bytes:
        raw_name = self.name.encode("latin-1")[:FILE_NAME_MAX_LEN]
        try:
            return _ENTRY.pack(self.in_use, self.sector, raw_name)
        except struct.error as exc:
            raise ValueError(str(exc)) from exc

    @classmethod
    def unpack(cls, data: bytes) -> "DirectoryEntry":
        in_use, sector, raw_name = _ENTRY.unpack_from(data)
        name = raw_name.split(b"\0", 1)[0].decode("latin-1")
        return cls(in_use, sector, name)


class Directory:
    """A table of ``size`` entries; it never grows once created."""

    def __init__(self, size: int) -> None:
        if size < 0:
            raise ValueError("directory size must not be negative")
        self._table = [DirectoryEntry() for _ in range(size)]

    @property
    def capacity(self) -> int:
        """Number of slots in the table."""
        return len(self._table)

    def _find_index(self, name: str) -> Optional[int]:
        key = _key(name)
        return next(
            (i for i, entry in enumerate(self._table) if entry.in_use and entry.name == key),
            None,
        )

    def find(self, name: str) -> Optional[int]:
        """Return the header sector of file ``name``, or None if absent."""
        index = self._find_index(name)
        return None if index is None else self._table[index].sector

    def add(self, name: str, sector: int) -> bool:
        """Add ``name`` at ``sector``; False if it exists or the table is full."""
        if self._find_index(name) is not None:
            return False
        for entry in self._table:
            if not entry.in_use:
                entry.in_use = True
                entry.name = _key(name)
                entry.sector = sector
                return True
        return False

    def remove(self, name: str) -> bool:
        """Remove ``name``; False if it is not in the directory."""
        index = self._find_index(name)
        if index is None:
            return False
        self._table[index].in_use = False
        return True

    def names(self) -> list[str]:
        """Names of all files, in table order."""
        return [entry.name for entry in self._table if entry.in_use]

    def __iter__(self) -> Iterator[DirectoryEntry]:
        return (entry for entry in self._table if entry.in_use)

    def __len__(self) -> int:
        return sum(1 for entry in self._table if entry.in_use)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._find_index(name) is not None

    def to_bytes(self) -> bytes:
        """Encode the whole table as it is stored on disk."""
        return b"".join(entry.pack() for entry in self._table)

    @classmethod
    def from_bytes(cls, data: bytes, size: int) -> "Directory":
        """Decode a table of ``size`` entries from ``data``."""
        needed = size * ENTRY_SIZE
        if size < 0:
            raise ValueError("directory size must not be negative")
        if len(data) < needed:
            raise ValueError(f"directory data is {len(data)} bytes, need {needed}")
        directory = cls(size)
        directory._table = [
            DirectoryEntry.unpack(data[offset:offset + ENTRY_SIZE])
            for offset in range(0, needed, ENTRY_SIZE)
        ]
        return directory