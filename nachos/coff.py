"""MIPS little-endian COFF object files and the NOFF executable header."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Optional

MIPSELMAGIC = 0x0162
OMAGIC = 0o407
SOMAGIC = 0x0701
NOFFMAGIC = 0xBADFAD

_FILE_HEADER = struct.Struct("<HHIIIHH")
_AOUT_HEADER = struct.Struct("<HH8I4II")
_SECTION_HEADER = struct.Struct("<8s6IHHI")
_NOFF_HEADER = struct.Struct("<10i")

_NAME_LENGTH = 8


class CoffFormatError(ValueError):
    """Raised when an object file is malformed or of the wrong kind."""


def _unpack(layout: struct.Struct, data: bytes) -> tuple:
    if len(data) < layout.size:
        raise CoffFormatError("File is too short")
    return layout.unpack_from(data)


def _pack(layout: struct.Struct, *values) -> bytes:
    try:
        return layout.pack(*values)
    except struct.error as exc:
        raise ValueError(str(exc)) from exc


@dataclass
class FileHeader:
    """The COFF file header."""

    magic: int = MIPSELMAGIC
    nscns: int = 0
    timdat: int = 0
    symptr: int = 0
    nsyms: int = 0
    opthdr: int = _AOUT_HEADER.size
    flags: int = 0

    SIZE = _FILE_HEADER.size

    def pack(self) -> bytes:
        return _pack(
            _FILE_HEADER,
            self.magic,
            self.nscns,
            self.timdat,
            self.symptr,
            self.nsyms,
            self.opthdr,
            self.flags,
        )

    @classmethod
    def unpack(cls, data: bytes) -> "FileHeader":
        return cls(*_unpack(_FILE_HEADER, data))


@dataclass
class AoutHeader:
    """The COFF optional (a.out) header."""

    magic: int = OMAGIC
    vstamp: int = 0
    tsize: int = 0
    dsize: int = 0
    bsize: int = 0
    entry: int = 0
    text_start: int = 0
    data_start: int = 0
    bss_start: int = 0
    gprmask: int = 0
    cprmask: tuple[int, int, int, int] = (0, 0, 0, 0)
    gp_value: int = 0

    SIZE = _AOUT_HEADER.size

    def pack(self) -> bytes:
        if len(self.cprmask) != 4:
            raise ValueError("cprmask must hold exactly four masks")
        return _pack(
            _AOUT_HEADER,
            self.magic,
            self.vstamp,
            self.tsize,
            self.dsize,
            self.bsize,
            self.entry,
            self.text_start,
            self.data_start,
            self.bss_start,
            self.gprmask,
            *self.cprmask,
            self.gp_value,
        )

    @classmethod
    def unpack(cls, data: bytes) -> "AoutHeader":
        values = _unpack(_AOUT_HEADER, data)
        return cls(*values[:10], tuple(values[10:14]), values[14])


@dataclass
class SectionHeader:
    """One COFF section header."""

    name: str
    paddr: int = 0
    vaddr: int = 0
    size: int = 0
    scnptr: int = 0
    relptr: int = 0
    lnnoptr: int = 0
    nreloc: int = 0
    nlnno: int = 0
    flags: int = 0

    SIZE = _SECTION_HEADER.size

    def pack(self) -> bytes:
        raw_name = self.name.encode("latin-1")
        if len(raw_name) > _NAME_LENGTH:
            raise ValueError(f"section name {self.name!r} is longer than {_NAME_LENGTH} bytes")
        return _pack(
            _SECTION_HEADER,
            raw_name,
            self.paddr,
            self.vaddr,
            self.size,
            self.scnptr,
            self.relptr,
            self.lnnoptr,
            self.nreloc,
            self.nlnno,
            self.flags,
        )

    @classmethod
    def unpack(cls, data: bytes) -> "SectionHeader":
        raw_name, *rest = _unpack(_SECTION_HEADER, data)
        name = raw_name.split(b"\0", 1)[0].decode("latin-1")
        return cls(name, *rest)


@dataclass
class CoffFile:
    """A parsed COFF file: its headers and the raw bytes they refer to."""

    header: FileHeader
    aout: AoutHeader
    sections: list[SectionHeader]
    data: bytes

    def section_data(self, section: SectionHeader) -> bytes:
        """Return the raw contents of ``section`` from the file."""
        end = section.scnptr + section.size
        if end > len(self.data):
            raise CoffFormatError("File is too short")
        return bytes(self.data[section.scnptr:end])

    def find_section(self, name: str) -> Optional[SectionHeader]:
        """Return the first section called ``name``, or None."""
        return next((s for s in self.sections if s.name == name), None)


@dataclass
class NoffSegment:
    """Placement of one segment in the NOFF file and in virtual memory."""

    virtual_addr: int = 0
    in_file_addr: int = 0
    size: int = 0


@dataclass
class NoffHeader:
    """Header of a NOFF executable: code, initialised and uninitialised data."""

    magic: int = NOFFMAGIC
    code: NoffSegment = field(default_factory=NoffSegment)
    init_data: NoffSegment = field(default_factory=NoffSegment)
    uninit_data: NoffSegment = field(default_factory=NoffSegment)

    SIZE = _NOFF_HEADER.size

    def pack(self) -> bytes:
        values = [self.magic]
        for segment in (self.code, self.init_data, self.uninit_data):
            values += [segment.virtual_addr, segment.in_file_addr, segment.size]
        return _pack(_NOFF_HEADER, *values)

    @classmethod
    def unpack(cls, data: bytes) -> "NoffHeader":
        magic, *rest = _unpack(_NOFF_HEADER, data)
        segments = [NoffSegment(*rest[i:i + 3]) for i in range(0, 9, 3)]
        return cls(magic, *segments)


def read_coff(data: bytes) -> CoffFile:
    """Parse a MIPS little-endian COFF file from ``data``."""
    data = bytes(data)
    header = FileHeader.unpack(data)
    if header.magic != MIPSELMAGIC:
        raise CoffFormatError("File is not a MIPSEL COFF file")
    offset = FileHeader.SIZE
    aout = AoutHeader.unpack(data[offset:])
    offset += AoutHeader.SIZE
    sections = []
    for _ in range(header.nscns):
        sections.append(SectionHeader.unpack(data[offset:]))
        offset += SectionHeader.SIZE
    return CoffFile(header, aout, sections, data)