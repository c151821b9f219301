"""Convert a MIPS COFF object file into a NOFF executable."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence

from nachos.coff import (
    OMAGIC,
    CoffFile,
    CoffFormatError,
    NoffHeader,
    NoffSegment,
    SectionHeader,
    read_coff,
)

_TEXT = ".text"
_INIT_DATA = frozenset({".data", ".rdata"})
_UNINIT_DATA = frozenset({".bss", ".sbss"})


class ConversionError(CoffFormatError):
    """Raised when a COFF file cannot be turned into a NOFF file."""


def _as_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def _describe_section(section: SectionHeader) -> str:
    return (
        f'\t"{section.name}", filepos {section.scnptr:#x}, '
        f"mempos {section.paddr:#x}, size {section.size:#x}"
    )


def _parse(coff_data: bytes) -> CoffFile:
    try:
        coff = read_coff(coff_data)
    except CoffFormatError as exc:
        raise ConversionError(str(exc)) from exc
    if coff.aout.magic != OMAGIC:
        raise ConversionError("File is not a OMAGIC file")
    return coff


def _contents(coff: CoffFile, section: SectionHeader) -> bytes:
    try:
        return coff.section_data(section)
    except CoffFormatError as exc:
        raise ConversionError(str(exc)) from exc


def _segment(section: SectionHeader, in_file_addr: int) -> NoffSegment:
    return NoffSegment(_as_int32(section.paddr), in_file_addr, _as_int32(section.size))


def _build(coff: CoffFile, log: Optional[Callable[[SectionHeader], None]] = None) -> bytes:
    header = NoffHeader()
    body = bytearray()
    for section in coff.sections:
        if log is not None:
            log(section)
        if section.size == 0:
            continue
        name = section.name
        if name == _TEXT:
            header.code = _segment(section, NoffHeader.SIZE + len(body))
            body += _contents(coff, section)
        elif name in _INIT_DATA:
            if header.init_data.size != 0:
                raise ConversionError("Can't handle both data and rdata")
            header.init_data = _segment(section, NoffHeader.SIZE + len(body))
            body += _contents(coff, section)
        elif name in _UNINIT_DATA:
            bss = header.uninit_data
            if bss.size != 0:
                if _as_int32(section.paddr) == bss.virtual_addr + bss.size:
                    raise ConversionError("Can't handle both bss and sbss")
                bss.size += _as_int32(section.size)
            else:
                header.uninit_data = _segment(section, 0)
        else:
            raise ConversionError(f"Unknown segment type: {name}")
    return header.pack() + bytes(body)


def convert(coff_data: bytes) -> bytes:
    """Return the NOFF file built from the COFF file in ``coff_data``."""
    return _build(_parse(coff_data))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Convert a COFF file on disk into a NOFF file."""
    parser = argparse.ArgumentParser(
        prog="coff2noff", description="Convert a MIPS COFF file to NOFF format."
    )
    parser.add_argument("coff_file")
    parser.add_argument("noff_file")
    args = parser.parse_args(argv)

    try:
        data = Path(args.coff_file).read_bytes()
    except OSError as exc:
        print(f"{args.coff_file}: {exc.strerror}", file=sys.stderr)
        return 1

    output = Path(args.noff_file)
    try:
        coff = _parse(data)
        print(f"numsections {len(coff.sections)} ")
        print(f"Loading {len(coff.sections)} sections:")
        noff = _build(coff, lambda section: print(_describe_section(section)))
    except ConversionError as exc:
        print(exc, file=sys.stderr)
        output.unlink(missing_ok=True)
        return 1

    try:
        output.write_bytes(noff)
    except OSError as exc:
        print(f"{args.noff_file}: {exc.strerror}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())