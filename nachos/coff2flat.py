"""Convert a MIPS COFF object file into a flat memory image."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence

from nachos.coff import OMAGIC, CoffFile, CoffFormatError, SectionHeader, read_coff

STACK_SIZE = 1024
_END_MARKER = bytes(4)
_NOT_COPIED = frozenset({".bss", ".sbss"})


def _describe_section(section: SectionHeader) -> str:
    return (
        f'\t"{section.name}", filepos {section.scnptr:#x}, '
        f"mempos {section.paddr:#x}, size {section.size:#x}"
    )


def _parse(coff_data: bytes) -> CoffFile:
    coff = read_coff(coff_data)
    if coff.aout.magic != OMAGIC:
        raise CoffFormatError("File is not a OMAGIC file")
    return coff


def _flatten(
    coff: CoffFile,
    stack_size: int,
    log: Optional[Callable[[SectionHeader], None]] = None,
) -> bytes:
    if stack_size < len(_END_MARKER):
        raise ValueError(f"stack size must be at least {len(_END_MARKER)} bytes")
    image = bytearray()
    top = 0
    for section in coff.sections:
        if log is not None:
            log(section)
        top = max(top, section.paddr + section.size)
        if section.name not in _NOT_COPIED:
            image += coff.section_data(section)
    end = top + stack_size
    if len(image) < end:
        image.extend(bytes(end - len(image)))
    image[end - len(_END_MARKER):end] = _END_MARKER
    return bytes(image)


def convert(coff_data: bytes, stack_size: int = STACK_SIZE) -> bytes:
    """Return a flat image of the COFF file, followed by room for a stack.

    Sections other than .bss and .sbss are copied one after another; the
    image ends with a zero word at the top of the stack.
    """
    return _flatten(_parse(coff_data), stack_size)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Convert a COFF file on disk into a flat file."""
    parser = argparse.ArgumentParser(
        prog="coff2flat", description="Convert a MIPS COFF file to a flat memory image."
    )
    parser.add_argument("coff_file")
    parser.add_argument("flat_file")
    parser.add_argument("--stack-size", type=int, default=STACK_SIZE)
    args = parser.parse_args(argv)

    try:
        data = Path(args.coff_file).read_bytes()
    except OSError as exc:
        print(f"{args.coff_file}: {exc.strerror}", file=sys.stderr)
        return 1

    try:
        coff = _parse(data)
        print(f"Loading {len(coff.sections)} sections:")
        image = _flatten(coff, args.stack_size, lambda s: print(_describe_section(s)))
    except ValueError as exc:
        print(exc, file=sys.stderr)
        return 1
    print(f"Adding stack of size: {args.stack_size}")

    try:
        Path(args.flat_file).write_bytes(image)
    except OSError as exc:
        print(f"{args.flat_file}: {exc.strerror}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())