"""Disassemble the text section of a MIPS COFF file."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional, Sequence

from nachos.coff import CoffFile, CoffFormatError, read_coff
from nachos.mips import disassemble

MEMSIZE = 1 << 24
MEMOFFSET = 0x10000000
DEFAULT_FILE = "a.out"
LOADED_SECTIONS = (".text", ".rdata", ".data", ".sdata", ".sbss", ".bss")
_WORD = 4


def _load_memory(coff: CoffFile) -> bytearray:
    memory = bytearray()
    for name in LOADED_SECTIONS:
        section = coff.find_section(name)
        if section is None or section.scnptr == 0:
            continue
        start = section.vaddr - MEMOFFSET
        end = start + section.size
        if start < 0:
            raise CoffFormatError(f"section {name} lies below {MEMOFFSET:#x}")
        if end > MEMSIZE:
            raise CoffFormatError("MEMSIZE too small")
        if len(memory) < end:
            memory.extend(bytes(end - len(memory)))
        memory[start:end] = coff.section_data(section)
    return memory


def disassemble_text(coff: CoffFile) -> list[str]:
    """Return one line per word of the text section, starting at MEMOFFSET."""
    text = coff.find_section(".text")
    size = text.size if text is not None else 0
    memory = _load_memory(coff)
    lines = []
    for offset in range(0, size, _WORD):
        raw = bytes(memory[offset:offset + _WORD]).ljust(_WORD, b"\0")
        lines.append(disassemble(int.from_bytes(raw, "little"), MEMOFFSET + offset))
    return lines


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Print the disassembly of a COFF file (default ``a.out``)."""
    args = list(sys.argv[1:] if argv is None else argv)
    while args and args[0].startswith("-"):
        args.pop(0)
    filename = args[0] if args else DEFAULT_FILE

    try:
        data = Path(filename).read_bytes()
    except OSError:
        print(f"disasm: Could not open '{filename}'", file=sys.stderr)
        return 1

    try:
        coff = read_coff(data)
        for name in LOADED_SECTIONS:
            if coff.find_section(name) is None:
                print(f"{name.lstrip('.')} section header missing")
        lines = disassemble_text(coff)
    except CoffFormatError as exc:
        print(f"disasm: Load read error on {filename}: {exc}", file=sys.stderr)
        return 1

    for line in lines:
        print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())