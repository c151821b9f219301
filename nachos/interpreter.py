"""Command-line driver that loads a MIPS COFF program and runs it."""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from nachos.coff import CoffFormatError, read_coff
from nachos.disasm import DEFAULT_FILE, MEMOFFSET
from nachos.machine import Machine, MachineError

PROG = "mipsi"


@dataclass
class Options:
    """Settings gathered from the command line."""

    trace: bool = False
    trap_trace: bool = False
    reg_trace: bool = False
    nrows: int = 64
    assoc: int = 1
    linesize: int = 4
    rand: bool = False
    lrd: bool = False
    filename: str = DEFAULT_FILE
    program_args: list[str] = field(default_factory=lambda: [DEFAULT_FILE])


def _atoi(text: str) -> int:
    match = re.match(r"\s*([+-]?\d+)", text)
    return int(match.group(1)) if match else 0


def parse_options(argv: Sequence[str]) -> Options:
    """Parse the flags -t, -T, -r and -m ROWS ASSOC LINESIZE POLICY."""
    args = list(argv)
    options = Options()
    while args and args[0].startswith("-"):
        flags = args.pop(0)[1:]
        for flag in flags:
            if flag == "t":
                options.trace = True
            elif flag == "T":
                options.trap_trace = True
            elif flag == "r":
                options.reg_trace = True
            elif flag == "m":
                if len(args) < 4:
                    raise ValueError("-m needs rows, associativity, line size and policy")
                rows, assoc, linesize, policy = args[:4]
                del args[:4]
                options.nrows = _atoi(rows)
                options.assoc = _atoi(assoc)
                options.linesize = _atoi(linesize)
                options.rand = policy.startswith("r")
                options.lrd = policy.startswith("lrd")
    if args:
        options.filename = args[0]
        options.program_args = args
    return options


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Load the program named on the command line and run it."""
    try:
        options = parse_options(sys.argv[1:] if argv is None else argv)
    except ValueError as exc:
        print(f"{PROG}: {exc}", file=sys.stderr)
        return 1

    try:
        data = Path(options.filename).read_bytes()
    except OSError:
        print(f"{PROG}: Could not open '{options.filename}'", file=sys.stderr)
        return 1

    try:
        coff = read_coff(data)
    except CoffFormatError as exc:
        print(f"{PROG}: Load read error on {options.filename}: {exc}", file=sys.stderr)
        return 1

    machine = Machine(
        trace=options.trace,
        trap_trace=options.trap_trace,
        reg_trace=options.reg_trace,
    )
    try:
        for name in machine.load_coff(coff):
            print(f"{name.lstrip('.')} section header missing")
        return machine.run(MEMOFFSET, options.program_args)
    except (MachineError, CoffFormatError) as exc:
        sys.stdout.flush()
        print(exc, file=sys.stderr)
        return MachineError.status


if __name__ == "__main__":
    raise SystemExit(main())