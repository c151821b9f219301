# nachos

Tools for little-endian MIPS object files of the kind used by a teaching
operating system. They read COFF executables, convert them to the simpler
NOFF format or to a flat memory image, disassemble them and run them on a
small MIPS interpreter. The package also holds the simple data structures
that go with the course: an integer linked list, two kinds of stack and a
fixed-size file directory table.

No third-party libraries are needed.

## Installation

```
pip install .
```

The tests need the `test` extra:

```
pip install ".[test]"
pytest
```

## Commands

Convert a COFF executable into a NOFF file. The input must be a MIPSEL COFF
file with an OMAGIC header; `.text`, `.data`/`.rdata` and `.bss`/`.sbss`
sections are handled, any other non-empty section is an error and the output
file is removed:

```
coff2noff program.coff program.noff
```

Convert a COFF executable into a flat image. Every section except `.bss` and
`.sbss` is copied one after another, then the image is extended to the
highest section end plus the stack size (1024 bytes by default), ending in a
zero word:

```
coff2flat program.coff program.flat
coff2flat --stack-size 4096 program.coff program.flat
```

Disassemble the text section of a COFF executable (default file `a.out`).
Sections are loaded at their virtual addresses, which must start at
`0x10000000`; missing sections are reported:

```
nachos-disasm program.coff
```

Run a COFF executable on the MIPS interpreter (default file `a.out`).
`-t` traces each instruction, `-r` adds a register dump to the trace and
`-T` traces system calls. The file name and any arguments after it are passed
to the program as its argv. The exit status is the program's own on its exit
system call, 1 if the file cannot be read and 2 if the machine stops on an
error:

```
nachos-run -t program.coff arg1 arg2
```

Run the stack demonstration, which pushes values onto an `ArrayStack`, a
`ListStack` and a character `ArrayStack` and prints each push and pop
(`--size` sets how many values, default 10):

```
nachos-stack-demo
```

## Library

```python
from nachos.coff import read_coff
from nachos.mips import disassemble

with open("program.coff", "rb") as handle:
    coff = read_coff(handle.read())

text = coff.find_section(".text")
code = coff.section_data(text)
print(disassemble(int.from_bytes(code[:4], "little"), text.vaddr))
```

- `nachos.coff` – `read_coff` parses a file into a `CoffFile` with
  `find_section` and `section_data`. `FileHeader`, `AoutHeader`,
  `SectionHeader` and `NoffHeader` (made of three `NoffSegment`s) each have
  `pack()` and `unpack()`. Short or wrong-magic input raises
  `CoffFormatError`.
- `nachos.mips` – instruction field helpers `rd`, `rt`, `rs`, `shamt`,
  `immed`, `off16`, `off26`, `top4` and `extend`; the `Opcode`, `Special`
  and `BranchCondition` enums; and `disassemble(instruction, pc,
  long_format)`, which renders one 32-bit word as assembly text, with the
  address and raw word first when `long_format` is true.
- `nachos.coff2noff.convert(coff_data)` and
  `nachos.coff2flat.convert(coff_data, stack_size)` – the conversions behind
  the commands, returning bytes. `coff2noff` raises `ConversionError`.
- `nachos.disasm.disassemble_text(coff)` – one disassembled line per word of
  the text section.
- `nachos.machine.Machine` – the interpreter, with `load_coff` (returns the
  names of missing sections), `setup_arguments`, `run`, `step`, `fetch`,
  `store`, `system_trap` and `dump_registers`. The exit system call raises
  `ProgramExit`, caught by `run`, which returns its status; unimplemented
  instructions, unknown system calls, division by zero and out-of-range
  addresses raise `MachineError`. `nachos.machine.ilog2` gives the number of
  significant bits of an unsigned word.
- `nachos.interpreter.parse_options` – parses the `nachos-run` command line.
- `nachos.directory.Directory` – a fixed-size table of file names (stored
  and compared on their first nine characters) and header sectors, with
  `add`, `find`, `remove`, `names`, `to_bytes` and `from_bytes`.
- `nachos.linkedlist.IntList` – a singly linked list with `prepend`,
  `remove` (raises `IndexError` when empty) and `is_empty`.
- `nachos.stack` – `ArrayStack` (bounded) and `ListStack` (unbounded), both
  `Stack`s with `push`, `pop`, `is_full`, `is_empty` and `self_test`;
  overflow and underflow raise `StackError`.

## What is not included

- The interpreter has no floating point or coprocessor instructions and no
  `swl`/`swr`. Its system calls are exit, read, write, open, close, sbreak,
  lseek, ioctl, fstat and getpagesize, mapped onto the host; close and ioctl
  only return 0.
- The `-m ROWS ASSOC LINESIZE POLICY` option of `nachos-run` is accepted and
  parsed, but no cache is simulated.
- `Directory` is only the table and its byte encoding. There is no simulated
  disk, free-sector map, file header or open-file layer, so there is no file
  system to create, read or write files in.