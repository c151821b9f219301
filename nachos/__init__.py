"""MIPS COFF/NOFF tools, a disassembler, an interpreter and teaching data structures."""

__version__ = "0.1.0"