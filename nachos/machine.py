"""A user-mode MIPS interpreter with a small set of host system calls."""

from __future__ import annotations

import mmap
import os
import sys
from enum import IntEnum
from typing import BinaryIO, Optional, Sequence

from nachos.coff import CoffFile
from nachos.disasm import LOADED_SECTIONS, MEMOFFSET, MEMSIZE
from nachos.mips import (
    BranchCondition,
    Opcode,
    Special,
    disassemble,
    immed,
    rd,
    rs,
    rt,
    shamt,
)

_MASK = 0xFFFFFFFF
_STACK_RESERVE = 1024
_ARGV_AREA = 32
_BREAK_UNIT = 8192

_COPROCESSOR = frozenset({
    Opcode.LWC0, Opcode.LWC1, Opcode.LWC2, Opcode.LWC3,
    Opcode.SWC0, Opcode.SWC1, Opcode.SWC2, Opcode.SWC3,
    Opcode.COP0, Opcode.COP1, Opcode.COP2, Opcode.COP3,
})


class Syscall(IntEnum):
    EXIT = 1
    READ = 3
    WRITE = 4
    OPEN = 5
    CLOSE = 6
    SBREAK = 17
    LSEEK = 19
    IOCTL = 54
    FSTAT = 62
    GETPAGESIZE = 64


class MachineError(RuntimeError):
    """Raised when the simulated program cannot go on."""

    status = 2


class ProgramExit(Exception):
    """Raised when the simulated program asks to exit."""

    def __init__(self, status: int = 0) -> None:
        super().__init__(f"program exited with status {status}")
        self.status = status


def _s32(value: int) -> int:
    value &= _MASK
    return value - (1 << 32) if value & 0x80000000 else value


def _u32(value: int) -> int:
    return value & _MASK


def _trunc_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


def ilog2(value: int) -> int:
    """Number of significant bits in ``value`` taken as an unsigned word."""
    return _u32(value).bit_length()


class Machine:
    """Registers and memory of the simulated MIPS processor."""

    def __init__(
        self,
        memory_size: int = MEMSIZE,
        trace: bool = False,
        trap_trace: bool = False,
        reg_trace: bool = False,
        stdin: Optional[BinaryIO] = None,
        stdout: Optional[BinaryIO] = None,
        stderr: Optional[BinaryIO] = None,
    ) -> None:
        if memory_size <= _STACK_RESERVE:
            raise ValueError(f"memory size must exceed {_STACK_RESERVE} bytes")
        self.memory = bytearray(memory_size)
        self.registers = [0] * 32
        self.hi = 0
        self.lo = 0
        self.pc = MEMOFFSET
        self.npc = MEMOFFSET + 4
        self.instruction_count = 0
        self.trace = trace
        self.trap_trace = trap_trace
        self.reg_trace = reg_trace
        self._streams = {
            0: stdin if stdin is not None else sys.stdin.buffer,
            1: stdout if stdout is not None else sys.stdout.buffer,
            2: stderr if stderr is not None else sys.stderr.buffer,
        }

    # memory -------------------------------------------------------------

    def _offset(self, addr: int, length: int) -> int:
        offset = _u32(addr) - MEMOFFSET
        if offset < 0 or offset + length > len(self.memory):
            raise MachineError(f"address {_u32(addr):#010x} is outside memory")
        return offset

    def _load(self, addr: int, length: int, signed: bool) -> int:
        offset = self._offset(addr, length)
        return int.from_bytes(self.memory[offset:offset + length], "little", signed=signed)

    def _put(self, addr: int, length: int, value: int) -> None:
        offset = self._offset(addr, length)
        value &= (1 << (8 * length)) - 1
        self.memory[offset:offset + length] = value.to_bytes(length, "little")

    def fetch(self, addr: int) -> int:
        """Read the signed word at ``addr``."""
        return self._load(addr, 4, signed=True)

    def store(self, addr: int, value: int) -> None:
        """Write the word ``value`` at ``addr``."""
        self._put(addr, 4, value)

    def _string_at(self, addr: int) -> bytes:
        offset = self._offset(addr, 1)
        end = self.memory.find(b"\0", offset)
        if end < 0:
            raise MachineError(f"unterminated string at {_u32(addr):#010x}")
        return bytes(self.memory[offset:end])

    def load_coff(self, coff: CoffFile) -> list[str]:
        """Copy the loadable sections into memory; return the missing ones."""
        missing = []
        for name in LOADED_SECTIONS:
            section = coff.find_section(name)
            if section is None:
                missing.append(name)
                continue
            if section.scnptr == 0:
                continue
            contents = coff.section_data(section)
            offset = section.vaddr - MEMOFFSET
            if offset < 0 or offset + len(contents) > len(self.memory):
                raise MachineError("MEMSIZE too small")
            self.memory[offset:offset + len(contents)] = contents
        return missing

    def setup_arguments(self, args: Sequence[str]) -> None:
        """Lay out argc and argv below the top of memory and point sp at them."""
        base = len(self.memory) - _STACK_RESERVE + MEMOFFSET
        self.registers[29] = _s32(base)
        self.store(base, len(args))
        pointer = base + 4
        text = pointer + _ARGV_AREA
        for arg in args:
            raw = os.fsencode(arg) + b"\0"
            offset = self._offset(text, len(raw))
            self.memory[offset:offset + len(raw)] = raw
            self.store(pointer, text)
            pointer += 4
            text += len(raw)

    # execution ----------------------------------------------------------

    def _set(self, register: int, value: int) -> None:
        self.registers[register] = _s32(value)

    def _branch(self, xpc: int, instr: int) -> None:
        self.npc = _u32(xpc + 4 + (immed(instr) << 2))

    def step(self) -> None:
        """Execute one instruction."""
        xpc = self.pc
        self.pc = self.npc
        self.npc = _u32(self.pc + 4)
        instr = _u32(self.fetch(xpc))
        self.registers[0] = 0
        self.instruction_count += 1
        if instr != 0:
            self._execute(instr, xpc)
        if self.trace:
            print(disassemble(instr, xpc))
            if self.reg_trace:
                print(self.dump_registers())

    def run(self, start_pc: int, args: Sequence[str]) -> int:
        """Run from ``start_pc`` with ``args`` as argv until the program exits."""
        self.pc = _u32(start_pc)
        self.npc = _u32(start_pc + 4)
        self.setup_arguments(args)
        try:
            while True:
                self.step()
        except ProgramExit as done:
            return done.status

    def _execute(self, instr: int, xpc: int) -> None:
        opcode = (instr >> 26) & 0x3F
        if opcode == Opcode.SPECIAL:
            self._special(instr, xpc)
        elif opcode == Opcode.BCOND:
            self._bcond(instr, xpc)
        elif opcode in _COPROCESSOR:
            raise MachineError("Sorry, no coprocessors.")
        elif opcode in (Opcode.SWL, Opcode.SWR):
            raise MachineError(f"sorry, no {Opcode(opcode).name} yet.")
        else:
            self._normal(opcode, instr, xpc)

    def _special(self, instr: int, xpc: int) -> None:
        r = self.registers
        funct = instr & 0x3F
        s, t, d = rs(instr), rt(instr), rd(instr)
        if funct == Special.SLL:
            self._set(d, r[t] << shamt(instr))
        elif funct == Special.SRL:
            self._set(d, _u32(r[t]) >> shamt(instr))
        elif funct == Special.SRA:
            self._set(d, r[t] >> shamt(instr))
        elif funct == Special.SLLV:
            self._set(d, r[t] << (r[s] & 31))
        elif funct == Special.SRLV:
            self._set(d, _u32(r[t]) >> (r[s] & 31))
        elif funct == Special.SRAV:
            self._set(d, r[t] >> (r[s] & 31))
        elif funct == Special.JR:
            self.npc = _u32(r[s])
        elif funct == Special.JALR:
            self.npc = _u32(r[s])
            self._set(d, xpc + 8)
        elif funct == Special.SYSCALL:
            self.system_trap()
        elif funct == Special.BREAK:
            if self.trap_trace:
                print("**breakpoint ", end="")
            self.system_trap()
        elif funct == Special.MFHI:
            self._set(d, self.hi)
        elif funct == Special.MTHI:
            self.hi = r[s]
        elif funct == Special.MFLO:
            self._set(d, self.lo)
        elif funct == Special.MTLO:
            self.lo = r[s]
        elif funct == Special.MULT:
            self._multiply(r[s], r[t], signed=True)
        elif funct == Special.MULTU:
            self._multiply(r[s], r[t], signed=False)
        elif funct == Special.DIV:
            self._divide(r[s], r[t])
        elif funct == Special.DIVU:
            self._divide(_u32(r[s]), _u32(r[t]))
        elif funct in (Special.ADD, Special.ADDU):
            self._set(d, r[s] + r[t])
        elif funct in (Special.SUB, Special.SUBU):
            self._set(d, r[s] - r[t])
        elif funct == Special.AND:
            self._set(d, r[s] & r[t])
        elif funct == Special.OR:
            self._set(d, r[s] | r[t])
        elif funct == Special.XOR:
            self._set(d, r[s] ^ r[t])
        elif funct == Special.NOR:
            self._set(d, ~(r[s] | r[t]))
        elif funct == Special.SLT:
            self._set(d, int(r[s] < r[t]))
        elif funct == Special.SLTU:
            self._set(d, int(_u32(r[s]) < _u32(r[t])))
        else:
            raise MachineError("Unimplemented Instruction")

    @staticmethod
    def _high_product(t1: int, t2: int) -> int:
        t1l, t1h = t1 & 0xFFFF, (t1 >> 16) & 0xFFFF
        t2l, t2h = t2 & 0xFFFF, (t2 >> 16) & 0xFFFF
        return _s32(
            _s32(t1h * t2h) + (_s32(t1h * t2l) >> 16) + (_s32(t2h * t1l) >> 16)
        )

    def _multiply(self, t1: int, t2: int, signed: bool) -> None:
        negative = False
        if signed:
            if t1 < 0:
                t1 = _s32(-t1)
                negative = not negative
            if t2 < 0:
                t2 = _s32(-t2)
                negative = not negative
        lo = _s32(t1 * t2)
        hi = self._high_product(t1, t2)
        if negative:
            lo = _s32(~lo)
            hi = _s32(~hi)
            lo = _s32(lo + 1)
            if lo == 0:
                hi = _s32(hi + 1)
        self.lo, self.hi = lo, hi

    def _divide(self, dividend: int, divisor: int) -> None:
        if divisor == 0:
            raise MachineError("Integer division by zero")
        quotient = _trunc_div(dividend, divisor)
        self.lo = _s32(quotient)
        self.hi = _s32(dividend - quotient * divisor)

    def _bcond(self, instr: int, xpc: int) -> None:
        value = self.registers[rs(instr)]
        condition = rt(instr)
        if condition in (BranchCondition.BLTZAL, BranchCondition.BGEZAL):
            self._set(31, xpc + 8)
        if condition in (BranchCondition.BLTZ, BranchCondition.BLTZAL):
            if value < 0:
                self._branch(xpc, instr)
        elif condition in (BranchCondition.BGEZ, BranchCondition.BGEZAL):
            if value >= 0:
                self._branch(xpc, instr)
        else:
            raise MachineError("Unimplemented Instruction")

    def _normal(self, opcode: int, instr: int, xpc: int) -> None:
        r = self.registers
        s, t = rs(instr), rt(instr)
        imm = immed(instr)
        addr = r[s] + imm
        if opcode in (Opcode.J, Opcode.JAL):
            if opcode == Opcode.JAL:
                self._set(31, xpc + 8)
            self.npc = (xpc & 0xF0000000) | ((instr & 0x03FFFFFF) << 2)
        elif opcode == Opcode.BEQ:
            if r[s] == r[t]:
                self._branch(xpc, instr)
        elif opcode == Opcode.BNE:
            if r[s] != r[t]:
                self._branch(xpc, instr)
        elif opcode == Opcode.BLEZ:
            if r[s] <= 0:
                self._branch(xpc, instr)
        elif opcode == Opcode.BGTZ:
            if r[s] > 0:
                self._branch(xpc, instr)
        elif opcode in (Opcode.ADDI, Opcode.ADDIU):
            self._set(t, r[s] + imm)
        elif opcode == Opcode.SLTI:
            self._set(t, int(r[s] < imm))
        elif opcode == Opcode.SLTIU:
            self._set(t, int(_u32(r[s]) < _u32(imm)))
        elif opcode == Opcode.ANDI:
            self._set(t, r[s] & imm)
        elif opcode == Opcode.ORI:
            self._set(t, r[s] | imm)
        elif opcode == Opcode.XORI:
            self._set(t, r[s] ^ imm)
        elif opcode == Opcode.LUI:
            self._set(t, instr << 16)
        elif opcode == Opcode.LB:
            self._set(t, self._load(addr, 1, signed=True))
        elif opcode == Opcode.LH:
            self._set(t, self._load(addr, 2, signed=True))
        elif opcode == Opcode.LW:
            self._set(t, self.fetch(addr))
        elif opcode == Opcode.LBU:
            self._set(t, self._load(addr, 1, signed=False))
        elif opcode == Opcode.LHU:
            self._set(t, self._load(addr, 2, signed=False))
        elif opcode == Opcode.LWL:
            word = self.fetch(_u32(addr) & 0xFFFFFFFC)
            self._set(t, r[t] | (word << (8 * (addr & 3))))
        elif opcode == Opcode.LWR:
            word = self.fetch(_u32(addr) & 0xFFFFFFFC)
            value = r[t] & (-1 << (8 * (addr & 3)))
            if addr & 3 == 0:
                value = 0
            self._set(t, value | (word >> (8 * ((-addr) & 3))))
        elif opcode == Opcode.SB:
            self._put(addr, 1, r[t])
        elif opcode == Opcode.SH:
            self._put(addr, 2, r[t])
        elif opcode == Opcode.SW:
            self.store(addr, r[t])
        else:
            raise MachineError("Unimplemented Instruction")

    # system calls -------------------------------------------------------

    def dump_registers(self) -> str:
        """Return the general registers as four lines of eight words."""
        rows = []
        for base in range(0, 32, 8):
            words = " ".join(f"{_u32(v):08x}" for v in self.registers[base:base + 8])
            rows.append(f"{base:2d}: {words}")
        return "\n".join(rows)

    def _read(self, fd: int, addr: int, count: int) -> int:
        if count < 0:
            return -1
        offset = self._offset(addr, count)
        try:
            stream = self._streams.get(fd)
            if stream is not None:
                reader = getattr(stream, "read1", stream.read)
                data = reader(count)
            else:
                data = os.read(fd, count)
        except OSError:
            return -1
        self.memory[offset:offset + len(data)] = data
        return len(data)

    def _write(self, fd: int, addr: int, count: int) -> int:
        if count < 0:
            return -1
        offset = self._offset(addr, count)
        data = bytes(self.memory[offset:offset + count])
        try:
            stream = self._streams.get(fd)
            if stream is None:
                return os.write(fd, data)
            sys.stdout.flush()
            written = stream.write(data)
            stream.flush()
        except OSError:
            return -1
        return len(data) if written is None else written

    def _lseek(self, fd: int, position: int, whence: int) -> int:
        try:
            stream = self._streams.get(fd)
            if stream is not None:
                return stream.seek(position, whence)
            return os.lseek(fd, position, whence)
        except (OSError, ValueError):
            return -1

    def _open(self, addr: int, flags: int, mode: int) -> int:
        try:
            return os.open(os.fsdecode(self._string_at(addr)), flags, mode)
        except OSError:
            return -1

    def system_trap(self) -> None:
        """Carry out the system call whose number is in r2."""
        r = self.registers
        if self.trap_trace:
            print(f"**System call {r[2]}")
            print(self.dump_registers())
        number, o0, o1, o2 = r[2], r[4], r[5], r[6]

        if number == Syscall.EXIT:
            sys.stdout.flush()
            raise ProgramExit(0)
        if number == Syscall.READ:
            self._set(1, self._read(o0, o1, o2))
        elif number == Syscall.WRITE:
            self._set(1, self._write(o0, o1, o2))
        elif number == Syscall.OPEN:
            self._set(1, self._open(o0, o1, o2))
        elif number in (Syscall.CLOSE, Syscall.IOCTL):
            self._set(1, 0)
        elif number == Syscall.SBREAK:
            self._set(1, (_trunc_div(o0, _BREAK_UNIT) + 1) * _BREAK_UNIT)
        elif number == Syscall.LSEEK:
            self._set(1, self._lseek(o0, o1, o2))
        elif number == Syscall.FSTAT:
            try:
                os.fstat(o1)
                self._set(1, 0)
            except OSError:
                self._set(1, -1)
        elif number == Syscall.GETPAGESIZE:
            self._set(1, mmap.PAGESIZE)
        else:
            if not self.trap_trace:
                print(self.dump_registers())
            raise MachineError(f"Unknown System call {number}")

        if self.trap_trace:
            print("**Afterwards:")
            print(self.dump_registers())