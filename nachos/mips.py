"""MIPS instruction fields, opcode tables and a one-line disassembler."""

from __future__ import annotations

from enum import IntEnum

_WORD_MASK = 0xFFFFFFFF


class Opcode(IntEnum):
    SPECIAL = 0o00
    BCOND = 0o01
    J = 0o02
    JAL = 0o03
    BEQ = 0o04
    BNE = 0o05
    BLEZ = 0o06
    BGTZ = 0o07
    ADDI = 0o10
    ADDIU = 0o11
    SLTI = 0o12
    SLTIU = 0o13
    ANDI = 0o14
    ORI = 0o15
    XORI = 0o16
    LUI = 0o17
    COP0 = 0o20
    COP1 = 0o21
    COP2 = 0o22
    COP3 = 0o23
    LB = 0o40
    LH = 0o41
    LWL = 0o42
    LW = 0o43
    LBU = 0o44
    LHU = 0o45
    LWR = 0o46
    SB = 0o50
    SH = 0o51
    SWL = 0o52
    SW = 0o53
    SWR = 0o56
    LWC0 = 0o60
    LWC1 = 0o61
    LWC2 = 0o62
    LWC3 = 0o63
    SWC0 = 0o70
    SWC1 = 0o71
    SWC2 = 0o72
    SWC3 = 0o73


class Special(IntEnum):
    SLL = 0o00
    SRL = 0o02
    SRA = 0o03
    SLLV = 0o04
    SRLV = 0o06
    SRAV = 0o07
    JR = 0o10
    JALR = 0o11
    SYSCALL = 0o14
    BREAK = 0o15
    MFHI = 0o20
    MTHI = 0o21
    MFLO = 0o22
    MTLO = 0o23
    MULT = 0o30
    MULTU = 0o31
    DIV = 0o32
    DIVU = 0o33
    ADD = 0o40
    ADDU = 0o41
    SUB = 0o42
    SUBU = 0o43
    AND = 0o44
    OR = 0o45
    XOR = 0o46
    NOR = 0o47
    SLT = 0o52
    SLTU = 0o53


class BranchCondition(IntEnum):
    BLTZ = 0o00
    BGEZ = 0o01
    BLTZAL = 0o20
    BGEZAL = 0o21


NOP = 0

REGISTER_NAMES = (
    "0", "r1", "r2", "r3", "r4", "r5", "r6", "r7", "r8", "r9",
    "r10", "r11", "r12", "r13", "r14", "r15", "r16", "r17", "r18", "r19",
    "r20", "r21", "r22", "r23", "r24", "r25", "r26", "r27", "gp", "sp",
    "r30", "r31",
)

NORMAL_OPS = (
    "special", "bcond", "j", "jal", "beq", "bne", "blez", "bgtz",
    "addi", "addiu", "slti", "sltiu", "andi", "ori", "xori", "lui",
    "cop0", "cop1", "cop2", "cop3", "024", "025", "026", "027",
    "030", "031", "032", "033", "034", "035", "036", "037",
    "lb", "lh", "lwl", "lw", "lbu", "lhu", "lwr", "047",
    "sb", "sh", "swl", "sw", "054", "055", "swr", "057",
    "lwc0", "lwc1", "lwc2", "lwc3", "064", "065", "066", "067",
    "swc0", "swc1", "swc2", "swc3", "074", "075", "076", "077",
)

SPECIAL_OPS = (
    "sll", "001", "srl", "sra", "sllv", "005", "srlv", "srav",
    "jr", "jalr", "012", "013", "syscall", "break", "016", "017",
    "mfhi", "mthi", "mflo", "mtlo", "024", "025", "026", "027",
    "mult", "multu", "div", "divu", "034", "035", "036", "037",
    "add", "addu", "sub", "subu", "and", "or", "xor", "nor",
    "050", "051", "slt", "sltu", "054", "055", "056", "057",
    "060", "061", "062", "063", "064", "065", "066", "067",
    "070", "071", "072", "073", "074", "075", "076", "077",
)

_BCOND_NAMES = {
    BranchCondition.BLTZ: "bltz",
    BranchCondition.BGEZ: "bgez",
    BranchCondition.BLTZAL: "bltzal",
    BranchCondition.BGEZAL: "bgezal",
}

_SHIFT_IMMEDIATE = frozenset({Special.SLL, Special.SRL, Special.SRA})
_SHIFT_VARIABLE = frozenset({Special.SLLV, Special.SRLV, Special.SRAV})
_RS_ONLY = frozenset({Special.JR, Special.JALR, Special.MFLO, Special.MTLO})
_RD_ONLY = frozenset({Special.MFHI, Special.MTHI})
_RS_RT = frozenset({Special.MULT, Special.MULTU, Special.DIV, Special.DIVU})
_THREE_REGISTER = frozenset({
    Special.ADD, Special.ADDU, Special.SUB, Special.SUBU, Special.AND,
    Special.OR, Special.XOR, Special.NOR, Special.SLT, Special.SLTU,
})

_JUMPS = frozenset({Opcode.J, Opcode.JAL})
_COMPARE_BRANCHES = frozenset({Opcode.BEQ, Opcode.BNE})
_ALU_IMMEDIATE = frozenset({
    Opcode.ADDI, Opcode.ADDIU, Opcode.SLTI, Opcode.SLTIU,
    Opcode.ANDI, Opcode.ORI, Opcode.XORI,
})
_MEMORY = frozenset({
    Opcode.LB, Opcode.LH, Opcode.LWL, Opcode.LW, Opcode.LBU, Opcode.LHU,
    Opcode.LWR, Opcode.SB, Opcode.SH, Opcode.SWL, Opcode.SW, Opcode.SWR,
    Opcode.LWC0, Opcode.LWC1, Opcode.LWC2, Opcode.LWC3,
    Opcode.SWC0, Opcode.SWC1, Opcode.SWC2, Opcode.SWC3,
})


def rd(instruction: int) -> int:
    """Destination register field."""
    return (instruction >> 11) & 0x1F


def rt(instruction: int) -> int:
    """Target register field."""
    return (instruction >> 16) & 0x1F


def rs(instruction: int) -> int:
    """Source register field."""
    return (instruction >> 21) & 0x1F


def shamt(instruction: int) -> int:
    """Shift amount field."""
    return (instruction >> 6) & 0x1F


def immed(instruction: int) -> int:
    """The 16-bit immediate field, sign-extended."""
    if instruction & 0x8000:
        return (instruction & 0x7FFF) - 0x8000
    return instruction & 0x7FFF


def off26(instruction: int) -> int:
    """The 26-bit jump target field, scaled to a byte offset."""
    return (instruction & ((1 << 26) - 1)) << 2


def top4(value: int) -> int:
    """The top four bits of a 32-bit address."""
    return value & (_WORD_MASK & ~((1 << 28) - 1))


def off16(instruction: int) -> int:
    """The signed 16-bit branch offset, scaled to bytes."""
    return immed(instruction) << 2


def extend(value: int, hibitmask: int) -> int:
    """Sign-extend ``value`` whose sign bit is ``hibitmask``."""
    return value | -hibitmask if value & hibitmask else value


def _word(value: int, what: str) -> int:
    if not -(1 << 31) <= value <= _WORD_MASK:
        raise ValueError(f"{what} {value:#x} does not fit in 32 bits")
    return value & _WORD_MASK


def _reg(number: int) -> str:
    return REGISTER_NAMES[number]


def _hex8(value: int) -> str:
    return f"{value & _WORD_MASK:08x}"


def _hex(value: int) -> str:
    return f"0x{value & _WORD_MASK:x}"


def _special_operands(funct: int, word: int) -> str:
    if funct in _SHIFT_IMMEDIATE:
        return f"{_reg(rd(word))},{_reg(rt(word))},{_hex(shamt(word))}"
    if funct in _SHIFT_VARIABLE:
        return f"{_reg(rd(word))},{_reg(rt(word))},{_reg(rs(word))}"
    if funct in _RS_ONLY:
        return _reg(rs(word))
    if funct in _RD_ONLY:
        return _reg(rd(word))
    if funct in _RS_RT:
        return f"{_reg(rs(word))},{_reg(rt(word))}"
    if funct in _THREE_REGISTER:
        return f"{_reg(rd(word))},{_reg(rs(word))},{_reg(rt(word))}"
    return ""


def _normal_operands(opcode: int, word: int, pc: int) -> str:
    if opcode in _JUMPS:
        return _hex8(top4(pc) | off26(word))
    if opcode in _COMPARE_BRANCHES:
        return f"{_reg(rt(word))},{_reg(rs(word))},{_hex8(off16(word) + pc + 4)}"
    if opcode in _ALU_IMMEDIATE:
        return f"{_reg(rt(word))},{_reg(rs(word))},{_hex(immed(word))}"
    if opcode == Opcode.LUI:
        return f"{_reg(rt(word))},{_hex(immed(word))}"
    if opcode in _MEMORY:
        return f"{_reg(rt(word))},{_hex(immed(word))}({_reg(rs(word))})"
    return ""


def _body(word: int, pc: int) -> str:
    opcode = word >> 26
    if word == NOP:
        return "nop"
    if opcode == Opcode.SPECIAL:
        funct = word & 0x3F
        return f"{SPECIAL_OPS[funct]}\t{_special_operands(funct, word)}"
    if opcode == Opcode.BCOND:
        name = _BCOND_NAMES.get(rt(word), "BCOND")
        return f"{name}\t{_reg(rs(word))},{_hex8(off16(word) + pc + 4)}"
    return f"{NORMAL_OPS[opcode]}\t{_normal_operands(opcode, word, pc)}"


def disassemble(instruction: int, pc: int = 0, long_format: bool = True) -> str:
    """Render one instruction at address ``pc`` as assembly text.

    With ``long_format`` the address and raw word come first.
    """
    word = _word(instruction, "instruction")
    prefix = f"{_hex8(pc)}: {word:08x}  " if long_format else ""
    return f"{prefix}\t{_body(word, pc)}"