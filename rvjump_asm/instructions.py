"""
RISC-V instruction definitions.

This module defines all supported instructions with their opcodes, funct3, funct7,
format types and the ISA they belong to. Every instruction encodes to a single
32-bit word.
"""

from dataclasses import dataclass
from typing import Optional
from enum import Enum, auto

# Every encoded instruction occupies one 32-bit little-endian word
INSTRUCTION_WIDTH = 4

AMO_OPCODE = 0x2F

# fmt field of floating-point instructions
FMT_S = 0b00
FMT_D = 0b01

# Rounding modes accepted as an optional last operand; DYN is the default
ROUNDING_MODES = {
    "rne": 0b000,
    "rtz": 0b001,
    "rdn": 0b010,
    "rup": 0b011,
    "rmm": 0b100,
    "dyn": 0b111,
}


class InstructionFormat(Enum):
    """RISC-V instruction format types."""

    R = auto()  # Register-register operations
    I = auto()  # Immediate operations
    S = auto()  # Store operations
    B = auto()  # Branch operations
    U = auto()  # Upper immediate operations
    J = auto()  # Jump operations
    R4 = auto()  # Fused multiply-add operations


@dataclass(frozen=True)
class Instruction:
    """
    Definition of a RISC-V instruction.

    Attributes:
        opcode: 7-bit opcode field
        format: Instruction format type
        funct3: 3-bit function field (None if not applicable)
        funct7: 7-bit function field (None if not applicable)
        isa: Base ISA or extension the instruction belongs to
        rs2: Fixed rs2 field for single-source floating-point operations
        regs: Register file of each written operand, "f" for floating-point
            and "x" for integer; positions past the end are integer
    """

    opcode: int
    format: InstructionFormat
    funct3: Optional[int] = None
    funct7: Optional[int] = None
    isa: str = "RV32I"
    rs2: Optional[int] = None
    regs: str = ""

    @property
    def xlen(self) -> Optional[int]:
        """Lowest register width the instruction exists for (None if xlen-agnostic)."""
        if self.isa.startswith("RV64"):
            return 64
        if self.isa.startswith("RV32"):
            return 32
        return None

    def register_file(self, position: int) -> str:
        """Register file ("x" or "f") of the operand at a position."""
        return self.regs[position] if position < len(self.regs) else "x"


def _r(funct3, funct7, opcode=0x33, isa="RV32I"):
    return Instruction(opcode=opcode, format=InstructionFormat.R, funct3=funct3, funct7=funct7, isa=isa)


def _i(opcode, funct3, funct7=None, isa="RV32I", regs=""):
    return Instruction(opcode=opcode, format=InstructionFormat.I, funct3=funct3, funct7=funct7, isa=isa, regs=regs)


def _amo(funct5, funct3, isa):
    # aq and rl occupy the low two bits of funct7 and are set per use
    return Instruction(opcode=AMO_OPCODE, format=InstructionFormat.R, funct3=funct3, funct7=funct5 << 2, isa=isa)


def _fp(funct5, fmt, funct3=None, rs2=None, regs="fff", isa="RV32F"):
    # funct3 of None means the field carries a rounding mode
    return Instruction(
        opcode=0x53, format=InstructionFormat.R, funct3=funct3, funct7=(funct5 << 2) | fmt,
        isa=isa, rs2=rs2, regs=regs,
    )


def _fma(opcode, fmt, isa):
    return Instruction(opcode=opcode, format=InstructionFormat.R4, funct7=fmt, isa=isa, regs="ffff")


# =============================================================================
# Instruction table
# =============================================================================

INSTRUCTIONS = {
    # -------------------------------------------------------------------------
    # R-Type (Register-Register) - Opcode: 0x33
    # -------------------------------------------------------------------------
    "add": _r(0b000, 0x00),
    "sub": _r(0b000, 0x20),
    "sll": _r(0b001, 0x00),
    "slt": _r(0b010, 0x00),
    "sltu": _r(0b011, 0x00),
    "xor": _r(0b100, 0x00),
    "srl": _r(0b101, 0x00),
    "sra": _r(0b101, 0x20),
    "or": _r(0b110, 0x00),
    "and": _r(0b111, 0x00),
    # -------------------------------------------------------------------------
    # I-Type (Immediate) - Opcode: 0x13
    # -------------------------------------------------------------------------
    "addi": _i(0x13, 0b000),
    "slti": _i(0x13, 0b010),
    "sltiu": _i(0x13, 0b011),
    "xori": _i(0x13, 0b100),
    "ori": _i(0x13, 0b110),
    "andi": _i(0x13, 0b111),
    # Shift immediates carry funct7 in the upper immediate bits
    "slli": _i(0x13, 0b001, 0x00),
    "srli": _i(0x13, 0b101, 0x00),
    "srai": _i(0x13, 0b101, 0x20),
    # -------------------------------------------------------------------------
    # Loads (I-Type) - Opcode: 0x03
    # -------------------------------------------------------------------------
    "lb": _i(0x03, 0b000),
    "lh": _i(0x03, 0b001),
    "lw": _i(0x03, 0b010),
    "lbu": _i(0x03, 0b100),
    "lhu": _i(0x03, 0b101),
    # -------------------------------------------------------------------------
    # Stores (S-Type) - Opcode: 0x23
    # -------------------------------------------------------------------------
    "sb": Instruction(opcode=0x23, format=InstructionFormat.S, funct3=0b000),
    "sh": Instruction(opcode=0x23, format=InstructionFormat.S, funct3=0b001),
    "sw": Instruction(opcode=0x23, format=InstructionFormat.S, funct3=0b010),
    # -------------------------------------------------------------------------
    # Branches (B-Type) - Opcode: 0x63
    # -------------------------------------------------------------------------
    "beq": Instruction(opcode=0x63, format=InstructionFormat.B, funct3=0b000),
    "bne": Instruction(opcode=0x63, format=InstructionFormat.B, funct3=0b001),
    "blt": Instruction(opcode=0x63, format=InstructionFormat.B, funct3=0b100),
    "bge": Instruction(opcode=0x63, format=InstructionFormat.B, funct3=0b101),
    "bltu": Instruction(opcode=0x63, format=InstructionFormat.B, funct3=0b110),
    "bgeu": Instruction(opcode=0x63, format=InstructionFormat.B, funct3=0b111),
    # -------------------------------------------------------------------------
    # Jumps
    # -------------------------------------------------------------------------
    "jal": Instruction(opcode=0x6F, format=InstructionFormat.J),
    "jalr": _i(0x67, 0b000),
    # -------------------------------------------------------------------------
    # Upper immediates (U-Type)
    # -------------------------------------------------------------------------
    "lui": Instruction(opcode=0x37, format=InstructionFormat.U),
    "auipc": Instruction(opcode=0x17, format=InstructionFormat.U),
    # -------------------------------------------------------------------------
    # System - Opcode: 0x73
    # -------------------------------------------------------------------------
    "ecall": _i(0x73, 0b000),
    "ebreak": _i(0x73, 0b000),
    # -------------------------------------------------------------------------
    # Memory ordering - Opcode: 0x0F
    # -------------------------------------------------------------------------
    "fence": _i(0x0F, 0b000),
    "fence.i": _i(0x0F, 0b001, isa="Zifencei"),
    # -------------------------------------------------------------------------
    # Zicsr - Opcode: 0x73
    # -------------------------------------------------------------------------
    "csrrw": _i(0x73, 0b001, isa="Zicsr"),
    "csrrs": _i(0x73, 0b010, isa="Zicsr"),
    "csrrc": _i(0x73, 0b011, isa="Zicsr"),
    "csrrwi": _i(0x73, 0b101, isa="Zicsr"),
    "csrrsi": _i(0x73, 0b110, isa="Zicsr"),
    "csrrci": _i(0x73, 0b111, isa="Zicsr"),
    # -------------------------------------------------------------------------
    # M extension - Opcode: 0x33, funct7: 0x01
    # -------------------------------------------------------------------------
    "mul": _r(0b000, 0x01, isa="RV32M"),
    "mulh": _r(0b001, 0x01, isa="RV32M"),
    "mulhsu": _r(0b010, 0x01, isa="RV32M"),
    "mulhu": _r(0b011, 0x01, isa="RV32M"),
    "div": _r(0b100, 0x01, isa="RV32M"),
    "divu": _r(0b101, 0x01, isa="RV32M"),
    "rem": _r(0b110, 0x01, isa="RV32M"),
    "remu": _r(0b111, 0x01, isa="RV32M"),
    # -------------------------------------------------------------------------
    # RV64I additions
    # -------------------------------------------------------------------------
    "lwu": _i(0x03, 0b110, isa="RV64I"),
    "ld": _i(0x03, 0b011, isa="RV64I"),
    "sd": Instruction(opcode=0x23, format=InstructionFormat.S, funct3=0b011, isa="RV64I"),
    "addiw": _i(0x1B, 0b000, isa="RV64I"),
    "slliw": _i(0x1B, 0b001, 0x00, isa="RV64I"),
    "srliw": _i(0x1B, 0b101, 0x00, isa="RV64I"),
    "sraiw": _i(0x1B, 0b101, 0x20, isa="RV64I"),
    "addw": _r(0b000, 0x00, opcode=0x3B, isa="RV64I"),
    "subw": _r(0b000, 0x20, opcode=0x3B, isa="RV64I"),
    "sllw": _r(0b001, 0x00, opcode=0x3B, isa="RV64I"),
    "srlw": _r(0b101, 0x00, opcode=0x3B, isa="RV64I"),
    "sraw": _r(0b101, 0x20, opcode=0x3B, isa="RV64I"),
    # -------------------------------------------------------------------------
    # RV64M additions - Opcode: 0x3B
    # -------------------------------------------------------------------------
    "mulw": _r(0b000, 0x01, opcode=0x3B, isa="RV64M"),
    "divw": _r(0b100, 0x01, opcode=0x3B, isa="RV64M"),
    "divuw": _r(0b101, 0x01, opcode=0x3B, isa="RV64M"),
    "remw": _r(0b110, 0x01, opcode=0x3B, isa="RV64M"),
    "remuw": _r(0b111, 0x01, opcode=0x3B, isa="RV64M"),
    # -------------------------------------------------------------------------
    # F extension - Opcodes: 0x07 (load), 0x27 (store), 0x43-0x4F (fused), 0x53
    # -------------------------------------------------------------------------
    "flw": _i(0x07, 0b010, isa="RV32F", regs="f"),
    "fsw": Instruction(opcode=0x27, format=InstructionFormat.S, funct3=0b010, isa="RV32F", regs="f"),
    "fmadd.s": _fma(0x43, FMT_S, "RV32F"),
    "fmsub.s": _fma(0x47, FMT_S, "RV32F"),
    "fnmsub.s": _fma(0x4B, FMT_S, "RV32F"),
    "fnmadd.s": _fma(0x4F, FMT_S, "RV32F"),
    "fadd.s": _fp(0b00000, FMT_S),
    "fsub.s": _fp(0b00001, FMT_S),
    "fmul.s": _fp(0b00010, FMT_S),
    "fdiv.s": _fp(0b00011, FMT_S),
    "fsqrt.s": _fp(0b01011, FMT_S, rs2=0, regs="ff"),
    "fsgnj.s": _fp(0b00100, FMT_S, 0b000),
    "fsgnjn.s": _fp(0b00100, FMT_S, 0b001),
    "fsgnjx.s": _fp(0b00100, FMT_S, 0b010),
    "fmin.s": _fp(0b00101, FMT_S, 0b000),
    "fmax.s": _fp(0b00101, FMT_S, 0b001),
    "feq.s": _fp(0b10100, FMT_S, 0b010, regs="xff"),
    "flt.s": _fp(0b10100, FMT_S, 0b001, regs="xff"),
    "fle.s": _fp(0b10100, FMT_S, 0b000, regs="xff"),
    "fcvt.w.s": _fp(0b11000, FMT_S, rs2=0, regs="xf"),
    "fcvt.wu.s": _fp(0b11000, FMT_S, rs2=1, regs="xf"),
    "fcvt.s.w": _fp(0b11010, FMT_S, rs2=0, regs="fx"),
    "fcvt.s.wu": _fp(0b11010, FMT_S, rs2=1, regs="fx"),
    "fclass.s": _fp(0b11100, FMT_S, 0b001, rs2=0, regs="xf"),
    "fmv.x.w": _fp(0b11100, FMT_S, 0b000, rs2=0, regs="xf"),
    "fmv.w.x": _fp(0b11110, FMT_S, 0b000, rs2=0, regs="fx"),
    "fcvt.l.s": _fp(0b11000, FMT_S, rs2=2, regs="xf", isa="RV64F"),
    "fcvt.lu.s": _fp(0b11000, FMT_S, rs2=3, regs="xf", isa="RV64F"),
    "fcvt.s.l": _fp(0b11010, FMT_S, rs2=2, regs="fx", isa="RV64F"),
    "fcvt.s.lu": _fp(0b11010, FMT_S, rs2=3, regs="fx", isa="RV64F"),
    # -------------------------------------------------------------------------
    # D extension
    # -------------------------------------------------------------------------
    "fld": _i(0x07, 0b011, isa="RV32D", regs="f"),
    "fsd": Instruction(opcode=0x27, format=InstructionFormat.S, funct3=0b011, isa="RV32D", regs="f"),
    "fmadd.d": _fma(0x43, FMT_D, "RV32D"),
    "fmsub.d": _fma(0x47, FMT_D, "RV32D"),
    "fnmsub.d": _fma(0x4B, FMT_D, "RV32D"),
    "fnmadd.d": _fma(0x4F, FMT_D, "RV32D"),
    "fadd.d": _fp(0b00000, FMT_D, isa="RV32D"),
    "fsub.d": _fp(0b00001, FMT_D, isa="RV32D"),
    "fmul.d": _fp(0b00010, FMT_D, isa="RV32D"),
    "fdiv.d": _fp(0b00011, FMT_D, isa="RV32D"),
    "fsqrt.d": _fp(0b01011, FMT_D, rs2=0, regs="ff", isa="RV32D"),
    "fsgnj.d": _fp(0b00100, FMT_D, 0b000, isa="RV32D"),
    "fsgnjn.d": _fp(0b00100, FMT_D, 0b001, isa="RV32D"),
    "fsgnjx.d": _fp(0b00100, FMT_D, 0b010, isa="RV32D"),
    "fmin.d": _fp(0b00101, FMT_D, 0b000, isa="RV32D"),
    "fmax.d": _fp(0b00101, FMT_D, 0b001, isa="RV32D"),
    "feq.d": _fp(0b10100, FMT_D, 0b010, regs="xff", isa="RV32D"),
    "flt.d": _fp(0b10100, FMT_D, 0b001, regs="xff", isa="RV32D"),
    "fle.d": _fp(0b10100, FMT_D, 0b000, regs="xff", isa="RV32D"),
    "fcvt.w.d": _fp(0b11000, FMT_D, rs2=0, regs="xf", isa="RV32D"),
    "fcvt.wu.d": _fp(0b11000, FMT_D, rs2=1, regs="xf", isa="RV32D"),
    "fcvt.d.w": _fp(0b11010, FMT_D, rs2=0, regs="fx", isa="RV32D"),
    "fcvt.d.wu": _fp(0b11010, FMT_D, rs2=1, regs="fx", isa="RV32D"),
    # Between precisions rs2 holds the source fmt
    "fcvt.s.d": _fp(0b01000, FMT_S, rs2=FMT_D, regs="ff", isa="RV32D"),
    "fcvt.d.s": _fp(0b01000, FMT_D, rs2=FMT_S, regs="ff", isa="RV32D"),
    "fclass.d": _fp(0b11100, FMT_D, 0b001, rs2=0, regs="xf", isa="RV32D"),
    "fmv.x.d": _fp(0b11100, FMT_D, 0b000, rs2=0, regs="xf", isa="RV64D"),
    "fmv.d.x": _fp(0b11110, FMT_D, 0b000, rs2=0, regs="fx", isa="RV64D"),
    "fcvt.l.d": _fp(0b11000, FMT_D, rs2=2, regs="xf", isa="RV64D"),
    "fcvt.lu.d": _fp(0b11000, FMT_D, rs2=3, regs="xf", isa="RV64D"),
    "fcvt.d.l": _fp(0b11010, FMT_D, rs2=2, regs="fx", isa="RV64D"),
    "fcvt.d.lu": _fp(0b11010, FMT_D, rs2=3, regs="fx", isa="RV64D"),
}

# A extension (opcode 0x2F): funct5 per operation, .w in RV32A and .d in RV64A
_AMO_FUNCT5 = {
    "lr": 0b00010,
    "sc": 0b00011,
    "amoswap": 0b00001,
    "amoadd": 0b00000,
    "amoxor": 0b00100,
    "amoand": 0b01100,
    "amoor": 0b01000,
    "amomin": 0b10000,
    "amomax": 0b10100,
    "amominu": 0b11000,
    "amomaxu": 0b11100,
}
for _name, _funct5 in _AMO_FUNCT5.items():
    INSTRUCTIONS[f"{_name}.w"] = _amo(_funct5, 0b010, "RV32A")
    INSTRUCTIONS[f"{_name}.d"] = _amo(_funct5, 0b011, "RV64A")

# Immediate field values for system instructions
SYSTEM_IMM = {
    "ecall": 0x000,
    "ebreak": 0x001,
}

LOAD_MNEMONICS = frozenset({"lb", "lh", "lw", "lbu", "lhu", "lwu", "ld", "flw", "fld"})
SHIFT_IMM_MNEMONICS = frozenset({"slli", "srli", "srai", "slliw", "srliw", "sraiw"})
CSR_MNEMONICS = frozenset({"csrrw", "csrrs", "csrrc", "csrrwi", "csrrsi", "csrrci"})

# Machine-mode CSR names accepted in place of a numeric CSR address
CSR_NAMES = {
    "fflags": 0x001,
    "frm": 0x002,
    "fcsr": 0x003,
    "cycle": 0xC00,
    "time": 0xC01,
    "instret": 0xC02,
    "mstatus": 0x300,
    "misa": 0x301,
    "mie": 0x304,
    "mtvec": 0x305,
    "mscratch": 0x340,
    "mepc": 0x341,
    "mcause": 0x342,
    "mtval": 0x343,
    "mip": 0x344,
    "mhartid": 0xF14,
}


def get_instruction(mnemonic: str) -> Optional[Instruction]:
    """
    Look up an instruction by mnemonic.

    Args:
        mnemonic: Instruction mnemonic (case-insensitive)

    Returns:
        Instruction object if found, None otherwise
    """
    return INSTRUCTIONS.get(mnemonic.lower())

