"""
RISC-V instruction encoder.

Turns one instruction line (mnemonic plus operands, labels already resolved)
into its 32-bit machine word, returned as a string of 32 binary digits.
Handles the bit-shuffling required for B-type and J-type immediate encoding.
"""

from enum import Enum
from typing import List, NamedTuple, Optional, Tuple

from .instructions import (
    AMO_OPCODE,
    CSR_MNEMONICS,
    CSR_NAMES,
    LOAD_MNEMONICS,
    ROUNDING_MODES,
    SHIFT_IMM_MNEMONICS,
    SYSTEM_IMM,
    Instruction,
    InstructionFormat,
    get_instruction,
)
from .parser import parse_immediate, parse_memory_operand, split_instruction
from .pseudo import LABEL_PSEUDOS, expand_pseudo, expand_short_form, is_pseudo_instruction
from .registers import parse_fp_register, parse_register
from .errors import AssemblerError, EncodingError, ParseError

# Memory-ordering suffixes of the A extension, as (aq << 1) | rl
AMO_ORDERING = {".aqrl": 0b11, ".aq": 0b10, ".rl": 0b01}


class Operands(NamedTuple):
    """Register and immediate fields parsed from an operand list."""

    rd: int = 0
    rs1: int = 0
    rs2: int = 0
    imm: int = 0
    rs3: int = 0
    funct3: Optional[int] = None  # overrides the table's funct3 (rounding mode)


class IsaProfile(Enum):
    """ISA the encoder checks instructions against."""

    AUTO = "AUTO"
    RV32I = "RV32I"
    RV64I = "RV64I"

    @classmethod
    def parse(cls, value) -> "IsaProfile":
        """Accept a profile or its (case-insensitive) name."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            choices = ", ".join(p.value for p in cls)
            raise ValueError(f"Unknown ISA profile '{value}' (expected one of: {choices})")

    @property
    def xlen(self) -> int:
        return 32 if self is IsaProfile.RV32I else 64


def check_immediate_range(value: int, bits: int, signed: bool = True, name: str = "immediate") -> None:
    """
    Check if an immediate value fits in the specified bit width.

    Args:
        value: The immediate value to check
        bits: Number of bits available
        signed: Whether the immediate is signed
        name: Name for error messages
    """
    if signed:
        min_val = -(1 << (bits - 1))
        max_val = (1 << (bits - 1)) - 1
    else:
        min_val = 0
        max_val = (1 << bits) - 1

    if not (min_val <= value <= max_val):
        raise EncodingError(
            f"{name} value {value} out of range [{min_val}, {max_val}] for {bits}-bit field"
        )


def encode_r_type(instr: Instruction, rd: int, rs1: int, rs2: int, funct3: int = None) -> int:
    """
    Encode an R-type instruction.

    Format: [funct7(7) | rs2(5) | rs1(5) | funct3(3) | rd(5) | opcode(7)]

    Floating-point operations pass their rounding mode as funct3.
    """
    if funct3 is None:
        funct3 = instr.funct3

    encoding = instr.opcode & 0x7F
    encoding |= (rd & 0x1F) << 7
    encoding |= (funct3 & 0x7) << 12
    encoding |= (rs1 & 0x1F) << 15
    encoding |= (rs2 & 0x1F) << 20
    encoding |= (instr.funct7 & 0x7F) << 25
    return encoding


def encode_i_type(instr: Instruction, rd: int, rs1: int, imm: int, mnemonic: str = None, shamt_bits: int = 5) -> int:
    """
    Encode an I-type instruction.

    Format: [imm[11:0](12) | rs1(5) | funct3(3) | rd(5) | opcode(7)]

    Shift immediates embed funct7 in the upper immediate bits; CSR instructions
    carry an unsigned 12-bit CSR address in the immediate field.
    """
    mnemonic = (mnemonic or "").lower()

    if mnemonic in SYSTEM_IMM:
        imm = SYSTEM_IMM[mnemonic]
        rs1 = 0
        rd = 0

    if mnemonic in SHIFT_IMM_MNEMONICS:
        check_immediate_range(imm, shamt_bits, signed=False, name="shift amount")
        imm = (instr.funct7 << 5) | imm
    elif mnemonic in CSR_MNEMONICS:
        check_immediate_range(imm, 12, signed=False, name="CSR address")
    else:
        check_immediate_range(imm, 12, signed=True, name="I-type immediate")
        imm = imm & 0xFFF

    encoding = instr.opcode & 0x7F
    encoding |= (rd & 0x1F) << 7
    encoding |= (instr.funct3 & 0x7) << 12
    encoding |= (rs1 & 0x1F) << 15
    encoding |= (imm & 0xFFF) << 20
    return encoding


def encode_s_type(instr: Instruction, rs1: int, rs2: int, imm: int) -> int:
    """
    Encode an S-type instruction.

    Format: [imm[11:5](7) | rs2(5) | rs1(5) | funct3(3) | imm[4:0](5) | opcode(7)]
    """
    check_immediate_range(imm, 12, signed=True, name="S-type immediate")
    imm = imm & 0xFFF

    encoding = instr.opcode & 0x7F
    encoding |= (imm & 0x1F) << 7  # imm[4:0]
    encoding |= (instr.funct3 & 0x7) << 12
    encoding |= (rs1 & 0x1F) << 15
    encoding |= (rs2 & 0x1F) << 20
    encoding |= ((imm >> 5) & 0x7F) << 25  # imm[11:5]
    return encoding


def encode_b_type(instr: Instruction, rs1: int, rs2: int, imm: int) -> int:
    """
    Encode a B-type instruction.

    Format: [imm[12](1) | imm[10:5](6) | rs2(5) | rs1(5) | funct3(3) | imm[4:1](4) | imm[11](1) | opcode(7)]

    The immediate is a 13-bit signed byte offset with the LSB always 0.
    """
    if imm & 1:
        raise EncodingError(f"B-type branch offset must be even, got {imm}")

    check_immediate_range(imm, 13, signed=True, name="B-type offset")
    imm = imm & 0x1FFE

    encoding = instr.opcode & 0x7F
    encoding |= ((imm >> 11) & 0x1) << 7  # imm[11]
    encoding |= ((imm >> 1) & 0xF) << 8  # imm[4:1]
    encoding |= (instr.funct3 & 0x7) << 12
    encoding |= (rs1 & 0x1F) << 15
    encoding |= (rs2 & 0x1F) << 20
    encoding |= ((imm >> 5) & 0x3F) << 25  # imm[10:5]
    encoding |= ((imm >> 12) & 0x1) << 31  # imm[12]
    return encoding


def encode_u_type(instr: Instruction, rd: int, imm: int) -> int:
    """
    Encode a U-type instruction.

    Format: [imm[31:12](20) | rd(5) | opcode(7)]
    """
    if imm < 0:
        check_immediate_range(imm, 20, signed=True, name="U-type immediate")
        imm = imm & 0xFFFFF
    else:
        check_immediate_range(imm, 20, signed=False, name="U-type immediate")

    encoding = instr.opcode & 0x7F
    encoding |= (rd & 0x1F) << 7
    encoding |= (imm & 0xFFFFF) << 12
    return encoding


def encode_j_type(instr: Instruction, rd: int, imm: int) -> int:
    """
    Encode a J-type instruction.

    Format: [imm[20](1) | imm[10:1](10) | imm[11](1) | imm[19:12](8) | rd(5) | opcode(7)]

    The immediate is a 21-bit signed byte offset with the LSB always 0.
    """
    if imm & 1:
        raise EncodingError(f"J-type jump offset must be even, got {imm}")

    check_immediate_range(imm, 21, signed=True, name="J-type offset")
    imm = imm & 0x1FFFFF

    encoding = instr.opcode & 0x7F
    encoding |= (rd & 0x1F) << 7
    encoding |= ((imm >> 12) & 0xFF) << 12  # imm[19:12]
    encoding |= ((imm >> 11) & 0x1) << 20  # imm[11]
    encoding |= ((imm >> 1) & 0x3FF) << 21  # imm[10:1]
    encoding |= ((imm >> 20) & 0x1) << 31  # imm[20]
    return encoding


def encode_r4_type(instr: Instruction, rd: int, rs1: int, rs2: int, rs3: int, rm: int) -> int:
    """
    Encode an R4-type (fused multiply-add) instruction.

    Format: [rs3(5) | fmt(2) | rs2(5) | rs1(5) | rm(3) | rd(5) | opcode(7)]
    """
    encoding = instr.opcode & 0x7F
    encoding |= (rd & 0x1F) << 7
    encoding |= (rm & 0x7) << 12
    encoding |= (rs1 & 0x1F) << 15
    encoding |= (rs2 & 0x1F) << 20
    encoding |= (instr.funct7 & 0x3) << 25
    encoding |= (rs3 & 0x1F) << 27
    return encoding


def encode_instruction(
    instr: Instruction,
    mnemonic: str,
    rd: int = 0,
    rs1: int = 0,
    rs2: int = 0,
    imm: int = 0,
    shamt_bits: int = 5,
    rs3: int = 0,
    funct3: int = None,
) -> int:
    """
    Encode an instruction based on its format.

    Returns:
        32-bit encoded instruction
    """
    fmt = instr.format

    if fmt == InstructionFormat.R:
        return encode_r_type(instr, rd, rs1, rs2, funct3)
    elif fmt == InstructionFormat.R4:
        return encode_r4_type(instr, rd, rs1, rs2, rs3, funct3)
    elif fmt == InstructionFormat.I:
        return encode_i_type(instr, rd, rs1, imm, mnemonic, shamt_bits)
    elif fmt == InstructionFormat.S:
        return encode_s_type(instr, rs1, rs2, imm)
    elif fmt == InstructionFormat.B:
        return encode_b_type(instr, rs1, rs2, imm)
    elif fmt == InstructionFormat.U:
        return encode_u_type(instr, rd, imm)
    elif fmt == InstructionFormat.J:
        return encode_j_type(instr, rd, imm)
    else:
        raise EncodingError(f"Unknown instruction format: {fmt}")


def _fence_set(value: str) -> int:
    bits = {"i": 8, "o": 4, "r": 2, "w": 1}
    mask = 0
    for char in value.lower():
        if char not in bits:
            raise ParseError(f"Invalid fence ordering set: {value}")
        mask |= bits[char]
    return mask


def _require_count(mnemonic: str, operands: List[str], count: int, shape: str) -> None:
    if len(operands) != count:
        raise ParseError(
            f"{mnemonic} requires {count} operands ({shape}), got {len(operands)}"
        )


def _register(instr: Instruction, position: int, name: str) -> int:
    if instr.register_file(position) == "f":
        return parse_fp_register(name)
    return parse_register(name)


def _split_rounding(instr: Instruction, operands: List[str], count: int) -> Tuple[List[str], Optional[int]]:
    """Strip an optional rounding-mode operand past the register operands."""
    if instr.funct3 is not None or len(operands) != count + 1:
        return operands, instr.funct3
    mode = operands[-1].lower()
    if mode not in ROUNDING_MODES:
        raise ParseError(f"Invalid rounding mode: {operands[-1]}")
    return operands[:-1], ROUNDING_MODES[mode]


def _split_ordering(mnemonic: str) -> Tuple[str, int]:
    """Split an .aq/.rl/.aqrl suffix off an atomic memory operation."""
    for suffix, bits in AMO_ORDERING.items():
        if mnemonic.endswith(suffix):
            base = mnemonic[: -len(suffix)]
            instr = get_instruction(base)
            if instr is not None and instr.opcode == AMO_OPCODE:
                return base, bits
    return mnemonic, 0


def takes_label_operand(mnemonic: str, operand_count: int = None) -> bool:
    """
    Check if the last operand of an instruction is a branch or jump target.

    True for every B-type branch, jal, and the branch/jump pseudo-instructions.
    With operand_count, only the operand counts those forms accept qualify, so
    a target that was left out is not mistaken for a label.
    """
    mnemonic = mnemonic.lower()
    if mnemonic in LABEL_PSEUDOS:
        counts = (LABEL_PSEUDOS[mnemonic],)
    else:
        instr = get_instruction(mnemonic)
        if instr is None:
            return False
        if instr.format == InstructionFormat.B:
            counts = (3,)
        elif instr.format == InstructionFormat.J:
            counts = (1, 2)
        else:
            return False
    return operand_count is None or operand_count in counts


class Encoder:
    """
    Table-driven encoder for one ISA profile.

    An Encoder holds no state besides its profile; the assembler builds a fresh
    one for every assembly run.
    """

    def __init__(self, isa: IsaProfile = IsaProfile.RV32I):
        self.isa = IsaProfile.parse(isa)

    def encode(self, text: str) -> str:
        """
        Encode one instruction line.

        Args:
            text: Instruction text, e.g. "addi a0, a0, 1"

        Returns:
            The 32-bit machine word as a string of 32 binary digits

        Raises:
            EncodingError: If the instruction cannot be encoded
        """
        return format(self.encode_word(text), "032b")

    def encode_word(self, text: str) -> int:
        """Encode one instruction line and return the 32-bit word as an integer."""
        try:
            mnemonic, operands = split_instruction(text)
            if is_pseudo_instruction(mnemonic):
                mnemonic, operands = expand_pseudo(mnemonic, operands)
            else:
                mnemonic, operands = expand_short_form(mnemonic, operands)
            mnemonic, ordering = _split_ordering(mnemonic)

            instr = get_instruction(mnemonic)
            if instr is None:
                raise EncodingError(f"Invalid mnemonic: {mnemonic}")
            self._check_isa(mnemonic, instr)

            ops = self._parse_operands(instr, mnemonic, operands)
            word = encode_instruction(
                instr, mnemonic, ops.rd, ops.rs1, ops.rs2, ops.imm,
                shamt_bits=self._shamt_bits(mnemonic), rs3=ops.rs3, funct3=ops.funct3,
            )
            return word | (ordering << 25)
        except EncodingError:
            raise
        except (ValueError, AssemblerError) as e:
            reason = e.reason if isinstance(e, AssemblerError) else str(e)
            raise EncodingError(reason)

    def _check_isa(self, mnemonic: str, instr: Instruction) -> None:
        if self.isa is IsaProfile.AUTO or instr.xlen is None:
            return
        if instr.xlen > self.isa.xlen:
            raise EncodingError(
                f"Detected {instr.isa} instruction '{mnemonic}' incompatible "
                f"with configuration ISA: {self.isa.value}"
            )

    def _shamt_bits(self, mnemonic: str) -> int:
        if mnemonic.endswith("w") or self.isa is IsaProfile.RV32I:
            return 5
        return 6

    def _parse_operands(self, instr: Instruction, mnemonic: str, operands: List[str]) -> Operands:
        """
        Parse operands for an instruction.

        Integer or floating-point register names are expected per operand
        position as the instruction table describes.
        """
        fmt = instr.format

        if mnemonic in SYSTEM_IMM or mnemonic == "fence.i":
            _require_count(mnemonic, operands, 0, "none")
            return Operands()

        if mnemonic == "fence":
            if not operands:
                return Operands(imm=0xFF)
            _require_count(mnemonic, operands, 2, "pred, succ")
            return Operands(imm=(_fence_set(operands[0]) << 4) | _fence_set(operands[1]))

        if mnemonic in CSR_MNEMONICS:
            _require_count(mnemonic, operands, 3, "rd, csr, source")
            rd = parse_register(operands[0])
            imm = self._parse_csr(operands[1])
            if mnemonic.endswith("i"):
                rs1 = parse_immediate(operands[2])
                check_immediate_range(rs1, 5, signed=False, name="CSR immediate")
            else:
                rs1 = parse_register(operands[2])
            return Operands(rd=rd, rs1=rs1, imm=imm)

        if instr.opcode == AMO_OPCODE:
            return self._parse_amo(mnemonic, operands)

        if fmt == InstructionFormat.R4:
            operands, rm = _split_rounding(instr, operands, 4)
            _require_count(mnemonic, operands, 4, "rd, rs1, rs2, rs3")
            rd, rs1, rs2, rs3 = (_register(instr, i, op) for i, op in enumerate(operands))
            return Operands(rd=rd, rs1=rs1, rs2=rs2, rs3=rs3, funct3=self._rounding(rm))

        if fmt == InstructionFormat.R and instr.regs:
            count = len(instr.regs)
            operands, rm = _split_rounding(instr, operands, count)
            _require_count(mnemonic, operands, count, ", ".join(("rd", "rs1", "rs2")[:count]))
            rd = _register(instr, 0, operands[0])
            rs1 = _register(instr, 1, operands[1])
            rs2 = _register(instr, 2, operands[2]) if count == 3 else instr.rs2
            return Operands(rd=rd, rs1=rs1, rs2=rs2, funct3=self._rounding(rm))

        rd = rs1 = rs2 = imm = 0

        if fmt == InstructionFormat.R:
            _require_count(mnemonic, operands, 3, "rd, rs1, rs2")
            rd = parse_register(operands[0])
            rs1 = parse_register(operands[1])
            rs2 = parse_register(operands[2])

        elif fmt == InstructionFormat.I:
            if mnemonic in LOAD_MNEMONICS:
                _require_count(mnemonic, operands, 2, "rd, offset(rs1)")
                rd = _register(instr, 0, operands[0])
                imm, rs1_name = parse_memory_operand(operands[1])
                rs1 = parse_register(rs1_name)

            elif mnemonic == "jalr" and len(operands) == 2:
                rd = parse_register(operands[0])
                imm, rs1_name = parse_memory_operand(operands[1])
                rs1 = parse_register(rs1_name)

            else:
                _require_count(mnemonic, operands, 3, "rd, rs1, imm")
                rd = parse_register(operands[0])
                rs1 = parse_register(operands[1])
                imm = parse_immediate(operands[2])

        elif fmt == InstructionFormat.S:
            _require_count(mnemonic, operands, 2, "rs2, offset(rs1)")
            rs2 = _register(instr, 0, operands[0])
            imm, rs1_name = parse_memory_operand(operands[1])
            rs1 = parse_register(rs1_name)

        elif fmt == InstructionFormat.B:
            _require_count(mnemonic, operands, 3, "rs1, rs2, offset")
            rs1 = parse_register(operands[0])
            rs2 = parse_register(operands[1])
            imm = parse_immediate(operands[2])

        elif fmt == InstructionFormat.U:
            _require_count(mnemonic, operands, 2, "rd, imm")
            rd = parse_register(operands[0])
            imm = parse_immediate(operands[1])

        elif fmt == InstructionFormat.J:
            _require_count(mnemonic, operands, 2, "rd, offset")
            rd = parse_register(operands[0])
            imm = parse_immediate(operands[1])

        return Operands(rd=rd, rs1=rs1, rs2=rs2, imm=imm)

    @staticmethod
    def _parse_amo(mnemonic: str, operands: List[str]) -> Operands:
        # lr reads only; sc and amo* take a source register before the address
        if mnemonic.startswith("lr."):
            _require_count(mnemonic, operands, 2, "rd, (rs1)")
            rd, rs2, address = parse_register(operands[0]), 0, operands[1]
        else:
            _require_count(mnemonic, operands, 3, "rd, rs2, (rs1)")
            rd, rs2, address = parse_register(operands[0]), parse_register(operands[1]), operands[2]

        offset, base = parse_memory_operand(address)
        if offset != 0:
            raise ParseError(f"{mnemonic} takes no address offset, got {offset}")
        return Operands(rd=rd, rs1=parse_register(base), rs2=rs2)

    @staticmethod
    def _rounding(rm: Optional[int]) -> int:
        return ROUNDING_MODES["dyn"] if rm is None else rm

    @staticmethod
    def _parse_csr(value: str) -> int:
        name = value.strip().lower()
        if name in CSR_NAMES:
            return CSR_NAMES[name]
        return parse_immediate(value)


def encode(instruction_text: str, isa_profile=IsaProfile.RV32I) -> str:
    """
    Encode one instruction line with a freshly constructed Encoder.

    Returns:
        A string of exactly 32 binary digits

    Raises:
        EncodingError: If the instruction cannot be encoded
    """
    return Encoder(isa_profile).encode(instruction_text)
