"""
Pseudo-instruction expansion.

Rewrites RISC-V pseudo-instructions into the single real instruction they stand
for. Only pseudo-instructions that occupy exactly one 32-bit word are supported,
so the label offsets computed in pass 1 stay valid.
"""

from typing import Callable, Dict, List, Tuple

from .errors import EncodingError, ParseError
from .parser import parse_immediate

# (mnemonic, operands_list)
ExpandedInstruction = Tuple[str, List[str]]


def _require(name: str, operands: List[str], count: int) -> None:
    if len(operands) != count:
        if count == 0:
            raise ParseError(f"{name.upper()} takes no operands, got {len(operands)}")
        plural = "operand" if count == 1 else "operands"
        raise ParseError(f"{name.upper()} requires {count} {plural}, got {len(operands)}")


def expand_li(operands: List[str]) -> ExpandedInstruction:
    """
    Expand LI (load immediate) pseudo-instruction.

    li rd, imm -> addi rd, x0, imm

    Values outside the 12-bit signed range would need LUI + ADDI and are rejected.
    """
    _require("li", operands, 2)
    rd = operands[0]
    imm = parse_immediate(operands[1])
    if not -2048 <= imm <= 2047:
        raise EncodingError(
            f"LI immediate {imm} does not fit in 12 bits; use lui and addi"
        )
    return ("addi", [rd, "x0", str(imm)])


def expand_nop(operands: List[str]) -> ExpandedInstruction:
    """nop -> addi x0, x0, 0"""
    _require("nop", operands, 0)
    return ("addi", ["x0", "x0", "0"])


def expand_ret(operands: List[str]) -> ExpandedInstruction:
    """ret -> jalr x0, ra, 0"""
    _require("ret", operands, 0)
    return ("jalr", ["x0", "ra", "0"])


def _template(name: str, mnemonic: str, pattern: List[str]) -> Callable[[List[str]], ExpandedInstruction]:
    """
    Build an expander from an operand pattern.

    Pattern entries "$0", "$1" refer to the pseudo-instruction's operands; any
    other entry is emitted literally.
    """
    count = len({p for p in pattern if p.startswith("$")})

    def expand(operands: List[str]) -> ExpandedInstruction:
        _require(name, operands, count)
        return (
            mnemonic,
            [operands[int(p[1:])] if p.startswith("$") else p for p in pattern],
        )

    expand.__name__ = f"expand_{name}"
    expand.__doc__ = f"{name} -> {mnemonic} {', '.join(pattern)}"
    return expand


# Map of pseudo-instruction names to their expansion functions
PSEUDO_INSTRUCTIONS: Dict[str, Callable[[List[str]], ExpandedInstruction]] = {
    "li": expand_li,
    "nop": expand_nop,
    "ret": expand_ret,
    "mv": _template("mv", "addi", ["$0", "$1", "0"]),
    "not": _template("not", "xori", ["$0", "$1", "-1"]),
    "neg": _template("neg", "sub", ["$0", "x0", "$1"]),
    "seqz": _template("seqz", "sltiu", ["$0", "$1", "1"]),
    "snez": _template("snez", "sltu", ["$0", "x0", "$1"]),
    "sltz": _template("sltz", "slt", ["$0", "$1", "x0"]),
    "sgtz": _template("sgtz", "slt", ["$0", "x0", "$1"]),
    "j": _template("j", "jal", ["x0", "$0"]),
    "jr": _template("jr", "jalr", ["x0", "$0", "0"]),
    "call": _template("call", "jal", ["ra", "$0"]),
    "beqz": _template("beqz", "beq", ["$0", "x0", "$1"]),
    "bnez": _template("bnez", "bne", ["$0", "x0", "$1"]),
    "blez": _template("blez", "bge", ["x0", "$0", "$1"]),
    "bgez": _template("bgez", "bge", ["$0", "x0", "$1"]),
    "bltz": _template("bltz", "blt", ["$0", "x0", "$1"]),
    "bgtz": _template("bgtz", "blt", ["x0", "$0", "$1"]),
    "fmv.s": _template("fmv.s", "fsgnj.s", ["$0", "$1", "$1"]),
    "fneg.s": _template("fneg.s", "fsgnjn.s", ["$0", "$1", "$1"]),
    "fabs.s": _template("fabs.s", "fsgnjx.s", ["$0", "$1", "$1"]),
    "fmv.d": _template("fmv.d", "fsgnj.d", ["$0", "$1", "$1"]),
    "fneg.d": _template("fneg.d", "fsgnjn.d", ["$0", "$1", "$1"]),
    "fabs.d": _template("fabs.d", "fsgnjx.d", ["$0", "$1", "$1"]),
}

# Pseudo-instructions whose last operand is a branch or jump target, with
# their operand count
LABEL_PSEUDOS = {
    "j": 1,
    "call": 1,
    "beqz": 2,
    "bnez": 2,
    "blez": 2,
    "bgez": 2,
    "bltz": 2,
    "bgtz": 2,
}


def is_pseudo_instruction(mnemonic: str) -> bool:
    """Check if a mnemonic is a pseudo-instruction."""
    return mnemonic.lower() in PSEUDO_INSTRUCTIONS


def expand_pseudo(mnemonic: str, operands: List[str]) -> ExpandedInstruction:
    """
    Expand a pseudo-instruction into the real instruction it stands for.

    Raises:
        ParseError: If the pseudo-instruction is unknown or has the wrong operands
    """
    mnemonic_lower = mnemonic.lower()
    if mnemonic_lower not in PSEUDO_INSTRUCTIONS:
        raise ParseError(f"Unknown pseudo-instruction: {mnemonic}")

    return PSEUDO_INSTRUCTIONS[mnemonic_lower](operands)


def expand_short_form(mnemonic: str, operands: List[str]) -> ExpandedInstruction:
    """
    Fill in the implied link register of one-operand jumps.

    jal offset -> jal ra, offset
    jalr rs    -> jalr ra, rs, 0
    """
    if mnemonic == "jal" and len(operands) == 1:
        return ("jal", ["ra", operands[0]])
    if mnemonic == "jalr" and len(operands) == 1:
        return ("jalr", ["ra", operands[0], "0"])
    return (mnemonic, operands)
