"""
Instruction text parser.

Splits a single instruction line into its mnemonic and operands and parses
immediate values and memory operands.
"""

import re
from typing import List, Tuple

from .errors import ParseError
from .registers import is_valid_register

_MEMORY_OPERAND = re.compile(r"^\s*(-?\w*)\s*\(\s*(\w+)\s*\)\s*$")


def parse_immediate(value_str: str) -> int:
    """
    Parse an immediate value from string.

    Supports:
    - Decimal: 123, -45
    - Hexadecimal: 0x1A, 0X1a
    - Binary: 0b1010
    - Octal: 0o17

    Returns:
        Integer value
    """
    value_str = value_str.strip()

    if not value_str:
        raise ParseError("Empty immediate value")

    negative = value_str.startswith("-")
    if negative:
        value_str = value_str[1:].strip()

    try:
        if value_str.lower().startswith("0x"):
            result = int(value_str, 16)
        elif value_str.lower().startswith("0b"):
            result = int(value_str, 2)
        elif value_str.lower().startswith("0o"):
            result = int(value_str, 8)
        else:
            result = int(value_str, 10)

        return -result if negative else result
    except ValueError:
        raise ParseError(f"Invalid immediate value: {value_str}")


def is_immediate(value_str: str) -> bool:
    """Check if a string parses as an immediate value."""
    try:
        parse_immediate(value_str)
    except ParseError:
        return False
    return True


def parse_memory_operand(operand: str) -> Tuple[int, str]:
    """
    Parse a memory operand in the form offset(register).

    Examples:
    - "0(sp)" -> (0, "sp")
    - "-48(s0)" -> (-48, "s0")
    - "(a0)" -> (0, "a0")

    Returns:
        Tuple of (offset, register_name)
    """
    match = _MEMORY_OPERAND.match(operand)
    if not match:
        raise ParseError(f"Invalid memory operand syntax: {operand}")

    offset_str = match.group(1).strip()
    reg_str = match.group(2).strip()

    if offset_str == "" or offset_str == "-":
        offset = 0
    else:
        offset = parse_immediate(offset_str)

    if not is_valid_register(reg_str):
        raise ParseError(f"Invalid register in memory operand: {reg_str}")

    return offset, reg_str


def tokenize_operands(operand_str: str) -> List[str]:
    """
    Split operand string into individual operands.

    Commas and whitespace both separate operands; neither splits the inside of a
    parenthesised memory operand, and "4 (sp)" is kept together as "4(sp)".
    """
    operands = []
    current = ""
    paren_depth = 0
    comma_seen = False

    for char in operand_str:
        if char == "(":
            paren_depth += 1
            # "4 (sp)": the offset was split off by whitespace, rejoin it
            if not current.strip() and operands and not comma_seen and is_immediate(operands[-1]):
                current = operands.pop()
            current += char
        elif char == ")":
            paren_depth -= 1
            current += char
        elif (char == "," or char.isspace()) and paren_depth == 0:
            if current.strip():
                operands.append(current.strip())
                comma_seen = False
            current = ""
            if char == ",":
                comma_seen = True
        else:
            current += char

    if current.strip():
        operands.append(current.strip())

    return operands


def split_instruction(text: str) -> Tuple[str, List[str]]:
    """
    Split an instruction line into its lower-cased mnemonic and operand list.

    Example:
        "BNE x1,x2, loop" -> ("bne", ["x1", "x2", "loop"])
    """
    parts = text.strip().split(None, 1)
    if not parts:
        raise ParseError("Empty instruction")
    mnemonic = parts[0].lower()
    operands = tokenize_operands(parts[1]) if len(parts) > 1 else []
    return mnemonic, operands


def join_instruction(mnemonic: str, operands: List[str]) -> str:
    """Rebuild instruction text from a mnemonic and its operands."""
    if not operands:
        return mnemonic
    return f"{mnemonic} {', '.join(operands)}"
