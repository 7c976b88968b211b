"""
Label handling and the first assembler pass.

Pass 1 walks the normalized source once, records every label at the byte
offset of the next instruction, and collects the lines that are instructions.
"""

import logging
import re
from typing import Dict, Iterator, List, Optional, Tuple

from .errors import DuplicateLabelError, LabelSyntaxError, UndefinedLabelError
from .instructions import INSTRUCTION_WIDTH
from .source import SourceLine

logger = logging.getLogger(__name__)

LABEL_NAME = re.compile(r"^[A-Za-z_.][A-Za-z0-9_.$]*$")


class LabelTable:
    """
    Mapping of label names to byte offsets in the instruction stream.

    Built during pass 1 and only read afterwards. A name can be defined once.
    """

    def __init__(self):
        self._offsets: Dict[str, int] = {}

    def define(self, name: str, offset: int, line: SourceLine = None, index: int = None) -> None:
        """
        Record a label at a byte offset.

        Raises:
            DuplicateLabelError: If the label is already defined
        """
        if name in self._offsets:
            raise DuplicateLabelError(
                f"Duplicate label: {name} (already at offset {self._offsets[name]})",
                line.line_number if line else None,
                line.text if line else None,
                index,
            )
        self._offsets[name] = offset

    def resolve(self, name: str, line: SourceLine = None, index: int = None) -> int:
        """
        Look up the byte offset of a label.

        Raises:
            UndefinedLabelError: If the label was never defined
        """
        try:
            return self._offsets[name]
        except KeyError:
            raise UndefinedLabelError(
                f"Undefined label: {name}",
                line.line_number if line else None,
                line.text if line else None,
                index,
            )

    def get(self, name: str) -> Optional[int]:
        return self._offsets.get(name)

    def items(self):
        return self._offsets.items()

    def __contains__(self, name: str) -> bool:
        return name in self._offsets

    def __iter__(self) -> Iterator[str]:
        return iter(self._offsets)

    def __len__(self) -> int:
        return len(self._offsets)

    def __repr__(self) -> str:
        return f"LabelTable({self._offsets!r})"


def split_label(line: SourceLine, index: int = None) -> Tuple[Optional[str], str]:
    """
    Split a label definition off the front of a line.

    "loop:"             -> ("loop", "")
    "loop: addi a0,a0,1" -> ("loop", "addi a0,a0,1")
    "addi a0,a0,1"      -> (None, "addi a0,a0,1")

    Raises:
        LabelSyntaxError: If the text before the ':' is not a single label name
    """
    if ":" not in line.text:
        return None, line.text

    name, rest = line.text.split(":", 1)
    name = name.strip()
    if not name:
        raise LabelSyntaxError("Missing label name before ':'", line.line_number, line.text, index)
    if not LABEL_NAME.match(name):
        raise LabelSyntaxError(f"Malformed label definition: {name!r}", line.line_number, line.text, index)
    return name, rest.strip()


def discover_labels(
    lines: List[SourceLine], width: int = INSTRUCTION_WIDTH
) -> Tuple[LabelTable, List[SourceLine]]:
    """
    First pass: collect labels and the instruction lines.

    Each label is recorded at len(instructions) * width, the offset the next
    instruction will occupy. An instruction written after a label on the same
    line keeps that line's number.

    Errors raised here carry index = len(instructions) + 1, the position of the
    instruction the label would have bound to.

    Returns:
        Tuple of (label table, instruction lines)
    """
    labels = LabelTable()
    instructions: List[SourceLine] = []

    for line in lines:
        index = len(instructions) + 1
        offset = len(instructions) * width

        # "a: b: nop" binds both labels to the nop
        current = line
        name, rest = split_label(current, index)
        while name is not None:
            labels.define(name, offset, line, index)
            logger.debug("  Label '%s' at 0x%04X", name, offset)
            current = SourceLine(line.line_number, rest)
            name, rest = split_label(current, index)

        if current.text:
            instructions.append(current)

    return labels, instructions
