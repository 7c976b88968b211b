"""
Embedding interface.

assemble() never raises for bad source: it returns the program buffer and a
failing line marker, the shape the emulator front end consumes.

    program, failing_line = assemble("addi a0, x0, 1")
    if failing_line == 0:
        load(program.data)
    release(program)
"""

import logging
from typing import Tuple

from .assembler import Assembler
from .buffer import ProgramBuffer
from .config import AssemblerConfig
from .errors import AssemblerError, InputError

logger = logging.getLogger(__name__)

# failing_line value for input that could not be read as source text
INPUT_ERROR_LINE = -1


def failing_line_for(error: AssemblerError) -> int:
    """Map an assembler error to the failing_line value assemble() reports."""
    if isinstance(error, InputError):
        return INPUT_ERROR_LINE
    return error.index or 1


def assemble(source_text, config: AssemblerConfig = None) -> Tuple[ProgramBuffer, int]:
    """
    Assemble source text into a program buffer.

    Args:
        source_text: Assembly source as str, or as UTF-8 encoded bytes
        config: Assembler configuration (defaults if None)

    Returns:
        (program, failing_line). failing_line is 0 on success. A positive value
        is the 1-based position, among the source lines that are instructions,
        of the first instruction that failed; INPUT_ERROR_LINE means the input
        could not be decoded. On failure the program is empty.

    The caller owns the returned buffer and must release() it once.
    """
    try:
        program = Assembler(config).assemble_string(source_text)
    except AssemblerError as e:
        logger.debug("Assembly failed (failing_line %d): %s", failing_line_for(e), e)
        return ProgramBuffer(), failing_line_for(e)
    return program, 0


def release(program: ProgramBuffer) -> None:
    """
    Release a buffer returned by assemble().

    Passing anything that did not come from assemble(), or releasing the same
    buffer twice, is a caller error and is not checked.
    """
    program.release()
