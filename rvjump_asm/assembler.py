"""
Main assembler implementation.

Two-pass assembler for RISC-V assembly to a flat little-endian binary.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from .buffer import ProgramBuffer
from .config import AssemblerConfig
from .encoder import Encoder, takes_label_operand
from .errors import EncodingError, ParseError
from .instructions import INSTRUCTION_WIDTH
from .labels import LabelTable, discover_labels
from .parser import is_immediate, join_instruction, split_instruction
from .source import SourceLine, decode_source, normalize_source

logger = logging.getLogger(__name__)


class Assembler:
    """
    Two-pass RISC-V assembler.

    Pass 1: Collect labels and the instruction lines
    Pass 2: Patch branch targets and encode every instruction

    Each call to assemble_string() starts from scratch with a new Encoder, so an
    Assembler can be reused, but not shared between threads.
    """

    def __init__(self, config: AssemblerConfig = None, verbose: bool = False):
        """
        Initialize the assembler.

        Args:
            config: Assembler configuration (defaults if None)
            verbose: If True, log assembly progress at INFO instead of DEBUG
        """
        self.config = config or AssemblerConfig()
        self.verbose = verbose
        self.labels = LabelTable()
        self.instructions: List[SourceLine] = []
        self.words: List[int] = []  # encoded 32-bit instructions
        self.source_map: List[Tuple[int, str, int]] = []  # (offset, source text, line_num)

    def log(self, message: str) -> None:
        """Log a progress message, promoted to INFO in verbose mode."""
        logger.log(logging.INFO if self.verbose else logging.DEBUG, message)

    def assemble_file(self, input_path: str, output_path: str = None, fmt: str = "bin") -> ProgramBuffer:
        """
        Assemble an assembly file.

        Args:
            input_path: Path to input .S file
            output_path: Path to output file (optional)
            fmt: Output format, "bin" for raw bytes or "hex" for one word per line

        Returns:
            The assembled program
        """
        self.log(f"Assembling: {input_path}")
        source = Path(input_path).read_bytes()
        program = self.assemble_string(source)

        if output_path:
            if fmt == "hex":
                self.write_hex(output_path)
            else:
                self.write_binary(output_path)
            self.log(f"Output written to: {output_path}")

        return program

    def assemble_string(self, source) -> ProgramBuffer:
        """
        Assemble from a string (or UTF-8 bytes).

        Returns:
            The assembled program

        Raises:
            AssemblerError: On the first error; nothing is kept from a failed run
        """
        self.labels = LabelTable()
        self.instructions = []
        self.words = []
        self.source_map = []

        text = decode_source(source)
        lines = normalize_source(text, keep_comments=not self.config.strip_comments)

        labels, instructions = self._pass1(lines)
        words = self._pass2(labels, instructions, Encoder(self.config.isa))

        self.labels = labels
        self.instructions = instructions
        self.words = words
        self.source_map = [
            ((i - 1) * INSTRUCTION_WIDTH, line.text, line.line_number)
            for i, line in enumerate(instructions, start=1)
        ]
        return ProgramBuffer.from_words(words)

    def _pass1(self, lines: List[SourceLine]) -> Tuple[LabelTable, List[SourceLine]]:
        """
        First pass: Collect labels and compute offsets.
        """
        self.log("=== Pass 1: Collecting labels ===")
        labels, instructions = discover_labels(lines)
        self.log(f"  Total labels: {len(labels)}")
        self.log(f"  Program size: {len(instructions) * INSTRUCTION_WIDTH} bytes")
        return labels, instructions

    def _pass2(self, labels: LabelTable, instructions: List[SourceLine], encoder: Encoder) -> List[int]:
        """
        Second pass: Encode instructions with resolved labels.
        """
        self.log("=== Pass 2: Encoding instructions ===")
        words = []

        for index, line in enumerate(instructions, start=1):
            offset = (index - 1) * INSTRUCTION_WIDTH
            text = self._patch_branch_target(line, index, offset, labels)

            try:
                bits = encoder.encode(text)
            except EncodingError as e:
                raise e.locate(line.line_number, line.text, index)

            word = int(bits, 2)
            words.append(word)
            self.log(f"  0x{offset:04X}: {word:08X}  {text}")

        self.log(f"  Total instructions: {len(words)}")
        return words

    def _patch_branch_target(self, line: SourceLine, index: int, offset: int, labels: LabelTable) -> str:
        """
        Replace a label in a branch's last operand by its decimal byte offset.

        Returns:
            The instruction text to hand to the encoder
        """
        try:
            mnemonic, operands = split_instruction(line.text)
        except ParseError:
            return line.text

        # A missing target leaves the operand count short; the encoder reports it
        if not takes_label_operand(mnemonic, len(operands)) or is_immediate(operands[-1]):
            return line.text

        target = labels.resolve(operands[-1], line, index)
        if self.config.relative_branches:
            target -= offset
        operands[-1] = str(target)
        return join_instruction(mnemonic, operands)

    def write_binary(self, output_path: str) -> None:
        """Write the assembled program as raw little-endian bytes."""
        Path(output_path).write_bytes(ProgramBuffer.from_words(self.words).data)

    def write_hex(self, output_path: str) -> None:
        """Write assembled instructions as one hex word per line."""
        with open(output_path, "w") as f:
            for word in self.words:
                f.write(f"{word:08x}\n")

    def get_hex_string(self) -> str:
        """
        Get assembled instructions as a hex string.

        Returns:
            String with one hex instruction per line
        """
        return "\n".join(f"{word:08x}" for word in self.words)

    def get_listing(self) -> str:
        """
        Get an assembly listing showing addresses, encodings, and source.

        Returns:
            Formatted listing string
        """
        lines = []
        lines.append("Address       Code       Line  Source")
        lines.append("-" * 60)

        label_at = {}
        for name, offset in self.labels.items():
            label_at.setdefault(offset, []).append(name)

        for offset, source, line_num in self.source_map:
            for name in label_at.get(offset, []):
                lines.append(f"{'':26}{name}:")
            code = self.words[offset // INSTRUCTION_WIDTH]
            addr = self.config.base_address + offset
            lines.append(f"0x{addr:08X}:   {code:08X}   {line_num:4d}  {source}")

        return "\n".join(lines)

    def get_label_address(self, name: str) -> Optional[int]:
        """Get the load address of a label, or None if it is not defined."""
        offset = self.labels.get(name)
        if offset is None:
            return None
        return self.config.base_address + offset
