"""
Tests for the two-pass assembler, label discovery and the embedding interface.
"""

import pytest

from rvjump_asm import (
    INPUT_ERROR_LINE,
    Assembler,
    AssemblerConfig,
    DuplicateLabelError,
    EncodingError,
    IsaProfile,
    LabelSyntaxError,
    ProgramBuffer,
    UndefinedLabelError,
    assemble,
    release,
)
from rvjump_asm.labels import LabelTable, discover_labels, split_label
from rvjump_asm.source import SourceLine, normalize_source

ADD = bytes.fromhex("b3003100")  # add x1,x2,x3
BNE_0 = bytes.fromhex("63902000")  # bne x1,x2,0


class TestLabelDiscovery:
    """Tests for pass 1."""

    def test_offsets_use_instruction_stream(self):
        """Test that labels are placed by instruction count, not line count."""
        lines = normalize_source("start:\nnop\n\nmid:\nnop\nnop\nend:")
        labels, instructions = discover_labels(lines)
        assert labels.get("start") == 0
        assert labels.get("mid") == 4
        assert labels.get("end") == 12
        assert [line.text for line in instructions] == ["nop", "nop", "nop"]

    def test_label_with_instruction_on_same_line(self):
        """Test that an instruction after a label is kept with its line number."""
        labels, instructions = discover_labels([SourceLine(3, "loop: addi x1, x1, 1")])
        assert labels.get("loop") == 0
        assert instructions == [SourceLine(3, "addi x1, x1, 1")]

    def test_duplicate_label(self):
        """Test that redefining a label fails instead of overwriting."""
        lines = normalize_source("L1:\nL1:\nadd x1,x2,x3")
        with pytest.raises(DuplicateLabelError, match="Duplicate label: L1") as excinfo:
            discover_labels(lines)
        assert excinfo.value.line_num == 2
        assert excinfo.value.index == 1

    def test_missing_label_name(self):
        """Test that a bare ':' is malformed."""
        with pytest.raises(LabelSyntaxError, match="Missing label name"):
            split_label(SourceLine(1, ": nop"))

    def test_delimiter_after_other_tokens(self):
        """Test that a ':' in the middle of an instruction is malformed."""
        with pytest.raises(LabelSyntaxError, match="Malformed label definition"):
            split_label(SourceLine(1, "add x1: x2, x3"))

    def test_several_labels_on_one_line(self):
        """Test that stacked labels all bind to the instruction after them."""
        labels, instructions = discover_labels([SourceLine(1, "nop"), SourceLine(2, "a: b: addi x1, x1, 1")])
        assert labels.get("a") == 4
        assert labels.get("b") == 4
        assert instructions[1] == SourceLine(2, "addi x1, x1, 1")

    def test_stacked_labels_without_instruction(self):
        """Test that stacked labels alone on a line add no instruction."""
        labels, instructions = discover_labels([SourceLine(1, "a: b:"), SourceLine(2, "nop")])
        assert labels.get("a") == labels.get("b") == 0
        assert instructions == [SourceLine(2, "nop")]

    def test_label_table(self):
        """Test LabelTable lookups."""
        table = LabelTable()
        table.define("a", 0)
        table.define("b", 8)
        assert "a" in table
        assert len(table) == 2
        assert list(table) == ["a", "b"]
        assert table.resolve("b") == 8
        with pytest.raises(UndefinedLabelError, match="Undefined label: c"):
            table.resolve("c")


class TestAssembler:
    """Tests for the Assembler class."""

    def test_single_instruction(self):
        """Test that one instruction produces one little-endian word."""
        program = Assembler().assemble_string("add x1,x2,x3")
        assert program.data == ADD

    def test_backward_label(self):
        """Test that a branch label is replaced by its absolute offset."""
        asm = Assembler()
        program = asm.assemble_string("L1:\nadd x1,x2,x3\nbne x1,x2,L1")
        assert asm.labels.get("L1") == 0
        assert program.data == ADD + BNE_0

    def test_forward_label(self):
        """Test that labels defined later resolve in pass 2."""
        asm = Assembler()
        asm.assemble_string("bne x1,x2,END\nadd x1,x2,x3\nEND:\nadd x1,x2,x3")
        assert asm.words[0] == 0x00209463  # bne x1,x2,8

    def test_relative_branches(self):
        """Test PC-relative branch offsets."""
        asm = Assembler(AssemblerConfig(branch_offsets="relative"))
        asm.assemble_string("L1:\nadd x1,x2,x3\nbne x1,x2,L1")
        assert asm.words[1] == 0xFE209EE3  # bne x1,x2,-4

    def test_numeric_branch_offset_untouched(self):
        """Test that numeric branch targets are not treated as labels."""
        asm = Assembler()
        asm.assemble_string("bne x1, x2, 8")
        assert asm.words == [0x00209463]

    def test_pseudo_jump_to_label(self):
        """Test that jump pseudo-instructions get their label patched."""
        asm = Assembler()
        asm.assemble_string("start:\nnop\nj start\nbnez a0, start")
        assert asm.words[1] == 0x0000006F  # jal x0, 0
        assert asm.words[2] == 0x00051063  # bne a0, x0, 0

    def test_same_line_label(self):
        """Test a label sharing a line with its instruction."""
        asm = Assembler()
        asm.assemble_string("loop: addi x1, x1, 1\nbne x1, x2, loop")
        assert asm.words == [0x00108093, 0x00209063]

    def test_undefined_label(self):
        """Test that a missing label fails at the branch's position."""
        with pytest.raises(UndefinedLabelError, match="Undefined label: NOPE") as excinfo:
            Assembler().assemble_string("nop\n\nbne x1,x2,NOPE")
        assert excinfo.value.index == 2
        assert excinfo.value.line_num == 3

    def test_branch_missing_target(self):
        """Test that a branch without its target is an operand error, not a label error."""
        with pytest.raises(EncodingError, match="bne requires 3 operands") as excinfo:
            Assembler().assemble_string("bne x1, x2")
        assert excinfo.value.index == 1

    def test_pseudo_branch_missing_target(self):
        """Test that a branch pseudo-instruction without its target is an operand error."""
        with pytest.raises(EncodingError, match="BEQZ requires 2 operands"):
            Assembler().assemble_string("beqz a0")

    def test_jump_to_stacked_label(self):
        """Test jumping to the second of two labels on one line."""
        asm = Assembler()
        asm.assemble_string("a: b: nop\nj b")
        assert asm.words == [0x00000013, 0x0000006F]

    def test_error_reports_source_and_index(self):
        """Test that errors carry both the raw line and the instruction index."""
        source = "\n\nadd x1,x2,x3\nL:\n\nfoo x1"
        with pytest.raises(EncodingError) as excinfo:
            Assembler().assemble_string(source)
        error = excinfo.value
        assert error.index == 2
        assert error.line_num == 6
        assert str(error).startswith("Line 6: Invalid mnemonic: foo")

    def test_failed_run_keeps_nothing(self):
        """Test that a failed run leaves no partial output behind."""
        asm = Assembler()
        asm.assemble_string("nop")
        with pytest.raises(EncodingError):
            asm.assemble_string("add x1,x2,x3\nBADMNEMONIC x,y,z")
        assert asm.words == []
        assert asm.get_hex_string() == ""

    def test_isa_profile_from_config(self):
        """Test that the configured profile reaches the encoder."""
        with pytest.raises(EncodingError, match="incompatible"):
            Assembler().assemble_string("addw a0, a0, a1")
        asm = Assembler(AssemblerConfig(isa=IsaProfile.RV64I))
        asm.assemble_string("addw a0, a0, a1")
        assert len(asm.words) == 1

    def test_bytes_input(self):
        """Test that UTF-8 bytes are accepted."""
        assert Assembler().assemble_string(b"add x1,x2,x3").data == ADD

    def test_hex_and_listing(self):
        """Test the hex string and listing output."""
        asm = Assembler()
        asm.assemble_string("start:\n  addi a0, x0, 1\n  j start")
        assert asm.get_hex_string() == "00100513\n0000006f"
        listing = asm.get_listing()
        assert "start:" in listing
        assert "0x80000000:   00100513" in listing
        assert "0x80000004:   0000006F" in listing
        assert asm.get_label_address("start") == 0x80000000
        assert asm.get_label_address("missing") is None

    def test_assemble_file(self, tmp_path):
        """Test assembling from and to files."""
        src = tmp_path / "prog.S"
        src.write_text("L1:\nadd x1,x2,x3\nbne x1,x2,L1\n")
        out_bin = tmp_path / "prog.bin"
        out_hex = tmp_path / "prog.hex"

        Assembler().assemble_file(str(src), str(out_bin))
        Assembler().assemble_file(str(src), str(out_hex), fmt="hex")

        assert out_bin.read_bytes() == ADD + BNE_0
        assert out_hex.read_text() == "003100b3\n00209063\n"


class TestAssembleInterface:
    """Tests for assemble() and release()."""

    def test_single_instruction(self):
        program, failing_line = assemble("add x1,x2,x3")
        assert failing_line == 0
        assert len(program) == 4

    def test_blank_and_comment_only(self):
        program, failing_line = assemble("\n   \n# just a comment\n// another\n")
        assert failing_line == 0
        assert len(program) == 0

    def test_label_offset(self):
        program, failing_line = assemble("L1:\nadd x1,x2,x3\nbne x1,x2,L1")
        assert failing_line == 0
        assert program.data == ADD + BNE_0

    def test_undefined_label(self):
        program, failing_line = assemble("bne x1,x2,NOPE")
        assert failing_line == 1
        assert len(program) == 0

    def test_duplicate_label(self):
        program, failing_line = assemble("L1:\nL1:\nadd x1,x2,x3")
        assert failing_line == 1
        assert len(program) == 0

    def test_malformed_label(self):
        program, failing_line = assemble("nop\n: nop")
        assert failing_line == 2
        assert len(program) == 0

    def test_failure_locality(self):
        program, failing_line = assemble("add x1,x2,x3\nBADMNEMONIC x,y,z\naddi x1,x2,3")
        assert failing_line == 2
        assert program.data == b""

    def test_failing_line_counts_instructions_not_raw_lines(self):
        program, failing_line = assemble("loop:\n\n# setup\nnop\nend:\nbogus")
        assert failing_line == 2

    def test_unreadable_input(self):
        program, failing_line = assemble(b"\xff\xfeadd x1,x2,x3")
        assert failing_line == INPUT_ERROR_LINE
        assert len(program) == 0

    def test_idempotent(self):
        source = "start:\naddi a0, a0, 1\nbne a0, a1, start\necall"
        first, _ = assemble(source)
        second, _ = assemble(source)
        assert first.data == second.data
        assert first is not second

    def test_length_multiple_of_four(self):
        program, failing_line = assemble("nop\nnop\nnop\nret")
        assert failing_line == 0
        assert len(program) == 16
        assert program.words() == [0x13, 0x13, 0x13, 0x00008067]

    def test_config_passed_through(self):
        program, failing_line = assemble(
            "L1:\nadd x1,x2,x3\nbne x1,x2,L1",
            AssemblerConfig(branch_offsets="relative"),
        )
        assert failing_line == 0
        assert program.words()[1] == 0xFE209EE3

    def test_extension_instructions(self):
        program, failing_line = assemble("lr.w a0, (a1)\namoadd.w a0, a1, (a2)\nfadd.s f0, f1, f2")
        assert failing_line == 0
        assert program.words() == [0x1005A52F, 0x00B6252F, 0x0020F053]

    def test_rv64_extension_needs_rv64_profile(self):
        _, failing_line = assemble("nop\nmulw a0, a1, a2")
        assert failing_line == 2
        program, failing_line = assemble("nop\nmulw a0, a1, a2", AssemblerConfig(isa=IsaProfile.RV64I))
        assert failing_line == 0
        assert program.words()[1] == 0x02C5853B

    def test_release(self):
        program, _ = assemble("nop")
        release(program)
        assert program.released
        with pytest.raises(ValueError, match="released"):
            program.data


class TestProgramBuffer:
    """Tests for the owned output buffer."""

    def test_from_words_is_little_endian(self):
        buf = ProgramBuffer.from_words([0x003100B3])
        assert bytes(buf) == ADD
        assert buf.hex_words() == ["003100b3"]

    def test_context_manager_releases(self):
        with ProgramBuffer(ADD) as buf:
            assert len(buf) == 4
        assert buf.released

    def test_second_release_is_harmless(self):
        buf = ProgramBuffer(ADD)
        buf.release()
        buf.release()
        assert repr(buf) == "ProgramBuffer(<released>)"

    def test_len_after_release(self):
        buf = ProgramBuffer(ADD)
        buf.release()
        with pytest.raises(ValueError):
            len(buf)

    def test_equality(self):
        assert ProgramBuffer(ADD) == ProgramBuffer(ADD)
        assert ProgramBuffer(ADD) == ADD
        assert ProgramBuffer(ADD) != ProgramBuffer(BNE_0)
