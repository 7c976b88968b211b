"""
Tests for assembler configuration loading.
"""

import pytest

from rvjump_asm.config import DRAM_BASE, AssemblerConfig, load_config, parse_config
from rvjump_asm.encoder import IsaProfile
from rvjump_asm.errors import ConfigError


class TestAssemblerConfig:
    """Tests for AssemblerConfig validation."""

    def test_defaults(self):
        config = AssemblerConfig()
        assert config.isa is IsaProfile.RV32I
        assert config.branch_offsets == "absolute"
        assert config.base_address == DRAM_BASE == 0x80000000
        assert config.strip_comments is True
        assert not config.relative_branches

    def test_isa_from_string(self):
        assert AssemblerConfig(isa="rv64i").isa is IsaProfile.RV64I

    def test_bad_isa(self):
        with pytest.raises(ConfigError, match="Unknown ISA profile"):
            AssemblerConfig(isa="x86")

    def test_bad_branch_mode(self):
        with pytest.raises(ConfigError, match="'branch_offsets' must be one of"):
            AssemblerConfig(branch_offsets="sideways")

    def test_misaligned_base_address(self):
        with pytest.raises(ConfigError, match="multiple of 4"):
            AssemblerConfig(base_address=0x80000002)

    def test_with_overrides_skips_none(self):
        config = AssemblerConfig()
        assert config.with_overrides(isa=None) is config
        assert config.with_overrides(branch_offsets="relative").relative_branches


class TestParseConfig:
    """Tests for parse_config and load_config."""

    def test_full_config(self):
        yaml_content = """
isa: RV64I
branch_offsets: relative
base_address: 0x1000
strip_comments: false
"""
        config = parse_config(yaml_content)
        assert config.isa is IsaProfile.RV64I
        assert config.relative_branches
        assert config.base_address == 0x1000
        assert config.strip_comments is False

    def test_empty_document(self):
        assert parse_config("") == AssemblerConfig()

    def test_invalid_yaml_syntax(self):
        yaml_content = """
isa: RV32I
branch_offsets: [
"""
        with pytest.raises(ConfigError, match="Invalid YAML syntax"):
            parse_config(yaml_content)

    def test_not_a_mapping(self):
        with pytest.raises(ConfigError, match="must be a YAML mapping"):
            parse_config("- RV32I\n- RV64I\n")

    def test_unknown_field(self):
        with pytest.raises(ConfigError, match="Unknown configuration field"):
            parse_config("isa: RV32I\nmacros: true\n")

    def test_bad_value_type(self):
        with pytest.raises(ConfigError, match="'strip_comments' must be a boolean"):
            parse_config("strip_comments: sometimes\n")

    def test_load_config(self, tmp_path):
        path = tmp_path / "asm.yaml"
        path.write_text("isa: AUTO\n")
        assert load_config(path).isa is IsaProfile.AUTO

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Cannot read configuration file"):
            load_config(tmp_path / "missing.yaml")
