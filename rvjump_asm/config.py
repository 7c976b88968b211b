"""
Assembler configuration.

Configuration can be built directly or read from a YAML file:

    isa: RV32I
    branch_offsets: absolute
    base_address: 0x80000000
    strip_comments: true
"""

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .encoder import IsaProfile
from .errors import ConfigError

# Address the emulator loads programs at
DRAM_BASE = 0x8000_0000

BRANCH_OFFSET_MODES = ("absolute", "relative")


@dataclass(frozen=True)
class AssemblerConfig:
    """
    Settings for one assembler.

    Attributes:
        isa: ISA profile instructions are encoded against
        branch_offsets: "absolute" replaces a branch label with the label's byte
            offset in the program; "relative" uses the distance from the branch
        base_address: Load address shown in listings
        strip_comments: Treat # and // as comment starts
    """

    isa: IsaProfile = IsaProfile.RV32I
    branch_offsets: str = "absolute"
    base_address: int = DRAM_BASE
    strip_comments: bool = True

    def __post_init__(self):
        try:
            object.__setattr__(self, "isa", IsaProfile.parse(self.isa))
        except ValueError as e:
            raise ConfigError(str(e))
        if self.branch_offsets not in BRANCH_OFFSET_MODES:
            raise ConfigError(
                f"'branch_offsets' must be one of {', '.join(BRANCH_OFFSET_MODES)}, "
                f"got {self.branch_offsets!r}"
            )
        if not isinstance(self.base_address, int) or isinstance(self.base_address, bool):
            raise ConfigError("'base_address' must be an integer")
        if self.base_address < 0 or self.base_address % 4:
            raise ConfigError("'base_address' must be a non-negative multiple of 4")
        if not isinstance(self.strip_comments, bool):
            raise ConfigError("'strip_comments' must be a boolean")

    @property
    def relative_branches(self) -> bool:
        return self.branch_offsets == "relative"

    def with_overrides(self, **overrides: Any) -> "AssemblerConfig":
        """Return a copy with the given (non-None) fields replaced."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self


def parse_config(yaml_content: str) -> AssemblerConfig:
    """
    Parse and validate a YAML assembler configuration.

    An empty document yields the default configuration.

    Raises:
        ConfigError: If the YAML is invalid or contains unknown or bad values
    """
    try:
        data = yaml.safe_load(yaml_content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax: {e}")

    if data is None:
        return AssemblerConfig()
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a YAML mapping/dictionary")

    known = {f.name for f in fields(AssemblerConfig)}
    unknown = sorted(str(k) for k in data if k not in known)
    if unknown:
        raise ConfigError(f"Unknown configuration field(s): {', '.join(unknown)}")

    return AssemblerConfig(**data)


def load_config(path) -> AssemblerConfig:
    """Read and validate a YAML configuration file."""
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {path}: {e.strerror}")
    return parse_config(content)
