"""
RVJump Assembler - a two-pass RISC-V assembler producing flat little-endian binaries.

This package assembles RV32I or RV64I source text (plus the M, A, F, D, Zicsr
and Zifencei extensions) into the byte stream the RVJump emulator loads at
DRAM_BASE.
"""

import logging

from .api import INPUT_ERROR_LINE, assemble, release
from .assembler import Assembler
from .buffer import ProgramBuffer
from .config import DRAM_BASE, AssemblerConfig, load_config, parse_config
from .encoder import Encoder, IsaProfile, encode
from .errors import (
    AssemblerError,
    ConfigError,
    DuplicateLabelError,
    EncodingError,
    InputError,
    LabelSyntaxError,
    ParseError,
    SymbolError,
    UndefinedLabelError,
)
from .source import SourceLine, normalize_source

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "1.0.0"
__all__ = [
    "assemble",
    "release",
    "encode",
    "normalize_source",
    "load_config",
    "parse_config",
    "Assembler",
    "AssemblerConfig",
    "Encoder",
    "IsaProfile",
    "ProgramBuffer",
    "SourceLine",
    "DRAM_BASE",
    "INPUT_ERROR_LINE",
    "AssemblerError",
    "ConfigError",
    "DuplicateLabelError",
    "EncodingError",
    "InputError",
    "LabelSyntaxError",
    "ParseError",
    "SymbolError",
    "UndefinedLabelError",
]
