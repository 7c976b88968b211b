#!/usr/bin/env python3
"""
RVJump Assembler - Command Line Interface

Usage:
    python3 -m rvjump_asm input.S -o output.bin
    python3 -m rvjump_asm input.S -o output.hex -f hex -v
    python3 -m rvjump_asm input.S --listing
"""

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .assembler import Assembler
from .config import AssemblerConfig, load_config
from .errors import AssemblerError, ConfigError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rvjump-asm",
        description="RVJump RISC-V Assembler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s levels/jump.S -o levels/jump.bin
  %(prog)s levels/jump.S -o levels/jump.hex -f hex -v
  %(prog)s levels/jump.S --listing
        """,
    )

    parser.add_argument(
        "input",
        type=str,
        help="Input assembly file (.S)",
    )

    parser.add_argument(
        "-o",
        "--output",
        type=str,
        help="Output file. If not specified, prints hex words to stdout.",
    )

    parser.add_argument(
        "-f",
        "--format",
        choices=("bin", "hex"),
        help="Output format (default: bin for files, hex for stdout; bin to stdout writes raw bytes)",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=str,
        help="YAML assembler configuration file",
    )

    parser.add_argument(
        "--isa",
        type=str,
        help="ISA profile: AUTO, RV32I or RV64I (overrides the config file)",
    )

    parser.add_argument(
        "--relative-branches",
        action="store_true",
        help="Encode branch labels as PC-relative offsets",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    parser.add_argument(
        "-l",
        "--listing",
        action="store_true",
        help="Print assembly listing",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(message)s",
    )

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {args.input}", file=sys.stderr)
        return 1

    try:
        config = load_config(args.config) if args.config else AssemblerConfig()
        config = config.with_overrides(
            isa=args.isa,
            branch_offsets="relative" if args.relative_branches else None,
        )
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    output_path = args.output
    fmt = args.format or "bin"

    try:
        asm = Assembler(config, verbose=args.verbose)
        program = asm.assemble_file(str(input_path), output_path, fmt=fmt)

        if args.listing:
            print("\n" + asm.get_listing())

        # Raw bytes on stdout keep the status line off it
        binary_stdout = not output_path and not args.listing and args.format == "bin"
        if binary_stdout:
            sys.stdout.buffer.write(program.data)
            sys.stdout.flush()
        elif not output_path and not args.listing:
            print(asm.get_hex_string())

        if args.verbose or output_path:
            print(
                f"\nAssembly successful: {len(asm.words)} instructions",
                file=sys.stderr if binary_stdout else sys.stdout,
            )

    except AssemblerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
