#!/usr/bin/env python3
"""
mkrom - Intel HEX to I8052 VHDL program ROM

Usage:
    python mkrom.py <input.hex> [-o i8052_rom.vhd] [--target i8052]
                                [--verbose] [--quiet] [--log-file mkrom.log]
    python mkrom.py --check-table

The output defaults to the profile's fixed file name (i8052_rom.vhd) in the
current directory.  The file is only created once the whole HEX input has
loaded cleanly.

Examples:
    python mkrom.py fib.hex
    python mkrom.py sort.hex -o rtl/i8052_rom.vhd -v
    python mkrom.py --check-table        # report shadowed opcode forms
"""

import argparse
import logging
import sys
import os

# Allow running from project root or as module
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from i8052_rom import __version__
from i8052_rom.ihex import HexFormatError
from i8052_rom.rom_image import CapacityError, UnsupportedRecordError, load_hex_file
from i8052_rom.opcodes import INSTRUCTION_TABLE, find_overlaps
from i8052_rom.vhdl import EmitError, write_vhdl_file
from i8052_rom.profiles import ROM_PROFILES, get_profile
from i8052_rom.log_setup import setup_logging


def _console_level(args) -> int:
    if args.quiet:
        return logging.ERROR
    if args.verbose == 0:
        return logging.WARNING
    if args.verbose == 1:
        return logging.INFO
    return logging.DEBUG


def check_table(log: logging.Logger) -> int:
    """Report instruction forms shadowed by earlier table entries."""
    overlaps = find_overlaps(INSTRUCTION_TABLE)
    for winner, shadowed in overlaps:
        log.warning("%s (%s, bits %d..%d) shadows %s (%s, bits %d..%d)",
                    winner.mnemonic, winner.pattern, winner.msb, winner.lsb,
                    shadowed.mnemonic, shadowed.pattern, shadowed.msb, shadowed.lsb)
    if overlaps:
        print(f"{len(overlaps)} overlapping instruction forms", file=sys.stderr)
        return 1
    print(f"{len(INSTRUCTION_TABLE)} instruction forms, no overlaps")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="mkrom",
        description="Convert Intel HEX to an I8052 VHDL program ROM",
        epilog="Targets: " + ", ".join(ROM_PROFILES.keys()),
    )
    parser.add_argument("input", nargs="?", help="Input Intel HEX file")
    parser.add_argument("-o", "--output",
                        help="Output VHDL file (default: profile output name)")
    parser.add_argument("--target", default="i8052",
                        choices=list(ROM_PROFILES.keys()),
                        help="ROM profile (default: i8052)")
    parser.add_argument("--verbose", "-v", action="count", default=0,
                        help="Increase verbosity (-v, -vv)")
    parser.add_argument("--quiet", "-q", action="store_true",
                        help="Suppress all logging except errors")
    parser.add_argument("--log-file", help="Write a DEBUG log to this file")
    parser.add_argument("--check-table", action="store_true",
                        help="Check the instruction table for overlapping forms and exit")
    parser.add_argument("--version", action="version",
                        version=f"mkrom {__version__}")

    args = parser.parse_args(argv)
    if not args.check_table and not args.input:
        parser.error("the following arguments are required: input")

    try:
        log = setup_logging(console_level=_console_level(args), log_file=args.log_file)
    except OSError as e:
        print(f"Error opening log file {args.log_file}: {e}", file=sys.stderr)
        return 1

    if args.check_table:
        return check_table(log)

    profile = get_profile(args.target)
    output = args.output or profile["output"]
    log.info("Input:  %s", args.input)
    log.info("Target: %s (%s)", args.target, profile["description"])

    try:
        image = load_hex_file(args.input, capacity=profile["capacity"])
        write_vhdl_file(image, output, args.input, profile=profile)
    except OSError as e:
        print(f"Error reading {args.input}: {e}", file=sys.stderr)
        return 1
    except HexFormatError as e:
        print(f"Format error: {e}", file=sys.stderr)
        return 1
    except UnsupportedRecordError as e:
        print(f"Unsupported record: {e}", file=sys.stderr)
        return 1
    except CapacityError as e:
        print(f"Capacity error: {e}", file=sys.stderr)
        return 1
    except EmitError as e:
        print(f"Output error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Internal error: {e}", file=sys.stderr)
        if args.verbose > 1:
            import traceback
            traceback.print_exc()
        return 2

    log.info("Output: %s (%d bytes)", output, image.size)
    return 0


if __name__ == "__main__":
    sys.exit(main())
