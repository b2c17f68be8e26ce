"""
i8052_rom - Intel HEX to VHDL program ROM generator
====================================================
Turns the Intel HEX output of an 8051/8052 toolchain into the VHDL ROM
entity of the I8052 soft core, annotating each word with a best-effort
disassembly comment.

Pipeline:
    ┌──────────┐    ┌──────────┐    ┌───────────┐    ┌──────────┐
    │ HEX text │───>│  ihex    │───>│ rom_image │───>│  vhdl    │───> .vhd
    │ (.hex)   │    │ (records)│    │ (4KB buf) │    │ (emit)   │
    └──────────┘    └──────────┘    └───────────┘    └────┬─────┘
                                                          │ per byte
                                                     ┌────┴─────┐
                                                     │ opcodes  │
                                                     │ (match)  │
                                                     └──────────┘

    - ihex.py:      record parsing, checksum and type validation
    - rom_image.py: fixed-capacity image, logical size tracking
    - opcodes.py:   8052 instruction format table + first-match matcher
    - vhdl.py:      header/array/footer rendering with operand skipping
    - profiles.py:  ROM target profiles (entity names, capacity)
"""

__version__ = "1.0.0"

from typing import Optional
import io

from .ihex import HexFormatError, HexRecord, RecordKind, parse_record
from .rom_image import (RomImage, RomImageBuilder, LoadStatus, CapacityError,
                        UnsupportedRecordError, load_hex_lines, load_hex_file)
from .opcodes import (InstructionFormat, InstructionMatcher, MatchResult,
                      INSTRUCTION_TABLE, match_opcode, find_overlaps)
from .vhdl import EmissionSession, EmitError, emit, render_vhdl, write_vhdl_file
from .profiles import ROM_PROFILES, get_profile


def convert_hex(text: str, source_name: str, *, profile: str = "i8052",
                timestamp: Optional[str] = None) -> str:
    """Convert Intel HEX text to VHDL source text.

    Full pipeline: parse -> build image -> emit.  Lines are framed the same
    way as by load_hex_file.
    """
    rom = get_profile(profile)
    image = load_hex_lines(io.StringIO(text, newline=""), capacity=rom["capacity"])
    return render_vhdl(image, source_name, timestamp=timestamp, profile=rom)
