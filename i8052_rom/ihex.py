"""
Intel HEX record parser.

Record layout (one per line, terminators already stripped):

    :LLAAAATT[DD...]CC
     |  |   | |      +-- checksum: two's complement of the sum of all bytes
     |  |   | +--------- LL data bytes
     |  |   +----------- record type
     |  +--------------- 16-bit load offset, big-endian
     +------------------ data byte count

Supported types: 00 (data), 01 (end of file).  Type 02 (extended segment
address) is recognised so it can be refused explicitly; anything else is
reported as INVALID and rejected by the loader.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
import re

__all__ = ['RecordKind', 'HexRecord', 'HexFormatError', 'parse_record',
           'record_checksum']

START_CODE = ':'
MIN_LINE_LENGTH = 11           # ':' + LL + AAAA + TT + CC

_HEX_DIGITS = re.compile(r'[0-9A-Fa-f]+\Z')


class HexFormatError(Exception):
    """Raised on a malformed record: structure, hex digits, checksum or type."""
    def __init__(self, message: str, line_num: int = 0, line_text: str = ""):
        self.line_num = line_num
        self.line_text = line_text
        super().__init__(f"Line {line_num}: {message}" if line_num else message)


class RecordKind(Enum):
    DATA = 0x00
    END_OF_FILE = 0x01
    EXTENDED_SEGMENT = 0x02
    INVALID = None


@dataclass(frozen=True)
class HexRecord:
    kind: RecordKind
    record_type: int
    load_offset: int
    payload: bytes = b''
    line_num: int = 0
    line_text: str = ""

    @property
    def end_offset(self) -> int:
        """Offset one past the last payload byte."""
        return self.load_offset + len(self.payload)


def record_checksum(data: bytes) -> int:
    """Checksum byte that makes ``sum(data) + checksum`` zero modulo 256."""
    return (-sum(data)) & 0xFF


def _hex_field(line: str, start: int, digits: int, line_num: int) -> int:
    """Decode ``digits`` hex characters at ``start`` into an unsigned int."""
    text = line[start:start + digits]
    if len(text) != digits or not _HEX_DIGITS.match(text):
        raise HexFormatError(f"invalid hex digits at column {start + 1}: '{text}'",
                             line_num, line)
    return int(text, 16)


def parse_record(line: str, line_num: int = 0) -> HexRecord:
    """Parse and validate one record line."""
    if len(line) < MIN_LINE_LENGTH or len(line) % 2 == 0 or line[0] != START_CODE:
        raise HexFormatError("invalid line", line_num, line)

    raw = bytes(_hex_field(line, 1 + 2 * i, 2, line_num)
                for i in range(len(line) // 2))
    if sum(raw) & 0xFF:
        raise HexFormatError(
            f"invalid checksum (expected ${record_checksum(raw[:-1]):02X}, "
            f"got ${raw[-1]:02X})", line_num, line)

    length = raw[0]
    if len(raw) != length + 5:
        raise HexFormatError(
            f"byte count {length} does not match record length", line_num, line)

    load_offset = (raw[1] << 8) | raw[2]
    record_type = raw[3]
    try:
        kind = RecordKind(record_type)
    except ValueError:
        kind = RecordKind.INVALID

    payload = raw[4:-1] if kind is RecordKind.DATA else b''
    return HexRecord(kind, record_type, load_offset, payload, line_num, line)
