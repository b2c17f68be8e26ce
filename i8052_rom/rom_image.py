"""
ROM image builder.

Applies parsed HEX records to a fixed-capacity byte buffer.  Records may
arrive in any address order; the logical program size is the largest
``load_offset + length + 2`` seen so far.  The two extra bytes are a
deliberate trailing pad.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Iterable, Optional, Union
import logging

from .ihex import HexFormatError, HexRecord, RecordKind, parse_record

__all__ = ['RomImage', 'RomImageBuilder', 'LoadStatus', 'CapacityError',
           'UnsupportedRecordError', 'load_hex_lines', 'load_hex_file',
           'DEFAULT_CAPACITY', 'SIZE_PAD']

log = logging.getLogger(__name__)

DEFAULT_CAPACITY = 4096
SIZE_PAD = 2


class CapacityError(Exception):
    """Raised when a record would grow the program past the ROM capacity."""
    def __init__(self, message: str, line_num: int = 0, line_text: str = ""):
        self.line_num = line_num
        self.line_text = line_text
        super().__init__(f"Line {line_num}: {message}" if line_num else message)


class UnsupportedRecordError(Exception):
    """Raised on extended segment address records."""
    def __init__(self, message: str, line_num: int = 0, line_text: str = ""):
        self.line_num = line_num
        self.line_text = line_text
        super().__init__(f"Line {line_num}: {message}" if line_num else message)


class LoadStatus(Enum):
    CONTINUE = auto()
    DONE = auto()


@dataclass
class RomImage:
    """Program bytes plus the logical size the emitter walks."""
    capacity: int = DEFAULT_CAPACITY
    size: int = 0
    data: Optional[bytearray] = field(default=None, repr=False)

    def __post_init__(self):
        if self.data is None:
            self.data = bytearray(self.capacity)

    def __getitem__(self, addr: int) -> int:
        return self.data[addr]

    def program(self) -> bytes:
        """Bytes 0 .. size-1."""
        return bytes(self.data[:self.size])


class RomImageBuilder:
    """Accumulates records into a RomImage."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        self.image = RomImage(capacity=capacity)
        self.records = 0
        self.bytes_written = 0

    def apply(self, record: HexRecord) -> LoadStatus:
        if record.kind is RecordKind.END_OF_FILE:
            return LoadStatus.DONE
        if record.kind is RecordKind.EXTENDED_SEGMENT:
            raise UnsupportedRecordError(
                "extended segment address records not supported",
                record.line_num, record.line_text)
        if record.kind is not RecordKind.DATA:
            raise HexFormatError(f"invalid record type ${record.record_type:02X}",
                                 record.line_num, record.line_text)

        image = self.image
        end = record.end_offset
        size = max(image.size, end + SIZE_PAD)
        if size >= image.capacity or end >= image.capacity:
            raise CapacityError(
                f"program too large: needs {size} bytes, ROM holds {image.capacity}",
                record.line_num, record.line_text)

        image.size = size
        image.data[record.load_offset:end] = record.payload
        self.records += 1
        self.bytes_written += len(record.payload)
        log.debug("Loaded %d bytes at $%04X (size now %d)",
                  len(record.payload), record.load_offset, size)
        return LoadStatus.CONTINUE


def load_hex_lines(lines: Iterable[str], capacity: int = DEFAULT_CAPACITY) -> RomImage:
    """Parse and apply records until the end-of-file record."""
    builder = RomImageBuilder(capacity)
    for line_num, line in enumerate(lines, start=1):
        record = parse_record(line.rstrip('\r\n'), line_num)
        if builder.apply(record) is LoadStatus.DONE:
            break
    else:
        raise HexFormatError("missing end-of-file record")

    if builder.image.size == 0:
        raise HexFormatError("no data records")
    log.info("Loaded %d records, %d bytes, program size %d",
             builder.records, builder.bytes_written, builder.image.size)
    return builder.image


def load_hex_file(path: Union[str, Path], capacity: int = DEFAULT_CAPACITY) -> RomImage:
    """Read an Intel HEX file into a RomImage."""
    with open(path, 'r', encoding='ascii', errors='replace', newline='') as f:
        return load_hex_lines(f, capacity)
