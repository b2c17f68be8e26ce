"""
VHDL ROM emitter.

Renders a RomImage as a synthesizable VHDL entity holding the program in a
constant array.  Each word is written as an 8-bit binary literal; words that
decode as an opcode carry a trailing ``-- NNNNN: MNEMONIC`` comment.  The
comments are advisory only and never change the emitted data.

Operand bytes are tracked by an EmissionSession: after a match, the next
``skip`` bytes are emitted without being looked up.
"""

from __future__ import annotations
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, TextIO, Union
import io
import logging

from .opcodes import InstructionMatcher, byte_to_bits
from .profiles import get_profile
from .rom_image import RomImage

__all__ = ['EmissionSession', 'EmitError', 'emit', 'render_vhdl',
           'write_vhdl_file', 'iter_vhdl_lines']

log = logging.getLogger(__name__)


class EmitError(Exception):
    """Raised when the VHDL output cannot be opened or written."""


HEADER = """\
-- {source}
-- {timestamp}
library IEEE;
use IEEE.STD_LOGIC_1164.all;
use IEEE.STD_LOGIC_ARITH.all;

use WORK.{package}.all;

entity {entity} is
  port(rst : in  STD_LOGIC;
       clk : in  STD_LOGIC;
       addr: in  UNSIGNED ({addr_msb} downto 0);
       data: out UNSIGNED ({data_msb} downto 0);
       rd  : in  STD_LOGIC);
end {entity};

architecture BEHAVIORAL of {entity} is
  type ROM_TYPE is array (0 to {last}) of UNSIGNED ({data_msb} downto 0);
  constant PROGRAM : ROM_TYPE := ("""

FOOTER = """\
  );
begin
  process (rst, clk)
  begin
    if (rst = '1') then
      data <= {idle};
    elsif (clk'event and clk = '1') then
      if (rd = '1' and conv_integer(addr) < {size}) then
        data <= PROGRAM(conv_integer(addr));
      else
        data <= {idle};
      end if;
    end if;
  end process;
end BEHAVIORAL;"""


class EmissionSession:
    """Per-pass annotation state."""

    def __init__(self, matcher: Optional[InstructionMatcher] = None):
        self.matcher = matcher or InstructionMatcher()
        self.pending_skip = 0

    def annotate(self, pos: int, value: int) -> str:
        """Return the comment for the byte at ``pos``, or '' for none."""
        if self.pending_skip:
            self.pending_skip -= 1
            return ""
        result = self.matcher.match(value)
        if result is None:
            return ""
        self.pending_skip = result.skip
        return f"  -- {pos:05d}: {result.mnemonic}"


def iter_vhdl_lines(image: RomImage, source_name: str,
                    timestamp: Optional[str] = None,
                    profile: Union[str, Dict[str, Any]] = "i8052",
                    matcher: Optional[InstructionMatcher] = None) -> Iterator[str]:
    """Yield the output file one line at a time, without terminators."""
    if isinstance(profile, str):
        profile = get_profile(profile)
    if image.size < 1:
        raise ValueError("cannot emit an empty ROM image")
    if timestamp is None:
        timestamp = datetime.now().ctime()

    yield from HEADER.format(
        source=source_name,
        timestamp=timestamp,
        package=profile["package"],
        entity=profile["entity"],
        addr_msb=profile["address_bits"] - 1,
        data_msb=profile["data_bits"] - 1,
        last=image.size - 1,
    ).split("\n")

    session = EmissionSession(matcher)
    last = image.size - 1
    for pos in range(image.size):
        value = image[pos]
        sep = "," if pos < last else " "
        line = f'    "{byte_to_bits(value)}"{sep}{session.annotate(pos, value)}'
        yield line.rstrip()

    yield from FOOTER.format(idle=profile["idle_value"], size=image.size).split("\n")


def emit(image: RomImage, sink: TextIO, source_name: str,
         timestamp: Optional[str] = None,
         profile: Union[str, Dict[str, Any]] = "i8052",
         matcher: Optional[InstructionMatcher] = None) -> None:
    """Write the VHDL description of ``image`` to ``sink``."""
    for line in iter_vhdl_lines(image, source_name, timestamp, profile, matcher):
        try:
            sink.write(line + "\n")
        except OSError as e:
            raise EmitError(f"file write: {e}") from e


def render_vhdl(image: RomImage, source_name: str,
                timestamp: Optional[str] = None,
                profile: Union[str, Dict[str, Any]] = "i8052",
                matcher: Optional[InstructionMatcher] = None) -> str:
    buf = io.StringIO()
    emit(image, buf, source_name, timestamp, profile, matcher)
    return buf.getvalue()


def write_vhdl_file(image: RomImage, path: Union[str, Path], source_name: str,
                    timestamp: Optional[str] = None,
                    profile: Union[str, Dict[str, Any]] = "i8052",
                    matcher: Optional[InstructionMatcher] = None) -> Path:
    """Write the VHDL file at ``path``.

    Not atomic: a failure part way through leaves a truncated file.
    """
    path = Path(path)
    if image.size < 1:
        raise ValueError("cannot emit an empty ROM image")
    try:
        f = open(path, "w", encoding="utf-8", newline="\n")
    except OSError as e:
        raise EmitError(f"file open: {path}: {e}") from e
    try:
        with f:
            emit(image, f, source_name, timestamp, profile, matcher)
    except OSError as e:
        # buffered data is flushed on close
        raise EmitError(f"file write: {path}: {e}") from e
    log.info("Wrote %s (%d words)", path, image.size)
    return path
