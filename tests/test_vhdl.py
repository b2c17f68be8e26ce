"""
VHDL emitter tests: word rendering, operand skipping and the template.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import io

import pytest

from i8052_rom.opcodes import InstructionFormat, InstructionMatcher
from i8052_rom.rom_image import RomImage, load_hex_lines
from i8052_rom.vhdl import (
    EmissionSession, EmitError, emit, render_vhdl, write_vhdl_file,
)
from hex_records import make_record, EOF_RECORD

STAMP = "Mon Oct 19 12:00:00 2026"


def _image(program: bytes) -> RomImage:
    return load_hex_lines([make_record(0, program), EOF_RECORD])


def _entries(text: str) -> list:
    return [line for line in text.split("\n") if line.startswith('    "')]


class TestEmissionSession:
    def test_operand_byte_not_matched(self):
        matcher = InstructionMatcher([InstructionFormat('CALL', '10001', 4, 0, 1)])
        session = EmissionSession(matcher)
        assert session.annotate(0, 0x91) == "  -- 00000: CALL"
        assert session.pending_skip == 1
        assert session.annotate(1, 0x91) == ""
        assert session.annotate(2, 0x91) == "  -- 00002: CALL"

    def test_two_operand_bytes(self):
        session = EmissionSession()
        assert session.annotate(0, 0x02) == "  -- 00000: LJMP"
        assert session.annotate(1, 0x00) == ""
        assert session.annotate(2, 0x00) == ""
        assert session.annotate(3, 0x00) == "  -- 00003: NOP"

    def test_no_match_leaves_state(self):
        session = EmissionSession()
        assert session.annotate(7, 0xA5) == ""
        assert session.pending_skip == 0

    def test_sessions_are_independent(self):
        first = EmissionSession()
        first.annotate(0, 0x12)
        assert EmissionSession().pending_skip == 0


class TestRender:
    def test_entries(self):
        text = render_vhdl(_image(b'\x02\x00\x05\x22'), "prog.hex", timestamp=STAMP)
        assert _entries(text) == [
            '    "00000010",  -- 00000: LJMP',
            '    "00000000",',
            '    "00000101",',
            '    "00100010",  -- 00003: RET',
            '    "00000000",  -- 00004: NOP',
            '    "00000000"   -- 00005: NOP',
        ]

    def test_header_and_footer(self):
        text = render_vhdl(_image(b'\x02\x00\x05\x22'), "prog.hex", timestamp=STAMP)
        lines = text.split("\n")
        assert lines[0] == "-- prog.hex"
        assert lines[1] == "-- " + STAMP
        assert "use WORK.I8052_PKG.all;" in lines
        assert "entity I8052_ROM is" in lines
        assert "       addr: in  UNSIGNED (11 downto 0);" in lines
        assert "  type ROM_TYPE is array (0 to 5) of UNSIGNED (7 downto 0);" in lines
        assert "      if (rd = '1' and conv_integer(addr) < 6) then" in lines
        assert "      data <= CD_8;" in lines
        assert text.endswith("end BEHAVIORAL;\n")

    def test_no_trailing_whitespace(self):
        text = render_vhdl(_image(b'\xA5\xA5'), "prog.hex", timestamp=STAMP)
        assert all(line == line.rstrip() for line in text.split("\n"))

    def test_deterministic(self):
        image = _image(b'\x75\x81\x30\x12\x00\x10\x80\xFE')
        assert render_vhdl(image, "a.hex", timestamp=STAMP) == \
            render_vhdl(image, "a.hex", timestamp=STAMP)

    def test_only_timestamp_differs(self):
        image = _image(b'\x75\x81\x30\x12\x00\x10\x80\xFE')
        a = render_vhdl(image, "a.hex").split("\n")
        b = render_vhdl(image, "a.hex", timestamp="later").split("\n")
        assert b[1] == "-- later"
        assert a[:1] + a[2:] == b[:1] + b[2:]

    def test_comments_do_not_change_data(self):
        image = _image(bytes(range(0x70, 0x90)))
        with_comments = _entries(render_vhdl(image, "x.hex", timestamp=STAMP))
        bare = _entries(render_vhdl(image, "x.hex", timestamp=STAMP,
                                    matcher=InstructionMatcher([])))
        assert [line.split("  --")[0].rstrip() for line in with_comments] == bare
        assert len(bare) == image.size

    def test_empty_image(self):
        with pytest.raises(ValueError):
            render_vhdl(RomImage(), "x.hex", timestamp=STAMP)

    def test_unknown_profile(self):
        with pytest.raises(KeyError, match="unknown ROM profile"):
            render_vhdl(_image(b'\x00'), "x.hex", profile="z80")


class _BrokenSink:
    def __init__(self, fail_after: int):
        self.lines = 0
        self.fail_after = fail_after

    def write(self, text):
        self.lines += 1
        if self.lines > self.fail_after:
            raise OSError(28, "No space left on device")
        return len(text)


class TestOutput:
    def test_emit_to_sink(self):
        buf = io.StringIO()
        emit(_image(b'\x22'), buf, "ret.hex", timestamp=STAMP)
        assert buf.getvalue() == render_vhdl(_image(b'\x22'), "ret.hex", timestamp=STAMP)

    def test_write_failure(self):
        with pytest.raises(EmitError, match="file write"):
            emit(_image(b'\x22'), _BrokenSink(fail_after=25), "ret.hex", timestamp=STAMP)

    def test_write_file(self, tmp_path):
        path = write_vhdl_file(_image(b'\xE4\x22'), tmp_path / "rom.vhd", "p.hex",
                               timestamp=STAMP)
        assert path.read_text() == render_vhdl(_image(b'\xE4\x22'), "p.hex",
                                               timestamp=STAMP)

    def test_open_failure(self, tmp_path):
        with pytest.raises(EmitError, match="file open"):
            write_vhdl_file(_image(b'\x00'), tmp_path / "missing" / "rom.vhd", "p.hex")


def test_convert_hex_pipeline():
    from i8052_rom import convert_hex
    text = convert_hex(make_record(0, b'\x22') + "\n" + EOF_RECORD + "\n", "r.hex",
                       timestamp=STAMP)
    assert text == render_vhdl(_image(b'\x22'), "r.hex", timestamp=STAMP)


def test_default_profile():
    from i8052_rom.profiles import get_profile
    rom = get_profile()
    assert rom["capacity"] == 4096
    assert 1 << rom["address_bits"] == rom["capacity"]
    assert rom["output"] == "i8052_rom.vhd"


def test_write_file_rejects_empty_image(tmp_path):
    path = tmp_path / "rom.vhd"
    with pytest.raises(ValueError, match="empty ROM image"):
        write_vhdl_file(RomImage(), path, "p.hex", timestamp=STAMP)
    assert not path.exists()


def test_convert_hex_frames_lines_like_files(tmp_path):
    """Only newline terminators split records; form feeds stay in the line."""
    from i8052_rom import convert_hex
    from i8052_rom.ihex import HexFormatError
    from i8052_rom.rom_image import load_hex_file
    text = make_record(0, b'\x22') + "\x0c\n" + EOF_RECORD + "\n"
    with pytest.raises(HexFormatError) as from_text:
        convert_hex(text, "r.hex", timestamp=STAMP)
    path = tmp_path / "r.hex"
    path.write_bytes(text.encode("ascii"))
    with pytest.raises(HexFormatError) as from_file:
        load_hex_file(path)
    assert from_text.value.line_num == from_file.value.line_num == 1


def test_convert_hex_crlf():
    from i8052_rom import convert_hex
    text = make_record(0, b'\x22') + "\r\n" + EOF_RECORD + "\r\n"
    assert convert_hex(text, "r.hex", timestamp=STAMP) == \
        render_vhdl(_image(b'\x22'), "r.hex", timestamp=STAMP)
