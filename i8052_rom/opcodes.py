"""
8051/8052 Instruction Format Table and Opcode Matcher.

Each entry describes one instruction form by the fixed bits it carries
inside a single opcode byte:

    bit:      7   6   5   4   3   2   1   0
              ----------- window -----------
    ADD_1:    0   0   1   0   1 | r   r   r      msb=7 lsb=3  pattern "00101"
    ACALL:    a   a   a | 1   0   0   0   1      msb=4 lsb=0  pattern "10001"

Bits outside [lsb, msb] are register selectors, addressing-mode bits or
embedded address bits and are ignored when matching.  ``skip`` is the number
of operand bytes that follow the opcode.

Table order is authoritative: the first entry whose window matches wins.

Reference: Intel MCS-51 User's Manual, Instruction Set chapter.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
import logging

__all__ = [
    'InstructionFormat', 'MatchResult', 'InstructionMatcher',
    'INSTRUCTION_TABLE', 'match_opcode', 'find_overlaps', 'byte_to_bits',
]

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstructionFormat:
    """One instruction form: mnemonic, identifying bit pattern and window."""
    mnemonic: str
    pattern: str
    msb: int
    lsb: int
    skip: int

    def __post_init__(self):
        if not (0 <= self.lsb <= self.msb <= 7):
            raise ValueError(
                f"{self.mnemonic}: bad bit window [{self.lsb}, {self.msb}]")
        if len(self.pattern) != self.msb - self.lsb + 1:
            raise ValueError(
                f"{self.mnemonic}: pattern '{self.pattern}' does not fill "
                f"window [{self.lsb}, {self.msb}]")
        if set(self.pattern) - {'0', '1'}:
            raise ValueError(f"{self.mnemonic}: pattern '{self.pattern}' is not binary")
        if self.skip < 0:
            raise ValueError(f"{self.mnemonic}: negative operand skip")

    def field(self, bits: str) -> str:
        """Slice this form's window out of an 8-character MSB-first bit string."""
        return bits[7 - self.msb:8 - self.lsb]

    def matches(self, bits: str) -> bool:
        return self.field(bits) == self.pattern


@dataclass(frozen=True)
class MatchResult:
    mnemonic: str
    skip: int


def byte_to_bits(value: int) -> str:
    """Render a byte as 8 binary digits, most significant bit first."""
    if not 0 <= value <= 0xFF:
        raise ValueError(f"not a byte: {value}")
    return format(value, '08b')


# ──────────────────────────────────────────────
# 8052 Instruction Table
# ──────────────────────────────────────────────
# Format: _form(MNEMONIC, PATTERN, MSB, LSB, OPERAND_BYTES)
#
# Numbered suffixes distinguish addressing forms of the same mnemonic
# (ADD_1 = ADD A,Rn / ADD_2 = ADD A,direct / ...).

_TABLE: List[InstructionFormat] = []

def _form(mnemonic: str, pattern: str, msb: int, lsb: int, skip: int):
    """Register an instruction form at the end of the table."""
    _TABLE.append(InstructionFormat(mnemonic, pattern, msb, lsb, skip))

# ── Absolute call / jump (11-bit address, top 3 bits in opcode) ──
_form('ACALL',  '10001',    4, 0, 1)

# ── Arithmetic ──
_form('ADD_1',  '00101',    7, 3, 0)   # ADD A,Rn
_form('ADD_2',  '00100101', 7, 0, 1)   # ADD A,direct
_form('ADD_3',  '0010011',  7, 1, 0)   # ADD A,@Ri
_form('ADD_4',  '00100100', 7, 0, 1)   # ADD A,#data
_form('ADDC_1', '00111',    7, 3, 0)
_form('ADDC_2', '00110101', 7, 0, 1)
_form('ADDC_3', '0011011',  7, 1, 0)
_form('ADDC_4', '00110100', 7, 0, 1)
_form('AJMP',   '00001',    4, 0, 1)

# ── Logical AND ──
_form('ANL_1',  '01011',    7, 3, 0)
_form('ANL_2',  '01010101', 7, 0, 1)
_form('ANL_3',  '0101011',  7, 1, 0)
_form('ANL_4',  '01010100', 7, 0, 1)
_form('ANL_5',  '01010010', 7, 0, 1)
_form('ANL_6',  '01010011', 7, 0, 2)
_form('ANL_7',  '10000010', 7, 0, 1)   # ANL C,bit
_form('ANL_8',  '10110000', 7, 0, 1)   # ANL C,/bit

# ── Compare and jump ──
_form('CJNE_1', '10110101', 7, 0, 2)
_form('CJNE_2', '10110100', 7, 0, 2)
_form('CJNE_3', '10111',    7, 3, 2)
_form('CJNE_4', '1011011',  7, 1, 2)

# ── Clear / complement / adjust ──
_form('CLR_1',  '11100100', 7, 0, 0)
_form('CLR_2',  '11000011', 7, 0, 0)
_form('CLR_3',  '11000010', 7, 0, 1)
_form('CPL_1',  '11110100', 7, 0, 0)
_form('CPL_2',  '10110011', 7, 0, 0)
_form('CPL_3',  '10110010', 7, 0, 1)
_form('DA',     '11010100', 7, 0, 0)

# ── Decrement / divide / loop ──
_form('DEC_1',  '00010100', 7, 0, 0)
_form('DEC_2',  '00011',    7, 3, 0)
_form('DEC_3',  '00010101', 7, 0, 1)
_form('DEC_4',  '0001011',  7, 1, 0)
_form('DIV',    '10000100', 7, 0, 0)
_form('DJNZ_1', '11011',    7, 3, 1)
_form('DJNZ_2', '11010101', 7, 0, 2)

# ── Increment ──
_form('INC_1',  '00000100', 7, 0, 0)
_form('INC_2',  '00001',    7, 3, 0)
_form('INC_3',  '00000101', 7, 0, 1)
_form('INC_4',  '0000011',  7, 1, 0)
_form('INC_5',  '10100011', 7, 0, 0)   # INC DPTR

# ── Conditional / unconditional jumps ──
_form('JB',     '00100000', 7, 0, 2)
_form('JBC',    '00010000', 7, 0, 2)
_form('JC',     '01000000', 7, 0, 1)
_form('JMP',    '01110011', 7, 0, 0)   # JMP @A+DPTR
_form('JNB',    '00110000', 7, 0, 2)
_form('JNC',    '01010000', 7, 0, 1)
_form('JNZ',    '01110000', 7, 0, 1)
_form('JZ',     '01100000', 7, 0, 1)
_form('LCALL',  '00010010', 7, 0, 2)
_form('LJMP',   '00000010', 7, 0, 2)

# ── Data transfer ──
_form('MOV_1',  '11101',    7, 3, 0)
_form('MOV_2',  '11100101', 7, 0, 1)
_form('MOV_3',  '1110011',  7, 1, 0)
_form('MOV_4',  '01110100', 7, 0, 1)
_form('MOV_5',  '11111',    7, 3, 0)
_form('MOV_6',  '10101',    7, 3, 1)
_form('MOV_7',  '01111',    7, 3, 1)
_form('MOV_8',  '11110101', 7, 0, 1)
_form('MOV_9',  '10001',    7, 3, 1)
_form('MOV_10', '10000101', 7, 0, 2)
_form('MOV_11', '1000011',  7, 1, 1)
_form('MOV_12', '01110101', 7, 0, 2)
_form('MOV_13', '1111011',  7, 1, 0)
_form('MOV_14', '1010011',  7, 1, 1)
_form('MOV_15', '0111011',  7, 1, 1)
_form('MOV_16', '10100010', 7, 0, 1)
_form('MOV_17', '10010010', 7, 0, 1)
_form('MOV_18', '10010000', 7, 0, 2)   # MOV DPTR,#data16
_form('MOVC_1', '10010011', 7, 0, 0)
_form('MOVC_2', '10000011', 7, 0, 0)
_form('MOVX_1', '1110001',  7, 1, 0)
_form('MOVX_2', '11100000', 7, 0, 0)
_form('MOVX_3', '1111001',  7, 1, 0)
_form('MOVX_4', '11110000', 7, 0, 0)
_form('MUL',    '10100100', 7, 0, 0)
_form('NOP',    '00000000', 7, 0, 0)

# ── Logical OR ──
_form('ORL_1',  '01001',    7, 3, 0)
_form('ORL_2',  '01000101', 7, 0, 1)
_form('ORL_3',  '0100011',  7, 1, 0)
_form('ORL_4',  '01000100', 7, 0, 1)
_form('ORL_5',  '01000010', 7, 0, 1)
_form('ORL_6',  '01000011', 7, 0, 2)
_form('ORL_7',  '01110010', 7, 0, 1)
_form('ORL_8',  '10100000', 7, 0, 1)

# ── Stack / return / rotate ──
_form('POP',    '11010000', 7, 0, 1)
_form('PUSH',   '11000000', 7, 0, 1)
_form('RET',    '00100010', 7, 0, 0)
_form('RETI',   '00110010', 7, 0, 0)
_form('RL',     '00100011', 7, 0, 0)
_form('RLC',    '00110011', 7, 0, 0)
_form('RR',     '00000011', 7, 0, 0)
_form('RRC',    '00010011', 7, 0, 0)

# ── Bit set / short jump / subtract ──
_form('SETB_1', '11010011', 7, 0, 0)
_form('SETB_2', '11010010', 7, 0, 1)
_form('SJMP',   '10000000', 7, 0, 1)
_form('SUBB_1', '10011',    7, 3, 0)
_form('SUBB_2', '10010101', 7, 0, 1)
_form('SUBB_3', '1001011',  7, 1, 0)
_form('SUBB_4', '10010100', 7, 0, 1)
_form('SWAP',   '11000100', 7, 0, 0)

# ── Exchange ──
_form('XCH_1',  '11001',    7, 3, 0)
_form('XCH_2',  '11000101', 7, 0, 1)
_form('XCH_3',  '1100011',  7, 1, 0)
_form('XCHD',   '1101011',  7, 1, 0)

# ── Logical XOR ──
_form('XRL_1',  '01101',    7, 3, 0)
_form('XRL_2',  '01100101', 7, 0, 1)
_form('XRL_3',  '0110011',  7, 1, 0)
_form('XRL_4',  '01100100', 7, 0, 1)
_form('XRL_5',  '01100010', 7, 0, 1)
_form('XRL_6',  '01100011', 7, 0, 2)

INSTRUCTION_TABLE: Tuple[InstructionFormat, ...] = tuple(_TABLE)
del _TABLE


class InstructionMatcher:
    """First-match lookup of an opcode byte against an instruction table."""

    def __init__(self, table: Sequence[InstructionFormat] = INSTRUCTION_TABLE):
        self.table = tuple(table)

    def match(self, value: int) -> Optional[MatchResult]:
        bits = byte_to_bits(value)
        for form in self.table:
            if form.matches(bits):
                return MatchResult(form.mnemonic, form.skip)
        return None


_default_matcher = InstructionMatcher()


def match_opcode(value: int) -> Optional[MatchResult]:
    """Match a byte against the built-in 8052 table."""
    return _default_matcher.match(value)


def find_overlaps(table: Sequence[InstructionFormat] = INSTRUCTION_TABLE
                  ) -> List[Tuple[InstructionFormat, InstructionFormat]]:
    """Return (winner, shadowed) entry pairs.

    A later entry is shadowed when some byte value matches it but an
    earlier entry matches the same byte first.  The shadowed entry is
    never reported for that byte.
    """
    overlaps = []
    seen = set()
    for value in range(256):
        bits = byte_to_bits(value)
        hits = [i for i, form in enumerate(table) if form.matches(bits)]
        for later in hits[1:]:
            pair = (hits[0], later)
            if pair not in seen:
                seen.add(pair)
                log.debug("Byte $%02X matches %s and %s", value,
                          table[hits[0]].mnemonic, table[later].mnemonic)
                overlaps.append((table[hits[0]], table[later]))
    return overlaps
