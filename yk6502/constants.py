"""Machine constants: addressing modes, status bits, opcodes and lookup tables."""

from __future__ import annotations

from enum import Enum, IntEnum

RAM_SIZE = 64 * 1024
GRID_SIZE = 32
MAX_BYTE = 0xFF
MAX_WORD = 0xFFFF
SCREEN_START = 0x0200


class AddressingMode(IntEnum):
    """Operand addressing modes, plus the pseudo-modes used by the assembler."""

    IMPLICIT = 0
    ACCUMULATOR = 1
    IMMEDIATE = 2
    ZERO_PAGE = 3
    ZERO_PAGE_X = 4
    ZERO_PAGE_Y = 5
    RELATIVE = 6
    ABSOLUTE = 7
    ABSOLUTE_X = 8
    ABSOLUTE_Y = 9
    INDIRECT = 10
    INDIRECT_X = 11
    INDIRECT_Y = 12
    ERROR = 13
    LABEL = 14
    DEFINE = 15


class Bit(IntEnum):
    """Bit positions in the processor status register."""

    CARRY = 0
    ZERO = 1
    INTERRUPT = 2
    DECIMAL = 3
    BREAK = 4
    UNUSED = 5
    OVERFLOW = 6
    NEGATIVE = 7


class Radix(Enum):
    """Number bases recognised in assembler operands."""

    BIN = 2
    OCT = 8
    DEC = 10
    HEX = 16
    ERR = 0


class Opcode(IntEnum):
    """Machine opcodes, named by mnemonic and addressing mode."""

    ADC_IMM = 0x69
    ADC_ZP = 0x65
    ADC_ZPX = 0x75
    ADC_AB = 0x6D
    ADC_ABX = 0x7D
    ADC_ABY = 0x79
    ADC_IDX = 0x61
    ADC_IDY = 0x71
    AND_IMM = 0x29
    AND_ZP = 0x25
    AND_ZPX = 0x35
    AND_AB = 0x2D
    AND_ABX = 0x3D
    AND_ABY = 0x39
    AND_IDX = 0x21
    AND_IDY = 0x31
    ASL_ACC = 0x0A
    ASL_ZP = 0x06
    ASL_ZPX = 0x16
    ASL_AB = 0x0E
    ASL_ABX = 0x1E
    BCC_REL = 0x90
    BCS_REL = 0xB0
    BEQ_REL = 0xF0
    BIT_ZP = 0x24
    BIT_AB = 0x2C
    BMI_REL = 0x30
    BNE_REL = 0xD0
    BPL_REL = 0x10
    BRK_IMP = 0x00
    BVC_REL = 0x50
    BVS_REL = 0x70
    CLC_IMP = 0x18
    CLD_IMP = 0xD8
    CLI_IMP = 0x58
    CLV_IMP = 0xB8
    CMP_IMM = 0xC9
    CMP_ZP = 0xC5
    CMP_ZPX = 0xD5
    CMP_AB = 0xCD
    CMP_ABX = 0xDD
    CMP_ABY = 0xD9
    CMP_IDX = 0xC1
    CMP_IDY = 0xD1
    CPX_IMM = 0xE0
    CPX_ZP = 0xE4
    CPX_AB = 0xEC
    CPY_IMM = 0xC0
    CPY_ZP = 0xC4
    CPY_AB = 0xCC
    DEC_ZP = 0xC6
    DEC_ZPX = 0xD6
    DEC_AB = 0xCE
    DEC_ABX = 0xDE
    DEX_IMP = 0xCA
    DEY_IMP = 0x88
    EOR_IMM = 0x49
    EOR_ZP = 0x45
    EOR_ZPX = 0x55
    EOR_AB = 0x4D
    EOR_ABX = 0x5D
    EOR_ABY = 0x59
    EOR_IDX = 0x41
    EOR_IDY = 0x51
    INC_ZP = 0xE6
    INC_ZPX = 0xF6
    INC_AB = 0xEE
    INC_ABX = 0xFE
    INX_IMP = 0xE8
    INY_IMP = 0xC8
    JMP_AB = 0x4C
    JMP_ID = 0x6C
    JSR_AB = 0x20
    LDA_IMM = 0xA9
    LDA_ZP = 0xA5
    LDA_ZPX = 0xB5
    LDA_AB = 0xAD
    LDA_ABX = 0xBD
    LDA_ABY = 0xB9
    LDA_IDX = 0xA1
    LDA_IDY = 0xB1
    LDX_IMM = 0xA2
    LDX_ZP = 0xA6
    LDX_ZPY = 0xB6
    LDX_AB = 0xAE
    LDX_ABY = 0xBE
    LDY_IMM = 0xA0
    LDY_ZP = 0xA4
    LDY_ZPX = 0xB4
    LDY_AB = 0xAC
    LDY_ABX = 0xBC
    LSR_ACC = 0x4A
    LSR_ZP = 0x46
    LSR_ZPX = 0x56
    LSR_AB = 0x4E
    LSR_ABX = 0x5E
    NOP_IMP = 0xEA
    ORA_IMM = 0x09
    ORA_ZP = 0x05
    ORA_ZPX = 0x15
    ORA_AB = 0x0D
    ORA_ABX = 0x1D
    ORA_ABY = 0x19
    ORA_IDX = 0x01
    ORA_IDY = 0x11
    PHA_IMP = 0x48
    PHP_IMP = 0x08
    PLA_IMP = 0x68
    PLP_IMP = 0x28
    ROL_ACC = 0x2A
    ROL_ZP = 0x26
    ROL_ZPX = 0x36
    ROL_AB = 0x2E
    ROL_ABX = 0x3E
    ROR_ACC = 0x6A
    ROR_ZP = 0x66
    ROR_ZPX = 0x76
    ROR_AB = 0x6E
    ROR_ABX = 0x7E
    RTI_IMP = 0x40
    RTS_IMP = 0x60
    SBC_IMM = 0xE9
    SBC_ZP = 0xE5
    SBC_ZPX = 0xF5
    SBC_AB = 0xED
    SBC_ABX = 0xFD
    SBC_ABY = 0xF9
    SBC_IDX = 0xE1
    SBC_IDY = 0xF1
    SEC_IMP = 0x38
    SED_IMP = 0xF8
    SEI_IMP = 0x78
    STA_ZP = 0x85
    STA_ZPX = 0x95
    STA_AB = 0x8D
    STA_ABX = 0x9D
    STA_ABY = 0x99
    STA_IDX = 0x81
    STA_IDY = 0x91
    STX_ZP = 0x86
    STX_ZPY = 0x96
    STX_AB = 0x8E
    STY_ZP = 0x84
    STY_ZPX = 0x94
    STY_AB = 0x8C
    TAX_IMP = 0xAA
    TAY_IMP = 0xA8
    TSX_IMP = 0xBA
    TXA_IMP = 0x8A
    TXS_IMP = 0x9A
    TYA_IMP = 0x98


_M = AddressingMode
_O = Opcode

_MODE_SIZES: dict[AddressingMode, int] = {
    _M.IMPLICIT: 1,
    _M.ACCUMULATOR: 1,
    _M.IMMEDIATE: 2,
    _M.ZERO_PAGE: 2,
    _M.ZERO_PAGE_X: 2,
    _M.ZERO_PAGE_Y: 2,
    _M.RELATIVE: 2,
    _M.ABSOLUTE: 3,
    _M.ABSOLUTE_X: 3,
    _M.ABSOLUTE_Y: 3,
    _M.INDIRECT: 3,
    _M.INDIRECT_X: 2,
    _M.INDIRECT_Y: 2,
    _M.ERROR: 0,
    _M.LABEL: 0,
    _M.DEFINE: 0,
}

_ALU_MODES = (
    _M.IMMEDIATE, _M.ZERO_PAGE, _M.ZERO_PAGE_X, _M.ABSOLUTE,
    _M.ABSOLUTE_X, _M.ABSOLUTE_Y, _M.INDIRECT_X, _M.INDIRECT_Y,
)
_SHIFT_MODES = (_M.ACCUMULATOR, _M.ZERO_PAGE, _M.ZERO_PAGE_X, _M.ABSOLUTE, _M.ABSOLUTE_X)
_SUFFIX = {
    _M.IMPLICIT: "IMP",
    _M.ACCUMULATOR: "ACC",
    _M.IMMEDIATE: "IMM",
    _M.ZERO_PAGE: "ZP",
    _M.ZERO_PAGE_X: "ZPX",
    _M.ZERO_PAGE_Y: "ZPY",
    _M.RELATIVE: "REL",
    _M.ABSOLUTE: "AB",
    _M.ABSOLUTE_X: "ABX",
    _M.ABSOLUTE_Y: "ABY",
    _M.INDIRECT: "ID",
    _M.INDIRECT_X: "IDX",
    _M.INDIRECT_Y: "IDY",
}

_MNEMONIC_MODES: dict[str, tuple[AddressingMode, ...]] = {
    "adc": _ALU_MODES,
    "and": _ALU_MODES,
    "asl": _SHIFT_MODES,
    "bcc": (_M.RELATIVE,),
    "bcs": (_M.RELATIVE,),
    "beq": (_M.RELATIVE,),
    "bit": (_M.ZERO_PAGE, _M.ABSOLUTE),
    "bmi": (_M.RELATIVE,),
    "bne": (_M.RELATIVE,),
    "bpl": (_M.RELATIVE,),
    "brk": (_M.IMPLICIT,),
    "bvc": (_M.RELATIVE,),
    "bvs": (_M.RELATIVE,),
    "clc": (_M.IMPLICIT,),
    "cld": (_M.IMPLICIT,),
    "cli": (_M.IMPLICIT,),
    "clv": (_M.IMPLICIT,),
    "cmp": _ALU_MODES,
    "cpx": (_M.IMMEDIATE, _M.ZERO_PAGE, _M.ABSOLUTE),
    "cpy": (_M.IMMEDIATE, _M.ZERO_PAGE, _M.ABSOLUTE),
    "dec": (_M.ZERO_PAGE, _M.ZERO_PAGE_X, _M.ABSOLUTE, _M.ABSOLUTE_X),
    "dex": (_M.IMPLICIT,),
    "dey": (_M.IMPLICIT,),
    "eor": _ALU_MODES,
    "inc": (_M.ZERO_PAGE, _M.ZERO_PAGE_X, _M.ABSOLUTE, _M.ABSOLUTE_X),
    "inx": (_M.IMPLICIT,),
    "iny": (_M.IMPLICIT,),
    "jmp": (_M.ABSOLUTE, _M.INDIRECT),
    "jsr": (_M.ABSOLUTE,),
    "lda": _ALU_MODES,
    "ldx": (_M.IMMEDIATE, _M.ZERO_PAGE, _M.ZERO_PAGE_Y, _M.ABSOLUTE, _M.ABSOLUTE_Y),
    "ldy": (_M.IMMEDIATE, _M.ZERO_PAGE, _M.ZERO_PAGE_X, _M.ABSOLUTE, _M.ABSOLUTE_X),
    "lsr": _SHIFT_MODES,
    "nop": (_M.IMPLICIT,),
    "ora": _ALU_MODES,
    "pha": (_M.IMPLICIT,),
    "php": (_M.IMPLICIT,),
    "pla": (_M.IMPLICIT,),
    "plp": (_M.IMPLICIT,),
    "rol": _SHIFT_MODES,
    "ror": _SHIFT_MODES,
    "rti": (_M.IMPLICIT,),
    "rts": (_M.IMPLICIT,),
    "sbc": _ALU_MODES,
    "sec": (_M.IMPLICIT,),
    "sed": (_M.IMPLICIT,),
    "sei": (_M.IMPLICIT,),
    "sta": _ALU_MODES[1:],
    "stx": (_M.ZERO_PAGE, _M.ZERO_PAGE_Y, _M.ABSOLUTE),
    "sty": (_M.ZERO_PAGE, _M.ZERO_PAGE_X, _M.ABSOLUTE),
    "tax": (_M.IMPLICIT,),
    "tay": (_M.IMPLICIT,),
    "tsx": (_M.IMPLICIT,),
    "txa": (_M.IMPLICIT,),
    "txs": (_M.IMPLICIT,),
    "tya": (_M.IMPLICIT,),
}

# Mnemonic -> {addressing mode: opcode}, in the order the modes are tried.
ADDRESSING_MODES: dict[str, dict[AddressingMode, Opcode]] = {
    mnemonic: {mode: Opcode[f"{mnemonic.upper()}_{_SUFFIX[mode]}"] for mode in modes}
    for mnemonic, modes in _MNEMONIC_MODES.items()
}

COLORS: tuple[str, ...] = (
    "000000",  # black
    "FFFFFF",  # white
    "880000",  # dark red
    "AAFFEE",  # light cyan
    "CC44CC",  # purple
    "00CC55",  # green
    "0000AA",  # blue
    "EEEE77",  # yellow
    "DD8855",  # orange
    "664400",  # brown
    "FF7777",  # pink
    "333333",  # dark gray
    "777777",  # gray
    "AAFF66",  # light green
    "0088FF",  # sky blue
    "BBBBBB",  # light gray
)


def mode_size(mode: AddressingMode) -> int:
    """Return how many bytes an instruction in the given mode occupies."""
    return _MODE_SIZES.get(AddressingMode(mode), 0)


def color_rgb(value: int) -> tuple[int, int, int]:
    """Return the (red, green, blue) colour for a screen byte; only the low nibble counts."""
    rgb = COLORS[value % 0x10]
    return int(rgb[0:2], 16), int(rgb[2:4], 16), int(rgb[4:6], 16)