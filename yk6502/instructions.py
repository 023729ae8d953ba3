"""Opcode decoding and the semantics of every instruction.

Handlers work on a processor object that provides the registers ``a``, ``x``,
``y``, ``sp``, ``pc`` and ``ps``, a writable ``cycles`` count, and the methods
``read``, ``write``, ``push_byte``, ``push_word``, ``pop_byte``, ``pop_word``,
``get_flag``, ``set_flag``, ``clear_flag``, ``assign_flag`` and
``fetch_operand``.  ``fetch_operand(mode)`` consumes the operand bytes after
the opcode and returns ``(address, value, page_crossed)``.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

from .constants import MAX_BYTE, MAX_WORD, AddressingMode, Bit, Opcode

_M = AddressingMode

Handler = Callable[[Any, AddressingMode, int, int, bool], int]

_SUFFIX_MODES = {
    "IMP": _M.IMPLICIT,
    "ACC": _M.ACCUMULATOR,
    "IMM": _M.IMMEDIATE,
    "ZP": _M.ZERO_PAGE,
    "ZPX": _M.ZERO_PAGE_X,
    "ZPY": _M.ZERO_PAGE_Y,
    "REL": _M.RELATIVE,
    "AB": _M.ABSOLUTE,
    "ABX": _M.ABSOLUTE_X,
    "ABY": _M.ABSOLUTE_Y,
    "ID": _M.INDIRECT,
    "IDX": _M.INDIRECT_X,
    "IDY": _M.INDIRECT_Y,
}


def _decode(opcode: Opcode) -> tuple[str, AddressingMode]:
    mnemonic, suffix = opcode.name.split("_")
    return mnemonic.lower(), _SUFFIX_MODES[suffix]


_TABLE: dict[int, tuple[str, AddressingMode]] = {int(op): _decode(op) for op in Opcode}

# Cycle counts per addressing mode; modes missing from a table cost nothing.
_ALU = {
    _M.IMMEDIATE: 2, _M.ZERO_PAGE: 3, _M.ZERO_PAGE_X: 4, _M.ABSOLUTE: 4,
    _M.ABSOLUTE_X: 4, _M.ABSOLUTE_Y: 4, _M.INDIRECT_X: 6, _M.INDIRECT_Y: 5,
}
_PAGED_ALU = frozenset({_M.ABSOLUTE_X, _M.ABSOLUTE_Y, _M.INDIRECT_Y})
_PAGED_ABS = frozenset({_M.ABSOLUTE_X, _M.ABSOLUTE_Y})
_SHIFT = {_M.ACCUMULATOR: 2, _M.ZERO_PAGE: 5, _M.ZERO_PAGE_X: 6, _M.ABSOLUTE: 6, _M.ABSOLUTE_X: 7}
_MEMORY_STEP = {_M.ZERO_PAGE: 5, _M.ZERO_PAGE_X: 6, _M.ABSOLUTE: 6, _M.ABSOLUTE_X: 7}
_INDEX_COMPARE = {_M.IMMEDIATE: 2, _M.ZERO_PAGE: 3, _M.ABSOLUTE: 4}
_LDX = {_M.IMMEDIATE: 2, _M.ZERO_PAGE: 3, _M.ZERO_PAGE_Y: 4, _M.ABSOLUTE: 4, _M.ABSOLUTE_Y: 4}
_LDY = {_M.IMMEDIATE: 2, _M.ZERO_PAGE: 3, _M.ZERO_PAGE_X: 4, _M.ABSOLUTE: 4, _M.ABSOLUTE_X: 4}
_STA = {
    _M.ZERO_PAGE: 3, _M.ZERO_PAGE_X: 4, _M.ABSOLUTE: 4, _M.ABSOLUTE_X: 5,
    _M.ABSOLUTE_Y: 5, _M.INDIRECT_X: 6, _M.INDIRECT_Y: 6,
}
_STORE_INDEX = {_M.ZERO_PAGE: 3, _M.ZERO_PAGE_Y: 4, _M.ABSOLUTE: 4}
_BIT = {_M.ZERO_PAGE: 3, _M.ABSOLUTE: 4}
_JMP = {_M.ABSOLUTE: 3, _M.INDIRECT: 5}
_JSR = {_M.ABSOLUTE: 6}


def _timing(
    mode: AddressingMode,
    table: Mapping[AddressingMode, int],
    crossed: bool = False,
    paged: frozenset[AddressingMode] = frozenset(),
) -> int:
    cycles = table.get(mode, 0)
    if mode in paged and crossed:
        cycles += 1
    return cycles


def _implicit(mode: AddressingMode, cycles: int) -> int:
    return cycles if mode == _M.IMPLICIT else 0


def _set_nz(cpu: Any, result: int) -> None:
    cpu.assign_flag(Bit.ZERO, result == 0)
    cpu.assign_flag(Bit.NEGATIVE, bool(result & 0x80))


def _signed(value: int) -> int:
    return value - 0x100 if value & 0x80 else value


# --- arithmetic and logic -------------------------------------------------

def _adc(cpu, mode, address, value, crossed):
    a = cpu.a
    result = (a + value + cpu.get_flag(Bit.CARRY)) & MAX_BYTE
    cpu.assign_flag(Bit.CARRY, result < a)
    cpu.assign_flag(Bit.ZERO, result == 0)
    cpu.assign_flag(Bit.OVERFLOW, bool((a ^ result) & ~(a ^ value) & 0x80))
    cpu.assign_flag(Bit.NEGATIVE, bool(result & 0x80))
    cpu.a = result
    return _timing(mode, _ALU, crossed, _PAGED_ALU)


def _sbc(cpu, mode, address, value, crossed):
    a = cpu.a
    result = (a - value - (1 - cpu.get_flag(Bit.CARRY))) & MAX_BYTE
    cpu.assign_flag(Bit.CARRY, result < a)
    cpu.assign_flag(Bit.ZERO, result == 0)
    cpu.assign_flag(Bit.OVERFLOW, bool((a ^ result) & ~(a ^ value) & 0x80))
    cpu.assign_flag(Bit.NEGATIVE, bool(result & 0x80))
    cpu.a = result
    return _timing(mode, _ALU, crossed, _PAGED_ALU)


def _and(cpu, mode, address, value, crossed):
    cpu.a &= value
    _set_nz(cpu, cpu.a)
    return _timing(mode, _ALU, crossed, _PAGED_ABS)


def _eor(cpu, mode, address, value, crossed):
    cpu.a ^= value
    _set_nz(cpu, cpu.a)
    return _timing(mode, _ALU, crossed, _PAGED_ALU)


def _ora(cpu, mode, address, value, crossed):
    cpu.a |= value
    _set_nz(cpu, cpu.a)
    return _timing(mode, _ALU, crossed, _PAGED_ALU)


def _bit(cpu, mode, address, value, crossed):
    cpu.assign_flag(Bit.ZERO, (cpu.a & value) == 0)
    cpu.assign_flag(Bit.OVERFLOW, bool(value & 0x40))
    cpu.assign_flag(Bit.NEGATIVE, bool(value & 0x80))
    return _timing(mode, _BIT)


def _cmp(cpu, mode, address, value, crossed):
    a = cpu.a
    cpu.assign_flag(Bit.CARRY, a >= value)
    cpu.assign_flag(Bit.ZERO, a == value)
    cpu.assign_flag(Bit.NEGATIVE, (a - value) >> 7 == 1)
    return _timing(mode, _ALU, crossed, _PAGED_ALU)


def _compare_index(register: str) -> Handler:
    def handler(cpu, mode, address, value, crossed):
        reg = getattr(cpu, register)
        cpu.assign_flag(Bit.CARRY, reg >= value)
        cpu.assign_flag(Bit.ZERO, reg == value)
        cpu.assign_flag(Bit.NEGATIVE, bool((reg - value) & 0x80))
        return _timing(mode, _INDEX_COMPARE)

    return handler


# --- shifts and rotates (they take their input from the accumulator) ------

def _store_shift(cpu, mode, address, result):
    if mode == _M.ACCUMULATOR:
        cpu.a = result
    elif mode in _SHIFT:
        cpu.write(address, result)
    return _SHIFT.get(mode, 0)


def _asl(cpu, mode, address, value, crossed):
    a = cpu.a
    result = (a << 1) & MAX_BYTE
    cpu.assign_flag(Bit.CARRY, bool(a & 0x80))
    _set_nz(cpu, result)
    return _store_shift(cpu, mode, address, result)


def _lsr(cpu, mode, address, value, crossed):
    a = cpu.a
    result = a >> 1
    cpu.assign_flag(Bit.CARRY, bool(a & 0x01))
    _set_nz(cpu, result)
    return _store_shift(cpu, mode, address, result)


def _rol(cpu, mode, address, value, crossed):
    a = cpu.a
    result = ((a << 1) | cpu.get_flag(Bit.CARRY)) & MAX_BYTE
    cpu.assign_flag(Bit.CARRY, bool(a & 0x80))
    _set_nz(cpu, result)
    return _store_shift(cpu, mode, address, result)


def _ror(cpu, mode, address, value, crossed):
    a = cpu.a
    result = (a >> 1) | (cpu.get_flag(Bit.CARRY) << 7)
    cpu.assign_flag(Bit.CARRY, bool(a & 0x01))
    _set_nz(cpu, result)
    return _store_shift(cpu, mode, address, result)


# --- increments and decrements -------------------------------------------

def _inc(cpu, mode, address, value, crossed):
    result = (value + 1) & MAX_BYTE
    _set_nz(cpu, result)
    cpu.write(address, result)
    return _timing(mode, _MEMORY_STEP)


def _dec(cpu, mode, address, value, crossed):
    result = (value - 1) & MAX_BYTE
    _set_nz(cpu, result)
    cpu.write(address, result)
    return _timing(mode, _MEMORY_STEP)


def _increment(register: str) -> Handler:
    def handler(cpu, mode, address, value, crossed):
        result = (getattr(cpu, register) + 1) & MAX_BYTE
        setattr(cpu, register, result)
        _set_nz(cpu, result)
        return _implicit(mode, 2)

    return handler


def _decrement(register: str) -> Handler:
    # Flags are taken from the register minus one once more, after the decrement.
    def handler(cpu, mode, address, value, crossed):
        result = (getattr(cpu, register) - 1) & MAX_BYTE
        setattr(cpu, register, result)
        cpu.assign_flag(Bit.ZERO, result - 1 == 0)
        cpu.assign_flag(Bit.NEGATIVE, bool((result - 1) & 0x80))
        return _implicit(mode, 2)

    return handler


# --- loads, stores and transfers ------------------------------------------

def _load(register: str, table, paged) -> Handler:
    def handler(cpu, mode, address, value, crossed):
        setattr(cpu, register, value)
        _set_nz(cpu, value)
        return _timing(mode, table, crossed, paged)

    return handler


def _store(register: str, table) -> Handler:
    def handler(cpu, mode, address, value, crossed):
        cpu.write(address, getattr(cpu, register))
        return _timing(mode, table)

    return handler


def _transfer(source: str, target: str, flags: bool = True) -> Handler:
    def handler(cpu, mode, address, value, crossed):
        result = getattr(cpu, source)
        setattr(cpu, target, result)
        if flags:
            _set_nz(cpu, result)
        return _implicit(mode, 2)

    return handler


# --- stack ----------------------------------------------------------------

def _pha(cpu, mode, address, value, crossed):
    cpu.push_byte(cpu.a)
    return _implicit(mode, 3)


def _php(cpu, mode, address, value, crossed):
    cpu.push_byte(cpu.ps)
    return _implicit(mode, 3)


def _pla(cpu, mode, address, value, crossed):
    result = cpu.pop_byte()
    cpu.assign_flag(Bit.ZERO, result == 0)
    # Only the sign bit of the pulled value survives in the accumulator.
    cpu.a = result & 0x80
    cpu.assign_flag(Bit.NEGATIVE, bool(cpu.a))
    return _implicit(mode, 4)


def _plp(cpu, mode, address, value, crossed):
    cpu.ps = cpu.pop_byte()
    cpu.set_flag(Bit.UNUSED)
    return _implicit(mode, 4)


# --- control flow ---------------------------------------------------------

def _branch_on(bit: Bit, state: int) -> Handler:
    def handler(cpu, mode, address, value, crossed):
        taken = cpu.get_flag(bit) == state
        if taken:
            cpu.pc = (cpu.pc + _signed(value)) & MAX_WORD
        if mode != _M.RELATIVE:
            return 0
        # The old program counter is kept to eight bits only, so every branch
        # that ends beyond page zero counts as crossing a page.
        return 2 + (cpu.pc > MAX_BYTE) + taken

    return handler


def _jmp(cpu, mode, address, value, crossed):
    cpu.pc = address
    return _timing(mode, _JMP)


def _jsr(cpu, mode, address, value, crossed):
    cpu.push_word((cpu.pc - 1) & MAX_WORD)
    cpu.pc = address
    return _timing(mode, _JSR)


def _rts(cpu, mode, address, value, crossed):
    cpu.pc = (cpu.pop_word() + 1) & MAX_WORD
    return _implicit(mode, 6)


def _rti(cpu, mode, address, value, crossed):
    cpu.ps = cpu.pop_byte()
    cpu.set_flag(Bit.UNUSED)
    cpu.pc = (cpu.pop_word() + 1) & MAX_WORD
    return _implicit(mode, 6)


def _brk(cpu, mode, address, value, crossed):
    cpu.set_flag(Bit.BREAK)
    return _implicit(mode, 7)


def _nop(cpu, mode, address, value, crossed):
    return _implicit(mode, 2)


def _flag_op(bit: Bit, on: bool) -> Handler:
    def handler(cpu, mode, address, value, crossed):
        cpu.assign_flag(bit, on)
        return _implicit(mode, 2)

    return handler


_HANDLERS: dict[str, Handler] = {
    "adc": _adc, "and": _and, "asl": _asl,
    "bcc": _branch_on(Bit.CARRY, 0), "bcs": _branch_on(Bit.CARRY, 1),
    "beq": _branch_on(Bit.ZERO, 1), "bne": _branch_on(Bit.ZERO, 0),
    "bmi": _branch_on(Bit.NEGATIVE, 1), "bpl": _branch_on(Bit.NEGATIVE, 0),
    "bvc": _branch_on(Bit.OVERFLOW, 0), "bvs": _branch_on(Bit.OVERFLOW, 1),
    "bit": _bit, "brk": _brk,
    "clc": _flag_op(Bit.CARRY, False), "cld": _flag_op(Bit.DECIMAL, False),
    "cli": _flag_op(Bit.INTERRUPT, False), "clv": _flag_op(Bit.OVERFLOW, False),
    "sec": _flag_op(Bit.CARRY, True), "sed": _flag_op(Bit.DECIMAL, True),
    "sei": _flag_op(Bit.INTERRUPT, True),
    "cmp": _cmp, "cpx": _compare_index("x"), "cpy": _compare_index("y"),
    "dec": _dec, "dex": _decrement("x"), "dey": _decrement("y"),
    "inc": _inc, "inx": _increment("x"), "iny": _increment("y"),
    "eor": _eor, "ora": _ora, "sbc": _sbc,
    "jmp": _jmp, "jsr": _jsr, "rts": _rts, "rti": _rti,
    "lda": _load("a", _ALU, _PAGED_ABS),
    "ldx": _load("x", _LDX, frozenset({_M.ABSOLUTE_Y})),
    "ldy": _load("y", _LDY, frozenset({_M.ABSOLUTE_X})),
    "lsr": _lsr, "rol": _rol, "ror": _ror, "nop": _nop,
    "pha": _pha, "php": _php, "pla": _pla, "plp": _plp,
    "sta": _store("a", _STA), "stx": _store("x", _STORE_INDEX),
    "sty": _store("y", _STORE_INDEX),
    "tax": _transfer("a", "x"), "tay": _transfer("a", "y"),
    "tsx": _transfer("sp", "x"), "txa": _transfer("x", "a"),
    "txs": _transfer("x", "sp", flags=False), "tya": _transfer("y", "a"),
}


def lookup(opcode: int) -> tuple[str, AddressingMode]:
    """Return the mnemonic and addressing mode of an opcode byte.

    Raises KeyError for a byte that is not a known opcode.
    """
    try:
        return _TABLE[int(opcode)]
    except KeyError:
        raise KeyError(f"unknown opcode ${int(opcode) & MAX_BYTE:02X}") from None


def execute(cpu: Any, opcode: int) -> bool:
    """Run one already-fetched opcode on cpu and record its cycle count.

    Returns False when execution should stop: on BRK or an unknown opcode.
    """
    try:
        mnemonic, mode = lookup(opcode)
    except KeyError:
        return False
    address, value, crossed = cpu.fetch_operand(mode)
    cpu.cycles = _HANDLERS[mnemonic](cpu, mode, address, value, crossed)
    return mnemonic != "brk"