"""Two-pass assembler for the machine's assembly language.

Source lines are split on spaces and commas, lower-cased, and stripped of
``;`` comments.  The first pass records labels (``name:``) and constants
(``define name value``); the second gives every label its address; the third
encodes the instructions.  Numbers may be written as ``%binary``, ``@octal``,
plain decimal or ``$hexadecimal``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from .constants import (
    ADDRESSING_MODES,
    MAX_BYTE,
    MAX_WORD,
    AddressingMode,
    Radix,
    mode_size,
)
from .cpu import RESET_VECTOR

_M = AddressingMode

_DELIMITERS = frozenset(" ,")
_COMMENT = ";"
_DIGITS = {
    Radix.BIN: frozenset("01"),
    Radix.OCT: frozenset("01234567"),
    Radix.DEC: frozenset("0123456789"),
    Radix.HEX: frozenset("0123456789abcdef"),
}
_PREFIXES = {"%": Radix.BIN, "@": Radix.OCT, "$": Radix.HEX}
_LONG_MAX = 2**63 - 1
_ABSOLUTE_MODES = frozenset({_M.ABSOLUTE, _M.ABSOLUTE_X, _M.ABSOLUTE_Y})


class AssemblyError(ValueError):
    """Raised for a line that matches no addressing mode of its instruction."""

    def __init__(self, tokens: Iterable[str]) -> None:
        self.tokens = list(tokens)
        super().__init__(f"Error in line: {' '.join(self.tokens)}")


@dataclass
class _Symbol:
    value: int
    mode: AddressingMode


_MISSING = _Symbol(0, _M.IMPLICIT)


def split_line(line: str) -> list[str]:
    """Split a source line into lower-cased tokens, dropping any comment."""
    code = line.split(_COMMENT, 1)[0]
    tokens: list[str] = []
    buffer: list[str] = []
    for char in code:
        if char in _DELIMITERS:
            if buffer:
                tokens.append("".join(buffer).lower())
                buffer.clear()
        else:
            buffer.append(char)
    if buffer:
        tokens.append("".join(buffer).lower())
    return tokens


def number_radix(text: str) -> Radix:
    """Return the base a lower-case number literal is written in, or Radix.ERR."""
    radix = _PREFIXES.get(text[:1])
    digits = text[1:] if radix is not None else text
    radix = radix or Radix.DEC
    if all(char in _DIGITS[radix] for char in digits):
        return radix
    return Radix.ERR


def _raw_value(text: str) -> int | None:
    radix = number_radix(text)
    if radix is Radix.ERR:
        return None
    digits = text if radix is Radix.DEC else text[1:]
    if not digits:
        return 0
    return min(int(digits, radix.value), _LONG_MAX)


def _as_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def parse_number(text: str) -> int:
    """Return the 16-bit value of a number literal; malformed text gives 0."""
    value = _raw_value(text)
    return 0 if value is None else value & MAX_WORD


def is_byte(text: str) -> bool:
    """Whether text is a number literal that fits in a byte."""
    value = _raw_value(text)
    return value is not None and _as_int32(value) <= MAX_BYTE


def is_word(text: str) -> bool:
    """Whether text is a number literal that fits in a 16-bit word."""
    value = _raw_value(text)
    return value is not None and _as_int32(value) <= MAX_WORD


def _supports(opcode: str, mode: AddressingMode) -> bool:
    return mode in ADDRESSING_MODES.get(opcode, {})


def _confirm(opcode: str, mode: AddressingMode) -> AddressingMode:
    return mode if _supports(opcode, mode) else _M.ERROR


def _strip_parentheses(operand: str, mode: AddressingMode) -> str:
    if mode in (_M.INDIRECT, _M.INDIRECT_Y):
        return operand[1:-1]
    if mode == _M.INDIRECT_X:
        return operand[1:]
    return operand


class Assembler:
    """Assembles source text into machine code, keeping a table of symbols."""

    def __init__(self) -> None:
        self.symbols: dict[str, _Symbol] = {}

    # --- addressing-mode detection ----------------------------------------

    def _direct(
        self,
        opcode: str,
        operand: str,
        target: AddressingMode,
        fits: Callable[[str], bool],
    ) -> AddressingMode | None:
        if fits(operand):
            return _confirm(opcode, target)
        if operand in self.symbols and _supports(opcode, target):
            return target
        return None

    def _check_implicit(self, ins: list[str], mode: AddressingMode) -> AddressingMode:
        if len(ins) == 1:
            return _confirm(ins[0], _M.IMPLICIT)
        return mode

    def _check_accumulator(self, ins: list[str], mode: AddressingMode) -> AddressingMode:
        if len(ins) == 1 and mode != _M.IMPLICIT:
            mode = _confirm(ins[0], _M.ACCUMULATOR)
        if len(ins) == 2 and ins[1] == "a":
            mode = _confirm(ins[0], _M.ACCUMULATOR)
        return mode

    def _check_immediate(self, ins: list[str], mode: AddressingMode) -> AddressingMode:
        if len(ins) == 2 and ins[1].startswith("#"):
            operand = ins[1][1:]
            if is_byte(operand):
                return _confirm(ins[0], _M.IMMEDIATE)
            symbol = self.symbols.get(operand)
            if (
                symbol is not None
                and _supports(ins[0], _M.IMMEDIATE)
                and symbol.value <= MAX_BYTE
            ):
                return _M.IMMEDIATE
        return mode

    def _check_zero_page(self, ins: list[str], mode: AddressingMode) -> AddressingMode:
        if len(ins) == 2:
            found = self._direct(ins[0], ins[1], _M.ZERO_PAGE, is_byte)
            if found is not None:
                return found
        return mode

    def _indexed(
        self,
        ins: list[str],
        mode: AddressingMode,
        register: str,
        target: AddressingMode,
        fits: Callable[[str], bool],
        blocked_by: AddressingMode | None = None,
    ) -> AddressingMode:
        if len(ins) == 3 and ins[2] == register and mode != blocked_by:
            found = self._direct(ins[0], ins[1], target, fits)
            if found is not None:
                return found
        return mode

    def _check_zero_page_x(self, ins, mode):
        return self._indexed(ins, mode, "x", _M.ZERO_PAGE_X, is_byte)

    def _check_zero_page_y(self, ins, mode):
        return self._indexed(ins, mode, "y", _M.ZERO_PAGE_Y, is_byte)

    def _check_absolute(self, ins: list[str], mode: AddressingMode) -> AddressingMode:
        if len(ins) == 2 and mode != _M.ZERO_PAGE:
            found = self._direct(ins[0], ins[1], _M.ABSOLUTE, is_word)
            if found is not None:
                return found
        return mode

    def _check_absolute_x(self, ins, mode):
        return self._indexed(ins, mode, "x", _M.ABSOLUTE_X, is_word, _M.ZERO_PAGE_X)

    def _check_absolute_y(self, ins, mode):
        return self._indexed(ins, mode, "y", _M.ABSOLUTE_Y, is_word, _M.ZERO_PAGE_Y)

    def _check_relative(self, ins: list[str], mode: AddressingMode) -> AddressingMode:
        if len(ins) == 2 and ins[1] in self.symbols and _supports(ins[0], _M.RELATIVE):
            return _M.RELATIVE
        return mode

    def _check_indirect(self, ins: list[str], mode: AddressingMode) -> AddressingMode:
        if len(ins) == 2:
            operand = ins[1]
            if operand.startswith("(") and operand.endswith(")") and len(operand) > 1:
                found = self._direct(ins[0], operand[1:-1], _M.INDIRECT, is_word)
                if found is not None:
                    return found
        return mode

    def _check_indirect_x(self, ins: list[str], mode: AddressingMode) -> AddressingMode:
        if len(ins) == 3 and ins[1].startswith("(") and ins[2].endswith(")"):
            if ins[2][:1] == "x":
                found = self._direct(ins[0], ins[1][1:], _M.INDIRECT_X, is_byte)
                if found is not None:
                    return found
        return mode

    def _check_indirect_y(self, ins: list[str], mode: AddressingMode) -> AddressingMode:
        if len(ins) == 3:
            operand = ins[1]
            if operand.startswith("(") and operand.endswith(")") and len(operand) > 1:
                if ins[2] == "y":
                    found = self._direct(ins[0], operand[1:-1], _M.INDIRECT_Y, is_byte)
                    if found is not None:
                        return found
        return mode

    def _check_label(self, ins: list[str], mode: AddressingMode) -> AddressingMode:
        if len(ins) == 1 and ins[0].endswith(":"):
            return _M.LABEL
        return mode

    def _check_define(self, ins: list[str], mode: AddressingMode) -> AddressingMode:
        if len(ins) == 3 and ins[0] == "define" and is_word(ins[2]):
            return _M.DEFINE
        return mode

    def classify(self, tokens: Iterable[str]) -> AddressingMode:
        """Return the addressing mode of a tokenised line, or AddressingMode.ERROR."""
        ins = list(tokens)
        if not ins:
            raise ValueError("cannot classify an empty line")
        checks = (
            self._check_implicit,
            self._check_accumulator,
            self._check_immediate,
            self._check_zero_page,
            self._check_zero_page_x,
            self._check_zero_page_y,
            self._check_absolute,
            self._check_absolute_x,
            self._check_absolute_y,
            self._check_relative,
            self._check_indirect,
            self._check_indirect_x,
            self._check_indirect_y,
            self._check_label,
            self._check_define,
        )
        mode = _M.ERROR
        for check in checks:
            mode = check(ins, mode)
        return mode

    # --- passes -----------------------------------------------------------

    def _declare(self, ins: list[str]) -> None:
        mode = self.classify(ins)
        if mode == _M.LABEL:
            self.symbols.setdefault(ins[0][:-1], _Symbol(0, _M.LABEL))
        elif mode == _M.DEFINE:
            self.symbols.setdefault(ins[1], _Symbol(parse_number(ins[2]), _M.DEFINE))

    def _lookup(self, name: str) -> _Symbol:
        return self.symbols.get(name, _MISSING)

    def _operand_value(self, operand: str, mode: AddressingMode, pc: int) -> int:
        immediate = operand.startswith("#")
        if operand in self.symbols or (immediate and operand[1:] in self.symbols):
            if mode in _ABSOLUTE_MODES:
                return self._lookup(operand).value
            if immediate and self._lookup(operand[1:]).mode == _M.DEFINE:
                return self._lookup(operand[1:]).value
            symbol = self._lookup(operand)
            if symbol.mode == _M.DEFINE:
                return symbol.value
            offset = (symbol.value - (pc + 2)) & MAX_WORD
            if (offset >> 8) & 0xFF == 0xFF:
                offset &= 0xFF
            return offset
        return parse_number(operand[1:] if immediate else operand)

    def _encode(self, ins: list[str], pc: int) -> bytes:
        mode = self.classify(ins)
        code = bytearray()
        opcode = ADDRESSING_MODES.get(ins[0], {}).get(mode)
        if opcode is not None:
            code.append(opcode)
        if len(ins) > 1 and mode != _M.DEFINE:
            value = self._operand_value(_strip_parentheses(ins[1], mode), mode, pc)
            code.append(value & 0xFF)
            if value > MAX_BYTE:
                code.append((value >> 8) & 0xFF)
        return bytes(code)

    def assemble(self, lines: Iterable[str] | str, origin: int = RESET_VECTOR) -> bytes:
        """Assemble source lines into the machine code that starts at origin.

        Raises AssemblyError for the first line no addressing mode fits.
        """
        if isinstance(lines, str):
            lines = lines.split("\n")
        program = [tokens for tokens in map(split_line, lines) if tokens]

        self.symbols = {}
        for ins in program:
            self._declare(ins)

        pc = origin & MAX_WORD
        for ins in program:
            mode = self.classify(ins)
            pc = (pc + mode_size(mode)) & MAX_WORD
            if mode == _M.LABEL:
                self.symbols.setdefault(ins[0][:-1], _Symbol(0, _M.LABEL)).value = pc
            elif mode == _M.ERROR:
                raise AssemblyError(ins)

        code = bytearray()
        pc = origin & MAX_WORD
        for ins in program:
            encoded = self._encode(ins, pc)
            code += encoded
            pc = (pc + len(encoded)) & MAX_WORD
        return bytes(code)

    def load(self, cpu: Any, path: str | os.PathLike[str]) -> bytes:
        """Assemble a source file into the CPU's memory at its program counter."""
        with open(path, encoding="latin-1") as handle:
            lines = handle.read().split("\n")
        code = self.assemble(lines, cpu.pc)
        for offset, byte in enumerate(code):
            cpu.write((cpu.pc + offset) & MAX_WORD, byte)
        return code