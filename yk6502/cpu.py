"""The processor: registers, stack, status flags and the fetch/execute loop."""

from __future__ import annotations

import os

from .constants import (
    GRID_SIZE,
    MAX_BYTE,
    MAX_WORD,
    SCREEN_START,
    AddressingMode,
    Bit,
    color_rgb,
)
from .instructions import execute
from .memory import Memory

RESET_VECTOR = 0x0600
STACK_PAGE = 0x0100
CLEAR_SCREEN = "\033[2J\033[H"

_M = AddressingMode


def _color_block(red: int, green: int, blue: int) -> str:
    return f"\033[48;2;{red};{green};{blue}m  \033[0m"


class CPU:
    """An 8-bit processor attached to a flat 64 KiB memory."""

    def __init__(self, memory: Memory | None = None) -> None:
        self.memory = memory if memory is not None else Memory()
        self.pc = RESET_VECTOR
        self.sp = 0xFF
        self.a = 0x00
        self.x = 0x00
        self.y = 0x00
        self.ps = 1 << Bit.UNUSED
        self.cycles = 0

    # --- memory and stack -------------------------------------------------

    def read(self, address: int) -> int:
        """Return the byte at a 16-bit address."""
        return self.memory.read(address)

    def write(self, address: int, value: int) -> None:
        """Store a byte at a 16-bit address."""
        self.memory.write(address, value)

    def push_byte(self, value: int) -> None:
        """Push a byte onto the stack in page one."""
        self.write(STACK_PAGE | self.sp, value)
        self.sp = (self.sp - 1) & MAX_BYTE

    def push_word(self, value: int) -> None:
        """Push a 16-bit value, high byte first."""
        self.push_byte((value >> 8) & MAX_BYTE)
        self.push_byte(value & MAX_BYTE)

    def pop_byte(self) -> int:
        """Pull a byte from the stack."""
        self.sp = (self.sp + 1) & MAX_BYTE
        return self.read(STACK_PAGE | self.sp)

    def pop_word(self) -> int:
        """Pull a 16-bit value, low byte first."""
        lower = self.pop_byte()
        upper = self.pop_byte()
        return (upper << 8) | lower

    # --- status flags -----------------------------------------------------

    def get_flag(self, bit: Bit) -> int:
        """Return 1 if the status bit is set, else 0."""
        return (self.ps >> bit) & 1

    def set_flag(self, bit: Bit) -> None:
        """Set a status bit."""
        self.ps |= 1 << bit

    def clear_flag(self, bit: Bit) -> None:
        """Clear a status bit."""
        self.ps &= ~(1 << bit) & MAX_BYTE

    def assign_flag(self, bit: Bit, value: bool) -> None:
        """Set or clear a status bit according to value."""
        if value:
            self.set_flag(bit)
        else:
            self.clear_flag(bit)

    # --- operand fetching -------------------------------------------------

    def _next_byte(self) -> int:
        value = self.read(self.pc)
        self.pc = (self.pc + 1) & MAX_WORD
        return value

    def _next_word(self) -> int:
        lower = self._next_byte()
        upper = self._next_byte()
        return (upper << 8) | lower

    @staticmethod
    def _indexed(base: int, index: int) -> tuple[int, bool]:
        address = (base + index) & MAX_WORD
        crossed = (address & 0xFF00) != ((address - index) & 0xFF00)
        return address, crossed

    def fetch_operand(self, mode: AddressingMode) -> tuple[int, int, bool]:
        """Consume the operand bytes for mode.

        Returns the effective address, the value found there and whether an
        indexed access crossed a page boundary.
        """
        mode = AddressingMode(mode)
        crossed = False
        if mode == _M.IMPLICIT:
            return 0, 0, False
        if mode == _M.ACCUMULATOR:
            return 0, self.a, False
        if mode in (_M.IMMEDIATE, _M.RELATIVE):
            address = self.pc
            self.pc = (self.pc + 1) & MAX_WORD
        elif mode == _M.ZERO_PAGE:
            address = self._next_byte()
        elif mode == _M.ZERO_PAGE_X:
            address = (self._next_byte() + self.x) & MAX_WORD
        elif mode == _M.ZERO_PAGE_Y:
            address = (self._next_byte() + self.y) & MAX_WORD
        elif mode == _M.ABSOLUTE:
            address = self._next_word()
        elif mode == _M.ABSOLUTE_X:
            address, crossed = self._indexed(self._next_word(), self.x)
        elif mode == _M.ABSOLUTE_Y:
            address, crossed = self._indexed(self._next_word(), self.y)
        elif mode == _M.INDIRECT:
            pointer = self._next_word()
            address = self.read(pointer) | (self.read((pointer + 1) & MAX_WORD) << 8)
        elif mode == _M.INDIRECT_X:
            pointer = self._next_byte() + self.x
            lower = self.read(pointer & MAX_WORD)
            upper = self.read((pointer + 1) & MAX_WORD)
            address = (upper << 8) | lower
        elif mode == _M.INDIRECT_Y:
            pointer = self._next_byte()
            lower = self.read(pointer)
            upper = self.read((pointer + 1) & MAX_WORD)
            address, crossed = self._indexed((upper << 8) | lower, self.y)
        else:
            raise ValueError(f"{mode.name} is not a machine addressing mode")
        return address, self.read(address), crossed

    # --- execution --------------------------------------------------------

    def step(self) -> bool:
        """Fetch and execute one instruction; False means execution stops."""
        opcode = self._next_byte()
        self.cycles = 0
        return execute(self, opcode)

    def run(self, dump_path: str | os.PathLike[str] | None = None) -> None:
        """Execute until BRK or an unknown opcode, then print the registers.

        When dump_path is given, memory is written to it before every step.
        """
        while True:
            if dump_path is not None:
                self.memory.dump(dump_path)
            if not self.step():
                break
        print(self.format_registers())

    # --- reporting --------------------------------------------------------

    def format_flags(self) -> str:
        """Return the status bits as eight digits in NV-BDIZC order."""
        return "".join(str(self.get_flag(bit)) for bit in reversed(Bit))

    def format_registers(self) -> str:
        """Return a two-line register report with a header."""
        return (
            "Registers:\n"
            " PC  SP A  X  Y  NV-BDIZC\n"
            f"{self.pc:04X} {self.sp:02X} {self.a:02X} {self.x:02X} {self.y:02X} "
            f"{self.format_flags()}"
        )

    def render_screen(self) -> str:
        """Return the screen memory drawn as coloured terminal blocks."""
        rows = []
        for row in range(GRID_SIZE):
            start = SCREEN_START + row * GRID_SIZE
            blocks = "".join(
                _color_block(*color_rgb(self.read(start + column)))
                for column in range(GRID_SIZE)
            )
            rows.append(blocks + "\n")
        return "".join(rows)