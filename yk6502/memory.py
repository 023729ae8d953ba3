"""Flat 64 KiB address space."""

from __future__ import annotations

import os

from .constants import MAX_BYTE, MAX_WORD, RAM_SIZE


class Memory:
    """Byte-addressable RAM covering the whole 16-bit address range."""

    def __init__(self) -> None:
        self.ram = bytearray(RAM_SIZE)

    def read(self, address: int) -> int:
        """Return the byte stored at a 16-bit address."""
        return self.ram[address & MAX_WORD]

    def write(self, address: int, value: int) -> None:
        """Store the low eight bits of value at a 16-bit address."""
        self.ram[address & MAX_WORD] = value & MAX_BYTE

    def dump(self, path: str | os.PathLike[str]) -> None:
        """Write the full contents of memory to a binary file."""
        with open(path, "wb") as handle:
            handle.write(self.ram)