"""A small 6502 assembler and emulator: memory, CPU, assembler and command line."""

__version__ = "0.1.0"
__all__ = ["__version__"]