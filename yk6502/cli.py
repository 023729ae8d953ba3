"""Command-line entry point: assemble a .yk source file and run it."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Sequence

from .assembler import Assembler, AssemblyError
from .cpu import CPU

DUMP_FILE = "output.bin"
USAGE = "Usage: yk6502 <filename>.yk"


def main(argv: Sequence[str] | None = None) -> int:
    """Assemble the given file into memory, run it and print the registers.

    Returns the process exit status.
    """
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) != 1:
        print(USAGE, file=sys.stderr)
        return 1

    filename = args[0]
    if not Path(filename).is_file():
        print(f"File {filename} does not exist.", file=sys.stderr)
        return 1
    if filename[-2:] != "yk":
        print(f"File {filename} should be in .yk format", file=sys.stderr)
        return 1

    cpu = CPU()
    try:
        Assembler().load(cpu, filename)
    except AssemblyError as error:
        print(error, file=sys.stderr)
        return 1

    cpu.run(DUMP_FILE)
    return 0


if __name__ == "__main__":
    sys.exit(main())