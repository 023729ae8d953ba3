# yk6502

A small 6502 assembler and emulator. The `yk6502` command assembles a
`.yk` assembly file into memory at `$0600`. It then runs the program
until it reaches a `BRK` or an unknown opcode, and prints the registers
and status flags. Before every instruction, the whole 64 KiB of memory
is written to `output.bin` in the current directory.

## Installation

```
pip install .
```

## Usage

```
yk6502 program.yk
```

The file must exist and its name must end in `yk`. Otherwise the command
prints a message to standard error and exits with status 1. A line that
fits none of its instruction's addressing modes is reported as
`Error in line: ...`, and the command exits with status 1 as well.

The output looks like this:

```
Registers:
 PC  SP A  X  Y  NV-BDIZC
0608 FF 00 01 00 00110000
```

## Assembly syntax

- Lines are split on spaces and commas and lower-cased. A `;` starts a
  comment.
- Numbers take a prefix for their radix: `%` binary, `@` octal and `$`
  hex. Plain digits are decimal.
- A label ends in a colon (`loop:`). Labels can be used as branch and
  jump targets.
- `define name value` gives a name to a constant. Use it as `#name` for
  an immediate operand.
- Addressing modes:
  - implicit
  - accumulator (`asl a`)
  - immediate (`#$10`)
  - zero page and zero page X/Y (`$10,x`)
  - absolute and absolute X/Y (`$1234,y`)
  - indirect (`($1234)`)
  - indexed indirect (`($10,x)`)
  - indirect indexed (`($10),y`)

Example:

```
define count $05
  ldx #count
loop:
  dex
  bne loop
  brk
```

## Library use

```python
from yk6502.assembler import Assembler
from yk6502.cpu import CPU

cpu = CPU()
Assembler().load(cpu, "program.yk")   # assembles at cpu.pc ($0600)
cpu.run()                             # prints the register report when it stops
```

- `Assembler.assemble(lines, origin)` returns the machine code as
  `bytes` without touching a CPU. It accepts a string or an iterable of
  lines.
- `Assembler.classify(tokens)` returns the `AddressingMode` of one line
  after `split_line` has tokenised it.
- `CPU.step()` runs one instruction. It returns `False` when execution
  should stop.
- `CPU.run(dump_path)` writes memory to `dump_path` before each step,
  if one is given.
- `CPU.format_registers()` and `CPU.format_flags()` return the report as
  text.
- `CPU.render_screen()` returns the 32×32 display at `$0200`–`$05FF` as
  terminal text drawn with 24-bit colour escapes.
- `yk6502.instructions.lookup(opcode)` returns the mnemonic and
  addressing mode of an opcode byte.
- `yk6502.memory.Memory` is the flat 64 KiB address space. Its
  `dump(path)` writes the memory to a file.

## What it does not do

- The command never draws the screen. Call `render_screen()` yourself.
- There are no interrupts, and decimal mode does not change arithmetic.
- `BRK` stops execution instead of jumping through a vector.

## Running the tests

```
pip install .[test]
pytest
```