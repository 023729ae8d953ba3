import pytest

from yk6502.constants import ADDRESSING_MODES, AddressingMode, Bit, Opcode
from yk6502.instructions import execute, lookup
from yk6502.memory import Memory

ORIGIN = 0x0600


class FakeCPU:
    """Minimal processor exposing what instruction handlers rely on."""

    def __init__(self, program=b"", origin=ORIGIN):
        self.memory = Memory()
        self.pc = origin
        self.sp = 0xFF
        self.a = 0
        self.x = 0
        self.y = 0
        self.ps = 1 << Bit.UNUSED
        self.cycles = 0
        for offset, byte in enumerate(program):
            self.memory.write(origin + offset, byte)

    def read(self, address):
        return self.memory.read(address)

    def write(self, address, value):
        self.memory.write(address, value)

    def push_byte(self, value):
        self.write(0x100 | self.sp, value)
        self.sp = (self.sp - 1) & 0xFF

    def pop_byte(self):
        self.sp = (self.sp + 1) & 0xFF
        return self.read(0x100 | self.sp)

    def push_word(self, value):
        self.push_byte((value >> 8) & 0xFF)
        self.push_byte(value & 0xFF)

    def pop_word(self):
        low = self.pop_byte()
        high = self.pop_byte()
        return (high << 8) | low

    def get_flag(self, bit):
        return (self.ps >> bit) & 1

    def set_flag(self, bit):
        self.ps |= 1 << bit

    def clear_flag(self, bit):
        self.ps &= ~(1 << bit) & 0xFF

    def assign_flag(self, bit, value):
        if value:
            self.set_flag(bit)
        else:
            self.clear_flag(bit)

    def next_byte(self):
        value = self.read(self.pc)
        self.pc += 1
        return value

    def fetch_operand(self, mode):
        if mode == AddressingMode.IMPLICIT:
            return 0, 0, False
        if mode == AddressingMode.ACCUMULATOR:
            return 0, self.a, False
        if mode in (AddressingMode.IMMEDIATE, AddressingMode.RELATIVE):
            address = self.pc
            self.pc += 1
            return address, self.read(address), False
        if mode == AddressingMode.ZERO_PAGE:
            address = self.next_byte()
            return address, self.read(address), False
        low = self.next_byte()
        high = self.next_byte()
        base = (high << 8) | low
        if mode == AddressingMode.ABSOLUTE_X:
            address = (base + self.x) & 0xFFFF
            return address, self.read(address), (address & 0xFF00) != (base & 0xFF00)
        return base, self.read(base), False


def test_lookup_known_opcodes():
    assert lookup(0xA9) == ("lda", AddressingMode.IMMEDIATE)
    assert lookup(Opcode.JMP_ID) == ("jmp", AddressingMode.INDIRECT)
    assert lookup(Opcode.BRK_IMP) == ("brk", AddressingMode.IMPLICIT)


def test_lookup_unknown_opcode_raises():
    with pytest.raises(KeyError):
        lookup(0xFF)


@pytest.mark.parametrize("opcode", list(Opcode))
def test_lookup_agrees_with_assembler_table(opcode):
    mnemonic, mode = lookup(opcode)
    assert ADDRESSING_MODES[mnemonic][mode] == opcode


def test_unknown_opcode_stops_execution():
    cpu = FakeCPU(bytes([0xFF]))
    assert execute(cpu, cpu.next_byte()) is False
    assert cpu.a == 0


def test_lda_immediate_sets_negative():
    cpu = FakeCPU(bytes([Opcode.LDA_IMM, 0x80]))
    assert execute(cpu, cpu.next_byte()) is True
    assert cpu.a == 0x80
    assert cpu.get_flag(Bit.NEGATIVE) == 1
    assert cpu.get_flag(Bit.ZERO) == 0
    assert cpu.cycles == 2
    assert cpu.pc == ORIGIN + 2


def test_lda_zero_sets_zero_flag():
    cpu = FakeCPU(bytes([Opcode.LDA_IMM, 0x00]))
    assert execute(cpu, cpu.next_byte()) is True
    assert cpu.get_flag(Bit.ZERO) == 1
    assert cpu.get_flag(Bit.NEGATIVE) == 0


def test_adc_overflow_into_sign():
    cpu = FakeCPU(bytes([Opcode.LDA_IMM, 0x50, Opcode.ADC_IMM, 0x50]))
    execute(cpu, cpu.next_byte())
    execute(cpu, cpu.next_byte())
    assert cpu.a == 0x50 + 0x50
    assert cpu.get_flag(Bit.OVERFLOW) == 1
    assert cpu.get_flag(Bit.CARRY) == 0
    assert cpu.get_flag(Bit.NEGATIVE) == 1


def test_adc_wraps_and_sets_carry():
    cpu = FakeCPU(bytes([Opcode.LDA_IMM, 0xFF, Opcode.ADC_IMM, 0x01]))
    execute(cpu, cpu.next_byte())
    execute(cpu, cpu.next_byte())
    assert cpu.a == 0
    assert cpu.get_flag(Bit.CARRY) == 1
    assert cpu.get_flag(Bit.ZERO) == 1


def test_sbc_with_carry_set_subtracts_exactly():
    cpu = FakeCPU(bytes([Opcode.SEC_IMP, Opcode.LDA_IMM, 5, Opcode.SBC_IMM, 3]))
    for _ in range(3):
        execute(cpu, cpu.next_byte())
    assert cpu.a == 5 - 3
    assert cpu.get_flag(Bit.CARRY) == 1


def test_sta_zero_page_writes_accumulator():
    cpu = FakeCPU(bytes([Opcode.LDA_IMM, 0x42, Opcode.STA_ZP, 0x10]))
    execute(cpu, cpu.next_byte())
    execute(cpu, cpu.next_byte())
    assert cpu.read(0x10) == 0x42
    assert cpu.cycles == 3


def test_inc_zero_page_round_trip_with_dec():
    cpu = FakeCPU(bytes([Opcode.INC_ZP, 0x20, Opcode.DEC_ZP, 0x20]))
    cpu.write(0x20, 0x7F)
    execute(cpu, cpu.next_byte())
    assert cpu.read(0x20) == 0x80
    assert cpu.get_flag(Bit.NEGATIVE) == 1
    execute(cpu, cpu.next_byte())
    assert cpu.read(0x20) == 0x7F


def test_bne_not_taken_falls_through():
    cpu = FakeCPU(bytes([Opcode.BNE_REL, 0x02]))
    cpu.set_flag(Bit.ZERO)
    execute(cpu, cpu.next_byte())
    assert cpu.pc == ORIGIN + 2


def test_bne_taken_jumps_forward():
    cpu = FakeCPU(bytes([Opcode.BNE_REL, 0x02]))
    execute(cpu, cpu.next_byte())
    assert cpu.pc == ORIGIN + 2 + 2
    assert cpu.cycles == 4


def test_branch_backwards_loops_to_itself():
    cpu = FakeCPU(bytes([Opcode.BEQ_REL, 0xFE]))
    cpu.set_flag(Bit.ZERO)
    execute(cpu, cpu.next_byte())
    assert cpu.pc == ORIGIN


def test_jsr_and_rts_return_after_call():
    cpu = FakeCPU(bytes([Opcode.JSR_AB, 0x00, 0x07]))
    cpu.write(0x0700, Opcode.RTS_IMP)
    execute(cpu, cpu.next_byte())
    assert cpu.pc == 0x0700
    assert cpu.sp == 0xFD
    execute(cpu, cpu.next_byte())
    assert cpu.pc == ORIGIN + 3
    assert cpu.sp == 0xFF


def test_jmp_absolute_sets_pc():
    cpu = FakeCPU(bytes([Opcode.JMP_AB, 0x34, 0x12]))
    execute(cpu, cpu.next_byte())
    assert cpu.pc == 0x1234
    assert cpu.cycles == 3


def test_pla_keeps_only_sign_bit():
    cpu = FakeCPU(bytes([Opcode.LDA_IMM, 0x85, Opcode.PHA_IMP, Opcode.PLA_IMP]))
    for _ in range(3):
        execute(cpu, cpu.next_byte())
    assert cpu.a == 0x85 & 0x80
    assert cpu.sp == 0xFF


def test_php_plp_round_trip_keeps_unused_bit():
    cpu = FakeCPU(bytes([Opcode.SEC_IMP, Opcode.PHP_IMP, Opcode.CLC_IMP, Opcode.PLP_IMP]))
    for _ in range(4):
        execute(cpu, cpu.next_byte())
    assert cpu.get_flag(Bit.CARRY) == 1
    assert cpu.get_flag(Bit.UNUSED) == 1


def test_brk_stops_and_sets_break():
    cpu = FakeCPU(bytes([Opcode.BRK_IMP]))
    assert execute(cpu, cpu.next_byte()) is False
    assert cpu.get_flag(Bit.BREAK) == 1
    assert cpu.cycles == 7


def test_inx_wraps_to_zero():
    cpu = FakeCPU(bytes([Opcode.INX_IMP]))
    cpu.x = 0xFF
    execute(cpu, cpu.next_byte())
    assert cpu.x == 0
    assert cpu.get_flag(Bit.ZERO) == 1


def test_dex_flags_look_one_below_result():
    cpu = FakeCPU(bytes([Opcode.DEX_IMP]))
    cpu.x = 2
    execute(cpu, cpu.next_byte())
    assert cpu.x == 1
    assert cpu.get_flag(Bit.ZERO) == 1


def test_asl_accumulator_shifts_out_carry():
    cpu = FakeCPU(bytes([Opcode.ASL_ACC]))
    cpu.a = 0x81
    execute(cpu, cpu.next_byte())
    assert cpu.a == 0x02
    assert cpu.get_flag(Bit.CARRY) == 1


def test_ror_then_rol_restores_accumulator():
    cpu = FakeCPU(bytes([Opcode.ROR_ACC, Opcode.ROL_ACC]))
    cpu.a = 0x01
    cpu.set_flag(Bit.CARRY)
    execute(cpu, cpu.next_byte())
    assert cpu.a == 0x80
    assert cpu.get_flag(Bit.CARRY) == 1
    execute(cpu, cpu.next_byte())
    assert cpu.a == 0x01


def test_cmp_equal_sets_zero_and_carry():
    cpu = FakeCPU(bytes([Opcode.LDA_IMM, 5, Opcode.CMP_IMM, 5]))
    execute(cpu, cpu.next_byte())
    execute(cpu, cpu.next_byte())
    assert cpu.get_flag(Bit.ZERO) == 1
    assert cpu.get_flag(Bit.CARRY) == 1
    assert cpu.get_flag(Bit.NEGATIVE) == 0


def test_txs_and_tsx_round_trip():
    cpu = FakeCPU(bytes([Opcode.TXS_IMP, Opcode.LDX_IMM, 0, Opcode.TSX_IMP]))
    cpu.x = 0x80
    execute(cpu, cpu.next_byte())
    assert cpu.sp == 0x80
    execute(cpu, cpu.next_byte())
    execute(cpu, cpu.next_byte())
    assert cpu.x == 0x80
    assert cpu.get_flag(Bit.NEGATIVE) == 1


def test_lda_absolute_x_page_cross_adds_cycle():
    cpu = FakeCPU(bytes([Opcode.LDA_ABX, 0xFF, 0x02, Opcode.LDA_ABX, 0x00, 0x02]))
    cpu.x = 1
    cpu.write(0x0300, 0x11)
    cpu.write(0x0201, 0x22)
    execute(cpu, cpu.next_byte())
    crossed = cpu.cycles
    assert cpu.a == 0x11
    execute(cpu, cpu.next_byte())
    assert cpu.a == 0x22
    assert crossed == cpu.cycles + 1