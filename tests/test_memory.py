from yk6502.constants import RAM_SIZE
from yk6502.memory import Memory


def test_fresh_memory_is_zero():
    memory = Memory()
    assert memory.read(0x0000) == 0
    assert memory.read(0xFFFF) == 0
    assert memory.read(0x0600) == 0


def test_write_read_round_trip():
    memory = Memory()
    memory.write(0x0200, 0x42)
    memory.write(0xFFFF, 0xAB)
    assert memory.read(0x0200) == 0x42
    assert memory.read(0xFFFF) == 0xAB
    assert memory.read(0x0201) == 0


def test_value_truncated_to_byte():
    memory = Memory()
    memory.write(0x10, 0x1FF)
    assert memory.read(0x10) == 0xFF


def test_address_wraps_to_sixteen_bits():
    memory = Memory()
    memory.write(0x10000, 7)
    assert memory.read(0x0000) == 7
    assert memory.read(0x10000) == 7


def test_dump_writes_whole_ram(tmp_path):
    memory = Memory()
    memory.write(0x0600, 0xA9)
    memory.write(0x0601, 0x01)
    target = tmp_path / "output.bin"
    memory.dump(target)
    data = target.read_bytes()
    assert len(data) == RAM_SIZE
    assert data[0x0600] == 0xA9
    assert data[0x0601] == 0x01
    assert data[0x0602] == 0


def test_dump_overwrites_existing_file(tmp_path):
    target = tmp_path / "output.bin"
    target.write_bytes(b"old contents")
    Memory().dump(target)
    assert target.read_bytes() == bytes(RAM_SIZE)