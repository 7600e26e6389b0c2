"""Tests for memory backends."""

from pytest import raises

from memlayout.errors import MemoryAccessError
from memlayout.native.memory import BufferMemory, MemoryAccess


def describe_buffer_memory():
    def satisfies_the_protocol(expect):
        expect(isinstance(BufferMemory(4), MemoryAccess)) == True

    def reads_and_writes_relative_to_base(expect):
        memory = BufferMemory(8, base=0x1000)
        memory.write_bytes(0x1002, b"\x01\x02")
        expect(memory.read_bytes(0x1001, 3)) == b"\x00\x01\x02"
        expect(memory.to_bytes()) == b"\x00\x00\x01\x02\x00\x00\x00\x00"

    def rejects_out_of_range_access(expect):
        memory = BufferMemory(8, base=0x1000)
        with raises(MemoryAccessError) as exc_info:
            memory.read_bytes(0x1006, 4)
        expect(exc_info.value.address) == 0x1006

        with raises(MemoryAccessError):
            memory.read_bytes(0xFFF, 1)

    def rejects_writes_when_readonly(expect):
        memory = BufferMemory(b"\x00" * 4, readonly=True)
        with raises(MemoryAccessError, match="read-only"):
            memory.write_bytes(0, b"\x01")
        expect(memory.to_bytes()) == b"\x00" * 4

    def loads_and_saves_files(expect, tmp_path):
        path = tmp_path / "dump.bin"
        path.write_bytes(b"\x10\x20\x30")

        memory = BufferMemory.from_file(path, base=0x40, readonly=False)
        expect(len(memory)) == 3
        expect(memory.read_bytes(0x41, 2)) == b"\x20\x30"

        memory.write_bytes(0x40, b"\xff")
        memory.save(tmp_path / "out.bin")
        expect((tmp_path / "out.bin").read_bytes()) == b"\xff\x20\x30"

    def files_load_readonly_by_default(expect, tmp_path):
        path = tmp_path / "dump.bin"
        path.write_bytes(b"\x00")
        expect(BufferMemory.from_file(path).readonly) == True
