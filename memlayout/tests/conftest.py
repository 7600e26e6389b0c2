"""Unit tests configuration file."""

import struct

import pytest

from memlayout.native import BufferMemory


def pytest_configure(config):
    """Disable verbose output when running tests."""
    terminal = config.pluginmanager.getplugin("terminal")
    if terminal:
        terminal.TerminalReporter.showfspath = False


@pytest.fixture
def dump():
    """64 bytes with the address 16 stored at 0 and the Int32 420 stored at 16."""
    memory = BufferMemory(64)
    memory.write_bytes(0, struct.pack("<I", 16))
    memory.write_bytes(16, struct.pack("<i", 420))
    return memory
