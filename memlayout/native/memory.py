"""Memory access capability and in-process backends."""

import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from ..errors import MemoryAccessError

logger = logging.getLogger(__name__)


@runtime_checkable
class MemoryAccess(Protocol):
    """Anything that can move bytes to and from addresses.

    Implementations raise MemoryAccessError on failure. The codec never
    retries and never caches.
    """

    def read_bytes(self, address: int, count: int) -> bytes: ...

    def write_bytes(self, address: int, data: bytes) -> None: ...


class BufferMemory:
    """A flat byte buffer mapped at a base address.

    Used for binary dumps and tests. Every access must lie entirely within
    ``[base, base + len(buffer))``.
    """

    def __init__(self, data: bytes | bytearray | int, *, base: int = 0, readonly: bool = False):
        # An int allocates that many zero bytes
        self._buffer = bytearray(data)
        self.base = base
        self.readonly = readonly

    @classmethod
    def from_file(cls, path: Path | str, *, base: int = 0, readonly: bool = True) -> "BufferMemory":
        """Load a binary dump into memory."""
        data = Path(path).read_bytes()
        logger.debug(f"Loaded {len(data)} bytes from {path} at base 0x{base:x}")
        return cls(data, base=base, readonly=readonly)

    def __len__(self) -> int:
        return len(self._buffer)

    def _slice(self, address: int, count: int) -> slice:
        start = address - self.base
        if start < 0 or count < 0 or start + count > len(self._buffer):
            raise MemoryAccessError(
                address,
                f"{count} bytes out of range 0x{self.base:x}-0x{self.base + len(self._buffer):x}",
            )
        return slice(start, start + count)

    def read_bytes(self, address: int, count: int) -> bytes:
        return bytes(self._buffer[self._slice(address, count)])

    def write_bytes(self, address: int, data: bytes) -> None:
        if self.readonly:
            raise MemoryAccessError(address, "memory is read-only")
        self._buffer[self._slice(address, len(data))] = data

    def to_bytes(self) -> bytes:
        return bytes(self._buffer)

    def save(self, path: Path | str) -> None:
        """Write the buffer back to a file."""
        Path(path).write_bytes(self._buffer)
        logger.debug(f"Saved {len(self._buffer)} bytes to {path}")
