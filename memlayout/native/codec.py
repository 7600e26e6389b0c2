"""Read and write values in memory according to a type descriptor.

Reading produces a tree of plain Python values:

- integers of every width come back as ``int`` in the signed 64-bit range
- floats as ``float``, text as ``str``
- raw addresses as ``Address``, pointers as ``TypedPointer`` (not followed)
- structs as ``dict`` in offset order, collections as ``list``

Writing takes the same shapes back. The whole value is checked against the
descriptor before the first byte is written. Writing through a pointer
descriptor follows the pointer and writes the pointee.
"""

import logging
import struct
from collections.abc import Mapping, Sequence

from ..config import DEFAULT_OPTIONS, Options
from ..errors import DecodeError, EncodeError, MemoryAccessError, ShapeMismatchError
from .memory import MemoryAccess
from .pointer import Address, TypedPointer, to_address
from .types import (
    FLOAT_NAMES,
    Collection,
    Float,
    Integer,
    Pointer,
    RawAddress,
    Struct,
    Text,
    TypeDescriptor,
    WideText,
    kind_name,
    size,
)

logger = logging.getLogger(__name__)

Value = int | float | str | Address | TypedPointer | dict[str, "Value"] | list["Value"] | None

# Map (width, signed) to struct format characters
FORMAT_CHARS: dict[tuple[int, bool], str] = {
    (1, False): "B",
    (2, False): "H",
    (4, False): "I",
    (8, False): "Q",
    (1, True): "b",
    (2, True): "h",
    (4, True): "i",
    (8, True): "q",
}

FLOAT_FORMAT_CHARS: dict[int, str] = {4: "f", 8: "d"}

_INT64_LIMIT = 1 << 63


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _type_name(value: object) -> str:
    return "nothing" if value is None else type(value).__name__


def _widen(value: int) -> int:
    # Values share one signed 64-bit container; a UInt64 with the top bit
    # set wraps around to a negative number.
    if value >= _INT64_LIMIT:
        return value - (_INT64_LIMIT << 1)
    return value


def _read_raw(memory: MemoryAccess, address: int, count: int) -> bytes:
    if count == 0:
        return b""
    try:
        data = memory.read_bytes(address, count)
    except OSError as exc:
        raise MemoryAccessError(address, str(exc)) from exc
    if len(data) != count:
        raise MemoryAccessError(address, f"short read, expected {count} bytes, got {len(data)}")
    return bytes(data)


def _write_raw(memory: MemoryAccess, address: int, data: bytes) -> None:
    if not data:
        return
    try:
        memory.write_bytes(address, data)
    except OSError as exc:
        raise MemoryAccessError(address, str(exc)) from exc


def _read_unsigned(memory: MemoryAccess, address: int, width: int, options: Options) -> int:
    data = _read_raw(memory, address, width)
    (value,) = struct.unpack(options.struct_prefix + FORMAT_CHARS[(width, False)], data)
    return value


def _cut_wide(data: bytes) -> bytes:
    for i in range(0, len(data) - 1, 2):
        if data[i] == 0 and data[i + 1] == 0:
            return data[:i]
    return data


def _decode_text(data: bytes, encoding: str, address: int) -> str:
    try:
        return data.decode(encoding)
    except UnicodeDecodeError as exc:
        raise DecodeError(f"text at 0x{address:x} is not valid {encoding}: {exc.reason}") from exc


def _encode_text(value: str, encoding: str) -> bytes:
    try:
        return value.encode(encoding)
    except UnicodeEncodeError as exc:
        raise EncodeError(f"{value!r} cannot be encoded as {encoding}: {exc.reason}") from exc


def _pack_float(value: int | float, width: int, options: Options) -> bytes:
    try:
        return struct.pack(options.struct_prefix + FLOAT_FORMAT_CHARS[width], float(value))
    except (OverflowError, struct.error) as exc:
        raise EncodeError(f"{value!r} does not fit {FLOAT_NAMES[width]}: {exc}") from exc


def _text_encoding(descriptor: Text | WideText, options: Options) -> str:
    if isinstance(descriptor, WideText):
        return options.wide_text_encoding
    return options.text_encoding


def read(
    memory: MemoryAccess,
    descriptor: TypeDescriptor,
    address: Address | int,
    options: Options | None = None,
) -> Value:
    """Read a value laid out as ``descriptor`` at ``address``.

    Args:
        memory: The memory backend to read from.
        descriptor: Layout of the value.
        address: Where the value starts.
        options: Byte order and text encodings. Defaults to DEFAULT_OPTIONS.

    Returns:
        The decoded value tree.

    Raises:
        MemoryAccessError: The backend failed. Nothing partial is returned.
        DecodeError: Text bytes are not valid in the configured encoding.
    """
    return _read(memory, descriptor, to_address(address).value, options or DEFAULT_OPTIONS)


def _read(memory: MemoryAccess, descriptor: TypeDescriptor, address: int, options: Options) -> Value:
    match descriptor:
        case Integer(width=width, signed=signed):
            data = _read_raw(memory, address, width)
            (value,) = struct.unpack(options.struct_prefix + FORMAT_CHARS[(width, signed)], data)
            return _widen(value)
        case Float(width=width):
            data = _read_raw(memory, address, width)
            (number,) = struct.unpack(options.struct_prefix + FLOAT_FORMAT_CHARS[width], data)
            return number
        case RawAddress(width=width):
            return Address(_read_unsigned(memory, address, width, options))
        case Pointer(width=width, inner=inner):
            return TypedPointer(inner, Address(_read_unsigned(memory, address, width, options)))
        case Text(length=length):
            data = _read_raw(memory, address, length)
            return _decode_text(data.split(b"\x00", 1)[0], options.text_encoding, address)
        case WideText():
            data = _read_raw(memory, address, size(descriptor))
            return _decode_text(_cut_wide(data), options.wide_text_encoding, address)
        case Struct(fields=fields):
            logger.debug(f"Reading struct of {len(fields)} fields at 0x{address:x}")
            record: dict[str, Value] = {}
            for offset, member in fields:
                record[member.name] = _read(memory, member.type, address + offset, options)
            return record
        case Collection(element=element, count=count):
            logger.debug(f"Reading {count} x {kind_name(element)} at 0x{address:x}")
            stride = size(element)
            return [_read(memory, element, address + i * stride, options) for i in range(count)]
    raise TypeError(f"Not a type descriptor: {descriptor!r}")


def check_value(descriptor: TypeDescriptor, value: Value, options: Options | None = None) -> None:
    """Check that a value has the shape ``descriptor`` requires.

    Raises:
        ShapeMismatchError: Wrong kind of value, missing struct field, wrong
            collection length or text too long for its slot.
        EncodeError: Text that cannot be encoded, or a float out of range.
    """
    options = options or DEFAULT_OPTIONS
    match descriptor:
        case Integer():
            if not _is_int(value):
                raise ShapeMismatchError(
                    f"{kind_name(descriptor)} expects an integer, got {_type_name(value)}"
                )
        case Float(width=width):
            if not (_is_int(value) or isinstance(value, float)):
                raise ShapeMismatchError(
                    f"{kind_name(descriptor)} expects a number, got {_type_name(value)}"
                )
            _pack_float(value, width, options)
        case RawAddress():
            if not (_is_int(value) or isinstance(value, Address)):
                raise ShapeMismatchError(
                    f"{kind_name(descriptor)} expects an address, got {_type_name(value)}"
                )
        case Pointer(inner=inner):
            check_value(inner, value, options)
        case Text() | WideText():
            if not isinstance(value, str):
                raise ShapeMismatchError(
                    f"{kind_name(descriptor)} expects a string, got {_type_name(value)}"
                )
            encoded = _encode_text(value, _text_encoding(descriptor, options))
            if len(encoded) > size(descriptor):
                raise ShapeMismatchError(
                    f"{value!r} takes {len(encoded)} bytes, "
                    f"{kind_name(descriptor)} holds {size(descriptor)}"
                )
        case Struct(fields=fields):
            if not isinstance(value, Mapping):
                raise ShapeMismatchError(f"Struct expects a record, got {_type_name(value)}")
            for _, member in fields:
                if member.name not in value:
                    raise ShapeMismatchError(f"record is missing field `{member.name}`")
                check_value(member.type, value[member.name], options)
        case Collection(element=element, count=count):
            if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
                raise ShapeMismatchError(
                    f"Collection expects a sequence, got {_type_name(value)}"
                )
            if len(value) != count:
                raise ShapeMismatchError(
                    f"Collection expects {count} elements, got {len(value)}"
                )
            for item in value:
                check_value(element, item, options)
        case _:
            raise TypeError(f"Not a type descriptor: {descriptor!r}")


def write(
    memory: MemoryAccess,
    descriptor: TypeDescriptor,
    address: Address | int,
    value: Value,
    options: Options | None = None,
) -> None:
    """Write ``value`` laid out as ``descriptor`` at ``address``.

    Pointer descriptors are followed: the address stored at ``address`` is
    read and ``value`` is written to the pointee there. The pointer slot
    itself is left unchanged.

    Raises:
        ShapeMismatchError: The value does not fit the descriptor. Raised
            before anything is written.
        EncodeError: A number or text cannot be encoded.
        MemoryAccessError: The backend failed.
    """
    options = options or DEFAULT_OPTIONS
    check_value(descriptor, value, options)
    _write(memory, descriptor, to_address(address).value, value, options)


def _write(
    memory: MemoryAccess,
    descriptor: TypeDescriptor,
    address: int,
    value: Value,
    options: Options,
) -> None:
    match descriptor:
        case Integer(width=width):
            mask = (1 << (width * 8)) - 1
            fmt = options.struct_prefix + FORMAT_CHARS[(width, False)]
            _write_raw(memory, address, struct.pack(fmt, value & mask))
        case Float(width=width):
            _write_raw(memory, address, _pack_float(value, width, options))
        case RawAddress(width=width):
            mask = (1 << (width * 8)) - 1
            fmt = options.struct_prefix + FORMAT_CHARS[(width, False)]
            _write_raw(memory, address, struct.pack(fmt, int(value) & mask))
        case Pointer(width=width, inner=inner):
            target = _read_unsigned(memory, address, width, options)
            logger.debug(
                f"Writing through {kind_name(descriptor)} at 0x{address:x} to 0x{target:x}"
            )
            _write(memory, inner, target, value, options)
        case Text() | WideText():
            encoded = _encode_text(value, _text_encoding(descriptor, options))
            _write_raw(memory, address, encoded.ljust(size(descriptor), b"\x00"))
        case Struct(fields=fields):
            for offset, member in fields:
                _write(memory, member.type, address + offset, value[member.name], options)
        case Collection(element=element):
            stride = size(element)
            for i, item in enumerate(value):
                _write(memory, element, address + i * stride, item, options)
        case _:
            raise TypeError(f"Not a type descriptor: {descriptor!r}")
