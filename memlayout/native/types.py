"""Type descriptors for binary memory layouts.

A descriptor is one of a closed set of frozen dataclasses. They describe
how a value is laid out in memory and drive both the codec and the
layout reports. Descriptors are immutable, hashable and compare
structurally, so they can be shared freely between scopes.
"""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field

from ..config import OverlapPolicy
from ..errors import LayoutError

# Integer variants that exist, keyed by (width, signed)
INTEGER_NAMES: dict[tuple[int, bool], str] = {
    (1, False): "UInt8",
    (2, False): "UInt16",
    (4, False): "UInt32",
    (8, False): "UInt64",
    (4, True): "Int32",
    (8, True): "Int64",
}

FLOAT_NAMES: dict[int, str] = {4: "Fp32", 8: "Fp64"}

WIDE_UNIT_SIZE = 2


def _check_width(width: int, allowed: Iterable[int], what: str) -> None:
    if width not in allowed:
        raise ValueError(f"{what} width must be one of {sorted(allowed)}, not {width}")


@dataclass(frozen=True, slots=True)
class Integer:
    """Fixed-width integer."""

    width: int
    signed: bool = False

    def __post_init__(self) -> None:
        if (self.width, self.signed) not in INTEGER_NAMES:
            kind = "signed" if self.signed else "unsigned"
            raise ValueError(f"no {kind} integer of width {self.width}")

    @property
    def size(self) -> int:
        return size(self)


@dataclass(frozen=True, slots=True)
class Float:
    """IEEE 754 floating point number."""

    width: int

    def __post_init__(self) -> None:
        _check_width(self.width, FLOAT_NAMES, "Float")

    @property
    def size(self) -> int:
        return size(self)


@dataclass(frozen=True, slots=True)
class RawAddress:
    """An address stored in memory, read back as an opaque handle."""

    width: int

    def __post_init__(self) -> None:
        _check_width(self.width, (4, 8), "Address")

    @property
    def size(self) -> int:
        return size(self)


@dataclass(frozen=True, slots=True)
class Pointer:
    """An address stored in memory together with the layout it points to."""

    width: int
    inner: "TypeDescriptor"

    def __post_init__(self) -> None:
        _check_width(self.width, (4, 8), "Pointer")

    @property
    def size(self) -> int:
        return size(self)


@dataclass(frozen=True, slots=True)
class Text:
    """Fixed-length narrow text. Length is in bytes."""

    length: int

    def __post_init__(self) -> None:
        if self.length < 0:
            raise ValueError(f"Text length must not be negative, not {self.length}")

    @property
    def size(self) -> int:
        return size(self)


@dataclass(frozen=True, slots=True)
class WideText:
    """Fixed-length wide text. Length is in UTF-16 code units."""

    length: int

    def __post_init__(self) -> None:
        if self.length < 0:
            raise ValueError(f"WideText length must not be negative, not {self.length}")

    @property
    def size(self) -> int:
        return size(self)


@dataclass(frozen=True, slots=True)
class Field:
    """A named member of a struct."""

    name: str
    type: "TypeDescriptor"


@dataclass(frozen=True, slots=True)
class Struct:
    """Named fields placed at explicit byte offsets.

    Fields are kept sorted by offset. Offsets need not be contiguous. When
    the same offset is given more than once the last field wins.
    """

    fields: tuple[tuple[int, Field], ...] = ()

    def __post_init__(self) -> None:
        ordered = tuple(sorted(dict(self.fields).items(), key=lambda item: item[0]))
        for offset, _ in ordered:
            if offset < 0:
                raise ValueError(f"Field offset must not be negative, not {offset}")
        object.__setattr__(self, "fields", ordered)

    @classmethod
    def from_mapping(cls, fields: Mapping[int, Field]) -> "Struct":
        return cls(tuple(fields.items()))

    def __iter__(self) -> Iterator[tuple[int, Field]]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    @property
    def size(self) -> int:
        return size(self)

    def field_by_offset(self, offset: int) -> Field | None:
        """Return the field placed at exactly this offset."""
        for field_offset, member in self.fields:
            if field_offset == offset:
                return member
        return None

    def field_by_name(self, name: str) -> Field | None:
        """Return the first field with this name, in offset order."""
        for _, member in self.fields:
            if member.name == name:
                return member
        return None

    def offset_of(self, name: str) -> int | None:
        """Return the offset of the first field with this name."""
        for offset, member in self.fields:
            if member.name == name:
                return offset
        return None


@dataclass(frozen=True, slots=True)
class Collection:
    """A fixed number of elements of the same type, packed back to back."""

    element: "TypeDescriptor"
    count: int

    def __post_init__(self) -> None:
        if self.count < 0:
            raise ValueError(f"Collection count must not be negative, not {self.count}")

    @property
    def size(self) -> int:
        return size(self)


TypeDescriptor = Integer | Float | RawAddress | Pointer | Text | WideText | Struct | Collection

DESCRIPTOR_TYPES = (Integer, Float, RawAddress, Pointer, Text, WideText, Struct, Collection)


def is_descriptor(value: object) -> bool:
    """Check if a value is a type descriptor."""
    return isinstance(value, DESCRIPTOR_TYPES)


def size(descriptor: TypeDescriptor) -> int:
    """Size in bytes of a descriptor.

    A struct ends where its highest-offset field ends. Space between fields
    is counted, space after the last field is not.
    """
    match descriptor:
        case Integer(width=width) | Float(width=width) | RawAddress(width=width):
            return width
        case Pointer(width=width):
            return width
        case Text(length=length):
            return length
        case WideText(length=length):
            return length * WIDE_UNIT_SIZE
        case Struct(fields=fields):
            if not fields:
                return 0
            offset, last = fields[-1]
            return offset + size(last.type)
        case Collection(element=element, count=count):
            return count * size(element)
    raise TypeError(f"Not a type descriptor: {descriptor!r}")


def equals(first: TypeDescriptor, second: TypeDescriptor) -> bool:
    """Structural equality of two descriptors."""
    return first == second


def kind_name(descriptor: TypeDescriptor) -> str:
    """Name of the descriptor variant, as used in scripts."""
    match descriptor:
        case Integer(width=width, signed=signed):
            return INTEGER_NAMES[(width, signed)]
        case Float(width=width):
            return FLOAT_NAMES[width]
        case RawAddress(width=width):
            return f"Address{width * 8}"
        case Pointer(width=width):
            return f"Pointer{width * 8}"
        case Text():
            return "Text"
        case WideText():
            return "WideText"
        case Struct():
            return "Struct"
        case Collection():
            return "Collection"
    raise TypeError(f"Not a type descriptor: {descriptor!r}")


def describe(descriptor: TypeDescriptor) -> str:
    """Human readable rendering of a descriptor."""
    match descriptor:
        case Pointer(inner=inner):
            return f"{kind_name(descriptor)}({describe(inner)})"
        case Text(length=length) | WideText(length=length):
            return f"{kind_name(descriptor)}({length})"
        case Struct(fields=fields):
            if not fields:
                return "Struct {}"
            members = ", ".join(f"{offset}: {f.name}: {describe(f.type)}" for offset, f in fields)
            return f"Struct {{ {members} }}"
        case Collection(element=element, count=count):
            return f"Collection({describe(element)}, {count})"
    return kind_name(descriptor)


@dataclass
class StructBuilder:
    """Accumulates fields for a struct under an overlap policy."""

    policy: OverlapPolicy = OverlapPolicy.REPLACE
    _fields: dict[int, Field] = field(default_factory=dict)

    def insert(self, offset: int, member: Field) -> None:
        existing = self._fields.get(offset)
        if existing is not None and self.policy == OverlapPolicy.REJECT:
            raise LayoutError(
                f"field `{member.name}` overlaps field `{existing.name}` at offset {offset}"
            )
        self._fields[offset] = member

    def build(self) -> Struct:
        return Struct.from_mapping(self._fields)


UINT8 = Integer(1)
UINT16 = Integer(2)
UINT32 = Integer(4)
UINT64 = Integer(8)
INT32 = Integer(4, signed=True)
INT64 = Integer(8, signed=True)
FP32 = Float(4)
FP64 = Float(8)
ADDRESS32 = RawAddress(4)
ADDRESS64 = RawAddress(8)

# Fixed primitives by their script names
PRIMITIVES: dict[str, TypeDescriptor] = {
    kind_name(d): d
    for d in (UINT8, UINT16, UINT32, UINT64, INT32, INT64, FP32, FP64, ADDRESS32, ADDRESS64)
}
