"""Functions, attributes and methods available to scripts."""

import inspect
from collections.abc import Callable
from typing import Any

from ..config import Options
from ..errors import EvaluationError
from ..native import codec
from ..native.memory import MemoryAccess
from ..native.pointer import Address, TypedPointer, to_address
from ..native.types import (
    PRIMITIVES,
    Collection,
    Pointer,
    Struct,
    Text,
    TypeDescriptor,
    WideText,
    describe,
    is_descriptor,
    kind_name,
    size,
)
from .scope import Scope

FUNCTIONS: dict[str, Callable[..., Any]] = {}


def _function(name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def register(fn: Callable[..., Any]) -> Callable[..., Any]:
        FUNCTIONS[name] = fn
        return fn

    return register


def type_name(value: object) -> str:
    """Script-facing name of a value's type."""
    if value is None:
        return "()"
    if is_descriptor(value):
        return "Type"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, dict):
        return "record"
    if isinstance(value, list):
        return "array"
    if isinstance(value, TypedPointer):
        return "Pointer"
    return type(value).__name__


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _expect_int(value: Any, what: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise EvaluationError(f"{what} must be an integer, got {type_name(value)}")
    return value


def _expect_count(value: Any, what: str) -> int:
    count = _expect_int(value, what)
    if count < 0:
        raise EvaluationError(f"{what} must not be negative, got {count}")
    return count


def _expect_descriptor(value: Any, what: str) -> TypeDescriptor:
    if not is_descriptor(value):
        raise EvaluationError(f"{what} must be a type, got {type_name(value)}")
    return value


def _expect_address(value: Any, what: str) -> Address:
    if isinstance(value, TypedPointer):
        return value.address
    try:
        return to_address(value)
    except TypeError:
        raise EvaluationError(f"{what} must be an address, got {type_name(value)}") from None


def lookup(scope: Scope, name: str) -> Any:
    """Resolve a variable, falling back to the primitive types."""
    if name in scope:
        return scope[name]
    if name in PRIMITIVES:
        return PRIMITIVES[name]
    raise EvaluationError(f"variable `{name}` is not defined")


@_function("addr")
def make_address(num: Any) -> Address:
    return Address.from_int(_expect_int(num, "addr"))


@_function("ptr")
def make_pointer(descriptor: Any, address: Any) -> TypedPointer:
    return TypedPointer(
        _expect_descriptor(descriptor, "ptr type"), _expect_address(address, "ptr address")
    )


@_function("Text")
def make_text(length: Any) -> Text:
    return Text(_expect_count(length, "Text length"))


@_function("WideText")
def make_wide_text(length: Any) -> WideText:
    return WideText(_expect_count(length, "WideText length"))


@_function("Pointer32")
def make_pointer32(inner: Any) -> Pointer:
    return Pointer(4, _expect_descriptor(inner, "Pointer32 target"))


@_function("Pointer64")
def make_pointer64(inner: Any) -> Pointer:
    return Pointer(8, _expect_descriptor(inner, "Pointer64 target"))


@_function("Collection")
def make_collection(element: Any, count: Any) -> Collection:
    return Collection(
        _expect_descriptor(element, "Collection element"), _expect_count(count, "Collection count")
    )


@_function("Struct")
def make_struct(native: Any) -> Struct:
    if not isinstance(native, Struct):
        raise EvaluationError(f"Struct expects a native struct, got {type_name(native)}")
    return native


@_function("size_of")
def size_of(descriptor: Any) -> int:
    return size(_expect_descriptor(descriptor, "size_of argument"))


@_function("to_string")
def to_string(value: Any) -> str:
    if is_descriptor(value):
        return describe(value)
    if isinstance(value, TypedPointer):
        return repr(value)
    if value is None:
        return "()"
    return str(value)


def call_function(name: str, arguments: list[Any]) -> Any:
    fn = FUNCTIONS.get(name)
    if fn is None:
        raise EvaluationError(f"function `{name}` is not defined")
    try:
        inspect.signature(fn).bind(*arguments)
    except TypeError:
        arity = len(inspect.signature(fn).parameters)
        raise EvaluationError(
            f"`{name}` takes {arity} argument{'s' if arity != 1 else ''}, got {len(arguments)}"
        ) from None
    return fn(*arguments)


def get_attribute(target: Any, name: str) -> Any:
    if isinstance(target, dict):
        if name not in target:
            raise EvaluationError(f"record has no field `{name}`")
        return target[name]

    if isinstance(target, TypedPointer):
        if name == "addr":
            return target.address
        if name == "type":
            return target.type

    if isinstance(target, Address) and name == "value":
        return target.value

    if is_descriptor(target):
        if name == "size":
            return size(target)
        if name == "kind":
            return kind_name(target)
        if name == "native":
            return target if isinstance(target, Struct) else None

    raise EvaluationError(f"{type_name(target)} has no attribute `{name}`")


def get_index(target: Any, key: Any) -> Any:
    if isinstance(target, list):
        index = _expect_int(key, "array index")
        if not -len(target) <= index < len(target):
            raise EvaluationError(f"array index {index} out of range for length {len(target)}")
        return target[index]
    if isinstance(target, dict):
        if key not in target:
            raise EvaluationError(f"record has no field `{key}`")
        return target[key]
    raise EvaluationError(f"{type_name(target)} cannot be indexed")


def _memory_read(memory: MemoryAccess, arguments: list[Any], options: Options) -> Any:
    match arguments:
        case [TypedPointer() as pointer]:
            return codec.read(memory, pointer.type, pointer.address, options)
        case [descriptor, address] if is_descriptor(descriptor):
            return codec.read(memory, descriptor, _expect_address(address, "read address"), options)
    raise EvaluationError("read expects (type, address) or (pointer)")


def _memory_write(memory: MemoryAccess, arguments: list[Any], options: Options) -> None:
    match arguments:
        case [TypedPointer() as pointer, value]:
            codec.write(memory, pointer.type, pointer.address, value, options)
            return
        case [descriptor, address, value] if is_descriptor(descriptor):
            codec.write(
                memory, descriptor, _expect_address(address, "write address"), value, options
            )
            return
    raise EvaluationError("write expects (type, address, value) or (pointer, value)")


def call_method(target: Any, name: str, arguments: list[Any], options: Options) -> Any:
    if isinstance(target, MemoryAccess):
        if name == "read":
            return _memory_read(target, arguments, options)
        if name == "write":
            return _memory_write(target, arguments, options)
    raise EvaluationError(f"{type_name(target)} has no method `{name}`")


def negate(value: Any) -> Any:
    if not _is_number(value):
        raise EvaluationError(f"cannot negate {type_name(value)}")
    return -value


def add(left: Any, right: Any) -> Any:
    if isinstance(left, (Address, TypedPointer)) and isinstance(right, int):
        if not isinstance(right, bool):
            return left + right
    if _is_number(left) and _is_number(right):
        return left + right
    if isinstance(left, str) and isinstance(right, str):
        return left + right
    if isinstance(left, list) and isinstance(right, list):
        return left + right
    raise EvaluationError(f"cannot add {type_name(left)} and {type_name(right)}")


def subtract(left: Any, right: Any) -> Any:
    if _is_number(left) and _is_number(right):
        return left - right
    raise EvaluationError(f"cannot subtract {type_name(right)} from {type_name(left)}")
