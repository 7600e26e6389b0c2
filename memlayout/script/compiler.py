"""Compiler for ``native`` struct declarations.

A declaration looks like::

    native Player {
        ^ 16,
        health: Int32,
        name: Text(32),
        target: Pointer64(Entity),
        position: Vector3
    };

Items are separated by commas. ``^ N`` skips N bytes. Every other item is a
field: a name, a colon and a type expression. Fields are placed one after
another starting at offset 0. A field whose type is another native struct
embeds that struct by value.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from lark import Tree

from ..config import OverlapPolicy
from ..errors import EvaluationError, MemlayoutError, ParseError
from ..native.types import Field, Struct, StructBuilder, is_descriptor, size
from .functions import type_name
from .scope import Scope
from .syntax import EXPR, IDENT, INT, SYMBOL, EvalContext, SyntaxInput

if TYPE_CHECKING:
    from .engine import Engine

logger = logging.getLogger(__name__)

KEYWORD = "native"
PADDING_MARKER = "^"


@dataclass(frozen=True, slots=True)
class Padding:
    size: int


@dataclass(frozen=True, slots=True)
class FieldItem:
    name: str
    type_expression: Tree


NativeItem = Padding | FieldItem


def _current_item(symbols: list[str]) -> list[str]:
    item: list[str] = []
    for symbol in reversed(symbols):
        if symbol in ("{", ","):
            break
        item.append(symbol)
    item.reverse()
    return item


def parse_native(symbols: list[str], look_ahead: str) -> str | None:
    """Return what a native declaration expects next.

    Args:
        symbols: Symbols matched so far, starting with the keyword.
            Expressions appear as ``$expr$``.
        look_ahead: Text of the next token, ``;`` at the end of the statement.

    Returns:
        A token class (``$ident$``, ``$int$``, ``$symbol$``, ``$expr$``), a
        literal symbol, or None when the declaration is complete.
    """
    if len(symbols) == 1:
        return IDENT
    if len(symbols) == 2:
        return "{"
    if symbols[-1] == "}":
        return None

    item = _current_item(symbols)
    if not item:
        return SYMBOL if look_ahead == PADDING_MARKER else IDENT
    if len(item) == 1:
        return INT if item[0] == PADDING_MARKER else ":"
    if len(item) == 2 and item[0] != PADDING_MARKER:
        return EXPR

    # Item complete
    if look_ahead == "}":
        return "}"
    return ","


def native_items(inputs: list[SyntaxInput]) -> tuple[str, list[NativeItem]]:
    """Group the matched inputs of a declaration into its name and items."""
    name = inputs[0].text
    items: list[NativeItem] = []

    rest = iter(inputs[1:])
    for head in rest:
        if head.kind == SYMBOL and head.text == PADDING_MARKER:
            amount = next(rest, None)
            if amount is None or amount.literal is None:
                raise ParseError(f"padding in `{name}` must be a constant integer literal")
            items.append(Padding(amount.literal))
        elif head.kind == IDENT:
            expression = next(rest, None)
            if expression is None or expression.kind != EXPR or expression.tree is None:
                raise ParseError(f"field `{head.text}` in `{name}` has no type")
            items.append(FieldItem(head.text, expression.tree))
        else:
            raise ParseError(f"unhandled input `{head.text}` in native block `{name}`")

    if not items:
        raise ParseError(f"native block `{name}` is empty")
    return name, items


def compile_native(
    name: str,
    items: list[NativeItem],
    evaluate: Callable[[Tree], Any],
    policy: OverlapPolicy = OverlapPolicy.REPLACE,
) -> Struct:
    """Build the struct a declaration describes.

    Args:
        name: Declared struct name, used in error messages.
        items: Padding and field items in declaration order.
        evaluate: Evaluates a field's type expression.
        policy: What to do when two fields land on the same offset.

    Raises:
        EvaluationError: A type expression failed or is not a type.
        LayoutError: Overlapping fields under OverlapPolicy.REJECT.
    """
    builder = StructBuilder(policy)
    offset = 0

    for item in items:
        match item:
            case Padding(size=amount):
                offset += amount
            case FieldItem(name=field_name, type_expression=expression):
                try:
                    field_type = evaluate(expression)
                except MemlayoutError as exc:
                    raise EvaluationError(
                        f"failed to resolve the type of `{field_name}` in `{name}`: {exc}"
                    ) from exc
                if not is_descriptor(field_type):
                    raise EvaluationError(
                        f"cannot use {type_name(field_type)} as the type of "
                        f"`{field_name}` in `{name}`"
                    )
                builder.insert(offset, Field(field_name, field_type))
                offset += size(field_type)

    return builder.build()


def implement_native(context: EvalContext, inputs: list[SyntaxInput]) -> tuple[None, Scope]:
    """Compile a declaration and bind it as a constant in a new scope."""
    name, items = native_items(inputs)
    struct = compile_native(
        name, items, context.eval_expression_tree, context.options.overlap_policy
    )
    logger.debug(f"Declared native `{name}` with {len(struct)} fields, {struct.size} bytes")
    return None, context.scope.with_constant(name, struct)


def register_native_syntax(engine: Engine) -> None:
    engine.register_custom_syntax(KEYWORD, parse_native, implement_native)
