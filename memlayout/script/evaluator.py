"""Expression evaluation over lark parse trees."""

import ast
from typing import Any

from lark import Tree
from lark.exceptions import VisitError
from lark.visitors import Transformer, v_args

from ..config import Options
from ..errors import EvaluationError, MemlayoutError
from . import functions
from .scope import Scope


@v_args(inline=True)
class Evaluator(Transformer):
    """Evaluate an expression tree bottom-up against a scope."""

    def __init__(self, scope: Scope, options: Options):
        super().__init__()
        self.scope = scope
        self.options = options

    def expression(self, value: Any) -> Any:
        return value

    def variable(self, name: Any) -> Any:
        return functions.lookup(self.scope, str(name))

    def integer(self, token: Any) -> int:
        return int(token)

    def hex_number(self, token: Any) -> int:
        return int(token, 16)

    def decimal(self, token: Any) -> float:
        return float(token)

    def string(self, token: Any) -> str:
        return ast.literal_eval(str(token))

    def true(self) -> bool:
        return True

    def false(self) -> bool:
        return False

    def arguments(self, *values: Any) -> list[Any]:
        return list(values)

    def array(self, values: list[Any] | None) -> list[Any]:
        return values or []

    def entry(self, name: Any, value: Any) -> tuple[str, Any]:
        return str(name), value

    def entries(self, *pairs: tuple[str, Any]) -> list[tuple[str, Any]]:
        return list(pairs)

    def record(self, pairs: list[tuple[str, Any]] | None) -> dict[str, Any]:
        return dict(pairs or [])

    def call(self, name: Any, arguments: list[Any] | None) -> Any:
        return functions.call_function(str(name), arguments or [])

    def attribute(self, target: Any, name: Any) -> Any:
        return functions.get_attribute(target, str(name))

    def method_call(self, target: Any, name: Any, arguments: list[Any] | None) -> Any:
        return functions.call_method(target, str(name), arguments or [], self.options)

    def index(self, target: Any, key: Any) -> Any:
        return functions.get_index(target, key)

    def neg(self, value: Any) -> Any:
        return functions.negate(value)

    def add(self, left: Any, right: Any) -> Any:
        return functions.add(left, right)

    def sub(self, left: Any, right: Any) -> Any:
        return functions.subtract(left, right)

    def eq(self, left: Any, right: Any) -> bool:
        return left == right

    def ne(self, left: Any, right: Any) -> bool:
        return left != right


def evaluate(tree: Tree, scope: Scope, options: Options) -> Any:
    """Evaluate an expression tree.

    Errors raised while visiting come out as the original memlayout error
    rather than lark's VisitError wrapper.
    """
    try:
        return Evaluator(scope, options).transform(tree)
    except VisitError as exc:
        if isinstance(exc.orig_exc, MemlayoutError):
            raise exc.orig_exc from None
        raise EvaluationError(f"{exc.rule}: {exc.orig_exc}") from exc.orig_exc
