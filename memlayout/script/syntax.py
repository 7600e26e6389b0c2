"""Custom syntax support for the script engine.

A custom syntax is a keyword plus two callables. ``parse`` is asked, one
token at a time, what it expects next; ``implement`` receives the matched
pieces once the whole script has parsed and returns a value and a scope.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from lark import Token, Tree

from ..config import Options
from .evaluator import evaluate
from .scope import Scope

# Token classes a parse function may ask for. Anything else is a literal.
IDENT = "$ident$"
INT = "$int$"
SYMBOL = "$symbol$"
EXPR = "$expr$"


@dataclass(frozen=True, slots=True)
class SyntaxInput:
    """One matched piece of a custom syntax statement."""

    kind: str
    token: Token
    tree: Tree | None = None  # Set for EXPR inputs

    @property
    def text(self) -> str:
        return str(self.token)

    @property
    def literal(self) -> int | None:
        if self.kind != INT:
            return None
        if self.token.type == "HEX_NUMBER":
            return int(self.token, 16)
        return int(self.token)


class EvalContext:
    """What a custom syntax implementation can see while it runs."""

    def __init__(self, scope: Scope, options: Options):
        self.scope = scope
        self.options = options

    def eval_expression_tree(self, tree: Tree) -> Any:
        return evaluate(tree, self.scope, self.options)


ParseFn = Callable[[list[str], str], str | None]
ImplementFn = Callable[[EvalContext, list[SyntaxInput]], tuple[Any, Scope]]


@dataclass(frozen=True, slots=True)
class CustomSyntax:
    keyword: str
    parse: ParseFn
    implement: ImplementFn
