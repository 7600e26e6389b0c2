"""Script engine: statements, scopes and custom syntax."""

import logging
import os
from dataclasses import dataclass
from typing import Any

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedCharacters, UnexpectedInput, UnexpectedToken

from ..config import DEFAULT_OPTIONS, Options
from ..errors import ParseError
from .compiler import register_native_syntax
from .evaluator import evaluate
from .scope import Scope
from .syntax import EXPR, IDENT, INT, SYMBOL, CustomSyntax, EvalContext, ImplementFn, ParseFn, SyntaxInput

logger = logging.getLogger(__name__)

_g_parser: Lark | None = None

OPENERS = frozenset(["LPAR", "LBRACE", "HASH_LBRACE", "LSQB"])
CLOSERS = frozenset(["RPAR", "RBRACE", "RSQB"])
EXPRESSION_ENDS = frozenset(["COMMA", "RBRACE", "RPAR", "RSQB"])
VALUE_TOKENS = frozenset(["NAME", "INT", "HEX_NUMBER", "DECIMAL", "STRING", "LET", "TRUE", "FALSE"])

STATEMENT_END = ";"


def get_parser() -> Lark:
    """Return the shared script parser."""
    global _g_parser

    if not _g_parser:
        with open(f"{os.path.dirname(__file__)}/script.lark", encoding="utf-8") as f:
            grammar = f.read()

        _g_parser = Lark(
            grammar,
            parser="lalr",
            start=["statement", "expression", "tokens"],
            propagate_positions=True,
        )
    return _g_parser


def _describe_unexpected(exc: UnexpectedInput) -> str:
    if isinstance(exc, UnexpectedToken):
        if exc.token.type == "$END":
            return "unexpected end of input"
        return f"unexpected `{exc.token}`"
    if isinstance(exc, UnexpectedCharacters):
        return f"unexpected character `{exc.char}`"
    return "unexpected input"


@dataclass(frozen=True, slots=True)
class CustomStatement:
    """A parsed custom syntax statement, waiting to be evaluated."""

    syntax: CustomSyntax
    inputs: tuple[SyntaxInput, ...]


Statement = Tree | CustomStatement


def _split_statements(tokens: list[Token]) -> list[list[Token]]:
    """Split tokens at semicolons that are not nested in brackets."""
    statements: list[list[Token]] = [[]]
    depth = 0

    for token in tokens:
        if token.type == "SEMICOLON" and depth == 0:
            statements.append([])
            continue
        if token.type in OPENERS:
            depth += 1
        elif token.type in CLOSERS:
            depth = max(depth - 1, 0)
        statements[-1].append(token)

    return [statement for statement in statements if statement]


def _expression_end(tokens: list[Token], start: int) -> int:
    """Index of the first token after the expression starting at ``start``."""
    depth = 0
    for i in range(start, len(tokens)):
        token_type = tokens[i].type
        if depth == 0 and token_type in EXPRESSION_ENDS:
            return i
        if token_type in OPENERS:
            depth += 1
        elif token_type in CLOSERS:
            depth -= 1
    return len(tokens)


class Engine:
    """Parses and evaluates scripts.

    The ``native`` declaration is registered by default. Scripts are parsed
    completely before the first statement runs, so a syntax error anywhere
    means nothing is evaluated.

    Example:
        engine = Engine()
        scope = Scope().with_constant("MEMORY", BufferMemory(dump))
        value, scope = engine.eval_with_scope(
            "native Header { ^ 4, count: UInt32 }; MEMORY.read(Header, addr(0)).count",
            scope,
        )
    """

    def __init__(self, options: Options | None = None, *, register_native: bool = True):
        self.options = options or DEFAULT_OPTIONS
        self._syntax: dict[str, CustomSyntax] = {}
        if register_native:
            register_native_syntax(self)

    def register_custom_syntax(self, keyword: str, parse: ParseFn, implement: ImplementFn) -> None:
        self._syntax[keyword] = CustomSyntax(keyword, parse, implement)

    def _tokenize(self, text: str) -> list[Token]:
        try:
            tree = get_parser().parse(text, start="tokens")
        except UnexpectedInput as exc:
            raise ParseError(_describe_unexpected(exc), exc.line, exc.column) from exc
        return list(tree.children)

    def _parse_span(self, text: str, tokens: list[Token], start: str) -> Tree:
        first = tokens[0]
        source = text[first.start_pos : tokens[-1].end_pos]
        try:
            return get_parser().parse(source, start=start)
        except UnexpectedInput as exc:
            line = first.line + exc.line - 1 if exc.line > 0 else first.line
            column = first.column + exc.column - 1 if exc.line == 1 else exc.column
            raise ParseError(_describe_unexpected(exc), line, column) from exc

    def _parse_custom(self, syntax: CustomSyntax, text: str, tokens: list[Token]) -> CustomStatement:
        symbols = [syntax.keyword]
        inputs: list[SyntaxInput] = []
        pos = 1

        while True:
            look_ahead = str(tokens[pos]) if pos < len(tokens) else STATEMENT_END
            expected = syntax.parse(symbols, look_ahead)
            if expected is None:
                break

            if pos >= len(tokens):
                last = tokens[-1]
                raise ParseError(
                    f"`{syntax.keyword}` statement ended, expected {expected}",
                    last.line,
                    last.column,
                )

            token = tokens[pos]
            if expected == EXPR:
                end = _expression_end(tokens, pos)
                if end == pos:
                    raise ParseError(
                        f"expected an expression, found `{token}`", token.line, token.column
                    )
                tree = self._parse_span(text, tokens[pos:end], "expression")
                inputs.append(SyntaxInput(EXPR, token, tree))
                symbols.append(EXPR)
                pos = end
                continue

            if expected == IDENT:
                matched = token.type == "NAME"
            elif expected == INT:
                matched = token.type in ("INT", "HEX_NUMBER")
            elif expected == SYMBOL:
                matched = token.type not in VALUE_TOKENS
            else:
                matched = str(token) == expected
            if not matched:
                raise ParseError(
                    f"expected {expected} in `{syntax.keyword}` statement, found `{token}`",
                    token.line,
                    token.column,
                )

            if expected in (IDENT, INT, SYMBOL):
                inputs.append(SyntaxInput(expected, token))
            symbols.append(str(token))
            pos += 1

        if pos < len(tokens):
            token = tokens[pos]
            raise ParseError(
                f"unexpected `{token}` after `{syntax.keyword}` statement", token.line, token.column
            )
        return CustomStatement(syntax, tuple(inputs))

    def parse(self, text: str) -> list[Statement]:
        """Parse a script into statements without evaluating anything."""
        statements: list[Statement] = []
        for tokens in _split_statements(self._tokenize(text)):
            head = tokens[0]
            syntax = self._syntax.get(str(head)) if head.type == "NAME" else None
            if syntax is not None:
                statements.append(self._parse_custom(syntax, text, tokens))
            else:
                statements.append(self._parse_span(text, tokens, "statement"))
        return statements

    def _execute(self, statement: Statement, scope: Scope) -> tuple[Any, Scope]:
        if isinstance(statement, CustomStatement):
            context = EvalContext(scope, self.options)
            return statement.syntax.implement(context, list(statement.inputs))

        if statement.data == "let_binding":
            name, expression = statement.children
            value = evaluate(expression, scope, self.options)
            logger.debug(f"let {name}")
            return None, scope.with_variable(str(name), value)

        return evaluate(statement.children[0], scope, self.options), scope

    def eval_with_scope(self, text: str, scope: Scope) -> tuple[Any, Scope]:
        """Run a script and return its last value and the resulting scope."""
        statements = self.parse(text)
        logger.debug(f"Evaluating {len(statements)} statements")

        result: Any = None
        for statement in statements:
            result, scope = self._execute(statement, scope)
        return result, scope

    def eval(self, text: str, scope: Scope | None = None) -> Any:
        """Run a script and return the value of its last statement."""
        result, _ = self.eval_with_scope(text, scope if scope is not None else Scope())
        return result
