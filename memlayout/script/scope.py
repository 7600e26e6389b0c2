"""Variable scope for script evaluation."""

from collections.abc import Iterator
from typing import Any

from ..errors import EvaluationError


class Scope:
    """An immutable mapping of names to values.

    Binding a name returns a new scope and leaves this one untouched, so a
    failed statement never leaves a half-updated scope behind.
    """

    __slots__ = ("_values", "_constants")

    def __init__(self, values: dict[str, Any] | None = None, constants: frozenset[str] = frozenset()):
        self._values = dict(values or {})
        self._constants = constants

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    def items(self) -> Iterator[tuple[str, Any]]:
        return iter(self._values.items())

    def is_constant(self, name: str) -> bool:
        return name in self._constants

    def with_constant(self, name: str, value: Any) -> "Scope":
        """Bind an immutable name. Constants may be redeclared as constants."""
        values = {**self._values, name: value}
        return Scope(values, self._constants | {name})

    def with_variable(self, name: str, value: Any) -> "Scope":
        """Bind a mutable name."""
        if name in self._constants:
            raise EvaluationError(f"cannot assign to constant `{name}`")
        values = {**self._values, name: value}
        return Scope(values, self._constants)

    def __repr__(self) -> str:
        return f"Scope({', '.join(self._values)})"
