"""Script engine and the ``native`` struct declaration."""

from .compiler import compile_native as compile_native
from .compiler import parse_native as parse_native
from .engine import Engine as Engine
from .scope import Scope as Scope
from .syntax import EvalContext as EvalContext
from .syntax import SyntaxInput as SyntaxInput
