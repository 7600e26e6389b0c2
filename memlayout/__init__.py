"""memlayout - Typed memory layouts with a declarative struct grammar."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("memlayout")
except PackageNotFoundError:
    __version__ = "(local)"
