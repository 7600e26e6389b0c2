"""Error types shared by the descriptor model, codec and script engine."""


class MemlayoutError(RuntimeError):
    """Base exception for all memlayout errors."""


class ParseError(MemlayoutError):
    """Raised when script text or a native block cannot be parsed."""

    def __init__(self, message: str, line: int | None = None, column: int | None = None):
        if line is not None:
            message = f"{message} (line {line}, column {column})"
        super().__init__(message)
        self.line = line
        self.column = column


class EvaluationError(MemlayoutError):
    """Raised when an expression does not evaluate to a usable value."""


class LayoutError(MemlayoutError):
    """Raised when two struct fields are placed at the same offset."""


class MemoryAccessError(MemlayoutError):
    """Raised when the memory backend fails to read or write."""

    def __init__(self, address: int, message: str):
        super().__init__(f"memory access at 0x{address:x} failed: {message}")
        self.address = address
        self.message = message


class CodecError(MemlayoutError):
    """Base exception for value encoding and decoding errors."""


class DecodeError(CodecError):
    """Raised when bytes cannot be interpreted as the declared encoding."""


class EncodeError(CodecError):
    """Raised when a value cannot be encoded into the declared representation."""


class ShapeMismatchError(CodecError):
    """Raised when a value does not match the shape its descriptor requires."""
