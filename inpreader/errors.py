"""
Exceptions raised while reading .inp mesh files.

All of them derive from `InpParseError`, itself a `ValueError`, so callers
that only care about "bad input" can catch one type.
"""
from typing import Optional


class InpParseError(ValueError):
    """Base exception for parsing errors"""

    def __init__(self, message: str, filename: Optional[str] = None,
                 line_number: Optional[int] = None, line: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.filename = filename
        self.line_number = line_number
        self.line = line

    def __str__(self) -> str:
        location = self.filename or "<input>"
        if self.line_number:
            location = f"{location}:{self.line_number}"
        text = f"{location}: {self.message}"
        if self.line is not None:
            text += f" ({self.line!r})"
        return text


class MalformedContentError(InpParseError):
    """Exception for structurally invalid content"""
    pass


class DimensionMismatchError(InpParseError):
    """Node blocks with different coordinate counts"""
    pass


class UnsupportedStructureError(InpParseError):
    """Multiple parts or instances"""
    pass
