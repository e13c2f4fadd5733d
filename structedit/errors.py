"""
structedit.errors — Failure taxonomy.

Every failure raised by the library derives from StructEditError, so a
caller can catch the whole family at the edge and still dispatch on the
concrete kind:

    EmptyContentError       blank input handed to a codec
    FormatSyntaxError       malformed JSON / XML / ENV text
    UnsupportedFormatError  unknown codec key
    SerializationError      tree cannot be written in the target format
    PathNotFoundError       change path cannot be resolved to a location
    InvalidPathError        textual field path violates the grammar
"""

from typing import Optional


class StructEditError(Exception):
    """Base class for all structedit failures."""


class EmptyContentError(StructEditError):
    def __init__(self, message: str = "Content cannot be empty"):
        super().__init__(message)
        self.message = message


class FormatSyntaxError(StructEditError):
    """Malformed input text.  Carries a 1-based position when the parser reports one."""

    def __init__(self, message: str, line: Optional[int] = None,
                 column: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"{self.message} (line {self.line}, column {self.column})"


class UnsupportedFormatError(StructEditError):
    def __init__(self, key: str):
        super().__init__(f"Unsupported file type: {key}")
        self.key = key


class SerializationError(StructEditError):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PathNotFoundError(StructEditError):
    def __init__(self, path, reason: str = ""):
        detail = f"Path not found: {path}"
        if reason:
            detail += f" ({reason})"
        super().__init__(detail)
        self.path = path
        self.reason = reason


class InvalidPathError(StructEditError, ValueError):
    def __init__(self, raw: str, reason: str):
        super().__init__(f"Invalid field path {raw!r}: {reason}")
        self.raw = raw
        self.reason = reason
