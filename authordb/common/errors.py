"""Errors raised while building a database."""

from __future__ import annotations


class BuildError(Exception):
    """Base class for every fatal build error."""


class InputAccessError(BuildError):
    """The input cannot be opened, read or rewound."""


class InputChangedError(InputAccessError):
    """The input changed between two scans."""


class MalformedInputError(BuildError):
    """The input cannot be parsed."""

    def __init__(self, message: str, line: int | None = None) -> None:
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class MalformedRowError(MalformedInputError):
    """A row does not have the expected columns."""


class OutputAccessError(BuildError):
    """The output cannot be created, written or finalized."""


class SinkError(BuildError):
    """The writer failed while consuming records."""
