"""Exception hierarchy for pileup access.

Everything raised on purpose by this package derives from :class:`PileupError`,
so callers (and the CLI) can catch one type and print a readable message.
"""

from __future__ import annotations

from typing import Optional


class PileupError(RuntimeError):
    """Base class for all pileupstats errors."""


class FileOpenError(PileupError):
    """Raised when an alignment file cannot be opened."""


class IndexMissingError(PileupError):
    """Raised when an alignment file has no usable index."""


class UnknownReferenceError(PileupError):
    """Raised by an alignment source for a reference name it does not know."""

    def __init__(self, message: str, *, name: str) -> None:
        super().__init__(message)
        self.name = name


class InvalidReferenceError(UnknownReferenceError):
    """Raised by the cursor when asked to seek to an unknown reference."""


class MalformedBaseError(PileupError):
    """Raised when a read carries a base call other than A/C/G/T/N."""

    def __init__(
        self,
        message: str,
        *,
        base: str,
        reference_id: Optional[int] = None,
        position: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.base = base
        self.reference_id = reference_id
        self.position = position


class EmptyQueueError(PileupError):
    """Raised when popping from an empty result queue."""


class UnsortedInputError(PileupError):
    """Raised when alignments are not fed in coordinate order."""
