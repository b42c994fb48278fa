"""
Exception types raised while detecting, parsing and reading PSM tables.
"""

from __future__ import annotations

from typing import Optional


class PsmTsvError(Exception):
    """Base class for all psmtsv errors."""

    pass


class HeaderDetectionError(PsmTsvError):
    """A header line did not match any known result-file schema."""

    def __init__(self, message: str, path: Optional[str] = None):
        if path is not None:
            message = f"{message}: {path}"
        super().__init__(message)
        self.path = path


class RecordParseError(PsmTsvError):
    """A single data line could not be turned into a record.

    Bulk readers catch this per line, log it and continue.
    """

    def __init__(self, message: str, line: Optional[str] = None):
        super().__init__(message)
        self.line = line


class UnknownModificationError(RecordParseError):
    """A MaxQuant modification could not be matched to a known modification."""

    pass


class PsmFileReadError(PsmTsvError):
    """A result file could not be opened or read."""

    pass
