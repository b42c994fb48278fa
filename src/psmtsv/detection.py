"""
Detect the format of a result file from its header line.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from .exceptions import HeaderDetectionError
from .headers import SCHEMAS, HeaderSchema, SchemaKind
from .logger import get_logger

logger = get_logger(__name__)


def _clean_token(token: str) -> str:
    return token.strip().strip('"').strip()


def split_header(header_line: str) -> List[str]:
    """Split a header line on tabs and remove wrapping quotes."""
    return [_clean_token(t) for t in header_line.rstrip('\r\n').split('\t')]


@dataclass(frozen=True)
class ParsedHeaderIndex:
    """
    Column positions of one concrete file.

    Attributes:
        kind: Detected format.
        columns: Canonical field name -> zero-based column, or -1 when the
            file does not carry that field.
        labels: Header tokens as they appear in the file.
    """
    kind: SchemaKind
    columns: Mapping[str, int] = field(default_factory=dict)
    labels: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'columns', MappingProxyType(dict(self.columns)))

    def get(self, name: str) -> int:
        """Column of canonical field *name*, or -1."""
        return self.columns.get(name, -1)

    def __getitem__(self, name: str) -> int:
        return self.get(name)

    def __contains__(self, name: str) -> bool:
        return self.get(name) >= 0

    @property
    def present(self) -> List[str]:
        """Canonical fields found in the file."""
        return [name for name, index in self.columns.items() if index >= 0]

    @classmethod
    def from_schema(cls, schema: HeaderSchema, tokens: List[str]) -> 'ParsedHeaderIndex':
        lowered = [t.lower() for t in tokens]
        columns: Dict[str, int] = {}
        for name, label in schema.fields.items():
            try:
                columns[name] = lowered.index(label.lower())
            except ValueError:
                columns[name] = -1
        return cls(schema.kind, columns, tuple(tokens))


def detect_file_type(header_line: str) -> Tuple[SchemaKind, ParsedHeaderIndex]:
    """
    Classify a header line.

    Schemas are tested in priority order; the first whose required labels
    are all present wins.

    Args:
        header_line: First line of a tab-delimited result file.

    Returns:
        The detected kind and the column index for it. ``Unknown`` comes
        with an index holding no columns.
    """
    tokens = split_header(header_line)
    lowered = [t.lower() for t in tokens]
    for schema in SCHEMAS:
        if schema.matches(lowered):
            logger.debug("Detected %s header", schema.kind.value)
            return schema.kind, ParsedHeaderIndex.from_schema(schema, tokens)
    return SchemaKind.Unknown, ParsedHeaderIndex(SchemaKind.Unknown, {}, tuple(tokens))


def parse_header(header_line: str, path: Optional[str] = None) -> ParsedHeaderIndex:
    """
    Strict variant of :func:`detect_file_type`.

    Raises:
        HeaderDetectionError: If no schema matches. The message names *path*
            when given.
    """
    kind, index = detect_file_type(header_line)
    if kind is SchemaKind.Unknown:
        raise HeaderDetectionError("Could not interpret header labels", path)
    return index
