"""
Configuration for reading and writing PSM tables.

Settings are a plain dataclass so they can be built with defaults, from
command-line options, or copied with ``dataclasses.replace``. Functions that
take an optional ``settings`` argument fall back to ``DEFAULT_SETTINGS``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .constants import ACCEPTED_SPECTRA_FORMATS, MAX_EXCEL_CELL_LENGTH


@dataclass(frozen=True)
class Settings:
    """
    Options shared by the parser, resolver, writer and generic reader.

    Attributes:
        write_excel_compatible_tsvs: Replace cells longer than
            ``max_excel_cell_length`` with a placeholder.
        max_excel_cell_length: Cell length limit used with the option above.
        q_value_threshold: MetaMorpheus rows with a larger q-value are not
            turned into identifications.
        q_value_notch_threshold: Same, for the notch q-value column.
        morpheus_q_value_threshold: Morpheus ``Q-Value (%)`` limit.
        ignore_artifact_ions: Skip neutral-loss ions when reading MaxQuant
            fragment lists.
        accepted_spectra_formats: Extensions stripped from file-name cells.
    """

    write_excel_compatible_tsvs: bool = True
    max_excel_cell_length: int = MAX_EXCEL_CELL_LENGTH
    q_value_threshold: float = 0.01
    q_value_notch_threshold: float = 0.01
    morpheus_q_value_threshold: float = 1.00
    ignore_artifact_ions: bool = False
    accepted_spectra_formats: Tuple[str, ...] = ACCEPTED_SPECTRA_FORMATS


DEFAULT_SETTINGS = Settings()


def get_settings(settings: Optional[Settings] = None) -> Settings:
    """Return *settings* or the package defaults."""
    return DEFAULT_SETTINGS if settings is None else settings
