"""
Utility functions for spectra file names and file lookup.
"""

from __future__ import annotations

import os
import re
from typing import Iterable, Optional

from .constants import ACCEPTED_SPECTRA_FORMATS

PERIOD_TOLERANT_EXTENSIONS = ('.raw', '.mzml', '.mgf', '.d', '.mzml.gz', '.mgf.gz', '.psmtsv', '.tsv', '.txt')


def path_file_name(path: str) -> str:
    """File component of a Windows or POSIX path."""
    return re.split(r"[\\/]", path.strip())[-1]


def file_name_without_extension(name: str,
                                extensions: Iterable[str] = ACCEPTED_SPECTRA_FORMATS) -> str:
    """
    Remove spectra-file extensions from a file-name cell.

    Extensions are matched case-insensitively at the end of the name and
    removed repeatedly, so ``run.mzML.raw`` becomes ``run``. Other periods
    are kept (``a.b.raw`` becomes ``a.b``).

    Args:
        name: File name, optionally with a directory.
        extensions: Extensions to remove, lower case with leading period.

    Returns:
        The file name without directory and extensions.
    """
    name = path_file_name(name)
    extensions = [e.lower() for e in extensions]
    stripped = True
    while stripped:
        stripped = False
        for ext in extensions:
            if len(name) > len(ext) and name.lower().endswith(ext):
                name = name[:-len(ext)]
                stripped = True
    return name


def period_tolerant_stem(path: str) -> str:
    """
    File name without its extension, keeping periods inside the name.

    Only a known spectra or results extension is removed, so
    ``sample.1.raw`` gives ``sample.1`` and ``sample.1`` stays as it is.
    """
    name = path_file_name(path)
    lowered = name.lower()
    for ext in sorted(PERIOD_TOLERANT_EXTENSIONS, key=len, reverse=True):
        if lowered.endswith(ext) and len(name) > len(ext):
            return name[:-len(ext)]
    return name


SPECTRA_FILE_PATTERNS = (
    "{name}.mzML",
    "{name}-calib.mzML",
    "{name}_calibrated.mzML",
    "{name}.mgf",
    "{name}.raw",
)
"""Spectra file names tried for a File Name stem, most preferred first."""


def find_spectra_file(basename: str,
                      directory: str,
                      patterns: Optional[Iterable[str]] = None) -> Optional[str]:
    """
    Locate the spectra file a result row refers to.

    The names in *patterns* (``{name}`` stands for *basename*) are tried in
    order. If none exists, any accepted spectra file in *directory* whose
    period-tolerant stem equals *basename* is used, so ``sample.MGF`` is
    found for ``sample``.

    Returns:
        Path of the spectra file, or None when *directory* holds none.
    """
    if not os.path.isdir(directory):
        return None
    if patterns is None:
        patterns = SPECTRA_FILE_PATTERNS

    candidates = (os.path.join(directory, p.format(name=basename)) for p in patterns)
    found = next((c for c in candidates if os.path.isfile(c)), None)
    if found is not None:
        return found

    matching = [entry for entry in sorted(os.listdir(directory))
                if entry.lower().endswith(ACCEPTED_SPECTRA_FORMATS) and period_tolerant_stem(entry) == basename]
    return os.path.join(directory, matching[0]) if matching else None
