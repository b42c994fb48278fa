"""
Collapse per-candidate values of one spectral match into a single cell.

When every candidate agrees the cell holds the shared value and the typed
value is returned alongside it. When candidates disagree the cell lists every
value joined by ``|`` and the typed value is ``None``.
"""

from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Sequence

import numpy as np
from pyteomics import mass

from .config import Settings, get_settings
from .constants import TOLERANCE_FOR_DOUBLE_RESOLUTION_F5, TOO_LONG_FOR_EXCEL
from .modifications import Modification, format_formula


class Resolved(NamedTuple):
    """Cell text plus the shared value, or ``None`` when candidates disagree."""
    text: Optional[str]
    value: object = None


def check_length_of_output(text: str, settings: Optional[Settings] = None) -> str:
    """Replace *text* by a placeholder when it would not fit in an Excel cell."""
    settings = get_settings(settings)
    if settings.write_excel_compatible_tsvs and len(text) > settings.max_excel_cell_length:
        return TOO_LONG_FOR_EXCEL
    return text


def _join(values: Iterable[str], settings: Optional[Settings]) -> str:
    return check_length_of_output("|".join(values), settings)


def resolve_doubles(values: Sequence[float], settings: Optional[Settings] = None) -> Resolved:
    """
    Resolve floating point values within 1e-6 of each other.

    Returns:
        The mean as ``%.5f`` and the mean (the shared value itself when all
        candidates are identical), or the ``|``-joined ``%.5f`` values and
        ``None``.
    """
    array = np.asarray(values, dtype=float)
    if array.max() - array.min() < TOLERANCE_FOR_DOUBLE_RESOLUTION_F5:
        value = float(array[0]) if array.max() == array.min() else float(array.mean())
        return Resolved(f"{value:.5f}", value)
    return Resolved(_join((f"{v:.5f}" for v in array), settings), None)


def resolve_ints(values: Sequence[int], settings: Optional[Settings] = None) -> Resolved:
    """Resolve integers that must be identical."""
    first = values[0]
    if all(v == first for v in values):
        return Resolved(str(first), first)
    return Resolved(_join((str(v) for v in values), settings), None)


def resolve_strings(values: Sequence[Optional[str]],
                    ambiguous_if_null: Optional[str] = None,
                    settings: Optional[Settings] = None) -> Resolved:
    """
    Resolve strings.

    Args:
        values: One string (or ``None``) per candidate.
        ambiguous_if_null: When given and candidates disagree, only the
            distinct values are listed (first-seen order). Callers pass the
            resolved full sequence so candidates sharing a peptide do not
            repeat the same protein name.
        settings: Excel cell-length policy.
    """
    first = next((v for v in values if v is not None), None)
    if first is None or all(v == first for v in values):
        return Resolved(first, first)
    listed: List[str] = ["" if v is None else v for v in values]
    if ambiguous_if_null is not None:
        listed = list(dict.fromkeys(listed))
    return Resolved(_join(listed, settings), None)


def resolve_modification_sets(candidates: Sequence[Iterable[Optional[Modification]]],
                              settings: Optional[Settings] = None) -> Resolved:
    """
    Resolve the summed chemical formula of each candidate's modifications.

    Returns:
        ``unknown`` when any modification lacks a formula; otherwise the
        shared formula and its composition, or the ``|``-joined formulas.
    """
    compositions = []
    for mods in candidates:
        total = mass.Composition()
        for mod in mods:
            if mod is None or mod.chemical_formula is None:
                return Resolved("unknown", None)
            total += mod.composition
        compositions.append(total)

    formulas = [format_formula(c) for c in compositions]
    if all(f == formulas[0] for f in formulas):
        return Resolved(formulas[0], compositions[0])
    return Resolved(_join(formulas, settings), None)


def _identifier_counts(mods: Mapping[int, Modification]) -> Dict[str, int]:
    return dict(sorted(Counter(m.id_with_motif for m in mods.values()).items()))


def resolve_modification_dicts(candidates: Sequence[Mapping[int, Modification]],
                               settings: Optional[Settings] = None) -> Resolved:
    """
    Resolve modification dictionaries by their sorted identifier multisets.

    Returns:
        The space-joined sorted identifiers and an identifier -> count dict,
        or one space-joined list per candidate joined by ``|``.
    """
    counts = [_identifier_counts(mods) for mods in candidates]

    def listing(mods: Mapping[int, Modification]) -> str:
        return " ".join(sorted(m.id_with_motif for m in mods.values()))

    if all(c == counts[0] for c in counts):
        return Resolved(listing(candidates[0]), counts[0])
    return Resolved(_join((listing(m) for m in candidates), settings), None)
