"""
MaxQuant ``msms.txt`` support.

MaxQuant writes modifications as ``(Name (Position))`` inline, for example
``_(Acetyl (Protein N-term))M(Oxidation (M))PEPTIDE_``. These are converted
to bracketed annotations by picking the known modification whose identifier
is closest by Levenshtein distance and whose target fits the residue.
The match is a heuristic: similar names can pick the wrong modification.
"""

from __future__ import annotations

import itertools
import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .config import Settings, get_settings
from .detection import ParsedHeaderIndex
from .exceptions import RecordParseError, UnknownModificationError
from .headers import PsmTsvHeader as H
from .ions import build_fragment_strings_from_maxquant, read_fragment_ions_from_list
from .logger import get_logger
from .modifications import (
    Modification, ModificationCatalog, default_catalog, insert_fixed_modifications,
    remove_parentheses,
)
from .records import MatchRecord, get_cell, parse_float, parse_precursor_scan_number
from .utils import file_name_without_extension

logger = get_logger(__name__)

MAXQUANT_MOD_PATTERN = re.compile(r"\([A-Z][a-z]*[\s]\([^\(]*\)\)")
_INTERNAL_RESIDUES = re.compile(r"([A-Z]*)\(")
_FINAL_RESIDUES = re.compile(r"([A-Z]*)$")
_MOD_NAME = re.compile(r"\((.*)\(")
_MOD_LOCATION = re.compile(r"\(.*\(([^\)]*)\)")

N_TERMINAL_LOCATIONS = ("N-term", "Protein N-term")
C_TERMINAL_LOCATIONS = ("C-term", "Protein C-term")

ModCache = Dict[str, Modification]


# =============================================================================
# Modification matching
# =============================================================================

def levenshtein_distance(s: str, t: str) -> int:
    """Edit distance between two strings."""
    n, m = len(s), len(t)
    if n == 0:
        return m
    if m == 0:
        return n

    d = np.zeros((n + 1, m + 1), dtype=int)
    d[:, 0] = np.arange(n + 1)
    d[0, :] = np.arange(m + 1)
    for i in range(1, n + 1):
        for j in range(1, m + 1):
            cost = 0 if s[i - 1] == t[j - 1] else 1
            d[i, j] = min(d[i - 1, j] + 1, d[i, j - 1] + 1, d[i - 1, j - 1] + cost)
    return int(d[n, m])


def translate_maxquant_position(mod_string: str, preceding: Optional[str],
                                following: Optional[str]) -> str:
    """
    Target residue of a MaxQuant modification.

    Args:
        mod_string: ``(Name (Location))``.
        preceding: Residue before the modification, None at the N-terminus.
        following: Residue after the modification, None at the C-terminus.

    Returns:
        A one-letter location as is, the following residue for N-terminal
        locations, the preceding residue for C-terminal ones, and ``X`` for
        anything else (``STY`` for example).

    Raises:
        ValueError: If a terminal location lacks its neighbouring residue.
    """
    match = _MOD_LOCATION.search(mod_string)
    location = match.group(1) if match else ""
    if len(location) == 1:
        return location
    if location in N_TERMINAL_LOCATIONS:
        if following is None:
            raise ValueError(f"Error in parsing N-term mod: {mod_string}")
        return following
    if location in C_TERMINAL_LOCATIONS:
        if preceding is None:
            raise ValueError(f"Error in parsing C-term mod: {mod_string}")
        return preceding
    return "X"


def parse_maxquant_mod(mod_string: str,
                       preceding: Optional[str],
                       following: Optional[str],
                       catalog: Optional[ModificationCatalog] = None,
                       cache: Optional[ModCache] = None) -> Optional[Modification]:
    """
    Closest known modification for a MaxQuant ``(Name (Location))`` token.

    Candidates are grouped by Levenshtein distance between the MaxQuant name
    and each modification's original id. Within the closest group holding
    any usable candidate, an exact target match wins over a wildcard ``X``
    target.

    Args:
        mod_string: The MaxQuant token.
        preceding: Residue before the token, or None.
        following: Residue after the token, or None.
        catalog: Known modifications; the default catalog when None.
        cache: Token -> modification memo. Only tokens with both
            neighbouring residues known are read from or written to it.

    Returns:
        The modification, or None when no candidate qualifies.
    """
    catalog = catalog if catalog is not None else default_catalog()
    cacheable = cache is not None and preceding is not None and following is not None
    if cacheable and mod_string in cache:
        return cache[mod_string]

    name_match = _MOD_NAME.search(mod_string)
    name = name_match.group(1).strip() if name_match else ""
    location = translate_maxquant_position(mod_string, preceding, following)

    scored = sorted(((levenshtein_distance(name, mod.original_id), mod) for mod in catalog),
                    key=lambda pair: pair[0])
    found: Optional[Modification] = None
    for _, group in itertools.groupby(scored, key=lambda pair: pair[0]):
        for _, mod in group:
            if mod.target == location:
                found = mod
                break
            if mod.target == "X":
                found = mod
        if found is not None:
            break

    if found is not None and cacheable:
        cache[mod_string] = found
    return found


def find_variable_mods_in_maxquant_sequence(sequence: str,
                                            catalog: Optional[ModificationCatalog] = None,
                                            cache: Optional[ModCache] = None,
                                            ) -> Optional[Dict[int, Modification]]:
    """
    Locate and resolve the modifications of a trimmed MaxQuant sequence.

    Returns:
        One-based position (1 is the N-terminus) -> modification, or None
        when the sequence has no modification.

    Raises:
        UnknownModificationError: If a token matches no known modification.
    """
    matches = list(MAXQUANT_MOD_PATTERN.finditer(sequence))
    if not matches:
        return None

    mods: Dict[int, Modification] = {}
    offset = 0
    for match in matches:
        start, end = match.start(), match.end()
        preceding = sequence[start - 1] if start > 0 else None
        following = sequence[end] if end < len(sequence) else None
        mod = parse_maxquant_mod(match.group(0), preceding, following, catalog, cache)
        if mod is None:
            raise UnknownModificationError(f"Could not resolve MaxQuant modification {match.group(0)}")
        mods.setdefault(1 + start - offset, mod)
        offset += end - start
    return mods


def convert_maxquant_full_sequence(mq_sequence: str,
                                   catalog: Optional[ModificationCatalog] = None,
                                   fixed_mods: Optional[Sequence[Modification]] = None,
                                   cache: Optional[ModCache] = None,
                                   ) -> Tuple[str, Dict[str, Modification], int]:
    """
    Convert a MaxQuant modified sequence to bracketed annotations.

    Args:
        mq_sequence: e.g. ``_(Acetyl (Protein N-term))M(Oxidation (M))PEPTIDE_``.
        catalog: Known modifications.
        fixed_mods: Fixed modifications to insert at every unmodified target
            residue; Carbamidomethyl on C when None.
        cache: MaxQuant token memo shared across calls.

    Returns:
        The converted sequence, the modifications used keyed by
        ``IdWithMotif``, and the number of fixed modifications inserted.

    Raises:
        UnknownModificationError: If a modification cannot be resolved.
    """
    catalog = catalog if catalog is not None else default_catalog()
    trimmed = mq_sequence.strip('_')
    known: Dict[str, Modification] = {}

    mods = find_variable_mods_in_maxquant_sequence(trimmed, catalog, cache)
    if mods:
        internal = [run for run in _INTERNAL_RESIDUES.findall(trimmed) if run.strip()]
        final = _FINAL_RESIDUES.search(trimmed).group(1)
        ordered = [mods[key] for key in sorted(mods)]

        if min(mods) == 1:
            full = "".join(mod.annotation + run for mod, run in zip(ordered, internal + [final]))
        else:
            full = "".join(run + mod.annotation for run, mod in zip(internal, ordered)) + final

        for mod in ordered:
            known.setdefault(mod.id_with_motif, mod)
    else:
        full = trimmed

    if fixed_mods is None:
        fixed_mods = [catalog["Carbamidomethyl on C"]]
    full, present = insert_fixed_modifications(full, fixed_mods)
    for mod in present:
        known.setdefault(mod.id_with_motif, mod)

    return full, known, len(present)


# =============================================================================
# msms.txt records
# =============================================================================

def _is_blank(text: Optional[str]) -> bool:
    return text is None or not text.strip()


def record_from_maxquant_fields(fields: Sequence[str],
                                header: ParsedHeaderIndex,
                                settings: Optional[Settings] = None,
                                catalog: Optional[ModificationCatalog] = None,
                                cache: Optional[ModCache] = None) -> MatchRecord:
    """
    Build a record from one ``msms.txt`` row.

    The ``Mass`` column is the precursor mass; the peptide mass is that plus
    ``Mass error [Da]`` unless the error is missing or NaN. Rows with an
    empty ``Matches`` cell get score 0 and no matched ions. A MaxQuant
    modified sequence (wrapped in ``_``) is converted to bracketed form.

    Raises:
        RecordParseError: For unparsable cells.
        UnknownModificationError: If the modified sequence cannot be converted.
    """
    settings = get_settings(settings)
    try:
        base = remove_parentheses(get_cell(fields, header, H.BASE_SEQUENCE) or "")
        full = get_cell(fields, header, H.FULL_SEQUENCE)
        if full is not None and full.startswith('_'):
            full, _, _ = convert_maxquant_full_sequence(full, catalog=catalog, cache=cache)

        precursor_mass = parse_float(get_cell(fields, header, H.PEPTIDE_MONO_MASS))
        mass_diff_da = get_cell(fields, header, H.MASS_DIFF_DA)
        peptide_mono_mass = precursor_mass
        if mass_diff_da and mass_diff_da != "NaN" and precursor_mass is not None:
            try:
                peptide_mono_mass = precursor_mass + float(mass_diff_da)
            except ValueError:
                pass

        score = parse_float(get_cell(fields, header, H.SCORE))
        series = get_cell(fields, header, H.MATCHED_ION_SERIES)
        if _is_blank(series):
            score = 0.0
            matched_ions = None
        else:
            matched_ions = read_fragment_ions_from_list(
                build_fragment_strings_from_maxquant(series, get_cell(fields, header, H.MATCHED_ION_MZ_RATIOS) or ""),
                build_fragment_strings_from_maxquant(series, get_cell(fields, header, H.MATCHED_ION_INTENSITIES) or ""),
                base,
                ignore_artifact_ions=settings.ignore_artifact_ions,
            )

        file_name = get_cell(fields, header, H.FILE_NAME)
        scan = get_cell(fields, header, H.MS2_SCAN_NUMBER)
        charge = get_cell(fields, header, H.PRECURSOR_CHARGE)

        return MatchRecord(
            file_name_without_extension=(file_name_without_extension(file_name, settings.accepted_spectra_formats)
                                         if file_name is not None else None),
            ms2_scan_number=int(scan) if not _is_blank(scan) else None,
            precursor_scan_number=parse_precursor_scan_number(get_cell(fields, header, H.PRECURSOR_SCAN_NUM)),
            precursor_charge=int(float(charge)) if not _is_blank(charge) else None,
            precursor_mz=parse_float(get_cell(fields, header, H.PRECURSOR_MZ)),
            precursor_mass=precursor_mass,
            retention_time=parse_float(get_cell(fields, header, H.MS2_SCAN_RETENTION_TIME)),
            score=score,
            delta_score=parse_float(get_cell(fields, header, H.DELTA_SCORE)),
            base_sequence=base,
            full_sequence=full,
            peptide_mono_mass=str(peptide_mono_mass) if peptide_mono_mass is not None else None,
            mass_diff_da=mass_diff_da,
            mass_diff_ppm=get_cell(fields, header, H.MASS_DIFF_PPM),
            protein_accession=get_cell(fields, header, H.PROTEIN_ACCESSION),
            protein_name=get_cell(fields, header, H.PROTEIN_NAME),
            gene_name=get_cell(fields, header, H.GENE_NAME),
            pep=parse_float(get_cell(fields, header, H.PEP)),
            decoy_contaminant_target="T" if _is_blank(get_cell(fields, header, H.DECOY)) else "D",
            matched_ions=matched_ions,
            cells={name: fields[index] for name, index in header.columns.items()
                   if 0 <= index < len(fields)},
        )
    except RecordParseError:
        raise
    except (ValueError, IndexError, KeyError, AttributeError) as e:
        raise RecordParseError(str(e)) from e


def best_donor_psms(records: Iterable[Tuple[str, MatchRecord]],
                    wanted: Iterable[str]) -> Dict[str, MatchRecord]:
    """
    Highest-scoring record per MaxQuant modified sequence.

    Args:
        records: ``(MaxQuant modified sequence, record)`` pairs.
        wanted: Sequences to collect donors for.

    Returns:
        Sequence -> best record, for sequences with at least one record
        that has matched ions.
    """
    candidates: Dict[str, List[MatchRecord]] = {seq: [] for seq in wanted}
    for sequence, record in records:
        if sequence in candidates and record.matched_ions is not None:
            candidates[sequence].append(record)
    return {seq: max(found, key=lambda r: r.score or 0.0)
            for seq, found in candidates.items() if found}
