"""
Write spectral matches as MetaMorpheus-style ``.psmtsv`` rows.

:func:`write_row` fills the column dictionary of one match, resolving every
peptide column across the match's candidates. :func:`record_to_row` does the
same for an already parsed :class:`~psmtsv.records.MatchRecord`, so files
can be read, split and written back.
"""

from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .config import Settings, get_settings
from .constants import EMPTY_CELL
from .headers import PsmTsvHeader as H
from .ions import MatchedFragmentIon
from .logger import get_logger
from .matches import SpectralMatch, classify_ambiguity_level
from .records import STRING_FIELDS, MatchRecord
from .resolve import (
    Resolved, check_length_of_output, resolve_doubles, resolve_ints,
    resolve_modification_dicts, resolve_modification_sets, resolve_strings,
)

logger = get_logger(__name__)

Row = Dict[str, str]


# =============================================================================
# Column order
# =============================================================================

BASIC_COLUMNS: Tuple[str, ...] = (
    H.FILE_NAME,
    H.MS2_SCAN_NUMBER,
    H.MS2_SCAN_RETENTION_TIME,
    H.NUM_EXPERIMENTAL_PEAKS,
    H.TOTAL_ION_CURRENT,
    H.PRECURSOR_SCAN_NUM,
    H.PRECURSOR_CHARGE,
    H.PRECURSOR_INTENSITY,
    H.PRECURSOR_MZ,
    H.PRECURSOR_MASS,
    H.SCORE,
    H.DELTA_SCORE,
    H.NOTCH,
)

PEPTIDE_COLUMNS: Tuple[str, ...] = (
    H.BASE_SEQUENCE,
    H.FULL_SEQUENCE,
    H.ESSENTIAL_SEQUENCE,
    H.AMBIGUITY_LEVEL,
    H.PSM_COUNT,
    H.MODS,
    H.MODS_CHEMICAL_FORMULAS,
    H.MODS_COMBINED_CHEMICAL_FORMULA,
    H.NUM_VARIABLE_MODS,
    H.MISSED_CLEAVAGES,
    H.PEPTIDE_MONO_MASS,
    H.MASS_DIFF_DA,
    H.MASS_DIFF_PPM,
    H.PROTEIN_ACCESSION,
    H.PROTEIN_NAME,
    H.GENE_NAME,
    H.ORGANISM_NAME,
    H.IDENTIFIED_SEQUENCE_VARIATIONS,
    H.SPLICE_SITES,
    H.CONTAMINANT,
    H.DECOY,
    H.PEPTIDE_DESCRIPTION,
    H.START_AND_END_RESIDUES_IN_PROTEIN,
    H.PREVIOUS_AMINO_ACID,
    H.NEXT_AMINO_ACID,
    H.THEORETICALS_SEARCHED,
    H.DECOY_CONTAMINANT_TARGET,
)

ION_COLUMNS: Tuple[str, ...] = (
    H.MATCHED_ION_SERIES,
    H.MATCHED_ION_MZ_RATIOS,
    H.MATCHED_ION_MASS_DIFF_DA,
    H.MATCHED_ION_MASS_DIFF_PPM,
    H.MATCHED_ION_INTENSITIES,
    H.MATCHED_ION_COUNTS,
)

SCORE_COLUMNS: Tuple[str, ...] = (
    H.SPECTRAL_ANGLE,
    H.LOCALIZED_SCORES,
    H.IMPROVEMENT_POSSIBLE,
    H.CUMULATIVE_TARGET,
    H.CUMULATIVE_DECOY,
    H.Q_VALUE,
    H.CUMULATIVE_TARGET_NOTCH,
    H.CUMULATIVE_DECOY_NOTCH,
    H.Q_VALUE_NOTCH,
    H.PEP,
    H.PEP_Q_VALUE,
)

WRITER_COLUMNS: Tuple[str, ...] = BASIC_COLUMNS + PEPTIDE_COLUMNS + ION_COLUMNS + SCORE_COLUMNS
"""Columns of a written ``.psmtsv`` file, in order."""


# =============================================================================
# Number formatting
# =============================================================================

def _fixed(value: Optional[float], digits: int) -> str:
    if value is None:
        return EMPTY_CELL
    return f"{value:.{digits}f}"


def _invariant(value: Optional[float]) -> str:
    """Shortest text of a number: ``5`` for 5.0, ``NaN`` for nan."""
    if value is None:
        return EMPTY_CELL
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if value.is_integer():
            return str(int(value))
    return str(value)


def _text(resolved: Resolved) -> str:
    return EMPTY_CELL if resolved.text is None else resolved.text


# =============================================================================
# Matched ions
# =============================================================================

def _group_ions(ions: Sequence[MatchedFragmentIon]) -> List[List[MatchedFragmentIon]]:
    groups: Dict[Tuple[str, Optional[str]], List[MatchedFragmentIon]] = {}
    for ion in ions:
        groups.setdefault((ion.product_type, ion.secondary_product_type), []).append(ion)
    return [sorted(group, key=lambda ion: ion.fragment_number) for group in groups.values()]


def matched_ion_strings(ions: Optional[Sequence[MatchedFragmentIon]]) -> Row:
    """
    The six matched-ion cells of a row.

    Ions are grouped by product type in order of first appearance and sorted
    by fragment number inside a group. Each group is bracketed, groups are
    joined by ``;``. A None list gives placeholders.
    """
    if ions is None:
        return {column: EMPTY_CELL for column in ION_COLUMNS}

    series, mzs, errors_da, errors_ppm, intensities = [], [], [], [], []
    for group in _group_ions(ions):
        labels = [ion.annotation for ion in group]
        series.append("[" + ", ".join(labels) + "]")
        mzs.append("[" + ", ".join(f"{l}:{ion.mz:.5f}" for l, ion in zip(labels, group)) + "]")
        errors_da.append("[" + ", ".join(f"{l}:{ion.mass_error_da:.5f}" for l, ion in zip(labels, group)) + "]")
        errors_ppm.append("[" + ", ".join(f"{l}:{ion.mass_error_ppm:.2f}" for l, ion in zip(labels, group)) + "]")
        intensities.append("[" + ", ".join(f"{l}:{ion.intensity:.0f}" for l, ion in zip(labels, group)) + "]")

    return {
        H.MATCHED_ION_SERIES: ";".join(series),
        H.MATCHED_ION_MZ_RATIOS: ";".join(mzs),
        H.MATCHED_ION_MASS_DIFF_DA: ";".join(errors_da),
        H.MATCHED_ION_MASS_DIFF_PPM: ";".join(errors_ppm),
        H.MATCHED_ION_INTENSITIES: ";".join(intensities),
        H.MATCHED_ION_COUNTS: str(len(ions)),
    }


# =============================================================================
# Spectral matches
# =============================================================================

def _basic_match_data(s: Row, match: SpectralMatch, settings: Settings) -> None:
    s[H.FILE_NAME] = match.file_name_without_extension
    s[H.MS2_SCAN_NUMBER] = str(match.scan_number)
    s[H.MS2_SCAN_RETENTION_TIME] = _fixed(match.scan_retention_time, 5)
    s[H.NUM_EXPERIMENTAL_PEAKS] = _fixed(match.num_experimental_peaks, 5)
    s[H.TOTAL_ION_CURRENT] = _fixed(match.total_ion_current, 5)
    s[H.PRECURSOR_SCAN_NUM] = (str(match.precursor_scan_number)
                               if match.precursor_scan_number is not None else "unknown")
    s[H.PRECURSOR_CHARGE] = _fixed(match.precursor_charge, 5)
    s[H.PRECURSOR_INTENSITY] = _fixed(match.precursor_intensity, 5)
    s[H.PRECURSOR_MZ] = _fixed(match.precursor_mz, 5)
    s[H.PRECURSOR_MASS] = _fixed(match.precursor_mass, 5)
    s[H.SCORE] = _fixed(match.score, 3)
    s[H.DELTA_SCORE] = _fixed(match.delta_score, 3)
    if match.candidates:
        s[H.NOTCH] = _text(resolve_ints([c.notch for c in match.candidates], settings))


def _peptide_sequence_data(s: Row, match: SpectralMatch, mods_to_write: Optional[Dict[str, int]],
                           settings: Settings) -> None:
    candidates = match.candidates
    if not candidates:
        return
    proteins = [c.protein for c in candidates]
    shared_full = match.full_sequence

    s[H.BASE_SEQUENCE] = _text(resolve_strings([c.base_sequence for c in candidates], settings=settings))
    s[H.FULL_SEQUENCE] = _text(resolve_strings([c.full_sequence for c in candidates], settings=settings))
    s[H.ESSENTIAL_SEQUENCE] = _text(resolve_strings(
        [c.essential_sequence(mods_to_write) for c in candidates], settings=settings))

    gene_string = _text(resolve_strings([p.gene_string for p in proteins], shared_full, settings))
    s[H.AMBIGUITY_LEVEL] = classify_ambiguity_level(s[H.FULL_SEQUENCE], gene_string)
    s[H.PSM_COUNT] = str(match.psm_count)

    s[H.MODS] = _text(resolve_modification_dicts([c.modifications for c in candidates], settings))
    formulas = _text(resolve_modification_sets([c.modifications.values() for c in candidates], settings))
    s[H.MODS_CHEMICAL_FORMULAS] = formulas
    s[H.MODS_COMBINED_CHEMICAL_FORMULA] = formulas
    s[H.NUM_VARIABLE_MODS] = _text(resolve_ints([c.num_variable_mods for c in candidates], settings))
    s[H.MISSED_CLEAVAGES] = _text(resolve_strings([str(c.missed_cleavages) for c in candidates],
                                                  settings=settings))
    s[H.PEPTIDE_MONO_MASS] = _text(resolve_doubles([c.monoisotopic_mass for c in candidates], settings))
    s[H.MASS_DIFF_DA] = _text(resolve_doubles(match.precursor_mass_error_da, settings))
    s[H.MASS_DIFF_PPM] = _text(resolve_doubles(match.precursor_mass_error_ppm, settings))

    s[H.PROTEIN_ACCESSION] = _text(resolve_strings([p.accession for p in proteins], shared_full, settings))
    s[H.PROTEIN_NAME] = _text(resolve_strings([p.full_name for p in proteins], shared_full, settings))
    s[H.GENE_NAME] = gene_string
    s[H.ORGANISM_NAME] = _text(resolve_strings([p.organism for p in proteins], settings=settings))
    s[H.IDENTIFIED_SEQUENCE_VARIATIONS] = _text(resolve_strings(
        [c.identified_variations for c in candidates], settings=settings))
    s[H.SPLICE_SITES] = _text(resolve_strings([c.splice_sites for c in candidates], settings=settings))

    s[H.CONTAMINANT] = _text(resolve_strings(["Y" if p.is_contaminant else "N" for p in proteins],
                                             settings=settings))
    s[H.DECOY] = _text(resolve_strings(["Y" if p.is_decoy else "N" for p in proteins], settings=settings))
    s[H.PEPTIDE_DESCRIPTION] = _text(resolve_strings([c.description for c in candidates], settings=settings))
    s[H.START_AND_END_RESIDUES_IN_PROTEIN] = _text(resolve_strings(
        [f"[{c.start_residue} to {c.end_residue}]" for c in candidates], shared_full, settings))
    s[H.PREVIOUS_AMINO_ACID] = _text(resolve_strings([c.previous_residue for c in candidates],
                                                     settings=settings))
    s[H.NEXT_AMINO_ACID] = _text(resolve_strings([c.next_residue for c in candidates], settings=settings))
    s[H.DECOY_CONTAMINANT_TARGET] = _text(resolve_strings(
        [p.decoy_contaminant_target for p in proteins], settings=settings))


def _match_score_data(s: Row, match: SpectralMatch, settings: Settings) -> None:
    s[H.SPECTRAL_ANGLE] = _fixed(match.spectral_angle, 4)
    if match.localized_scores:
        s[H.LOCALIZED_SCORES] = check_length_of_output(
            "[" + ",".join(f"{v:.3f}" for v in match.localized_scores) + "]", settings)
        s[H.IMPROVEMENT_POSSIBLE] = f"{max(match.localized_scores) - match.score:.3f}"

    fdr = match.fdr
    if fdr is not None:
        s[H.CUMULATIVE_TARGET] = _invariant(fdr.cumulative_target)
        s[H.CUMULATIVE_DECOY] = _invariant(fdr.cumulative_decoy)
        s[H.Q_VALUE] = _fixed(fdr.q_value, 6)
        s[H.CUMULATIVE_TARGET_NOTCH] = _invariant(fdr.cumulative_target_notch)
        s[H.CUMULATIVE_DECOY_NOTCH] = _invariant(fdr.cumulative_decoy_notch)
        s[H.Q_VALUE_NOTCH] = _fixed(fdr.q_value_notch, 6)
        s[H.PEP] = _invariant(fdr.pep)
        s[H.PEP_Q_VALUE] = _invariant(fdr.pep_q_value)


def write_row(match: Optional[SpectralMatch],
              mods_to_write: Optional[Dict[str, int]] = None,
              settings: Optional[Settings] = None) -> Row:
    """
    Fill every writer column for one spectral match.

    Args:
        match: The match, or None for a placeholder row.
        mods_to_write: Modification types kept in the essential sequence;
            every modification is kept when None.
        settings: Excel cell-length policy.

    Returns:
        Column name -> cell text for every column of :data:`WRITER_COLUMNS`.
    """
    settings = get_settings(settings)
    s: Row = {column: EMPTY_CELL for column in WRITER_COLUMNS}
    if match is None:
        return s

    _basic_match_data(s, match, settings)
    _peptide_sequence_data(s, match, mods_to_write, settings)
    s.update(matched_ion_strings(match.matched_ions))
    _match_score_data(s, match, settings)
    return s


# =============================================================================
# Parsed records
# =============================================================================

_RECORD_FLOAT_FORMATS: Dict[str, Tuple[str, int]] = {
    H.MS2_SCAN_RETENTION_TIME: ('retention_time', 5),
    H.NUM_EXPERIMENTAL_PEAKS: ('num_experimental_peaks', 5),
    H.TOTAL_ION_CURRENT: ('total_ion_current', 5),
    H.PRECURSOR_INTENSITY: ('precursor_intensity', 5),
    H.PRECURSOR_MZ: ('precursor_mz', 5),
    H.PRECURSOR_MASS: ('precursor_mass', 5),
    H.SCORE: ('score', 3),
    H.DELTA_SCORE: ('delta_score', 3),
    H.Q_VALUE: ('q_value', 6),
    H.Q_VALUE_NOTCH: ('q_value_notch', 6),
    H.SPECTRAL_ANGLE: ('spectral_angle', 4),
}

_RECORD_STRING_COLUMNS: Dict[str, str] = {
    'base_sequence': H.BASE_SEQUENCE,
    'full_sequence': H.FULL_SEQUENCE,
    **STRING_FIELDS,
}


def record_to_row(record: MatchRecord, passthrough: bool = True) -> Row:
    """
    Project a parsed record onto the writer columns.

    Typed fields are written with the writer's number formats. Columns
    without a typed field (modification summaries, cumulative counts and the
    like) are copied from the source cells when *passthrough* is set; turn
    it off for records read from another format, whose cells do not follow
    ``.psmtsv`` conventions.
    """
    s: Row = {column: EMPTY_CELL for column in WRITER_COLUMNS}
    if passthrough:
        for column, text in record.cells.items():
            if column in s and text != "":
                s[column] = text

    if record.file_name_without_extension is not None:
        s[H.FILE_NAME] = record.file_name_without_extension
    if record.ms2_scan_number is not None:
        s[H.MS2_SCAN_NUMBER] = str(record.ms2_scan_number)
    if record.precursor_scan_number is not None and s[H.PRECURSOR_SCAN_NUM] == EMPTY_CELL:
        s[H.PRECURSOR_SCAN_NUM] = str(record.precursor_scan_number)
    if record.precursor_charge is not None:
        s[H.PRECURSOR_CHARGE] = _fixed(record.precursor_charge, 5)

    for column, (attr, digits) in _RECORD_FLOAT_FORMATS.items():
        value = getattr(record, attr)
        if value is not None:
            s[column] = _fixed(value, digits)
    for column, attr in ((H.PEP, 'pep'), (H.PEP_Q_VALUE, 'pep_q_value')):
        value = getattr(record, attr)
        if value is not None:
            s[column] = _invariant(value)

    for attr, column in _RECORD_STRING_COLUMNS.items():
        value = getattr(record, attr)
        if column in s and value is not None:
            s[column] = value

    if record.matched_ions is not None and not record.child_scan_matched_ions:
        s.update(matched_ion_strings(record.matched_ions))
    return s


# =============================================================================
# Files
# =============================================================================

def format_row(row: Row, columns: Sequence[str] = WRITER_COLUMNS) -> str:
    """Tab-join the cells of *row* in column order; missing cells are blank."""
    return "\t".join(row.get(column, EMPTY_CELL) for column in columns)


def write_psm_tsv(path: str,
                  items: Iterable[Union[SpectralMatch, MatchRecord, Row, None]],
                  mods_to_write: Optional[Dict[str, int]] = None,
                  settings: Optional[Settings] = None,
                  columns: Sequence[str] = WRITER_COLUMNS,
                  passthrough: bool = True) -> int:
    """
    Write a header line and one row per item.

    Args:
        path: Output file.
        items: Spectral matches, parsed records or ready rows. None writes
            a placeholder row.
        mods_to_write: Passed to :func:`write_row`.
        settings: Passed to :func:`write_row`.
        columns: Column order.
        passthrough: Passed to :func:`record_to_row`.

    Returns:
        The number of rows written.
    """
    count = 0
    with open(path, 'w', newline='') as f:
        f.write("\t".join(columns) + "\n")
        for item in items:
            if item is None or isinstance(item, SpectralMatch):
                row = write_row(item, mods_to_write, settings)
            elif isinstance(item, MatchRecord):
                row = record_to_row(item, passthrough)
            else:
                row = item
            f.write(format_row(row, columns) + "\n")
            count += 1
    logger.info("Wrote %d rows to %s", count, path)
    return count
