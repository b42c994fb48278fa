"""
Parse result-file lines into typed match records and split ambiguous ones.

A :class:`MatchRecord` is one decoded row. Columns missing from the file
give ``None``. Rows whose full sequence lists several candidates joined by
``|`` can be split into one record per candidate with :func:`split_candidates`
and folded back with :func:`merge_candidates`.
"""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .config import Settings, get_settings
from .constants import ABC_PRODUCT_TYPES, XYZ_PRODUCT_TYPES
from .detection import ParsedHeaderIndex
from .exceptions import RecordParseError
from .headers import PsmTsvHeader as H
from .headers import SchemaKind
from .ions import (
    ION_PARSER, MatchedFragmentIon, read_child_scan_matched_ions, read_fragment_ions,
)
from .modifications import remove_parentheses
from .resolve import resolve_strings
from .utils import file_name_without_extension

POSITION_PARSER = re.compile(r"(\d+)\s+to\s+(\d+)")
VARIANT_PARSER = re.compile(r"[a-zA-Z]+(\d+)([a-zA-Z]+)")


class LocalizationLevel(Enum):
    """Glycan localization level."""
    Level1 = "Level1"
    Level1b = "Level1b"
    Level2 = "Level2"
    Level3 = "Level3"


# =============================================================================
# Record
# =============================================================================

@dataclass(frozen=True)
class MatchRecord:
    """One decoded row of a result file."""
    file_name_without_extension: Optional[str] = None
    ms2_scan_number: Optional[int] = None
    precursor_scan_number: Optional[int] = None
    retention_time: Optional[float] = None
    num_experimental_peaks: Optional[float] = None
    total_ion_current: Optional[float] = None
    precursor_charge: Optional[int] = None
    precursor_intensity: Optional[float] = None
    precursor_mz: Optional[float] = None
    precursor_mass: Optional[float] = None
    score: Optional[float] = None
    delta_score: Optional[float] = None
    notch: Optional[str] = None

    base_sequence: Optional[str] = None
    full_sequence: Optional[str] = None
    essential_sequence: Optional[str] = None
    ambiguity_level: Optional[str] = None
    missed_cleavages: Optional[str] = None
    peptide_mono_mass: Optional[str] = None
    mass_diff_da: Optional[str] = None
    mass_diff_ppm: Optional[str] = None
    protein_accession: Optional[str] = None
    protein_name: Optional[str] = None
    gene_name: Optional[str] = None
    organism_name: Optional[str] = None
    intersecting_sequence_variations: Optional[str] = None
    identified_sequence_variations: Optional[str] = None
    splice_sites: Optional[str] = None
    peptide_description: Optional[str] = None
    start_and_end_residues_in_protein: Optional[str] = None
    previous_amino_acid: Optional[str] = None
    next_amino_acid: Optional[str] = None
    decoy_contaminant_target: Optional[str] = None

    q_value: Optional[float] = None
    q_value_notch: Optional[float] = None
    pep: Optional[float] = None
    pep_q_value: Optional[float] = None
    spectral_angle: Optional[float] = None

    matched_ions: Optional[List[MatchedFragmentIon]] = None
    child_scan_matched_ions: Optional[Dict[int, List[MatchedFragmentIon]]] = None
    variant_crossing_ions: List[MatchedFragmentIon] = field(default_factory=list)

    # Crosslinks
    cross_type: Optional[str] = None
    link_residues: Optional[str] = None
    protein_link_site: Optional[int] = None
    rank: Optional[int] = None
    beta_peptide_protein_accession: Optional[str] = None
    beta_peptide_protein_link_site: Optional[int] = None
    beta_peptide_base_sequence: Optional[str] = None
    beta_peptide_full_sequence: Optional[str] = None
    beta_peptide_theoretical_mass: Optional[str] = None
    beta_peptide_score: Optional[float] = None
    beta_peptide_rank: Optional[int] = None
    beta_peptide_matched_ions: Optional[List[MatchedFragmentIon]] = None
    beta_peptide_child_scan_matched_ions: Optional[Dict[int, List[MatchedFragmentIon]]] = None
    xl_total_score: Optional[float] = None
    parent_ions: Optional[str] = None

    # Glyco
    glycan_mass: Optional[float] = None
    glycan_composition: Optional[str] = None
    glycan_structure: Optional[str] = None
    glycan_localization_level: Optional[LocalizationLevel] = None
    localized_glycan: Optional[str] = None

    # Cell text of every column present in the source line
    cells: Mapping[str, str] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_ambiguous(self) -> bool:
        return self.full_sequence is not None and '|' in self.full_sequence

    @property
    def is_decoy(self) -> bool:
        return self.decoy_contaminant_target is not None and 'D' in self.decoy_contaminant_target

    def __str__(self) -> str:
        return self.full_sequence or ""


# =============================================================================
# Column tables
# =============================================================================

STRING_FIELDS: Dict[str, str] = {
    'notch': H.NOTCH,
    'essential_sequence': H.ESSENTIAL_SEQUENCE,
    'ambiguity_level': H.AMBIGUITY_LEVEL,
    'missed_cleavages': H.MISSED_CLEAVAGES,
    'peptide_mono_mass': H.PEPTIDE_MONO_MASS,
    'mass_diff_da': H.MASS_DIFF_DA,
    'mass_diff_ppm': H.MASS_DIFF_PPM,
    'protein_accession': H.PROTEIN_ACCESSION,
    'protein_name': H.PROTEIN_NAME,
    'gene_name': H.GENE_NAME,
    'organism_name': H.ORGANISM_NAME,
    'intersecting_sequence_variations': H.INTERSECTING_SEQUENCE_VARIATIONS,
    'identified_sequence_variations': H.IDENTIFIED_SEQUENCE_VARIATIONS,
    'splice_sites': H.SPLICE_SITES,
    'peptide_description': H.PEPTIDE_DESCRIPTION,
    'start_and_end_residues_in_protein': H.START_AND_END_RESIDUES_IN_PROTEIN,
    'previous_amino_acid': H.PREVIOUS_AMINO_ACID,
    'next_amino_acid': H.NEXT_AMINO_ACID,
    'decoy_contaminant_target': H.DECOY_CONTAMINANT_TARGET,
    'cross_type': H.CROSS_TYPE,
    'link_residues': H.LINK_RESIDUES,
    'beta_peptide_protein_accession': H.BETA_PEPTIDE_PROTEIN_ACCESSION,
    'beta_peptide_base_sequence': H.BETA_PEPTIDE_BASE_SEQUENCE,
    'beta_peptide_full_sequence': H.BETA_PEPTIDE_FULL_SEQUENCE,
    'beta_peptide_theoretical_mass': H.BETA_PEPTIDE_THEORETICAL_MASS,
    'parent_ions': H.PARENT_IONS,
    'glycan_composition': H.GLYCAN_COMPOSITION,
    'glycan_structure': H.GLYCAN_STRUCTURE,
    'localized_glycan': H.LOCALIZED_GLYCAN,
}

FLOAT_FIELDS: Dict[str, str] = {
    'retention_time': H.MS2_SCAN_RETENTION_TIME,
    'num_experimental_peaks': H.NUM_EXPERIMENTAL_PEAKS,
    'total_ion_current': H.TOTAL_ION_CURRENT,
    'precursor_intensity': H.PRECURSOR_INTENSITY,
    'precursor_mz': H.PRECURSOR_MZ,
    'precursor_mass': H.PRECURSOR_MASS,
    'score': H.SCORE,
    'delta_score': H.DELTA_SCORE,
    'q_value': H.Q_VALUE,
    'q_value_notch': H.Q_VALUE_NOTCH,
    'pep': H.PEP,
    'pep_q_value': H.PEP_Q_VALUE,
    'spectral_angle': H.SPECTRAL_ANGLE,
    'beta_peptide_score': H.BETA_PEPTIDE_SCORE,
    'xl_total_score': H.XL_TOTAL_SCORE,
    'glycan_mass': H.GLYCAN_MASS,
}

INT_FIELDS: Dict[str, str] = {
    'ms2_scan_number': H.MS2_SCAN_NUMBER,
    'protein_link_site': H.PROTEIN_LINK_SITE,
    'rank': H.RANK,
    'beta_peptide_protein_link_site': H.BETA_PEPTIDE_PROTEIN_LINK_SITE,
    'beta_peptide_rank': H.BETA_PEPTIDE_RANK,
}

# Fields that carry one value per candidate in an ambiguous row
CANDIDATE_FIELDS: Tuple[str, ...] = (
    'full_sequence',
    'base_sequence',
    'essential_sequence',
    'start_and_end_residues_in_protein',
    'protein_accession',
    'protein_name',
    'gene_name',
    'peptide_mono_mass',
    'mass_diff_da',
    'mass_diff_ppm',
)


# =============================================================================
# Cell parsing
# =============================================================================

def split_line(raw_line: str) -> List[str]:
    """Split a data line on tabs and strip wrapping double quotes."""
    return [f.strip('"') for f in raw_line.rstrip('\r\n').split('\t')]


def get_cell(fields: Sequence[str], header: ParsedHeaderIndex, name: str) -> Optional[str]:
    """Stripped text of canonical column *name*, or None when the file lacks it."""
    index = header.get(name)
    if index < 0:
        return None
    return fields[index].strip()


def parse_float(text: Optional[str]) -> Optional[float]:
    """Parse a numeric cell; blank cells give None."""
    if text is None or not text.strip():
        return None
    return float(text)


def parse_int(text: Optional[str]) -> Optional[int]:
    if text is None or not text.strip():
        return None
    return int(text)


def parse_charge(text: Optional[str], kind: SchemaKind = SchemaKind.MetaMorpheus) -> Optional[int]:
    """Charge cell as an int; PeptideShaker cells such as ``2+`` keep digits only."""
    if text is None:
        return None
    if kind is SchemaKind.PeptideShaker:
        digits = "".join(c for c in text if c.isdigit())
        if not digits:
            raise ValueError(f"Charge state not interpretable: '{text}'")
        return int(digits)
    if not text.strip():
        return None
    return int(float(text))


def parse_precursor_scan_number(text: Optional[str]) -> Optional[int]:
    """Precursor scan cell; text that is not an integer (``unknown``) gives 0."""
    if text is None:
        return None
    try:
        return int(text.strip())
    except ValueError:
        return 0


def parse_localization_level(text: Optional[str]) -> Optional[LocalizationLevel]:
    if text is None or text == "NA" or not text.strip():
        return None
    return LocalizationLevel(text.strip())


def read_localized_glycan(localized_glycan: Optional[str]) -> List[Tuple[int, str, float]]:
    """
    Parse ``[site,glycan,probability][...]``.

    Returns:
        ``(site, glycan, probability)`` per bracket group.
    """
    if localized_glycan is None:
        return []
    glycans = []
    for group in re.split(r"[\[\]]", localized_glycan):
        if not group:
            continue
        parts = [p for p in group.split(',') if p]
        glycans.append((int(parts[0]), parts[1], float(parts[2])))
    return glycans


def _read_ions(mz_text: Optional[str], intensity_text: Optional[str], base_sequence: str,
               error_text: Optional[str] = None):
    """Decode an ion cell; returns (ions, child scan ions)."""
    if mz_text is None:
        return None, None
    if mz_text.startswith('{'):
        child = read_child_scan_matched_ions(mz_text, intensity_text or "", base_sequence)
        first = next(iter(child.values()), [])
        return first, child
    return read_fragment_ions(mz_text, intensity_text or "", base_sequence, error_text), None


def find_variant_crossing_ions(matched_ions: Optional[List[MatchedFragmentIon]],
                               start_and_end_residues: Optional[str],
                               identified_variations: Optional[str]) -> List[MatchedFragmentIon]:
    """
    Ions that contain a residue of the identified sequence variant.

    An a/b/c-type ion crosses the variant when ``start + n`` passes the
    variant start; an x/y/z-type ion when ``end - n`` falls before the
    variant end. The variant must overlap the peptide.
    """
    if not matched_ions or start_and_end_residues is None or identified_variations is None:
        return []
    position = POSITION_PARSER.search(start_and_end_residues)
    variant = VARIANT_PARSER.search(identified_variations)
    if position is None or variant is None:
        return []

    peptide_start, peptide_end = int(position.group(1)), int(position.group(2))
    variant_start = int(variant.group(1))
    variant_end = variant_start + len(variant.group(2)) - 1
    if not (variant_end >= peptide_start and variant_start <= peptide_end):
        return []

    crossing = []
    for ion in matched_ions:
        match = ION_PARSER.search(ion.annotation)
        if match is None:
            continue
        number = int(match.group(2))
        if ion.product_type in ABC_PRODUCT_TYPES and peptide_start + number > variant_start:
            crossing.append(ion)
        elif ion.product_type in XYZ_PRODUCT_TYPES and peptide_end - number < variant_end:
            crossing.append(ion)
    return crossing


# =============================================================================
# Line parsing
# =============================================================================

def parse_fields(fields: Sequence[str], header: ParsedHeaderIndex,
                 settings: Optional[Settings] = None) -> MatchRecord:
    """
    Build a record from an already split line.

    Raises:
        RecordParseError: If a numeric cell cannot be parsed, a column index
            is out of range, or both sequence columns are missing.
    """
    settings = get_settings(settings)
    if header.kind is SchemaKind.MaxQuant:
        from .maxquant import record_from_maxquant_fields
        return record_from_maxquant_fields(fields, header, settings=settings)

    try:
        values: Dict[str, object] = {}
        for attr, column in STRING_FIELDS.items():
            values[attr] = get_cell(fields, header, column)
        for attr, column in FLOAT_FIELDS.items():
            values[attr] = parse_float(get_cell(fields, header, column))
        for attr, column in INT_FIELDS.items():
            values[attr] = parse_int(get_cell(fields, header, column))

        file_name = get_cell(fields, header, H.FILE_NAME)
        if file_name is not None:
            file_name = file_name_without_extension(file_name, settings.accepted_spectra_formats)
        values['file_name_without_extension'] = file_name

        if header.kind is SchemaKind.PeptideShaker and values['retention_time'] is not None:
            values['retention_time'] = values['retention_time'] / 60.0

        values['precursor_scan_number'] = parse_precursor_scan_number(
            get_cell(fields, header, H.PRECURSOR_SCAN_NUM))
        values['precursor_charge'] = parse_charge(get_cell(fields, header, H.PRECURSOR_CHARGE), header.kind)

        base = get_cell(fields, header, H.BASE_SEQUENCE)
        full = get_cell(fields, header, H.FULL_SEQUENCE)
        if base is None and full is None:
            raise RecordParseError("Row has neither a full nor a base sequence")
        values['base_sequence'] = remove_parentheses(base) if base is not None else None
        values['full_sequence'] = full
        base_for_ions = values['base_sequence'] or ""

        ions, child = _read_ions(
            get_cell(fields, header, H.MATCHED_ION_MZ_RATIOS),
            get_cell(fields, header, H.MATCHED_ION_INTENSITIES),
            base_for_ions,
            get_cell(fields, header, H.MATCHED_ION_MASS_DIFF_DA),
        )
        if child is not None:
            child.pop(values['ms2_scan_number'], None)
        values['matched_ions'] = ions
        values['child_scan_matched_ions'] = child

        beta_ions, beta_child = _read_ions(
            get_cell(fields, header, H.BETA_PEPTIDE_MATCHED_IONS),
            get_cell(fields, header, H.BETA_PEPTIDE_MATCHED_ION_INTENSITIES),
            values['beta_peptide_base_sequence'] or "",
        )
        if beta_child is not None:
            beta_child.pop(values['ms2_scan_number'], None)
        values['beta_peptide_matched_ions'] = beta_ions
        values['beta_peptide_child_scan_matched_ions'] = beta_child

        values['glycan_localization_level'] = parse_localization_level(
            get_cell(fields, header, H.GLYCAN_LOCALIZATION_LEVEL))
        values['variant_crossing_ions'] = find_variant_crossing_ions(
            ions, values['start_and_end_residues_in_protein'], values['identified_sequence_variations'])

        values['cells'] = {name: fields[index] for name, index in header.columns.items()
                           if 0 <= index < len(fields)}
    except RecordParseError:
        raise
    except (ValueError, IndexError, KeyError, AttributeError) as e:
        raise RecordParseError(str(e)) from e

    return MatchRecord(**values)


def parse_line(raw_line: str, header: ParsedHeaderIndex,
               settings: Optional[Settings] = None) -> MatchRecord:
    """
    Parse one tab-delimited data line.

    Args:
        raw_line: The line as read from the file.
        header: Column layout from :func:`psmtsv.detection.parse_header`.
        settings: Extension list and MaxQuant options.

    Returns:
        The decoded record.

    Raises:
        RecordParseError: For any malformed line. The error carries the line.
    """
    try:
        return parse_fields(split_line(raw_line), header, settings)
    except RecordParseError as e:
        if e.line is None:
            e.line = raw_line
        raise


# =============================================================================
# Candidate splitting
# =============================================================================

@dataclass(frozen=True)
class CandidateInterpretation:
    """Per-candidate fields of one ambiguous record."""
    full_sequence: str
    base_sequence: Optional[str] = None
    essential_sequence: Optional[str] = None
    start_and_end_residues_in_protein: Optional[str] = None
    protein_accession: Optional[str] = None
    protein_name: Optional[str] = None
    gene_name: Optional[str] = None
    peptide_mono_mass: Optional[str] = None
    mass_diff_da: Optional[str] = None
    mass_diff_ppm: Optional[str] = None


def _segment(text: Optional[str], index: int) -> Optional[str]:
    if text is None:
        return None
    segments = text.split('|')
    # values shared by every candidate were written once
    if len(segments) == 1:
        return segments[0]
    return segments[index]


def disambiguate(record: MatchRecord, full_sequence: str, index: int = 0,
                 base_sequence: str = "") -> MatchRecord:
    """
    Single-candidate copy of *record*.

    Args:
        record: Parsed record, ambiguous or not.
        full_sequence: Full sequence of the chosen candidate.
        index: Position of the candidate among the ``|`` alternatives.
        base_sequence: Overrides the base sequence when not empty.

    Returns:
        A record whose per-candidate fields hold only the chosen candidate.
        Peptide mass and mass errors use the first segment when the source
        collapsed them to one value.
    """
    if not record.is_ambiguous:
        return dataclasses.replace(
            record,
            full_sequence=full_sequence,
            base_sequence=base_sequence or record.base_sequence,
        )

    return dataclasses.replace(
        record,
        full_sequence=full_sequence,
        base_sequence=base_sequence or _segment(record.base_sequence, index),
        essential_sequence=_segment(record.essential_sequence, index),
        start_and_end_residues_in_protein=_segment(record.start_and_end_residues_in_protein, index),
        protein_accession=_segment(record.protein_accession, index),
        protein_name=_segment(record.protein_name, index),
        gene_name=_segment(record.gene_name, index),
        peptide_mono_mass=_segment(record.peptide_mono_mass, index),
        mass_diff_da=_segment(record.mass_diff_da, index),
        mass_diff_ppm=_segment(record.mass_diff_ppm, index),
        matched_ions=list(record.matched_ions) if record.matched_ions is not None else None,
    )


def split_candidates(record: MatchRecord) -> List[MatchRecord]:
    """One single-candidate record per ``|`` alternative of the full sequence."""
    if record.full_sequence is None:
        return [record]
    return [disambiguate(record, seq, i)
            for i, seq in enumerate(record.full_sequence.split('|'))]


def candidate_interpretations(record: MatchRecord) -> List[CandidateInterpretation]:
    """Per-candidate fields of every alternative of *record*."""
    return [CandidateInterpretation(**{name: getattr(r, name) for name in CANDIDATE_FIELDS})
            for r in split_candidates(record)]


def merge_candidates(records: Sequence[MatchRecord],
                     settings: Optional[Settings] = None) -> MatchRecord:
    """
    Fold single-candidate records of one spectrum back into one record.

    Each per-candidate field is resolved across the records: equal values
    collapse, different values are joined with ``|``.
    """
    if not records:
        raise ValueError("No records to merge")
    merged = {}
    for name in CANDIDATE_FIELDS:
        values = [getattr(r, name) for r in records]
        merged[name] = resolve_strings(values, settings=settings).text
    return dataclasses.replace(records[0], **merged)


# =============================================================================
# Filters
# =============================================================================

def is_ambiguous_full_sequence(full_sequence: Optional[str]) -> bool:
    """True for ``" or "``, ``|`` or a truncated ``too long`` full sequence."""
    if full_sequence is None:
        return False
    return (" or " in full_sequence or "|" in full_sequence
            or "too long" in full_sequence.lower())


def is_linkable(record: MatchRecord) -> bool:
    """Whether a record may be linked to a quantified identification."""
    return not is_ambiguous_full_sequence(record.full_sequence)
