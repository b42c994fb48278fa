"""
Column-name constants and the schema table for every supported result format.

Each supported format is one ``SchemaKind`` paired with one ``HeaderSchema``
that maps canonical field names (the MetaMorpheus column names, plus the
MaxQuant match-between-runs columns) to the header label the format uses.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Tuple


# =============================================================================
# MetaMorpheus-native columns
# =============================================================================

class PsmTsvHeader:
    """Column names of MetaMorpheus ``.psmtsv`` files."""

    # File and scan information
    FILE_NAME = "File Name"
    MS2_SCAN_NUMBER = "Scan Number"
    MS2_SCAN_RETENTION_TIME = "Scan Retention Time"
    NUM_EXPERIMENTAL_PEAKS = "Num Experimental Peaks"
    TOTAL_ION_CURRENT = "Total Ion Current"
    PRECURSOR_SCAN_NUM = "Precursor Scan Number"
    PRECURSOR_CHARGE = "Precursor Charge"
    PRECURSOR_INTENSITY = "Precursor Intensity"
    PRECURSOR_MZ = "Precursor MZ"
    PRECURSOR_MASS = "Precursor Mass"
    SCORE = "Score"
    DELTA_SCORE = "Delta Score"
    NOTCH = "Notch"

    # Sequence information
    BASE_SEQUENCE = "Base Sequence"
    FULL_SEQUENCE = "Full Sequence"
    ESSENTIAL_SEQUENCE = "Essential Sequence"
    AMBIGUITY_LEVEL = "Ambiguity Level"
    PSM_COUNT = "PSM Count (unambiguous, <0.01 q-value)"
    MODS = "Mods"
    MODS_CHEMICAL_FORMULAS = "Mods Chemical Formulas"
    MODS_COMBINED_CHEMICAL_FORMULA = "Mods Combined Chemical Formula"
    NUM_VARIABLE_MODS = "Num Variable Mods"
    MISSED_CLEAVAGES = "Missed Cleavages"
    PEPTIDE_MONO_MASS = "Peptide Monoisotopic Mass"
    MASS_DIFF_DA = "Mass Diff (Da)"
    MASS_DIFF_PPM = "Mass Diff (ppm)"
    PROTEIN_ACCESSION = "Protein Accession"
    PROTEIN_NAME = "Protein Name"
    GENE_NAME = "Gene Name"
    ORGANISM_NAME = "Organism Name"
    INTERSECTING_SEQUENCE_VARIATIONS = "Intersecting Sequence Variations"
    IDENTIFIED_SEQUENCE_VARIATIONS = "Identified Sequence Variations"
    SPLICE_SITES = "Splice Sites"
    CONTAMINANT = "Contaminant"
    DECOY = "Decoy"
    PEPTIDE_DESCRIPTION = "Peptide Description"
    START_AND_END_RESIDUES_IN_PROTEIN = "Start and End Residues In Protein"
    PREVIOUS_AMINO_ACID = "Previous Amino Acid"
    NEXT_AMINO_ACID = "Next Amino Acid"
    THEORETICALS_SEARCHED = "Theoreticals Searched"
    DECOY_CONTAMINANT_TARGET = "Decoy/Contaminant/Target"
    MATCHED_ION_SERIES = "Matched Ion Series"
    MATCHED_ION_MZ_RATIOS = "Matched Ion Mass-To-Charge Ratios"
    MATCHED_ION_MASS_DIFF_DA = "Matched Ion Mass Diff (Da)"
    MATCHED_ION_MASS_DIFF_PPM = "Matched Ion Mass Diff (Ppm)"
    MATCHED_ION_INTENSITIES = "Matched Ion Intensities"
    MATCHED_ION_COUNTS = "Matched Ion Counts"

    # Scoring
    LOCALIZED_SCORES = "Localized Scores"
    IMPROVEMENT_POSSIBLE = "Improvement Possible"
    CUMULATIVE_TARGET = "Cumulative Target"
    CUMULATIVE_DECOY = "Cumulative Decoy"
    CUMULATIVE_TARGET_NOTCH = "Cumulative Target Notch"
    CUMULATIVE_DECOY_NOTCH = "Cumulative Decoy Notch"
    Q_VALUE = "QValue"
    Q_VALUE_NOTCH = "QValue Notch"
    PEP = "PEP"
    PEP_Q_VALUE = "PEP_QValue"
    SPECTRAL_ANGLE = "Normalized Spectral Angle"

    # Crosslinks
    CROSS_TYPE = "Cross Type"
    LINK_RESIDUES = "Link Residues"
    PROTEIN_LINK_SITE = "Protein Link Site"
    RANK = "Rank"
    BETA_PEPTIDE_PROTEIN_ACCESSION = "Beta Peptide Protein Accession"
    BETA_PEPTIDE_PROTEIN_LINK_SITE = "Beta Peptide Protein LinkSite"
    BETA_PEPTIDE_BASE_SEQUENCE = "Beta Peptide Base Sequence"
    BETA_PEPTIDE_FULL_SEQUENCE = "Beta Peptide Full Sequence"
    BETA_PEPTIDE_THEORETICAL_MASS = "Beta Peptide Theoretical Mass"
    BETA_PEPTIDE_SCORE = "Beta Peptide Score"
    BETA_PEPTIDE_RANK = "Beta Peptide Rank"
    BETA_PEPTIDE_MATCHED_IONS = "Beta Peptide Matched Ion Mass-To-Charge Ratios"
    BETA_PEPTIDE_MATCHED_ION_INTENSITIES = "Beta Peptide Matched Ion Intensities"
    XL_TOTAL_SCORE = "XL Total Score"
    PARENT_IONS = "Parent Ions"

    # Glyco
    GLYCAN_MASS = "GlycanMass"
    GLYCAN_COMPOSITION = "Plausible GlycanComposition"
    GLYCAN_STRUCTURE = "Plausible GlycanStructure"
    GLYCAN_LOCALIZATION_LEVEL = "GlycanLocalizationLevel"
    LOCALIZED_GLYCAN = "Localized Glycans with Peptide Site Specific Probability"


def _all_psmtsv_columns() -> List[str]:
    return [value for name, value in vars(PsmTsvHeader).items()
            if name.isupper() and isinstance(value, str)]


ALL_PSMTSV_COLUMNS: Tuple[str, ...] = tuple(_all_psmtsv_columns())
"""Every MetaMorpheus column name, in declaration order."""


# =============================================================================
# MaxQuant columns
# =============================================================================

class MaxQuantMsmsHeader:
    """Column names of MaxQuant ``msms.txt`` files."""

    FILE_NAME = "Raw file"
    MS2_SCAN_NUMBER = "Scan number"
    MS2_SCAN_RETENTION_TIME = "Retention time"
    PRECURSOR_SCAN_NUM = "Precursor full scan number"
    PRECURSOR_CHARGE = "Charge"
    PRECURSOR_MZ = "m/z"
    PRECURSOR_MASS = "Mass"
    SCORE = "Score"
    DELTA_SCORE = "Delta score"

    BASE_SEQUENCE = "Sequence"
    FULL_SEQUENCE = "Modified sequence"
    MODS = "Modifications"
    MASS_DIFF_DA = "Mass error [Da]"
    MASS_DIFF_PPM = "Mass error [ppm]"
    PROTEIN_ACCESSION = "Proteins"
    PROTEIN_NAME = "Protein Names"
    GENE_NAME = "Gene Names"
    DECOY = "Reverse"
    MATCHED_ION_SERIES = "Matches"
    MATCHED_ION_MZ_RATIOS = "Masses"
    MATCHED_ION_MASS_DIFF_DA = "Mass deviations [Da]"
    MATCHED_ION_MASS_DIFF_PPM = "Mass deviations [ppm]"
    MATCHED_ION_INTENSITIES = "Intensities"
    MATCHED_ION_COUNTS = "Number of matches"

    PEP = "PEP"


class MaxQuantEvidenceHeader:
    """Match-between-runs columns of MaxQuant ``evidence.txt`` files."""

    MATCH_SCORE = "Match score"
    MATCH_MZ_DELTA = "Match m/z difference"
    MATCH_RT_DELTA = "Match time difference"
    RETENTION_LENGTH = "Retention length"
    MS2_SCAN_NUMBER = "MS/MS scan number"
    INTENSITY = "Intensity"
    MZ = "m/z"
    PPM_ERROR = "Mass error [ppm]"


# =============================================================================
# Schema table
# =============================================================================

class SchemaKind(Enum):
    """Supported result-file formats."""
    MetaMorpheus = "MetaMorpheus"
    Morpheus = "Morpheus"
    MaxQuant = "MaxQuant"
    MaxQuantEvidence = "MaxQuantEvidence"
    PeptideShaker = "PeptideShaker"
    Percolator = "Percolator"
    Generic = "Generic"
    Unknown = "Unknown"


@dataclass(frozen=True)
class HeaderSchema:
    """
    Column layout of one result-file format.

    Args:
        kind: The format this schema describes.
        required: Canonical field name -> header label. A header must contain
            every one of these labels to be detected as *kind*.
        optional: Canonical field name -> header label for columns that are
            read when present.
    """
    kind: SchemaKind
    required: Mapping[str, str]
    optional: Mapping[str, str] = field(default_factory=dict)

    @property
    def fields(self) -> Dict[str, str]:
        """All canonical fields of this schema, required first."""
        merged = dict(self.required)
        for key, label in self.optional.items():
            merged.setdefault(key, label)
        return merged

    def matches(self, tokens) -> bool:
        """True if every required label is among the lower-cased *tokens*."""
        present = set(tokens)
        return all(label.lower() in present for label in self.required.values())


H = PsmTsvHeader
MQ = MaxQuantMsmsHeader
EV = MaxQuantEvidenceHeader

_METAMORPHEUS_REQUIRED = {
    H.FILE_NAME: H.FILE_NAME,
    H.BASE_SEQUENCE: H.BASE_SEQUENCE,
    H.FULL_SEQUENCE: H.FULL_SEQUENCE,
    H.PEPTIDE_MONO_MASS: H.PEPTIDE_MONO_MASS,
    H.MS2_SCAN_RETENTION_TIME: H.MS2_SCAN_RETENTION_TIME,
    H.PRECURSOR_CHARGE: H.PRECURSOR_CHARGE,
    H.PROTEIN_ACCESSION: H.PROTEIN_ACCESSION,
    H.DECOY_CONTAMINANT_TARGET: H.DECOY_CONTAMINANT_TARGET,
    H.Q_VALUE: H.Q_VALUE,
    H.Q_VALUE_NOTCH: H.Q_VALUE_NOTCH,
}

_GENERIC_REQUIRED = {
    key: label for key, label in _METAMORPHEUS_REQUIRED.items()
    if key not in (H.DECOY_CONTAMINANT_TARGET, H.Q_VALUE, H.Q_VALUE_NOTCH)
}

_PSMTSV_OPTIONAL = {column: column for column in ALL_PSMTSV_COLUMNS}

_MAXQUANT_REQUIRED = {
    H.FILE_NAME: MQ.FILE_NAME,
    H.BASE_SEQUENCE: MQ.BASE_SEQUENCE,
    H.FULL_SEQUENCE: MQ.FULL_SEQUENCE,
    H.PEPTIDE_MONO_MASS: MQ.PRECURSOR_MASS,
    H.MS2_SCAN_RETENTION_TIME: MQ.MS2_SCAN_RETENTION_TIME,
    H.PRECURSOR_CHARGE: MQ.PRECURSOR_CHARGE,
    H.PROTEIN_ACCESSION: MQ.PROTEIN_ACCESSION,
}

_MAXQUANT_OPTIONAL = {
    H.MS2_SCAN_NUMBER: MQ.MS2_SCAN_NUMBER,
    H.PRECURSOR_SCAN_NUM: MQ.PRECURSOR_SCAN_NUM,
    H.PRECURSOR_MZ: MQ.PRECURSOR_MZ,
    H.SCORE: MQ.SCORE,
    H.DELTA_SCORE: MQ.DELTA_SCORE,
    H.MODS: MQ.MODS,
    H.MASS_DIFF_DA: MQ.MASS_DIFF_DA,
    H.MASS_DIFF_PPM: MQ.MASS_DIFF_PPM,
    H.PROTEIN_NAME: MQ.PROTEIN_NAME,
    H.GENE_NAME: MQ.GENE_NAME,
    H.ORGANISM_NAME: H.ORGANISM_NAME,
    H.DECOY: MQ.DECOY,
    H.MATCHED_ION_SERIES: MQ.MATCHED_ION_SERIES,
    H.MATCHED_ION_MZ_RATIOS: MQ.MATCHED_ION_MZ_RATIOS,
    H.MATCHED_ION_MASS_DIFF_DA: MQ.MATCHED_ION_MASS_DIFF_DA,
    H.MATCHED_ION_MASS_DIFF_PPM: MQ.MATCHED_ION_MASS_DIFF_PPM,
    H.MATCHED_ION_INTENSITIES: MQ.MATCHED_ION_INTENSITIES,
    H.MATCHED_ION_COUNTS: MQ.MATCHED_ION_COUNTS,
    H.PEP: MQ.PEP,
}

_EVIDENCE_OPTIONAL = {
    H.GENE_NAME: MQ.GENE_NAME,
    H.ORGANISM_NAME: H.ORGANISM_NAME,
    H.MS2_SCAN_NUMBER: EV.MS2_SCAN_NUMBER,
    EV.MATCH_MZ_DELTA: EV.MATCH_MZ_DELTA,
    EV.MATCH_RT_DELTA: EV.MATCH_RT_DELTA,
    EV.RETENTION_LENGTH: EV.RETENTION_LENGTH,
    EV.INTENSITY: EV.INTENSITY,
    H.PRECURSOR_MZ: EV.MZ,
    EV.PPM_ERROR: EV.PPM_ERROR,
}

SCHEMAS: Tuple[HeaderSchema, ...] = (
    HeaderSchema(
        SchemaKind.MetaMorpheus,
        required=_METAMORPHEUS_REQUIRED,
        optional=_PSMTSV_OPTIONAL,
    ),
    HeaderSchema(
        SchemaKind.Morpheus,
        required={
            H.FILE_NAME: "Filename",
            H.BASE_SEQUENCE: "Base Peptide Sequence",
            H.FULL_SEQUENCE: "Peptide Sequence",
            H.PEPTIDE_MONO_MASS: "Theoretical Mass (Da)",
            H.MS2_SCAN_RETENTION_TIME: "Retention Time (minutes)",
            H.PRECURSOR_CHARGE: "Precursor Charge",
            H.PROTEIN_ACCESSION: "Protein Description",
            H.DECOY_CONTAMINANT_TARGET: "Decoy?",
            H.Q_VALUE: "Q-Value (%)",
        },
        optional={
            H.GENE_NAME: H.GENE_NAME,
            H.ORGANISM_NAME: H.ORGANISM_NAME,
        },
    ),
    # Evidence headers are a superset of msms headers, so they are tested first
    HeaderSchema(
        SchemaKind.MaxQuantEvidence,
        required={**_MAXQUANT_REQUIRED, EV.MATCH_SCORE: EV.MATCH_SCORE},
        optional=_EVIDENCE_OPTIONAL,
    ),
    HeaderSchema(
        SchemaKind.MaxQuant,
        required=_MAXQUANT_REQUIRED,
        optional=_MAXQUANT_OPTIONAL,
    ),
    HeaderSchema(
        SchemaKind.PeptideShaker,
        required={
            H.FILE_NAME: "Spectrum File",
            H.BASE_SEQUENCE: "Sequence",
            H.FULL_SEQUENCE: "Modified Sequence",
            H.PEPTIDE_MONO_MASS: "Theoretical Mass",
            H.MS2_SCAN_RETENTION_TIME: "RT",
            H.PRECURSOR_CHARGE: "Identification Charge",
            H.PROTEIN_ACCESSION: "Protein(s)",
        },
        optional={
            H.GENE_NAME: H.GENE_NAME,
            H.ORGANISM_NAME: H.ORGANISM_NAME,
        },
    ),
    HeaderSchema(
        SchemaKind.Percolator,
        required={
            H.FILE_NAME: "file_idx",
            H.MS2_SCAN_NUMBER: "scan",
            H.PRECURSOR_CHARGE: "charge",
            H.PRECURSOR_MASS: "spectrum neutral mass",
            H.PEPTIDE_MONO_MASS: "peptide mass",
            H.FULL_SEQUENCE: "sequence",
            H.PROTEIN_ACCESSION: "protein id",
        },
        optional={
            H.Q_VALUE: "percolator q-value",
            H.PEP: "percolator PEP",
            H.SCORE: "percolator score",
        },
    ),
    HeaderSchema(
        SchemaKind.Generic,
        required=_GENERIC_REQUIRED,
        optional=_PSMTSV_OPTIONAL,
    ),
)
"""Known schemas in detection priority order."""

SCHEMA_BY_KIND: Dict[SchemaKind, HeaderSchema] = {s.kind: s for s in SCHEMAS}

del H, MQ, EV


# =============================================================================
# Multi-value delimiters
# =============================================================================

FIELD_DELIMITERS: Dict[SchemaKind, Tuple[str, ...]] = {
    SchemaKind.MetaMorpheus: ("|", " or "),
    SchemaKind.Morpheus: (";",),
    SchemaKind.MaxQuant: (";",),
    SchemaKind.MaxQuantEvidence: (";",),
    SchemaKind.Percolator: (",",),
    SchemaKind.Generic: (";",),
    SchemaKind.PeptideShaker: (", ",),
}
"""Separators between values inside one cell (not between columns)."""


def split_multi_value(text: str, kind: SchemaKind) -> List[str]:
    """
    Split a multi-valued cell (protein, gene or organism list).

    Args:
        text: Cell contents.
        kind: Format the cell comes from.

    Returns:
        The values in order, including empty strings between adjacent
        delimiters.
    """
    delimiters = FIELD_DELIMITERS.get(kind, (";",))
    pattern = "|".join(re.escape(d) for d in delimiters)
    return re.split(pattern, text)
