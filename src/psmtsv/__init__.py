"""
psmtsv: Readers, writers and disambiguation for peptide-spectrum-match tables.

Modules:
    headers        - Column names and the per-format header schema table
    detection      - Result-file format detection from the header line
    records        - Line parsing into match records, candidate splitting
    ions           - Matched fragment-ion strings, mass helpers
    modifications  - Modification catalog, full-sequence annotation parsing
    maxquant       - MaxQuant modified-sequence conversion, msms records
    resolve        - Collapsing per-candidate values into one cell
    matches        - Spectral match model, ambiguity levels
    writer         - .psmtsv row and file writing
    reader         - File readers, identifications, match-between-runs peaks
    spectra        - Spectra files and scan headers (mzML, MGF)
    config         - Settings
    exceptions     - Error types
"""

__version__ = "0.1.0"

# headers / detection
from .headers import PsmTsvHeader, MaxQuantMsmsHeader, SchemaKind, HeaderSchema, SCHEMAS
from .detection import ParsedHeaderIndex, detect_file_type, parse_header

# records
from .records import (
    MatchRecord,
    CandidateInterpretation,
    LocalizationLevel,
    parse_line,
    disambiguate,
    split_candidates,
    merge_candidates,
    is_ambiguous_full_sequence,
)

# ions
from .ions import MatchedFragmentIon, read_fragment_ions, ppm_error, da_error

# modifications
from .modifications import Modification, ModificationCatalog, default_catalog, parse_modifications

# maxquant
from .maxquant import convert_maxquant_full_sequence, levenshtein_distance

# resolve
from .resolve import (
    Resolved,
    resolve_doubles,
    resolve_ints,
    resolve_strings,
    resolve_modification_sets,
    resolve_modification_dicts,
)

# matches / writer
from .matches import SpectralMatch, PeptideCandidate, ProteinInfo, FdrInfo, classify_ambiguity_level
from .writer import WRITER_COLUMNS, write_row, record_to_row, format_row, write_psm_tsv

# readers
from .reader import PsmGenericReader, Identification, ProteinGroup, MbrPeak, read_psm_tsv
from .spectra import SpectraFileInfo

# config / errors
from .config import Settings, DEFAULT_SETTINGS
from .exceptions import (
    PsmTsvError,
    HeaderDetectionError,
    RecordParseError,
    UnknownModificationError,
    PsmFileReadError,
)

__all__ = [
    # version
    "__version__",
    # headers / detection
    "PsmTsvHeader",
    "MaxQuantMsmsHeader",
    "SchemaKind",
    "HeaderSchema",
    "SCHEMAS",
    "ParsedHeaderIndex",
    "detect_file_type",
    "parse_header",
    # records
    "MatchRecord",
    "CandidateInterpretation",
    "LocalizationLevel",
    "parse_line",
    "disambiguate",
    "split_candidates",
    "merge_candidates",
    "is_ambiguous_full_sequence",
    # ions
    "MatchedFragmentIon",
    "read_fragment_ions",
    "ppm_error",
    "da_error",
    # modifications
    "Modification",
    "ModificationCatalog",
    "default_catalog",
    "parse_modifications",
    # maxquant
    "convert_maxquant_full_sequence",
    "levenshtein_distance",
    # resolve
    "Resolved",
    "resolve_doubles",
    "resolve_ints",
    "resolve_strings",
    "resolve_modification_sets",
    "resolve_modification_dicts",
    # matches / writer
    "SpectralMatch",
    "PeptideCandidate",
    "ProteinInfo",
    "FdrInfo",
    "classify_ambiguity_level",
    "WRITER_COLUMNS",
    "write_row",
    "record_to_row",
    "format_row",
    "write_psm_tsv",
    # readers
    "PsmGenericReader",
    "Identification",
    "ProteinGroup",
    "MbrPeak",
    "read_psm_tsv",
    "SpectraFileInfo",
    # config / errors
    "Settings",
    "DEFAULT_SETTINGS",
    "PsmTsvError",
    "HeaderDetectionError",
    "RecordParseError",
    "UnknownModificationError",
    "PsmFileReadError",
]
