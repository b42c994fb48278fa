"""
File-level readers.

Two entry points:

- :func:`read_psm_tsv` reads a whole ``.psmtsv`` (or any detected format)
  into :class:`~psmtsv.records.MatchRecord` objects plus warnings, keeping
  ambiguous rows.
- :class:`PsmGenericReader` turns MetaMorpheus, Morpheus, MaxQuant,
  PeptideShaker, Percolator and generic result files into quantifiable
  :class:`Identification` objects, reads MaxQuant match-between-runs peaks
  and picks donor PSMs for them.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .config import Settings, get_settings
from .detection import ParsedHeaderIndex, parse_header
from .exceptions import HeaderDetectionError, PsmFileReadError, RecordParseError
from .headers import MaxQuantEvidenceHeader as EV
from .headers import PsmTsvHeader as H
from .headers import SchemaKind, split_multi_value
from .logger import get_logger
from .maxquant import ModCache, best_donor_psms, record_from_maxquant_fields
from .modifications import ModificationCatalog, default_catalog
from .records import (
    MatchRecord, get_cell, is_ambiguous_full_sequence, parse_charge, parse_line, split_line,
)
from .spectra import ScanHeaderInfo, SpectraFileInfo, file_scan_header_info, find_retention_time
from .utils import period_tolerant_stem

logger = get_logger(__name__)


# =============================================================================
# psmtsv
# =============================================================================

def _read_lines(path: str) -> List[str]:
    try:
        with open(path, 'r') as f:
            return f.read().splitlines()
    except OSError as e:
        raise PsmFileReadError(f"Could not read file: {path}: {e}") from e


def read_psm_tsv(path: str, settings: Optional[Settings] = None) -> Tuple[List[MatchRecord], List[str]]:
    """
    Read every data line of a result file.

    Lines that cannot be parsed are skipped and reported. Ambiguous rows are
    kept as they are.

    Args:
        path: Result file; the header line decides the column layout.
        settings: Parser settings.

    Returns:
        The records and the warnings: one ``Could not read line: N`` per
        failed line (N counts the header as line 1), then a summary
        ``Warning: K PSMs were not read.`` when any line failed.

    Raises:
        PsmFileReadError: If the file cannot be opened.
        HeaderDetectionError: If the header matches no known format.
    """
    lines = _read_lines(path)
    records: List[MatchRecord] = []
    warnings: List[str] = []
    if not lines:
        return records, warnings

    header = parse_header(lines[0], path)

    line_count = 1
    for line in lines[1:]:
        if not line.strip():
            continue
        line_count += 1
        try:
            records.append(parse_line(line, header, settings))
        except RecordParseError as e:
            logger.debug("Line %d of %s: %s", line_count, path, e)
            warnings.append(f"Could not read line: {line_count}")

    if line_count - 1 != len(records):
        warnings.append(f"Warning: {line_count - 1 - len(records)} PSMs were not read.")
    for warning in warnings:
        logger.warning(warning)
    return records, warnings


# =============================================================================
# Identifications
# =============================================================================

@dataclass
class ProteinGroup:
    """A protein (group) an identification maps to."""
    protein_group_name: str
    gene_name: str = ""
    organism: str = ""


@dataclass
class Identification:
    """A peptide identification to quantify."""
    spectra_file: SpectraFileInfo
    base_sequence: Optional[str]
    modified_sequence: str
    monoisotopic_mass: float
    ms2_retention_time: float
    precursor_charge: int
    protein_groups: List[ProteinGroup] = field(default_factory=list)


@dataclass
class MbrPeak:
    """A MaxQuant match-between-runs chromatographic peak."""
    identification: Identification
    spectra_file: SpectraFileInfo
    mz: float
    intensity: float
    retention_time: float
    charge: int
    rt_shift: Optional[float] = None
    ppm_error: Optional[float] = None
    is_mbr_peak: bool = True


def _try_float(text: Optional[str]) -> Optional[float]:
    if text is None:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def _paired_value(values: Optional[List[str]], cell: Optional[str], index: int, num_proteins: int) -> str:
    """Gene or organism of protein *index*: one shared value, one per protein, or the whole cell."""
    if values is None:
        return ""
    if len(values) == 1:
        return values[0]
    if len(values) == num_proteins:
        return values[index]
    if num_proteins == 1:
        return cell or ""
    return ""


class PsmGenericReader:
    """
    Read identifications from search-engine result files.

    A reader instance is one reading session: peptide masses, protein groups,
    MaxQuant modification matches and scan headers are cached on it and
    shared between files read through it.

    Args:
        settings: Thresholds and parser options.
        catalog: Modifications MaxQuant names are matched against.
    """

    def __init__(self, settings: Optional[Settings] = None,
                 catalog: Optional[ModificationCatalog] = None):
        self.settings = get_settings(settings)
        self.catalog = catalog if catalog is not None else default_catalog()
        self.mod_sequence_to_mono_mass: Dict[str, float] = {}
        self.protein_groups: Dict[str, ProteinGroup] = {}
        self.maxquant_mod_cache: ModCache = {}
        self.scan_header_info: List[ScanHeaderInfo] = []

    # -------------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------------

    def _open(self, path: str) -> Tuple[ParsedHeaderIndex, List[List[str]]]:
        lines = _read_lines(path)
        if not lines:
            raise HeaderDetectionError("Could not interpret header labels", path)
        header = parse_header(lines[0], path)
        return header, [split_line(line) for line in lines[1:] if line.strip()]

    @staticmethod
    def _spectra_file(cell: str, by_stem: Dict[str, SpectraFileInfo],
                      spectra_files: Sequence[SpectraFileInfo]) -> Optional[SpectraFileInfo]:
        found = by_stem.get(period_tolerant_stem(cell))
        if found is None and cell.strip().isdigit() and int(cell) < len(spectra_files):
            # Percolator writes a file index
            found = spectra_files[int(cell)]
        return found

    def read_psms(self, path: str,
                  spectra_files: Sequence[SpectraFileInfo],
                  mbr_peaks: Optional[List[MbrPeak]] = None) -> List[Identification]:
        """
        Read the identifications of a result file.

        Args:
            path: Result file of any supported format.
            spectra_files: Spectra files the results refer to. Rows of other
                files are skipped.
            mbr_peaks: When given, match-between-runs rows of a MaxQuant
                evidence file are appended to it as :class:`MbrPeak`.

        Returns:
            Identifications that pass the row policy.

        Raises:
            PsmFileReadError: If the file cannot be read.
            HeaderDetectionError: If the header matches no format.
        """
        logger.info("Opening PSM file %s", path)
        header, rows = self._open(path)
        by_stem = {f.filename_without_extension: f for f in spectra_files}

        grouped: Dict[str, List[List[str]]] = {}
        for fields in rows:
            key = get_cell(fields, header, H.FILE_NAME) or ""
            grouped.setdefault(period_tolerant_stem(key), []).append(fields)

        identifications: List[Identification] = []
        for key, file_rows in grouped.items():
            spectra_file = self._spectra_file(key, by_stem, spectra_files)
            scan_headers: List[ScanHeaderInfo] = []
            if header.kind is SchemaKind.Percolator and spectra_file is not None:
                scan_headers = file_scan_header_info(spectra_file.full_file_path)
                self.scan_header_info.extend(scan_headers)

            for fields in file_rows:
                try:
                    identification = self._identification(fields, header, spectra_file, scan_headers)
                    if identification is None:
                        continue
                    if header.kind is SchemaKind.MaxQuantEvidence and get_cell(fields, header, EV.MATCH_SCORE):
                        if mbr_peaks is not None:
                            mbr_peaks.append(self._mbr_peak(identification, fields, header))
                    else:
                        identifications.append(identification)
                except (RecordParseError, ValueError, IndexError) as e:
                    logger.warning("Problem reading line in the identification file; %s", e)

        logger.info("Done reading PSMs; found %d", len(identifications))
        return identifications

    def read_mbr_peaks(self, path: str,
                       spectra_files: Sequence[SpectraFileInfo]) -> Dict[str, List[MbrPeak]]:
        """
        Match-between-runs peaks of a MaxQuant evidence file.

        Returns:
            MaxQuant modified sequence -> peaks; empty for any other format.
        """
        header, rows = self._open(path)
        peaks: Dict[str, List[MbrPeak]] = {}
        if header.kind is not SchemaKind.MaxQuantEvidence:
            logger.warning("%s is not a MaxQuant evidence file", path)
            return peaks

        by_stem = {f.filename_without_extension: f for f in spectra_files}
        for fields in rows:
            if not get_cell(fields, header, EV.MATCH_SCORE):
                continue
            try:
                spectra_file = self._spectra_file(get_cell(fields, header, H.FILE_NAME) or "", by_stem, spectra_files)
                identification = self._identification(fields, header, spectra_file)
                if identification is None:
                    continue
                peaks.setdefault(identification.modified_sequence, []).append(
                    self._mbr_peak(identification, fields, header))
            except (RecordParseError, ValueError, IndexError) as e:
                logger.warning("Problem reading line in the identification file; %s", e)
        return peaks

    def get_donor_psms(self, msms_path: str,
                       mbr_peaks: Dict[str, List[MbrPeak]],
                       ignore_artifact_ions: bool = False) -> Dict[str, MatchRecord]:
        """
        Best-scoring MaxQuant PSM for every sequence with MBR peaks.

        Args:
            msms_path: MaxQuant ``msms.txt``.
            mbr_peaks: Output of :meth:`read_mbr_peaks`.
            ignore_artifact_ions: Skip neutral-loss fragments.

        Returns:
            MaxQuant modified sequence -> donor record; empty when the file
            is not an msms file.
        """
        wanted = list(dict.fromkeys(peaks[0].identification.modified_sequence
                                    for peaks in mbr_peaks.values() if peaks))
        header, rows = self._open(msms_path)
        if header.kind is not SchemaKind.MaxQuant:
            logger.warning("%s is not a MaxQuant msms file", msms_path)
            return {}

        settings = dataclasses.replace(self.settings, ignore_artifact_ions=ignore_artifact_ions)
        wanted_set = set(wanted)
        pairs = []
        for fields in rows:
            sequence = get_cell(fields, header, H.FULL_SEQUENCE)
            if sequence not in wanted_set:
                continue
            try:
                pairs.append((sequence, record_from_maxquant_fields(
                    fields, header, settings, self.catalog, self.maxquant_mod_cache)))
            except RecordParseError as e:
                logger.warning("Could not read donor PSM for %s; %s", sequence, e)
        return best_donor_psms(pairs, wanted)

    # -------------------------------------------------------------------------
    # Rows
    # -------------------------------------------------------------------------

    def _passes_row_policy(self, fields: List[str], header: ParsedHeaderIndex) -> bool:
        kind = header.kind
        if kind is SchemaKind.MetaMorpheus:
            if float(get_cell(fields, header, H.Q_VALUE)) > self.settings.q_value_threshold:
                return False
            if float(get_cell(fields, header, H.Q_VALUE_NOTCH)) > self.settings.q_value_notch_threshold:
                return False
        elif kind is SchemaKind.Morpheus:
            if float(get_cell(fields, header, H.Q_VALUE)) > self.settings.morpheus_q_value_threshold:
                return False
        if kind in (SchemaKind.MetaMorpheus, SchemaKind.Morpheus):
            if 'D' in (get_cell(fields, header, H.DECOY_CONTAMINANT_TARGET) or ""):
                return False
        return True

    def _protein_groups(self, fields: List[str], header: ParsedHeaderIndex) -> List[ProteinGroup]:
        kind = header.kind
        gene_cell = get_cell(fields, header, H.GENE_NAME)
        organism_cell = get_cell(fields, header, H.ORGANISM_NAME)
        proteins = split_multi_value(get_cell(fields, header, H.PROTEIN_ACCESSION) or "", kind)
        genes = split_multi_value(gene_cell, kind) if gene_cell is not None else None
        organisms = split_multi_value(organism_cell, kind) if organism_cell is not None else None

        groups = []
        for i, name in enumerate(proteins):
            group = self.protein_groups.get(name)
            if group is None:
                group = ProteinGroup(
                    name,
                    _paired_value(genes, gene_cell, i, len(proteins)),
                    _paired_value(organisms, organism_cell, i, len(proteins)),
                )
                self.protein_groups[name] = group
            groups.append(group)
        return groups

    def _identification(self, fields: List[str], header: ParsedHeaderIndex,
                        spectra_file: Optional[SpectraFileInfo],
                        scan_headers: Optional[List[ScanHeaderInfo]] = None) -> Optional[Identification]:
        kind = header.kind
        if not self._passes_row_policy(fields, header):
            return None

        base_sequence = get_cell(fields, header, H.BASE_SEQUENCE)
        mod_sequence = get_cell(fields, header, H.FULL_SEQUENCE) or ""
        if kind in (SchemaKind.MetaMorpheus, SchemaKind.Percolator) and is_ambiguous_full_sequence(mod_sequence):
            return None

        monoisotopic_mass = _try_float(get_cell(fields, header, H.PEPTIDE_MONO_MASS))
        if monoisotopic_mass is None:
            logger.warning("PSM could not be read. Monoisotopic mass not interpretable: %s", mod_sequence)
            return None
        stored = self.mod_sequence_to_mono_mass.setdefault(mod_sequence, monoisotopic_mass)
        if stored != monoisotopic_mass:
            logger.warning("PSM could not be read. A peptide with the same modified sequence but a "
                           "different monoisotopic mass has already been added: %s", mod_sequence)
            return None

        if kind is SchemaKind.Percolator:
            scan_number = int(get_cell(fields, header, H.MS2_SCAN_NUMBER))
            retention_time = find_retention_time(scan_headers or [], get_cell(fields, header, H.FILE_NAME) or "",
                                                 scan_number)
            if retention_time is None and spectra_file is not None:
                retention_time = find_retention_time(scan_headers or [], spectra_file.full_file_path, scan_number)
            if retention_time is None:
                logger.warning("No retention time for scan %d of %s", scan_number, mod_sequence)
                return None
        else:
            retention_time = _try_float(get_cell(fields, header, H.MS2_SCAN_RETENTION_TIME))
            if retention_time is None:
                logger.warning("PSM retention time was not interpretable: %s", mod_sequence)
                return None
            if kind is SchemaKind.PeptideShaker:
                retention_time /= 60.0
            if retention_time < 0:
                logger.warning("PSM retention time was negative: %s", mod_sequence)
                return None

        try:
            charge = parse_charge(get_cell(fields, header, H.PRECURSOR_CHARGE), kind)
        except ValueError:
            charge = None
        if charge is None:
            logger.warning("PSM charge state was not interpretable: %s", mod_sequence)
            return None

        protein_groups = self._protein_groups(fields, header)

        if spectra_file is None:
            return None

        return Identification(
            spectra_file=spectra_file,
            base_sequence=base_sequence,
            modified_sequence=mod_sequence,
            monoisotopic_mass=monoisotopic_mass,
            ms2_retention_time=retention_time,
            precursor_charge=charge,
            protein_groups=protein_groups,
        )

    def _mbr_peak(self, identification: Identification, fields: List[str],
                  header: ParsedHeaderIndex) -> MbrPeak:
        intensity = float(get_cell(fields, header, EV.INTENSITY))
        return MbrPeak(
            identification=identification,
            spectra_file=identification.spectra_file,
            mz=float(get_cell(fields, header, H.PRECURSOR_MZ)),
            intensity=intensity,
            retention_time=float(get_cell(fields, header, H.MS2_SCAN_RETENTION_TIME)),
            charge=int(get_cell(fields, header, H.PRECURSOR_CHARGE)),
            rt_shift=_try_float(get_cell(fields, header, EV.MATCH_RT_DELTA)),
            ppm_error=_try_float(get_cell(fields, header, EV.PPM_ERROR)),
        )
