"""
Writer-side model of a spectral match and its candidate peptides.

A :class:`SpectralMatch` is one spectrum with one or more equally good
:class:`PeptideCandidate` interpretations. The row writer resolves every
peptide column across the candidates.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .ions import MatchedFragmentIon
from .modifications import (
    Modification, ModificationCatalog, base_sequence_from_full, build_full_sequence,
    modifications_from_full_sequence,
)
from .resolve import resolve_doubles, resolve_strings


@dataclass(frozen=True)
class ProteinInfo:
    """Parent protein of a candidate peptide."""
    accession: str
    full_name: Optional[str] = None
    gene_names: List[Tuple[str, str]] = field(default_factory=list)
    organism: Optional[str] = None
    is_decoy: bool = False
    is_contaminant: bool = False

    @property
    def gene_string(self) -> str:
        """Gene names as ``source:name`` pairs joined by ``, ``."""
        return ", ".join(f"{source}:{name}" for source, name in self.gene_names)

    @property
    def decoy_contaminant_target(self) -> str:
        if self.is_decoy:
            return "D"
        return "C" if self.is_contaminant else "T"


@dataclass(frozen=True)
class PeptideCandidate:
    """
    One peptide interpretation of a spectrum.

    Args:
        base_sequence: Plain residues.
        full_sequence: Residues with inline modification annotations.
        protein: Parent protein.
        monoisotopic_mass: Theoretical peptide mass.
        modifications: One-is-N-terminus position -> modification.
        notch: Precursor mass notch the candidate was found in.
    """
    base_sequence: str
    full_sequence: str
    protein: ProteinInfo
    monoisotopic_mass: float
    modifications: Dict[int, Modification] = field(default_factory=dict)
    notch: int = 0
    num_variable_mods: int = 0
    missed_cleavages: int = 0
    start_residue: int = 0
    end_residue: int = 0
    previous_residue: str = "-"
    next_residue: str = "-"
    description: Optional[str] = None
    identified_variations: str = ""
    splice_sites: str = ""

    def essential_sequence(self, mods_to_write: Optional[Dict[str, int]] = None) -> str:
        """
        Full sequence keeping only modifications whose type is in
        *mods_to_write*. All modifications are kept when it is None.
        """
        if mods_to_write is None:
            return self.full_sequence
        return build_full_sequence(self.base_sequence, self.modifications,
                                   include=lambda mod: mod.modification_type in mods_to_write)

    @classmethod
    def from_full_sequence(cls, full_sequence: str, protein: ProteinInfo, monoisotopic_mass: float,
                           catalog: Optional[ModificationCatalog] = None, **kwargs) -> 'PeptideCandidate':
        """Candidate whose base sequence and modifications come from *full_sequence*."""
        return cls(
            base_sequence=base_sequence_from_full(full_sequence),
            full_sequence=full_sequence,
            protein=protein,
            monoisotopic_mass=monoisotopic_mass,
            modifications=modifications_from_full_sequence(full_sequence, catalog),
            **kwargs,
        )


@dataclass(frozen=True)
class FdrInfo:
    """Target-decoy statistics written with a match."""
    cumulative_target: float = 0
    cumulative_decoy: float = 0
    q_value: float = 0.0
    cumulative_target_notch: float = 0
    cumulative_decoy_notch: float = 0
    q_value_notch: float = 0.0
    pep: float = float('nan')
    pep_q_value: float = float('nan')


@dataclass
class SpectralMatch:
    """One MS2 spectrum and its best-scoring candidate peptides."""
    full_file_path: str
    scan_number: int
    scan_retention_time: float
    precursor_charge: int
    precursor_mz: float
    precursor_mass: float
    score: float
    candidates: List[PeptideCandidate] = field(default_factory=list)
    matched_ions: Optional[List[MatchedFragmentIon]] = None
    delta_score: float = 0.0
    num_experimental_peaks: int = 0
    total_ion_current: float = 0.0
    precursor_scan_number: Optional[int] = None
    precursor_intensity: float = 0.0
    psm_count: int = 1
    spectral_angle: float = -1.0
    localized_scores: Optional[List[float]] = None
    fdr: Optional[FdrInfo] = None

    @property
    def file_name_without_extension(self) -> str:
        return os.path.splitext(os.path.basename(self.full_file_path))[0]

    @property
    def full_sequence(self) -> Optional[str]:
        """The shared full sequence, or None when candidates differ."""
        if not self.candidates:
            return None
        return resolve_strings([c.full_sequence for c in self.candidates]).value

    @property
    def base_sequence(self) -> Optional[str]:
        if not self.candidates:
            return None
        return resolve_strings([c.base_sequence for c in self.candidates]).value

    @property
    def precursor_mass_error_da(self) -> List[float]:
        return [self.precursor_mass - c.monoisotopic_mass for c in self.candidates]

    @property
    def precursor_mass_error_ppm(self) -> List[float]:
        return [(self.precursor_mass - c.monoisotopic_mass) / c.monoisotopic_mass * 1e6
                for c in self.candidates]

    @property
    def peptide_monoisotopic_mass(self) -> Optional[float]:
        if not self.candidates:
            return None
        return resolve_doubles([c.monoisotopic_mass for c in self.candidates]).value


# =============================================================================
# Ambiguity level
# =============================================================================

def _mod_names_and_sites(full_sequence: str) -> Tuple[List[str], List[Tuple[int, str]]]:
    sites = []
    residues = 0
    for token in re.finditer(r"\[(.+?)\]|([A-Z])", full_sequence):
        if token.group(2):
            residues += 1
        else:
            sites.append((residues, token.group(1)))
    return sorted(name for _, name in sites), sites


def classify_ambiguity_level(full_sequence: str, gene_string: str) -> str:
    """
    Ambiguity level of a match from its resolved full sequence and genes.

    Four properties are checked across the ``|``-separated candidates: one
    base sequence, one set of modifications, the same modification sites,
    and a single gene. All four give level ``1``. Three give ``2A``
    (sites differ), ``2B`` (modifications differ), ``2C`` (sequences differ)
    or ``2D`` (genes differ). Fewer give ``5`` minus the number satisfied.
    """
    sequences = full_sequence.split('|')
    genes = gene_string.split('|')

    bases = {base_sequence_from_full(s).upper() for s in sequences}
    parsed = [_mod_names_and_sites(s) for s in sequences]

    sequence_identified = len(bases) == 1
    ptm_identified = all(p[0] == parsed[0][0] for p in parsed)
    ptm_localized = all(p[1] == parsed[0][1] for p in parsed)
    gene_identified = len(genes) == 1

    satisfied = sum((sequence_identified, ptm_identified, ptm_localized, gene_identified))
    if satisfied == 4:
        return "1"
    if satisfied == 3:
        if not ptm_localized:
            return "2A"
        if not ptm_identified:
            return "2B"
        if not sequence_identified:
            return "2C"
        return "2D"
    return str(5 - satisfied)


def candidates_from_sequences(full_sequences: Sequence[str], protein: ProteinInfo,
                              monoisotopic_mass: float,
                              catalog: Optional[ModificationCatalog] = None) -> List[PeptideCandidate]:
    """Candidates sharing one protein, one per full sequence."""
    return [PeptideCandidate.from_full_sequence(s, protein, monoisotopic_mass, catalog)
            for s in full_sequences]
