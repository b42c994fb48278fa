"""
Modification catalog and full-sequence annotation helpers.

Full sequences carry modifications inline as ``[Type:IdWithMotif]`` right
after the residue they sit on, or before the first residue for N-terminal
modifications::

    [Common Biological:Acetylation on X]M[Common Variable:Oxidation on M]PEPTIDE

Chemical formulas use pyteomics notation (``H-1N-1O``) and are summed as
:class:`pyteomics.mass.Composition` objects.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from pyteomics import mass

from .logger import get_logger

logger = get_logger(__name__)

MOD_PATTERN = re.compile(r"\[(.+?)\]")

ANYWHERE = "Anywhere."
N_TERMINAL = "N-terminal."
PEPTIDE_N_TERMINAL = "Peptide N-terminal."
C_TERMINAL = "C-terminal."
PEPTIDE_C_TERMINAL = "Peptide C-terminal."

N_TERMINAL_RESTRICTIONS = (N_TERMINAL, PEPTIDE_N_TERMINAL)
C_TERMINAL_RESTRICTIONS = (C_TERMINAL, PEPTIDE_C_TERMINAL)


# =============================================================================
# Chemical formulas
# =============================================================================

def parse_formula(formula: str) -> mass.Composition:
    """Parse a formula such as ``C2H3NO`` or ``H-1N-1O``."""
    return mass.Composition(formula=formula)


def format_formula(composition) -> str:
    """
    Write a composition as a Hill-ordered formula string.

    Carbon and hydrogen come first, then the other elements alphabetically.
    A count of one is omitted and zero counts are dropped.
    """
    counts = {element: count for element, count in composition.items() if count != 0}
    order = [e for e in ('C', 'H') if e in counts]
    order += sorted(e for e in counts if e not in ('C', 'H'))
    return "".join(element if counts[element] == 1 else f"{element}{counts[element]}"
                   for element in order)


# =============================================================================
# Modifications
# =============================================================================

@dataclass(frozen=True)
class Modification:
    """A known modification."""
    original_id: str
    modification_type: str
    target: str = "X"
    chemical_formula: Optional[str] = None
    location_restriction: str = ANYWHERE

    @property
    def id_with_motif(self) -> str:
        return f"{self.original_id} on {self.target}"

    @property
    def annotation(self) -> str:
        """Inline form, e.g. ``[Common Variable:Oxidation on M]``."""
        return f"[{self.modification_type}:{self.id_with_motif}]"

    @property
    def composition(self) -> Optional[mass.Composition]:
        if self.chemical_formula is None:
            return None
        return parse_formula(self.chemical_formula)

    @property
    def monoisotopic_mass(self) -> Optional[float]:
        if self.chemical_formula is None:
            return None
        return mass.calculate_mass(formula=self.chemical_formula)

    @classmethod
    def from_annotation(cls, text: str) -> 'Modification':
        """Build a formula-less modification from ``Type:Id on Target``."""
        modification_type, _, identifier = text.partition(':')
        if not identifier:
            modification_type, identifier = "", text
        original_id, _, target = identifier.rpartition(" on ")
        if not original_id:
            original_id, target = identifier, "X"
        return cls(original_id=original_id, modification_type=modification_type, target=target)


DEFAULT_MODIFICATIONS: Tuple[Modification, ...] = (
    Modification("Carbamidomethyl", "Common Fixed", "C", "C2H3NO"),
    Modification("Carbamidomethyl", "Common Fixed", "U", "C2H3NO"),
    Modification("Oxidation", "Common Variable", "M", "O"),
    Modification("Phosphorylation", "Common Biological", "S", "HO3P"),
    Modification("Phosphorylation", "Common Biological", "T", "HO3P"),
    Modification("Phosphorylation", "Common Biological", "Y", "HO3P"),
    Modification("Acetylation", "Common Biological", "K", "C2H2O"),
    Modification("Acetylation", "Common Biological", "X", "C2H2O", N_TERMINAL),
    Modification("Deamidation", "Common Artifact", "N", "H-1N-1O"),
    Modification("Deamidation", "Common Artifact", "Q", "H-1N-1O"),
    Modification("Methylation", "Common Biological", "K", "CH2"),
    Modification("Methylation", "Common Biological", "R", "CH2"),
    Modification("Dimethylation", "Common Biological", "K", "C2H4"),
    Modification("Gln->pyro-Glu", "Common Artifact", "Q", "H-3N-1", PEPTIDE_N_TERMINAL),
    Modification("Glu->pyro-Glu", "Common Artifact", "E", "H-2O-1", PEPTIDE_N_TERMINAL),
    Modification("Amidation", "Common Artifact", "X", "HN-1O-1", PEPTIDE_C_TERMINAL),
)


@dataclass
class ModificationCatalog:
    """
    Known modifications, looked up by ``IdWithMotif``.

    Args:
        modifications: Catalog contents; later duplicates of an identifier
            are ignored.
    """
    modifications: List[Modification] = field(default_factory=list)

    def __post_init__(self):
        self._by_id: Dict[str, Modification] = {}
        for mod in self.modifications:
            self._by_id.setdefault(mod.id_with_motif, mod)

    def __iter__(self) -> Iterator[Modification]:
        return iter(self.modifications)

    def __len__(self) -> int:
        return len(self.modifications)

    def __contains__(self, id_with_motif: str) -> bool:
        return id_with_motif in self._by_id

    def get(self, id_with_motif: str) -> Optional[Modification]:
        return self._by_id.get(id_with_motif)

    def __getitem__(self, id_with_motif: str) -> Modification:
        return self._by_id[id_with_motif]

    def add(self, modification: Modification) -> None:
        if modification.id_with_motif not in self._by_id:
            self.modifications.append(modification)
            self._by_id[modification.id_with_motif] = modification

    def lookup_annotation(self, text: str) -> Modification:
        """
        Resolve the inside of a ``[Type:IdWithMotif]`` annotation.

        Unknown identifiers produce a formula-less :class:`Modification` so
        the sequence can still be read.
        """
        identifier = text.split(':', 1)[1] if ':' in text else text
        mod = self.get(identifier)
        if mod is None:
            logger.debug("Modification '%s' is not in the catalog", identifier)
            mod = Modification.from_annotation(text)
        return mod


def default_catalog() -> ModificationCatalog:
    """A fresh catalog holding :data:`DEFAULT_MODIFICATIONS`."""
    return ModificationCatalog(list(DEFAULT_MODIFICATIONS))


# =============================================================================
# Full-sequence parsing
# =============================================================================

def remove_parentheses(base_sequence: str) -> str:
    """Drop parenthesised text (SILAC labels) from a base sequence."""
    if '(' not in base_sequence:
        return base_sequence
    kept = []
    inside = False
    for c in base_sequence:
        if c == ')':
            inside = False
        elif c == '(':
            inside = True
        elif not inside:
            kept.append(c)
    return "".join(kept)


def remove_special_characters(full_sequence: str, replacement: str = "",
                              special_character: str = r"\|") -> str:
    """Remove ``|`` that separates stacked modifications on one residue."""
    return re.sub(special_character, replacement, full_sequence)


def parse_modifications(full_sequence: str) -> Dict[int, List[str]]:
    """
    Locate the modifications of a full sequence.

    Args:
        full_sequence: Sequence with inline ``[Type:Id]`` annotations.

    Returns:
        Number of residues preceding each modification (0 for N-terminal)
        -> annotation texts found there, in order.
    """
    mods: Dict[int, List[str]] = {}
    consumed = 0
    for match in MOD_PATTERN.finditer(remove_special_characters(full_sequence)):
        position = match.start() - consumed
        mods.setdefault(position, []).append(match.group(1))
        consumed += len(match.group(0))
    return mods


def base_sequence_from_full(full_sequence: str) -> str:
    """Strip modification annotations from a full sequence."""
    return MOD_PATTERN.sub("", remove_special_characters(full_sequence))


def modifications_from_full_sequence(full_sequence: str,
                                     catalog: Optional[ModificationCatalog] = None,
                                     ) -> Dict[int, Modification]:
    """
    Modifications keyed the one-is-N-terminus way.

    Key 1 is the N-terminus, residue *i* (one-based) is key ``i + 1`` and a
    modification after the last residue of a C-terminal type is key
    ``len + 2``.
    """
    catalog = catalog or default_catalog()
    length = len(base_sequence_from_full(full_sequence))
    result: Dict[int, Modification] = {}
    for position, texts in parse_modifications(full_sequence).items():
        for text in texts:
            mod = catalog.lookup_annotation(text)
            key = position + 1
            if position == length and mod.location_restriction in C_TERMINAL_RESTRICTIONS:
                key = length + 2
            result.setdefault(key, mod)
    return result


def build_full_sequence(base_sequence: str, modifications: Dict[int, Modification],
                        include=None) -> str:
    """
    Write a full sequence from a base sequence and one-is-N-terminus mods.

    Args:
        base_sequence: Plain residues.
        modifications: Key -> modification, as from
            :func:`modifications_from_full_sequence`.
        include: Optional predicate; modifications it rejects are left out.
    """
    def annotate(key: int) -> str:
        mod = modifications.get(key)
        if mod is None or (include is not None and not include(mod)):
            return ""
        return mod.annotation

    parts = [annotate(1)]
    for i, residue in enumerate(base_sequence, start=1):
        parts.append(residue)
        parts.append(annotate(i + 1))
    parts.append(annotate(len(base_sequence) + 2))
    return "".join(parts)


def insert_fixed_modifications(full_sequence: str,
                               fixed_mods: Iterable[Modification],
                               ) -> Tuple[str, List[Modification]]:
    """
    Annotate every unmodified target residue with each fixed modification.

    Residues preceded by ``[``, ``:`` or whitespace are inside an existing
    annotation and are skipped, as are residues that already carry an
    annotation. Only single-residue targets are handled.

    Returns:
        The annotated sequence and one entry per inserted modification.
    """
    present: List[Modification] = []
    for mod in fixed_mods:
        if len(mod.target) != 1:
            continue
        pattern = r"(?<![\[:\s])(" + re.escape(mod.target) + r")(?!\[)"
        full_sequence, count = re.subn(pattern, lambda m, mod=mod: m.group(1) + mod.annotation,
                                       full_sequence)
        present.extend([mod] * count)
    return full_sequence, present
