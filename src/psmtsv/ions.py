"""
Matched fragment ions and the bracketed ion-string mini-language.

A matched-ion cell is a ``;``-separated list of per-product-type groups::

    [b2+1:227.10263, b3+1:324.15539];[y1+1:148.07570, (y2-18.01)+1:245.12846]

Each ion token is ``<label>+<charge>:<value>``. The label is either a terminal
ion ``b3`` (optionally wrapped as ``(b3-97.98)`` for a neutral loss in Da) or
an internal ion ``bIy[3-7]``. Companion cells with the same shape carry
intensities and mass errors.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from pyteomics import mass

from .constants import C_TERMINAL_PRODUCT_TYPES, PRODUCT_TYPE_TERMINUS, PROTON
from .exceptions import RecordParseError

ION_PARSER = re.compile(r"([a-zA-Z]+)(\d+)")
_MAXQUANT_FRAGMENT = re.compile(r"[^\(\-]*")
_MAXQUANT_CHARGE = re.compile(r"\((\d*)\+\)")
_MAXQUANT_LOSS = re.compile(r"\-([A-Z\d]+)")


# =============================================================================
# Mass helpers
# =============================================================================

def to_mass(mz: float, charge: int) -> float:
    """Neutral mass of an ion observed at *mz* with *charge*."""
    return mz * abs(charge) - charge * PROTON


def to_mz(neutral_mass: float, charge: int) -> float:
    """m/z of a neutral mass carrying *charge* protons."""
    return (neutral_mass + charge * PROTON) / abs(charge)


def ppm_error(observed: float, theoretical: float) -> float:
    """
    Calculate mass error in ppm.

    Args:
        observed: Observed mass or m/z.
        theoretical: Theoretical mass or m/z.

    Returns:
        Error in parts per million.
    """
    return (observed - theoretical) / theoretical * 1e6


def da_error(observed: float, theoretical: float) -> float:
    """
    Calculate mass error in Daltons.

    Args:
        observed: Observed mass or m/z.
        theoretical: Theoretical mass or m/z.

    Returns:
        Error in Da (observed - theoretical).
    """
    return observed - theoretical


# =============================================================================
# Data classes
# =============================================================================

@dataclass(frozen=True)
class MatchedFragmentIon:
    """
    One observed fragment ion.

    The theoretical neutral mass is back-computed from the observed m/z and
    the reported mass error, so no peptide model is needed to rebuild it.
    """
    product_type: str
    fragment_number: int
    charge: int
    mz: float
    intensity: float
    neutral_theoretical_mass: float
    terminus: str = 'None'
    amino_acid_position: int = 0
    neutral_loss: float = 0.0
    secondary_product_type: Optional[str] = None
    secondary_fragment_number: int = 0

    @property
    def is_internal(self) -> bool:
        return self.secondary_product_type is not None

    @property
    def label(self) -> str:
        """Ion label without charge, e.g. ``b3``, ``(y2-18.01)``, ``bIy[3-7]``."""
        if self.is_internal:
            return (f"{self.product_type}I{self.secondary_product_type}"
                    f"[{self.fragment_number}-{self.secondary_fragment_number}]")
        if self.neutral_loss != 0:
            return f"({self.product_type}{self.fragment_number}-{self.neutral_loss:.2f})"
        return f"{self.product_type}{self.fragment_number}"

    @property
    def annotation(self) -> str:
        """Label plus charge, e.g. ``b3+1``."""
        return f"{self.label}+{self.charge}"

    @property
    def mass_error_da(self) -> float:
        return da_error(to_mass(self.mz, self.charge), self.neutral_theoretical_mass)

    @property
    def mass_error_ppm(self) -> float:
        return ppm_error(to_mass(self.mz, self.charge), self.neutral_theoretical_mass)


# =============================================================================
# Ion-string decoding
# =============================================================================

def clean_matched_ion_string(text: str) -> List[str]:
    """
    Flatten a bracketed group string into one entry per ion.

    The outer brackets are dropped, group separators become ion separators,
    and empty or quoted entries are removed.

    Args:
        text: Cell such as ``[b1+1:1.0, b2+1:2.0];[y1+1:3.0]``.

    Returns:
        Ion tokens such as ``['b1+1:1.0', 'b2+1:2.0', 'y1+1:3.0']``.
    """
    entries = text[1:-1].replace("];[", ", ").split(", ")
    return [e for e in entries if e and '"' not in e]


def _token_value(token: str) -> float:
    return float(token.rsplit(':', 1)[1].rstrip(']'))


def _product_type(name: str) -> str:
    if name not in PRODUCT_TYPE_TERMINUS:
        raise RecordParseError(f"Unknown product type '{name}'")
    return name


def read_fragment_ions_from_list(peak_mzs: List[str],
                                 peak_intensities: List[str],
                                 base_sequence: str,
                                 peak_mass_errors_da: Optional[List[str]] = None,
                                 ignore_artifact_ions: bool = False,
                                 ) -> List[MatchedFragmentIon]:
    """
    Decode ion tokens into matched fragment ions.

    Args:
        peak_mzs: Tokens ``<label>+<charge>:<mz>``.
        peak_intensities: Tokens ``<label>+<charge>:<intensity>``. If the
            count differs from *peak_mzs* every intensity is 1.0.
        base_sequence: Peptide base sequence; the first ``|`` candidate sets
            the amino-acid position of C-terminal ions.
        peak_mass_errors_da: Optional tokens ``<label>+<charge>:<error>``.
            Missing or malformed entries count as 0 Da.
        ignore_artifact_ions: Skip neutral-loss ions.

    Returns:
        Ions in input order.

    Raises:
        RecordParseError: On an unknown product type or an unparsable token.
    """
    ions: List[MatchedFragmentIon] = []
    intensities_align = len(peak_mzs) == len(peak_intensities)
    peptide_length = len(base_sequence.split('|')[0]) if base_sequence else 0

    for index, peak in enumerate(peak_mzs):
        split = re.split(r"[+:]", peak)
        label = split[0]

        intensity = _token_value(peak_intensities[index]) if intensities_align else 1.0

        neutral_loss = 0.0
        secondary_product_type = None
        secondary_fragment_number = 0
        terminus = 'None'

        if '[' in label:
            internal, positions = label.split('[', 1)
            first, second = internal.split('I', 1)
            product_type = _product_type(first)
            secondary_product_type = _product_type(second)
            start, end = positions.replace(']', '').split('-')
            fragment_number = int(start)
            secondary_fragment_number = int(end)
            amino_acid_position = secondary_fragment_number - fragment_number
        else:
            match = ION_PARSER.search(label)
            if match is None:
                raise RecordParseError(f"Could not parse ion label '{label}'")
            product_type = _product_type(match.group(1))
            fragment_number = int(match.group(2))
            if '(' in label:
                if ignore_artifact_ions:
                    continue
                stripped = label.replace('(', '').replace(')', '')
                neutral_loss = float(stripped.split('-')[1])
            terminus = PRODUCT_TYPE_TERMINUS[product_type]
            if product_type in C_TERMINAL_PRODUCT_TYPES:
                amino_acid_position = peptide_length - fragment_number
            else:
                amino_acid_position = fragment_number

        error_da = 0.0
        if peak_mass_errors_da and index < len(peak_mass_errors_da) and peak_mass_errors_da[index]:
            try:
                error_da = _token_value(peak_mass_errors_da[index])
            except (ValueError, IndexError):
                error_da = 0.0

        charge = int(split[1])
        mz = float(split[2])
        ions.append(MatchedFragmentIon(
            product_type=product_type,
            fragment_number=fragment_number,
            charge=charge,
            mz=mz,
            intensity=intensity,
            neutral_theoretical_mass=to_mass(mz, charge) - error_da,
            terminus=terminus,
            amino_acid_position=amino_acid_position,
            neutral_loss=neutral_loss,
            secondary_product_type=secondary_product_type,
            secondary_fragment_number=secondary_fragment_number,
        ))

    return ions


def read_fragment_ions(mz_string: str,
                       intensity_string: str,
                       base_sequence: str,
                       mass_error_da_string: Optional[str] = None) -> List[MatchedFragmentIon]:
    """
    Decode bracketed matched-ion cells.

    Args:
        mz_string: ``Matched Ion Mass-To-Charge Ratios`` cell.
        intensity_string: ``Matched Ion Intensities`` cell.
        base_sequence: Peptide base sequence.
        mass_error_da_string: Optional ``Matched Ion Mass Diff (Da)`` cell.

    Returns:
        Decoded ions; empty when the cell holds no ion.
    """
    if len(mz_string) <= 2:
        return []
    errors = clean_matched_ion_string(mass_error_da_string) if mass_error_da_string else None
    return read_fragment_ions_from_list(
        clean_matched_ion_string(mz_string),
        clean_matched_ion_string(intensity_string or "[]"),
        base_sequence,
        errors,
    )


def _split_child_scans(text: str) -> Dict[int, str]:
    scans: Dict[int, str] = {}
    for chunk in text.split('}'):
        if not chunk.strip():
            continue
        scan, ions = chunk.split('@', 1)
        scans[int(scan.strip().lstrip('{'))] = ions
    return scans


def read_child_scan_matched_ions(mz_string: str,
                                 intensity_string: str,
                                 base_sequence: str) -> Dict[int, List[MatchedFragmentIon]]:
    """
    Decode a child-scan envelope ``{scan@[...]}{scan@[...]}``.

    When the intensity cell uses the same envelope, each scan is paired with
    its own intensities; otherwise the whole intensity cell is used.

    Returns:
        Scan number -> ions, in the order the scans appear.
    """
    mz_by_scan = _split_child_scans(mz_string)
    intensity_by_scan = (_split_child_scans(intensity_string)
                         if intensity_string.startswith('{') else {})
    return {
        scan: read_fragment_ions(ions, intensity_by_scan.get(scan, intensity_string), base_sequence)
        for scan, ions in mz_by_scan.items()
    }


# =============================================================================
# MaxQuant fragment lists
# =============================================================================

def build_fragment_strings_from_maxquant(fragment_string: str,
                                         information_string: str) -> List[str]:
    """
    Turn MaxQuant ``Matches`` plus a value column into ion tokens.

    ``y3(2+)`` becomes ``y3+2:<value>``; a neutral loss such as ``y4-H2O``
    becomes ``(y4-18.0105...)+1:<value>``.

    Args:
        fragment_string: ``;``-separated MaxQuant fragment names.
        information_string: ``;``-separated values (``Masses`` or
            ``Intensities``) in the same order.

    Returns:
        Ion tokens ready for :func:`read_fragment_ions_from_list`.
    """
    fragments = []
    names = fragment_string.split(';')
    values = information_string.split(';')

    for name, value in zip(names, values):
        charge = "1"
        fragment = name
        if '(' in name:
            charge = _MAXQUANT_CHARGE.search(name).group(1)
            fragment = _MAXQUANT_FRAGMENT.match(name).group(0)
        if '-' in name:
            loss = _MAXQUANT_LOSS.search(name).group(1)
            loss_mass = mass.calculate_mass(formula=loss)
            fragment = f"({_MAXQUANT_FRAGMENT.match(name).group(0)}-{loss_mass})"
        fragments.append(f"{fragment}+{charge}:{value}")

    return fragments
