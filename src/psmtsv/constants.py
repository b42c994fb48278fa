"""
Physical constants, tolerances, and product-type tables used when reading
and writing peptide-spectrum-match result tables.

All masses are monoisotopic unless otherwise noted.
"""

# =============================================================================
# Physical constants
# =============================================================================

PROTON = 1.007276466621
"""Proton mass in Da."""

# =============================================================================
# Spectra files
# =============================================================================

ACCEPTED_SPECTRA_FORMATS = ('.raw', '.mzml', '.mgf')
"""Spectra file extensions stripped from file-name cells (case-insensitive)."""

# =============================================================================
# Resolution tolerances and output limits
# =============================================================================

TOLERANCE_FOR_DOUBLE_RESOLUTION_F5 = 1e-6
"""Per-candidate doubles closer than this collapse to a single value."""

MAX_EXCEL_CELL_LENGTH = 32000
"""Longest cell written when Excel-compatible output is enabled."""

TOO_LONG_FOR_EXCEL = "Output too long for Excel"

EMPTY_CELL = " "
"""Placeholder written for every column of a missing match."""

# =============================================================================
# Product types
# =============================================================================

N_TERMINAL_PRODUCT_TYPES = (
    'a', 'aStar', 'aDegree', 'aWaterLoss', 'aBaseLoss',
    'b', 'bAmmoniaLoss', 'bWaterLoss', 'bBaseLoss',
    'c', 'cWaterLoss', 'cBaseLoss',
    'd', 'dWaterLoss', 'dBaseLoss',
)

C_TERMINAL_PRODUCT_TYPES = (
    'x', 'xWaterLoss',
    'y', 'yAmmoniaLoss', 'yWaterLoss',
    'z', 'zDot', 'zPlusOne',
    'w', 'wWaterLoss',
)

NON_TERMINAL_PRODUCT_TYPES = ('M', 'D', 'Ycore', 'Y')
"""Precursor-derived, diagnostic and glycan product types (no terminus)."""

PRODUCT_TYPE_TERMINUS = {
    **{p: 'N' for p in N_TERMINAL_PRODUCT_TYPES},
    **{p: 'C' for p in C_TERMINAL_PRODUCT_TYPES},
    **{p: 'None' for p in NON_TERMINAL_PRODUCT_TYPES},
}
"""Fragmentation terminus for every known product type."""

# Product types used to decide whether an ion spans a sequence variant
ABC_PRODUCT_TYPES = ('a', 'aDegree', 'aStar', 'b', 'bWaterLoss', 'bAmmoniaLoss', 'c')
XYZ_PRODUCT_TYPES = ('x', 'y', 'yAmmoniaLoss', 'yWaterLoss', 'zDot', 'zPlusOne')
