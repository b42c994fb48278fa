"""Shared fixtures: small result and spectra files written to tmp_path."""

import pytest

METAMORPHEUS_HEADER = ("File Name\tBase Sequence\tFull Sequence\tPeptide Monoisotopic Mass\t"
                       "Scan Retention Time\tPrecursor Charge\tProtein Accession\t"
                       "Decoy/Contaminant/Target\tQValue\tQValue Notch")

MSMS_HEADER = ("Raw file\tScan number\tSequence\tModified sequence\tMass\tRetention time\tCharge\t"
               "m/z\tProteins\tScore\tReverse\tMatches\tIntensities\tMasses\tMass error [Da]")

EVIDENCE_HEADER = MSMS_HEADER + "\tMatch score\tMatch time difference\tIntensity\tMass error [ppm]"

MGF_TEXT = """BEGIN IONS
TITLE=sample.5.5.2
PEPMASS=500.0
CHARGE=2+
SCANS=5
RTINSECONDS=600
100.0 10.0
200.0 20.0
END IONS
BEGIN IONS
TITLE=sample.9.9.2
PEPMASS=600.0
CHARGE=2+
SCANS=9
RTINSECONDS=900
150.0 5.0
END IONS
"""


def write_lines(path, lines):
    path.write_text("\n".join(lines) + "\n")
    return str(path)


@pytest.fixture
def mgf_file(tmp_path):
    path = tmp_path / "sample.mgf"
    path.write_text(MGF_TEXT)
    return str(path)
