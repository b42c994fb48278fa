"""Tests for the file readers."""

import pytest

from conftest import EVIDENCE_HEADER, METAMORPHEUS_HEADER, MSMS_HEADER, write_lines
from psmtsv.config import Settings
from psmtsv.exceptions import HeaderDetectionError, PsmFileReadError
from psmtsv.reader import PsmGenericReader, read_psm_tsv
from psmtsv.spectra import SpectraFileInfo

GOOD = "sample\tPEPTIDE\tPEPTIDE\t799.36\t12.5\t2\tP00001\tT\t0.001\t0.001"
BAD = "sample\tPEPTIDE\tPEPTIDE\t799.36\t12.5\t2\tP00001\tT\tabc\t0.001"

SPECTRA = SpectraFileInfo.from_paths(["/data/sample.mzML", "/data/other.mzML"])


class TestReadPsmTsv:
    def test_records_and_warnings(self, tmp_path):
        path = write_lines(tmp_path / "AllPSMs.psmtsv", [METAMORPHEUS_HEADER, GOOD, BAD, "", GOOD])
        records, warnings = read_psm_tsv(path)
        assert len(records) == 2
        assert warnings == ["Could not read line: 3", "Warning: 1 PSMs were not read."]

    def test_clean_file(self, tmp_path):
        path = write_lines(tmp_path / "AllPSMs.psmtsv", [METAMORPHEUS_HEADER, GOOD])
        records, warnings = read_psm_tsv(path)
        assert warnings == []
        assert records[0].base_sequence == "PEPTIDE"
        assert records[0].precursor_charge == 2

    def test_ambiguous_rows_kept(self, tmp_path):
        line = GOOD.replace("\tPEPTIDE\tPEPTIDE\t", "\tPEPTIDE|PEPTLDE\tPEPTIDE|PEPTLDE\t")
        path = write_lines(tmp_path / "AllPSMs.psmtsv", [METAMORPHEUS_HEADER, line])
        records, _ = read_psm_tsv(path)
        assert records[0].is_ambiguous

    def test_unknown_header_fails_whole_file(self, tmp_path):
        path = write_lines(tmp_path / "custom.tsv", ["foo\tbar\tbaz", "1\t2\t3"])
        with pytest.raises(HeaderDetectionError) as e:
            read_psm_tsv(path)
        assert e.value.path == path

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.psmtsv"
        path.write_text("")
        assert read_psm_tsv(str(path)) == ([], [])

    def test_missing_file(self, tmp_path):
        with pytest.raises(PsmFileReadError):
            read_psm_tsv(str(tmp_path / "missing.psmtsv"))


class TestReadPsms:
    HEADER = METAMORPHEUS_HEADER + "\tGene Name\tOrganism Name"

    def rows(self):
        return [
            self.HEADER,
            "sample\tPEPTIDE\tPEPTIDE\t799.36\t12.5\t2\tP1|P2\tT\t0.001\t0.001\tG1|G2\tHuman",
            "sample\tPEPTLDE\tPEPTLDE\t799.36\t13.5\t2\tP3\tT\t0.05\t0.001\tG3\tHuman",
            "sample\tPEPTKDE\tPEPTKDE\t800.40\t14.5\t2\tP3\tD\t0.001\t0.001\tG3\tHuman",
            "sample\tPEPTIDE|PEPTLDE\tPEPTIDE|PEPTLDE\t799.36\t15.5\t2\tP1\tT\t0.001\t0.001\tG1\tHuman",
            "sample\tPEPTIDE\tPEPTIDE\t800.00\t16.5\t2\tP1\tT\t0.001\t0.001\tG1\tHuman",
            "sample\tPEPTIDEK\tPEPTIDEK\t927.45\t17.5\tx\tP1\tT\t0.001\t0.001\tG1\tHuman",
            "missing\tPEPTIDER\tPEPTIDER\t955.46\t18.5\t2\tP1\tT\t0.001\t0.001\tG1\tHuman",
        ]

    def test_row_policy(self, tmp_path):
        path = write_lines(tmp_path / "AllPSMs.psmtsv", self.rows())
        identifications = PsmGenericReader().read_psms(path, SPECTRA)
        assert len(identifications) == 1
        identification = identifications[0]
        assert identification.spectra_file is SPECTRA[0]
        assert identification.modified_sequence == "PEPTIDE"
        assert identification.monoisotopic_mass == pytest.approx(799.36)
        assert identification.ms2_retention_time == pytest.approx(12.5)
        assert identification.precursor_charge == 2

    def test_protein_groups(self, tmp_path):
        path = write_lines(tmp_path / "AllPSMs.psmtsv", self.rows())
        reader = PsmGenericReader()
        groups = reader.read_psms(path, SPECTRA)[0].protein_groups
        assert [(g.protein_group_name, g.gene_name, g.organism) for g in groups] == [
            ("P1", "G1", "Human"),
            ("P2", "G2", "Human"),
        ]
        assert reader.protein_groups["P1"] is groups[0]

    def test_looser_threshold(self, tmp_path):
        path = write_lines(tmp_path / "AllPSMs.psmtsv", self.rows())
        reader = PsmGenericReader(Settings(q_value_threshold=0.1))
        sequences = [i.modified_sequence for i in reader.read_psms(path, SPECTRA)]
        assert sequences == ["PEPTIDE", "PEPTLDE"]

    def test_unknown_header(self, tmp_path):
        path = write_lines(tmp_path / "bad.tsv", ["a\tb", "1\t2"])
        with pytest.raises(HeaderDetectionError):
            PsmGenericReader().read_psms(path, SPECTRA)

    def test_peptideshaker(self, tmp_path):
        path = write_lines(tmp_path / "shaker.txt", [
            "Spectrum File\tSequence\tModified Sequence\tTheoretical Mass\tRT\tIdentification Charge\tProtein(s)",
            "sample.mgf\tPEPTIDE\tNH2-PEPTIDE-COOH\t799.36\t750\t2+\tP1, P2",
        ])
        identification = PsmGenericReader().read_psms(path, SPECTRA)[0]
        assert identification.ms2_retention_time == pytest.approx(12.5)
        assert identification.precursor_charge == 2
        assert [g.protein_group_name for g in identification.protein_groups] == ["P1", "P2"]

    def test_percolator_retention_time_from_spectra(self, tmp_path, mgf_file):
        path = write_lines(tmp_path / "percolator.tsv", [
            "file_idx\tscan\tcharge\tspectrum neutral mass\tpeptide mass\tpercolator score\t"
            "percolator q-value\tpercolator PEP\tsequence\tprotein id",
            "0\t5\t2\t998.0\t998.1\t1.2\t0.001\t0.01\tPEPTIDE\tP1,P2",
            "0\t7\t2\t998.0\t998.2\t1.2\t0.001\t0.01\tPEPTIDEK\tP1",
        ])
        reader = PsmGenericReader()
        identifications = reader.read_psms(path, SpectraFileInfo.from_paths([mgf_file]))
        assert len(identifications) == 1
        identification = identifications[0]
        assert identification.ms2_retention_time == pytest.approx(10.0)
        assert identification.base_sequence is None
        assert [g.protein_group_name for g in identification.protein_groups] == ["P1", "P2"]
        assert len(reader.scan_header_info) == 2


def evidence_line(file_name, scan, rt, score, match_score, rt_shift, intensity, ppm):
    return "\t".join([file_name, scan, "PEPTIDE", "_PEPTIDE_", "799.36", rt, "2", "400.69", "P1",
                      score, "", "", "", "", "0.0", match_score, rt_shift, intensity, ppm])


def msms_line(sequence, score, reverse=""):
    return "\t".join(["sample.raw", "100", "PEPTIDE", sequence, "799.36", "30.0", "2", "400.69", "P1",
                      score, reverse, "b2;y1", "100;200", "227.1;148.1", "0.0"])


@pytest.fixture
def evidence_file(tmp_path):
    return write_lines(tmp_path / "evidence.txt", [
        EVIDENCE_HEADER,
        evidence_line("sample", "100", "30.0", "90", "", "", "1000000", "0.5"),
        evidence_line("other", "", "31.0", "", "55.2", "0.3", "2000000", "1.1"),
    ])


class TestMatchBetweenRuns:
    def test_read_psms_collects_mbr_peaks(self, evidence_file):
        peaks = []
        identifications = PsmGenericReader().read_psms(evidence_file, SPECTRA, mbr_peaks=peaks)
        assert [i.spectra_file for i in identifications] == [SPECTRA[0]]
        assert len(peaks) == 1
        peak = peaks[0]
        assert peak.spectra_file is SPECTRA[1]
        assert peak.intensity == pytest.approx(2e6)
        assert peak.retention_time == pytest.approx(31.0)
        assert peak.rt_shift == pytest.approx(0.3)
        assert peak.ppm_error == pytest.approx(1.1)
        assert peak.charge == 2
        assert peak.mz == pytest.approx(400.69)
        assert peak.is_mbr_peak

    def test_mbr_peaks_not_collected_without_list(self, evidence_file):
        identifications = PsmGenericReader().read_psms(evidence_file, SPECTRA)
        assert len(identifications) == 1

    def test_read_mbr_peaks(self, evidence_file):
        peaks = PsmGenericReader().read_mbr_peaks(evidence_file, SPECTRA)
        assert list(peaks) == ["_PEPTIDE_"]
        assert peaks["_PEPTIDE_"][0].identification.ms2_retention_time == pytest.approx(31.0)

    def test_read_mbr_peaks_other_format(self, tmp_path):
        path = write_lines(tmp_path / "AllPSMs.psmtsv", [METAMORPHEUS_HEADER, GOOD])
        assert PsmGenericReader().read_mbr_peaks(path, SPECTRA) == {}

    def test_donor_psms(self, tmp_path, evidence_file):
        msms = write_lines(tmp_path / "msms.txt", [
            MSMS_HEADER,
            msms_line("_PEPTIDE_", "50"),
            msms_line("_PEPTIDE_", "90"),
            msms_line("_OTHER_", "99"),
        ])
        reader = PsmGenericReader()
        donors = reader.get_donor_psms(msms, reader.read_mbr_peaks(evidence_file, SPECTRA))
        assert list(donors) == ["_PEPTIDE_"]
        assert donors["_PEPTIDE_"].score == pytest.approx(90.0)
        assert donors["_PEPTIDE_"].full_sequence == "PEPTIDE"

    def test_donor_psms_need_msms(self, evidence_file):
        reader = PsmGenericReader()
        assert reader.get_donor_psms(evidence_file, reader.read_mbr_peaks(evidence_file, SPECTRA)) == {}
