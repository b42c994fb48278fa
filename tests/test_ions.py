"""Tests for the ions module."""

import pytest
from pyteomics import mass

from psmtsv.constants import PROTON
from psmtsv.exceptions import RecordParseError
from psmtsv.ions import (
    MatchedFragmentIon,
    build_fragment_strings_from_maxquant,
    clean_matched_ion_string,
    da_error,
    ppm_error,
    read_child_scan_matched_ions,
    read_fragment_ions,
    read_fragment_ions_from_list,
    to_mass,
    to_mz,
)


class TestMassErrors:
    def test_ppm_matched_fragment(self):
        assert ppm_error(148.07570, 148.07570) == pytest.approx(0.0)

    def test_ppm_sign_follows_observed(self):
        # 1000.002 against 1000.0 is 2 ppm high
        assert ppm_error(1000.002, 1000.0) == pytest.approx(2.0)
        assert ppm_error(999.998, 1000.0) == pytest.approx(-2.0)

    def test_da(self):
        assert da_error(227.105, 227.10263) == pytest.approx(0.00237, abs=1e-5)


class TestMassConversion:
    def test_to_mass_singly_charged(self):
        assert to_mass(500.0, 1) == pytest.approx(500.0 - PROTON)

    def test_to_mass_doubly_charged(self):
        assert to_mass(500.0, 2) == pytest.approx(1000.0 - 2 * PROTON)

    def test_to_mz_inverts_to_mass(self):
        assert to_mz(to_mass(623.2871, 3), 3) == pytest.approx(623.2871)


class TestCleanMatchedIonString:
    def test_groups_are_flattened(self):
        text = "[b1+1:1.0, b2+1:2.0];[y1+1:3.0]"
        assert clean_matched_ion_string(text) == ["b1+1:1.0", "b2+1:2.0", "y1+1:3.0"]

    def test_quoted_entries_dropped(self):
        assert clean_matched_ion_string('[b1+1:1.0, "x"]') == ["b1+1:1.0"]


class TestReadFragmentIons:
    MZ = "[b2+1:227.10263, b3+1:324.15539];[y1+1:148.07570, y2+1:263.10263]"
    INTENSITY = "[b2+1:100, b3+1:200];[y1+1:300, y2+1:400]"
    ERRORS = "[b2+1:0.00100, b3+1:-0.00200];[y1+1:0.00000, y2+1:0.00300]"

    def test_terminal_ions(self):
        ions = read_fragment_ions(self.MZ, self.INTENSITY, "PEPTIDE", self.ERRORS)
        assert len(ions) == 4
        b2 = ions[0]
        assert b2.product_type == "b"
        assert b2.fragment_number == 2
        assert b2.charge == 1
        assert b2.mz == pytest.approx(227.10263)
        assert b2.intensity == pytest.approx(100.0)
        assert b2.terminus == "N"
        assert b2.amino_acid_position == 2
        assert b2.neutral_theoretical_mass == pytest.approx(to_mass(227.10263, 1) - 0.001)

    def test_c_terminal_position_uses_peptide_length(self):
        ions = read_fragment_ions(self.MZ, self.INTENSITY, "PEPTIDE")
        y2 = ions[3]
        assert y2.terminus == "C"
        assert y2.amino_acid_position == len("PEPTIDE") - 2

    def test_first_candidate_sets_length(self):
        ions = read_fragment_ions(self.MZ, self.INTENSITY, "PEPTIDE|PEPTIDEK")
        assert ions[3].amino_acid_position == 5

    def test_mass_error_round_trip(self):
        ions = read_fragment_ions(self.MZ, self.INTENSITY, "PEPTIDE", self.ERRORS)
        assert ions[1].mass_error_da == pytest.approx(-0.002)

    def test_missing_errors_are_zero(self):
        ions = read_fragment_ions(self.MZ, self.INTENSITY, "PEPTIDE")
        assert all(ion.mass_error_da == pytest.approx(0.0) for ion in ions)

    def test_malformed_error_is_zero(self):
        errors = "[b2+1:abc, b3+1:0.1];[y1+1:0.0, y2+1:0.0]"
        ions = read_fragment_ions(self.MZ, self.INTENSITY, "PEPTIDE", errors)
        assert ions[0].mass_error_da == pytest.approx(0.0)
        assert ions[1].mass_error_da == pytest.approx(0.1)

    def test_intensity_count_mismatch_gives_one(self):
        ions = read_fragment_ions(self.MZ, "[b2+1:100]", "PEPTIDE")
        assert [ion.intensity for ion in ions] == [1.0, 1.0, 1.0, 1.0]

    def test_empty_cell(self):
        assert read_fragment_ions("[]", "[]", "PEPTIDE") == []
        assert read_fragment_ions(" ", " ", "PEPTIDE") == []

    def test_neutral_loss(self):
        ions = read_fragment_ions("[(y2-18.01)+1:245.12846]", "[(y2-18.01)+1:50]", "PEPTIDE")
        assert ions[0].neutral_loss == pytest.approx(18.01)
        assert ions[0].label == "(y2-18.01)"
        assert ions[0].annotation == "(y2-18.01)+1"

    def test_internal_ion_span(self):
        ions = read_fragment_ions("[bIy[3-7]+1:500.25000]", "[bIy[3-7]+1:1000]", "PEPTIDEK")
        ion = ions[0]
        assert ion.is_internal
        assert ion.product_type == "b"
        assert ion.secondary_product_type == "y"
        assert ion.fragment_number == 3
        assert ion.secondary_fragment_number == 7
        assert ion.secondary_fragment_number - ion.fragment_number == ion.amino_acid_position
        assert ion.intensity == pytest.approx(1000.0)
        assert ion.label == "bIy[3-7]"

    def test_unknown_product_type(self):
        with pytest.raises(RecordParseError):
            read_fragment_ions("[q2+1:100.0]", "[q2+1:1]", "PEPTIDE")

    def test_charge_two(self):
        ions = read_fragment_ions("[y5+2:300.15000]", "[y5+2:10]", "PEPTIDE")
        assert ions[0].charge == 2
        assert ions[0].annotation == "y5+2"


class TestReadFragmentIonsFromList:
    def test_ignore_artifact_ions(self):
        peaks = ["b2+1:227.1", "(y2-18.0106)+1:245.1"]
        intensities = ["b2+1:10", "(y2-18.0106)+1:20"]
        ions = read_fragment_ions_from_list(peaks, intensities, "PEPTIDE", ignore_artifact_ions=True)
        assert [ion.product_type for ion in ions] == ["b"]


class TestChildScans:
    def test_envelope(self):
        mz = "{101@[b2+1:227.10263]}{102@[y1+1:148.07570, y2+1:263.10263]}"
        intensity = "{101@[b2+1:5]}{102@[y1+1:6, y2+1:7]}"
        scans = read_child_scan_matched_ions(mz, intensity, "PEPTIDE")
        assert list(scans) == [101, 102]
        assert len(scans[102]) == 2
        assert scans[102][1].intensity == pytest.approx(7.0)
        assert scans[101][0].intensity == pytest.approx(5.0)


class TestMaxQuantFragments:
    def test_charge_and_value(self):
        tokens = build_fragment_strings_from_maxquant("y1;y3(2+);b2", "148.1;200.5;227.1")
        assert tokens == ["y1+1:148.1", "y3+2:200.5", "b2+1:227.1"]

    def test_neutral_loss(self):
        tokens = build_fragment_strings_from_maxquant("y4-H2O", "400.2")
        loss = mass.calculate_mass(formula="H2O")
        assert tokens == [f"(y4-{loss})+1:400.2"]
        ions = read_fragment_ions_from_list(tokens, tokens, "PEPTIDE")
        assert ions[0].neutral_loss == pytest.approx(18.0106, abs=1e-4)


class TestMatchedFragmentIon:
    def test_mass_error_from_theoretical(self):
        ion = MatchedFragmentIon("b", 2, 1, 227.10263, 100.0, to_mass(227.10263, 1) - 0.001)
        assert ion.mass_error_da == pytest.approx(0.001)
        assert ion.mass_error_ppm == pytest.approx(0.001 / ion.neutral_theoretical_mass * 1e6)

    def test_neutral_loss_label_keeps_two_decimals(self):
        tokens = build_fragment_strings_from_maxquant("y4-H2O", "400.2")
        ion = read_fragment_ions_from_list(tokens, tokens, "PEPTIDE")[0]
        assert ion.annotation == "(y4-18.01)+1"
        reread = read_fragment_ions_from_list([f"{ion.annotation}:400.2"], [f"{ion.annotation}:1"], "PEPTIDE")[0]
        assert reread.neutral_loss == pytest.approx(18.01)
        assert reread.neutral_loss != ion.neutral_loss
