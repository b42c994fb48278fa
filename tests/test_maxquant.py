"""Tests for MaxQuant sequence conversion and msms.txt records."""

import pytest

from psmtsv.detection import detect_file_type
from psmtsv.exceptions import RecordParseError, UnknownModificationError
from psmtsv.maxquant import (
    best_donor_psms,
    convert_maxquant_full_sequence,
    levenshtein_distance,
    parse_maxquant_mod,
    record_from_maxquant_fields,
    translate_maxquant_position,
)
from psmtsv.modifications import Modification, ModificationCatalog, default_catalog
from psmtsv.records import MatchRecord, parse_line

MSMS_HEADER = ("Raw file\tScan number\tSequence\tModified sequence\tMass\tRetention time\tCharge\t"
               "m/z\tProteins\tScore\tReverse\tMatches\tIntensities\tMasses\tMass error [Da]")

MQ_SEQUENCE = "_(Acetyl (Protein N-term))M(Oxidation (M))PEPTIDE_"
CONVERTED = "[Common Biological:Acetylation on X]M[Common Variable:Oxidation on M]PEPTIDE"


def msms_line(**overrides):
    cells = {
        "raw": "sample.raw", "scan": "1000", "seq": "MPEPTIDE", "mod": MQ_SEQUENCE,
        "mass": "1000.0", "rt": "12.5", "charge": "2", "mz": "501.0", "proteins": "P1",
        "score": "88.5", "reverse": "", "matches": "b2;y1", "intensities": "100;200",
        "masses": "229.1;148.1", "error": "0.01",
    }
    cells.update(overrides)
    return "\t".join(cells.values())


@pytest.fixture
def msms_header():
    _, header = detect_file_type(MSMS_HEADER)
    return header


class TestLevenshtein:
    def test_classic(self):
        assert levenshtein_distance("kitten", "sitting") == 3

    def test_empty(self):
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("abc", "") == 3

    def test_identical(self):
        assert levenshtein_distance("Oxidation", "Oxidation") == 0

    def test_prefix(self):
        assert levenshtein_distance("Acetyl", "Acetylation") == 5


class TestTranslatePosition:
    def test_single_residue(self):
        assert translate_maxquant_position("(Oxidation (M))", "M", "P") == "M"

    def test_n_terminal_uses_following_residue(self):
        assert translate_maxquant_position("(Acetyl (Protein N-term))", None, "M") == "M"

    def test_c_terminal_uses_preceding_residue(self):
        assert translate_maxquant_position("(Amidated (C-term))", "E", None) == "E"

    def test_multi_residue_is_wildcard(self):
        assert translate_maxquant_position("(Phospho (STY))", "S", "P") == "X"

    def test_n_terminal_without_residue(self):
        with pytest.raises(ValueError):
            translate_maxquant_position("(Acetyl (N-term))", None, None)


class TestParseMaxQuantMod:
    def test_exact_target(self):
        mod = parse_maxquant_mod("(Oxidation (M))", "M", "P")
        assert mod.id_with_motif == "Oxidation on M"

    def test_wildcard_target(self):
        mod = parse_maxquant_mod("(Acetyl (Protein N-term))", None, "M")
        assert mod.id_with_motif == "Acetylation on X"

    def test_cache_requires_both_neighbours(self):
        cache = {}
        parse_maxquant_mod("(Acetyl (Protein N-term))", None, "M", cache=cache)
        parse_maxquant_mod("(Oxidation (M))", "M", "P", cache=cache)
        assert list(cache) == ["(Oxidation (M))"]

    def test_cached_value_is_reused(self):
        sentinel = Modification("Sentinel", "Test", "M")
        cache = {"(Oxidation (M))": sentinel}
        assert parse_maxquant_mod("(Oxidation (M))", "M", "P", cache=cache) is sentinel

    def test_no_candidate(self):
        catalog = ModificationCatalog([Modification("Oxidation", "Common Variable", "M", "O")])
        assert parse_maxquant_mod("(Foo (Q))", "P", "T", catalog=catalog) is None


class TestConvertFullSequence:
    def test_terminal_and_residue_mods(self):
        full, known, num_fixed = convert_maxquant_full_sequence(MQ_SEQUENCE)
        assert full == CONVERTED
        assert set(known) == {"Acetylation on X", "Oxidation on M"}
        assert num_fixed == 0

    def test_unmodified(self):
        full, known, num_fixed = convert_maxquant_full_sequence("_PEPTIDE_")
        assert full == "PEPTIDE"
        assert known == {}
        assert num_fixed == 0

    def test_fixed_cysteine(self):
        full, known, num_fixed = convert_maxquant_full_sequence("_PEPCTIDE_")
        assert full == "PEPC[Common Fixed:Carbamidomethyl on C]TIDE"
        assert list(known) == ["Carbamidomethyl on C"]
        assert num_fixed == 1

    def test_explicit_carbamidomethyl_not_doubled(self):
        full, known, num_fixed = convert_maxquant_full_sequence("_PEPC(Carbamidomethyl (C))TIDE_")
        assert full == "PEPC[Common Fixed:Carbamidomethyl on C]TIDE"
        assert list(known) == ["Carbamidomethyl on C"]
        assert num_fixed == 0

    def test_internal_mod(self):
        full, _, _ = convert_maxquant_full_sequence("_PEPM(Oxidation (M))TIDE_")
        assert full == "PEPM[Common Variable:Oxidation on M]TIDE"

    def test_no_fixed_mods(self):
        full, _, num_fixed = convert_maxquant_full_sequence("_PEPCTIDE_", fixed_mods=[])
        assert full == "PEPCTIDE"
        assert num_fixed == 0

    def test_unknown_modification(self):
        catalog = ModificationCatalog([Modification("Oxidation", "Common Variable", "M", "O")])
        with pytest.raises(UnknownModificationError):
            convert_maxquant_full_sequence("_PEP(Foo (Q))TIDE_", catalog=catalog)

    def test_shared_cache(self):
        cache = {}
        convert_maxquant_full_sequence(MQ_SEQUENCE, catalog=default_catalog(), cache=cache)
        assert "(Oxidation (M))" in cache
        full, _, _ = convert_maxquant_full_sequence(MQ_SEQUENCE, cache=cache)
        assert full == CONVERTED


class TestMsmsRecords:
    def test_record(self, msms_header):
        record = parse_line(msms_line(), msms_header)
        assert record.file_name_without_extension == "sample"
        assert record.ms2_scan_number == 1000
        assert record.base_sequence == "MPEPTIDE"
        assert record.full_sequence == CONVERTED
        assert record.precursor_charge == 2
        assert record.precursor_mass == pytest.approx(1000.0)
        assert float(record.peptide_mono_mass) == pytest.approx(1000.01)
        assert record.score == pytest.approx(88.5)
        assert record.decoy_contaminant_target == "T"

    def test_matched_ions(self, msms_header):
        record = parse_line(msms_line(), msms_header)
        assert [ion.annotation for ion in record.matched_ions] == ["b2+1", "y1+1"]
        assert record.matched_ions[0].mz == pytest.approx(229.1)
        assert record.matched_ions[1].intensity == pytest.approx(200.0)

    def test_reverse_is_decoy(self, msms_header):
        record = parse_line(msms_line(reverse="+"), msms_header)
        assert record.decoy_contaminant_target == "D"
        assert record.is_decoy

    def test_blank_matches(self, msms_header):
        record = parse_line(msms_line(matches="", intensities="", masses=""), msms_header)
        assert record.score == 0.0
        assert record.matched_ions is None

    def test_nan_mass_error(self, msms_header):
        record = parse_line(msms_line(error="NaN"), msms_header)
        assert float(record.peptide_mono_mass) == pytest.approx(1000.0)

    def test_record_from_split_fields(self, msms_header):
        record = record_from_maxquant_fields(msms_line().split("\t"), msms_header)
        assert record.full_sequence == CONVERTED

    def test_bad_mass(self, msms_header):
        line = msms_line(mass="abc")
        with pytest.raises(RecordParseError) as e:
            parse_line(line, msms_header)
        assert e.value.line == line


class TestBestDonorPsms:
    def test_highest_score_with_ions(self):
        low = MatchRecord(score=10.0, matched_ions=[])
        high = MatchRecord(score=50.0, matched_ions=[])
        no_ions = MatchRecord(score=90.0)
        donors = best_donor_psms(
            [("_PEPTIDE_", low), ("_PEPTIDE_", high), ("_PEPTIDE_", no_ions), ("_OTHER_", high)],
            ["_PEPTIDE_", "_MISSING_"],
        )
        assert donors == {"_PEPTIDE_": high}
