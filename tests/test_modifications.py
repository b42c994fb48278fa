"""Tests for the modifications module."""

import pytest
from pyteomics import mass

from psmtsv.modifications import (
    PEPTIDE_C_TERMINAL,
    Modification,
    ModificationCatalog,
    base_sequence_from_full,
    build_full_sequence,
    default_catalog,
    format_formula,
    insert_fixed_modifications,
    modifications_from_full_sequence,
    parse_formula,
    parse_modifications,
    remove_parentheses,
    remove_special_characters,
)

ACETYL_OXIDATION = "[Common Biological:Acetylation on X]M[Common Variable:Oxidation on M]PEPTIDE"


class TestFormulas:
    def test_hill_order(self):
        assert format_formula(parse_formula("C2H3NO")) == "C2H3NO"

    def test_single_counts_omitted(self):
        assert format_formula(parse_formula("HO3P")) == "HO3P"

    def test_negative_counts(self):
        assert format_formula(parse_formula("H-1N-1O")) == "H-1N-1O"

    def test_zero_counts_dropped(self):
        total = parse_formula("C2H3NO") + parse_formula("H-3N-1")
        assert format_formula(total) == "C2O"


class TestModification:
    def test_annotation(self):
        mod = Modification("Oxidation", "Common Variable", "M", "O")
        assert mod.id_with_motif == "Oxidation on M"
        assert mod.annotation == "[Common Variable:Oxidation on M]"

    def test_monoisotopic_mass(self):
        mod = default_catalog()["Carbamidomethyl on C"]
        assert mod.monoisotopic_mass == pytest.approx(57.02146, abs=1e-4)

    def test_formula_less(self):
        mod = Modification.from_annotation("Custom:Weird thing on K")
        assert mod.modification_type == "Custom"
        assert mod.original_id == "Weird thing"
        assert mod.target == "K"
        assert mod.composition is None
        assert mod.monoisotopic_mass is None


class TestCatalog:
    def test_lookup_known(self):
        catalog = default_catalog()
        mod = catalog.lookup_annotation("Common Variable:Oxidation on M")
        assert mod.chemical_formula == "O"

    def test_lookup_unknown(self):
        mod = default_catalog().lookup_annotation("Made Up:Nothing on Q")
        assert mod.chemical_formula is None
        assert mod.id_with_motif == "Nothing on Q"

    def test_add_ignores_duplicates(self):
        catalog = ModificationCatalog()
        mod = Modification("Oxidation", "Common Variable", "M", "O")
        catalog.add(mod)
        catalog.add(Modification("Oxidation", "Other", "M", "O2"))
        assert len(catalog) == 1
        assert catalog.get("Oxidation on M") is mod
        assert "Oxidation on M" in catalog

    def test_default_catalogs_are_independent(self):
        first = default_catalog()
        first.add(Modification("Custom", "Test", "K", "C"))
        assert "Custom on K" not in default_catalog()


class TestParseModifications:
    def test_positions(self):
        mods = parse_modifications(ACETYL_OXIDATION)
        assert mods == {
            0: ["Common Biological:Acetylation on X"],
            1: ["Common Variable:Oxidation on M"],
        }

    def test_stacked_modifications(self):
        mods = parse_modifications("PEPS[A:x on S]|[B:y on S]K")
        assert mods == {4: ["A:x on S", "B:y on S"]}

    def test_no_modifications(self):
        assert parse_modifications("PEPTIDE") == {}

    def test_remove_special_characters(self):
        assert remove_special_characters("A[x]|[y]") == "A[x][y]"


class TestSequences:
    def test_base_sequence(self):
        assert base_sequence_from_full(ACETYL_OXIDATION) == "MPEPTIDE"

    def test_one_is_n_terminus_keys(self):
        mods = modifications_from_full_sequence(ACETYL_OXIDATION)
        assert sorted(mods) == [1, 2]
        assert mods[1].id_with_motif == "Acetylation on X"
        assert mods[2].id_with_motif == "Oxidation on M"

    def test_c_terminal_key(self):
        mods = modifications_from_full_sequence("PEPTIDE[Common Artifact:Amidation on X]")
        assert list(mods) == [len("PEPTIDE") + 2]
        assert mods[9].location_restriction == PEPTIDE_C_TERMINAL

    def test_build_round_trip(self):
        mods = modifications_from_full_sequence(ACETYL_OXIDATION)
        assert build_full_sequence("MPEPTIDE", mods) == ACETYL_OXIDATION

    def test_build_c_terminal(self):
        full = "PEPTIDE[Common Artifact:Amidation on X]"
        mods = modifications_from_full_sequence(full)
        assert build_full_sequence("PEPTIDE", mods) == full

    def test_build_with_filter(self):
        mods = modifications_from_full_sequence(ACETYL_OXIDATION)
        kept = build_full_sequence("MPEPTIDE", mods,
                                   include=lambda m: m.modification_type == "Common Variable")
        assert kept == "M[Common Variable:Oxidation on M]PEPTIDE"


class TestRemoveParentheses:
    def test_silac(self):
        assert remove_parentheses("PEPTIDEK(+8.01)") == "PEPTIDEK"

    def test_nothing_to_remove(self):
        assert remove_parentheses("PEPTIDE") == "PEPTIDE"


class TestInsertFixedModifications:
    def test_every_cysteine(self):
        carbamidomethyl = default_catalog()["Carbamidomethyl on C"]
        full, present = insert_fixed_modifications("ACDCE", [carbamidomethyl])
        assert full == "AC[Common Fixed:Carbamidomethyl on C]DC[Common Fixed:Carbamidomethyl on C]E"
        assert present == [carbamidomethyl, carbamidomethyl]

    def test_annotation_text_is_skipped(self):
        carbamidomethyl = default_catalog()["Carbamidomethyl on C"]
        full, present = insert_fixed_modifications("[Common Biological:Acetylation on X]MPEP",
                                                   [carbamidomethyl])
        assert full == "[Common Biological:Acetylation on X]MPEP"
        assert present == []

    def test_mass_of_inserted(self):
        carbamidomethyl = default_catalog()["Carbamidomethyl on C"]
        assert carbamidomethyl.monoisotopic_mass == pytest.approx(mass.calculate_mass(formula="C2H3NO"))

    def test_annotated_residue_not_modified_twice(self):
        carbamidomethyl = default_catalog()["Carbamidomethyl on C"]
        full = "PEC[Common Fixed:Carbamidomethyl on C]K"
        assert insert_fixed_modifications(full, [carbamidomethyl]) == (full, [])

    def test_only_bare_residues_annotated(self):
        carbamidomethyl = default_catalog()["Carbamidomethyl on C"]
        full, present = insert_fixed_modifications("C[Common Fixed:Carbamidomethyl on C]PEC", [carbamidomethyl])
        assert full == "C[Common Fixed:Carbamidomethyl on C]PEC[Common Fixed:Carbamidomethyl on C]"
        assert present == [carbamidomethyl]
