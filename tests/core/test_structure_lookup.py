"""
Tests for the static product test structure.
"""
from insights.core.test_structure import (
    EXPECTED_SECTIONS,
    PRODUCT_TYPES,
    expected_sections,
    resolve_product_type,
)


class TestResolveProductType:
    def test_known_product_id(self):
        assert resolve_product_type("year-5-naplan") == "Year 5 NAPLAN"

    def test_unknown_id_passes_through(self):
        assert resolve_product_type("Year 7 NAPLAN") == "Year 7 NAPLAN"


class TestExpectedSections:
    def test_naplan_sections(self):
        assert expected_sections("Year 5 NAPLAN") == (
            "Reading",
            "Writing",
            "Language Conventions",
            "Numeracy",
        )

    def test_unknown_product(self):
        assert expected_sections("Mock Exam") is None

    def test_every_product_id_has_a_structure(self):
        for product_type in PRODUCT_TYPES.values():
            assert product_type in EXPECTED_SECTIONS

    def test_section_lists_have_no_duplicates(self):
        for sections in EXPECTED_SECTIONS.values():
            assert len(sections) == len(set(sections))
