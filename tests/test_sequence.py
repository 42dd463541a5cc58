"""Tests for numeric citation sequence analysis."""

import pytest
from conftest import make_state

from citesync.engine.sequence import SequenceValidator
from citesync.models import SequenceGap
from citesync.references import CitationStyle


@pytest.fixture
def validator(settings):
    return SequenceValidator(settings)


class TestSequenceAnalysis:
    """Tests for first-appearance ordering."""

    def test_sequential(self, validator):
        """Test a correctly numbered document."""
        analysis = validator.analyze(make_state(["[1]", "[2]", "[1, 3]"]))
        assert analysis.is_sequential
        assert analysis.out_of_order == []
        assert analysis.summary == "3 numbers cited in sequential order"

    def test_out_of_order(self, validator):
        """Test that a number first seen below the running maximum is reported."""
        analysis = validator.analyze(make_state(["[1]", "[3]", "[2]", "[4]"], numbers=(1, 2, 3, 4)))
        assert not analysis.is_sequential
        assert analysis.out_of_order == [2]
        assert analysis.actual_order == [1, 3, 2, 4]
        assert analysis.expected_order == [1, 2, 3, 4]

    def test_every_later_first_appearance_reported(self, validator):
        """Test that all numbers first seen after a high one are flagged."""
        analysis = validator.analyze(make_state(["[3]", "[1]", "[2]"]))
        assert analysis.out_of_order == [1, 2]

    def test_repeat_citations_not_rechecked(self, validator):
        """Test that citing an earlier number again is fine."""
        analysis = validator.analyze(make_state(["[1]", "[2]", "[1]", "[3]"]))
        assert analysis.is_sequential

    def test_missing_numbers_and_gaps(self, validator):
        """Test uncited numbers below the highest citation."""
        analysis = validator.analyze(make_state(["[1]", "[4]", "[6]"], numbers=range(1, 7)))
        assert analysis.missing_numbers == [2, 3, 5]
        assert analysis.gaps == [SequenceGap(start=2, end=3), SequenceGap(start=5, end=5)]
        assert analysis.expected_range == (1, 6)
        assert "3 missing" in analysis.summary

    def test_range_endpoints_only(self, validator):
        """Test that range interiors are not counted as cited."""
        analysis = validator.analyze(make_state(["[1–3]"]))
        assert analysis.actual_order == [1, 3]
        assert analysis.missing_numbers == [2]

    def test_years_ignored(self, validator):
        """Test that years inside a marker are not citation numbers."""
        analysis = validator.analyze(make_state(["[1] (2020)", "[2]"]))
        assert analysis.actual_order == [1, 2]

    def test_duplicate_reference_numbers(self, validator):
        """Test that duplicated reference numbers are reported."""
        analysis = validator.analyze(make_state(["[1]", "[2]"], numbers=(1, 2, 2)))
        assert analysis.duplicate_numbers == [2]
        assert analysis.is_sequential

    def test_no_citations(self, validator):
        """Test an empty numeric document."""
        analysis = validator.analyze(make_state([]))
        assert analysis.is_sequential
        assert analysis.summary == "No numeric citations found"


class TestApplicability:
    """Tests for when the sequence check applies."""

    def test_author_date_document(self, validator):
        """Test that author-date documents are skipped."""
        state = make_state(["(Smith, 2016)"], style=CitationStyle.APA)
        analysis = validator.analyze(state)
        assert not analysis.applicable
        assert analysis.summary == "Sequence check not applicable to this citation style"

    def test_numeric_marker_in_author_date_document(self, validator):
        """Test that a bracketed number makes the check apply."""
        state = make_state(["(Smith, 2016)", "[2]"], style=CitationStyle.APA)
        assert validator.applies(state)
        assert validator.analyze(state).actual_order == [2]
