"""Tests for the numeric citation marker grammar."""

import pytest

from citesync.exceptions import IntegrityError
from citesync.references.markers import (
    compress_numbers,
    detect_separator,
    integer_tokens,
    looks_numeric,
    numeric_skeleton,
    parse_marker,
    render_marker,
    rewrite_marker,
)


# ============================================================================
# Parsing
# ============================================================================


class TestParseMarker:
    """Tests for parse_marker."""

    def test_single_number(self):
        """Test a bracketed single number."""
        assert parse_marker("[1]").numbers == [1]

    def test_list_and_range(self):
        """Test that ranges expand inclusively and lists keep citing order."""
        assert parse_marker("[8, 3-5, 1]").numbers == [8, 3, 4, 5, 1]

    def test_en_dash_range(self):
        """Test a range written with an en dash."""
        parsed = parse_marker("(3–5)")
        assert parsed.numbers == [3, 4, 5]
        assert parsed.tokens[0].is_range

    def test_repeated_numbers_reported_once(self):
        """Test that a number cited twice in one marker is listed once."""
        assert parse_marker("[2, 2-3]").numbers == [2, 3]

    def test_occurrences_keep_repeats(self):
        """Test that occurrences list every cited number as written."""
        assert parse_marker("[2, 2-3]").occurrences == [2, 2, 3]

    def test_years_are_noise(self):
        """Test that numbers above 1000 are ignored."""
        parsed = parse_marker("(Smith, 2020)")
        assert parsed.numbers == []
        assert not parsed.has_numbers
        assert parsed.tokens[0].noise

    def test_zero_is_noise(self):
        """Test that non-positive numbers are ignored."""
        assert parse_marker("[0]").numbers == []

    def test_descending_range_is_malformed(self):
        """Test that a descending range is skipped with an error."""
        parsed = parse_marker("[5-3]")
        assert parsed.numbers == []
        assert len(parsed.errors) == 1
        assert parsed.errors[0].token == "5-3"

    def test_wide_range_is_malformed(self):
        """Test that ranges wider than the maximum span are rejected."""
        parsed = parse_marker("[1-100]")
        assert parsed.numbers == []
        assert "spans more than" in parsed.errors[0].message

    def test_custom_span(self):
        """Test that the span limit is configurable."""
        assert parse_marker("[1-5]", max_span=3).numbers == []
        assert parse_marker("[1-5]", max_span=10).numbers == [1, 2, 3, 4, 5]

    def test_glued_token_is_ambiguous(self):
        """Test that digits touching letters are not linked."""
        parsed = parse_marker("[12a, 3]")
        assert parsed.numbers == [3]
        assert [t.text for t in parsed.ambiguous_tokens] == ["12"]

    def test_empty_text(self):
        """Test that empty markers parse to nothing."""
        assert parse_marker("").tokens == []


class TestMarkerHelpers:
    """Tests for the small marker helpers."""

    def test_integer_tokens_do_not_expand_ranges(self):
        """Test raw integer extraction used by sequence analysis."""
        assert integer_tokens("[1, 3-5]") == [1, 3, 5]

    def test_integer_tokens_skip_noise(self):
        """Test that years are dropped."""
        assert integer_tokens("[4] (2019)") == [4]

    @pytest.mark.parametrize("text", ["[3]", "(2, 4)", "1,3-5", "12"])
    def test_looks_numeric(self, text):
        """Test bare and bracketed integer markers."""
        assert looks_numeric(text)

    @pytest.mark.parametrize("text", ["(Smith, 2020)", "(Smith and Doe)", "[a]", ""])
    def test_does_not_look_numeric(self, text):
        """Test author markers and junk."""
        assert not looks_numeric(text)

    def test_detect_separator(self):
        """Test that the marker's own separator and spacing are found."""
        assert detect_separator("[1,2]") == ","
        assert detect_separator("[1; 2]") == "; "
        assert detect_separator("[1]") == ", "

    def test_numeric_skeleton(self):
        """Test that digit runs are masked."""
        assert numeric_skeleton("[12, 3]") == "[#, #]"


# ============================================================================
# Rendering
# ============================================================================


class TestCompressNumbers:
    """Tests for range compression."""

    def test_runs_of_three_collapse(self):
        """Test the documented example."""
        assert compress_numbers([1, 2, 3, 5, 7, 8]) == "1–3, 5, 7, 8"

    def test_sorts_and_deduplicates(self):
        """Test that input order and repeats do not matter."""
        assert compress_numbers([2, 1, 2]) == "1, 2"

    def test_custom_dash_and_separator(self):
        """Test AMA-style compact output."""
        assert compress_numbers([1, 3, 4, 5], dash="-", separator=",") == "1,3-5"

    def test_render_marker(self):
        """Test a complete bracketed marker."""
        assert render_marker([1, 2, 3], "[", "]") == "[1–3]"


# ============================================================================
# Rewriting
# ============================================================================


class TestRewriteMarker:
    """Tests for per-token renumbering."""

    def test_single_number(self):
        """Test a simple substitution."""
        assert rewrite_marker("[2]", {2: 1, 1: 2, 3: 3}) == "[1]"

    def test_preserves_punctuation_and_order(self):
        """Test that brackets, spacing and citing order survive."""
        assert rewrite_marker("( 1 ;  2 )", {1: 2, 2: 1}) == "( 2 ;  1 )"

    def test_swap_is_simultaneous(self):
        """Test that substitutions do not cascade."""
        assert rewrite_marker("[1, 2]", {1: 2, 2: 1}) == "[2, 1]"

    def test_contiguous_range_keeps_its_dash(self):
        """Test a range that stays contiguous."""
        assert rewrite_marker("[3–5]", {3: 1, 4: 2, 5: 3}) == "[1–3]"

    def test_broken_range_becomes_list(self):
        """Test a range whose image is no longer contiguous."""
        assert rewrite_marker("[1–3]", {1: 3, 2: 1, 3: 4}) == "[1, 3, 4]"

    def test_noise_untouched(self):
        """Test that years in a marker are kept as written."""
        assert rewrite_marker("[1] (2020)", {1: 2}) == "[2] (2020)"

    def test_unmapped_numbers_untouched(self):
        """Test that numbers outside the mapping are kept."""
        assert rewrite_marker("[7]", {1: 2}) == "[7]"

    def test_ambiguous_token_needing_rewrite_raises(self):
        """Test that glued digits abort a rewrite that would touch them."""
        with pytest.raises(IntegrityError):
            rewrite_marker("[12a, 3]", {12: 1, 3: 3})

    def test_ambiguous_token_left_alone_is_fine(self):
        """Test that glued digits are tolerated when they keep their number."""
        assert rewrite_marker("[12a, 3]", {3: 1}) == "[12a, 1]"

    def test_range_with_missing_member_raises(self):
        """Test that a range mixing live and deleted references is not rewritten."""
        with pytest.raises(IntegrityError):
            rewrite_marker("[3–5]", {3: 1, 5: 2})

    def test_kept_number_not_rewritten(self):
        """Test that a kept number survives even when the mapping names it."""
        assert rewrite_marker("[3, 4]", {4: 3, 3: 1}, keep=[3]) == "[3, 3]"

    def test_keep_matches_first_occurrence_only(self):
        """Test that each kept entry protects one occurrence."""
        assert rewrite_marker("[3, 3]", {3: 2}, keep=[3]) == "[3, 2]"

    def test_range_with_kept_member_unchanged(self):
        """Test a range whose live members keep their numbers."""
        assert rewrite_marker("[2–4]", {2: 2, 3: 9, 4: 4}, keep=[3]) == "[2–4]"
