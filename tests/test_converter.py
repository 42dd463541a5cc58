"""Tests for citation style conversion."""

import pytest
from conftest import make_state

from citesync.engine.cancellation import CancellationToken
from citesync.engine.converter import StyleConverter
from citesync.exceptions import OperationCancelledError
from citesync.models import CitationType
from citesync.references import CitationStyle


@pytest.fixture
def converter(settings):
    return StyleConverter(settings=settings)


def texts(state):
    return [c.raw_text for c in state.citations]


class TestNumericToAuthorDate:
    """Tests for converting numbered documents to author styles."""

    def test_apa_markers(self, converter):
        """Test that numeric markers become author-date markers."""
        state = make_state(["[1]", "[2]", "[1, 2]"], numbers=(1, 2), style=CitationStyle.IEEE)
        result = converter.convert(state, CitationStyle.APA)

        assert texts(state) == ["(Smith & Doe, 2016)", "(Jones, 2017)", "(Smith & Doe, 2016; Jones, 2017)"]
        assert state.style == CitationStyle.APA
        assert result.rewritten_citations == ["c1", "c2", "c3"]
        assert all(c.citation_type == CitationType.PARENTHETICAL for c in state.citations)

    def test_links_survive_conversion(self, converter):
        """Test that author-date citations keep their links."""
        state = make_state(["[1]", "[2]"], numbers=(1, 2), style=CitationStyle.IEEE)
        converter.convert(state, CitationStyle.APA)
        assert [c.linked_reference_numbers for c in state.citations] == [[1], [2]]

    def test_narrative_citation(self, converter):
        """Test that narrative citations keep their form."""
        state = make_state(["[1]"], numbers=(1,), style=CitationStyle.IEEE)
        state.citations.get("c1").citation_type = CitationType.NARRATIVE
        converter.convert(state, CitationStyle.APA)
        assert texts(state) == ["Smith and Doe (2016)"]

    def test_orphan_kept_verbatim(self, converter):
        """Test that a citation of a deleted reference is not rewritten."""
        state = make_state(["[1]", "[2]", "[5]"], numbers=(1, 2), style=CitationStyle.IEEE)
        result = converter.convert(state, CitationStyle.APA)

        orphan = state.citations.get("c3")
        assert orphan.raw_text == "[5]"
        assert result.skipped_citations == ["c3"]
        assert orphan.needs_review
        assert "Cites deleted reference(s) [5]" in orphan.review_reasons[0]


class TestAuthorDateToNumeric:
    """Tests for converting author styles to numbered styles."""

    def test_numbered_by_appearance(self, converter):
        """Test that the converted document is numbered by first appearance."""
        state = make_state(
            ["(Jones, 2017)", "(Smith & Doe, 2016)"],
            numbers=(1, 2),
            style=CitationStyle.APA,
            links={"c1": [2], "c2": [1]},
        )
        result = converter.convert(state, CitationStyle.IEEE)

        assert texts(state) == ["[1]", "[2]"]
        assert result.resequenced
        assert result.mapping == {1: 2, 2: 1}
        assert state.references.by_number(1).id == "ref-2"
        assert all(c.citation_type == CitationType.NUMERIC for c in state.citations)

    def test_ama_compact_markers(self, converter):
        """Test AMA superscript-style numbers."""
        state = make_state(
            ["(Smith & Doe, 2016; Jones, 2017; Brown et al., 2018)"],
            numbers=(1, 2, 3),
            style=CitationStyle.APA,
            links={"c1": [1, 2, 3]},
        )
        converter.convert(state, CitationStyle.AMA)
        assert texts(state) == ["1-3"]


class TestReferenceRendering:
    """Tests for reference entries during conversion."""

    def test_entries_cached_per_style(self, converter):
        """Test that each style's entry is cached on the reference."""
        state = make_state(["[1]"], numbers=(1,), style=CitationStyle.IEEE)
        converter.convert(state, CitationStyle.APA)
        ref = state.references.get("ref-1")
        assert ref.formatted["apa"].startswith("Smith, J., & Doe, J. (2016).")

    def test_missing_required_field_flagged(self, converter):
        """Test that AMA flags a reference without a DOI but still renders it."""
        state = make_state(["[1]", "[2]"], numbers=(1, 2), style=CitationStyle.VANCOUVER)
        state.references.get("ref-2").doi = None

        result = converter.convert(state, CitationStyle.AMA)

        ref = state.references.get("ref-2")
        assert result.flagged_references == ["ref-2"]
        assert ref.needs_review
        assert ref.review_reasons == ["AMA 11th Edition requires doi"]
        assert ref.formatted["ama"].startswith("Jones M.")

    def test_cached_entry_still_flagged(self, converter):
        """Test that a cached entry with missing fields is reported again."""
        state = make_state(["[1]"], numbers=(1,), style=CitationStyle.VANCOUVER)
        ref = state.references.get("ref-1")
        ref.doi = None
        ref.formatted["ama"] = "cached entry"

        text, flagged = converter.render_reference(ref, CitationStyle.AMA)
        assert text == "cached entry"
        assert flagged

    def test_fields_untouched(self, converter):
        """Test that conversion never edits bibliographic data."""
        state = make_state(["[1]"], numbers=(1,), style=CitationStyle.IEEE)
        before = state.references.get("ref-1").title
        converter.convert(state, CitationStyle.MLA)
        assert state.references.get("ref-1").title == before


class TestRoundTrip:
    """Tests for converting away and back."""

    def test_original_text_restored(self, converter):
        """Test that markers come back exactly as written, spacing included."""
        state = make_state(["(1)", "(2)", "(1,2)"], numbers=(1, 2), style=CitationStyle.VANCOUVER)
        converter.resolver.resolve(state).apply(state)
        original = state.copy()

        converter.convert(state, CitationStyle.MLA, original=original)
        assert texts(state) == ["(Smith and Doe)", "(Jones)", "(Smith and Doe; Jones)"]

        result = converter.convert(state, CitationStyle.VANCOUVER, original=original)
        assert texts(state) == ["(1)", "(2)", "(1,2)"]
        assert result.restored_citations == ["c1", "c2", "c3"]

    def test_entries_identical_after_round_trip(self, converter):
        """Test that entries are reproduced from the cache."""
        state = make_state(["[1]"], numbers=(1,), style=CitationStyle.IEEE)
        converter.convert(state, CitationStyle.APA)
        first = state.references.get("ref-1").formatted["apa"]
        converter.convert(state, CitationStyle.IEEE)
        converter.convert(state, CitationStyle.APA)
        assert state.references.get("ref-1").formatted["apa"] == first

    def test_edited_reference_rerendered(self, converter):
        """Test that citations of an edited reference are not restored."""
        state = make_state(["(1)", "(2)", "(1,2)"], numbers=(1, 2), style=CitationStyle.VANCOUVER)
        converter.resolver.resolve(state).apply(state)
        original = state.copy()

        converter.convert(state, CitationStyle.APA, original=original)
        state.references.get("ref-1").title = "Corrected title"
        result = converter.convert(state, CitationStyle.VANCOUVER, original=original)

        assert texts(state) == ["(1)", "(2)", "(1, 2)"]
        assert result.restored_citations == ["c2"]


class TestConversionControl:
    """Tests for no-op and cancelled conversions."""

    def test_same_style_is_noop(self, converter):
        """Test converting to the current style."""
        state = make_state(["[1]"], numbers=(1,), style=CitationStyle.IEEE)
        result = converter.convert(state, CitationStyle.IEEE)
        assert result.rewritten_citations == []
        assert texts(state) == ["[1]"]

    def test_cancelled(self, converter):
        """Test that a cancelled token stops the conversion."""
        state = make_state(["[1]"], numbers=(1,), style=CitationStyle.IEEE)
        token = CancellationToken()
        token.cancel()
        with pytest.raises(OperationCancelledError):
            converter.convert(state, CitationStyle.APA, token=token)
