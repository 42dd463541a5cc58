"""Tests for actionable issue building."""

import pytest
from conftest import make_state

from citesync.engine.issues import build_issues, conversion_issue
from citesync.engine.linker import LinkResolver
from citesync.engine.sequence import SequenceValidator
from citesync.models import IssueSeverity
from citesync.references import CitationStyle


@pytest.fixture
def collect(settings):
    resolver = LinkResolver(settings)
    validator = SequenceValidator(settings)

    def _collect(state, options=None):
        resolver.resolve(state).apply(state)
        issues = build_issues(state, validator.analyze(state), resolver.cross_reference(state), options)
        return {issue.id: issue for issue in issues}

    return _collect


class TestSequenceIssues:
    """Tests for numbering issues."""

    def test_missing_numbers(self, collect):
        """Test the gap issue and its description."""
        issues = collect(make_state(["[1]", "[4]"], numbers=(1, 2, 3, 4)))
        issue = issues["seq-missing"]

        assert issue.severity == IssueSeverity.ERROR
        assert issue.title == "Missing citation numbers: [2, 3]"
        assert issue.description == "Citation numbering has 2 gaps. Expected range: 1–4."
        assert [o.id for o in issue.fix_options] == ["renumber", "flag"]

    def test_duplicate_numbers(self, collect):
        """Test the duplicate-number warning."""
        issues = collect(make_state(["[1]", "[2]"], numbers=(1, 2, 2)))
        assert issues["seq-duplicates"].description == "1 reference number is assigned more than once."

    def test_clean_document(self, collect):
        """Test that a consistent document has no issues."""
        assert collect(make_state(["[1]", "[2]", "[3]"])) == {}


class TestCrossReferenceIssues:
    """Tests for citation/reference agreement issues."""

    def test_uncited(self, collect):
        """Test the uncited-reference warning."""
        issue = collect(make_state(["[1]", "[2]"], numbers=(1, 2, 3)))["xref-uncited"]
        assert issue.severity == IssueSeverity.WARNING
        assert issue.citation_numbers == [3]
        assert issue.description == "Reference [3] is not cited in the document body."

    def test_orphaned(self, collect):
        """Test the orphaned-citation error."""
        issue = collect(make_state(["[1]", "[5]", "[5, 6]"], numbers=(1,)))["xref-orphaned"]
        assert issue.title == "3 orphaned citations"
        assert issue.citation_numbers == [5, 6]


class TestOtherIssues:
    """Tests for conversion and review issues."""

    def test_conversion(self):
        """Test the conversion issue lists the other styles."""
        issue = conversion_issue(CitationStyle.APA, [CitationStyle.APA, CitationStyle.IEEE])
        assert [o.id for o in issue.fix_options] == ["convert-ieee"]
        assert issue.description == "Current style: APA 7th Edition. Can convert to: IEEE."

    def test_no_conversion_targets(self):
        """Test that no issue is built without alternatives."""
        assert conversion_issue(CitationStyle.APA, [CitationStyle.APA]) is None

    def test_review(self, collect):
        """Test that flagged citations and references surface."""
        state = make_state(["[1]", "[5-3]"], numbers=(1,))
        state.references.get("ref-1").flag_for_review("AMA 11th Edition requires doi")
        issues = collect(state)

        assert issues["review-citations"].description == "[5-3]: Descending or empty range '5-3'"
        assert issues["review-references"].description == "#1: AMA 11th Edition requires doi"
