"""Tests for three-way change reconciliation."""

import pytest
from conftest import make_state

from citesync.engine.converter import StyleConverter
from citesync.engine.linker import LinkResolver
from citesync.engine.reconciler import ChangeReconciler
from citesync.engine.resequencer import Resequencer, SortOrder
from citesync.models import Citation, ChangeType
from citesync.references import CitationStyle


@pytest.fixture
def reconciler():
    return ChangeReconciler()


@pytest.fixture
def resolver(settings):
    return LinkResolver(settings)


def citation(text, orphaned=False):
    return Citation(id="c1", raw_text=text, start_offset=0, end_offset=len(text), is_orphaned=orphaned)


def loaded(resolver, markers, **kwargs):
    state = make_state(markers, **kwargs)
    resolver.resolve(state).apply(state)
    return state


class TestClassify:
    """Tests for single-citation classification."""

    def test_unchanged(self, reconciler):
        """Test identical text."""
        assert reconciler.classify(citation("[1]"), citation("[1]")) == ChangeType.UNCHANGED

    def test_renumber(self, reconciler):
        """Test a change in digits only."""
        assert reconciler.classify(citation("[1, 2]"), citation("[3, 4]")) == ChangeType.RENUMBER

    def test_style(self, reconciler):
        """Test a change in format."""
        assert reconciler.classify(citation("[1]"), citation("(Smith, 2020)")) == ChangeType.STYLE

    def test_range_collapse_is_style(self, reconciler):
        """Test that a range turning into a list is not a pure renumber."""
        assert reconciler.classify(citation("[1–3]"), citation("[1, 3, 4]")) == ChangeType.STYLE

    def test_deleted_takes_priority(self, reconciler):
        """Test that a newly orphaned citation is deleted even if its text is unchanged."""
        assert reconciler.classify(citation("[2]"), citation("[2]", orphaned=True)) == ChangeType.DELETED

    def test_orphaned_at_load_is_not_deleted(self, reconciler):
        """Test that a citation already orphaned when loaded is not reported as deleted."""
        before = citation("[5]", orphaned=True)
        after = citation("[5]", orphaned=True)
        assert reconciler.classify(before, after) == ChangeType.UNCHANGED

    def test_new_citation(self, reconciler):
        """Test a citation absent from the original snapshot."""
        assert reconciler.classify(None, citation("[1]")) == ChangeType.STYLE


class TestReconcile:
    """Tests for whole-document reconciliation."""

    def test_resequence_scenario(self, reconciler, resolver, settings):
        """Test the records produced by resequencing [2], [1], [3]."""
        original = loaded(resolver, ["[2]", "[1]", "[3]"])
        final = original.copy()
        Resequencer(resolver, settings).resequence(final)

        records = reconciler.reconcile(original, original, final)
        assert [(r.citation_id, r.old_text, r.new_text, r.change_type) for r in records] == [
            ("c1", "[2]", "[1]", ChangeType.RENUMBER),
            ("c2", "[1]", "[2]", ChangeType.RENUMBER),
        ]
        assert all(r.changed_in_last_step for r in records)

    def test_include_unchanged(self, reconciler, resolver, settings):
        """Test that every citation gets a record on request."""
        original = loaded(resolver, ["[2]", "[1]", "[3]"])
        final = original.copy()
        Resequencer(resolver, settings).resequence(final)

        records = reconciler.reconcile(original, None, final, include_unchanged=True)
        assert [r.citation_id for r in records] == ["c1", "c2", "c3"]
        assert records[2].change_type == ChangeType.UNCHANGED
        assert records[2].previous_text is None

    def test_deleted_reference(self, reconciler, resolver):
        """Test that citations of a removed reference are reported as deleted."""
        original = loaded(resolver, ["[1]", "[2]", "[3]"])
        final = original.copy()
        final.references.remove("ref-2")
        resolver.resolve(final).apply(final)

        records = reconciler.reconcile(original, original, final)
        assert len(records) == 1
        record = records[0]
        assert record.citation_id == "c2"
        assert record.change_type == ChangeType.DELETED
        assert record.new_text == "[2]"
        assert record.is_orphaned
        assert not record.changed_in_last_step

    def test_cumulative_across_operations(self, reconciler, resolver, settings):
        """Test that an earlier style change is still reported after a later sort."""
        original = loaded(resolver, ["(1)", "(2)"], numbers=(1, 2), style=CitationStyle.VANCOUVER)
        state = original.copy()
        StyleConverter(resolver, settings=settings).convert(state, CitationStyle.APA, original=original)

        current = state.copy()
        Resequencer(resolver, settings).sort(state, SortOrder.ALPHABETICAL)

        records = reconciler.reconcile(original, current, state)
        assert [(r.old_text, r.new_text, r.change_type) for r in records] == [
            ("(1)", "(Smith & Doe, 2016)", ChangeType.STYLE),
            ("(2)", "(Jones, 2017)", ChangeType.STYLE),
        ]
        assert not any(r.changed_in_last_step for r in records)
        assert records[0].reference_numbers == [2]

    def test_serialized_record(self, reconciler, resolver, settings):
        """Test the camelCase form of a record."""
        original = loaded(resolver, ["[2]", "[1]"], numbers=(1, 2))
        final = original.copy()
        Resequencer(resolver, settings).resequence(final)

        data = reconciler.reconcile(original, original, final)[0].to_dict()
        assert data == {
            "citationId": "c1",
            "oldText": "[2]",
            "newText": "[1]",
            "previousText": "[2]",
            "changeType": "renumber",
            "isOrphaned": False,
            "referenceNumbers": [1],
        }
