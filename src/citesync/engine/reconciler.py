"""Three-way change reconciliation between ORIGINAL, CURRENT and FINAL states."""

from __future__ import annotations

from citesync.logging import get_logger
from citesync.models.changes import ChangeRecord, ChangeType
from citesync.models.citation import Citation
from citesync.models.stores import DocumentState
from citesync.references.markers import numeric_skeleton

logger = get_logger("reconciler")


class ChangeReconciler:
    """Classifies each citation's cumulative change since load.

    ORIGINAL is the snapshot taken when the document was loaded, CURRENT the
    state before the latest operation and FINAL the state after it. Records
    compare ORIGINAL with FINAL, so a change made by an earlier operation is
    still reported after later ones; CURRENT is carried along so callers can
    highlight what the latest step touched.
    """

    def classify(self, original: Citation | None, final: Citation) -> ChangeType:
        """Classify one citation, in priority order deleted > unchanged > renumber > style."""
        original_text = original.raw_text if original is not None else ""
        was_orphaned = original.is_orphaned if original is not None else False

        if final.is_orphaned and not was_orphaned:
            return ChangeType.DELETED
        if final.raw_text == original_text:
            return ChangeType.UNCHANGED
        if numeric_skeleton(final.raw_text) == numeric_skeleton(original_text):
            return ChangeType.RENUMBER
        return ChangeType.STYLE

    def reconcile(
        self,
        original: DocumentState,
        current: DocumentState | None,
        final: DocumentState,
        include_unchanged: bool = False,
    ) -> list[ChangeRecord]:
        """Build change records for every citation in FINAL.

        Args:
            original: Snapshot taken at load
            current: State before the latest operation (None for a bare diff)
            final: State after the latest operation
            include_unchanged: Also return UNCHANGED records

        Returns:
            Records in document order, one per citation at most
        """
        previous = current.texts() if current is not None else {}
        records: list[ChangeRecord] = []

        for citation in final.citations:
            before = original.citations.get(citation.id)
            change_type = self.classify(before, citation)
            if change_type == ChangeType.UNCHANGED and not include_unchanged:
                continue

            records.append(
                ChangeRecord(
                    citation_id=citation.id,
                    old_text=before.raw_text if before is not None else "",
                    new_text=citation.raw_text,
                    change_type=change_type,
                    previous_text=previous.get(citation.id),
                    is_orphaned=citation.is_orphaned,
                    reference_numbers=list(citation.linked_reference_numbers),
                )
            )

        logger.debug(f"Reconciled {len(records)} changed citations")
        return records
