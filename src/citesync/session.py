"""Document session: owns the loaded snapshot and the current state.

Every mutating operation runs on a deep copy of the current state and is
committed only when it completes, so a rejected or cancelled operation
leaves the session exactly as it was.

Example usage:
    session = DocumentSession.load(payload)
    session.convert_style("vancouver")
    result = session.resequence()
    export = session.export(ExportMode.TRACK_CHANGES)
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from citesync.config import Settings, get_settings
from citesync.engine.cancellation import CancellationToken, checkpoint
from citesync.engine.converter import StyleConverter
from citesync.engine.export import ExportMaterializer, ExportMode, ExportResult
from citesync.engine.issues import build_issues
from citesync.engine.linker import LinkResolver, infer_author_year_links
from citesync.engine.reconciler import ChangeReconciler
from citesync.engine.resequencer import Resequencer, SortOrder
from citesync.engine.sequence import SequenceValidator
from citesync.exceptions import (
    CitationEngineError,
    IntegrityError,
    OperationCancelledError,
    ReferenceNotFoundError,
)
from citesync.logging import document_logger, get_logger, log_failure
from citesync.models.analysis import CitationIssue, CrossReferenceReport, SequenceAnalysis
from citesync.models.changes import ChangeRecord
from citesync.models.citation import BIBLIOGRAPHIC_FIELDS, Citation, Reference
from citesync.models.stores import DocumentState
from citesync.references.formatter import CitationFormatter
from citesync.references.markers import looks_numeric, rewrite_marker
from citesync.references.styles import CitationStyle, is_numeric_style, parse_style
from citesync.schemas import LoadedDocument, QuarantinedRecord, dump_document, load_document

logger = get_logger("session")

Mutation = Callable[[DocumentState, "CancellationToken | None"], Any]


@dataclass
class OperationResult:
    """Committed outcome of a mutating operation.

    Attributes:
        operation: Operation name
        citations: Citations after the operation, in document order
        references: References after the operation, in list order
        changes: Cumulative change records against the loaded document
        detail: Operation-specific result (renumbering map, ConversionResult, ...)
    """

    operation: str
    citations: list[Citation] = field(default_factory=list)
    references: list[Reference] = field(default_factory=list)
    changes: list[ChangeRecord] = field(default_factory=list)
    detail: Any = None


class DocumentSession:
    """Single-writer editing session over one document.

    The session is the only owner of document data; engine components are
    stateless and receive the state they work on. Callers must serialize
    access to a session.
    """

    def __init__(self, document: LoadedDocument, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.document_id = document.document_id
        self.text = document.text
        self.filename = document.filename
        self.quarantined: list[QuarantinedRecord] = list(document.quarantined)
        self.log = document_logger(logger, self.document_id)

        self.resolver = LinkResolver(self.settings)
        self.validator = SequenceValidator(self.settings)
        self.resequencer = Resequencer(self.resolver, self.settings)
        self.converter = StyleConverter(self.resolver, self.resequencer, self.settings)
        self.reconciler = ChangeReconciler()
        self.materializer = ExportMaterializer(self.settings, self.reconciler)

        state = document.state
        self._link_author_date_citations(state)
        self.resolver.resolve(state).apply(state)

        # ORIGINAL: immutable for the rest of the session
        self.original = state.copy()
        self.state = state
        self.changes: list[ChangeRecord] = []
        self._deleted: dict[str, Reference] = {}

    @classmethod
    def load(cls, data: dict | str | bytes, settings: Settings | None = None) -> DocumentSession:
        """Validate a payload and open a session on it.

        Raises:
            DocumentLoadError: If the payload envelope is unusable
        """
        settings = settings or get_settings()
        return cls(load_document(data, settings), settings)

    @property
    def style(self) -> CitationStyle:
        return self.state.style

    def _link_author_date_citations(self, state: DocumentState) -> None:
        if is_numeric_style(state.style):
            return
        references = list(state.references)
        for citation in state.citations:
            if citation.cited_numbers:
                continue
            numbers = infer_author_year_links(citation.raw_text, references)
            if numbers:
                citation.linked_reference_numbers = numbers
            else:
                citation.flag_for_review("No reference matches this citation's author and year")

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def _transaction(
        self, operation: str, mutate: Mutation, token: CancellationToken | None
    ) -> tuple[DocumentState, Any]:
        """Run a mutation on a working copy; the session is not touched."""
        working = self.state.copy()
        try:
            checkpoint(token)
            detail = mutate(working, token)
            checkpoint(token)
        except OperationCancelledError:
            self.log.info(f"{operation} cancelled; document state unchanged")
            raise
        except CitationEngineError as e:
            log_failure(self.log, operation, e, context={"document": self.document_id})
            raise
        return working, detail

    def _run(
        self, operation: str, mutate: Mutation, token: CancellationToken | None = None
    ) -> OperationResult:
        working, detail = self._transaction(operation, mutate, token)
        changes = self.reconciler.reconcile(self.original, self.state, working)

        # Commit
        self.state = working
        self.changes = changes
        self.log.info(f"{operation} committed: {len(changes)} changed citations")
        return OperationResult(
            operation=operation,
            citations=list(working.citations),
            references=list(working.references),
            changes=changes,
            detail=detail,
        )

    def _mutation(self, operation: str, *args: Any, **kwargs: Any) -> Mutation:
        """Build the state mutation behind a named operation."""
        if operation == "resequence":
            return lambda state, token: self.resequencer.resequence(state, token)
        if operation == "convert_style":
            target = parse_style(args[0] if args else kwargs["target"])
            return lambda state, token: self.converter.convert(
                state, target, original=self.original, token=token
            )
        if operation == "delete_reference":
            reference_id = args[0] if args else kwargs["reference_id"]
            return lambda state, token: self._delete(state, reference_id)
        if operation == "restore_reference":
            reference_id = args[0] if args else kwargs["reference_id"]
            return lambda state, token: self._restore(state, reference_id)
        if operation == "reorder_reference":
            reference_id = args[0] if args else kwargs["reference_id"]
            position = args[1] if len(args) > 1 else kwargs["new_position"]
            return lambda state, token: self.resequencer.reorder(state, reference_id, position, token)
        if operation == "sort_references":
            order = SortOrder(args[0] if args else kwargs.get("by", SortOrder.APPEARANCE))
            return lambda state, token: self.resequencer.sort(state, order, token)
        if operation == "update_reference":
            reference_id = args[0] if args else kwargs.pop("reference_id")
            return lambda state, token: self._update(state, reference_id, kwargs)
        raise ValueError(f"Unknown operation: {operation}")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def resequence(self, token: CancellationToken | None = None) -> OperationResult:
        """Renumber references by first appearance and rewrite citation markers.

        Raises:
            IntegrityError: If renumbering cannot be done safely (state unchanged)
            OperationCancelledError: If cancelled (state unchanged)
        """
        return self._run("resequence", self._mutation("resequence"), token)

    def convert_style(
        self, target: str | CitationStyle, token: CancellationToken | None = None
    ) -> OperationResult:
        """Convert references and citations to another style.

        Raises:
            UnknownStyleError: If target names no supported style
            IntegrityError: If the renumbering that follows is unsafe
        """
        return self._run("convert_style", self._mutation("convert_style", target), token)

    def delete_reference(
        self, reference_id: str, token: CancellationToken | None = None
    ) -> OperationResult:
        """Remove a reference; citations pointing at it become orphaned, not deleted."""
        result = self._run("delete_reference", self._mutation("delete_reference", reference_id), token)
        self._deleted[reference_id] = result.detail
        return result

    def restore_reference(
        self, reference_id: str, token: CancellationToken | None = None
    ) -> OperationResult:
        """Put a deleted reference back, relinking its orphaned citations."""
        result = self._run("restore_reference", self._mutation("restore_reference", reference_id), token)
        self._deleted.pop(reference_id, None)
        return result

    def reorder_reference(
        self, reference_id: str, new_position: int, token: CancellationToken | None = None
    ) -> OperationResult:
        """Move a reference to a 1-based list position and renumber."""
        return self._run(
            "reorder_reference",
            self._mutation("reorder_reference", reference_id, new_position),
            token,
        )

    def sort_references(
        self, by: str | SortOrder = SortOrder.APPEARANCE, token: CancellationToken | None = None
    ) -> OperationResult:
        """Renumber the reference list alphabetically, by year or by appearance."""
        return self._run("sort_references", self._mutation("sort_references", by), token)

    def update_reference(
        self, reference_id: str, token: CancellationToken | None = None, **fields: Any
    ) -> OperationResult:
        """Edit bibliographic fields of a reference.

        Raises:
            ValueError: If a field is not a bibliographic field
        """
        return self._run(
            "update_reference", self._mutation("update_reference", reference_id, **fields), token
        )

    def _delete(self, state: DocumentState, reference_id: str) -> Reference:
        ref = state.references.remove(reference_id)
        self.resolver.resolve(state).apply(state)
        self.log.debug(f"Deleted reference {reference_id} (#{ref.number})")
        return ref

    def _restore(self, state: DocumentState, reference_id: str) -> Reference:
        if reference_id in state.references:
            raise IntegrityError(f"Reference {reference_id} is not deleted", operation="restore_reference")
        deleted = self._deleted.get(reference_id)
        if deleted is None:
            raise ReferenceNotFoundError(reference_id)

        ref = copy.deepcopy(deleted)
        old_number = ref.number
        if state.references.by_number(old_number) is not None:
            ref.number = max(state.references.numbers, default=0) + 1
            self.log.info(f"Number of restored reference {reference_id} is taken; appended as #{ref.number}")
        state.references.add(ref)

        for citation in state.citations:
            if old_number in citation.orphaned_numbers:
                self._relink(state, citation, old_number, ref.number)
        self.resolver.resolve(state).apply(state)
        return ref

    def _relink(self, state: DocumentState, citation: Citation, old_number: int, number: int) -> None:
        """Point a citation's orphaned number back at a restored reference."""
        if number != old_number and old_number in citation.linked_reference_numbers:
            # The marker shows the number twice; the orphaned occurrence cannot be told apart
            citation.flag_for_review(
                f"Restored reference is now [{number}]; marker still shows [{old_number}]"
            )
            return

        numeric = is_numeric_style(state.style)
        citation.orphaned_numbers = [n for n in citation.orphaned_numbers if n != old_number]
        if number != old_number and (numeric or looks_numeric(citation.raw_text)):
            citation.raw_text = rewrite_marker(
                citation.raw_text,
                {old_number: number},
                max_number=self.settings.max_citation_number,
                max_span=self.settings.max_range_span,
            )
        if not numeric:
            citation.linked_reference_numbers.append(number)

    def _update(self, state: DocumentState, reference_id: str, fields: dict[str, Any]) -> Reference:
        unknown = [name for name in fields if name not in BIBLIOGRAPHIC_FIELDS]
        if unknown:
            raise ValueError(f"Not bibliographic fields: {', '.join(unknown)}")

        ref = state.references.get(reference_id)
        for name, value in fields.items():
            setattr(ref, name, value)
        ref.formatted.clear()
        ref.needs_review = False
        ref.review_reasons = []
        self.converter.render_reference(ref, state.style)

        # Author-date markers carry names and years; rewrite the ones citing this reference
        if not is_numeric_style(state.style):
            formatter = CitationFormatter(state.style)
            index = state.references.number_index()
            for citation in state.citations:
                if ref.number not in citation.linked_reference_numbers or citation.is_orphaned:
                    continue
                refs = [index[n] for n in citation.linked_reference_numbers]
                citation.raw_text = formatter.format_marker(
                    citation.linked_reference_numbers, refs, citation.citation_type
                )
        return ref

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_preview(
        self,
        operation: str | None = None,
        *args: Any,
        token: CancellationToken | None = None,
        **kwargs: Any,
    ) -> list[ChangeRecord]:
        """Change records for review before committing.

        With no operation, returns the current records. Otherwise the
        operation is dry-run on a working copy and its records are returned;
        nothing is committed.
        """
        if operation is None:
            return list(self.changes)
        working, _ = self._transaction(operation, self._mutation(operation, *args, **kwargs), token)
        return self.reconciler.reconcile(self.original, self.state, working)

    def dismiss_changes(self) -> None:
        """Clear the surfaced change list; later operations report cumulative changes again."""
        self.changes = []

    def analyze_sequence(self) -> SequenceAnalysis:
        return self.validator.analyze(self.state)

    def cross_reference(self) -> CrossReferenceReport:
        return self.resolver.cross_reference(self.state)

    def conversion_options(self) -> list[CitationStyle]:
        """Styles the document can be converted to."""
        return [style for style in CitationStyle if style != self.state.style]

    def issues(self) -> list[CitationIssue]:
        return build_issues(
            self.state,
            self.analyze_sequence(),
            self.cross_reference(),
            self.conversion_options(),
        )

    def export(
        self, mode: ExportMode | str = ExportMode.ACCEPT_ALL, highlight_changes: bool = False
    ) -> ExportResult:
        """Export the current state, regenerated from the loaded snapshot and the stores."""
        return self.materializer.export(
            self.original,
            self.state,
            text=self.text,
            filename=self.filename,
            mode=ExportMode(mode),
            highlight_changes=highlight_changes,
        )

    def to_payload(self) -> dict[str, Any]:
        """Serialize the current state; citation offsets point into the corrected text."""
        state = self.state.copy()
        text = self.text
        if text is not None:
            text, offsets = self.materializer.corrected_text(self.original, state, text)
            for citation in state.citations:
                if citation.id in offsets:
                    citation.start_offset, citation.end_offset = offsets[citation.id]
        return dump_document(state, self.document_id, text=text, filename=self.filename)
