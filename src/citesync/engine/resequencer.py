"""Renumbering of references and rewriting of dependent citation markers."""

from __future__ import annotations

from enum import Enum

from citesync.config import Settings, get_settings
from citesync.engine.cancellation import CancellationToken, checkpoint
from citesync.engine.linker import LinkResolution, LinkResolver
from citesync.exceptions import IntegrityError
from citesync.logging import get_logger
from citesync.models.stores import DocumentState
from citesync.references.markers import looks_numeric, parse_marker, rewrite_marker
from citesync.references.styles import is_numeric_style

logger = get_logger("resequencer")


class SortOrder(str, Enum):
    """Whole-list orderings offered by the reference editor."""

    APPEARANCE = "appearance"
    ALPHABETICAL = "alphabetical"
    YEAR = "year"


class Resequencer:
    """Assigns reference numbers and keeps citation markers in step.

    Every renumbering goes through the same steps: resolve links, build an
    old -> new bijection over 1..N, rewrite every marker, then renumber the
    references. Nothing is modified until every marker has been rewritten
    successfully.
    """

    def __init__(self, resolver: LinkResolver | None = None, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.resolver = resolver or LinkResolver(self.settings)

    # ------------------------------------------------------------------
    # Orderings
    # ------------------------------------------------------------------

    def appearance_order(self, state: DocumentState, resolution: LinkResolution) -> list[str]:
        """Reference ids by first citation; uncited references keep their relative order."""
        ordered: list[str] = []
        seen: set[str] = set()
        for citation in state.citations:  # document order
            for reference_id in resolution[citation.id].reference_ids:
                if reference_id not in seen:
                    seen.add(reference_id)
                    ordered.append(reference_id)
        ordered.extend(ref.id for ref in state.references if ref.id not in seen)
        return ordered

    def sorted_order(
        self, state: DocumentState, order: SortOrder, resolution: LinkResolution
    ) -> list[str]:
        if order == SortOrder.APPEARANCE:
            return self.appearance_order(state, resolution)
        refs = list(state.references)
        if order == SortOrder.ALPHABETICAL:
            refs.sort(key=lambda r: (r.first_author_family.lower(), r.title.lower(), r.number))
        else:
            refs.sort(key=lambda r: (_year_key(r.year), r.first_author_family.lower(), r.number))
        return [ref.id for ref in refs]

    def moved_order(self, state: DocumentState, reference_id: str, new_position: int) -> list[str]:
        """Current order with one reference moved to a 1-based position."""
        state.references.get(reference_id)  # raises ReferenceNotFoundError
        ordered = [ref.id for ref in state.references if ref.id != reference_id]
        position = min(max(new_position, 1), len(ordered) + 1)
        ordered.insert(position - 1, reference_id)
        return ordered

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    def build_mapping(self, state: DocumentState, ordered_ids: list[str]) -> dict[int, int]:
        """Old number -> new number for a target ordering.

        Orphaned numbers take no part: they stay as written and stay
        orphaned even where a renumbered reference takes the same number.

        Raises:
            IntegrityError: If the result would not be a bijection onto 1..N
        """
        duplicates = state.references.duplicate_numbers()
        if duplicates:
            raise IntegrityError(
                f"Reference numbers {duplicates} are held by more than one reference",
                operation="resequence",
            )

        total = len(state.references)
        if sorted(ordered_ids) != sorted(ref.id for ref in state.references):
            raise IntegrityError("Target ordering does not cover every reference", operation="resequence")

        new_by_id = {reference_id: i for i, reference_id in enumerate(ordered_ids, start=1)}
        mapping = {ref.number: new_by_id[ref.id] for ref in state.references}
        if sorted(mapping.values()) != list(range(1, total + 1)):
            raise IntegrityError("Renumbering is not a bijection onto 1..N", operation="resequence")
        return mapping

    # ------------------------------------------------------------------
    # Application
    # ------------------------------------------------------------------

    def apply_mapping(
        self,
        state: DocumentState,
        mapping: dict[int, int],
        token: CancellationToken | None = None,
    ) -> int:
        """Rewrite markers and renumber references.

        Author-date documents only have their numeric markers rewritten,
        which are the citations a conversion left as written.

        Returns:
            Number of citations whose text changed

        Raises:
            IntegrityError: If any marker cannot be rewritten safely
        """
        numeric = is_numeric_style(state.style)
        new_texts: dict[str, str] = {}

        for citation in state.citations:
            checkpoint(token)
            if not (numeric or looks_numeric(citation.raw_text)):
                continue
            parsed = parse_marker(
                citation.raw_text,
                max_number=self.settings.max_citation_number,
                max_span=self.settings.max_range_span,
            )
            if not parsed.tokens:
                continue
            new_text = rewrite_marker(
                citation.raw_text,
                mapping,
                max_number=self.settings.max_citation_number,
                max_span=self.settings.max_range_span,
                keep=citation.orphaned_numbers,
            )
            if new_text != citation.raw_text:
                new_texts[citation.id] = new_text

        # Every rewrite succeeded; commit
        for citation in state.citations:
            if citation.id in new_texts:
                citation.raw_text = new_texts[citation.id]
            citation.linked_reference_numbers = [
                mapping.get(n, n) for n in citation.linked_reference_numbers
            ]
        for ref in state.references:
            checkpoint(token)
            ref.number = mapping[ref.number]
        state.references.sort()

        self.resolver.resolve(state).apply(state)
        self._flag_reused_numbers(state)
        return len(new_texts)

    def _flag_reused_numbers(self, state: DocumentState) -> None:
        for citation in state.citations:
            for number in citation.orphaned_numbers:
                ref = state.references.by_number(number)
                if ref is not None:
                    citation.flag_for_review(
                        f"Cites deleted reference [{number}]; that number now belongs to {ref.id}"
                    )

    def renumber(
        self,
        state: DocumentState,
        ordered_ids: list[str],
        token: CancellationToken | None = None,
        resolution: LinkResolution | None = None,
    ) -> dict[int, int]:
        """Renumber references to follow ordered_ids, rewriting citations."""
        resolution = resolution or self.resolver.resolve(state)
        resolution.apply(state)
        mapping = self.build_mapping(state, ordered_ids)

        if all(old == new for old, new in mapping.items()):
            logger.debug("Numbering already matches target order")
            return mapping

        changed = self.apply_mapping(state, mapping, token)
        logger.info(
            f"Renumbered {sum(1 for o, n in mapping.items() if o != n)} references, "
            f"rewrote {changed} citations"
        )
        return mapping

    def resequence(self, state: DocumentState, token: CancellationToken | None = None) -> dict[int, int]:
        """Renumber references by first appearance. Idempotent."""
        resolution = self.resolver.resolve(state)
        ordered = self.appearance_order(state, resolution)
        return self.renumber(state, ordered, token, resolution)

    def reorder(
        self,
        state: DocumentState,
        reference_id: str,
        new_position: int,
        token: CancellationToken | None = None,
    ) -> dict[int, int]:
        """Move one reference to a new list position."""
        return self.renumber(state, self.moved_order(state, reference_id, new_position), token)

    def sort(
        self, state: DocumentState, order: SortOrder, token: CancellationToken | None = None
    ) -> dict[int, int]:
        """Renumber the whole list by a sort order."""
        resolution = self.resolver.resolve(state)
        return self.renumber(state, self.sorted_order(state, order, resolution), token, resolution)


def _year_key(year: str | None) -> int:
    digits = "".join(ch for ch in (year or "") if ch.isdigit())[:4]
    return int(digits) if digits else 9999
