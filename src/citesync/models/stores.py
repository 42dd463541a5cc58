"""In-memory stores for references and citations, and the document state."""

from __future__ import annotations

import copy
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from citesync.exceptions import ReferenceNotFoundError
from citesync.models.citation import Citation, Reference
from citesync.references.styles import CitationStyle


class ReferenceStore:
    """Canonical ordered reference list, kept sorted by number."""

    def __init__(self, references: Iterable[Reference] = ()):
        self._references: list[Reference] = list(references)
        self.sort()

    def __iter__(self) -> Iterator[Reference]:
        return iter(self._references)

    def __len__(self) -> int:
        return len(self._references)

    def __contains__(self, reference_id: object) -> bool:
        return any(ref.id == reference_id for ref in self._references)

    def sort(self) -> None:
        """Re-order entries by number (stable for equal numbers)."""
        self._references.sort(key=lambda ref: ref.number)

    def get(self, reference_id: str) -> Reference:
        for ref in self._references:
            if ref.id == reference_id:
                return ref
        raise ReferenceNotFoundError(reference_id)

    def by_number(self, number: int) -> Reference | None:
        """Return the first reference holding a number."""
        for ref in self._references:
            if ref.number == number:
                return ref
        return None

    def number_index(self) -> dict[int, Reference]:
        """Map each number to its (first) reference."""
        index: dict[int, Reference] = {}
        for ref in self._references:
            index.setdefault(ref.number, ref)
        return index

    @property
    def numbers(self) -> list[int]:
        return [ref.number for ref in self._references]

    def duplicate_numbers(self) -> list[int]:
        seen: set[int] = set()
        duplicates: list[int] = []
        for number in self.numbers:
            if number in seen and number not in duplicates:
                duplicates.append(number)
            seen.add(number)
        return duplicates

    def is_dense(self) -> bool:
        """True if numbers are exactly 1..N without gaps or duplicates."""
        return sorted(self.numbers) == list(range(1, len(self._references) + 1))

    def add(self, reference: Reference) -> None:
        self._references.append(reference)
        self.sort()

    def remove(self, reference_id: str) -> Reference:
        ref = self.get(reference_id)
        self._references.remove(ref)
        return ref


class CitationStore:
    """In-text citations, kept in document order."""

    def __init__(self, citations: Iterable[Citation] = ()):
        self._citations: list[Citation] = sorted(
            citations, key=lambda c: (c.start_offset, c.end_offset)
        )

    def __iter__(self) -> Iterator[Citation]:
        return iter(self._citations)

    def __len__(self) -> int:
        return len(self._citations)

    def get(self, citation_id: str) -> Citation | None:
        for citation in self._citations:
            if citation.id == citation_id:
                return citation
        return None


@dataclass
class DocumentState:
    """Everything an operation may mutate, as one unit of consistency."""

    style: CitationStyle
    citations: CitationStore = field(default_factory=CitationStore)
    references: ReferenceStore = field(default_factory=ReferenceStore)

    def copy(self) -> DocumentState:
        """Deep copy, used for snapshots and transactional working copies."""
        return copy.deepcopy(self)

    def texts(self) -> dict[str, str]:
        """Citation id -> current raw text."""
        return {c.id: c.raw_text for c in self.citations}
