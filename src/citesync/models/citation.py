"""Data models for references and in-text citations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

# Bibliographic fields; editing any of them invalidates the formatted cache
BIBLIOGRAPHIC_FIELDS = (
    "authors",
    "year",
    "title",
    "source",
    "doi",
    "url",
    "volume",
    "issue",
    "pages",
    "publisher",
    "source_type",
)


class CitationType(str, Enum):
    """How a citation appears in running text."""

    PARENTHETICAL = "PARENTHETICAL"
    NARRATIVE = "NARRATIVE"
    FOOTNOTE = "FOOTNOTE"
    ENDNOTE = "ENDNOTE"
    NUMERIC = "NUMERIC"
    UNKNOWN = "UNKNOWN"


class SourceType(str, Enum):
    """Kind of work a reference points to."""

    JOURNAL_ARTICLE = "JOURNAL_ARTICLE"
    BOOK = "BOOK"
    BOOK_CHAPTER = "BOOK_CHAPTER"
    CONFERENCE_PAPER = "CONFERENCE_PAPER"
    WEBSITE = "WEBSITE"
    THESIS = "THESIS"
    REPORT = "REPORT"
    UNKNOWN = "UNKNOWN"


@dataclass
class Reference:
    """One bibliography entry."""

    id: str
    number: int
    authors: list[str] = field(default_factory=list)
    year: str | None = None
    title: str = ""
    source: str | None = None  # Journal, book or site name
    doi: str | None = None
    url: str | None = None
    volume: str | None = None
    issue: str | None = None
    pages: str | None = None
    publisher: str | None = None
    source_type: SourceType = SourceType.JOURNAL_ARTICLE

    # Style code -> formatted entry (render cache)
    formatted: dict[str, str] = field(default_factory=dict)

    needs_review: bool = False
    review_reasons: list[str] = field(default_factory=list)

    def flag_for_review(self, reason: str) -> None:
        """Mark the reference for human review, recording the reason once."""
        self.needs_review = True
        if reason not in self.review_reasons:
            self.review_reasons.append(reason)

    def formatted_text(self, style: str) -> str | None:
        """Return the cached formatted entry for a style code, if any."""
        return self.formatted.get(style)

    @property
    def first_author_family(self) -> str:
        """Family name of the first author ("" when there are no authors)."""
        if not self.authors:
            return ""
        name = self.authors[0].strip()
        if "," in name:
            return name.split(",", 1)[0].strip()
        parts = name.split()
        return parts[-1] if parts else ""


@dataclass
class Citation:
    """One in-text citation occurrence."""

    id: str
    raw_text: str
    start_offset: int
    end_offset: int
    paragraph_index: int | None = None
    citation_type: CitationType = CitationType.UNKNOWN

    # Reference numbers this citation resolves to, in citing order
    linked_reference_numbers: list[int] = field(default_factory=list)
    # Cited numbers with no matching reference
    orphaned_numbers: list[int] = field(default_factory=list)
    is_orphaned: bool = False

    needs_review: bool = False
    review_reasons: list[str] = field(default_factory=list)

    def flag_for_review(self, reason: str) -> None:
        """Mark the citation for human review, recording the reason once."""
        self.needs_review = True
        if reason not in self.review_reasons:
            self.review_reasons.append(reason)

    @property
    def cited_numbers(self) -> list[int]:
        """All numbers the citation points at, resolved or not.

        A number can appear twice once a renumbered reference takes over
        the number of a deleted one: once linked, once orphaned.
        """
        return list(self.linked_reference_numbers) + list(self.orphaned_numbers)

    @property
    def fully_orphaned(self) -> bool:
        """True when every reference this citation pointed to is gone."""
        return bool(self.orphaned_numbers) and not self.linked_reference_numbers
