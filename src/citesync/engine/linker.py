"""Link resolution between citations and references."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from citesync.config import Settings, get_settings
from citesync.exceptions import ValidationError
from citesync.logging import get_logger
from citesync.models.analysis import CrossReferenceReport, OrphanedCitation, UncitedReference
from citesync.models.citation import Citation, Reference
from citesync.models.stores import DocumentState
from citesync.references.markers import parse_marker
from citesync.references.styles import is_numeric_style

logger = get_logger("linker")

YEAR_PATTERN = re.compile(r"\b(1[5-9]\d{2}|20\d{2})[a-z]?\b")


@dataclass
class CitationLinks:
    """Resolved links of one citation.

    Attributes:
        citation_id: The citation
        cited_numbers: Every number the citation points at, in citing order
        linked_numbers: Cited numbers that match a reference
        orphaned_numbers: Cited numbers with no reference
        reference_ids: Ids of the linked references, same order as linked_numbers
        errors: Malformed tokens that were skipped
    """

    citation_id: str
    cited_numbers: list[int] = field(default_factory=list)
    linked_numbers: list[int] = field(default_factory=list)
    orphaned_numbers: list[int] = field(default_factory=list)
    reference_ids: list[str] = field(default_factory=list)
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def is_orphaned(self) -> bool:
        return bool(self.orphaned_numbers)


@dataclass
class LinkResolution:
    """Links of every citation in a document state."""

    links: dict[str, CitationLinks] = field(default_factory=dict)

    def __getitem__(self, citation_id: str) -> CitationLinks:
        return self.links[citation_id]

    def orphaned(self) -> list[CitationLinks]:
        return [link for link in self.links.values() if link.is_orphaned]

    def apply(self, state: DocumentState) -> None:
        """Write resolved links and orphan flags back onto the citations."""
        for citation in state.citations:
            link = self.links.get(citation.id)
            if link is None:
                continue
            citation.linked_reference_numbers = list(link.linked_numbers)
            citation.orphaned_numbers = list(link.orphaned_numbers)
            citation.is_orphaned = link.is_orphaned
            for error in link.errors:
                citation.flag_for_review(error.message)


class LinkResolver:
    """Resolves each citation's numbers against the reference store.

    Numeric styles read the numbers from the marker text. Author-date
    styles carry no numbers in text, so the citation's stored links are
    authoritative there.

    A number recorded in a citation's ``orphaned_numbers`` stays orphaned:
    it names a reference that is gone, not whichever reference holds that
    number after a renumbering. Only restoring the reference relinks it.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def cited_numbers(
        self, citation: Citation, state: DocumentState
    ) -> tuple[list[int], list[ValidationError]]:
        """Numbers a citation points at, with any malformed-token errors."""
        if is_numeric_style(state.style):
            parsed = parse_marker(
                citation.raw_text,
                max_number=self.settings.max_citation_number,
                max_span=self.settings.max_range_span,
            )
            errors = parsed.errors
            for error in errors:
                error.citation_id = citation.id
            if parsed.has_numbers or errors:
                return parsed.occurrences, errors
        return citation.cited_numbers, []

    def resolve(self, state: DocumentState) -> LinkResolution:
        """Resolve every citation. Pure: the state is not modified.

        Args:
            state: Document state to read

        Returns:
            LinkResolution; call ``apply`` to persist it
        """
        index = state.references.number_index()
        resolution = LinkResolution()

        for citation in state.citations:
            numbers, errors = self.cited_numbers(citation, state)
            link = CitationLinks(citation_id=citation.id, errors=errors)
            orphans = list(citation.orphaned_numbers)
            for number in numbers:
                if number not in link.cited_numbers:
                    link.cited_numbers.append(number)
                if number in orphans:
                    orphans.remove(number)
                    ref = None
                else:
                    ref = index.get(number)
                if ref is None:
                    if number not in link.orphaned_numbers:
                        link.orphaned_numbers.append(number)
                elif number not in link.linked_numbers:
                    link.linked_numbers.append(number)
                    link.reference_ids.append(ref.id)
            resolution.links[citation.id] = link

        orphaned = resolution.orphaned()
        if orphaned:
            logger.debug(f"{len(orphaned)} citations point at missing references")
        return resolution

    def cross_reference(
        self, state: DocumentState, resolution: LinkResolution | None = None
    ) -> CrossReferenceReport:
        """Compare cited numbers with the reference list."""
        resolution = resolution or self.resolve(state)
        cited_ids: set[str] = set()
        report = CrossReferenceReport(
            total_citations=len(state.citations),
            total_references=len(state.references),
        )

        for citation in state.citations:
            link = resolution.links[citation.id]
            cited_ids.update(link.reference_ids)
            for number in link.orphaned_numbers:
                report.citations_without_reference.append(
                    OrphanedCitation(citation_id=citation.id, number=number, text=citation.raw_text)
                )

        style_key = state.style.value
        for ref in state.references:
            if ref.id in cited_ids:
                report.matched += 1
            else:
                report.references_without_citation.append(
                    UncitedReference(
                        reference_id=ref.id,
                        number=ref.number,
                        text=ref.formatted.get(style_key) or ref.title,
                    )
                )
        return report


def infer_author_year_links(text: str, references: list[Reference]) -> list[int]:
    """Match an author-date marker to reference numbers by family name and year.

    Handles "(Smith, 2020)", "(Smith & Jones, 2020; Lee et al., 2021)" and
    narrative "Smith et al. (2020)". Used at load time for author-date
    citations that arrive without links.
    """
    matches: list[int] = []
    inner = re.sub(r"^\s*\(|\)\s*$", "", text or "")
    for part in re.split(r"\s*;\s*", inner):
        if not part.strip():
            continue
        year_match = YEAR_PATTERN.search(part)
        year = year_match.group(1) if year_match else None
        for ref in references:
            family = ref.first_author_family
            if not family or family.lower() not in part.lower():
                continue
            if year and ref.year and not str(ref.year).startswith(year):
                continue
            if ref.number not in matches:
                matches.append(ref.number)
            break
    return matches
