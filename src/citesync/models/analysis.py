"""Derived, transient analysis results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass
class SequenceGap:
    """A run of reference numbers that no citation uses."""

    start: int
    end: int


@dataclass
class SequenceAnalysis:
    """First-appearance ordering of numeric citations.

    Attributes:
        is_sequential: True if first appearances never step backwards
        out_of_order: Numbers first seen below the running maximum
        expected_order: First-appearance numbers sorted ascending
        actual_order: Numbers in order of first appearance
        missing_numbers: Numbers in 1..max never cited
        duplicate_numbers: Reference numbers held by more than one reference
        gaps: Consecutive runs of missing numbers
        expected_range: (1, highest number seen), or None when nothing was cited
    """

    is_sequential: bool = True
    out_of_order: list[int] = field(default_factory=list)
    expected_order: list[int] = field(default_factory=list)
    actual_order: list[int] = field(default_factory=list)
    missing_numbers: list[int] = field(default_factory=list)
    duplicate_numbers: list[int] = field(default_factory=list)
    gaps: list[SequenceGap] = field(default_factory=list)
    expected_range: tuple[int, int] | None = None
    applicable: bool = True

    @property
    def summary(self) -> str:
        if not self.applicable:
            return "Sequence check not applicable to this citation style"
        if not self.actual_order:
            return "No numeric citations found"
        if self.is_sequential and not self.missing_numbers:
            return f"{len(self.actual_order)} numbers cited in sequential order"
        parts = []
        if self.out_of_order:
            parts.append(f"{len(self.out_of_order)} out of order")
        if self.missing_numbers:
            parts.append(f"{len(self.missing_numbers)} missing")
        if self.duplicate_numbers:
            parts.append(f"{len(self.duplicate_numbers)} duplicated")
        return "Citation numbering issues: " + ", ".join(parts)


@dataclass
class OrphanedCitation:
    """A citation number with no reference entry."""

    citation_id: str
    number: int
    text: str


@dataclass
class UncitedReference:
    """A reference entry no citation points at."""

    reference_id: str
    number: int
    text: str


@dataclass
class CrossReferenceReport:
    """Agreement between the citations and the reference list."""

    total_citations: int = 0
    total_references: int = 0
    matched: int = 0
    citations_without_reference: list[OrphanedCitation] = field(default_factory=list)
    references_without_citation: list[UncitedReference] = field(default_factory=list)

    @property
    def summary(self) -> str:
        return (
            f"{self.matched}/{self.total_references} references cited; "
            f"{len(self.citations_without_reference)} orphaned citation numbers, "
            f"{len(self.references_without_citation)} uncited references"
        )


class IssueSeverity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass
class FixOption:
    id: str
    label: str


@dataclass
class CitationIssue:
    """An actionable finding shown to the editor."""

    id: str
    severity: IssueSeverity
    category: str
    title: str
    description: str
    fix_options: list[FixOption] = field(default_factory=list)
    citation_numbers: list[int] = field(default_factory=list)
