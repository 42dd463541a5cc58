"""Models package."""

from citesync.models.analysis import (
    CitationIssue,
    CrossReferenceReport,
    FixOption,
    IssueSeverity,
    OrphanedCitation,
    SequenceAnalysis,
    SequenceGap,
    UncitedReference,
)
from citesync.models.changes import ChangeRecord, ChangeType
from citesync.models.citation import Citation, CitationType, Reference, SourceType
from citesync.models.stores import CitationStore, DocumentState, ReferenceStore

__all__ = [
    "ChangeRecord",
    "ChangeType",
    "Citation",
    "CitationIssue",
    "CitationStore",
    "CitationType",
    "CrossReferenceReport",
    "DocumentState",
    "FixOption",
    "IssueSeverity",
    "OrphanedCitation",
    "Reference",
    "ReferenceStore",
    "SequenceAnalysis",
    "SequenceGap",
    "SourceType",
    "UncitedReference",
]
