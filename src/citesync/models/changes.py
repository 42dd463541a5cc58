"""Change records produced by the reconciler."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ChangeType(str, Enum):
    """Classification of a citation's cumulative change."""

    STYLE = "style"
    RENUMBER = "renumber"
    DELETED = "deleted"
    UNCHANGED = "unchanged"


@dataclass
class ChangeRecord:
    """Cumulative change of one citation since the document was loaded.

    Attributes:
        citation_id: Citation the record describes
        old_text: Text as originally loaded
        new_text: Text after the latest operation (original text when deleted)
        change_type: Classification of the change
        previous_text: Text immediately before the latest operation
        is_orphaned: Whether the citation points at a deleted reference
        reference_numbers: Reference numbers the citation links to now
    """

    citation_id: str
    old_text: str
    new_text: str
    change_type: ChangeType
    previous_text: str | None = None
    is_orphaned: bool = False
    reference_numbers: list[int] = field(default_factory=list)

    @property
    def changed_in_last_step(self) -> bool:
        """Whether the latest operation touched this citation's text."""
        return self.previous_text is not None and self.previous_text != self.new_text

    def to_dict(self) -> dict:
        return {
            "citationId": self.citation_id,
            "oldText": self.old_text,
            "newText": self.new_text,
            "previousText": self.previous_text,
            "changeType": self.change_type.value,
            "isOrphaned": self.is_orphaned,
            "referenceNumbers": list(self.reference_numbers),
        }
