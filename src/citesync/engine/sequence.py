"""Sequence validation for numeric citation styles."""

from citesync.config import Settings, get_settings
from citesync.models.analysis import SequenceAnalysis, SequenceGap
from citesync.models.stores import DocumentState
from citesync.references.markers import integer_tokens, looks_numeric
from citesync.references.styles import is_numeric_style


class SequenceValidator:
    """Checks that numeric citations first appear in ascending order.

    A number is out of order when its first appearance is smaller than the
    highest number seen before it. Numbers cited again later are not
    re-checked, and a full permutation distance is not computed.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def applies(self, state: DocumentState) -> bool:
        """Numeric styles, or any document holding a bare/bracketed number marker."""
        if is_numeric_style(state.style):
            return True
        return any(looks_numeric(c.raw_text) for c in state.citations)

    def first_occurrences(self, state: DocumentState) -> list[int]:
        """Distinct citation numbers in order of first appearance."""
        first: list[int] = []
        seen: set[int] = set()
        for citation in state.citations:  # document order
            for number in integer_tokens(citation.raw_text, self.settings.max_citation_number):
                if number not in seen:
                    seen.add(number)
                    first.append(number)
        return first

    def analyze(self, state: DocumentState) -> SequenceAnalysis:
        """Analyze citation numbering.

        Args:
            state: Document state to read

        Returns:
            SequenceAnalysis (sequential and empty when the check does not apply)
        """
        duplicates = state.references.duplicate_numbers()
        if not self.applies(state):
            return SequenceAnalysis(applicable=False, duplicate_numbers=duplicates)

        first = self.first_occurrences(state)
        if not first:
            return SequenceAnalysis(duplicate_numbers=duplicates)

        out_of_order: list[int] = []
        running_max = 0
        for number in first:
            if number < running_max:
                out_of_order.append(number)
            else:
                running_max = number

        highest = max(first)
        cited = set(first)
        missing = [n for n in range(1, highest + 1) if n not in cited]

        return SequenceAnalysis(
            is_sequential=not out_of_order,
            out_of_order=out_of_order,
            expected_order=sorted(first),
            actual_order=first,
            missing_numbers=missing,
            duplicate_numbers=duplicates,
            gaps=_gaps(missing),
            expected_range=(1, highest),
        )


def _gaps(missing: list[int]) -> list[SequenceGap]:
    gaps: list[SequenceGap] = []
    for number in missing:
        if gaps and gaps[-1].end == number - 1:
            gaps[-1].end = number
        else:
            gaps.append(SequenceGap(start=number, end=number))
    return gaps
