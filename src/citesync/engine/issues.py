"""Actionable issues built from sequence and cross-reference findings."""

from citesync.models.analysis import (
    CitationIssue,
    CrossReferenceReport,
    FixOption,
    IssueSeverity,
    SequenceAnalysis,
)
from citesync.models.stores import DocumentState
from citesync.references.styles import CitationStyle, get_style_config

FLAG = FixOption(id="flag", label="Flag for manual review")


def _plural(count: int, word: str, suffix: str = "s") -> str:
    return word if count == 1 else word + suffix


def _numbers(numbers: list[int]) -> str:
    return ", ".join(str(n) for n in numbers)


def sequence_issues(analysis: SequenceAnalysis) -> list[CitationIssue]:
    issues = []
    if not analysis.applicable:
        return issues

    missing = analysis.missing_numbers
    if missing:
        start, end = analysis.expected_range or (1, max(missing))
        issues.append(
            CitationIssue(
                id="seq-missing",
                severity=IssueSeverity.ERROR,
                category="sequence",
                title=f"Missing citation {_plural(len(missing), 'number')}: [{_numbers(missing)}]",
                description=(
                    f"Citation numbering has {len(missing)} {_plural(len(missing), 'gap')}. "
                    f"Expected range: {start}–{end}."
                ),
                fix_options=[FixOption(id="renumber", label="Renumber citations sequentially"), FLAG],
                citation_numbers=list(missing),
            )
        )

    duplicates = analysis.duplicate_numbers
    if duplicates:
        issues.append(
            CitationIssue(
                id="seq-duplicates",
                severity=IssueSeverity.WARNING,
                category="sequence",
                title=f"Duplicate citation {_plural(len(duplicates), 'number')}: [{_numbers(duplicates)}]",
                description=(
                    f"{len(duplicates)} reference "
                    f"{'number is' if len(duplicates) == 1 else 'numbers are'} assigned more than once."
                ),
                fix_options=[FixOption(id="deduplicate", label="Assign unique numbers"), FLAG],
                citation_numbers=list(duplicates),
            )
        )

    out_of_order = analysis.out_of_order
    if out_of_order:
        count = len(out_of_order)
        issues.append(
            CitationIssue(
                id="seq-order",
                severity=IssueSeverity.WARNING,
                category="sequence",
                title=f"Out-of-order citations: [{_numbers(out_of_order)}]",
                description=(
                    f"{count} {'citation appears' if count == 1 else 'citations appear'}"
                    " out of sequential order."
                ),
                fix_options=[FixOption(id="reorder", label="Reorder by first appearance"), FLAG],
                citation_numbers=list(out_of_order),
            )
        )
    return issues


def cross_reference_issues(report: CrossReferenceReport) -> list[CitationIssue]:
    issues = []

    orphaned = report.citations_without_reference
    if orphaned:
        numbers = sorted({c.number for c in orphaned})
        count = len(orphaned)
        issues.append(
            CitationIssue(
                id="xref-orphaned",
                severity=IssueSeverity.ERROR,
                category="cross-reference",
                title=f"{count} orphaned {_plural(count, 'citation')}",
                description=(
                    f"{_plural(count, 'Citation')} [{_numbers(numbers)}] "
                    f"{'has' if count == 1 else 'have'} no matching reference entry."
                ),
                fix_options=[
                    FixOption(id="add-ref", label="Add missing reference entries"),
                    FixOption(id="remove", label="Remove orphaned citations"),
                    FLAG,
                ],
                citation_numbers=numbers,
            )
        )

    uncited = report.references_without_citation
    if uncited:
        count = len(uncited)
        issues.append(
            CitationIssue(
                id="xref-uncited",
                severity=IssueSeverity.WARNING,
                category="cross-reference",
                title=f"{count} uncited {_plural(count, 'reference')}",
                description=(
                    f"{_plural(count, 'Reference')} [{_numbers([r.number for r in uncited])}] "
                    f"{'is' if count == 1 else 'are'} not cited in the document body."
                ),
                fix_options=[FixOption(id="remove-ref", label="Remove uncited references"), FLAG],
                citation_numbers=[r.number for r in uncited],
            )
        )
    return issues


def conversion_issue(current: CitationStyle, options: list[CitationStyle]) -> CitationIssue | None:
    available = [style for style in options if style != current]
    if not available:
        return None
    labels = [get_style_config(style).name for style in available]
    return CitationIssue(
        id="conversion",
        severity=IssueSeverity.WARNING,
        category="conversion",
        title="Style conversion available",
        description=(
            f"Current style: {get_style_config(current).name}. "
            f"Can convert to: {', '.join(labels)}."
        ),
        fix_options=[
            FixOption(id=f"convert-{style.value}", label=f"Convert to {label}")
            for style, label in zip(available, labels)
        ],
    )


def review_issues(state: DocumentState) -> list[CitationIssue]:
    """Citations and references flagged for review by earlier operations."""
    issues = []
    citations = [c for c in state.citations if c.needs_review]
    if citations:
        count = len(citations)
        issues.append(
            CitationIssue(
                id="review-citations",
                severity=IssueSeverity.WARNING,
                category="review",
                title=f"{count} {_plural(count, 'citation')} need review",
                description="; ".join(f"{c.raw_text}: {', '.join(c.review_reasons)}" for c in citations),
                fix_options=[FLAG],
                citation_numbers=sorted({n for c in citations for n in c.cited_numbers}),
            )
        )
    references = [ref for ref in state.references if ref.needs_review]
    if references:
        count = len(references)
        issues.append(
            CitationIssue(
                id="review-references",
                severity=IssueSeverity.WARNING,
                category="review",
                title=f"{count} {_plural(count, 'reference')} need review",
                description="; ".join(
                    f"#{ref.number}: {', '.join(ref.review_reasons)}" for ref in references
                ),
                fix_options=[FLAG],
                citation_numbers=[ref.number for ref in references],
            )
        )
    return issues


def build_issues(
    state: DocumentState,
    analysis: SequenceAnalysis,
    report: CrossReferenceReport,
    conversion_options: list[CitationStyle] | None = None,
) -> list[CitationIssue]:
    """Collect every issue for a document, errors and warnings interleaved by category."""
    issues = sequence_issues(analysis) + cross_reference_issues(report)
    if conversion_options:
        issue = conversion_issue(state.style, conversion_options)
        if issue is not None:
            issues.append(issue)
    issues.extend(review_issues(state))
    return issues
