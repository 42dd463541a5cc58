"""Shared fixtures and payload builders for citesync tests."""

import pytest

from citesync.config import Settings
from citesync.models import Citation, CitationStore, DocumentState, Reference, ReferenceStore
from citesync.references import CitationStyle

AUTHORS = [
    ["John Smith", "Jane Doe"],
    ["Mary Jones"],
    ["Peter Brown", "Ann Green", "Tom White"],
    ["Lisa Taylor"],
    ["Omar Wilson", "Kim Lee"],
]

SENTENCES = [
    "Aspirin lowers cardiovascular mortality",
    "The effect persists in older adults",
    "Bleeding risk rises with dose",
    "Adherence remains the main barrier",
    "Guidelines differ between regions",
    "Further trials are under way",
]


def reference_payload(number, ref_id=None, **overrides):
    """Reference record in payload (camelCase) form."""
    i = (number - 1) % len(AUTHORS)
    data = {
        "id": ref_id or f"ref-{number}",
        "number": number,
        "authors": AUTHORS[i],
        "year": str(2015 + number),
        "title": f"Outcomes of therapy in cohort {chr(64 + number)}",
        "source": "Journal of Clinical Studies",
        "volume": str(10 + number),
        "issue": "2",
        "pages": f"{100 + number}-{110 + number}",
        "doi": f"10.1000/jcs.{number}",
    }
    data.update(overrides)
    return data


def build_payload(markers, references, style="vancouver", document_id="doc-1", filename="paper.docx"):
    """Document payload whose text holds one sentence per citation marker."""
    text = ""
    citations = []
    for i, marker in enumerate(markers, start=1):
        if isinstance(marker, tuple):
            marker, extra = marker
        else:
            extra = {}
        text += SENTENCES[(i - 1) % len(SENTENCES)] + " "
        start = len(text)
        text += marker
        citation = {
            "id": f"c{i}",
            "rawText": marker,
            "startOffset": start,
            "endOffset": len(text),
            "paragraphIndex": 0,
        }
        citation.update(extra)
        citations.append(citation)
        text += ". "
    return {
        "documentId": document_id,
        "detectedStyle": style,
        "citations": citations,
        "references": references,
        "text": text.strip(),
        "filename": filename,
    }


def make_state(markers, numbers=(1, 2, 3), style=CitationStyle.VANCOUVER, links=None):
    """DocumentState built directly from markers, without a session."""
    references = [
        Reference(
            id=f"ref-{n}",
            number=n,
            authors=list(AUTHORS[(n - 1) % len(AUTHORS)]),
            year=str(2015 + n),
            title=f"Outcomes of therapy in cohort {chr(64 + n)}",
            source="Journal of Clinical Studies",
            doi=f"10.1000/jcs.{n}",
        )
        for n in numbers
    ]
    citations = []
    offset = 0
    for i, marker in enumerate(markers, start=1):
        citations.append(
            Citation(
                id=f"c{i}",
                raw_text=marker,
                start_offset=offset,
                end_offset=offset + len(marker),
                linked_reference_numbers=list((links or {}).get(f"c{i}", [])),
            )
        )
        offset += len(marker) + 10
    return DocumentState(
        style=style,
        citations=CitationStore(citations),
        references=ReferenceStore(references),
    )


@pytest.fixture
def settings():
    """Default settings, independent of the environment."""
    return Settings(_env_file=None)
