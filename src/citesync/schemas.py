"""Pydantic schemas for document payloads exchanged with callers.

Payloads use camelCase keys (``rawText``, ``linkedReferenceNumbers``); the
models accept snake_case too. Records that fail validation are quarantined
with their reasons instead of aborting the load.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from citesync.config import Settings, get_settings
from citesync.exceptions import DocumentLoadError, UnknownStyleError
from citesync.logging import get_logger, log_warning
from citesync.models.citation import Citation, CitationType, Reference, SourceType
from citesync.models.stores import CitationStore, DocumentState, ReferenceStore
from citesync.references.styles import CitationStyle, parse_style

logger = get_logger("schemas")


class PayloadModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class CitationPayload(PayloadModel):
    """One in-text citation as supplied by the extractor."""

    id: str = Field(min_length=1)
    raw_text: str = Field(min_length=1)
    start_offset: int = Field(ge=0)
    end_offset: int = Field(ge=0)
    paragraph_index: Optional[int] = None
    citation_type: CitationType = CitationType.UNKNOWN
    linked_reference_numbers: list[int] = []
    orphaned_numbers: list[int] = []
    is_orphaned: bool = False  # Recomputed on load
    needs_review: bool = False
    review_reasons: list[str] = []

    @field_validator("citation_type", mode="before")
    @classmethod
    def normalize_type(cls, value: Any) -> Any:
        if value is None:
            return CitationType.UNKNOWN
        if isinstance(value, str):
            value = value.strip().upper()
            if value not in CitationType.__members__:
                return CitationType.UNKNOWN
        return value

    @model_validator(mode="after")
    def check_offsets(self) -> CitationPayload:
        if self.end_offset < self.start_offset:
            raise ValueError("endOffset precedes startOffset")
        return self

    def to_model(self) -> Citation:
        return Citation(
            id=self.id,
            raw_text=self.raw_text,
            start_offset=self.start_offset,
            end_offset=self.end_offset,
            paragraph_index=self.paragraph_index,
            citation_type=self.citation_type,
            linked_reference_numbers=list(self.linked_reference_numbers),
            orphaned_numbers=list(self.orphaned_numbers),
            needs_review=self.needs_review,
            review_reasons=list(self.review_reasons),
        )

    @classmethod
    def from_model(cls, citation: Citation) -> CitationPayload:
        return cls(
            id=citation.id,
            raw_text=citation.raw_text,
            start_offset=citation.start_offset,
            end_offset=citation.end_offset,
            paragraph_index=citation.paragraph_index,
            citation_type=citation.citation_type,
            linked_reference_numbers=citation.linked_reference_numbers,
            orphaned_numbers=citation.orphaned_numbers,
            is_orphaned=citation.is_orphaned,
            needs_review=citation.needs_review,
            review_reasons=citation.review_reasons,
        )


class ReferencePayload(PayloadModel):
    """One reference-list entry."""

    id: str = Field(min_length=1)
    number: int = Field(ge=1)
    authors: list[str] = []
    year: Optional[str] = None
    title: str = ""
    source: Optional[str] = None
    doi: Optional[str] = None
    url: Optional[str] = None
    volume: Optional[str] = None
    issue: Optional[str] = None
    pages: Optional[str] = None
    publisher: Optional[str] = None
    source_type: SourceType = SourceType.JOURNAL_ARTICLE
    formatted: dict[str, str] = {}
    formatted_text: Optional[str] = None  # Entry as written, in the detected style
    needs_review: bool = False
    review_reasons: list[str] = []

    @field_validator("authors", mode="before")
    @classmethod
    def split_authors(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [a.strip() for a in value.split(";") if a.strip()]
        return value

    @field_validator("year", "volume", "issue", "pages", mode="before")
    @classmethod
    def stringify(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("source_type", mode="before")
    @classmethod
    def normalize_source_type(cls, value: Any) -> Any:
        if value is None:
            return SourceType.UNKNOWN
        if isinstance(value, str):
            value = value.strip().upper()
            if value not in SourceType.__members__:
                return SourceType.UNKNOWN
        return value

    def to_model(self, style: CitationStyle) -> Reference:
        formatted = dict(self.formatted)
        if self.formatted_text and style.value not in formatted:
            formatted[style.value] = self.formatted_text
        return Reference(
            id=self.id,
            number=self.number,
            authors=list(self.authors),
            year=self.year,
            title=self.title,
            source=self.source,
            doi=self.doi,
            url=self.url,
            volume=self.volume,
            issue=self.issue,
            pages=self.pages,
            publisher=self.publisher,
            source_type=self.source_type,
            formatted=formatted,
            needs_review=self.needs_review,
            review_reasons=list(self.review_reasons),
        )

    @classmethod
    def from_model(cls, ref: Reference, style: CitationStyle) -> ReferencePayload:
        return cls(
            id=ref.id,
            number=ref.number,
            authors=ref.authors,
            year=ref.year,
            title=ref.title,
            source=ref.source,
            doi=ref.doi,
            url=ref.url,
            volume=ref.volume,
            issue=ref.issue,
            pages=ref.pages,
            publisher=ref.publisher,
            source_type=ref.source_type,
            formatted=ref.formatted,
            formatted_text=ref.formatted_text(style.value),
            needs_review=ref.needs_review,
            review_reasons=ref.review_reasons,
        )


class DocumentPayload(PayloadModel):
    """Document envelope; records are validated one by one."""

    document_id: str = Field(min_length=1)
    citations: list[Any] = []
    references: list[Any] = []
    detected_style: Optional[str] = None
    text: Optional[str] = None
    filename: Optional[str] = None


class QuarantinedRecord(PayloadModel):
    """A record that was rejected at load, kept for display."""

    kind: str  # "citation" or "reference"
    record_id: Optional[str] = None
    reasons: list[str] = []
    raw: dict[str, Any] = {}


@dataclass
class LoadedDocument:
    """Validated document, ready to open a session on."""

    document_id: str
    state: DocumentState
    text: str | None = None
    filename: str | None = None
    quarantined: list[QuarantinedRecord] = field(default_factory=list)


def _reasons(error: PydanticValidationError) -> list[str]:
    return [
        f"{'.'.join(str(part) for part in err['loc']) or 'record'}: {err['msg']}"
        for err in error.errors()
    ]


def _quarantine(
    quarantined: list[QuarantinedRecord], kind: str, raw: Any, reasons: list[str]
) -> None:
    raw = raw if isinstance(raw, dict) else {"value": raw}
    record_id = raw.get("id")
    record = QuarantinedRecord(
        kind=kind,
        record_id=str(record_id) if record_id is not None else None,
        reasons=reasons,
        raw=raw,
    )
    quarantined.append(record)
    log_warning(logger, "load_document", f"Quarantined {kind}", context={"id": record.record_id, "reasons": reasons})


def load_document(data: dict | str | bytes, settings: Settings | None = None) -> LoadedDocument:
    """Validate a document payload.

    Args:
        data: Payload as a dict or JSON text
        settings: Engine settings (default style)

    Returns:
        LoadedDocument with the valid records and the quarantined ones

    Raises:
        DocumentLoadError: If the envelope itself is unusable
    """
    settings = settings or get_settings()
    try:
        if isinstance(data, (str, bytes)):
            payload = DocumentPayload.model_validate_json(data)
        else:
            payload = DocumentPayload.model_validate(data)
    except PydanticValidationError as e:
        raise DocumentLoadError(f"Invalid document payload: {'; '.join(_reasons(e))}") from e

    try:
        style = parse_style(payload.detected_style or settings.default_style)
    except UnknownStyleError:
        log_warning(
            logger,
            "load_document",
            f"Unsupported detected style '{payload.detected_style}', using {settings.default_style}",
        )
        style = parse_style(settings.default_style)

    quarantined: list[QuarantinedRecord] = []

    references: list[Reference] = []
    reference_ids: set[str] = set()
    for raw in payload.references:
        try:
            ref = ReferencePayload.model_validate(raw).to_model(style)
        except PydanticValidationError as e:
            _quarantine(quarantined, "reference", raw, _reasons(e))
            continue
        if ref.id in reference_ids:
            _quarantine(quarantined, "reference", raw, [f"duplicate reference id '{ref.id}'"])
            continue
        reference_ids.add(ref.id)
        references.append(ref)

    citations: list[Citation] = []
    citation_ids: set[str] = set()
    text = payload.text
    for raw in payload.citations:
        try:
            citation = CitationPayload.model_validate(raw).to_model()
        except PydanticValidationError as e:
            _quarantine(quarantined, "citation", raw, _reasons(e))
            continue
        if citation.id in citation_ids:
            _quarantine(quarantined, "citation", raw, [f"duplicate citation id '{citation.id}'"])
            continue
        if text is not None and text[citation.start_offset : citation.end_offset] != citation.raw_text:
            _quarantine(quarantined, "citation", raw, ["offsets do not match the document text"])
            continue
        citation_ids.add(citation.id)
        citations.append(citation)

    state = DocumentState(
        style=style,
        citations=CitationStore(citations),
        references=ReferenceStore(references),
    )
    logger.info(
        f"Loaded document {payload.document_id}: {len(citations)} citations, "
        f"{len(references)} references, {len(quarantined)} quarantined"
    )
    return LoadedDocument(
        document_id=payload.document_id,
        state=state,
        text=text,
        filename=payload.filename,
        quarantined=quarantined,
    )


def dump_document(
    state: DocumentState,
    document_id: str,
    text: str | None = None,
    filename: str | None = None,
) -> dict[str, Any]:
    """Serialize a document state back to the payload shape (camelCase keys)."""
    payload = DocumentPayload(
        document_id=document_id,
        citations=[
            CitationPayload.from_model(c).model_dump(mode="json", by_alias=True) for c in state.citations
        ],
        references=[
            ReferencePayload.from_model(r, state.style).model_dump(mode="json", by_alias=True)
            for r in state.references
        ],
        detected_style=state.style.value,
        text=text,
        filename=filename,
    )
    return payload.model_dump(mode="json", by_alias=True)


def dumps_document(state: DocumentState, document_id: str, **kwargs: Any) -> str:
    return json.dumps(dump_document(state, document_id, **kwargs), indent=2, ensure_ascii=False)
