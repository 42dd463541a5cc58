"""Export of the corrected document in accept-all or track-changes mode.

Output is regenerated from the ORIGINAL snapshot (document text and
citation offsets) and the FINAL stores only, so exporting the same session
twice yields the same text.
"""

from __future__ import annotations

import io
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from docx import Document
from docx.enum.text import WD_COLOR_INDEX
from docx.oxml import OxmlElement
from docx.oxml.ns import qn

from citesync.config import Settings, get_settings
from citesync.engine.reconciler import ChangeReconciler
from citesync.logging import get_logger
from citesync.models.changes import ChangeRecord, ChangeType
from citesync.models.citation import Reference
from citesync.models.stores import DocumentState
from citesync.references.formatter import CitationFormatter
from citesync.references.styles import CitationStyle, get_style_config

logger = get_logger("export")

ITALIC_PATTERN = re.compile(r"\*([^*]+)\*")
# Trailing numeric part of a superscript marker ("Smith et al. 1,3-5")
SUPERSCRIPT_PATTERN = re.compile(r"^(?P<lead>.*?)(?P<marker>\d[\d,\-–—\s]*)$", re.S)


class ExportMode(str, Enum):
    ACCEPT_ALL = "accept_all"
    TRACK_CHANGES = "track_changes"


class SegmentKind(str, Enum):
    TEXT = "text"
    CITATION = "citation"


@dataclass
class Segment:
    """A run of document text, either plain prose or one citation marker."""

    text: str
    kind: SegmentKind = SegmentKind.TEXT
    citation_id: str | None = None
    change: ChangeRecord | None = None
    orphaned_numbers: list[int] = field(default_factory=list)


@dataclass
class ReferenceLine:
    """One reference-list entry; old is None for new entries, new is None for deleted ones."""

    number: int
    old: str | None
    new: str | None

    @property
    def changed(self) -> bool:
        return self.old != self.new


@dataclass
class ExportResult:
    filename: str
    content: bytes
    text: str
    mode: ExportMode
    changes: list[ChangeRecord] = field(default_factory=list)


def entry_text(ref: Reference, style: CitationStyle) -> str:
    """Numbered reference-list line, from the render cache when available."""
    formatter = CitationFormatter(style)
    entry = ref.formatted_text(style.value)
    if entry is None:
        entry = formatter.format_reference(ref, strict=False)
    label = formatter.list_label(ref.number)
    return f"{label} {entry}" if label else entry


def export_filename(filename: str | None, mode: ExportMode, settings: Settings | None = None) -> str:
    """'paper.docx' -> 'paper_corrected.docx' or 'paper_tracked_changes.docx'."""
    settings = settings or get_settings()
    stem = Path(filename).stem if filename else "document"
    suffix = settings.accepted_suffix if mode == ExportMode.ACCEPT_ALL else settings.tracked_suffix
    return f"{stem}{suffix}.docx"


def _deleted_note(numbers: list[int]) -> str:
    label = "reference" if len(numbers) == 1 else "references"
    return f"Cites deleted {label} " + ", ".join(f"#{n}" for n in numbers)


class ExportMaterializer:
    """Renders a session's FINAL state as text and as a DOCX document."""

    def __init__(self, settings: Settings | None = None, reconciler: ChangeReconciler | None = None):
        self.settings = settings or get_settings()
        self.reconciler = reconciler or ChangeReconciler()

    # ------------------------------------------------------------------
    # Document model
    # ------------------------------------------------------------------

    def segments(
        self,
        original: DocumentState,
        final: DocumentState,
        text: str | None,
        changes: list[ChangeRecord],
    ) -> list[Segment]:
        """Split the document into prose and citation segments carrying FINAL text.

        Without document text, each citation becomes a paragraph of its own.
        """
        by_id = {record.citation_id: record for record in changes}
        segments: list[Segment] = []

        def citation_segment(citation_id: str, fallback: str) -> Segment:
            current = final.citations.get(citation_id)
            return Segment(
                text=current.raw_text if current is not None else fallback,
                kind=SegmentKind.CITATION,
                citation_id=citation_id,
                change=by_id.get(citation_id),
                orphaned_numbers=list(current.orphaned_numbers) if current is not None else [],
            )

        if not text:
            for citation in final.citations:
                segments.append(citation_segment(citation.id, citation.raw_text))
                segments.append(Segment(text="\n"))
            return segments

        position = 0
        for citation in original.citations:
            if citation.start_offset < position:
                logger.debug(f"Skipping overlapping citation {citation.id}")
                continue
            if citation.start_offset > position:
                segments.append(Segment(text=text[position : citation.start_offset]))
            segments.append(citation_segment(citation.id, citation.raw_text))
            position = citation.end_offset
        if position < len(text):
            segments.append(Segment(text=text[position:]))
        return segments

    def reference_lines(
        self, original: DocumentState, final: DocumentState
    ) -> list[ReferenceLine]:
        """Reference list entries, with deleted ones kept at their old position."""
        before = {ref.id: ref for ref in original.references}
        lines: list[tuple[tuple[int, int], ReferenceLine]] = []

        for ref in final.references:
            new = entry_text(ref, final.style)
            old_ref = before.get(ref.id)
            old = entry_text(old_ref, original.style) if old_ref is not None else None
            lines.append(((ref.number, 1), ReferenceLine(number=ref.number, old=old, new=new)))

        for ref in original.references:
            if ref.id not in final.references:
                line = ReferenceLine(number=ref.number, old=entry_text(ref, original.style), new=None)
                lines.append(((ref.number, 0), line))

        return [line for _, line in sorted(lines, key=lambda item: item[0])]

    def corrected_text(
        self, original: DocumentState, final: DocumentState, text: str
    ) -> tuple[str, dict[str, tuple[int, int]]]:
        """Document text with FINAL markers in place, and each citation's new offsets."""
        parts: list[str] = []
        offsets: dict[str, tuple[int, int]] = {}
        position = 0
        for segment in self.segments(original, final, text, []):
            if segment.kind == SegmentKind.CITATION:
                offsets[segment.citation_id] = (position, position + len(segment.text))
            parts.append(segment.text)
            position += len(segment.text)
        return "".join(parts), offsets

    # ------------------------------------------------------------------
    # Plain text
    # ------------------------------------------------------------------

    def render_text(
        self,
        segments: list[Segment],
        lines: list[ReferenceLine],
        mode: ExportMode,
    ) -> str:
        """Render plain text, with CriticMarkup marks in track-changes mode."""
        tracked = mode == ExportMode.TRACK_CHANGES
        parts: list[str] = []

        for segment in segments:
            change = segment.change
            if not tracked or change is None:
                parts.append(segment.text)
            elif change.change_type == ChangeType.DELETED:
                if change.old_text != segment.text:
                    parts.append(f"{{--{change.old_text}--}}{{++{segment.text}++}}")
                else:
                    parts.append(f"{{=={segment.text}==}}")
                parts.append(f"{{>>{_deleted_note(segment.orphaned_numbers)}<<}}")
            else:
                parts.append(f"{{--{change.old_text}--}}{{++{segment.text}++}}")

        body = "".join(parts).rstrip("\n")
        if not lines:
            return body + "\n"

        entries = []
        for line in lines:
            if not tracked or not line.changed:
                if line.new is not None:
                    entries.append(line.new)
            elif line.new is None:
                entries.append(f"{{--{line.old}--}}")
            elif line.old is None:
                entries.append(f"{{++{line.new}++}}")
            else:
                entries.append(f"{{--{line.old}--}}{{++{line.new}++}}")
        return f"{body}\n\n{self.settings.references_heading}\n\n" + "\n".join(entries) + "\n"

    # ------------------------------------------------------------------
    # DOCX
    # ------------------------------------------------------------------

    def render_docx(
        self,
        segments: list[Segment],
        lines: list[ReferenceLine],
        mode: ExportMode,
        style: CitationStyle,
        highlight_changes: bool = False,
        revision_date: datetime | None = None,
    ) -> bytes:
        """Render a DOCX document.

        Track-changes mode writes native w:del/w:ins revisions so a word
        processor can accept or reject each correction.

        Args:
            segments: Document segments from ``segments()``
            lines: Reference list from ``reference_lines()``
            mode: Export mode
            style: Style of the FINAL state (AMA markers are superscript)
            highlight_changes: Highlight corrected citations in accept-all mode
            revision_date: Timestamp stamped on revisions (default: now)

        Returns:
            DOCX file content
        """
        writer = _DocxWriter(
            author=self.settings.track_changes_author,
            date=revision_date or datetime.now(timezone.utc),
            superscript=get_style_config(style).superscript,
        )
        tracked = mode == ExportMode.TRACK_CHANGES
        if tracked:
            writer.enable_track_changes()

        paragraph = writer.doc.add_paragraph()
        for segment in segments:
            pieces = segment.text.split("\n")
            if segment.kind == SegmentKind.TEXT:
                for i, piece in enumerate(pieces):
                    if i > 0:
                        paragraph = writer.doc.add_paragraph()
                    if piece:
                        paragraph.add_run(piece)
                continue

            change = segment.change
            if change is None:
                writer.add_marker(paragraph, segment.text)
            elif not tracked:
                writer.add_marker(paragraph, segment.text, highlight=highlight_changes)
            elif change.change_type == ChangeType.DELETED and change.old_text == segment.text:
                writer.add_marker(paragraph, segment.text, highlight=True, color=WD_COLOR_INDEX.RED)
            else:
                writer.add_deletion(paragraph, change.old_text, marker=True)
                writer.add_insertion(paragraph, segment.text, marker=True)

        if lines:
            writer.doc.add_heading(self.settings.references_heading, level=1)
            for line in lines:
                if not tracked or not line.changed:
                    if line.new is not None:
                        writer.add_formatted(writer.doc.add_paragraph(), line.new)
                    continue
                entry = writer.doc.add_paragraph()
                if line.old is not None:
                    writer.add_deletion(entry, line.old)
                if line.new is not None:
                    writer.add_insertion(entry, line.new)

        buffer = io.BytesIO()
        writer.doc.save(buffer)
        return buffer.getvalue()

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def export(
        self,
        original: DocumentState,
        final: DocumentState,
        text: str | None = None,
        filename: str | None = None,
        mode: ExportMode = ExportMode.ACCEPT_ALL,
        changes: list[ChangeRecord] | None = None,
        highlight_changes: bool = False,
        revision_date: datetime | None = None,
    ) -> ExportResult:
        """Export the FINAL state.

        Args:
            original: Snapshot taken at load
            final: State to export
            text: Original document text the citation offsets point into
            filename: Source filename, used to derive the export filename
            mode: Accept-all or track-changes
            changes: Change records (recomputed from the snapshots when omitted)
            highlight_changes: Highlight corrected citations in accept-all mode
            revision_date: Timestamp stamped on tracked revisions

        Returns:
            ExportResult with DOCX bytes and the equivalent plain text
        """
        if changes is None:
            changes = self.reconciler.reconcile(original, None, final)

        segments = self.segments(original, final, text, changes)
        lines = self.reference_lines(original, final)
        content = self.render_docx(
            segments,
            lines,
            mode,
            final.style,
            highlight_changes=highlight_changes,
            revision_date=revision_date,
        )
        result = ExportResult(
            filename=export_filename(filename, mode, self.settings),
            content=content,
            text=self.render_text(segments, lines, mode),
            mode=mode,
            changes=changes,
        )
        logger.info(f"Exported {result.filename} ({len(changes)} changes, {len(content)} bytes)")
        return result


class _DocxWriter:
    """Low-level run and revision helpers over a python-docx Document."""

    def __init__(self, author: str, date: datetime, superscript: bool):
        self.doc = Document()
        self.author = author
        self.date = date.strftime("%Y-%m-%dT%H:%M:%SZ")
        self.superscript = superscript
        self._revision_id = 0

    def enable_track_changes(self) -> None:
        settings = self.doc.settings.element
        if settings.find(qn("w:trackRevisions")) is None:
            settings.append(OxmlElement("w:trackRevisions"))

    def _revision(self, tag: str):
        self._revision_id += 1
        element = OxmlElement(tag)
        element.set(qn("w:id"), str(self._revision_id))
        element.set(qn("w:author"), self.author)
        element.set(qn("w:date"), self.date)
        return element

    def add_formatted(self, paragraph, text: str) -> list:
        """Add runs, turning *markdown italics* into italic runs."""
        runs = []
        position = 0
        for match in ITALIC_PATTERN.finditer(text):
            if match.start() > position:
                runs.append(paragraph.add_run(text[position : match.start()]))
            run = paragraph.add_run(match.group(1))
            run.italic = True
            runs.append(run)
            position = match.end()
        if position < len(text):
            runs.append(paragraph.add_run(text[position:]))
        return runs

    def add_marker(self, paragraph, text: str, highlight: bool = False, color=WD_COLOR_INDEX.YELLOW) -> list:
        """Add a citation marker, superscripting its numbers where the style does."""
        runs = []
        match = SUPERSCRIPT_PATTERN.match(text) if self.superscript else None
        if match:
            if match.group("lead"):
                runs.append(paragraph.add_run(match.group("lead")))
            run = paragraph.add_run(match.group("marker"))
            run.font.superscript = True
            runs.append(run)
        elif text:
            runs.append(paragraph.add_run(text))
        if highlight:
            for run in runs:
                run.font.highlight_color = color
        return runs

    def _wrap(self, runs: list, tag: str) -> None:
        if not runs:
            return
        wrapper = self._revision(tag)
        runs[0]._r.addprevious(wrapper)
        for run in runs:
            wrapper.append(run._r)
            if tag == "w:del":
                for t in run._r.findall(qn("w:t")):
                    t.tag = qn("w:delText")

    def add_deletion(self, paragraph, text: str, marker: bool = False) -> None:
        runs = self.add_marker(paragraph, text) if marker else self.add_formatted(paragraph, text)
        self._wrap(runs, "w:del")

    def add_insertion(self, paragraph, text: str, marker: bool = False) -> None:
        runs = self.add_marker(paragraph, text) if marker else self.add_formatted(paragraph, text)
        self._wrap(runs, "w:ins")
