"""Style conversion of reference entries and in-text citation markers."""

from __future__ import annotations

from dataclasses import dataclass, field

from citesync.config import Settings, get_settings
from citesync.engine.cancellation import CancellationToken, checkpoint
from citesync.engine.linker import LinkResolution, LinkResolver
from citesync.engine.resequencer import Resequencer
from citesync.exceptions import StyleFormattingError
from citesync.logging import get_logger, log_warning
from citesync.models.citation import BIBLIOGRAPHIC_FIELDS, Citation, CitationType, Reference
from citesync.models.stores import DocumentState
from citesync.references.formatter import CitationFormatter
from citesync.references.styles import CitationStyle, is_numeric_style

logger = get_logger("converter")


@dataclass
class ConversionResult:
    """What a style conversion did.

    Attributes:
        source: Style before conversion
        target: Style after conversion
        rewritten_citations: Ids of citations whose marker text changed
        restored_citations: Ids of citations given back their original text
        flagged_references: Ids of references rendered best-effort
        skipped_citations: Ids of orphaned or unlinked citations kept verbatim
        mapping: Renumbering applied afterwards (empty when none ran)
    """

    source: CitationStyle
    target: CitationStyle
    rewritten_citations: list[str] = field(default_factory=list)
    restored_citations: list[str] = field(default_factory=list)
    flagged_references: list[str] = field(default_factory=list)
    skipped_citations: list[str] = field(default_factory=list)
    mapping: dict[int, int] = field(default_factory=dict)

    @property
    def resequenced(self) -> bool:
        return any(old != new for old, new in self.mapping.items())


def bibliographic_fields(ref: Reference) -> tuple:
    return tuple(
        tuple(value) if isinstance(value, list) else value
        for value in (getattr(ref, name) for name in BIBLIOGRAPHIC_FIELDS)
    )


class StyleConverter:
    """Converts a document from one citation style to another.

    Reference entries are rendered once per style and cached on the
    reference, so converting away and back reproduces the entries exactly.
    Bibliographic fields are never modified.
    """

    def __init__(
        self,
        resolver: LinkResolver | None = None,
        resequencer: Resequencer | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.resolver = resolver or LinkResolver(self.settings)
        self.resequencer = resequencer or Resequencer(self.resolver, self.settings)

    def render_reference(self, ref: Reference, style: CitationStyle) -> tuple[str, bool]:
        """Return the entry for a style, rendering it if not cached.

        Returns:
            Tuple of (entry text, whether it was flagged for review)
        """
        formatter = CitationFormatter(style)
        missing = formatter.missing_fields(ref)
        cached = ref.formatted_text(style.value)
        if cached is not None:
            if missing:
                ref.flag_for_review(f"{formatter.config.name} requires {', '.join(missing)}")
            return cached, bool(missing)

        try:
            text = formatter.format_reference(ref, strict=True)
            flagged = False
        except StyleFormattingError as e:
            text = e.partial_text
            flagged = True
            ref.flag_for_review(e.message)
            log_warning(
                logger,
                "render_reference",
                e.message,
                context={"reference_id": ref.id, "style": style.value},
            )
        ref.formatted[style.value] = text
        return text, flagged

    def convert(
        self,
        state: DocumentState,
        target: CitationStyle,
        original: DocumentState | None = None,
        token: CancellationToken | None = None,
    ) -> ConversionResult:
        """Convert references and citations to a target style, in place.

        Args:
            state: Working copy to convert
            target: Style to convert to
            original: Snapshot taken at load; markers whose links and
                reference data are unchanged get their original text back
            token: Optional cancellation token

        Returns:
            ConversionResult describing the conversion
        """
        source = state.style
        result = ConversionResult(source=source, target=target)
        if source == target:
            logger.debug(f"Document already in {target.value}")
            return result

        resolution = self.resolver.resolve(state)
        resolution.apply(state)

        for ref in state.references:
            checkpoint(token)
            _, flagged = self.render_reference(ref, target)
            if flagged:
                result.flagged_references.append(ref.id)

        restorable = self._restorable_texts(state, target, original, resolution)
        formatter = CitationFormatter(target)
        index = state.references.number_index()
        target_numeric = is_numeric_style(target)

        for citation in state.citations:
            checkpoint(token)
            link = resolution[citation.id]
            if link.is_orphaned or not link.linked_numbers:
                result.skipped_citations.append(citation.id)
                if link.is_orphaned:
                    citation.flag_for_review(
                        f"Cites deleted reference(s) {link.orphaned_numbers}; text left as written"
                    )
                continue

            citation_type = _target_type(citation, target_numeric)
            if citation.id in restorable:
                new_text = restorable[citation.id]
                result.restored_citations.append(citation.id)
            else:
                refs = [index[n] for n in link.linked_numbers]
                new_text = formatter.format_marker(link.linked_numbers, refs, citation_type)

            citation.citation_type = citation_type
            if new_text != citation.raw_text:
                citation.raw_text = new_text
                result.rewritten_citations.append(citation.id)

        state.style = target

        if is_numeric_style(source) != target_numeric or (
            target_numeric and not state.references.is_dense()
        ):
            result.mapping = self.resequencer.resequence(state, token)
        else:
            self.resolver.resolve(state).apply(state)

        logger.info(
            f"Converted {source.value} -> {target.value}: "
            f"{len(result.rewritten_citations)} citations rewritten, "
            f"{len(result.flagged_references)} references need review"
        )
        return result

    def _restorable_texts(
        self,
        state: DocumentState,
        target: CitationStyle,
        original: DocumentState | None,
        resolution: LinkResolution,
    ) -> dict[str, str]:
        """Original marker text for citations whose cited references are untouched."""
        if original is None or original.style != target:
            return {}

        original_resolution = self.resolver.resolve(original)
        original_refs = {ref.id: ref for ref in original.references}
        restorable: dict[str, str] = {}

        for citation in state.citations:
            before = original.citations.get(citation.id)
            if before is None:
                continue
            link = resolution[citation.id]
            before_link = original_resolution[citation.id]
            if before_link.is_orphaned or link.reference_ids != before_link.reference_ids:
                continue
            unchanged = all(
                ref_id in original_refs
                and state.references.get(ref_id).number == original_refs[ref_id].number
                and bibliographic_fields(state.references.get(ref_id))
                == bibliographic_fields(original_refs[ref_id])
                for ref_id in link.reference_ids
            )
            if unchanged:
                restorable[citation.id] = before.raw_text
        return restorable


def _target_type(citation: Citation, target_numeric: bool) -> CitationType:
    if citation.citation_type in (CitationType.NARRATIVE, CitationType.FOOTNOTE, CitationType.ENDNOTE):
        return citation.citation_type
    return CitationType.NUMERIC if target_numeric else CitationType.PARENTHETICAL
