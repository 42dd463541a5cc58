"""Citation formatter for reference entries and in-text markers.

Supports APA 7, MLA 9, Chicago author-date, Vancouver, IEEE, Harvard and AMA.
Italics are written as markdown (*Journal*) and turned into real formatting
by the exporter.
"""

import re

from citesync.exceptions import StyleFormattingError
from citesync.models.citation import CitationType, Reference
from citesync.references.markers import render_marker
from citesync.references.styles import CitationStyle, MarkerKind, get_style_config

SMALL_WORDS = {
    "a", "an", "and", "as", "at", "but", "by", "for", "in", "nor",
    "of", "on", "or", "the", "to", "up", "via", "vs",
}


def split_name(name: str) -> tuple[list[str], str]:
    """Split an author name into (given names, family name).

    Accepts "Given Middle Family" and "Family, Given Middle".
    """
    name = (name or "").strip()
    if not name:
        return [], ""
    if "," in name:
        family, given = name.split(",", 1)
        return given.split(), family.strip()
    parts = name.split()
    return parts[:-1], parts[-1]


def _initials(given: list[str], separator: str = ". ", trailing: str = ".") -> str:
    letters = [g[0].upper() for g in given if g]
    if not letters:
        return ""
    return separator.join(letters) + trailing


class CitationFormatter:
    """Formats references and in-text markers in one citation style.

    Default style is APA 7th Edition.
    """

    def __init__(self, style: CitationStyle = CitationStyle.APA):
        """Initialize the citation formatter.

        Args:
            style: Citation style to use (default: APA 7)
        """
        self.style = style
        self.config = get_style_config(style)

    # ------------------------------------------------------------------
    # Reference entries
    # ------------------------------------------------------------------

    def missing_fields(self, ref: Reference) -> list[str]:
        """Fields this style requires that the reference lacks."""
        missing = []
        for name in self.config.required_fields:
            value = getattr(ref, name, None)
            if not value or (isinstance(value, str) and not value.strip()):
                missing.append(name)
        return missing

    def format_reference(self, ref: Reference, strict: bool = True) -> str:
        """Format a reference entry (without its list number).

        Args:
            ref: Reference to format
            strict: Raise when required fields are missing

        Returns:
            Formatted entry

        Raises:
            StyleFormattingError: If strict and required fields are missing;
                the best-effort text is attached as ``partial_text``
        """
        renderer = getattr(self, f"_format_{self.style.value}")
        text = re.sub(r"\s+", " ", renderer(ref)).strip()

        missing = self.missing_fields(ref)
        if strict and missing:
            raise StyleFormattingError(
                f"{self.config.name} requires {', '.join(missing)}",
                missing_fields=missing,
                partial_text=text,
            )
        return text

    def list_label(self, number: int) -> str:
        """Label printed before an entry in the reference list ("" if unnumbered)."""
        if not self.config.list_label:
            return ""
        return self.config.list_label.format(n=number)

    def _format_apa(self, ref: Reference) -> str:
        """Author, A. A., & Author, B. B. (Year). Title. *Journal*, V(I), pages. https://doi.org/x"""
        parts = []

        authors_str = self._format_authors_apa(ref.authors)
        if authors_str:
            parts.append(authors_str)

        parts.append(f"({ref.year})." if ref.year else "(n.d.).")

        if ref.title:
            parts.append(self._end(self._apply_case(ref.title)))

        if ref.source:
            venue = f"*{ref.source}*"
            if ref.volume:
                venue += f", {ref.volume}"
                if ref.issue:
                    venue += f"({ref.issue})"
            if ref.pages:
                venue += f", {ref.pages}"
            parts.append(f"{venue}.")

        parts.append(self._locator(ref))
        return " ".join(p for p in parts if p)

    def _format_mla(self, ref: Reference) -> str:
        """Last, First, and First Last. "Title." *Journal*, vol. V, no. I, Year, pp. P."""
        parts = []

        authors_str = self._format_authors_mla(ref.authors)
        if authors_str:
            parts.append(self._end(authors_str))

        if ref.title:
            parts.append(f'"{self._end(self._apply_case(ref.title))}"')

        container = []
        if ref.source:
            container.append(f"*{ref.source}*")
        if ref.volume:
            container.append(f"vol. {ref.volume}")
        if ref.issue:
            container.append(f"no. {ref.issue}")
        if ref.year:
            container.append(ref.year)
        if ref.pages:
            container.append(f"pp. {ref.pages}")
        if container:
            parts.append(", ".join(container) + ".")

        parts.append(self._locator(ref))
        return " ".join(p for p in parts if p)

    def _format_chicago(self, ref: Reference) -> str:
        """Last, First, and First Last. Year. "Title." *Journal* V (I): P. https://doi.org/x."""
        parts = []

        authors_str = self._format_authors_chicago(ref.authors)
        if authors_str:
            parts.append(self._end(authors_str))

        parts.append(f"{ref.year}." if ref.year else "n.d.")

        if ref.title:
            parts.append(f'"{self._end(self._apply_case(ref.title))}"')

        if ref.source:
            venue = f"*{ref.source}*"
            if ref.volume:
                venue += f" {ref.volume}"
                if ref.issue:
                    venue += f" ({ref.issue})"
            if ref.pages:
                venue += f": {ref.pages}"
            parts.append(f"{venue}.")

        locator = self._locator(ref)
        if locator:
            parts.append(self._end(locator))
        return " ".join(p for p in parts if p)

    def _format_vancouver(self, ref: Reference) -> str:
        """Author AA, Author BB. Title. Journal. Year;V(I):P. doi:x"""
        parts = []

        authors_str = self._format_authors_compact(ref.authors)
        if authors_str:
            parts.append(f"{authors_str}.")

        if ref.title:
            parts.append(self._end(self._apply_case(ref.title)))

        if ref.source:
            parts.append(f"{ref.source}.")

        parts.append(self._compact_details(ref))
        parts.append(self._locator(ref))
        return " ".join(p for p in parts if p)

    def _format_ieee(self, ref: Reference) -> str:
        """A. Author and B. Author, "Title," *Journal*, vol. V, no. I, pp. P, Year, doi: x."""
        head = []
        authors_str = self._format_authors_ieee(ref.authors)
        if authors_str:
            head.append(f"{authors_str},")
        if ref.title:
            head.append(f'"{self._apply_case(ref.title)},"')

        tail = []
        if ref.source:
            tail.append(f"*{ref.source}*")
        if ref.volume:
            tail.append(f"vol. {ref.volume}")
        if ref.issue:
            tail.append(f"no. {ref.issue}")
        if ref.pages:
            tail.append(f"pp. {ref.pages}")
        if ref.year:
            tail.append(ref.year)
        locator = self._locator(ref)
        if locator:
            tail.append(locator)

        text = " ".join(head + [", ".join(tail)] if tail else head)
        return self._end(text.rstrip(",")) if text else ""

    def _format_harvard(self, ref: Reference) -> str:
        """Author, A.A. and Author, B.B. (Year) 'Title', *Journal*, V(I), pp. P. doi:x."""
        parts = []

        authors_str = self._format_authors_harvard(ref.authors)
        if authors_str:
            parts.append(authors_str)

        parts.append(f"({ref.year})" if ref.year else "(n.d.)")

        if ref.title:
            parts.append(f"'{self._apply_case(ref.title)}',")

        if ref.source:
            venue = f"*{ref.source}*"
            if ref.volume:
                venue += f", {ref.volume}"
                if ref.issue:
                    venue += f"({ref.issue})"
            if ref.pages:
                venue += f", pp. {ref.pages}"
            parts.append(f"{venue}.")

        locator = self._locator(ref)
        if locator:
            parts.append(self._end(locator))
        return " ".join(p for p in parts if p)

    def _format_ama(self, ref: Reference) -> str:
        """Author AA, Author BB. Title. *Journal*. Year;V(I):P. doi:x"""
        parts = []

        authors_str = self._format_authors_compact(ref.authors)
        if authors_str:
            parts.append(f"{authors_str}.")

        if ref.title:
            parts.append(self._end(self._apply_case(ref.title)))

        if ref.source:
            parts.append(f"*{ref.source}*.")

        parts.append(self._compact_details(ref))
        parts.append(self._locator(ref))
        return " ".join(p for p in parts if p)

    # ------------------------------------------------------------------
    # In-text markers
    # ------------------------------------------------------------------

    def format_marker(
        self,
        numbers: list[int],
        references: list[Reference],
        citation_type: CitationType = CitationType.PARENTHETICAL,
    ) -> str:
        """Render an in-text marker for the cited references.

        Args:
            numbers: Cited reference numbers, in citing order
            references: The cited references, same order as numbers
            citation_type: Narrative citations put the year outside the brackets

        Returns:
            Marker text, e.g. "[1, 3]", "(Smith & Doe, 2023)"
        """
        config = self.config
        if config.marker_kind == MarkerKind.NUMERIC:
            marker = render_marker(
                numbers,
                open_bracket=config.open_bracket,
                close_bracket=config.close_bracket,
                dash=config.range_dash,
                separator=config.list_separator,
            )
            if citation_type == CitationType.NARRATIVE and len(references) == 1:
                # "Smith et al. [4]"
                author_part = self._in_text_authors(references[0].authors, use_ampersand=False)
                return f"{author_part} {marker}"
            return marker

        if citation_type == CitationType.NARRATIVE and len(references) == 1:
            return self.format_narrative(references[0])

        works = [self.format_in_text(ref) for ref in references]
        return f"{config.open_bracket}{config.list_separator.join(works)}{config.close_bracket}"

    def format_in_text(self, ref: Reference, include_year: bool = True) -> str:
        """Format the author(-year) part of a parenthetical citation.

        Returns:
            In-text citation string (e.g., "Smith et al., 2023")
        """
        author_part = self._in_text_authors(ref.authors, self.config.use_ampersand)
        if self.config.marker_kind == MarkerKind.AUTHOR_PAGE or not include_year:
            return author_part
        return f"{author_part}{self.config.year_separator}{ref.year or 'n.d.'}"

    def format_narrative(self, ref: Reference) -> str:
        """Format a narrative citation, e.g. "Smith and Doe (2023)"."""
        author_part = self._in_text_authors(ref.authors, use_ampersand=False)
        if self.config.marker_kind == MarkerKind.AUTHOR_PAGE:
            return author_part
        return f"{author_part} ({ref.year or 'n.d.'})"

    def _in_text_authors(self, authors: list[str], use_ampersand: bool) -> str:
        families = [split_name(a)[1] for a in authors if a and a.strip()]
        if not families:
            return "Unknown"
        if len(families) == 1:
            return families[0]
        if len(families) >= self.config.in_text_et_al:
            return f"{families[0]} et al."
        joiner = " & " if use_ampersand else " and "
        if len(families) == 2:
            return f"{families[0]}{joiner}{families[1]}"
        return ", ".join(families[:-1]) + f",{joiner}{families[-1]}"

    # ------------------------------------------------------------------
    # Author lists
    # ------------------------------------------------------------------

    def _format_authors_apa(self, authors: list[str]) -> str:
        """Format authors list for APA style.

        Rules:
        - 1 author: Last, F. M.
        - 2 authors: Last, F. M., & Last, F. M.
        - up to 20 authors: all listed with & before last
        - 21+ authors: first 19, ..., last author
        """
        names = [self._name_family_initials(a) for a in authors if a and a.strip()]
        if not names:
            return ""
        if len(names) == 1:
            return names[0]
        if len(names) < self.config.et_al_threshold:
            return ", ".join(names[:-1]) + f", & {names[-1]}"
        return ", ".join(names[: self.config.et_al_first]) + f", ... {names[-1]}"

    def _format_authors_mla(self, authors: list[str]) -> str:
        """Last, First / Last, First, and First Last / Last, First, et al."""
        names = [a for a in authors if a and a.strip()]
        if not names:
            return ""
        first = self._name_family_given(names[0])
        if len(names) == 1:
            return first
        if len(names) == 2:
            return f"{first}, and {self._name_given_family(names[1])}"
        return f"{first}, et al"

    def _format_authors_chicago(self, authors: list[str]) -> str:
        """Last, First, First Last, and First Last (first 7 of 11+ then et al.)."""
        names = [a for a in authors if a and a.strip()]
        if not names:
            return ""
        first = self._name_family_given(names[0])
        if len(names) == 1:
            return first
        if len(names) >= self.config.et_al_threshold:
            shown = [first] + [self._name_given_family(a) for a in names[1 : self.config.et_al_first]]
            return ", ".join(shown) + ", et al"
        rest = [self._name_given_family(a) for a in names[1:]]
        if len(names) == 2:
            return f"{first}, and {rest[0]}"
        return f"{first}, " + ", ".join(rest[:-1]) + f", and {rest[-1]}"

    def _format_authors_harvard(self, authors: list[str]) -> str:
        """Last, F.M., Last, F.M. and Last, F.M. (4+ authors: first et al.)."""
        names = [self._name_family_initials(a, separator=".") for a in authors if a and a.strip()]
        if not names:
            return ""
        if len(names) == 1:
            return names[0]
        if len(names) >= self.config.et_al_threshold:
            return f"{names[0]} et al."
        return ", ".join(names[:-1]) + f" and {names[-1]}"

    def _format_authors_compact(self, authors: list[str]) -> str:
        """Last AB, Last CD (Vancouver/AMA truncation rules)."""
        names = [self._name_compact(a) for a in authors if a and a.strip()]
        if not names:
            return ""
        if len(names) < self.config.et_al_threshold:
            return ", ".join(names)
        return ", ".join(names[: self.config.et_al_first]) + ", et al"

    def _format_authors_ieee(self, authors: list[str]) -> str:
        """A. B. Last, C. Last, and D. Last (7+ authors: first et al.)."""
        names = [self._name_initials_family(a) for a in authors if a and a.strip()]
        if not names:
            return ""
        if len(names) >= self.config.et_al_threshold:
            return f"{names[0]} et al."
        if len(names) == 1:
            return names[0]
        if len(names) == 2:
            return f"{names[0]} and {names[1]}"
        return ", ".join(names[:-1]) + f", and {names[-1]}"

    # ------------------------------------------------------------------
    # Single names
    # ------------------------------------------------------------------

    @staticmethod
    def _name_family_initials(name: str, separator: str = ". ") -> str:
        """'Last, F. M.' (APA) or 'Last, F.M.' (Harvard)."""
        given, family = split_name(name)
        initials = _initials(given, separator=separator)
        return f"{family}, {initials}" if initials else family

    @staticmethod
    def _name_family_given(name: str) -> str:
        """'Last, First Middle'."""
        given, family = split_name(name)
        return f"{family}, {' '.join(given)}" if given else family

    @staticmethod
    def _name_given_family(name: str) -> str:
        """'First Middle Last'."""
        given, family = split_name(name)
        return " ".join(given + [family])

    @staticmethod
    def _name_compact(name: str) -> str:
        """'Last FM'."""
        given, family = split_name(name)
        initials = "".join(g[0].upper() for g in given if g)
        return f"{family} {initials}" if initials else family

    @staticmethod
    def _name_initials_family(name: str) -> str:
        """'F. M. Last'."""
        given, family = split_name(name)
        initials = _initials(given, separator=". ")
        return f"{initials} {family}" if initials else family

    # ------------------------------------------------------------------
    # Pieces
    # ------------------------------------------------------------------

    @staticmethod
    def _compact_details(ref: Reference) -> str:
        """'2023;12(3):45-67.' as used by Vancouver and AMA."""
        if not ref.year:
            return ""
        details = ref.year
        if ref.volume:
            details += f";{ref.volume}"
            if ref.issue:
                details += f"({ref.issue})"
        if ref.pages:
            details += f":{ref.pages}"
        return f"{details}."

    def _locator(self, ref: Reference) -> str:
        if ref.doi and self.config.include_doi:
            doi = re.sub(r"^(https?://(dx\.)?doi\.org/|doi:\s*)", "", ref.doi.strip(), flags=re.I)
            if self.config.doi_format == "url":
                return f"https://doi.org/{doi}"
            if self.style == CitationStyle.IEEE:
                return f"doi: {doi}"
            return f"doi:{doi}"
        return ref.url or ""

    def _apply_case(self, text: str) -> str:
        if self.config.title_case == "sentence":
            return self._to_sentence_case(text)
        if self.config.title_case == "title":
            return self._to_title_case(text)
        return text.strip()

    @staticmethod
    def _end(text: str) -> str:
        """Terminate with a period unless already punctuated."""
        text = text.strip()
        if not text or text[-1] in ".?!":
            return text
        return f"{text}."

    @staticmethod
    def _to_title_case(text: str) -> str:
        """Capitalize major words, keeping acronyms and small words."""
        words = text.strip().split()
        result = []
        for i, word in enumerate(words):
            if word.isupper() and len(word) > 1:
                result.append(word)
            elif i > 0 and word.lower() in SMALL_WORDS and not words[i - 1].endswith(":"):
                result.append(word.lower())
            else:
                result.append(word[:1].upper() + word[1:])
        return " ".join(result)

    @staticmethod
    def _to_sentence_case(text: str) -> str:
        """Convert text to sentence case.

        Only first word and words after colons are capitalized.
        Preserves acronyms and proper nouns where detectable.
        """
        if not text:
            return ""

        result = []
        sentences = re.split(r"([.!?:]\s*)", text.strip())

        for i, part in enumerate(sentences):
            if i % 2 == 0 and part:  # Content parts
                words = part.split()
                new_words = []
                for j, word in enumerate(words):
                    if j == 0:
                        new_words.append(
                            word[0].upper() + word[1:].lower() if len(word) > 1 else word.upper()
                        )
                    elif word.isupper() and len(word) > 1:
                        # Preserve acronyms
                        new_words.append(word)
                    else:
                        new_words.append(word.lower())
                result.append(" ".join(new_words))
            else:
                result.append(part)

        return "".join(result)
