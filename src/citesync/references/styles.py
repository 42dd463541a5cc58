"""Citation style definitions for reference and marker formatting."""

from dataclasses import dataclass
from enum import Enum

from citesync.exceptions import UnknownStyleError


class CitationStyle(str, Enum):
    """Supported citation styles."""

    APA = "apa"
    MLA = "mla"
    CHICAGO = "chicago"
    VANCOUVER = "vancouver"
    IEEE = "ieee"
    HARVARD = "harvard"
    AMA = "ama"


class MarkerKind(str, Enum):
    """How a style marks citations in running text."""

    NUMERIC = "numeric"  # [1], (1), superscript 1
    AUTHOR_DATE = "author_date"  # (Smith, 2020)
    AUTHOR_PAGE = "author_page"  # (Smith)


@dataclass(frozen=True)
class StyleConfig:
    """Template for a citation style.

    Attributes:
        name: Human-readable style name
        style: CitationStyle enum value
        marker_kind: How in-text citations are marked
        open_bracket: Opening delimiter of an in-text marker
        close_bracket: Closing delimiter of an in-text marker
        list_separator: Separator between numbers (numeric) or works (author styles)
        range_dash: Dash used for compressed numeric ranges
        superscript: Numeric markers are set in superscript
        year_separator: Text between author and year in author-date markers
        in_text_et_al: Number of authors from which in-text markers use "et al."
        use_ampersand: Use "&" before the last author
        et_al_threshold: Number of authors before the reference list uses "et al."
        et_al_first: How many authors to show before "et al."
        include_doi: Include DOI in the reference entry
        doi_format: "url" for https://doi.org/..., "doi" for doi:...
        title_case: "sentence", "title" or "as_is"
        list_label: Prefix of numbered reference list entries ("{n}." or "[{n}]")
        required_fields: Fields an entry must have to render without review
    """

    name: str
    style: CitationStyle
    marker_kind: MarkerKind
    open_bracket: str
    close_bracket: str
    list_separator: str
    range_dash: str
    superscript: bool
    year_separator: str
    in_text_et_al: int
    use_ampersand: bool
    et_al_threshold: int
    et_al_first: int
    include_doi: bool
    doi_format: str
    title_case: str
    list_label: str
    required_fields: tuple[str, ...]

    @property
    def is_numeric(self) -> bool:
        return self.marker_kind == MarkerKind.NUMERIC


# Pre-defined style configurations
STYLE_CONFIGS = {
    # Smith, J., & Doe, J. (2023). Title in sentence case. *Journal*, 12(3), 45-67. https://doi.org/...
    # In text: (Smith & Doe, 2023), (Smith et al., 2023)
    CitationStyle.APA: StyleConfig(
        name="APA 7th Edition",
        style=CitationStyle.APA,
        marker_kind=MarkerKind.AUTHOR_DATE,
        open_bracket="(",
        close_bracket=")",
        list_separator="; ",
        range_dash="–",
        superscript=False,
        year_separator=", ",
        in_text_et_al=3,
        use_ampersand=True,
        et_al_threshold=21,
        et_al_first=19,
        include_doi=True,
        doi_format="url",
        title_case="sentence",
        list_label="",
        required_fields=("authors", "year", "title"),
    ),
    # Smith, John, and Jane Doe. "Title in Title Case." *Journal*, vol. 12, no. 3, 2023, pp. 45-67.
    # In text: (Smith and Doe), (Smith et al.)
    CitationStyle.MLA: StyleConfig(
        name="MLA 9th Edition",
        style=CitationStyle.MLA,
        marker_kind=MarkerKind.AUTHOR_PAGE,
        open_bracket="(",
        close_bracket=")",
        list_separator="; ",
        range_dash="-",
        superscript=False,
        year_separator=" ",
        in_text_et_al=3,
        use_ampersand=False,
        et_al_threshold=3,
        et_al_first=1,
        include_doi=True,
        doi_format="url",
        title_case="title",
        list_label="",
        required_fields=("authors", "title", "source"),
    ),
    # Smith, John, and Jane Doe. 2023. "Title." *Journal* 12 (3): 45-67. https://doi.org/...
    # In text: (Smith and Doe 2023)
    CitationStyle.CHICAGO: StyleConfig(
        name="Chicago Author-Date",
        style=CitationStyle.CHICAGO,
        marker_kind=MarkerKind.AUTHOR_DATE,
        open_bracket="(",
        close_bracket=")",
        list_separator="; ",
        range_dash="–",
        superscript=False,
        year_separator=" ",
        in_text_et_al=4,
        use_ampersand=False,
        et_al_threshold=11,
        et_al_first=7,
        include_doi=True,
        doi_format="url",
        title_case="title",
        list_label="",
        required_fields=("authors", "year", "title"),
    ),
    # Smith J, Doe J. Title. Journal. 2023;12(3):45-67. doi:...
    # In text: (1), (1, 3-5)
    CitationStyle.VANCOUVER: StyleConfig(
        name="Vancouver",
        style=CitationStyle.VANCOUVER,
        marker_kind=MarkerKind.NUMERIC,
        open_bracket="(",
        close_bracket=")",
        list_separator=", ",
        range_dash="–",
        superscript=False,
        year_separator="",
        in_text_et_al=0,
        use_ampersand=False,
        et_al_threshold=7,
        et_al_first=6,
        include_doi=True,
        doi_format="doi",
        title_case="as_is",
        list_label="{n}.",
        required_fields=("authors", "title", "source", "year"),
    ),
    # J. Smith and J. Doe, "Title," *Journal*, vol. 12, no. 3, pp. 45-67, 2023, doi: ...
    # In text: [1], [1, 3-5]
    CitationStyle.IEEE: StyleConfig(
        name="IEEE",
        style=CitationStyle.IEEE,
        marker_kind=MarkerKind.NUMERIC,
        open_bracket="[",
        close_bracket="]",
        list_separator=", ",
        range_dash="–",
        superscript=False,
        year_separator="",
        in_text_et_al=0,
        use_ampersand=False,
        et_al_threshold=7,
        et_al_first=1,
        include_doi=True,
        doi_format="doi",
        title_case="as_is",
        list_label="[{n}]",
        required_fields=("authors", "title", "source"),
    ),
    # Smith, J. and Doe, J. (2023) 'Title', *Journal*, 12(3), pp. 45-67. doi:...
    # In text: (Smith and Doe 2023)
    CitationStyle.HARVARD: StyleConfig(
        name="Harvard",
        style=CitationStyle.HARVARD,
        marker_kind=MarkerKind.AUTHOR_DATE,
        open_bracket="(",
        close_bracket=")",
        list_separator="; ",
        range_dash="–",
        superscript=False,
        year_separator=" ",
        in_text_et_al=4,
        use_ampersand=False,
        et_al_threshold=4,
        et_al_first=1,
        include_doi=True,
        doi_format="doi",
        title_case="sentence",
        list_label="",
        required_fields=("authors", "year", "title"),
    ),
    # Smith J, Doe J. Title. *Journal*. 2023;12(3):45-67. doi:...
    # In text: superscript 1,3-5
    CitationStyle.AMA: StyleConfig(
        name="AMA 11th Edition",
        style=CitationStyle.AMA,
        marker_kind=MarkerKind.NUMERIC,
        open_bracket="",
        close_bracket="",
        list_separator=",",
        range_dash="-",
        superscript=True,
        year_separator="",
        in_text_et_al=0,
        use_ampersand=False,
        et_al_threshold=7,
        et_al_first=3,
        include_doi=True,
        doi_format="doi",
        title_case="sentence",
        list_label="{n}.",
        required_fields=("authors", "title", "source", "year", "doi"),
    ),
}

# Codes used by upstream detectors for the same styles
STYLE_ALIASES = {
    "apa7": CitationStyle.APA,
    "apa6": CitationStyle.APA,
    "mla9": CitationStyle.MLA,
    "chicago17": CitationStyle.CHICAGO,
    "chicago-author-date": CitationStyle.CHICAGO,
    "ama11": CitationStyle.AMA,
}


def get_style_config(style: CitationStyle) -> StyleConfig:
    """Get the configuration for a citation style.

    Args:
        style: The citation style

    Returns:
        StyleConfig for the requested style
    """
    return STYLE_CONFIGS[style]


def parse_style(value: "str | CitationStyle") -> CitationStyle:
    """Resolve a style code (case-insensitive, aliases allowed).

    Raises:
        UnknownStyleError: If the code names no supported style
    """
    if isinstance(value, CitationStyle):
        return value
    key = (value or "").strip().lower()
    if key in STYLE_ALIASES:
        return STYLE_ALIASES[key]
    try:
        return CitationStyle(key)
    except ValueError:
        raise UnknownStyleError(value) from None


def is_numeric_style(style: CitationStyle) -> bool:
    return STYLE_CONFIGS[style].is_numeric
