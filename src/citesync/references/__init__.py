"""Citation styles, marker grammar and formatting.

Example usage:
    from citesync.references import CitationFormatter, CitationStyle

    formatter = CitationFormatter(CitationStyle.VANCOUVER)
    entry = formatter.format_reference(reference, strict=False)
    marker = formatter.format_marker([1, 2, 3], [ref1, ref2, ref3])  # "(1–3)"
"""

from citesync.references.styles import (
    CitationStyle,
    MarkerKind,
    StyleConfig,
    get_style_config,
    is_numeric_style,
    parse_style,
)
from citesync.references.markers import (
    MarkerToken,
    ParsedMarker,
    compress_numbers,
    integer_tokens,
    looks_numeric,
    parse_marker,
    render_marker,
    rewrite_marker,
)
from citesync.references.formatter import CitationFormatter, split_name

__all__ = [
    # Styles
    "CitationStyle",
    "MarkerKind",
    "StyleConfig",
    "get_style_config",
    "is_numeric_style",
    "parse_style",
    # Markers
    "MarkerToken",
    "ParsedMarker",
    "compress_numbers",
    "integer_tokens",
    "looks_numeric",
    "parse_marker",
    "render_marker",
    "rewrite_marker",
    # Formatter
    "CitationFormatter",
    "split_name",
]
