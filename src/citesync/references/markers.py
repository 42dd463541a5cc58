"""Numeric citation marker grammar.

Parses markers such as "[1]", "(2, 4)", "[3–5]" or a superscript "1,3-5"
into tokens, and rewrites them number-by-number so that the surrounding
brackets, separators and spacing survive renumbering untouched.
"""

import re
from dataclasses import dataclass, field

from citesync.exceptions import IntegrityError, ValidationError

# A digit run, optionally followed by a dash and a second digit run
TOKEN_PATTERN = re.compile(r"(\d+)(?:(\s*[-–—]\s*)(\d+))?")
INTEGER_PATTERN = re.compile(r"\d+")
SEPARATOR_PATTERN = re.compile(r"\d\s*([,;])(\s*)\d")

# Bare or bracketed integer, once separators and dashes are stripped
NUMERIC_MARKER_PATTERN = re.compile(r"^\s*[(\[]?\d+[)\]]?\s*$")

DEFAULT_MAX_NUMBER = 1000
DEFAULT_MAX_SPAN = 50


@dataclass
class MarkerToken:
    """A number or number range found in a marker.

    Attributes:
        start: Offset of the token in the marker text
        end: End offset (exclusive)
        text: Token text as written
        first: First (or only) number
        last: Last number of a range, None for single numbers
        joiner: Dash with surrounding spacing, as written
        noise: Number outside the citation range (years, page numbers)
        ambiguous: Digits glued to letters or decimals, e.g. "12a"
        error: Why a range was rejected, if it was
    """

    start: int
    end: int
    text: str
    first: int
    last: int | None = None
    joiner: str | None = None
    noise: bool = False
    ambiguous: bool = False
    error: str | None = None

    @property
    def is_range(self) -> bool:
        return self.last is not None

    @property
    def usable(self) -> bool:
        return not (self.noise or self.ambiguous or self.error)

    @property
    def members(self) -> list[int]:
        """Numbers the token cites (empty when unusable)."""
        if not self.usable:
            return []
        if self.last is None:
            return [self.first]
        return list(range(self.first, self.last + 1))


@dataclass
class ParsedMarker:
    """Result of parsing one citation marker."""

    text: str
    tokens: list[MarkerToken] = field(default_factory=list)

    @property
    def numbers(self) -> list[int]:
        """Cited numbers in order of appearance, ranges expanded, no repeats."""
        numbers: list[int] = []
        for token in self.tokens:
            for number in token.members:
                if number not in numbers:
                    numbers.append(number)
        return numbers

    @property
    def occurrences(self) -> list[int]:
        """Cited numbers in order of appearance, repeats kept."""
        return [number for token in self.tokens for number in token.members]

    @property
    def has_numbers(self) -> bool:
        return any(token.usable for token in self.tokens)

    @property
    def ambiguous_tokens(self) -> list[MarkerToken]:
        return [token for token in self.tokens if token.ambiguous]

    @property
    def errors(self) -> list[ValidationError]:
        return [
            ValidationError(token.error, token=token.text)
            for token in self.tokens
            if token.error
        ]


def _is_glued(text: str, start: int, end: int) -> bool:
    """True if the digits at text[start:end] touch letters or decimal points."""
    before = text[start - 1] if start > 0 else ""
    after = text[end] if end < len(text) else ""
    if before.isalpha() or after.isalpha():
        return True
    if before == "." and start > 1 and text[start - 2].isdigit():
        return True
    if after == "." and end + 1 < len(text) and text[end + 1].isdigit():
        return True
    return False


def parse_marker(
    text: str,
    max_number: int = DEFAULT_MAX_NUMBER,
    max_span: int = DEFAULT_MAX_SPAN,
) -> ParsedMarker:
    """Tokenize a citation marker.

    Args:
        text: Marker text as it appears in the document
        max_number: Numbers above this are noise
        max_span: Widest accepted range

    Returns:
        ParsedMarker with one token per number or range
    """
    parsed = ParsedMarker(text=text or "")
    for match in TOKEN_PATTERN.finditer(parsed.text):
        first = int(match.group(1))
        last = int(match.group(3)) if match.group(3) else None
        token = MarkerToken(
            start=match.start(),
            end=match.end(),
            text=match.group(0),
            first=first,
            last=last,
            joiner=match.group(2),
        )

        endpoints = [first] if last is None else [first, last]
        if any(n <= 0 or n > max_number for n in endpoints):
            token.noise = True
        elif _is_glued(parsed.text, match.start(), match.end()):
            token.ambiguous = True
        elif last is not None:
            if last <= first:
                token.error = f"Descending or empty range '{token.text}'"
            elif last - first > max_span:
                token.error = f"Range '{token.text}' spans more than {max_span} references"

        parsed.tokens.append(token)
    return parsed


def integer_tokens(text: str, max_number: int = DEFAULT_MAX_NUMBER) -> list[int]:
    """Every integer in a marker within 1..max_number, ranges not expanded."""
    numbers = []
    for match in INTEGER_PATTERN.finditer(text or ""):
        number = int(match.group(0))
        if 0 < number <= max_number:
            numbers.append(number)
    return numbers


def looks_numeric(text: str) -> bool:
    """True for a bare or bracketed integer marker such as "[3]" or "(2, 4)"."""
    stripped = re.sub(r"[,\-–—]", "", text or "")
    stripped = re.sub(r"(?<=\d)\s+(?=\d)", "", stripped)
    return bool(NUMERIC_MARKER_PATTERN.match(stripped))


def detect_separator(text: str, default: str = ", ") -> str:
    """Return the list separator (with spacing) a marker already uses."""
    match = SEPARATOR_PATTERN.search(text or "")
    if not match:
        return default
    return match.group(1) + match.group(2)


def compress_numbers(numbers: list[int], dash: str = "–", separator: str = ", ") -> str:
    """Render numbers as a list, collapsing runs of three or more into ranges.

    Example:
        [1, 2, 3, 5, 7, 8] -> "1–3, 5, 7, 8"
    """
    ordered = sorted(set(numbers))
    parts: list[str] = []
    i = 0
    while i < len(ordered):
        j = i
        while j + 1 < len(ordered) and ordered[j + 1] == ordered[j] + 1:
            j += 1
        if j - i >= 2:
            parts.append(f"{ordered[i]}{dash}{ordered[j]}")
        else:
            parts.extend(str(n) for n in ordered[i : j + 1])
        i = j + 1
    return separator.join(parts)


def render_marker(
    numbers: list[int],
    open_bracket: str = "[",
    close_bracket: str = "]",
    dash: str = "–",
    separator: str = ", ",
) -> str:
    """Render a complete numeric marker."""
    return f"{open_bracket}{compress_numbers(numbers, dash, separator)}{close_bracket}"


def _rewrite_range(token: MarkerToken, mapping: dict[int, int], separator: str) -> str:
    members = token.members
    mapped = [m for m in members if m in mapping]
    if all(mapping.get(m, m) == m for m in members):
        return token.text
    if len(mapped) != len(members):
        raise IntegrityError(
            f"Range '{token.text}' mixes existing and missing references and cannot be renumbered"
        )

    new_members = [mapping[m] for m in members]
    start = new_members[0]
    if new_members == list(range(start, start + len(new_members))):
        return f"{start}{token.joiner}{new_members[-1]}"
    dash = (token.joiner or "–").strip() or "–"
    return compress_numbers(new_members, dash=dash, separator=separator)


def rewrite_marker(
    text: str,
    mapping: dict[int, int],
    max_number: int = DEFAULT_MAX_NUMBER,
    max_span: int = DEFAULT_MAX_SPAN,
    keep: list[int] | None = None,
) -> str:
    """Substitute old numbers with new ones, token by token.

    Numbers absent from the mapping, noise and malformed ranges are kept as
    written. A range whose image is no longer contiguous becomes a compressed
    list using the marker's own separator.

    Args:
        text: Marker text
        mapping: Old number -> new number
        max_number: Numbers above this are noise
        max_span: Widest accepted range
        keep: Numbers to leave as written whatever the mapping says, matched
            against their first occurrences (one occurrence per entry)

    Raises:
        IntegrityError: If an ambiguous token would need renumbering, or a
            range mixing kept and renumbered members would change
    """
    parsed = parse_marker(text, max_number=max_number, max_span=max_span)
    separator = detect_separator(text)
    pending = list(keep or [])

    for token in parsed.ambiguous_tokens:
        if mapping.get(token.first, token.first) != token.first:
            raise IntegrityError(
                f"Ambiguous token '{token.text}' in citation '{text}' cannot be renumbered safely"
            )

    replacements: list[tuple[MarkerToken, str]] = []
    for token in parsed.tokens:
        if not token.usable:
            continue
        kept = [m for m in token.members if m in pending]
        for member in kept:
            pending.remove(member)
        if token.is_range:
            token_mapping = {old: new for old, new in mapping.items() if old not in kept}
            replacements.append((token, _rewrite_range(token, token_mapping, separator)))
        elif not kept:
            replacements.append((token, str(mapping.get(token.first, token.first))))

    result = parsed.text
    for token, replacement in reversed(replacements):
        result = result[: token.start] + replacement + result[token.end :]
    return result


def numeric_skeleton(text: str) -> str:
    """Marker text with every digit run replaced, for number-only comparisons."""
    return INTEGER_PATTERN.sub("#", text or "")
