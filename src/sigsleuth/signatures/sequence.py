"""Compile byte-pattern expressions into ``bytes`` regular expressions.

Supported syntax, whitespace outside quoted literals ignored::

    4D5A            literal bytes as hex pairs
    'PK'            quoted ASCII literal
    ??              any single byte
    {4}  {2-8}      gap of exactly / between n and m bytes
    {4-*}  *        gap of at least n / any number of bytes
    [30:39]         byte in the inclusive range
    [!00]  [!00:1F] byte not equal to / outside the range
    (0A|0D0A)       alternatives, each one a nested expression

Compiled patterns always use ``re.DOTALL`` so gaps span every byte value.
Alongside the regex source the parser tracks the longest byte span an
expression can cover (``None`` when unbounded); end-of-file matching uses it
to avoid searching from the start of large streams.
"""

from __future__ import annotations

import re
from typing import Iterable, List, NamedTuple, Optional, Tuple

_HEX_DIGITS = set("0123456789abcdefABCDEF")


class SignatureSyntaxError(ValueError):
    """Raised when a byte-pattern expression cannot be parsed."""


class Fragment(NamedTuple):
    """Regex source plus the maximum number of bytes it can consume.

    ``min_gap`` is set only on open-ended gaps and holds their minimum length.
    """

    source: str
    width: Optional[int]
    min_gap: Optional[int] = None


def join(fragments: Iterable[Fragment]) -> Fragment:
    sources: List[str] = []
    width: Optional[int] = 0
    for fragment in fragments:
        sources.append(fragment.source)
        if width is not None:
            width = None if fragment.width is None else width + fragment.width
    return Fragment("".join(sources), width)


def either(fragments: Iterable[Fragment]) -> Fragment:
    options = list(fragments)
    if len(options) == 1:
        return options[0]
    widths = [option.width for option in options]
    width = None if any(value is None for value in widths) else max(widths)  # type: ignore[type-var]
    return Fragment("(?:" + "|".join(option.source for option in options) + ")", width)


def gap(minimum: int, maximum: Optional[int]) -> Fragment:
    """Fragment matching ``minimum`` to ``maximum`` arbitrary bytes."""

    if minimum < 0 or (maximum is not None and maximum < minimum):
        raise SignatureSyntaxError(f"invalid gap {{{minimum}-{maximum}}}")
    if maximum is None:
        return Fragment(f".{{{minimum},}}?", None, minimum)
    if minimum == maximum:
        return Fragment("" if minimum == 0 else f".{{{minimum}}}", minimum)
    return Fragment(f".{{{minimum},{maximum}}}?", maximum)


def _literal(raw: bytes) -> Fragment:
    return Fragment(re.escape(raw).decode("latin-1"), len(raw))


def _strip_whitespace(text: str) -> str:
    """Drop whitespace outside quoted literals."""

    parts = text.split("'")
    for index in range(0, len(parts), 2):
        parts[index] = "".join(parts[index].split())
    return "'".join(parts)


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = _strip_whitespace(text)
        self.pos = 0

    def error(self, message: str) -> SignatureSyntaxError:
        return SignatureSyntaxError(f"{message} at offset {self.pos} in {self.text!r}")

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def parse(self) -> List[Fragment]:
        parts: List[Fragment] = []
        while self.pos < len(self.text):
            char = self.peek()
            if char in "|)":
                break
            if char == "?":
                self._expect("??")
                parts.append(Fragment(".", 1))
            elif char == "*":
                self.pos += 1
                parts.append(gap(0, None))
            elif char == "{":
                parts.append(self._parse_gap())
            elif char == "[":
                parts.append(self._parse_class())
            elif char == "(":
                parts.append(self._parse_alternatives())
            elif char == "'":
                parts.append(self._parse_quoted())
            elif char in _HEX_DIGITS:
                parts.append(_literal(bytes([self._parse_hex_byte()])))
            else:
                raise self.error(f"unexpected character {char!r}")
        return parts

    def _expect(self, token: str) -> None:
        if not self.text.startswith(token, self.pos):
            raise self.error(f"expected {token!r}")
        self.pos += len(token)

    def _parse_hex_byte(self) -> int:
        pair = self.text[self.pos: self.pos + 2]
        if len(pair) != 2 or not set(pair) <= _HEX_DIGITS:
            raise self.error("incomplete hex byte")
        self.pos += 2
        return int(pair, 16)

    def _parse_int(self) -> int:
        start = self.pos
        while self.peek().isdigit():
            self.pos += 1
        if start == self.pos:
            raise self.error("expected a number")
        return int(self.text[start: self.pos])

    def _parse_gap(self) -> Fragment:
        self._expect("{")
        minimum = self._parse_int()
        maximum: Optional[int] = minimum
        if self.peek() == "-":
            self.pos += 1
            if self.peek() == "*":
                self.pos += 1
                maximum = None
            else:
                maximum = self._parse_int()
        self._expect("}")
        try:
            return gap(minimum, maximum)
        except SignatureSyntaxError as exc:
            raise self.error(str(exc)) from exc

    def _parse_class(self) -> Fragment:
        self._expect("[")
        negate = self.peek() == "!"
        if negate:
            self.pos += 1
        low = self._parse_hex_byte()
        high = low
        if self.peek() == ":":
            self.pos += 1
            high = self._parse_hex_byte()
        self._expect("]")
        if high < low:
            low, high = high, low
        item = f"\\x{low:02x}"
        if high != low:
            item = f"{item}-\\x{high:02x}"
        return Fragment(f"[{'^' if negate else ''}{item}]", 1)

    def _parse_alternatives(self) -> Fragment:
        self._expect("(")
        options: List[Fragment] = []
        while True:
            parts = self.parse()
            if not parts:
                raise self.error("empty alternative")
            options.append(join(parts))
            if self.peek() == "|":
                self.pos += 1
                continue
            self._expect(")")
            break
        # Keep the group even for a single option so quantifiers stay scoped.
        return Fragment("(?:" + "|".join(option.source for option in options) + ")", either(options).width)

    def _parse_quoted(self) -> Fragment:
        self._expect("'")
        end = self.text.find("'", self.pos)
        if end < 0:
            raise self.error("unterminated quoted literal")
        literal = self.text[self.pos: end]
        self.pos = end + 1
        try:
            raw = literal.encode("ascii")
        except UnicodeEncodeError as exc:
            raise self.error("quoted literals must be ASCII") from exc
        if not raw:
            raise self.error("empty quoted literal")
        return _literal(raw)


def translate_parts(expression: str) -> List[Fragment]:
    """Return the top-level fragments of ``expression`` in order."""

    parser = _Parser(expression)
    parts = parser.parse()
    if parser.pos != len(parser.text):
        raise parser.error("unbalanced alternative")
    if not parts:
        raise SignatureSyntaxError("empty byte sequence")
    return parts


def translate_sequence(expression: str) -> Fragment:
    """Return the regex fragment for ``expression``."""

    return join(translate_parts(expression))


def split_segments(parts: Iterable[Fragment]) -> List[Tuple[int, Fragment]]:
    """Split ``parts`` at open-ended gaps.

    Returns ``(min_gap, fragment)`` pairs where ``min_gap`` is the number of
    bytes that must separate the segment from the end of the previous one.
    Segments may be empty.
    """

    segments: List[Tuple[int, Fragment]] = []
    pending = 0
    current: List[Fragment] = []
    for part in parts:
        if part.min_gap is None:
            current.append(part)
            continue
        segments.append((pending, join(current)))
        pending = part.min_gap
        current = []
    segments.append((pending, join(current)))
    return segments


def compile_fragment(fragment: Fragment) -> "re.Pattern[bytes]":
    try:
        return re.compile(fragment.source.encode("latin-1"), re.DOTALL)
    except re.error as exc:
        raise SignatureSyntaxError(f"invalid byte pattern: {exc}") from exc


def compile_sequence(expression: str) -> "re.Pattern[bytes]":
    """Compile ``expression`` into a ``bytes`` pattern."""

    return compile_fragment(translate_sequence(expression))
