"""Markup-aware word tokenizer.

The tokenizer walks a fragment of HTML-like markup with an explicit state
machine: a stack of open skip elements (``code``, ``script`` ...), a stack of
open quotation marks and a sentence-boundary flag. Text between tags is split
into :class:`TextSegment` runs, and each run is scanned for words with a
Unicode-aware pattern. Every token records its exact offsets in the original
markup so the replacer can splice markers without touching anything else.

Malformed markup never raises: a ``<`` that does not start a recognizable tag
is treated as text, stray closing tags are ignored and an unterminated
``<script>`` or comment consumes the rest of the input.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import FrozenSet, Iterable, List, Optional, Set

import regex

from lexiweave import logging_manager as log_mgr
from lexiweave.text_normalization import normalize_word

from .models import ProtectionType, Token

logger = log_mgr.get_logger().getChild("engine.tokenizer")

SKIP_TAGS: FrozenSet[str] = frozenset(
    {"script", "style", "code", "pre", "kbd", "samp", "var", "noscript", "svg", "math"}
)
CODE_TAGS: FrozenSet[str] = frozenset({"code", "pre", "kbd", "samp", "var"})
RAW_TEXT_TAGS: FrozenSet[str] = frozenset({"script", "style"})
QUOTE_TAGS: FrozenSet[str] = frozenset({"q"})
BLOCK_TAGS: FrozenSet[str] = frozenset(
    {
        "address", "article", "aside", "blockquote", "body", "br", "dd", "div", "dl",
        "dt", "figcaption", "figure", "footer", "h1", "h2", "h3", "h4", "h5", "h6",
        "header", "hr", "li", "main", "nav", "ol", "p", "section", "table", "td",
        "th", "title", "tr", "ul",
    }
)
# Line breaks end a sentence but not an open quotation.
_SOFT_BREAK_TAGS: FrozenSet[str] = frozenset({"br", "hr"})

NAME_PREFIXES: FrozenSet[str] = frozenset(
    {"mr", "mrs", "ms", "dr", "prof", "sir", "lord", "lady"}
)
ABBREVIATIONS: FrozenSet[str] = frozenset(
    {"etc", "eg", "ie", "vs", "mr", "mrs", "ms", "dr", "jr", "sr", "inc", "ltd", "co", "corp"}
)
_FIRST_PERSON: FrozenSet[str] = frozenset({"i", "i'm", "i'll", "i've", "i'd"})

_SENTENCE_TERMINATORS = ".!?:…"
_OPENING_QUOTES = {"“": "”", "‘": "’", "„": "”", "«": "»"}
_CLOSING_QUOTES = frozenset({"”", "’", "»"})

_TAG_PATTERN = regex.compile(
    r"<(/?)([A-Za-z][A-Za-z0-9:_-]*)((?:[\s/](?:\"[^\"]*\"|'[^']*'|[^'\"<>])*)?)>"
)
_WORD_CHARS = r"\p{L}\p{M}\p{N}"
_TOKEN_PATTERN = regex.compile(
    r"(?P<entity>&(?:[A-Za-z][A-Za-z0-9]*|#[0-9]+|#[xX][0-9A-Fa-f]+);)"
    rf"|(?P<word>[{_WORD_CHARS}]+(?:['’][\p{{L}}\p{{M}}]+)*(?:-[{_WORD_CHARS}]+)*)"
)
_SUFFIX_PATTERN = regex.compile(rf"[^\s{_WORD_CHARS}&]*")
_LETTER_PATTERN = regex.compile(r"\p{L}")
_WORD_CHAR_PATTERN = regex.compile(rf"[{_WORD_CHARS}]")


@dataclass(slots=True)
class TokenizerOptions:
    skip_quotes: bool = True
    skip_names: bool = True
    skip_code: bool = True
    min_word_length: int = 2
    max_word_length: int = 30
    skip_words: Set[str] = field(default_factory=set)


@dataclass(slots=True)
class TextSegment:
    """A run of text between two tags."""

    start: int
    end: int
    is_protected: bool = False
    protection_type: Optional[ProtectionType] = None
    starts_block: bool = False
    """A block-level tag precedes this run."""

    closes_quotes: bool = False
    """The preceding block boundary also ends any open quotation."""

    quote_elements: int = 0
    """Number of open ``<q>`` elements around this run."""


@dataclass
class _ScanState:
    quotes: List[str] = field(default_factory=list)
    sentence_start: bool = True
    previous_word: Optional[str] = None
    gap_since_previous: str = ""


class Tokenizer:
    """Split markup into word tokens with exact offsets and protection flags."""

    def __init__(self, options: Optional[TokenizerOptions] = None, **overrides) -> None:
        self._options = replace(options or TokenizerOptions(), **overrides)
        self._options.skip_words = {normalize_word(w) for w in self._options.skip_words}

    @property
    def options(self) -> TokenizerOptions:
        return self._options

    def update_options(self, **changes) -> None:
        self._options = replace(self._options, **changes)
        self._options.skip_words = {normalize_word(w) for w in self._options.skip_words}

    def tokenize(self, content: str) -> List[Token]:
        """Return the word tokens of ``content`` in document order."""

        if not content:
            return []
        state = _ScanState()
        tokens: List[Token] = []
        for segment in self.extract_text_segments(content):
            if segment.starts_block:
                state.sentence_start = True
                state.previous_word = None
                if segment.closes_quotes:
                    state.quotes.clear()
            tokens.extend(self._tokenize_segment(content, segment, state))
        return tokens

    def extract_text_segments(self, content: str) -> List[TextSegment]:
        """Split ``content`` into text runs, skipping tags, comments and declarations."""

        segments: List[TextSegment] = []
        skip_stack: List[str] = []
        quote_elements = 0
        pending_block = False
        pending_quote_reset = False
        text_start = 0
        index = 0
        length = len(content)

        def flush(until: int) -> None:
            nonlocal pending_block, pending_quote_reset
            if until <= text_start:
                return
            protection = None
            if skip_stack and self._options.skip_code:
                protection = (
                    ProtectionType.CODE if skip_stack[-1] in CODE_TAGS else ProtectionType.SCRIPT
                )
            segments.append(
                TextSegment(
                    start=text_start,
                    end=until,
                    is_protected=protection is not None,
                    protection_type=protection,
                    starts_block=pending_block,
                    closes_quotes=pending_quote_reset,
                    quote_elements=quote_elements,
                )
            )
            pending_block = False
            pending_quote_reset = False

        while index < length:
            index = content.find("<", index)
            if index < 0:
                break

            if content.startswith("<!--", index):
                flush(index)
                close = content.find("-->", index + 4)
                index = length if close < 0 else close + 3
                text_start = index
                continue

            if content.startswith("<!", index) or content.startswith("<?", index):
                close = content.find(">", index + 2)
                if close < 0:
                    index += 1
                    continue
                flush(index)
                index = close + 1
                text_start = index
                continue

            match = _TAG_PATTERN.match(content, index)
            if match is None:
                index += 1
                continue

            flush(index)
            closing = bool(match.group(1))
            name = match.group(2).lower()
            self_closing = match.group(0).rstrip(">").rstrip().endswith("/")
            index = match.end()
            text_start = index

            if name in BLOCK_TAGS:
                pending_block = True
                if name not in _SOFT_BREAK_TAGS:
                    pending_quote_reset = True

            if closing:
                if name in skip_stack:
                    while skip_stack:
                        if skip_stack.pop() == name:
                            break
                elif name in QUOTE_TAGS and quote_elements:
                    quote_elements -= 1
                continue

            if self_closing:
                continue

            if name in QUOTE_TAGS:
                quote_elements += 1
            elif name in RAW_TEXT_TAGS:
                end_pattern = regex.compile(rf"</\s*{name}\s*>", regex.IGNORECASE)
                end_match = end_pattern.search(content, index)
                body_end = end_match.start() if end_match else length
                skip_stack.append(name)
                flush(body_end)
                skip_stack.pop()
                index = end_match.end() if end_match else length
                text_start = index
            elif name in SKIP_TAGS:
                skip_stack.append(name)

        flush(length)
        return segments

    def _tokenize_segment(
        self, content: str, segment: TextSegment, state: _ScanState
    ) -> List[Token]:
        tokens: List[Token] = []
        position = segment.start
        for match in _TOKEN_PATTERN.finditer(content, segment.start, segment.end):
            if match.group("entity"):
                continue
            word = match.group("word")
            start, end = match.span("word")
            gap = content[position:start]
            self._consume_gap(content, position, start, state)
            position = end

            normalized = normalize_word(word)
            after_honorific = (
                state.previous_word in NAME_PREFIXES
                and not state.gap_since_previous.strip(" .\t\r\n\xa0")
            )
            at_boundary = state.sentence_start
            state.sentence_start = False
            state.previous_word = normalized
            state.gap_since_previous = ""

            if not _LETTER_PATTERN.search(word):
                continue

            protection = segment.protection_type if segment.is_protected else None
            quoted = bool(state.quotes) or segment.quote_elements > 0
            if protection is None and quoted and self._options.skip_quotes:
                protection = ProtectionType.QUOTE
            if protection is None and normalized in ABBREVIATIONS:
                protection = ProtectionType.NAME
            if (
                protection is None
                and self._options.skip_names
                and self._looks_like_name(word, normalized, at_boundary, after_honorific)
            ):
                protection = ProtectionType.NAME

            if not self._options.min_word_length <= len(word) <= self._options.max_word_length:
                continue
            if normalized in self._options.skip_words:
                continue

            suffix_match = _SUFFIX_PATTERN.match(content, end, segment.end)
            tokens.append(
                Token(
                    word=normalized,
                    original=word,
                    start=start,
                    end=end,
                    prefix=gap,
                    suffix=suffix_match.group(0) if suffix_match else "",
                    is_protected=protection is not None,
                    protection_type=protection,
                )
            )

        self._consume_gap(content, position, segment.end, state)
        return tokens

    @staticmethod
    def _consume_gap(content: str, start: int, end: int, state: _ScanState) -> None:
        """Update quote and sentence state for the non-word text in ``[start, end)``."""

        state.gap_since_previous += content[start:end]
        for index in range(start, end):
            char = content[index]
            if char.isspace():
                continue
            if char in _SENTENCE_TERMINATORS:
                state.sentence_start = True
            elif char in _OPENING_QUOTES:
                state.quotes.append(_OPENING_QUOTES[char])
            elif char in _CLOSING_QUOTES:
                if state.quotes and state.quotes[-1] == char:
                    state.quotes.pop()
            elif char == '"':
                if state.quotes and state.quotes[-1] == '"':
                    state.quotes.pop()
                else:
                    state.quotes.append('"')
            elif char == "'":
                before = content[index - 1] if index > 0 else " "
                after = content[index + 1] if index + 1 < len(content) else " "
                if state.quotes and state.quotes[-1] == "'" and not _WORD_CHAR_PATTERN.match(after):
                    state.quotes.pop()
                elif _WORD_CHAR_PATTERN.match(after) and not _WORD_CHAR_PATTERN.match(before):
                    state.quotes.append("'")

    @staticmethod
    def _looks_like_name(
        word: str, normalized: str, at_boundary: bool, after_honorific: bool
    ) -> bool:
        if not word[:1].isupper() or normalized in _FIRST_PERSON:
            return False
        if after_honorific:
            return True
        if at_boundary:
            # Sentence-initial capitals are ordinary words unless shouted or camel-cased.
            return len(word) > 1 and (word.isupper() or any(ch.isupper() for ch in word[1:]))
        return True

    @staticmethod
    def get_unique_words(tokens: Iterable[Token]) -> List[str]:
        """Return distinct normalized words of unprotected tokens, first-seen order."""

        seen: dict[str, None] = {}
        for token in tokens:
            if not token.is_protected:
                seen.setdefault(token.word, None)
        return list(seen)


__all__ = [
    "ABBREVIATIONS",
    "NAME_PREFIXES",
    "SKIP_TAGS",
    "TextSegment",
    "Tokenizer",
    "TokenizerOptions",
]
