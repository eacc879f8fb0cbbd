"""Candidate selection and in-place rewriting of markup with foreign-word markers."""

from __future__ import annotations

import dataclasses
import math
import random
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional, Sequence

import regex

from lexiweave import logging_manager as log_mgr
from lexiweave.text_normalization import normalize_word

from .models import (
    ForeignWordData,
    ProficiencyLevel,
    ReplacementCandidate,
    ReplacementResult,
    ReplacementStats,
    SelectionStrategy,
    Token,
    WordEntry,
)

logger = log_mgr.get_logger().getChild("engine.replacer")

AVERAGE_WORD_LENGTH = 6
MARKER_CLASS = "foreign-word"

_SENTENCE_END = regex.compile(r"[.!?]\s*$")


@dataclass(slots=True)
class ReplacerOptions:
    density: float = 0.15
    max_proficiency: ProficiencyLevel = ProficiencyLevel.BEGINNER
    preferred_parts_of_speech: Sequence[str] = ()
    exclude_words: frozenset = field(default_factory=frozenset)
    min_word_spacing: int = 3
    selection_strategy: SelectionStrategy = SelectionStrategy.DISTRIBUTED
    rng: random.Random = field(default_factory=random.Random, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not 0.0 <= float(self.density) <= 1.0:
            raise ValueError(f"density must be between 0 and 1, got {self.density!r}")
        self.density = float(self.density)
        self.max_proficiency = ProficiencyLevel.parse(self.max_proficiency)
        self.selection_strategy = SelectionStrategy(self.selection_strategy)
        self.preferred_parts_of_speech = tuple(self.preferred_parts_of_speech or ())
        self.exclude_words = frozenset(
            normalize_word(word) for word in (self.exclude_words or ()) if word
        )
        self.min_word_spacing = int(self.min_word_spacing)


def escape_html(text: str) -> str:
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#039;")
    )


def preserve_case(original: str, replacement: str) -> str:
    """Apply the case pattern of ``original`` (ALL CAPS, Title, lower) to ``replacement``."""

    if not original or not replacement:
        return replacement
    if len(original) > 1 and original == original.upper() and original != original.lower():
        return replacement.upper()
    head, tail = original[0], original[1:]
    if head == head.upper() and head != head.lower() and tail == tail.lower():
        return replacement[0].upper() + replacement[1:].lower()
    return replacement.lower()


class WordReplacer:
    """Choose which tokens to replace and splice markers into the content."""

    def __init__(self, options: Optional[ReplacerOptions] = None, **overrides) -> None:
        self._options = dataclasses.replace(options or ReplacerOptions(), **overrides)

    @property
    def options(self) -> ReplacerOptions:
        return self._options

    def get_options(self) -> ReplacerOptions:
        return dataclasses.replace(self._options)

    def update_options(self, **changes) -> None:
        self._options = dataclasses.replace(self._options, **changes)

    def replace(
        self,
        content: str,
        tokens: Sequence[Token],
        word_entries: Mapping[str, Optional[WordEntry]],
    ) -> ReplacementResult:
        """Rewrite ``content`` replacing a selection of ``tokens``.

        Args:
            content: Markup the tokens were extracted from.
            tokens: Tokens in position order.
            word_entries: Resolved entries keyed by normalized word; ``None``
                values mean no translation is available.

        Returns:
            The rewritten content, the foreign-word records in left-to-right
            order with ranges in the rewritten content, and statistics.
        """

        candidates = self.build_candidates(tokens, word_entries)
        selected = self.select(candidates, len(tokens))

        rewritten = content
        spliced: List[tuple[ReplacementCandidate, str, str]] = []
        for candidate in sorted(selected, key=lambda c: c.token.start, reverse=True):
            token, entry = candidate.token, candidate.entry
            foreign = preserve_case(token.original, entry.target_word)
            marker = self.create_marker(foreign, entry)
            rewritten = rewritten[: token.start] + marker + rewritten[token.end :]
            spliced.append((candidate, foreign, marker))
        spliced.reverse()

        foreign_words: List[ForeignWordData] = []
        shift = 0
        for candidate, foreign, marker in spliced:
            token = candidate.token
            start = token.start + shift
            foreign_words.append(
                ForeignWordData(
                    original_word=token.original,
                    foreign_word=foreign,
                    start=start,
                    end=start + len(marker),
                    word_entry=candidate.entry,
                )
            )
            shift += len(marker) - (token.end - token.start)

        stats = ReplacementStats(
            total_tokens=len(tokens),
            eligible_tokens=len(candidates),
            replaced_tokens=len(selected),
            protected_tokens=sum(1 for token in tokens if token.is_protected),
            density_skipped=len(candidates) - len(selected),
        )
        logger.debug(
            "Replaced %d of %d eligible tokens",
            stats.replaced_tokens,
            stats.eligible_tokens,
            extra={"event": "engine.replacer.complete", "console_suppress": True},
        )
        return ReplacementResult(content=rewritten, foreign_words=foreign_words, stats=stats)

    def build_candidates(
        self,
        tokens: Iterable[Token],
        word_entries: Mapping[str, Optional[WordEntry]],
    ) -> List[ReplacementCandidate]:
        options = self._options
        candidates: List[ReplacementCandidate] = []
        for token in tokens:
            if token.is_protected or token.word in options.exclude_words:
                continue
            entry = word_entries.get(token.word)
            if entry is None:
                continue
            if not entry.proficiency_level.is_within(options.max_proficiency):
                continue
            candidates.append(ReplacementCandidate(token, entry, self.score(token, entry)))
        return candidates

    def score(self, token: Token, entry: WordEntry) -> float:
        score = 100.0
        score -= min(50.0, entry.frequency_rank / 100)
        if entry.part_of_speech in self._options.preferred_parts_of_speech:
            score += 20
        if not _SENTENCE_END.search(token.prefix):
            score += 10
        if len(token.word) <= 6:
            score += 5
        return score

    def target_count(self, candidate_count: int, total_tokens: int) -> int:
        if candidate_count == 0:
            return 0
        return max(1, math.floor(total_tokens * self._options.density))

    def select(
        self, candidates: Sequence[ReplacementCandidate], total_tokens: int
    ) -> List[ReplacementCandidate]:
        target = self.target_count(len(candidates), total_tokens)
        if target == 0:
            return []
        strategy = self._options.selection_strategy
        if strategy is SelectionStrategy.FREQUENCY:
            chosen = sorted(candidates, key=lambda c: (c.entry.frequency_rank, -c.score))
        elif strategy is SelectionStrategy.DISTRIBUTED:
            chosen = self._distributed(candidates, target)
        else:
            chosen = list(candidates)
            self._options.rng.shuffle(chosen)
        return self.apply_spacing(chosen, target)

    def _distributed(
        self, candidates: Sequence[ReplacementCandidate], target: int
    ) -> List[ReplacementCandidate]:
        if len(candidates) <= target:
            return list(candidates)
        ordered = sorted(candidates, key=lambda c: c.token.start)
        step = len(ordered) / target
        rng = self._options.rng
        picked: List[ReplacementCandidate] = []
        for index in range(target):
            position = math.floor(index * step + rng.random() * step * 0.5)
            if position < len(ordered):
                picked.append(ordered[position])
        return picked

    def apply_spacing(
        self, candidates: Sequence[ReplacementCandidate], limit: int
    ) -> List[ReplacementCandidate]:
        """Keep candidates at least ``min_word_spacing`` estimated words apart."""

        min_spacing = self._options.min_word_spacing
        if min_spacing <= 0:
            return list(candidates)[:limit]

        kept: List[ReplacementCandidate] = []
        last_end: Optional[int] = None
        for candidate in sorted(candidates, key=lambda c: c.token.start):
            if len(kept) >= limit:
                break
            if last_end is not None:
                gap = (candidate.token.start - last_end) // AVERAGE_WORD_LENGTH
                if gap < min_spacing:
                    continue
            kept.append(candidate)
            last_end = candidate.token.end
        return kept

    @staticmethod
    def create_marker(foreign_word: str, entry: WordEntry) -> str:
        attributes = [
            f'class="{MARKER_CLASS}"',
            f'data-original="{escape_html(entry.source_word)}"',
            f'data-word-id="{escape_html(entry.id)}"',
            f'data-pos="{escape_html(entry.part_of_speech)}"',
        ]
        if entry.pronunciation:
            attributes.append(f'data-pronunciation="{escape_html(entry.pronunciation)}"')
        return f"<span {' '.join(attributes)}>{escape_html(foreign_word)}</span>"


__all__ = [
    "AVERAGE_WORD_LENGTH",
    "MARKER_CLASS",
    "ReplacerOptions",
    "WordReplacer",
    "escape_html",
    "preserve_case",
]
