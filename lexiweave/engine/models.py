"""Data models shared by the tokenizer, resolver and replacer."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ProficiencyLevel(str, Enum):
    """Difficulty tier of a word, ordered beginner < intermediate < advanced."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    @property
    def rank_index(self) -> int:
        return _PROFICIENCY_ORDER.index(self)

    def is_within(self, maximum: "ProficiencyLevel") -> bool:
        """Return True if this tier is at or below ``maximum``."""
        return self.rank_index <= maximum.rank_index

    @classmethod
    def parse(cls, value: Any, default: Optional["ProficiencyLevel"] = None) -> "ProficiencyLevel":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            if default is not None:
                return default
            raise


_PROFICIENCY_ORDER = (
    ProficiencyLevel.BEGINNER,
    ProficiencyLevel.INTERMEDIATE,
    ProficiencyLevel.ADVANCED,
)


class ProtectionType(str, Enum):
    """Why a token must not be replaced."""

    QUOTE = "quote"
    CODE = "code"
    SCRIPT = "script"
    NAME = "name"


class ResolutionSource(str, Enum):
    """Tier of the resolution pipeline that produced a word entry."""

    CACHE = "cache"
    DATABASE = "database"
    API = "api"
    NONE = "none"


class SelectionStrategy(str, Enum):
    RANDOM = "random"
    FREQUENCY = "frequency"
    DISTRIBUTED = "distributed"


@dataclass(slots=True)
class Token:
    """A word located in the original markup.

    ``content[start:end] == original`` always holds for the content the token
    was extracted from.
    """

    word: str
    """Normalized form: lower case, dots removed."""

    original: str
    """Exact text as it appears in the content."""

    start: int
    end: int
    prefix: str = ""
    """Non-word characters immediately before the word in its chunk."""

    suffix: str = ""
    """Non-word characters immediately after the word in its chunk."""

    is_protected: bool = False
    protection_type: Optional[ProtectionType] = None


@dataclass(slots=True)
class WordEntry:
    """A dictionary mapping between a source word and its foreign equivalent."""

    id: str
    source_word: str
    target_word: str
    source_language: str
    target_language: str
    proficiency_level: ProficiencyLevel
    frequency_rank: int
    part_of_speech: str = "other"
    variants: List[str] = field(default_factory=list)
    pronunciation: Optional[str] = None
    provider: Optional[str] = None
    cached_at: Optional[float] = None

    @staticmethod
    def make_id(source_language: str, target_language: str, word: str) -> str:
        return f"{source_language}_{target_language}_{word}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase dictionary shape exchanged with hosts."""
        payload: Dict[str, Any] = {
            "id": self.id,
            "sourceWord": self.source_word,
            "targetWord": self.target_word,
            "sourceLanguage": self.source_language,
            "targetLanguage": self.target_language,
            "proficiencyLevel": self.proficiency_level.value,
            "frequencyRank": self.frequency_rank,
            "partOfSpeech": self.part_of_speech,
            "variants": list(self.variants),
        }
        if self.pronunciation:
            payload["pronunciation"] = self.pronunciation
        if self.provider:
            payload["provider"] = self.provider
        if self.cached_at is not None:
            payload["cachedAt"] = self.cached_at
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WordEntry":
        """Create from a camelCase or snake_case dictionary."""

        def pick(camel: str, snake: str, default: Any = None) -> Any:
            if camel in data:
                return data[camel]
            return data.get(snake, default)

        variants = pick("variants", "variants", []) or []
        if isinstance(variants, str):
            variants = json.loads(variants)
        return cls(
            id=str(data.get("id", "")),
            source_word=str(pick("sourceWord", "source_word", "")),
            target_word=str(pick("targetWord", "target_word", "")),
            source_language=str(pick("sourceLanguage", "source_language", "")),
            target_language=str(pick("targetLanguage", "target_language", "")),
            proficiency_level=ProficiencyLevel.parse(
                pick("proficiencyLevel", "proficiency_level", "intermediate"),
                default=ProficiencyLevel.INTERMEDIATE,
            ),
            frequency_rank=int(pick("frequencyRank", "frequency_rank", 0) or 0),
            part_of_speech=str(pick("partOfSpeech", "part_of_speech", "other") or "other"),
            variants=[str(item) for item in variants],
            pronunciation=pick("pronunciation", "pronunciation"),
            provider=pick("provider", "provider"),
            cached_at=pick("cachedAt", "cached_at"),
        )


@dataclass(slots=True)
class LookupResult:
    """Outcome of resolving one word: the entry (if any) and where it came from."""

    entry: Optional[WordEntry]
    source: ResolutionSource

    @property
    def found(self) -> bool:
        return self.entry is not None


@dataclass(slots=True)
class ReplacementCandidate:
    token: Token
    entry: WordEntry
    score: float


@dataclass(slots=True)
class TranslationResult:
    """A translation returned by the provider orchestrator."""

    translated_text: str
    source_language: str
    target_language: str
    provider: str
    confidence: Optional[float] = None
    cached: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "translated_text": self.translated_text,
            "source_language": self.source_language,
            "target_language": self.target_language,
            "provider": self.provider,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], *, cached: bool = False) -> "TranslationResult":
        confidence = data.get("confidence")
        return cls(
            translated_text=str(data.get("translated_text", "")),
            source_language=str(data.get("source_language", "")),
            target_language=str(data.get("target_language", "")),
            provider=str(data.get("provider", "")),
            confidence=float(confidence) if confidence is not None else None,
            cached=cached,
        )


@dataclass(slots=True)
class BulkTranslationResult:
    """Bulk outcome; ``providers`` records which provider answered each word."""

    translations: Dict[str, str] = field(default_factory=dict)
    provider: Optional[str] = None
    failed: List[str] = field(default_factory=list)
    providers: Dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class ForeignWordData:
    """A replaced word; ``start``/``end`` index the rewritten content."""

    original_word: str
    foreign_word: str
    start: int
    end: int
    word_entry: WordEntry

    def to_dict(self) -> Dict[str, Any]:
        return {
            "originalWord": self.original_word,
            "foreignWord": self.foreign_word,
            "startIndex": self.start,
            "endIndex": self.end,
            "wordEntry": self.word_entry.to_dict(),
        }


@dataclass(slots=True)
class ReplacementStats:
    total_tokens: int = 0
    eligible_tokens: int = 0
    replaced_tokens: int = 0
    protected_tokens: int = 0
    density_skipped: int = 0


@dataclass(slots=True)
class ReplacementResult:
    content: str
    foreign_words: List[ForeignWordData]
    stats: ReplacementStats


@dataclass(slots=True)
class ProcessingStats:
    total_words: int = 0
    eligible_words: int = 0
    replaced_words: int = 0
    processing_time_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalWords": self.total_words,
            "eligibleWords": self.eligible_words,
            "replacedWords": self.replaced_words,
            "processingTimeMs": round(self.processing_time_ms, 3),
        }


@dataclass(slots=True)
class ProcessedContent:
    """Result of :meth:`TranslationEngine.process_content`."""

    content: str
    foreign_words: List[ForeignWordData]
    stats: ProcessingStats
    processed_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "foreignWords": [item.to_dict() for item in self.foreign_words],
            "stats": self.stats.to_dict(),
        }


__all__ = [
    "BulkTranslationResult",
    "ForeignWordData",
    "LookupResult",
    "ProcessedContent",
    "ProcessingStats",
    "ProficiencyLevel",
    "ProtectionType",
    "ReplacementCandidate",
    "ReplacementResult",
    "ReplacementStats",
    "ResolutionSource",
    "SelectionStrategy",
    "Token",
    "TranslationResult",
    "WordEntry",
]
