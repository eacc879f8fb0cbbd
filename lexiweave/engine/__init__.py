"""Lexical substitution engine.

Import :mod:`lexiweave.engine.engine` for :class:`TranslationEngine` and its
factories; this package only re-exports the dependency-free building blocks.
"""

from .models import (
    ForeignWordData,
    LookupResult,
    ProcessedContent,
    ProcessingStats,
    ProficiencyLevel,
    ProtectionType,
    ResolutionSource,
    SelectionStrategy,
    Token,
    TranslationResult,
    WordEntry,
)
from .tokenizer import Tokenizer, TokenizerOptions

__all__ = [
    "ForeignWordData",
    "LookupResult",
    "ProcessedContent",
    "ProcessingStats",
    "ProficiencyLevel",
    "ProtectionType",
    "ResolutionSource",
    "SelectionStrategy",
    "Token",
    "Tokenizer",
    "TokenizerOptions",
    "TranslationResult",
    "WordEntry",
]
