"""Interleave foreign-language vocabulary into markup for language learners."""

__version__ = "0.1.0"

__all__ = ["__version__"]
