#!/usr/bin/env python3
"""
Exceptions raised by the Missing Strings Translator.

Every fatal condition derives from TranslatorError so the command-line entry
point can report it and exit with a non-zero status. MergeError is the only
one that the pipeline itself catches (per key, in the merge step).
"""

from typing import Optional


class TranslatorError(Exception):
    """Base class for all translator failures."""


class ConfigurationError(TranslatorError):
    """Raised when required settings (locales, API key, model) are missing or invalid."""


class TransportError(TranslatorError):
    """Raised when the translation API call fails, times out or returns an empty body."""


class ResponseShapeError(TranslatorError):
    """
    Raised when the model output cannot be turned into a locale -> key -> value mapping.

    Attributes:
        step: The response path link that was malformed, when the failure happened
              while locating the model answer inside the API envelope.
    """

    def __init__(self, message: str, step=None) -> None:
        super().__init__(message)
        self.step = step


class BatchTranslationError(TranslatorError):
    """Raised when a single translation batch fails; aborts the whole run."""

    def __init__(self, locale: str, batch_index: int, cause: Optional[Exception]) -> None:
        self.locale = locale
        self.batch_index = batch_index
        self.cause = cause
        super().__init__(
            f"Translation failed for '{locale}' batch {batch_index}: {cause}"
        )


class MergeError(TranslatorError):
    """Raised when a translated entry cannot be inserted into a resource file."""
