#!/usr/bin/env python3
"""Utility helpers for sanitizing translated values before splicing them into strings.xml."""

from typing import List, Optional
import re

__all__ = [
    "escape_ampersands",
    "escape_apostrophes",
    "sanitize_android_string_value",
]

# An ampersand that does not already start a predefined or numeric entity reference
_BARE_AMPERSAND_PATTERN = re.compile(
    r"&(?!amp;|lt;|gt;|quot;|apos;|#[0-9]+;|#x[0-9A-Fa-f]+;)"
)


def _escape_character(text: str, target: str) -> str:
    """Escape occurrences of a character unless already escaped."""
    if not text:
        return text

    result: List[str] = []
    backslash_run = 0

    for ch in text:
        if ch == "\\":
            backslash_run += 1
            result.append(ch)
            continue

        if ch == target:
            if backslash_run % 2 == 0:
                result.append(f"\\{target}")
            else:
                result.append(ch)
            backslash_run = 0
            continue

        result.append(ch)
        backslash_run = 0

    return "".join(result)


def escape_apostrophes(text: Optional[str]) -> Optional[str]:
    """Escape apostrophes with a single backslash, preserving existing escapes."""
    if text is None:
        return None
    if text == "":
        return ""
    return _escape_character(text, "'")


def escape_ampersands(text: Optional[str]) -> Optional[str]:
    """Replace bare ampersands with &amp; while leaving entity references untouched."""
    if not text:
        return text
    return _BARE_AMPERSAND_PATTERN.sub("&amp;", text)


def sanitize_android_string_value(text: Optional[str]) -> Optional[str]:
    """
    Make a translated value safe to write as the text of a <string> element.

    Bare ampersands become &amp; and unescaped apostrophes get a backslash, as
    Android requires. Values that are already escaped are left as they are, so
    sanitizing twice gives the same result.
    """
    return escape_apostrophes(escape_ampersands(text))
