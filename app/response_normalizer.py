#!/usr/bin/env python3
"""
Response Normalizer

Turns the raw body returned by a chat completion API into validated
translation JSON. Models do not always follow output instructions, so the
answer is cleaned up before it is trusted:

1. The API body is decoded and the answer is read from
   choices[0].message.content.
2. Markdown code fences (```json ... ```) are stripped.
3. A JSON object that was encoded a second time as a JSON string is unwrapped.
4. The first balanced {...} object is kept, dropping any surrounding
   commentary. The scan does not understand quoted strings, so a "}" inside a
   value ends the object early and the answer is rejected.
5. The result must decode to a JSON object.
"""

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from translator_errors import ResponseShapeError

logger = logging.getLogger(__name__)

TranslationResult = Dict[str, Dict[str, str]]

_CODE_FENCE_PATTERN = re.compile(r"```[A-Za-z]*")


class ResponseStep(Enum):
    """Links of the choices[0].message.content path, in traversal order."""

    CHOICES = "choices"
    FIRST_CHOICE = "choices[0]"
    MESSAGE = "message"
    CONTENT = "content"


@dataclass(frozen=True)
class ContentFound:
    content: str


@dataclass(frozen=True)
class MalformedResponse:
    """The API envelope did not have the expected shape at `step`."""

    step: ResponseStep
    detail: str


def locate_content(document: Any) -> Union[ContentFound, MalformedResponse]:
    """Walk choices[0].message.content, reporting the first link that is absent or mistyped."""
    if not isinstance(document, dict):
        return MalformedResponse(ResponseStep.CHOICES, "response body is not a JSON object")

    choices = document.get("choices")
    if not isinstance(choices, list):
        return MalformedResponse(ResponseStep.CHOICES, "'choices' is missing or not a list")

    if not choices or not isinstance(choices[0], dict):
        return MalformedResponse(
            ResponseStep.FIRST_CHOICE, "first choice is missing or not an object"
        )

    message = choices[0].get("message")
    if not isinstance(message, dict):
        return MalformedResponse(ResponseStep.MESSAGE, "'message' is missing or not an object")

    content = message.get("content")
    if not isinstance(content, str):
        return MalformedResponse(ResponseStep.CONTENT, "'content' is missing or not a string")

    return ContentFound(content)


def strip_code_fence(text: str) -> str:
    """Remove Markdown code fence markers (with any language tag) from a fenced answer."""
    stripped = text.strip()
    if not stripped.startswith("```"):
        return text
    return _CODE_FENCE_PATTERN.sub("", stripped).strip()


def find_first_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced {...} substring of `text`, or None.

    This is a plain depth counter over the raw characters: it starts at the
    first '{' and accepts when the depth returns to zero. Braces inside quoted
    strings are counted like any other brace, so text such as
    'use {name} here: {"de": {...}}' yields '{name}'.
    """
    depth = 0
    start = -1

    for index, ch in enumerate(text):
        if ch == "{":
            if start < 0:
                start = index
            depth += 1
        elif ch == "}" and start >= 0:
            depth -= 1
            if depth == 0:
                return text[start : index + 1]

    return None


def _decode(text: str) -> Any:
    return json.loads(text)


def unwrap_double_encoded(text: str) -> str:
    """If `text` is a JSON string holding a JSON object, return the inner object text."""
    try:
        value = _decode(text)
    except ValueError:
        return text

    if isinstance(value, str):
        try:
            inner = _decode(value)
        except ValueError:
            return text
        if isinstance(inner, dict):
            return value

    return text


def _decode_response_body(raw_response: str, log: logging.Logger) -> Any:
    try:
        return _decode(raw_response)
    except (TypeError, ValueError) as e:
        log.error("Failed to parse API response JSON. Full body:")
        log.error(raw_response)
        raise ResponseShapeError(f"Failed to parse API response JSON: {e}") from e


def extract_content(raw_response: str, log: Optional[logging.Logger] = None) -> str:
    """
    Extract and validate the translation JSON from a raw chat completion body.

    Args:
        raw_response: The API response body
        log: Logger receiving diagnostics

    Returns:
        JSON text of an object (not yet decoded into the translation shape)

    Raises:
        ResponseShapeError: If the body or the model answer is not usable
    """
    log = log or logger
    document = _decode_response_body(raw_response, log)

    located = locate_content(document)
    if isinstance(located, MalformedResponse):
        log.error(
            f"Unexpected API response at '{located.step.value}' ({located.detail}). Full body:"
        )
        log.error(raw_response)
        raise ResponseShapeError(
            "Could not extract assistant content from API response: "
            f"{located.detail}",
            step=located.step,
        )

    content = strip_code_fence(located.content).strip()

    # A JSON string wrapping the object would hide it from the brace scan
    content = unwrap_double_encoded(content)

    normalized = find_first_json_object(content) or content

    try:
        decoded = _decode(normalized)
    except ValueError:
        decoded = None
    if not isinstance(decoded, dict):
        log.error(f"Assistant content is not valid JSON object. Content:\n{normalized}")
        raise ResponseShapeError("Assistant did not return valid JSON object")

    log.debug(f"Received batch translations JSON ({len(normalized)} chars)")
    return normalized


def parse_translation_result(text: str) -> TranslationResult:
    """
    Decode validated JSON text into a locale -> key -> value mapping.

    Raises:
        ResponseShapeError: If the text is not an object of objects of strings
    """
    try:
        decoded = _decode(unwrap_double_encoded(text))
    except ValueError as e:
        raise ResponseShapeError(
            f"Failed to parse JSON response into expected structure: {e}"
        ) from e

    if not isinstance(decoded, dict):
        raise ResponseShapeError(
            "Failed to parse JSON response into expected structure: top level is not an object"
        )

    result: TranslationResult = {}
    for locale, translations in decoded.items():
        if not isinstance(translations, dict):
            raise ResponseShapeError(
                f"Expected an object of translations for '{locale}', "
                f"got {type(translations).__name__}"
            )
        for key, value in translations.items():
            if not isinstance(value, str):
                raise ResponseShapeError(
                    f"Expected a string translation for '{locale}'/'{key}', "
                    f"got {type(value).__name__}"
                )
        result[locale] = dict(translations)

    return result
