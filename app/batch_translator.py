#!/usr/bin/env python3
"""
Batch Orchestrator

Splits each locale's missing keys into fixed-size batches, sends every batch
to the translation sender, and merges the validated responses into a single
locale -> key -> translation result.
"""

import json
import logging
from typing import Callable, Dict, List, Optional

from response_normalizer import (
    TranslationResult,
    extract_content,
    parse_translation_result,
)
from translator_errors import BatchTranslationError

logger = logging.getLogger(__name__)

# Maximum number of keys sent to the model in a single request
DEFAULT_BATCH_SIZE = 50

# Takes the request JSON ({locale: {key: source}}) and returns the raw API response body
Sender = Callable[[str], str]


def partition_batches(key_map: Dict[str, str], batch_size: int) -> List[Dict[str, str]]:
    """
    Split a key -> value map into consecutive batches of at most `batch_size` entries.

    Insertion order is preserved inside and across batches.
    """
    if batch_size < 1:
        raise ValueError(f"Batch size must be at least 1, got {batch_size}")

    entries = list(key_map.items())
    return [
        dict(entries[i : i + batch_size]) for i in range(0, len(entries), batch_size)
    ]


def build_batch_request(locale: str, batch: Dict[str, str]) -> str:
    return json.dumps({locale: batch}, ensure_ascii=False)


def _merge_into(result: TranslationResult, batch_result: TranslationResult) -> None:
    for locale, translations in batch_result.items():
        result.setdefault(locale, {}).update(translations)


def translate(
    payload: Dict[str, Dict[str, str]],
    batch_size: int,
    sender: Sender,
    log: Optional[logging.Logger] = None,
) -> TranslationResult:
    """
    Translate every locale of the payload batch by batch.

    Locales are processed in sorted order. Each batch is sent as
    {locale: {key: source, ...}}, and every (locale, key, value) returned by
    the model is merged into the aggregate result.

    Args:
        payload: locale -> {key: source text}, as built by the diff engine
        batch_size: Maximum number of keys per request
        sender: Translation collaborator returning the raw API response body
        log: Logger receiving progress lines

    Returns:
        Aggregated locale -> {key: translation}

    Raises:
        BatchTranslationError: On the first batch that fails; nothing is returned
    """
    log = log or logger
    result: TranslationResult = {}

    log.info(f"Translating in batches of {batch_size} keys per language...")
    for locale in sorted(payload):
        batches = partition_batches(payload[locale], batch_size)
        log.info(
            f"[{locale}] {len(batches)} batch(es) to translate (max {batch_size} per batch)"
        )

        for index, batch in enumerate(batches, start=1):
            log.info(
                f"[{locale}] Sending batch {index}/{len(batches)} with {len(batch)} keys"
            )
            try:
                raw_response = sender(build_batch_request(locale, batch))
                content = extract_content(raw_response, log)
                batch_result = parse_translation_result(content)
            except Exception as e:
                log.error(f"Error translating '{locale}' batch {index}: {e}")
                raise BatchTranslationError(locale, index, e) from e

            _merge_into(result, batch_result)

    return result
