#!/usr/bin/env python3
"""
Merge Writer

Writes translated entries into per-locale strings.xml files. Files are edited
by splicing new lines in front of the closing </resources> tag instead of
re-serializing the document, so existing entries, comments and formatting stay
byte-for-byte identical. Merges only ever add entries.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from resource_scanner import (
    Module,
    default_strings_file,
    extract_key_set,
    locale_strings_file,
)
from string_utils import sanitize_android_string_value
from translator_errors import MergeError

logger = logging.getLogger(__name__)

OUTPUT_SEPARATOR_LENGTH = 60
CLOSING_TAG = "</resources>"
ENTRY_INDENT = "    "
EMPTY_STRINGS_XML = """<?xml version="1.0" encoding="utf-8"?>
<resources>
</resources>"""


@dataclass(frozen=True)
class AddedEntry:
    module: str
    locale: str
    key: str
    value: str


@dataclass
class MergeSummary:
    """What a merge run changed."""

    modules_touched: int = 0
    entries_added: int = 0
    added: List[AddedEntry] = field(default_factory=list)


def create_empty_resource_file(path: Union[str, Path]) -> None:
    """Create a strings.xml containing only an empty <resources> element."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(EMPTY_STRINGS_XML, encoding="utf-8")
    except OSError as e:
        logger.error(f"Failed to create empty strings.xml file {path}: {e}")
        raise
    logger.debug(f"Successfully created empty strings.xml file: {path}")


def _key_pattern(key: str):
    # name may follow other attributes in the start tag
    return re.compile(
        r"""<string\s+(?:[^>]*?\s)?name\s*=\s*["']""" + re.escape(key) + r"""["']"""
    )


def add_string_to_file(path: Union[str, Path], key: str, value: str) -> bool:
    """
    Insert <string name="key">value</string> just before the closing </resources> tag.

    The value is sanitized first. Nothing is written when the live file content
    already holds an entry with that name.

    Returns:
        True if the entry was added, False if the key already existed

    Raises:
        MergeError: If the file does not exist, is not UTF-8 or has no closing
            </resources> tag
    """
    path = Path(path)
    if not path.is_file():
        raise MergeError(f"Target XML file does not exist: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise MergeError(f"Target XML file is not valid UTF-8: {path}: {e}") from e

    closing_index = content.rfind(CLOSING_TAG)
    if closing_index == -1:
        raise MergeError(f"Could not find closing {CLOSING_TAG} tag in {path}")

    if _key_pattern(key).search(content):
        logger.debug(f"Key '{key}' already exists in {path}. Skipping...")
        return False

    safe_value = sanitize_android_string_value(value)
    new_entry = f'{ENTRY_INDENT}<string name="{key}">{safe_value}</string>\n'
    logger.debug(f"Adding: {new_entry.strip()} to {path}")

    path.write_text(
        content[:closing_index] + new_entry + content[closing_index:],
        encoding="utf-8",
    )
    return True


def _ensure_locale_file(module: Module, locale: str, log: logging.Logger) -> Path:
    target_file = locale_strings_file(module, locale)
    if not target_file.parent.exists():
        log.debug(f"[{module.key}][{locale}] Creating directory: {target_file.parent}")
    if not target_file.exists():
        log.debug(f"[{module.key}][{locale}] Creating strings.xml file: {target_file}")
        create_empty_resource_file(target_file)
    return target_file


def apply_translations(
    result: Dict[str, Dict[str, str]],
    modules: List[Module],
    log: Optional[logging.Logger] = None,
) -> MergeSummary:
    """
    Add the translated entries to every module that is missing them.

    For each module with a default strings.xml and each locale in `result`,
    only keys that are translatable default keys and absent from the locale
    file are written, in sorted order. Blank translations are skipped. A key
    that fails to insert is logged and skipped without stopping the others.

    Args:
        result: locale -> {key: translation}
        modules: Modules found by the resource scanner
        log: Logger receiving progress lines

    Returns:
        MergeSummary describing the added entries
    """
    log = log or logger
    summary = MergeSummary()
    log.debug("Applying batch translations to modules...")

    for module in sorted(modules, key=lambda m: m.key):
        default_file = default_strings_file(module)
        if not default_file.is_file():
            continue

        default_keys = extract_key_set(default_file, log)

        for locale, locale_map in result.items():
            target_file = _ensure_locale_file(module, locale, log)
            existing_keys = extract_key_set(target_file, log)

            candidates = sorted(
                key
                for key in locale_map
                if key in default_keys and key not in existing_keys
            )
            if not candidates:
                log.debug(f"[{module.key}][{locale}] no new keys to add")
                continue

            log.info(f"[{module.key}][{locale}] adding {len(candidates)} translations")
            added_before = summary.entries_added

            for key in candidates:
                value = locale_map[key]
                if not value or not value.strip():
                    continue
                try:
                    if add_string_to_file(target_file, key, value):
                        summary.entries_added += 1
                        summary.added.append(AddedEntry(module.key, locale, key, value))
                except (MergeError, OSError) as e:
                    log.error(f"[{module.key}][{locale}] Failed to add '{key}': {e}")

            if summary.entries_added > added_before:
                summary.modules_touched += 1

    log.info("=" * OUTPUT_SEPARATOR_LENGTH)
    log.info("Batch translation applied")
    log.info(f"Modules touched: {summary.modules_touched}")
    log.info(f"Total translations added: {summary.entries_added}")
    log.info("=" * OUTPUT_SEPARATOR_LENGTH)

    return summary
