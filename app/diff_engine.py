#!/usr/bin/env python3
"""
Diff Engine

Computes, for every module and requested locale, which default-locale keys
are missing from the locale's strings.xml and aggregates them into a single
locale -> key -> source text payload.
"""

import logging
from typing import Dict, Iterable, List, Optional

from resource_scanner import (
    Module,
    default_strings_file,
    extract_key_set,
    extract_keys,
    locale_strings_file,
    read_value,
)

logger = logging.getLogger(__name__)

Payload = Dict[str, Dict[str, str]]


def missing_keys(default_keys: Iterable[str], existing_keys: set) -> List[str]:
    """Return the default keys absent from `existing_keys`, keeping default-file order."""
    missing: List[str] = []
    seen = set()
    for key in default_keys:
        if key in existing_keys or key in seen:
            continue
        seen.add(key)
        missing.append(key)
    return missing


def build_payload(
    target_locales: Iterable[str],
    modules: List[Module],
    log: Optional[logging.Logger] = None,
) -> Payload:
    """
    Collect missing keys across modules and locales.

    Modules are visited in key order. A key missing in several modules is
    stored once per locale (the first module wins). Keys whose source text is
    empty are dropped because there is nothing to translate.

    Args:
        target_locales: Locale qualifiers to check (e.g. "de", "zh-rHK")
        modules: Modules found by the resource scanner
        log: Logger receiving progress lines

    Returns:
        Payload mapping locale -> {key: source text}; empty when nothing is missing
    """
    log = log or logger
    locales = list(target_locales)
    log.debug("Collecting missing keys across modules and languages...")

    payload: Payload = {}
    total_missing = 0

    for module in sorted(modules, key=lambda m: m.key):
        default_file = default_strings_file(module)
        if not default_file.is_file():
            continue

        default_keys = [entry.key for entry in extract_keys(default_file, log)]
        log.debug(f"[{module.key}] default strings: {len(set(default_keys))}")

        for locale in locales:
            target_file = locale_strings_file(module, locale)
            existing_keys = (
                extract_key_set(target_file, log) if target_file.is_file() else set()
            )

            missing = missing_keys(default_keys, existing_keys)
            if not missing:
                log.debug(f"[{module.key}][{locale}] no missing keys")
                continue

            log.debug(f"[{module.key}][{locale}] missing {len(missing)} keys")
            total_missing += len(missing)

            locale_map = payload.setdefault(locale, {})
            for key in missing:
                if key in locale_map:
                    continue
                source = read_value(default_file, key, log)
                if source:
                    locale_map[key] = source

            if not locale_map:
                del payload[locale]

    if not payload:
        log.info("No missing translations found.")
        return {}

    log.info(f"Total missing keys to translate: {total_missing}")
    return payload
