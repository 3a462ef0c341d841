#!/usr/bin/env python3
"""
Resource Scanner

Discovers the modules of an Android project and reads the <string> entries of
their strings.xml files. Parsing is isolated per file: a malformed file is
logged and treated as having no keys.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from lxml import etree

logger = logging.getLogger(__name__)

# Location of the resource root inside a module directory
RESOURCE_ROOT = Path("src", "main", "res")
# Module key used when the scan root itself holds a resource root
ROOT_MODULE_KEY = "app"
STRINGS_FILE_NAME = "strings.xml"
DEFAULT_VALUES_DIR = "values"
SKIPPED_DIRECTORIES = {"build"}


@dataclass(frozen=True)
class Module:
    """An Android module identified by its path relative to the scan root."""

    key: str
    res_dir: Path


@dataclass(frozen=True)
class StringEntry:
    key: str
    value: str
    translatable: bool = True


def default_strings_file(module: Module) -> Path:
    return module.res_dir / DEFAULT_VALUES_DIR / STRINGS_FILE_NAME


def locale_strings_file(module: Module, locale: str) -> Path:
    return module.res_dir / f"{DEFAULT_VALUES_DIR}-{locale}" / STRINGS_FILE_NAME


def _is_skipped_directory(name: str) -> bool:
    return name.startswith(".") or name in SKIPPED_DIRECTORIES


def _walk_module_dirs(directory: Path, module_path: str):
    """Yield (module_key, res_dir) for every directory below `directory` holding a resource root."""
    res_dir = directory / RESOURCE_ROOT
    if res_dir.is_dir():
        yield (module_path or ROOT_MODULE_KEY), res_dir

    try:
        children = sorted(os.scandir(directory), key=lambda entry: entry.name)
    except OSError as e:
        logger.warning(f"Cannot list directory {directory}: {e}")
        return

    for child in children:
        if not child.is_dir(follow_symlinks=False) or _is_skipped_directory(child.name):
            continue
        child_path = f"{module_path}/{child.name}" if module_path else child.name
        yield from _walk_module_dirs(Path(child.path), child_path)


def discover_modules(root: Union[str, Path]) -> List[Module]:
    """
    Recursively find every module below `root`.

    A directory is a module when it contains `src/main/res`. Hidden directories
    and `build` output directories are not descended into. The scan root itself
    is keyed "app"; nested modules are keyed by their relative path, e.g.
    "feature/login".

    Args:
        root: Project directory to scan

    Returns:
        Modules sorted by key
    """
    root_path = Path(root)
    if not root_path.is_dir():
        return []

    discovered = {}
    for module_key, res_dir in _walk_module_dirs(root_path, ""):
        discovered[module_key] = Module(module_key, res_dir)
        logger.debug(f"Found resource directory for module '{module_key}': {res_dir}")

    return [discovered[key] for key in sorted(discovered)]


def _create_parser() -> etree.XMLParser:
    """Return an XML parser that never resolves external entities."""
    return etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        load_dtd=False,
        remove_blank_text=False,
    )


def _parse_string_elements(path: Path) -> List[etree._Element]:
    tree = etree.parse(str(path), _create_parser())
    return list(tree.getroot().iter("string"))


def _text_content(element) -> str:
    """Concatenate all descendant text of an element, like DOM textContent."""
    return "".join(element.itertext())


def extract_keys(path: Union[str, Path], log: Optional[logging.Logger] = None) -> List[StringEntry]:
    """
    Parse a strings.xml file and return its translatable <string> entries.

    An entry without a name is skipped. An entry is excluded only if its
    translatable attribute is explicitly "false". When the file cannot be read
    or parsed, the error is logged and an empty list is returned.
    """
    log = log or logger
    path = Path(path)
    try:
        elements = _parse_string_elements(path)
    except (etree.XMLSyntaxError, OSError) as e:
        log.error(f"Error parsing {path}: {e}")
        return []

    entries: List[StringEntry] = []
    for elem in elements:
        name = elem.attrib.get("name")
        if not name:
            continue
        if elem.attrib.get("translatable", "").lower() == "false":
            continue
        entries.append(StringEntry(name, _text_content(elem)))

    log.debug(f"Parsed {len(entries)} translatable strings from {path}")
    return entries


def extract_key_set(path: Union[str, Path], log: Optional[logging.Logger] = None) -> set:
    return {entry.key for entry in extract_keys(path, log)}


def read_value(path: Union[str, Path], key: str, log: Optional[logging.Logger] = None) -> str:
    """Return the text of the <string> named `key`, or an empty string if it is missing."""
    log = log or logger
    try:
        elements = _parse_string_elements(Path(path))
    except (etree.XMLSyntaxError, OSError) as e:
        log.error(f"Error extracting string value from {path}: {e}")
        return ""

    for elem in elements:
        if elem.attrib.get("name") == key:
            return _text_content(elem)
    return ""
