#!/usr/bin/env python3
"""
Missing Strings Translator

This script scans an Android project for modules with strings.xml resources,
finds the <string> entries that are missing from the requested locales,
translates them in batches with an OpenAI-compatible model, and appends the
translations to the locale files without touching existing entries.
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

from batch_translator import DEFAULT_BATCH_SIZE, Sender, translate
from diff_engine import build_payload
from language_utils import get_language_name
from llm_provider import (
    DEFAULT_APP_CONTEXT,
    DEFAULT_MODEL,
    ChatCompletionSender,
    LLMConfig,
    LLMProvider,
)
from merge_writer import MergeSummary, apply_translations
from resource_scanner import discover_modules
from translator_errors import ConfigurationError, TranslatorError

USAGE_HINT = "Usage: --langs tr,de,fr or --lang de"
DEFAULT_OPENROUTER_SITE_URL = "https://github.com/clubpay/qlub-auto-translate-android"
DEFAULT_OPENROUTER_SITE_NAME = "MissingStringsTranslator"

# ------------------------------------------------------------------------------
# Logger Setup
# ------------------------------------------------------------------------------

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool) -> None:
    """Configure console logging; verbose mode shows debug progress and prompts."""
    log_level = logging.DEBUG if verbose else logging.INFO
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")

    # Configure the root logger so every module shares the same handlers/level.
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
    else:
        for existing_handler in root_logger.handlers:
            existing_handler.setFormatter(formatter)

    logger.setLevel(log_level)

    # Suppress noisy debug logs from HTTP client/SDK libraries unless they escalate.
    noisy_loggers = [
        "openai",
        "openai._base_client",
        "openai._http_client",
        "httpx",
        "httpcore",
    ]
    for name in noisy_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


# ------------------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------------------


def parse_target_locales(langs: Optional[str], lang: Optional[str] = None) -> List[str]:
    """
    Resolve the requested locales from a list value ("tr,de;fr") or a single value.

    Raises:
        ConfigurationError: If neither value names a locale
    """
    if langs and langs.strip():
        locales: List[str] = []
        for part in langs.replace(";", ",").split(","):
            part = part.strip()
            if part and part not in locales:
                locales.append(part)
        if locales:
            return locales

    if lang and lang.strip():
        return [lang.strip()]

    raise ConfigurationError(f"Missing required parameter. {USAGE_HINT}")


def resolve_api_key(provider: str, explicit_key: Optional[str]) -> Optional[str]:
    if explicit_key:
        return explicit_key
    if provider == LLMProvider.OPENROUTER.value:
        return os.environ.get("OPENROUTER_API_KEY") or os.environ.get("OPENAI_API_KEY")
    return os.environ.get("OPENAI_API_KEY")


# ------------------------------------------------------------------------------
# Translation Run
# ------------------------------------------------------------------------------


def log_missing_translations(payload: Dict[str, Dict[str, str]]) -> None:
    """Log the keys that would be sent for translation."""
    logger.info("Missing Translations Report")
    for locale in sorted(payload):
        keys = payload[locale]
        logger.info(f"  [{locale}] ({get_language_name(locale)}): {len(keys)} keys")
        for key in keys:
            logger.debug(f"    {key}: {keys[key]}")


def run_translation(
    project_dir,
    target_locales: List[str],
    sender: Optional[Sender],
    batch_size: int = DEFAULT_BATCH_SIZE,
    dry_run: bool = False,
) -> MergeSummary:
    """
    Translate every missing string of the requested locales in a project.

    Args:
        project_dir: Root directory of the Android project
        target_locales: Locale qualifiers to fill (e.g. ["de", "zh-rHK"])
        sender: Translation collaborator; may be None in dry-run mode
        batch_size: Maximum number of keys per translation request
        dry_run: Only report missing keys, do not translate or write

    Returns:
        MergeSummary of the entries written (empty when nothing was done)

    Raises:
        ConfigurationError: On invalid parameters
        BatchTranslationError: If any translation batch fails; no file is modified
    """
    if not target_locales:
        raise ConfigurationError(f"Missing required parameter. {USAGE_HINT}")
    if batch_size < 1:
        raise ConfigurationError(f"Batch size must be at least 1, got {batch_size}")
    if sender is None and not dry_run:
        raise ConfigurationError("A translation sender is required unless running in dry-run mode")

    logger.info("Automated batch translation of missing strings...")
    logger.info(f"Target languages: {', '.join(target_locales)}")

    logger.debug("Discovering modules with resources...")
    modules = discover_modules(project_dir)
    logger.info(f"Found {len(modules)} modules with res directories")

    payload = build_payload(target_locales, modules, logger)
    if not payload:
        logger.info("No missing translations detected for requested languages. Nothing to translate.")
        return MergeSummary()

    if dry_run:
        log_missing_translations(payload)
        return MergeSummary()

    result = translate(payload, batch_size, sender, logger)
    return apply_translations(result, modules, logger)


# ------------------------------------------------------------------------------
# Translation Report Generator
# ------------------------------------------------------------------------------


def create_translation_report(summary: MergeSummary) -> str:
    """
    Generate a Markdown formatted translation report as a string.
    """
    report = "# Translation Report\n\n"
    if not summary.added:
        return report + "No translations were performed."

    grouped: Dict[str, Dict[str, list]] = {}
    for entry in summary.added:
        grouped.setdefault(entry.module, {}).setdefault(entry.locale, []).append(entry)

    for module in sorted(grouped):
        report += f"## Module: {module}\n\n"
        for locale in sorted(grouped[module]):
            report += f"### Language: {get_language_name(locale)}\n\n"
            report += "| Key | Translated Text |\n"
            report += "| --- | --------------- |\n"
            for entry in grouped[module][locale]:
                translation = entry.value.replace("\n", " ").replace("|", "\\|")
                report += f"| {entry.key} | {translation} |\n"
            report += "\n"

    report += (
        f"Modules touched: {summary.modules_touched}, "
        f"translations added: {summary.entries_added}\n"
    )
    return report


def write_report(report_output: str, dry_run: bool) -> None:
    if "GITHUB_OUTPUT" in os.environ:
        with open(os.environ["GITHUB_OUTPUT"], "a", encoding="utf-8") as f:
            # Use a unique delimiter to prevent collision if translations contain "EOF"
            delimiter = "EOF_TRANSLATION_REPORT_3c1b7a52"
            print(f"translation_report<<{delimiter}", file=f)
            print(report_output, file=f)
            print(delimiter, file=f)
    elif not dry_run:
        print("\nTranslation Report:")
        print(report_output)


# ------------------------------------------------------------------------------
# Main Entry Point
# ------------------------------------------------------------------------------


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "false").lower() == "true"


def _settings_from_environment() -> dict:
    """Read the GitHub Action inputs."""
    provider = os.environ.get("INPUT_LLM_PROVIDER", LLMProvider.OPENAI.value).lower()
    batch_size_raw = os.environ.get("INPUT_BATCH_SIZE", str(DEFAULT_BATCH_SIZE))
    try:
        batch_size = int(batch_size_raw)
    except ValueError:
        raise ConfigurationError(f"Invalid INPUT_BATCH_SIZE value ('{batch_size_raw}')")

    return {
        "project_dir": os.environ.get("INPUT_PROJECT_DIR") or ".",
        "langs": os.environ.get("INPUT_LANGS"),
        "lang": os.environ.get("INPUT_LANG"),
        "llm_provider": provider,
        "api_key": resolve_api_key(provider, None),
        "model": os.environ.get("INPUT_MODEL") or DEFAULT_MODEL,
        "app_context": os.environ.get("INPUT_APP_CONTEXT") or DEFAULT_APP_CONTEXT,
        "batch_size": batch_size,
        "verbose": _env_flag("INPUT_VERBOSE"),
        "dry_run": _env_flag("INPUT_DRY_RUN"),
    }


def _build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Missing Strings Translator")
    parser.add_argument(
        "project_dir",
        nargs="?",
        default=".",
        help="Root directory of the Android project (default: current directory)",
    )
    parser.add_argument(
        "--langs",
        default=None,
        help="Comma or semicolon separated target locales, e.g. tr,de,zh-rHK",
    )
    parser.add_argument(
        "--lang",
        default=None,
        help="Single target locale (used when --langs is not given)",
    )
    parser.add_argument(
        "--llm-provider",
        choices=[provider.value for provider in LLMProvider],
        default=LLMProvider.OPENAI.value,
        help="LLM provider to use (default: openai)",
    )
    parser.add_argument(
        "--api-key",
        default=None,
        help="API key (defaults to OPENAI_API_KEY, or OPENROUTER_API_KEY for openrouter)",
    )
    parser.add_argument(
        "--model",
        default=DEFAULT_MODEL,
        help=f"Model to use for translation (default: {DEFAULT_MODEL})",
    )
    parser.add_argument(
        "--app-context",
        default=DEFAULT_APP_CONTEXT,
        help="Short description of the app, added to the translation prompt",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=DEFAULT_BATCH_SIZE,
        help=f"Maximum number of keys per translation request (default: {DEFAULT_BATCH_SIZE})",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log detailed progress, including the full translation prompts",
    )
    parser.add_argument(
        "-d",
        "--dry-run",
        action="store_true",
        help="Only report missing translations without translating",
    )
    return parser


def _settings_from_arguments(argv: Optional[List[str]]) -> dict:
    args = _build_argument_parser().parse_args(argv)
    return {
        "project_dir": args.project_dir,
        "langs": args.langs,
        "lang": args.lang,
        "llm_provider": args.llm_provider,
        "api_key": resolve_api_key(args.llm_provider, args.api_key),
        "model": args.model,
        "app_context": args.app_context,
        "batch_size": args.batch_size,
        "verbose": args.verbose,
        "dry_run": args.dry_run,
    }


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the Missing Strings Translator.
    Resolves settings from the command line (or GitHub Action inputs), then
    translates and merges the missing strings.

    Returns:
        Process exit status
    """
    try:
        if _env_flag("GITHUB_ACTIONS") and argv is None:
            settings = _settings_from_environment()
        else:
            settings = _settings_from_arguments(argv)

        configure_logging(settings["verbose"])

        target_locales = parse_target_locales(settings["langs"], settings["lang"])

        project_dir = Path(settings["project_dir"])
        if not project_dir.is_dir():
            raise ConfigurationError(f"The specified path {project_dir} does not exist!")

        sender = None
        if not settings["dry_run"]:
            if not settings["api_key"]:
                raise ConfigurationError(
                    "API key not configured. Pass --api-key or set "
                    + ("OPENROUTER_API_KEY" if settings["llm_provider"] == "openrouter" else "OPENAI_API_KEY")
                )
            is_openrouter = settings["llm_provider"] == LLMProvider.OPENROUTER.value
            llm_config = LLMConfig(
                provider=settings["llm_provider"],
                api_key=settings["api_key"],
                model=settings["model"],
                site_url=DEFAULT_OPENROUTER_SITE_URL if is_openrouter else None,
                site_name=DEFAULT_OPENROUTER_SITE_NAME if is_openrouter else None,
            )
            logger.info(f"Using AI model: {llm_config.model}")
            sender = ChatCompletionSender(llm_config, settings["app_context"])

        summary = run_translation(
            project_dir,
            target_locales,
            sender,
            batch_size=settings["batch_size"],
            dry_run=settings["dry_run"],
        )
    except TranslatorError as e:
        if not logging.getLogger().handlers:
            configure_logging(False)
        logger.error(str(e))
        return 1

    write_report(create_translation_report(summary), settings["dry_run"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
