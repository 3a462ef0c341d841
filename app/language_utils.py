from babel import Locale

import logging
import re

logger = logging.getLogger(__name__)

# Names used in prompts for the locales the translator is most often run with.
# Region variants spell out the script so the model picks the right one.
KNOWN_LANGUAGE_NAMES = {
    "de": "German",
    "fr": "French",
    "es": "Spanish",
    "tr": "Turkish",
    "zh-rHK": "Traditional Chinese (Hong Kong)",
    "zh-rSG": "Simplified Chinese (Singapore)",
    "ko": "Korean",
    "ja": "Japanese",
    "it": "Italian",
    "pt": "Portuguese",
    "ru": "Russian",
    "ar": "Arabic",
}


def get_language_name(locale_code: str) -> str:
    """
    Get language name from various locale code formats using Babel.
    Handles Android resource qualifiers (standard and BCP 47).

    Args:
        locale_code: A string representing a locale code in various formats:
                    - Language code (e.g., 'en', 'zh')
                    - Android standard qualifier (e.g., 'en-rUS', 'zh-rCN')
                    - Android BCP 47 qualifier (e.g., 'b+sr+Latn')

    Returns:
        A string with the display name of the language in English, including region if available.
        Returns the original locale_code if parsing fails.
    """
    if locale_code in KNOWN_LANGUAGE_NAMES:
        return KNOWN_LANGUAGE_NAMES[locale_code]

    try:
        normalized_code = re.sub(r"^b\+", "", locale_code)
        normalized_code = re.sub(r"-r", "_", normalized_code)
        normalized_code = re.sub(r"-", "_", normalized_code)
        normalized_code = re.sub(r"\+", "_", normalized_code)

        locale = Locale.parse(normalized_code)
        return locale.get_display_name(locale="en")

    except Exception as e:
        # Log warning and return the original code if parsing fails
        logger.warning(
            f"Could not determine language name for locale '{locale_code}': {e}"
        )
        return locale_code


def build_language_hints(locale_codes) -> str:
    """Describe locale codes for a prompt, e.g. 'de=German, zh-rHK=Traditional Chinese (Hong Kong)'."""
    return ", ".join(f"{code}={get_language_name(code)}" for code in locale_codes)
