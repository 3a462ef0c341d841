#!/usr/bin/env python3
"""
LLM Provider Module

This module implements the translation sender: it wraps a batch request in
the translation prompts, posts it to an OpenAI-compatible chat completion
endpoint (OpenAI or OpenRouter) and hands back the raw response body. Parsing
the model answer is left to the response normalizer.
"""

import json
import logging
from enum import Enum
from dataclasses import dataclass
from typing import Optional, Dict, List

import httpx

from language_utils import build_language_hints
from translator_errors import ConfigurationError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-5-nano"
DEFAULT_APP_CONTEXT = "A mobile application"
API_CONNECT_TIMEOUT_SECONDS = 300
API_MAX_TIME_SECONDS = 600
PROMPT_SEPARATOR_LENGTH = 80

# ------------------------------------------------------------------------------
# Translation Prompt Constants
# ------------------------------------------------------------------------------

SYSTEM_RULES = """\
You are a highly accurate translation engine for Android string resources.
Your ONLY task is to return valid JSON that strictly preserves the input structure.
Rules:
- Preserve all placeholders exactly: %s, %d, %1$s, %2$d, etc. Do NOT invent any new placeholders.
- Preserve all HTML tags and valid escapes (\\n, \\t, \\r, \\\\) exactly as they appear.
- Do NOT modify technical IDs or tokens (orderID, tableID, partyID, diningSessionID, reference, txnID, token).
- Do NOT translate brand/provider names.
- NEVER add explanations, comments, code fences, or extra text.
- Strictly match each top-level key to its target language and locale; never use a different language than requested.
- If you see ' this character always change with \\'
- If you see & this character always change with &amp;"""

USER_PROMPT_TEMPLATE = """\
Translate the following Android app strings to {language_hints}.

App context:
{app_context}

Tone and Style Guide:
- Translations must be natural and fluent, as if written by a native speaker for a modern mobile app.
- Avoid overly literal or "robotic" translations. Prioritize user-friendliness and clarity.
- Use terminology commonly found in modern {language_hints} apps.
- If a term has multiple translations, prefer the one commonly used in the target locale.

Critical formatting rules:
1. DO NOT translate or alter any placeholders: %s, %d, %1$s, %2$d, etc.
2. Preserve HTML tags and their positions: <b>, <i>, <u>, <font color="...">.
3. Preserve special characters and escapes (\\n, \\t, \\r, etc.).
4. Do NOT change numbers, currency symbols, or date/time formats; translate words only.
5. Keep existing capitalization where meaningful (titles/buttons).
6. If you see ' this character always change with \\'
7. If you see & this character always change with &amp;

Output format rules:
- Return ONLY valid JSON with the same structure as input.
- Keys and nested structure must remain exactly as input.
- Output JSON only; no explanations, quotes, or extra text.

INPUT JSON:
{request_json}"""


class LLMProvider(Enum):
    """Supported LLM providers."""

    OPENAI = "openai"
    OPENROUTER = "openrouter"


@dataclass
class LLMConfig:
    """
    Configuration for LLM API access.

    Attributes:
        provider: The LLM provider to use (OpenAI or OpenRouter)
        api_key: API key for authentication
        model: Model identifier (e.g., "gpt-5-nano")
        connect_timeout: Seconds allowed to establish the connection
        max_time: Seconds allowed for the whole request
        max_retries: Retries performed by the SDK on transient failures
        site_url: Optional site URL for OpenRouter rankings
        site_name: Optional site name for OpenRouter rankings
    """

    provider: LLMProvider
    api_key: str
    model: str = DEFAULT_MODEL
    connect_timeout: float = API_CONNECT_TIMEOUT_SECONDS
    max_time: float = API_MAX_TIME_SECONDS
    max_retries: int = 0
    site_url: Optional[str] = None
    site_name: Optional[str] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        if isinstance(self.provider, str):
            try:
                self.provider = LLMProvider(self.provider.lower())
            except ValueError:
                raise ConfigurationError(f"Unsupported LLM provider: {self.provider}")

        if not self.api_key or not self.api_key.strip():
            raise ConfigurationError("API key is required")

        if not self.model:
            raise ConfigurationError("Model name is required")


def build_translation_prompts(request_json: str, app_context: str) -> List[Dict[str, str]]:
    """
    Build the chat messages for one translation batch.

    The top-level keys of the request are locale codes; they are spelled out
    as language names so the model does not have to guess regional variants.
    """
    try:
        locale_codes = list(json.loads(request_json).keys())
    except (ValueError, AttributeError):
        locale_codes = []

    language_hints = build_language_hints(locale_codes)
    user_prompt = USER_PROMPT_TEMPLATE.format(
        language_hints=language_hints,
        app_context=app_context or DEFAULT_APP_CONTEXT,
        request_json=request_json,
    )

    return [
        {"role": "system", "content": SYSTEM_RULES},
        {"role": "user", "content": user_prompt},
    ]


class LLMClient:
    """
    Client for interacting with LLM APIs.

    Supports both OpenAI and OpenRouter with a unified interface.
    Uses the OpenAI Python SDK as both providers are API-compatible.
    """

    # Provider-specific base URLs
    BASE_URLS = {
        LLMProvider.OPENAI: "https://api.openai.com/v1",
        LLMProvider.OPENROUTER: "https://openrouter.ai/api/v1",
    }

    def __init__(self, config: LLMConfig):
        self.config = config
        self.client = self._create_client()

        logger.info(
            f"Initialized LLM client with provider={config.provider.value}, "
            f"model={config.model}"
        )

    def _create_client(self):
        """
        Create and configure the OpenAI client for the selected provider.

        Raises:
            ImportError: If the OpenAI package is not installed
        """
        try:
            from openai import OpenAI
        except ImportError:
            logger.error(
                "OpenAI package not installed. Please install it using 'pip install openai'."
            )
            raise ImportError(
                "OpenAI package not installed. Run 'pip install openai' first."
            )

        base_url = self.BASE_URLS[self.config.provider]
        logger.debug(f"Creating OpenAI client with base_url={base_url}")

        return OpenAI(
            api_key=self.config.api_key,
            base_url=base_url,
            timeout=httpx.Timeout(
                self.config.max_time, connect=self.config.connect_timeout
            ),
            max_retries=self.config.max_retries,
        )

    def _get_extra_headers(self) -> Dict[str, str]:
        """Get the OpenRouter ranking headers, if configured."""
        if self.config.provider != LLMProvider.OPENROUTER:
            return {}

        headers = {}
        if self.config.site_url:
            headers["HTTP-Referer"] = self.config.site_url
        if self.config.site_name:
            headers["X-Title"] = self.config.site_name
        return headers

    def chat_completion_raw(self, messages: list) -> str:
        """
        Send a chat completion request and return the undecoded response body.

        Raises:
            TransportError: On connection errors, timeouts, non-success status
                            codes or an empty body
        """
        api_params = {
            "model": self.config.model,
            "messages": messages,
        }
        extra_headers = self._get_extra_headers()
        if extra_headers:
            api_params["extra_headers"] = extra_headers

        logger.debug(
            f"Sending chat completion request to {self.config.provider.value} "
            f"(model: {self.config.model})"
        )

        try:
            raw_response = self.client.chat.completions.with_raw_response.create(
                **api_params
            )
            body = raw_response.http_response.text
        except Exception as e:
            logger.error(f"Error calling {self.config.provider.value} API: {e}")
            raise TransportError(f"API request failed: {e}") from e

        if not body or not body.strip():
            raise TransportError("Empty response from API")

        return body


class ChatCompletionSender:
    """
    Translation sender backed by a chat completion API.

    Instances are callables taking the batch request JSON and returning the
    raw API response body, which is what the batch orchestrator expects.
    """

    def __init__(self, config: LLMConfig, app_context: str = DEFAULT_APP_CONTEXT, client: Optional[LLMClient] = None):
        self.config = config
        self.app_context = app_context
        self.client = client or LLMClient(config)

    def __call__(self, request_json: str) -> str:
        messages = build_translation_prompts(request_json, self.app_context)

        separator = "=" * PROMPT_SEPARATOR_LENGTH
        logger.debug(f"{separator}\nFull translation prompt:\n{separator}")
        logger.debug(messages[1]["content"])
        logger.debug(separator)

        return self.client.chat_completion_raw(messages)
