"""HTTP access to an OpenAI-compatible chat completions endpoint.

Used for both backends that need a language model: the vision model that
reads and translates a frame in one go, and the text translator that the
OCR backend hands its text to. Works against OpenAI, Gemini's OpenAI
compatibility layer, or a local Ollama (``http://localhost:11434/v1``).
"""

from __future__ import annotations

import logging

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_TIMEOUT_S = 30

TRANSLATION_TEMPERATURE = 0.3
TRANSLATION_MAX_TOKENS = 1000


class TranslatorError(RuntimeError):
    """Transport failure or unusable response from the model endpoint."""


class ChatClient:
    """Minimal chat completions client on top of requests."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_key: str = "",
        timeout: float = DEFAULT_TIMEOUT_S,
        session: requests.Session | None = None,
    ) -> None:
        # Avoid double slashes when joining paths
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._session = session or requests.Session()

    def complete(
        self,
        model: str,
        messages: list[dict],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Send one chat request and return the first choice's text."""
        payload: dict = {"model": model, "messages": messages}
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens

        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        url = f"{self.base_url}/chat/completions"
        try:
            response = self._session.post(
                url, json=payload, headers=headers, timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise TranslatorError(f"{url}: {e}") from e

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise TranslatorError(f"Malformed response from {url}") from e

        if content is None:
            return ""
        return content.strip() if isinstance(content, str) else str(content).strip()


# ---------------------------------------------------------------------------
# Text translation
# ---------------------------------------------------------------------------

# Targets whose output benefits from explicit tone/grammar guidance.
_TONE_GUIDED_PROMPTS: dict[str, str] = {
    "Vietnamese": (
        "You are a professional Vietnamese translator. Translate the following "
        "text to Vietnamese (Tiếng Việt).\n"
        "Preserve the original meaning, tone, and context as much as possible.\n"
        "Use proper Vietnamese grammar and natural expressions.\n"
        "If the text contains names, places, or technical terms, keep them unchanged."
    ),
}


def build_system_prompt(target_language: str) -> str:
    prompt = _TONE_GUIDED_PROMPTS.get(target_language)
    if prompt is not None:
        return prompt
    return (
        f"You are a professional translator. Translate the following text to "
        f"{target_language}.\n"
        "Preserve the original meaning, tone, and context as much as possible.\n"
        "Reply with ONLY the translated text."
    )


class LlmTranslator:
    """Text-only translation through a chat model."""

    def __init__(self, client: ChatClient, model: str) -> None:
        self._client = client
        self.model = model

    def translate(self, text: str, target_language: str) -> str:
        """Translate ``text``; raises TranslatorError, never returns ''."""
        logger.info("Translating to %s: %r", target_language, text[:120])
        translated = self._client.complete(
            self.model,
            [
                {"role": "system", "content": build_system_prompt(target_language)},
                {"role": "user", "content": text},
            ],
            temperature=TRANSLATION_TEMPERATURE,
            max_tokens=TRANSLATION_MAX_TOKENS,
        )
        if not translated:
            raise TranslatorError("Empty translation")
        return translated
