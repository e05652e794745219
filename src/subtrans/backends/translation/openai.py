"""OpenAI chat-completions provider.

Unlike the other providers this one can use conversational context: the
last few translated subtitle lines are replayed as prior turns so pronouns
and tone stay consistent from line to line. The session request cap is
enforced by the provider chain, not here.
"""

from ...errors import ProviderFailed
from ..base import Language, TranslationBackend, TranslationBackendInfo
from .http import request_json

SYSTEM_PROMPT = (
    "You translate video game subtitles from {source} to {target}. "
    "Reply with the translation only, without quotes or notes. "
    "Keep names untranslated and preserve the speaker's tone."
)


def _language_name(code: str) -> str:
    try:
        return Language.from_code(code).display_name
    except ValueError:
        return code


def build_messages(
    text: str,
    source_language: str,
    target_language: str,
    history: list[tuple[str, str]] | None = None,
    game_context: str = "",
) -> list[dict]:
    """Build the chat message list for one request.

    Args:
        text: Line to translate.
        source_language: ISO code of the source language.
        target_language: ISO code of the target language.
        history: Previous (original, translated) pairs, oldest first.
        game_context: Free-text hint appended to the system prompt.

    Returns:
        A new list of message dicts; nothing is shared between calls.
    """
    system = SYSTEM_PROMPT.format(
        source=_language_name(source_language),
        target=_language_name(target_language),
    )
    if game_context.strip():
        system = f"{system}\nGame context: {game_context.strip()}"

    messages = [{"role": "system", "content": system}]
    for original, translated in history or []:
        messages.append({"role": "user", "content": original})
        messages.append({"role": "assistant", "content": translated})
    messages.append({"role": "user", "content": text})
    return messages


class OpenAITranslationBackend(TranslationBackend):
    """Translates with an OpenAI chat model."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        temperature: float = 0.3,
        max_tokens: int = 1024,
        game_context: str = "",
        timeout: float = 30.0,
    ):
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._game_context = game_context
        self._timeout = timeout

    @classmethod
    def from_config(cls, config) -> "OpenAITranslationBackend":
        openai = config.openai
        return cls(
            openai.api_key,
            model=openai.model,
            base_url=openai.base_url,
            temperature=openai.temperature,
            max_tokens=openai.max_tokens,
            game_context=openai.game_context,
            timeout=max(config.translation.timeout_secs, 30.0),
        )

    @classmethod
    def get_info(cls) -> TranslationBackendInfo:
        return TranslationBackendInfo(
            id="openai",
            name="OpenAI",
            requires_key=True,
            description="Chat model with subtitle context; capped per session",
        )

    def _payload(self, messages: list[dict]) -> dict:
        payload = {"model": self._model, "messages": messages}
        # Reasoning models reject temperature and use max_completion_tokens
        if self._model.startswith(("gpt-5", "o1", "o3", "o4")):
            payload["max_completion_tokens"] = self._max_tokens
        else:
            payload["temperature"] = self._temperature
            payload["max_tokens"] = self._max_tokens
        return payload

    def translate(self, text, source_language, target_language, history=None) -> str:
        if not self._api_key:
            raise ProviderFailed("openai", "no API key configured")

        messages = build_messages(
            text,
            source_language,
            target_language,
            history=history,
            game_context=self._game_context,
        )

        data = request_json(
            "openai",
            "POST",
            f"{self._base_url}/chat/completions",
            timeout=self._timeout,
            headers={"Authorization": f"Bearer {self._api_key}"},
            json=self._payload(messages),
        )

        try:
            translated = data["choices"][0]["message"]["content"]
        except (IndexError, KeyError, TypeError) as e:
            raise ProviderFailed("openai", "unexpected response shape") from e

        if not translated or not translated.strip():
            raise ProviderFailed("openai", "empty translation")
        return translated.strip()
