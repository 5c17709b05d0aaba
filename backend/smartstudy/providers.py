from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Sequence, Tuple

from .settings import DEFAULT_CLAUDE_MODEL, DEFAULT_GEMINI_MODEL, DEFAULT_OPENAI_MODEL, Settings

logger = logging.getLogger("smartstudy.providers")

SUPPORTED_PROVIDERS = ("gemini", "openai", "claude")
DEFAULT_MODELS = {
    "gemini": DEFAULT_GEMINI_MODEL,
    "openai": DEFAULT_OPENAI_MODEL,
    "claude": DEFAULT_CLAUDE_MODEL,
}
CLAUDE_MAX_TOKENS = 2048


# ---------------------------------------------------------------------------
# SDK adapters
# ---------------------------------------------------------------------------
def _build_sdk_client(provider: str, api_key: str) -> Any:
    if provider == "gemini":
        try:
            from google import genai  # type: ignore
        except Exception as e:
            raise RuntimeError("google-genai package not installed. Run: pip install google-genai") from e
        return genai.Client(api_key=api_key)

    if provider == "openai":
        try:
            from openai import OpenAI  # type: ignore
        except Exception as e:
            raise RuntimeError("openai package not installed. Run: pip install openai") from e
        return OpenAI(api_key=api_key)

    if provider == "claude":
        try:
            import anthropic  # type: ignore
        except Exception as e:
            raise RuntimeError("anthropic package not installed. Run: pip install anthropic") from e
        return anthropic.Anthropic(api_key=api_key)

    raise RuntimeError(f"Unknown AI provider: {provider}")


class ModelClient:
    """
    One provider SDK client bound to one credential. `generate` sends the
    prompt as the only user turn and returns the raw SDK response; use
    `extract_response_text` to get at the text.
    """

    def __init__(self, provider: str, api_key: str, model: Optional[str] = None) -> None:
        if provider not in SUPPORTED_PROVIDERS:
            raise RuntimeError(f"Unknown AI provider: {provider}")
        self.provider = provider
        self.api_key = api_key
        self.model = (model or DEFAULT_MODELS[provider]).strip()
        self._sdk: Any = None

    @property
    def sdk(self) -> Any:
        if self._sdk is None:
            self._sdk = _build_sdk_client(self.provider, self.api_key)
        return self._sdk

    def generate(self, prompt: str) -> Any:
        if self.provider == "gemini":
            return self.sdk.models.generate_content(
                model=self.model,
                contents=[{"role": "user", "parts": [{"text": prompt}]}],
            )
        if self.provider == "openai":
            return self.sdk.responses.create(
                model=self.model,
                input=[{"role": "user", "content": prompt}],
            )
        return self.sdk.messages.create(
            model=self.model,
            max_tokens=CLAUDE_MAX_TOKENS,
            messages=[{"role": "user", "content": prompt}],
        )


class ModelClientCache:
    """Holds at most one ModelClient, rebuilt only when provider or credential changes."""

    def __init__(self, factory: Callable[[str, str, Optional[str]], ModelClient] = ModelClient) -> None:
        self._factory = factory
        self._client: Optional[ModelClient] = None
        self._key: Optional[Tuple[str, str]] = None

    def client_for(self, provider: str, api_key: Optional[str], model: Optional[str] = None) -> Optional[ModelClient]:
        key = (api_key or "").strip()
        if not key:
            return None
        if self._client is None or self._key != (provider, key):
            logger.info("ai_client_created provider=%s", provider)
            self._client = self._factory(provider, key, model)
            self._key = (provider, key)
        if model:
            self._client.model = model
        return self._client

    def from_settings(self, settings: Settings) -> Optional[ModelClient]:
        return self.client_for(settings.ai_provider, settings.ai_credential(), settings.ai_model())


# ---------------------------------------------------------------------------
# Response text extraction
# ---------------------------------------------------------------------------
def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    try:
        return getattr(obj, name, None)
    except (AttributeError, ValueError):
        # Some SDK properties raise when the candidate was blocked.
        return None


def _first(items: Any) -> Any:
    if isinstance(items, (list, tuple)) and items:
        return items[0]
    return None


def _non_empty(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def text_from_accessor(response: Any) -> Optional[str]:
    accessor = _field(response, "text")
    if not callable(accessor):
        return None
    try:
        return _non_empty(accessor())
    except Exception as e:
        logger.debug("text_accessor_failed error=%s", e)
        return None


def text_from_string_fields(response: Any) -> Optional[str]:
    for name in ("text", "output_text", "outputText"):
        value = _non_empty(_field(response, name))
        if value:
            return value
    return None


def text_from_candidates(response: Any) -> Optional[str]:
    candidates = _field(response, "candidates") or _field(_field(response, "response"), "candidates")
    candidate = _first(candidates)
    if candidate is None:
        return None

    direct = _non_empty(_field(candidate, "output_text"))
    if direct:
        return direct

    for part in _field(_field(candidate, "content"), "parts") or []:
        value = _non_empty(_field(part, "text"))
        if value:
            return value
    return None


def text_from_content_blocks(response: Any) -> Optional[str]:
    # Anthropic messages: content=[{type: text, text}]
    for block in _field(response, "content") or []:
        if _field(block, "type") == "text":
            value = _non_empty(_field(block, "text"))
            if value:
                return value

    # OpenAI responses: output=[{content: [{type: output_text, text}]}]
    for item in _field(response, "output") or []:
        for c in _field(item, "content") or []:
            if _field(c, "type") == "output_text":
                value = _non_empty(_field(c, "text"))
                if value:
                    return value
    return None


RESPONSE_TEXT_STRATEGIES: Sequence[Callable[[Any], Optional[str]]] = (
    text_from_accessor,
    text_from_string_fields,
    text_from_candidates,
    text_from_content_blocks,
)


def extract_response_text(
    response: Any,
    strategies: Sequence[Callable[[Any], Optional[str]]] = RESPONSE_TEXT_STRATEGIES,
) -> Optional[str]:
    if response is None:
        return None
    for strategy in strategies:
        text = strategy(response)
        if text:
            return text
    return None
