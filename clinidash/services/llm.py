import asyncio
import logging

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from clinidash.config import (
    ANTHROPIC_API_KEY,
    LLM_MAX_TOKENS,
    LLM_MODEL,
    LLM_PROVIDER,
    LLM_TIMEOUT_SECONDS,
    OPENAI_API_KEY,
)

logger = logging.getLogger(__name__)


_DEFAULT_MODELS = {
    "anthropic": "claude-3-5-sonnet-20240620",
    "openai": "gpt-4o-mini",
}


class GenerativeServiceFailure(RuntimeError):
    """The text generation call failed, timed out or returned nothing."""


class LLMClient:
    """Single-turn / chat text completion over Anthropic or OpenAI.

    Every failure mode (missing provider, provider error, timeout, empty
    text) surfaces as ``GenerativeServiceFailure`` so callers have one
    exception to fall back on.
    """

    def __init__(self) -> None:
        provider = (LLM_PROVIDER or "auto").lower()
        if provider == "auto":
            if ANTHROPIC_API_KEY:
                provider = "anthropic"
            elif OPENAI_API_KEY:
                provider = "openai"
            else:
                provider = "none"
        self.provider = provider

        self._anthropic = AsyncAnthropic(api_key=ANTHROPIC_API_KEY) if ANTHROPIC_API_KEY else None
        self._openai = AsyncOpenAI(api_key=OPENAI_API_KEY) if OPENAI_API_KEY else None

    def available(self) -> bool:
        if self.provider == "anthropic":
            return self._anthropic is not None
        if self.provider == "openai":
            return self._openai is not None
        return False

    def model_name(self) -> str:
        if LLM_MODEL:
            return LLM_MODEL
        return _DEFAULT_MODELS.get(self.provider, "")

    async def _send(self, messages: list[dict], system: str | None, max_tokens: int) -> str:
        model = self.model_name()

        if self.provider == "anthropic":
            kwargs = {"model": model, "max_tokens": max_tokens, "messages": messages}
            if system:
                kwargs["system"] = system
            message = await self._anthropic.messages.create(**kwargs)
            raw = ""
            for block in message.content:
                if hasattr(block, "text"):
                    raw += block.text
            return raw

        full = [{"role": "system", "content": system}] if system else []
        full.extend(messages)
        response = await self._openai.chat.completions.create(
            model=model,
            messages=full,
            max_tokens=max_tokens,
        )
        return response.choices[0].message.content or ""

    async def chat(
        self,
        messages: list[dict],
        *,
        system: str | None = None,
        max_tokens: int | None = None,
        timeout: float | None = None,
    ) -> str:
        if not self.available():
            raise GenerativeServiceFailure("LLM provider unavailable")

        timeout = timeout or LLM_TIMEOUT_SECONDS
        try:
            raw = await asyncio.wait_for(
                self._send(messages, system, max_tokens or LLM_MAX_TOKENS),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            raise GenerativeServiceFailure(f"LLM call timed out after {timeout}s") from exc
        except Exception as exc:
            raise GenerativeServiceFailure(f"LLM call failed: {exc}") from exc

        if not raw or not raw.strip():
            raise GenerativeServiceFailure("LLM returned an empty response")
        logger.debug("LLM response received (%d chars)", len(raw))
        return raw

    async def complete(self, prompt: str, **kwargs) -> str:
        return await self.chat([{"role": "user", "content": prompt}], **kwargs)


_client: LLMClient | None = None


def get_llm_client() -> LLMClient:
    global _client
    if _client is None:
        _client = LLMClient()
    return _client
