import logging

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from fhircracker.config import (
    ANTHROPIC_API_KEY,
    LLM_MODEL,
    LLM_PROVIDER,
    LLM_TIMEOUT_SECONDS,
    NVIDIA_API_KEY,
    NVIDIA_BASE_URL,
    OPENAI_API_KEY,
)

logger = logging.getLogger(__name__)


_DEFAULT_MODELS = {
    "nvidia": "meta/llama-3.1-405b-instruct",
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-sonnet-20240620",
}


class LLMEmptyResponse(RuntimeError):
    """The provider answered but returned no completion."""


class LLMClient:
    def __init__(self) -> None:
        provider = (LLM_PROVIDER or "auto").lower()
        if provider == "auto":
            if NVIDIA_API_KEY:
                provider = "nvidia"
            elif ANTHROPIC_API_KEY:
                provider = "anthropic"
            elif OPENAI_API_KEY:
                provider = "openai"
            else:
                provider = "dummy"
        self.provider = provider

        self._openai: AsyncOpenAI | None = None
        self._anthropic: AsyncAnthropic | None = None
        if provider == "nvidia" and NVIDIA_API_KEY:
            # NVIDIA's hosted models speak the OpenAI chat-completions protocol.
            self._openai = AsyncOpenAI(
                api_key=NVIDIA_API_KEY,
                base_url=NVIDIA_BASE_URL,
                timeout=LLM_TIMEOUT_SECONDS,
            )
        elif provider == "openai" and OPENAI_API_KEY:
            self._openai = AsyncOpenAI(api_key=OPENAI_API_KEY, timeout=LLM_TIMEOUT_SECONDS)
        elif provider == "anthropic" and ANTHROPIC_API_KEY:
            self._anthropic = AsyncAnthropic(api_key=ANTHROPIC_API_KEY, timeout=LLM_TIMEOUT_SECONDS)

    def available(self) -> bool:
        if self.provider == "anthropic":
            return self._anthropic is not None
        if self.provider in ("nvidia", "openai"):
            return self._openai is not None
        return False

    def model_name(self) -> str:
        return LLM_MODEL or _DEFAULT_MODELS.get(self.provider, "")

    async def complete(
        self,
        *,
        system: str,
        user: str,
        max_tokens: int = 1000,
        temperature: float = 0.1,
        top_p: float | None = None,
    ) -> str:
        """Run a single-turn chat completion and return the reply text."""
        if not self.available():
            raise RuntimeError("LLM provider unavailable")

        model = self.model_name()
        logger.info("Calling %s with model: %s", self.provider, model)

        if self.provider == "anthropic":
            kwargs = {"system": system} if system else {}
            message = await self._anthropic.messages.create(
                model=model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[{"role": "user", "content": user}],
                **kwargs,
            )
            raw = ""
            for block in message.content or []:
                if hasattr(block, "text"):
                    raw += block.text
            if not raw:
                raise LLMEmptyResponse("Empty response from Anthropic")
            return raw

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": user})

        params = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "stream": False,
        }
        if top_p is not None:
            params["top_p"] = top_p

        response = await self._openai.chat.completions.create(**params)
        if not response.choices:
            raise LLMEmptyResponse(f"No choices returned by {self.provider}")
        message = response.choices[0].message
        if message is None:
            raise LLMEmptyResponse(f"No message returned by {self.provider}")
        return message.content or ""


_client: LLMClient | None = None


def get_llm_client() -> LLMClient:
    global _client
    if _client is None:
        _client = LLMClient()
    return _client
