"""
Completion providers

Every provider satisfies one contract:
    complete(messages, max_tokens, temperature) -> CompletionResult

Calls go through LiteLLM, which normalizes the OpenAI-, Anthropic- and
DeepSeek-shaped APIs to one response format. The registry is built once at
startup from whichever API keys are configured, cheapest provider first, and
falls through to the next provider when one fails.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional

import litellm

from docuchat.config import settings
from docuchat.core.exceptions import UpstreamProviderError

# Drop parameters a provider does not support instead of failing
litellm.drop_params = True

logger = logging.getLogger(__name__)


@dataclass
class CompletionResult:
    text: str
    input_tokens: int = 0
    output_tokens: int = 0
    provider: str = ""
    model: str = ""


class CompletionProvider(ABC):
    """A chat-completion endpoint"""

    name = "llm"

    @abstractmethod
    async def complete(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int,
        temperature: float = 0.7,
    ) -> CompletionResult:
        """
        Run one completion

        Raises:
            UpstreamProviderError: the call failed or returned no content
        """
        pass


class LiteLLMProvider(CompletionProvider):
    """Completion through LiteLLM for one provider/model pair"""

    def __init__(self, name: str, model: str, api_key: str, timeout: int = None, api_base: Optional[str] = None):
        self.name = name
        self.model = model
        self.api_key = api_key
        self.timeout = timeout or settings.LLM_TIMEOUT
        self.api_base = api_base

    async def complete(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int,
        temperature: float = 0.7,
    ) -> CompletionResult:
        kwargs = {
            "model": self.model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "api_key": self.api_key,
            "timeout": self.timeout,
        }
        if self.api_base:
            kwargs["api_base"] = self.api_base

        try:
            response = await litellm.acompletion(**kwargs)
        except Exception as e:
            status_code = getattr(e, "status_code", None)
            logger.error(f"{self.name} completion failed (status={status_code}): {e}")
            raise UpstreamProviderError(self.name, f"{self.name} completion failed: {e}", status_code=status_code) from e

        text = response.choices[0].message.content
        if not text:
            raise UpstreamProviderError(self.name, f"{self.name} returned an empty completion")

        usage = getattr(response, "usage", None)
        return CompletionResult(
            text=text.strip(),
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            provider=self.name,
            model=self.model,
        )


def configured_providers() -> List[CompletionProvider]:
    """Providers with an API key set, in preference order (cheapest first)"""
    candidates = [
        ("deepseek", settings.DEEPSEEK_MODEL, settings.DEEPSEEK_API_KEY),
        ("anthropic", settings.ANTHROPIC_MODEL, settings.ANTHROPIC_API_KEY),
        ("openai", settings.OPENAI_CHAT_MODEL, settings.OPENAI_API_KEY),
    ]
    return [
        LiteLLMProvider(name, model, api_key)
        for name, model, api_key in candidates
        if api_key
    ]


class ProviderRegistry(CompletionProvider):
    """
    Prioritized list of completion providers

    complete() tries each provider in order and returns the first success.
    """

    name = "registry"

    def __init__(self, providers: Optional[List[CompletionProvider]] = None):
        self.providers = configured_providers() if providers is None else list(providers)
        if self.providers:
            logger.info(f"Completion providers: {', '.join(p.name for p in self.providers)}")
        else:
            logger.warning("No completion provider API key configured")

    @property
    def names(self) -> List[str]:
        return [provider.name for provider in self.providers]

    async def complete(
        self,
        messages: List[Dict[str, str]],
        max_tokens: int,
        temperature: float = 0.7,
    ) -> CompletionResult:
        if not self.providers:
            raise UpstreamProviderError("llm", "No completion provider is configured")

        last_error = None
        for provider in self.providers:
            try:
                return await provider.complete(messages, max_tokens=max_tokens, temperature=temperature)
            except UpstreamProviderError as e:
                logger.warning(f"Provider {provider.name} failed, trying next: {e.message}")
                last_error = e

        raise last_error
