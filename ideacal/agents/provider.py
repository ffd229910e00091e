from __future__ import annotations

import os
from typing import Any, Optional, Protocol

import openai
from azure.identity import DefaultAzureCredential, get_bearer_token_provider
from openai import AzureOpenAI, OpenAI

from ideacal.agents.idea_prompts import SYSTEM_INSTRUCTIONS
from ideacal.specs.common.errors import ConfigurationError, ProviderTransientError


DEFAULT_PRIMARY_MODEL = os.getenv("IDEA_PRIMARY_MODEL", "gpt-4o")
DEFAULT_SECONDARY_MODEL = os.getenv("IDEA_SECONDARY_MODEL", "gpt-4o-mini")
DEFAULT_TEMPERATURE = float(os.getenv("IDEA_TEMPERATURE", "0.7"))
DEFAULT_MAX_OUTPUT_TOKENS = int(os.getenv("IDEA_MAX_OUTPUT_TOKENS", "1024"))
DEFAULT_TIMEOUT_SECONDS = float(os.getenv("GENERATION_TIMEOUT_SECONDS", "60"))

_COGNITIVE_SCOPE = "https://cognitiveservices.azure.com/.default"


class TextProvider(Protocol):
    def complete(
        self,
        *,
        prompt: str,
        model: str,
        temperature: float,
        max_output_tokens: int,
        timeout: float,
    ) -> str:
        """Return the raw model text or raise ProviderTransientError."""
        ...


def _build_client() -> Any:
    """Azure OpenAI when AZURE_OPENAI_ENDPOINT is set, OpenAI otherwise.

    SDK-level retries are off; GenerationClient owns the retry policy.
    """
    endpoint = os.getenv("AZURE_OPENAI_ENDPOINT")
    if endpoint:
        api_version = os.getenv("AZURE_OPENAI_API_VERSION", "2024-06-01")
        api_key = os.getenv("AZURE_OPENAI_API_KEY")
        if api_key:
            return AzureOpenAI(azure_endpoint=endpoint, api_key=api_key, api_version=api_version, max_retries=0)
        token_provider = get_bearer_token_provider(DefaultAzureCredential(), _COGNITIVE_SCOPE)
        return AzureOpenAI(
            azure_endpoint=endpoint,
            azure_ad_token_provider=token_provider,
            api_version=api_version,
            max_retries=0,
        )
    if not os.getenv("OPENAI_API_KEY"):
        raise ConfigurationError("Set AZURE_OPENAI_ENDPOINT or OPENAI_API_KEY to enable idea generation")
    return OpenAI(max_retries=0)


class OpenAITextProvider:
    """Thin wrapper around chat completions."""

    def __init__(self, client: Optional[Any] = None) -> None:
        self.client = client or _build_client()

    def complete(
        self,
        *,
        prompt: str,
        model: str,
        temperature: float = DEFAULT_TEMPERATURE,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> str:
        try:
            resp = self.client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": SYSTEM_INSTRUCTIONS},
                    {"role": "user", "content": prompt},
                ],
                temperature=float(temperature),
                max_tokens=int(max_output_tokens),
                timeout=timeout,
            )
        except openai.APIError as exc:
            raise ProviderTransientError(f"{type(exc).__name__}: {exc}", details={"model": model}) from exc
        if not resp.choices:
            return ""
        return (resp.choices[0].message.content or "").strip()
