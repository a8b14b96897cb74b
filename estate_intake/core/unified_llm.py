"""Unified LLM client factory and manager.

Provides one interface over the supported chat-completions providers with
an optional secondary provider used when the primary one fails.
"""

from enum import Enum
from typing import Any, Dict, Optional, Protocol, Union

from estate_intake.core.chat_completion_client import ChatCompletionClient
from estate_intake.core.exceptions import APIClientError, ConfigurationError
from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)

PROVIDER_URLS = {
    "openai": "https://api.openai.com/v1/chat/completions",
    "openrouter": "https://openrouter.ai/api/v1/chat/completions",
}


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    OPENROUTER = "openrouter"


class LLMClient(Protocol):
    """Anything that can answer a system/user message pair with text."""

    async def generate_content(
        self,
        contents: str,
        system_instruction: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> str:
        ...


class UnifiedLLMClient:
    """Unified LLM client that wraps different providers.
    
    Provides a consistent interface regardless of the underlying provider.
    """

    def __init__(
        self,
        provider: Union[str, LLMProvider],
        api_key: str,
        model: str,
        base_url: Optional[str] = None,
        timeout: int = 60,
        max_retries: int = 1,
        fallback_client: Optional[LLMClient] = None,
    ):
        """Initialize unified LLM client.

        Args:
            provider: LLM provider to use ("openai" or "openrouter")
            api_key: API key for the provider
            model: Model name to use
            base_url: Optional chat-completions URL override
            timeout: Request timeout in seconds
            max_retries: Maximum transport attempts
            fallback_client: Optional client tried when the primary fails
        """
        self.provider = LLMProvider(provider)
        self.model = model
        self.client = ChatCompletionClient(
            api_key=api_key,
            model=model,
            base_url=base_url or PROVIDER_URLS[self.provider.value],
            timeout=timeout,
            max_retries=max_retries,
        )
        self.fallback_client = fallback_client
        LOGGER.info(
            f"Initialized unified LLM with {self.provider.value} provider (model: {model})",
            extra={"fallback": fallback_client is not None},
        )

    async def generate_content(
        self,
        contents: str,
        system_instruction: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Generate content using the configured LLM provider.

        Raises:
            APIClientError: If generation fails
        """
        try:
            return await self.client.generate_content(
                contents=contents,
                system_instruction=system_instruction,
                generation_config=generation_config
            )
        except Exception as e:
            if not self.fallback_client:
                raise
            LOGGER.warning(
                f"Primary provider ({self.provider.value}) failed, attempting fallback: {e}"
            )
            try:
                return await self.fallback_client.generate_content(
                    contents=contents,
                    system_instruction=system_instruction,
                    generation_config=generation_config
                )
            except Exception as fallback_error:
                LOGGER.error(f"Fallback provider also failed: {fallback_error}")
                raise APIClientError(
                    f"Both primary ({self.provider.value}) and fallback providers failed"
                ) from fallback_error


def create_llm_client(llm_settings) -> UnifiedLLMClient:
    """Factory function to create a unified LLM client from settings.

    Args:
        llm_settings: ``LLMSettings`` section of the application settings

    Returns:
        UnifiedLLMClient: Configured client

    Raises:
        ConfigurationError: If the provider name is not supported
    """
    try:
        provider = LLMProvider(llm_settings.provider)
    except ValueError as e:
        raise ConfigurationError(f"Unsupported LLM provider: {llm_settings.provider}", original_error=e)
    fallback = None

    if provider == LLMProvider.OPENAI:
        api_key, model, base_url = (
            llm_settings.openai_api_key,
            llm_settings.openai_model,
            llm_settings.openai_api_url,
        )
        if llm_settings.enable_fallback and llm_settings.openrouter_api_key:
            fallback = ChatCompletionClient(
                api_key=llm_settings.openrouter_api_key,
                model=llm_settings.openrouter_model,
                base_url=llm_settings.openrouter_api_url,
                timeout=llm_settings.timeout,
                max_retries=llm_settings.max_retries,
            )
    else:
        api_key, model, base_url = (
            llm_settings.openrouter_api_key,
            llm_settings.openrouter_model,
            llm_settings.openrouter_api_url,
        )
        if llm_settings.enable_fallback and llm_settings.openai_api_key:
            fallback = ChatCompletionClient(
                api_key=llm_settings.openai_api_key,
                model=llm_settings.openai_model,
                base_url=llm_settings.openai_api_url,
                timeout=llm_settings.timeout,
                max_retries=llm_settings.max_retries,
            )

    return UnifiedLLMClient(
        provider=provider,
        api_key=api_key,
        model=model,
        base_url=base_url,
        timeout=llm_settings.timeout,
        max_retries=llm_settings.max_retries,
        fallback_client=fallback,
    )
