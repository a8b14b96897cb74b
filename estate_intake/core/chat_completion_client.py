"""OpenAI-compatible chat-completions client (OpenAI, OpenRouter)."""

from typing import Any, Dict, Optional

from estate_intake.core.base_llm_client import BaseLLMClient
from estate_intake.core.exceptions import APIClientError
from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)


class ChatCompletionClient:
    """Wrapper for an OpenAI-compatible chat-completions API.
    
    Sends a system/user message pair and returns the assistant message text.
    The text is expected to be a JSON object but is returned untouched; callers
    are responsible for validating its shape.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1/chat/completions",
        timeout: int = 60,
        max_retries: int = 1,
    ):
        """Initialize chat-completions client.

        Args:
            api_key: Provider API key
            model: Model name to use (e.g., "gpt-4o-mini")
            base_url: Full chat-completions URL
            timeout: Request timeout in seconds
            max_retries: Maximum transport attempts per call
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        
        self.client = BaseLLMClient(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries
        )
        
        LOGGER.info(f"Initialized chat-completions client with model {self.model}")

    async def generate_content(
        self,
        contents: str,
        system_instruction: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Generate content for a system/user message pair.

        Args:
            contents: User message
            system_instruction: Optional system message
            generation_config: Optional generation config (temperature,
                max_output_tokens, response_mime_type)

        Returns:
            Generated text response ("" when the model returned nothing)

        Raises:
            APIClientError: If generation fails
        """
        messages = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": contents})
        
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": 0.0,
        }
        
        if generation_config:
            if "temperature" in generation_config:
                payload["temperature"] = generation_config["temperature"]
            if "max_output_tokens" in generation_config:
                payload["max_tokens"] = generation_config["max_output_tokens"]
            if generation_config.get("response_mime_type") == "application/json":
                payload["response_format"] = {"type": "json_object"}
        
        try:
            response = await self.client.call_api(payload=payload)
        except APIClientError:
            raise
        except Exception as e:
            LOGGER.error(f"Chat completion failed: {e}", exc_info=True)
            raise APIClientError(f"Chat completion failed: {e}", original_error=e)

        choices = response.get("choices") or []
        if not choices:
            LOGGER.error(f"Unexpected chat completion response format: {response}")
            raise APIClientError("Invalid response format from chat completion API")

        content = (choices[0].get("message") or {}).get("content") or ""
        if not content:
            LOGGER.warning("Empty response from chat completion API")
        return content
