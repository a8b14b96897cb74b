"""HTTP transport shared by the chat-completions providers."""

import asyncio
from typing import Any, Dict, Optional

import httpx

from estate_intake.core.exceptions import APIClientError, APITimeoutError
from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)

RETRYABLE_STATUS_CODES = frozenset({408, 409, 429, 500, 502, 503, 504})


class BaseLLMClient:
    """POSTs JSON to a provider endpoint with bounded retries.

    Transport failures (timeouts, connection errors, throttling and 5xx
    answers) are retried with exponential backoff. Other 4xx answers fail at
    once. ``max_retries`` is the total number of attempts.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: int = 60,
        max_retries: int = 1,
        retry_delay: float = 2.0,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.logger = LOGGER

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    async def call_api(
        self,
        endpoint: str = "",
        payload: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Send ``payload`` and return the decoded JSON answer.

        Args:
            endpoint: Path appended to ``base_url``
            payload: JSON body
            headers: Headers added to the bearer-token defaults

        Returns:
            Decoded JSON response body

        Raises:
            APITimeoutError: If the last attempt timed out
            APIClientError: On a non-retryable answer or when attempts run out
        """
        url = f"{self.base_url}{endpoint}" if endpoint else self.base_url
        request_headers = self._headers(headers)

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for attempt in range(1, self.max_retries + 1):
                last_attempt = attempt == self.max_retries
                try:
                    response = await client.post(url, headers=request_headers, json=payload)
                    response.raise_for_status()
                    return response.json()

                except httpx.HTTPStatusError as e:
                    status_code = e.response.status_code
                    body = e.response.text[:500]
                    self.logger.warning(
                        f"Model API answered {status_code} (attempt {attempt}/{self.max_retries})",
                        extra={"url": url, "status_code": status_code, "error_body": body},
                    )
                    if status_code not in RETRYABLE_STATUS_CODES:
                        raise APIClientError(f"Model API error {status_code}: {body}", original_error=e)
                    if last_attempt:
                        raise APIClientError(
                            f"Model API error {status_code} after {self.max_retries} attempts",
                            original_error=e,
                        )

                except httpx.TimeoutException as e:
                    self.logger.warning(
                        f"Model API timed out (attempt {attempt}/{self.max_retries})",
                        extra={"url": url},
                    )
                    if last_attempt:
                        raise APITimeoutError(
                            f"Model API timed out after {self.max_retries} attempts", original_error=e
                        )

                except (httpx.HTTPError, ValueError) as e:
                    self.logger.warning(
                        f"Model API call failed (attempt {attempt}/{self.max_retries}): {e}",
                        extra={"url": url},
                    )
                    if last_attempt:
                        raise APIClientError(f"Model API call failed: {e}", original_error=e)

                await asyncio.sleep(self.retry_delay * (2 ** (attempt - 1)))

        raise APIClientError(f"Model API call to {url} did not complete")
