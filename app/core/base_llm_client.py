import asyncio
from typing import Dict, Any, Optional, List

import httpx
from httpx import TimeoutException, HTTPStatusError

from app.core.exceptions import APIClientError, APITimeoutError
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


class BaseLLMClient:
    """HTTP client for OpenAI-compatible chat-completion APIs (OpenRouter).

    Handles retries with exponential backoff, timeouts and error logging.
    Client errors other than rate limiting are not retried.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model: str,
        timeout: int = 180,
        max_retries: int = 3,
        retry_delay: int = 2,
        app_title: Optional[str] = None,
    ):
        """Initialize the LLM client.

        Args:
            api_key: API key for authentication
            base_url: Chat completions URL
            model: Model identifier sent with every request
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts
            retry_delay: Base delay for exponential backoff
            app_title: Optional application name reported to OpenRouter
        """
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.app_title = app_title
        self.logger = LOGGER

    async def chat_completion(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.0,
        max_tokens: Optional[int] = None,
        json_mode: bool = True,
    ) -> str:
        """Send a chat completion request and return the assistant message text.

        Raises:
            APIClientError: If the call fails or the response has no choices
            APITimeoutError: If every attempt timed out
        """
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens:
            payload["max_tokens"] = max_tokens
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        response = await self.call_api(payload=payload)

        choices = response.get("choices") or []
        if not choices:
            self.logger.error(
                "Unexpected chat completion response format",
                extra={"keys": list(response.keys())}
            )
            raise APIClientError("Invalid response format from chat completion API")

        content = (choices[0].get("message") or {}).get("content") or ""
        if not content:
            self.logger.warning("Empty chat completion response", extra={"model": self.model})
        return content

    async def call_api(
        self,
        payload: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """POST to the API with retry logic.

        Args:
            payload: JSON payload
            headers: Additional headers

        Returns:
            Parsed JSON response

        Raises:
            APIClientError: If the API call fails after retries
            APITimeoutError: If the API call times out after retries
        """
        url = self.base_url

        default_headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self.app_title:
            default_headers["X-Title"] = self.app_title
        if headers:
            default_headers.update(headers)

        self.logger.debug(
            f"Calling LLM API: {url}",
            extra={"model": self.model, "timeout": self.timeout}
        )

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for attempt in range(self.max_retries):
                try:
                    response = await client.post(url, headers=default_headers, json=payload)
                    response.raise_for_status()
                    return response.json()

                except HTTPStatusError as e:
                    await self._handle_http_error(e, attempt, url)

                except TimeoutException as e:
                    await self._handle_timeout_error(e, attempt, url)

                except (httpx.HTTPError, ValueError) as e:
                    await self._handle_generic_error(e, attempt, url)

        raise APIClientError(f"Failed to call API {url} after {self.max_retries} attempts")

    async def _handle_http_error(self, error: HTTPStatusError, attempt: int, url: str):
        """Handle HTTP status errors."""
        status_code = error.response.status_code
        error_body = error.response.text

        self.logger.warning(
            f"API HTTP error (Attempt {attempt + 1}/{self.max_retries})",
            extra={
                "url": url,
                "status_code": status_code,
                "error_body": error_body[:500]
            }
        )

        # Don't retry on client errors (4xx) unless it's rate limiting (429)
        if 400 <= status_code < 500 and status_code != 429:
            raise APIClientError(f"API Client Error {status_code}: {error_body}") from error

        if attempt < self.max_retries - 1:
            await self._wait_before_retry(attempt)
        else:
            raise APIClientError(f"API HTTP Error {status_code} after retries") from error

    async def _handle_timeout_error(self, error: TimeoutException, attempt: int, url: str):
        """Handle timeout errors."""
        self.logger.warning(
            f"API Timeout (Attempt {attempt + 1}/{self.max_retries})",
            extra={"url": url}
        )

        if attempt < self.max_retries - 1:
            await self._wait_before_retry(attempt)
        else:
            raise APITimeoutError(f"API Timeout after {self.max_retries} attempts") from error

    async def _handle_generic_error(self, error: Exception, attempt: int, url: str):
        """Handle transport and decoding errors."""
        self.logger.warning(
            f"API Error (Attempt {attempt + 1}/{self.max_retries})",
            extra={"url": url, "error": str(error)}
        )

        if attempt < self.max_retries - 1:
            await self._wait_before_retry(attempt)
        else:
            raise APIClientError(f"API Error: {str(error)}") from error

    async def _wait_before_retry(self, attempt: int):
        """Exponential backoff wait."""
        wait_time = self.retry_delay * (2 ** attempt)
        await asyncio.sleep(wait_time)
