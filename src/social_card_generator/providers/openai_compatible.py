"""Provider for self-hosted servers exposing an OpenAI-compatible API.

Works with LM Studio, vLLM, llama.cpp server, LocalAI and similar services
that accept ``POST {base_url}/chat/completions``.
"""

import time
from typing import Any

import httpx

from social_card_generator.cancellation import (
    CancellationToken,
    raise_if_cancelled,
    run_cancellable,
)
from social_card_generator.error_codes import ErrorCode
from social_card_generator.exceptions import (
    CancellationError,
    ConfigurationError,
    ModelNotFoundError,
    ProviderAuthenticationError,
    ProviderConnectionError,
    ProviderError,
    ProviderTimeoutError,
)
from social_card_generator.models import ProviderHandle, ProviderKind
from social_card_generator.utils.logging import get_logger

from .base import BaseProvider, ChunkCallback

logger = get_logger(__name__)

DEFAULT_API_KEY = "not-needed"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 4096

_DNS_FAILURE_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo",
    "temporary failure in name resolution",
    "no address associated",
)


def _is_dns_failure(error: Exception) -> bool:
    text = str(error).lower()
    return any(marker in text for marker in _DNS_FAILURE_MARKERS)


class OpenAICompatibleProvider(BaseProvider):
    """Single non-streaming chat completion per prompt.

    Configuration:
        base_url: API root, e.g. http://localhost:1234/v1
        model_name: Model identifier the server expects
        api_key: Bearer token (default: "not-needed")
        timeout: Request timeout in seconds (default: 300.0)
        temperature: Sampling temperature (default: 0.7)
        max_tokens: Completion token limit (default: 4096)
    """

    def __init__(
        self,
        base_url: str,
        model_name: str,
        api_key: str = "",
        timeout: float = 300.0,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not base_url or not base_url.strip():
            raise ConfigurationError(
                "OpenAI-Compatible base URL is not configured.",
                suggestion="Set openai_compatible_base_url (e.g. http://localhost:1234/v1)",
                error_code=ErrorCode.CFG_MISSING_KEY.value,
                context={"key": "openai_compatible_base_url"},
            )
        if not model_name or not model_name.strip():
            raise ConfigurationError(
                "OpenAI-Compatible model name is not configured.",
                suggestion="Set openai_compatible_model_name to a model the server serves",
                error_code=ErrorCode.CFG_MISSING_KEY.value,
                context={"key": "openai_compatible_model_name"},
            )

        self.base_url = base_url.strip().rstrip("/")
        self.model_name = model_name.strip()
        self.api_key = api_key or DEFAULT_API_KEY
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._transport = transport

        handle = ProviderHandle(
            kind=ProviderKind.OPENAI_COMPATIBLE,
            identifier=self.model_name,
            display_name=f"OpenAI-Compatible: {self.model_name}",
        )
        super().__init__(
            handle,
            base_url=self.base_url,
            model_name=self.model_name,
            api_key=self.api_key,
            timeout=timeout,
        )

    def _client(self, timeout: float | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(timeout or self.timeout),
            transport=self._transport,
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    async def _post_completion(self, payload: dict[str, Any]) -> dict[str, Any]:
        async with self._client() as client:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers=self._headers(),
            )
            response.raise_for_status()
            result: dict[str, Any] = response.json()
            return result

    async def execute(
        self,
        prompt: str,
        cancellation: CancellationToken | None = None,
        on_chunk: ChunkCallback | None = None,
    ) -> str:
        raise_if_cancelled(cancellation)

        payload = {
            "model": self.model_name,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        logger.info(
            "openai_compatible_request",
            base_url=self.base_url,
            model=self.model_name,
            prompt_length=len(prompt),
        )
        request_start = time.perf_counter()

        try:
            result = await run_cancellable(self._post_completion(payload), cancellation)
        except CancellationError:
            logger.info("openai_compatible_cancelled", model=self.model_name)
            raise
        except httpx.HTTPStatusError as e:
            raise self._translate_status_error(e) from e
        except httpx.ConnectError as e:
            raise self._translate_connect_error(e) from e
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(
                f"OpenAI-Compatible API error: request timed out after {self.timeout}s",
                error_code=ErrorCode.PRV_TIMEOUT.value,
                context={"base_url": self.base_url, "model": self.model_name},
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderError(
                f"OpenAI-Compatible API error: {e}",
                error_code=ErrorCode.PRV_HTTP_ERROR.value,
                context={"base_url": self.base_url, "model": self.model_name},
            ) from e

        content = ""
        choices = result.get("choices") or []
        if choices:
            content = (choices[0].get("message") or {}).get("content") or ""
        if not content:
            raise ProviderError(
                "OpenAI-Compatible API error: No content in response",
                error_code=ErrorCode.PRV_EMPTY_COMPLETION.value,
                context={"model": self.model_name},
            )

        logger.info(
            "openai_compatible_completed",
            model=self.model_name,
            response_length=len(content),
            tokens_used=(result.get("usage") or {}).get("total_tokens", 0),
            request_duration=round(time.perf_counter() - request_start, 2),
        )
        return content

    def _translate_status_error(self, error: httpx.HTTPStatusError) -> ProviderError:
        status = error.response.status_code
        logger.error(
            "openai_compatible_http_error",
            status_code=status,
            response_text=error.response.text[:500],
        )
        if status == 401:
            return ProviderAuthenticationError(
                "Invalid API key. Please check your configuration.",
                error_code=ErrorCode.PRV_AUTH_FAILED.value,
                context={"base_url": self.base_url},
            )
        if status == 404:
            return ModelNotFoundError(
                f'Model "{self.model_name}" not found. '
                "Please check your model name configuration.",
                error_code=ErrorCode.PRV_MODEL_NOT_FOUND.value,
                context={"model": self.model_name},
            )
        return ProviderError(
            f"OpenAI-Compatible API error: HTTP {status}: {error.response.text[:200]}",
            error_code=ErrorCode.PRV_HTTP_ERROR.value,
            context={"status_code": status, "model": self.model_name},
        )

    def _translate_connect_error(self, error: httpx.ConnectError) -> ProviderError:
        logger.error("openai_compatible_connect_error", base_url=self.base_url, error=str(error))
        if _is_dns_failure(error):
            return ProviderConnectionError(
                f"Invalid base URL: {self.base_url}. Please check your configuration.",
                error_code=ErrorCode.PRV_DNS_FAILED.value,
                context={"base_url": self.base_url},
            )
        return ProviderConnectionError(
            f"Cannot connect to OpenAI-Compatible API at {self.base_url}. "
            "Make sure the service is running.",
            error_code=ErrorCode.PRV_CONNECTION_REFUSED.value,
            context={"base_url": self.base_url},
        )

    async def list_models(self) -> list[str]:
        """List model ids from ``GET {base_url}/models``.

        Raises:
            ProviderError: If the server cannot be reached or answers with an error
        """
        try:
            async with self._client(timeout=30.0) as client:
                response = await client.get(
                    f"{self.base_url}/models", headers=self._headers()
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise self._translate_status_error(e) from e
        except httpx.ConnectError as e:
            raise self._translate_connect_error(e) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ProviderError(
                f"OpenAI-Compatible API error: {e}",
                error_code=ErrorCode.PRV_HTTP_ERROR.value,
            ) from e

        models = [entry["id"] for entry in data.get("data", []) if entry.get("id")]
        logger.debug("openai_compatible_models_listed", count=len(models))
        return models
