"""Hosted chat models served over a streaming chat-completions API."""

from __future__ import annotations

import json
import time
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

import httpx

from social_card_generator.cancellation import CancellationToken
from social_card_generator.error_codes import ErrorCode
from social_card_generator.exceptions import (
    ProviderAuthenticationError,
    ProviderConnectionError,
    ProviderError,
)
from social_card_generator.utils.logging import get_logger

logger = get_logger(__name__)

_DATE_SUFFIX_LEN = len("-2024-07-18")


def _family_from_id(model_id: str) -> str:
    """Strip a vendor prefix and trailing date: ``openai/gpt-4o-2024-08-06`` -> ``gpt-4o``."""
    family = model_id.rsplit("/", 1)[-1]
    tail = family[-_DATE_SUFFIX_LEN:]
    if len(family) > _DATE_SUFFIX_LEN and tail[0] == "-" and tail[1:5].isdigit():
        family = family[:-_DATE_SUFFIX_LEN]
    return family


def _vendor_from_url(base_url: str) -> str:
    host = urlparse(base_url).hostname or ""
    parts = [p for p in host.split(".") if p not in ("api", "www")]
    return parts[0] if parts else ""


def _auth_headers(api_key: str) -> dict[str, str]:
    headers = {"Content-Type": "application/json"}
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    return headers


@dataclass
class StreamingChatModel:
    """A model behind an OpenAI-style ``/chat/completions`` endpoint with SSE.

    Implements the ChatModel protocol consumed by HostedModelProvider.
    """

    id: str
    base_url: str
    api_key: str = ""
    name: str = ""
    vendor: str = ""
    family: str = ""
    version: str = ""
    timeout: float = 300.0
    temperature: float = 0.7
    extra_headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")
        self.name = self.name or self.id
        self.family = self.family or _family_from_id(self.id)
        self.vendor = self.vendor or _vendor_from_url(self.base_url)

    async def stream(
        self, prompt: str, cancellation: CancellationToken | None = None
    ) -> AsyncIterator[str]:
        """Yield content deltas from a streamed chat completion.

        ``cancellation`` is honoured by the caller, which cancels the task
        awaiting the next fragment; that closes the HTTP stream.
        """
        payload: dict[str, Any] = {
            "model": self.id,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "stream": True,
        }
        headers = {**_auth_headers(self.api_key), **self.extra_headers}
        request_start = time.perf_counter()
        received = 0

        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout)) as client:
                async with client.stream(
                    "POST",
                    f"{self.base_url}/chat/completions",
                    json=payload,
                    headers=headers,
                ) as response:
                    if response.status_code >= 400:
                        await response.aread()
                        _raise_for_status(response, self.id)

                    async for raw_line in response.aiter_lines():
                        line = raw_line.strip()
                        if not line or not line.startswith("data:"):
                            continue
                        data_str = line[5:].strip()
                        if not data_str:
                            continue
                        if data_str == "[DONE]":
                            break
                        try:
                            chunk = json.loads(data_str)
                        except json.JSONDecodeError:
                            logger.debug(
                                "stream_chunk_parse_failed",
                                model=self.id,
                                data_preview=data_str[:200],
                            )
                            continue

                        if chunk.get("error"):
                            message = chunk["error"].get("message", "unknown error")
                            raise ProviderError(
                                f"Language model error: {message}",
                                error_code=ErrorCode.PRV_HOSTED_MODEL.value,
                                context={"model": self.id},
                            )

                        choices = chunk.get("choices") or []
                        if not choices:
                            continue
                        piece = (choices[0].get("delta") or {}).get("content") or ""
                        if piece:
                            received += len(piece)
                            yield piece
        except httpx.ConnectError as e:
            raise ProviderConnectionError(
                f"Cannot connect to {self.base_url}: {e}",
                suggestion="Check the hosted_base_url setting and your network",
                error_code=ErrorCode.PRV_CONNECTION_REFUSED.value,
            ) from e
        except httpx.TimeoutException as e:
            raise ProviderError(
                f"Language model request timed out after {self.timeout}s",
                error_code=ErrorCode.PRV_TIMEOUT.value,
                context={"model": self.id},
            ) from e

        logger.info(
            "hosted_stream_completed",
            model=self.id,
            response_length=received,
            request_duration=round(time.perf_counter() - request_start, 2),
        )


def _raise_for_status(response: httpx.Response, model_id: str) -> None:
    try:
        detail = response.json().get("error", {}).get("message") or response.text
    except ValueError:
        detail = response.text
    if response.status_code == 401:
        raise ProviderAuthenticationError(
            "Invalid API key. Please check your configuration.",
            error_code=ErrorCode.PRV_AUTH_FAILED.value,
            context={"model": model_id},
        )
    raise ProviderError(
        f"Language model error: HTTP {response.status_code}: {detail[:200]}",
        error_code=ErrorCode.PRV_HTTP_ERROR.value,
        context={"model": model_id, "status_code": response.status_code},
    )


class HostedModelCatalog:
    """Enumerates chat models from an OpenAI-style ``/models`` endpoint."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        vendor: str = "",
        timeout: float = 300.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.vendor = vendor
        self.timeout = timeout

    def model(self, model_id: str, vendor: str | None = None) -> StreamingChatModel:
        return StreamingChatModel(
            id=model_id,
            base_url=self.base_url,
            api_key=self.api_key,
            vendor=vendor or self.vendor,
            timeout=self.timeout,
        )

    async def list_models(self) -> list[StreamingChatModel]:
        """Fetch candidate models. Returns an empty list if listing fails."""
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(30.0)) as client:
                response = await client.get(
                    f"{self.base_url}/models", headers=_auth_headers(self.api_key)
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                "hosted_model_list_failed",
                base_url=self.base_url,
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

        models = []
        for entry in data.get("data", []):
            model_id = entry.get("id")
            if not model_id:
                continue
            models.append(
                self.model(model_id, vendor=self.vendor or entry.get("owned_by") or "")
            )
        logger.debug("hosted_models_listed", base_url=self.base_url, count=len(models))
        return models
