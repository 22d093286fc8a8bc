import os
import asyncio
import time
import json
from typing import TYPE_CHECKING, ClassVar, Callable, Awaitable
import logging
import httpx

from .base_model_provider import BaseModelProvider
from .exceptions import ProviderRateLimitError

if TYPE_CHECKING:
    from config.settings import SystemConfig, ModelConfig

logger = logging.getLogger(__name__)


class OpenRouterProvider(BaseModelProvider):
    """OpenRouter model provider implementation."""

    # Class-level rate limiting to prevent 429 errors
    _last_request_time: ClassVar[float | None] = None
    _request_lock: ClassVar[asyncio.Lock] = asyncio.Lock()
    _min_request_interval: ClassVar[float] = 1.0

    def __init__(self, system_config: "SystemConfig"):
        super().__init__(system_config)

        # Get API key from config or environment
        self._api_key = system_config.openrouter.api_key or os.getenv("OPENROUTER_API_KEY")
        if not self._api_key:
            logger.warning(
                "No OpenRouter API key found. Set OPENROUTER_API_KEY or configure in system settings."
            )

    @property
    def provider_name(self) -> str:
        return "openrouter"

    def _headers(self) -> dict[str, str]:
        if not self._api_key:
            raise RuntimeError("OpenRouter client not initialized - check API key")
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        if self.system_config.openrouter.site_url:
            headers["HTTP-Referer"] = self.system_config.openrouter.site_url
        if self.system_config.openrouter.app_name:
            headers["X-Title"] = self.system_config.openrouter.app_name
        return headers

    async def _rate_limit_request(self) -> None:
        """Ensure minimum time between requests to avoid 429 errors."""
        async with self._request_lock:
            current_time = time.time()

            if self._last_request_time is not None:
                time_since_last = current_time - self._last_request_time
                if time_since_last < self._min_request_interval:
                    sleep_time = self._min_request_interval - time_since_last
                    logger.debug(
                        f"Rate limiting: waiting {sleep_time:.2f}s before next OpenRouter request"
                    )
                    await asyncio.sleep(sleep_time)

            OpenRouterProvider._last_request_time = time.time()

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise ProviderRateLimitError(
                provider="openrouter",
                retry_after=float(retry_after) if retry_after else None,
            )
        response.raise_for_status()

    def _payload(self, model_config: "ModelConfig", messages: list[dict[str, str]], overrides: dict) -> dict:
        return {
            "model": model_config.name,
            "messages": messages,
            "max_tokens": overrides.get("max_tokens", model_config.max_tokens),
            "temperature": overrides.get("temperature", model_config.temperature),
            "reasoning": {"exclude": True},
        }

    async def get_available_models(self) -> list[str]:
        """Get the model ids OpenRouter currently serves."""
        await self._rate_limit_request()
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{self.system_config.openrouter.base_url}/models",
                headers=self._headers(),
                timeout=30.0,
            )
            self._raise_for_status(response)
        return [model["id"] for model in response.json().get("data", [])]

    async def generate_response(
        self, model_config: "ModelConfig", messages: list[dict[str, str]], **overrides
    ) -> str:
        """Generate a response using OpenRouter."""
        payload = self._payload(model_config, messages, overrides)

        try:
            await self._rate_limit_request()

            async with httpx.AsyncClient() as client:
                http_response = await client.post(
                    f"{self.system_config.openrouter.base_url}/chat/completions",
                    json=payload,
                    headers=self._headers(),
                    timeout=self.system_config.openrouter.timeout,
                )
                self._raise_for_status(http_response)
                response_data = http_response.json()

            content = response_data["choices"][0]["message"]["content"] or ""

            if not content.strip():
                logger.warning(
                    f"OpenRouter model {model_config.name} returned empty content. "
                    f"Response data: {response_data}"
                )
            else:
                logger.debug(
                    f"Generated {len(content)} chars from OpenRouter model {model_config.name}"
                )

            return content.strip()

        except Exception as e:
            logger.error(f"OpenRouter generation failed for {model_config.name}: {e}")
            raise

    def supports_streaming(self) -> bool:
        """OpenRouter supports streaming responses."""
        return True

    async def generate_response_stream(
        self,
        model_config: "ModelConfig",
        messages: list[dict[str, str]],
        chunk_callback: Callable[[str, bool], Awaitable[None]],
        **overrides
    ) -> str:
        """Generate a streaming response using OpenRouter with SSE."""
        payload = self._payload(model_config, messages, overrides)
        payload["stream"] = True

        try:
            await self._rate_limit_request()

            complete_content = ""
            finished = False

            async with httpx.AsyncClient() as client:
                async with client.stream(
                    "POST",
                    f"{self.system_config.openrouter.base_url}/chat/completions",
                    json=payload,
                    headers=self._headers(),
                    timeout=self.system_config.openrouter.timeout,
                ) as response:
                    self._raise_for_status(response)

                    buffer = ""
                    async for chunk in response.aiter_text():
                        buffer += chunk

                        # Process complete lines from buffer
                        while not finished:
                            line_end = buffer.find('\n')
                            if line_end == -1:
                                break

                            line = buffer[:line_end].strip()
                            buffer = buffer[line_end + 1:]

                            # Skip empty lines and SSE comments
                            if not line or line.startswith(':') or not line.startswith('data: '):
                                continue

                            data = line[6:]
                            if data == '[DONE]':
                                finished = True
                                break

                            try:
                                parsed = json.loads(data)
                            except json.JSONDecodeError:
                                logger.debug(f"Skipping invalid JSON in stream: {data[:100]}...")
                                continue

                            if 'error' in parsed:
                                error_msg = parsed['error'].get('message', 'Unknown streaming error')
                                raise RuntimeError(f"Streaming error: {error_msg}")

                            choices = parsed.get('choices', [])
                            if choices and 'delta' in choices[0]:
                                content_chunk = choices[0]['delta'].get('content') or ''
                                if content_chunk:
                                    complete_content += content_chunk
                                    await chunk_callback(content_chunk, False)
                                if choices[0].get('finish_reason'):
                                    finished = True
                                    break

                        if finished:
                            break

            await chunk_callback("", True)
            logger.debug(f"OpenRouter streaming completed: {len(complete_content)} chars from {model_config.name}")
            return complete_content.strip()

        except Exception as e:
            logger.error(f"OpenRouter streaming failed for {model_config.name}: {e}")
            raise
