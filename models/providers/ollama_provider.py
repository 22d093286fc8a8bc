from typing import TYPE_CHECKING, Awaitable, Callable
from openai import AsyncOpenAI
import httpx
from .base_model_provider import BaseModelProvider
import logging

if TYPE_CHECKING:
    from config.settings import SystemConfig, ModelConfig

logger = logging.getLogger(__name__)


class OllamaProvider(BaseModelProvider):
    """Ollama model provider using its OpenAI-compatible endpoint."""

    def __init__(self, system_config: "SystemConfig"):
        super().__init__(system_config)
        self._client = AsyncOpenAI(
            base_url=f"{system_config.ollama_base_url}/v1",
            api_key="ollama",  # Ollama doesn't require real API key
            timeout=system_config.ollama.timeout,  # Allow for model loading
        )
        self._ollama_base_url = system_config.ollama_base_url

    @property
    def provider_name(self) -> str:
        return "ollama"

    async def is_running(self) -> bool:
        """Fast health check to see if Ollama server is running."""
        try:
            async with httpx.AsyncClient(timeout=1.0) as client:
                response = await client.get(f"{self._ollama_base_url}/api/tags")
                response.raise_for_status()
                return True
        except httpx.HTTPError as e:
            logger.debug(f"Ollama health check failed: {e}")
            return False

    async def get_available_models(self) -> list[str]:
        """Get list of available models from Ollama."""
        if not await self.is_running():
            logger.error("Failed to get Ollama models: Connection error.")
            return []

        models = await self._client.models.list()
        return [model.id for model in models.data]

    def _params(self, model_config: "ModelConfig", messages: list[dict[str, str]], overrides: dict) -> dict:
        params = {
            "model": model_config.name,
            "messages": messages,
            "max_tokens": overrides.get("max_tokens", model_config.max_tokens),
            "temperature": overrides.get("temperature", model_config.temperature),
        }

        # Ollama-specific parameters travel in extra_body
        ollama_config = self.system_config.ollama
        extra_body = {}
        if ollama_config.keep_alive is not None:
            extra_body["keep_alive"] = ollama_config.keep_alive
        if ollama_config.repeat_penalty is not None:
            extra_body["repeat_penalty"] = ollama_config.repeat_penalty
        if extra_body:
            params["extra_body"] = extra_body
        return params

    async def generate_response(
        self, model_config: "ModelConfig", messages: list[dict[str, str]], **overrides
    ) -> str:
        """Generate a response using Ollama."""
        params = self._params(model_config, messages, overrides)

        try:
            response = await self._client.chat.completions.create(**params)
            content = response.choices[0].message.content or ""

            logger.debug(
                f"Generated {len(content)} chars from Ollama model {model_config.name}"
            )
            return content.strip()

        except Exception as e:
            logger.error(f"Ollama generation failed for {model_config.name}: {e}")
            raise

    def supports_streaming(self) -> bool:
        return True

    async def generate_response_stream(
        self,
        model_config: "ModelConfig",
        messages: list[dict[str, str]],
        chunk_callback: Callable[[str, bool], Awaitable[None]],
        **overrides
    ) -> str:
        """Stream a response from Ollama, forwarding each delta to ``chunk_callback``."""
        params = self._params(model_config, messages, overrides)
        complete_content = ""

        try:
            stream = await self._client.chat.completions.create(stream=True, **params)
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content or ""
                if delta:
                    complete_content += delta
                    await chunk_callback(delta, False)
            await chunk_callback("", True)
        except Exception as e:
            logger.error(f"Ollama streaming failed for {model_config.name}: {e}")
            raise

        logger.debug(f"Ollama streaming completed: {len(complete_content)} chars from {model_config.name}")
        return complete_content.strip()
