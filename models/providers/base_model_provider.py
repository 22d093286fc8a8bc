"""Contract every language-model backend implements."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from config.settings import ModelConfig, SystemConfig

type ChatMessages = list[dict[str, str]]
type StreamCallback = Callable[[str, bool], Awaitable[None]]


class BaseModelProvider(ABC):
    """A chat-completion backend that debate agents are bound to by name."""

    def __init__(self, system_config: "SystemConfig"):
        self.system_config = system_config

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Name agents use to select this backend (``ModelConfig.provider``)."""

    @abstractmethod
    async def get_available_models(self) -> list[str]:
        """Model names this backend can serve right now."""

    @abstractmethod
    async def generate_response(
        self, model_config: "ModelConfig", messages: ChatMessages, **overrides: Any
    ) -> str:
        """Return the full completion for ``messages``."""

    def validate_model_config(self, model_config: "ModelConfig") -> bool:
        """An agent binding is usable when it names this backend and a model."""
        return model_config.provider == self.provider_name and bool(model_config.name)

    def supports_streaming(self) -> bool:
        return False

    async def generate_response_stream(
        self,
        model_config: "ModelConfig",
        messages: ChatMessages,
        chunk_callback: StreamCallback,
        **overrides: Any,
    ) -> str:
        """Stream a completion, calling ``chunk_callback(text, is_complete)`` per delta.

        Backends without native streaming deliver the whole completion as a
        single final chunk.
        """
        content = await self.generate_response(model_config, messages, **overrides)
        await chunk_callback(content, True)
        return content
