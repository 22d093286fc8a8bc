"""Language-model backends debate agents can be bound to."""

from .base_model_provider import BaseModelProvider, ChatMessages, StreamCallback
from .exceptions import ProviderRateLimitError
from .ollama_provider import OllamaProvider
from .open_router_provider import OpenRouterProvider
from .providers import ProviderFactory

__all__ = [
    "BaseModelProvider",
    "ChatMessages",
    "StreamCallback",
    "ProviderRateLimitError",
    "OllamaProvider",
    "OpenRouterProvider",
    "ProviderFactory",
]
