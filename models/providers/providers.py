from typing import TYPE_CHECKING

from .base_model_provider import BaseModelProvider
from .ollama_provider import OllamaProvider
from .open_router_provider import OpenRouterProvider

if TYPE_CHECKING:
    from config.settings import SystemConfig


class ProviderFactory:
    """Maps the provider name on an agent's model binding to a backend class."""

    _providers: dict[str, type[BaseModelProvider]] = {
        "ollama": OllamaProvider,
        "openrouter": OpenRouterProvider,
    }

    @classmethod
    def create_provider(
        cls, provider_name: str, system_config: "SystemConfig"
    ) -> BaseModelProvider:
        """Instantiate the backend serving ``provider_name``.

        Raises ValueError for names no backend is registered under, which
        surfaces to callers as a rejected model binding.
        """
        provider_class = cls._providers.get(provider_name)
        if provider_class is None:
            raise ValueError(
                f"Unknown provider: {provider_name}. Available: {sorted(cls._providers)}"
            )
        return provider_class(system_config)

    @classmethod
    def get_available_providers(cls) -> list[str]:
        return list(cls._providers)
