"""Agent prompts and reasoning providers."""

from .provider import Generation, LLMReasoningProvider, ReasoningProvider

__all__ = [
    "Generation",
    "LLMReasoningProvider",
    "ReasoningProvider",
]
