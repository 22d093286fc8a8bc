"""Reasoning provider contract and its language-model implementation."""

import logging
from dataclasses import dataclass
from typing import Protocol

from config.settings import ModelConfig
from debate_engine.exceptions import ProviderError
from debate_engine.history import HistoryEntry, RoundContext, estimate_tokens, format_history
from debate_engine.models import Agent, AudienceRequest
from debate_engine.types import AgentRole, AudienceType, Stance, TokenCallback
from models.manager import MessageList, ModelManager

from .prompts import (
    AUDIENCE_SPEECH_SYSTEM_PROMPT,
    AUDIENCE_SYSTEM_PROMPT,
    DEBATER_SYSTEM_PROMPT,
    JUDGE_SYSTEM_PROMPT,
    build_approval_prompt,
    build_audience_request_prompt,
    build_judge_scoring_prompt,
    build_vote_prompt,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Generation:
    """Text produced for a spoken turn."""

    content: str
    token_count: int


class ReasoningProvider(Protocol):
    """Source of every agent's natural-language output.

    Structured calls return the raw model text; decoding and fallbacks are
    the caller's job. Failures surface as ProviderError.
    """

    async def generate(
        self,
        agent: Agent,
        prompt: str,
        history: list[HistoryEntry],
        on_token: TokenCallback | None = None,
    ) -> Generation: ...

    async def score_round(
        self, judge: Agent, *, context: RoundContext, stance: Stance, content: str
    ) -> str: ...

    async def decide_audience_request(self, agent: Agent, *, context: RoundContext) -> str: ...

    async def approve_audience_request(
        self,
        judge: Agent,
        *,
        context: RoundContext,
        request: AudienceRequest,
        audience_type: AudienceType | None,
    ) -> str: ...

    async def cast_vote(self, agent: Agent, *, context: RoundContext) -> str: ...


class LLMReasoningProvider:
    """ReasoningProvider backed by the multi-provider ModelManager."""

    def __init__(
        self,
        model_manager: ModelManager,
        *,
        debater_max_tokens: int = 400,
        judge_max_tokens: int = 300,
        audience_max_tokens: int = 200,
    ):
        self._manager = model_manager
        self._max_tokens = {
            AgentRole.DEBATER: debater_max_tokens,
            AgentRole.JUDGE: judge_max_tokens,
            AgentRole.AUDIENCE: audience_max_tokens,
            AgentRole.MODERATOR: judge_max_tokens,
        }
        self._registered: set[str] = set()

    def _ensure_registered(self, agent: Agent) -> str:
        if agent.id not in self._registered:
            temperature = 0.8 if agent.role is AgentRole.DEBATER else 0.3
            try:
                config = ModelConfig(
                    name=agent.model,
                    provider=agent.provider,
                    max_tokens=self._max_tokens[agent.role],
                    temperature=temperature,
                )
                self._manager.register_model(agent.id, config)
            except ValueError as e:
                raise ProviderError(
                    f"Cannot bind {agent.name} to {agent.provider}/{agent.model}: {e}",
                    agent_id=agent.id,
                    role=agent.role.value,
                ) from e
            self._registered.add(agent.id)
        return agent.id

    async def _complete(self, agent: Agent, system_prompt: str, prompt: str) -> str:
        model_id = self._ensure_registered(agent)
        messages: MessageList = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]
        try:
            return await self._manager.generate_response(model_id, messages)
        except Exception as e:
            logger.error(f"{agent.role.value} {agent.name} ({agent.provider}/{agent.model}) failed: {e}")
            raise ProviderError(
                f"{agent.role.value} {agent.name} failed: {type(e).__name__}: {e}",
                agent_id=agent.id,
                role=agent.role.value,
            ) from e

    async def generate(
        self,
        agent: Agent,
        prompt: str,
        history: list[HistoryEntry],
        on_token: TokenCallback | None = None,
    ) -> Generation:
        model_id = self._ensure_registered(agent)
        if agent.role is AgentRole.AUDIENCE:
            system_prompt = AUDIENCE_SPEECH_SYSTEM_PROMPT
        else:
            system_prompt = DEBATER_SYSTEM_PROMPT
        messages: MessageList = [
            {"role": "system", "content": system_prompt},
            {
                "role": "user",
                "content": f"{prompt}\n\nDebate so far:\n{format_history(history)}",
            },
        ]

        async def chunk_callback(chunk: str, is_complete: bool) -> None:
            if chunk and on_token is not None:
                await on_token(chunk)

        try:
            if on_token is not None:
                content = await self._manager.generate_response_stream(
                    model_id, messages, chunk_callback
                )
            else:
                content = await self._manager.generate_response(model_id, messages)
        except Exception as e:
            logger.error(f"{agent.role.value.capitalize()} {agent.name} ({agent.provider}/{agent.model}) failed: {e}")
            raise ProviderError(
                f"{agent.role.value} {agent.name} failed: {type(e).__name__}: {e}",
                agent_id=agent.id,
                role=agent.role.value,
            ) from e

        content = content.strip()
        if not content:
            raise ProviderError(
                f"{agent.role.value} {agent.name} returned an empty statement",
                agent_id=agent.id,
                role=agent.role.value,
            )
        return Generation(content=content, token_count=estimate_tokens(content))

    async def score_round(
        self, judge: Agent, *, context: RoundContext, stance: Stance, content: str
    ) -> str:
        prompt = build_judge_scoring_prompt(context, stance, content)
        return await self._complete(judge, JUDGE_SYSTEM_PROMPT, prompt)

    async def decide_audience_request(self, agent: Agent, *, context: RoundContext) -> str:
        prompt = build_audience_request_prompt(agent, context)
        return await self._complete(agent, AUDIENCE_SYSTEM_PROMPT, prompt)

    async def approve_audience_request(
        self,
        judge: Agent,
        *,
        context: RoundContext,
        request: AudienceRequest,
        audience_type: AudienceType | None,
    ) -> str:
        prompt = build_approval_prompt(context, request, audience_type)
        return await self._complete(judge, JUDGE_SYSTEM_PROMPT, prompt)

    async def cast_vote(self, agent: Agent, *, context: RoundContext) -> str:
        prompt = build_vote_prompt(agent, context)
        return await self._complete(agent, AUDIENCE_SYSTEM_PROMPT, prompt)
