"""Wiring of the debate engine for the web application."""

import logging
from collections.abc import Callable

from fastapi import WebSocket

from agents.provider import LLMReasoningProvider, ReasoningProvider
from config.settings import AppConfig, get_default_config
from debate_engine.database import DatabaseManager
from debate_engine.event_bus import EventBus
from debate_engine.orchestrator import DebateOrchestrator
from debate_engine.repository import Repository
from debate_engine.types import DebateEvent
from models.manager import ModelManager

logger = logging.getLogger(__name__)


class DebateManager:
    """Owns the orchestrator and the WebSocket connections of each debate."""

    def __init__(
        self,
        config: AppConfig,
        repository: Repository,
        event_bus: EventBus,
        provider: ReasoningProvider,
        model_manager: ModelManager | None = None,
    ):
        self.config = config
        self.model_manager = model_manager or ModelManager(config.system)
        self.repository = repository
        self.event_bus = event_bus
        self.orchestrator = DebateOrchestrator(repository, event_bus, provider, config)
        self._connections: dict[str, dict[WebSocket, Callable[[], None]]] = {}

    @classmethod
    def from_config(cls, config: AppConfig | None = None) -> "DebateManager":
        """Build the production stack: SQLite, language models and the event bus."""
        config = config or get_default_config()
        model_manager = ModelManager(config.system)
        debater = config.models.get("debater")
        provider = LLMReasoningProvider(
            model_manager,
            debater_max_tokens=debater.max_tokens if debater else 400,
        )
        return cls(
            config=config,
            repository=DatabaseManager(config.system.database_path),
            event_bus=EventBus(debounce_ms=config.events.debounce_ms),
            provider=provider,
            model_manager=model_manager,
        )

    def add_connection(self, debate_id: str, websocket: WebSocket) -> None:
        """Forward every event of ``debate_id`` to ``websocket``."""

        async def send(event: DebateEvent) -> None:
            await websocket.send_json(event)

        unsubscribe = self.event_bus.subscribe(debate_id, send)
        self._connections.setdefault(debate_id, {})[websocket] = unsubscribe
        logger.info(
            f"WebSocket connected to debate {debate_id} "
            f"({len(self._connections[debate_id])} connections)"
        )

    def remove_connection(self, debate_id: str, websocket: WebSocket) -> None:
        connections = self._connections.get(debate_id, {})
        unsubscribe = connections.pop(websocket, None)
        if unsubscribe is not None:
            unsubscribe()
        if not connections:
            self._connections.pop(debate_id, None)
        logger.info(f"WebSocket disconnected from debate {debate_id}")

    def connection_count(self, debate_id: str) -> int:
        return len(self._connections.get(debate_id, {}))

    async def shutdown(self) -> None:
        """Stop running debates and close the event channels."""
        await self.orchestrator.shutdown()
        await self.event_bus.close()
        self._connections.clear()
