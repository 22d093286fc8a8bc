"""Debate orchestration and flow management."""

from .event_bus import EventBus
from .exceptions import (
    ConcurrencyError,
    DebateError,
    NotFoundError,
    ParseError,
    PersistenceError,
    ProviderError,
    ValidationError,
)
from .models import Agent, AudienceRequest, Debate, Message, Round, Score, Vote, derive_phase
from .types import DebateStatus, Phase, RoundType, Stance, Winner

__all__ = [
    "EventBus",
    "ConcurrencyError",
    "DebateError",
    "NotFoundError",
    "ParseError",
    "PersistenceError",
    "ProviderError",
    "ValidationError",
    "Agent",
    "AudienceRequest",
    "Debate",
    "Message",
    "Round",
    "Score",
    "Vote",
    "derive_phase",
    "DebateStatus",
    "Phase",
    "RoundType",
    "Stance",
    "Winner",
]
