from datetime import datetime

from pydantic import BaseModel, ConfigDict

from debate_engine.types import (
    AgentRole,
    AudienceType,
    DebaterStyle,
    DebateStatus,
    Phase,
    RoundStatus,
    RoundType,
    Stance,
    Winner,
)


class AgentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    role: AgentRole
    name: str
    provider: str
    model: str
    stance: Stance | None = None
    style: DebaterStyle | None = None
    audience_type: AudienceType | None = None


class DebateResponse(BaseModel):
    """Response model for debate information."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    topic: str
    pro_definition: str | None = None
    con_definition: str | None = None
    max_rounds: int
    judge_weight: float
    audience_weight: float
    status: DebateStatus
    winner: Winner | None = None
    failure_reason: str | None = None
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    # Only filled in on single-debate lookups
    agents: list[AgentResponse] | None = None


class DebateListResponse(BaseModel):
    debates: list[DebateResponse]
    total: int
    limit: int
    offset: int


class RoundResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    sequence: int
    phase: Phase
    type: RoundType
    status: RoundStatus
    started_at: datetime
    completed_at: datetime | None = None
