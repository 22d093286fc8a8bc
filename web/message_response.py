from datetime import datetime

from pydantic import BaseModel, ConfigDict, computed_field

from debate_engine.types import AgentRole, FoulType, Stance


class MessageResponse(BaseModel):
    """Response model for debate messages."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    round_id: str
    agent_id: str
    role: AgentRole
    stance: Stance | None = None
    content: str
    token_count: int
    created_at: datetime


class ScoreResponse(BaseModel):
    """Judge scores for one debater in one round."""

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    round_id: str
    agent_id: str
    stance: Stance
    logic: int
    rebuttal: int
    clarity: int
    evidence: int
    comment: str
    fouls: list[FoulType]

    @computed_field
    @property
    def total(self) -> int:
        return self.logic + self.rebuttal + self.clarity + self.evidence
