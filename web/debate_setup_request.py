from pydantic import BaseModel, Field, field_validator

from config.settings import AppConfig, ModelConfig
from debate_engine.orchestrator import AgentSetup, DebateSetup
from debate_engine.types import AgentRole, AudienceType, DebaterStyle, Stance


class AgentSetupRequest(BaseModel):
    """One participant of a new debate."""

    role: AgentRole
    name: str = Field(min_length=1, max_length=100)
    provider: str | None = None
    model: str | None = None
    stance: Stance | None = None
    style: DebaterStyle | None = None
    audience_type: AudienceType | None = None

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str | None) -> str | None:
        return v if v is None else ModelConfig.validate_provider(v)

    def to_setup(self, config: AppConfig) -> AgentSetup:
        """Fill in provider and model from the configured role defaults."""
        fallback = config.models.get(self.role.value) or config.models.get("debater")
        provider = self.provider or (fallback.provider if fallback else "ollama")
        model = self.model or (fallback.name if fallback else "")
        return AgentSetup(
            role=self.role,
            name=self.name,
            provider=provider,
            model=model,
            stance=self.stance,
            style=self.style,
            audience_type=self.audience_type,
        )


class DebateSetupRequest(BaseModel):
    """Request model for creating a new debate."""

    topic: str
    pro_definition: str | None = None
    con_definition: str | None = None
    max_rounds: int | None = None
    judge_weight: float | None = None
    audience_weight: float | None = None
    agents: list[AgentSetupRequest]

    @field_validator("agents")
    @classmethod
    def validate_agents(cls, v: list[AgentSetupRequest]) -> list[AgentSetupRequest]:
        if not v:
            raise ValueError("At least the two debaters and a judge are required")
        return v

    def to_setup(self, config: AppConfig) -> DebateSetup:
        defaults = config.debate
        judge_weight = defaults.judge_weight if self.judge_weight is None else self.judge_weight
        # Supplying only one weight implies the other
        if self.audience_weight is not None:
            audience_weight = self.audience_weight
            if self.judge_weight is None:
                judge_weight = round(1.0 - audience_weight, 6)
        elif self.judge_weight is not None:
            audience_weight = round(1.0 - judge_weight, 6)
        else:
            audience_weight = defaults.audience_weight

        return DebateSetup(
            topic=self.topic,
            pro_definition=self.pro_definition,
            con_definition=self.con_definition,
            max_rounds=defaults.max_rounds if self.max_rounds is None else self.max_rounds,
            judge_weight=judge_weight,
            audience_weight=audience_weight,
            agents=[agent.to_setup(config) for agent in self.agents],
        )
