"""Data models for the debate engine."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from .exceptions import ValidationError
from .types import (
    AgentRole,
    AudienceType,
    DebateStatus,
    DebaterStyle,
    FoulType,
    Novelty,
    Phase,
    RequestIntent,
    RoundStatus,
    RoundType,
    Stance,
    Winner,
)

MAX_TOPIC_LENGTH = 500
MAX_CLAIM_LENGTH = 500
MIN_ROUNDS = 1
MAX_ROUNDS = 20
WEIGHT_TOLERANCE = 0.01
AUDIENCE_WINDOW = (3, 6)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def derive_phase(sequence: int, max_rounds: int) -> Phase:
    """Map a round sequence onto its debate phase.

    The first two rounds are always the opening, the final round is the
    closing and everything in between is rebuttal.
    """
    if sequence <= 2:
        return Phase.OPENING
    if sequence >= max_rounds:
        return Phase.CLOSING
    return Phase.REBUTTAL


def derive_round_type(sequence: int, max_rounds: int) -> RoundType:
    return RoundType.FINALE if sequence == max_rounds else RoundType.STANDARD


def in_audience_window(sequence: int) -> bool:
    """Audience agents may only be heard in rounds 3 through 6."""
    low, high = AUDIENCE_WINDOW
    return low <= sequence <= high


def validate_debate_settings(
    topic: str, max_rounds: int, judge_weight: float, audience_weight: float
) -> None:
    """Raise ValidationError when debate settings break an invariant."""
    if not topic or not topic.strip():
        raise ValidationError("Topic must not be empty")
    if len(topic) > MAX_TOPIC_LENGTH:
        raise ValidationError(f"Topic must be at most {MAX_TOPIC_LENGTH} characters")
    if not MIN_ROUNDS <= max_rounds <= MAX_ROUNDS:
        raise ValidationError(f"max_rounds must be between {MIN_ROUNDS} and {MAX_ROUNDS}")
    for name, weight in (("judge_weight", judge_weight), ("audience_weight", audience_weight)):
        if not 0.0 <= weight <= 1.0:
            raise ValidationError(f"{name} must be between 0 and 1")
    if abs(judge_weight + audience_weight - 1.0) > WEIGHT_TOLERANCE:
        raise ValidationError("judge_weight + audience_weight must equal 1.0")


@dataclass
class Debate:
    """A debate and its lifecycle state."""

    id: str
    topic: str
    pro_definition: str | None = None
    con_definition: str | None = None
    max_rounds: int = 10
    judge_weight: float = 0.5
    audience_weight: float = 0.5
    status: DebateStatus = DebateStatus.PENDING
    winner: Winner | None = None
    failure_reason: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (DebateStatus.COMPLETED, DebateStatus.FAILED)


@dataclass
class Agent:
    """A participant bound to a model."""

    id: str
    debate_id: str
    role: AgentRole
    name: str
    provider: str = "ollama"
    model: str = ""
    stance: Stance | None = None
    style: DebaterStyle | None = None
    audience_type: AudienceType | None = None

    def __post_init__(self) -> None:
        if self.role is AgentRole.DEBATER and self.stance is None:
            raise ValidationError(f"Debater {self.name} needs a stance")
        if self.role is not AgentRole.DEBATER and self.stance is not None:
            raise ValidationError(f"Only debaters carry a stance ({self.name})")


@dataclass
class Round:
    """One round of a debate."""

    id: str
    debate_id: str
    sequence: int
    phase: Phase
    type: RoundType = RoundType.STANDARD
    status: RoundStatus = RoundStatus.RUNNING
    started_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None


@dataclass
class Message:
    """A single turn spoken within a round."""

    id: int | None
    round_id: str
    agent_id: str
    role: AgentRole
    stance: Stance | None
    content: str
    token_count: int = 0
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Score:
    """Judge evaluation of one debater in one round."""

    round_id: str
    agent_id: str
    stance: Stance
    logic: int
    rebuttal: int
    clarity: int
    evidence: int
    comment: str = ""
    fouls: list[FoulType] = field(default_factory=list)
    id: int | None = None

    @property
    def total(self) -> int:
        return self.logic + self.rebuttal + self.clarity + self.evidence


@dataclass
class AudienceRequest:
    """An audience agent asking to speak. Decided exactly once."""

    id: str
    round_id: str
    agent_id: str
    intent: RequestIntent
    claim: str
    novelty: Novelty = Novelty.NEW
    confidence: float = 0.5
    approved: bool | None = None
    judge_comment: str | None = None
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if len(self.claim) > MAX_CLAIM_LENGTH:
            self.claim = self.claim[:MAX_CLAIM_LENGTH]
        self.confidence = min(1.0, max(0.0, self.confidence))

    @property
    def is_decided(self) -> bool:
        return self.approved is not None


@dataclass
class Vote:
    """An audience ballot for the whole debate."""

    debate_id: str
    agent_id: str
    stance: Winner
    confidence: float
    reason: str | None = None
    id: int | None = None
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        self.confidence = min(1.0, max(0.0, self.confidence))
