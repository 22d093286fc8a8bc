"""Shared types and enums for the debate engine."""

from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, TypedDict


class DebateStatus(Enum):
    """Lifecycle states of a debate."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class Winner(Enum):
    """Possible verdicts."""

    PRO = "pro"
    CON = "con"
    DRAW = "draw"


class Phase(Enum):
    """Phases of a debate, derived from the round sequence."""

    OPENING = "opening"
    REBUTTAL = "rebuttal"
    CLOSING = "closing"


class RoundType(Enum):
    """Kinds of rounds."""

    STANDARD = "standard"
    AUDIENCE_REQUEST = "audience_request"
    FINALE = "finale"


class RoundStatus(Enum):
    """Round lifecycle. Completed and failed are terminal."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class AgentRole(Enum):
    """Roles an agent can play in a debate."""

    DEBATER = "debater"
    JUDGE = "judge"
    AUDIENCE = "audience"
    MODERATOR = "moderator"


class Stance(Enum):
    """Debater positions."""

    PRO = "pro"
    CON = "con"

    @property
    def opponent(self) -> "Stance":
        return Stance.CON if self is Stance.PRO else Stance.PRO


class DebaterStyle(Enum):
    """Speaking styles for debaters."""

    RATIONAL = "rational"
    AGGRESSIVE = "aggressive"
    CONSERVATIVE = "conservative"
    TECHNICAL = "technical"


class AudienceType(Enum):
    """Perspectives an audience agent judges from."""

    RATIONAL = "rational"
    PRAGMATIC = "pragmatic"
    TECHNICAL = "technical"
    RISK_AVERSE = "risk_averse"
    EMOTIONAL = "emotional"


class RequestIntent(Enum):
    """Which side an audience request supports."""

    SUPPORT_PRO = "support_pro"
    SUPPORT_CON = "support_con"

    @property
    def stance(self) -> Stance:
        return Stance.PRO if self is RequestIntent.SUPPORT_PRO else Stance.CON


class Novelty(Enum):
    """Whether an audience claim adds something new."""

    NEW = "new"
    REINFORCEMENT = "reinforcement"


class FoulType(Enum):
    """Rule violations a judge can flag."""

    AD_HOMINEM = "ad_hominem"
    OFF_TOPIC = "off_topic"
    DISRUPTION = "disruption"
    OTHER = "other"


class EventType(Enum):
    """Event kinds delivered to debate observers."""

    CONNECTED = "connected"
    DEBATE_START = "debate_start"
    ROUND_START = "round_start"
    AGENT_START = "agent_start"
    TOKEN = "token"
    AGENT_END = "agent_end"
    AUDIENCE_REQUEST = "audience_request"
    AUDIENCE_APPROVAL = "audience_approval"
    AUDIENCE_SPEECH = "audience_speech"
    SCORE_UPDATE = "score_update"
    ROUND_END = "round_end"
    DEBATE_END = "debate_end"
    ERROR = "error"


class DebateEvent(TypedDict):
    """Envelope for every event published on the event bus."""

    type: str
    debate_id: str
    data: dict[str, Any]
    timestamp: str


class VoteStats(TypedDict):
    """Aggregated audience ballots."""

    pro: int
    con: int
    draw: int
    total: int
    pro_weighted: float
    con_weighted: float


class FoulRecord(TypedDict):
    """A foul flagged against a debater in a given round."""

    round_sequence: int
    stance: str
    foul_type: str
    comment: str


class WinningArgument(TypedDict):
    """An excerpt from one of the winner's strongest rounds."""

    round_sequence: int
    score: int
    excerpt: str


class RoundScoreSummary(TypedDict):
    """Per-round totals for both sides."""

    round_sequence: int
    pro: int
    con: int


class FinalJudgment(TypedDict):
    """Judge-side verdict built purely from persisted scores."""

    winner: str
    pro_total: int
    con_total: int
    margin: int
    key_turning_round: int | None
    winning_arguments: list[WinningArgument]
    fouls: list[FoulRecord]
    rounds: list[RoundScoreSummary]
    summary: str


class WeightedResult(TypedDict):
    """Judge totals and audience ballots combined under the debate weights."""

    judge_pro: int
    judge_con: int
    audience_pro_share: float
    audience_con_share: float
    audience_scale: float
    judge_weight: float
    audience_weight: float
    final_pro: float
    final_con: float
    winner: str


# Callback type aliases
type ChunkCallback = Callable[[str, bool], Awaitable[None]]
type TokenCallback = Callable[[str], Awaitable[None]]
type EventListener = Callable[[DebateEvent], Awaitable[None] | None]
