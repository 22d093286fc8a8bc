"""Storage contract the orchestrator depends on."""

from typing import Protocol

from .models import Agent, AudienceRequest, Debate, Message, Round, Score, Vote
from .types import DebateStatus, RoundStatus, RoundType, Winner


class Repository(Protocol):
    """CRUD capability for debates and everything hanging off them.

    Deleting a debate removes its agents, rounds, messages, scores,
    audience requests and votes.
    """

    def create_debate(self, debate: Debate, agents: list[Agent]) -> Debate: ...

    def get_debate(self, debate_id: str) -> Debate | None: ...

    def list_debates(self, limit: int = 50, offset: int = 0) -> list[Debate]: ...

    def count_debates(self, status: DebateStatus | None = None) -> int: ...

    def transition_debate(
        self,
        debate_id: str,
        expected: DebateStatus,
        new_status: DebateStatus,
        *,
        winner: Winner | None = None,
        failure_reason: str | None = None,
    ) -> Debate: ...

    def delete_debate(self, debate_id: str) -> bool: ...

    def get_agents(self, debate_id: str) -> list[Agent]: ...

    def create_round(self, round_: Round) -> Round: ...

    def get_rounds(self, debate_id: str) -> list[Round]: ...

    def get_round(self, round_id: str) -> Round | None: ...

    def set_round_type(self, round_id: str, round_type: RoundType) -> None: ...

    def finish_round(self, round_id: str, status: RoundStatus) -> Round: ...

    def create_message(self, message: Message) -> Message: ...

    def get_round_messages(self, round_id: str) -> list[Message]: ...

    def get_debate_messages(self, debate_id: str) -> list[Message]: ...

    def create_score(self, score: Score) -> Score: ...

    def get_round_scores(self, round_id: str) -> list[Score]: ...

    def get_debate_scores(self, debate_id: str) -> list[tuple[Round, Score]]: ...

    def create_audience_request(self, request: AudienceRequest) -> AudienceRequest: ...

    def decide_audience_request(
        self, request_id: str, approved: bool, comment: str
    ) -> AudienceRequest: ...

    def get_round_audience_requests(self, round_id: str) -> list[AudienceRequest]: ...

    def create_vote(self, vote: Vote) -> Vote: ...

    def get_votes(self, debate_id: str) -> list[Vote]: ...
