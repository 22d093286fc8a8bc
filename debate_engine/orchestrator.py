"""Debate lifecycle and round sequencing."""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from agents.prompts import build_audience_speech_prompt, build_debater_prompt
from agents.provider import ReasoningProvider
from config.settings import SUPPORTED_PROVIDERS, AppConfig
from judges.scoring import ScoringEngine
from judges.voting import VotingEngine

from .audience import AudienceRequestArbiter
from .event_bus import EventBus
from .exceptions import (
    ConcurrencyError,
    DebateError,
    NotFoundError,
    ProviderError,
    ValidationError,
)
from .history import HistoryEntry, RoundContext, estimate_tokens
from .models import (
    Agent,
    AudienceRequest,
    Debate,
    Message,
    Round,
    Score,
    derive_phase,
    derive_round_type,
    in_audience_window,
    validate_debate_settings,
)
from .repository import Repository
from .serialization import to_jsonable
from .types import (
    AgentRole,
    AudienceType,
    DebateStatus,
    DebaterStyle,
    EventType,
    RoundStatus,
    RoundType,
    Stance,
    TokenCallback,
    Winner,
)

logger = logging.getLogger(__name__)

STOPPED_REASON = "Stopped by operator"
SHUTDOWN_REASON = "Debate interrupted by server shutdown"


@dataclass
class AgentSetup:
    """Requested participant for a new debate."""

    role: AgentRole
    name: str
    provider: str = "ollama"
    model: str = ""
    stance: Stance | None = None
    style: DebaterStyle | None = None
    audience_type: AudienceType | None = None


@dataclass
class DebateSetup:
    """Everything needed to create a debate."""

    topic: str
    agents: list[AgentSetup]
    pro_definition: str | None = None
    con_definition: str | None = None
    max_rounds: int = 10
    judge_weight: float = 0.5
    audience_weight: float = 0.5


@dataclass
class Roster:
    """The agents of a debate grouped by what they do."""

    pro: Agent
    con: Agent
    judge: Agent
    audience: list[Agent] = field(default_factory=list)

    @classmethod
    def from_agents(cls, agents: list[Agent]) -> "Roster":
        debaters = [agent for agent in agents if agent.role is AgentRole.DEBATER]
        pros = [agent for agent in debaters if agent.stance is Stance.PRO]
        cons = [agent for agent in debaters if agent.stance is Stance.CON]
        judges = [agent for agent in agents if agent.role is AgentRole.JUDGE]
        if len(pros) != 1 or len(cons) != 1:
            raise ValidationError("A debate needs exactly one pro and one con debater")
        if len(judges) != 1:
            raise ValidationError("A debate needs exactly one judge")
        return cls(
            pro=pros[0],
            con=cons[0],
            judge=judges[0],
            audience=[agent for agent in agents if agent.role is AgentRole.AUDIENCE],
        )

    def debater(self, stance: Stance) -> Agent:
        return self.pro if stance is Stance.PRO else self.con


class _StopRequested(Exception):
    pass


class DebateOrchestrator:
    """Drives debates from pending to completed or failed.

    One task per running debate plays the rounds strictly in order. All
    collaborators are injected so isolated instances can run side by side.
    """

    def __init__(
        self,
        repository: Repository,
        event_bus: EventBus,
        provider: ReasoningProvider,
        config: AppConfig | None = None,
        *,
        scoring: ScoringEngine | None = None,
        voting: VotingEngine | None = None,
        arbiter: AudienceRequestArbiter | None = None,
    ):
        self._repository = repository
        self._event_bus = event_bus
        self._provider = provider
        self._config = config or AppConfig()
        self.scoring = scoring or ScoringEngine(repository, provider, self._config.scoring)
        self.voting = voting or VotingEngine(
            repository, provider, self.scoring, self._config.voting
        )
        self.arbiter = arbiter or AudienceRequestArbiter(repository, provider, event_bus)
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._stop_requests: set[str] = set()

    # -- lifecycle -------------------------------------------------------

    def create_debate(self, setup: DebateSetup) -> Debate:
        """Validate and persist a new pending debate with its agents."""
        validate_debate_settings(
            setup.topic, setup.max_rounds, setup.judge_weight, setup.audience_weight
        )
        for agent_setup in setup.agents:
            if agent_setup.provider not in SUPPORTED_PROVIDERS:
                raise ValidationError(
                    f"Agent {agent_setup.name} uses unknown provider {agent_setup.provider!r}"
                )
        debate = Debate(
            id=str(uuid.uuid4()),
            topic=setup.topic.strip(),
            pro_definition=setup.pro_definition,
            con_definition=setup.con_definition,
            max_rounds=setup.max_rounds,
            judge_weight=setup.judge_weight,
            audience_weight=setup.audience_weight,
        )
        agents = [
            Agent(
                id=str(uuid.uuid4()),
                debate_id=debate.id,
                role=agent_setup.role,
                name=agent_setup.name,
                provider=agent_setup.provider,
                model=agent_setup.model,
                stance=agent_setup.stance,
                style=agent_setup.style,
                audience_type=agent_setup.audience_type,
            )
            for agent_setup in setup.agents
        ]
        Roster.from_agents(agents)

        self._repository.create_debate(debate, agents)
        logger.info(f"Created debate {debate.id}: {debate.topic}")
        return debate

    async def start_debate(self, debate_id: str) -> Debate:
        """Move a pending debate to running and spawn its worker.

        Starting anything but a pending debate raises ConcurrencyError and
        changes nothing.
        """
        debate = self.get_debate(debate_id)
        if debate.status is not DebateStatus.PENDING:
            raise ConcurrencyError(f"Debate {debate_id} is already {debate.status.value}")

        roster = Roster.from_agents(self._repository.get_agents(debate_id))

        limit = self._config.orchestrator.max_concurrent_debates
        if len(self._tasks) >= limit:
            raise ConcurrencyError(f"Maximum of {limit} concurrent debates reached")

        debate = self._repository.transition_debate(
            debate_id, DebateStatus.PENDING, DebateStatus.RUNNING
        )
        self._event_bus.emit(
            debate_id,
            EventType.DEBATE_START,
            topic=debate.topic,
            max_rounds=debate.max_rounds,
            audience=len(roster.audience),
        )

        task = asyncio.create_task(self.run_debate(debate_id), name=f"debate-{debate_id}")
        self._tasks[debate_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(debate_id, None))
        return debate

    async def wait_for_debate(self, debate_id: str) -> Debate:
        """Wait for a running debate's worker to finish."""
        task = self._tasks.get(debate_id)
        if task is not None:
            await asyncio.shield(task)
        return self.get_debate(debate_id)

    def stop_debate(self, debate_id: str) -> Debate:
        """Ask a running debate to stop at the next round boundary."""
        debate = self.get_debate(debate_id)
        if debate.status is not DebateStatus.RUNNING:
            return debate

        if debate_id in self._tasks:
            self._stop_requests.add(debate_id)
            logger.info(f"Stop requested for debate {debate_id}")
            return debate

        # Running in storage but no worker here: nothing will ever finish it
        return self._fail(debate_id, STOPPED_REASON)

    def running_debates(self) -> list[str]:
        return list(self._tasks)

    async def shutdown(self) -> None:
        """Cancel every debate worker."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # -- the debate worker -----------------------------------------------

    async def run_debate(self, debate_id: str) -> None:
        """Play every round of a running debate, then compute the verdict."""
        debate = self.get_debate(debate_id)
        history: list[HistoryEntry] = []

        try:
            roster = Roster.from_agents(self._repository.get_agents(debate_id))
            for sequence in range(1, debate.max_rounds + 1):
                self._check_stop(debate_id)
                await self._run_round(debate, roster, sequence, history)
                delay = self._config.debate.round_delay_seconds
                if delay and sequence < debate.max_rounds:
                    await asyncio.sleep(delay)
            self._check_stop(debate_id)
            await self._finalize(debate, roster, history)
        except _StopRequested:
            logger.info(f"Debate {debate_id} stopped by operator")
            self._record_failure(debate_id, STOPPED_REASON)
        except asyncio.CancelledError:
            logger.warning(f"Debate {debate_id} cancelled")
            self._record_failure(debate_id, SHUTDOWN_REASON)
            raise
        except Exception as e:
            logger.error(f"Debate {debate_id} failed: {type(e).__name__}: {e}")
            self._record_failure(debate_id, f"{type(e).__name__}: {e}")
        finally:
            self._stop_requests.discard(debate_id)

    def _check_stop(self, debate_id: str) -> None:
        if debate_id in self._stop_requests:
            raise _StopRequested()

    def _record_failure(self, debate_id: str, reason: str) -> None:
        try:
            self._fail(debate_id, reason)
        except DebateError as e:
            logger.error(f"Could not mark debate {debate_id} as failed: {e}")

    def _fail(self, debate_id: str, reason: str) -> Debate:
        debate = self._repository.transition_debate(
            debate_id,
            DebateStatus.RUNNING,
            DebateStatus.FAILED,
            failure_reason=reason,
        )
        self._event_bus.emit(debate_id, EventType.ERROR, message=reason)
        self._event_bus.schedule_teardown(
            debate_id, self._config.events.teardown_grace_seconds
        )
        return debate

    async def _run_round(
        self, debate: Debate, roster: Roster, sequence: int, history: list[HistoryEntry]
    ) -> Round:
        round_ = self._repository.create_round(
            Round(
                id=str(uuid.uuid4()),
                debate_id=debate.id,
                sequence=sequence,
                phase=derive_phase(sequence, debate.max_rounds),
                type=derive_round_type(sequence, debate.max_rounds),
            )
        )
        self._event_bus.emit(
            debate.id,
            EventType.ROUND_START,
            round_id=round_.id,
            sequence=sequence,
            phase=round_.phase.value,
            round_type=round_.type.value,
        )
        logger.info(f"Debate {debate.id}: round {sequence}/{debate.max_rounds} ({round_.phase.value})")

        try:
            pro_message = await self._debater_turn(debate, round_, roster.pro, history)
            con_message = await self._debater_turn(debate, round_, roster.con, history)

            if in_audience_window(sequence) and roster.audience:
                approved = await self._audience_segment(debate, round_, roster, history)
                if approved is not None:
                    round_.type = RoundType.AUDIENCE_REQUEST

            pro_total, con_total = self.scoring.judge_totals(debate.id)
            context = RoundContext.for_round(debate, round_, history, pro_total, con_total)
            pro_result, con_result = await asyncio.gather(
                self.scoring.score_round(roster.judge, context, pro_message),
                self.scoring.score_round(roster.judge, context, con_message),
            )
            scores = [
                self._repository.create_score(
                    pro_result.to_score(round_.id, roster.pro.id, Stance.PRO)
                ),
                self._repository.create_score(
                    con_result.to_score(round_.id, roster.con.id, Stance.CON)
                ),
            ]
            pro_total, con_total = self.scoring.judge_totals(debate.id)
            self._event_bus.emit(
                debate.id,
                EventType.SCORE_UPDATE,
                round_id=round_.id,
                sequence=sequence,
                scores=to_jsonable(scores),
                totals={"pro": pro_total, "con": con_total},
            )

            round_ = self._repository.finish_round(round_.id, RoundStatus.COMPLETED)
        except (Exception, asyncio.CancelledError):
            self._repository.finish_round(round_.id, RoundStatus.FAILED)
            raise

        self._event_bus.emit(
            debate.id,
            EventType.ROUND_END,
            round_id=round_.id,
            sequence=sequence,
            round_type=round_.type.value,
        )
        return round_

    def _start_turn(
        self, debate: Debate, round_: Round, agent: Agent, stance: Stance
    ) -> TokenCallback:
        """Announce a speaker and return the callback that streams their tokens."""
        self._event_bus.emit(
            debate.id,
            EventType.AGENT_START,
            round_id=round_.id,
            agent_id=agent.id,
            role=agent.role.value,
            stance=stance.value,
        )

        async def on_token(chunk: str) -> None:
            self._event_bus.emit(
                debate.id, EventType.TOKEN, agent_id=agent.id, stance=stance.value, chunk=chunk
            )

        return on_token

    def _end_turn(
        self, debate: Debate, round_: Round, message: Message, history: list[HistoryEntry]
    ) -> None:
        history.append(HistoryEntry.from_message(message, round_.sequence))
        self._event_bus.emit(
            debate.id,
            EventType.AGENT_END,
            round_id=round_.id,
            agent_id=message.agent_id,
            role=message.role.value,
            stance=message.stance.value if message.stance else None,
            message_id=message.id,
            content=message.content,
            token_count=message.token_count,
        )

    async def _debater_turn(
        self, debate: Debate, round_: Round, agent: Agent, history: list[HistoryEntry]
    ) -> Message:
        context = RoundContext.for_round(debate, round_, history)
        prompt = build_debater_prompt(agent, context)
        on_token = self._start_turn(debate, round_, agent, agent.stance)

        generation = await self._provider.generate(agent, prompt, list(history), on_token)
        if not generation.content.strip():
            raise ProviderError(
                f"{agent.name} returned an empty statement", agent_id=agent.id, role="debater"
            )

        message = self._repository.create_message(
            Message(
                id=None,
                round_id=round_.id,
                agent_id=agent.id,
                role=AgentRole.DEBATER,
                stance=agent.stance,
                content=generation.content,
                token_count=generation.token_count,
            )
        )
        self._end_turn(debate, round_, message, history)
        return message

    async def _audience_segment(
        self, debate: Debate, round_: Round, roster: Roster, history: list[HistoryEntry]
    ) -> AudienceRequest | None:
        """Let the audience ask to speak; the approved speaker addresses the debate."""
        pro_total, con_total = self.scoring.judge_totals(debate.id)
        context = RoundContext.for_round(debate, round_, history, pro_total, con_total)
        outcome = await self.arbiter.arbitrate(round_, roster.judge, roster.audience, context)
        request = outcome.approved
        if request is None:
            return None

        self._repository.set_round_type(round_.id, RoundType.AUDIENCE_REQUEST)
        speaker = next(agent for agent in roster.audience if agent.id == request.agent_id)
        await self._audience_turn(debate, round_, speaker, request, history)
        return request

    async def _audience_turn(
        self,
        debate: Debate,
        round_: Round,
        agent: Agent,
        request: AudienceRequest,
        history: list[HistoryEntry],
    ) -> Message:
        """Stream the approved speech; a failed speech falls back to the approved claim."""
        stance = request.intent.stance
        context = RoundContext.for_round(debate, round_, history)
        prompt = build_audience_speech_prompt(agent, context, request)
        on_token = self._start_turn(debate, round_, agent, stance)

        try:
            generation = await self._provider.generate(agent, prompt, list(history), on_token)
            content, token_count = generation.content.strip(), generation.token_count
        except ProviderError as e:
            logger.warning(f"Audience speech by {agent.name} failed, using the approved claim: {e}")
            content, token_count = "", 0
        if not content:
            content, token_count = request.claim, estimate_tokens(request.claim)

        message = self._repository.create_message(
            Message(
                id=None,
                round_id=round_.id,
                agent_id=agent.id,
                role=AgentRole.AUDIENCE,
                stance=stance,
                content=content,
                token_count=token_count,
            )
        )
        self._end_turn(debate, round_, message, history)
        self._event_bus.emit(
            debate.id,
            EventType.AUDIENCE_SPEECH,
            round_id=round_.id,
            agent_id=agent.id,
            request_id=request.id,
            audience_type=agent.audience_type.value if agent.audience_type else None,
            stance=stance.value,
            content=content,
        )
        return message

    async def _finalize(
        self, debate: Debate, roster: Roster, history: list[HistoryEntry]
    ) -> Debate:
        rounds = self._repository.get_rounds(debate.id)
        pro_total, con_total = self.scoring.judge_totals(debate.id)
        context = RoundContext.for_round(debate, rounds[-1], history, pro_total, con_total)

        await self.voting.collect_votes(debate, roster.audience, context)
        judgment = self.scoring.generate_final_judgment(debate.id)
        weighted = self.voting.calculate_weighted_result(debate.id)
        winner = Winner(weighted["winner"])

        debate = self._repository.transition_debate(
            debate.id, DebateStatus.RUNNING, DebateStatus.COMPLETED, winner=winner
        )
        logger.info(
            f"Debate {debate.id} completed: {winner.value} "
            f"({weighted['final_pro']:.1f} vs {weighted['final_con']:.1f})"
        )
        self._event_bus.emit(
            debate.id,
            EventType.DEBATE_END,
            winner=winner.value,
            judgment=judgment,
            weighted_result=weighted,
        )
        self._event_bus.schedule_teardown(
            debate.id, self._config.events.teardown_grace_seconds
        )
        return debate

    # -- queries ---------------------------------------------------------

    def get_debate(self, debate_id: str) -> Debate:
        debate = self._repository.get_debate(debate_id)
        if debate is None:
            raise NotFoundError(f"Debate {debate_id} not found")
        return debate

    def list_debates(self, limit: int = 50, offset: int = 0) -> list[Debate]:
        return self._repository.list_debates(limit=limit, offset=offset)

    def count_debates(self, status: DebateStatus | None = None) -> int:
        return self._repository.count_debates(status)

    def get_agents(self, debate_id: str) -> list[Agent]:
        self.get_debate(debate_id)
        return self._repository.get_agents(debate_id)

    def get_rounds(self, debate_id: str) -> list[Round]:
        self.get_debate(debate_id)
        return self._repository.get_rounds(debate_id)

    def _get_round(self, round_id: str) -> Round:
        round_ = self._repository.get_round(round_id)
        if round_ is None:
            raise NotFoundError(f"Round {round_id} not found")
        return round_

    def get_round_messages(self, round_id: str) -> list[Message]:
        self._get_round(round_id)
        return self._repository.get_round_messages(round_id)

    def get_round_scores(self, round_id: str) -> list[Score]:
        self._get_round(round_id)
        return self._repository.get_round_scores(round_id)

    def get_debate_result(self, debate_id: str) -> dict[str, Any]:
        """Judgment, voting analysis and weighted result of a debate.

        Only completed debates have a verdict; others report the scores so far.
        """
        debate = self.get_debate(debate_id)
        result: dict[str, Any] = {
            "debate_id": debate.id,
            "status": debate.status.value,
            "winner": debate.winner.value if debate.winner else None,
            "failure_reason": debate.failure_reason,
        }
        if debate.status is not DebateStatus.COMPLETED:
            result.update(
                judgment=None,
                voting=None,
                weighted_result=None,
                message="Judgment unavailable: debate is not completed",
                rounds=self.scoring.round_summaries(debate_id),
            )
            return result

        result.update(
            judgment=self.scoring.generate_final_judgment(debate_id),
            voting=self.voting.generate_voting_analysis(debate_id),
            weighted_result=self.voting.calculate_weighted_result(debate_id),
        )
        return result

    def export_debate(self, debate_id: str) -> dict[str, Any]:
        """Full JSON-ready dump of a debate for archiving."""
        debate = self.get_debate(debate_id)
        rounds = []
        total_messages = total_tokens = 0
        for round_ in self._repository.get_rounds(debate_id):
            messages = self._repository.get_round_messages(round_.id)
            total_messages += len(messages)
            total_tokens += sum(message.token_count for message in messages)
            rounds.append(
                {
                    **to_jsonable(round_),
                    "messages": to_jsonable(messages),
                    "scores": [
                        {**to_jsonable(score), "total": score.total}
                        for score in self._repository.get_round_scores(round_.id)
                    ],
                    "audience_requests": to_jsonable(
                        self._repository.get_round_audience_requests(round_.id)
                    ),
                }
            )

        pro_total, con_total = self.scoring.judge_totals(debate_id)
        return {
            "debate": to_jsonable(debate),
            "agents": to_jsonable(self._repository.get_agents(debate_id)),
            "rounds": rounds,
            "votes": to_jsonable(self._repository.get_votes(debate_id)),
            "result": self.get_debate_result(debate_id),
            "statistics": {
                "total_rounds": len(rounds),
                "total_messages": total_messages,
                "total_tokens": total_tokens,
                "pro_total": pro_total,
                "con_total": con_total,
            },
        }

    def delete_debate(self, debate_id: str) -> None:
        debate = self.get_debate(debate_id)
        if debate.status is DebateStatus.RUNNING:
            raise ConcurrencyError(f"Debate {debate_id} is running and cannot be deleted")
        self._repository.delete_debate(debate_id)
        self._event_bus.clear_debate(debate_id)
