"""Pytest configuration and shared fixtures.

The fake reasoning provider below stands in for every language model call
so debates can be played deterministically against a real SQLite file.
"""

import json
import uuid
from collections.abc import Awaitable, Callable
from pathlib import Path

import pytest

from agents.provider import Generation
from config.settings import AppConfig
from debate_engine.database import DatabaseManager
from debate_engine.event_bus import EventBus
from debate_engine.exceptions import ProviderError
from debate_engine.history import HistoryEntry, RoundContext
from debate_engine.models import Agent, AudienceRequest, Message, Round, Score, derive_phase
from debate_engine.orchestrator import AgentSetup, DebateOrchestrator, DebateSetup, Roster
from debate_engine.types import AgentRole, AudienceType, DebaterStyle, FoulType, Stance

PRO_SCORE = {"logic": 8, "rebuttal": 8, "clarity": 8, "evidence": 8, "comment": "Solid."}
CON_SCORE = {"logic": 8, "rebuttal": 8, "clarity": 7, "evidence": 7, "comment": "Decent."}
SILENT = json.dumps({"wants_to_speak": False})
APPROVE = json.dumps({"approved": True, "comment": "Relevant and new."})

type Reply = str | Callable[[RoundContext], str] | Exception


def _resolve(reply: Reply, context: RoundContext) -> str:
    if isinstance(reply, Exception):
        raise reply
    if callable(reply):
        return reply(context)
    return reply


class FakeReasoningProvider:
    """Scripted ReasoningProvider that records every call it receives."""

    def __init__(self):
        self.scores: dict[Stance, Reply] = {
            Stance.PRO: json.dumps(PRO_SCORE),
            Stance.CON: json.dumps(CON_SCORE),
        }
        self.audience_replies: dict[str, Reply] = {}
        self.approval: Reply = APPROVE
        self.votes: dict[str, Reply] = {}
        self.fail_generation_at: int | None = None
        self.before_generate: Callable[[int], Awaitable[None]] | None = None

        self.generate_calls: list[tuple[str, str, list[HistoryEntry]]] = []
        self.score_calls: list[tuple[int, Stance]] = []
        self.score_histories: list[tuple[HistoryEntry, ...]] = []
        self.approval_calls: list[AudienceRequest] = []
        self.vote_calls: list[str] = []

    async def generate(self, agent: Agent, prompt, history, on_token=None) -> Generation:
        self.generate_calls.append((agent.name, prompt, list(history)))
        call_number = len(self.generate_calls)
        if self.before_generate is not None:
            await self.before_generate(call_number)
        if self.fail_generation_at == call_number:
            raise ProviderError(f"{agent.name} timed out", agent_id=agent.id, role="debater")

        content = f"{agent.name} makes argument {call_number}."
        if on_token is not None:
            for chunk in (content[:10], content[10:]):
                await on_token(chunk)
        return Generation(content=content, token_count=len(content) // 4)

    async def score_round(self, judge, *, context, stance, content) -> str:
        self.score_calls.append((context.sequence, stance))
        self.score_histories.append(context.history)
        return _resolve(self.scores[stance], context)

    async def decide_audience_request(self, agent, *, context) -> str:
        return _resolve(self.audience_replies.get(agent.name, SILENT), context)

    async def approve_audience_request(self, judge, *, context, request, audience_type) -> str:
        self.approval_calls.append(request)
        return _resolve(self.approval, context)

    async def cast_vote(self, agent, *, context) -> str:
        self.vote_calls.append(agent.name)
        default = json.dumps({"vote": "pro", "confidence": 0.8})
        return _resolve(self.votes.get(agent.name, default), context)


def debate_setup(
    audience: int = 3,
    max_rounds: int = 10,
    judge_weight: float = 0.7,
    audience_weight: float = 0.3,
    topic: str = "Should artificial intelligence be regulated by governments?",
) -> DebateSetup:
    """Pro, con and judge plus ``audience`` listeners named audience-1..n."""
    audience_types = list(AudienceType)
    agents = [
        AgentSetup(
            role=AgentRole.DEBATER,
            name="pro",
            model="fake",
            stance=Stance.PRO,
            style=DebaterStyle.RATIONAL,
        ),
        AgentSetup(
            role=AgentRole.DEBATER,
            name="con",
            model="fake",
            stance=Stance.CON,
            style=DebaterStyle.AGGRESSIVE,
        ),
        AgentSetup(role=AgentRole.JUDGE, name="judge", model="fake"),
    ]
    agents.extend(
        AgentSetup(
            role=AgentRole.AUDIENCE,
            name=f"audience-{index}",
            model="fake",
            audience_type=audience_types[(index - 1) % len(audience_types)],
        )
        for index in range(1, audience + 1)
    )
    return DebateSetup(
        topic=topic,
        agents=agents,
        max_rounds=max_rounds,
        judge_weight=judge_weight,
        audience_weight=audience_weight,
    )


def seed_scores(
    repository: DatabaseManager,
    orchestrator: DebateOrchestrator,
    rounds: list[tuple[tuple[int, int, int, int], tuple[int, int, int, int]]],
    fouls: dict[tuple[int, Stance], list[FoulType]] | None = None,
    audience: int = 0,
) -> str:
    """Persist a debate whose rounds carry the given (pro, con) dimension scores."""
    fouls = fouls or {}
    debate = orchestrator.create_debate(debate_setup(audience=audience, max_rounds=len(rounds)))
    roster = Roster.from_agents(repository.get_agents(debate.id))

    for sequence, (pro_dims, con_dims) in enumerate(rounds, start=1):
        round_ = repository.create_round(
            Round(
                id=str(uuid.uuid4()),
                debate_id=debate.id,
                sequence=sequence,
                phase=derive_phase(sequence, len(rounds)),
            )
        )
        for stance, dims in ((Stance.PRO, pro_dims), (Stance.CON, con_dims)):
            agent = roster.debater(stance)
            repository.create_message(
                Message(
                    id=None,
                    round_id=round_.id,
                    agent_id=agent.id,
                    role=AgentRole.DEBATER,
                    stance=stance,
                    content=f"{stance.value} point in round {sequence}",
                )
            )
            logic, rebuttal, clarity, evidence = dims
            repository.create_score(
                Score(
                    round_id=round_.id,
                    agent_id=agent.id,
                    stance=stance,
                    logic=logic,
                    rebuttal=rebuttal,
                    clarity=clarity,
                    evidence=evidence,
                    fouls=fouls.get((sequence, stance), []),
                )
            )
    return debate.id


# =============================================================================
# SHARED FIXTURES - Available to all test modules
# =============================================================================


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "debates.db"


@pytest.fixture
def repository(db_path: Path) -> DatabaseManager:
    return DatabaseManager(db_path)


@pytest.fixture
def provider() -> FakeReasoningProvider:
    return FakeReasoningProvider()


@pytest.fixture
def app_config() -> AppConfig:
    config = AppConfig()
    config.events.debounce_ms = 0
    return config


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus(debounce_ms=0)


@pytest.fixture
def orchestrator(
    repository: DatabaseManager,
    event_bus: EventBus,
    provider: FakeReasoningProvider,
    app_config: AppConfig,
) -> DebateOrchestrator:
    return DebateOrchestrator(repository, event_bus, provider, app_config)


# =============================================================================
# PYTEST CONFIGURATION HOOKS
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
