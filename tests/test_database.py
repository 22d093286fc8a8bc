"""Tests for the SQLite repository."""

import sqlite3
import uuid
from pathlib import Path

import pytest

from debate_engine.database import DatabaseManager
from debate_engine.exceptions import (
    ConcurrencyError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from debate_engine.models import AudienceRequest, Message, Round, Vote, derive_phase
from debate_engine.orchestrator import DebateOrchestrator, Roster
from debate_engine.types import (
    AgentRole,
    DebateStatus,
    FoulType,
    RequestIntent,
    RoundStatus,
    RoundType,
    Stance,
    Winner,
)

from conftest import debate_setup, seed_scores


def _round(debate_id: str, sequence: int, max_rounds: int = 10) -> Round:
    return Round(
        id=str(uuid.uuid4()),
        debate_id=debate_id,
        sequence=sequence,
        phase=derive_phase(sequence, max_rounds),
    )


def test_create_and_read_back_debate(
    repository: DatabaseManager, orchestrator: DebateOrchestrator
) -> None:
    debate = orchestrator.create_debate(debate_setup(audience=2))

    stored = repository.get_debate(debate.id)
    agents = repository.get_agents(debate.id)

    assert stored is not None
    assert stored.topic == debate.topic
    assert stored.status is DebateStatus.PENDING
    assert (stored.judge_weight, stored.audience_weight) == (0.7, 0.3)
    assert [agent.name for agent in agents] == ["pro", "con", "judge", "audience-1", "audience-2"]
    assert agents[0].stance is Stance.PRO
    assert agents[3].role is AgentRole.AUDIENCE
    assert repository.get_debate("missing") is None


def test_list_and_count_debates(
    repository: DatabaseManager, orchestrator: DebateOrchestrator
) -> None:
    ids = [orchestrator.create_debate(debate_setup(topic=f"Topic {n}")).id for n in range(3)]

    assert repository.count_debates() == 3
    assert repository.count_debates(DebateStatus.RUNNING) == 0
    assert len(repository.list_debates(limit=2)) == 2
    assert {debate.id for debate in repository.list_debates()} == set(ids)


def test_transition_is_guarded_by_expected_status(
    repository: DatabaseManager, orchestrator: DebateOrchestrator
) -> None:
    debate = orchestrator.create_debate(debate_setup())

    running = repository.transition_debate(debate.id, DebateStatus.PENDING, DebateStatus.RUNNING)
    assert running.status is DebateStatus.RUNNING
    assert running.started_at is not None

    with pytest.raises(ConcurrencyError):
        repository.transition_debate(debate.id, DebateStatus.PENDING, DebateStatus.RUNNING)
    with pytest.raises(NotFoundError):
        repository.transition_debate("missing", DebateStatus.PENDING, DebateStatus.RUNNING)

    done = repository.transition_debate(
        debate.id, DebateStatus.RUNNING, DebateStatus.COMPLETED, winner=Winner.CON
    )
    assert done.winner is Winner.CON
    assert done.completed_at is not None


def test_round_sequences_must_be_contiguous(
    repository: DatabaseManager, orchestrator: DebateOrchestrator
) -> None:
    debate = orchestrator.create_debate(debate_setup())

    repository.create_round(_round(debate.id, 1))
    with pytest.raises(ValidationError):
        repository.create_round(_round(debate.id, 3))
    with pytest.raises(ValidationError):
        repository.create_round(_round(debate.id, 1))
    repository.create_round(_round(debate.id, 2))

    assert [r.sequence for r in repository.get_rounds(debate.id)] == [1, 2]


def test_finish_round_is_final(
    repository: DatabaseManager, orchestrator: DebateOrchestrator
) -> None:
    debate = orchestrator.create_debate(debate_setup())
    round_ = repository.create_round(_round(debate.id, 1))
    repository.set_round_type(round_.id, RoundType.AUDIENCE_REQUEST)

    finished = repository.finish_round(round_.id, RoundStatus.COMPLETED)

    assert finished.status is RoundStatus.COMPLETED
    assert finished.type is RoundType.AUDIENCE_REQUEST
    assert finished.completed_at is not None
    with pytest.raises(ConcurrencyError):
        repository.finish_round(round_.id, RoundStatus.FAILED)
    with pytest.raises(ValidationError):
        repository.finish_round(round_.id, RoundStatus.RUNNING)
    with pytest.raises(NotFoundError):
        repository.finish_round("missing", RoundStatus.COMPLETED)


def test_messages_keep_insertion_order(
    repository: DatabaseManager, orchestrator: DebateOrchestrator
) -> None:
    debate = orchestrator.create_debate(debate_setup())
    roster = Roster.from_agents(repository.get_agents(debate.id))
    round_ = repository.create_round(_round(debate.id, 1))
    for agent in (roster.pro, roster.con):
        repository.create_message(
            Message(
                id=None,
                round_id=round_.id,
                agent_id=agent.id,
                role=AgentRole.DEBATER,
                stance=agent.stance,
                content=f"{agent.name} speaks",
                token_count=3,
            )
        )

    messages = repository.get_round_messages(round_.id)

    assert [m.stance for m in messages] == [Stance.PRO, Stance.CON]
    assert all(isinstance(m.id, int) for m in messages)
    assert repository.get_debate_messages(debate.id) == messages


def test_scores_store_fouls_and_reject_duplicates(
    repository: DatabaseManager, orchestrator: DebateOrchestrator
) -> None:
    debate_id = seed_scores(
        repository,
        orchestrator,
        [((8, 8, 8, 8), (6, 6, 6, 6))],
        fouls={(1, Stance.CON): [FoulType.OFF_TOPIC]},
    )
    _, con_score = repository.get_debate_scores(debate_id)[1]

    assert con_score.fouls == [FoulType.OFF_TOPIC]
    assert con_score.total == 24
    with pytest.raises(ConcurrencyError):
        repository.create_score(con_score)


def test_audience_request_window_and_single_decision(
    repository: DatabaseManager, orchestrator: DebateOrchestrator
) -> None:
    debate = orchestrator.create_debate(debate_setup(audience=1))
    roster = Roster.from_agents(repository.get_agents(debate.id))
    rounds = [repository.create_round(_round(debate.id, n)) for n in (1, 2, 3)]

    def request(round_id: str) -> AudienceRequest:
        return AudienceRequest(
            id=str(uuid.uuid4()),
            round_id=round_id,
            agent_id=roster.audience[0].id,
            intent=RequestIntent.SUPPORT_PRO,
            claim="Consider the cost.",
        )

    with pytest.raises(ValidationError):
        repository.create_audience_request(request(rounds[1].id))
    with pytest.raises(NotFoundError):
        repository.create_audience_request(request("missing"))

    created = repository.create_audience_request(request(rounds[2].id))
    decided = repository.decide_audience_request(created.id, True, "Go ahead.")

    assert decided.approved is True
    assert decided.judge_comment == "Go ahead."
    with pytest.raises(ConcurrencyError):
        repository.decide_audience_request(created.id, False, "Changed my mind.")
    assert repository.get_round_audience_requests(rounds[2].id) == [decided]


def test_votes_are_unique_and_frozen_after_completion(
    repository: DatabaseManager, orchestrator: DebateOrchestrator
) -> None:
    debate = orchestrator.create_debate(debate_setup(audience=2))
    first, second = Roster.from_agents(repository.get_agents(debate.id)).audience

    vote = repository.create_vote(
        Vote(debate_id=debate.id, agent_id=first.id, stance=Winner.PRO, confidence=0.6)
    )
    assert vote.id is not None
    with pytest.raises(ConcurrencyError):
        repository.create_vote(
            Vote(debate_id=debate.id, agent_id=first.id, stance=Winner.CON, confidence=0.6)
        )

    repository.transition_debate(debate.id, DebateStatus.PENDING, DebateStatus.RUNNING)
    repository.transition_debate(debate.id, DebateStatus.RUNNING, DebateStatus.COMPLETED)
    with pytest.raises(ConcurrencyError):
        repository.create_vote(
            Vote(debate_id=debate.id, agent_id=second.id, stance=Winner.CON, confidence=0.6)
        )
    with pytest.raises(NotFoundError):
        repository.create_vote(
            Vote(debate_id="missing", agent_id=second.id, stance=Winner.CON, confidence=0.6)
        )


def test_delete_cascades(repository: DatabaseManager, orchestrator: DebateOrchestrator, db_path: Path) -> None:
    debate_id = seed_scores(repository, orchestrator, [((8, 8, 8, 8), (6, 6, 6, 6))])

    assert repository.delete_debate(debate_id) is True
    assert repository.delete_debate(debate_id) is False

    with sqlite3.connect(db_path) as conn:
        for table in ("agents", "rounds", "messages", "scores"):
            assert conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0] == 0


def test_driver_errors_become_persistence_errors(tmp_path: Path) -> None:
    with pytest.raises(PersistenceError):
        DatabaseManager(tmp_path / "missing-dir" / "debates.db")
