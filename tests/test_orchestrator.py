"""End-to-end tests for the debate orchestrator."""

import asyncio
import json

import pytest

from config.settings import AppConfig
from debate_engine.database import DatabaseManager
from debate_engine.event_bus import EventBus
from debate_engine.exceptions import ConcurrencyError, NotFoundError, ValidationError
from debate_engine.orchestrator import (
    STOPPED_REASON,
    AgentSetup,
    DebateOrchestrator,
)
from debate_engine.types import (
    AgentRole,
    DebateEvent,
    DebateStatus,
    Phase,
    RoundStatus,
    RoundType,
    Stance,
    Winner,
)

from conftest import FakeReasoningProvider, debate_setup

PINNED_VOTES = {
    "audience-1": json.dumps({"vote": "pro", "confidence": 0.8}),
    "audience-2": json.dumps({"vote": "pro", "confidence": 0.8}),
    "audience-3": json.dumps({"vote": "con", "confidence": 0.9}),
}


def _run(orchestrator: DebateOrchestrator, setup, events: list[DebateEvent] | None = None):
    async def scenario():
        debate = orchestrator.create_debate(setup)
        if events is not None:
            orchestrator._event_bus.subscribe(debate.id, events.append)
        await orchestrator.start_debate(debate.id)
        finished = await orchestrator.wait_for_debate(debate.id)
        await orchestrator._event_bus.close()
        return finished

    return asyncio.run(scenario())


@pytest.mark.integration
def test_full_debate_produces_weighted_verdict(
    orchestrator: DebateOrchestrator,
    repository: DatabaseManager,
    provider: FakeReasoningProvider,
) -> None:
    provider.votes = PINNED_VOTES

    debate = _run(orchestrator, debate_setup())

    assert debate.status is DebateStatus.COMPLETED
    assert debate.winner is Winner.PRO
    assert debate.started_at is not None and debate.completed_at is not None

    rounds = repository.get_rounds(debate.id)
    assert [r.sequence for r in rounds] == list(range(1, 11))
    assert all(r.status is RoundStatus.COMPLETED for r in rounds)
    assert [r.phase for r in rounds[:3]] == [Phase.OPENING, Phase.OPENING, Phase.REBUTTAL]
    assert rounds[-1].phase is Phase.CLOSING
    assert rounds[-1].type is RoundType.FINALE

    result = orchestrator.get_debate_result(debate.id)
    weighted = result["weighted_result"]
    assert (weighted["judge_pro"], weighted["judge_con"]) == (320, 300)
    assert weighted["final_pro"] == pytest.approx(300.8)
    assert weighted["final_con"] == pytest.approx(253.2)
    assert result["judgment"]["winner"] == "pro"
    assert result["voting"]["stats"]["total"] == 3


def test_pro_always_speaks_before_con_and_sees_history(
    orchestrator: DebateOrchestrator,
    repository: DatabaseManager,
    provider: FakeReasoningProvider,
) -> None:
    debate = _run(orchestrator, debate_setup(audience=0, max_rounds=3))

    for round_ in repository.get_rounds(debate.id):
        stances = [m.stance for m in repository.get_round_messages(round_.id)]
        assert stances == [Stance.PRO, Stance.CON]

    speakers = [name for name, _, _ in provider.generate_calls]
    assert speakers == ["pro", "con"] * 3
    # con in round 1 already sees pro's opening
    assert [entry.stance for entry in provider.generate_calls[1][2]] == [Stance.PRO]
    assert len(provider.generate_calls[-1][2]) == 5


def test_events_follow_the_debate_lifecycle(
    orchestrator: DebateOrchestrator, provider: FakeReasoningProvider
) -> None:
    events: list[DebateEvent] = []

    _run(orchestrator, debate_setup(audience=1, max_rounds=2), events)

    types = [event["type"] for event in events]
    assert types[0] == "connected"
    assert types[1] == "debate_start"
    assert types[-1] == "debate_end"
    assert types.count("round_start") == 2
    assert types.count("round_end") == 2
    assert types.count("score_update") == 2
    assert types.count("agent_start") == types.count("agent_end") == 4
    first_round = types[types.index("round_start"):types.index("round_end") + 1]
    assert first_round[:2] == ["round_start", "agent_start"]
    assert "token" in first_round

    tokens = [e["data"]["chunk"] for e in events if e["type"] == "token" and e["data"]["stance"] == "pro"]
    assert "".join(tokens[:2]) == "pro makes argument 1."
    assert events[-1]["data"]["winner"] == "pro"


def _speak_in_round_three(context) -> str:
    if context.sequence != 3:
        return json.dumps({"wants_to_speak": False})
    return json.dumps(
        {
            "wants_to_speak": True,
            "intent": "support_con",
            "claim": "Regulation slows open research.",
            "novelty": "new",
            "confidence": 0.8,
        }
    )


@pytest.mark.integration
def test_approved_audience_speech_is_streamed_into_history(
    orchestrator: DebateOrchestrator,
    repository: DatabaseManager,
    provider: FakeReasoningProvider,
) -> None:
    provider.audience_replies = {"audience-1": _speak_in_round_three}
    events: list[DebateEvent] = []

    debate = _run(orchestrator, debate_setup(audience=2, max_rounds=4), events)

    rounds = repository.get_rounds(debate.id)
    assert [r.type for r in rounds] == [
        RoundType.STANDARD,
        RoundType.STANDARD,
        RoundType.AUDIENCE_REQUEST,
        RoundType.FINALE,
    ]
    messages = repository.get_round_messages(rounds[2].id)
    assert [m.role for m in messages] == [AgentRole.DEBATER, AgentRole.DEBATER, AgentRole.AUDIENCE]
    assert messages[2].stance is Stance.CON
    assert messages[2].content == "audience-1 makes argument 7."

    # The speaker sees both debaters' round 3 statements and is prompted with the claim
    name, prompt, seen = provider.generate_calls[6]
    assert name == "audience-1"
    assert "Regulation slows open research." in prompt
    assert len(seen) == 6
    # Only debaters are scored, with the speech already in the judge's view
    assert len(repository.get_round_scores(rounds[2].id)) == 2
    assert provider.score_histories[4][-1].role is AgentRole.AUDIENCE
    # Pro's round 4 prompt history includes the speech
    assert provider.generate_calls[7][0] == "pro"
    assert provider.generate_calls[7][2][-1].content == "audience-1 makes argument 7."

    speaker_id = messages[2].agent_id
    speaker_events = [e["type"] for e in events if e["data"].get("agent_id") == speaker_id]
    assert "agent_start" in speaker_events and "agent_end" in speaker_events
    assert speaker_events.count("token") == 2
    speech = next(e for e in events if e["type"] == "audience_speech")
    assert speech["data"]["stance"] == "con"
    assert speech["data"]["content"] == "audience-1 makes argument 7."


def test_failed_audience_speech_falls_back_to_the_claim(
    orchestrator: DebateOrchestrator,
    repository: DatabaseManager,
    provider: FakeReasoningProvider,
) -> None:
    provider.audience_replies = {"audience-1": _speak_in_round_three}
    provider.fail_generation_at = 7  # the audience speech in round 3

    debate = _run(orchestrator, debate_setup(audience=1, max_rounds=4))

    assert debate.status is DebateStatus.COMPLETED
    round_three = repository.get_rounds(debate.id)[2]
    assert round_three.status is RoundStatus.COMPLETED
    speech = repository.get_round_messages(round_three.id)[-1]
    assert speech.role is AgentRole.AUDIENCE
    assert speech.content == "Regulation slows open research."


def test_provider_failure_fails_debate_and_keeps_data(
    orchestrator: DebateOrchestrator,
    repository: DatabaseManager,
    provider: FakeReasoningProvider,
) -> None:
    provider.fail_generation_at = 6  # con in round 3
    events: list[DebateEvent] = []

    debate = _run(orchestrator, debate_setup(audience=0, max_rounds=5), events)

    assert debate.status is DebateStatus.FAILED
    assert "ProviderError" in (debate.failure_reason or "")
    assert debate.winner is None
    rounds = repository.get_rounds(debate.id)
    assert [r.status for r in rounds] == [
        RoundStatus.COMPLETED,
        RoundStatus.COMPLETED,
        RoundStatus.FAILED,
    ]
    assert events[-1]["type"] == "error"

    result = orchestrator.get_debate_result(debate.id)
    assert result["judgment"] is None
    assert result["message"].startswith("Judgment unavailable")
    assert [r["round_sequence"] for r in result["rounds"]] == [1, 2]


def test_stop_is_honored_at_round_boundary(
    orchestrator: DebateOrchestrator,
    repository: DatabaseManager,
    provider: FakeReasoningProvider,
) -> None:
    async def scenario():
        debate = orchestrator.create_debate(debate_setup(audience=0, max_rounds=5))

        async def stop_during_first_turn(call_number: int) -> None:
            if call_number == 1:
                orchestrator.stop_debate(debate.id)

        provider.before_generate = stop_during_first_turn
        await orchestrator.start_debate(debate.id)
        return await orchestrator.wait_for_debate(debate.id)

    debate = asyncio.run(scenario())

    assert debate.status is DebateStatus.FAILED
    assert debate.failure_reason == STOPPED_REASON
    rounds = repository.get_rounds(debate.id)
    assert len(rounds) == 1
    assert rounds[0].status is RoundStatus.COMPLETED


def test_start_only_from_pending(orchestrator: DebateOrchestrator) -> None:
    async def scenario():
        debate = orchestrator.create_debate(debate_setup(audience=0, max_rounds=1))
        await orchestrator.start_debate(debate.id)
        with pytest.raises(ConcurrencyError):
            await orchestrator.start_debate(debate.id)
        await orchestrator.wait_for_debate(debate.id)
        with pytest.raises(ConcurrencyError):
            await orchestrator.start_debate(debate.id)
        with pytest.raises(NotFoundError):
            await orchestrator.start_debate("missing")
        return orchestrator.get_debate(debate.id)

    assert asyncio.run(scenario()).status is DebateStatus.COMPLETED


def test_concurrent_debate_limit(
    repository: DatabaseManager, provider: FakeReasoningProvider
) -> None:
    config = AppConfig()
    config.orchestrator.max_concurrent_debates = 1
    orchestrator = DebateOrchestrator(repository, EventBus(debounce_ms=0), provider, config)

    async def scenario():
        first = orchestrator.create_debate(debate_setup(audience=0, max_rounds=2))
        second = orchestrator.create_debate(debate_setup(audience=0, max_rounds=2))
        await orchestrator.start_debate(first.id)
        with pytest.raises(ConcurrencyError):
            await orchestrator.start_debate(second.id)
        await orchestrator.wait_for_debate(first.id)
        await orchestrator.start_debate(second.id)
        return await orchestrator.wait_for_debate(second.id)

    assert asyncio.run(scenario()).status is DebateStatus.COMPLETED
    assert all(debate.status is DebateStatus.COMPLETED for debate in orchestrator.list_debates())


def test_create_debate_validates_roster(orchestrator: DebateOrchestrator) -> None:
    setup = debate_setup(audience=0)
    setup.agents = [agent for agent in setup.agents if agent.role is not AgentRole.JUDGE]
    with pytest.raises(ValidationError):
        orchestrator.create_debate(setup)

    setup = debate_setup(audience=0)
    setup.agents.append(
        AgentSetup(role=AgentRole.DEBATER, name="pro-2", model="fake", stance=Stance.PRO)
    )
    with pytest.raises(ValidationError):
        orchestrator.create_debate(setup)

    with pytest.raises(ValidationError):
        orchestrator.create_debate(debate_setup(max_rounds=25))

    setup = debate_setup(audience=0)
    setup.agents[0].provider = "bogus"
    with pytest.raises(ValidationError, match="bogus"):
        orchestrator.create_debate(setup)
    assert orchestrator.list_debates() == []


def test_delete_and_export(
    orchestrator: DebateOrchestrator, provider: FakeReasoningProvider
) -> None:
    provider.votes = PINNED_VOTES
    debate = _run(orchestrator, debate_setup(max_rounds=2))

    export = orchestrator.export_debate(debate.id)

    assert export["debate"]["status"] == "completed"
    assert len(export["rounds"]) == 2
    assert export["rounds"][0]["scores"][0]["total"] == 32
    assert export["statistics"]["total_messages"] == 4
    assert len(export["votes"]) == 3
    json.dumps(export)

    orchestrator.delete_debate(debate.id)
    with pytest.raises(NotFoundError):
        orchestrator.get_debate(debate.id)


def test_cannot_delete_running_debate(orchestrator: DebateOrchestrator, repository: DatabaseManager) -> None:
    debate = orchestrator.create_debate(debate_setup(audience=0))
    repository.transition_debate(debate.id, DebateStatus.PENDING, DebateStatus.RUNNING)

    with pytest.raises(ConcurrencyError):
        orchestrator.delete_debate(debate.id)

    # No worker owns it, so stopping fails it immediately
    stopped = orchestrator.stop_debate(debate.id)
    assert stopped.status is DebateStatus.FAILED
    orchestrator.delete_debate(debate.id)
