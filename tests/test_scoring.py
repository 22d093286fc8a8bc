"""Tests for judge scoring and the judge-side final judgment."""

import asyncio
import json

import pytest

from debate_engine.database import DatabaseManager
from debate_engine.history import RoundContext
from debate_engine.models import Message
from debate_engine.orchestrator import DebateOrchestrator
from debate_engine.types import AgentRole, FoulType, Phase, Stance, Winner
from judges.scoring import (
    ScoringEngine,
    apply_foul_penalty,
    clamp_dimension,
    determine_winner,
    parse_judge_output,
)

from conftest import FakeReasoningProvider, seed_scores


def test_clamp_dimension_bounds_and_rounding() -> None:
    assert clamp_dimension(15) == 10
    assert clamp_dimension(-3) == 1
    assert clamp_dimension(7.5) == 8
    assert clamp_dimension(6.49) == 6
    assert clamp_dimension(float("nan")) == 1


def test_apply_foul_penalty() -> None:
    assert apply_foul_penalty(8, 2) == 4
    assert apply_foul_penalty(3, 3) == 1
    assert apply_foul_penalty(30, 0) == 30


def test_determine_winner_uses_absolute_threshold() -> None:
    assert determine_winner(25, 20) is Winner.PRO
    assert determine_winner(20, 25) is Winner.CON
    assert determine_winner(22, 22.05) is Winner.DRAW
    assert determine_winner(22, 22.1) is Winner.CON


def test_parse_judge_output_clamps_and_normalizes_fouls() -> None:
    raw = json.dumps(
        {
            "logic": 15,
            "rebuttal": 0,
            "clarity": 7.5,
            "evidence": 6,
            "comment": " Sharp but rude. ",
            "fouls": ["Ad Hominem", "shouting"],
        }
    )
    result = parse_judge_output(raw)

    assert (result.logic, result.rebuttal, result.clarity, result.evidence) == (10, 1, 8, 6)
    assert result.total == 25
    assert result.fouls == (FoulType.AD_HOMINEM, FoulType.OTHER)
    assert result.comment == "Sharp but rude."
    assert not result.fallback


def test_parse_judge_output_falls_back_to_neutral_scores() -> None:
    result = parse_judge_output("The pro side was better, probably a 7.")

    assert result.fallback
    assert result.total == 20
    assert result.fouls == ()


def test_score_totals_stay_within_bounds() -> None:
    for value in (-100, 0, 1, 5.5, 10, 99):
        raw = json.dumps({"logic": value, "rebuttal": value, "clarity": value, "evidence": value})
        assert 4 <= parse_judge_output(raw).total <= 40


def test_score_round_asks_provider_with_message_stance(
    repository: DatabaseManager, provider: FakeReasoningProvider
) -> None:
    engine = ScoringEngine(repository, provider)
    context = RoundContext(
        topic="Topic",
        pro_definition=None,
        con_definition=None,
        sequence=4,
        max_rounds=10,
        phase=Phase.REBUTTAL,
    )
    message = Message(
        id=1,
        round_id="r",
        agent_id="a",
        role=AgentRole.DEBATER,
        stance=Stance.CON,
        content="Con argument.",
    )

    result = asyncio.run(engine.score_round(object(), context, message))

    assert result.total == 30
    assert provider.score_calls == [(4, Stance.CON)]


def test_judge_totals_apply_foul_penalty(
    repository: DatabaseManager, orchestrator: DebateOrchestrator
) -> None:
    debate_id = seed_scores(
        repository,
        orchestrator,
        [((8, 8, 8, 8), (7, 7, 7, 7)), ((6, 6, 6, 6), (9, 9, 9, 9))],
        fouls={(2, Stance.CON): [FoulType.AD_HOMINEM, FoulType.OFF_TOPIC]},
    )

    assert orchestrator.scoring.judge_totals(debate_id) == (32 + 24, 28 + 36 - 4)
    assert orchestrator.scoring.round_summaries(debate_id) == [
        {"round_sequence": 1, "pro": 32, "con": 28},
        {"round_sequence": 2, "pro": 24, "con": 32},
    ]


def test_key_turning_round_is_first_leadership_flip(
    repository: DatabaseManager, orchestrator: DebateOrchestrator
) -> None:
    debate_id = seed_scores(
        repository,
        orchestrator,
        [
            ((8, 8, 8, 8), (7, 7, 7, 7)),  # pro leads 32-28
            ((5, 5, 5, 5), (7, 7, 7, 7)),  # con leads 52-56
            ((9, 9, 9, 9), (5, 5, 5, 5)),  # pro leads again
        ],
    )

    assert orchestrator.scoring.find_key_turning_round(debate_id) == 2


def test_key_turning_round_without_flip_is_widest_gap(
    repository: DatabaseManager, orchestrator: DebateOrchestrator
) -> None:
    debate_id = seed_scores(
        repository,
        orchestrator,
        [
            ((7, 7, 7, 7), (7, 7, 7, 7)),  # level: no leader yet
            ((8, 8, 8, 8), (7, 7, 7, 7)),  # pro +4
            ((9, 9, 9, 9), (7, 7, 7, 7)),  # pro +12
            ((6, 6, 6, 6), (7, 7, 7, 7)),  # pro +8
        ],
    )

    assert orchestrator.scoring.find_key_turning_round(debate_id) == 3


def test_winning_arguments_are_best_scored_winner_rounds(
    repository: DatabaseManager, orchestrator: DebateOrchestrator
) -> None:
    debate_id = seed_scores(
        repository,
        orchestrator,
        [
            ((6, 6, 6, 6), (5, 5, 5, 5)),
            ((9, 9, 9, 9), (5, 5, 5, 5)),
            ((7, 7, 7, 7), (5, 5, 5, 5)),
            ((9, 9, 9, 9), (5, 5, 5, 5)),
        ],
    )

    arguments = orchestrator.scoring.extract_winning_arguments(debate_id)

    assert [(item["round_sequence"], item["score"]) for item in arguments] == [
        (2, 36),
        (4, 36),
        (3, 28),
    ]
    assert arguments[0]["excerpt"] == "pro point in round 2"
    assert orchestrator.scoring.extract_winning_arguments(debate_id, Winner.DRAW) == []


def test_final_judgment_is_deterministic(
    repository: DatabaseManager, orchestrator: DebateOrchestrator
) -> None:
    debate_id = seed_scores(
        repository,
        orchestrator,
        [((8, 8, 8, 8), (8, 8, 7, 7))] * 3,
        fouls={(1, Stance.PRO): [FoulType.DISRUPTION]},
    )

    first = orchestrator.scoring.generate_final_judgment(debate_id)
    second = orchestrator.scoring.generate_final_judgment(debate_id)

    assert first == second
    assert first["winner"] == "pro"
    assert (first["pro_total"], first["con_total"], first["margin"]) == (94, 90, 4)
    assert first["fouls"] == [
        {"round_sequence": 1, "stance": "pro", "foul_type": "disruption", "comment": ""}
    ]
    assert first["summary"].startswith("PRO wins on judge scores 94-90")


def test_engine_threshold_comes_from_config(
    repository: DatabaseManager, provider: FakeReasoningProvider
) -> None:
    from config.settings import ScoringConfig

    engine = ScoringEngine(repository, provider, ScoringConfig(draw_threshold=5))

    assert engine.determine_winner(24, 20) is Winner.DRAW
    assert engine.determine_winner(25, 20) is Winner.PRO
    assert engine.determine_winner(24, 20, threshold=0.1) is Winner.PRO


@pytest.mark.parametrize("stance", [Stance.PRO, Stance.CON])
def test_judge_result_converts_to_score(stance: Stance) -> None:
    score = parse_judge_output('{"logic": 4, "rebuttal": 5, "clarity": 6, "evidence": 7}').to_score(
        "round", "agent", stance
    )

    assert score.stance is stance
    assert score.total == 22
    assert score.fouls == []
