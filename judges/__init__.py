"""Judge scoring, audience voting and structured output decoding."""

from .parsing import Decoded, decode
from .scoring import (
    JudgeScoreResult,
    ScoringEngine,
    apply_foul_penalty,
    determine_winner,
    parse_judge_output,
)
from .voting import VotingEngine, aggregate_votes, determine_winner_from_votes

__all__ = [
    "Decoded",
    "decode",
    "JudgeScoreResult",
    "ScoringEngine",
    "apply_foul_penalty",
    "determine_winner",
    "parse_judge_output",
    "VotingEngine",
    "aggregate_votes",
    "determine_winner_from_votes",
]
