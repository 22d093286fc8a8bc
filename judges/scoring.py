"""Judge scoring: per-round evaluation and the final judge-side verdict."""

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from config.settings import ScoringConfig
from debate_engine.history import RoundContext
from debate_engine.models import Message, Score
from debate_engine.repository import Repository
from debate_engine.types import (
    AgentRole,
    FinalJudgment,
    FoulRecord,
    FoulType,
    RoundScoreSummary,
    Stance,
    Winner,
    WinningArgument,
)

from .parsing import JudgeScorePayload, decode

if TYPE_CHECKING:
    from agents.provider import ReasoningProvider
    from debate_engine.models import Agent

logger = logging.getLogger(__name__)

MIN_DIMENSION = 1
MAX_DIMENSION = 10
FALLBACK_DIMENSION = 5
MAX_ROUND_TOTAL = 4 * MAX_DIMENSION
DEFAULT_DRAW_THRESHOLD = 0.1
DEFAULT_FOUL_PENALTY = 2
EXCERPT_LENGTH = 100
MAX_WINNING_ARGUMENTS = 3


@dataclass(frozen=True)
class JudgeScoreResult:
    """Validated judge output for one statement."""

    logic: int
    rebuttal: int
    clarity: int
    evidence: int
    comment: str = ""
    fouls: tuple[FoulType, ...] = field(default_factory=tuple)
    fallback: bool = False

    @property
    def total(self) -> int:
        return self.logic + self.rebuttal + self.clarity + self.evidence

    def to_score(self, round_id: str, agent_id: str, stance: Stance) -> Score:
        return Score(
            round_id=round_id,
            agent_id=agent_id,
            stance=stance,
            logic=self.logic,
            rebuttal=self.rebuttal,
            clarity=self.clarity,
            evidence=self.evidence,
            comment=self.comment,
            fouls=list(self.fouls),
        )


def clamp_dimension(value: float) -> int:
    """Round half up and clamp into [1, 10]. NaN falls to the minimum."""
    bounded = min(float(MAX_DIMENSION), max(float(MIN_DIMENSION), value))
    return int(math.floor(bounded + 0.5))


def normalize_foul(tag: str) -> FoulType:
    try:
        return FoulType(tag.strip().lower().replace("-", "_").replace(" ", "_"))
    except ValueError:
        return FoulType.OTHER


def fallback_result(reason: str) -> JudgeScoreResult:
    return JudgeScoreResult(
        logic=FALLBACK_DIMENSION,
        rebuttal=FALLBACK_DIMENSION,
        clarity=FALLBACK_DIMENSION,
        evidence=FALLBACK_DIMENSION,
        comment=f"Score unavailable, neutral fallback applied ({reason}).",
        fallback=True,
    )


def parse_judge_output(raw: str | None) -> JudgeScoreResult:
    """Turn raw judge text into a clamped result, falling back to 5/5/5/5."""
    decoded = decode(raw, JudgeScorePayload)
    if not decoded.ok:
        logger.warning(f"Judge score unparsable, using fallback: {decoded.reason}")
        return fallback_result(decoded.reason or "unparsable judge output")

    payload = decoded.value
    return JudgeScoreResult(
        logic=clamp_dimension(payload.logic),
        rebuttal=clamp_dimension(payload.rebuttal),
        clarity=clamp_dimension(payload.clarity),
        evidence=clamp_dimension(payload.evidence),
        comment=payload.comment.strip(),
        fouls=tuple(normalize_foul(tag) for tag in payload.fouls),
    )


def apply_foul_penalty(score: int, foul_count: int, penalty: int = DEFAULT_FOUL_PENALTY) -> int:
    """Deduct ``penalty`` per foul, never going below 1."""
    return max(1, score - penalty * foul_count)


def determine_winner(
    pro_score: float, con_score: float, threshold: float = DEFAULT_DRAW_THRESHOLD
) -> Winner:
    """Draw when the absolute difference is below ``threshold``."""
    if abs(pro_score - con_score) < threshold:
        return Winner.DRAW
    return Winner.PRO if pro_score > con_score else Winner.CON


def excerpt(content: str, length: int = EXCERPT_LENGTH) -> str:
    content = content.strip()
    return content if len(content) <= length else f"{content[:length]}..."


class ScoringEngine:
    """Scores rounds through the judge and aggregates persisted scores.

    Everything except ``score_round`` reads from the repository only, so the
    judgment can be regenerated at any time with identical results.
    """

    def __init__(
        self,
        repository: Repository,
        provider: "ReasoningProvider",
        config: ScoringConfig | None = None,
    ):
        self._repository = repository
        self._provider = provider
        self._config = config or ScoringConfig()

    @property
    def draw_threshold(self) -> float:
        return self._config.draw_threshold

    async def score_round(
        self, judge: "Agent", context: RoundContext, message: Message
    ) -> JudgeScoreResult:
        """Ask the judge to score one debater message.

        Provider failures propagate; unparsable output degrades to the fallback.
        """
        if message.stance is None:
            raise ValueError(f"Message {message.id} has no stance to score")
        raw = await self._provider.score_round(
            judge, context=context, stance=message.stance, content=message.content
        )
        result = parse_judge_output(raw)
        logger.info(
            f"Round {context.sequence} {message.stance.value} scored {result.total}"
            f"{' (fallback)' if result.fallback else ''}"
        )
        return result

    def apply_foul_penalty(self, score: int, foul_count: int) -> int:
        return apply_foul_penalty(score, foul_count, self._config.foul_penalty)

    def determine_winner(
        self, pro_score: float, con_score: float, threshold: float | None = None
    ) -> Winner:
        return determine_winner(
            pro_score, con_score, self.draw_threshold if threshold is None else threshold
        )

    def penalized_total(self, score: Score) -> int:
        return self.apply_foul_penalty(score.total, len(score.fouls))

    def round_summaries(self, debate_id: str) -> list[RoundScoreSummary]:
        """Foul-adjusted totals per side for every scored round."""
        summaries: dict[int, RoundScoreSummary] = {}
        for round_, score in self._repository.get_debate_scores(debate_id):
            summary = summaries.setdefault(
                round_.sequence,
                RoundScoreSummary(round_sequence=round_.sequence, pro=0, con=0),
            )
            summary[score.stance.value] += self.penalized_total(score)
        return [summaries[sequence] for sequence in sorted(summaries)]

    def judge_totals(self, debate_id: str) -> tuple[int, int]:
        """Sum of foul-adjusted totals for (pro, con)."""
        summaries = self.round_summaries(debate_id)
        return (
            sum(summary["pro"] for summary in summaries),
            sum(summary["con"] for summary in summaries),
        )

    def find_key_turning_round(self, debate_id: str) -> int | None:
        """First round where cumulative leadership flips.

        Without a flip, the round with the widest cumulative gap (earliest on
        ties). A tied cumulative score has no leader and never counts as a flip.
        """
        cumulative_pro = cumulative_con = 0
        leader: Stance | None = None
        widest_gap = -1
        widest_round: int | None = None

        for summary in self.round_summaries(debate_id):
            cumulative_pro += summary["pro"]
            cumulative_con += summary["con"]

            if cumulative_pro != cumulative_con:
                current = Stance.PRO if cumulative_pro > cumulative_con else Stance.CON
                if leader is not None and current is not leader:
                    return summary["round_sequence"]
                leader = current

            gap = abs(cumulative_pro - cumulative_con)
            if gap > widest_gap:
                widest_gap = gap
                widest_round = summary["round_sequence"]

        return widest_round

    def extract_winning_arguments(
        self, debate_id: str, winner: Winner | None = None
    ) -> list[WinningArgument]:
        """Excerpts of the winner's best-scored rounds, at most three."""
        if winner is None:
            pro_total, con_total = self.judge_totals(debate_id)
            winner = self.determine_winner(pro_total, con_total)
        if winner is Winner.DRAW:
            return []
        stance = Stance(winner.value)

        scored: dict[str, tuple[int, int]] = {}
        for round_, score in self._repository.get_debate_scores(debate_id):
            if score.stance is stance:
                scored[round_.id] = (round_.sequence, self.penalized_total(score))

        candidates: list[WinningArgument] = []
        for round_ in self._repository.get_rounds(debate_id):
            if round_.id not in scored:
                continue
            sequence, total = scored[round_.id]
            for message in self._repository.get_round_messages(round_.id):
                if message.stance is stance and message.role is AgentRole.DEBATER:
                    candidates.append(
                        WinningArgument(
                            round_sequence=sequence,
                            score=total,
                            excerpt=excerpt(message.content),
                        )
                    )
                    break

        candidates.sort(key=lambda item: (-item["score"], item["round_sequence"]))
        return candidates[:MAX_WINNING_ARGUMENTS]

    def collect_foul_records(self, debate_id: str) -> list[FoulRecord]:
        records: list[FoulRecord] = []
        for round_, score in self._repository.get_debate_scores(debate_id):
            for foul in score.fouls:
                records.append(
                    FoulRecord(
                        round_sequence=round_.sequence,
                        stance=score.stance.value,
                        foul_type=foul.value,
                        comment=score.comment,
                    )
                )
        return records

    def generate_final_judgment(self, debate_id: str) -> FinalJudgment:
        """Judge-side verdict computed purely from persisted data."""
        rounds = self.round_summaries(debate_id)
        pro_total = sum(summary["pro"] for summary in rounds)
        con_total = sum(summary["con"] for summary in rounds)
        winner = self.determine_winner(pro_total, con_total)
        turning_round = self.find_key_turning_round(debate_id)

        if winner is Winner.DRAW:
            summary = f"The judge scored the debate level at {pro_total}-{con_total}."
        else:
            summary = (
                f"{winner.value.upper()} wins on judge scores "
                f"{max(pro_total, con_total)}-{min(pro_total, con_total)}"
                f" across {len(rounds)} rounds."
            )
        if turning_round is not None:
            summary += f" Key round: {turning_round}."

        return FinalJudgment(
            winner=winner.value,
            pro_total=pro_total,
            con_total=con_total,
            margin=abs(pro_total - con_total),
            key_turning_round=turning_round,
            winning_arguments=self.extract_winning_arguments(debate_id, winner),
            fouls=self.collect_foul_records(debate_id),
            rounds=rounds,
            summary=summary,
        )
