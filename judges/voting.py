"""Audience voting and the judge/audience weighted verdict."""

import asyncio
import logging
import statistics
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from config.settings import VotingConfig
from debate_engine.exceptions import NotFoundError
from debate_engine.history import RoundContext
from debate_engine.models import Agent, Debate, Vote
from debate_engine.repository import Repository
from debate_engine.types import AudienceType, VoteStats, WeightedResult, Winner

from .parsing import VotePayload, decode
from .scoring import MAX_ROUND_TOTAL, ScoringEngine

if TYPE_CHECKING:
    from agents.provider import ReasoningProvider

logger = logging.getLogger(__name__)


def aggregate_votes(votes: Iterable[Vote]) -> VoteStats:
    """Count ballots and sum confidence per side."""
    stats = VoteStats(pro=0, con=0, draw=0, total=0, pro_weighted=0.0, con_weighted=0.0)
    for vote in votes:
        stats["total"] += 1
        stats[vote.stance.value] += 1
        if vote.stance is Winner.PRO:
            stats["pro_weighted"] += vote.confidence
        elif vote.stance is Winner.CON:
            stats["con_weighted"] += vote.confidence
    stats["pro_weighted"] = round(stats["pro_weighted"], 6)
    stats["con_weighted"] = round(stats["con_weighted"], 6)
    return stats


def determine_winner_from_votes(stats: VoteStats) -> Winner:
    """Weighted comparison; only an exact tie is a draw."""
    if stats["pro_weighted"] > stats["con_weighted"]:
        return Winner.PRO
    if stats["con_weighted"] > stats["pro_weighted"]:
        return Winner.CON
    return Winner.DRAW


def audience_shares(stats: VoteStats) -> tuple[float, float]:
    """Share of decisive weight per side. Draw ballots carry no weight here."""
    decisive = stats["pro_weighted"] + stats["con_weighted"]
    if decisive <= 0:
        return 0.5, 0.5
    pro_share = stats["pro_weighted"] / decisive
    return pro_share, 1.0 - pro_share


class VotingEngine:
    """Collects audience ballots and combines them with the judge totals."""

    def __init__(
        self,
        repository: Repository,
        provider: "ReasoningProvider",
        scoring: ScoringEngine,
        config: VotingConfig | None = None,
    ):
        self._repository = repository
        self._provider = provider
        self._scoring = scoring
        self._config = config or VotingConfig()

    async def collect_votes(
        self, debate: Debate, audience: list[Agent], context: RoundContext
    ) -> list[Vote]:
        """Ask every audience agent for a ballot and persist the results.

        At most ``max_concurrent_votes`` calls run at once. Unparsable ballots
        follow the judge totals; provider failures propagate.
        """
        if not audience:
            return []

        semaphore = asyncio.Semaphore(self._config.max_concurrent_votes)

        async def ballot(agent: Agent) -> Vote:
            async with semaphore:
                raw = await self._provider.cast_vote(agent, context=context)
            return self._decode_vote(debate, agent, raw, context)

        ballots = await asyncio.gather(*(ballot(agent) for agent in audience))
        votes = [self._repository.create_vote(vote) for vote in ballots]
        logger.info(f"Collected {len(votes)} audience votes for debate {debate.id}")
        return votes

    def _decode_vote(
        self, debate: Debate, agent: Agent, raw: str, context: RoundContext
    ) -> Vote:
        decoded = decode(raw, VotePayload)
        if decoded.ok:
            payload = decoded.value
            return Vote(
                debate_id=debate.id,
                agent_id=agent.id,
                stance=Winner(payload.vote),
                confidence=payload.confidence,
                reason=payload.reason,
            )

        stance = self._scoring.determine_winner(context.pro_total, context.con_total)
        logger.warning(
            f"Vote from {agent.name} unparsable ({decoded.reason}), "
            f"following judge totals: {stance.value}"
        )
        return Vote(
            debate_id=debate.id,
            agent_id=agent.id,
            stance=stance,
            confidence=self._config.fallback_confidence,
            reason="Derived from judge scores",
        )

    def _debate(self, debate_id: str) -> Debate:
        debate = self._repository.get_debate(debate_id)
        if debate is None:
            raise NotFoundError(f"Debate {debate_id} not found")
        return debate

    def default_audience_scale(self, debate: Debate) -> float:
        """Highest total one side can receive from the judge."""
        scored_rounds = len(self._scoring.round_summaries(debate.id))
        return float(MAX_ROUND_TOTAL * (scored_rounds or debate.max_rounds))

    def calculate_weighted_result(
        self,
        debate_id: str,
        judge_weight: float | None = None,
        audience_weight: float | None = None,
        audience_scale: float | None = None,
    ) -> WeightedResult:
        """Combine judge totals and audience shares.

        ``final = judge_total * judge_weight + share * audience_scale * audience_weight``
        for each side, where ``audience_scale`` puts the audience share on the
        same scale as the judge totals.
        """
        debate = self._debate(debate_id)
        judge_weight = debate.judge_weight if judge_weight is None else judge_weight
        audience_weight = debate.audience_weight if audience_weight is None else audience_weight
        if audience_scale is None:
            audience_scale = self.default_audience_scale(debate)

        judge_pro, judge_con = self._scoring.judge_totals(debate_id)
        stats = aggregate_votes(self._repository.get_votes(debate_id))
        pro_share, con_share = audience_shares(stats)

        final_pro = round(judge_pro * judge_weight + pro_share * audience_scale * audience_weight, 6)
        final_con = round(judge_con * judge_weight + con_share * audience_scale * audience_weight, 6)
        winner = self._scoring.determine_winner(final_pro, final_con)

        return WeightedResult(
            judge_pro=judge_pro,
            judge_con=judge_con,
            audience_pro_share=round(pro_share, 6),
            audience_con_share=round(con_share, 6),
            audience_scale=audience_scale,
            judge_weight=judge_weight,
            audience_weight=audience_weight,
            final_pro=final_pro,
            final_con=final_con,
            winner=winner.value,
        )

    def perspective_divergence(self, debate_id: str) -> dict[str, Any]:
        """How differently each audience type voted.

        Divergence is the population standard deviation of the per-type pro
        share; 0 means every perspective agreed.
        """
        agents = {agent.id: agent for agent in self._repository.get_agents(debate_id)}
        by_type: dict[str, list[Vote]] = {}
        for vote in self._repository.get_votes(debate_id):
            agent = agents.get(vote.agent_id)
            audience_type = agent.audience_type if agent and agent.audience_type else AudienceType.RATIONAL
            by_type.setdefault(audience_type.value, []).append(vote)

        perspectives: dict[str, dict[str, Any]] = {}
        for audience_type in sorted(by_type):
            stats = aggregate_votes(by_type[audience_type])
            pro_share, _ = audience_shares(stats)
            perspectives[audience_type] = {
                "votes": stats,
                "pro_share": round(pro_share, 6),
                "leaning": determine_winner_from_votes(stats).value,
            }

        shares = [entry["pro_share"] for entry in perspectives.values()]
        divergence = statistics.pstdev(shares) if len(shares) > 1 else 0.0
        return {"perspectives": perspectives, "divergence": round(divergence, 6)}

    def generate_voting_analysis(self, debate_id: str) -> dict[str, Any]:
        stats = aggregate_votes(self._repository.get_votes(debate_id))
        pro_share, con_share = audience_shares(stats)
        return {
            "stats": stats,
            "winner": determine_winner_from_votes(stats).value,
            "pro_share": round(pro_share, 6),
            "con_share": round(con_share, 6),
            **self.perspective_divergence(debate_id),
        }
