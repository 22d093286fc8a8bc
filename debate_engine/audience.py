"""Audience requests to speak: solicitation, ordering and judge approval."""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from judges.parsing import ApprovalPayload, AudienceRequestPayload, decode

from .event_bus import EventBus
from .exceptions import ParseError, ProviderError
from .history import RoundContext
from .models import Agent, AudienceRequest, Round, in_audience_window
from .repository import Repository
from .types import AudienceType, EventType, Novelty, RequestIntent

if TYPE_CHECKING:
    from agents.provider import ReasoningProvider

logger = logging.getLogger(__name__)

OUTSIDE_WINDOW_COMMENT = "Audience requests are only heard in rounds 3 to 6."
ALREADY_APPROVED_COMMENT = "Another audience request was approved this round."
JUDGE_UNAVAILABLE_COMMENT = "The judge could not review this request."
UNPARSABLE_COMMENT = "The judge's decision could not be read; request rejected."


@dataclass
class ArbitrationOutcome:
    """Requests raised in a round and the one that was approved, if any."""

    requests: list[AudienceRequest] = field(default_factory=list)
    approved: AudienceRequest | None = None


class AudienceRequestArbiter:
    """Runs the raised -> approved/rejected workflow for one round.

    At most one request is approved per round. Every request is decided
    exactly once and never revisited.
    """

    def __init__(
        self,
        repository: Repository,
        provider: "ReasoningProvider",
        event_bus: EventBus | None = None,
    ):
        self._repository = repository
        self._provider = provider
        self._event_bus = event_bus

    def _emit(self, debate_id: str, event_type: EventType, **data) -> None:
        if self._event_bus is not None:
            self._event_bus.emit(debate_id, event_type, **data)

    async def arbitrate(
        self,
        round_: Round,
        judge: Agent,
        audience: list[Agent],
        context: RoundContext,
    ) -> ArbitrationOutcome:
        """Solicit requests from ``audience`` and have ``judge`` review them."""
        if not in_audience_window(round_.sequence) or not audience:
            return ArbitrationOutcome()

        existing = self._repository.get_round_audience_requests(round_.id)
        if existing:
            logger.debug(f"Round {round_.sequence} already has audience decisions")
            approved = next((request for request in existing if request.approved), None)
            return ArbitrationOutcome(requests=existing, approved=approved)

        candidates = await self._solicit(round_, audience, context)
        if not candidates:
            return ArbitrationOutcome()

        audience_types = {agent.id: agent.audience_type for agent in audience}
        outcome = ArbitrationOutcome()
        for request in self.order_candidates(candidates):
            if outcome.approved is not None:
                decided = self._decide(round_, request, False, ALREADY_APPROVED_COMMENT)
            else:
                decided = await self.review_request(
                    round_, request, judge, context, audience_types.get(request.agent_id)
                )
                if decided.approved:
                    outcome.approved = decided
            outcome.requests.append(decided)

        if outcome.approved is not None:
            logger.info(
                f"Round {round_.sequence}: approved audience request {outcome.approved.id} "
                f"({outcome.approved.intent.value})"
            )
        return outcome

    async def _solicit(
        self, round_: Round, audience: list[Agent], context: RoundContext
    ) -> list[AudienceRequest]:
        """Poll every audience agent; failures and silence mean "not speaking"."""
        replies = await asyncio.gather(
            *(self._provider.decide_audience_request(agent, context=context) for agent in audience),
            return_exceptions=True,
        )

        candidates: list[AudienceRequest] = []
        for agent, reply in zip(audience, replies):
            if isinstance(reply, ProviderError):
                logger.warning(f"Audience agent {agent.name} unavailable: {reply}")
                continue
            if isinstance(reply, BaseException):
                raise reply

            decoded = decode(reply, AudienceRequestPayload)
            if not decoded.ok:
                logger.debug(f"Audience agent {agent.name} reply unparsable: {decoded.reason}")
                continue
            payload = decoded.value
            if not payload.wants_to_speak or payload.intent is None or not payload.claim:
                continue

            request = AudienceRequest(
                id=str(uuid.uuid4()),
                round_id=round_.id,
                agent_id=agent.id,
                intent=RequestIntent(payload.intent),
                claim=payload.claim,
                novelty=Novelty(payload.novelty),
                confidence=payload.confidence,
            )
            self._repository.create_audience_request(request)
            candidates.append(request)
            self._emit(
                round_.debate_id,
                EventType.AUDIENCE_REQUEST,
                request_id=request.id,
                agent_id=agent.id,
                round_sequence=round_.sequence,
                intent=request.intent.value,
                claim=request.claim,
                novelty=request.novelty.value,
                confidence=request.confidence,
            )
        return candidates

    @staticmethod
    def order_candidates(candidates: list[AudienceRequest]) -> list[AudienceRequest]:
        """Highest confidence first, new points before reinforcements, then poll order."""
        indexed = list(enumerate(candidates))
        indexed.sort(
            key=lambda item: (
                -item[1].confidence,
                0 if item[1].novelty is Novelty.NEW else 1,
                item[0],
            )
        )
        return [request for _, request in indexed]

    async def review_request(
        self,
        round_: Round,
        request: AudienceRequest,
        judge: Agent,
        context: RoundContext,
        audience_type: AudienceType | None = None,
    ) -> AudienceRequest:
        """Ask the judge to approve one request.

        Outside rounds 3 to 6 the request is rejected without asking the judge.
        Judge failures and unreadable answers reject the request.
        """
        if not in_audience_window(round_.sequence):
            request.approved = False
            request.judge_comment = OUTSIDE_WINDOW_COMMENT
            return request

        try:
            raw = await self._provider.approve_audience_request(
                judge, context=context, request=request, audience_type=audience_type
            )
        except ProviderError as e:
            logger.warning(f"Judge failed reviewing audience request {request.id}: {e}")
            return self._decide(round_, request, False, JUDGE_UNAVAILABLE_COMMENT)

        try:
            payload = decode(raw, ApprovalPayload).unwrap()
        except ParseError as e:
            logger.warning(f"Approval for audience request {request.id} unparsable: {e}")
            return self._decide(round_, request, False, UNPARSABLE_COMMENT)

        return self._decide(round_, request, payload.approved, payload.comment)

    def _decide(
        self, round_: Round, request: AudienceRequest, approved: bool, comment: str
    ) -> AudienceRequest:
        decided = self._repository.decide_audience_request(request.id, approved, comment)
        self._emit(
            round_.debate_id,
            EventType.AUDIENCE_APPROVAL,
            request_id=decided.id,
            agent_id=decided.agent_id,
            round_sequence=round_.sequence,
            approved=bool(decided.approved),
            comment=decided.judge_comment or "",
        )
        return decided
