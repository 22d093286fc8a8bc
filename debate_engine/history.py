"""Debate history as seen by the agents."""

from dataclasses import dataclass

from .models import Debate, Message, Round
from .types import AgentRole, Phase, Stance

EMPTY_HISTORY = "(No statements yet. This is the first turn of the debate.)"


@dataclass(frozen=True)
class HistoryEntry:
    """One spoken turn, labelled with the side it argues for."""

    round_sequence: int
    role: AgentRole
    stance: Stance | None
    content: str

    @property
    def label(self) -> str:
        side = self.stance.value.upper() if self.stance else "NEUTRAL"
        if self.role is AgentRole.AUDIENCE:
            return f"AUDIENCE -> {side}"
        if self.role is AgentRole.DEBATER:
            return side
        return self.role.value.upper()

    @classmethod
    def from_message(cls, message: Message, round_sequence: int) -> "HistoryEntry":
        return cls(
            round_sequence=round_sequence,
            role=message.role,
            stance=message.stance,
            content=message.content,
        )


@dataclass(frozen=True)
class RoundContext:
    """Everything a prompt needs to know about the current round."""

    topic: str
    pro_definition: str | None
    con_definition: str | None
    sequence: int
    max_rounds: int
    phase: Phase
    history: tuple[HistoryEntry, ...] = ()
    pro_total: int = 0
    con_total: int = 0

    @classmethod
    def for_round(
        cls,
        debate: Debate,
        round_: Round,
        history: list[HistoryEntry],
        pro_total: int = 0,
        con_total: int = 0,
    ) -> "RoundContext":
        return cls(
            topic=debate.topic,
            pro_definition=debate.pro_definition,
            con_definition=debate.con_definition,
            sequence=round_.sequence,
            max_rounds=debate.max_rounds,
            phase=round_.phase,
            history=tuple(history),
            pro_total=pro_total,
            con_total=con_total,
        )


def format_history(entries: list[HistoryEntry] | tuple[HistoryEntry, ...]) -> str:
    """Render history deterministically, one ``[LABEL] (round n): text`` block per turn."""
    if not entries:
        return EMPTY_HISTORY
    return "\n\n".join(
        f"[{entry.label}] (round {entry.round_sequence}): {entry.content}"
        for entry in entries
    )


def estimate_tokens(text: str) -> int:
    """Rough token estimate: about four characters per token."""
    if not text:
        return 0
    return max(1, len(text) // 4)
