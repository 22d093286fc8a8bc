"""Prompt templates for debaters, the judge and the audience."""

from debate_engine.history import RoundContext, format_history
from debate_engine.models import Agent, AudienceRequest
from debate_engine.types import AudienceType, DebaterStyle, Phase, Stance

STYLE_DESCRIPTIONS: dict[DebaterStyle, str] = {
    DebaterStyle.RATIONAL: (
        "Rational and logical. You build tight chains of reasoning, make causal "
        "links explicit and avoid emotional language."
    ),
    DebaterStyle.AGGRESSIVE: (
        "Aggressive. You go straight for the holes in your opponent's case and use "
        "sharp contrasts and rhetorical questions."
    ),
    DebaterStyle.CONSERVATIVE: (
        "Defensive. You hold your ground, protect your core claims and counter "
        "only where it matters."
    ),
    DebaterStyle.TECHNICAL: (
        "Technical. You lean on domain terminology, data and concrete case studies."
    ),
}

AUDIENCE_PERSPECTIVES: dict[AudienceType, str] = {
    AudienceType.RATIONAL: "You value sound logic and well-supported reasoning above all.",
    AudienceType.PRAGMATIC: "You care about practical consequences and whether ideas work in the real world.",
    AudienceType.TECHNICAL: "You weigh technical accuracy, data quality and feasibility.",
    AudienceType.RISK_AVERSE: "You focus on risks, downsides and what could go wrong.",
    AudienceType.EMOTIONAL: "You respond to human impact, values and how arguments resonate with people.",
}

PHASE_NAMES: dict[Phase, str] = {
    Phase.OPENING: "Opening statements",
    Phase.REBUTTAL: "Rebuttal and argument",
    Phase.CLOSING: "Closing statements",
}

PHASE_GUIDANCE: dict[Phase, str] = {
    Phase.OPENING: (
        "Lay out your core position clearly. Present two or three main arguments, "
        "each backed by reasoning and a concrete example."
    ),
    Phase.REBUTTAL: (
        "1. Rebut your opponent's points with reasons and evidence.\n"
        "2. Strengthen and extend your own arguments.\n"
        "3. Quote your opponent's earlier statements where useful.\n"
        "4. Do not repeat what has already been said."
    ),
    Phase.CLOSING: (
        "1. Summarize your core arguments.\n"
        "2. Emphasize your strongest evidence.\n"
        "3. Answer your opponent's most damaging attack.\n"
        "4. Finish with a convincing final statement."
    ),
}

SCORING_DIMENSIONS = {
    "logic": "Are the claims clear and is the reasoning rigorous and coherent?",
    "rebuttal": "Does the speaker engage with and expose weaknesses in the opposing case?",
    "clarity": "Is the statement well structured and easy to follow?",
    "evidence": "Are claims supported by facts, data or examples?",
}

DEBATER_SYSTEM_PROMPT = (
    "You are a skilled competitive debater. Stay on topic, argue only for your "
    "assigned side and keep each statement between 150 and 250 words."
)
JUDGE_SYSTEM_PROMPT = (
    "You are an impartial, experienced debate judge. You always answer with a "
    "single valid JSON object and nothing else."
)
AUDIENCE_SYSTEM_PROMPT = (
    "You are a member of a debate audience. You always answer with a single "
    "valid JSON object and nothing else."
)
AUDIENCE_SPEECH_SYSTEM_PROMPT = (
    "You are an audience member the judge has allowed to address a debate. "
    "Speak plainly, support only the side you chose and keep it under 120 words."
)


def _positions(context: RoundContext) -> str:
    pro = context.pro_definition or "Supports the motion."
    con = context.con_definition or "Opposes the motion."
    return f"PRO: {pro}\nCON: {con}"


def build_debater_prompt(agent: Agent, context: RoundContext) -> str:
    stance = agent.stance or Stance.PRO
    style = STYLE_DESCRIPTIONS[agent.style or DebaterStyle.RATIONAL]
    side = "in favour of" if stance is Stance.PRO else "against"
    return f"""You are debating {side} the motion: "{context.topic}"

Positions:
{_positions(context)}

Your side: {stance.value.upper()}
Round: {context.sequence} / {context.max_rounds}
Phase: {PHASE_NAMES[context.phase]}

Phase guidance:
{PHASE_GUIDANCE[context.phase]}

Your style: {style}

Write your statement for this round now. Do not label it or add commentary."""


def build_judge_scoring_prompt(context: RoundContext, stance: Stance, content: str) -> str:
    dimensions = "\n".join(
        f"- {name} (1-10): {description}" for name, description in SCORING_DIMENSIONS.items()
    )
    return f"""Score the following debate statement.

Motion: {context.topic}
Round: {context.sequence} / {context.max_rounds} ({PHASE_NAMES[context.phase]})
Speaker: {stance.value.upper()}

Debate so far:
{format_history(context.history)}

Statement to score:
{content}

Criteria:
{dimensions}

Also flag any fouls. Allowed values: "ad_hominem", "off_topic", "disruption", "other".

Respond with JSON only:
{{"logic": 7, "rebuttal": 6, "clarity": 8, "evidence": 5, "comment": "one short sentence", "fouls": []}}"""


def build_audience_request_prompt(agent: Agent, context: RoundContext) -> str:
    perspective = AUDIENCE_PERSPECTIVES[agent.audience_type or AudienceType.RATIONAL]
    return f"""You are watching a debate on: "{context.topic}"

{perspective}

Round: {context.sequence} / {context.max_rounds}
Current judge totals: PRO {context.pro_total}, CON {context.con_total}

Debate so far:
{format_history(context.history)}

You may ask the judge for permission to make one short point supporting either side.
Only ask if you have something the debaters have not said, or a point that clearly
strengthens one side.

Respond with JSON only:
{{"wants_to_speak": true, "intent": "support_pro", "claim": "your point in under 80 words", "novelty": "new", "confidence": 0.7}}

Use "support_pro" or "support_con" for intent, "new" or "reinforcement" for novelty,
and a confidence between 0 and 1. If you have nothing to add, answer {{"wants_to_speak": false}}."""


def build_approval_prompt(
    context: RoundContext, request: AudienceRequest, audience_type: AudienceType | None
) -> str:
    audience_label = audience_type.value if audience_type else "general"
    return f"""An audience member asks to speak during the debate on: "{context.topic}"

Round: {context.sequence} / {context.max_rounds}

Request:
- audience type: {audience_label}
- supports: {request.intent.value}
- claim: {request.claim}
- novelty: {request.novelty.value}
- confidence: {request.confidence:.2f}

Debate so far:
{format_history(context.history)}

Approve only if the point is relevant, adds something new or meaningfully reinforces
an argument, would improve the debate, and fits this moment of the debate.

Respond with JSON only:
{{"approved": true, "comment": "one short sentence explaining the decision"}}"""


def build_vote_prompt(agent: Agent, context: RoundContext) -> str:
    perspective = AUDIENCE_PERSPECTIVES[agent.audience_type or AudienceType.RATIONAL]
    return f"""The debate on "{context.topic}" has finished.

{perspective}

Positions:
{_positions(context)}

Final judge totals: PRO {context.pro_total}, CON {context.con_total}

Full transcript:
{format_history(context.history)}

Cast your vote for the side that argued better from your perspective.

Respond with JSON only:
{{"vote": "pro", "confidence": 0.8, "reason": "one short sentence"}}

vote must be "pro", "con" or "draw"; confidence is between 0 and 1."""


def build_audience_speech_prompt(
    agent: Agent, context: RoundContext, request: AudienceRequest
) -> str:
    perspective = AUDIENCE_PERSPECTIVES[agent.audience_type or AudienceType.RATIONAL]
    side = request.intent.stance
    return f"""The judge has given you the floor in the debate on: "{context.topic}"

{perspective}

Positions:
{_positions(context)}

You support: {side.value.upper()}
Round: {context.sequence} / {context.max_rounds}

The point you asked to make:
{request.claim}

Deliver that point now as a short speech addressed to the debaters. Build on what
has already been said instead of repeating it. Do not label it or add commentary."""
