"""Decoding of structured JSON returned by language models.

Model output is untrusted free text. Everything here returns a ``Decoded``
result instead of raising so callers can apply their own fallback.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Generic, Literal, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from debate_engine.exceptions import ParseError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


@dataclass(frozen=True)
class Decoded(Generic[T]):
    """Tagged decode result: either ``value`` or a failure ``reason``."""

    value: T | None = None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.value is not None

    @classmethod
    def success(cls, value: T) -> "Decoded[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, reason: str) -> "Decoded[T]":
        return cls(reason=reason)

    def unwrap(self) -> T:
        """Return the value or raise ParseError with the failure reason."""
        if self.value is None:
            raise ParseError(self.reason or "unparsable output")
        return self.value


class JudgeScorePayload(BaseModel):
    """Raw per-message scores from the judge. Values are clamped later."""

    model_config = ConfigDict(extra="ignore")

    logic: float
    rebuttal: float
    clarity: float
    evidence: float
    comment: str = ""
    fouls: list[str] = Field(default_factory=list)

    @field_validator("comment", mode="before")
    @classmethod
    def coerce_comment(cls, v: object) -> str:
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    @field_validator("fouls", mode="before")
    @classmethod
    def coerce_fouls(cls, v: object) -> list[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        if isinstance(v, list):
            return [str(item) for item in v if item]
        return []


class AudienceRequestPayload(BaseModel):
    """An audience agent's answer to "do you want to speak?"."""

    model_config = ConfigDict(extra="ignore")

    wants_to_speak: bool = False
    intent: Literal["support_pro", "support_con"] | None = None
    claim: str = ""
    novelty: Literal["new", "reinforcement"] = "new"
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    @model_validator(mode="before")
    @classmethod
    def accept_content_alias(cls, data: object) -> object:
        # The simpler prompt variant answers with "content" instead of "claim"
        if isinstance(data, dict) and "claim" not in data and "content" in data:
            data = {**data, "claim": data["content"]}
        return data

    @field_validator("intent", mode="before")
    @classmethod
    def normalize_intent(cls, v: object) -> object:
        if not isinstance(v, str):
            return v
        v = v.strip().lower()
        return f"support_{v}" if v in ("pro", "con") else v

    @field_validator("claim", mode="before")
    @classmethod
    def coerce_claim(cls, v: object) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: object) -> float:
        try:
            value = float(v)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 0.5
        return min(1.0, max(0.0, value))


class ApprovalPayload(BaseModel):
    """The judge's decision on an audience request."""

    model_config = ConfigDict(extra="ignore")

    approved: bool
    comment: str = ""

    @field_validator("comment", mode="before")
    @classmethod
    def coerce_comment(cls, v: object) -> str:
        return "" if v is None else str(v)


class VotePayload(BaseModel):
    """An audience ballot."""

    model_config = ConfigDict(extra="ignore")

    vote: Literal["pro", "con", "draw"]
    confidence: float = 0.7
    reason: str | None = None

    @field_validator("vote", mode="before")
    @classmethod
    def normalize_vote(cls, v: object) -> object:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: object) -> float:
        try:
            value = float(v)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 0.7
        return min(1.0, max(0.0, value))


def extract_json_text(raw: str) -> str | None:
    """Pull the JSON object out of a model response."""
    # First, try to extract from markdown code fences
    markdown_match = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", raw, re.DOTALL)
    if markdown_match:
        return markdown_match.group(1)

    # Fallback to looking for bare JSON
    json_match = re.search(r"\{.*\}", raw, re.DOTALL)
    if json_match:
        return json_match.group()

    # A truncated object has an opening brace but no closing one
    start = raw.find("{")
    if start != -1:
        return raw[start:]
    return None


def repair_json(json_text: str) -> str:
    """Attempt to repair common JSON issues from small models."""
    repaired = json_text.strip()

    # Remove any trailing comma before closing braces/brackets
    repaired = re.sub(r",(\s*[}\]])", r"\1", repaired)

    # Fix missing quotes around keys
    repaired = re.sub(
        r"([{,]\s*)([a-zA-Z_][a-zA-Z0-9_]*)\s*:", r'\1"\2":', repaired
    )

    # Handle truncated JSON by closing whatever is still open
    if not repaired.endswith("}"):
        open_quotes = repaired.count('"') - repaired.count('\\"')
        if open_quotes % 2 == 1:
            repaired += '"'

        repaired = repaired.rstrip().rstrip(",")

        open_braces = repaired.count("{") - repaired.count("}")
        open_brackets = repaired.count("[") - repaired.count("]")
        repaired += "]" * max(open_brackets, 0)
        repaired += "}" * max(open_braces, 0)

    # Remove any text after the final closing brace
    last_brace = repaired.rfind("}")
    if last_brace != -1:
        repaired = repaired[: last_brace + 1]

    return repaired


def decode(raw: str | None, schema: type[T]) -> Decoded[T]:
    """Decode ``raw`` into ``schema`` without ever raising."""
    if not raw or not raw.strip():
        return Decoded.failure("empty response")

    json_text = extract_json_text(raw)
    if json_text is None:
        return Decoded.failure("no JSON object in response")

    try:
        data = json.loads(json_text)
    except json.JSONDecodeError:
        try:
            data = json.loads(repair_json(json_text))
        except json.JSONDecodeError as e:
            logger.debug(f"Unrepairable JSON from model: {raw[:200]!r}")
            return Decoded.failure(f"invalid JSON: {e}")

    if not isinstance(data, dict):
        return Decoded.failure("JSON payload is not an object")

    try:
        return Decoded.success(schema.model_validate(data))
    except ValidationError as e:
        return Decoded.failure(f"schema mismatch: {e.error_count()} error(s)")
