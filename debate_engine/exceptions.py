"""Exception hierarchy for the debate engine."""


class DebateError(Exception):
    """Base class for debate engine failures."""


class ValidationError(DebateError):
    """Input was rejected before any state was mutated."""


class NotFoundError(DebateError):
    """A referenced debate, round or agent does not exist."""


class ProviderError(DebateError):
    """A reasoning provider call failed."""

    def __init__(self, message: str, *, agent_id: str | None = None, role: str | None = None):
        super().__init__(message)
        self.agent_id = agent_id
        self.role = role


class ParseError(DebateError):
    """A provider returned structured output that could not be decoded."""


class ConcurrencyError(DebateError):
    """A state transition raced with another one or was already taken."""


class PersistenceError(DebateError):
    """The storage layer failed."""
