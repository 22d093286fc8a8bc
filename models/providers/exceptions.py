"""Provider-level exceptions."""


class ProviderRateLimitError(RuntimeError):
    """Raised when an upstream model provider rejects a call for rate limiting."""

    def __init__(self, provider: str, retry_after: float | None = None):
        message = f"{provider} rate limit exceeded"
        if retry_after is not None:
            message += f" (retry after {retry_after:g}s)"
        super().__init__(message)
        self.provider = provider
        self.retry_after = retry_after
