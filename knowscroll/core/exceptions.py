"""Error taxonomy for the aggregation pipeline.

Transport, retry and parse failures are caught at the fetcher boundary and
turned into an empty result for that provider. Only ``ConfigError`` is allowed
to escape to callers of the aggregator.
"""


class KnowscrollError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(KnowscrollError, ValueError):
    """Invalid configuration value."""


class TransportError(KnowscrollError):
    """Network-level failure talking to a provider."""


class TransportTimeoutError(TransportError, TimeoutError):
    """A single request exceeded the transport timeout."""


class HTTPStatusError(TransportError):
    """Provider answered with a non-success status code."""

    def __init__(self, status: int, url: str) -> None:
        super().__init__(f"HTTP {status} from {url}")
        self.status = status
        self.url = url


class RateLimitedError(HTTPStatusError):
    """Provider answered 429 Too Many Requests."""

    def __init__(self, url: str, retry_after: float | None = None) -> None:
        super().__init__(429, url)
        self.retry_after = retry_after


class ExhaustedRetriesError(TransportError):
    """Every attempt allowed by the retry policy was rate limited."""

    def __init__(self, operation: str, attempts: int) -> None:
        super().__init__(f"{operation} still rate limited after {attempts} attempts")
        self.operation = operation
        self.attempts = attempts


class ParseError(KnowscrollError):
    """Provider response could not be parsed into items."""


class UnknownProviderError(KnowscrollError, LookupError):
    """A source filter named a provider that is not registered."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"Unknown provider: {provider}")
        self.provider = provider
