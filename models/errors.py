"""Exception types raised across the deep search pipeline."""


class DeepSearchError(Exception):
    """Base class for all deep search errors."""


class InvalidRequestError(DeepSearchError):
    """The request itself is malformed (e.g. empty query). Maps to HTTP 400."""


class SearchProviderError(DeepSearchError):
    """A search provider failed (transport error, bad payload, ...)."""

    def __init__(self, message: str, provider: str = "unknown"):
        super().__init__(message)
        self.provider = provider


class RateLimitedError(SearchProviderError):
    """A search provider signalled throttling."""


class SynthesisServiceError(DeepSearchError):
    """The language-model collaborator failed or returned nothing usable."""

    def __init__(self, message: str, provider: str = "unknown"):
        super().__init__(message)
        self.provider = provider
