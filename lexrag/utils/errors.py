"""Custom exception hierarchy for lexrag.

All application exceptions inherit from :class:`LexRAGError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "gemini", "chromadb") caused the failure.

The hierarchy separates **fatal** from **retryable** outcomes through the
``retryable`` class flag, so the provider orchestrator decides whether to
advance to the next fallback without inspecting error text:

    LexRAGError  (base -- catch-all for any lexrag error)
    +-- ConfigurationError      (fatal: startup / missing credentials)
    +-- DocumentParseError      (fatal for one document: unreadable source)
    +-- VectorStoreError        (backing similarity-search failure)
    +-- ProviderError           (retryable: one provider call failed)
        +-- NoHealthyProviderError (whole fallback chain exhausted)
        +-- EmbeddingError      (embedding API call failure)
        +-- LLMError            (generation API call failure)
"""

from __future__ import annotations


class LexRAGError(Exception):
    """Base exception for all lexrag errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    #: Whether a caller may recover by trying another provider.
    retryable: bool = False

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Fatal errors
# ---------------------------------------------------------------------------

class ConfigurationError(LexRAGError):
    """Raised when configuration is invalid or missing at startup.

    Never retried: the orchestrator raises it immediately when the primary
    provider lacks its configuration block or credentials.
    """

    retryable = False

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DocumentParseError(LexRAGError):
    """Raised when a source document cannot be read or parsed."""

    def __init__(
        self,
        message: str = "Document parsing failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class VectorStoreError(LexRAGError):
    """Raised when the backing similarity-search service fails."""

    def __init__(
        self,
        message: str = "Vector store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Retryable provider errors
# ---------------------------------------------------------------------------

class ProviderError(LexRAGError):
    """Raised when a single provider call fails (construction, probe, or live call).

    The orchestrator recovers locally by advancing to the next fallback
    provider; the error only reaches callers once the chain is exhausted or
    when a live call on an already-selected provider fails.
    """

    retryable = True

    def __init__(
        self,
        message: str = "Provider call failed",
        provider_name: str | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._original_error = original_error

    @property
    def original_error(self) -> BaseException | None:
        return self._original_error


class NoHealthyProviderError(ProviderError):
    """Raised when every provider in the fallback chain failed.

    ``provider_name`` names the configured primary provider.
    """

    def __init__(
        self,
        message: str = "No healthy providers available",
        provider_name: str | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(
            message=message, provider_name=provider_name, original_error=original_error
        )


class EmbeddingError(ProviderError):
    """Raised when an embedding API call fails or returns an unusable payload."""

    def __init__(
        self,
        message: str = "Embedding API call failed",
        provider_name: str | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(
            message=message, provider_name=provider_name, original_error=original_error
        )


class LLMError(ProviderError):
    """Raised when an LLM API call fails or returns an unparseable response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(
            message=message, provider_name=provider_name, original_error=original_error
        )
