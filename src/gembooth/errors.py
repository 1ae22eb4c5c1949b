"""Error taxonomy for the generation pipeline."""


class GemboothError(Exception):
    """Base error for gembooth."""


class EmptyPromptError(GemboothError):
    """Raised when a capture is attempted without prompt text."""


class NotFoundError(GemboothError):
    """Raised when a photo id is unknown to the durable store."""

    def __init__(self, photo_id: str) -> None:
        self.photo_id = photo_id
        super().__init__(f"Photo {photo_id} not found")


class PhotoBusyError(GemboothError):
    """Raised when a photo already has a generation in flight."""

    def __init__(self, photo_id: str) -> None:
        self.photo_id = photo_id
        super().__init__(f"Photo {photo_id} is already being generated")


class NotRehydratedError(GemboothError):
    """Raised when an operation runs before startup reconciliation."""


class CallCancelledError(GemboothError):
    """Raised by an attempt that was voluntarily cancelled."""


class ProviderError(GemboothError):
    """Classified failure of a provider call."""

    retryable = False

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        self.photo_id: str | None = None
        self.attempts = 0
        super().__init__(message)


class CredentialMissingError(ProviderError):
    """The selected provider has no credential configured."""


class ContentBlockedError(ProviderError):
    """The provider's safety filter rejected the request."""

    def __init__(
        self, message: str, provider: str | None = None, reason: str | None = None
    ) -> None:
        self.reason = reason
        super().__init__(message, provider)


class NoResultError(ProviderError):
    """The provider answered without producing a result."""


class TransientProviderError(ProviderError):
    """Network, overload or timeout shaped failure."""

    retryable = True

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        self.retry_after = retry_after
        super().__init__(message, provider)


class FatalProviderError(ProviderError):
    """Malformed request, auth failure or unusable response."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(message, provider)


_TRANSIENT_STATUS_CODES = frozenset({408, 425, 429})


def error_for_status(
    status_code: int | None, message: str, provider: str | None = None
) -> ProviderError:
    """Classify an HTTP-shaped failure by its status code."""
    if (
        status_code is None
        or status_code >= 500  # noqa: PLR2004
        or status_code in _TRANSIENT_STATUS_CODES
    ):
        return TransientProviderError(message, provider)
    return FatalProviderError(message, provider, status_code=status_code)
