"""Error hierarchy shared by the engine, the upstream client and the API."""


class TokenSnapError(Exception):
    """Base class for all tokensnap errors."""


class InvalidAddressError(TokenSnapError):
    """Contract address does not match the 0x + 40 hex digit format."""

    def __init__(self, address: str | None) -> None:
        self.address = address
        if not address:
            super().__init__("Missing contract address")
        else:
            super().__init__("Invalid contract address format")


class ExternalServiceError(TokenSnapError):
    """Upstream log source failed: non-2xx status, bad JSON or transport error."""


class UpstreamTimeoutError(ExternalServiceError):
    """A single upstream request exceeded the per-request timeout."""


class AdmissionRejectedError(TokenSnapError):
    """Shared-credential fetch slot is taken. Try again after `retry_after` seconds."""

    def __init__(self, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(
            "Another snapshot is already being fetched with the shared API key. "
            f"Retry in {retry_after}s or supply your own API key."
        )
