"""Errors raised by the Nitro client and views."""

from typing import Any, Optional


class NitroError(Exception):
    """Base class for every Nitro error."""


class UnconfiguredError(NitroError):
    """No API token is configured, so no request may be sent."""

    def __init__(self, message: str = "Nitro API token is not configured") -> None:
        super().__init__(message)


class TransportError(NitroError):
    """The request could not be sent or no response was received."""


class HttpError(NitroError):
    """The API answered with a non-2xx status."""

    def __init__(self, status_code: int, body: Optional[Any] = None, url: str = "") -> None:
        self.status_code = status_code
        self.body = body
        self.url = url
        super().__init__(f"HTTP {status_code} from Nitro API")


class MalformedResponseError(NitroError):
    """The API answered 2xx but the body did not have the expected shape."""


class RefundNotAllowedError(NitroError):
    """Refund requested for a transaction that is not paid."""

    def __init__(self, transaction_hash: str, status: str) -> None:
        self.transaction_hash = transaction_hash
        self.status = status
        super().__init__(
            f"Transaction {transaction_hash} has status '{status}'; only paid transactions can be refunded"
        )
