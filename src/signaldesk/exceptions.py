"""Exception hierarchy for signaldesk.

Every failure raised by the exchange client carries an ``ErrorCategory`` so
callers can render a message without knowing transport details. Transport
exceptions from aiohttp never escape the client; they are normalized into
``NetworkError`` first.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from signaldesk.exchange.types import FormatIssue


class ErrorCategory(str, Enum):
    """User-facing failure classes."""

    FORMAT = "format"
    CREDENTIALS = "credentials"
    AUTH = "auth"
    PERMISSION = "permission"
    VENUE = "venue"
    NETWORK = "network"
    ORDER_VALIDATION = "order_validation"


class DeskError(Exception):
    """Base exception for all signaldesk errors."""

    category: ErrorCategory = ErrorCategory.VENUE

    @property
    def reason(self) -> str:
        return str(self)


class CredentialFormatError(DeskError):
    """Credentials failed local shape validation. Raised before any network call."""

    category = ErrorCategory.FORMAT

    def __init__(self, issue: FormatIssue) -> None:
        self.issue = issue
        super().__init__(issue.message)


class CredentialsNotSetError(DeskError):
    """A signed operation was attempted before credentials were set."""

    category = ErrorCategory.CREDENTIALS

    def __init__(self, message: str = "API credentials not set") -> None:
        super().__init__(message)


class OrderValidationError(DeskError):
    """Order parameters are incompatible. Raised before signing."""

    category = ErrorCategory.ORDER_VALIDATION


class VenueError(DeskError):
    """The venue answered with a non-zero code or an unclassified HTTP error.

    Attributes:
        code: Venue response code (string, e.g. "50001"), if any.
        status: HTTP status, if the failure came from a non-2xx response.
        venue_message: The venue's own ``msg`` text, if any.
    """

    category = ErrorCategory.VENUE

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status: int | None = None,
        venue_message: str | None = None,
    ) -> None:
        self.code = code
        self.status = status
        self.venue_message = venue_message
        super().__init__(message)


class AuthenticationError(VenueError):
    """HTTP 401: key unknown, signature mismatch or timestamp rejected."""

    category = ErrorCategory.AUTH


class PermissionDeniedError(VenueError):
    """HTTP 403: the key lacks the permission the endpoint needs."""

    category = ErrorCategory.PERMISSION


class NetworkError(DeskError):
    """The request never produced an HTTP response.

    ``transient`` is True for DNS and timeout failures; anything else
    (refused connection, TLS, browser-style cross-origin blocks behind a
    proxy) is reported generically.
    """

    category = ErrorCategory.NETWORK

    def __init__(self, message: str, transient: bool = False) -> None:
        self.transient = transient
        super().__init__(message)
