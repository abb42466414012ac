"""Local, pre-network validation of credentials and order parameters.

Both checks raise before anything is signed, so a malformed request never
burns a timestamp window on the venue.
"""

import re

from signaldesk.exceptions import CredentialFormatError, OrderValidationError
from signaldesk.exchange.types import (
    Credentials,
    FormatIssue,
    OrderType,
    TradeMode,
    TradeOrder,
    is_spot_instrument,
)

_API_KEY_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

MIN_SECRET_KEY_LENGTH = 20
MAX_PASSPHRASE_LENGTH = 30


def check_credentials_format(credentials: Credentials) -> FormatIssue | None:
    """Return the first failing format rule, or None when all pass.

    Rules, in priority order (fields are whitespace-trimmed first):
        1. every field non-empty
        2. API key is a UUID (case-insensitive)
        3. secret key has at least 20 characters
        4. passphrase has 1-30 characters
    """
    api_key = credentials.api_key.strip()
    secret_key = credentials.secret_key.strip()
    passphrase = credentials.passphrase.strip()

    if not api_key or not secret_key or not passphrase:
        return FormatIssue.INCOMPLETE_FIELDS
    if not _API_KEY_PATTERN.match(api_key):
        return FormatIssue.BAD_API_KEY_FORMAT
    if len(secret_key) < MIN_SECRET_KEY_LENGTH:
        return FormatIssue.BAD_SECRET_KEY_LENGTH
    if not 1 <= len(passphrase) <= MAX_PASSPHRASE_LENGTH:
        return FormatIssue.BAD_PASSPHRASE_LENGTH
    return None


def validate_format(credentials: Credentials) -> None:
    """Raise CredentialFormatError with the first failing rule."""
    issue = check_credentials_format(credentials)
    if issue is not None:
        raise CredentialFormatError(issue)


def validate_order(order: TradeOrder) -> None:
    """Check trade mode and price compatibility for an order.

    Raises:
        OrderValidationError: spot instrument outside cash mode, a limit-class
            order without ``px``, or a market order carrying ``px``.
    """
    if is_spot_instrument(order.inst_id) and order.td_mode is not TradeMode.CASH:
        raise OrderValidationError(
            f"Spot instrument {order.inst_id} requires trade mode 'cash', "
            f"got '{order.td_mode.value}'"
        )
    if order.ord_type.requires_price and not order.px:
        raise OrderValidationError(
            f"{order.ord_type.value} orders require a price"
        )
    if order.ord_type is OrderType.MARKET and order.px is not None:
        raise OrderValidationError("Market orders must not specify a price")
