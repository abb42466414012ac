"""Exchange client layer -- OKX v5 REST with hand-built request signing."""

from signaldesk.exchange.okx_client import OkxClient
from signaldesk.exchange.types import (
    CredentialStatus,
    Credentials,
    FormatIssue,
    OrderSide,
    OrderType,
    TradeMode,
    TradeOrder,
    VerificationResult,
    is_spot_instrument,
)
from signaldesk.exchange.validation import check_credentials_format, validate_format, validate_order

__all__ = [
    "CredentialStatus",
    "Credentials",
    "FormatIssue",
    "OkxClient",
    "OrderSide",
    "OrderType",
    "TradeMode",
    "TradeOrder",
    "VerificationResult",
    "check_credentials_format",
    "is_spot_instrument",
    "validate_format",
    "validate_order",
]
