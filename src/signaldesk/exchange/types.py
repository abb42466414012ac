"""Exchange-side type definitions: credentials, verification results, orders.

Venue payloads are kept as the venue's own dicts. OKX encodes prices and
sizes as strings; they stay strings here and are parsed only where a number
is actually needed.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, TypedDict

from signaldesk.exceptions import ErrorCategory


@dataclass(frozen=True)
class Credentials:
    """API key triple for signed requests.

    ``repr`` masks the secret and passphrase so credentials can appear in
    tracebacks and logs without leaking.
    """

    api_key: str
    secret_key: str
    passphrase: str
    sandbox: bool = False

    def __repr__(self) -> str:
        return (
            f"Credentials(api_key={self.api_key!r}, secret_key='***', "
            f"passphrase='***', sandbox={self.sandbox})"
        )


class CredentialStatus(str, Enum):
    """Client credential lifecycle.

    UNINITIALIZED -> CREDENTIALS_SET on set_credentials();
    CREDENTIALS_SET -> VERIFIED on a successful verify_credentials().
    Replacing credentials always returns to CREDENTIALS_SET.
    """

    UNINITIALIZED = "uninitialized"
    CREDENTIALS_SET = "credentials_set"
    VERIFIED = "verified"


class FormatIssue(str, Enum):
    """Local credential-shape failures, in checking priority order."""

    INCOMPLETE_FIELDS = "incomplete_fields"
    BAD_API_KEY_FORMAT = "bad_api_key_format"
    BAD_SECRET_KEY_LENGTH = "bad_secret_key_length"
    BAD_PASSPHRASE_LENGTH = "bad_passphrase_length"

    @property
    def message(self) -> str:
        return _FORMAT_MESSAGES[self]


_FORMAT_MESSAGES: dict[FormatIssue, str] = {
    FormatIssue.INCOMPLETE_FIELDS: "Incomplete fields: API key, secret key and passphrase are all required",
    FormatIssue.BAD_API_KEY_FORMAT: (
        "Bad API key format: expected a UUID such as "
        "12345678-1234-1234-1234-123456789abc"
    ),
    FormatIssue.BAD_SECRET_KEY_LENGTH: "Bad secret key length: check that the whole key was copied",
    FormatIssue.BAD_PASSPHRASE_LENGTH: "Bad passphrase length: must be 1-30 characters",
}


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of verify_credentials(). Never raised, always returned."""

    is_valid: bool
    reason: str | None = None
    category: ErrorCategory | None = None

    @classmethod
    def ok(cls) -> "VerificationResult":
        return cls(is_valid=True)

    @classmethod
    def failed(cls, reason: str, category: ErrorCategory) -> "VerificationResult":
        return cls(is_valid=False, reason=reason, category=category)


class TradeMode(str, Enum):
    CASH = "cash"
    CROSS = "cross"
    ISOLATED = "isolated"


class OrderSide(str, Enum):
    BUY = "buy"
    SELL = "sell"


class OrderType(str, Enum):
    MARKET = "market"
    LIMIT = "limit"
    POST_ONLY = "post_only"
    FOK = "fok"
    IOC = "ioc"

    @property
    def requires_price(self) -> bool:
        return self is not OrderType.MARKET


@dataclass(frozen=True)
class TradeOrder:
    """Order request for POST /api/v5/trade/order.

    ``sz`` and ``px`` are strings, exactly as the venue expects them.
    """

    inst_id: str
    td_mode: TradeMode
    side: OrderSide
    ord_type: OrderType
    sz: str
    px: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TradeOrder":
        """Build from venue-style keys (instId, tdMode, side, ordType, sz, px)."""
        return cls(
            inst_id=data["instId"],
            td_mode=TradeMode(data["tdMode"]),
            side=OrderSide(data["side"]),
            ord_type=OrderType(data["ordType"]),
            sz=str(data["sz"]),
            px=str(data["px"]) if data.get("px") is not None else None,
        )

    def to_payload(self) -> dict[str, str]:
        """Venue JSON body. ``px`` is omitted entirely when unset."""
        payload = {
            "instId": self.inst_id,
            "tdMode": self.td_mode.value,
            "side": self.side.value,
            "ordType": self.ord_type.value,
            "sz": self.sz,
        }
        if self.px is not None:
            payload["px"] = self.px
        return payload


def is_spot_instrument(inst_id: str) -> bool:
    """True for two-part ids quoted in USDT or USD, e.g. ``BTC-USDT``."""
    parts = inst_id.upper().split("-")
    return len(parts) == 2 and parts[1] in ("USDT", "USD")


class MarketTick(TypedDict, total=False):
    """GET /api/v5/market/ticker payload (all values are strings)."""

    instId: str
    last: str
    lastSz: str
    askPx: str
    askSz: str
    bidPx: str
    bidSz: str
    open24h: str
    high24h: str
    low24h: str
    vol24h: str
    ts: str
    sodUtc0: str
    sodUtc8: str


class BalanceDetail(TypedDict, total=False):
    availBal: str
    bal: str
    ccy: str
    cashBal: str
    frozenBal: str
    interest: str
    uTime: str


class AccountBalance(TypedDict, total=False):
    """GET /api/v5/account/balance payload (all numeric values are strings)."""

    adjEq: str
    details: list[BalanceDetail]
    imr: str
    isoEq: str
    mgnRatio: str
    mmr: str
    notionalUsd: str
    ordFroz: str
    totalEq: str
    uTime: str
