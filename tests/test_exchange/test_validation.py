"""Tests for local credential and order validation."""

import pytest

from signaldesk.exceptions import CredentialFormatError, ErrorCategory, OrderValidationError
from signaldesk.exchange.types import (
    Credentials,
    FormatIssue,
    OrderSide,
    OrderType,
    TradeMode,
    TradeOrder,
    is_spot_instrument,
)
from signaldesk.exchange.validation import (
    check_credentials_format,
    validate_format,
    validate_order,
)

API_KEY = "12345678-1234-1234-1234-123456789abc"
SECRET = "abcdefghijklmnopqrstuvwxyz1234567890ABCDEFGHIJ"


def _creds(api_key: str = API_KEY, secret_key: str = SECRET, passphrase: str = "pass") -> Credentials:
    return Credentials(api_key=api_key, secret_key=secret_key, passphrase=passphrase)


def _order(
    inst_id: str = "BTC-USDT",
    td_mode: TradeMode = TradeMode.CASH,
    ord_type: OrderType = OrderType.MARKET,
    px: str | None = None,
) -> TradeOrder:
    return TradeOrder(
        inst_id=inst_id,
        td_mode=td_mode,
        side=OrderSide.BUY,
        ord_type=ord_type,
        sz="1",
        px=px,
    )


class TestCredentialFormat:
    """Credential shape rules, in priority order."""

    def test_valid_credentials_pass(self) -> None:
        assert check_credentials_format(_creds()) is None
        validate_format(_creds())

    def test_uppercase_uuid_accepted(self) -> None:
        assert check_credentials_format(_creds(api_key=API_KEY.upper())) is None

    def test_surrounding_whitespace_is_trimmed(self) -> None:
        creds = _creds(api_key=f"  {API_KEY} ", passphrase=" pass ")
        assert check_credentials_format(creds) is None

    @pytest.mark.parametrize(
        "creds",
        [
            _creds(api_key=""),
            _creds(secret_key="   "),
            _creds(passphrase=""),
        ],
    )
    def test_incomplete_fields(self, creds: Credentials) -> None:
        assert check_credentials_format(creds) is FormatIssue.INCOMPLETE_FIELDS

    def test_incomplete_takes_priority_over_bad_key(self) -> None:
        creds = _creds(api_key="not-a-uuid", passphrase="")
        assert check_credentials_format(creds) is FormatIssue.INCOMPLETE_FIELDS

    def test_bad_api_key_format(self) -> None:
        assert check_credentials_format(_creds(api_key="invalid-api-key")) is FormatIssue.BAD_API_KEY_FORMAT

    def test_bad_key_takes_priority_over_short_secret(self) -> None:
        creds = _creds(api_key="invalid", secret_key="short")
        assert check_credentials_format(creds) is FormatIssue.BAD_API_KEY_FORMAT

    def test_secret_too_short(self) -> None:
        assert check_credentials_format(_creds(secret_key="a" * 19)) is FormatIssue.BAD_SECRET_KEY_LENGTH
        assert check_credentials_format(_creds(secret_key="a" * 20)) is None

    def test_passphrase_too_long(self) -> None:
        assert check_credentials_format(_creds(passphrase="p" * 31)) is FormatIssue.BAD_PASSPHRASE_LENGTH
        assert check_credentials_format(_creds(passphrase="p" * 30)) is None

    def test_validate_format_raises_with_issue(self) -> None:
        with pytest.raises(CredentialFormatError) as exc_info:
            validate_format(_creds(api_key="invalid-api-key"))
        assert exc_info.value.issue is FormatIssue.BAD_API_KEY_FORMAT
        assert exc_info.value.category is ErrorCategory.FORMAT
        assert exc_info.value.reason.startswith("Bad API key format")


class TestOrderValidation:
    """Trade mode and price compatibility checks."""

    def test_spot_cash_market_ok(self) -> None:
        validate_order(_order())

    def test_spot_requires_cash_mode(self) -> None:
        with pytest.raises(OrderValidationError, match="requires trade mode 'cash', got 'cross'"):
            validate_order(_order(td_mode=TradeMode.CROSS))

    def test_swap_allows_cross_mode(self) -> None:
        validate_order(_order(inst_id="BTC-USDT-SWAP", td_mode=TradeMode.CROSS))

    @pytest.mark.parametrize("ord_type", [OrderType.LIMIT, OrderType.POST_ONLY, OrderType.FOK, OrderType.IOC])
    def test_priced_types_require_px(self, ord_type: OrderType) -> None:
        with pytest.raises(OrderValidationError, match=f"{ord_type.value} orders require a price"):
            validate_order(_order(ord_type=ord_type))

    def test_limit_with_price_ok(self) -> None:
        validate_order(_order(ord_type=OrderType.LIMIT, px="45000"))

    def test_market_must_not_carry_price(self) -> None:
        with pytest.raises(OrderValidationError, match="Market orders must not specify a price"):
            validate_order(_order(px="45000"))

    def test_trade_mode_checked_first(self) -> None:
        with pytest.raises(OrderValidationError, match="cash"):
            validate_order(_order(td_mode=TradeMode.ISOLATED, ord_type=OrderType.LIMIT))


class TestOrderTypes:
    """Order value types and instrument classification."""

    @pytest.mark.parametrize(
        ("inst_id", "expected"),
        [
            ("BTC-USDT", True),
            ("eth-usd", True),
            ("BTC-USDT-SWAP", False),
            ("BTC-EUR", False),
            ("BTC-USD-240329", False),
        ],
    )
    def test_is_spot_instrument(self, inst_id: str, expected: bool) -> None:
        assert is_spot_instrument(inst_id) is expected

    def test_payload_omits_unset_price(self) -> None:
        payload = _order().to_payload()
        assert "px" not in payload
        assert payload == {
            "instId": "BTC-USDT",
            "tdMode": "cash",
            "side": "buy",
            "ordType": "market",
            "sz": "1",
        }

    def test_from_dict_keeps_strings(self) -> None:
        order = TradeOrder.from_dict(
            {"instId": "BTC-USDT", "tdMode": "cash", "side": "sell", "ordType": "limit", "sz": 0.5, "px": "45000.1"}
        )
        assert order.sz == "0.5"
        assert order.px == "45000.1"
        assert order.side is OrderSide.SELL
