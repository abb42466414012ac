"""Tests for OKX request signing helpers."""

import base64
import hashlib
import hmac
from datetime import datetime, timedelta, timezone

from signaldesk.exchange.signing import iso_timestamp, serialize_body, sign


class TestSign:
    """HMAC-SHA256 signature helper."""

    def test_matches_hmac_sha256_base64(self) -> None:
        expected = base64.b64encode(
            hmac.new(
                b"secret",
                b"2024-01-01T00:00:00.000ZGET/api/v5/account/balance",
                hashlib.sha256,
            ).digest()
        ).decode()
        assert sign("secret", "2024-01-01T00:00:00.000Z", "GET", "/api/v5/account/balance") == expected

    def test_method_is_uppercased(self) -> None:
        ts = "2024-01-01T00:00:00.000Z"
        assert sign("s", ts, "post", "/p", "{}") == sign("s", ts, "POST", "/p", "{}")

    def test_body_and_query_change_signature(self) -> None:
        ts = "2024-01-01T00:00:00.000Z"
        base = sign("s", ts, "GET", "/api/v5/market/ticker")
        assert sign("s", ts, "GET", "/api/v5/market/ticker?instId=BTC-USDT") != base
        assert sign("s", ts, "POST", "/api/v5/trade/order", '{"a":1}') != sign(
            "s", ts, "POST", "/api/v5/trade/order", '{"a":2}'
        )


class TestTimestamp:
    """ISO-8601 millisecond timestamps."""

    def test_millisecond_precision_with_z(self) -> None:
        moment = datetime(2024, 1, 2, 3, 4, 5, 678901, tzinfo=timezone.utc)
        assert iso_timestamp(moment) == "2024-01-02T03:04:05.678Z"

    def test_converts_to_utc(self) -> None:
        moment = datetime(2024, 1, 2, 11, 0, 0, tzinfo=timezone(timedelta(hours=8)))
        assert iso_timestamp(moment) == "2024-01-02T03:00:00.000Z"


class TestSerializeBody:
    """Compact JSON request bodies."""

    def test_none_is_empty(self) -> None:
        assert serialize_body(None) == ""

    def test_compact_json(self) -> None:
        assert serialize_body({"instId": "BTC-USDT", "sz": "1"}) == '{"instId":"BTC-USDT","sz":"1"}'
