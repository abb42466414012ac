"""OKX v5 REST client with hand-built request signing.

Wraps an aiohttp session with OKX authentication headers, credential
lifecycle tracking, and a fixed failure taxonomy: every error that leaves
this module is a ``DeskError`` subclass tagged with an ``ErrorCategory``.

No call is ever retried here. Retry and backoff belong to the caller.
"""

from __future__ import annotations

import asyncio
import socket
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, Self
from urllib.parse import urlencode

import aiohttp

from signaldesk.config import ExchangeSettings
from signaldesk.exceptions import (
    AuthenticationError,
    CredentialFormatError,
    CredentialsNotSetError,
    DeskError,
    ErrorCategory,
    NetworkError,
    PermissionDeniedError,
    VenueError,
)
from signaldesk.exchange.signing import iso_timestamp, serialize_body, sign
from signaldesk.exchange.types import (
    AccountBalance,
    CredentialStatus,
    Credentials,
    MarketTick,
    TradeOrder,
    VerificationResult,
)
from signaldesk.exchange.validation import validate_format, validate_order
from signaldesk.logging import get_logger

logger = get_logger(__name__)

TICKER_PATH = "/api/v5/market/ticker"
BALANCE_PATH = "/api/v5/account/balance"
ACCOUNT_CONFIG_PATH = "/api/v5/account/config"
ORDER_PATH = "/api/v5/trade/order"
ORDER_HISTORY_PATH = "/api/v5/trade/orders-history-archive"

#: Lower bound on the per-request timeout, in seconds.
MIN_REQUEST_TIMEOUT = 10.0

#: Header OKX uses to route requests to the demo-trading environment.
SIMULATED_TRADING_HEADER = "x-simulated-trading"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OkxClient:
    """Signed REST client for a single OKX account.

    One instance owns one credential set and one aiohttp session. Create as
    many instances as there are accounts; nothing is shared between them.

    The base URL never changes with ``Credentials.sandbox``: OKX serves demo
    trading from the same host and selects it with the
    ``x-simulated-trading: 1`` header, which is added for sandbox credentials.

    Args:
        settings: Base URL and request timeout. Defaults to ExchangeSettings().
        session: Optional externally owned aiohttp session (not closed by us).
        clock: Wall-clock source for request timestamps.
    """

    def __init__(
        self,
        settings: ExchangeSettings | None = None,
        session: aiohttp.ClientSession | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        settings = settings or ExchangeSettings()
        self._base_url = settings.base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(
            total=max(settings.request_timeout, MIN_REQUEST_TIMEOUT)
        )
        self._session = session
        self._owns_session = session is None
        self._clock = clock
        self._credentials: Credentials | None = None
        self._status = CredentialStatus.UNINITIALIZED

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def status(self) -> CredentialStatus:
        return self._status

    @property
    def credentials(self) -> Credentials | None:
        return self._credentials

    # ---- credential lifecycle ----

    def set_credentials(self, credentials: Credentials) -> None:
        """Store credentials without validating them or touching the network.

        Any previous verification is invalidated.
        """
        self._credentials = credentials
        self._status = CredentialStatus.CREDENTIALS_SET
        logger.info(
            "credentials_set",
            api_key_suffix=credentials.api_key.strip()[-4:],
            sandbox=credentials.sandbox,
        )

    def clear_credentials(self) -> None:
        self._credentials = None
        self._status = CredentialStatus.UNINITIALIZED
        logger.info("credentials_cleared")

    @staticmethod
    def validate_format(credentials: Credentials) -> None:
        """Raise CredentialFormatError for the first failing format rule."""
        validate_format(credentials)

    def _require_credentials(self) -> Credentials:
        if self._credentials is None:
            raise CredentialsNotSetError()
        return self._credentials

    # ---- signing ----

    def sign(self, timestamp: str, method: str, request_path: str, body: str = "") -> str:
        """Signature for the current credentials. See signing.sign()."""
        credentials = self._require_credentials()
        return sign(credentials.secret_key.strip(), timestamp, method, request_path, body)

    def build_headers(self, method: str, request_path: str, body: str = "") -> dict[str, str]:
        """Authentication headers for one request, stamped with the current time.

        Raises:
            CredentialsNotSetError: If no credentials are set.
        """
        return self._signed_headers(self._require_credentials(), method, request_path, body)

    def _signed_headers(
        self, credentials: Credentials, method: str, request_path: str, body: str
    ) -> dict[str, str]:
        timestamp = iso_timestamp(self._clock())
        signature = sign(
            credentials.secret_key.strip(), timestamp, method, request_path, body
        )
        headers = {
            "OK-ACCESS-KEY": credentials.api_key.strip(),
            "OK-ACCESS-SIGN": signature,
            "OK-ACCESS-TIMESTAMP": timestamp,
            "OK-ACCESS-PASSPHRASE": credentials.passphrase.strip(),
            "Content-Type": "application/json",
        }
        if credentials.sandbox:
            headers[SIMULATED_TRADING_HEADER] = "1"
        return headers

    # ---- transport ----

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the aiohttp session if this client created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
            logger.info("okx_session_closed")
        self._session = None

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        payload: dict[str, Any] | None = None,
        credentials: Credentials | None = None,
    ) -> dict[str, Any]:
        """Send one request and return the decoded response envelope.

        Signs when ``credentials`` is given. The query string is part of the
        signed path and is sent exactly as signed.

        Raises:
            AuthenticationError: HTTP 401.
            PermissionDeniedError: HTTP 403.
            VenueError: Any other HTTP status >= 400.
            NetworkError: No HTTP response (DNS, timeout, connection, ...).
        """
        request_path = f"{path}?{urlencode(params)}" if params else path
        body = serialize_body(payload)
        if credentials is not None:
            headers = self._signed_headers(credentials, method, request_path, body)
        else:
            headers = {"Content-Type": "application/json"}

        url = f"{self._base_url}{request_path}"
        logger.debug("okx_request", method=method, path=request_path, signed=credentials is not None)

        try:
            async with self._get_session().request(
                method,
                url,
                data=body.encode("utf-8") if body else None,
                headers=headers,
                timeout=self._timeout,
            ) as response:
                envelope = await self._read_envelope(response)
                if response.status >= 400:
                    raise self._http_error(response.status, envelope)
                return envelope
        except DeskError:
            raise
        except asyncio.TimeoutError as exc:
            logger.warning("okx_request_timeout", method=method, path=path)
            raise NetworkError(
                "Network failure: request timed out, check your network settings",
                transient=True,
            ) from exc
        except aiohttp.ClientConnectorError as exc:
            if isinstance(exc.os_error, socket.gaierror):
                logger.warning("okx_dns_failure", method=method, path=path)
                raise NetworkError(
                    "Network failure: could not resolve the API host, check your network settings",
                    transient=True,
                ) from exc
            logger.warning("okx_connection_error", method=method, path=path, error=str(exc))
            raise NetworkError(f"Network error: {exc}") from exc
        except aiohttp.ClientError as exc:
            logger.warning("okx_transport_error", method=method, path=path, error=str(exc))
            raise NetworkError(f"Network error: {exc}") from exc

    @staticmethod
    async def _read_envelope(response: aiohttp.ClientResponse) -> dict[str, Any]:
        try:
            data = await response.json(content_type=None)
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _http_error(status: int, envelope: dict[str, Any]) -> VenueError:
        code = envelope.get("code")
        code = str(code) if code is not None else None
        venue_message = envelope.get("msg") or None

        if status == 401:
            return AuthenticationError(
                "Authentication failed: "
                f"{venue_message or 'API key does not exist or is invalid'}",
                code=code,
                status=status,
                venue_message=venue_message,
            )
        if status == 403:
            return PermissionDeniedError(
                "Insufficient permissions: enable read access for this API key",
                code=code,
                status=status,
                venue_message=venue_message,
            )
        return VenueError(
            f"API error: {venue_message or 'request failed'} (HTTP status {status})",
            code=code,
            status=status,
            venue_message=venue_message,
        )

    @staticmethod
    def _envelope_data(envelope: dict[str, Any], failure: str) -> list[Any]:
        """Return ``data`` for a code "0" envelope, else raise VenueError."""
        code = str(envelope.get("code", ""))
        if code != "0":
            venue_message = envelope.get("msg") or None
            raise VenueError(
                f"{failure}: {venue_message or 'unknown error'} (code {code or 'missing'})",
                code=code or None,
                venue_message=venue_message,
            )
        data = envelope.get("data") or []
        if not isinstance(data, list):
            raise VenueError(f"{failure}: malformed response data", code=code)
        return data

    @staticmethod
    def _first_record(data: list[Any], failure: str) -> dict[str, Any]:
        """First element of an envelope's ``data``, which must be an object."""
        if not data:
            raise VenueError(f"{failure}: empty response", code="0")
        if not isinstance(data[0], dict):
            raise VenueError(f"{failure}: malformed response data", code="0")
        return data[0]

    # ---- verification ----

    async def verify_credentials(self) -> VerificationResult:
        """Check credential format, then call the balance endpoint.

        Never raises: every failure comes back as a VerificationResult with a
        user-facing reason and category.
        """
        credentials = self._credentials
        if credentials is None:
            return VerificationResult.failed(
                "API credentials not set", ErrorCategory.CREDENTIALS
            )

        try:
            validate_format(credentials)
        except CredentialFormatError as exc:
            logger.info("credentials_format_invalid", issue=exc.issue.value)
            return VerificationResult.failed(exc.reason, exc.category)

        try:
            envelope = await self._request("GET", BALANCE_PATH, credentials=credentials)
        except DeskError as exc:
            logger.info("credentials_verification_failed", category=exc.category.value)
            self._demote(credentials)
            return VerificationResult.failed(exc.reason, exc.category)

        code = str(envelope.get("code", ""))
        if code != "0":
            venue_message = envelope.get("msg") or "API key verification failed"
            logger.info("credentials_rejected_by_venue", code=code)
            self._demote(credentials)
            return VerificationResult.failed(
                f"API error: {venue_message} (code {code or 'missing'})",
                ErrorCategory.VENUE,
            )

        # Credentials replaced mid-flight: the result describes the old set.
        if self._credentials is credentials:
            self._status = CredentialStatus.VERIFIED
        logger.info("credentials_verified")
        return VerificationResult.ok()

    def _demote(self, credentials: Credentials) -> None:
        if self._credentials is credentials:
            self._status = CredentialStatus.CREDENTIALS_SET

    # ---- market data ----

    async def get_market_data(self, inst_id: str = "BTC-USDT") -> MarketTick:
        """Public ticker for ``inst_id``. Values are returned as venue strings."""
        envelope = await self._request("GET", TICKER_PATH, params={"instId": inst_id})
        failure = f"Failed to fetch market data for {inst_id}"
        return self._first_record(self._envelope_data(envelope, failure), failure)

    # ---- account ----

    async def get_account_balance(self) -> AccountBalance:
        credentials = self._require_credentials()
        envelope = await self._request("GET", BALANCE_PATH, credentials=credentials)
        failure = "Failed to fetch account balance"
        return self._first_record(self._envelope_data(envelope, failure), failure)

    async def get_trading_account_config(self) -> dict[str, Any]:
        """Account level, position mode and related settings."""
        credentials = self._require_credentials()
        envelope = await self._request("GET", ACCOUNT_CONFIG_PATH, credentials=credentials)
        failure = "Failed to fetch trading account config"
        return self._first_record(self._envelope_data(envelope, failure), failure)

    # ---- trading ----

    async def place_order(self, order: TradeOrder) -> dict[str, Any]:
        """Validate locally, then submit a signed order.

        Raises:
            OrderValidationError: Before any network call, see validate_order().
            CredentialsNotSetError: If no credentials are set.
            VenueError: Venue rejected the order.
        """
        validate_order(order)
        credentials = self._require_credentials()

        logger.info(
            "placing_order",
            inst_id=order.inst_id,
            side=order.side.value,
            ord_type=order.ord_type.value,
            sz=order.sz,
        )
        envelope = await self._request(
            "POST", ORDER_PATH, payload=order.to_payload(), credentials=credentials
        )
        data = envelope.get("data") or []
        if str(envelope.get("code", "")) != "0":
            detail = envelope.get("msg") or ""
            if isinstance(data, list) and data and isinstance(data[0], dict) and data[0].get("sMsg"):
                detail = f"{detail} {data[0]['sMsg']} (sCode {data[0].get('sCode')})".strip()
            logger.warning("order_rejected", inst_id=order.inst_id, code=envelope.get("code"))
            raise VenueError(
                f"Order rejected: {detail or 'failed to place order'}",
                code=str(envelope.get("code")),
                venue_message=envelope.get("msg") or None,
            )
        data = self._envelope_data(envelope, "Order response")
        result = data[0] if data else {}
        if not isinstance(result, dict):
            logger.warning("order_response_malformed", inst_id=order.inst_id)
            raise VenueError("Order response: malformed response data", code="0")
        logger.info("order_placed", inst_id=order.inst_id, ord_id=result.get("ordId"))
        return result

    async def get_order_history(self, inst_id: str | None = None) -> list[dict[str, Any]]:
        """Archived orders, optionally filtered to one instrument."""
        credentials = self._require_credentials()
        params = {"instId": inst_id} if inst_id else None
        envelope = await self._request(
            "GET", ORDER_HISTORY_PATH, params=params, credentials=credentials
        )
        return self._envelope_data(envelope, "Failed to fetch order history")
