"""Tests for component wiring and startup credential loading in main.py."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from pydantic import SecretStr

from signaldesk.config import AppSettings, ExchangeSettings, PollerSettings, StoreSettings
from signaldesk.exchange.types import CredentialStatus, Credentials
from signaldesk.main import _build_components, _credentials_from_settings, _shutdown, _start


def _settings(tmp_path: Path, **exchange: object) -> AppSettings:
    return AppSettings(
        exchange=ExchangeSettings(**exchange),  # type: ignore[arg-type]
        poller=PollerSettings(enabled=False),
        store=StoreSettings(db_path=str(tmp_path / "creds.db")),
    )


class TestCredentialsFromSettings:
    """Credentials assembled from OKX_* settings."""

    def test_no_key_means_no_credentials(self, tmp_path: Path) -> None:
        assert _credentials_from_settings(_settings(tmp_path, api_key=SecretStr(""))) is None

    def test_builds_credentials(self, tmp_path: Path) -> None:
        settings = _settings(
            tmp_path,
            api_key=SecretStr("12345678-1234-1234-1234-123456789abc"),
            secret_key=SecretStr("s" * 32),
            passphrase=SecretStr("pp"),
            sandbox=True,
        )
        creds = _credentials_from_settings(settings)
        assert creds == Credentials(
            api_key="12345678-1234-1234-1234-123456789abc",
            secret_key="s" * 32,
            passphrase="pp",
            sandbox=True,
        )


class TestBuildComponents:
    """Component graph wiring."""

    def test_wiring(self, tmp_path: Path) -> None:
        components = _build_components(_settings(tmp_path))
        assert components["poller"].engine is components["engine"]
        assert components["poller"].inst_id == "BTC-USDT"
        assert components["engine"].config.lookback == 100
        assert components["client"].status is CredentialStatus.UNINITIALIZED


class TestStartup:
    """Credential loading order at startup."""

    @pytest.mark.asyncio
    async def test_stored_credentials_take_priority(
        self, tmp_path: Path, valid_credentials: Credentials
    ) -> None:
        settings = _settings(
            tmp_path,
            api_key=SecretStr("87654321-4321-4321-4321-cba987654321"),
            secret_key=SecretStr("e" * 32),
            passphrase=SecretStr("env"),
        )
        components = _build_components(settings)
        await components["database"].connect()
        await components["credential_store"].save(valid_credentials)
        await components["database"].close()

        await _start(settings, components)
        try:
            assert components["client"].credentials == valid_credentials
            assert components["client"].status is CredentialStatus.CREDENTIALS_SET
        finally:
            await _shutdown(components)

    @pytest.mark.asyncio
    async def test_env_credentials_used_when_store_empty(self, tmp_path: Path) -> None:
        settings = _settings(
            tmp_path,
            api_key=SecretStr("87654321-4321-4321-4321-cba987654321"),
            secret_key=SecretStr("e" * 32),
            passphrase=SecretStr("env"),
        )
        components = _build_components(settings)

        await _start(settings, components)
        try:
            assert components["client"].credentials.passphrase == "env"
        finally:
            await _shutdown(components)

    @pytest.mark.asyncio
    async def test_poller_started_when_enabled(self, tmp_path: Path) -> None:
        settings = _settings(tmp_path, api_key=SecretStr(""))
        settings.poller.enabled = True
        components = _build_components(settings)
        components["poller"].start = AsyncMock()
        components["poller"].stop = AsyncMock()

        await _start(settings, components)
        await _shutdown(components)

        components["poller"].start.assert_awaited_once()
        components["poller"].stop.assert_awaited_once()
        assert components["client"].credentials is None
