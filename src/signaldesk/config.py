"""Configuration system using pydantic-settings with environment variable loading."""

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Literal, get_args

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

ModelTag = Literal["lstm", "transformer", "ensemble"]
RiskTolerance = Literal["low", "medium", "high"]


class ExchangeSettings(BaseSettings):
    """OKX REST connection settings."""

    model_config = SettingsConfigDict(env_prefix="OKX_")

    api_key: SecretStr = SecretStr("")
    secret_key: SecretStr = SecretStr("")
    passphrase: SecretStr = SecretStr("")
    sandbox: bool = False
    base_url: str = "https://www.okx.com"
    request_timeout: float = 15.0  # seconds, never below 10


class ModelSettings(BaseSettings):
    """Defaults for the indicator engine's ModelConfig."""

    model_config = SettingsConfigDict(env_prefix="MODEL_")

    model: ModelTag = "ensemble"
    lookback: int = 100
    prediction_horizon: int = 24
    risk_tolerance: RiskTolerance = "medium"
    max_position_size: float = 0.1
    stop_loss: float = 0.02
    take_profit: float = 0.03


class PollerSettings(BaseSettings):
    """Market-data polling loop."""

    model_config = SettingsConfigDict(env_prefix="POLLER_")

    enabled: bool = True
    inst_id: str = "BTC-USDT"
    poll_interval: float = 10.0  # seconds


class StoreSettings(BaseSettings):
    """Credential store location."""

    model_config = SettingsConfigDict(env_prefix="STORE_")

    db_path: str = "data/credentials.db"


class DashboardSettings(BaseSettings):
    """Dashboard server configuration."""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    host: str = "127.0.0.1"
    port: int = 8080
    enabled: bool = True


@dataclass
class ModelConfig:
    """Mutable runtime parameters read by the signal generator.

    Updated by partial merge (``merged``); the indicator engine reads
    ``lookback`` for history truncation and ``max_position_size`` for sizing.
    """

    model: ModelTag = "ensemble"
    lookback: int = 100
    prediction_horizon: int = 24
    risk_tolerance: RiskTolerance = "medium"
    max_position_size: float = 0.1
    stop_loss: float = 0.02
    take_profit: float = 0.03

    @classmethod
    def from_settings(cls, settings: ModelSettings) -> "ModelConfig":
        return cls(**settings.model_dump())

    def merged(self, **changes: Any) -> "ModelConfig":
        """Return a copy with ``changes`` applied. None values are ignored.

        Raises:
            ValueError: If a key is not a ModelConfig field, a tag is outside
                its allowed values, lookback or prediction_horizon is below 1,
                or a size or threshold is negative.
        """
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown config fields: {', '.join(sorted(unknown))}")
        updates = {k: v for k, v in changes.items() if v is not None}
        new = replace(self, **updates)
        if new.model not in get_args(ModelTag):
            raise ValueError(f"model must be one of {', '.join(get_args(ModelTag))}")
        if new.risk_tolerance not in get_args(RiskTolerance):
            raise ValueError(
                f"risk_tolerance must be one of {', '.join(get_args(RiskTolerance))}"
            )
        if new.lookback < 1:
            raise ValueError("lookback must be at least 1")
        if new.prediction_horizon < 1:
            raise ValueError("prediction_horizon must be at least 1")
        for name in ("max_position_size", "stop_loss", "take_profit"):
            if getattr(new, name) < 0:
                raise ValueError(f"{name} must not be negative")
        return new

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    exchange: ExchangeSettings = ExchangeSettings()
    model: ModelSettings = ModelSettings()
    poller: PollerSettings = PollerSettings()
    store: StoreSettings = StoreSettings()
    dashboard: DashboardSettings = DashboardSettings()
