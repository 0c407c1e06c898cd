"""Configuration for the bitcoind client."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

NETWORKS = {
    "mainnet": 8332,
    "regtest": 18332,
    "testnet": 18332,
}


class SSLOptions(BaseModel):
    enabled: bool = False
    strict: Optional[bool] = None
    ca: Optional[str] = None

    @model_validator(mode="after")
    def default_strict(self) -> "SSLOptions":
        if self.strict is None:
            self.strict = self.enabled
        return self


class ClientConfig(BaseSettings):
    """Pydantic-based configuration model.

    Values may be passed as keyword arguments or read from ``BITCOIND_*``
    environment variables (and an optional ``.env`` file).
    """

    model_config = SettingsConfigDict(
        env_prefix="BITCOIND_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = "localhost"
    port: Optional[int] = None
    network: str = "mainnet"
    ssl: SSLOptions = Field(default_factory=SSLOptions)
    timeout: int = 30000
    username: Optional[str] = None
    password: Optional[str] = Field(default=None, repr=False)
    version: Optional[str] = None
    wallet: Optional[str] = None
    headers: bool = False
    datadir: Optional[str] = None
    cookie_path: Optional[str] = None
    log_level: str = "WARNING"

    @field_validator("network", mode="before")
    @classmethod
    def validate_network(cls, value: Any) -> str:
        value_str = str(value or "mainnet").strip()
        if value_str not in NETWORKS:
            raise ValueError(f'Invalid network name "{value_str}"')
        return value_str

    @field_validator("ssl", mode="before")
    @classmethod
    def normalize_ssl(cls, value: Any) -> Any:
        """Accept a bare boolean as shorthand for ``{"enabled": value}``."""

        if value is None:
            return SSLOptions()
        if isinstance(value, (bool, str, int)):
            return {"enabled": value}
        return value

    @field_validator("datadir", "cookie_path", mode="before")
    @classmethod
    def expand_user(cls, value: str | None) -> str | None:
        """Expand user home references (~) unless the value is blank."""

        if value is None:
            return None
        value_str = str(value).strip()
        if not value_str:
            return None
        return os.path.expanduser(value_str)

    @field_validator("timeout")
    @classmethod
    def positive_timeout(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Timeout must be positive")
        return value

    @model_validator(mode="after")
    def default_port(self) -> "ClientConfig":
        if self.port is None:
            self.port = NETWORKS[self.network]
        return self

    @property
    def cookie_file(self) -> Optional[Path]:
        if not self.cookie_path:
            return None
        path = Path(self.cookie_path).expanduser()
        return path if path.exists() else None


def load_config(**overrides: Any) -> ClientConfig:
    """Load configuration from environment variables."""

    return ClientConfig(**overrides)
