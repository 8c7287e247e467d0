"""
TokenDAO TOML Configuration Loader

Loads tokendao.toml with environment variable overrides. Each section is a
dataclass with ``from_dict`` and ``apply_env``.

Environment variable mapping:
    [dao] chairperson               → DAO_CHAIRPERSON
    [dao] minimum_quorum            → DAO_MINIMUM_QUORUM
    [dao] debating_period_duration  → DAO_DEBATING_PERIOD_DURATION
    [token] initial_supply          → TOKEN_INITIAL_SUPPLY
    [state] path                    → TOKENDAO_STATE
    [logging] level                 → TOKENDAO_LOG_LEVEL
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from ..constants import (
    DAO_DEFAULT_CONFIG_FILE,
    DAO_DEFAULT_DEBATING_PERIOD_DURATION,
    DAO_DEFAULT_MINIMUM_QUORUM,
    DAO_DEFAULT_STATE_FILE,
    TOKEN_DEFAULT_DECIMALS,
    TOKEN_DEFAULT_INITIAL_SUPPLY,
    TOKEN_DEFAULT_NAME,
    TOKEN_DEFAULT_SYMBOL,
)
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_int(name: str) -> Optional[int]:
    v = os.environ.get(name)
    if not v:
        return None
    try:
        return int(v)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {v!r}")


@dataclass
class DaoSectionConfig:
    """[dao] section."""
    chairperson: str = ""
    minimum_quorum: int = DAO_DEFAULT_MINIMUM_QUORUM
    debating_period_duration: int = DAO_DEFAULT_DEBATING_PERIOD_DURATION

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DaoSectionConfig":
        return cls(
            chairperson=data.get("chairperson", ""),
            minimum_quorum=data.get("minimum_quorum", DAO_DEFAULT_MINIMUM_QUORUM),
            debating_period_duration=data.get(
                "debating_period_duration", DAO_DEFAULT_DEBATING_PERIOD_DURATION
            ),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("DAO_CHAIRPERSON"):
            self.chairperson = v
        if (v := _env_int("DAO_MINIMUM_QUORUM")) is not None:
            self.minimum_quorum = v
        if (v := _env_int("DAO_DEBATING_PERIOD_DURATION")) is not None:
            self.debating_period_duration = v


@dataclass
class TokenSectionConfig:
    """[token] section."""
    name: str = TOKEN_DEFAULT_NAME
    symbol: str = TOKEN_DEFAULT_SYMBOL
    decimals: int = TOKEN_DEFAULT_DECIMALS
    initial_supply: int = TOKEN_DEFAULT_INITIAL_SUPPLY

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenSectionConfig":
        return cls(
            name=data.get("name", TOKEN_DEFAULT_NAME),
            symbol=data.get("symbol", TOKEN_DEFAULT_SYMBOL),
            decimals=data.get("decimals", TOKEN_DEFAULT_DECIMALS),
            initial_supply=data.get("initial_supply", TOKEN_DEFAULT_INITIAL_SUPPLY),
        )

    def apply_env(self) -> None:
        if (v := _env_int("TOKEN_INITIAL_SUPPLY")) is not None:
            self.initial_supply = v


@dataclass
class StateSectionConfig:
    """[state] section."""
    path: str = DAO_DEFAULT_STATE_FILE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StateSectionConfig":
        return cls(path=data.get("path", DAO_DEFAULT_STATE_FILE))

    def apply_env(self) -> None:
        if v := os.environ.get("TOKENDAO_STATE"):
            self.path = v


@dataclass
class LoggingSectionConfig:
    """[logging] section."""
    level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingSectionConfig":
        return cls(level=str(data.get("level", "INFO")).upper())

    def apply_env(self) -> None:
        if v := os.environ.get("TOKENDAO_LOG_LEVEL"):
            self.level = v.upper()


@dataclass
class TokenDAOConfig:
    """Top-level configuration."""
    dao: DaoSectionConfig = field(default_factory=DaoSectionConfig)
    token: TokenSectionConfig = field(default_factory=TokenSectionConfig)
    state: StateSectionConfig = field(default_factory=StateSectionConfig)
    logging: LoggingSectionConfig = field(default_factory=LoggingSectionConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenDAOConfig":
        return cls(
            dao=DaoSectionConfig.from_dict(data.get("dao", {})),
            token=TokenSectionConfig.from_dict(data.get("token", {})),
            state=StateSectionConfig.from_dict(data.get("state", {})),
            logging=LoggingSectionConfig.from_dict(data.get("logging", {})),
        )

    @classmethod
    def from_file(cls, config_path: str | Path) -> "TokenDAOConfig":
        """
        Load configuration from a TOML file.

        A missing file is not an error: defaults plus environment overrides
        are used instead.
        """
        path = Path(config_path)
        if not path.exists():
            logger.debug("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            return cfg

        try:
            with open(path, "rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.dao.apply_env()
        self.token.apply_env()
        self.state.apply_env()
        self.logging.apply_env()

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ConfigurationError: on invalid config
        """
        if not isinstance(self.dao.minimum_quorum, int) or self.dao.minimum_quorum < 0:
            raise ConfigurationError("minimum_quorum must be a non-negative integer")
        if (
            not isinstance(self.dao.debating_period_duration, int)
            or self.dao.debating_period_duration < 0
        ):
            raise ConfigurationError("debating_period_duration must be a non-negative integer")
        if not 0 <= self.token.decimals <= 18:
            raise ConfigurationError(f"decimals must be 0-18, got {self.token.decimals}")
        if self.token.initial_supply < 0:
            raise ConfigurationError("initial_supply cannot be negative")
        if self.logging.level not in _LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level: {self.logging.level}")
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dao": {
                "chairperson": self.dao.chairperson,
                "minimum_quorum": self.dao.minimum_quorum,
                "debating_period_duration": self.dao.debating_period_duration,
            },
            "token": {
                "name": self.token.name,
                "symbol": self.token.symbol,
                "decimals": self.token.decimals,
                "initial_supply": self.token.initial_supply,
            },
            "state": {"path": self.state.path},
            "logging": {"level": self.logging.level},
        }


def load_config(path: Optional[str] = None) -> TokenDAOConfig:
    """
    Load configuration.

    Resolution order:
        1. Explicit *path* argument
        2. TOKENDAO_CONFIG env var
        3. ./tokendao.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("TOKENDAO_CONFIG", DAO_DEFAULT_CONFIG_FILE)

    return TokenDAOConfig.from_file(path)
