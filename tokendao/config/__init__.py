"""
TokenDAO Configuration

Loads tokendao.toml at startup. Environment variables override TOML values.
"""

from .loader import (
    DaoSectionConfig,
    LoggingSectionConfig,
    StateSectionConfig,
    TokenDAOConfig,
    TokenSectionConfig,
    load_config,
)

__all__ = [
    "TokenDAOConfig",
    "DaoSectionConfig",
    "TokenSectionConfig",
    "StateSectionConfig",
    "LoggingSectionConfig",
    "load_config",
]
