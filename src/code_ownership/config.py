"""
Centralized configuration
=========================

Pydantic Settings based configuration with validation and a config dump
for debugging.  Every setting can be given as a ``CODE_OWNERSHIP_*``
environment variable or in a ``.env`` file.

Usage:
    from code_ownership.config import get_config

    cfg = get_config()
    print(cfg.oracle)
    print(cfg.dump())
"""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Final

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class OracleKind(str, Enum):
    """Available ownership oracles."""

    TOOL = "tool"
    CODEOWNERS = "codeowners"
    MOCK = "mock"


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


# Relative path whose existence marks a workspace as configured, per oracle.
PROBE_PATHS: Final[dict[OracleKind, str | None]] = {
    OracleKind.TOOL: "tool_path",
    OracleKind.CODEOWNERS: "codeowners_path",
    OracleKind.MOCK: None,
}


class AppConfig(BaseSettings):
    """
    Application configuration.

    All settings are declared here with types, defaults and validation.
    """

    model_config = SettingsConfigDict(
        env_prefix="CODE_OWNERSHIP_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Oracle
    # ------------------------------------------------------------------
    oracle: OracleKind = Field(
        default=OracleKind.TOOL,
        description="Which oracle answers ownership queries (tool, codeowners, mock)",
    )
    tool_path: str = Field(
        default="bin/codeownership",
        description="Ownership tool, relative to the workspace root",
    )
    codeowners_path: str = Field(
        default=".github/CODEOWNERS",
        description="CODEOWNERS file, relative to the workspace root",
    )
    oracle_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Seconds before an oracle call is abandoned (unset = wait forever)",
    )
    mock_seed: int | None = Field(
        default=None,
        description="Random seed for the mock oracle",
    )

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------
    min_visible_latency: float = Field(
        default=0.05,
        ge=0.0,
        le=5.0,
        description="Pause after showing 'running' before the oracle is invoked (seconds)",
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Minimum level written to the output channel",
    )
    log_file: Path | None = Field(
        default=None,
        description="Optional file the output channel is mirrored to",
    )

    # =====================================================================
    # Validators
    # =====================================================================

    @field_validator("tool_path", "codeowners_path")
    @classmethod
    def _validate_relative(cls, v: str) -> str:
        """Workspace paths must stay relative to the workspace root."""
        if not v.strip():
            raise ValueError("path must not be empty")
        if PurePosixPath(v).is_absolute() or Path(v).is_absolute():
            raise ValueError(f"path must be relative to the workspace root, got: {v!r}")
        return v

    # =====================================================================
    # Derived properties
    # =====================================================================

    @property
    def probe_path(self) -> str | None:
        """Relative path checked to decide whether a workspace is configured."""
        attr = PROBE_PATHS[self.oracle]
        return getattr(self, attr) if attr else None

    # =====================================================================
    # Config dump for debugging
    # =====================================================================

    def dump(self) -> str:
        """Dump configuration as a human-readable string."""
        lines = [
            "=" * 60,
            "  Code Ownership Configuration",
            "=" * 60,
        ]
        for key, value in self.model_dump(mode="json").items():
            lines.append(f"  {key}: {value if value is not None else '(not set)'}")
        lines.append("=" * 60)
        return "\n".join(lines)

    def dump_json(self) -> str:
        """Dump configuration as JSON."""
        return json.dumps(self.model_dump(mode="json"), indent=2, default=str)


# ---------------------------------------------------------------------------
# Singleton access
# ---------------------------------------------------------------------------

_config_instance: AppConfig | None = None


def get_config() -> AppConfig:
    """
    Get the global configuration singleton.

    Loaded once from the environment and ``.env``; later calls return the
    cached instance.
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = AppConfig()
    return _config_instance


def reset_config() -> None:
    """Forget the cached configuration (useful for testing)."""
    global _config_instance
    _config_instance = None
