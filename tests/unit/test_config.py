#!/usr/bin/env python3
"""
Configuration Tests
===================

Defaults, environment overrides, validation and the config singleton.
Run with: pytest tests/unit/test_config.py -v
"""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from code_ownership.config import AppConfig, LogLevel, OracleKind, get_config, reset_config


class TestDefaults:
    def test_defaults(self) -> None:
        cfg = AppConfig(_env_file=None)

        assert cfg.oracle == OracleKind.TOOL
        assert cfg.tool_path == "bin/codeownership"
        assert cfg.codeowners_path == ".github/CODEOWNERS"
        assert cfg.oracle_timeout is None
        assert cfg.min_visible_latency == 0.05
        assert cfg.log_level == LogLevel.INFO
        assert cfg.log_file is None

    @pytest.mark.parametrize(
        "oracle, expected",
        [
            (OracleKind.TOOL, "bin/codeownership"),
            (OracleKind.CODEOWNERS, ".github/CODEOWNERS"),
            (OracleKind.MOCK, None),
        ],
    )
    def test_probe_path(self, oracle: OracleKind, expected: str | None) -> None:
        assert AppConfig(_env_file=None, oracle=oracle).probe_path == expected


class TestEnvironment:
    def test_prefixed_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CODE_OWNERSHIP_ORACLE", "codeowners")
        monkeypatch.setenv("CODE_OWNERSHIP_ORACLE_TIMEOUT", "2.5")
        monkeypatch.setenv("CODE_OWNERSHIP_LOG_LEVEL", "debug")

        cfg = AppConfig(_env_file=None)

        assert cfg.oracle == OracleKind.CODEOWNERS
        assert cfg.oracle_timeout == 2.5
        assert cfg.log_level == LogLevel.DEBUG

    def test_empty_variable_is_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CODE_OWNERSHIP_TOOL_PATH", "")
        assert AppConfig(_env_file=None).tool_path == "bin/codeownership"

    def test_env_file(self, tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("CODE_OWNERSHIP_ORACLE=mock\nCODE_OWNERSHIP_MOCK_SEED=7\n", encoding="utf-8")

        cfg = AppConfig(_env_file=env_file)

        assert cfg.oracle == OracleKind.MOCK
        assert cfg.mock_seed == 7


class TestValidation:
    @pytest.mark.parametrize("value", ["/usr/local/bin/codeownership", "   "])
    def test_tool_path_must_be_relative(self, value: str) -> None:
        with pytest.raises(ValidationError):
            AppConfig(_env_file=None, tool_path=value)

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            AppConfig(_env_file=None, oracle_timeout=0)

    def test_latency_bounds(self) -> None:
        with pytest.raises(ValidationError):
            AppConfig(_env_file=None, min_visible_latency=-0.1)

    def test_unknown_oracle(self) -> None:
        with pytest.raises(ValidationError):
            AppConfig(_env_file=None, oracle="crystal-ball")


class TestDump:
    def test_dump(self) -> None:
        text = AppConfig(_env_file=None).dump()

        assert "Code Ownership Configuration" in text
        assert "oracle: tool" in text
        assert "oracle_timeout: (not set)" in text

    def test_dump_json(self) -> None:
        data = json.loads(AppConfig(_env_file=None, oracle_timeout=3).dump_json())

        assert data["oracle"] == "tool"
        assert data["oracle_timeout"] == 3.0
        assert data["log_file"] is None


class TestSingleton:
    def test_cached_until_reset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        first = get_config()
        assert get_config() is first

        monkeypatch.setenv("CODE_OWNERSHIP_ORACLE", "mock")
        reset_config()

        assert get_config() is not first
        assert get_config().oracle == OracleKind.MOCK
