"""
Tests for slpcore.config
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from slpcore.config import Settings, get_settings, setup_logging


class TestSettings:
    """Tests for Settings."""

    def test_default_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SLP_DUST_LIMIT", raising=False)
        settings = Settings()
        assert settings.dust_limit == 546
        assert settings.fee_rate == 1
        assert settings.op_return_overhead == 10
        assert settings.validator_timeout == 30.0
        assert settings.log_level == "INFO"

    def test_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SLP_FEE_RATE", "2")
        monkeypatch.setenv("slp_validator_timeout", "5")
        settings = get_settings()
        assert settings.fee_rate == 2
        assert settings.validator_timeout == 5.0

    def test_fee_rate_minimum(self) -> None:
        with pytest.raises(ValidationError):
            Settings(fee_rate=0)

    def test_dust_limit_non_negative(self) -> None:
        with pytest.raises(ValidationError):
            Settings(dust_limit=-1)

    def test_no_timeout(self) -> None:
        assert Settings(validator_timeout=None).validator_timeout is None


def test_setup_logging() -> None:
    setup_logging("debug")
    setup_logging("INFO")
