"""
SmartQuery Backend: Settings Tests
==================================

What we test:
    ✅ Comma-separated lists are split and trimmed
    ✅ log_level is normalised and validated
    ✅ Token sizes below 128 bits are refused
    ✅ Production check flags default secrets and a missing Gemini key
"""

import pytest
from pydantic import ValidationError as SettingsValidationError

from smartquery.config import Settings


def make_settings(**overrides) -> Settings:
    values = {
        "jwt_secret": "x" * 40,
        "gemini_api_key": "real-looking-key",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestParsing:

    def test_gemini_models_list(self):
        config = make_settings(gemini_models=" flash , ,pro ")
        assert config.gemini_models_list == ["flash", "pro"]

    def test_cors_origins_list(self):
        config = make_settings(cors_origins="http://a.test, http://b.test")
        assert config.cors_origins_list == ["http://a.test", "http://b.test"]

    def test_log_level_upper_cased(self):
        assert make_settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(SettingsValidationError):
            make_settings(log_level="LOUD")

    def test_share_token_minimum_is_128_bits(self):
        with pytest.raises(SettingsValidationError):
            make_settings(share_token_bytes=8)


class TestProductionCheck:

    def test_good_settings_pass(self):
        make_settings().validate_required_for_production()

    def test_default_jwt_secret_flagged(self):
        with pytest.raises(ValueError, match="JWT_SECRET"):
            make_settings(jwt_secret="change-me").validate_required_for_production()

    def test_missing_gemini_key_flagged(self):
        with pytest.raises(ValueError, match="GEMINI_API_KEY"):
            make_settings(gemini_api_key="").validate_required_for_production()
