"""Unit tests for configuration management."""

import pytest
import os
from unittest.mock import patch


class TestSettings:
    """Tests for Settings configuration."""

    def test_default_values(self):
        """Test that default values are set correctly."""
        from app.config import Settings

        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

            assert settings.aliyun_api_key == ""
            assert settings.aliyun_api_base_url == "https://dashscope.aliyuncs.com/api/v1"
            assert settings.aliyun_flux_model == "flux-schnell"
            assert settings.wanx_model_list() == ["wanx2.1-t2i-turbo"]
            assert settings.request_timeout == 60.0
            assert settings.retry_count == 10
            assert settings.log_level == "INFO"
            assert settings.enable_ui is True
            assert settings.run_integration_tests is False

    def test_custom_values(self):
        """Test that custom values can be set via environment variables."""
        from app.config import Settings

        env_vars = {
            "ALIYUN_API_KEY": "sk-custom",
            "ALIYUN_API_BASE_URL": "https://dashscope-intl.aliyuncs.com/api/v1",
            "ALIYUN_FLUX_MODEL": "flux-dev",
            "ALIYUN_WANX_MODELS": "wanx2.1-t2i-plus, wanx2.1-t2i-turbo",
            "REQUEST_TIMEOUT": "30",
            "RETRY_COUNT": "5",
            "LOG_LEVEL": "DEBUG",
            "ENABLE_UI": "false",
            "RUN_INTEGRATION_TESTS": "true"
        }

        with patch.dict(os.environ, env_vars, clear=True):
            settings = Settings(_env_file=None)

            assert settings.aliyun_api_key == "sk-custom"
            assert settings.aliyun_api_base_url == "https://dashscope-intl.aliyuncs.com/api/v1"
            assert settings.aliyun_flux_model == "flux-dev"
            assert settings.wanx_model_list() == ["wanx2.1-t2i-plus", "wanx2.1-t2i-turbo"]
            assert settings.request_timeout == 30.0
            assert settings.retry_count == 5
            assert settings.log_level == "DEBUG"
            assert settings.enable_ui is False
            assert settings.run_integration_tests is True

    def test_empty_wanx_models(self):
        from app.config import Settings

        with patch.dict(os.environ, {"ALIYUN_WANX_MODELS": " , "}, clear=True):
            settings = Settings(_env_file=None)

            assert settings.wanx_model_list() == []

    def test_validate_required_keys_success(self):
        """Test validation passes when the API key is set."""
        from app.config import Settings

        with patch.dict(os.environ, {"ALIYUN_API_KEY": "sk-test"}, clear=True):
            settings = Settings(_env_file=None)
            settings.validate_required_keys()

    def test_validate_required_keys_failure(self):
        """Test validation fails when the API key is missing."""
        from app.config import Settings

        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

            with pytest.raises(ValueError, match="ALIYUN_API_KEY is required"):
                settings.validate_required_keys()

    def test_case_insensitive(self):
        """Test that environment variables are case-insensitive."""
        from app.config import Settings

        with patch.dict(os.environ, {"aliyun_api_key": "sk-lower"}, clear=True):
            settings = Settings(_env_file=None)

            assert settings.aliyun_api_key == "sk-lower"

    def test_get_settings_reads_env_file(self, tmp_path):
        from app.config import get_settings

        env_file = tmp_path / ".env"
        env_file.write_text("ALIYUN_API_KEY=sk-from-file\nRETRY_COUNT=3\n")

        with patch.dict(os.environ, {}, clear=True):
            settings = get_settings(str(env_file))

        assert settings.aliyun_api_key == "sk-from-file"
        assert settings.retry_count == 3
