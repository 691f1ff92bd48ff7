"""Application configuration management."""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    These settings are automatically loaded from the .env file or environment variables.
    All sensitive data (API keys) should be stored in environment variables, not hardcoded.

    Attributes:
        aliyun_api_key: DashScope (Aliyun Bailian) API key
        aliyun_api_base_url: DashScope API base URL
        aliyun_flux_model: Default (fast) model, tried first
        aliyun_wanx_models: Comma-separated fallback (higher quality) models
        request_timeout: Per-request timeout in seconds
        retry_count: Status poll budget for fast/default models
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        enable_ui: Whether to mount the Gradio UI
        run_integration_tests: Whether to run integration tests
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    # API Keys
    aliyun_api_key: str = ""
    aliyun_api_base_url: str = "https://dashscope.aliyuncs.com/api/v1"

    # Model Configuration
    aliyun_flux_model: str = "flux-schnell"
    aliyun_wanx_models: str = "wanx2.1-t2i-turbo"

    # Polling
    request_timeout: float = 60.0
    retry_count: int = 10

    # Application Settings
    log_level: str = "INFO"
    enable_ui: bool = True
    host: str = "0.0.0.0"
    port: int = 7861
    ui_path: str = "/ui"

    # Testing
    run_integration_tests: bool = False

    def wanx_model_list(self) -> list[str]:
        """Parse the comma-separated fallback model list."""
        return [m.strip() for m in self.aliyun_wanx_models.split(",") if m.strip()]

    def validate_required_keys(self) -> None:
        """Validate that required API keys are present.

        Raises:
            ValueError: If required API keys are missing
        """
        if not self.aliyun_api_key:
            raise ValueError(
                "ALIYUN_API_KEY is required for image generation. "
                "Please set it in your .env file or environment variables. "
                "Get your key from the DashScope console."
            )


def get_settings(env_file: Optional[str] = '.env') -> Settings:
    """Load settings, optionally from a specific env file."""
    return Settings(_env_file=env_file)


# Global settings instance
settings = Settings()
