from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Hireflow"
    app_env: str = "development"
    log_level: str = "INFO"
    public_base_url: str = "http://localhost:8787"

    database_url: str = "sqlite:///./data/hireflow.db"
    data_dir: Path = Path("./data")
    upload_dir: Path = Path("./data/uploads")
    screenshot_dir: Path = Path("./data/screenshots")

    browser_headless: bool = True
    browser_nav_timeout_sec: int = 30
    browser_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    browser_viewport_width: int = 1920
    browser_viewport_height: int = 1080
    browser_launch_args: str = "--no-sandbox,--disable-setuid-sandbox,--disable-dev-shm-usage,--disable-gpu"

    login_poll_interval_sec: float = 5.0
    login_poll_max_attempts: int = 60
    login_settle_sec: float = 3.0
    apply_settle_sec: float = 2.0
    submit_settle_sec: float = 3.0
    approval_window_sec: float = 60.0
    session_ttl_hours: float = 24.0

    submission_min_confidence: float = 0.4

    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model_writer: str = "gpt-4o-mini"
    openai_timeout_sec: int = 60

    local_llm_enabled: bool = False
    local_llm_base_url: str = "http://localhost:11434/v1"
    local_llm_api_key: str = "local"
    local_llm_model: str = "qwen2.5:14b-instruct"
    local_llm_timeout_sec: int = 90

    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = ""
    smtp_use_tls: bool = True
    smtp_timeout_sec: int = 30

    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_from_number: str = ""
    twilio_use_whatsapp: bool = True
    twilio_api_base: str = "https://api.twilio.com/2010-04-01"
    twilio_timeout_sec: int = 30

    notification_history_size: int = 200

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, value: str) -> str:
        allowed = {"development", "staging", "production", "test"}
        if value not in allowed:
            raise ValueError(f"app_env must be one of {sorted(allowed)}")
        return value

    @field_validator(
        "login_poll_interval_sec",
        "approval_window_sec",
        "session_ttl_hours",
    )
    @classmethod
    def validate_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("value must be greater than zero")
        return value

    @field_validator("login_poll_max_attempts", "notification_history_size")
    @classmethod
    def validate_attempts(cls, value: int) -> int:
        if value < 1:
            raise ValueError("value must be at least 1")
        return value

    @field_validator("submission_min_confidence")
    @classmethod
    def validate_confidence(cls, value: float) -> float:
        if value < 0 or value > 1:
            raise ValueError("submission_min_confidence must be between 0 and 1")
        return value

    @property
    def launch_arg_list(self) -> list[str]:
        return [arg.strip() for arg in self.browser_launch_args.split(",") if arg.strip()]

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_user and self.smtp_password)

    @property
    def twilio_configured(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token and self.twilio_from_number)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
