from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings

IDENTITY_STRATEGIES = {"global", "ip", "ip_user_agent", "user_agent"}


class Settings(BaseSettings):
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-1.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    llm_timeout_seconds: float = 30.0

    sendgrid_api_key: Optional[str] = None
    mail_from: Optional[str] = None
    admin_email: Optional[str] = None
    mail_timeout_seconds: float = 10.0

    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    cors_allow_origins: str = "*"

    identity_strategy: str = "ip_user_agent"
    session_closing_enabled: bool = False

    notify_window_hours: float = 24.0
    notify_once_per_process: bool = False
    notify_store_path: Optional[str] = None

    site_info_path: Optional[str] = None
    testmail_admin_token: Optional[str] = None

    class Config:
        env_file = ".env"
        extra = "ignore"

    @field_validator("identity_strategy", mode="before")
    @classmethod
    def normalize_identity_strategy(cls, value: object) -> str:
        strategy = str(value or "").strip().lower()
        if strategy not in IDENTITY_STRATEGIES:
            raise ValueError(f"identity_strategy must be one of {sorted(IDENTITY_STRATEGIES)}")
        return strategy

    @property
    def mail_configured(self) -> bool:
        return bool(self.sendgrid_api_key and self.mail_from and self.admin_email)

    def cors_origins(self) -> list[str]:
        origins = [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]
        return origins or ["*"]


settings = Settings()
