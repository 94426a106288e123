"""
Application configuration.
All settings are loaded from environment variables.
Use env.example as a reference for required variables.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    IMPORTANT: Credentials have no defaults - they MUST be set in .env file.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # Comma-separated. Empty = default list in portal.main.
    cors_origins: str = ""

    # ===========================================
    # DATABASE
    # ===========================================
    database_url: str  # Required, no default

    # ===========================================
    # AUTH (bearer tokens are issued by the identity provider)
    # ===========================================
    jwt_secret_key: str  # Required, no default
    jwt_algorithm: str = "HS256"
    token_cookie_name: str = "token"

    # ===========================================
    # JOB REST SERVER
    # ===========================================
    rest_server_uri: str = "http://localhost:9186"
    rest_server_timeout: float = 10.0
    grafana_uri: str = ""

    # ===========================================
    # PORTAL UI
    # ===========================================
    job_list_path: str = "/job-list.html"
    submit_path: str = "/submit.html"
    job_retry_path: str = "/job-retry.html"
    default_auto_reload_interval: int = 10_000  # ms

    # ===========================================
    # CIRCUIT BREAKER
    # ===========================================
    cb_failure_threshold: int = 5
    cb_open_seconds: int = 30

    # ===========================================
    # LOGGING
    # ===========================================
    log_level: str = "INFO"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("rest_server_uri", "grafana_uri")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("default_auto_reload_interval")
    @classmethod
    def validate_auto_reload_interval(cls, v: int) -> int:
        """Only the intervals offered by the refresh dropdown are accepted."""
        if v not in (0, 10_000, 30_000, 60_000):
            raise ValueError("default_auto_reload_interval must be one of 0, 10000, 30000, 60000")
        return v

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        if len(v) < 16:
            raise ValueError("jwt_secret_key must be at least 16 characters")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
