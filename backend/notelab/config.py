from pydantic_settings import BaseSettings, NoDecode
from pydantic import field_validator
from functools import lru_cache
from typing import Annotated


class Settings(BaseSettings):
    # Application
    app_name: str = "Note.Lab API"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Logging
    log_dir: str = ""  # Empty disables file logging
    log_json: bool = False  # Enable JSON logging for production
    enable_request_logging: bool = True

    # Database
    database_url: str = "sqlite:///./notelab.db"

    # Redis (password reset tokens)
    redis_url: str = "redis://localhost:6379/0"
    password_reset_ttl_seconds: int = 3600  # 1 hour

    # JWT Authentication
    jwt_secret_key: str = ""  # REQUIRED outside development
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 7

    # Sessions
    session_expire_days: int = 7

    # Password hashing: "bcrypt" or "sha256" (legacy salt:hash digests)
    password_hash_scheme: str = "bcrypt"
    bcrypt_rounds: int = 12

    # Rate limiting (fixed window, stored in the database)
    rate_limit_requests: int = 100
    rate_limit_window_minutes: int = 15
    auth_rate_limit_requests: int = 20
    auth_rate_limit_window_minutes: int = 15

    # Email (SMTP)
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = "noreply@notelab.app"
    smtp_use_tls: bool = True

    # Frontend (used to build password reset links)
    frontend_url: str = ""  # Empty: derive from the request origin

    # HTTP hardening
    cors_origins: Annotated[list[str], NoDecode] = []
    # CIDR ranges of reverse proxies whose forwarding headers are believed
    trusted_proxies: Annotated[list[str], NoDecode] = []
    max_request_size: int = 5 * 1024 * 1024  # 5MB
    enable_hsts: bool = False

    @field_validator('cors_origins', 'trusted_proxies', mode='before')
    @classmethod
    def parse_csv_list(cls, v):
        """Parse comma-separated values from environment variable"""
        if isinstance(v, str):
            return [item.strip() for item in v.split(',') if item.strip()]
        return v or []

    @field_validator('password_hash_scheme')
    @classmethod
    def check_hash_scheme(cls, v):
        v = v.lower()
        if v not in ("bcrypt", "sha256"):
            raise ValueError("password_hash_scheme must be 'bcrypt' or 'sha256'")
        return v

    @property
    def is_development(self) -> bool:
        return self.environment.lower() in ("development", "dev", "local") or self.debug

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    return Settings()
