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
    # CORS: comma separated. Empty = default list in app.main.
    cors_origins: str = ""
    # Trusted proxy IPs (comma-separated). Used for X-Forwarded-For in production.
    trusted_proxy_ips: str = ""
    # Public site, used for gateway return URLs
    frontend_url: str = "https://1strankcome.com"

    # ===========================================
    # DATABASE (PostgreSQL)
    # ===========================================
    database_url: str  # Required, no default

    # Docker-compose variables (not used by app directly)
    postgres_db: str | None = None
    postgres_user: str | None = None
    postgres_password: str | None = None

    # ===========================================
    # REDIS & CELERY
    # ===========================================
    redis_url: str  # Required, no default
    celery_broker_url: str  # Required, no default
    celery_result_backend: str  # Required, no default

    # ===========================================
    # CASHFREE PAYMENT GATEWAY
    # ===========================================
    cashfree_app_id: str = ""
    cashfree_secret_key: str = ""
    cashfree_env: str = "sandbox"  # sandbox, production
    # Shared secret for x-webhook-signature. Empty in production = webhooks rejected.
    cashfree_webhook_secret: str = ""
    cashfree_api_version: str = "2023-08-01"
    cashfree_timeout_seconds: float = 10.0
    payment_currency: str = "INR"
    # Allowed rounding difference between stored and observed amount (rupees)
    amount_tolerance: float = 0.01

    # ===========================================
    # ORDERS
    # ===========================================
    utr_min_length: int = 6
    payment_link_default_purpose: str = "Premium Rank Payment"

    # ===========================================
    # ADMIN AUTH (REQUIRED - CHANGE DEFAULTS!)
    # ===========================================
    admin_id: str  # Required, no default
    admin_password: str  # Required, no default
    jwt_secret_key: str  # Required, no default
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24

    # Login rate limit (brute-force protection)
    login_rate_limit_attempts: int = 5
    login_rate_limit_window_seconds: int = 900  # 15 min

    # ===========================================
    # NOTIFICATIONS (SMTP)
    # ===========================================
    # Credentials live in the settings row; host and timeouts are deployment config.
    smtp_host: str = "smtp.gmail.com"
    smtp_timeout_seconds: float = 30.0
    email_default_from_name: str = "Come Office"

    # ===========================================
    # REAL-TIME
    # ===========================================
    admin_events_channel: str = "admin:orders"

    # ===========================================
    # CIRCUIT BREAKER
    # ===========================================
    cb_failure_threshold: int = 5
    cb_open_seconds: int = 30

    # ===========================================
    # LOGGING
    # ===========================================
    log_level: str = "INFO"
    request_id_header: str = "X-Request-Id"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("cashfree_env")
    @classmethod
    def validate_cashfree_env(cls, v: str) -> str:
        v = (v or "").strip().lower()
        if v not in ("sandbox", "production"):
            raise ValueError("cashfree_env must be 'sandbox' or 'production'")
        return v

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Ensure JWT secret is reasonably secure."""
        if len(v) < 16:
            raise ValueError("jwt_secret_key must be at least 16 characters")
        if v in ("changeme", "secret", "password", "admin"):
            raise ValueError("jwt_secret_key is too weak, please change it")
        return v

    @field_validator("admin_password")
    @classmethod
    def validate_admin_password(cls, v: str) -> str:
        """Reject obviously weak passwords."""
        if v in ("admin", "password", "123456", "changeme"):
            raise ValueError("admin_password is too weak, please change it")
        return v

    @property
    def is_production(self) -> bool:
        return self.cashfree_env == "production"

    @property
    def cashfree_base_url(self) -> str:
        if self.is_production:
            return "https://api.cashfree.com/pg"
        return "https://sandbox.cashfree.com/pg"

    @property
    def trusted_proxy_ips_set(self) -> set[str]:
        """Get trusted proxy IPs as a set."""
        return {ip.strip() for ip in self.trusted_proxy_ips.split(",") if ip.strip()}

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
