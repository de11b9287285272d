from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "steward"
    version: str = "0.1.0"
    DEBUG: bool = False
    APP_DATABASE_DSN: str = "sqlite:////tmp/steward.db"
    REDIS_URL: str = "redis://localhost:6379"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # SMTP (empty host disables delivery)
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM_EMAIL: str = "giving@example.com"
    SMTP_FROM_NAME: str = "Steward Giving"
    SMTP_USE_TLS: bool = True

    # Payment gateway used to charge pledges: "manual" or "stripe"
    PAYMENT_GATEWAY: str = "manual"
    stripe_api_key: str = ""

    # Tenant defaults applied until a tenant saves its own pledge settings
    PLEDGE_DEFAULT_MAX_FAILURES: int = 3
    PLEDGE_DEFAULT_RETRY_INTERVAL_HOURS: int = 24
    PLEDGE_DEFAULT_GRACE_PERIOD_DAYS: int = 7
    PLEDGE_DEFAULT_AUTO_RESUME: bool = True
    PLEDGE_DEFAULT_DUNNING_DAYS: list[int] = [3, 7, 14]

    # Processing
    PLEDGE_CLAIM_LEASE_MINUTES: int = 15
    PLEDGE_SCHEDULER_ENABLED: bool = False
    IDEMPOTENCY_TTL_HOURS: int = 24

    @property
    def stripe_enabled(self) -> bool:
        return bool(self.stripe_api_key)


settings = Settings()
