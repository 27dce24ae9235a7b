# inkgest/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict
import urllib.parse

class Settings(BaseSettings):
    # Read env from .env; ignore unknown keys so extra lines don't crash startup
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Database ---
    # Full async URL wins over the POSTGRES_* parts (e.g. sqlite+aiosqlite for tests)
    DATABASE_URL: str | None = None
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "inkgest"
    POSTGRES_USER: str = "inkgest"
    POSTGRES_PASSWORD: str = "inkgest"

    # --- Security ---
    INKGEST_API_KEY: str | None = None
    CRON_SECRET: str | None = None

    # --- Public URLs ---
    APP_URL: str = "http://localhost:3000"

    # --- Reminders ---
    DEFAULT_LOCALE: str = "es"
    DEFAULT_REGION: str = "ES"
    CONFIRMATION_EXPIRY_HOURS: int = 12
    REMINDER_MAX_RETRIES: int | None = None  # None = retry on every pass

    # --- WhatsApp Cloud API ---
    WHATSAPP_API_URL: str = "https://graph.facebook.com/v18.0"
    WHATSAPP_ACCESS_TOKEN: str | None = None
    WHATSAPP_PHONE_NUMBER_ID: str | None = None

    # --- Twilio SMS ---
    TWILIO_ACCOUNT_SID: str | None = None
    TWILIO_AUTH_TOKEN: str | None = None
    TWILIO_FROM_NUMBER: str | None = None

    # --- Email (Resend) ---
    RESEND_API_KEY: str | None = None
    EMAIL_FROM: str = "InkGest <no-reply@inkgest.app>"

    HTTP_TIMEOUT_SECONDS: float = 10.0

    # --- Monitoring & Logging ---
    APP_ENV: str = "production"
    LOG_LEVEL: str = "INFO"
    LOG_REQUESTS: bool = False
    LOG_RESPONSES: bool = False
    MAX_LOG_LENGTH: int = 200
    SLOW_REQUEST_THRESHOLD: float = 2.0
    ERROR_AGGREGATION_THRESHOLD: int = 10

    ALLOWED_CORS_ORIGINS: str = "*"  # comma-separated, e.g. "http://localhost:3000,https://studio.app"

    def _postgres_url(self, scheme: str) -> str:
        pwd = urllib.parse.quote_plus(self.POSTGRES_PASSWORD)
        return f"{scheme}://{self.POSTGRES_USER}:{pwd}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Alembic runs on the blocking drivers
    @property
    def sync_db_uri(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL.replace("+asyncpg", "").replace("+aiosqlite", "")
        return self._postgres_url("postgresql")

    @property
    def async_db_uri(self) -> str:
        return self.DATABASE_URL or self._postgres_url("postgresql+asyncpg")

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_development(self) -> bool:
        return self.APP_ENV.lower() in ("development", "dev", "local")

    @property
    def is_testing(self) -> bool:
        return self.APP_ENV.lower() in ("test", "testing")

    @property
    def confirmation_base_url(self) -> str:
        return f"{self.APP_URL.rstrip('/')}/confirm"

# Singleton
settings = Settings()
