from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "local"
    APP_NAME: str = "Yacht Feed API"
    # Comma-separated origins for CORS (e.g. https://charter.example.com). If empty, uses localhost defaults.
    CORS_ORIGINS: str = ""

    DATABASE_URL: str = "sqlite:///./feed.db"

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Render and others give postgres://; SQLAlchemy expects postgresql+psycopg2://."""
        if v and v.startswith("postgres://"):
            return "postgresql+psycopg2://" + v[11:]
        return v

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # Operator defaults (overridable per row in the settings table)
    DEFAULT_TZ: str = "Europe/Zagreb"
    OPEN_TIME: str = "08:00"
    CLOSE_TIME: str = "22:00"
    SLOT_MINUTES: int = 30
    DEFAULT_ROUND_TO: float | None = None
    BOATS: str = "A:Yacht A,B:Yacht B"  # id:Display name, comma-separated
    BOAT_ALIASES: str = "YA:A,YB:B"     # short code:boat id, used by the special dates sheet

    # Pricing workbook (one .xlsx per sheetId)
    PRICING_WORKBOOK_DIR: str = "./data/pricing"
    PRICING_SHEET_ID: str = "pricing"
    PRICING_SHEET_NAME: str = "Pricing"
    CONFIG_SHEET_NAME: str = "Config"
    SPECIAL_DATES_SHEET_NAME: str = "SpecialDates"
    USERS_SHEET_NAME: str = "Users"

    # Audit trail writes wait at most this long for the write lock
    AUDIT_LOCK_TIMEOUT_SECONDS: float = 0.5


settings = Settings()
