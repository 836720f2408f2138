from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    LINE_CHANNEL_ACCESS_TOKEN: str | None = None
    LINE_CHANNEL_SECRET: str | None = None
    LINE_REPLY_ENDPOINT: str = "https://api.line.me/v2/bot/message/reply"

    BAND_ACCESS_TOKEN: str | None = None
    BAND_KEY: str | None = None
    BAND_POST_ENDPOINT: str = "https://openapi.band.us/v2.2/band/post/create"

    CRON_SECRET: str = ""

    BUSINESS_TIMEZONE: str = "Asia/Tokyo"
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    AUTO_REPLY_ENABLED: bool = True
    DATA_DIR: str = "./data"

    BUTTON_TTL_SECONDS: int = 300
    SESSION_TIMEOUT_SECONDS: int = 300
    CONFIG_CACHE_TTL_SECONDS: int = 300
    BLACKOUT_START_HOUR: int = 21
    BLACKOUT_END_HOUR: int = 22
    DATE_CUTOFF_HOUR: int = 21
    LOOKAHEAD_DAYS: int = 7
    # One carousel holds 10 cards; the last is reserved for "Show more".
    LISTING_PAGE_SIZE: int = Field(default=9, ge=1, le=9)


settings = Settings()
