from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    APP_TITLE: str = "flixcrd-status"
    APP_VERSION: str = "0.2.0"

    DATABASE_URL: str = "sqlite:///./flixstatus.db"
    DB_POOL_RECYCLE: int = 1800  # segundos

    # Cron / uptime
    UPTIME_CRON_SECRET: str = ""
    COLLECT_TIMEOUT: float = 10.0
    HISTORY_DEFAULT_LIMIT: int = 24
    HISTORY_MAX_LIMIT: int = 168  # una semana de snapshots horarios

    # Health checks
    HEALTH_DB_TIMEOUT: float = 1.5
    TRANSCODER_BASE_URL: str = "http://localhost:8001"
    TRANSCODER_TIMEOUT: float = 5.0
    CDN_URL: str = "https://hlspaelflix.top/"
    CDN_PROBE_PATH: str = "titles/a-era-do-gelo/seg_0000.ts"
    CDN_TIMEOUT: float = 5.0

    # Storage (Wasabi / B2, S3 compatible)
    WASABI_BUCKET_NAME: str = ""
    WASABI_ENDPOINT: str = "https://s3.wasabisys.com"
    WASABI_REGION: str = "us-east-1"
    WASABI_ACCESS_KEY_ID: str = ""
    WASABI_SECRET_ACCESS_KEY: str = ""
    STORAGE_TIMEOUT: float = 5.0

    # Rate limiting
    RECORD_RATE_WINDOW_MS: int = 60_000
    RECORD_RATE_MAX: int = 10
    RATE_LIMIT_SWEEP_THRESHOLD: int = 0  # 0 = sin barrido automático

    # Client monitor
    MONITOR_INTERVAL: float = 60.0

    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        case_sensitive = False

settings = Settings()
