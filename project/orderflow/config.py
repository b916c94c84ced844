# orderflow/config.py

from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    AUTH_SECRET_KEY: str
    AUTH_TOKEN_EXPIRE_MINUTES: int = 1440
    AUTH_LOGIN: str = "admin"       # seeded on first start
    AUTH_PASSWORD: str = "admin"

    DATABASE_URL: str = "sqlite+aiosqlite:///./orderflow.db"

    UPLOAD_DIR: str = "uploads/receipts"     # money receipt photos
    UPLOAD_MAX_BYTES: int = 5 * 1024 * 1024

    LOCAL_CARRIERS: List[str] = ["Duban Pineda", "Picap", "Didi", "Bodega"]
    NATIONAL_CARRIERS: List[str] = ["Interrapidisimo", "Picap", "Bodega"]

    LOG_DIR: str = "orderflow/log"
    LOG_PRINT: str = "1"
    DEBUG: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

settings = Settings()
