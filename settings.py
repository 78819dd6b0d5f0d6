import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    database_url: str = os.getenv("DATABASE_URL", "")
    database_name: str = os.getenv("DATABASE_NAME", "")
    port: int = int(os.getenv("PORT", 8000))
    storage_path: str = os.getenv("STOREFRONT_STORAGE_PATH", ".storefront/local_storage.json")
    jwt_secret_key: str = os.getenv("JWT_SECRET_KEY", "change-me-in-production")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
