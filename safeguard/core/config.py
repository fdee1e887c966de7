import os
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./safeguard.db"
    SECRET_KEY: str = "dev-secret-key-change-in-production"

    # App
    APP_NAME: str = "safeguard-api"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    MIGRATE_ON_START: bool = False

    # CORS / Evidence storage
    CORS_ORIGINS: List[str] = ["http://localhost:5173"]
    EVIDENCE_DIR: str = "./evidence"
    MAX_FILE_SIZE: int = 50 * 1024 * 1024  # 50MB
    ALLOWED_EVIDENCE_EXTENSIONS: List[str] = [
        "pdf", "jpg", "jpeg", "png", "doc", "docx", "xls", "xlsx", "csv", "txt",
    ]

    # Auth
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    ALGORITHM: str = "HS256"

    # Assignment engine
    ROLE_HAZARD_MAP_PATH: Optional[str] = None
    RESTRICTED_COVERAGE_THRESHOLD: float = 0.80
    RECOMPUTE_PARALLEL: bool = False
    RECOMPUTE_CONCURRENCY: int = 4

    # Gap analysis
    EXPIRING_WINDOW_DAYS: int = 30
    COVERAGE_MODE: str = "approximate"  # or "exact"

    class Config:
        case_sensitive = True
        # Load .env ONLY when not production
        env_file = ".env" if os.getenv("ENVIRONMENT") != "production" else None


settings = Settings()
