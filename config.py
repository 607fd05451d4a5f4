"""
Application settings read from environment variables.

Values are computed once when the module is imported, so the
environment must be prepared before importing ``settings``.
"""

import os
from dataclasses import dataclass, field
from typing import List


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    project_name: str = os.getenv("PROJECT_NAME", "Stay Booking API")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")

    # MongoDB connection
    database_url: str = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
    database_name: str = os.getenv("DATABASE_NAME", "stay_db")

    stay_page_size: int = int(os.getenv("STAY_PAGE_SIZE", "3"))
    cors_origins: List[str] = field(default_factory=lambda: _split_csv(os.getenv("CORS_ORIGINS", "*")))
    port: int = int(os.getenv("PORT", "8000"))


settings = Settings()
