import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

# 1. Load environment variables from .env file
load_dotenv()

PROJECT_DIR = Path(__file__).resolve().parent

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./data/bookings.db"


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    database_url: str = DEFAULT_DATABASE_URL
    admin_key: Optional[str] = None  # unset -> admin endpoints always refuse
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    static_dir: Path = PROJECT_DIR / "public"
    cors_origins: List[str] = ["*"]

    @classmethod
    def from_env(cls) -> "Settings":
        port = os.environ.get("PORT", "3000")
        # 2. Fail fast on a port we cannot bind
        if not port.isdigit():
            raise ValueError(f"PORT must be an integer, got {port!r}")

        origins = os.environ.get("CORS_ORIGINS", "*")

        return cls(
            database_url=os.environ.get("DATABASE_URL") or DEFAULT_DATABASE_URL,
            admin_key=os.environ.get("ADMIN_KEY") or None,
            host=os.environ.get("HOST", "0.0.0.0"),
            port=int(port),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            static_dir=Path(os.environ.get("STATIC_DIR") or PROJECT_DIR / "public"),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )
