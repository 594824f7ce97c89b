# artforge/core/config.py
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from openai import AsyncOpenAI

# ================== ENV ==================

ROOT_DIR = Path(__file__).resolve().parents[2]
load_dotenv(ROOT_DIR / ".env")


def env(*names: str, default: Optional[str] = None) -> str:
    for n in names:
        v = os.environ.get(n)
        if v is not None and str(v).strip() != "":
            return v
    if default is not None:
        return default
    raise KeyError(f"Missing required env var. Tried: {', '.join(names)}")


def _split_csv(raw: str) -> List[str]:
    return [x.strip() for x in raw.split(",") if x.strip()]


# ================== DATABASE ==================

def get_database_url() -> str:
    """Get database URL - supports SQLite or MySQL."""
    url = os.environ.get("DATABASE_URL", "").strip()
    if url:
        return url

    mysql_host = os.environ.get("MYSQL_HOST")
    if mysql_host:
        mysql_port = int(os.environ.get("MYSQL_PORT", "3306"))
        mysql_user = os.environ.get("MYSQL_USER", "root")
        mysql_password = os.environ.get("MYSQL_PASSWORD", "")
        mysql_db = os.environ.get("MYSQL_DB", "artforge")
        return f"mysql+aiomysql://{mysql_user}:{mysql_password}@{mysql_host}:{mysql_port}/{mysql_db}?charset=utf8mb4"

    db_path = ROOT_DIR / "artforge.db"
    return f"sqlite+aiosqlite:///{db_path}"


# ================== SETTINGS ==================

@dataclass(frozen=True)
class Settings:
    database_url: str
    jwt_secret: str
    jwt_algorithm: str = "HS256"

    openai_api_key: str = ""
    openai_image_model: str = "dall-e-3"
    openai_video_model: str = "sora-2"
    openai_prompt_model: str = "gpt-4.1-mini"
    openai_timeout_seconds: float = 120.0

    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    frontend_url: str = "http://localhost:5173"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    log_dir: str = "logs"
    log_level: str = "INFO"

    # Fixed backoff before the single automatic retry of a generation call
    generation_retry_delay_seconds: float = 2.0

    @property
    def stripe_is_test(self) -> bool:
        return self.stripe_secret_key.startswith("sk_test_")


def load_settings() -> Settings:
    """Build settings from the process environment (and .env, if present)."""
    return Settings(
        database_url=get_database_url(),
        jwt_secret=env("JWT_SECRET", default="default_secret_key"),
        jwt_algorithm=env("JWT_ALGORITHM", default="HS256"),
        openai_api_key=env("OPENAI_API_KEY", default="").strip(),
        openai_image_model=env("OPENAI_IMAGE_MODEL", default="dall-e-3"),
        openai_video_model=env("OPENAI_VIDEO_MODEL", default="sora-2"),
        openai_prompt_model=env("OPENAI_PROMPT_MODEL", "OPENAI_DEFAULT_MODEL", default="gpt-4.1-mini"),
        openai_timeout_seconds=float(env("OPENAI_TIMEOUT_SECONDS", default="120")),
        stripe_secret_key=env("STRIPE_SECRET_KEY", default="").strip(),
        stripe_webhook_secret=env("STRIPE_WEBHOOK_SECRET", default="").strip(),
        frontend_url=env("FRONTEND_URL", default="http://localhost:5173").rstrip("/"),
        cors_origins=_split_csv(env("CORS_ORIGINS", default="*")),
        log_dir=env("LOG_DIR", default="logs"),
        log_level=env("LOG_LEVEL", default="INFO").upper(),
        generation_retry_delay_seconds=float(env("GENERATION_RETRY_DELAY_SECONDS", default="2.0")),
    )


# ================== OPENAI ==================

def get_openai_client(settings: Settings) -> AsyncOpenAI:
    """
    Called once by create_app(); the server starts without a key.
    Only generation and enhancement endpoints require OPENAI_API_KEY.
    """
    if not settings.openai_api_key:
        raise RuntimeError("OPENAI_API_KEY not configured (.env).")
    return AsyncOpenAI(api_key=settings.openai_api_key, timeout=settings.openai_timeout_seconds)
