import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

PACKAGE_DIR = Path(__file__).resolve().parent
DEFAULT_FRONTEND_DIR = PACKAGE_DIR / "frontend"


def _read_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _read_int(name: str, default: int) -> int:
    raw = _read_env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    onedrive_user: Optional[str] = None
    onedrive_folder_path: str = ""
    login_username: Optional[str] = None
    login_password: Optional[str] = None
    secret_key: str = "dev-secret-change-me"
    session_max_age_minutes: int = 90
    session_cookie_secure: bool = False
    graph_timeout: int = 30
    frontend_dir: Path = DEFAULT_FRONTEND_DIR
    log_level: str = "INFO"
    port: int = 3000

    @property
    def login_configured(self) -> bool:
        return bool(self.login_username and self.login_password)


def load_settings() -> Settings:
    """
    Reads settings from the environment (and .env).
    Graph credentials are not required to start: remote calls fail with a
    clear error instead, so the login page keeps working.
    """
    frontend_dir = _read_env("FRONTEND_DIR")
    return Settings(
        tenant_id=_read_env("TENANT_ID"),
        client_id=_read_env("CLIENT_ID"),
        client_secret=_read_env("CLIENT_SECRET"),
        onedrive_user=_read_env("ONEDRIVE_USER"),
        onedrive_folder_path=(_read_env("ONEDRIVE_FOLDER_PATH") or "").strip("/"),
        login_username=_read_env("LOGIN_USERNAME"),
        login_password=_read_env("LOGIN_PASSWORD"),
        secret_key=_read_env("SECRET_KEY") or "dev-secret-change-me",
        session_max_age_minutes=_read_int("SESSION_MAX_AGE_MINUTES", 90),
        session_cookie_secure=_read_env("SESSION_COOKIE_SECURE") == "1",
        graph_timeout=_read_int("GRAPH_TIMEOUT", 30),
        frontend_dir=Path(frontend_dir) if frontend_dir else DEFAULT_FRONTEND_DIR,
        log_level=(_read_env("LOG_LEVEL") or "INFO").upper(),
        port=_read_int("PORT", 3000),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
