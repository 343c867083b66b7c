from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

# Resolve repo root from this file's location:
# app/settings.py → parent = app/ → parent = repo root
REPO_ROOT = Path(__file__).resolve().parents[1]

# Demo DB and planner config shipped with the repo
DEFAULT_DEMO_DB = REPO_ROOT / "data" / "demo.db"
DEFAULT_PLANNER_CONFIG = REPO_ROOT / "configs" / "planner.yaml"


def _resolve_path(raw: str, default: Path) -> str:
    raw = (raw or "").strip()
    if not raw:
        return str(default)
    candidate = Path(raw)
    if not candidate.is_absolute():
        candidate = REPO_ROOT / raw
    return str(candidate)


@dataclass
class Settings:
    """
    Centralized application configuration.

    Does NOT depend on pydantic. Values are loaded from environment
    variables via Settings.from_env().
    """

    # --- DB mode / adapters ---
    db_mode: str = "sqlite"  # "sqlite" or "postgres"
    postgres_dsn: str = ""
    db_namespace: str = "public"
    default_sqlite_path: str = str(DEFAULT_DEMO_DB)
    db_statement_timeout_ms: int = 15000

    # --- Planner config ---
    planner_config_path: str = str(DEFAULT_PLANNER_CONFIG)

    # --- Completion service ---
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model_id: str = "gpt-4o-mini"
    llm_timeout_sec: float = 20.0

    # --- Schema snapshot cache ---
    schema_cache_ttl_sec: float = 300.0

    # --- App ---
    app_version: str = "dev"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build Settings from environment variables with sane fallbacks.

        - DEFAULT_SQLITE_PATH and PLANNER_CONFIG can be absolute or relative.
        - Relative paths are resolved against REPO_ROOT.
        """

        def getenv_int(name: str, default: int) -> int:
            raw = os.getenv(name)
            if raw is None or raw.strip() == "":
                return default
            try:
                return int(raw)
            except ValueError:
                return default

        def getenv_float(name: str, default: float) -> float:
            raw = os.getenv(name)
            if raw is None or raw.strip() == "":
                return default
            try:
                return float(raw)
            except ValueError:
                return default

        return cls(
            db_mode=os.getenv("DB_MODE", cls.db_mode).strip().lower(),
            postgres_dsn=os.getenv("POSTGRES_DSN", cls.postgres_dsn),
            db_namespace=os.getenv("DB_NAMESPACE", cls.db_namespace),
            default_sqlite_path=_resolve_path(
                os.getenv("DEFAULT_SQLITE_PATH", ""), DEFAULT_DEMO_DB
            ),
            db_statement_timeout_ms=getenv_int(
                "DB_STATEMENT_TIMEOUT_MS", cls.db_statement_timeout_ms
            ),
            planner_config_path=_resolve_path(
                os.getenv("PLANNER_CONFIG", ""), DEFAULT_PLANNER_CONFIG
            ),
            openai_api_key=os.getenv("OPENAI_API_KEY", cls.openai_api_key),
            openai_base_url=os.getenv("OPENAI_BASE_URL", cls.openai_base_url),
            openai_model_id=os.getenv("OPENAI_MODEL_ID", cls.openai_model_id),
            llm_timeout_sec=getenv_float("LLM_TIMEOUT_SEC", cls.llm_timeout_sec),
            schema_cache_ttl_sec=getenv_float(
                "SCHEMA_CACHE_TTL_SEC", cls.schema_cache_ttl_sec
            ),
            app_version=os.getenv("APP_VERSION", cls.app_version),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings.from_env()
