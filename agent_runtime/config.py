"""Project-level configuration, path helpers and runtime settings."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"
LOGS_DIR = PROJECT_ROOT / "logs"
DEFAULT_DB_PATH = DATA_DIR / "agent_runtime.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        DATA_DIR.mkdir(parents=True, exist_ok=True)
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Runtime tunables. Build from the environment with ``Settings.from_env()``."""

    cycle_interval_seconds: float = 30.0
    step_timeout_seconds: float = 30.0
    max_consecutive_failures: int = 5
    backoff_base_seconds: float = 1.0
    backoff_max_seconds: float = 30.0
    max_observed_messages: int = 5
    stop_grace_seconds: float = 5.0
    llm_backend: str = "anthropic"  # anthropic | http | none
    llm_base_url: str = "http://localhost:3000"
    llm_provider: str = "anthropic"
    llm_model: str | None = None
    anthropic_api_key: str | None = None
    demo_mode: bool = False
    database_url: str | None = None
    log_level: str = "INFO"
    api_host: str = "localhost"
    api_port: int = 8000

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from environment variables (call load_dotenv first)."""
        return cls(
            cycle_interval_seconds=float(os.getenv("CYCLE_INTERVAL_SECONDS", "30")),
            step_timeout_seconds=float(os.getenv("STEP_TIMEOUT_SECONDS", "30")),
            max_consecutive_failures=int(os.getenv("MAX_CONSECUTIVE_FAILURES", "5")),
            backoff_base_seconds=float(os.getenv("BACKOFF_BASE_SECONDS", "1")),
            backoff_max_seconds=float(os.getenv("BACKOFF_MAX_SECONDS", "30")),
            max_observed_messages=int(os.getenv("MAX_OBSERVED_MESSAGES", "5")),
            stop_grace_seconds=float(os.getenv("STOP_GRACE_SECONDS", "5")),
            llm_backend=os.getenv("LLM_BACKEND", "anthropic").lower(),
            llm_base_url=os.getenv("LLM_BASE_URL", "http://localhost:3000"),
            llm_provider=os.getenv("LLM_PROVIDER", "anthropic"),
            llm_model=os.getenv("LLM_MODEL") or None,
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            demo_mode=_env_bool("DEMO_MODE", False),
            database_url=os.getenv("DATABASE_URL") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            api_host=os.getenv("API_HOST", "localhost"),
            api_port=int(os.getenv("API_PORT", "8000")),
        )
