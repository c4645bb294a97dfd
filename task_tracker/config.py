import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

load_dotenv(find_dotenv())

DEFAULT_INIT_SQL = Path(__file__).parent / "init_db.sql"
DEFAULT_API_URL = "http://localhost:3000"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    db_path: Path = Path("data.sqlite")
    init_sql: Path = DEFAULT_INIT_SQL
    host: str = "0.0.0.0"
    port: int = 3000
    strict_status: bool = False
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("TASKS_CORS_ORIGINS", "*")
        return cls(
            db_path=Path(os.getenv("TASKS_DB_PATH", "data.sqlite")),
            init_sql=Path(os.getenv("TASKS_INIT_SQL", str(DEFAULT_INIT_SQL))),
            host=os.getenv("TASKS_HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
            strict_status=_env_bool("TASKS_STRICT_STATUS", False),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.getenv("TASKS_LOG_LEVEL", "INFO").upper(),
        )
