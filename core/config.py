"""Runtime configuration for supplier resolution.

Settings come from environment variables, optionally loaded from a `.env`
file at the repository root:

- SUPPLIER_DB_PATH: SQLite file holding the document records
- SUPPLIER_IGNORE_DB_PATH: SQLite file holding ignored supplier pairs
  (defaults to SUPPLIER_DB_PATH)
- SUPPLIER_SUBSTRING_MIN_LENGTH: Minimum key length for substring matches
- SUPPLIER_FUZZY_THRESHOLD: Minimum edit-distance similarity (0-1)
- SUPPLIER_MAX_LENGTH_DIFFERENCE: Max key length gap for fuzzy matches
- SUPPLIER_CALL_TIMEOUT_SECONDS: Per-document repository call timeout
- LOG_LEVEL / LOG_JSON: Logging output
"""

import os
from pathlib import Path
from typing import Optional

# Load .env file if it exists
from dotenv import load_dotenv
env_path = Path(__file__).resolve().parents[1] / ".env"
if env_path.exists():
    load_dotenv(env_path)

from pydantic import BaseModel, Field


REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_DB_PATH = REPO_ROOT / "coredocument.db"


class Settings(BaseModel):
    """Resolved runtime settings."""
    db_path: Path = Field(default=DEFAULT_DB_PATH, description="Document database file")
    ignore_db_path: Path = Field(default=DEFAULT_DB_PATH, description="Ignored-pairs database file")

    substring_min_length: int = Field(default=5, ge=1)
    fuzzy_threshold: float = Field(default=0.85, ge=0.0, le=1.0)
    max_length_difference: int = Field(default=2, ge=0)

    call_timeout_seconds: float = Field(default=10.0, gt=0)

    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def get_settings() -> Settings:
    """Build Settings from the current environment.

    Raises:
        ValueError: If a variable holds a value of the wrong type or range
    """
    db_path = Path(os.getenv("SUPPLIER_DB_PATH") or DEFAULT_DB_PATH)
    ignore_db_path: Optional[str] = os.getenv("SUPPLIER_IGNORE_DB_PATH")

    return Settings(
        db_path=db_path,
        ignore_db_path=Path(ignore_db_path) if ignore_db_path else db_path,
        substring_min_length=_env_int("SUPPLIER_SUBSTRING_MIN_LENGTH", 5),
        fuzzy_threshold=_env_float("SUPPLIER_FUZZY_THRESHOLD", 0.85),
        max_length_difference=_env_int("SUPPLIER_MAX_LENGTH_DIFFERENCE", 2),
        call_timeout_seconds=_env_float("SUPPLIER_CALL_TIMEOUT_SECONDS", 10.0),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_json=_env_bool("LOG_JSON", False),
    )
