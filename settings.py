# settings.py - dashboard configuration from the environment / .env
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

HOST_DEFAULTS = ("streamlit", "pandas", "numpy", "matplotlib", "seaborn")
PYTHON_DEFAULTS = ("numpy", "pandas", "matplotlib", "scipy")
R_DEFAULTS = ("shiny", "reticulate", "ggplot2", "bslib")

POINTS_MIN, POINTS_MAX, POINTS_DEFAULT = 50, 500, 200


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return max(minimum, int(value))
    except ValueError:
        return default


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(name)
    if value is None:
        return default
    return tuple(p.strip() for p in value.split(",") if p.strip())


def _env_path(name: str) -> Optional[str]:
    value = os.getenv(name)
    return value.strip() if value and value.strip() else None


@dataclass(frozen=True)
class Config:
    PYTHON_EXECUTABLE: Optional[str] = None
    RSCRIPT_EXECUTABLE: Optional[str] = None
    TIMEOUT: int = 30
    MAX_RECORDS: int = 100
    SEED: int = 123
    LOG_LEVEL: str = "INFO"
    DEFAULTS: dict = field(default_factory=lambda: {
        "host": HOST_DEFAULTS, "python": PYTHON_DEFAULTS, "r": R_DEFAULTS,
    })

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            PYTHON_EXECUTABLE=_env_path("DASHBOARD_PYTHON"),
            RSCRIPT_EXECUTABLE=_env_path("DASHBOARD_RSCRIPT"),
            TIMEOUT=_env_int("DASHBOARD_TIMEOUT", 30),
            MAX_RECORDS=_env_int("DASHBOARD_MAX_RECORDS", 100),
            SEED=_env_int("DASHBOARD_SEED", 123, minimum=0),
            LOG_LEVEL=(os.getenv("DASHBOARD_LOG_LEVEL") or "INFO").upper(),
            DEFAULTS={
                "host": _env_list("DASHBOARD_HOST_DEFAULTS", HOST_DEFAULTS),
                "python": _env_list("DASHBOARD_PYTHON_DEFAULTS", PYTHON_DEFAULTS),
                "r": _env_list("DASHBOARD_R_DEFAULTS", R_DEFAULTS),
            },
        )
