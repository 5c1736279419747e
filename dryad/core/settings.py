from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_DATA_DIR = Path(__file__).resolve().parents[1] / "data"
DEFAULT_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


def _data_dir() -> Path:
    env_root = os.getenv("DRYAD_DATA_DIR")
    if env_root:
        return Path(env_root).expanduser().resolve()
    return DEFAULT_DATA_DIR


def _latency_seconds() -> float:
    raw = os.getenv("DRYAD_SIMULATED_LATENCY_MS", "0")
    try:
        return max(0.0, float(raw)) / 1000
    except ValueError:
        return 0.0


def _origins() -> list[str]:
    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
    return origins or list(DEFAULT_ORIGINS)


@dataclass
class Settings:
    data_dir: Path = DEFAULT_DATA_DIR
    simulated_latency: float = 0.0
    default_user_id: str | None = None
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_ORIGINS))
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            data_dir=_data_dir(),
            simulated_latency=_latency_seconds(),
            default_user_id=os.getenv("DRYAD_DEFAULT_USER_ID") or None,
            cors_origins=_origins(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
