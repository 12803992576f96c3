from __future__ import annotations
import os
from dataclasses import dataclass, field
from pathlib import Path
from dotenv import load_dotenv

from .errors import InvalidInput

# Load .env early (no error if missing)
load_dotenv()

DEFAULT_AUDIT_DIR = Path(__file__).parents[2] / "audit"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise InvalidInput(f"{name} must be an integer, got {raw!r}") from exc


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class DispatchConfig:
    # How far (minutes) the departure-from-A probe may advance before giving up
    max_probe_horizon: int = field(default_factory=lambda: _env_int("DISPATCH_MAX_PROBE_HORIZON", 24 * 60))
    # Hold window (minutes) searched at B when the passing loop exists
    loop_window: int = field(default_factory=lambda: _env_int("DISPATCH_LOOP_WINDOW", 30))
    audit_enabled: bool = field(default_factory=lambda: _env_bool("DISPATCH_AUDIT_ENABLED", True))
    audit_dir: Path = field(default_factory=lambda: Path(os.getenv("DISPATCH_AUDIT_DIR") or DEFAULT_AUDIT_DIR))
    log_level: str = field(default_factory=lambda: os.getenv("DISPATCH_LOG_LEVEL", "INFO").upper())

    def __post_init__(self):
        if self.max_probe_horizon <= 0:
            raise InvalidInput("max_probe_horizon must be positive")
        if self.loop_window < 0:
            raise InvalidInput("loop_window must not be negative")
