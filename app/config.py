"""Runtime configuration for the conflict engine."""

from __future__ import annotations

import logging
import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, Field

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_configured = False


class ConflictSettings(BaseModel):
    """Buffer defaults and facility rules shared by every checker."""

    default_buffer_minutes: int = Field(default=15, ge=0)
    facility_buffer_minutes: int = Field(default=0, ge=0)
    facility_names: list[str] = Field(default_factory=lambda: ["Trampoline"])
    log_level: str = "INFO"

    def buffer_for(self, is_facility: bool) -> int:
        return self.facility_buffer_minutes if is_facility else self.default_buffer_minutes

    def is_facility(self, boat_name: str | None) -> bool:
        if not boat_name:
            return False
        return boat_name in self.facility_names


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


@lru_cache(maxsize=1)
def get_settings() -> ConflictSettings:
    """Load settings from the environment (and ``.env`` if present)."""
    load_dotenv()
    defaults = ConflictSettings()

    names = os.environ.get("BOOKING_FACILITY_NAMES")
    facility_names = (
        [n.strip() for n in names.split(",") if n.strip()]
        if names
        else defaults.facility_names
    )

    return ConflictSettings(
        default_buffer_minutes=_env_int(
            "BOOKING_DEFAULT_BUFFER_MINUTES", defaults.default_buffer_minutes
        ),
        facility_buffer_minutes=_env_int(
            "BOOKING_FACILITY_BUFFER_MINUTES", defaults.facility_buffer_minutes
        ),
        facility_names=facility_names,
        log_level=os.environ.get("BOOKING_LOG_LEVEL", defaults.log_level),
    )


def configure_logging(level: str | None = None) -> None:
    """Install a console handler on the root logger once."""
    global _configured
    root = logging.getLogger()
    root.setLevel(getattr(logging, (level or get_settings().log_level).upper(), logging.INFO))
    if _configured:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)
    _configured = True
