"""
Application configuration from environment variables.

All settings have sensible defaults for local development.
A .env file in the project root is loaded automatically (if present).
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load .env file before reading any env vars
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# ── Environment ───────────────────────────────────────────────────────────

ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# ── Paths ─────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"

# SQLite database file
DB_PATH: str = os.getenv("DB_PATH", str(DATA_DIR / "court_bookings.db"))

# ── Availability ──────────────────────────────────────────────────────────

# Length of one bookable unit in the free-slot grid (minutes).
SLOT_STEP_MINUTES: int = int(os.getenv("SLOT_STEP_MINUTES", "60"))

# How day_of_week is numbered in the operating_windows table.
# "monday0" (Monday=0..Sunday=6), "sunday0" (Sunday=0..Saturday=6) or
# "iso" (Monday=1..Sunday=7). Check the stored rows before changing this.
STORED_WEEKDAY_CONVENTION: str = os.getenv("STORED_WEEKDAY_CONVENTION", "monday0")

# Opening hours assumed for a court with no window rows for a weekday,
# e.g. "09:00-23:00". Empty means such days are closed.
FALLBACK_OPENING_HOURS: str = os.getenv("FALLBACK_OPENING_HOURS", "")

# ── Booking rules ─────────────────────────────────────────────────────────

# Share of the total collected as deposit when paying cash on site.
CASH_DEPOSIT_RATE: float = float(os.getenv("CASH_DEPOSIT_RATE", "0.3"))

# Reject a new booking while the same user holds a pending one at the complex.
ONE_PENDING_PER_COMPLEX: bool = os.getenv("ONE_PENDING_PER_COMPLEX", "true").lower() == "true"

# How many times a failed storage *read* is retried. Writes are never retried.
STORAGE_READ_RETRIES: int = int(os.getenv("STORAGE_READ_RETRIES", "1"))


def fallback_hours() -> tuple[str, str] | None:
    """Parse FALLBACK_OPENING_HOURS into (start, end), or None when unset."""
    raw = FALLBACK_OPENING_HOURS.strip()
    if not raw:
        return None
    start, _, end = raw.partition("-")
    if not start or not end:
        raise ValueError(f"FALLBACK_OPENING_HOURS must look like 09:00-23:00, got {raw!r}")
    return start.strip(), end.strip()


# ── Server ────────────────────────────────────────────────────────────────

API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "8000"))
API_RELOAD: bool = os.getenv("API_RELOAD", "false").lower() == "true"


# ── Logging ───────────────────────────────────────────────────────────────


def configure_logging(level: str | None = None) -> None:
    """Log to stderr at LOG_LEVEL (or *level*)."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)s]: %(name)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logging.basicConfig(level=level or LOG_LEVEL, handlers=[handler], force=True)
