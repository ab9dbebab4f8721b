"""
Centralized booking configuration with environment variable overrides.

Business defaults, check-in/out policy and fee amounts all live here.
The engine never reads the module-level ``settings`` singleton itself;
callers pass a ``BookingSettings`` instance into every entry point.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from booking_engine.logging_context import configure_logging
from booking_engine.utils import parse_clock

load_dotenv()

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _safe_bool(env_var: str, default: str) -> bool:
    """Parse a boolean flag such as ``true``/``0``/``off`` from an env var."""
    raw = os.getenv(env_var, default).strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    raise ValueError(f"Invalid boolean for {env_var}: {raw!r}")


def _optional_clock(env_var: str, default: str) -> Optional[str]:
    """Read an HH:MM value; an empty string means unset."""
    raw = os.getenv(env_var, default).strip()
    return raw or None


@dataclass(frozen=True)
class WorkingHours:
    """Opening window used to generate default hourly slots."""

    start: str = os.getenv("WORKING_HOURS_START", "09:00")
    end: str = os.getenv("WORKING_HOURS_END", "17:00")


@dataclass(frozen=True)
class BookingSettings:
    """Process-wide booking settings. Read-only to the engine."""

    business_name: str = os.getenv("BUSINESS_NAME", "My Booking Business")
    default_price: float = _safe_float("DEFAULT_PRICE", "100")
    default_quantity: int = _safe_int("DEFAULT_QUANTITY", "10")
    use_hourly_booking: bool = _safe_bool("USE_HOURLY_BOOKING", "false")
    allow_range_booking: bool = _safe_bool("ALLOW_RANGE_BOOKING", "true")
    minimum_nights: int = _safe_int("MINIMUM_NIGHTS", "1")
    working_hours: WorkingHours = field(default_factory=WorkingHours)
    slot_duration: int = _safe_int("SLOT_DURATION", "60")
    advance_booking_days: int = _safe_int("ADVANCE_BOOKING_DAYS", "90")
    check_in_time: Optional[str] = _optional_clock("CHECK_IN_TIME", "14:00")
    check_out_time: Optional[str] = _optional_clock("CHECK_OUT_TIME", "10:00")
    enforce_check_in_out_times: bool = _safe_bool("ENFORCE_CHECK_IN_OUT_TIMES", "false")
    early_check_in_fee: float = _safe_float("EARLY_CHECK_IN_FEE", "0")
    late_check_out_fee: float = _safe_float("LATE_CHECK_OUT_FEE", "0")
    early_check_in_fee_enabled: bool = _safe_bool("EARLY_CHECK_IN_FEE_ENABLED", "false")
    late_check_out_fee_enabled: bool = _safe_bool("LATE_CHECK_OUT_FEE_ENABLED", "false")
    timezone: str = os.getenv("TIMEZONE", "UTC")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


def _is_clock(value: str) -> bool:
    try:
        parse_clock(value)
        return True
    except ValueError:
        return False


def _validate_settings(config: BookingSettings) -> None:
    """Validate configuration values are within acceptable ranges."""
    for name, value in [
        ("DEFAULT_PRICE", config.default_price),
        ("EARLY_CHECK_IN_FEE", config.early_check_in_fee),
        ("LATE_CHECK_OUT_FEE", config.late_check_out_fee),
    ]:
        if value < 0:
            raise ValueError(f"{name} must be >= 0, got {value}")

    if config.default_quantity < 0:
        raise ValueError(f"DEFAULT_QUANTITY must be >= 0, got {config.default_quantity}")
    if config.minimum_nights < 1:
        raise ValueError(f"MINIMUM_NIGHTS must be >= 1, got {config.minimum_nights}")
    if config.slot_duration < 1:
        raise ValueError(f"SLOT_DURATION must be >= 1, got {config.slot_duration}")
    if config.advance_booking_days < 0:
        raise ValueError(
            f"ADVANCE_BOOKING_DAYS must be >= 0, got {config.advance_booking_days}"
        )

    for name, value in [
        ("WORKING_HOURS_START", config.working_hours.start),
        ("WORKING_HOURS_END", config.working_hours.end),
        ("CHECK_IN_TIME", config.check_in_time),
        ("CHECK_OUT_TIME", config.check_out_time),
    ]:
        if value is not None and not _is_clock(value):
            raise ValueError(f"{name} must be HH:MM, got {value!r}")

    if parse_clock(config.working_hours.start) >= parse_clock(config.working_hours.end):
        raise ValueError(
            "WORKING_HOURS_START must be earlier than WORKING_HOURS_END, "
            f"got {config.working_hours.start}-{config.working_hours.end}"
        )


def load_settings() -> BookingSettings:
    """Load and validate booking settings."""
    config = BookingSettings()
    _validate_settings(config)
    configure_logging(config.log_level)
    logger.info("Booking settings loaded for '%s'", config.business_name)
    return config


# Singleton instance for the presentation layer
settings = load_settings()
