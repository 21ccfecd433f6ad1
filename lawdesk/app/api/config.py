from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r, using %s", name, raw, default)
        return default
    return value


def case_number_max_attempts() -> int:
    return max(1, int(_float_env("CASE_NUMBER_MAX_ATTEMPTS", 5)))


def case_number_budget_seconds() -> float:
    return _float_env("CASE_NUMBER_BUDGET_SECONDS", 5.0)


def timeline_fetch_timeout_seconds() -> float:
    return _float_env("TIMELINE_FETCH_TIMEOUT_SECONDS", 5.0)
