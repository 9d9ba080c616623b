"""Pipeline settings read from the environment."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from ledgerline.domain.errors import ValidationError

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_int(env: Mapping[str, str], name: str, default: int, minimum: int, maximum: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got '{raw}'")
    if not minimum <= value <= maximum:
        raise ValidationError(f"{name} must be between {minimum} and {maximum}, got {value}")
    return value


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValidationError(f"{name} must be a boolean, got '{raw}'")


@dataclass(frozen=True)
class PipelineSettings:
    """Tunable thresholds of the import pipeline."""

    fuzzy_date_window_days: int = 3
    fuzzy_similarity_threshold: int = 60
    payee_auto_apply_confidence: int = 80
    payee_suggest_confidence: int = 60
    apply_rules_on_import: bool = True
    log_level: str = "WARNING"
    log_json: bool = False

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "PipelineSettings":
        """Build settings from LEDGERLINE_* environment variables.

        Raises:
            ValidationError: If a variable holds an invalid value
        """
        if env is None:
            env = os.environ
        return cls(
            fuzzy_date_window_days=_env_int(env, "LEDGERLINE_FUZZY_WINDOW_DAYS", 3, 0, 31),
            fuzzy_similarity_threshold=_env_int(env, "LEDGERLINE_FUZZY_THRESHOLD", 60, 0, 100),
            payee_auto_apply_confidence=_env_int(env, "LEDGERLINE_PAYEE_AUTO_CONFIDENCE", 80, 0, 100),
            payee_suggest_confidence=_env_int(env, "LEDGERLINE_PAYEE_SUGGEST_CONFIDENCE", 60, 0, 100),
            apply_rules_on_import=_env_bool(env, "LEDGERLINE_APPLY_RULES", True),
            log_level=env.get("LEDGERLINE_LOG_LEVEL", "WARNING").upper(),
            log_json=_env_bool(env, "LEDGERLINE_LOG_JSON", False),
        )
