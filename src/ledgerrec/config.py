"""Matching configuration.

Thresholds and windows are configuration rather than constants so a
deployment can tune them against its own scoring data.
"""

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from ledgerrec.domain.errors import ValidationError

ENV_PREFIX = "LEDGERREC_"


@dataclass(frozen=True)
class MatchingConfig:
    """Tunable parameters for scoring, matching and transfer detection."""

    suggest_threshold: float = 0.55
    auto_match_similarity: float = 0.95
    auto_match_enabled: bool = True
    date_window_days: int = 5
    transfer_window_days: int = 5
    max_suggestions: int = 5
    amount_weight: float = 0.50
    date_weight: float = 0.25
    description_weight: float = 0.20
    account_bonus: float = 0.05

    def validate(self) -> "MatchingConfig":
        """Check value ranges.

        Returns:
            The same config, to allow chaining

        Raises:
            ValidationError: If a threshold or window is out of range
        """
        for name in ("suggest_threshold", "auto_match_similarity"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValidationError(f"{name} must be between 0 and 1, got {value}")
        for name in ("date_window_days", "transfer_window_days"):
            value = getattr(self, name)
            if value < 0:
                raise ValidationError(f"{name} must not be negative, got {value}")
        if self.max_suggestions < 1:
            raise ValidationError(f"max_suggestions must be at least 1, got {self.max_suggestions}")
        weights = (self.amount_weight, self.date_weight, self.description_weight, self.account_bonus)
        if any(w < 0 for w in weights):
            raise ValidationError("Scoring weights must not be negative")
        return self

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MatchingConfig":
        """Build a config from LEDGERREC_* environment variables.

        Args:
            environ: Mapping to read from. Defaults to os.environ.

        Raises:
            ValidationError: If a variable is set but cannot be parsed
        """
        env = os.environ if environ is None else environ
        config = cls()
        overrides = {}

        float_vars = {
            "SUGGEST_THRESHOLD": "suggest_threshold",
            "AUTO_MATCH_SIMILARITY": "auto_match_similarity",
        }
        int_vars = {
            "DATE_WINDOW_DAYS": "date_window_days",
            "TRANSFER_WINDOW_DAYS": "transfer_window_days",
            "MAX_SUGGESTIONS": "max_suggestions",
        }

        for suffix, attr in float_vars.items():
            raw = env.get(ENV_PREFIX + suffix)
            if raw is not None:
                try:
                    overrides[attr] = float(raw)
                except ValueError:
                    raise ValidationError(f"{ENV_PREFIX}{suffix} must be a number, got '{raw}'")

        for suffix, attr in int_vars.items():
            raw = env.get(ENV_PREFIX + suffix)
            if raw is not None:
                try:
                    overrides[attr] = int(raw)
                except ValueError:
                    raise ValidationError(f"{ENV_PREFIX}{suffix} must be an integer, got '{raw}'")

        raw = env.get(ENV_PREFIX + "AUTO_MATCH")
        if raw is not None:
            value = raw.strip().lower()
            if value in ("1", "true", "yes", "on"):
                overrides["auto_match_enabled"] = True
            elif value in ("0", "false", "no", "off"):
                overrides["auto_match_enabled"] = False
            else:
                raise ValidationError(f"{ENV_PREFIX}AUTO_MATCH must be true or false, got '{raw}'")

        return replace(config, **overrides).validate()
