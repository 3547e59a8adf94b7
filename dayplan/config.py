"""Tunable thresholds for conflict severity and suggestion ranking."""

from __future__ import annotations

import logging
import os

from pydantic import BaseModel, Field, model_validator

from dayplan.domain.models import Priority

logger = logging.getLogger(__name__)

ENV_PREFIX = "DAYPLAN_"


class EngineConfig(BaseModel):
    # Severity: share of the shorter item that must be overlapped to count as high
    overlap_high_ratio: float = Field(default=0.5, gt=0, le=1)
    high_severity_priorities: frozenset[Priority] = frozenset(
        {Priority.CRITICAL, Priority.URGENT}
    )
    medium_severity_priorities: frozenset[Priority] = frozenset({Priority.HIGH})

    max_suggested_slots: int = Field(default=5, gt=0)
    fit_weight: float = Field(default=0.5, ge=0)
    urgency_weight: float = Field(default=0.3, ge=0)
    proximity_weight: float = Field(default=0.2, ge=0)

    log_level: str = "INFO"

    @model_validator(mode="after")
    def _weights_sum_to_one(self) -> EngineConfig:
        total = self.fit_weight + self.urgency_weight + self.proximity_weight
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"suggestion weights must sum to 1, got {total:.3f}")
        return self


DEFAULT_CONFIG = EngineConfig()


def _split(value: str) -> frozenset[Priority]:
    return frozenset(Priority(part.strip().lower()) for part in value.split(",") if part.strip())


def load_config(environ: dict[str, str] | None = None) -> EngineConfig:
    """Build the config from ``DAYPLAN_*`` environment variables.

    Unset variables keep their defaults.
    """
    env = os.environ if environ is None else environ
    values: dict[str, object] = {}

    for name in ("overlap_high_ratio", "fit_weight", "urgency_weight", "proximity_weight"):
        raw = env.get(ENV_PREFIX + name.upper())
        if raw:
            values[name] = float(raw)

    raw = env.get(ENV_PREFIX + "MAX_SUGGESTED_SLOTS")
    if raw:
        values["max_suggested_slots"] = int(raw)

    for name in ("high_severity_priorities", "medium_severity_priorities"):
        raw = env.get(ENV_PREFIX + name.upper())
        if raw:
            values[name] = _split(raw)

    raw = env.get(ENV_PREFIX + "LOG_LEVEL")
    if raw:
        values["log_level"] = raw.upper()

    config = EngineConfig(**values)
    if values:
        logger.info("Loaded engine overrides: %s", ", ".join(sorted(values)))
    return config
