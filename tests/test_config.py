"""Tests for engine configuration and working-hours rules."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from dayplan.config import DEFAULT_CONFIG, EngineConfig, load_config
from dayplan.domain.models import BreakTime, Priority, WorkingHours, default_working_hours


def test_defaults_without_environment():
    assert load_config({}) == DEFAULT_CONFIG
    assert DEFAULT_CONFIG.max_suggested_slots == 5
    assert DEFAULT_CONFIG.overlap_high_ratio == 0.5


def test_environment_overrides():
    config = load_config(
        {
            "DAYPLAN_OVERLAP_HIGH_RATIO": "0.25",
            "DAYPLAN_MAX_SUGGESTED_SLOTS": "3",
            "DAYPLAN_HIGH_SEVERITY_PRIORITIES": "critical, high",
            "DAYPLAN_LOG_LEVEL": "debug",
            "UNRELATED": "ignored",
        }
    )
    assert config.overlap_high_ratio == 0.25
    assert config.max_suggested_slots == 3
    assert config.high_severity_priorities == {Priority.CRITICAL, Priority.HIGH}
    assert config.log_level == "DEBUG"


def test_weights_must_sum_to_one():
    with pytest.raises(ValidationError):
        EngineConfig(fit_weight=0.6)
    with pytest.raises(ValidationError):
        load_config({"DAYPLAN_URGENCY_WEIGHT": "0.5"})

    config = EngineConfig(fit_weight=0.6, urgency_weight=0.2, proximity_weight=0.2)
    assert config.fit_weight == 0.6


# ---------------------------------------------------------------------------
# Working hours
# ---------------------------------------------------------------------------


def test_default_working_hours_leave_eight_hours():
    hours = default_working_hours()
    assert hours.total_available == 480
    assert hours.break_minutes == 60


def test_working_hours_length_is_bounded():
    with pytest.raises(ValidationError):
        WorkingHours(start_time="09:00", end_time="12:00")
    with pytest.raises(ValidationError):
        WorkingHours(start_time="05:00", end_time="22:00")


def test_breaks_must_lie_within_working_hours():
    with pytest.raises(ValidationError):
        WorkingHours(break_times=[BreakTime(start_time="08:00", end_time="09:30")])
