"""Tests for matching configuration."""

import pytest

from ledgerrec.config import MatchingConfig
from ledgerrec.domain.errors import ValidationError


def test_defaults():
    config = MatchingConfig()

    assert config.suggest_threshold == 0.55
    assert config.auto_match_similarity == 0.95
    assert config.auto_match_enabled is True
    assert config.date_window_days == 5
    assert config.transfer_window_days == 5
    assert config.max_suggestions == 5
    assert config.amount_weight + config.date_weight + config.description_weight + config.account_bonus == pytest.approx(1.0)


def test_from_env_without_variables_returns_defaults():
    assert MatchingConfig.from_env({}) == MatchingConfig()


def test_from_env_overrides():
    config = MatchingConfig.from_env(
        {
            "LEDGERREC_SUGGEST_THRESHOLD": "0.7",
            "LEDGERREC_AUTO_MATCH_SIMILARITY": "0.9",
            "LEDGERREC_DATE_WINDOW_DAYS": "3",
            "LEDGERREC_TRANSFER_WINDOW_DAYS": "2",
            "LEDGERREC_MAX_SUGGESTIONS": "10",
            "LEDGERREC_AUTO_MATCH": "off",
        }
    )

    assert config.suggest_threshold == 0.7
    assert config.auto_match_similarity == 0.9
    assert config.date_window_days == 3
    assert config.transfer_window_days == 2
    assert config.max_suggestions == 10
    assert config.auto_match_enabled is False


@pytest.mark.parametrize("value,expected", [("1", True), ("yes", True), ("TRUE", True), ("0", False), ("no", False)])
def test_from_env_auto_match_flag(value, expected):
    assert MatchingConfig.from_env({"LEDGERREC_AUTO_MATCH": value}).auto_match_enabled is expected


@pytest.mark.parametrize(
    "env",
    [
        {"LEDGERREC_SUGGEST_THRESHOLD": "high"},
        {"LEDGERREC_DATE_WINDOW_DAYS": "2.5"},
        {"LEDGERREC_AUTO_MATCH": "maybe"},
        {"LEDGERREC_SUGGEST_THRESHOLD": "1.5"},
        {"LEDGERREC_TRANSFER_WINDOW_DAYS": "-1"},
        {"LEDGERREC_MAX_SUGGESTIONS": "0"},
    ],
)
def test_from_env_rejects_bad_values(env):
    with pytest.raises(ValidationError):
        MatchingConfig.from_env(env)


def test_validate_rejects_negative_weight():
    with pytest.raises(ValidationError):
        MatchingConfig(date_weight=-0.1).validate()


def test_validate_returns_config():
    config = MatchingConfig(suggest_threshold=0.6)
    assert config.validate() is config
