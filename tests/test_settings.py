#!/usr/bin/env python3
"""
Tests for settings loading from the environment and the JSON config file.
"""
import json

import pytest

from truthlens import settings as settings_module
from truthlens.settings import (
    ScoringThresholds,
    ScoringWeights,
    get_settings,
    load_settings,
    reload_settings,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in (
        "DATABASE_URL",
        "OLLAMA_BASE_URL",
        "TRUTHLENS_LLM_ENABLED",
        "TRUTHLENS_LLM_MODEL",
        "TRUTHLENS_LLM_TIMEOUT",
        "TRUTHLENS_SCORING_WORKERS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TRUTHLENS_CONFIG_PATH", str(tmp_path / "missing.json"))
    monkeypatch.setattr(settings_module, "_settings", None)


class TestDefaults:
    def test_defaults(self):
        settings = load_settings()
        assert settings.llm_enabled is True
        assert settings.llm_model == "llama3.2:3b"
        assert settings.weights == ScoringWeights()
        assert settings.thresholds == ScoringThresholds(approve=70, reject=40, passing=60)

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValueError):
            ScoringWeights(keyword=0.5)

    def test_thresholds_validated(self):
        with pytest.raises(ValueError):
            ScoringThresholds(approve=30, reject=40)
        with pytest.raises(ValueError):
            ScoringThresholds(passing=120)


class TestEnvironment:
    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("TRUTHLENS_LLM_ENABLED", "false")
        monkeypatch.setenv("TRUTHLENS_LLM_MODEL", "mistral")
        monkeypatch.setenv("TRUTHLENS_LLM_TIMEOUT", "5")
        monkeypatch.setenv("TRUTHLENS_SCORING_WORKERS", "0")

        settings = load_settings()

        assert settings.llm_enabled is False
        assert settings.llm_model == "mistral"
        assert settings.llm_timeout == 5.0
        assert settings.scoring_workers == 1


class TestConfigFile:
    """Tests for the JSON weight and threshold overrides."""

    def test_overrides_from_file(self, monkeypatch, tmp_path):
        path = tmp_path / "scoring_config.json"
        path.write_text(
            json.dumps(
                {
                    "weights": {"keyword": 0.3, "engagement": 0.05},
                    "thresholds": {"approve": 80},
                }
            )
        )
        monkeypatch.setenv("TRUTHLENS_CONFIG_PATH", str(path))

        settings = load_settings()

        assert settings.weights.keyword == 0.3
        assert settings.weights.engagement == 0.05
        assert settings.thresholds.approve == 80
        assert settings.thresholds.reject == 40

    def test_invalid_json_falls_back(self, monkeypatch, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        monkeypatch.setenv("TRUTHLENS_CONFIG_PATH", str(path))
        assert load_settings().weights == ScoringWeights()

    def test_non_object_falls_back(self, monkeypatch, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        monkeypatch.setenv("TRUTHLENS_CONFIG_PATH", str(path))
        assert load_settings().thresholds == ScoringThresholds()

    def test_bad_weights_raise(self, monkeypatch, tmp_path):
        path = tmp_path / "weights.json"
        path.write_text(json.dumps({"weights": {"keyword": 0.9}}))
        monkeypatch.setenv("TRUTHLENS_CONFIG_PATH", str(path))
        with pytest.raises(ValueError):
            load_settings()


class TestCache:
    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_reload_picks_up_changes(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("TRUTHLENS_LLM_MODEL", "phi3")
        assert get_settings() is first
        assert reload_settings().llm_model == "phi3"
