"""
Runtime configuration for TruthLens.

Values come from environment variables, with scoring weights and thresholds
optionally overridden by a JSON file (``data/scoring_config.json`` by default):

    {
      "weights": {"keyword": 0.2, "credibility": 0.3, "ai_quality": 0.25,
                  "ai_credibility": 0.1, "engagement": 0.15},
      "thresholds": {"approve": 70, "reject": 40, "passing": 60}
    }
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DATA_DIR = Path("data")
DEFAULT_CONFIG_PATH = DATA_DIR / "scoring_config.json"

DEFAULT_OLLAMA_URL = "http://localhost:11434"
DEFAULT_LLM_MODEL = "llama3.2:3b"


@dataclass(frozen=True)
class ScoringWeights:
    """Per-layer weights of the overall article score. Must sum to 1.0."""

    keyword: float = 0.20
    credibility: float = 0.30
    ai_quality: float = 0.25
    ai_credibility: float = 0.10
    engagement: float = 0.15

    def __post_init__(self):
        values = [getattr(self, f.name) for f in fields(self)]
        if any(v < 0 for v in values):
            raise ValueError(f"Scoring weights must be non-negative: {values}")
        total = sum(values)
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total:.4f}")


@dataclass(frozen=True)
class ScoringThresholds:
    approve: int = 70
    reject: int = 40
    passing: int = 60

    def __post_init__(self):
        for name in ("approve", "reject", "passing"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValueError(f"Threshold {name} must be within 0-100, got {value}")
        if self.reject > self.approve:
            raise ValueError(
                f"Reject threshold ({self.reject}) is above approve threshold ({self.approve})"
            )


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str] = None
    ollama_base_url: str = DEFAULT_OLLAMA_URL
    llm_enabled: bool = True
    llm_model: str = DEFAULT_LLM_MODEL
    llm_timeout: float = 15.0
    content_max_chars: int = 1500
    scoring_workers: int = 4
    config_path: Path = DEFAULT_CONFIG_PATH
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    thresholds: ScoringThresholds = field(default_factory=ScoringThresholds)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _load_config_file(path: Path) -> Dict[str, Any]:
    """Read the optional JSON overrides; a broken file falls back to defaults."""
    if not path.exists():
        return {}
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid scoring config JSON in {path}: {e}, using defaults")
        return {}
    if not isinstance(data, dict):
        logger.error(f"Scoring config in {path} must be a JSON object, using defaults")
        return {}
    logger.debug(f"Loaded scoring config from {path}")
    return data


def load_settings() -> Settings:
    """Build a Settings instance from the environment and the config file."""
    config_path = Path(os.getenv("TRUTHLENS_CONFIG_PATH", str(DEFAULT_CONFIG_PATH)))
    overrides = _load_config_file(config_path)

    weights = ScoringWeights(**overrides.get("weights", {}))
    thresholds = ScoringThresholds(**overrides.get("thresholds", {}))

    return Settings(
        database_url=os.getenv("DATABASE_URL"),
        ollama_base_url=os.getenv("OLLAMA_BASE_URL", DEFAULT_OLLAMA_URL),
        llm_enabled=_env_bool("TRUTHLENS_LLM_ENABLED", True),
        llm_model=os.getenv("TRUTHLENS_LLM_MODEL", DEFAULT_LLM_MODEL),
        llm_timeout=float(os.getenv("TRUTHLENS_LLM_TIMEOUT", "15")),
        content_max_chars=int(os.getenv("TRUTHLENS_CONTENT_MAX_CHARS", "1500")),
        scoring_workers=max(1, int(os.getenv("TRUTHLENS_SCORING_WORKERS", "4"))),
        config_path=config_path,
        weights=weights,
        thresholds=thresholds,
    )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the cached settings."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reload_settings() -> Settings:
    """Drop the cached settings and read them again."""
    global _settings
    _settings = None
    logger.info("Settings reloaded")
    return get_settings()
