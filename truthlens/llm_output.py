"""
Parsing and validation of language-model JSON output.

- ContentAnalysisOutput: pydantic contract for the content judgment, with
  clamping validators so out-of-range numbers never leak into scores
- repair_json / extract_json: recover a JSON object from chatty or slightly
  malformed responses
- CircuitBreaker: stop calling a backend that keeps failing, probe it again
  after a cooldown
"""

from __future__ import annotations

import json
import logging
import re
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

SENTIMENTS = ("positive", "neutral", "negative")


# =============================================================================
# OUTPUT MODEL
# =============================================================================


def _clamped_int(value: Any, low: int, high: int, default: int) -> int:
    if isinstance(value, bool) or value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number:  # NaN
        return default
    return int(max(low, min(high, round(number))))


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "1"):
            return True
        if lowered in ("false", "no", "0"):
            return False
        return default
    if isinstance(value, (int, float)):
        return bool(value)
    return default


class ContentAnalysisOutput(BaseModel):
    """
    Content judgment returned by the model.

    Missing or unusable fields fall back to neutral values: quality 50,
    bias 0, credibility 50, sentiment "unknown", not opinion, factual.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    quality_score: int = Field(50, alias="qualityScore")
    bias_score: int = Field(0, alias="biasScore")
    credibility_score: int = Field(50, alias="credibilityScore")
    sentiment: str = "unknown"
    is_opinion: bool = Field(False, alias="isOpinion")
    is_factual: bool = Field(True, alias="isFactual")

    @field_validator("quality_score", "credibility_score", mode="before")
    @classmethod
    def clamp_percent(cls, v: Any) -> int:
        return _clamped_int(v, 0, 100, 50)

    @field_validator("bias_score", mode="before")
    @classmethod
    def clamp_bias(cls, v: Any) -> int:
        return _clamped_int(v, -100, 100, 0)

    @field_validator("sentiment", mode="before")
    @classmethod
    def normalize_sentiment(cls, v: Any) -> str:
        if isinstance(v, str) and v.strip().lower() in SENTIMENTS:
            return v.strip().lower()
        return "unknown"

    @field_validator("is_opinion", mode="before")
    @classmethod
    def coerce_opinion(cls, v: Any) -> bool:
        return _as_bool(v, False)

    @field_validator("is_factual", mode="before")
    @classmethod
    def coerce_factual(cls, v: Any) -> bool:
        # factual unless the model explicitly says otherwise
        return _as_bool(v, True)


# =============================================================================
# JSON RECOVERY
# =============================================================================

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_UNQUOTED_KEY_RE = re.compile(r"([{,]\s*)([a-zA-Z_][a-zA-Z0-9_]*)(\s*:)")


def repair_json(text: str) -> Tuple[str, List[str]]:
    """
    Apply conservative fixes for common model mistakes.

    Returns the repaired text and the names of the repairs applied.
    """
    repairs: List[str] = []

    fenced = _FENCE_RE.search(text)
    if fenced:
        text = fenced.group(1)
        repairs.append("markdown_stripped")

    if _CONTROL_RE.search(text):
        text = _CONTROL_RE.sub("", text)
        repairs.append("control_chars_removed")

    if _TRAILING_COMMA_RE.search(text):
        text = _TRAILING_COMMA_RE.sub(r"\1", text)
        repairs.append("trailing_commas_fixed")

    if "'" in text and '"' not in text:
        text = text.replace("'", '"')
        repairs.append("single_quotes_converted")

    if _UNQUOTED_KEY_RE.search(text):
        text = _UNQUOTED_KEY_RE.sub(r'\1"\2"\3', text)
        repairs.append("unquoted_keys_fixed")

    missing = text.count("{") - text.count("}")
    if 0 < missing <= 2:
        text = text.rstrip() + "}" * missing
        repairs.append(f"added_{missing}_closing_braces")

    return text, repairs


class ExtractionStrategy(str, Enum):
    DIRECT = "direct"
    MARKDOWN_BLOCK = "markdown_block"
    BRACE_MATCH = "brace_match"


def _loads_dict(text: str) -> Optional[dict]:
    try:
        result = json.loads(text)
    except json.JSONDecodeError:
        return None
    return result if isinstance(result, dict) else None


def _loads_with_repair(text: str) -> Tuple[Optional[dict], List[str]]:
    result = _loads_dict(text)
    if result is not None:
        return result, []
    repaired, repairs = repair_json(text)
    return _loads_dict(repaired), repairs


def _outermost_object(text: str) -> Optional[str]:
    """Slice from the first '{' to its matching '}', ignoring braces in strings."""
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        char = text[i]
        if escaped:
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == '"':
            in_string = not in_string
        elif in_string:
            continue
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    # unbalanced: let repair_json close it
    return text[start:]


def extract_json(response: str) -> Tuple[Optional[dict], ExtractionStrategy, List[str]]:
    """
    Pull a JSON object out of a model response.

    Tries a direct parse, then a fenced markdown block, then the outermost
    brace-delimited object, repairing each candidate if needed.
    """
    if not response or not response.strip():
        return None, ExtractionStrategy.DIRECT, []

    text = response.strip()
    result = _loads_dict(text)
    if result is not None:
        return result, ExtractionStrategy.DIRECT, []

    fenced = _FENCE_RE.search(text)
    if fenced:
        result, repairs = _loads_with_repair(fenced.group(1).strip())
        if result is not None:
            return result, ExtractionStrategy.MARKDOWN_BLOCK, ["markdown_extracted"] + repairs

    candidate = _outermost_object(text)
    if candidate:
        result, repairs = _loads_with_repair(candidate)
        if result is not None:
            return result, ExtractionStrategy.BRACE_MATCH, ["brace_matched"] + repairs

    return None, ExtractionStrategy.BRACE_MATCH, []


def parse_and_validate(response: str, model_class: Type[T]) -> Optional[T]:
    """Extract and validate a model response; None when either step fails."""
    data, strategy, repairs = extract_json(response)
    if data is None:
        logger.warning(
            f"Could not extract JSON for {model_class.__name__} "
            f"(response length {len(response or '')})"
        )
        return None
    if repairs:
        logger.debug(f"JSON recovered via {strategy.value} with repairs: {repairs}")
    try:
        return model_class.model_validate(data)
    except ValidationError as e:
        logger.warning(f"{model_class.__name__} validation failed: {e.errors()[:3]}")
        return None


# =============================================================================
# CIRCUIT BREAKER
# =============================================================================


class CircuitState(str, Enum):
    CLOSED = "closed"  # calls pass through
    OPEN = "open"  # failing fast
    HALF_OPEN = "half_open"  # probing after cooldown


@dataclass
class CircuitBreakerConfig:
    failure_threshold: int = 5
    success_threshold: int = 2
    cooldown_seconds: float = 60.0


class CircuitBreaker:
    """
    Consecutive-failure breaker around an unreliable backend.

    Thread-safe: the scoring pipeline calls the judge from worker threads.
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._successes = 0
        self._opened_at: Optional[float] = None

    def _current_state(self) -> CircuitState:
        if self._state == CircuitState.OPEN and self._opened_at is not None:
            if self._clock() - self._opened_at >= self.config.cooldown_seconds:
                logger.info(f"Circuit breaker '{self.name}' half-open, probing backend")
                self._state = CircuitState.HALF_OPEN
                self._successes = 0
        return self._state

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._current_state()

    def allow_request(self) -> bool:
        with self._lock:
            return self._current_state() != CircuitState.OPEN

    def record_success(self) -> None:
        with self._lock:
            if self._current_state() == CircuitState.HALF_OPEN:
                self._successes += 1
                if self._successes >= self.config.success_threshold:
                    logger.info(f"Circuit breaker '{self.name}' closed after recovery")
                    self._state = CircuitState.CLOSED
                    self._failures = 0
            else:
                self._failures = 0

    def record_failure(self) -> None:
        with self._lock:
            self._failures += 1
            if self._current_state() == CircuitState.HALF_OPEN:
                logger.warning(f"Circuit breaker '{self.name}' reopened during probe")
                self._state = CircuitState.OPEN
                self._opened_at = self._clock()
            elif (
                self._state == CircuitState.CLOSED
                and self._failures >= self.config.failure_threshold
            ):
                logger.warning(
                    f"Circuit breaker '{self.name}' opened after "
                    f"{self._failures} consecutive failures"
                )
                self._state = CircuitState.OPEN
                self._opened_at = self._clock()

    def get_status(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "name": self.name,
                "state": self._current_state().value,
                "failure_count": self._failures,
                "success_count": self._successes,
            }


_circuit_breakers: Dict[str, CircuitBreaker] = {}
_breakers_lock = threading.Lock()


def get_circuit_breaker(name: str) -> CircuitBreaker:
    """Get or create a named breaker shared by every caller in the process."""
    with _breakers_lock:
        if name not in _circuit_breakers:
            _circuit_breakers[name] = CircuitBreaker(name)
        return _circuit_breakers[name]
