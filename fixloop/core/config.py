"""Centralized configuration loading for fixloop.

This module provides utilities for loading and accessing configuration from config.json
with support for environment variable fallbacks and default values, and the
``RepairConfig`` dataclass holding the engine's tunables.

Example config.json::

    {
      "openai": {"api_key": "sk-...", "model": "gpt-4o"},
      "repair": {"max_iterations": 5, "max_candidates": 10, "use_llm": true}
    }
"""

import json
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional


def load_config(config_path: str = "config.json") -> Dict[str, Any]:
    """Load configuration from JSON file.

    Returns empty dict if file doesn't exist or is invalid.

    Args:
        config_path: Path to config.json file (default: "config.json")

    Returns:
        Configuration dictionary, or empty dict if file not found/invalid
    """
    path = Path(config_path)

    if not path.exists():
        return {}

    try:
        with open(path, "r") as f:
            return json.load(f)
    except (json.JSONDecodeError, IOError):
        # Return empty dict on error, allowing code to use defaults
        return {}


def get_config_value(
    keys: List[str], default: Any = None, config: Optional[Dict[str, Any]] = None
) -> Any:
    """Get nested configuration value with fallback to environment variable.

    Supports dot-notation keys like ["openai", "api_key"] or ["repair", "max_iterations"].
    Also checks environment variables as fallback (e.g., OPENAI_API_KEY for openai.api_key).

    Args:
        keys: List of keys to traverse (e.g., ["openai", "api_key"])
        default: Default value if key not found
        config: Optional config dict (uses load_config() if not provided)

    Returns:
        Configuration value, or default if not found
    """
    if config is None:
        config = load_config()

    value = config
    for key in keys:
        if isinstance(value, dict):
            value = value.get(key)
            if value is None:
                break
        else:
            return default

    if value is not None:
        return value

    env_key = "_".join(k.upper() for k in keys)
    env_value = os.environ.get(env_key)
    if env_value is not None:
        return env_value

    return default


def _coerce(value: Any, target: type) -> Any:
    """Convert env-var strings to the field's type."""
    if target is bool and isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return target(value)


@dataclass(frozen=True)
class RepairConfig:
    """Tunables for a repair engine.

    Attributes:
        max_iterations: Validation attempts allowed per fault
        max_candidates: Candidates kept per fault after ranking
        use_templates: Ask the template generator for candidates
        use_llm: Ask the LLM for candidates (needs a client)
        validate_with_tests: Run the test executor before accepting a candidate.
            When False, the first candidate that applies is accepted untested.
        llm_confidence: Flat confidence prior given to LLM candidates
        learning_weight: Weight of the learned success rate in the ranking key
        min_attempts_for_learning: Attempts a strategy needs before its rate counts
        max_history: Sessions kept in the in-memory history
    """

    max_iterations: int = 5
    max_candidates: int = 10
    use_templates: bool = True
    use_llm: bool = True
    validate_with_tests: bool = True
    llm_confidence: float = 0.6
    learning_weight: float = 0.3
    min_attempts_for_learning: int = 3
    max_history: int = 50

    def __post_init__(self):
        for name in ("max_iterations", "max_candidates", "max_history"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}")
        if self.min_attempts_for_learning < 0:
            raise ValueError("min_attempts_for_learning must be >= 0")
        for name in ("llm_confidence", "learning_weight"):
            if not 0.0 <= getattr(self, name) <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {getattr(self, name)}")

    def updated(self, **changes: Any) -> "RepairConfig":
        """Return a copy with ``changes`` applied (validated again)."""
        unknown = set(changes) - {f.name for f in fields(self)}
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> "RepairConfig":
        """Build from the ``repair`` section of config.json (env vars as fallback).

        Args:
            config: Optional config dict (uses load_config() if not provided)

        Returns:
            RepairConfig with file/env values over the defaults
        """
        if config is None:
            config = load_config()

        values = {}
        for f in fields(cls):
            value = get_config_value(["repair", f.name], config=config)
            if value is not None:
                values[f.name] = _coerce(value, type(f.default))
        return cls(**values)
