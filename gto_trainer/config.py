"""Tunable policy constants for the decision engine.

The blunder threshold, scoring scale, size tolerance and stack-bucket
tie-break are presentation-tuned defaults with no solver-derived
justification. They live here so they can be overridden per deployment
without touching engine code.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path

logger = logging.getLogger("gto_trainer.config")

_DEFAULT_CONFIG_PATH = Path.home() / ".gto_trainer" / "engine_config.json"


@dataclass(frozen=True)
class EngineConfig:
    """Policy constants shared by the matcher, evaluator and scorer.

    Attributes:
        blunder_threshold: EV gap (bb) to the best action above which a
            decision is a blunder.
        size_tolerance: Max pot-fraction distance for a bet/raise size to
            count as the same sizing as a solution action.
        max_overbet: Largest accepted bet/raise size as a pot fraction.
        stack_buckets: Stack depths (bb) the dataset is solved at.
        bucket_tolerance: Max distance (bb) from the nearest bucket.
        frequency_tolerance: Allowed drift of a solution's frequency sum from 1.0.
        not_offered_ev: EV assigned to an action the solution never takes.
        blunder_penalty: Per-decision loss for a blunder.
        frequency_weight: Loss weight applied to (1 - chosen frequency).
        score_scale: Multiplier from mean loss to score points.
        marginal_frequency: Chosen frequency at or below which a non-blunder
            is graded marginal rather than good.
        coarse_fallback: Retry unmatched keys against the coarse index.
    """

    blunder_threshold: float = 2.0
    size_tolerance: float = 0.10
    max_overbet: float = 3.0
    stack_buckets: tuple[float, ...] = (30.0, 50.0, 100.0)
    bucket_tolerance: float = 30.0
    frequency_tolerance: float = 1e-6
    not_offered_ev: float = 0.0
    blunder_penalty: float = 3.0
    frequency_weight: float = 1.5
    score_scale: float = 20.0
    marginal_frequency: float = 0.1
    coarse_fallback: bool = False

    def __post_init__(self) -> None:
        if not self.stack_buckets:
            raise ValueError("stack_buckets must not be empty")
        # Sorted ascending so nearest-bucket ties resolve to the shallower depth
        object.__setattr__(
            self, "stack_buckets", tuple(sorted(float(b) for b in self.stack_buckets)),
        )
        if self.blunder_threshold < 0:
            raise ValueError("blunder_threshold must be non-negative")
        if self.size_tolerance < 0:
            raise ValueError("size_tolerance must be non-negative")
        if self.max_overbet <= 0:
            raise ValueError("max_overbet must be positive")
        if not 0.0 <= self.marginal_frequency <= 1.0:
            raise ValueError("marginal_frequency must lie in [0, 1]")


DEFAULT_CONFIG = EngineConfig()


def load_engine_config(config_path: Path | str | None = None) -> EngineConfig:
    """Load engine policy from a JSON file.

    Default path: ~/.gto_trainer/engine_config.json

    A missing file yields the defaults. Unreadable files and unknown or
    invalid keys are logged and ignored, falling back to defaults.

    Expected JSON format:
        {
            "blunder_threshold": 2.0,
            "size_tolerance": 0.1,
            "stack_buckets": [30, 50, 100]
        }
    """
    path = Path(config_path) if config_path else _DEFAULT_CONFIG_PATH
    if not path.exists():
        return DEFAULT_CONFIG

    try:
        with open(path) as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Failed to read engine config at %s: %s", path, e)
        return DEFAULT_CONFIG

    if not isinstance(data, dict):
        logger.warning("Engine config at %s is not a JSON object", path)
        return DEFAULT_CONFIG

    known = {f.name for f in fields(EngineConfig)}
    for key in sorted(set(data) - known):
        logger.warning("Ignoring unknown engine config key: %s", key)
    overrides = {k: v for k, v in data.items() if k in known}

    try:
        if "stack_buckets" in overrides:
            overrides["stack_buckets"] = tuple(overrides["stack_buckets"])
        config = EngineConfig(**overrides)
    except (TypeError, ValueError) as e:
        logger.warning("Invalid engine config at %s: %s", path, e)
        return DEFAULT_CONFIG

    logger.info("Engine config loaded from %s", path)
    return config
