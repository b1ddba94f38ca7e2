"""Solver configuration."""
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional
from enum import Enum

from ..exceptions import InvalidConfigurationError


class SearchMode(str, Enum):
    """How the solver turns search trees into a rotation."""
    ONESHOT = "oneshot"     # one search, read the rotation off the tree
    STEPWISE = "stepwise"   # search, commit one action, search again


@dataclass
class SolverConfig:
    """
    Search parameters for one solve.

    `iterations` is the per-search MCTS budget (per committed step in
    stepwise mode). `time_limit_seconds` additionally bounds the whole
    solve, across every stepwise search. With `seed` left as None a fresh
    seed is drawn per solve.
    """
    iterations: int = 20_000
    time_limit_seconds: Optional[float] = None
    exploration_constant: float = 1.5
    # 0.0 = pure mean reward in selection, 1.0 = only the best reward seen
    max_score_weight: float = 0.0
    workers: int = 1
    seed: Optional[int] = None
    mode: SearchMode = SearchMode.ONESHOT

    def validate(self) -> None:
        """Raise InvalidConfigurationError for unusable settings."""
        if self.iterations <= 0:
            raise InvalidConfigurationError(f"iterations must be positive, got {self.iterations}")
        if self.time_limit_seconds is not None and self.time_limit_seconds <= 0:
            raise InvalidConfigurationError(
                f"time_limit_seconds must be positive, got {self.time_limit_seconds}"
            )
        if self.exploration_constant < 0:
            raise InvalidConfigurationError(
                f"exploration_constant must not be negative, got {self.exploration_constant}"
            )
        if not 0.0 <= self.max_score_weight <= 1.0:
            raise InvalidConfigurationError(
                f"max_score_weight must be between 0 and 1, got {self.max_score_weight}"
            )
        if self.workers < 1:
            raise InvalidConfigurationError(f"workers must be at least 1, got {self.workers}")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["mode"] = self.mode.value
        return data
