"""Utility helper functions."""
from typing import Optional, Union

from ..config import Settings
from ..models.schemas import SolverConfigSchema
from ..models.solver_config import SearchMode, SolverConfig

Number = Union[int, float]


def is_between(
    value: Number, minimum: Number, maximum: Number, label: str = "value"
) -> tuple[bool, Optional[str]]:
    """
    Check that a value lies in an inclusive range.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if value < minimum or value > maximum:
        return False, f"{label} must be between {minimum} and {maximum}, got {value}"
    return True, None


def validate_solver_request(
    config: SolverConfigSchema, settings: Settings
) -> tuple[bool, Optional[str]]:
    """
    Validate request-level solver parameters against the server limits.

    Args:
        config: Solver parameters from the request.
        settings: Server settings holding the limits.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if config.iterations is not None:
        valid, error = is_between(
            config.iterations, 1, settings.solver_max_iterations, "iterations"
        )
        if not valid:
            return False, error

    if config.workers is not None:
        valid, error = is_between(config.workers, 1, settings.solver_max_workers, "workers")
        if not valid:
            return False, error

    if config.mode is not None:
        valid_modes = [m.value for m in SearchMode]
        if config.mode.lower() not in valid_modes:
            return False, f"Invalid mode: {config.mode}. Valid modes: {valid_modes}"

    return True, None


def build_solver_config(config: SolverConfigSchema, settings: Settings) -> SolverConfig:
    """Merge request parameters over the server defaults."""
    mode = config.mode or settings.solver_mode
    return SolverConfig(
        iterations=config.iterations or settings.solver_iterations,
        time_limit_seconds=config.time_limit_seconds,
        exploration_constant=(
            config.exploration_constant
            if config.exploration_constant is not None
            else settings.solver_exploration_constant
        ),
        max_score_weight=config.max_score_weight,
        workers=config.workers or settings.solver_workers,
        seed=config.seed,
        mode=SearchMode(mode.lower()),
    )
