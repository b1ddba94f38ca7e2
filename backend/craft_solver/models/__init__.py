"""Data models package.

This package contains the domain models, the default action data, solver
configuration and the API schemas.
"""
from .conditions import (
    Condition,
    ConditionTable,
    STANDARD_CONDITIONS_FLAG,
)
from .craft_state import (
    BuffType,
    CraftResult,
    CraftState,
    MAX_INNER_QUIET,
)
from .actions import (
    ActionSpec,
    ActionCatalog,
    Requirement,
    DEFAULT_ACTIONS,
    get_default_catalog,
)
from .recipe import (
    Player,
    Recipe,
    CraftOptions,
    CraftContext,
)
from .solver_config import (
    SearchMode,
    SolverConfig,
)

__all__ = [
    # Conditions
    "Condition",
    "ConditionTable",
    "STANDARD_CONDITIONS_FLAG",
    # State
    "BuffType",
    "CraftResult",
    "CraftState",
    "MAX_INNER_QUIET",
    # Actions
    "ActionSpec",
    "ActionCatalog",
    "Requirement",
    "DEFAULT_ACTIONS",
    "get_default_catalog",
    # Recipe
    "Player",
    "Recipe",
    "CraftOptions",
    "CraftContext",
    # Solver config
    "SearchMode",
    "SolverConfig",
]
