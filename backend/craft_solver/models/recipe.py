"""Player, recipe and craft context models."""
import math
from dataclasses import dataclass, field
from typing import Dict, Any, Optional

from .conditions import ConditionTable, STANDARD_CONDITIONS_FLAG
from .craft_state import CraftState
from ..exceptions import InvalidConfigurationError


# Reward split for a finished craft; the two bonuses add up to 1.0
QUALITY_BONUS = 0.995
FEWER_STEPS_BONUS = 0.005

DEFAULT_MAX_STEPS = 25


@dataclass
class Player:
    """Crafter stats."""
    job_level: int
    craftsmanship: int
    control: int
    cp: int

    def __str__(self):
        return (
            f"lv{self.job_level:>2} / {self.craftsmanship} craftsmanship / "
            f"{self.control} control / {self.cp} cp"
        )


@dataclass
class Recipe:
    """Recipe data as supplied by the recipe tables."""
    recipe_level: int
    job_level: int
    progress: int
    quality: int
    durability: int
    progress_div: int
    progress_mod: int
    quality_div: int
    quality_mod: int
    stars: int = 0
    is_expert: bool = False
    conditions_flag: int = STANDARD_CONDITIONS_FLAG

    def __str__(self):
        stars = "★" * self.stars
        return (
            f"({self.recipe_level:>3}) lv{self.job_level:>2} {stars} / {self.progress:>5} progress / "
            f"{self.quality:>5} quality / {self.durability:>2} durability"
        )


@dataclass
class CraftOptions:
    """Per-craft options chosen by the caller."""
    max_steps: int = DEFAULT_MAX_STEPS
    starting_quality: Optional[int] = None
    quality_target: Optional[int] = None
    # False keeps Manipulation out of the action pool (not yet learned)
    use_manipulation: bool = True


@dataclass
class CraftContext:
    """
    Everything fixed for the duration of one craft.

    The progress/quality factors are the gains of a 100% efficiency action
    before conditions and buffs.
    """
    progress_factor: float
    quality_factor: float
    progress_target: int
    quality_max: int
    durability_max: int
    cp_max: int
    step_max: int = DEFAULT_MAX_STEPS
    quality_target: Optional[int] = None
    starting_quality: int = 0
    condition_table: ConditionTable = field(default_factory=ConditionTable.normal_only)

    def __post_init__(self):
        if self.step_max < 1:
            raise InvalidConfigurationError(f"step_max must be positive, got {self.step_max}")
        if self.progress_target < 1:
            raise InvalidConfigurationError(
                f"progress_target must be positive, got {self.progress_target}"
            )
        if self.quality_target is None:
            self.quality_target = self.quality_max
        self.quality_target = min(self.quality_target, self.quality_max)

    @staticmethod
    def base_factors(player: Player, recipe: Recipe) -> tuple[int, int]:
        """Progress and quality gained by a 100% efficiency action."""
        progress_factor = player.craftsmanship * 10 / recipe.progress_div + 2
        quality_factor = player.control * 10 / recipe.quality_div + 35

        if player.job_level <= recipe.job_level:
            progress_factor = progress_factor * recipe.progress_mod / 100
            quality_factor = quality_factor * recipe.quality_mod / 100

        return math.floor(progress_factor), math.floor(quality_factor)

    @classmethod
    def from_player(
        cls,
        player: Player,
        recipe: Recipe,
        options: Optional[CraftOptions] = None,
    ) -> "CraftContext":
        """Build the context for a player crafting a recipe."""
        options = options or CraftOptions()
        progress_factor, quality_factor = cls.base_factors(player, recipe)
        return cls(
            progress_factor=progress_factor,
            quality_factor=quality_factor,
            progress_target=recipe.progress,
            quality_max=recipe.quality,
            quality_target=options.quality_target,
            durability_max=recipe.durability,
            cp_max=player.cp,
            step_max=options.max_steps,
            starting_quality=min(options.starting_quality or 0, recipe.quality),
            condition_table=ConditionTable.from_flag(recipe.conditions_flag, recipe.is_expert),
        )

    def initial_state(self) -> CraftState:
        """State before the first action."""
        return CraftState(
            progress=0,
            quality=self.starting_quality,
            durability=self.durability_max,
            cp=self.cp_max,
        )

    def score(self, state: CraftState) -> float:
        """
        Evaluation of a craft from 0 to 1.

        Unfinished crafts score 0. Finished crafts score mostly on quality,
        with a small bonus for using fewer steps.
        """
        if state.progress < self.progress_target:
            return 0.0

        quality_score = QUALITY_BONUS
        if self.quality_target > 0:
            quality_score = min(QUALITY_BONUS, QUALITY_BONUS * state.quality / self.quality_target)
        fewer_steps_score = FEWER_STEPS_BONUS * (1.0 - min(state.step, self.step_max) / self.step_max)
        return quality_score + fewer_steps_score

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "progress_factor": self.progress_factor,
            "quality_factor": self.quality_factor,
            "progress_target": self.progress_target,
            "quality_max": self.quality_max,
            "quality_target": self.quality_target,
            "durability_max": self.durability_max,
            "cp_max": self.cp_max,
            "step_max": self.step_max,
            "starting_quality": self.starting_quality,
        }
