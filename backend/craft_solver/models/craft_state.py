"""Craft state, buffs and craft results."""
from dataclasses import dataclass, field
from typing import Dict, Any, Optional
from enum import Enum

from .conditions import Condition


MAX_INNER_QUIET = 10


class BuffType(str, Enum):
    """Timed buffs. Inner Quiet is a stack count and lives on the state itself."""
    WASTE_NOT = "waste_not"
    MANIPULATION = "manipulation"
    GREAT_STRIDES = "great_strides"
    INNOVATION = "innovation"
    VENERATION = "veneration"
    MUSCLE_MEMORY = "muscle_memory"


class CraftResult(str, Enum):
    """How a finished craft ended."""
    FINISHED = "finished"
    DURABILITY_FAILURE = "durability_failure"
    RECIPE_EXHAUSTED = "recipe_exhausted"   # step limit reached
    NO_MOVES_FAILURE = "no_moves_failure"

    @property
    def is_failure(self) -> bool:
        return self is not CraftResult.FINISHED


@dataclass
class CraftState:
    """
    The minigame state between two actions.

    `step` counts completed actions. `combo_action` is the name of the action
    executed on the previous step if it can start a combo, else None.
    """
    progress: int
    quality: int
    durability: int
    cp: int
    step: int = 0
    condition: Condition = Condition.NORMAL
    inner_quiet: int = 0
    buffs: Dict[BuffType, int] = field(default_factory=dict)
    combo_action: Optional[str] = None

    def copy(self) -> "CraftState":
        return CraftState(
            progress=self.progress,
            quality=self.quality,
            durability=self.durability,
            cp=self.cp,
            step=self.step,
            condition=self.condition,
            inner_quiet=self.inner_quiet,
            buffs=dict(self.buffs),
            combo_action=self.combo_action,
        )

    def buff(self, kind: BuffType) -> int:
        """Remaining duration of a buff (0 if inactive)."""
        return self.buffs.get(kind, 0)

    def has_buff(self, kind: BuffType) -> bool:
        return self.buffs.get(kind, 0) > 0

    def decrement_buffs(self) -> None:
        """Tick every timed buff down by one step, dropping expired ones."""
        self.buffs = {kind: turns - 1 for kind, turns in self.buffs.items() if turns > 1}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "step": self.step,
            "progress": self.progress,
            "quality": self.quality,
            "durability": self.durability,
            "cp": self.cp,
            "condition": self.condition.value,
            "inner_quiet": self.inner_quiet,
            "buffs": {kind.value: turns for kind, turns in self.buffs.items()},
            "combo_action": self.combo_action,
        }

    def __str__(self):
        return (
            f"step {self.step:>2}: {self.progress:>5} progress | {self.quality:>5} quality | "
            f"{self.durability:>2} durability | {self.cp:>3} cp | {self.condition.value}"
        )
