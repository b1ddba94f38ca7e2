"""Action catalog: static action data and level-based resolution."""
from dataclasses import dataclass, field, replace
from typing import Dict, List, Any, Optional, FrozenSet, Iterable, Iterator
from enum import Enum

from .conditions import Condition
from .craft_state import BuffType
from ..exceptions import IllegalActionError, InvalidConfigurationError


class Requirement(str, Enum):
    """Preconditions an action can place on the current state."""
    FIRST_STEP = "first_step"
    GOOD_OR_EXCELLENT = "good_or_excellent"
    INNER_QUIET = "inner_quiet"             # at least one stack
    FULL_INNER_QUIET = "full_inner_quiet"   # 10 stacks
    NO_WASTE_NOT = "no_waste_not"


@dataclass(frozen=True)
class ActionSpec:
    """
    One catalog entry.

    Efficiencies are multipliers on the context's progress/quality factor
    (1.2 means 120%). `combo_from` names the action that must have been
    executed on the previous step for the combo to apply; with
    `combo_required` the action is illegal outside the combo, otherwise the
    combo only lowers the CP cost to `combo_cp_cost`.
    """
    name: str
    label: str
    level: int = 1
    cp_cost: int = 0
    durability_cost: int = 0
    progress_efficiency: float = 0.0
    quality_efficiency: float = 0.0
    success_rate: float = 1.0

    # Combo chain
    combo_from: Optional[str] = None
    combo_cp_cost: Optional[int] = None
    combo_required: bool = False
    starts_combo: bool = False

    # Buffs and restoration
    buff: Optional[BuffType] = None
    buff_duration: int = 0
    restores_durability: int = 0
    restores_cp: int = 0

    # Inner Quiet interaction. None means the default of 1 stack per quality action.
    inner_quiet_stacks: Optional[int] = None
    inner_quiet_efficiency: float = 0.0     # extra efficiency per stack (Byregot's)
    consumes_inner_quiet: bool = False
    maxes_quality: bool = False

    # Groundwork: efficiency halved when durability cannot cover the cost
    halves_when_low_durability: bool = False

    requirements: FrozenSet[Requirement] = field(default_factory=frozenset)
    min_level_advantage: int = 0

    # Traits upgrade progress efficiency at a later job level
    trait_level: Optional[int] = None
    trait_progress_efficiency: Optional[float] = None

    # Forces the condition of the next step instead of rolling it
    next_condition: Optional[Condition] = None

    @property
    def is_progress_action(self) -> bool:
        return self.progress_efficiency > 0

    @property
    def is_quality_action(self) -> bool:
        return self.quality_efficiency > 0 or self.maxes_quality

    @property
    def is_buff_action(self) -> bool:
        return not self.is_progress_action and not self.is_quality_action

    @property
    def stacks_gained(self) -> int:
        if self.inner_quiet_stacks is not None:
            return self.inner_quiet_stacks
        return 1 if self.quality_efficiency > 0 else 0

    def requires(self, requirement: Requirement) -> bool:
        return requirement in self.requirements

    def macro_text(self) -> str:
        """In-game macro line for this action."""
        wait = 2 if self.is_buff_action else 3
        return f'/ac "{self.label}" <wait.{wait}>'

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "label": self.label,
            "level": self.level,
            "cp_cost": self.cp_cost,
            "durability_cost": self.durability_cost,
            "progress_efficiency": self.progress_efficiency,
            "quality_efficiency": self.quality_efficiency,
            "success_rate": self.success_rate,
            "combo_from": self.combo_from,
            "buff": self.buff.value if self.buff else None,
            "buff_duration": self.buff_duration,
            "requirements": sorted(r.value for r in self.requirements),
        }

    def __str__(self):
        return self.label


def _spec(name: str, label: str, level: int, **kwargs) -> ActionSpec:
    requirements = kwargs.pop("requirements", ())
    return ActionSpec(name=name, label=label, level=level,
                      requirements=frozenset(requirements), **kwargs)


# Default catalog, in the order actions are offered to the search
DEFAULT_ACTIONS: List[ActionSpec] = [
    _spec("basic_synthesis", "Basic Synthesis", 1, durability_cost=10,
          progress_efficiency=1.0, trait_level=31, trait_progress_efficiency=1.2),
    _spec("basic_touch", "Basic Touch", 5, cp_cost=18, durability_cost=10,
          quality_efficiency=1.0, starts_combo=True),
    _spec("masters_mend", "Master's Mend", 7, cp_cost=88, restores_durability=30),
    _spec("hasty_touch", "Hasty Touch", 9, durability_cost=10,
          quality_efficiency=1.0, success_rate=0.6),
    _spec("rapid_synthesis", "Rapid Synthesis", 9, durability_cost=10,
          progress_efficiency=2.5, success_rate=0.5,
          trait_level=63, trait_progress_efficiency=5.0),
    _spec("observe", "Observe", 13, cp_cost=7, starts_combo=True),
    _spec("tricks_of_the_trade", "Tricks of the Trade", 13, restores_cp=20,
          requirements=[Requirement.GOOD_OR_EXCELLENT]),
    _spec("waste_not", "Waste Not", 15, cp_cost=56,
          buff=BuffType.WASTE_NOT, buff_duration=4),
    _spec("veneration", "Veneration", 15, cp_cost=18,
          buff=BuffType.VENERATION, buff_duration=4),
    _spec("standard_touch", "Standard Touch", 18, cp_cost=32, durability_cost=10,
          quality_efficiency=1.25, combo_from="basic_touch", combo_cp_cost=18,
          starts_combo=True),
    _spec("great_strides", "Great Strides", 21, cp_cost=32,
          buff=BuffType.GREAT_STRIDES, buff_duration=3),
    _spec("innovation", "Innovation", 26, cp_cost=18,
          buff=BuffType.INNOVATION, buff_duration=4),
    _spec("waste_not_ii", "Waste Not II", 47, cp_cost=98,
          buff=BuffType.WASTE_NOT, buff_duration=8),
    _spec("byregots_blessing", "Byregot's Blessing", 50, cp_cost=24, durability_cost=10,
          quality_efficiency=1.0, inner_quiet_efficiency=0.2, inner_quiet_stacks=0,
          consumes_inner_quiet=True, requirements=[Requirement.INNER_QUIET]),
    _spec("precise_touch", "Precise Touch", 53, cp_cost=18, durability_cost=10,
          quality_efficiency=1.5, inner_quiet_stacks=2,
          requirements=[Requirement.GOOD_OR_EXCELLENT]),
    _spec("muscle_memory", "Muscle Memory", 54, cp_cost=6, durability_cost=10,
          progress_efficiency=3.0, buff=BuffType.MUSCLE_MEMORY, buff_duration=5,
          requirements=[Requirement.FIRST_STEP]),
    _spec("careful_synthesis", "Careful Synthesis", 62, cp_cost=7, durability_cost=10,
          progress_efficiency=1.5, trait_level=82, trait_progress_efficiency=1.8),
    _spec("manipulation", "Manipulation", 65, cp_cost=96,
          buff=BuffType.MANIPULATION, buff_duration=8),
    _spec("prudent_touch", "Prudent Touch", 66, cp_cost=25, durability_cost=5,
          quality_efficiency=1.0, requirements=[Requirement.NO_WASTE_NOT]),
    _spec("focused_synthesis", "Focused Synthesis", 67, cp_cost=5, durability_cost=10,
          progress_efficiency=2.0, combo_from="observe", combo_required=True),
    _spec("focused_touch", "Focused Touch", 68, cp_cost=18, durability_cost=10,
          quality_efficiency=1.5, combo_from="observe", combo_required=True),
    _spec("reflect", "Reflect", 69, cp_cost=6, durability_cost=10,
          quality_efficiency=1.0, inner_quiet_stacks=2,
          requirements=[Requirement.FIRST_STEP]),
    _spec("preparatory_touch", "Preparatory Touch", 71, cp_cost=40, durability_cost=20,
          quality_efficiency=2.0, inner_quiet_stacks=2),
    _spec("groundwork", "Groundwork", 72, cp_cost=18, durability_cost=20,
          progress_efficiency=3.0, halves_when_low_durability=True,
          trait_level=86, trait_progress_efficiency=3.6),
    _spec("delicate_synthesis", "Delicate Synthesis", 76, cp_cost=32, durability_cost=10,
          progress_efficiency=1.0, quality_efficiency=1.0),
    _spec("intensive_synthesis", "Intensive Synthesis", 78, cp_cost=6, durability_cost=10,
          progress_efficiency=4.0, requirements=[Requirement.GOOD_OR_EXCELLENT]),
    _spec("trained_eye", "Trained Eye", 80, cp_cost=250, maxes_quality=True,
          inner_quiet_stacks=0, min_level_advantage=10,
          requirements=[Requirement.FIRST_STEP]),
    _spec("advanced_touch", "Advanced Touch", 84, cp_cost=46, durability_cost=10,
          quality_efficiency=1.5, combo_from="standard_touch", combo_cp_cost=18),
    _spec("prudent_synthesis", "Prudent Synthesis", 88, cp_cost=18, durability_cost=5,
          progress_efficiency=1.8, requirements=[Requirement.NO_WASTE_NOT]),
    _spec("trained_finesse", "Trained Finesse", 90, cp_cost=32,
          quality_efficiency=1.0, inner_quiet_stacks=0,
          requirements=[Requirement.FULL_INNER_QUIET]),
]


class ActionCatalog:
    """Ordered, name-indexed collection of ActionSpecs."""

    def __init__(self, actions: Iterable[ActionSpec]):
        self._actions: List[ActionSpec] = list(actions)
        if not self._actions:
            raise InvalidConfigurationError("Action catalog is empty")

        self._by_name: Dict[str, ActionSpec] = {}
        for action in self._actions:
            if action.name in self._by_name:
                raise InvalidConfigurationError(f"Duplicate action in catalog: {action.name}")
            self._by_name[action.name] = action

    def __iter__(self) -> Iterator[ActionSpec]:
        return iter(self._actions)

    def __len__(self) -> int:
        return len(self._actions)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def get(self, name: str) -> ActionSpec:
        """Look up an action by name."""
        try:
            return self._by_name[name]
        except KeyError:
            raise IllegalActionError(name, "not in the action catalog")

    def names(self) -> List[str]:
        return [a.name for a in self._actions]

    def for_player(
        self,
        job_level: int,
        recipe_job_level: Optional[int] = None,
        use_manipulation: bool = True,
    ) -> "ActionCatalog":
        """
        Resolve the catalog for a player's job level.

        Drops actions the player has not unlocked, applies trait upgrades,
        drops actions that need a level advantage over the recipe, and
        drops Manipulation unless `use_manipulation` is set.
        """
        resolved: List[ActionSpec] = []
        for action in self._actions:
            if job_level < action.level:
                continue
            if action.buff == BuffType.MANIPULATION and not use_manipulation:
                continue
            if action.min_level_advantage and (
                recipe_job_level is None
                or job_level - recipe_job_level < action.min_level_advantage
            ):
                continue
            if (
                action.trait_level is not None
                and job_level >= action.trait_level
                and action.trait_progress_efficiency is not None
            ):
                action = replace(action, progress_efficiency=action.trait_progress_efficiency)
            resolved.append(action)
        return ActionCatalog(resolved)

    @classmethod
    def default(cls) -> "ActionCatalog":
        """The full default catalog, unresolved."""
        return cls(DEFAULT_ACTIONS)

    def to_list(self) -> List[Dict[str, Any]]:
        return [a.to_dict() for a in self._actions]


# Singleton instance
_default_catalog = None


def get_default_catalog() -> ActionCatalog:
    """Get or create the unresolved default catalog."""
    global _default_catalog
    if _default_catalog is None:
        _default_catalog = ActionCatalog.default()
    return _default_catalog
