"""Craft simulation engine.

Game rules:
1. Every action costs CP and durability; a failed success roll still pays both
2. Progress/quality gain = factor x condition x efficiency x buff multipliers
3. Inner Quiet stacks (max 10) add 10% quality each; Byregot's Blessing spends them
4. Timed buffs tick down once per step; buffs granted by an action start after
   the tick so they keep their full duration for the next step
5. Manipulation restores 5 durability after each step it was already active for
6. The next condition is rolled from the context's transition table
7. The craft ends on full progress, zero durability, the step limit, or when
   no action is affordable
"""
import math
import random
from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional, Sequence, Union

from ..exceptions import IllegalActionError
from ..models.actions import ActionCatalog, ActionSpec, Requirement
from ..models.conditions import (
    Condition,
    QUALITY_MULTIPLIERS,
    PROGRESS_MULTIPLIERS,
    CENTERED_SUCCESS_BONUS,
    PRIMED_DURATION_BONUS,
)
from ..models.craft_state import BuffType, CraftResult, CraftState, MAX_INNER_QUIET
from ..models.recipe import CraftContext


# Progress buff bonuses are additive with each other, as are quality buffs
PROGRESS_BUFF_BONUSES: Dict[BuffType, float] = {
    BuffType.VENERATION: 0.5,
    BuffType.MUSCLE_MEMORY: 1.0,
}
QUALITY_BUFF_BONUSES: Dict[BuffType, float] = {
    BuffType.INNOVATION: 0.5,
    BuffType.GREAT_STRIDES: 1.0,
}
INNER_QUIET_BONUS_PER_STACK = 0.1
MANIPULATION_RESTORE = 5

# Absorbs float error in products like 1.2 * 100 before flooring
FLOOR_EPSILON = 1e-9

ActionLike = Union[str, ActionSpec]


@dataclass
class ActionPreview:
    """Deterministic effect of an action if it succeeds."""
    action: str
    cp_cost: int
    durability_cost: int
    progress_increase: int
    quality_increase: int
    success_rate: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "cp_cost": self.cp_cost,
            "durability_cost": self.durability_cost,
            "progress_increase": self.progress_increase,
            "quality_increase": self.quality_increase,
            "success_rate": round(self.success_rate, 4),
        }


@dataclass
class StepOutcome:
    """Result of applying one action."""
    action: str
    state: CraftState
    success: bool
    condition: Condition            # condition of the next step
    terminal: bool
    result: Optional[CraftResult] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "success": self.success,
            "condition": self.condition.value,
            "terminal": self.terminal,
            "result": self.result.value if self.result else None,
            "state": self.state.to_dict(),
        }


@dataclass
class ReplayResult:
    """Result of replaying an action list."""
    state: CraftState
    result: Optional[CraftResult]
    outcomes: List[StepOutcome] = field(default_factory=list)


def _floor(value: float) -> int:
    return math.floor(value + FLOOR_EPSILON)


class CraftSimulator:
    """
    State transition function for one craft context.

    The simulator holds no mutable state; every call takes the state and the
    random source explicitly, so one instance can be shared by many searches.
    """

    def __init__(self, context: CraftContext, catalog: ActionCatalog):
        self.context = context
        self.catalog = catalog

    def _resolve(self, action: ActionLike) -> ActionSpec:
        if isinstance(action, ActionSpec):
            return action
        return self.catalog.get(action)

    # ===== Costs and gains =====

    def cp_cost(self, state: CraftState, action: ActionSpec) -> int:
        """CP cost after combo discounts and Pliant."""
        cost = action.cp_cost
        if (
            action.combo_cp_cost is not None
            and action.combo_from is not None
            and state.combo_action == action.combo_from
        ):
            cost = action.combo_cp_cost
        if state.condition == Condition.PLIANT:
            cost = math.ceil(cost / 2)
        return cost

    def durability_cost(self, state: CraftState, action: ActionSpec) -> int:
        """Durability cost after Waste Not and Sturdy."""
        multiplier = 1.0
        if state.has_buff(BuffType.WASTE_NOT):
            multiplier *= 0.5
        if state.condition == Condition.STURDY:
            multiplier *= 0.5
        return math.ceil(action.durability_cost * multiplier)

    def success_rate(self, state: CraftState, action: ActionSpec) -> float:
        rate = action.success_rate
        if state.condition == Condition.CENTERED:
            rate += CENTERED_SUCCESS_BONUS
        return min(1.0, rate)

    def progress_increase(self, state: CraftState, action: ActionSpec) -> int:
        """Progress gained if the action succeeds (before capping)."""
        if not action.is_progress_action:
            return 0

        efficiency = action.progress_efficiency
        if action.halves_when_low_durability and state.durability < self.durability_cost(state, action):
            efficiency /= 2

        buff_bonus = sum(
            bonus for kind, bonus in PROGRESS_BUFF_BONUSES.items() if state.has_buff(kind)
        )
        condition_multiplier = PROGRESS_MULTIPLIERS.get(state.condition, 1.0)
        return _floor(
            self.context.progress_factor * condition_multiplier * efficiency * (1 + buff_bonus)
        )

    def quality_increase(self, state: CraftState, action: ActionSpec) -> int:
        """Quality gained if the action succeeds (before capping)."""
        if action.maxes_quality:
            return max(0, self.context.quality_max - state.quality)
        if action.quality_efficiency <= 0:
            return 0

        efficiency = action.quality_efficiency + action.inner_quiet_efficiency * state.inner_quiet
        inner_quiet_multiplier = 1 + INNER_QUIET_BONUS_PER_STACK * state.inner_quiet
        buff_bonus = sum(
            bonus for kind, bonus in QUALITY_BUFF_BONUSES.items() if state.has_buff(kind)
        )
        condition_multiplier = QUALITY_MULTIPLIERS.get(state.condition, 1.0)
        return _floor(
            self.context.quality_factor
            * condition_multiplier
            * efficiency
            * inner_quiet_multiplier
            * (1 + buff_bonus)
        )

    def preview(self, state: CraftState, action: ActionLike) -> ActionPreview:
        """Costs and gains of an action without rolling anything."""
        spec = self._resolve(action)
        return ActionPreview(
            action=spec.name,
            cp_cost=self.cp_cost(state, spec),
            durability_cost=self.durability_cost(state, spec),
            progress_increase=self.progress_increase(state, spec),
            quality_increase=self.quality_increase(state, spec),
            success_rate=self.success_rate(state, spec),
        )

    # ===== Legality and terminal detection =====

    def illegal_reason(self, state: CraftState, action: ActionSpec) -> Optional[str]:
        """Why `action` cannot be used in `state`, or None if it can."""
        if self.cp_cost(state, action) > state.cp:
            return "not enough CP"
        if action.requires(Requirement.FIRST_STEP) and state.step != 0:
            return "only usable on the first step"
        if action.requires(Requirement.GOOD_OR_EXCELLENT) and state.condition not in (
            Condition.GOOD, Condition.EXCELLENT
        ):
            return "requires Good or Excellent condition"
        if action.requires(Requirement.INNER_QUIET) and state.inner_quiet == 0:
            return "requires Inner Quiet stacks"
        if action.requires(Requirement.FULL_INNER_QUIET) and state.inner_quiet < MAX_INNER_QUIET:
            return "requires 10 Inner Quiet stacks"
        if action.requires(Requirement.NO_WASTE_NOT) and state.has_buff(BuffType.WASTE_NOT):
            return "unusable under Waste Not"
        if action.combo_required and state.combo_action != action.combo_from:
            return f"must directly follow {action.combo_from}"
        return None

    def is_legal(self, state: CraftState, action: ActionLike) -> bool:
        return self.illegal_reason(state, self._resolve(action)) is None

    def legal_actions(self, state: CraftState) -> List[ActionSpec]:
        """Actions usable in a non-finished state, in catalog order."""
        return [a for a in self.catalog if self.illegal_reason(state, a) is None]

    def check_result(self, state: CraftState) -> Optional[CraftResult]:
        """The craft result if `state` is terminal, else None."""
        if state.progress >= self.context.progress_target:
            return CraftResult.FINISHED
        if state.durability <= 0:
            return CraftResult.DURABILITY_FAILURE
        if state.step >= self.context.step_max:
            return CraftResult.RECIPE_EXHAUSTED
        if not any(self.illegal_reason(state, a) is None for a in self.catalog):
            return CraftResult.NO_MOVES_FAILURE
        return None

    def is_terminal(self, state: CraftState) -> bool:
        return self.check_result(state) is not None

    # ===== Transitions =====

    def step(self, state: CraftState, action: ActionLike, rng: random.Random) -> StepOutcome:
        """
        Apply one action to a state.

        Raises:
            IllegalActionError: if the craft is already over or the action's
                preconditions are not met.
        """
        spec = self._resolve(action)
        if self.check_result(state) is not None:
            raise IllegalActionError(spec.name, "the craft is already over")
        reason = self.illegal_reason(state, spec)
        if reason is not None:
            raise IllegalActionError(spec.name, reason)

        rate = self.success_rate(state, spec)
        success = rate >= 1.0 or rng.random() < rate

        next_state = state.copy()
        next_state.cp = state.cp - self.cp_cost(state, spec)
        next_state.durability = max(0, state.durability - self.durability_cost(state, spec))

        if success:
            self._apply_success(state, next_state, spec)

        # Manipulation only ticks if it was already running before this action
        if (
            state.has_buff(BuffType.MANIPULATION)
            and spec.buff != BuffType.MANIPULATION
            and next_state.durability > 0
        ):
            next_state.durability = min(
                self.context.durability_max, next_state.durability + MANIPULATION_RESTORE
            )

        next_state.decrement_buffs()

        if success and spec.buff is not None:
            duration = spec.buff_duration
            if state.condition == Condition.PRIMED:
                duration += PRIMED_DURATION_BONUS
            next_state.buffs[spec.buff] = duration

        next_state.combo_action = spec.name if success and spec.starts_combo else None
        next_state.step = state.step + 1

        if spec.next_condition is not None:
            next_state.condition = spec.next_condition
        else:
            next_state.condition = self.context.condition_table.next_condition(state.condition, rng)

        result = self.check_result(next_state)
        return StepOutcome(
            action=spec.name,
            state=next_state,
            success=success,
            condition=next_state.condition,
            terminal=result is not None,
            result=result,
        )

    def _apply_success(self, state: CraftState, next_state: CraftState, spec: ActionSpec) -> None:
        """Gains and buff consumption of a successful action."""
        context = self.context

        if spec.is_progress_action:
            next_state.progress = min(
                context.progress_target, state.progress + self.progress_increase(state, spec)
            )
            next_state.buffs.pop(BuffType.MUSCLE_MEMORY, None)

        if spec.is_quality_action:
            next_state.quality = min(
                context.quality_max, state.quality + self.quality_increase(state, spec)
            )
            if spec.consumes_inner_quiet:
                next_state.inner_quiet = 0
            else:
                next_state.inner_quiet = min(MAX_INNER_QUIET, state.inner_quiet + spec.stacks_gained)
            next_state.buffs.pop(BuffType.GREAT_STRIDES, None)

        if spec.restores_durability:
            next_state.durability = min(
                context.durability_max, next_state.durability + spec.restores_durability
            )
        if spec.restores_cp:
            next_state.cp = min(context.cp_max, next_state.cp + spec.restores_cp)

    def simulate_actions(
        self,
        actions: Sequence[ActionLike],
        rng: random.Random,
        state: Optional[CraftState] = None,
    ) -> ReplayResult:
        """
        Replay an action list from `state` (default: the initial state).

        Stops early once the craft is over; actions after that are ignored.
        """
        current = state if state is not None else self.context.initial_state()
        outcomes: List[StepOutcome] = []

        for action in actions:
            if self.check_result(current) is not None:
                break
            outcome = self.step(current, action, rng)
            outcomes.append(outcome)
            current = outcome.state

        return ReplayResult(state=current, result=self.check_result(current), outcomes=outcomes)


def simulate(
    context: CraftContext,
    catalog: ActionCatalog,
    state: CraftState,
    action: ActionLike,
    rng: random.Random,
) -> StepOutcome:
    """Single-step the simulator for a host that holds no simulator instance."""
    return CraftSimulator(context, catalog).step(state, action, rng)
