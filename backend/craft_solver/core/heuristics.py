"""Heuristic action policies.

A policy ranks the legal actions of a state. The solver expands children in
ranked order and uses the policy's weighted choice for rollouts, which keeps
playouts away from rotations that obviously waste CP or break the item.
"""
import random
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from ..models.actions import ActionSpec
from ..models.craft_state import BuffType, CraftState
from .simulator import CraftSimulator


# Floor for rollout weights so no ranked action is ever impossible to pick
MIN_SCORE = 0.01


class HeuristicPolicy(ABC):
    """
    Strategy interface: rank the legal actions for a state.

    Policies are pure functions of the state. They never mutate the state
    and keep nothing between calls.
    """

    # Exponent applied to scores when sampling rollout actions
    sharpness: float = 1.0

    def __init__(self, simulator: CraftSimulator):
        self.simulator = simulator

    @abstractmethod
    def score(self, state: CraftState, action: ActionSpec) -> float:
        """Preference for `action` in `state`; higher is better."""

    def candidate_actions(self, state: CraftState) -> List[ActionSpec]:
        """Actions the policy is willing to consider (default: all legal ones)."""
        return self.simulator.legal_actions(state)

    def ranked(self, state: CraftState) -> List[Tuple[ActionSpec, float]]:
        """Candidate actions with scores, best first, catalog order on ties."""
        scored = [
            (index, action, self.score(state, action))
            for index, action in enumerate(self.candidate_actions(state))
        ]
        scored.sort(key=lambda item: (-item[2], item[0]))
        return [(action, score) for _, action, score in scored]

    def legal_actions(self, state: CraftState) -> List[ActionSpec]:
        """Candidate actions in descending preference."""
        return [action for action, _ in self.ranked(state)]

    def choose(self, state: CraftState, rng: random.Random) -> Optional[ActionSpec]:
        """Pick a rollout action, weighted by score. None if nothing is playable."""
        ranked = self.ranked(state)
        if not ranked:
            return None

        weights = [max(score, MIN_SCORE) ** self.sharpness for _, score in ranked]
        roll = rng.random() * sum(weights)
        cumulative = 0.0
        for (action, _), weight in zip(ranked, weights):
            cumulative += weight
            if roll < cumulative:
                return action
        return ranked[-1][0]


class UniformPolicy(HeuristicPolicy):
    """No domain knowledge: every legal action is equally likely."""

    def score(self, state: CraftState, action: ActionSpec) -> float:
        return 1.0


class CraftingHeuristicPolicy(HeuristicPolicy):
    """
    Hand-tuned crafting knowledge.

    Pruning (`candidate_actions`) removes moves that are never useful, such
    as quality actions once the quality target is met or reapplying a buff
    that is still running. If pruning would leave nothing, the unpruned legal
    actions are used instead.

    Scoring (`score`) weighs the expected share of remaining progress and
    quality an action delivers. Progress gets more weight as CP and
    durability run out, durability restoration gets more weight as
    durability drops, and CP and durability spent are penalised.
    """

    sharpness = 2.0

    def candidate_actions(self, state: CraftState) -> List[ActionSpec]:
        legal = self.simulator.legal_actions(state)

        # A running combo with a follow-up that needs it: only follow up
        if state.combo_action is not None:
            follow_ups = [
                a for a in legal if a.combo_required and a.combo_from == state.combo_action
            ]
            if follow_ups:
                return follow_ups

        pruned = [a for a in legal if self._is_useful(state, a)]
        return pruned or legal

    def _is_useful(self, state: CraftState, action: ActionSpec) -> bool:
        simulator = self.simulator
        context = simulator.context

        if action.is_quality_action:
            # Quality is pointless past the target
            if state.quality >= context.quality_target:
                return False
            if state.has_buff(BuffType.MUSCLE_MEMORY):
                return False
            if state.has_buff(BuffType.VENERATION) and not action.is_progress_action:
                return False

        if action.is_progress_action:
            progress_after = state.progress + simulator.progress_increase(state, action)
            # Don't finish with most of the quality still missing
            if (
                progress_after >= context.progress_target
                and state.quality < context.quality_target / 3
            ):
                return False
            if action.halves_when_low_durability and (
                state.durability < simulator.durability_cost(state, action)
            ):
                return False

        # Breaking the item without finishing is never useful
        durability_cost = simulator.durability_cost(state, action)
        if durability_cost and durability_cost >= state.durability:
            progress_after = state.progress + simulator.progress_increase(state, action)
            if progress_after < context.progress_target:
                return False

        if action.restores_durability:
            missing = context.durability_max - state.durability
            if missing < action.restores_durability:
                return False

        if action.buff is not None and state.has_buff(action.buff):
            return False
        if action.buff == BuffType.GREAT_STRIDES and state.has_buff(BuffType.VENERATION):
            return False
        if action.buff in (BuffType.VENERATION, BuffType.INNOVATION) and (
            state.has_buff(BuffType.VENERATION) or state.has_buff(BuffType.INNOVATION)
        ):
            return False

        # Combo starters without gains (Observe) need CP left for their follow-up
        if action.is_buff_action and action.starts_combo:
            if state.combo_action == action.name:
                return False
            follow_up_costs = [
                a.cp_cost for a in simulator.catalog
                if a.combo_required and a.combo_from == action.name
            ]
            if not follow_up_costs:
                return False
            cp_after = state.cp - simulator.cp_cost(state, action)
            if cp_after < min(follow_up_costs):
                return False

        return True

    def score(self, state: CraftState, action: ActionSpec) -> float:
        simulator = self.simulator
        context = simulator.context
        preview = simulator.preview(state, action)

        progress_left = max(1, context.progress_target - state.progress)
        quality_left = max(0, context.quality_target - state.quality)
        cp_ratio = state.cp / context.cp_max if context.cp_max > 0 else 0.0
        durability_ratio = state.durability / context.durability_max

        progress_share = min(1.0, preview.progress_increase / progress_left)
        quality_share = min(1.0, preview.quality_increase / quality_left) if quality_left else 0.0

        # Progress matters more the closer we are to running out of resources
        scarcity = 1.0 - min(cp_ratio, durability_ratio)
        progress_weight = 0.5 + 1.5 * scarcity
        quality_weight = (1.0 + cp_ratio) if quality_left else 0.0

        score = preview.success_rate * (
            progress_weight * progress_share + quality_weight * quality_share
        )

        # Finishing is the best move once quality is done or resources are nearly gone
        if state.progress + preview.progress_increase >= context.progress_target:
            if quality_left == 0 or scarcity > 0.8:
                score += 1.0 * preview.success_rate

        # Durability restoration
        if action.restores_durability or action.buff == BuffType.MANIPULATION:
            score += 0.6 * (1.0 - durability_ratio)
        if action.buff == BuffType.WASTE_NOT:
            score += 0.3 * durability_ratio

        # Quality and progress buffs
        if action.buff in (BuffType.INNOVATION, BuffType.GREAT_STRIDES) and quality_left:
            score += 0.3 * cp_ratio
        if action.buff == BuffType.VENERATION:
            score += 0.3 * progress_left / context.progress_target

        if action.restores_cp:
            score += 0.5

        # Inner Quiet payoff grows with stacks
        if action.consumes_inner_quiet:
            score *= state.inner_quiet / 10

        # Resource costs
        if state.cp > 0:
            score -= 0.3 * preview.cp_cost / state.cp
        if state.durability > 0:
            score -= 0.2 * preview.durability_cost / state.durability

        return max(score, MIN_SCORE)
