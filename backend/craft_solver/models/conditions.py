"""Craft conditions and the condition transition table."""
import random
from dataclasses import dataclass, field
from typing import Dict, List, Tuple
from enum import Enum


class Condition(str, Enum):
    """Per-step condition rolled by the game after every action."""
    NORMAL = "normal"
    GOOD = "good"
    EXCELLENT = "excellent"
    POOR = "poor"
    CENTERED = "centered"     # +25% success rate
    STURDY = "sturdy"         # durability cost halved
    PLIANT = "pliant"         # CP cost halved
    MALLEABLE = "malleable"   # progress x1.5
    PRIMED = "primed"         # buff duration +2

    @property
    def flag(self) -> int:
        """Bit used by the recipe conditions flag."""
        return CONDITION_FLAGS[self]


CONDITION_FLAGS: Dict[Condition, int] = {
    Condition.NORMAL: 1,
    Condition.GOOD: 2,
    Condition.EXCELLENT: 4,
    Condition.POOR: 8,
    Condition.CENTERED: 16,
    Condition.STURDY: 32,
    Condition.PLIANT: 64,
    Condition.MALLEABLE: 128,
    Condition.PRIMED: 256,
}

# Standard recipes only roll Normal/Good/Excellent/Poor
STANDARD_CONDITIONS_FLAG = 15

QUALITY_MULTIPLIERS: Dict[Condition, float] = {
    Condition.GOOD: 1.5,
    Condition.EXCELLENT: 4.0,
    Condition.POOR: 0.5,
}

PROGRESS_MULTIPLIERS: Dict[Condition, float] = {
    Condition.MALLEABLE: 1.5,
}

CENTERED_SUCCESS_BONUS = 0.25
PRIMED_DURATION_BONUS = 2

# Chance of rolling each condition out of Normal, before restriction to the
# recipe's flag. Whatever is left over stays Normal.
STANDARD_ROLL_WEIGHTS: Dict[Condition, float] = {
    Condition.GOOD: 0.20,
    Condition.EXCELLENT: 0.04,
}

EXPERT_ROLL_WEIGHTS: Dict[Condition, float] = {
    Condition.GOOD: 0.12,
    Condition.CENTERED: 0.15,
    Condition.STURDY: 0.15,
    Condition.PLIANT: 0.12,
    Condition.MALLEABLE: 0.12,
    Condition.PRIMED: 0.12,
}


@dataclass
class ConditionTable:
    """
    Condition transition distribution.

    Each row maps the current condition to an ordered list of
    (next_condition, probability) pairs summing to 1.0. Conditions without a
    row transition to Normal.
    """
    transitions: Dict[Condition, List[Tuple[Condition, float]]] = field(default_factory=dict)

    def next_condition(self, current: Condition, rng: random.Random) -> Condition:
        """Draw the next step's condition."""
        row = self.transitions.get(current)
        if not row:
            return Condition.NORMAL

        roll = rng.random()
        cumulative = 0.0
        for condition, probability in row:
            cumulative += probability
            if roll < cumulative:
                return condition
        return row[-1][0]

    def possible_conditions(self) -> List[Condition]:
        """All conditions this table can produce, in enum order."""
        seen = {Condition.NORMAL}
        for row in self.transitions.values():
            seen.update(condition for condition, p in row if p > 0)
        return [c for c in Condition if c in seen]

    @classmethod
    def from_flag(cls, conditions_flag: int, is_expert: bool = False) -> "ConditionTable":
        """Build the transition table for a recipe conditions flag."""
        weights = EXPERT_ROLL_WEIGHTS if is_expert else STANDARD_ROLL_WEIGHTS
        allowed = {c: w for c, w in weights.items() if conditions_flag & c.flag}

        normal_row: List[Tuple[Condition, float]] = list(allowed.items())
        normal_row.append((Condition.NORMAL, max(0.0, 1.0 - sum(allowed.values()))))

        transitions: Dict[Condition, List[Tuple[Condition, float]]] = {
            Condition.NORMAL: normal_row,
        }
        if Condition.EXCELLENT in allowed:
            # Excellent is always followed by Poor
            transitions[Condition.EXCELLENT] = [(Condition.POOR, 1.0)]
        return cls(transitions=transitions)

    @classmethod
    def normal_only(cls) -> "ConditionTable":
        """A table that never leaves Normal."""
        return cls(transitions={Condition.NORMAL: [(Condition.NORMAL, 1.0)]})
