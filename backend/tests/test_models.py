"""Tests for domain models."""
import random

import pytest
from craft_solver.exceptions import IllegalActionError, InvalidConfigurationError
from craft_solver.models.actions import ActionCatalog, ActionSpec, DEFAULT_ACTIONS, get_default_catalog
from craft_solver.models.conditions import Condition, ConditionTable
from craft_solver.models.craft_state import BuffType, CraftResult, CraftState
from craft_solver.models.recipe import CraftContext, CraftOptions, Player, Recipe
from craft_solver.models.solver_config import SearchMode, SolverConfig


@pytest.fixture
def player():
    """Level 90 crafter."""
    return Player(job_level=90, craftsmanship=4000, control=3900, cp=600)


@pytest.fixture
def recipe():
    """Level 90 recipe with modifiers."""
    return Recipe(
        recipe_level=560,
        job_level=90,
        progress=3500,
        quality=7200,
        durability=80,
        progress_div=130,
        progress_mod=80,
        quality_div=115,
        quality_mod=70,
    )


@pytest.fixture
def context():
    """Simple context with round factors."""
    return CraftContext(
        progress_factor=100,
        quality_factor=100,
        progress_target=1000,
        quality_max=2000,
        durability_max=80,
        cp_max=400,
    )


class TestCraftContext:
    """Tests for CraftContext construction and scoring."""

    def test_base_factors_with_recipe_modifiers(self, player, recipe):
        """Test modifiers apply when the player is not above the recipe level."""
        progress_factor, quality_factor = CraftContext.base_factors(player, recipe)

        assert progress_factor == 247
        assert quality_factor == 261

    def test_base_factors_above_recipe_level(self, player, recipe):
        """Test modifiers are ignored when the player out-levels the recipe."""
        recipe.job_level = 80
        progress_factor, quality_factor = CraftContext.base_factors(player, recipe)

        assert progress_factor == 309
        assert quality_factor == 374

    def test_from_player(self, player, recipe):
        """Test building a context from player and recipe."""
        context = CraftContext.from_player(player, recipe, CraftOptions(max_steps=30))

        assert context.progress_target == 3500
        assert context.quality_max == 7200
        assert context.quality_target == 7200
        assert context.durability_max == 80
        assert context.cp_max == 600
        assert context.step_max == 30

    def test_quality_target_clamped_to_max(self, player, recipe):
        """Test quality target never exceeds the recipe maximum."""
        options = CraftOptions(quality_target=99999, starting_quality=100)
        context = CraftContext.from_player(player, recipe, options)

        assert context.quality_target == 7200
        assert context.initial_state().quality == 100

    def test_initial_state(self, context):
        """Test initial state has full durability and CP."""
        state = context.initial_state()

        assert state.progress == 0
        assert state.quality == 0
        assert state.durability == 80
        assert state.cp == 400
        assert state.step == 0
        assert state.condition == Condition.NORMAL

    def test_invalid_step_limit(self):
        """Test a step limit below 1 is rejected."""
        with pytest.raises(InvalidConfigurationError):
            CraftContext(
                progress_factor=100, quality_factor=100, progress_target=100,
                quality_max=100, durability_max=40, cp_max=100, step_max=0,
            )

    def test_invalid_configuration_is_value_error(self):
        """Test configuration errors are also ValueErrors."""
        with pytest.raises(ValueError):
            CraftContext(
                progress_factor=100, quality_factor=100, progress_target=0,
                quality_max=100, durability_max=40, cp_max=100,
            )


class TestScore:
    """Tests for the reward function."""

    def test_unfinished_scores_zero(self, context):
        """Test an unfinished craft scores zero regardless of quality."""
        state = CraftState(progress=999, quality=2000, durability=10, cp=0, step=5)
        assert context.score(state) == 0.0

    def test_full_quality_at_step_zero(self, context):
        """Test the maximum reward."""
        state = CraftState(progress=1000, quality=2000, durability=10, cp=0, step=0)
        assert context.score(state) == pytest.approx(1.0)

    def test_partial_quality(self, context):
        """Test quality share and step bonus."""
        state = CraftState(progress=1000, quality=1000, durability=10, cp=0, step=5)
        expected = 0.995 * 0.5 + 0.005 * (1 - 5 / 25)
        assert context.score(state) == pytest.approx(expected)

    def test_fewer_steps_scores_higher(self, context):
        """Test finishing earlier is preferred at equal quality."""
        early = CraftState(progress=1000, quality=2000, durability=10, cp=0, step=8)
        late = CraftState(progress=1000, quality=2000, durability=10, cp=0, step=12)
        assert context.score(early) > context.score(late)

    def test_score_in_unit_range(self, context):
        """Test score stays within [0, 1]."""
        state = CraftState(progress=1000, quality=2000, durability=0, cp=0, step=25)
        assert 0.0 <= context.score(state) <= 1.0


class TestConditionTable:
    """Tests for condition transitions."""

    def test_normal_only_never_changes(self):
        """Test the default table stays Normal."""
        table = ConditionTable.normal_only()
        rng = random.Random(1)

        assert all(table.next_condition(Condition.NORMAL, rng) == Condition.NORMAL for _ in range(50))

    def test_excellent_becomes_poor(self):
        """Test Excellent always transitions to Poor."""
        table = ConditionTable.from_flag(15)
        rng = random.Random(1)

        assert all(table.next_condition(Condition.EXCELLENT, rng) == Condition.POOR for _ in range(20))

    def test_poor_and_good_return_to_normal(self):
        """Test conditions without a row go back to Normal."""
        table = ConditionTable.from_flag(15)
        rng = random.Random(1)

        assert table.next_condition(Condition.POOR, rng) == Condition.NORMAL
        assert table.next_condition(Condition.GOOD, rng) == Condition.NORMAL

    def test_standard_conditions(self):
        """Test standard recipes roll Normal, Good, Excellent and Poor."""
        table = ConditionTable.from_flag(15)

        assert table.possible_conditions() == [
            Condition.NORMAL, Condition.GOOD, Condition.EXCELLENT, Condition.POOR,
        ]

    def test_expert_conditions_respect_flag(self):
        """Test expert tables only roll conditions in the flag."""
        table = ConditionTable.from_flag(115, is_expert=True)

        assert table.possible_conditions() == [
            Condition.NORMAL, Condition.GOOD, Condition.CENTERED,
            Condition.STURDY, Condition.PLIANT,
        ]

    def test_normal_row_sums_to_one(self):
        """Test transition probabilities form a distribution."""
        table = ConditionTable.from_flag(483, is_expert=True)
        row = table.transitions[Condition.NORMAL]

        assert sum(p for _, p in row) == pytest.approx(1.0)

    def test_condition_flags(self):
        """Test flag bits."""
        assert Condition.NORMAL.flag == 1
        assert Condition.POOR.flag == 8
        assert Condition.PRIMED.flag == 256


class TestActionCatalog:
    """Tests for the action catalog."""

    def test_default_catalog_size(self):
        """Test the default catalog holds every action."""
        catalog = ActionCatalog.default()

        assert len(catalog) == len(DEFAULT_ACTIONS) == 30
        assert "basic_synthesis" in catalog
        assert "unknown" not in catalog

    def test_default_catalog_singleton(self):
        """Test the singleton returns the same instance."""
        assert get_default_catalog() is get_default_catalog()

    def test_empty_catalog_rejected(self):
        """Test an empty catalog is invalid."""
        with pytest.raises(InvalidConfigurationError):
            ActionCatalog([])

    def test_duplicate_names_rejected(self):
        """Test duplicate action names are invalid."""
        action = ActionSpec(name="a", label="A")
        with pytest.raises(InvalidConfigurationError):
            ActionCatalog([action, action])

    def test_unknown_action(self):
        """Test looking up an unknown action."""
        with pytest.raises(IllegalActionError) as exc_info:
            ActionCatalog.default().get("does_not_exist")

        assert exc_info.value.action == "does_not_exist"

    def test_for_player_level_one(self):
        """Test a level 1 crafter only has Basic Synthesis."""
        catalog = ActionCatalog.default().for_player(1)

        assert catalog.names() == ["basic_synthesis"]

    def test_for_player_applies_traits(self):
        """Test trait upgrades of progress efficiency."""
        low = ActionCatalog.default().for_player(30)
        high = ActionCatalog.default().for_player(90)

        assert low.get("basic_synthesis").progress_efficiency == 1.0
        assert high.get("basic_synthesis").progress_efficiency == 1.2
        assert high.get("careful_synthesis").progress_efficiency == 1.8
        assert high.get("groundwork").progress_efficiency == 3.6

    def test_trained_eye_needs_level_advantage(self):
        """Test Trained Eye needs 10 levels over the recipe."""
        assert "trained_eye" not in ActionCatalog.default().for_player(90)
        assert "trained_eye" not in ActionCatalog.default().for_player(90, 85)
        assert "trained_eye" in ActionCatalog.default().for_player(90, 80)

    def test_for_player_without_manipulation(self):
        """Test Manipulation can be left out of the resolved pool."""
        assert "manipulation" in ActionCatalog.default().for_player(90)
        assert "manipulation" not in ActionCatalog.default().for_player(90, use_manipulation=False)
        assert CraftOptions().use_manipulation is True

    def test_catalog_order_preserved(self):
        """Test resolution keeps catalog order."""
        names = ActionCatalog.default().for_player(90).names()

        assert names[0] == "basic_synthesis"
        assert names.index("observe") < names.index("focused_touch")

    def test_action_kinds(self):
        """Test progress, quality and buff classification."""
        catalog = ActionCatalog.default()

        assert catalog.get("basic_synthesis").is_progress_action
        assert catalog.get("basic_touch").is_quality_action
        assert catalog.get("delicate_synthesis").is_progress_action
        assert catalog.get("delicate_synthesis").is_quality_action
        assert catalog.get("innovation").is_buff_action
        assert catalog.get("trained_eye").is_quality_action

    def test_inner_quiet_stacks(self):
        """Test stacks gained per action."""
        catalog = ActionCatalog.default()

        assert catalog.get("basic_touch").stacks_gained == 1
        assert catalog.get("preparatory_touch").stacks_gained == 2
        assert catalog.get("byregots_blessing").stacks_gained == 0
        assert catalog.get("basic_synthesis").stacks_gained == 0

    def test_macro_text(self):
        """Test macro lines wait less after buffs."""
        catalog = ActionCatalog.default()

        assert catalog.get("basic_touch").macro_text() == '/ac "Basic Touch" <wait.3>'
        assert catalog.get("innovation").macro_text() == '/ac "Innovation" <wait.2>'

    def test_to_list(self):
        """Test catalog serialization."""
        data = ActionCatalog.default().to_list()

        assert len(data) == 30
        assert data[0]["name"] == "basic_synthesis"
        assert data[0]["label"] == "Basic Synthesis"


class TestCraftState:
    """Tests for CraftState."""

    def test_copy_is_independent(self):
        """Test copies don't share buff dictionaries."""
        state = CraftState(progress=0, quality=0, durability=80, cp=400,
                           buffs={BuffType.INNOVATION: 3})
        clone = state.copy()
        clone.buffs[BuffType.VENERATION] = 4

        assert clone == CraftState(progress=0, quality=0, durability=80, cp=400,
                                   buffs={BuffType.INNOVATION: 3, BuffType.VENERATION: 4})
        assert BuffType.VENERATION not in state.buffs

    def test_decrement_buffs(self):
        """Test buffs tick down and expire."""
        state = CraftState(progress=0, quality=0, durability=80, cp=400,
                           buffs={BuffType.INNOVATION: 2, BuffType.GREAT_STRIDES: 1})
        state.decrement_buffs()

        assert state.buff(BuffType.INNOVATION) == 1
        assert not state.has_buff(BuffType.GREAT_STRIDES)
        assert BuffType.GREAT_STRIDES not in state.buffs

    def test_to_dict(self):
        """Test state serialization."""
        state = CraftState(progress=10, quality=20, durability=30, cp=40,
                           condition=Condition.GOOD, buffs={BuffType.WASTE_NOT: 4})
        data = state.to_dict()

        assert data["condition"] == "good"
        assert data["buffs"] == {"waste_not": 4}
        assert data["combo_action"] is None

    def test_craft_result_failure(self):
        """Test only FINISHED is not a failure."""
        assert not CraftResult.FINISHED.is_failure
        assert CraftResult.DURABILITY_FAILURE.is_failure
        assert CraftResult.RECIPE_EXHAUSTED.is_failure
        assert CraftResult.NO_MOVES_FAILURE.is_failure


class TestSolverConfig:
    """Tests for SolverConfig validation."""

    def test_defaults_are_valid(self):
        """Test the default config validates."""
        SolverConfig().validate()

    @pytest.mark.parametrize("kwargs", [
        {"iterations": 0},
        {"iterations": -5},
        {"time_limit_seconds": 0},
        {"exploration_constant": -0.1},
        {"max_score_weight": 1.5},
        {"workers": 0},
    ])
    def test_invalid_values(self, kwargs):
        """Test unusable settings are rejected."""
        with pytest.raises(InvalidConfigurationError):
            SolverConfig(**kwargs).validate()

    def test_to_dict(self):
        """Test config serialization."""
        data = SolverConfig(mode=SearchMode.STEPWISE, seed=7).to_dict()

        assert data["mode"] == "stepwise"
        assert data["seed"] == 7
        assert data["iterations"] == 20_000
