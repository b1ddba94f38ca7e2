"""Tests for the arena search tree."""
import pytest
from craft_solver.core.search_tree import SearchTree
from craft_solver.exceptions import TreeCorruptionError
from craft_solver.models.craft_state import CraftResult, CraftState


def make_state(step=0, progress=0):
    return CraftState(progress=progress, quality=0, durability=80, cp=400, step=step)


@pytest.fixture
def tree():
    """Tree with two root actions expanded, one grandchild under 'a'."""
    tree = SearchTree(make_state(), ["a", "b"])
    a = tree.add_child(SearchTree.ROOT, "a", make_state(1), None, ["c"])
    tree.add_child(SearchTree.ROOT, "b", make_state(1, 100), CraftResult.FINISHED, [])
    tree.add_child(a, "c", make_state(2), None, [])
    tree.root.unexpanded.clear()
    tree.get(a).unexpanded.clear()
    return tree


class TestTreeStructure:
    """Tests for arena bookkeeping."""

    def test_root(self):
        """Test a new tree holds only the root."""
        tree = SearchTree(make_state(), ["x", "y"])

        assert len(tree) == 1
        assert tree.root.index == SearchTree.ROOT
        assert tree.root.parent is None
        assert tree.root.unexpanded == ["x", "y"]
        assert not tree.root.is_fully_expanded
        assert not tree.root.is_terminal

    def test_add_child(self, tree):
        """Test children are linked by index with increasing depth."""
        a = tree.root.children["a"]
        c = tree.get(a).children["c"]

        assert tree.get(a).parent == SearchTree.ROOT
        assert tree.get(a).depth == 1
        assert tree.get(c).depth == 2
        assert tree.max_depth() == 2
        assert len(tree) == 4

    def test_duplicate_child_rejected(self, tree):
        """Test an action can only be expanded once per node."""
        with pytest.raises(TreeCorruptionError):
            tree.add_child(SearchTree.ROOT, "a", make_state(1), None, [])

    def test_bad_index(self, tree):
        """Test out-of-arena indices raise."""
        with pytest.raises(TreeCorruptionError):
            tree.get(99)
        with pytest.raises(TreeCorruptionError):
            tree.get(-1)

    def test_select_from_leaf_rejected(self, tree):
        """Test selecting below a childless node raises."""
        leaf = tree.root.children["b"]
        with pytest.raises(TreeCorruptionError):
            tree.select_child(leaf, 1.0)

    def test_terminal_child(self, tree):
        """Test terminal results are stored on the node."""
        b = tree.get(tree.root.children["b"])

        assert b.is_terminal
        assert b.result == CraftResult.FINISHED

    def test_actions_to(self, tree):
        """Test the action path from the root."""
        c = tree.get(tree.root.children["a"]).children["c"]

        assert tree.actions_to(c) == ["a", "c"]
        assert tree.actions_to(SearchTree.ROOT) == []


class TestStatistics:
    """Tests for backpropagation and selection."""

    def test_backpropagate(self, tree):
        """Test a reward reaches every ancestor."""
        a = tree.root.children["a"]
        c = tree.get(a).children["c"]
        tree.backpropagate(c, 0.5)
        tree.backpropagate(c, 0.25)

        for index in (SearchTree.ROOT, a, c):
            node = tree.get(index)
            assert node.visits == 2
            assert node.total_reward == pytest.approx(0.75)
            assert node.max_reward == 0.5
        assert tree.get(c).rollouts == 2
        assert tree.get(a).rollouts == 0

    def test_visits_equal_children_plus_rollouts(self, tree):
        """Test the visit identity after mixed backpropagations."""
        a = tree.root.children["a"]
        b = tree.root.children["b"]
        c = tree.get(a).children["c"]
        for index, reward in [(c, 0.2), (b, 1.0), (a, 0.1), (c, 0.4), (SearchTree.ROOT, 0.0)]:
            tree.backpropagate(index, reward)

        for node in tree.nodes:
            child_visits = sum(tree.get(i).visits for i in node.children.values())
            assert node.visits == child_visits + node.rollouts

    def test_mean_reward(self, tree):
        """Test mean reward is W/N and 0 when unvisited."""
        b = tree.root.children["b"]
        assert tree.get(b).mean_reward == 0.0

        tree.backpropagate(b, 1.0)
        tree.backpropagate(b, 0.5)
        assert tree.get(b).mean_reward == pytest.approx(0.75)

    def test_select_unvisited_first(self, tree):
        """Test unvisited children are tried in expansion order."""
        tree.backpropagate(tree.root.children["a"], 0.9)

        assert tree.select_child(SearchTree.ROOT, 1.0) == tree.root.children["b"]

    def test_select_exploitation(self, tree):
        """Test with no exploration the best mean wins."""
        a = tree.root.children["a"]
        b = tree.root.children["b"]
        tree.backpropagate(a, 0.2)
        tree.backpropagate(b, 0.8)

        assert tree.select_child(SearchTree.ROOT, 0.0) == b

    def test_select_exploration(self, tree):
        """Test exploration favours the less visited child."""
        a = tree.root.children["a"]
        b = tree.root.children["b"]
        for _ in range(20):
            tree.backpropagate(a, 0.5)
        tree.backpropagate(b, 0.4)

        assert tree.select_child(SearchTree.ROOT, 2.0) == b
        assert tree.select_child(SearchTree.ROOT, 0.0) == a

    def test_select_max_score_weight(self, tree):
        """Test a max weight of 1 selects on the best reward seen."""
        a = tree.root.children["a"]
        b = tree.root.children["b"]
        for reward in (0.0, 0.0, 0.9):
            tree.backpropagate(a, reward)
        for reward in (0.5, 0.5, 0.5):
            tree.backpropagate(b, reward)

        assert tree.select_child(SearchTree.ROOT, 0.0, max_score_weight=0.0) == b
        assert tree.select_child(SearchTree.ROOT, 0.0, max_score_weight=1.0) == a

    def test_select_tie_keeps_expansion_order(self, tree):
        """Test ties go to the earliest expanded child."""
        a = tree.root.children["a"]
        b = tree.root.children["b"]
        tree.backpropagate(a, 0.5)
        tree.backpropagate(b, 0.5)

        assert tree.select_child(SearchTree.ROOT, 1.0) == a

    def test_most_visited_child(self, tree):
        """Test extraction picks visits over mean reward."""
        a = tree.root.children["a"]
        b = tree.root.children["b"]
        tree.backpropagate(a, 0.1)
        tree.backpropagate(a, 0.1)
        tree.backpropagate(b, 1.0)

        assert tree.most_visited_child(SearchTree.ROOT) == a

    def test_most_visited_tie_uses_mean(self, tree):
        """Test equal visits fall back to mean reward."""
        a = tree.root.children["a"]
        b = tree.root.children["b"]
        tree.backpropagate(a, 0.1)
        tree.backpropagate(b, 0.7)

        assert tree.most_visited_child(SearchTree.ROOT) == b

    def test_principal_variation(self, tree):
        """Test the most visited path from the root."""
        a = tree.root.children["a"]
        c = tree.get(a).children["c"]
        tree.backpropagate(c, 0.3)
        tree.backpropagate(c, 0.3)
        tree.backpropagate(tree.root.children["b"], 1.0)

        assert tree.principal_variation() == [SearchTree.ROOT, a, c]
