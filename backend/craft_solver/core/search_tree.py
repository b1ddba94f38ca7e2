"""Arena-backed MCTS search tree.

Nodes live in a flat list and refer to each other by index. Each node has at
most one child per action; the child's visit count and reward sum double as
the statistics of the edge leading to it. Identical craft states reached at
different steps are separate nodes (no transposition table).
"""
import math
from typing import Dict, List, Optional

from ..exceptions import TreeCorruptionError
from ..models.craft_state import CraftResult, CraftState


class SearchNode:
    """One visited craft state.

    Visit statistics:
      - visits: iterations that passed through this node
      - total_reward: sum of the rewards of those iterations
      - max_reward: best reward any of them reached
      - rollouts: iterations whose leaf evaluation happened at this node
    """

    __slots__ = [
        'index', 'parent', 'action', 'depth', 'state', 'result',
        'children', 'unexpanded',
        'visits', 'total_reward', 'max_reward', 'rollouts',
    ]

    def __init__(
        self,
        index: int,
        state: CraftState,
        parent: Optional[int] = None,
        action: Optional[str] = None,
        depth: int = 0,
        result: Optional[CraftResult] = None,
        unexpanded: Optional[List[str]] = None,
    ):
        self.index = index
        self.parent = parent
        self.action = action
        self.depth = depth
        self.state = state
        self.result = result
        self.children: Dict[str, int] = {}  # action -> child index, in expansion order
        self.unexpanded: List[str] = list(unexpanded or [])  # in heuristic order
        self.visits: int = 0
        self.total_reward: float = 0.0
        self.max_reward: float = 0.0
        self.rollouts: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.result is not None

    @property
    def is_fully_expanded(self) -> bool:
        return not self.unexpanded

    @property
    def mean_reward(self) -> float:
        """Mean reward W/N. Returns 0 if unvisited."""
        if self.visits == 0:
            return 0.0
        return self.total_reward / self.visits

    def __repr__(self):
        return (
            f"SearchNode(index={self.index}, action={self.action}, "
            f"N={self.visits}, Q={self.mean_reward:.3f}, "
            f"children={len(self.children)})"
        )


class SearchTree:
    """Flat arena of SearchNodes rooted at index 0."""

    ROOT = 0

    def __init__(
        self,
        root_state: CraftState,
        root_actions: List[str],
        root_result: Optional[CraftResult] = None,
    ):
        self.nodes: List[SearchNode] = [
            SearchNode(self.ROOT, root_state, result=root_result, unexpanded=root_actions)
        ]

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def root(self) -> SearchNode:
        return self.nodes[self.ROOT]

    def get(self, index: int) -> SearchNode:
        """Node by index; a bad index means the tree is corrupted."""
        if not 0 <= index < len(self.nodes):
            raise TreeCorruptionError(f"Node index {index} outside arena of {len(self.nodes)} nodes")
        return self.nodes[index]

    def add_child(
        self,
        parent_index: int,
        action: str,
        state: CraftState,
        result: Optional[CraftResult],
        actions: List[str],
    ) -> int:
        """Insert the child reached from `parent_index` by `action`."""
        parent = self.get(parent_index)
        if action in parent.children:
            raise TreeCorruptionError(f"Node {parent_index} already has a child for '{action}'")

        index = len(self.nodes)
        self.nodes.append(SearchNode(
            index,
            state,
            parent=parent_index,
            action=action,
            depth=parent.depth + 1,
            result=result,
            unexpanded=actions,
        ))
        parent.children[action] = index
        return index

    def select_child(
        self, index: int, exploration_constant: float, max_score_weight: float = 0.0
    ) -> int:
        """
        Child of `index` with the highest upper confidence bound.

            UCB = (1 - w) * W/N + w * max + c * sqrt(ln(N_parent) / N)

        With w = 0 this is plain UCB1. Ties keep the earliest expanded child,
        i.e. heuristic order.
        """
        node = self.get(index)
        if not node.children:
            raise TreeCorruptionError(f"Cannot select a child of leaf node {index}")

        log_parent_visits = math.log(node.visits) if node.visits > 0 else 0.0
        best_score = float('-inf')
        best_child = -1

        for child_index in node.children.values():
            child = self.get(child_index)
            if child.visits == 0:
                return child_index

            exploitation = (1.0 - max_score_weight) * child.mean_reward + max_score_weight * child.max_reward
            exploration = exploration_constant * math.sqrt(log_parent_visits / child.visits)
            score = exploitation + exploration

            if score > best_score:
                best_score = score
                best_child = child_index

        return best_child

    def most_visited_child(self, index: int) -> Optional[int]:
        """Most visited child, ties broken by mean reward then expansion order."""
        node = self.get(index)
        best_child: Optional[int] = None
        best_key = None
        for child_index in node.children.values():
            child = self.get(child_index)
            key = (child.visits, child.mean_reward)
            if best_key is None or key > best_key:
                best_key = key
                best_child = child_index
        return best_child

    def backpropagate(self, index: int, reward: float) -> None:
        """Add a leaf evaluation at `index` to every node up to the root."""
        leaf = self.get(index)
        leaf.rollouts += 1

        current: Optional[int] = index
        while current is not None:
            node = self.get(current)
            node.visits += 1
            node.total_reward += reward
            if reward > node.max_reward:
                node.max_reward = reward
            current = node.parent

    def actions_to(self, index: int) -> List[str]:
        """Action sequence from the root to `index`."""
        actions: List[str] = []
        node = self.get(index)
        while node.parent is not None:
            actions.append(node.action)
            node = self.get(node.parent)
        actions.reverse()
        return actions

    def principal_variation(self) -> List[int]:
        """Node indices from the root following the most visited child."""
        path = [self.ROOT]
        node = self.root
        while not node.is_terminal:
            child_index = self.most_visited_child(node.index)
            if child_index is None:
                break
            path.append(child_index)
            node = self.get(child_index)
        return path

    def max_depth(self) -> int:
        return max(node.depth for node in self.nodes)
