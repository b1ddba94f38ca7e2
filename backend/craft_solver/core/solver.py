"""Monte Carlo Tree Search solver for crafting rotations.

Single-player MCTS with UCB1 selection and heuristic rollouts:
1. SELECT: descend through fully expanded nodes by upper confidence bound
2. EXPAND: materialize one untried action (heuristic order) with the simulator
3. ROLLOUT: play the new node out to a terminal state with the heuristic policy
4. BACKPROPAGATE: add the terminal reward to every node on the path

Parallelism is root parallelization: each worker owns its own tree and
random generator and the best rotation wins. Workers share nothing while
searching.
"""
import logging
import random
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional, Tuple, Type

from ..models.actions import ActionCatalog, ActionSpec
from ..models.craft_state import CraftResult, CraftState
from ..models.recipe import CraftContext
from ..models.solver_config import SearchMode, SolverConfig
from .heuristics import CraftingHeuristicPolicy, HeuristicPolicy
from .search_tree import SearchTree
from .simulator import CraftSimulator

logger = logging.getLogger(__name__)

SEED_RANGE = 2 ** 32


@dataclass
class SearchStats:
    """Statistics of one worker's search."""
    worker: int
    seed: int
    iterations: int = 0
    nodes: int = 0
    max_depth: int = 0
    elapsed_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "worker": self.worker,
            "seed": self.seed,
            "iterations": self.iterations,
            "nodes": self.nodes,
            "max_depth": self.max_depth,
            "elapsed_ms": round(self.elapsed_ms, 2),
        }


@dataclass(frozen=True)
class Rotation:
    """An action sequence and the craft state it ended in."""
    actions: Tuple[ActionSpec, ...]
    state: CraftState
    result: Optional[CraftResult]
    reward: float
    stats: Optional[SearchStats] = field(default=None, compare=False)

    # CraftState is mutable, so rotations compare by value but are not hashable
    __hash__ = None

    def __len__(self) -> int:
        return len(self.actions)

    @property
    def action_names(self) -> List[str]:
        return [a.name for a in self.actions]

    @property
    def is_complete(self) -> bool:
        return self.result is not None

    def macro_text(self) -> str:
        """The rotation as in-game macro lines."""
        return "\n".join(a.macro_text() for a in self.actions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "actions": self.action_names,
            "labels": [a.label for a in self.actions],
            "state": self.state.to_dict(),
            "result": self.result.value if self.result else None,
            "reward": round(self.reward, 6),
            "stats": self.stats.to_dict() if self.stats else None,
        }


@dataclass
class Playout:
    """A complete root-to-terminal action sequence seen during a search."""
    actions: List[str]
    state: CraftState
    reward: float


class MCTSSolver:
    """
    One search worker.

    Owns a random generator and builds a fresh SearchTree per search. Not
    thread-safe; parallel solves create one solver per worker.
    """

    def __init__(
        self,
        simulator: CraftSimulator,
        config: SolverConfig,
        policy: Optional[HeuristicPolicy] = None,
        seed: Optional[int] = None,
        worker: int = 0,
    ):
        self.simulator = simulator
        self.config = config
        self.policy = policy or CraftingHeuristicPolicy(simulator)
        self.seed = seed if seed is not None else config.seed
        if self.seed is None:
            self.seed = random.SystemRandom().randrange(SEED_RANGE)
        self.rng = random.Random(self.seed)
        self.stats = SearchStats(worker=worker, seed=self.seed)
        self.best_playout: Optional[Playout] = None

    def _new_tree(self, state: CraftState) -> SearchTree:
        result = self.simulator.check_result(state)
        actions = [] if result is not None else self._ranked_names(state)
        return SearchTree(state, actions, result)

    def _ranked_names(self, state: CraftState) -> List[str]:
        return [a.name for a in self.policy.legal_actions(state)]

    # ===== MCTS phases =====

    def search(self, state: CraftState, deadline: Optional[float] = None) -> SearchTree:
        """
        Run the iteration budget from `state`.

        Stops early at `deadline` (a `time.monotonic()` value), which
        defaults to now plus the configured time limit. At least one
        iteration always runs.
        """
        tree = self._new_tree(state)
        self.best_playout = None
        start = time.monotonic()
        if deadline is None and self.config.time_limit_seconds is not None:
            deadline = start + self.config.time_limit_seconds

        for i in range(self.config.iterations):
            if deadline is not None and i > 0 and time.monotonic() > deadline:
                break
            self._iterate(tree)
            self.stats.iterations += 1

        self.stats.nodes += len(tree)
        self.stats.max_depth = max(self.stats.max_depth, tree.max_depth())
        self.stats.elapsed_ms += (time.monotonic() - start) * 1000
        return tree

    def _iterate(self, tree: SearchTree) -> None:
        leaf_index = self._select(tree)
        leaf = tree.get(leaf_index)

        if not leaf.is_terminal:
            leaf_index = self._expand(tree, leaf_index)
            leaf = tree.get(leaf_index)

        if leaf.is_terminal:
            final_state, rollout_actions = leaf.state, []
        else:
            final_state, rollout_actions = self._rollout(leaf.state)
        reward = self.simulator.context.score(final_state)

        if self.best_playout is None or reward > self.best_playout.reward:
            self.best_playout = Playout(
                actions=tree.actions_to(leaf_index) + rollout_actions,
                state=final_state,
                reward=reward,
            )

        tree.backpropagate(leaf_index, reward)

    def _select(self, tree: SearchTree) -> int:
        """Descend to a terminal node or one with an untried action."""
        index = tree.ROOT
        node = tree.get(index)
        while not node.is_terminal and node.is_fully_expanded:
            index = tree.select_child(
                index,
                self.config.exploration_constant,
                self.config.max_score_weight,
            )
            node = tree.get(index)
        return index

    def _expand(self, tree: SearchTree, index: int) -> int:
        """Materialize the next untried action of `index`."""
        node = tree.get(index)
        action = node.unexpanded.pop(0)
        outcome = self.simulator.step(node.state, action, self.rng)
        actions = [] if outcome.terminal else self._ranked_names(outcome.state)
        return tree.add_child(index, action, outcome.state, outcome.result, actions)

    def _rollout(self, state: CraftState) -> Tuple[CraftState, List[str]]:
        """Play `state` out with the policy; returns the terminal state and the actions taken."""
        simulator = self.simulator
        current = state
        actions: List[str] = []
        while simulator.check_result(current) is None:
            action = self.policy.choose(current, self.rng)
            if action is None:
                break
            current = simulator.step(current, action, self.rng).state
            actions.append(action.name)
        return current, actions

    # ===== Extraction =====

    def _rotation(self, names: List[str], state: CraftState) -> Rotation:
        catalog = self.simulator.catalog
        return Rotation(
            actions=tuple(catalog.get(name) for name in names),
            state=state,
            result=self.simulator.check_result(state),
            reward=self.simulator.context.score(state),
            stats=self.stats,
        )

    def extract(self, tree: SearchTree) -> Rotation:
        """
        Follow the most visited child from the root.

        If that path stops short of a terminal node, the best complete
        playout of the last search is returned instead.
        """
        path = tree.principal_variation()
        last = tree.get(path[-1])
        if not last.is_terminal and self.best_playout is not None:
            return self._rotation(self.best_playout.actions, self.best_playout.state)
        return self._rotation(tree.actions_to(last.index), last.state)

    def solve(self, state: Optional[CraftState] = None) -> Rotation:
        """
        Search from `state` (default: the initial state) and return a rotation.

        The configured time limit bounds the whole solve, including every
        search of stepwise mode.
        """
        if state is None:
            state = self.simulator.context.initial_state()
        deadline = None
        if self.config.time_limit_seconds is not None:
            deadline = time.monotonic() + self.config.time_limit_seconds

        if self.config.mode == SearchMode.ONESHOT:
            return self.extract(self.search(state, deadline))

        # Stepwise: commit the most visited root action, then search again
        names: List[str] = []
        current = state
        while self.simulator.check_result(current) is None:
            tree = self.search(current, deadline)
            child_index = tree.most_visited_child(tree.ROOT)
            if child_index is None:
                break
            child = tree.get(child_index)
            names.append(child.action)
            current = child.state
        return self._rotation(names, current)


def _resolve_seed(config: SolverConfig) -> int:
    if config.seed is not None:
        return config.seed
    return random.SystemRandom().randrange(SEED_RANGE)


def solve(
    context: CraftContext,
    catalog: ActionCatalog,
    config: Optional[SolverConfig] = None,
    policy_cls: Type[HeuristicPolicy] = CraftingHeuristicPolicy,
    state: Optional[CraftState] = None,
) -> Rotation:
    """
    Find a high-reward rotation for a craft.

    Runs `config.workers` independent searches (seeds `seed`, `seed + 1`, ...)
    and returns the rotation with the highest reward; ties go to the lowest
    worker index.

    Raises:
        InvalidConfigurationError: for an unusable config.
    """
    config = config or SolverConfig()
    config.validate()
    seed = _resolve_seed(config)
    simulator = CraftSimulator(context, catalog)
    start = time.monotonic()

    logger.info(
        f"Solving: iterations={config.iterations} workers={config.workers} "
        f"mode={config.mode.value} seed={seed}"
    )

    def run_worker(worker: int) -> Rotation:
        solver = MCTSSolver(
            simulator,
            config,
            policy=policy_cls(simulator),
            seed=seed + worker,
            worker=worker,
        )
        rotation = solver.solve(state)
        logger.debug(
            f"Worker {worker}: reward={rotation.reward:.4f} actions={len(rotation)} "
            f"nodes={solver.stats.nodes}"
        )
        return rotation

    if config.workers > 1:
        with ThreadPoolExecutor(max_workers=config.workers) as executor:
            futures = [executor.submit(run_worker, worker) for worker in range(config.workers)]
            rotations = [future.result() for future in futures]
    else:
        rotations = [run_worker(0)]

    best = rotations[0]
    for rotation in rotations[1:]:
        if rotation.reward > best.reward:
            best = rotation

    elapsed = time.monotonic() - start
    logger.info(
        f"Solved: reward={best.reward:.4f} actions={len(best)} "
        f"result={best.result.value if best.result else 'incomplete'} elapsed={elapsed:.2f}s"
    )
    return best
