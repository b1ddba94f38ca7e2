"""Core solver package.

This package contains the craft simulator, the heuristic policies, the
search tree and the MCTS solver.
"""
from .simulator import CraftSimulator, StepOutcome, ActionPreview, ReplayResult, simulate
from .heuristics import HeuristicPolicy, CraftingHeuristicPolicy, UniformPolicy
from .search_tree import SearchTree, SearchNode
from .solver import MCTSSolver, Playout, Rotation, SearchStats, solve

__all__ = [
    "CraftSimulator",
    "StepOutcome",
    "ActionPreview",
    "ReplayResult",
    "simulate",
    "HeuristicPolicy",
    "CraftingHeuristicPolicy",
    "UniformPolicy",
    "SearchTree",
    "SearchNode",
    "MCTSSolver",
    "Playout",
    "Rotation",
    "SearchStats",
    "solve",
]
