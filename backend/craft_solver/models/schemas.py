"""Pydantic schemas for API request/response validation."""
from pydantic import BaseModel, Field
from typing import Dict, List, Any, Optional

from .recipe import Player, Recipe, CraftOptions, DEFAULT_MAX_STEPS
from .conditions import STANDARD_CONDITIONS_FLAG


class PlayerSchema(BaseModel):
    """Crafter stats."""
    job_level: int = Field(..., ge=1, le=90, description="Job level (1-90)")
    craftsmanship: int = Field(..., ge=1, le=5000, description="Craftsmanship stat")
    control: int = Field(..., ge=1, le=5000, description="Control stat")
    cp: int = Field(..., ge=1, le=1000, description="Maximum CP")

    def to_model(self) -> Player:
        return Player(**self.model_dump())


class RecipeSchema(BaseModel):
    """Recipe data."""
    recipe_level: int = Field(..., ge=1, description="Recipe level")
    job_level: int = Field(..., ge=1, le=90, description="Recipe job level")
    progress: int = Field(..., ge=1, description="Progress required to finish")
    quality: int = Field(..., ge=0, description="Maximum quality")
    durability: int = Field(..., ge=1, description="Starting durability")
    progress_div: int = Field(..., ge=1, description="Progress divider")
    progress_mod: int = Field(default=100, ge=1, description="Progress modifier (percent)")
    quality_div: int = Field(..., ge=1, description="Quality divider")
    quality_mod: int = Field(default=100, ge=1, description="Quality modifier (percent)")
    stars: int = Field(default=0, ge=0, le=5, description="Recipe stars")
    is_expert: bool = Field(default=False, description="Expert recipe (extra conditions)")
    conditions_flag: int = Field(
        default=STANDARD_CONDITIONS_FLAG, ge=1, description="Bit flag of conditions the recipe can roll"
    )

    def to_model(self) -> Recipe:
        return Recipe(**self.model_dump())


class CraftOptionsSchema(BaseModel):
    """Per-craft options."""
    max_steps: int = Field(default=DEFAULT_MAX_STEPS, ge=1, le=100, description="Step limit")
    starting_quality: Optional[int] = Field(default=None, ge=0, description="Quality before the first step")
    quality_target: Optional[int] = Field(default=None, ge=0, description="Quality to aim for (default: max)")
    use_manipulation: bool = Field(default=True, description="Whether Manipulation may be used")

    def to_model(self) -> CraftOptions:
        return CraftOptions(**self.model_dump())


class SolverConfigSchema(BaseModel):
    """Solver parameters. Missing values fall back to the server settings."""
    iterations: Optional[int] = Field(default=None, ge=1, description="MCTS iterations per search")
    time_limit_seconds: Optional[float] = Field(default=None, gt=0, description="Time limit for the whole solve")
    exploration_constant: Optional[float] = Field(default=None, ge=0, description="UCB exploration constant")
    max_score_weight: float = Field(default=0.0, ge=0, le=1, description="Weight of max over mean reward")
    workers: Optional[int] = Field(default=None, ge=1, le=32, description="Parallel root workers")
    seed: Optional[int] = Field(default=None, ge=0, description="RNG seed (random if omitted)")
    mode: Optional[str] = Field(default=None, description="Search mode (oneshot/stepwise)")


class SolveRequest(BaseModel):
    """Request schema for rotation solving."""
    player: PlayerSchema = Field(..., description="Crafter stats")
    recipe: RecipeSchema = Field(..., description="Recipe to craft")
    options: CraftOptionsSchema = Field(default_factory=CraftOptionsSchema, description="Craft options")
    config: SolverConfigSchema = Field(default_factory=SolverConfigSchema, description="Solver parameters")


class SolveResponse(BaseModel):
    """Response schema for rotation solving."""
    actions: List[str] = Field(..., description="Action names in order")
    labels: List[str] = Field(..., description="Action display names in order")
    macro: str = Field(..., description="Rotation as macro text")
    state: Dict[str, Any] = Field(..., description="Final craft state")
    result: Optional[str] = Field(default=None, description="Craft result (None if incomplete)")
    reward: float = Field(..., ge=0, le=1, description="Rotation reward (0-1)")
    stats: Dict[str, Any] = Field(default={}, description="Search statistics")


class SimulateRequest(BaseModel):
    """Request schema for replaying an action list."""
    player: PlayerSchema = Field(..., description="Crafter stats")
    recipe: RecipeSchema = Field(..., description="Recipe to craft")
    options: CraftOptionsSchema = Field(default_factory=CraftOptionsSchema, description="Craft options")
    actions: List[str] = Field(..., description="Action names to apply in order")
    seed: Optional[int] = Field(default=None, ge=0, description="RNG seed for success/condition rolls")


class SimulationStepItem(BaseModel):
    """One replayed step."""
    action: str = Field(..., description="Action name")
    success: bool = Field(..., description="Whether the success roll passed")
    condition: str = Field(..., description="Condition of the next step")
    terminal: bool = Field(..., description="Whether the craft ended on this step")
    result: Optional[str] = Field(default=None, description="Craft result if terminal")
    state: Dict[str, Any] = Field(..., description="State after the step")


class SimulateResponse(BaseModel):
    """Response schema for action replay."""
    steps: List[SimulationStepItem] = Field(default=[], description="Per-step outcomes")
    state: Dict[str, Any] = Field(..., description="Final craft state")
    result: Optional[str] = Field(default=None, description="Craft result (None if still in progress)")
    reward: float = Field(..., ge=0, le=1, description="Reward of the final state")
    legal_actions: List[str] = Field(default=[], description="Actions usable in the final state")


class ActionListResponse(BaseModel):
    """Response schema for the action catalog."""
    actions: List[Dict[str, Any]] = Field(..., description="Available actions")


class ErrorResponse(BaseModel):
    """Error response schema."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(default=None, description="Detailed error information")
