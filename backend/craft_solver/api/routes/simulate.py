"""Action replay API routes."""
import random

from fastapi import APIRouter, Depends, HTTPException

from ...exceptions import IllegalActionError, InvalidConfigurationError
from ...models.schemas import (
    SimulateRequest,
    SimulateResponse,
    SimulationStepItem,
    ErrorResponse,
)
from ...models.actions import ActionCatalog
from ...models.recipe import CraftContext
from ...core.simulator import CraftSimulator
from ..deps import get_action_catalog

router = APIRouter(prefix="/api", tags=["simulate"])


@router.post(
    "/simulate",
    response_model=SimulateResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Replay an action list",
)
async def simulate_actions(
    request: SimulateRequest,
    catalog: ActionCatalog = Depends(get_action_catalog),
) -> SimulateResponse:
    """
    Replay actions from the initial state and report every step.

    Actions after the craft has ended are ignored. An unknown or unusable
    action is a 400.
    """
    try:
        player = request.player.to_model()
        recipe = request.recipe.to_model()
        options = request.options.to_model()
        context = CraftContext.from_player(player, recipe, options)
        resolved = catalog.for_player(player.job_level, recipe.job_level, options.use_manipulation)
        simulator = CraftSimulator(context, resolved)

        replay = simulator.simulate_actions(request.actions, random.Random(request.seed))
    except (IllegalActionError, InvalidConfigurationError) as e:
        raise HTTPException(status_code=400, detail=f"Simulation failed: {str(e)}")

    legal = [] if replay.result is not None else simulator.legal_actions(replay.state)
    return SimulateResponse(
        steps=[SimulationStepItem(**outcome.to_dict()) for outcome in replay.outcomes],
        state=replay.state.to_dict(),
        result=replay.result.value if replay.result else None,
        reward=round(context.score(replay.state), 6),
        legal_actions=[a.name for a in legal],
    )
