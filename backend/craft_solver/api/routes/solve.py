"""Rotation solving API routes."""
from fastapi import APIRouter, Depends, HTTPException

from ...config import Settings
from ...exceptions import IllegalActionError, InvalidConfigurationError
from ...models.schemas import SolveRequest, SolveResponse, ErrorResponse
from ...models.actions import ActionCatalog
from ...models.recipe import CraftContext
from ...core.solver import solve
from ...utils.helpers import build_solver_config, validate_solver_request
from ..deps import get_action_catalog, get_app_settings

router = APIRouter(prefix="/api", tags=["solve"])


@router.post(
    "/solve",
    response_model=SolveResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Find a crafting rotation",
    description="""
    Search for a rotation that finishes the craft with as much quality as possible.

    **Modes:**
    - `oneshot`: one search, the rotation is read off the most visited path
    - `stepwise`: search, commit the most visited action, search again (slower, stronger)

    Omitted solver parameters fall back to the server defaults. With a fixed
    `seed` the same request always returns the same rotation.
    """,
)
def solve_rotation(
    request: SolveRequest,
    catalog: ActionCatalog = Depends(get_action_catalog),
    settings: Settings = Depends(get_app_settings),
) -> SolveResponse:
    """
    Solve a craft.

    Returns:
        SolveResponse with the action list, macro text, final state and reward.
    """
    valid, error = validate_solver_request(request.config, settings)
    if not valid:
        raise HTTPException(status_code=400, detail=error)

    try:
        player = request.player.to_model()
        recipe = request.recipe.to_model()
        options = request.options.to_model()
        context = CraftContext.from_player(player, recipe, options)
        resolved = catalog.for_player(player.job_level, recipe.job_level, options.use_manipulation)
        config = build_solver_config(request.config, settings)

        rotation = solve(context, resolved, config)
    except (IllegalActionError, InvalidConfigurationError) as e:
        raise HTTPException(status_code=400, detail=f"Solve failed: {str(e)}")

    data = rotation.to_dict()
    return SolveResponse(
        actions=data["actions"],
        labels=data["labels"],
        macro=rotation.macro_text(),
        state=data["state"],
        result=data["result"],
        reward=data["reward"],
        stats={"config": config.to_dict(), "search": data["stats"] or {}},
    )
