"""Action catalog API routes."""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...models.schemas import ActionListResponse
from ...models.actions import ActionCatalog
from ..deps import get_action_catalog

router = APIRouter(prefix="/api", tags=["actions"])


@router.get("/actions", response_model=ActionListResponse)
async def list_actions(
    job_level: Optional[int] = Query(default=None, ge=1, le=90, description="Resolve for this job level"),
    recipe_job_level: Optional[int] = Query(default=None, ge=1, le=90, description="Recipe job level"),
    use_manipulation: bool = Query(default=True, description="Whether Manipulation may be used"),
    catalog: ActionCatalog = Depends(get_action_catalog),
) -> ActionListResponse:
    """
    List the action catalog.

    Without `job_level` the full catalog is returned. With it, locked actions
    are dropped and trait upgrades applied.
    """
    if job_level is not None:
        catalog = catalog.for_player(job_level, recipe_job_level, use_manipulation)
    return ActionListResponse(actions=catalog.to_list())
