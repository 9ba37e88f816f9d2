from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query

from yaymon.api.deps import get_repositories
from yaymon.repositories import Repositories

router = APIRouter(prefix="/media", tags=["media"])


@router.get("/resolve", response_model=Dict[str, Optional[str]])
async def resolve(ref: str = Query(...), repos: Repositories = Depends(get_repositories)):
    """Display URL for a stored media reference or an external link."""
    return {"ref": ref, "url": await repos.blobs.resolve(ref)}
