from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from fundraiser_service.database.database import get_db
from fundraiser_service.services.fundraising import FundraisingService
from fundraiser_service.schemas.fundraising import (
    ProgressDeltaRequest,
    FundraisingProgressResponse,
    LeaderboardResponse,
)
from fundraiser_service.api.deps import require_user
import structlog

router = APIRouter(prefix="/fundraising", tags=["fundraising"])
logger = structlog.get_logger(__name__)


@router.get("/me", response_model=FundraisingProgressResponse)
async def get_my_progress(
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db)
):
    """Get the caller's fundraising progress"""
    progress = await FundraisingService.get_progress(db=db, user_id=user_id)
    if not progress:
        raise HTTPException(status_code=404, detail="No fundraising progress yet")
    return progress


@router.post("/me/progress", response_model=FundraisingProgressResponse)
async def update_my_progress(
    payload: ProgressDeltaRequest,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db)
):
    """Add a self-reported amount to the caller's collected total"""
    return await FundraisingService.apply_progress_delta(db=db, user_id=user_id, delta=payload.amount)


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    limit: int = Query(10, ge=1, le=100, description="Number of fundraisers to return"),
    db: Session = Depends(get_db)
):
    """Top fundraisers by collected amount"""
    entries = await FundraisingService.get_leaderboard(db=db, limit=limit)
    return LeaderboardResponse(entries=entries, total=len(entries))
