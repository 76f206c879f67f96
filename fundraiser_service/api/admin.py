from datetime import date
from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session
from fundraiser_service.database.database import get_db
from fundraiser_service.services.fundraising import FundraisingService
from fundraiser_service.schemas.fundraising import (
    CreateProgressRequest,
    FundraisingProgressResponse,
    FundraisingListResponse,
    FundraisingStatsResponse,
)
from fundraiser_service.api.deps import require_admin
import structlog

router = APIRouter(prefix="/admin/fundraising", tags=["admin"])
logger = structlog.get_logger(__name__)


@router.get("", response_model=FundraisingListResponse)
async def list_fundraisers(
    skip: int = Query(0, ge=0, description="Number of fundraisers to skip"),
    limit: int = Query(100, ge=1, le=500, description="Number of fundraisers to return"),
    admin_id: str = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """All fundraisers, highest collected amount first"""
    fundraisers, total = await FundraisingService.list_all(db=db, skip=skip, limit=limit)
    return FundraisingListResponse(fundraisers=fundraisers, total=total)


@router.post("", response_model=FundraisingProgressResponse, status_code=201)
async def create_fundraiser(
    payload: CreateProgressRequest,
    admin_id: str = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Seed a user's fundraising target"""
    logger.info("Admin seeding fundraising progress", admin_id=admin_id, user_id=payload.user_id)
    return await FundraisingService.create_progress(db=db, data=payload)


@router.get("/stats", response_model=FundraisingStatsResponse)
async def get_stats(
    admin_id: str = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Aggregate statistics across every fundraiser"""
    return await FundraisingService.get_global_stats(db=db)


@router.get("/export")
async def export_csv(
    admin_id: str = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Download every fundraiser as CSV"""
    content = await FundraisingService.export_csv(db=db)
    filename = f"fundraising-data-{date.today().isoformat()}.csv"
    logger.info("Admin exported fundraising CSV", admin_id=admin_id, filename=filename)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
