from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from fundraiser_service.database.database import get_db
from fundraiser_service.services.affiliate import AffiliateLinkService
from fundraiser_service.services.donation import DonationService
from fundraiser_service.schemas.affiliate import (
    CreateAffiliateLinkRequest,
    UpdateAffiliateLinkRequest,
    AffiliateLinkResponse,
    AffiliateLinkDashboardResponse,
)
from fundraiser_service.schemas.donation import DonationListResponse, DonationStatsResponse
from fundraiser_service.core.exceptions import LinkNotFound
from fundraiser_service.api.deps import require_user, is_admin
import structlog

router = APIRouter(prefix="/affiliate-links", tags=["affiliate-links"])
logger = structlog.get_logger(__name__)


@router.post("", response_model=AffiliateLinkResponse, status_code=201)
async def create_affiliate_link(
    payload: CreateAffiliateLinkRequest,
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db)
):
    """Create the caller's shareable donation link"""
    return await AffiliateLinkService.create_link(db=db, user_id=user_id, data=payload)


@router.get("/me", response_model=AffiliateLinkDashboardResponse)
async def get_my_affiliate_link(
    user_id: str = Depends(require_user),
    db: Session = Depends(get_db)
):
    """The caller's active link with its donation statistics"""
    link = await AffiliateLinkService.get_user_link(db=db, user_id=user_id)
    if not link:
        raise LinkNotFound("You do not have an active affiliate link yet")
    stats = await DonationService.get_donation_stats(db=db, link_id=link.id)
    return AffiliateLinkDashboardResponse(link=link, donation_stats=stats)


@router.patch("/{link_id}", response_model=AffiliateLinkResponse)
async def update_affiliate_link(
    link_id: int,
    payload: UpdateAffiliateLinkRequest,
    user_id: str = Depends(require_user),
    admin: bool = Depends(is_admin),
    db: Session = Depends(get_db)
):
    """Update title, description, target amount or active flag"""
    return await AffiliateLinkService.update_link(
        db=db,
        link_id=link_id,
        caller_id=user_id,
        updates=payload.model_dump(exclude_unset=True),
        is_admin=admin
    )


@router.get("/{link_id}/donations", response_model=DonationListResponse)
async def list_link_donations(
    link_id: int,
    user_id: str = Depends(require_user),
    admin: bool = Depends(is_admin),
    db: Session = Depends(get_db)
):
    """Donations received through one of the caller's links, newest first"""
    await AffiliateLinkService.get_owned_link(db=db, link_id=link_id, caller_id=user_id, is_admin=admin)
    donations = await DonationService.list_donations(db=db, link_id=link_id)
    return DonationListResponse(donations=donations, total=len(donations))


@router.get("/{link_id}/donations/stats", response_model=DonationStatsResponse)
async def get_link_donation_stats(
    link_id: int,
    user_id: str = Depends(require_user),
    admin: bool = Depends(is_admin),
    db: Session = Depends(get_db)
):
    """Donation statistics for one of the caller's links"""
    await AffiliateLinkService.get_owned_link(db=db, link_id=link_id, caller_id=user_id, is_admin=admin)
    return await DonationService.get_donation_stats(db=db, link_id=link_id)
