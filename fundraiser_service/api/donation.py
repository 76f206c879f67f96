from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from fundraiser_service.database.database import get_db
from fundraiser_service.services.affiliate import AffiliateLinkService
from fundraiser_service.services.donation import DonationService
from fundraiser_service.schemas.affiliate import PublicAffiliateLinkResponse
from fundraiser_service.schemas.donation import (
    CreateDonationRequest,
    UpdateDonationStatusRequest,
    DonationResponse,
)
from fundraiser_service.kafka.producer import get_kafka_producer, DonationEventProducer
from fundraiser_service.core.exceptions import LinkInactive
from fundraiser_service.api.deps import require_admin
import structlog

router = APIRouter(tags=["donations"])
logger = structlog.get_logger(__name__)


@router.get("/donate/{link_code}", response_model=PublicAffiliateLinkResponse)
async def get_donate_page(
    link_code: str,
    db: Session = Depends(get_db)
):
    """Public donate page data for a shared link"""
    link = await AffiliateLinkService.resolve_link(db=db, link_code=link_code)
    if not link:
        raise LinkInactive()
    return link


@router.post("/donate/{link_code}", response_model=DonationResponse, status_code=201)
async def create_donation(
    link_code: str,
    donation_data: CreateDonationRequest,
    db: Session = Depends(get_db),
    kafka_producer: DonationEventProducer = Depends(get_kafka_producer)
):
    """
    Record a donation from the public donate page
    Flow:
    1. Resolve the link code (inactive and unknown codes are rejected alike)
    2. Create the donation with PENDING status
    3. Publish donation.created (payment confirmation arrives separately)
    """
    logger.info("Creating donation", link_code=link_code, amount=donation_data.amount)

    link = await AffiliateLinkService.resolve_link(db=db, link_code=link_code)
    if not link:
        raise LinkInactive()

    donation = await DonationService.record_donation(db=db, link_id=link.id, donation_data=donation_data)
    await kafka_producer.publish_donation_event("donation.created", donation)
    return donation


@router.get("/donations/{donation_id}", response_model=DonationResponse)
async def get_donation(
    donation_id: int,
    admin_id: str = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Get a donation by ID"""
    donation = await DonationService.get_donation(db=db, donation_id=donation_id)
    if not donation:
        raise HTTPException(status_code=404, detail="Donation not found")
    return donation


@router.patch("/donations/{donation_id}/status", response_model=DonationResponse)
async def update_donation_status(
    donation_id: int,
    payload: UpdateDonationStatusRequest,
    admin_id: str = Depends(require_admin),
    db: Session = Depends(get_db),
    kafka_producer: DonationEventProducer = Depends(get_kafka_producer)
):
    """Record a payment outcome (completed donations are added to the owner's total)"""
    donation = await DonationService.update_donation_status(
        db=db,
        donation_id=donation_id,
        status=payload.status,
        transaction_id=payload.transaction_id,
        payment_method=payload.payment_method
    )
    await kafka_producer.publish_donation_event("donation.status_changed", donation)
    return donation
