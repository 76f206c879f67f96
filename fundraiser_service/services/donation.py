from sqlalchemy import update, func
from sqlalchemy.orm import Session
from typing import List, Optional, Union
import structlog

from fundraiser_service.models import (
    AffiliateLink,
    Donation,
    DonationStatus,
    FundraisingProgress,
    ALLOWED_TRANSITIONS,
)
from fundraiser_service.schemas.donation import (
    CreateDonationRequest,
    DonationResponse,
    DonationStatsResponse,
)
from fundraiser_service.services.aggregates import compute_donation_stats
from fundraiser_service.services.common import run_guarded
from fundraiser_service.services.validation import validate_amount
from fundraiser_service.cache.redis import redis_cache
from fundraiser_service.core.exceptions import (
    DonationNotFound,
    InvalidStatusTransition,
    LinkInactive,
)
from fundraiser_service.middleware.metrics import (
    donations_recorded_total,
    donation_status_transitions_total,
    donations_reconciled_total,
)
from fundraiser_service.middleware.tracing import get_tracer

logger = structlog.get_logger(__name__)
tracer = get_tracer(__name__)


def to_donation_response(donation: Donation) -> DonationResponse:
    return DonationResponse(
        id=donation.id,
        affiliate_link_id=donation.affiliate_link_id,
        donor_name=donation.donor_name,
        donor_email=donation.donor_email,
        amount=donation.amount,
        message=donation.message,
        payment_status=donation.payment_status.value,
        payment_method=donation.payment_method,
        transaction_id=donation.transaction_id,
        reconciled=donation.reconciled_at is not None,
        created_at=donation.created_at,
        updated_at=donation.updated_at,
    )


def reconcile_donation(db: Session, donation: Donation) -> bool:
    """
    Add a completed donation to its owner's collected total, at most once.

    The donation id is the dedupe key: ``reconciled_at`` is stamped with a
    conditional UPDATE and the total only moves when that stamp lands.
    Runs inside the caller's transaction.
    """
    with tracer.start_as_current_span("reconcile_donation"):
        stamped = db.execute(
            update(Donation)
            .where(Donation.id == donation.id, Donation.reconciled_at.is_(None))
            .values(reconciled_at=func.now())
            .execution_options(synchronize_session=False)
        ).rowcount
        if not stamped:
            logger.info("Donation already reconciled", donation_id=donation.id)
            return False

        link = db.query(AffiliateLink).filter(AffiliateLink.id == donation.affiliate_link_id).first()
        incremented = db.execute(
            update(FundraisingProgress)
            .where(FundraisingProgress.user_id == link.user_id)
            .values(collected_amount=FundraisingProgress.collected_amount + donation.amount)
            .execution_options(synchronize_session=False)
        ).rowcount
        if not incremented:
            # Owner was never seeded; start their progress from the link target
            db.add(FundraisingProgress(
                user_id=link.user_id,
                target_amount=link.target_amount,
                collected_amount=donation.amount,
            ))
            logger.info("Fundraising progress created from donation", user_id=link.user_id)

        logger.info("Donation reconciled", donation_id=donation.id, user_id=link.user_id,
                    amount=donation.amount)
        return True


class DonationService:
    """Business logic for donation operations"""

    @staticmethod
    async def record_donation(db: Session, link_id: int, donation_data: CreateDonationRequest) -> DonationResponse:
        """
        Record a donation as pending against an active link.

        Collected totals are untouched until the payment is confirmed.
        """
        amount = validate_amount(donation_data.amount)

        def db_create():
            link = db.query(AffiliateLink).filter(
                AffiliateLink.id == link_id,
                AffiliateLink.is_active.is_(True)
            ).first()
            if not link:
                raise LinkInactive()

            db_donation = Donation(
                affiliate_link_id=link.id,
                donor_name=donation_data.donor_name,
                donor_email=donation_data.donor_email,
                amount=amount,
                message=donation_data.message or None,
                payment_method=donation_data.payment_method,
                payment_status=DonationStatus.PENDING,
            )
            db.add(db_donation)
            db.commit()
            db.refresh(db_donation)
            return db_donation

        db_donation = await run_guarded(db, db_create, "create", "donations")
        donations_recorded_total.inc()
        logger.info("Donation recorded",
                    donation_id=db_donation.id,
                    affiliate_link_id=link_id,
                    amount=amount)
        return to_donation_response(db_donation)

    @staticmethod
    async def get_donation(db: Session, donation_id: int) -> Optional[DonationResponse]:
        """Get a donation by ID"""
        def db_query():
            return db.query(Donation).filter(Donation.id == donation_id).first()

        db_donation = await run_guarded(db, db_query, "read", "donations")
        if not db_donation:
            logger.warning("Donation not found", donation_id=donation_id)
            return None
        return to_donation_response(db_donation)

    @staticmethod
    async def list_donations(db: Session, link_id: int) -> List[DonationResponse]:
        """Donations for one link, newest first"""
        def db_query():
            return (
                db.query(Donation)
                .filter(Donation.affiliate_link_id == link_id)
                .order_by(Donation.created_at.desc(), Donation.id.desc())
                .all()
            )

        donations = await run_guarded(db, db_query, "list", "donations")
        logger.info("Donations retrieved", affiliate_link_id=link_id, count=len(donations))
        return [to_donation_response(donation) for donation in donations]

    @staticmethod
    async def get_donation_stats(db: Session, link_id: int) -> DonationStatsResponse:
        """Counts and completed totals for one link; all zero when there are none"""
        def db_query():
            return db.query(Donation.amount, Donation.payment_status).filter(
                Donation.affiliate_link_id == link_id
            ).all()

        rows = await run_guarded(db, db_query, "aggregate", "donations")
        return DonationStatsResponse(**compute_donation_stats(rows))

    @staticmethod
    async def update_donation_status(
        db: Session,
        donation_id: int,
        status: Union[DonationStatus, str],
        transaction_id: Optional[str] = None,
        payment_method: Optional[str] = None,
    ) -> DonationResponse:
        """
        Apply a payment outcome to a pending donation.

        pending -> completed reconciles the amount into the owner's total.
        Re-delivering the current status is a no-op; any other change is
        rejected with InvalidStatusTransition.
        """
        new_status = DonationStatus(getattr(status, "value", status))

        def db_update():
            db_donation = (
                db.query(Donation)
                .filter(Donation.id == donation_id)
                .with_for_update()
                .first()
            )
            if not db_donation:
                raise DonationNotFound(f"Donation {donation_id} not found")

            current = db_donation.payment_status
            if current == new_status:
                # Redelivery; finish a reconciliation that never happened
                reconciled = False
                if new_status == DonationStatus.COMPLETED and db_donation.reconciled_at is None:
                    reconciled = reconcile_donation(db, db_donation)
                    db.commit()
                    db.refresh(db_donation)
                return db_donation, False, reconciled

            if new_status not in ALLOWED_TRANSITIONS[current]:
                raise InvalidStatusTransition(
                    f"Cannot move donation {donation_id} from {current.value} to {new_status.value}"
                )

            db_donation.payment_status = new_status
            if transaction_id:
                db_donation.transaction_id = transaction_id
            if payment_method:
                db_donation.payment_method = payment_method
            db.flush()

            reconciled = False
            if new_status == DonationStatus.COMPLETED:
                reconciled = reconcile_donation(db, db_donation)

            db.commit()
            db.refresh(db_donation)
            return db_donation, True, reconciled

        db_donation, changed, reconciled = await run_guarded(db, db_update, "update", "donations")

        if changed:
            donation_status_transitions_total.labels(status=new_status.value).inc()
            logger.info("Donation status updated", donation_id=donation_id, new_status=new_status.value)
        if reconciled:
            donations_reconciled_total.inc()
            redis_cache.invalidate_aggregates()
        return to_donation_response(db_donation)
