from sqlalchemy import Column, Integer, String, Float, DateTime, Enum, Text, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import relationship
from fundraiser_service.models.base import Base
import enum


class DonationStatus(enum.Enum):
    """Payment status of a donation"""
    PENDING = "pending"  # Recorded from the public form
    COMPLETED = "completed"  # Confirmed by the payment collaborator
    FAILED = "failed"  # Payment rejected


# pending -> completed | failed, never reversed
ALLOWED_TRANSITIONS = {
    DonationStatus.PENDING: {DonationStatus.COMPLETED, DonationStatus.FAILED},
    DonationStatus.COMPLETED: set(),
    DonationStatus.FAILED: set(),
}


class Donation(Base):
    """One contribution attempt against an affiliate link"""
    __tablename__ = "donations"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_donation_amount_positive"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    affiliate_link_id = Column(Integer, ForeignKey("affiliate_links.id"), nullable=False, index=True)
    donor_name = Column(String, nullable=True)
    donor_email = Column(String, nullable=True)
    amount = Column(Float, nullable=False)
    message = Column(Text, nullable=True)
    payment_status = Column(
        Enum(DonationStatus, name="payment_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=DonationStatus.PENDING,
    )
    payment_method = Column(String, nullable=True)  # e.g. 'card', 'upi'
    transaction_id = Column(String, nullable=True, index=True)  # External payment provider ID
    # Set once when the amount has been added to the owner's collected total
    reconciled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    affiliate_link = relationship("AffiliateLink", back_populates="donations")

    def __repr__(self):
        return (
            f"<Donation(id={self.id}, affiliate_link_id={self.affiliate_link_id}, "
            f"amount={self.amount}, status='{self.payment_status.value}')>"
        )
