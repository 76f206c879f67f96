from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class PaymentEvent(BaseModel):
    """Schema for events consumed from the payment events topic"""
    event_type: str = Field(..., description="payment.completed or payment.failed")
    donation_id: int
    transaction_id: Optional[str] = None
    payment_method: Optional[str] = None
    timestamp: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "event_type": "payment.completed",
                "donation_id": 42,
                "transaction_id": "pay_1234567890",
                "payment_method": "upi",
                "timestamp": "2025-05-01T12:00:00Z"
            }
        }
    )


class DonationEvent(BaseModel):
    """Schema for events published about donations"""
    event_type: str = Field(..., description="donation.created or donation.status_changed")
    donation_id: int
    affiliate_link_id: int
    amount: float
    payment_status: str
    timestamp: Optional[str] = None
