from pydantic import BaseModel, Field, EmailStr, ConfigDict
from typing import Optional
from datetime import datetime
from enum import Enum


class DonationStatusEnum(str, Enum):
    """Donation status enumeration for Pydantic"""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class CreateDonationRequest(BaseModel):
    """Schema for a donation submitted from the public donate page"""
    donor_name: Optional[str] = Field(None, max_length=255, description="Donor name, optional")
    donor_email: Optional[EmailStr] = Field(None, description="Donor email, optional")
    amount: float = Field(..., description="Donation amount, must be positive")
    message: Optional[str] = Field(None, max_length=1000, description="Optional message from donor")
    payment_method: Optional[str] = Field(None, description="Payment method (card, upi, etc.)")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "donor_name": "Ravi Kumar",
                "donor_email": "ravi@example.com",
                "amount": 500,
                "message": "All the best!"
            }
        }
    )


class UpdateDonationStatusRequest(BaseModel):
    """Schema for a payment confirmation"""
    status: DonationStatusEnum = Field(..., description="New payment status")
    transaction_id: Optional[str] = Field(None, description="Payment provider transaction ID")
    payment_method: Optional[str] = Field(None, description="Payment method used")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "completed",
                "transaction_id": "pay_1234567890",
                "payment_method": "upi"
            }
        }
    )


class DonationResponse(BaseModel):
    """Schema for donation responses"""
    id: int
    affiliate_link_id: int
    donor_name: Optional[str]
    donor_email: Optional[str]
    amount: float
    message: Optional[str]
    payment_status: DonationStatusEnum
    payment_method: Optional[str]
    transaction_id: Optional[str]
    reconciled: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DonationListResponse(BaseModel):
    """Schema for donation list response"""
    donations: list[DonationResponse]
    total: int


class DonationStatsResponse(BaseModel):
    """Donation statistics for one affiliate link"""
    total_donations: int = 0
    total_amount: float = 0
    completed_donations: int = 0
    average_amount: float = 0
