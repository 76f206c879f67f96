from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional

from fundraiser_service.schemas.donation import DonationStatsResponse


class CreateAffiliateLinkRequest(BaseModel):
    """Request schema for provisioning the caller's donation link"""
    title: str = Field(..., min_length=1, max_length=255, description="Title shown on the donate page")
    description: Optional[str] = Field(None, description="Optional pitch shown to donors")
    target_amount: float = Field(..., description="Fundraising target, must be positive")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Help me reach my internship goal",
                "description": "Every rupee goes to the education fund.",
                "target_amount": 5000
            }
        }
    )


class UpdateAffiliateLinkRequest(BaseModel):
    """Partial update; only these four fields may change"""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    target_amount: Optional[float] = None
    is_active: Optional[bool] = None

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "title": "Almost there!",
                "target_amount": 7500
            }
        }
    )


class AffiliateLinkResponse(BaseModel):
    """Owner's view of an affiliate link"""
    id: int
    user_id: str
    link_code: str
    title: str
    description: Optional[str]
    target_amount: float
    is_active: bool
    shareable_url: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AffiliateLinkDashboardResponse(BaseModel):
    """Owner's link together with its donation statistics"""
    link: AffiliateLinkResponse
    donation_stats: DonationStatsResponse


class PublicAffiliateLinkResponse(BaseModel):
    """What anyone with the link sees on /donate/{link_code}"""
    id: int
    link_code: str
    title: str
    description: Optional[str]
    target_amount: float
    owner_name: Optional[str] = None
    collected_amount: float
    progress_percentage: float
    shareable_url: str
