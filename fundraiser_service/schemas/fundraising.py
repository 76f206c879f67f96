from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional


class CreateProgressRequest(BaseModel):
    """Request schema for seeding a user's fundraising target"""
    user_id: str = Field(..., min_length=1, description="Owning user ID")
    target_amount: float = Field(..., description="Fundraising target, must be positive")
    full_name: Optional[str] = Field(None, description="Display name, stored on the profile if new")
    email: Optional[str] = Field(None, description="Email, stored on the profile if new")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "user_id": "5f0c8a4e-1b7e-4a43-9d3e-2a1f7e1f8b11",
                "target_amount": 5000,
                "full_name": "Asha Verma",
                "email": "asha@example.com"
            }
        }
    )


class ProgressDeltaRequest(BaseModel):
    """Request schema for a self-reported progress update"""
    amount: float = Field(..., description="Amount to add to the collected total, must be positive")

    model_config = ConfigDict(
        json_schema_extra={"example": {"amount": 250}}
    )


class FundraisingProgressResponse(BaseModel):
    """Response schema for one fundraiser"""
    id: int
    user_id: str
    target_amount: float
    collected_amount: float
    progress_percentage: float
    remaining_amount: float
    progress_tier: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 1,
                "user_id": "5f0c8a4e-1b7e-4a43-9d3e-2a1f7e1f8b11",
                "target_amount": 5000,
                "collected_amount": 1250,
                "progress_percentage": 25.0,
                "remaining_amount": 3750,
                "progress_tier": "low",
                "full_name": "Asha Verma",
                "email": "asha@example.com",
                "created_at": "2025-05-01T10:00:00Z",
                "updated_at": "2025-05-03T08:30:00Z"
            }
        }
    )


class FundraisingListResponse(BaseModel):
    """Response schema for a page of fundraisers"""
    fundraisers: list[FundraisingProgressResponse]
    total: int


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    full_name: Optional[str] = None
    collected_amount: float
    target_amount: float
    progress_percentage: float


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntry]
    total: int


class FundraisingStatsResponse(BaseModel):
    """Aggregate statistics across all fundraisers"""
    total_raised: float
    total_fundraisers: int
    average_raised: float
    average_target: float
    completion_rate: float

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "total_raised": 750,
                "total_fundraisers": 2,
                "average_raised": 375,
                "average_target": 750,
                "completion_rate": 50.0
            }
        }
    )
