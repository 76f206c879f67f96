from .fundraising import (
    CreateProgressRequest,
    ProgressDeltaRequest,
    FundraisingProgressResponse,
    FundraisingListResponse,
    LeaderboardEntry,
    LeaderboardResponse,
    FundraisingStatsResponse,
)
from .donation import (
    DonationStatusEnum,
    CreateDonationRequest,
    UpdateDonationStatusRequest,
    DonationResponse,
    DonationListResponse,
    DonationStatsResponse,
)
from .affiliate import (
    CreateAffiliateLinkRequest,
    UpdateAffiliateLinkRequest,
    AffiliateLinkResponse,
    AffiliateLinkDashboardResponse,
    PublicAffiliateLinkResponse,
)
from .events import PaymentEvent, DonationEvent

__all__ = [
    "CreateProgressRequest",
    "ProgressDeltaRequest",
    "FundraisingProgressResponse",
    "FundraisingListResponse",
    "LeaderboardEntry",
    "LeaderboardResponse",
    "FundraisingStatsResponse",
    "DonationStatusEnum",
    "CreateDonationRequest",
    "UpdateDonationStatusRequest",
    "DonationResponse",
    "DonationListResponse",
    "DonationStatsResponse",
    "CreateAffiliateLinkRequest",
    "UpdateAffiliateLinkRequest",
    "AffiliateLinkResponse",
    "AffiliateLinkDashboardResponse",
    "PublicAffiliateLinkResponse",
    "PaymentEvent",
    "DonationEvent",
]
