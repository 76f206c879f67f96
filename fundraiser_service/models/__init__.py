from fundraiser_service.models.base import Base
from fundraiser_service.models.profile import Profile
from fundraiser_service.models.fundraising import FundraisingProgress
from fundraiser_service.models.affiliate import AffiliateLink
from fundraiser_service.models.donation import Donation, DonationStatus, ALLOWED_TRANSITIONS

__all__ = [
    "Base",
    "Profile",
    "FundraisingProgress",
    "AffiliateLink",
    "Donation",
    "DonationStatus",
    "ALLOWED_TRANSITIONS",
]
