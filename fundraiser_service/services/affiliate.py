import secrets
from sqlalchemy.orm import Session
from typing import Optional
import structlog

from fundraiser_service.models import AffiliateLink, FundraisingProgress
from fundraiser_service.schemas.affiliate import (
    CreateAffiliateLinkRequest,
    AffiliateLinkResponse,
    PublicAffiliateLinkResponse,
)
from fundraiser_service.services.aggregates import compute_progress_percentage
from fundraiser_service.services.common import run_guarded, ensure_profile
from fundraiser_service.services.validation import validate_amount
from fundraiser_service.core.config import get_settings
from fundraiser_service.core.exceptions import (
    AlreadyExists,
    InvalidLinkUpdate,
    LinkNotFound,
    Unauthorized,
)

logger = structlog.get_logger(__name__)

UPDATABLE_FIELDS = frozenset({"title", "description", "target_amount", "is_active"})
LINK_CODE_BYTES = 8


def shareable_url(link_code: str) -> str:
    """Public donate page URL for a link code"""
    base_url = get_settings().public_base_url.rstrip("/")
    return f"{base_url}/donate/{link_code}"


def to_link_response(link: AffiliateLink) -> AffiliateLinkResponse:
    return AffiliateLinkResponse(
        id=link.id,
        user_id=link.user_id,
        link_code=link.link_code,
        title=link.title,
        description=link.description,
        target_amount=link.target_amount,
        is_active=link.is_active,
        shareable_url=shareable_url(link.link_code),
        created_at=link.created_at,
        updated_at=link.updated_at,
    )


def _generate_unique_code(db: Session) -> str:
    code = secrets.token_urlsafe(LINK_CODE_BYTES)
    # Collisions are very unlikely, but the code must be globally unique
    while db.query(AffiliateLink.id).filter(AffiliateLink.link_code == code).first():
        code = secrets.token_urlsafe(LINK_CODE_BYTES)
    return code


def _validate_updates(updates: dict) -> dict:
    disallowed = sorted(set(updates) - UPDATABLE_FIELDS)
    if disallowed:
        raise InvalidLinkUpdate(f"Cannot update field(s): {', '.join(disallowed)}")

    cleaned = dict(updates)
    if "title" in cleaned and not (cleaned["title"] or "").strip():
        raise InvalidLinkUpdate("title cannot be empty")
    if "is_active" in cleaned and not isinstance(cleaned["is_active"], bool):
        raise InvalidLinkUpdate("is_active must be true or false")
    if "target_amount" in cleaned:
        cleaned["target_amount"] = validate_amount(cleaned["target_amount"], "target_amount")
    return cleaned


class AffiliateLinkService:
    """Business logic for shareable donation links"""

    @staticmethod
    async def create_link(db: Session, user_id: str, data: CreateAffiliateLinkRequest) -> AffiliateLinkResponse:
        """Provision the user's link with a fresh, unique code"""
        target = validate_amount(data.target_amount, "target_amount")

        def db_create():
            existing = db.query(AffiliateLink).filter(AffiliateLink.user_id == user_id).first()
            if existing:
                raise AlreadyExists(f"User {user_id} already has an affiliate link")

            ensure_profile(db, user_id)
            link = AffiliateLink(
                user_id=user_id,
                link_code=_generate_unique_code(db),
                title=data.title,
                description=data.description,
                target_amount=target,
                is_active=True,
            )
            db.add(link)
            db.commit()
            db.refresh(link)
            return link

        link = await run_guarded(db, db_create, "create", "affiliate_links")
        logger.info("Affiliate link created", user_id=user_id, link_id=link.id, link_code=link.link_code)
        return to_link_response(link)

    @staticmethod
    async def get_user_link(db: Session, user_id: str) -> Optional[AffiliateLinkResponse]:
        """The user's active link, or None"""
        def db_query():
            return db.query(AffiliateLink).filter(
                AffiliateLink.user_id == user_id,
                AffiliateLink.is_active.is_(True)
            ).first()

        link = await run_guarded(db, db_query, "read", "affiliate_links")
        if not link:
            return None
        return to_link_response(link)

    @staticmethod
    async def resolve_link(db: Session, link_code: str) -> Optional[PublicAffiliateLinkResponse]:
        """
        Public lookup behind /donate/{link_code}.

        Inactive links resolve exactly like unknown codes: None.
        """
        def db_query():
            link = db.query(AffiliateLink).filter(
                AffiliateLink.link_code == link_code,
                AffiliateLink.is_active.is_(True)
            ).first()
            if not link:
                return None, None
            progress = db.query(FundraisingProgress).filter(
                FundraisingProgress.user_id == link.user_id
            ).first()
            return link, progress

        link, progress = await run_guarded(db, db_query, "read", "affiliate_links")
        if not link:
            logger.info("Affiliate link not resolvable", link_code=link_code)
            return None

        collected = progress.collected_amount if progress else 0
        target = progress.target_amount if progress else link.target_amount
        return PublicAffiliateLinkResponse(
            id=link.id,
            link_code=link.link_code,
            title=link.title,
            description=link.description,
            target_amount=link.target_amount,
            owner_name=link.profile.full_name if link.profile else None,
            collected_amount=collected,
            progress_percentage=compute_progress_percentage(collected, target),
            shareable_url=shareable_url(link.link_code),
        )

    @staticmethod
    async def get_owned_link(db: Session, link_id: int, caller_id: str, is_admin: bool = False) -> AffiliateLinkResponse:
        """Fetch a link the caller owns; admins may read any link"""
        def db_query():
            return db.query(AffiliateLink).filter(AffiliateLink.id == link_id).first()

        link = await run_guarded(db, db_query, "read", "affiliate_links")
        if not link:
            raise LinkNotFound(f"Affiliate link {link_id} not found")
        if link.user_id != caller_id and not is_admin:
            raise Unauthorized(f"Affiliate link {link_id} belongs to another user")
        return to_link_response(link)

    @staticmethod
    async def update_link(db: Session, link_id: int, caller_id: str, updates: dict,
                          is_admin: bool = False) -> AffiliateLinkResponse:
        """
        Partially update a link.

        Only title, description, target_amount and is_active are accepted; the
        link code and owner never change.
        """
        cleaned = _validate_updates(updates)

        def db_update():
            link = db.query(AffiliateLink).filter(AffiliateLink.id == link_id).first()
            if not link:
                raise LinkNotFound(f"Affiliate link {link_id} not found")
            if link.user_id != caller_id and not is_admin:
                raise Unauthorized(f"Affiliate link {link_id} belongs to another user")

            for field, value in cleaned.items():
                setattr(link, field, value)

            db.commit()
            db.refresh(link)
            return link

        link = await run_guarded(db, db_update, "update", "affiliate_links")
        logger.info("Affiliate link updated", link_id=link_id, fields=sorted(cleaned))
        return to_link_response(link)
