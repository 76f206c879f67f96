from sqlalchemy import update
from sqlalchemy.orm import Session
from typing import Any, List, Optional
import structlog

from fundraiser_service.models import FundraisingProgress
from fundraiser_service.schemas.fundraising import (
    CreateProgressRequest,
    FundraisingProgressResponse,
    FundraisingStatsResponse,
    LeaderboardEntry,
)
from fundraiser_service.services.aggregates import (
    compute_progress_percentage,
    compute_global_stats,
    remaining_amount,
    progress_tier,
    build_fundraising_csv,
    sort_leaderboard,
)
from fundraiser_service.services.common import run_guarded, ensure_profile
from fundraiser_service.services.validation import validate_amount
from fundraiser_service.cache.redis import redis_cache
from fundraiser_service.core.config import get_settings
from fundraiser_service.core.exceptions import AlreadyExists, ProgressNotFound
from fundraiser_service.middleware.metrics import progress_updates_total

logger = structlog.get_logger(__name__)

LEADERBOARD_ORDER = (
    FundraisingProgress.collected_amount.desc(),
    FundraisingProgress.created_at.asc(),
    FundraisingProgress.id.asc(),
)


def to_progress_response(row: FundraisingProgress) -> FundraisingProgressResponse:
    percentage = compute_progress_percentage(row.collected_amount, row.target_amount)
    profile = row.profile
    return FundraisingProgressResponse(
        id=row.id,
        user_id=row.user_id,
        target_amount=row.target_amount,
        collected_amount=row.collected_amount,
        progress_percentage=percentage,
        remaining_amount=remaining_amount(row.collected_amount, row.target_amount),
        progress_tier=progress_tier(percentage),
        full_name=profile.full_name if profile else None,
        email=profile.email if profile else None,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class FundraisingService:
    """Business logic for fundraising progress, leaderboard and admin statistics"""

    @staticmethod
    async def get_progress(db: Session, user_id: str) -> Optional[FundraisingProgressResponse]:
        """Get one user's progress; None when the user has no row yet"""
        def db_query():
            return db.query(FundraisingProgress).filter(FundraisingProgress.user_id == user_id).first()

        row = await run_guarded(db, db_query, "read", "fundraising_progress")
        if not row:
            logger.info("No fundraising progress for user", user_id=user_id)
            return None
        return to_progress_response(row)

    @staticmethod
    async def create_progress(db: Session, data: CreateProgressRequest) -> FundraisingProgressResponse:
        """Seed a user's fundraising target (admin action)"""
        target = validate_amount(data.target_amount, "target_amount")

        def db_create():
            existing = db.query(FundraisingProgress).filter(
                FundraisingProgress.user_id == data.user_id
            ).first()
            if existing:
                raise AlreadyExists(f"Fundraising progress already exists for user {data.user_id}")

            ensure_profile(db, data.user_id, full_name=data.full_name, email=data.email)
            row = FundraisingProgress(user_id=data.user_id, target_amount=target, collected_amount=0)
            db.add(row)
            db.commit()
            db.refresh(row)
            return row

        row = await run_guarded(db, db_create, "create", "fundraising_progress")
        redis_cache.invalidate_aggregates()
        logger.info("Fundraising progress created", user_id=data.user_id, target_amount=target)
        return to_progress_response(row)

    @staticmethod
    async def list_all(db: Session, skip: int = 0, limit: int = 100) -> tuple[List[FundraisingProgressResponse], int]:
        """All fundraisers, highest collected first, one page at a time"""
        limit = min(limit, get_settings().max_page_size)

        def db_query():
            total = db.query(FundraisingProgress).count()
            rows = (
                db.query(FundraisingProgress)
                .order_by(*LEADERBOARD_ORDER)
                .offset(skip)
                .limit(limit)
                .all()
            )
            return rows, total

        rows, total = await run_guarded(db, db_query, "list", "fundraising_progress")
        logger.info("Fundraisers retrieved", count=len(rows), total=total)
        return [to_progress_response(row) for row in rows], total

    @staticmethod
    async def get_leaderboard(db: Session, limit: Optional[int] = None) -> List[LeaderboardEntry]:
        """Top fundraisers by collected amount"""
        limit = limit or get_settings().leaderboard_default_limit

        cached = redis_cache.get_leaderboard(limit)
        if cached is not None:
            return [LeaderboardEntry(**entry) for entry in cached]

        def db_query():
            return db.query(FundraisingProgress).order_by(*LEADERBOARD_ORDER).limit(limit).all()

        rows = await run_guarded(db, db_query, "list", "fundraising_progress")
        entries = [
            LeaderboardEntry(
                rank=position,
                user_id=row.user_id,
                full_name=row.profile.full_name if row.profile else None,
                collected_amount=row.collected_amount,
                target_amount=row.target_amount,
                progress_percentage=compute_progress_percentage(row.collected_amount, row.target_amount),
            )
            for position, row in enumerate(rows, start=1)
        ]
        redis_cache.set_leaderboard(limit, [entry.model_dump() for entry in entries])
        return entries

    @staticmethod
    async def apply_progress_delta(db: Session, user_id: str, delta: Any) -> FundraisingProgressResponse:
        """
        Add a positive amount to the user's collected total.

        The increment runs as one UPDATE in the database so concurrent updates
        from several sessions cannot overwrite each other.
        """
        amount = validate_amount(delta, "delta")

        def db_update():
            result = db.execute(
                update(FundraisingProgress)
                .where(FundraisingProgress.user_id == user_id)
                .values(collected_amount=FundraisingProgress.collected_amount + amount)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise ProgressNotFound(f"No fundraising progress for user {user_id}")
            db.commit()
            return db.query(FundraisingProgress).filter(FundraisingProgress.user_id == user_id).first()

        row = await run_guarded(db, db_update, "update", "fundraising_progress")
        redis_cache.invalidate_aggregates()
        progress_updates_total.inc()
        logger.info("Fundraising progress updated", user_id=user_id, delta=amount,
                    collected_amount=row.collected_amount)
        return to_progress_response(row)

    @staticmethod
    async def get_global_stats(db: Session) -> FundraisingStatsResponse:
        """Totals and averages across every fundraiser"""
        cached = redis_cache.get_stats()
        if cached is not None:
            return FundraisingStatsResponse(**cached)

        def db_query():
            return db.query(FundraisingProgress.target_amount, FundraisingProgress.collected_amount).all()

        rows = await run_guarded(db, db_query, "aggregate", "fundraising_progress")
        stats = FundraisingStatsResponse(**compute_global_stats(rows))
        redis_cache.set_stats(stats.model_dump())
        return stats

    @staticmethod
    async def export_csv(db: Session) -> str:
        """Full fundraiser list as the admin CSV export"""
        def db_query():
            return db.query(FundraisingProgress).all()

        rows = await run_guarded(db, db_query, "export", "fundraising_progress")
        logger.info("Fundraising data exported", count=len(rows))
        return build_fundraising_csv(to_progress_response(row) for row in sort_leaderboard(rows))
