from typing import Callable, Any, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import structlog

from fundraiser_service.core.circuit_breaker import db_circuit_breaker, CircuitBreakerError
from fundraiser_service.core.exceptions import LedgerError, TransientIOError
from fundraiser_service.middleware.metrics import db_operations_total
from fundraiser_service.models import Profile

logger = structlog.get_logger(__name__)


async def run_guarded(db: Session, func: Callable[[], Any], operation: str, table: str) -> Any:
    """
    Run one unit of database work behind the circuit breaker.

    Driver failures are rolled back and surfaced as TransientIOError; ledger
    errors raised inside ``func`` roll back and propagate unchanged.
    """
    try:
        result = await db_circuit_breaker.call(func)
    except CircuitBreakerError:
        logger.warning("Circuit breaker open, service temporarily unavailable",
                       operation=operation, table=table)
        raise TransientIOError("Service temporarily unavailable")
    except LedgerError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        db_operations_total.labels(operation=operation, table=table, status="error").inc()
        logger.error("Database operation failed", operation=operation, table=table, error=str(e))
        raise TransientIOError(f"Failed to {operation} {table}")

    db_operations_total.labels(operation=operation, table=table, status="success").inc()
    return result


def ensure_profile(db: Session, user_id: str, full_name: Optional[str] = None,
                   email: Optional[str] = None) -> Profile:
    """Return the user's profile row, creating a bare one if the mirror has none yet"""
    profile = db.query(Profile).filter(Profile.user_id == user_id).first()
    if profile is None:
        profile = Profile(user_id=user_id, full_name=full_name, email=email)
        db.add(profile)
        db.flush()
        logger.info("Profile mirror row created", user_id=user_id)
    return profile
