"""
Transaction helpers over the SQLAlchemy session.

Every read-modify-write against a Registration or Gift goes through
run_transaction(): the callable reads fresh rows, computes, and mutates;
the helper commits it as one unit or rolls it back entirely.

Registration and Gift carry a version_id column, so a writer that lost
a race gets a StaleDataError at flush time. The helper rolls back and
runs the callable again against freshly read rows.
"""
import logging
from typing import Callable, List, Optional, TypeVar

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from .extensions import db
from .utils.exceptions import DuplicateError, LoyaltyError, PersistenceError

logger = logging.getLogger(__name__)

T = TypeVar('T')


def run_transaction(fn: Callable[..., T], max_attempts: int = None) -> T:
    """
    Run fn(session) atomically and commit.

    Args:
        fn: Callable receiving the session. Must read everything it needs
            inside the call, never from objects loaded before it.
        max_attempts: Retries on stale optimistic writes
            (default TRANSACTION_MAX_ATTEMPTS)

    Returns:
        Whatever fn returns

    Raises:
        LoyaltyError: business errors raised by fn, after rollback
        DuplicateError: a unique constraint rejected the write
        PersistenceError: store failure, or still stale after all attempts
    """
    if max_attempts is None:
        max_attempts = current_app.config.get('TRANSACTION_MAX_ATTEMPTS', 3)

    last_error = None
    for attempt in range(1, max_attempts + 1):
        try:
            result = fn(db.session)
            db.session.commit()
            return result
        except StaleDataError as e:
            db.session.rollback()
            last_error = e
            logger.info(f"Stale write on attempt {attempt}/{max_attempts}, retrying from fresh read")
        except IntegrityError as e:
            db.session.rollback()
            raise DuplicateError("Record") from e
        except LoyaltyError:
            db.session.rollback()
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Transaction failed: {e}")
            raise PersistenceError(original_error=e) from e

    raise PersistenceError(
        "Record was modified concurrently, please try again",
        original_error=last_error
    )


def fetch_page(query, id_column, limit: int = 20, before_id: Optional[int] = None) -> List:
    """
    Keyset pagination, newest first.

    Args:
        query: Base query
        id_column: Monotonic integer column used as the cursor
        limit: Page size (capped at 100)
        before_id: Return rows strictly older than this id
    """
    limit = max(1, min(limit or 20, 100))
    if before_id is not None:
        query = query.filter(id_column < before_id)
    return query.order_by(id_column.desc()).limit(limit).all()
