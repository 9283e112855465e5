"""One database transaction per operation, retried on concurrency failures."""

import functools

from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from storefront.core.config import settings
from storefront.core.logging import get_logger
from storefront.domain.errors import ConflictError

logger = get_logger(__name__)

# serialization failure, deadlock detected, lock not available
RETRYABLE_SQLSTATES = {"40001", "40P01", "55P03"}
RETRYABLE_MESSAGES = ("database is locked", "deadlock")


def is_retryable(exc: BaseException) -> bool:
    """True for failures caused by a concurrent writer.

    Other driver errors, such as an unreachable server, are not conflicts and
    propagate unchanged.
    """
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, OperationalError):
        if getattr(exc.orig, "sqlstate", None) in RETRYABLE_SQLSTATES:
            return True
        message = str(exc.orig).lower()
        return any(m in message for m in RETRYABLE_MESSAGES)
    return False


def _log_retry(operation):
    def log(retry_state):
        logger.warning(
            "transaction_retry",
            operation=operation.__name__,
            attempt=retry_state.attempt_number,
            error=repr(retry_state.outcome.exception()),
        )
    return log


def run_in_transaction(db: Session, operation, *args, **kwargs):
    """Run ``operation(db, ...)`` and commit, rolling back on any failure.

    Conflicts are retried from scratch; once attempts run out a
    ``ConflictError`` is raised instead of the driver error.
    """
    retrying = Retrying(
        stop=stop_after_attempt(settings.DB_MAX_RETRIES),
        wait=wait_exponential(multiplier=0.05, max=1),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_retry(operation),
        reraise=True,
    )
    try:
        for attempt in retrying:
            with attempt:
                try:
                    result = operation(db, *args, **kwargs)
                    db.commit()
                except Exception:
                    db.rollback()
                    raise
    except (StaleDataError, OperationalError) as exc:
        if not is_retryable(exc):
            raise
        logger.error("transaction_conflict", operation=operation.__name__, error=repr(exc))
        raise ConflictError("The record was modified concurrently, please retry") from exc
    return result


def transactional(operation):
    @functools.wraps(operation)
    def wrapper(db: Session, *args, **kwargs):
        return run_in_transaction(db, operation, *args, **kwargs)
    return wrapper


def get_for_update(db: Session, model, pk):
    """Load a row with a write lock, refreshing anything already in the session."""
    stmt = select(model).where(model.id == pk).with_for_update().execution_options(populate_existing=True)
    return db.execute(stmt).scalar_one_or_none()
