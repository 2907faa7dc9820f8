# parking_lot/services/transactions.py
import logging
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError

from services.errors import StorageTimeout

logger = logging.getLogger(__name__)


@contextmanager
def atomic(session):
    """
    Run the enclosed block as one transaction on ``session``.
    Commits on success; any exception rolls the whole transaction back.
    Storage level failures (lock waits, connection loss, pool exhaustion)
    are re-raised as StorageTimeout so callers can tell them apart.
    """
    try:
        yield session
        session.commit()
    except (OperationalError, PoolTimeoutError) as e:
        session.rollback()
        logger.warning(f"Storage failure, transaction rolled back: {e}")
        raise StorageTimeout(f'Storage operation failed: {e}') from e
    except BaseException:
        session.rollback()
        raise


def run_atomic(session, operation, *args, retries=0):
    """
    Call ``operation(*args)`` inside ``atomic`` and return its result.
    StorageTimeout is retried up to ``retries`` more times; every other
    error propagates on the first occurrence.
    """
    attempt = 0
    while True:
        try:
            with atomic(session):
                return operation(*args)
        except StorageTimeout:
            if attempt >= retries:
                raise
            attempt += 1
            logger.info(f"Retrying {operation.__name__} after storage failure ({attempt}/{retries})")
