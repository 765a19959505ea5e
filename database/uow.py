import contextlib
import logging

from sqlalchemy.exc import SQLAlchemyError

from core.errors import PersistenceUnavailableError
from database.database import SessionLocal
from database.repository import DecisionRepository

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def decision_uow(session_factory=None):
    """Per-unit-of-work transaction scope.

    Yields a DecisionRepository bound to a fresh Session. Commits on success,
    rolls back on exception, always closes.

    Usage:
        with decision_uow() as repo:
            record = repo.matches.get_by_id(match_id)
            # perform operations...
        # commit happens automatically on successful exit
    """
    session = (session_factory or SessionLocal)()
    try:
        repo = DecisionRepository(session)
        yield repo
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextlib.contextmanager
def write_scope(repo: DecisionRepository, action: str):
    """Commit the repository's session on success.

    Store failures are rolled back and re-raised as PersistenceUnavailableError;
    any other exception rolls back and propagates unchanged.
    """
    try:
        yield repo
        repo.commit()
    except SQLAlchemyError as e:
        repo.rollback()
        logger.error(f"Failed to {action}: {e}")
        raise PersistenceUnavailableError(f"Failed to {action}") from e
    except Exception:
        repo.rollback()
        raise
