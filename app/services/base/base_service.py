"""
Base service class providing common functionality for all services.
"""

from typing import TypeVar, Generic, Optional, Any, Callable
from abc import ABC
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy.orm import Session

from app.config.settings import Settings, get_settings
from app.core.logging import get_logger
from app.repositories.base.base_repository import BaseRepository
from app.utils.datetime_utils import ensure_utc, utc_now


TRepo = TypeVar("TRepo", bound=BaseRepository)

Clock = Callable[[], datetime]


class BaseService(ABC, Generic[TRepo]):
    """
    Base service with common behaviors:
    - Shared logger, settings and db session
    - Injectable clock
    - Transaction management
    - Isolation of best-effort side effects
    """

    def __init__(
        self,
        repository: TRepo,
        db_session: Session,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize base service.

        Args:
            repository: Primary repository for data access
            db_session: SQLAlchemy database session
            settings: Application settings, defaults to the cached instance
            clock: Returns the current instant; defaults to UTC wall clock
        """
        self.repository: TRepo = repository
        self.db: Session = db_session
        self.settings = settings or get_settings()
        self._clock = clock or utc_now
        self._logger = get_logger(f"app.services.{self.__class__.__name__}").add_context(
            service=self.__class__.__name__
        )

    def now(self) -> datetime:
        return ensure_utc(self._clock())

    # -------------------------------------------------------------------------
    # Transaction Management
    # -------------------------------------------------------------------------

    @contextmanager
    def transaction(self):
        """Commit on success, roll back and re-raise on failure."""
        try:
            yield self.db
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    # -------------------------------------------------------------------------
    # Side Effects
    # -------------------------------------------------------------------------

    def _best_effort(self, operation: str, fn: Callable[..., Any], *args, **kwargs) -> Optional[Any]:
        """
        Run a side effect whose failure must not abort the primary write.

        Returns:
            The side effect's result, or None if it raised
        """
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            self._logger.error(
                f"Side effect {operation} failed: {e}",
                exc_info=True,
                extra={"operation": operation, "exception_type": type(e).__name__},
            )
            return None
