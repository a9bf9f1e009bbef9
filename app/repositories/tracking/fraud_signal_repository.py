"""
Fraud signal repository.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.base.enums import FraudKind
from app.models.tracking.fraud_signal import FraudSignal
from app.repositories.base.base_repository import BaseRepository
from app.utils.datetime_utils import ensure_utc


class FraudSignalRepository(BaseRepository[FraudSignal]):
    """Repository for integrity signals."""

    def __init__(self, session: Session):
        super().__init__(FraudSignal, session)

    def count_since(
        self,
        user_id: str,
        since: datetime,
        kind: Optional[FraudKind] = None,
        event_id: Optional[str] = None,
        unresolved_only: bool = False,
    ) -> int:
        """
        Count a user's signals created at or after ``since``.

        Args:
            user_id: Signal subject
            since: Window start
            kind: Restrict to one kind of signal
            event_id: Restrict to one event
            unresolved_only: Skip resolved signals

        Returns:
            Number of matching signals
        """
        query = self.db.query(FraudSignal).filter(
            FraudSignal.user_id == user_id,
            FraudSignal.created_at >= ensure_utc(since),
        )
        if kind:
            query = query.filter(FraudSignal.kind == kind)
        if event_id:
            query = query.filter(FraudSignal.event_id == event_id)
        if unresolved_only:
            query = query.filter(FraudSignal.resolved_at.is_(None))
        return query.count()

    def list_filtered(
        self,
        user_id: Optional[str] = None,
        event_id: Optional[str] = None,
        kind: Optional[FraudKind] = None,
        resolved: Optional[bool] = None,
        limit: int = 50,
    ) -> List[FraudSignal]:
        """Newest signals first."""
        query = self.db.query(FraudSignal)
        if user_id:
            query = query.filter(FraudSignal.user_id == user_id)
        if event_id:
            query = query.filter(FraudSignal.event_id == event_id)
        if kind:
            query = query.filter(FraudSignal.kind == kind)
        if resolved is True:
            query = query.filter(FraudSignal.resolved_at.isnot(None))
        elif resolved is False:
            query = query.filter(FraudSignal.resolved_at.is_(None))
        return query.order_by(FraudSignal.created_at.desc()).limit(limit).all()
