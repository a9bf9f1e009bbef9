"""
Location sample repository.

Every ordering here is by ``recorded_at``, the device timestamp.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from app.models.tracking.location_sample import LocationSample
from app.repositories.base.base_repository import BaseRepository
from app.utils.datetime_utils import ensure_utc


class LocationSampleRepository(BaseRepository[LocationSample]):
    """Repository for the append-only position history."""

    def __init__(self, session: Session):
        super().__init__(LocationSample, session)

    def find_predecessor(
        self,
        user_id: str,
        recorded_at: datetime,
        max_accuracy: Optional[float] = None,
    ) -> Optional[LocationSample]:
        """
        Latest sample for ``user_id`` recorded strictly before ``recorded_at``.

        Args:
            user_id: User whose history is searched
            recorded_at: Device timestamp of the sample being assessed
            max_accuracy: Ignore samples whose accuracy radius exceeds this

        Returns:
            The preceding sample or None for a first-ever sample
        """
        query = self.db.query(LocationSample).filter(
            LocationSample.user_id == user_id,
            LocationSample.recorded_at < ensure_utc(recorded_at),
        )
        if max_accuracy is not None:
            query = query.filter(
                or_(
                    LocationSample.accuracy.is_(None),
                    LocationSample.accuracy <= max_accuracy,
                )
            )
        return query.order_by(LocationSample.recorded_at.desc()).first()

    def history(
        self,
        user_id: str,
        event_id: Optional[str] = None,
        since: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[LocationSample]:
        """Samples for a user, newest first."""
        query = self.db.query(LocationSample).filter(LocationSample.user_id == user_id)
        if event_id:
            query = query.filter(LocationSample.event_id == event_id)
        if since:
            query = query.filter(LocationSample.recorded_at >= ensure_utc(since))
        return query.order_by(LocationSample.recorded_at.desc()).limit(limit).all()

    def latest_per_user(self, event_id: str) -> List[LocationSample]:
        """Most recent sample of every user that reported for an event."""
        latest = (
            self.db.query(
                LocationSample.user_id.label("user_id"),
                func.max(LocationSample.recorded_at).label("recorded_at"),
            )
            .filter(LocationSample.event_id == event_id)
            .group_by(LocationSample.user_id)
            .subquery()
        )
        return (
            self.db.query(LocationSample)
            .join(
                latest,
                and_(
                    LocationSample.user_id == latest.c.user_id,
                    LocationSample.recorded_at == latest.c.recorded_at,
                ),
            )
            .filter(LocationSample.event_id == event_id)
            .order_by(LocationSample.recorded_at.desc())
            .all()
        )
