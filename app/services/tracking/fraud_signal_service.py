"""
Fraud signal review.

Signals are immutable apart from resolution, which staff perform once.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from app.config.settings import Settings
from app.core.events.event_broadcaster import EventBroadcaster
from app.core.exceptions import ErrorCode, InvalidStateError
from app.models.base.enums import FraudKind
from app.repositories.tracking.fraud_signal_repository import FraudSignalRepository
from app.schemas.tracking.tracking import FraudSignalResponse
from app.services.base.base_service import BaseService, Clock
from app.services.common.permissions import Action, Principal, enforce


class FraudSignalService(BaseService[FraudSignalRepository]):
    """Listing and resolution of integrity signals."""

    def __init__(
        self,
        db_session: Session,
        broadcaster: EventBroadcaster,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(FraudSignalRepository(db_session), db_session, settings, clock)
        self.broadcaster = broadcaster

    def list_signals(
        self,
        principal: Principal,
        user_id: Optional[str] = None,
        event_id: Optional[str] = None,
        kind: Optional[FraudKind] = None,
        resolved: Optional[bool] = None,
        limit: int = 50,
    ) -> List[FraudSignalResponse]:
        enforce(principal, None, Action.VIEW_FRAUD_SIGNALS)
        signals = self.repository.list_filtered(
            user_id=user_id,
            event_id=event_id,
            kind=kind,
            resolved=resolved,
            limit=limit,
        )
        return [FraudSignalResponse.model_validate(s) for s in signals]

    def resolve_signal(self, principal: Principal, signal_id: str, resolution: str) -> FraudSignalResponse:
        """
        Mark a signal resolved.

        Raises:
            AuthorizationError: Caller is not staff
            NotFoundError: Unknown signal
            InvalidStateError: Signal already resolved
        """
        operation = "resolve_signal"
        enforce(principal, None, Action.RESOLVE_FRAUD_SIGNAL)

        with self.transaction():
            signal = self.repository.get_by_id(signal_id)
            if signal.is_resolved:
                raise InvalidStateError(
                    "Signal is already resolved",
                    error_code=ErrorCode.INVALID_STATE,
                    details={"signal_id": signal_id, "resolved_by": signal.resolved_by},
                )
            signal.resolved_by = principal.user_id
            signal.resolved_at = self.now()
            signal.resolution = resolution

        self._logger.info(
            f"Fraud signal {signal_id} resolved by {principal.user_id}",
            extra={"operation": operation, "signal_id": signal_id},
        )

        response = FraudSignalResponse.model_validate(signal)
        self._best_effort(
            "broadcast_resolution",
            self.broadcaster.emit,
            "fraud:resolved",
            response.to_payload(),
            user_id=signal.user_id,
        )
        return response
