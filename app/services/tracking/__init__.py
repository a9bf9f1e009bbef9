from app.services.tracking.fraud_signal_service import FraudSignalService
from app.services.tracking.movement_integrity_monitor import (
    IntegrityAssessment,
    MovementIntegrityMonitor,
    SpeedCheck,
    implied_speed_kmh,
)
from app.services.tracking.tracking_service import TrackingService, summarize_history

__all__ = [
    "FraudSignalService",
    "IntegrityAssessment",
    "MovementIntegrityMonitor",
    "SpeedCheck",
    "implied_speed_kmh",
    "TrackingService",
    "summarize_history",
]
