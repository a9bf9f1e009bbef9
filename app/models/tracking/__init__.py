from app.models.tracking.fraud_signal import FraudSignal
from app.models.tracking.location_sample import LocationSample

__all__ = ["LocationSample", "FraudSignal"]
