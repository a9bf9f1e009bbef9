from app.repositories.tracking.fraud_signal_repository import FraudSignalRepository
from app.repositories.tracking.location_sample_repository import LocationSampleRepository

__all__ = ["LocationSampleRepository", "FraudSignalRepository"]
