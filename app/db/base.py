"""SQLAlchemy Base class for all models."""
from app.models.base.base_model import Base


# Import all models here to ensure they're registered with Base
def import_models():
    """Import all models to register them with SQLAlchemy."""
    from app.models.user.user import User  # noqa: F401
    from app.models.event.event import Assignment, Event  # noqa: F401
    from app.models.attendance.attendance_record import AttendanceRecord  # noqa: F401
    from app.models.tracking.location_sample import LocationSample  # noqa: F401
    from app.models.tracking.fraud_signal import FraudSignal  # noqa: F401


# Import models on module load
import_models()
