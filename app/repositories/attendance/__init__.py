from app.repositories.attendance.attendance_record_repository import AttendanceRecordRepository

__all__ = ["AttendanceRecordRepository"]
