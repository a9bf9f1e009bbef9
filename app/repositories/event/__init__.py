from app.repositories.event.event_repository import AssignmentRepository, EventRepository

__all__ = ["EventRepository", "AssignmentRepository"]
