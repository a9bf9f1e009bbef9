"""
Base repository with standardized CRUD operations and error handling.

Provides foundation for all domain repositories with type safety
and soft-delete awareness.
"""

from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy.orm import Session, Query
from sqlalchemy.exc import SQLAlchemyError, IntegrityError

from app.models.base import BaseModel, SoftDeleteModel
from app.core.logging import get_logger
from app.core.exceptions import DatabaseError, DuplicateEntryError, NotFoundError

logger = get_logger(__name__)

# Type variable for model classes
ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """
    Base repository with standardized operations.

    Provides CRUD operations and error handling for all domain repositories.
    Transactions belong to the service layer.
    """

    def __init__(self, model: Type[ModelType], db: Session):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db
        self._is_soft_delete = issubclass(model, SoftDeleteModel)

    # ==================== Core CRUD Operations ====================

    def create(self, entity: ModelType, commit: bool = True) -> ModelType:
        """
        Persist a new entity.

        Args:
            entity: Entity to create
            commit: Whether to commit immediately

        Returns:
            Created entity

        Raises:
            DuplicateEntryError: If a uniqueness constraint rejects the row
            DatabaseError: On any other persistence failure
        """
        try:
            self.db.add(entity)

            if commit:
                self.db.commit()
                self.db.refresh(entity)
            else:
                self.db.flush()

            logger.info(f"Created {self.model.__name__} with id: {entity.id}")
            return entity

        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateEntryError(
                f"{self.model.__name__} already exists",
                table=self.model.__tablename__,
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Create {self.model.__name__} failed: {str(e)}", exc_info=True)
            raise DatabaseError(
                "Create failed",
                operation="create",
                table=self.model.__tablename__,
            ) from e

    def save(self, entity: ModelType, commit: bool = True) -> ModelType:
        """Flush pending changes on an already-tracked entity."""
        try:
            self.db.add(entity)
            if commit:
                self.db.commit()
                self.db.refresh(entity)
            else:
                self.db.flush()
            return entity
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Save {self.model.__name__} failed: {str(e)}", exc_info=True)
            raise DatabaseError(
                "Update failed",
                operation="update",
                table=self.model.__tablename__,
            ) from e

    def find_by_id(self, id: str, include_deleted: bool = False) -> Optional[ModelType]:
        """
        Find entity by ID.

        Args:
            id: Entity ID
            include_deleted: Include soft-deleted entities

        Returns:
            Entity or None
        """
        query = self.db.query(self.model).filter(self.model.id == id)
        query = self._apply_soft_delete(query, include_deleted)
        return query.first()

    def get_by_id(self, id: str, include_deleted: bool = False) -> ModelType:
        """
        Get entity by ID or raise exception.

        Raises:
            NotFoundError: If entity not found
        """
        entity = self.find_by_id(id, include_deleted)
        if not entity:
            raise NotFoundError(self.model.__name__, id)
        return entity

    def find_by_criteria(
        self,
        criteria: Dict[str, Any],
        skip: int = 0,
        limit: Optional[int] = 100,
        order_by: Optional[List[str]] = None,
        include_deleted: bool = False
    ) -> List[ModelType]:
        """
        Find entities matching criteria.

        Args:
            criteria: Filter criteria as key-value pairs
            skip: Number of records to skip
            limit: Maximum number of records, None for no limit
            order_by: List of fields to order by (prefix with - for desc)
            include_deleted: Include soft-deleted entities

        Returns:
            List of matching entities
        """
        query = self.db.query(self.model)

        for key, value in criteria.items():
            if hasattr(self.model, key):
                column = getattr(self.model, key)
                if isinstance(value, (list, tuple, set)):
                    query = query.filter(column.in_(list(value)))
                else:
                    query = query.filter(column == value)

        query = self._apply_soft_delete(query, include_deleted)
        query = self._apply_ordering(query, order_by)

        if skip:
            query = query.offset(skip)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def find_one_by_criteria(
        self,
        criteria: Dict[str, Any],
        include_deleted: bool = False
    ) -> Optional[ModelType]:
        results = self.find_by_criteria(criteria, limit=1, include_deleted=include_deleted)
        return results[0] if results else None

    # ==================== Query Helpers ====================

    def _apply_soft_delete(self, query: Query, include_deleted: bool) -> Query:
        if self._is_soft_delete and not include_deleted:
            query = query.filter(self.model.is_deleted == False)  # noqa: E712
        return query

    def _apply_ordering(self, query: Query, order_by: Optional[List[str]]) -> Query:
        for field in order_by or []:
            if field.startswith('-'):
                query = query.order_by(getattr(self.model, field[1:]).desc())
            else:
                query = query.order_by(getattr(self.model, field))
        return query

    def paginate_query(self, query: Query, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        """
        Paginate a query.

        Returns:
            Dict with ``items`` and ``pagination`` (page, limit, total, pages)
        """
        page = max(page, 1)
        total = query.order_by(None).count()
        items = query.offset((page - 1) * limit).limit(limit).all()
        return {
            "items": items,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": (total + limit - 1) // limit if limit else 0,
            },
        }
