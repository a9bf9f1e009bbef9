from app.schemas.common.base import BaseResponseSchema, BaseSchema, PaginatedResponse, PaginationMeta

__all__ = ["BaseSchema", "BaseResponseSchema", "PaginationMeta", "PaginatedResponse"]
