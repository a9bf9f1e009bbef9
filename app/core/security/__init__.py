"""Security module for authentication."""

from .jwt_handler import JWTManager

__all__ = ["JWTManager"]
