"""Core application modules."""

from .security import JWTManager

__all__ = ["JWTManager"]
