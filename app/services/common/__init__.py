from app.services.common.permissions import (
    Action,
    PolicyDecision,
    Principal,
    authorize,
    enforce,
)

__all__ = ["Action", "PolicyDecision", "Principal", "authorize", "enforce"]
