# app/services/common/permissions.py
"""
Authorization policy.

Decides whether an actor may perform an action on a target agent. The
policy is a pure function of (actor role, actor, target, action) so it
can be exercised without a request or a database.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional

from app.core.exceptions import AuthorizationError
from app.models.base.enums import UserRole


class Action(str, Enum):
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    REPORT_LOCATION = "report_location"
    MARK_ABSENT = "mark_absent"
    CORRECT_ATTENDANCE = "correct_attendance"
    VIEW_ATTENDANCE = "view_attendance"
    VIEW_STATISTICS = "view_statistics"
    VIEW_LOCATION_HISTORY = "view_location_history"
    VIEW_LIVE_POSITIONS = "view_live_positions"
    VIEW_FRAUD_SIGNALS = "view_fraud_signals"
    RESOLVE_FRAUD_SIGNAL = "resolve_fraud_signal"
    RAISE_EMERGENCY = "raise_emergency"


@dataclass(frozen=True)
class Principal:
    """
    Authenticated caller.

    Attributes:
        user_id: Unique identifier for the user
        role: User's role
    """
    user_id: str
    role: UserRole

    def has_any_role(self, *roles: UserRole) -> bool:
        return self.role in roles


@dataclass(frozen=True)
class PolicyDecision:
    allowed: bool
    reason: str

    def __bool__(self) -> bool:
        return self.allowed


@dataclass(frozen=True)
class _Rule:
    self_roles: FrozenSet[UserRole]
    other_roles: FrozenSet[UserRole]


_STAFF = frozenset({UserRole.ADMIN, UserRole.SUPERVISOR})
_EVERYONE = frozenset(UserRole)
_NOBODY: FrozenSet[UserRole] = frozenset()

# Roles allowed to act on themselves / on another agent
POLICY: Dict[Action, _Rule] = {
    Action.CHECK_IN: _Rule(_EVERYONE, _STAFF),
    Action.CHECK_OUT: _Rule(_EVERYONE, _STAFF),
    Action.REPORT_LOCATION: _Rule(_EVERYONE, _NOBODY),
    Action.MARK_ABSENT: _Rule(_STAFF, _STAFF),
    Action.CORRECT_ATTENDANCE: _Rule(_STAFF, _STAFF),
    Action.VIEW_ATTENDANCE: _Rule(_EVERYONE, _STAFF),
    Action.VIEW_STATISTICS: _Rule(_EVERYONE, _STAFF),
    Action.VIEW_LOCATION_HISTORY: _Rule(_EVERYONE, _STAFF),
    Action.VIEW_LIVE_POSITIONS: _Rule(_STAFF, _STAFF),
    Action.VIEW_FRAUD_SIGNALS: _Rule(_STAFF, _STAFF),
    Action.RESOLVE_FRAUD_SIGNAL: _Rule(_STAFF, _STAFF),
    Action.RAISE_EMERGENCY: _Rule(_EVERYONE, _NOBODY),
}


def authorize(
    actor_role: UserRole,
    actor_id: str,
    target_agent_id: Optional[str],
    action: Action,
) -> PolicyDecision:
    """
    Decide whether ``actor`` may perform ``action`` on ``target_agent_id``.

    A missing target means the action is not scoped to one agent and
    is judged as acting on others.

    Args:
        actor_role: Role of the caller
        actor_id: ID of the caller
        target_agent_id: Agent the action is performed for
        action: Requested action

    Returns:
        PolicyDecision with a human readable reason
    """
    rule = POLICY.get(action)
    if rule is None:
        return PolicyDecision(False, f"Unknown action '{action}'")

    acting_for_self = target_agent_id is not None and target_agent_id == actor_id
    allowed_roles = rule.self_roles if acting_for_self else rule.other_roles

    if actor_role in allowed_roles:
        scope = "own" if acting_for_self else "another agent's"
        return PolicyDecision(True, f"{actor_role.value} may {action.value} on {scope} behalf")

    if acting_for_self:
        return PolicyDecision(False, f"Role '{actor_role.value}' cannot {action.value}")
    return PolicyDecision(
        False,
        f"Role '{actor_role.value}' cannot {action.value} for another agent",
    )


def enforce(principal: Principal, target_agent_id: Optional[str], action: Action) -> None:
    """
    Raise if the policy denies the action.

    Raises:
        AuthorizationError: With the policy's reason
    """
    decision = authorize(principal.role, principal.user_id, target_agent_id, action)
    if not decision.allowed:
        raise AuthorizationError(decision.reason, action=action.value)
