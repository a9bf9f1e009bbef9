import pytest

from app.core.exceptions import AuthorizationError
from app.models.base.enums import UserRole
from app.services.common.permissions import Action, Principal, authorize, enforce

ADMIN, SUPERVISOR, AGENT = UserRole.ADMIN, UserRole.SUPERVISOR, UserRole.AGENT


@pytest.mark.parametrize("action", [Action.CHECK_IN, Action.CHECK_OUT, Action.VIEW_ATTENDANCE])
def test_agents_act_for_themselves_only(action):
    assert authorize(AGENT, "a1", "a1", action).allowed
    assert not authorize(AGENT, "a1", "a2", action).allowed


@pytest.mark.parametrize("role", [ADMIN, SUPERVISOR])
def test_staff_act_for_any_agent(role):
    for action in (Action.CHECK_IN, Action.CHECK_OUT, Action.MARK_ABSENT, Action.CORRECT_ATTENDANCE):
        assert authorize(role, "s1", "a1", action).allowed


def test_agents_cannot_mark_absent_or_correct():
    assert not authorize(AGENT, "a1", "a1", Action.MARK_ABSENT).allowed
    assert not authorize(AGENT, "a1", "a1", Action.CORRECT_ATTENDANCE).allowed


def test_location_reports_are_self_only():
    assert authorize(AGENT, "a1", "a1", Action.REPORT_LOCATION).allowed
    assert not authorize(ADMIN, "s1", "a1", Action.REPORT_LOCATION).allowed


def test_unscoped_staff_views_require_staff_role():
    assert authorize(SUPERVISOR, "s1", None, Action.VIEW_LIVE_POSITIONS).allowed
    assert not authorize(AGENT, "a1", None, Action.VIEW_LIVE_POSITIONS).allowed
    assert not authorize(AGENT, "a1", None, Action.VIEW_FRAUD_SIGNALS).allowed


def test_denial_carries_a_reason():
    decision = authorize(AGENT, "a1", "a2", Action.CHECK_IN)

    assert not decision
    assert "another agent" in decision.reason


def test_enforce_raises_authorization_error():
    with pytest.raises(AuthorizationError) as exc:
        enforce(Principal("a1", AGENT), "a2", Action.CHECK_OUT)

    assert exc.value.status_code == 403
    assert exc.value.details["action"] == "check_out"
