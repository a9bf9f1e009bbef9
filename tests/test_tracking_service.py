from datetime import timedelta

import pytest

from app.core.exceptions import AuthorizationError, InvalidStateError, MockLocationRejected, NotFoundError
from app.models.base.enums import FraudKind
from app.schemas.tracking import EmergencyAlertRequest, LocationReportRequest
from app.services.tracking.tracking_service import summarize_history

from tests.conftest import EVENT_CENTER


def report(monitor, clock, principal, event_id, latitude, longitude, recorded_at, **extra):
    """Send a location report received at ``recorded_at``, then restore the clock."""
    current, clock.instant = clock.instant, recorded_at
    try:
        return monitor.record_location(
            principal,
            LocationReportRequest(event_id=event_id, latitude=latitude, longitude=longitude, **extra),
        )
    finally:
        clock.instant = current


class TestHistory:
    def test_history_newest_first_with_stats(self, monitor, tracking, world, clock):
        start = clock()
        report(monitor, clock, world.agent_principal, world.event.id, EVENT_CENTER[0], EVENT_CENTER[1],
               start, accuracy=5)
        report(monitor, clock, world.agent_principal, world.event.id, EVENT_CENTER[0] + 0.0009, EVENT_CENTER[1],
               start + timedelta(minutes=5), accuracy=15)

        history = tracking.location_history(world.agent_principal, world.agent.id)

        assert len(history.samples) == 2
        assert history.samples[0].recorded_at > history.samples[1].recorded_at
        assert history.stats.total_points == 2
        assert history.stats.avg_accuracy == 10.0
        assert 90 <= history.stats.total_distance_m <= 110
        assert history.stats.out_of_zone_count == 0

    def test_agents_cannot_read_other_histories(self, tracking, world):
        with pytest.raises(AuthorizationError):
            tracking.location_history(world.agent_principal, world.other_agent.id)

    def test_empty_history(self, tracking, world):
        assert summarize_history([]).total_distance_m == 0
        history = tracking.location_history(world.supervisor_principal, world.agent.id)
        assert history.samples == []


class TestLivePositions:
    def test_latest_sample_per_agent(self, monitor, tracking, world, clock):
        now = clock()
        report(monitor, clock, world.agent_principal, world.event.id, EVENT_CENTER[0], EVENT_CENTER[1],
               now - timedelta(minutes=10))
        report(monitor, clock, world.agent_principal, world.event.id, EVENT_CENTER[0], EVENT_CENTER[1],
               now - timedelta(minutes=1))
        report(monitor, clock, world.other_agent_principal, world.event.id, EVENT_CENTER[0], EVENT_CENTER[1],
               now - timedelta(minutes=40))

        live = tracking.live_positions(world.supervisor_principal, world.event.id)

        by_user = {p.user_id: p for p in live.positions}
        assert set(by_user) == {world.agent.id, world.other_agent.id}
        assert by_user[world.agent.id].is_online is True
        assert by_user[world.agent.id].name == "Yassine Alaoui"
        assert by_user[world.other_agent.id].is_online is False
        assert live.online_count == 1

    def test_agents_cannot_watch_live_positions(self, tracking, world):
        with pytest.raises(AuthorizationError):
            tracking.live_positions(world.agent_principal, world.event.id)

    def test_unknown_event(self, tracking, world):
        with pytest.raises(NotFoundError):
            tracking.live_positions(world.admin_principal, "missing")


class TestValidatePosition:
    def test_inside(self, tracking, world):
        result = tracking.validate_position(world.event.id, EVENT_CENTER[0], EVENT_CENTER[1])
        assert result.is_within_geofence is True
        assert result.message.startswith("Inside the event zone")

    def test_outside_gives_direction(self, tracking, world):
        result = tracking.validate_position(world.event.id, EVENT_CENTER[0] + 0.009, EVENT_CENTER[1])

        assert result.is_within_geofence is False
        assert result.direction == "S"
        assert result.message.startswith("Outside the event zone: move ")
        assert result.message.endswith("m S")

    def test_event_without_geofence(self, tracking, seed):
        event = seed.event(latitude=None, longitude=None)
        result = tracking.validate_position(event.id, 10.0, 10.0)
        assert result.configured is False
        assert result.is_within_geofence is None


class TestEmergency:
    def test_emergency_fans_out(self, tracking, world, staff_channel, dispatcher):
        result = tracking.raise_emergency(
            world.agent_principal,
            EmergencyAlertRequest(latitude=EVENT_CENTER[0], longitude=EVENT_CENTER[1],
                                  event_id=world.event.id, message="Crowd crush at gate B"),
        )

        alerts = staff_channel.of("emergency:alert")
        assert len(alerts) == 1
        assert alerts[0]["data"]["message"] == "Crowd crush at gate B"
        assert alerts[0]["data"]["agent_name"] == "Yassine Alaoui"
        assert result.delivered_to == 1
        assert set(dispatcher.recipients_of("emergency:alert")) == {world.supervisor.id, world.admin.id}
        assert result.notified == 2

    def test_default_message(self, tracking, world):
        result = tracking.raise_emergency(
            world.agent_principal,
            EmergencyAlertRequest(latitude=EVENT_CENTER[0], longitude=EVENT_CENTER[1]),
        )
        assert result.delivered_to == 0
        assert result.alert_id


class TestFraudSignals:
    @pytest.fixture
    def spoofed_report(self, monitor, world, clock):
        """A mock location report that leaves a committed signal behind."""
        with pytest.raises(MockLocationRejected):
            report(monitor, clock, world.agent_principal, world.event.id, EVENT_CENTER[0], EVENT_CENTER[1],
                   clock(), is_mock_location=True)

    def test_list_and_resolve_once(self, fraud_signals, world, spoofed_report, staff_channel):
        signals = fraud_signals.list_signals(world.supervisor_principal, user_id=world.agent.id)
        assert len(signals) == 1
        assert signals[0].kind == FraudKind.GPS_SPOOFING

        resolved = fraud_signals.resolve_signal(world.supervisor_principal, signals[0].id, "Device replaced")
        assert resolved.resolved_by == world.supervisor.id
        assert resolved.resolution == "Device replaced"
        assert len(staff_channel.of("fraud:resolved")) == 1

        with pytest.raises(InvalidStateError):
            fraud_signals.resolve_signal(world.admin_principal, signals[0].id, "Again")

        assert fraud_signals.list_signals(world.admin_principal, resolved=False) == []

    def test_agents_cannot_review_signals(self, fraud_signals, world, spoofed_report):
        with pytest.raises(AuthorizationError):
            fraud_signals.list_signals(world.agent_principal)

    def test_unknown_signal(self, fraud_signals, world):
        with pytest.raises(NotFoundError):
            fraud_signals.resolve_signal(world.admin_principal, "missing", "n/a")
