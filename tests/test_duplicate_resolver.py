import threading

import pytest

from app.core.exceptions import ConflictError
from app.models.attendance.attendance_record import AttendanceRecord
from app.models.base.enums import CheckInSource, UserRole
from app.models.tracking.fraud_signal import FraudSignal
from app.schemas.attendance import CheckInRequest, MarkAbsentRequest
from app.services.attendance import classify_source
from app.services.common.permissions import Principal

from tests.conftest import EVENT_CENTER, EVENT_DAY


def check_in_request(world, agent_id=None):
    return CheckInRequest(
        event_id=world.event.id,
        agent_id=agent_id,
        latitude=EVENT_CENTER[0],
        longitude=EVENT_CENTER[1],
    )


def test_classify_source():
    assert classify_source(Principal("a1", UserRole.AGENT), "a1") == CheckInSource.SELF
    assert classify_source(Principal("s1", UserRole.SUPERVISOR), "a1") == CheckInSource.SUPERVISOR
    assert classify_source(Principal("x1", UserRole.ADMIN), "a1") == CheckInSource.ADMIN


def test_second_check_in_names_the_first_actor(registry, world):
    registry.check_in(world.supervisor_principal, check_in_request(world, world.agent.id))

    with pytest.raises(ConflictError) as exc:
        registry.check_in(world.agent_principal, check_in_request(world))

    conflict = exc.value
    assert conflict.status_code == 409
    assert conflict.attribution["source"] == "supervisor"
    assert conflict.attribution["actor_id"] == world.supervisor.id
    assert conflict.attribution["message"] == "Check-in performed by supervisor Samir Bennani"
    assert conflict.existing["agent_id"] == world.agent.id


def test_self_check_in_is_attributed_to_self(registry, world):
    registry.check_in(world.agent_principal, check_in_request(world))

    with pytest.raises(ConflictError) as exc:
        registry.check_in(world.admin_principal, check_in_request(world, world.agent.id))

    assert exc.value.attribution["source"] == "self"
    assert exc.value.attribution["message"] == "Check-in performed by self"


def test_absence_blocks_check_in(registry, world):
    registry.mark_absent(
        world.supervisor_principal,
        MarkAbsentRequest(agent_id=world.agent.id, event_id=world.event.id),
    )

    with pytest.raises(ConflictError) as exc:
        registry.check_in(world.agent_principal, check_in_request(world))

    assert exc.value.attribution["message"] == "Marked absent by supervisor Samir Bennani"
    assert exc.value.existing["status"] == "absent"


def test_check_in_blocks_absence(registry, world):
    registry.check_in(world.agent_principal, check_in_request(world))

    with pytest.raises(ConflictError):
        registry.mark_absent(
            world.admin_principal,
            MarkAbsentRequest(agent_id=world.agent.id, event_id=world.event.id),
        )


def test_stale_lookup_loses_at_the_constraint(make_registry, world, db, monkeypatch):
    winner = make_registry().check_in(world.agent_principal, check_in_request(world))

    stale = make_registry()
    # Simulates a concurrent writer whose lookup ran before the winner committed
    monkeypatch.setattr(stale.resolver, "ensure_available", lambda *args: None)

    with pytest.raises(ConflictError) as exc:
        stale.check_in(world.supervisor_principal, check_in_request(world, world.agent.id))

    assert exc.value.existing["id"] == winner.attendance.id
    assert exc.value.attribution["source"] == "self"
    assert db.query(AttendanceRecord).count() == 1


def test_soft_deleted_record_still_occupies_the_day(registry, world, db):
    first = registry.check_in(world.agent_principal, check_in_request(world))
    record = db.get(AttendanceRecord, first.attendance.id)
    record.soft_delete()
    db.commit()

    with pytest.raises(ConflictError) as exc:
        registry.check_in(world.agent_principal, check_in_request(world))

    assert exc.value.existing["id"] == first.attendance.id


def test_soft_deleted_record_blocks_before_integrity_checks(registry, world, db, staff_channel):
    first = registry.check_in(world.agent_principal, check_in_request(world))
    db.get(AttendanceRecord, first.attendance.id).soft_delete()
    db.commit()

    outside = CheckInRequest(event_id=world.event.id, latitude=36.81, longitude=10.18)
    with pytest.raises(ConflictError):
        registry.check_in(world.agent_principal, outside)

    assert db.query(FraudSignal).count() == 0
    assert "fraud:signal" not in staff_channel.events()


def test_concurrent_actors_produce_one_record(make_registry, world, session_factory):
    barrier = threading.Barrier(2, timeout=10)
    outcomes = {}
    agent_id = world.agent.id
    agent_principal = world.agent_principal
    supervisor_principal = world.supervisor_principal
    agent_request = check_in_request(world)
    staff_request = check_in_request(world, agent_id)

    def attempt(name, principal, request):
        session = session_factory()
        try:
            registry = make_registry(session=session)
            claim = registry.resolver.claim

            def synchronized_claim(record):
                barrier.wait()
                return claim(record)

            registry.resolver.claim = synchronized_claim
            outcomes[name] = registry.check_in(principal, request)
        except ConflictError as e:
            outcomes[name] = e
        finally:
            session.close()

    threads = [
        threading.Thread(target=attempt, args=("agent", agent_principal, agent_request)),
        threading.Thread(target=attempt, args=("supervisor", supervisor_principal, staff_request)),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    conflicts = [o for o in outcomes.values() if isinstance(o, ConflictError)]
    successes = [o for o in outcomes.values() if not isinstance(o, ConflictError)]
    assert len(successes) == 1
    assert len(conflicts) == 1
    assert conflicts[0].existing["id"] == successes[0].attendance.id

    verify = session_factory()
    try:
        rows = verify.query(AttendanceRecord).filter(
            AttendanceRecord.agent_id == agent_id,
            AttendanceRecord.attendance_date == EVENT_DAY,
        ).all()
        assert len(rows) == 1
    finally:
        verify.close()
