import pytest

from app.core.exceptions import ErrorCode, ValidationError
from app.utils.geo_utils import (
    GeoLocationHelper,
    GeoPoint,
    GeofenceEvaluator,
    GeofenceState,
    validate_coordinates,
)

CENTER = (36.8, 10.18)


@pytest.fixture
def evaluator():
    return GeofenceEvaluator(default_radius_m=100)


def test_position_at_center_is_within(evaluator):
    verdict = evaluator.evaluate(CENTER[0], CENTER[1], CENTER[0], CENTER[1], 100)

    assert verdict.state == GeofenceState.WITHIN
    assert verdict.within_radius is True
    assert verdict.distance_meters == 0
    assert verdict.radius_meters == 100


def test_position_one_kilometer_north_is_outside(evaluator):
    verdict = evaluator.evaluate(36.809, 10.18, CENTER[0], CENTER[1], 100)

    assert verdict.is_outside
    assert verdict.within_radius is False
    assert 980 <= verdict.distance_meters <= 1020


def test_boundary_distance_counts_as_within(evaluator):
    distance = evaluator.evaluate(36.8009, 10.18, CENTER[0], CENTER[1], 100).distance_meters

    verdict = evaluator.evaluate(36.8009, 10.18, CENTER[0], CENTER[1], distance)

    assert verdict.within_radius is True


def test_missing_center_is_not_configured(evaluator):
    verdict = evaluator.evaluate(36.8, 10.18, None, None, 100)

    assert verdict.state == GeofenceState.NOT_CONFIGURED
    assert verdict.within_radius is None
    assert verdict.distance_meters is None
    assert verdict.to_dict()["configured"] is False


def test_missing_radius_uses_default():
    evaluator = GeofenceEvaluator(default_radius_m=2000)

    verdict = evaluator.evaluate(36.809, 10.18, CENTER[0], CENTER[1], None)

    assert verdict.radius_meters == 2000
    assert verdict.within_radius is True


def test_zero_radius_is_kept(evaluator):
    verdict = evaluator.evaluate(36.8001, 10.18, CENTER[0], CENTER[1], 0)

    assert verdict.radius_meters == 0
    assert verdict.within_radius is False
    assert evaluator.evaluate(CENTER[0], CENTER[1], CENTER[0], CENTER[1], 0).within_radius is True


def test_guidance_points_towards_center(evaluator):
    # Standing south of the center: head north
    north = evaluator.guidance(36.79, 10.18, CENTER[0], CENTER[1])
    # Standing east of the center: head west
    west = evaluator.guidance(36.8, 10.19, CENTER[0], CENTER[1])

    assert north["direction"] == "N"
    assert north["bearing"] == pytest.approx(0.0, abs=0.5)
    assert west["direction"] == "W"


def test_cardinal_direction_wraps_around():
    assert GeoLocationHelper.cardinal_direction(350) == "N"
    assert GeoLocationHelper.cardinal_direction(44) == "NE"
    assert GeoLocationHelper.cardinal_direction(180) == "S"


def test_distance_is_symmetric():
    a = GeoPoint(36.8, 10.18)
    b = GeoPoint(33.57, -7.59)

    assert GeoLocationHelper.distance_meters(a, b) == pytest.approx(GeoLocationHelper.distance_meters(b, a))


@pytest.mark.parametrize(
    "latitude, longitude, code",
    [
        (None, 10.0, ErrorCode.MISSING_REQUIRED_FIELD),
        ("abc", 10.0, ErrorCode.INVALID_COORDINATES),
        (91, 10.0, ErrorCode.INVALID_COORDINATES),
        (36.8, -181, ErrorCode.INVALID_COORDINATES),
    ],
)
def test_validate_coordinates_rejects_bad_input(latitude, longitude, code):
    with pytest.raises(ValidationError) as exc:
        validate_coordinates(latitude, longitude)

    assert exc.value.error_code == code
    assert exc.value.status_code == 400


def test_validate_coordinates_accepts_numeric_strings():
    point = validate_coordinates("36.8", "10.18")

    assert point == GeoPoint(36.8, 10.18)
