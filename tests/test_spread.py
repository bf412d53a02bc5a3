"""
Tests for the spread module.
"""

import dataclasses

import numpy as np
import pytest

from fireplan.config import SpreadConfig
from fireplan.exceptions import ValidationError
from fireplan.geo import haversine_km
from fireplan.models import GeoPoint, IntensityTier, LandCover
from fireplan.risk import score
from fireplan.spread import (
    SpreadPredictor,
    perimeter,
    perimeter_geojson,
    perimeter_polygon,
    rate_of_spread,
    swept_area_ha,
)
from fireplan.wind import WindAnalyzer


class TestRateOfSpread:
    """Tests for the rate-of-spread relation."""

    def test_scenario_rate(self):
        """Test the linear relation at scenario conditions."""
        # 2 + 28*0.3 + 82*0.02 + 14*0.1
        assert rate_of_spread(28.0, 18.0, 34.0) == pytest.approx(13.44)

    def test_floored_at_zero(self):
        """Test cold, wet and calm conditions never give a negative rate."""
        assert rate_of_spread(0.0, 100.0, -100.0) == 0.0

    def test_increases_with_wind(self):
        """Test stronger wind spreads faster."""
        rates = [rate_of_spread(w, 30.0, 25.0) for w in (0, 10, 20, 40)]
        assert rates == sorted(rates)


class TestArea:
    """Tests for swept area."""

    def test_72h_exceeds_24h(self):
        """Test the 72 h area is larger whenever speed is positive."""
        for speed in (0.01, 0.5, 2.0):
            assert swept_area_ha(speed, 72.0) > swept_area_ha(speed, 24.0)

    def test_zero_speed(self):
        """Test zero speed gives zero area at both horizons."""
        assert swept_area_ha(0.0, 24.0) == 0.0
        assert swept_area_ha(0.0, 72.0) == 0.0

    def test_units(self):
        """Test 1 km/h for 1 h sweeps pi km², i.e. 100·pi ha."""
        assert swept_area_ha(1.0, 1.0) == pytest.approx(np.pi * 100.0)


class TestPerimeter:
    """Tests for perimeter sampling."""

    def test_stretched_downwind(self, location):
        """Test the point on the heading is the farthest from the origin."""
        points = perimeter(location, 90.0, 1.0, 24.0, 20.0, n_points=16)
        distances = [haversine_km(location.latitude, location.longitude, p.latitude, p.longitude) for p in points]

        # point 4 lies on bearing 90
        assert int(np.argmax(distances)) == 4
        assert int(np.argmin(distances)) == 12

    def test_time_is_distance_over_speed(self, location):
        """Test time to reach scales with the stretch factor."""
        points = perimeter(location, 0.0, 2.0, 24.0, 10.0, n_points=4, alignment=0.5)

        assert points[0].time_to_reach_hours == pytest.approx(36.0)
        assert points[2].time_to_reach_hours == pytest.approx(12.0)

    def test_intensity_follows_alignment(self, location):
        """Test the head is at least as intense as the back."""
        points = perimeter(location, 0.0, 1.0, 24.0, 25.0, n_points=8)

        assert points[0].intensity == IntensityTier.EXTREME
        assert points[4].intensity == IntensityTier.MODERATE

    def test_zero_speed_collapses(self, location):
        """Test zero speed keeps every point on the origin."""
        points = perimeter(location, 0.0, 0.0, 24.0, 10.0)

        assert all(p.latitude == location.latitude for p in points)
        assert all(p.time_to_reach_hours == 0.0 for p in points)
        assert perimeter_polygon(points).is_empty

    def test_polygon_valid(self, location):
        """Test a sampled perimeter forms a valid polygon."""
        polygon = perimeter_polygon(perimeter(location, 45.0, 1.0, 24.0, 28.0))

        assert polygon.is_valid
        assert polygon.area > 0


class TestSpreadPredictor:
    """Tests for SpreadPredictor."""

    def test_direction_equals_wind(self, observation, snapshot):
        """Test the spread heading equals the snapshot wind direction."""
        prediction = SpreadPredictor().predict_spread(observation, snapshot)

        assert prediction.direction == pytest.approx(snapshot.wind_direction)
        assert prediction.area_72h_ha > prediction.area_24h_ha > 0
        assert len(prediction.perimeter_24h) == SpreadConfig().perimeter_points

    def test_speed_units(self, observation, snapshot):
        """Test speed in km/h is the m/min rate times 0.06."""
        prediction = SpreadPredictor().predict_spread(observation, snapshot)

        assert prediction.speed_kmh == pytest.approx(prediction.rate_of_spread_m_min * 0.06)

    def test_containment_from_risk(self, observation, snapshot):
        """Test containment probability falls with magnitude."""
        risk = score(observation, snapshot)
        prediction = SpreadPredictor().predict_spread(observation, snapshot, risk=risk)

        assert prediction.containment_probability == pytest.approx(1.0 - risk.magnitude_score / 100.0)

    def test_containment_floor(self, observation, snapshot):
        """Test containment probability never drops below the floor."""
        risk = dataclasses.replace(score(observation, snapshot), magnitude_score=100.0)
        prediction = SpreadPredictor().predict_spread(observation, snapshot, risk=risk)

        assert prediction.containment_probability == pytest.approx(0.1)

    def test_without_risk_less_confident(self, observation, snapshot):
        """Test a missing risk assessment lowers confidence."""
        risk = score(observation, snapshot)
        predictor = SpreadPredictor()

        with_risk = predictor.predict_spread(observation, snapshot, risk=risk)
        without = predictor.predict_spread(observation, snapshot)
        assert without.confidence < with_risk.confidence

    def test_wind_from_profile(self, observation, snapshot):
        """Test wind profile supplies heading when the snapshot has none."""
        profile = WindAnalyzer().analyze_wind(snapshot)
        calm = dataclasses.replace(snapshot, wind_speed=None, wind_direction=None)

        prediction = SpreadPredictor().predict_spread(observation, calm, wind=profile)
        assert prediction.direction == pytest.approx(45.0)

    def test_default_wind(self, observation, snapshot):
        """Test the configured default wind is used as a last resort."""
        calm = dataclasses.replace(snapshot, wind_speed=None, wind_direction=None)

        prediction = SpreadPredictor().predict_spread(observation, calm)
        assert prediction.direction == pytest.approx(180.0)

    def test_firebreaks_downwind(self, observation, snapshot):
        """Test two firebreaks lie ahead of the head, the nearer one better."""
        snap = dataclasses.replace(snapshot, land_cover=LandCover(forest=80.0))
        prediction = SpreadPredictor().predict_spread(observation, snap)
        loc = observation.location

        assert len(prediction.firebreaks) == 2
        near, far = prediction.firebreaks
        assert near.effectiveness > far.effectiveness
        assert near.environmental_impact == "significant"
        assert far.environmental_impact == "moderate"

        for brk in prediction.firebreaks:
            mid = GeoPoint(
                (brk.coordinates[0].latitude + brk.coordinates[1].latitude) / 2,
                (brk.coordinates[0].longitude + brk.coordinates[1].longitude) / 2,
            )
            # wind at 45° pushes the fire north-east
            assert mid.latitude > loc.latitude
            assert mid.longitude > loc.longitude

    def test_no_firebreaks_without_spread(self, observation, snapshot):
        """Test no firebreaks are planned when nothing spreads."""
        config = SpreadConfig(base_ros=-100.0)
        prediction = SpreadPredictor(config).predict_spread(observation, snapshot)

        assert prediction.speed_kmh == 0.0
        assert prediction.area_24h_ha == 0.0
        assert prediction.area_72h_ha == 0.0
        assert prediction.firebreaks == ()

    def test_missing_location(self, observation, snapshot):
        """Test a detection without location is rejected."""
        obs = dataclasses.replace(observation, location=None)

        with pytest.raises(ValidationError) as exc_info:
            SpreadPredictor().predict_spread(obs, snapshot)
        assert exc_info.value.field == "observation.location"

    def test_missing_humidity(self, observation, snapshot):
        """Test a snapshot without humidity is rejected."""
        with pytest.raises(ValidationError):
            SpreadPredictor().predict_spread(observation, dataclasses.replace(snapshot, humidity=None))

    def test_geojson(self, observation, snapshot):
        """Test GeoJSON holds both perimeters and both firebreaks."""
        prediction = SpreadPredictor().predict_spread(observation, snapshot)
        collection = perimeter_geojson(prediction)

        kinds = [f["geometry"]["type"] for f in collection["features"]]
        assert kinds == ["Polygon", "Polygon", "LineString", "LineString"]
        assert collection["features"][0]["properties"]["horizon_hours"] == 24.0
