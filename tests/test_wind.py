"""
Tests for wind pattern analysis.
"""

import dataclasses
from datetime import datetime

import pytest

from fireplan.config import WindConfig
from fireplan.models import (
    AerialStatus,
    ImpactTier,
    IntensityTier,
    StabilityTier,
    VectorKind,
    WindChangeTrigger,
    WindDataSource,
)
from fireplan.wind import WindAnalyzer, intensity_tier


@pytest.fixture
def analyzer():
    return WindAnalyzer()


class TestIntensityTier:
    """Tests for wind intensity banding."""

    @pytest.mark.parametrize(
        "speed,tier",
        [
            (0.0, IntensityTier.LOW),
            (10.0, IntensityTier.LOW),
            (10.1, IntensityTier.MODERATE),
            (20.0, IntensityTier.MODERATE),
            (25.0, IntensityTier.HIGH),
            (30.0, IntensityTier.HIGH),
            (31.0, IntensityTier.EXTREME),
        ],
    )
    def test_thresholds_strict(self, speed, tier):
        """Test thresholds are strictly greater-than."""
        assert intensity_tier(speed) == tier


class TestStability:
    """Tests for atmospheric stability."""

    def test_hot_afternoon_unstable(self, analyzer):
        """Test a hot afternoon is unstable."""
        assert analyzer.stability(14, 34.0) == StabilityTier.UNSTABLE

    def test_cool_afternoon_neutral(self, analyzer):
        """Test a cool afternoon stays neutral."""
        assert analyzer.stability(14, 18.0) == StabilityTier.NEUTRAL

    @pytest.mark.parametrize("hour", [0, 3, 6, 22, 23])
    def test_night_stable(self, analyzer, hour):
        """Test night hours are stable."""
        assert analyzer.stability(hour, 30.0) == StabilityTier.STABLE


class TestSpreadVectors:
    """Tests for spread-vector geometry."""

    @pytest.mark.parametrize("direction", [0.0, 45.0, 90.0, 179.0, 270.0, 359.0])
    def test_directions(self, analyzer, direction):
        """Test vectors point at d, d+90, d-90 and d+180 modulo 360."""
        current = analyzer.wind_data(20.0, direction, StabilityTier.NEUTRAL)
        vectors = analyzer.spread_vectors(current)

        expected = {(direction + k) % 360.0 for k in (0.0, 90.0, -90.0, 180.0)}
        assert {round(v.direction, 6) for v in vectors} == {round(e, 6) for e in expected}
        assert [v.kind for v in vectors] == [
            VectorKind.WITH_WIND,
            VectorKind.FLANK_RIGHT,
            VectorKind.FLANK_LEFT,
            VectorKind.BACKING,
        ]

    def test_head_fastest(self, analyzer):
        """Test the with-wind vector is fastest and backing slowest."""
        vectors = analyzer.spread_vectors(analyzer.wind_data(28.0, 45.0, StabilityTier.NEUTRAL))
        head, right, left, back = vectors

        assert head.speed > right.speed == left.speed > back.speed
        assert head.probability > right.probability > back.probability

    def test_tier_demotion(self, analyzer):
        """Test flanks and backing are demoted from the head tier."""
        head, right, _, back = analyzer.spread_vectors(analyzer.wind_data(35.0, 0.0, StabilityTier.NEUTRAL))

        assert head.intensity == IntensityTier.EXTREME
        assert right.intensity == IntensityTier.HIGH
        assert back.intensity == IntensityTier.MODERATE

    def test_calm_floor(self, analyzer):
        """Test vector rates never drop below the floor."""
        vectors = analyzer.spread_vectors(analyzer.wind_data(0.0, 0.0, StabilityTier.STABLE))
        assert all(v.speed >= WindConfig().min_spread_rate for v in vectors)


class TestCriticalChanges:
    """Tests for critical wind change detection."""

    @pytest.mark.parametrize(
        "shift,impact",
        [(110.0, ImpactTier.CRITICAL), (60.0, ImpactTier.HIGH), (20.0, None)],
    )
    def test_direction_change(self, analyzer, forecast_points, shift, impact):
        """Test direction shift tiers."""
        changes = analyzer.detect_critical_changes(forecast_points([(15.0, 10.0), (15.0, 10.0 + shift)]))
        shifts = [c for c in changes if c.trigger == WindChangeTrigger.DIRECTION_SHIFT]

        if impact is None:
            assert shifts == []
        else:
            assert len(shifts) == 1
            assert shifts[0].impact == impact

    @pytest.mark.parametrize("target", [280.0, 310.0])
    def test_wide_raw_shift_is_critical(self, analyzer, forecast_points, target):
        """Test severity follows the raw bearing difference, not the shorter arc."""
        changes = analyzer.detect_critical_changes(forecast_points([(15.0, 10.0), (15.0, target)]))
        shifts = [c for c in changes if c.trigger == WindChangeTrigger.DIRECTION_SHIFT]

        assert len(shifts) == 1
        assert shifts[0].impact == ImpactTier.CRITICAL

    @pytest.mark.parametrize(
        "increase,impact",
        [(25.0, ImpactTier.CRITICAL), (15.0, ImpactTier.HIGH), (5.0, None)],
    )
    def test_speed_increase(self, analyzer, forecast_points, increase, impact):
        """Test speed increase tiers."""
        changes = analyzer.detect_critical_changes(forecast_points([(10.0, 90.0), (10.0 + increase, 90.0)]))
        increases = [c for c in changes if c.trigger == WindChangeTrigger.SPEED_INCREASE]

        if impact is None:
            assert increases == []
        else:
            assert len(increases) == 1
            assert increases[0].impact == impact

    def test_speed_drop_ignored(self, analyzer, forecast_points):
        """Test a falling wind is not flagged."""
        changes = analyzer.detect_critical_changes(forecast_points([(40.0, 90.0), (5.0, 90.0)]))
        assert changes == ()

    def test_shift_across_north_ignored(self, analyzer, forecast_points):
        """Test a small shift across north is not flagged."""
        changes = analyzer.detect_critical_changes(forecast_points([(15.0, 350.0), (15.0, 10.0)]))
        assert changes == ()

    def test_stable_to_unstable(self, analyzer, forecast_points):
        """Test a stable to unstable transition is flagged."""
        winds = [(10.0, 90.0, StabilityTier.STABLE), (10.0, 90.0, StabilityTier.UNSTABLE)]
        changes = analyzer.detect_critical_changes(forecast_points(winds))

        assert len(changes) == 1
        assert changes[0].trigger == WindChangeTrigger.STABILITY_TRANSITION
        assert changes[0].impact == ImpactTier.HIGH

    def test_change_timestamp_is_later_point(self, analyzer, forecast_points):
        """Test alerts carry the time of the changed point."""
        points = forecast_points([(10.0, 90.0), (10.0, 90.0), (40.0, 90.0)])
        changes = analyzer.detect_critical_changes(points)

        assert changes[0].timestamp == points[2].timestamp


class TestAerialStatus:
    """Tests for aerial operations status."""

    @pytest.mark.parametrize(
        "speed,status",
        [(20.0, AerialStatus.SAFE), (30.0, AerialStatus.LIMITED), (50.0, AerialStatus.GROUNDED)],
    )
    def test_status(self, analyzer, speed, status):
        """Test status bands by wind speed."""
        assert analyzer.aerial_status(analyzer.wind_data(speed, 0.0, StabilityTier.NEUTRAL)) == status

    def test_gusts_ground_aircraft(self, analyzer):
        """Test strong gusts ground aircraft below the speed limit."""
        current = analyzer.wind_data(45.0, 0.0, StabilityTier.NEUTRAL, gust_factor=1.5)
        assert analyzer.aerial_status(current) == AerialStatus.GROUNDED


class TestAnalyzeWind:
    """Tests for the full wind analysis."""

    def test_scenario(self, analyzer, snapshot):
        """Test the scenario wind profile."""
        profile = analyzer.analyze_wind(snapshot)

        assert profile.current.speed == 28.0
        assert profile.current.direction == 45.0
        assert profile.current.gusts == pytest.approx(28.0 * 1.35)
        assert profile.current.stability == StabilityTier.UNSTABLE
        assert profile.aerial_operations == AerialStatus.LIMITED
        assert profile.data_source == WindDataSource.SYNTHETIC
        assert profile.vector(VectorKind.WITH_WIND).direction == 45.0

    def test_synthetic_forecast(self, analyzer, snapshot):
        """Test the synthetic forecast starts at the current wind."""
        profile = analyzer.analyze_wind(snapshot)

        assert len(profile.forecast) == WindConfig().forecast_hours
        assert profile.forecast[0].timestamp == snapshot.observed_at
        assert profile.forecast[0].wind.speed == pytest.approx(28.0)
        assert profile.forecast[0].wind.direction == pytest.approx(45.0)
        confidences = [p.confidence for p in profile.forecast]
        assert confidences == sorted(confidences, reverse=True)

    def test_deterministic(self, analyzer, snapshot):
        """Test repeated analyses are identical."""
        assert analyzer.analyze_wind(snapshot) == analyzer.analyze_wind(snapshot)

    def test_collaborator_forecast(self, analyzer, forecast_points, snapshot):
        """Test a supplied forecast is used and sorted."""
        points = forecast_points([(20.0, 90.0), (50.0, 90.0)])
        snap = dataclasses.replace(snapshot, wind_forecast=tuple(reversed(points)))

        profile = analyzer.analyze_wind(snap)
        assert profile.data_source == WindDataSource.OBSERVED
        assert [p.timestamp for p in profile.forecast] == [p.timestamp for p in points]
        assert profile.critical_changes[0].impact == ImpactTier.CRITICAL

    def test_missing_wind_fallback(self, analyzer, snapshot):
        """Test missing wind uses the fallback with halved confidence."""
        snap = dataclasses.replace(snapshot, wind_speed=None, wind_direction=None)
        profile = analyzer.analyze_wind(snap)

        assert profile.data_source == WindDataSource.FALLBACK
        assert profile.current.speed == 10.0
        assert profile.current.direction == 180.0
        assert profile.confidence == pytest.approx(0.5)

    def test_now_overrides_observed_at(self, analyzer, snapshot):
        """Test an explicit analysis time drives stability."""
        profile = analyzer.analyze_wind(snapshot, now=datetime(2024, 7, 15, 2, 0))
        assert profile.current.stability == StabilityTier.STABLE

    def test_attack_angles(self, analyzer):
        """Test attack angles follow the wind and the rear is safest."""
        angles = analyzer.optimal_attack_angles(analyzer.wind_data(20.0, 300.0, StabilityTier.NEUTRAL))

        assert [a.angle for a in angles] == [300.0, 30.0, 210.0, 120.0]
        assert max(angles, key=lambda a: a.effectiveness).angle == 120.0
