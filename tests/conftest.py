"""
Shared fixtures for fireplan tests.
"""

from datetime import datetime, timedelta

import pytest

from fireplan.config import FireplanConfig
from fireplan.models import (
    EnvironmentalSnapshot,
    FireObservation,
    GeoPoint,
    LandCover,
    StabilityTier,
    WindData,
    WindForecastPoint,
)

SCENARIO_TIME = datetime(2024, 7, 15, 14, 0)


@pytest.fixture
def location():
    return GeoPoint(40.0, -3.7)


@pytest.fixture
def observation(location):
    """Bright 3 ha detection used across the reference scenario."""
    return FireObservation(
        location=location,
        brightness=480.0,
        confidence=85.0,
        size=3.0,
        sensor_id="VIIRS",
        timestamp=SCENARIO_TIME,
    )


@pytest.fixture
def snapshot():
    """Hot, dry and windy afternoon: 34 °C, 18 %, 28 km/h from 45°."""
    return EnvironmentalSnapshot(
        temperature=34.0,
        humidity=18.0,
        wind_speed=28.0,
        wind_direction=45.0,
        ndvi=0.25,
        observed_at=SCENARIO_TIME,
    )


@pytest.fixture
def rich_snapshot(snapshot):
    """Scenario snapshot with every optional field filled in."""
    return EnvironmentalSnapshot(
        temperature=snapshot.temperature,
        humidity=snapshot.humidity,
        wind_speed=snapshot.wind_speed,
        wind_direction=snapshot.wind_direction,
        ndvi=snapshot.ndvi,
        vegetation_dryness=0.8,
        drought_index=-1.5,
        drought_category="Extreme drought",
        land_cover=LandCover(forest=75.0, grassland=10.0, shrubland=5.0, agriculture=5.0, urban=5.0),
        historical_fire_count=2,
        observed_at=SCENARIO_TIME,
        population_density=150.0,
        critical_facilities=3,
        protected_area=True,
    )


@pytest.fixture
def config():
    return FireplanConfig()


def _forecast_points(winds, start=SCENARIO_TIME):
    points = []
    for i, w in enumerate(winds):
        stability = w[2] if len(w) > 2 else StabilityTier.NEUTRAL
        points.append(
            WindForecastPoint(
                timestamp=start + timedelta(hours=i),
                wind=WindData(
                    speed=w[0], direction=w[1], gusts=w[0] * 1.3,
                    stability=stability, turbulence=0.3, shear=1.0,
                ),
                confidence=0.9,
            )
        )
    return points


@pytest.fixture
def forecast_points():
    """Build hourly forecast points from (speed, direction[, stability]) tuples."""
    return _forecast_points
