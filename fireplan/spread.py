"""
Short-horizon fire spread prediction.

A rule-based spread forecast, not a combustion model. The head rate of
spread follows a linear fire-weather relation:

    ROS [m/min] = base + wind × c_w + (100 − RH) × c_h + (T − 20) × c_t

converted to a spread speed in km/h (× 0.06). The affected area at a horizon
is the circle swept by that speed, reported in hectares. Perimeters are
sampled at evenly spaced bearings and stretched toward the wind heading by
``1 + a·cos(bearing − heading)``.

Units
-----
Speed km/h, distances km, areas ha (1 km² = 100 ha), times hours.
"""

from __future__ import annotations

import logging
import math

import numpy as np
from shapely.geometry import LineString, Polygon, mapping

from fireplan.config import IntensityThresholds, SpreadConfig
from fireplan.exceptions import ValidationError
from fireplan.geo import clamp, normalize_bearing, offset_point
from fireplan.models import (
    EnvironmentalSnapshot,
    Firebreak,
    FireObservation,
    GeoPoint,
    PerimeterPoint,
    RiskAssessment,
    SpreadPrediction,
    WindProfile,
)
from fireplan.risk import require_number
from fireplan.wind import intensity_tier

logger = logging.getLogger(__name__)

HORIZONS_HOURS = (24.0, 72.0)
HA_PER_KM2 = 100.0
KMH_PER_M_MIN = 0.06


# =============================================================================
# Core relations
# =============================================================================


def rate_of_spread(
    wind_speed: float,
    humidity: float,
    temperature: float,
    config: SpreadConfig | None = None,
) -> float:
    """Head rate of spread in m/min, floored at zero."""
    cfg = config or SpreadConfig()
    ros = (
        cfg.base_ros
        + wind_speed * cfg.wind_coefficient
        + (100.0 - humidity) * cfg.humidity_coefficient
        + (temperature - cfg.reference_temperature) * cfg.temperature_coefficient
    )
    return max(0.0, ros)


def swept_area_ha(speed_kmh: float, hours: float) -> float:
    """Area of the circle reached at ``speed_kmh`` after ``hours``, in hectares."""
    if speed_kmh <= 0:
        return 0.0
    radius_km = speed_kmh * hours
    return math.pi * radius_km**2 * HA_PER_KM2


def perimeter(
    origin: GeoPoint,
    heading: float,
    speed_kmh: float,
    hours: float,
    wind_speed: float,
    n_points: int = 16,
    alignment: float = 0.5,
    thresholds: IntensityThresholds | None = None,
) -> tuple[PerimeterPoint, ...]:
    """
    Sample the predicted fire boundary at one horizon.

    Parameters
    ----------
    origin : GeoPoint
        Fire location.
    heading : float
        Spread heading (bearing the wind pushes the fire toward).
    speed_kmh : float
        Nominal spread speed.
    hours : float
        Horizon.
    wind_speed : float
        Wind speed used for the per-point intensity tier.
    n_points : int
        Number of boundary points; point ``i`` lies on bearing ``i·360/n``.
    alignment : float
        Stretch factor ``a``: distances are scaled by ``1 + a·cos(Δ)``.

    Returns
    -------
    tuple[PerimeterPoint, ...]
        Points in clockwise order from north. With zero speed every point sits
        on the origin with zero time to reach.
    """
    bearings = np.arange(n_points) * (360.0 / n_points)
    factors = 1.0 + alignment * np.cos(np.deg2rad(bearings - heading))
    speed = max(0.0, speed_kmh)

    points = []
    for bearing, factor in zip(bearings, factors):
        distance = speed * hours * factor
        lat, lon = offset_point(origin.latitude, origin.longitude, distance, bearing)
        points.append(
            PerimeterPoint(
                latitude=lat,
                longitude=lon,
                time_to_reach_hours=distance / speed if speed > 0 else 0.0,
                intensity=intensity_tier(wind_speed * factor, thresholds),
            )
        )
    return tuple(points)


def perimeter_polygon(points: tuple[PerimeterPoint, ...] | list[PerimeterPoint]) -> Polygon:
    """
    Shapely polygon (lon, lat) for a perimeter.

    A collapsed perimeter (zero spread) gives an empty polygon.
    """
    coords = [(p.longitude, p.latitude) for p in points]
    if len(set(coords)) < 3:
        return Polygon()
    return Polygon(coords)


def perimeter_geojson(prediction: SpreadPrediction) -> dict:
    """GeoJSON FeatureCollection with both perimeters and the firebreaks."""
    features = []
    for hours, points in zip(HORIZONS_HOURS, (prediction.perimeter_24h, prediction.perimeter_72h)):
        polygon = perimeter_polygon(points)
        if polygon.is_empty:
            continue
        features.append(
            {
                "type": "Feature",
                "geometry": mapping(polygon),
                "properties": {
                    "horizon_hours": hours,
                    "area_ha": prediction.area_24h_ha if hours == 24.0 else prediction.area_72h_ha,
                    "direction": prediction.direction,
                    "speed_kmh": prediction.speed_kmh,
                },
            }
        )
    for i, brk in enumerate(prediction.firebreaks):
        line = LineString([(c.longitude, c.latitude) for c in brk.coordinates])
        features.append(
            {
                "type": "Feature",
                "geometry": mapping(line),
                "properties": {
                    "firebreak": i + 1,
                    "effectiveness": brk.effectiveness,
                    "construction_time_hours": brk.construction_time_hours,
                    "environmental_impact": brk.environmental_impact,
                },
            }
        )
    return {"type": "FeatureCollection", "features": features}


# =============================================================================
# Predictor
# =============================================================================


class SpreadPredictor:
    """
    Spread prediction service.

    Parameters
    ----------
    config : SpreadConfig, optional
        Rate-of-spread coefficients and perimeter settings.
    intensity : IntensityThresholds, optional
        Wind thresholds for per-point intensity tiers; shared with the wind
        analyzer so both modules band intensity identically.
    """

    def __init__(
        self,
        config: SpreadConfig | None = None,
        intensity: IntensityThresholds | None = None,
    ):
        self.config = config or SpreadConfig()
        self.intensity = intensity or IntensityThresholds()

    def _firebreaks(self, origin: GeoPoint, heading: float, snapshot: EnvironmentalSnapshot) -> tuple[Firebreak, ...]:
        cfg = self.config
        forest = snapshot.land_cover.forest if snapshot.land_cover is not None else 0.0
        primary_impact = "significant" if forest > cfg.forest_impact_threshold else "moderate"

        breaks = []
        for offset, effectiveness, build_hours, impact in (
            (cfg.firebreak_offset_km, 0.85, 4.0, primary_impact),
            (2 * cfg.firebreak_offset_km, 0.75, 6.0, "moderate"),
        ):
            centre = offset_point(origin.latitude, origin.longitude, offset, heading)
            ends = [
                offset_point(*centre, cfg.firebreak_half_length_km, heading + side)
                for side in (90.0, -90.0)
            ]
            breaks.append(
                Firebreak(
                    coordinates=tuple(GeoPoint(lat, lon) for lat, lon in ends),
                    effectiveness=effectiveness,
                    construction_time_hours=build_hours,
                    environmental_impact=impact,
                )
            )
        return tuple(breaks)

    def predict_spread(
        self,
        observation: FireObservation,
        snapshot: EnvironmentalSnapshot,
        risk: RiskAssessment | None = None,
        wind: WindProfile | None = None,
    ) -> SpreadPrediction:
        """
        Predict spread at 24 h and 72 h.

        Parameters
        ----------
        observation : FireObservation
            Detection; ``location`` is required.
        snapshot : EnvironmentalSnapshot
            ``temperature`` and ``humidity`` are required.
        risk : RiskAssessment, optional
            Drives the containment probability. Without it a neutral
            magnitude is assumed and confidence drops.
        wind : WindProfile, optional
            Used for speed and heading when the snapshot has no wind.

        Raises
        ------
        ValidationError
            If the location, temperature or humidity is missing.
        """
        cfg = self.config
        if observation.location is None:
            raise ValidationError("observation.location")
        temperature = require_number(snapshot.temperature, "snapshot.temperature")
        humidity = require_number(snapshot.humidity, "snapshot.humidity")

        confidence = cfg.base_confidence * snapshot.confidence

        if snapshot.wind_speed is not None and snapshot.wind_direction is not None:
            wind_speed, heading = snapshot.wind_speed, snapshot.wind_direction
        elif wind is not None:
            wind_speed, heading = wind.current.speed, wind.current.direction
            confidence *= wind.confidence
        else:
            logger.warning("No wind available for spread prediction, using configured default")
            wind_speed, heading = cfg.default_wind_speed, cfg.default_wind_direction
            confidence -= cfg.missing_wind_penalty
        wind_speed = max(0.0, wind_speed)
        heading = normalize_bearing(heading)

        if risk is not None:
            magnitude = risk.magnitude_score
        else:
            magnitude = cfg.neutral_magnitude
            confidence *= 0.8

        ros = rate_of_spread(wind_speed, humidity, temperature, cfg)
        speed = ros * KMH_PER_M_MIN

        perimeters = [
            perimeter(
                observation.location,
                heading,
                speed,
                hours,
                wind_speed,
                n_points=cfg.perimeter_points,
                alignment=cfg.wind_alignment,
                thresholds=self.intensity,
            )
            for hours in HORIZONS_HOURS
        ]

        firebreaks = self._firebreaks(observation.location, heading, snapshot) if speed > 0 else ()

        prediction = SpreadPrediction(
            direction=heading,
            speed_kmh=speed,
            rate_of_spread_m_min=ros,
            area_24h_ha=swept_area_ha(speed, HORIZONS_HOURS[0]),
            area_72h_ha=swept_area_ha(speed, HORIZONS_HOURS[1]),
            containment_probability=clamp(
                1.0 - magnitude / 100.0, cfg.min_containment_probability, 1.0
            ),
            perimeter_24h=perimeters[0],
            perimeter_72h=perimeters[1],
            firebreaks=firebreaks,
            confidence=clamp(confidence, 0.0, 1.0),
        )

        logger.info(
            f"Spread: {ros:.2f} m/min ({speed:.3f} km/h) toward {heading:.0f}°, "
            f"24h {prediction.area_24h_ha:.0f} ha, 72h {prediction.area_72h_ha:.0f} ha"
        )
        return prediction
