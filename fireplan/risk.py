"""
Risk scoring for an active-fire detection.

Two scores are produced on a 0-100 scale:

- **Magnitude score**: how big and how intense the fire is, from brightness
  temperature, burning area, fire weather and vegetation dryness.
- **Danger score**: what the fire threatens, from population,
  infrastructure, economic and environmental exposure.

Each sub-term is first expressed as a 0-100 index and then weighted, so the
weights in :class:`fireplan.config.ScoringConfig` read directly as shares of
the final score. All terms are monotone non-decreasing in the positive risk
factors (brightness, size, temperature, wind, dryness, drought) and
non-increasing in humidity and NDVI.

Exposure sub-terms come from an :class:`ExposureEstimator`. The default
:class:`LandCoverExposureEstimator` is deterministic and only uses fields of
the environmental snapshot; a data-backed estimator can be injected instead.
"""

from __future__ import annotations

import logging
import math
from typing import Protocol

from fireplan.config import ScoringConfig
from fireplan.exceptions import ValidationError
from fireplan.geo import clamp
from fireplan.models import (
    EnvironmentalSnapshot,
    FireObservation,
    LandCover,
    RiskAssessment,
    RiskBand,
)

logger = logging.getLogger(__name__)

# Exposure index used when land cover is unknown
NEUTRAL_EXPOSURE = 50.0


# =============================================================================
# Exposure Estimators
# =============================================================================


class ExposureEstimator(Protocol):
    """Estimates the four danger sub-terms, each on a 0-100 scale."""

    def estimate(
        self,
        observation: FireObservation,
        snapshot: EnvironmentalSnapshot,
    ) -> dict[str, float]:
        """Return ``population``, ``infrastructure``, ``economic`` and ``environmental``."""
        ...


class LandCoverExposureEstimator:
    """
    Exposure from population density, facility count and land-cover mix.

    Parameters
    ----------
    population_saturation : float
        Population density (people/km²) that gives a full population index.
    facility_saturation : int
        Number of critical facilities that gives a full infrastructure index.
    """

    def __init__(self, population_saturation: float = 1000.0, facility_saturation: int = 10):
        self.population_saturation = population_saturation
        self.facility_saturation = facility_saturation

    def estimate(
        self,
        observation: FireObservation,
        snapshot: EnvironmentalSnapshot,
    ) -> dict[str, float]:
        cover = snapshot.land_cover

        if snapshot.population_density is not None:
            population = max(0.0, snapshot.population_density) / self.population_saturation * 100.0
        elif cover is not None:
            population = cover.urban
        else:
            population = NEUTRAL_EXPOSURE

        if snapshot.critical_facilities is not None:
            infrastructure = max(0, snapshot.critical_facilities) / self.facility_saturation * 100.0
        elif cover is not None:
            infrastructure = 0.6 * cover.urban + 0.2 * cover.agriculture
        else:
            infrastructure = NEUTRAL_EXPOSURE

        if cover is not None:
            economic = 0.5 * cover.urban + 0.4 * cover.agriculture + 0.2 * cover.forest
            environmental = 0.6 * cover.forest + 0.3 * cover.shrubland + 0.3 * cover.grassland
        else:
            economic = NEUTRAL_EXPOSURE
            environmental = NEUTRAL_EXPOSURE

        if snapshot.protected_area:
            environmental += 30.0

        return {
            "population": clamp(population, 0.0, 100.0),
            "infrastructure": clamp(infrastructure, 0.0, 100.0),
            "economic": clamp(economic, 0.0, 100.0),
            "environmental": clamp(environmental, 0.0, 100.0),
        }


# =============================================================================
# Fire-danger factors
# =============================================================================


def fire_danger_factors(
    temperature: float,
    humidity: float,
    wind_speed: float,
    ndvi: float,
    dryness: float,
    drought_index: float,
    land_cover: LandCover | None,
    historical_fire_count: int,
) -> dict[str, float]:
    """
    Environmental fire-danger points per factor.

    Caps: temperature 40, humidity 30, wind 30, vegetation 50, drought 15,
    land cover 10, historical 10.
    """
    greenness = clamp(ndvi, 0.0, 1.0)
    cover_points = 0.0
    if land_cover is not None:
        cover_points = min(10.0, land_cover.forest * 0.1 + land_cover.grassland * 0.08)

    return {
        "temperature": clamp((temperature - 15.0) * 2.0, 0.0, 40.0),
        "humidity": clamp((60.0 - humidity) * 0.75, 0.0, 30.0),
        "wind": clamp(wind_speed * 1.5, 0.0, 30.0),
        "vegetation": clamp((1.0 - greenness) * 25.0 + clamp(dryness, 0.0, 1.0) * 25.0, 0.0, 50.0),
        "drought": clamp(abs(drought_index) * 7.5, 0.0, 15.0),
        "land_cover": max(0.0, cover_points),
        "historical": clamp(historical_fire_count * 3.0, 0.0, 10.0),
    }


def risk_band(score: float, config: ScoringConfig) -> RiskBand:
    """Band a magnitude score."""
    if score >= config.bands.extreme:
        return RiskBand.EXTREME
    if score >= config.bands.high:
        return RiskBand.HIGH
    if score >= config.bands.medium:
        return RiskBand.MEDIUM
    return RiskBand.LOW


_BAND_RECOMMENDATIONS = {
    RiskBand.EXTREME: (
        "Activate level 4 emergency protocol: extreme fire risk",
        "Prohibit all activities that could cause ignition",
        "Deploy preventive resources to high-risk zones",
        "Activate emergency command centres",
        "Prepare preventive evacuations in vulnerable zones",
    ),
    RiskBand.HIGH: (
        "Activate level 3 emergency protocol: high fire risk",
        "Restrict access to forest areas",
        "Increase preventive patrols",
        "Ready suppression resources",
    ),
    RiskBand.MEDIUM: (
        "Activate level 2 emergency protocol: moderate risk",
        "Maintain increased surveillance",
        "Verify resource availability",
    ),
    RiskBand.LOW: ("Maintain standard prevention protocols",),
}


def recommendations(
    band: RiskBand,
    temperature: float,
    humidity: float,
    wind_speed: float,
    dryness: float,
    ndvi: float,
    drought_category: str | None,
) -> tuple[str, ...]:
    """Operational recommendations for a band plus weather and fuel alerts."""
    items = list(_BAND_RECOMMENDATIONS[band])

    if temperature > 35:
        items.append("Critical temperature: avoid outdoor work during peak hours")
    if humidity < 20:
        items.append("Critical humidity: extreme ignition and rapid spread risk")
    if wind_speed > 25:
        items.append("Strong winds: risk of erratic spread and spotting")
        items.append("Consider suspending aerial suppression operations")
    if dryness > 0.8:
        items.append("Extremely dry vegetation: pre-position crews near heavy fuels")
    if ndvi < 0.3:
        items.append("Sparse or stressed vegetation: expect fast surface fire runs")
    if drought_category and "extreme" in drought_category.lower():
        items.append("Extreme drought: deep-burning fuels, plan for extended mop-up")

    return tuple(items)


# =============================================================================
# Scorer
# =============================================================================


def require_number(value: float | None, field: str) -> float:
    """Return ``value`` as a finite float or raise :class:`ValidationError` naming ``field``."""
    if value is None or isinstance(value, bool):
        raise ValidationError(field)
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(field, "not a number") from e
    if not math.isfinite(number):
        raise ValidationError(field, "not a finite number")
    return number


class RiskScorer:
    """
    Compute :class:`RiskAssessment` records.

    Parameters
    ----------
    config : ScoringConfig, optional
        Weights, normalisation constants and defaults.
    estimator : ExposureEstimator, optional
        Danger sub-term estimator. Defaults to
        :class:`LandCoverExposureEstimator` built from ``config``.
    """

    def __init__(
        self,
        config: ScoringConfig | None = None,
        estimator: ExposureEstimator | None = None,
    ):
        self.config = config or ScoringConfig()
        self.estimator = estimator or LandCoverExposureEstimator(
            population_saturation=self.config.population_saturation,
            facility_saturation=self.config.facility_saturation,
        )

    def score(self, observation: FireObservation, snapshot: EnvironmentalSnapshot) -> RiskAssessment:
        """
        Score one observation against its environmental snapshot.

        Parameters
        ----------
        observation : FireObservation
            Detection to score. ``brightness`` and ``size`` are required.
        snapshot : EnvironmentalSnapshot
            Context. ``temperature`` and ``humidity`` are required; every
            other field falls back to a configured default.

        Returns
        -------
        RiskAssessment
            Scores in [0, 100] with their breakdown.

        Raises
        ------
        ValidationError
            If a required field is missing or not a finite number.
        """
        cfg = self.config

        brightness = require_number(observation.brightness, "observation.brightness")
        size = require_number(observation.size, "observation.size")
        temperature = require_number(snapshot.temperature, "snapshot.temperature")
        humidity = require_number(snapshot.humidity, "snapshot.humidity")

        degraded: list[str] = []

        def optional(value, name, default):
            if value is None:
                degraded.append(name)
                return default
            return value

        wind_speed = max(0.0, optional(snapshot.wind_speed, "wind_speed", cfg.default_wind_speed))
        ndvi = optional(snapshot.ndvi, "ndvi", cfg.default_ndvi)
        # Dryness is derived from greenness when not measured
        dryness = optional(snapshot.vegetation_dryness, "vegetation_dryness", 1.0 - clamp(ndvi, 0.0, 1.0))
        drought = optional(snapshot.drought_index, "drought_index", cfg.default_drought_index)
        history = optional(snapshot.historical_fire_count, "historical_fire_count", 0)
        if snapshot.land_cover is None:
            degraded.append("land_cover")

        factors = fire_danger_factors(
            temperature, humidity, wind_speed, ndvi, dryness, drought, snapshot.land_cover, history
        )

        # Magnitude
        indices = {
            "brightness": clamp(
                (brightness - cfg.brightness_floor_k) / cfg.brightness_span_k * 100.0, 0.0, 100.0
            ),
            "size": clamp(size / cfg.size_saturation_ha * 100.0, 0.0, 100.0),
            "weather": clamp(factors["temperature"] + factors["humidity"] + factors["wind"], 0.0, 100.0),
            "vegetation": clamp(
                50.0 * clamp(dryness, 0.0, 1.0)
                + 30.0 * (1.0 - clamp(ndvi, 0.0, 1.0))
                + 20.0 * min(1.0, abs(drought) / 2.0),
                0.0,
                100.0,
            ),
        }
        weights = cfg.magnitude_weights.model_dump()
        magnitude_factors = {k: indices[k] * weights[k] for k in indices}
        magnitude = clamp(sum(magnitude_factors.values()), 0.0, 100.0)

        # Danger
        exposure = self.estimator.estimate(observation, snapshot)
        danger_weights = cfg.danger_weights.model_dump()
        danger_factors = {
            k: clamp(exposure.get(k, 0.0), 0.0, 100.0) * danger_weights[k] for k in danger_weights
        }
        danger = clamp(sum(danger_factors.values()), 0.0, 100.0)

        band = risk_band(magnitude, cfg)

        detection_confidence = clamp(observation.confidence, 0.0, 100.0) / 100.0
        confidence = clamp(
            snapshot.confidence * (0.5 + 0.5 * detection_confidence)
            - cfg.missing_input_penalty * len(degraded),
            0.0,
            1.0,
        )

        if degraded:
            logger.debug(f"Risk scored with defaults for: {', '.join(degraded)}")
        logger.debug(f"Magnitude {magnitude:.1f} ({band.value}), danger {danger:.1f}")

        return RiskAssessment(
            magnitude_score=magnitude,
            danger_score=danger,
            band=band,
            magnitude_factors=magnitude_factors,
            danger_factors=danger_factors,
            fire_danger_factors=factors,
            recommendations=recommendations(
                band, temperature, humidity, wind_speed, dryness, ndvi, snapshot.drought_category
            ),
            confidence=confidence,
            degraded_inputs=tuple(degraded),
        )


def score(
    observation: FireObservation,
    snapshot: EnvironmentalSnapshot,
    config: ScoringConfig | None = None,
) -> RiskAssessment:
    """Score with a default :class:`RiskScorer`."""
    return RiskScorer(config).score(observation, snapshot)
