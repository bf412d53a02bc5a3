"""
Wind pattern analysis.

Turns the wind fields of an environmental snapshot into:

- the current wind with gusts, stability tier, turbulence and shear,
- an hourly forecast (collaborator-supplied, or a deterministic diurnal
  profile anchored on the current wind),
- four fire-spread vectors (with-wind, both flanks, backing),
- alerts for wind changes that should change tactics,
- an aerial operations status.

All vector and attack-angle directions are derived arithmetically from the
single current wind direction. Bearings are degrees clockwise from north;
speeds are km/h except spread-vector rates (m/min).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

import numpy as np

from fireplan.config import IntensityThresholds, VectorTemplate, WindConfig
from fireplan.exceptions import DataUnavailableError
from fireplan.geo import angular_difference, normalize_bearing
from fireplan.models import (
    AerialStatus,
    AttackAngle,
    CriticalWindChange,
    EnvironmentalSnapshot,
    FireSpreadVector,
    GeoPoint,
    ImpactTier,
    IntensityTier,
    RiskLevel,
    StabilityTier,
    VectorKind,
    WindChangeTrigger,
    WindData,
    WindDataSource,
    WindForecastPoint,
    WindProfile,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Shared helpers
# =============================================================================


def intensity_tier(wind_speed: float, thresholds: IntensityThresholds | None = None) -> IntensityTier:
    """
    Fire intensity tier from wind speed.

    Thresholds are strict: with defaults, >30 km/h is extreme, >20 high,
    >10 moderate, anything else low.
    """
    t = thresholds or IntensityThresholds()
    if wind_speed > t.extreme:
        return IntensityTier.EXTREME
    if wind_speed > t.high:
        return IntensityTier.HIGH
    if wind_speed > t.moderate:
        return IntensityTier.MODERATE
    return IntensityTier.LOW


_RECOMMENDATIONS = {
    WindChangeTrigger.DIRECTION_SHIFT: (
        "Reposition resources: the fire will change direction. "
        "Withdraw personnel from the new risk zone."
    ),
    WindChangeTrigger.SPEED_INCREASE: (
        "Critical alert: fire intensity will increase. Consider a tactical withdrawal."
    ),
    WindChangeTrigger.STABILITY_TRANSITION: (
        "Erratic fire behaviour expected: increase safety distances."
    ),
}


# =============================================================================
# Analyzer
# =============================================================================


class WindAnalyzer:
    """
    Wind pattern analyzer.

    Parameters
    ----------
    config : WindConfig, optional
        Thresholds, vector templates and fallback values.
    """

    def __init__(self, config: WindConfig | None = None):
        self.config = config or WindConfig()

    # -------------------------------------------------------------------------
    # Current conditions
    # -------------------------------------------------------------------------

    def stability(self, hour: int, temperature: float | None) -> StabilityTier:
        """Atmospheric stability tier for an hour of day and air temperature."""
        cfg = self.config
        start, end = cfg.unstable_hours
        if start <= hour <= end and temperature is not None and temperature > cfg.unstable_min_temperature:
            return StabilityTier.UNSTABLE
        if hour >= cfg.stable_from_hour or hour <= cfg.stable_until_hour:
            return StabilityTier.STABLE
        return StabilityTier.NEUTRAL

    def wind_data(self, speed: float, direction: float, stability: StabilityTier, gust_factor: float | None = None) -> WindData:
        """Build a :class:`WindData` with derived gusts, turbulence and shear."""
        cfg = self.config
        speed = max(0.0, float(speed))
        return WindData(
            speed=speed,
            direction=normalize_bearing(direction),
            gusts=speed * (gust_factor or cfg.gust_factor),
            stability=stability,
            turbulence=min(1.0, speed / cfg.turbulence_reference),
            shear=speed * cfg.shear_factor,
        )

    def _observed_wind(self, snapshot: EnvironmentalSnapshot) -> tuple[float, float]:
        if snapshot.wind_speed is None or snapshot.wind_direction is None:
            raise DataUnavailableError("snapshot.wind", "wind speed or direction missing")
        return snapshot.wind_speed, snapshot.wind_direction

    # -------------------------------------------------------------------------
    # Forecast
    # -------------------------------------------------------------------------

    def synthetic_forecast(
        self,
        current: WindData,
        start: datetime,
        temperature: float | None,
        confidence: float = 1.0,
    ) -> tuple[WindForecastPoint, ...]:
        """
        Deterministic hourly forecast anchored on the current wind.

        Direction swings ±``diurnal_direction_amplitude`` over 24 hours and
        speed ±``diurnal_speed_amplitude`` over 12 hours. Confidence decays
        by 2 % per hour ahead, down to half the input confidence.
        """
        cfg = self.config
        hours = np.arange(cfg.forecast_hours)
        directions = current.direction + np.sin(hours / 24.0 * 2 * np.pi) * cfg.diurnal_direction_amplitude
        speeds = np.maximum(0.0, current.speed + np.sin(hours / 12.0 * 2 * np.pi) * cfg.diurnal_speed_amplitude)

        points = []
        for i in hours:
            when = start + timedelta(hours=int(i))
            wind = self.wind_data(
                speeds[i],
                directions[i],
                self.stability(when.hour, temperature),
                gust_factor=cfg.forecast_gust_factor,
            )
            points.append(
                WindForecastPoint(
                    timestamp=when,
                    wind=wind,
                    confidence=confidence * max(0.5, 1.0 - 0.02 * int(i)),
                )
            )
        return tuple(points)

    # -------------------------------------------------------------------------
    # Spread vectors
    # -------------------------------------------------------------------------

    def _vector(
        self,
        kind: VectorKind,
        template: VectorTemplate,
        direction: float,
        current: WindData,
        head_tier: IntensityTier,
    ) -> FireSpreadVector:
        rate = template.base_rate + current.speed * template.wind_coefficient
        return FireSpreadVector(
            kind=kind,
            direction=normalize_bearing(direction),
            speed=max(self.config.min_spread_rate, rate),
            intensity=head_tier.demote(template.tier_demotion),
            probability=template.probability,
            time_to_reach_min=template.time_to_reach_min,
            fuel_consumption=template.fuel_consumption,
        )

    def spread_vectors(self, current: WindData) -> tuple[FireSpreadVector, ...]:
        """Four spread vectors at d, d+90, d-90 and d+180."""
        templates = self.config.vectors
        d = current.direction
        head = intensity_tier(current.speed, self.config.intensity)
        return (
            self._vector(VectorKind.WITH_WIND, templates["with_wind"], d, current, head),
            self._vector(VectorKind.FLANK_RIGHT, templates["flank"], d + 90, current, head),
            self._vector(VectorKind.FLANK_LEFT, templates["flank"], d - 90, current, head),
            self._vector(VectorKind.BACKING, templates["backing"], d + 180, current, head),
        )

    # -------------------------------------------------------------------------
    # Critical changes
    # -------------------------------------------------------------------------

    def detect_critical_changes(
        self, forecast: tuple[WindForecastPoint, ...] | list[WindForecastPoint]
    ) -> tuple[CriticalWindChange, ...]:
        """
        Scan consecutive forecast points for tactically significant changes.

        A direction change is flagged when the raw difference of the two
        bearings lies strictly between 45° and 315°, so small shifts across
        north are ignored. It is critical when that raw difference exceeds
        90°, so a 10° to 310° swing counts as critical.
        """
        cfg = self.config
        changes = []
        for prev, curr in zip(forecast, forecast[1:]):
            a, b = prev.wind, curr.wind

            raw = abs(normalize_bearing(b.direction) - normalize_bearing(a.direction))
            if cfg.direction_change_min < raw < 360.0 - cfg.direction_change_min:
                shift = angular_difference(a.direction, b.direction)
                changes.append(
                    CriticalWindChange(
                        timestamp=curr.timestamp,
                        trigger=WindChangeTrigger.DIRECTION_SHIFT,
                        description=f"Wind direction change: {shift:.0f}°",
                        impact=ImpactTier.CRITICAL if raw > cfg.direction_change_critical else ImpactTier.HIGH,
                        recommendation=_RECOMMENDATIONS[WindChangeTrigger.DIRECTION_SHIFT],
                    )
                )

            increase = b.speed - a.speed
            if increase > cfg.speed_increase_min:
                changes.append(
                    CriticalWindChange(
                        timestamp=curr.timestamp,
                        trigger=WindChangeTrigger.SPEED_INCREASE,
                        description=f"Wind speed increase: +{increase:.1f} km/h",
                        impact=ImpactTier.CRITICAL if increase > cfg.speed_increase_critical else ImpactTier.HIGH,
                        recommendation=_RECOMMENDATIONS[WindChangeTrigger.SPEED_INCREASE],
                    )
                )

            if a.stability == StabilityTier.STABLE and b.stability == StabilityTier.UNSTABLE:
                changes.append(
                    CriticalWindChange(
                        timestamp=curr.timestamp,
                        trigger=WindChangeTrigger.STABILITY_TRANSITION,
                        description="Transition to unstable atmospheric conditions",
                        impact=ImpactTier.HIGH,
                        recommendation=_RECOMMENDATIONS[WindChangeTrigger.STABILITY_TRANSITION],
                    )
                )

        return tuple(changes)

    # -------------------------------------------------------------------------
    # Aerial operations and attack angles
    # -------------------------------------------------------------------------

    def aerial_status(self, current: WindData) -> AerialStatus:
        cfg = self.config
        if current.gusts >= cfg.aerial_grounded_gusts or current.speed >= cfg.aerial_grounded_speed:
            return AerialStatus.GROUNDED
        if current.speed > cfg.aerial_limited_speed:
            return AerialStatus.LIMITED
        return AerialStatus.SAFE

    def optimal_attack_angles(self, current: WindData) -> list[AttackAngle]:
        """
        Four doctrine attack approaches oriented by the current wind.

        Effectiveness and risk are fixed; only the angles follow the wind.
        """
        d = current.direction
        return [
            AttackAngle(
                angle=normalize_bearing(d),
                strategy="Direct frontal attack",
                effectiveness=0.3,
                risk=RiskLevel.EXTREME,
                description="Not recommended: extreme entrapment risk at the head",
            ),
            AttackAngle(
                angle=normalize_bearing(d + 90),
                strategy="Right flank attack",
                effectiveness=0.8,
                risk=RiskLevel.MODERATE,
                description="Recommended: attack from the flank with a safe escape route",
            ),
            AttackAngle(
                angle=normalize_bearing(d - 90),
                strategy="Left flank attack",
                effectiveness=0.8,
                risk=RiskLevel.MODERATE,
                description="Recommended: attack from the flank with a safe escape route",
            ),
            AttackAngle(
                angle=normalize_bearing(d + 180),
                strategy="Indirect attack from the rear",
                effectiveness=0.9,
                risk=RiskLevel.LOW,
                description="Safest: work from the fire's rear, slow but secure progress",
            ),
        ]

    # -------------------------------------------------------------------------
    # Full analysis
    # -------------------------------------------------------------------------

    def analyze_wind(
        self,
        snapshot: EnvironmentalSnapshot,
        location: GeoPoint | None = None,
        now: datetime | None = None,
    ) -> WindProfile:
        """
        Analyze the wind around a fire.

        Parameters
        ----------
        snapshot : EnvironmentalSnapshot
            Source of wind speed, direction, temperature and (optionally) a
            collaborator forecast.
        location : GeoPoint, optional
            Fire location, used for logging only.
        now : datetime, optional
            Analysis time. Defaults to the snapshot's ``observed_at`` and
            then to the local clock.

        Returns
        -------
        WindProfile
            Never raises for missing wind: the configured fallback wind is
            used and the profile is marked ``fallback``.
        """
        cfg = self.config
        now = now or snapshot.observed_at or datetime.now()
        confidence = snapshot.confidence

        try:
            speed, direction = self._observed_wind(snapshot)
            source = WindDataSource.OBSERVED if snapshot.wind_forecast else WindDataSource.SYNTHETIC
        except DataUnavailableError as e:
            logger.warning(f"{e}; using fallback wind {cfg.fallback_speed:.0f} km/h at {cfg.fallback_direction:.0f}°")
            speed, direction = cfg.fallback_speed, cfg.fallback_direction
            source = WindDataSource.FALLBACK
            confidence *= cfg.fallback_confidence_factor

        current = self.wind_data(speed, direction, self.stability(now.hour, snapshot.temperature))

        if snapshot.wind_forecast:
            forecast = tuple(sorted(snapshot.wind_forecast, key=lambda p: p.timestamp))[: cfg.forecast_hours]
        else:
            forecast = self.synthetic_forecast(current, now, snapshot.temperature, confidence)

        changes = self.detect_critical_changes(forecast)
        where = f" at ({location.latitude:.3f}, {location.longitude:.3f})" if location else ""
        logger.info(
            f"Wind{where}: {current.speed:.1f} km/h at {current.direction:.0f}°, "
            f"{current.stability.value}, {len(changes)} critical change(s), source {source.value}"
        )

        return WindProfile(
            current=current,
            forecast=forecast,
            vectors=self.spread_vectors(current),
            critical_changes=changes,
            aerial_operations=self.aerial_status(current),
            data_source=source,
            confidence=confidence,
        )
