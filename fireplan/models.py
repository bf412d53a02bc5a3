"""
Data records exchanged between fireplan modules.

Inputs (observations, snapshots, zone context) come from collaborators and
are read-only. Outputs are derived per call and never mutated afterwards.
Every record round-trips through :mod:`fireplan.serialization`.

Units
-----
temperature °C, humidity %, wind speed km/h, bearings degrees clockwise from
north, fire size and areas hectares, rate of spread m/min, spread speed km/h.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from fireplan.serialization import Serializable


# =============================================================================
# Enumerations
# =============================================================================


class IntensityTier(str, Enum):
    """Fire intensity tier, ordered low → extreme."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    EXTREME = "extreme"

    @property
    def rank(self) -> int:
        return _INTENSITY_ORDER.index(self)

    def demote(self, steps: int = 1) -> IntensityTier:
        """Return the tier ``steps`` levels lower, never below LOW."""
        return _INTENSITY_ORDER[max(0, self.rank - steps)]


_INTENSITY_ORDER = [
    IntensityTier.LOW,
    IntensityTier.MODERATE,
    IntensityTier.HIGH,
    IntensityTier.EXTREME,
]


class StabilityTier(str, Enum):
    STABLE = "stable"
    NEUTRAL = "neutral"
    UNSTABLE = "unstable"


class ImpactTier(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class RiskLevel(str, Enum):
    """Operational risk of a strategy or attack angle."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    EXTREME = "extreme"

    @property
    def rank(self) -> int:
        return list(RiskLevel).index(self)


class RiskBand(str, Enum):
    """Banding of the magnitude score."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EXTREME = "extreme"


class AerialStatus(str, Enum):
    SAFE = "safe"
    LIMITED = "limited"
    GROUNDED = "grounded"


class WindDataSource(str, Enum):
    OBSERVED = "observed"
    SYNTHETIC = "synthetic"
    FALLBACK = "fallback"


class VectorKind(str, Enum):
    WITH_WIND = "with_wind"
    FLANK_RIGHT = "flank_right"
    FLANK_LEFT = "flank_left"
    BACKING = "backing"


class WindChangeTrigger(str, Enum):
    DIRECTION_SHIFT = "direction_shift"
    SPEED_INCREASE = "speed_increase"
    STABILITY_TRANSITION = "stability_transition"


class OrganizationRole(str, Enum):
    """Responding organization type."""

    FIREFIGHTING = "firefighting"
    MEDICAL = "medical"
    LAW_ENFORCEMENT = "law_enforcement"
    CIVIL_PROTECTION = "civil_protection"
    GENERIC = "generic"

    @classmethod
    def parse(cls, value: Any) -> OrganizationRole:
        """
        Map a role name or alias to a role.

        Anything unrecognised maps to GENERIC; this never raises.
        """
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower().replace("-", "_").replace(" ", "_")
        return _ROLE_ALIASES.get(key, cls.GENERIC)

    @property
    def suppression_capable(self) -> bool:
        return self in (OrganizationRole.FIREFIGHTING, OrganizationRole.CIVIL_PROTECTION)


_ROLE_ALIASES = {
    "firefighting": OrganizationRole.FIREFIGHTING,
    "firefighters": OrganizationRole.FIREFIGHTING,
    "fire": OrganizationRole.FIREFIGHTING,
    "medical": OrganizationRole.MEDICAL,
    "ems": OrganizationRole.MEDICAL,
    "law_enforcement": OrganizationRole.LAW_ENFORCEMENT,
    "police": OrganizationRole.LAW_ENFORCEMENT,
    "civil_protection": OrganizationRole.CIVIL_PROTECTION,
    "generic": OrganizationRole.GENERIC,
}


# =============================================================================
# Inputs
# =============================================================================


@dataclass(frozen=True)
class GeoPoint(Serializable):
    latitude: float
    longitude: float


@dataclass(frozen=True)
class FireObservation(Serializable):
    """
    A single active-fire detection.

    Attributes
    ----------
    location : GeoPoint or None
        Detection centre. Plans cannot be generated without it.
    brightness : float
        Brightness temperature in kelvin.
    confidence : float
        Detection confidence, 0-100.
    size : float
        Estimated burning area in hectares.
    sensor_id : str
        Sensor or satellite identifier (e.g. ``"VIIRS"``).
    timestamp : datetime, optional
        Detection time.
    """

    location: GeoPoint | None
    brightness: float
    confidence: float
    size: float
    sensor_id: str = "unknown"
    timestamp: datetime | None = None


@dataclass(frozen=True)
class LandCover(Serializable):
    """Land-cover fractions in percent of the surrounding area."""

    forest: float = 0.0
    grassland: float = 0.0
    shrubland: float = 0.0
    agriculture: float = 0.0
    urban: float = 0.0
    water: float = 0.0


@dataclass(frozen=True)
class WindData(Serializable):
    speed: float
    direction: float
    gusts: float
    stability: StabilityTier
    turbulence: float
    shear: float


@dataclass(frozen=True)
class WindForecastPoint(Serializable):
    timestamp: datetime
    wind: WindData
    confidence: float


@dataclass(frozen=True)
class EnvironmentalSnapshot(Serializable):
    """
    Environmental context around a fire, refreshed by a collaborator.

    ``temperature`` and ``humidity`` are required by every computation. The
    remaining fields are optional enrichment; when absent the consumers fall
    back to documented defaults and lower their confidence.
    """

    temperature: float | None
    humidity: float | None
    wind_speed: float | None = None
    wind_direction: float | None = None
    ndvi: float | None = None
    vegetation_dryness: float | None = None
    drought_index: float | None = None
    drought_category: str | None = None
    land_cover: LandCover | None = None
    historical_fire_count: int | None = None
    observed_at: datetime | None = None
    population_density: float | None = None
    critical_facilities: int | None = None
    protected_area: bool = False
    wind_forecast: tuple[WindForecastPoint, ...] = ()
    confidence: float = 1.0
    stale: bool = False

    def degraded(self, factor: float) -> EnvironmentalSnapshot:
        """Return a stale copy with confidence multiplied by ``factor``."""
        return dataclasses.replace(self, confidence=self.confidence * factor, stale=True)


# =============================================================================
# Risk
# =============================================================================


@dataclass(frozen=True)
class RiskAssessment(Serializable):
    """
    Magnitude and danger scores with their per-factor breakdown.

    ``magnitude_factors`` and ``danger_factors`` hold the weighted points each
    term contributed; ``fire_danger_factors`` holds the environmental
    fire-danger terms that feed the weather and vegetation indices.
    """

    magnitude_score: float
    danger_score: float
    band: RiskBand
    magnitude_factors: dict[str, float]
    danger_factors: dict[str, float]
    fire_danger_factors: dict[str, float]
    recommendations: tuple[str, ...]
    confidence: float
    degraded_inputs: tuple[str, ...] = ()


# =============================================================================
# Spread
# =============================================================================


@dataclass(frozen=True)
class PerimeterPoint(Serializable):
    latitude: float
    longitude: float
    time_to_reach_hours: float
    intensity: IntensityTier


@dataclass(frozen=True)
class Firebreak(Serializable):
    coordinates: tuple[GeoPoint, ...]
    effectiveness: float
    construction_time_hours: float
    environmental_impact: str


@dataclass(frozen=True)
class SpreadPrediction(Serializable):
    """
    Short-horizon spread forecast.

    Areas are hectares of the circle swept by the spread speed over the
    horizon. The perimeters are the wind-shaped boundaries at 24 h and 72 h.
    """

    direction: float
    speed_kmh: float
    rate_of_spread_m_min: float
    area_24h_ha: float
    area_72h_ha: float
    containment_probability: float
    perimeter_24h: tuple[PerimeterPoint, ...]
    perimeter_72h: tuple[PerimeterPoint, ...]
    firebreaks: tuple[Firebreak, ...] = ()
    confidence: float = 1.0


# =============================================================================
# Wind
# =============================================================================


@dataclass(frozen=True)
class FireSpreadVector(Serializable):
    kind: VectorKind
    direction: float
    speed: float  # m/min
    intensity: IntensityTier
    probability: float
    time_to_reach_min: float
    fuel_consumption: float  # kg/m²


@dataclass(frozen=True)
class CriticalWindChange(Serializable):
    timestamp: datetime
    trigger: WindChangeTrigger
    description: str
    impact: ImpactTier
    recommendation: str


@dataclass(frozen=True)
class AttackAngle(Serializable):
    angle: float
    strategy: str
    effectiveness: float
    risk: RiskLevel
    description: str


@dataclass(frozen=True)
class WindProfile(Serializable):
    current: WindData
    forecast: tuple[WindForecastPoint, ...]
    vectors: tuple[FireSpreadVector, ...]
    critical_changes: tuple[CriticalWindChange, ...]
    aerial_operations: AerialStatus
    data_source: WindDataSource
    confidence: float

    def vector(self, kind: VectorKind) -> FireSpreadVector:
        return next(v for v in self.vectors if v.kind == kind)


# =============================================================================
# Tactical plan
# =============================================================================


@dataclass(frozen=True)
class Route(Serializable):
    id: str
    coordinates: tuple[GeoPoint, ...]
    difficulty: str
    estimated_time_min: float


@dataclass(frozen=True)
class EvacuationRoute(Serializable):
    id: str
    coordinates: tuple[GeoPoint, ...]
    capacity: int  # people per hour
    priority: str  # immediate | high | medium | low


@dataclass(frozen=True)
class CriticalZone(Serializable):
    type: str  # suppression | protection | evacuation
    location: GeoPoint
    priority: int
    description: str


@dataclass(frozen=True)
class StagingZone(Serializable):
    id: str
    location: GeoPoint
    purpose: str
    distance_km: float


@dataclass(frozen=True)
class WaterSource(Serializable):
    id: str
    type: str
    location: GeoPoint
    capacity_liters: float
    flow_rate_lpm: float
    accessibility: str
    distance_km: float
    setup_time_min: float
    reliability: float


@dataclass(frozen=True)
class CivilianArea(Serializable):
    type: str  # residential | hospital | school | commercial | veterinary
    location: GeoPoint
    population: int
    evacuation_priority: int
    special_needs: tuple[str, ...] = ()


@dataclass(frozen=True)
class ResourceNeeds(Serializable):
    ground_crews: int = 0
    aircraft: int = 0
    water_tenders: int = 0
    command_units: int = 0
    medical_units: int = 0
    patrol_units: int = 0


@dataclass(frozen=True)
class ZoneContext(Serializable):
    """
    Facilities and civilian areas known for the monitoring zone.

    Empty ``water_sources`` means "not looked up yet"; suppression-capable
    roles then ask the facility provider.
    """

    name: str = "unnamed"
    civilian_areas: tuple[CivilianArea, ...] = ()
    water_sources: tuple[WaterSource, ...] = ()


@dataclass(frozen=True)
class TacticalPlan(Serializable):
    role: OrganizationRole
    primary_strategy: str
    entry_routes: tuple[Route, ...]
    evacuation_routes: tuple[EvacuationRoute, ...]
    critical_zones: tuple[CriticalZone, ...]
    staging_zones: tuple[StagingZone, ...]
    water_sources: tuple[WaterSource, ...]
    civilian_areas: tuple[CivilianArea, ...]
    resource_needs: ResourceNeeds
    confidence: float


# =============================================================================
# Strategy catalog
# =============================================================================


@dataclass(frozen=True)
class ResourceDeployment(Serializable):
    type: str  # ground_crew | aerial | heavy_equipment | water_supply
    units: int
    location: GeoPoint
    assignment: str
    communication_channel: str
    escape_routes: tuple[str, ...] = ()
    safety_zones: tuple[str, ...] = ()


@dataclass(frozen=True)
class TacticalPhase(Serializable):
    phase: int
    name: str
    duration_min: float
    objectives: tuple[str, ...]
    deployments: tuple[ResourceDeployment, ...]
    safety_measures: tuple[str, ...]
    success_criteria: tuple[str, ...]
    fallback_options: tuple[str, ...]


@dataclass(frozen=True)
class CasualtyRisk(Serializable):
    civilian: float
    firefighter: float
    environmental: float


@dataclass(frozen=True)
class StrategyCatalogEntry(Serializable):
    id: str
    name: str
    priority: int
    risk_level: RiskLevel
    equipment: tuple[str, ...]
    personnel: int
    duration_hours: float
    success_probability: float
    casualty_risk: CasualtyRisk
    phases: tuple[TacticalPhase, ...]
    contingency_plans: tuple[str, ...]
    critical_factors: tuple[str, ...]
    adjustments: tuple[str, ...] = ()


# =============================================================================
# Pipeline result
# =============================================================================


@dataclass(frozen=True)
class DataQuality(Serializable):
    satellite: float
    weather: float
    infrastructure: float
    overall: float


@dataclass(frozen=True)
class ComprehensiveAnalysis(Serializable):
    """Everything the pipeline derived for one (observation, role) pair."""

    observation: FireObservation
    snapshot: EnvironmentalSnapshot
    risk: RiskAssessment | None
    wind: WindProfile | None
    spread: SpreadPrediction | None
    plan: TacticalPlan | None
    strategies: tuple[StrategyCatalogEntry, ...]
    data_quality: DataQuality
    errors: dict[str, str] = field(default_factory=dict)
