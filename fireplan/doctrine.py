"""
Doctrine templates for tactical planning.

Role route templates, the five-strategy catalog and the static facility set
are versioned YAML files shipped in ``fireplan/data``. This module validates
them with Pydantic and hands them to the planner, so doctrine can change
without touching ranking or selection code.

Offsets are ``[dlat, dlon]`` pairs in decimal degrees from the fire location.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator, model_validator

from fireplan.exceptions import ConfigurationError
from fireplan.models import OrganizationRole, RiskLevel

logger = logging.getLogger(__name__)

Offset = tuple[float, float]


# =============================================================================
# Role templates
# =============================================================================


class RouteTemplate(BaseModel):
    id: str
    waypoints: list[Offset] = Field(..., min_length=2)
    difficulty: Literal["easy", "moderate", "difficult"] = "moderate"
    estimated_time_min: float = Field(..., ge=0)


class EvacuationRouteTemplate(BaseModel):
    id: str
    waypoints: list[Offset] = Field(..., min_length=2)
    capacity: int = Field(..., ge=0, description="People per hour")
    priority: Literal["immediate", "high", "medium", "low"]


class CriticalZoneTemplate(BaseModel):
    type: Literal["suppression", "protection", "evacuation"]
    offset: Offset = (0.0, 0.0)
    priority: int = Field(..., ge=1, le=10)
    description: str


class StagingZoneTemplate(BaseModel):
    id: str
    offset: Offset
    purpose: str


class ResourceTemplate(BaseModel):
    ground_crews: int = Field(0, ge=0)
    aircraft: int = Field(0, ge=0)
    water_tenders: int = Field(0, ge=0)
    command_units: int = Field(0, ge=0)
    medical_units: int = Field(0, ge=0)
    patrol_units: int = Field(0, ge=0)


class RoleTemplate(BaseModel):
    """Everything a role routine needs besides live inputs."""

    primary_strategy: str
    entry_routes: list[RouteTemplate] = Field(default_factory=list)
    evacuation_routes: list[EvacuationRouteTemplate] = Field(default_factory=list)
    critical_zones: list[CriticalZoneTemplate] = Field(default_factory=list)
    staging_zones: list[StagingZoneTemplate] = Field(default_factory=list)
    base_resources: ResourceTemplate = Field(default_factory=ResourceTemplate)


class RoleDoctrine(BaseModel):
    version: str
    roles: dict[OrganizationRole, RoleTemplate]

    @model_validator(mode="after")
    def check_roles(self) -> "RoleDoctrine":
        # GENERIC borrows the civil-protection template
        required = set(OrganizationRole) - {OrganizationRole.GENERIC}
        missing = required - set(self.roles)
        if missing:
            raise ValueError(f"role templates missing: {sorted(r.value for r in missing)}")
        return self


# =============================================================================
# Strategy catalog
# =============================================================================


class DeploymentTemplate(BaseModel):
    type: Literal["ground_crew", "aerial", "heavy_equipment", "water_supply"]
    units: int = Field(..., ge=0)
    offset: Offset = (0.0, 0.0)
    assignment: str
    communication_channel: str
    escape_routes: list[str] = Field(default_factory=list)
    safety_zones: list[str] = Field(default_factory=list)


class PhaseTemplate(BaseModel):
    phase: int = Field(..., ge=1)
    name: str
    duration_min: float = Field(..., gt=0)
    objectives: list[str]
    deployments: list[DeploymentTemplate] = Field(default_factory=list)
    safety_measures: list[str] = Field(default_factory=list)
    success_criteria: list[str] = Field(default_factory=list)
    fallback_options: list[str] = Field(default_factory=list)


Metric = Literal[
    "wind_speed",
    "gusts",
    "turbulence",
    "instability",
    "critical_changes",
    "magnitude_score",
    "danger_score",
    "spread_speed_kmh",
]


class AdjustmentRule(BaseModel):
    """
    One live-condition adjustment to a strategy.

    A rule with ``op``/``threshold`` applies its deltas when the metric passes
    the test. ``success_per_unit`` always applies, scaled by the metric value.
    """

    description: str
    metric: Metric
    op: Literal["gt", "ge", "lt", "le"] | None = None
    threshold: float | None = None
    priority_delta: int = 0
    success_delta: float = 0.0
    success_per_unit: float = 0.0
    risk_level: RiskLevel | None = None

    @model_validator(mode="after")
    def check_condition(self) -> "AdjustmentRule":
        if (self.op is None) != (self.threshold is None):
            raise ValueError("op and threshold must be given together")
        return self

    def matches(self, value: float) -> bool:
        if self.op is None:
            return True
        return {
            "gt": value > self.threshold,
            "ge": value >= self.threshold,
            "lt": value < self.threshold,
            "le": value <= self.threshold,
        }[self.op]


class CasualtyTemplate(BaseModel):
    civilian: float = Field(..., ge=0, le=1)
    firefighter: float = Field(..., ge=0, le=1)
    environmental: float = Field(..., ge=0, le=1)


class StrategyTemplate(BaseModel):
    id: str
    name: str
    priority: int = Field(..., ge=1, le=10)
    risk_level: RiskLevel
    personnel: int = Field(..., ge=0)
    equipment: list[str]
    duration_hours: float = Field(..., gt=0)
    success_probability: float = Field(..., ge=0, le=1)
    casualty_risk: CasualtyTemplate
    phases: list[PhaseTemplate] = Field(..., min_length=1)
    contingency_plans: list[str] = Field(default_factory=list)
    critical_factors: list[str] = Field(default_factory=list)
    adjustments: list[AdjustmentRule] = Field(default_factory=list)

    @field_validator("phases")
    @classmethod
    def phases_in_order(cls, v: list[PhaseTemplate]) -> list[PhaseTemplate]:
        numbers = [p.phase for p in v]
        if numbers != sorted(numbers):
            raise ValueError("phases must be listed in order")
        return v


class StrategyDoctrine(BaseModel):
    version: str
    strategies: list[StrategyTemplate]

    @model_validator(mode="after")
    def check_catalog(self) -> "StrategyDoctrine":
        if len(self.strategies) != 5:
            raise ValueError(f"catalog must hold exactly 5 strategies, got {len(self.strategies)}")
        ids = [s.id for s in self.strategies]
        if len(set(ids)) != len(ids):
            raise ValueError("strategy ids must be unique")
        return self


# =============================================================================
# Static facilities
# =============================================================================


class CivilianAreaTemplate(BaseModel):
    type: Literal["residential", "hospital", "school", "commercial", "veterinary"]
    offset: Offset
    population: int = Field(..., ge=0)
    evacuation_priority: int = Field(..., ge=1, le=10)
    special_needs: list[str] = Field(default_factory=list)


class WaterSourceTemplate(BaseModel):
    id: str
    type: str
    offset: Offset
    capacity_liters: float = Field(..., ge=0)
    flow_rate_lpm: float = Field(..., ge=0)
    accessibility: Literal["excellent", "good", "difficult", "extreme"]
    setup_time_min: float = Field(..., ge=0)
    reliability: float = Field(..., ge=0, le=1)


class FacilityDoctrine(BaseModel):
    version: str
    civilian_areas: list[CivilianAreaTemplate] = Field(default_factory=list)
    water_sources: list[WaterSourceTemplate] = Field(default_factory=list)


# =============================================================================
# Loading
# =============================================================================


def _read_yaml(path: Path | None, packaged_name: str) -> tuple[dict, str]:
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Doctrine file not found: {path}")
        with open(path, "r") as f:
            return yaml.safe_load(f) or {}, str(path)
    text = resources.files("fireplan").joinpath("data", packaged_name).read_text(encoding="utf-8")
    return yaml.safe_load(text) or {}, f"fireplan/data/{packaged_name}"


# Parsed once per file; the public loaders hand out deep copies.
@lru_cache(maxsize=16)
def _load(model: type[BaseModel], path: Path | None, packaged_name: str) -> BaseModel:
    raw, source = _read_yaml(path, packaged_name)
    try:
        doctrine = model.model_validate(raw)
    except PydanticValidationError as e:
        raise ConfigurationError(str(e), source) from e
    logger.debug(f"Loaded {model.__name__} v{doctrine.version} from {source}")
    return doctrine


def load_role_doctrine(path: Path | None = None) -> RoleDoctrine:
    """Load role route templates (packaged default when ``path`` is None)."""
    return _load(RoleDoctrine, path, "roles.yaml").model_copy(deep=True)


def load_strategy_doctrine(path: Path | None = None) -> StrategyDoctrine:
    """Load the five-strategy catalog (packaged default when ``path`` is None)."""
    return _load(StrategyDoctrine, path, "strategies.yaml").model_copy(deep=True)


def load_facility_doctrine(path: Path | None = None) -> FacilityDoctrine:
    """Load the static facility set used by :class:`StaticFacilityProvider`."""
    return _load(FacilityDoctrine, path, "facilities.yaml").model_copy(deep=True)
