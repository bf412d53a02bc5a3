"""
Tactical plan generation and the strategy catalog.

Two services live here:

- :class:`PlanGenerator` builds a role-specific :class:`TacticalPlan` for one
  observation. Route geometry, critical zones, staging zones and base
  resources come from the role templates in ``roles.yaml``; live inputs only
  select, filter and scale them.
- :class:`StrategyCatalog` returns the five doctrine strategies from
  ``strategies.yaml``, with priority, risk level and success probability
  adjusted by declarative rules over live wind, spread and risk metrics.

Role dispatch is a closed table over :class:`OrganizationRole`; it is checked
for completeness when the module is imported.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable

from fireplan.config import PlanningConfig
from fireplan.doctrine import (
    RoleDoctrine,
    RoleTemplate,
    StrategyDoctrine,
    StrategyTemplate,
    load_role_doctrine,
    load_strategy_doctrine,
)
from fireplan.exceptions import ValidationError
from fireplan.geo import clamp, haversine_km
from fireplan.models import (
    AerialStatus,
    CasualtyRisk,
    CivilianArea,
    CriticalZone,
    EvacuationRoute,
    FireObservation,
    GeoPoint,
    OrganizationRole,
    ResourceDeployment,
    ResourceNeeds,
    RiskAssessment,
    Route,
    SpreadPrediction,
    StabilityTier,
    StagingZone,
    StrategyCatalogEntry,
    TacticalPhase,
    TacticalPlan,
    WaterSource,
    WindProfile,
    ZoneContext,
)
from fireplan.providers import FacilityProvider

logger = logging.getLogger(__name__)

MIN_PRIORITY, MAX_PRIORITY = 1, 10
MIN_SUCCESS, MAX_SUCCESS = 0.05, 0.99


def _shift(origin: GeoPoint, offset: tuple[float, float], scale: float = 1.0) -> GeoPoint:
    return GeoPoint(origin.latitude + offset[0] * scale, origin.longitude + offset[1] * scale)


# =============================================================================
# Role dispatch
# =============================================================================


def _keep_all(areas: list[CivilianArea]) -> list[CivilianArea]:
    return list(areas)


def _medical_priority(areas: list[CivilianArea]) -> list[CivilianArea]:
    """Hospitals and any area with special needs."""
    return [a for a in areas if a.type == "hospital" or a.special_needs]


def _evacuation_priority(areas: list[CivilianArea]) -> list[CivilianArea]:
    return sorted(areas, key=lambda a: a.evacuation_priority, reverse=True)


@dataclass(frozen=True)
class RoleRoutine:
    """
    How one role builds its plan.

    Attributes
    ----------
    template : OrganizationRole
        Role template in ``roles.yaml`` to draw geometry and resources from.
    select_areas : callable
        Filter/ordering applied to the zone's civilian areas.
    """

    template: OrganizationRole
    select_areas: Callable[[list[CivilianArea]], list[CivilianArea]]

    @property
    def needs_water(self) -> bool:
        return self.template.suppression_capable


ROLE_ROUTINES: dict[OrganizationRole, RoleRoutine] = {
    OrganizationRole.FIREFIGHTING: RoleRoutine(OrganizationRole.FIREFIGHTING, _keep_all),
    OrganizationRole.MEDICAL: RoleRoutine(OrganizationRole.MEDICAL, _medical_priority),
    OrganizationRole.LAW_ENFORCEMENT: RoleRoutine(OrganizationRole.LAW_ENFORCEMENT, _evacuation_priority),
    OrganizationRole.CIVIL_PROTECTION: RoleRoutine(OrganizationRole.CIVIL_PROTECTION, _keep_all),
    # Unknown organisations get the broadest coordination plan
    OrganizationRole.GENERIC: RoleRoutine(OrganizationRole.CIVIL_PROTECTION, _keep_all),
}

_unrouted = set(OrganizationRole) - set(ROLE_ROUTINES)
if _unrouted:
    raise RuntimeError(f"No plan routine for roles: {sorted(r.value for r in _unrouted)}")


def resolve_role(organization: Any) -> OrganizationRole:
    """Parse a role, logging when an unknown value falls back to GENERIC."""
    if isinstance(organization, OrganizationRole):
        return organization
    role = OrganizationRole.parse(organization)
    if role is OrganizationRole.GENERIC and str(organization or "").strip().lower() != "generic":
        logger.warning(f"Unknown organization role '{organization}', using generic plan")
    return role


# =============================================================================
# Plan generator
# =============================================================================


class PlanGenerator:
    """
    Role-specific tactical plan generator.

    Parameters
    ----------
    config : PlanningConfig, optional
        Search radius, resource scaling and doctrine overrides.
    facility_provider : FacilityProvider, optional
        Consulted for civilian areas and water sources the zone context does
        not already carry.
    doctrine : RoleDoctrine, optional
        Role templates; defaults to ``config.planning.roles_path`` or the
        packaged file.
    """

    def __init__(
        self,
        config: PlanningConfig | None = None,
        facility_provider: FacilityProvider | None = None,
        doctrine: RoleDoctrine | None = None,
    ):
        self.config = config or PlanningConfig()
        self.facility_provider = facility_provider
        self.doctrine = doctrine or load_role_doctrine(self.config.roles_path)

    def _scale(self, risk: RiskAssessment | None) -> float:
        magnitude = risk.magnitude_score if risk is not None else 0.0
        return 1.0 + magnitude / self.config.resource_scale_reference

    def _civilian_areas(self, location: GeoPoint, zone: ZoneContext) -> list[CivilianArea]:
        if zone.civilian_areas:
            return list(zone.civilian_areas)
        if self.facility_provider is not None:
            return self.facility_provider.civilian_areas(location)
        return []

    def _water_sources(self, location: GeoPoint, zone: ZoneContext) -> list[WaterSource]:
        if zone.water_sources:
            return sorted(zone.water_sources, key=lambda w: w.distance_km)
        if self.facility_provider is not None:
            return self.facility_provider.water_sources(location, self.config.water_search_radius_km)
        return []

    def _resources(
        self,
        template: RoleTemplate,
        scale: float,
        wind: WindProfile | None,
    ) -> ResourceNeeds:
        base = template.base_resources.model_dump()
        needs = {k: math.ceil(v * scale) for k, v in base.items()}
        if wind is not None and wind.aerial_operations == AerialStatus.GROUNDED:
            needs["aircraft"] = 0
        return ResourceNeeds(**needs)

    def generate_plan(
        self,
        observation: FireObservation,
        zone_context: ZoneContext | None = None,
        organization: OrganizationRole | str = OrganizationRole.FIREFIGHTING,
        risk: RiskAssessment | None = None,
        spread: SpreadPrediction | None = None,
        wind: WindProfile | None = None,
    ) -> TacticalPlan:
        """
        Build the plan for one observation and organization.

        Parameters
        ----------
        observation : FireObservation
            Must carry a location.
        zone_context : ZoneContext, optional
            Known civilian areas and water sources.
        organization : OrganizationRole or str
            Responding role. Unknown values fall back to the generic plan.
        risk, spread, wind : optional
            Upstream results. Risk scales staging distances and resource
            needs; wind grounds aircraft; all three feed the confidence.

        Raises
        ------
        ValidationError
            If the observation has no location.
        """
        if observation.location is None:
            raise ValidationError("observation.location")

        location = observation.location
        zone = zone_context or ZoneContext()
        role = resolve_role(organization)
        routine = ROLE_ROUTINES[role]
        template = self.doctrine.roles[routine.template]
        scale = self._scale(risk)

        entry_routes = tuple(
            Route(
                id=r.id,
                coordinates=tuple(_shift(location, w) for w in r.waypoints),
                difficulty=r.difficulty,
                estimated_time_min=r.estimated_time_min,
            )
            for r in template.entry_routes
        )
        evacuation_routes = tuple(
            EvacuationRoute(
                id=r.id,
                coordinates=tuple(_shift(location, w) for w in r.waypoints),
                capacity=r.capacity,
                priority=r.priority,
            )
            for r in template.evacuation_routes
        )
        critical_zones = tuple(
            CriticalZone(
                type=z.type,
                location=_shift(location, z.offset),
                priority=z.priority,
                description=z.description,
            )
            for z in template.critical_zones
        )

        staging_zones = []
        for s in template.staging_zones:
            # Larger fires push staging further out
            point = _shift(location, s.offset, scale)
            staging_zones.append(
                StagingZone(
                    id=s.id,
                    location=point,
                    purpose=s.purpose,
                    distance_km=haversine_km(location.latitude, location.longitude, point.latitude, point.longitude),
                )
            )

        water_sources = self._water_sources(location, zone) if routine.needs_water else []
        civilian_areas = routine.select_areas(self._civilian_areas(location, zone))

        confidence = 0.9
        for upstream in (risk, spread, wind):
            confidence *= upstream.confidence if upstream is not None else 0.9

        plan = TacticalPlan(
            role=role,
            primary_strategy=template.primary_strategy,
            entry_routes=entry_routes,
            evacuation_routes=evacuation_routes,
            critical_zones=critical_zones,
            staging_zones=tuple(staging_zones),
            water_sources=tuple(water_sources),
            civilian_areas=tuple(civilian_areas),
            resource_needs=self._resources(template, scale, wind),
            confidence=clamp(confidence, 0.0, 1.0),
        )
        logger.info(
            f"Plan for {role.value}: {len(entry_routes)} entry route(s), "
            f"{len(evacuation_routes)} evacuation route(s), {len(water_sources)} water source(s)"
        )
        return plan


# =============================================================================
# Strategy catalog
# =============================================================================


def instability(wind: WindProfile) -> float:
    """
    Wind instability on 0-1.

    Half turbulence, 0.3 for an unstable atmosphere now, and up to 0.2 for
    the number of critical changes ahead (saturating at five).
    """
    unstable = 1.0 if wind.current.stability == StabilityTier.UNSTABLE else 0.0
    changes = min(1.0, len(wind.critical_changes) / 5.0)
    return clamp(0.5 * wind.current.turbulence + 0.3 * unstable + 0.2 * changes, 0.0, 1.0)


def live_metrics(
    wind: WindProfile | None = None,
    spread: SpreadPrediction | None = None,
    risk: RiskAssessment | None = None,
) -> dict[str, float]:
    """Metrics the adjustment rules can test; absent inputs contribute none."""
    metrics: dict[str, float] = {}
    if wind is not None:
        metrics.update(
            wind_speed=wind.current.speed,
            gusts=wind.current.gusts,
            turbulence=wind.current.turbulence,
            instability=instability(wind),
            critical_changes=float(len(wind.critical_changes)),
        )
    if spread is not None:
        metrics["spread_speed_kmh"] = spread.speed_kmh
    if risk is not None:
        metrics.update(magnitude_score=risk.magnitude_score, danger_score=risk.danger_score)
    return metrics


class StrategyCatalog:
    """
    The five-strategy doctrine catalog.

    Parameters
    ----------
    config : PlanningConfig, optional
        Supplies ``strategies_path`` when no doctrine is passed.
    doctrine : StrategyDoctrine, optional
        Strategy templates and adjustment rules.
    """

    def __init__(
        self,
        config: PlanningConfig | None = None,
        doctrine: StrategyDoctrine | None = None,
    ):
        self.config = config or PlanningConfig()
        self.doctrine = doctrine or load_strategy_doctrine(self.config.strategies_path)

    def _entry(self, template: StrategyTemplate, location: GeoPoint, metrics: dict[str, float]) -> StrategyCatalogEntry:
        priority = template.priority
        success = template.success_probability
        risk_level = template.risk_level
        notes = []

        for rule in template.adjustments:
            if rule.metric not in metrics:
                continue
            value = metrics[rule.metric]
            if not rule.matches(value):
                continue
            per_unit = rule.success_per_unit * value
            if rule.op is None and per_unit == 0:
                continue
            priority += rule.priority_delta
            success += rule.success_delta + per_unit
            if rule.risk_level is not None and rule.risk_level.rank > risk_level.rank:
                risk_level = rule.risk_level
            notes.append(rule.description)

        phases = tuple(
            TacticalPhase(
                phase=p.phase,
                name=p.name,
                duration_min=p.duration_min,
                objectives=tuple(p.objectives),
                deployments=tuple(
                    ResourceDeployment(
                        type=d.type,
                        units=d.units,
                        location=_shift(location, d.offset),
                        assignment=d.assignment,
                        communication_channel=d.communication_channel,
                        escape_routes=tuple(d.escape_routes),
                        safety_zones=tuple(d.safety_zones),
                    )
                    for d in p.deployments
                ),
                safety_measures=tuple(p.safety_measures),
                success_criteria=tuple(p.success_criteria),
                fallback_options=tuple(p.fallback_options),
            )
            for p in template.phases
        )

        return StrategyCatalogEntry(
            id=template.id,
            name=template.name,
            priority=int(clamp(priority, MIN_PRIORITY, MAX_PRIORITY)),
            risk_level=risk_level,
            equipment=tuple(template.equipment),
            personnel=template.personnel,
            duration_hours=template.duration_hours,
            success_probability=clamp(success, MIN_SUCCESS, MAX_SUCCESS),
            casualty_risk=CasualtyRisk(**template.casualty_risk.model_dump()),
            phases=phases,
            contingency_plans=tuple(template.contingency_plans),
            critical_factors=tuple(template.critical_factors),
            adjustments=tuple(notes),
        )

    def get_strategy_catalog(
        self,
        location: GeoPoint | None,
        wind: WindProfile | None = None,
        spread: SpreadPrediction | None = None,
        risk: RiskAssessment | None = None,
    ) -> list[StrategyCatalogEntry]:
        """
        Rank the five doctrine strategies for current conditions.

        Returns
        -------
        list[StrategyCatalogEntry]
            Exactly five entries, priority descending; equal priorities are
            ordered by ascending risk level, then catalog order.

        Raises
        ------
        ValidationError
            If ``location`` is None.
        """
        if location is None:
            raise ValidationError("location")

        metrics = live_metrics(wind, spread, risk)
        entries = [self._entry(t, location, metrics) for t in self.doctrine.strategies]
        entries.sort(key=lambda e: (-e.priority, e.risk_level.rank))

        logger.debug("Strategy ranking: " + ", ".join(f"{e.id}={e.priority}" for e in entries))
        return entries