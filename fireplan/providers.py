"""
Inbound data providers.

The engine never fetches raw data itself. Collaborators implement the
protocols below; the static and file-backed implementations here serve
development, tests and offline use.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from fireplan.config import PlanningConfig
from fireplan.doctrine import FacilityDoctrine, load_facility_doctrine
from fireplan.exceptions import DataUnavailableError, FireplanError
from fireplan.geo import haversine_km
from fireplan.io import read_detections, read_structured
from fireplan.models import (
    CivilianArea,
    EnvironmentalSnapshot,
    FireObservation,
    GeoPoint,
    WaterSource,
)
from fireplan.serialization import from_dict

logger = logging.getLogger(__name__)


# =============================================================================
# Protocols
# =============================================================================


class SnapshotProvider(Protocol):
    def get_snapshot(self, location: GeoPoint) -> EnvironmentalSnapshot:
        """Return the current snapshot or raise :class:`DataUnavailableError`."""
        ...


class ObservationProvider(Protocol):
    def get_observations(self) -> list[FireObservation]:
        ...


class FacilityProvider(Protocol):
    def civilian_areas(self, location: GeoPoint) -> list[CivilianArea]:
        ...

    def water_sources(self, location: GeoPoint, radius_km: float) -> list[WaterSource]:
        ...


# =============================================================================
# Snapshot providers
# =============================================================================


class StaticSnapshotProvider:
    """Always returns the same snapshot."""

    def __init__(self, snapshot: EnvironmentalSnapshot):
        self.snapshot = snapshot

    def get_snapshot(self, location: GeoPoint) -> EnvironmentalSnapshot:
        return self.snapshot


class FileSnapshotProvider:
    """Reads a snapshot from a YAML/JSON file on every call."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def get_snapshot(self, location: GeoPoint) -> EnvironmentalSnapshot:
        try:
            raw = read_structured(self.path)
            return from_dict(EnvironmentalSnapshot, raw, "snapshot")
        except (OSError, FireplanError, ValueError) as e:
            raise DataUnavailableError(str(self.path), str(e)) from e


# =============================================================================
# Observation providers
# =============================================================================


class StaticObservationProvider:
    def __init__(self, observations: list[FireObservation]):
        self.observations = list(observations)

    def get_observations(self) -> list[FireObservation]:
        return list(self.observations)


class CsvObservationProvider:
    """Detections from a FIRMS-style CSV export."""

    def __init__(self, path: str | Path, min_confidence: float = 0.0, columns: dict[str, str] | None = None):
        self.path = Path(path)
        self.min_confidence = min_confidence
        self.columns = columns

    def get_observations(self) -> list[FireObservation]:
        if not self.path.exists():
            raise DataUnavailableError(str(self.path), "detection file not found")
        return read_detections(self.path, self.min_confidence, self.columns)


# =============================================================================
# Facility providers
# =============================================================================


class StaticFacilityProvider:
    """
    Facilities placed at fixed offsets around the fire.

    Parameters
    ----------
    doctrine : FacilityDoctrine, optional
        Facility set; defaults to the packaged ``facilities.yaml``.
    """

    def __init__(self, doctrine: FacilityDoctrine | None = None):
        self.doctrine = doctrine if doctrine is not None else load_facility_doctrine()

    @classmethod
    def from_config(cls, config: PlanningConfig) -> "StaticFacilityProvider":
        """Provider over ``config.facilities_path``, or the packaged set when unset."""
        return cls(load_facility_doctrine(config.facilities_path))

    def civilian_areas(self, location: GeoPoint) -> list[CivilianArea]:
        return [
            CivilianArea(
                type=a.type,
                location=GeoPoint(location.latitude + a.offset[0], location.longitude + a.offset[1]),
                population=a.population,
                evacuation_priority=a.evacuation_priority,
                special_needs=tuple(a.special_needs),
            )
            for a in self.doctrine.civilian_areas
        ]

    def water_sources(self, location: GeoPoint, radius_km: float) -> list[WaterSource]:
        """Water sources within ``radius_km``, nearest first."""
        sources = []
        for w in self.doctrine.water_sources:
            point = GeoPoint(location.latitude + w.offset[0], location.longitude + w.offset[1])
            distance = haversine_km(location.latitude, location.longitude, point.latitude, point.longitude)
            if distance > radius_km:
                continue
            sources.append(
                WaterSource(
                    id=w.id,
                    type=w.type,
                    location=point,
                    capacity_liters=w.capacity_liters,
                    flow_rate_lpm=w.flow_rate_lpm,
                    accessibility=w.accessibility,
                    distance_km=distance,
                    setup_time_min=w.setup_time_min,
                    reliability=w.reliability,
                )
            )
        sources.sort(key=lambda s: s.distance_km)
        logger.debug(f"{len(sources)} water source(s) within {radius_km:.0f} km")
        return sources
