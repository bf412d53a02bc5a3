"""
End-to-end analysis pipeline.

Composes the four computation modules for one observation::

    snapshot ─┬─> risk scoring ─┐
              └─> wind analysis ┴─> spread prediction ─> plan + catalog

Risk scoring and wind analysis run concurrently. A module that fails with a
:class:`FireplanError` is recorded in ``ComprehensiveAnalysis.errors`` and the
downstream modules continue without its output. Snapshot fetching is bounded
by a timeout and falls back to the last snapshot this pipeline saw for the
same area, and then to the configured default snapshot.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from datetime import datetime

from fireplan.config import FireplanConfig
from fireplan.exceptions import DataUnavailableError, FireplanError
from fireplan.geo import clamp
from fireplan.models import (
    ComprehensiveAnalysis,
    DataQuality,
    EnvironmentalSnapshot,
    FireObservation,
    GeoPoint,
    OrganizationRole,
    WindDataSource,
    ZoneContext,
)
from fireplan.providers import FacilityProvider, SnapshotProvider
from fireplan.risk import RiskScorer
from fireplan.spread import SpreadPredictor
from fireplan.tactics import PlanGenerator, StrategyCatalog
from fireplan.wind import WindAnalyzer

logger = logging.getLogger(__name__)


def _area_key(location: GeoPoint | None) -> tuple[float, float] | None:
    # ~1 km cells
    if location is None:
        return None
    return round(location.latitude, 2), round(location.longitude, 2)


class FireAnalysisPipeline:
    """
    Orchestrates one analysis per (observation, role).

    Every collaborator is injected; anything not given is built from
    ``config``. Instances hold no state besides the last-known snapshot cache,
    so separate fires can be analyzed concurrently on one instance.

    Parameters
    ----------
    config : FireplanConfig, optional
        Full configuration.
    snapshot_provider : SnapshotProvider, optional
        Source of environmental snapshots. Without one, :meth:`analyze` needs
        an explicit snapshot or uses the default snapshot.
    facility_provider : FacilityProvider, optional
        Passed to the default :class:`PlanGenerator`.
    """

    def __init__(
        self,
        config: FireplanConfig | None = None,
        snapshot_provider: SnapshotProvider | None = None,
        facility_provider: FacilityProvider | None = None,
        scorer: RiskScorer | None = None,
        wind_analyzer: WindAnalyzer | None = None,
        spread_predictor: SpreadPredictor | None = None,
        plan_generator: PlanGenerator | None = None,
        strategy_catalog: StrategyCatalog | None = None,
    ):
        self.config = config or FireplanConfig()
        self.snapshot_provider = snapshot_provider
        self.facility_provider = facility_provider
        self.scorer = scorer or RiskScorer(self.config.scoring)
        self.wind_analyzer = wind_analyzer or WindAnalyzer(self.config.wind)
        self.spread_predictor = spread_predictor or SpreadPredictor(
            self.config.spread, self.config.wind.intensity
        )
        self.plan_generator = plan_generator or PlanGenerator(self.config.planning, facility_provider)
        self.strategy_catalog = strategy_catalog or StrategyCatalog(self.config.planning)

        self._last_snapshots: dict[tuple[float, float] | None, EnvironmentalSnapshot] = {}
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Snapshot handling
    # -------------------------------------------------------------------------

    def default_snapshot(self) -> EnvironmentalSnapshot:
        d = self.config.pipeline.default_snapshot
        return EnvironmentalSnapshot(
            temperature=d.temperature,
            humidity=d.humidity,
            wind_speed=d.wind_speed,
            wind_direction=d.wind_direction,
            confidence=d.confidence,
            stale=True,
        )

    def _fallback_snapshot(self, location: GeoPoint | None) -> EnvironmentalSnapshot:
        with self._lock:
            last = self._last_snapshots.get(_area_key(location))
        if last is not None:
            logger.warning("Using last-known snapshot with reduced confidence")
            return last.degraded(self.config.pipeline.stale_confidence_factor)
        logger.warning("No last-known snapshot, using configured default")
        return self.default_snapshot()

    def fetch_snapshot(self, location: GeoPoint | None) -> EnvironmentalSnapshot:
        """
        Fetch a snapshot within the configured timeout.

        Never raises for unavailable data: on timeout or
        :class:`DataUnavailableError` a last-known or default snapshot is
        returned, marked stale.
        """
        if self.snapshot_provider is None:
            return self._fallback_snapshot(location)

        timeout = self.config.pipeline.snapshot_timeout_s
        executor = ThreadPoolExecutor(max_workers=1)
        try:
            future = executor.submit(self.snapshot_provider.get_snapshot, location)
            snapshot = future.result(timeout=timeout)
        except FutureTimeoutError:
            logger.warning(f"Snapshot provider timed out after {timeout:.1f}s")
            return self._fallback_snapshot(location)
        except DataUnavailableError as e:
            logger.warning(f"Snapshot unavailable: {e}")
            return self._fallback_snapshot(location)
        finally:
            # A hung provider call must not hold up the analysis
            executor.shutdown(wait=False)

        with self._lock:
            self._last_snapshots[_area_key(location)] = snapshot
        return snapshot

    # -------------------------------------------------------------------------
    # Analysis
    # -------------------------------------------------------------------------

    def _data_quality(
        self,
        observation: FireObservation,
        snapshot: EnvironmentalSnapshot,
        wind_source: WindDataSource | None,
        zone: ZoneContext,
    ) -> DataQuality:
        satellite = clamp(observation.confidence / 100.0, 0.0, 1.0)
        weather = snapshot.confidence
        if wind_source in (None, WindDataSource.FALLBACK):
            weather *= self.config.wind.fallback_confidence_factor
        has_facilities = bool(zone.civilian_areas or zone.water_sources) or self.facility_provider is not None
        infrastructure = 0.75 if has_facilities else 0.4
        return DataQuality(
            satellite=satellite,
            weather=clamp(weather, 0.0, 1.0),
            infrastructure=infrastructure,
            overall=(satellite + weather + infrastructure) / 3.0,
        )

    def analyze(
        self,
        observation: FireObservation,
        organization: OrganizationRole | str = OrganizationRole.FIREFIGHTING,
        zone_context: ZoneContext | None = None,
        snapshot: EnvironmentalSnapshot | None = None,
        now: datetime | None = None,
    ) -> ComprehensiveAnalysis:
        """
        Run the full analysis for one observation.

        Parameters
        ----------
        observation : FireObservation
            Detection to analyze.
        organization : OrganizationRole or str
            Role the plan is generated for.
        zone_context : ZoneContext, optional
            Known civilian areas and water sources.
        snapshot : EnvironmentalSnapshot, optional
            Use this snapshot instead of asking the provider.
        now : datetime, optional
            Analysis time for the wind analyzer.

        Returns
        -------
        ComprehensiveAnalysis
            Partial when a module failed; see ``errors``.
        """
        zone = zone_context or ZoneContext()
        errors: dict[str, str] = {}

        if snapshot is None:
            snapshot = self.fetch_snapshot(observation.location)

        with ThreadPoolExecutor(max_workers=self.config.pipeline.max_workers) as executor:
            risk_future = executor.submit(self.scorer.score, observation, snapshot)
            wind_future = executor.submit(self.wind_analyzer.analyze_wind, snapshot, observation.location, now)

            try:
                risk = risk_future.result()
            except FireplanError as e:
                logger.error(f"Risk scoring failed: {e}")
                errors["risk"] = str(e)
                risk = None

            try:
                wind = wind_future.result()
            except FireplanError as e:
                logger.error(f"Wind analysis failed: {e}")
                errors["wind"] = str(e)
                wind = None

        try:
            spread = self.spread_predictor.predict_spread(observation, snapshot, risk, wind)
        except FireplanError as e:
            logger.error(f"Spread prediction failed: {e}")
            errors["spread"] = str(e)
            spread = None

        try:
            plan = self.plan_generator.generate_plan(observation, zone, organization, risk, spread, wind)
        except FireplanError as e:
            logger.error(f"Plan generation failed: {e}")
            errors["plan"] = str(e)
            plan = None

        try:
            strategies = tuple(
                self.strategy_catalog.get_strategy_catalog(observation.location, wind, spread, risk)
            )
        except FireplanError as e:
            logger.error(f"Strategy catalog failed: {e}")
            errors["strategies"] = str(e)
            strategies = ()

        quality = self._data_quality(observation, snapshot, wind.data_source if wind else None, zone)

        return ComprehensiveAnalysis(
            observation=observation,
            snapshot=snapshot,
            risk=risk,
            wind=wind,
            spread=spread,
            plan=plan,
            strategies=strategies,
            data_quality=quality,
            errors=errors,
        )

    def analyze_all(
        self,
        observations: list[FireObservation],
        organization: OrganizationRole | str = OrganizationRole.FIREFIGHTING,
        zone_context: ZoneContext | None = None,
        now: datetime | None = None,
    ) -> list[ComprehensiveAnalysis]:
        """Analyze several fires concurrently; results keep input order."""
        if not observations:
            return []
        workers = min(len(observations), self.config.pipeline.max_workers)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(self.analyze, obs, organization, zone_context, None, now)
                for obs in observations
            ]
            results = [f.result() for f in futures]
        logger.info(f"Analyzed {len(results)} fire(s)")
        return results
