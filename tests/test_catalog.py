"""
Tests for the strategy catalog and its doctrine.
"""

import dataclasses

import pytest
import yaml

from fireplan.config import PlanningConfig
from fireplan.doctrine import AdjustmentRule, load_strategy_doctrine
from fireplan.exceptions import ConfigurationError, ValidationError
from fireplan.models import EnvironmentalSnapshot, FireObservation, RiskLevel
from fireplan.risk import score
from fireplan.spread import SpreadPredictor
from fireplan.tactics import StrategyCatalog, instability, live_metrics
from fireplan.wind import WindAnalyzer


@pytest.fixture
def catalog():
    return StrategyCatalog()


@pytest.fixture
def scenario_inputs(observation, snapshot):
    risk = score(observation, snapshot)
    wind = WindAnalyzer().analyze_wind(snapshot)
    spread = SpreadPredictor().predict_spread(observation, snapshot, risk, wind)
    return wind, spread, risk


class TestCatalogShape:
    """Tests for catalog size and ordering."""

    def test_five_entries_without_inputs(self, catalog, location):
        """Test the catalog always has five entries."""
        entries = catalog.get_strategy_catalog(location)

        assert len(entries) == 5
        assert len({e.id for e in entries}) == 5

    @pytest.mark.parametrize("wind_speed", [0.0, 12.0, 28.0, 60.0])
    def test_priority_descending(self, catalog, observation, snapshot, wind_speed):
        """Test entries are ordered by priority, highest first."""
        snap = dataclasses.replace(snapshot, wind_speed=wind_speed)
        wind = WindAnalyzer().analyze_wind(snap)
        entries = catalog.get_strategy_catalog(observation.location, wind, None, score(observation, snap))

        priorities = [e.priority for e in entries]
        assert len(entries) == 5
        assert priorities == sorted(priorities, reverse=True)

    def test_bounds(self, catalog, location, scenario_inputs):
        """Test priorities and success probabilities stay in range."""
        for entry in catalog.get_strategy_catalog(location, *scenario_inputs):
            assert 1 <= entry.priority <= 10
            assert 0.0 < entry.success_probability < 1.0

    def test_requires_location(self, catalog):
        """Test a missing location raises ValidationError."""
        with pytest.raises(ValidationError):
            catalog.get_strategy_catalog(None)

    def test_deployments_anchored(self, catalog, location):
        """Test phase deployments are placed relative to the fire."""
        entry = catalog.get_strategy_catalog(location)[0]
        deployment = entry.phases[0].deployments[0]

        assert abs(deployment.location.latitude - location.latitude) < 0.1
        assert abs(deployment.location.longitude - location.longitude) < 0.1


class TestScenarioRanking:
    """Tests for ranking under strong wind and a high-magnitude fire."""

    def test_defensive_and_containment_above_offensive(self, catalog, location, scenario_inputs):
        """Test strong wind pushes offensive below defensive and containment."""
        ids = [e.id for e in catalog.get_strategy_catalog(location, *scenario_inputs)]

        assert ids[0] == "defensive_001"
        assert ids.index("containment_001") < ids.index("offensive_001")

    def test_offensive_success_suppressed(self, catalog, location, scenario_inputs):
        """Test offensive success drops and risk escalates in strong wind."""
        base = {s.id: s for s in load_strategy_doctrine().strategies}
        entries = {e.id: e for e in catalog.get_strategy_catalog(location, *scenario_inputs)}
        offensive = entries["offensive_001"]

        assert offensive.success_probability < base["offensive_001"].success_probability
        assert offensive.priority < base["offensive_001"].priority
        assert offensive.risk_level == RiskLevel.EXTREME
        assert offensive.adjustments

    def test_calm_small_fire_favours_offensive(self, catalog, location):
        """Test offensive gains priority in calm wind on a small fire."""
        obs = FireObservation(location=location, brightness=320.0, confidence=90.0, size=0.2)
        snap = EnvironmentalSnapshot(temperature=18.0, humidity=60.0, wind_speed=5.0, wind_direction=90.0, ndvi=0.7)
        wind = WindAnalyzer().analyze_wind(snap)
        risk = score(obs, snap)
        entries = {e.id: e for e in catalog.get_strategy_catalog(location, wind, None, risk)}

        assert entries["offensive_001"].priority == 10
        assert entries["offensive_001"].casualty_risk.firefighter == pytest.approx(0.35)


class TestMetrics:
    """Tests for live metrics."""

    def test_absent_inputs(self):
        """Test absent inputs contribute no metrics."""
        assert live_metrics() == {}

    def test_instability_range(self, scenario_inputs):
        """Test instability is on 0-1 and counts an unstable atmosphere."""
        wind = scenario_inputs[0]
        value = instability(wind)

        assert 0.3 < value <= 1.0

    def test_metrics_keys(self, scenario_inputs):
        """Test every rule metric is produced with all inputs present."""
        metrics = live_metrics(*scenario_inputs)
        assert set(metrics) == {
            "wind_speed", "gusts", "turbulence", "instability", "critical_changes",
            "spread_speed_kmh", "magnitude_score", "danger_score",
        }


class TestDoctrine:
    """Tests for strategy doctrine loading."""

    def test_packaged_catalog(self):
        """Test the packaged catalog validates."""
        doctrine = load_strategy_doctrine()
        assert doctrine.version
        assert len(doctrine.strategies) == 5

    def test_rule_condition(self):
        """Test rule comparison operators."""
        rule = AdjustmentRule(description="windy", metric="wind_speed", op="gt", threshold=25.0)
        assert rule.matches(26.0)
        assert not rule.matches(25.0)
        assert AdjustmentRule(description="always", metric="instability").matches(0.0)

    def test_rule_needs_both_op_and_threshold(self):
        """Test a rule with an operator but no threshold is rejected."""
        with pytest.raises(ValueError):
            AdjustmentRule(description="broken", metric="wind_speed", op="gt")

    def test_override_file(self, tmp_path, location):
        """Test a doctrine override changes the catalog."""
        raw = load_strategy_doctrine().model_dump(mode="json")
        raw["version"] = "9.9"
        raw["strategies"][4]["priority"] = 10
        raw["strategies"][0]["priority"] = 5
        raw["strategies"][4]["adjustments"] = []
        path = tmp_path / "strategies.yaml"
        path.write_text(yaml.safe_dump(raw))

        catalog = StrategyCatalog(PlanningConfig(strategies_path=path))
        assert catalog.doctrine.version == "9.9"
        assert catalog.get_strategy_catalog(location)[0].id == "controlled_burn_001"

    def test_incomplete_catalog_rejected(self, tmp_path):
        """Test a catalog without five strategies is a configuration error."""
        raw = load_strategy_doctrine().model_dump(mode="json")
        raw["strategies"] = raw["strategies"][:4]
        path = tmp_path / "strategies.yaml"
        path.write_text(yaml.safe_dump(raw))

        with pytest.raises(ConfigurationError):
            load_strategy_doctrine(path)
