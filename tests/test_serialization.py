"""
Tests for record serialization.
"""

import json

import pytest

from fireplan.exceptions import ValidationError
from fireplan.models import (
    ComprehensiveAnalysis,
    EnvironmentalSnapshot,
    FireObservation,
    RiskAssessment,
    SpreadPrediction,
    StrategyCatalogEntry,
    TacticalPlan,
    WindProfile,
)
from fireplan.pipeline import FireAnalysisPipeline
from fireplan.providers import StaticFacilityProvider
from fireplan.serialization import from_dict, from_json, to_dict, to_json


@pytest.fixture
def analysis(observation, rich_snapshot):
    pipeline = FireAnalysisPipeline(facility_provider=StaticFacilityProvider())
    return pipeline.analyze(observation, "firefighting", snapshot=rich_snapshot)


class TestRoundTrip:
    """Tests that every output structure survives a JSON round trip."""

    def test_analysis(self, analysis):
        """Test the full analysis round-trips through JSON text."""
        assert from_json(ComprehensiveAnalysis, to_json(analysis)) == analysis

    @pytest.mark.parametrize(
        "attr,cls",
        [
            ("observation", FireObservation),
            ("snapshot", EnvironmentalSnapshot),
            ("risk", RiskAssessment),
            ("spread", SpreadPrediction),
            ("wind", WindProfile),
            ("plan", TacticalPlan),
        ],
    )
    def test_parts(self, analysis, attr, cls):
        """Test each part round-trips on its own."""
        record = getattr(analysis, attr)
        assert from_dict(cls, json.loads(json.dumps(to_dict(record)))) == record

    def test_catalog_entry(self, analysis):
        """Test a strategy entry with phases and deployments round-trips."""
        entry = analysis.strategies[0]
        assert StrategyCatalogEntry.from_dict(entry.to_dict()) == entry

    def test_plain_types(self, analysis):
        """Test output holds only JSON types."""
        data = to_dict(analysis)

        assert data["risk"]["band"] == analysis.risk.band.value
        assert isinstance(data["observation"]["timestamp"], str)
        assert isinstance(data["strategies"], list)


class TestFromDict:
    """Tests for reading records from plain data."""

    def test_optional_fields_default(self):
        """Test omitted optional fields take their defaults."""
        snap = from_dict(EnvironmentalSnapshot, {"temperature": 30, "humidity": 20})

        assert snap.temperature == 30.0
        assert snap.wind_speed is None
        assert snap.wind_forecast == ()
        assert snap.confidence == 1.0

    def test_missing_required_field(self):
        """Test a missing required field names its path."""
        with pytest.raises(ValidationError) as exc_info:
            from_dict(FireObservation, {"location": None, "brightness": 400, "confidence": 80})
        assert exc_info.value.field == "FireObservation.size"

    def test_wrong_type(self):
        """Test a non-numeric value is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            from_dict(
                FireObservation,
                {"location": {"latitude": "north", "longitude": 1.0}, "brightness": 1, "confidence": 1, "size": 1},
                "observation",
            )
        assert exc_info.value.field.startswith("observation.location")

    def test_unknown_keys_ignored(self):
        """Test extra keys are ignored."""
        snap = from_dict(EnvironmentalSnapshot, {"temperature": 30, "humidity": 20, "source": "station"})
        assert snap.humidity == 20.0
