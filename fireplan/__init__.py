"""
Fireplan: Fire Behaviour Prediction and Tactical Planning
=========================================================

Turns an active-fire detection and an environmental snapshot into a risk
assessment, a short-horizon spread prediction, a wind analysis and
role-specific tactical plans with a ranked strategy catalog.

Modules
-------
models : Immutable records shared by every module
config : Configuration loading and validation
doctrine : Versioned role, strategy and facility templates
risk : Magnitude and danger scoring
spread : Spread rate, perimeters and firebreaks
wind : Wind stability, forecast, vectors and critical changes
tactics : Role plans and the strategy catalog
pipeline : Concurrent end-to-end analysis
providers : Snapshot, observation and facility sources
io : Detection CSV, scenario and result files
cli : Command-line interface
"""

__version__ = "0.1.0"
__author__ = "Fireplan Contributors"

from fireplan.config import FireplanConfig, load_config
from fireplan.exceptions import (
    ConfigurationError,
    DataUnavailableError,
    FireplanError,
    ValidationError,
)
from fireplan.models import (
    ComprehensiveAnalysis,
    EnvironmentalSnapshot,
    FireObservation,
    GeoPoint,
    OrganizationRole,
    RiskAssessment,
    SpreadPrediction,
    StrategyCatalogEntry,
    TacticalPlan,
    WindProfile,
    ZoneContext,
)
from fireplan.pipeline import FireAnalysisPipeline
from fireplan.risk import RiskScorer
from fireplan.spread import SpreadPredictor
from fireplan.tactics import PlanGenerator, StrategyCatalog
from fireplan.wind import WindAnalyzer

__all__ = [
    "__version__",
    "FireplanConfig",
    "load_config",
    "FireplanError",
    "ValidationError",
    "DataUnavailableError",
    "ConfigurationError",
    "GeoPoint",
    "FireObservation",
    "EnvironmentalSnapshot",
    "ZoneContext",
    "OrganizationRole",
    "RiskAssessment",
    "SpreadPrediction",
    "WindProfile",
    "TacticalPlan",
    "StrategyCatalogEntry",
    "ComprehensiveAnalysis",
    "RiskScorer",
    "SpreadPredictor",
    "WindAnalyzer",
    "PlanGenerator",
    "StrategyCatalog",
    "FireAnalysisPipeline",
]
