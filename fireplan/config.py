"""
Configuration loading and validation for fireplan.

This module provides Pydantic models for validating the fireplan.yaml
configuration file and utility functions for loading configurations.
Every model coefficient used by the scoring, spread, wind and planning
modules lives here with its default, so a configuration file only needs to
name the values it changes.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, model_validator

from fireplan.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================


class ProjectConfig(BaseModel):
    """Project metadata configuration."""

    name: str = Field("fireplan", description="Project name")
    description: str = Field("", description="Project description")


class WeightsConfig(BaseModel):
    """Four weights that must sum to one."""

    @model_validator(mode="after")
    def check_sum(self) -> "WeightsConfig":
        total = sum(self.model_dump().values())
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"weights must sum to 1.0, got {total:.3f}")
        return self


class MagnitudeWeights(WeightsConfig):
    brightness: float = Field(0.4, ge=0, le=1)
    size: float = Field(0.3, ge=0, le=1)
    weather: float = Field(0.2, ge=0, le=1)
    vegetation: float = Field(0.1, ge=0, le=1)


class DangerWeights(WeightsConfig):
    population: float = Field(0.4, ge=0, le=1)
    infrastructure: float = Field(0.3, ge=0, le=1)
    economic: float = Field(0.2, ge=0, le=1)
    environmental: float = Field(0.1, ge=0, le=1)


class RiskBandThresholds(BaseModel):
    """Magnitude-score thresholds for the risk band."""

    medium: float = Field(45.0, ge=0, le=100)
    high: float = Field(65.0, ge=0, le=100)
    extreme: float = Field(85.0, ge=0, le=100)


class ScoringConfig(BaseModel):
    """Risk scoring configuration."""

    magnitude_weights: MagnitudeWeights = Field(default_factory=MagnitudeWeights)
    danger_weights: DangerWeights = Field(default_factory=DangerWeights)
    bands: RiskBandThresholds = Field(default_factory=RiskBandThresholds)
    brightness_floor_k: float = Field(300.0, gt=0, description="Brightness giving a zero index (K)")
    brightness_span_k: float = Field(200.0, gt=0, description="Brightness range mapped onto 0-100 (K)")
    size_saturation_ha: float = Field(6.0, gt=0, description="Fire size giving a full size index (ha)")
    population_saturation: float = Field(
        1000.0, gt=0, description="Population density giving a full population index (people/km²)"
    )
    facility_saturation: int = Field(10, gt=0, description="Critical facilities giving a full index")
    default_wind_speed: float = Field(10.0, ge=0, description="Wind speed used when missing (km/h)")
    default_ndvi: float = Field(0.5, ge=-1, le=1)
    default_drought_index: float = Field(0.0)
    missing_input_penalty: float = Field(
        0.05, ge=0, le=1, description="Confidence lost per defaulted optional input"
    )


class SpreadConfig(BaseModel):
    """Spread prediction configuration."""

    base_ros: float = Field(2.0, description="Base rate of spread (m/min)")
    wind_coefficient: float = Field(0.3, ge=0, description="m/min per km/h of wind")
    humidity_coefficient: float = Field(0.02, ge=0, description="m/min per % humidity deficit")
    temperature_coefficient: float = Field(0.1, ge=0, description="m/min per °C above reference")
    reference_temperature: float = Field(20.0)
    perimeter_points: int = Field(16, ge=4, description="Boundary points per perimeter")
    wind_alignment: float = Field(
        0.5, ge=0, lt=1, description="Perimeter stretch toward (and shrink against) the wind"
    )
    min_containment_probability: float = Field(0.1, gt=0, lt=1)
    base_confidence: float = Field(0.85, ge=0, le=1)
    default_wind_speed: float = Field(10.0, ge=0, description="Used when no wind is known (km/h)")
    default_wind_direction: float = Field(180.0, ge=0, lt=360)
    missing_wind_penalty: float = Field(0.2, ge=0, le=1)
    neutral_magnitude: float = Field(50.0, ge=0, le=100, description="Used when no risk score is given")
    firebreak_offset_km: float = Field(1.1, gt=0, description="Distance of the primary break ahead of the head")
    firebreak_half_length_km: float = Field(1.1, gt=0)
    forest_impact_threshold: float = Field(
        70.0, ge=0, le=100, description="Forest cover (%) above which a break has significant impact"
    )


class IntensityThresholds(BaseModel):
    """Wind-speed thresholds (km/h) for intensity tiers; strictly greater-than."""

    moderate: float = Field(10.0, ge=0)
    high: float = Field(20.0, ge=0)
    extreme: float = Field(30.0, ge=0)

    @model_validator(mode="after")
    def check_order(self) -> "IntensityThresholds":
        if not self.moderate <= self.high <= self.extreme:
            raise ValueError("intensity thresholds must be non-decreasing")
        return self


class VectorTemplate(BaseModel):
    """Rate function and doctrine constants for one spread vector."""

    base_rate: float = Field(..., ge=0, description="m/min at zero wind")
    wind_coefficient: float = Field(..., ge=0, description="m/min per km/h")
    probability: float = Field(..., ge=0, le=1)
    time_to_reach_min: float = Field(..., ge=0)
    fuel_consumption: float = Field(..., ge=0, description="kg/m²")
    tier_demotion: int = Field(0, ge=0, le=3, description="Tiers below the head-fire tier")


def _default_vectors() -> dict[str, VectorTemplate]:
    return {
        "with_wind": VectorTemplate(
            base_rate=2.0, wind_coefficient=0.3, probability=0.9,
            time_to_reach_min=30, fuel_consumption=2.5, tier_demotion=0,
        ),
        "flank": VectorTemplate(
            base_rate=1.0, wind_coefficient=0.1, probability=0.7,
            time_to_reach_min=120, fuel_consumption=1.8, tier_demotion=1,
        ),
        "backing": VectorTemplate(
            base_rate=0.5, wind_coefficient=0.02, probability=0.5,
            time_to_reach_min=300, fuel_consumption=1.2, tier_demotion=2,
        ),
    }


class WindConfig(BaseModel):
    """Wind pattern analysis configuration."""

    gust_factor: float = Field(1.35, ge=1)
    forecast_gust_factor: float = Field(1.3, ge=1)
    turbulence_reference: float = Field(30.0, gt=0, description="Wind speed of full turbulence (km/h)")
    shear_factor: float = Field(0.1, ge=0)
    forecast_hours: int = Field(24, ge=2)
    diurnal_direction_amplitude: float = Field(45.0, ge=0)
    diurnal_speed_amplitude: float = Field(10.0, ge=0)
    intensity: IntensityThresholds = Field(default_factory=IntensityThresholds)
    unstable_hours: tuple[int, int] = Field((10, 16))
    unstable_min_temperature: float = Field(25.0)
    stable_from_hour: int = Field(22, ge=0, le=23)
    stable_until_hour: int = Field(6, ge=0, le=23)
    direction_change_min: float = Field(45.0, ge=0, le=180)
    direction_change_critical: float = Field(90.0, ge=0, le=180)
    speed_increase_min: float = Field(10.0, ge=0)
    speed_increase_critical: float = Field(20.0, ge=0)
    min_spread_rate: float = Field(0.1, ge=0, description="Floor on vector rates (m/min)")
    vectors: dict[str, VectorTemplate] = Field(default_factory=_default_vectors)
    fallback_speed: float = Field(10.0, ge=0)
    fallback_direction: float = Field(180.0, ge=0, lt=360)
    fallback_confidence_factor: float = Field(0.5, gt=0, le=1)
    aerial_limited_speed: float = Field(25.0, ge=0)
    aerial_grounded_speed: float = Field(50.0, ge=0)
    aerial_grounded_gusts: float = Field(65.0, ge=0)

    @model_validator(mode="after")
    def check_vectors(self) -> "WindConfig":
        missing = {"with_wind", "flank", "backing"} - set(self.vectors)
        if missing:
            raise ValueError(f"wind.vectors missing templates: {sorted(missing)}")
        return self


class PlanningConfig(BaseModel):
    """Tactical planning configuration."""

    roles_path: Path | None = Field(None, description="Override for the role route templates")
    strategies_path: Path | None = Field(None, description="Override for the strategy catalog")
    facilities_path: Path | None = Field(None, description="Override for the static facility set")
    water_search_radius_km: float = Field(20.0, gt=0)
    resource_scale_reference: float = Field(
        100.0, gt=0, description="Magnitude score at which resource needs double"
    )


class DefaultSnapshotConfig(BaseModel):
    """Snapshot used when no fresh or last-known data exists."""

    temperature: float = 25.0
    humidity: float = Field(50.0, ge=0, le=100)
    wind_speed: float = Field(10.0, ge=0)
    wind_direction: float = Field(180.0, ge=0, lt=360)
    confidence: float = Field(0.4, ge=0, le=1)


class PipelineConfig(BaseModel):
    """Pipeline orchestration configuration."""

    snapshot_timeout_s: float = Field(5.0, gt=0)
    stale_confidence_factor: float = Field(0.6, gt=0, le=1)
    max_workers: int = Field(2, ge=1)
    default_snapshot: DefaultSnapshotConfig = Field(default_factory=DefaultSnapshotConfig)


class OutputConfig(BaseModel):
    """Output configuration."""

    output_dir: Path = Field(Path("./output"))
    write_geojson: bool = Field(True)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field("INFO")
    log_file: Path | None = Field(None)


class FireplanConfig(BaseModel):
    """Root configuration model for fireplan."""

    project: ProjectConfig = Field(default_factory=ProjectConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    spread: SpreadConfig = Field(default_factory=SpreadConfig)
    wind: WindConfig = Field(default_factory=WindConfig)
    planning: PlanningConfig = Field(default_factory=PlanningConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


# =============================================================================
# Loading Functions
# =============================================================================


def load_config(config_path: str | Path) -> FireplanConfig:
    """
    Load and validate configuration from a YAML file.

    Parameters
    ----------
    config_path : str or Path
        Path to the fireplan.yaml configuration file.

    Returns
    -------
    FireplanConfig
        Validated configuration object.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist.
    ConfigurationError
        If the configuration is invalid.
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from {config_path}")

    with open(config_path, "r") as f:
        raw_config = yaml.safe_load(f)

    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ConfigurationError("Top level must be a mapping", str(config_path))

    raw_config = _resolve_paths(raw_config, config_path.parent)

    try:
        config = FireplanConfig.model_validate(raw_config)
    except PydanticValidationError as e:
        raise ConfigurationError(str(e), str(config_path)) from e

    logger.info(f"Configuration loaded: {config.project.name}")

    return config


def _resolve_paths(config: dict[str, Any], base_dir: Path) -> dict[str, Any]:
    """Resolve ``./`` and ``../`` strings relative to the config file."""

    def resolve(obj: Any) -> Any:
        if isinstance(obj, dict):
            return {k: resolve(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [resolve(item) for item in obj]
        elif isinstance(obj, str):
            if obj.startswith("./") or obj.startswith("../"):
                return str(base_dir / obj)
            return obj
        return obj

    return resolve(config)


def validate_paths(config: FireplanConfig) -> list[str]:
    """
    Check that override files named in the configuration exist.

    Returns
    -------
    list[str]
        Warnings (empty if everything is in place).

    Raises
    ------
    FileNotFoundError
        If a configured doctrine override is missing.
    """
    errors = []
    warnings = []

    overrides = [
        ("planning.roles_path", config.planning.roles_path),
        ("planning.strategies_path", config.planning.strategies_path),
        ("planning.facilities_path", config.planning.facilities_path),
    ]
    for name, path in overrides:
        if path is not None and not Path(path).exists():
            errors.append(f"Doctrine file not found: {name} = {path}")

    if config.output.log_file and not Path(config.output.log_file).parent.exists():
        warnings.append(f"Log directory will be created: {Path(config.output.log_file).parent}")

    if errors:
        raise FileNotFoundError("\n".join(errors))

    return warnings


def export_config_template(path: str | Path) -> Path:
    """Write the default configuration to ``path`` as YAML."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = FireplanConfig().model_dump(mode="json")
    with open(path, "w") as f:
        f.write("# fireplan configuration. Remove any section you do not change.\n")
        yaml.safe_dump(data, f, sort_keys=False)
    logger.info(f"Wrote configuration template to {path}")
    return path


def setup_logging(config: FireplanConfig) -> None:
    """
    Configure logging based on configuration.

    Parameters
    ----------
    config : FireplanConfig
        Configuration object.
    """
    level = getattr(logging, config.output.log_level)

    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if config.output.log_file:
        log_path = Path(config.output.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )
