"""
Command-line interface for fireplan.

Commands:
- fireplan analyze: Run the full analysis for a scenario or detection CSV
- fireplan catalog: Print the ranked strategy catalog for a scenario
- fireplan wind: Print the wind analysis for a scenario
- fireplan init: Generate a configuration template
- fireplan validate: Validate a configuration file
- fireplan info: Display version, doctrine and dependency information
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from fireplan.exceptions import FireplanError

logger = logging.getLogger(__name__)

ROLE_CHOICES = [
    "firefighting",
    "medical",
    "law_enforcement",
    "civil_protection",
    "generic",
]


def _configure(config_path: Optional[Path], verbose: bool, quiet: bool):
    """Load configuration (or defaults) and set up logging."""
    from fireplan.config import FireplanConfig, load_config, setup_logging

    config = load_config(config_path) if config_path else FireplanConfig()

    if quiet:
        config.output.log_level = "ERROR"
    elif verbose:
        config.output.log_level = "DEBUG"
    setup_logging(config)
    return config


def _fail(message: str):
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


# =============================================================================
# Main CLI Group
# =============================================================================

@click.group()
@click.version_option(package_name="fireplan")
def main():
    """
    🔥 FIREPLAN: Fire Behaviour Prediction and Tactical Planning

    Risk scoring, spread prediction, wind analysis and role-specific
    tactical plans for active-fire detections.

    \b
    Quick Start:
        fireplan init                              # Create config template
        fireplan analyze scenario.yaml             # Full analysis
        fireplan catalog scenario.yaml             # Ranked strategies
    """
    pass


# =============================================================================
# Analyze Command
# =============================================================================

def _print_analysis(analysis, name: str):
    click.echo("\n" + "=" * 60)
    click.echo(f"ANALYSIS: {name}")
    click.echo("=" * 60)

    if analysis.risk is not None:
        r = analysis.risk
        click.echo(f"Magnitude score: {r.magnitude_score:.1f} ({r.band.value})")
        click.echo(f"Danger score:    {r.danger_score:.1f}")
        click.echo(f"Confidence:      {r.confidence:.2f}")
    if analysis.spread is not None:
        s = analysis.spread
        click.echo(f"Spread: {s.rate_of_spread_m_min:.2f} m/min toward {s.direction:.0f}°")
        click.echo(f"  Area 24h: {s.area_24h_ha:,.0f} ha   Area 72h: {s.area_72h_ha:,.0f} ha")
        click.echo(f"  Containment probability: {s.containment_probability:.2f}")
    if analysis.wind is not None:
        w = analysis.wind
        click.echo(
            f"Wind: {w.current.speed:.1f} km/h, gusts {w.current.gusts:.1f} km/h, "
            f"{w.current.stability.value}, aerial ops {w.aerial_operations.value}"
        )
        click.echo(f"  Critical changes: {len(w.critical_changes)}")
    if analysis.plan is not None:
        p = analysis.plan
        click.echo(f"Plan ({p.role.value}): {p.primary_strategy}")
        click.echo(
            f"  {len(p.entry_routes)} entry / {len(p.evacuation_routes)} evacuation routes, "
            f"{len(p.water_sources)} water sources, {len(p.civilian_areas)} civilian areas"
        )
    if analysis.strategies:
        click.echo("Strategies:")
        for e in analysis.strategies:
            click.echo(f"  [{e.priority:>2}] {e.name} (risk {e.risk_level.value}, success {e.success_probability:.2f})")
    for module, message in analysis.errors.items():
        click.echo(f"⚠ {module}: {message}")
    click.echo(f"Overall data quality: {analysis.data_quality.overall:.2f}")
    click.echo("=" * 60)


@main.command()
@click.argument("input_path", type=click.Path(exists=True, path_type=Path))
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, path_type=Path),
              help="Configuration file")
@click.option("--role", "-r", type=click.Choice(ROLE_CHOICES), default=None,
              help="Organization role (defaults to the scenario's role)")
@click.option("--snapshot", "-s", "snapshot_path", type=click.Path(exists=True, path_type=Path),
              help="Snapshot file, required when INPUT_PATH is a detection CSV")
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Output directory")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option("--quiet", "-q", is_flag=True, help="Suppress output")
def analyze(input_path, config_path, role, snapshot_path, output, verbose, quiet):
    """
    🔥 Analyze a fire scenario.

    INPUT_PATH is a scenario YAML/JSON file, or a FIRMS-style CSV of
    detections combined with --snapshot.

    \b
    Examples:
        fireplan analyze examples/scenario.yaml
        fireplan analyze detections.csv --snapshot snapshot.yaml -r medical
        fireplan analyze examples/scenario.yaml -o ./results -v
    """
    from fireplan.io import read_detections, read_scenario, write_analysis
    from fireplan.models import ZoneContext
    from fireplan.pipeline import FireAnalysisPipeline
    from fireplan.providers import FileSnapshotProvider, StaticFacilityProvider, StaticSnapshotProvider

    try:
        config = _configure(config_path, verbose, quiet)
        output_dir = Path(output) if output else Path(config.output.output_dir)

        if input_path.suffix.lower() == ".csv":
            if snapshot_path is None:
                _fail("--snapshot is required with a detection CSV")
            observations = read_detections(input_path)
            pipeline = FireAnalysisPipeline(
                config,
                snapshot_provider=FileSnapshotProvider(snapshot_path),
                facility_provider=StaticFacilityProvider.from_config(config.planning),
            )
            results = pipeline.analyze_all(observations, role or "firefighting", ZoneContext())
            names = [f"{input_path.stem}_{i + 1}" for i in range(len(results))]
        else:
            scenario = read_scenario(input_path)
            pipeline = FireAnalysisPipeline(
                config,
                snapshot_provider=StaticSnapshotProvider(scenario.snapshot),
                facility_provider=StaticFacilityProvider.from_config(config.planning),
            )
            results = [pipeline.analyze(scenario.observation, role or scenario.role, scenario.zone)]
            names = [scenario.name]

        for name, analysis in zip(names, results):
            if not quiet:
                _print_analysis(analysis, name)
            written = write_analysis(analysis, output_dir, name, config.output.write_geojson)
            if not quiet:
                for path in written:
                    click.echo(f"Saved: {path}")

    except (FireplanError, OSError) as e:
        logger.debug("Analysis failed", exc_info=True)
        _fail(str(e))


# =============================================================================
# Catalog Command
# =============================================================================

@main.command()
@click.argument("scenario_path", type=click.Path(exists=True, path_type=Path))
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, path_type=Path),
              help="Configuration file")
@click.option("--details", "-d", is_flag=True, help="Show phases and adjustments")
def catalog(scenario_path, config_path, details):
    """Print the ranked strategy catalog for a scenario."""
    from fireplan.io import read_scenario
    from fireplan.pipeline import FireAnalysisPipeline

    try:
        config = _configure(config_path, verbose=False, quiet=True)
        scenario = read_scenario(scenario_path)
        analysis = FireAnalysisPipeline(config).analyze(
            scenario.observation, scenario.role, scenario.zone, snapshot=scenario.snapshot
        )
    except (FireplanError, OSError) as e:
        _fail(str(e))

    click.echo(f"{'#':<3} {'Priority':<9} {'Risk':<9} {'Success':<8} Strategy")
    click.echo("-" * 60)
    for rank, entry in enumerate(analysis.strategies, start=1):
        click.echo(
            f"{rank:<3} {entry.priority:<9} {entry.risk_level.value:<9} "
            f"{entry.success_probability:<8.2f} {entry.name}"
        )
        if details:
            for note in entry.adjustments:
                click.echo(f"      ↳ {note}")
            for phase in entry.phases:
                click.echo(f"      Phase {phase.phase}: {phase.name} ({phase.duration_min:.0f} min)")


# =============================================================================
# Wind Command
# =============================================================================

@main.command()
@click.argument("scenario_path", type=click.Path(exists=True, path_type=Path))
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, path_type=Path),
              help="Configuration file")
@click.option("--forecast", "-f", is_flag=True, help="Show the hourly forecast")
def wind(scenario_path, config_path, forecast):
    """Print the wind analysis for a scenario."""
    from fireplan.io import read_scenario
    from fireplan.wind import WindAnalyzer

    try:
        config = _configure(config_path, verbose=False, quiet=True)
        scenario = read_scenario(scenario_path)
    except (FireplanError, OSError) as e:
        _fail(str(e))

    analyzer = WindAnalyzer(config.wind)
    profile = analyzer.analyze_wind(scenario.snapshot, scenario.observation.location)
    c = profile.current

    click.echo(f"Current: {c.speed:.1f} km/h at {c.direction:.0f}°, gusts {c.gusts:.1f} km/h")
    click.echo(f"Stability: {c.stability.value}, turbulence {c.turbulence:.2f}, shear {c.shear:.1f}")
    click.echo(f"Aerial operations: {profile.aerial_operations.value}  (source: {profile.data_source.value})")

    click.echo("\nSpread vectors:")
    for v in profile.vectors:
        click.echo(f"  {v.kind.value:<12} {v.direction:>5.0f}°  {v.speed:5.2f} m/min  {v.intensity.value}")

    click.echo("\nAttack angles:")
    for a in analyzer.optimal_attack_angles(c):
        click.echo(f"  {a.angle:>5.0f}°  {a.strategy:<32} eff {a.effectiveness:.1f}  risk {a.risk.value}")

    if profile.critical_changes:
        click.echo("\nCritical changes:")
        for ch in profile.critical_changes:
            click.echo(f"  {ch.timestamp:%Y-%m-%d %H:%M}  [{ch.impact.value}] {ch.description}")
    else:
        click.echo("\nNo critical wind changes in the forecast window")

    if forecast:
        click.echo("\nForecast:")
        for p in profile.forecast:
            click.echo(
                f"  {p.timestamp:%H:%M}  {p.wind.speed:5.1f} km/h  {p.wind.direction:>5.0f}°  "
                f"{p.wind.stability.value:<9} conf {p.confidence:.2f}"
            )


# =============================================================================
# Init Command
# =============================================================================

@main.command()
@click.option("--output", "-o", type=click.Path(path_type=Path), default=Path("fireplan.yaml"),
              help="Output path for configuration")
@click.option("--force", "-f", is_flag=True, help="Overwrite existing files")
def init(output: Path, force: bool):
    """
    Generate configuration template.

    Writes every setting with its default value.
    """
    from fireplan.config import export_config_template

    output = Path(output)
    if output.exists() and not force:
        click.echo(f"File exists: {output}. Use --force to overwrite.", err=True)
        sys.exit(1)

    export_config_template(output)
    click.echo(f"Created configuration: {output}")


# =============================================================================
# Validate Command
# =============================================================================

@main.command()
@click.argument("config_path", type=click.Path(exists=True, path_type=Path))
def validate(config_path):
    """
    Validate configuration file.

    Checks the configuration, its doctrine overrides and the doctrine files
    they point to.
    """
    from fireplan.config import load_config, validate_paths
    from fireplan.doctrine import load_facility_doctrine, load_role_doctrine, load_strategy_doctrine

    click.echo(f"Validating: {config_path}")

    try:
        config = load_config(config_path)
        click.echo("\n✓ Configuration loaded successfully")
        click.echo(f"\nName: {config.project.name}")

        warnings = validate_paths(config)

        roles = load_role_doctrine(config.planning.roles_path)
        strategies = load_strategy_doctrine(config.planning.strategies_path)
        facilities = load_facility_doctrine(config.planning.facilities_path)

        click.echo("\nDoctrine:")
        click.echo(f"  ✓ Roles v{roles.version}: {len(roles.roles)} role template(s)")
        click.echo(f"  ✓ Strategies v{strategies.version}: {len(strategies.strategies)} strategies")
        click.echo(f"  ✓ Facilities v{facilities.version}: {len(facilities.water_sources)} water source(s)")

        for warning in warnings:
            click.echo(f"  ⚠ {warning}")

        click.echo("\n✓ Configuration is valid")

    except (FireplanError, OSError) as e:
        click.echo(f"\n✗ Validation failed: {e}", err=True)
        sys.exit(1)


# =============================================================================
# Info Command
# =============================================================================

@main.command()
@click.option("--strategies", is_flag=True, help="Show the strategy catalog doctrine")
@click.option("--roles", is_flag=True, help="Show role templates")
def info(strategies, roles):
    """Display system and doctrine information."""
    import platform

    import numpy
    import pandas
    import shapely

    from fireplan import __version__

    click.echo("=" * 60)
    click.echo("🔥 FIREPLAN Fire Behaviour and Tactical Planning")
    click.echo("=" * 60)
    click.echo(f"Version: {__version__}")
    click.echo(f"Python: {platform.python_version()}")
    click.echo(f"NumPy: {numpy.__version__}")
    click.echo(f"pandas: {pandas.__version__}")
    click.echo(f"Shapely: {shapely.__version__}")

    if strategies:
        from fireplan.doctrine import load_strategy_doctrine
        doctrine = load_strategy_doctrine()
        click.echo("\n" + "=" * 60)
        click.echo(f"Strategy Catalog (v{doctrine.version}):")
        click.echo("=" * 60)
        for s in doctrine.strategies:
            click.echo(f"\n{s.id}: {s.name}")
            click.echo(f"  Base priority {s.priority}, risk {s.risk_level.value}, success {s.success_probability:.2f}")
            for rule in s.adjustments:
                click.echo(f"  • {rule.description}")

    if roles:
        from fireplan.doctrine import load_role_doctrine
        doctrine = load_role_doctrine()
        click.echo("\n" + "=" * 60)
        click.echo(f"Role Templates (v{doctrine.version}):")
        click.echo("=" * 60)
        for role, template in doctrine.roles.items():
            click.echo(f"\n{role.value}: {template.primary_strategy}")
            click.echo(
                f"  {len(template.entry_routes)} entry route(s), "
                f"{len(template.evacuation_routes)} evacuation route(s), "
                f"{len(template.staging_zones)} staging zone(s)"
            )


if __name__ == "__main__":
    main()
