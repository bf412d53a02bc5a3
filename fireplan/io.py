"""
File I/O utilities for fireplan.

Reads FIRMS-style active-fire CSV exports and scenario files, and writes
analysis results as JSON plus spread perimeters as GeoJSON.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd
import yaml

from fireplan.exceptions import ValidationError
from fireplan.models import (
    ComprehensiveAnalysis,
    EnvironmentalSnapshot,
    FireObservation,
    GeoPoint,
    OrganizationRole,
    ZoneContext,
)
from fireplan.serialization import from_dict, to_dict
from fireplan.spread import perimeter_geojson

logger = logging.getLogger(__name__)


# =============================================================================
# CSV I/O
# =============================================================================


def read_csv(
    path: str | Path,
    columns: dict[str, str] | None = None,
    **kwargs: Any,
) -> pd.DataFrame:
    """
    Read a CSV file with optional column renaming.

    Parameters
    ----------
    path : str or Path
        Path to CSV file.
    columns : dict, optional
        Mapping of standard names to the names used in the file.
    **kwargs
        Additional arguments passed to pd.read_csv.

    Returns
    -------
    DataFrame
        Loaded data with upper-case column names.
    """
    path = Path(path)
    logger.debug(f"Reading CSV: {path}")

    df = pd.read_csv(path, **kwargs)

    # Clean column names
    df.columns = df.columns.str.strip().str.upper()

    if columns:
        rename_map = {v.upper(): k.upper() for k, v in columns.items() if v.upper() in df.columns}
        df = df.rename(columns=rename_map)

    return df


def write_csv(
    df: pd.DataFrame,
    path: str | Path,
    **kwargs: Any,
) -> None:
    """Write a DataFrame to CSV, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    logger.debug(f"Writing CSV: {path}")

    kwargs.setdefault("index", False)
    df.to_csv(path, **kwargs)


# =============================================================================
# Active-fire detections
# =============================================================================

# FIRMS VIIRS exports use letter classes instead of percentages
_CONFIDENCE_CLASSES = {"L": 30.0, "LOW": 30.0, "N": 60.0, "NOMINAL": 60.0, "H": 90.0, "HIGH": 90.0}

_BRIGHTNESS_COLUMNS = ("BRIGHTNESS", "BRIGHT_TI4", "BRIGHT_T31")


def _confidence(value: Any) -> float:
    if isinstance(value, str):
        key = value.strip().upper()
        if key in _CONFIDENCE_CLASSES:
            return _CONFIDENCE_CLASSES[key]
    number = pd.to_numeric(value, errors="coerce")
    return 50.0 if pd.isna(number) else float(number)


def _timestamp(row: pd.Series):
    if "ACQ_DATE" not in row or pd.isna(row["ACQ_DATE"]):
        return None
    hhmm = 0
    if "ACQ_TIME" in row and not pd.isna(row["ACQ_TIME"]):
        hhmm = int(row["ACQ_TIME"])
    ts = pd.to_datetime(row["ACQ_DATE"], errors="coerce")
    if pd.isna(ts):
        return None
    return (ts + pd.Timedelta(hours=hhmm // 100, minutes=hhmm % 100)).to_pydatetime()


def read_detections(
    path: str | Path,
    min_confidence: float = 0.0,
    columns: dict[str, str] | None = None,
) -> list[FireObservation]:
    """
    Read active-fire detections from a FIRMS-style CSV export.

    Recognised columns (case-insensitive): ``LATITUDE``, ``LONGITUDE``, a
    brightness column (``BRIGHTNESS``, ``BRIGHT_TI4`` or ``BRIGHT_T31``),
    ``CONFIDENCE`` (percent or l/n/h class), ``SIZE`` in hectares or
    ``SCAN`` × ``TRACK`` pixel dimensions in km, ``ACQ_DATE``/``ACQ_TIME``
    and ``SATELLITE`` or ``INSTRUMENT``.

    Parameters
    ----------
    path : str or Path
        CSV file.
    min_confidence : float
        Drop detections below this confidence (0-100).
    columns : dict, optional
        Mapping of recognised names to the names used in the file, for
        exports with other headers, e.g. ``{"latitude": "lat"}``.

    Returns
    -------
    list[FireObservation]
        Detections in file order.

    Raises
    ------
    ValidationError
        If the coordinate or brightness columns are missing.
    """
    df = read_csv(path, columns)

    for required in ("LATITUDE", "LONGITUDE"):
        if required not in df.columns:
            raise ValidationError(f"detections.{required.lower()}", "column missing")
    brightness_col = next((c for c in _BRIGHTNESS_COLUMNS if c in df.columns), None)
    if brightness_col is None:
        raise ValidationError("detections.brightness", "column missing")

    observations = []
    for _, row in df.iterrows():
        if "SIZE" in df.columns:
            size = float(row["SIZE"])
        elif "SCAN" in df.columns and "TRACK" in df.columns:
            size = float(row["SCAN"]) * float(row["TRACK"]) * 100.0
        else:
            size = 1.0

        sensor = row.get("SATELLITE", row.get("INSTRUMENT", "unknown"))
        obs = FireObservation(
            location=GeoPoint(float(row["LATITUDE"]), float(row["LONGITUDE"])),
            brightness=float(row[brightness_col]),
            confidence=_confidence(row.get("CONFIDENCE", 50.0)),
            size=size,
            sensor_id=str(sensor),
            timestamp=_timestamp(row),
        )
        if obs.confidence >= min_confidence:
            observations.append(obs)

    logger.info(f"Read {len(observations)} detection(s) from {path}")
    return observations


def detections_to_dataframe(observations: list[FireObservation]) -> pd.DataFrame:
    """Tabulate detections (one row each) for display or CSV export."""
    rows = [
        {
            "latitude": o.location.latitude if o.location else None,
            "longitude": o.location.longitude if o.location else None,
            "brightness": o.brightness,
            "confidence": o.confidence,
            "size_ha": o.size,
            "sensor_id": o.sensor_id,
            "timestamp": o.timestamp,
        }
        for o in observations
    ]
    return pd.DataFrame(rows)


# =============================================================================
# Scenarios
# =============================================================================


@dataclass
class Scenario:
    """One observation with its context, as read from a scenario file."""

    observation: FireObservation
    snapshot: EnvironmentalSnapshot
    zone: ZoneContext = field(default_factory=ZoneContext)
    role: OrganizationRole = OrganizationRole.FIREFIGHTING
    name: str = "scenario"


def read_structured(path: str | Path) -> Any:
    """Load a YAML or JSON file (chosen by suffix)."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    with open(path, "r") as f:
        if path.suffix.lower() == ".json":
            return json.load(f)
        return yaml.safe_load(f)


def read_scenario(path: str | Path) -> Scenario:
    """
    Read a scenario file.

    The file holds ``observation`` and ``snapshot`` mappings in the shape
    produced by ``to_dict``, plus optional ``zone``, ``role`` and ``name``.
    """
    raw = read_structured(path)
    if not isinstance(raw, dict):
        raise ValidationError("scenario", "top level must be a mapping")
    for key in ("observation", "snapshot"):
        if key not in raw:
            raise ValidationError(f"scenario.{key}")

    scenario = Scenario(
        observation=from_dict(FireObservation, raw["observation"], "observation"),
        snapshot=from_dict(EnvironmentalSnapshot, raw["snapshot"], "snapshot"),
        zone=from_dict(ZoneContext, raw.get("zone") or {}, "zone"),
        role=OrganizationRole.parse(raw.get("role", "firefighting")),
        name=str(raw.get("name", Path(path).stem)),
    )
    logger.debug(f"Loaded scenario '{scenario.name}' from {path}")
    return scenario


# =============================================================================
# JSON / GeoJSON output
# =============================================================================


def write_json(obj: Any, path: str | Path) -> Path:
    """Write a record (or plain data) as indented JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(to_dict(obj), f, indent=2)
    logger.debug(f"Wrote {path}")
    return path


def read_json(cls: type, path: str | Path):
    """Read a record of type ``cls`` written by :func:`write_json`."""
    with open(path, "r") as f:
        return from_dict(cls, json.load(f))


def write_analysis(
    analysis: ComprehensiveAnalysis,
    output_dir: str | Path,
    name: str = "analysis",
    write_geojson: bool = True,
) -> list[Path]:
    """
    Write an analysis to ``output_dir``.

    Produces ``<name>.json`` and, when a spread prediction exists and
    ``write_geojson`` is set, ``<name>_perimeter.geojson``.
    """
    output_dir = Path(output_dir)
    written = [write_json(analysis, output_dir / f"{name}.json")]

    if write_geojson and analysis.spread is not None:
        geojson_path = output_dir / f"{name}_perimeter.geojson"
        with open(geojson_path, "w") as f:
            json.dump(perimeter_geojson(analysis.spread), f, indent=2)
        written.append(geojson_path)

    logger.info(f"Saved {len(written)} file(s) to {output_dir}")
    return written
