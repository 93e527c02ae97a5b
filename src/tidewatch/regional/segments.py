"""
Coastline Segments

Loads the static regional segments used for map rendering. A segment that
does not declare its own multiplier takes the multiplier of its category.
"""
import json
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from config.settings import settings
from src.tidewatch.errors import ConfigurationError
from src.tidewatch.models.region import RegionalSegment
from src.tidewatch.reference.tables import ReferenceTables, get_reference_tables
from src.tidewatch.utils.logger import get_logger

logger = get_logger(__name__)

BUNDLED_SEGMENTS_PATH = Path(__file__).resolve().parents[3] / "config" / "coastline_segments.json"


def load_segments(
    path: Optional[str] = None,
    tables: Optional[ReferenceTables] = None,
) -> List[RegionalSegment]:
    """
    Load coastline segments from JSON.

    Args:
        path: Segment file (defaults to the bundled file)
        tables: Reference tables used to resolve category multipliers

    Returns:
        List of RegionalSegment

    Raises:
        ConfigurationError: if the file is missing, malformed or invalid
    """
    tables = tables or get_reference_tables()
    segment_path = Path(path) if path else BUNDLED_SEGMENTS_PATH

    try:
        with open(segment_path, encoding="utf-8") as handle:
            raw = json.load(handle)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Segment file not found: {segment_path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Segment file is not valid JSON: {segment_path}: {exc}") from exc

    records = raw.get("segments", []) if isinstance(raw, dict) else raw
    segments = []
    for record in records:
        record = dict(record)
        if record.get("multiplier") is None:
            record["multiplier"] = tables.region_multiplier(record.get("category"))
        try:
            segments.append(RegionalSegment.model_validate(record))
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid segment {record.get('id')!r}: {exc}") from exc

    ids = [s.id for s in segments]
    if len(ids) != len(set(ids)):
        raise ConfigurationError(f"Duplicate segment ids in {segment_path}")

    logger.info("segments_loaded", path=str(segment_path), count=len(segments))
    return segments


@lru_cache()
def get_segments() -> List[RegionalSegment]:
    return load_segments(settings.coastline_segments_path)
