"""
Regional Variation Engine

Spreads one composite index over coastline segments by applying each
segment's multiplier. The resulting segment scores are an approximation
for map rendering (sparse sensing, dense visualization), not readings taken
inside each segment, and every record is flagged as such.
"""
from typing import Any, Dict, List, Optional, Sequence

from src.tidewatch.alerts.classifier import RiskClassifier
from src.tidewatch.models.region import RegionalSegment, SegmentScore
from src.tidewatch.models.risk import CompositeIndex
from src.tidewatch.reference.tables import ReferenceTables, get_reference_tables
from src.tidewatch.regional.segments import get_segments
from src.tidewatch.utils.geo_utils import haversine_km
from src.tidewatch.utils.logger import get_logger

logger = get_logger(__name__)


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


class RegionalVariationEngine:

    def __init__(
        self,
        segments: Optional[Sequence[RegionalSegment]] = None,
        tables: Optional[ReferenceTables] = None,
    ):
        self.tables = tables or get_reference_tables()
        self.segments: List[RegionalSegment] = list(segments) if segments is not None else list(get_segments())
        self.classifier = RiskClassifier(self.tables)

    def apply(self, index: CompositeIndex, segment: RegionalSegment) -> SegmentScore:
        """
        Scale a composite index by a segment's multiplier.

        The score is clamped to [0, 100]; 98 x 1.05 gives 100, not 102.9.
        """
        score = round(_clamp(index.overall * segment.multiplier), 2)
        return SegmentScore(
            segment_id=segment.id,
            name=segment.name,
            domain=index.domain,
            score=score,
            base_overall=index.overall,
            multiplier=segment.multiplier,
            risk_tier=self.classifier.tier_for(index.domain, score, index.drivers),
            confidence=index.confidence,
            centroid=segment.centroid,
        )

    def apply_all(
        self,
        index: CompositeIndex,
        segments: Optional[Sequence[RegionalSegment]] = None,
    ) -> List[SegmentScore]:
        segments = self.segments if segments is None else segments
        return [self.apply(index, segment) for segment in segments]

    def nearest_segment(self, latitude: float, longitude: float) -> Optional[RegionalSegment]:
        """Segment whose centroid is closest to the point, or None if none are loaded."""
        if not self.segments:
            return None
        return min(
            self.segments,
            key=lambda s: haversine_km(latitude, longitude, s.centroid[0], s.centroid[1]),
        )

    def to_feature_collection(self, scores: Sequence[SegmentScore]) -> Dict[str, Any]:
        """
        GeoJSON FeatureCollection for map layers.

        Segments with a polygon become closed Polygon features, others a
        Point at the centroid. Coordinates are [lng, lat].
        """
        by_id = {s.id: s for s in self.segments}
        features = []
        for score in scores:
            segment = by_id.get(score.segment_id)
            if segment is not None and len(segment.polygon) >= 3:
                ring = [[lng, lat] for lat, lng in segment.polygon]
                if ring[0] != ring[-1]:
                    ring.append(ring[0])
                geometry = {"type": "Polygon", "coordinates": [ring]}
            else:
                lat, lng = score.centroid
                geometry = {"type": "Point", "coordinates": [lng, lat]}

            features.append({
                "type": "Feature",
                "id": score.segment_id,
                "geometry": geometry,
                "properties": score.model_dump(mode="json", by_alias=True, exclude={"centroid"}),
            })

        return {"type": "FeatureCollection", "features": features}
