"""
Roof edge classifier

Labels the outer boundary edges of a roof structure as eave, rake or
wall using their bearing relative to the building's long axis
"""

from typing import Dict, List, Optional, Sequence

from loguru import logger

from .models import ClassifiedEdge, EdgeClass, RoofType
from ..config import ClassifierConfig, get_config
from ..geometry.geometry_utils import GeometryUtils
from ..geometry.utils import Metric, get_metric, open_ring


class EdgeClassifier:
    """
    Classifies perimeter edges into linear-footage classes

    Algorithm:
    1. Project the ring into local meters
    2. Dominant axis = long side of the minimum rotated bounding
       rectangle; for near-square outlines use the longest edge instead
    3. Fold each edge's angle to the axis into 0~90 degrees
       - below 45 - band: eave (runs along the building)
       - above 45 + band: rake (gable end)
       - inside the band: wall (ambiguous default)

    This is a best-effort heuristic. It cannot tell a hip from a rake on
    irregular outlines, and it never produces ridge/hip/valley: interior
    folds arrive separately as ridge lines.
    """

    def __init__(
        self,
        config: Optional[ClassifierConfig] = None,
        metric: Optional[Metric] = None
    ):
        global_config = get_config()
        self.config = config or global_config.classifier
        self.metric = metric or get_metric(global_config.metric)

    def classify(
        self,
        ring: Sequence[Sequence[float]],
        roof_type: Optional[RoofType] = None
    ) -> List[ClassifiedEdge]:
        """
        Classify every edge of a closed ring, including the closing edge

        Args:
            ring: Boundary coordinates (closing point optional)
            roof_type: Detected roof type, used only when use_roof_type is set

        Returns:
            One ClassifiedEdge per ring edge, in ring order
        """
        points = open_ring(ring)
        if len(points) < 3:
            logger.debug("Ring has fewer than 3 points - nothing to classify")
            return []

        local = self.metric.to_local(points)
        local_edges = GeometryUtils.get_polygon_edges(local)

        all_eaves = self.config.use_roof_type and roof_type == RoofType.HIP
        axis = None if all_eaves else self._dominant_axis(local, local_edges)

        n = len(points)
        classified = []
        for edge in local_edges:
            i = edge["index"]
            start = points[i]
            end = points[(i + 1) % n]

            if all_eaves:
                edge_class = EdgeClass.EAVE
            else:
                edge_class = self._class_for_angle(
                    GeometryUtils.axis_difference(edge["bearing"], axis)
                )

            classified.append(ClassifiedEdge(
                index=i,
                start=start,
                end=end,
                edge_class=edge_class,
                length_m=self.metric.segment_length(start, end),
                bearing=edge["bearing"],
                direction=edge["direction"]
            ))

        logger.debug(
            "Classified edges: " + ", ".join(
                f"{e.edge_class.value} {e.length_ft:.1f}ft" for e in classified
            )
        )
        return classified

    def _dominant_axis(self, local: List, local_edges: List[Dict]) -> float:
        rect = GeometryUtils.oriented_rectangle(local)
        if rect and rect["aspect_ratio"] >= self.config.square_aspect_tolerance:
            return rect["axis_bearing"]

        # Near-square: no usable long side, follow the longest edge
        longest = max(local_edges, key=lambda e: e["length_m"])
        return longest["bearing"] % 180.0

    def _class_for_angle(self, angle: float) -> EdgeClass:
        band = self.config.ambiguity_band_deg
        if angle < 45.0 - band:
            return EdgeClass.EAVE
        if angle > 45.0 + band:
            return EdgeClass.RAKE
        return EdgeClass.WALL

    @staticmethod
    def summarize(edges: Sequence[ClassifiedEdge]) -> Dict[EdgeClass, float]:
        """Total linear feet per edge class"""
        totals: Dict[EdgeClass, float] = {}
        for edge in edges:
            totals[edge.edge_class] = totals.get(edge.edge_class, 0.0) + edge.length_ft
        return totals
