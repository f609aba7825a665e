from typing import Any, List

from pydantic import ValidationError

from heatsentry.errors import UpstreamError
from heatsentry.schemas import HeatmapBin, HeatmapResponse


def parse_heatmap(body: Any) -> List[HeatmapBin]:
    try:
        return HeatmapResponse.model_validate(body).heatmap
    except ValidationError as e:
        raise UpstreamError(f"malformed heatmap body: {e.error_count()} validation error(s)") from e


def filter_heatmap(body: Any, threshold: float) -> List[HeatmapBin]:
    """Bins with liquidation value >= threshold, in their original order."""
    return [b for b in parse_heatmap(body) if b.liquidation_value >= threshold]
