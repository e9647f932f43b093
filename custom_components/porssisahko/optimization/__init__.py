"""Price analysis engine for Pörssisähkö.

Pure Python logic independent of Home Assistant entities: current price
lookup, cheapest hour before local midnight, countdown and timeline
projection.
"""

from .countdown import CountdownProjection, project_countdown
from .price_analyzer import (
    CheapestWindow,
    PriceAnalyzer,
    PriceInterval,
    PriceSeries,
    PriceStatistics,
    WindowSlot,
    classify_price,
)
from .price_snapshot import PriceSnapshot, PriceWidgetState, build_snapshot
from .timeline import TimelineFractions, project_timeline, visible_range

__all__ = [
    "CheapestWindow",
    "CountdownProjection",
    "PriceAnalyzer",
    "PriceInterval",
    "PriceSeries",
    "PriceSnapshot",
    "PriceStatistics",
    "PriceWidgetState",
    "TimelineFractions",
    "WindowSlot",
    "build_snapshot",
    "classify_price",
    "project_countdown",
    "project_timeline",
    "visible_range",
]
