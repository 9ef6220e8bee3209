"""
Stock Vision Agents.

This package contains the agents that drive the provider orchestrator:
- VisionExtractorAgent: reads page data out of a screenshot
- ReportAnalystAgent: writes the narrative markdown report
- PredictionAgent: makes the forward-looking call
- CombinedAnalysisAgent: all three in a single vision call
"""

from .extractor import (
    VisionExtractorAgent,
    CombinedAnalysisAgent,
)
from .analyst import (
    ReportAnalystAgent,
    PredictionAgent,
)
from .validation import (
    parse_price,
    validate_extracted_data,
)

__all__ = [
    "VisionExtractorAgent",
    "CombinedAnalysisAgent",
    "ReportAnalystAgent",
    "PredictionAgent",
    "parse_price",
    "validate_extracted_data",
]
