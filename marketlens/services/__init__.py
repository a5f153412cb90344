"""Application services."""

from marketlens.services.aggregation_service import AggregationService
from marketlens.services.analysis_service import MarketAnalysisService

__all__ = ["AggregationService", "MarketAnalysisService"]
