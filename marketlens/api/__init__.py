"""API layer."""

from marketlens.api.routes import get_aggregation_service, get_analysis_service, router

__all__ = ["router", "get_aggregation_service", "get_analysis_service"]
