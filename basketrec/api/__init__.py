"""REST API for the recommendation service.

Run with: uvicorn basketrec.api.main:app --reload --port 8000
"""

from basketrec.api.main import API_VERSION, app
from basketrec.api.schemas import (
    HealthResponse,
    RecommendationListResponse,
    RecommendationSchema,
    RunAnalysisRequest,
    RunAnalysisResponse,
)

__all__ = [
    "app",
    "API_VERSION",
    "RunAnalysisRequest",
    "RunAnalysisResponse",
    "RecommendationSchema",
    "RecommendationListResponse",
    "HealthResponse",
]
