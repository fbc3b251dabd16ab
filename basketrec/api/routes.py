"""API routes for the recommendation service."""

from dataclasses import asdict
from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query, status
from loguru import logger

from basketrec.analysis.pipeline import run_analysis
from basketrec.api.schemas import (
    AnalysisRecordSchema,
    AnalysisStatistics,
    ErrorResponse,
    HealthResponse,
    ProductRecommendationsResponse,
    RecommendationListResponse,
    RecommendationSchema,
    RecommendationStatistics,
    RecommendationStatusUpdate,
    RunAnalysisRequest,
    RunAnalysisResponse,
)
from basketrec.data import audit
from basketrec.data.database import connect
from basketrec.data.recommendations import RecommendationStore
from basketrec.types import RunStatus

# Router instance
router = APIRouter()


def get_db():
    """Dependency yielding a database connection per request."""
    from basketrec.api.main import app_state

    if app_state.settings is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not configured. Service is starting up.",
        )

    conn = connect(app_state.settings.db_path, timeout=app_state.settings.db_timeout)
    try:
        yield conn
    finally:
        conn.close()


def _default_period(period_start: date | None, period_end: date | None) -> tuple[date, date]:
    from basketrec.api.main import app_state

    days = app_state.settings.default_period_days if app_state.settings else 30
    period_end = period_end or date.today()
    period_start = period_start or period_end - timedelta(days=days)
    return period_start, period_end


@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["System"],
    summary="Health check",
)
async def health_check(conn=Depends(get_db)):
    """Health check endpoint."""
    from basketrec.api.main import API_VERSION

    try:
        conn.execute("SELECT 1 FROM product_recommendations LIMIT 1")
        database = True
    except Exception as e:
        logger.warning(f"Health check database error: {e}")
        database = False

    return HealthResponse(
        status="healthy" if database else "unhealthy",
        database=database,
        version=API_VERSION,
    )


@router.post(
    "/analysis/run",
    response_model=RunAnalysisResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid parameters"},
        500: {"model": ErrorResponse, "description": "Run failed and was rolled back"},
    },
    tags=["Analysis"],
    summary="Generate recommendations",
    description="Mine completed sales of a period and update product recommendations.",
)
def run_analysis_endpoint(request: RunAnalysisRequest, conn=Depends(get_db)):
    """Run the Apriori pipeline.

    Diagnostic outcomes (no transactions, no rules, ...) are returned with
    status 200 and a specific `status` value.
    Declared without async so mining and the database write lock wait run
    in the worker threadpool.
    """
    logger.info(f"Analysis request: {request.model_dump()}")

    try:
        result = run_analysis(
            conn,
            period_start=request.period_start,
            period_end=request.period_end,
            min_support=request.min_support,
            min_confidence=request.min_confidence,
            category_id=request.category_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if result.status is RunStatus.FAILED:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=result.message,
        )

    payload = asdict(result)
    payload["status"] = result.status.value
    return RunAnalysisResponse(**payload)


@router.get(
    "/analysis",
    response_model=list[AnalysisRecordSchema],
    tags=["Analysis"],
    summary="List analysis results",
)
async def list_analysis(
    period_start: date | None = Query(None, description="Earliest period start"),
    period_end: date | None = Query(None, description="Latest period start"),
    kind: str | None = Query(
        audit.KIND_RULE,
        pattern="^(frequent_itemset|association_rule)$",
        description="Row kind",
    ),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    conn=Depends(get_db),
):
    """Frequent itemsets or association rules recorded by past runs."""
    period_start, period_end = _default_period(period_start, period_end)
    records = audit.list_analysis(conn, period_start, period_end, kind, limit, offset)
    return [AnalysisRecordSchema(**record) for record in records]


@router.get(
    "/analysis/statistics",
    response_model=AnalysisStatistics,
    tags=["Analysis"],
    summary="Analysis statistics",
)
async def analysis_statistics(
    period_start: date | None = Query(None),
    period_end: date | None = Query(None),
    conn=Depends(get_db),
):
    period_start, period_end = _default_period(period_start, period_end)
    return AnalysisStatistics(**audit.analysis_statistics(conn, period_start, period_end))


@router.get(
    "/recommendations",
    response_model=RecommendationListResponse,
    tags=["Recommendations"],
    summary="List recommendations",
)
async def list_recommendations(
    active: bool | None = Query(None, description="Filter on active flag"),
    category_id: int | None = Query(None, description="Category of the main product"),
    search: str | None = Query(None, description="Product name or code substring"),
    limit: int = Query(15, ge=1, le=100),
    offset: int = Query(0, ge=0),
    conn=Depends(get_db),
):
    """Recommendations sorted by score, highest first."""
    items = RecommendationStore(conn).list_recommendations(
        active=active,
        category_id=category_id,
        search=search,
        limit=limit,
        offset=offset,
    )
    return RecommendationListResponse(
        items=[RecommendationSchema(**item) for item in items],
        limit=limit,
        offset=offset,
    )


@router.get(
    "/recommendations/statistics",
    response_model=RecommendationStatistics,
    tags=["Recommendations"],
    summary="Recommendation statistics",
)
async def recommendation_statistics(conn=Depends(get_db)):
    return RecommendationStatistics(**RecommendationStore(conn).statistics())


@router.patch(
    "/recommendations/{recommendation_id}",
    response_model=RecommendationSchema,
    responses={404: {"model": ErrorResponse, "description": "Recommendation not found"}},
    tags=["Recommendations"],
    summary="Activate or deactivate a recommendation",
)
async def update_recommendation_status(
    recommendation_id: int,
    update: RecommendationStatusUpdate,
    conn=Depends(get_db),
):
    store = RecommendationStore(conn)
    if not store.set_status(recommendation_id, update.active, update.note):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Recommendation {recommendation_id} not found",
        )
    return RecommendationSchema(**store.get(recommendation_id))


@router.delete(
    "/recommendations/{recommendation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse, "description": "Recommendation not found"}},
    tags=["Recommendations"],
    summary="Delete a recommendation",
)
async def delete_recommendation(recommendation_id: int, conn=Depends(get_db)):
    if not RecommendationStore(conn).delete(recommendation_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Recommendation {recommendation_id} not found",
        )


@router.get(
    "/products/{product_id}/recommendations",
    response_model=ProductRecommendationsResponse,
    tags=["Recommendations"],
    summary="Recommendations for a product",
)
async def product_recommendations(
    product_id: int,
    limit: int = Query(5, ge=1, le=50),
    conn=Depends(get_db),
):
    """Customers-also-bought data for one product."""
    store = RecommendationStore(conn)
    return ProductRecommendationsResponse(
        product_id=product_id,
        recommendations=[
            RecommendationSchema(**item) for item in store.best_for_product(product_id, limit)
        ],
        frequently_bought_together=[
            RecommendationSchema(**item)
            for item in store.frequently_bought_together(product_id, limit)
        ],
        association_rules=[
            AnalysisRecordSchema(**record)
            for record in audit.rules_for_product(conn, product_id)
        ],
    )
