"""Pydantic models for API request/response validation."""

from datetime import date

from pydantic import BaseModel, Field, model_validator


class RunAnalysisRequest(BaseModel):
    """Request to mine recommendations for a period."""

    period_start: date = Field(..., description="First day of the analysis period")
    period_end: date = Field(..., description="Last day of the analysis period (inclusive)")
    min_support: float = Field(
        ..., ge=0.01, le=1.0, description="Minimum support threshold"
    )
    min_confidence: float = Field(
        ..., ge=0.01, le=1.0, description="Minimum confidence threshold"
    )
    category_id: int | None = Field(
        default=None, description="Only mine sales containing this category"
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "period_start": "2025-01-01",
                    "period_end": "2025-01-31",
                    "min_support": 0.05,
                    "min_confidence": 0.3,
                    "category_id": None,
                }
            ]
        }
    }

    @model_validator(mode="after")
    def check_period(self) -> "RunAnalysisRequest":
        if self.period_start > self.period_end:
            raise ValueError("period_end must be on or after period_start")
        return self


class ParameterSuggestionSchema(BaseModel):
    """Thresholds suggested after a run without rules."""

    min_support: float | None = Field(None, description="Suggested minimum support")
    min_confidence: float | None = Field(None, description="Suggested minimum confidence")
    text: str = Field(..., description="Human-readable suggestion")


class RunAnalysisResponse(BaseModel):
    """Outcome of an analysis run."""

    status: str = Field(..., description="success or the diagnostic that stopped the run")
    message: str = Field(..., description="Operator-facing message")
    generated_count: int = Field(0, description="New recommendations created")
    updated_count: int = Field(0, description="Existing recommendations with a raised score")
    frequent_itemset_count: int = Field(0, description="Frequent itemsets found")
    rule_count: int = Field(0, description="Association rules found")
    basket_count: int = Field(0, description="Baskets (2+ products) analysed")
    suggestion: ParameterSuggestionSchema | None = Field(
        None, description="Parameter suggestion when no rules were found"
    )
    warnings: list[str] = Field(default_factory=list, description="Non-blocking warnings")
    run_id: str | None = Field(None, description="Run identifier of the audit rows")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "status": "success",
                    "message": "Generated 4 new product recommendation(s) and updated 0.",
                    "generated_count": 4,
                    "updated_count": 0,
                    "frequent_itemset_count": 6,
                    "rule_count": 4,
                    "basket_count": 120,
                    "suggestion": None,
                    "warnings": [],
                    "run_id": "3f2a9c0e5b7d4e1f8a6b2c3d4e5f6a7b",
                }
            ]
        }
    }


class RecommendationSchema(BaseModel):
    """Stored product recommendation."""

    id: int = Field(..., description="Recommendation identifier")
    main_product_id: int = Field(..., description="Product being viewed/bought")
    main_product_name: str = Field(..., description="Main product name")
    recommended_product_id: int = Field(..., description="Recommended product")
    recommended_product_name: str = Field(..., description="Recommended product name")
    score: float = Field(..., description="Confidence of the rule behind it")
    score_percent: float = Field(..., description="Score as a percentage")
    confidence_level: str = Field(..., description="Very High ... Very Low")
    co_occurrence_count: int = Field(..., description="Baskets containing both products")
    last_analyzed_at: str = Field(..., description="Last run that created or raised it")
    active: bool = Field(..., description="Whether it is shown to customers")
    note: str | None = Field(None, description="Analysis or operator note")


class RecommendationListResponse(BaseModel):
    """Page of recommendations."""

    items: list[RecommendationSchema] = Field(..., description="Recommendations by score")
    limit: int = Field(..., description="Page size")
    offset: int = Field(..., description="Rows skipped")


class RecommendationStatusUpdate(BaseModel):
    """Operator change to a recommendation."""

    active: bool = Field(..., description="New active flag")
    note: str | None = Field(None, max_length=255, description="Operator note")


class RecommendationStatistics(BaseModel):
    """Summary of the recommendation table."""

    total: int
    active: int
    inactive: int
    avg_score: float
    avg_score_percent: float
    recently_analyzed: int


class AnalysisRecordSchema(BaseModel):
    """Audit row of a frequent itemset or association rule."""

    id: int
    run_id: str
    kind: str
    items: list[int]
    antecedent_id: int | None = None
    consequent_id: int | None = None
    product_names: str | None = None
    support: float
    confidence: float | None = None
    lift: float | None = None
    occurrence_count: int
    total_basket_count: int
    min_support: float | None = None
    min_confidence: float | None = None
    category_id: int | None = None
    period_start: date
    period_end: date
    analyzed_at: str
    description: str | None = None
    strength_level: str | None = None


class AnalysisStatistics(BaseModel):
    """Counts and averages of audit rows."""

    frequent_itemsets: int
    association_rules: int
    avg_confidence: float
    avg_confidence_percent: float
    avg_lift: float


class ProductRecommendationsResponse(BaseModel):
    """Everything known about one product's co-purchases."""

    product_id: int = Field(..., description="Product identifier")
    recommendations: list[RecommendationSchema] = Field(
        ..., description="Active recommendations by score"
    )
    frequently_bought_together: list[RecommendationSchema] = Field(
        ..., description="Recommendations by co-occurrence count"
    )
    association_rules: list[AnalysisRecordSchema] = Field(
        ..., description="Audit rules involving the product"
    )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status (healthy/unhealthy)")
    database: bool = Field(..., description="Whether the database is reachable")
    version: str = Field(..., description="API version")


class ErrorResponse(BaseModel):
    """Error response."""

    detail: str = Field(..., description="Error message")
