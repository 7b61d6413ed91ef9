"""Competitive analysis API endpoints.

Project-scoped operations:
- GET /api/v1/projects/{project_id}/competitive-analysis/competitors - List competitors
- POST /api/v1/projects/{project_id}/competitive-analysis/competitors - Add (or refresh) a competitor
- POST /api/v1/projects/{project_id}/competitive-analysis/competitors/{competitor_id}/recalculate - Recompute metrics
- DELETE /api/v1/projects/{project_id}/competitive-analysis/competitors/{competitor_id} - Delete competitor
- POST /api/v1/projects/{project_id}/competitive-analysis/analyze - Run a gap analysis
- GET /api/v1/projects/{project_id}/competitive-analysis/analyses - List stored analyses

Tools:
- POST /api/v1/competitive-analysis/validate-url - Show how a URL is stored and matched

Error Logging Requirements:
- Log all incoming requests with method, path, request_id
- Log request body at DEBUG level (sanitize sensitive fields)
- Return structured error responses: {"error": str, "code": str, "request_id": str}
- Log 4xx errors at WARNING, 5xx at ERROR
"""

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from competitive_analysis.core.database import get_session
from competitive_analysis.core.logging import get_logger
from competitive_analysis.integrations.claude import ClaudeClient, get_claude
from competitive_analysis.integrations.scraper import WebScraperClient, get_scraper
from competitive_analysis.schemas.content_analysis import (
    AnalyzeRequest,
    CompetitiveAnalysisListResponse,
    CompetitiveAnalysisResponse,
    CompetitorCreateRequest,
    CompetitorListResponse,
    CompetitorRecord,
    UrlValidationRequest,
    UrlValidationResult,
)
from competitive_analysis.services.competitive_analysis import (
    AnalysisValidationError,
    CompetitiveAnalysisService,
    validate_url_storage,
)
from competitive_analysis.services.competitor import (
    CompetitorNotFoundError,
    CompetitorService,
    CompetitorValidationError,
)

logger = get_logger(__name__)

router = APIRouter()
tools_router = APIRouter()

_NOT_FOUND_EXAMPLE = {
    "description": "Competitor not found",
    "content": {
        "application/json": {
            "example": {
                "error": "Competitor not found: <uuid>",
                "code": "NOT_FOUND",
                "request_id": "<request_id>",
            }
        }
    },
}
_VALIDATION_EXAMPLE = {
    "description": "Validation error",
    "content": {
        "application/json": {
            "example": {
                "error": "Validation failed for 'url': URL cannot be empty",
                "code": "VALIDATION_ERROR",
                "request_id": "<request_id>",
            }
        }
    },
}


def _get_request_id(request: Request) -> str:
    """Get request_id from request state."""
    return getattr(request.state, "request_id", "unknown")


def _error_response(status_code: int, error: str, code: str, request_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "code": code, "request_id": request_id},
    )


def _validation_error(
    e: CompetitorValidationError | AnalysisValidationError, request_id: str
) -> JSONResponse:
    logger.warning(
        "Validation error",
        extra={
            "request_id": request_id,
            "field": e.field,
            "value": str(e.value)[:100],
            "message": e.message,
        },
    )
    return _error_response(
        status.HTTP_400_BAD_REQUEST, str(e), "VALIDATION_ERROR", request_id
    )


async def _get_project_competitor(
    service: CompetitorService,
    project_id: str,
    competitor_id: str,
    request_id: str,
) -> CompetitorRecord | JSONResponse:
    """Load a competitor, answering 404 if it belongs to another project."""
    try:
        competitor = await service.get_competitor(competitor_id)
    except CompetitorNotFoundError as e:
        logger.warning(
            "Competitor not found",
            extra={
                "request_id": request_id,
                "project_id": project_id,
                "competitor_id": competitor_id,
            },
        )
        return _error_response(status.HTTP_404_NOT_FOUND, str(e), "NOT_FOUND", request_id)

    if competitor.project_id != project_id:
        logger.warning(
            "Competitor belongs to another project",
            extra={
                "request_id": request_id,
                "project_id": project_id,
                "competitor_id": competitor_id,
            },
        )
        return _error_response(
            status.HTTP_404_NOT_FOUND,
            f"Competitor not found: {competitor_id}",
            "NOT_FOUND",
            request_id,
        )
    return competitor


@router.get(
    "/competitors",
    response_model=CompetitorListResponse,
    summary="List competitors",
    description="Get all tracked competitors for a project, oldest first.",
)
async def list_competitors(
    request: Request,
    project_id: str,
    session: AsyncSession = Depends(get_session),
    scraper: WebScraperClient = Depends(get_scraper),
) -> CompetitorListResponse:
    """List competitors for a project."""
    request_id = _get_request_id(request)
    logger.debug(
        "List competitors request",
        extra={"request_id": request_id, "project_id": project_id},
    )

    service = CompetitorService(session, scraper)
    competitors = await service.list_competitors(project_id)

    logger.debug(
        "Competitors list retrieved",
        extra={
            "request_id": request_id,
            "project_id": project_id,
            "count": len(competitors),
        },
    )
    return CompetitorListResponse(items=competitors, total=len(competitors))


@router.post(
    "/competitors",
    response_model=CompetitorRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Add a competitor",
    description=(
        "Scrape a competitor URL and store its metrics. "
        "Adding a URL that is already tracked recomputes the existing record."
    ),
    responses={400: _VALIDATION_EXAMPLE, 500: {"description": "Competitor could not be saved"}},
)
async def add_competitor(
    request: Request,
    project_id: str,
    data: CompetitorCreateRequest,
    session: AsyncSession = Depends(get_session),
    scraper: WebScraperClient = Depends(get_scraper),
) -> CompetitorRecord | JSONResponse:
    """Add a competitor URL to a project."""
    request_id = _get_request_id(request)
    logger.debug(
        "Add competitor request",
        extra={
            "request_id": request_id,
            "project_id": project_id,
            "url": data.url[:200],
        },
    )

    service = CompetitorService(session, scraper)
    try:
        competitor = await service.add_or_refresh(project_id, data.url)
    except CompetitorValidationError as e:
        return _validation_error(e, request_id)

    if competitor is None:
        logger.error(
            "Competitor could not be saved",
            extra={"request_id": request_id, "project_id": project_id},
        )
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Competitor could not be saved",
            "INTERNAL_ERROR",
            request_id,
        )

    logger.info(
        "Competitor added",
        extra={
            "request_id": request_id,
            "project_id": project_id,
            "competitor_id": competitor.id,
            "url": competitor.url[:200],
        },
    )
    return competitor


@router.post(
    "/competitors/{competitor_id}/recalculate",
    response_model=CompetitorRecord,
    summary="Recalculate competitor metrics",
    description="Re-scrape a competitor page and recompute its metrics.",
    responses={404: _NOT_FOUND_EXAMPLE},
)
async def recalculate_competitor(
    request: Request,
    project_id: str,
    competitor_id: str,
    session: AsyncSession = Depends(get_session),
    scraper: WebScraperClient = Depends(get_scraper),
) -> CompetitorRecord | JSONResponse:
    """Recompute one competitor's metrics."""
    request_id = _get_request_id(request)
    logger.debug(
        "Recalculate competitor request",
        extra={
            "request_id": request_id,
            "project_id": project_id,
            "competitor_id": competitor_id,
        },
    )

    service = CompetitorService(session, scraper)
    existing = await _get_project_competitor(service, project_id, competitor_id, request_id)
    if isinstance(existing, JSONResponse):
        return existing

    competitor = await service.recalculate(competitor_id)
    if competitor is None:
        logger.error(
            "Competitor recalculation could not be saved",
            extra={"request_id": request_id, "competitor_id": competitor_id},
        )
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Competitor could not be saved",
            "INTERNAL_ERROR",
            request_id,
        )
    return competitor


@router.delete(
    "/competitors/{competitor_id}",
    response_model=None,
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete competitor",
    description="Stop tracking a competitor and delete its stored content.",
    responses={
        204: {"description": "Competitor deleted successfully"},
        404: _NOT_FOUND_EXAMPLE,
    },
)
async def delete_competitor(
    request: Request,
    project_id: str,
    competitor_id: str,
    session: AsyncSession = Depends(get_session),
    scraper: WebScraperClient = Depends(get_scraper),
) -> Response | JSONResponse:
    """Delete a competitor."""
    request_id = _get_request_id(request)
    logger.debug(
        "Delete competitor request",
        extra={
            "request_id": request_id,
            "project_id": project_id,
            "competitor_id": competitor_id,
        },
    )

    service = CompetitorService(session, scraper)
    existing = await _get_project_competitor(service, project_id, competitor_id, request_id)
    if isinstance(existing, JSONResponse):
        return existing

    deleted = await service.delete_competitor(competitor_id)
    if not deleted:
        return _error_response(
            status.HTTP_404_NOT_FOUND,
            f"Competitor not found: {competitor_id}",
            "NOT_FOUND",
            request_id,
        )

    logger.info(
        "Competitor deleted",
        extra={
            "request_id": request_id,
            "project_id": project_id,
            "competitor_id": competitor_id,
        },
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/analyze",
    response_model=CompetitiveAnalysisResponse,
    summary="Run competitive analysis",
    description=(
        "Compare a content page against the project's competitors and "
        "return content gaps, keyword gaps, advantages and strategies."
    ),
    responses={400: _VALIDATION_EXAMPLE},
)
async def analyze_content(
    request: Request,
    project_id: str,
    data: AnalyzeRequest,
    session: AsyncSession = Depends(get_session),
    scraper: WebScraperClient = Depends(get_scraper),
    claude: ClaudeClient = Depends(get_claude),
) -> CompetitiveAnalysisResponse | JSONResponse:
    """Run a competitive analysis for one content URL."""
    request_id = _get_request_id(request)
    logger.debug(
        "Analyze content request",
        extra={
            "request_id": request_id,
            "project_id": project_id,
            "url": data.url[:200],
            "refresh": data.refresh,
        },
    )

    service = CompetitiveAnalysisService(session, scraper, llm=claude)
    try:
        response = await service.run_competitive_analysis(
            project_id, data.url, refresh=data.refresh
        )
    except AnalysisValidationError as e:
        return _validation_error(e, request_id)

    logger.info(
        "Competitive analysis completed",
        extra={
            "request_id": request_id,
            "project_id": project_id,
            "analysis_id": response.analysis_id,
            "source": response.result.source,
        },
    )
    return response


@router.get(
    "/analyses",
    response_model=CompetitiveAnalysisListResponse,
    summary="List stored analyses",
    description="Get the most recent stored analysis reports for a project.",
)
async def list_analyses(
    request: Request,
    project_id: str,
    limit: int = Query(default=20, ge=1, le=100, description="Number of results"),
    session: AsyncSession = Depends(get_session),
    scraper: WebScraperClient = Depends(get_scraper),
) -> CompetitiveAnalysisListResponse:
    """List stored analyses for a project, newest first."""
    request_id = _get_request_id(request)
    logger.debug(
        "List analyses request",
        extra={"request_id": request_id, "project_id": project_id, "limit": limit},
    )

    service = CompetitiveAnalysisService(session, scraper)
    analyses = await service.list_analyses(project_id, limit=limit)
    return CompetitiveAnalysisListResponse(items=analyses, total=len(analyses))


@tools_router.post(
    "/validate-url",
    response_model=UrlValidationResult,
    summary="Validate URL storage",
    description=(
        "Show how a URL will be normalized and stored, whether it was "
        "truncated, and which variants are tried for exact matching."
    ),
)
async def validate_url(
    request: Request,
    data: UrlValidationRequest,
) -> UrlValidationResult:
    """Preview URL normalization."""
    request_id = _get_request_id(request)
    result = validate_url_storage(data.url)
    logger.debug(
        "URL validation request",
        extra={
            "request_id": request_id,
            "url": data.url[:200],
            "is_valid": result.is_valid,
            "truncated": result.truncated,
        },
    )
    return result
