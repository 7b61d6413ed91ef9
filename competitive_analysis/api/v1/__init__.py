"""API v1 router and endpoint organization."""

from fastapi import APIRouter

from competitive_analysis.api.v1.endpoints import competitive_analysis

router = APIRouter(tags=["v1"])

# Include domain-specific routers
router.include_router(
    competitive_analysis.router,
    prefix="/projects/{project_id}/competitive-analysis",
    tags=["Competitive Analysis"],
)
router.include_router(
    competitive_analysis.tools_router,
    prefix="/competitive-analysis",
    tags=["Competitive Analysis Tools"],
)
